"""
Environment-driven configuration for Opencast instances.

Each configured instance is addressed by an integer id. Variables are read as
`OPENCAST_{id}_URL`, `OPENCAST_{id}_USERNAME`, `OPENCAST_{id}_PASSWORD` and
`OPENCAST_{id}_TIMEOUT`; the default instance also accepts the unprefixed
`OPENCAST_URL` family so single-instance deployments stay short.
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache

from opencast_bridge.utils.env import load_env

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_ALL_VIDEOS_LABEL = "All videos"
AGGREGATION_ERROR_POLICIES = ("abort", "skip")


class OpencastConfigError(RuntimeError):
    """Raised when an instance is unknown or missing required settings."""

    pass


@dataclass(frozen=True)
class OpencastInstance:
    id: int
    base_url: str
    username: str | None = None
    password: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def auth(self) -> tuple[str, str] | None:
        if not self.username:
            return None
        return (self.username, self.password or "")


@dataclass(frozen=True)
class OpencastSettings:
    instances: Mapping[int, OpencastInstance] = field(default_factory=dict)
    default_instance_id: int | None = None
    aggregation_error_policy: str = "abort"
    all_videos_label: str = DEFAULT_ALL_VIDEOS_LABEL

    def get_instance(self, instance_id: int | None = None) -> OpencastInstance:
        resolved = self.default_instance_id if instance_id is None else int(instance_id)
        if resolved is None or resolved not in self.instances:
            raise OpencastConfigError(f"Opencast instance {resolved!r} is not configured.")
        return self.instances[resolved]


def _env_value(env: Mapping[str, str], name: str) -> str | None:
    value = (env.get(name) or "").strip()
    return value or None


def _parse_instance_ids(raw: str | None) -> list[int]:
    if not raw:
        return [1]
    ids: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            instance_id = int(part)
        except ValueError as exc:
            raise OpencastConfigError(f"OPENCAST_INSTANCES contains a non-integer id: {part!r}") from exc
        if instance_id not in ids:
            ids.append(instance_id)
    return ids or [1]


def _parse_timeout(raw: str | None, *, name: str) -> float:
    if raw is None:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise OpencastConfigError(f"{name} must be a number, got {raw!r}") from exc
    if timeout <= 0:
        raise OpencastConfigError(f"{name} must be positive, got {raw!r}")
    return timeout


def _instance_from_env(env: Mapping[str, str], instance_id: int, *, is_default: bool) -> OpencastInstance | None:
    def lookup(suffix: str) -> tuple[str | None, str]:
        name = f"OPENCAST_{instance_id}_{suffix}"
        value = _env_value(env, name)
        if value is None and is_default:
            name = f"OPENCAST_{suffix}"
            value = _env_value(env, name)
        return value, name

    url, _ = lookup("URL")
    if not url:
        return None
    username, _ = lookup("USERNAME")
    password, _ = lookup("PASSWORD")
    timeout_raw, timeout_name = lookup("TIMEOUT")
    return OpencastInstance(
        id=instance_id,
        base_url=url.rstrip("/"),
        username=username,
        password=password,
        timeout_seconds=_parse_timeout(timeout_raw, name=timeout_name),
    )


def load_settings(env: Mapping[str, str] | None = None) -> OpencastSettings:
    """
    Build settings from a mapping of environment variables (defaults to `os.environ`).

    Instances without a URL are left out, so asking for them later raises
    `OpencastConfigError` rather than failing on the first request.
    """

    env = os.environ if env is None else env
    instance_ids = _parse_instance_ids(_env_value(env, "OPENCAST_INSTANCES"))

    default_raw = _env_value(env, "OPENCAST_DEFAULT_INSTANCE")
    if default_raw is None:
        default_id = instance_ids[0]
    else:
        try:
            default_id = int(default_raw)
        except ValueError as exc:
            raise OpencastConfigError(f"OPENCAST_DEFAULT_INSTANCE must be an integer, got {default_raw!r}") from exc

    instances: dict[int, OpencastInstance] = {}
    for instance_id in instance_ids:
        instance = _instance_from_env(env, instance_id, is_default=instance_id == default_id)
        if instance is not None:
            instances[instance_id] = instance

    policy = (_env_value(env, "OPENCAST_AGGREGATION_ERROR_POLICY") or "abort").casefold()
    if policy not in AGGREGATION_ERROR_POLICIES:
        raise OpencastConfigError(
            f"OPENCAST_AGGREGATION_ERROR_POLICY must be one of {', '.join(AGGREGATION_ERROR_POLICIES)}; got {policy!r}"
        )

    return OpencastSettings(
        instances=instances,
        default_instance_id=default_id,
        aggregation_error_policy=policy,
        all_videos_label=_env_value(env, "OPENCAST_ALL_VIDEOS_LABEL") or DEFAULT_ALL_VIDEOS_LABEL,
    )


@lru_cache(maxsize=1)
def get_settings() -> OpencastSettings:
    load_env()
    return load_settings()
