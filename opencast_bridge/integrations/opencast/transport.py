from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass

import requests

from opencast_bridge.config import OpencastInstance

logger = logging.getLogger(__name__)


class OpencastTransportError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, body_snippet: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet


@dataclass(frozen=True)
class OpencastResponse:
    body: bytes
    status_code: int


def _retry_delay(attempt: int, retry_after: str | None = None) -> float:
    delay = 1.0 * (2**attempt)
    retry_after = (retry_after or "").strip()
    if retry_after.isdigit():
        delay = max(delay, float(retry_after))
    return delay + random.uniform(0.0, delay * 0.25)


class OpencastTransport:
    """
    Authenticated GET access to one Opencast instance.

    `get()` never interprets the status code: callers receive the body and the
    status as-is. Only connection-level failures raise `OpencastTransportError`.
    """

    def __init__(
        self,
        instance: OpencastInstance,
        *,
        session: requests.Session | None = None,
        max_attempts: int = 1,
    ) -> None:
        self._instance = instance
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._max_attempts = max(1, int(max_attempts))

    @property
    def instance(self) -> OpencastInstance:
        return self._instance

    def url_for(self, resource: str) -> str:
        if not resource.startswith("/"):
            resource = "/" + resource
        return self._instance.base_url.rstrip("/") + resource

    def get(self, resource: str) -> OpencastResponse:
        url = self.url_for(resource)
        headers = {"accept": "application/json"}

        for attempt in range(self._max_attempts):
            is_last = attempt >= self._max_attempts - 1
            try:
                resp = self._session.get(
                    url,
                    headers=headers,
                    auth=self._instance.auth,
                    timeout=self._instance.timeout_seconds,
                )
            except requests.RequestException as exc:
                if not is_last:
                    logger.warning(f"Opencast request to {url} failed ({exc}); retrying")
                    time.sleep(_retry_delay(attempt))
                    continue
                raise OpencastTransportError(f"Opencast request failed: {exc}") from exc

            retryable = resp.status_code == 429 or 500 <= resp.status_code < 600
            if retryable and not is_last:
                logger.warning(f"Opencast returned HTTP {resp.status_code} for {url}; retrying")
                time.sleep(_retry_delay(attempt, resp.headers.get("Retry-After")))
                continue

            return OpencastResponse(body=resp.content or b"", status_code=resp.status_code)

        raise OpencastTransportError("Opencast request failed (no response).")

    def close(self) -> None:
        if self._owns_session:
            self._session.close()
