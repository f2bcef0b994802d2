from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv


def load_env(*, override: bool = False) -> Path | None:
    """
    Load the first `.env` found (repo root, then the working directory).

    Returns the path that was loaded, or None when neither exists.
    """

    repo_root = Path(__file__).resolve().parents[2]
    for path in (repo_root / ".env", Path.cwd() / ".env"):
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
            return path
    return None
