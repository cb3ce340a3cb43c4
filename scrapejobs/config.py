"""
Runtime settings read from the environment.

Call load_settings() once at startup; pass the resulting Settings (or the
values in it) down explicitly.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .env import load_env
from .retry import BackoffPolicy

PREFIX = "SCRAPEJOBS_"


@dataclass(frozen=True)
class Settings:
    data_folder: Path = Path("webdata")
    db_path: Path = Path("webdata") / "jobs.db"
    retry_base_delay: float = 0.1
    retry_max_delay: float = 5.0
    retry_max_attempts: int = 10
    lock_timeout: float = 5.0
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            max_attempts=self.retry_max_attempts,
        )


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{PREFIX}{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{PREFIX}{name} must be positive, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read instead of os.environ (the .env file is only
            loaded when reading os.environ)

    Raises:
        ValueError: If a numeric variable is malformed
    """
    if env is None:
        load_env()
        env = os.environ

    data_folder = Path(env.get(PREFIX + "DATA_FOLDER") or "webdata")
    db_path = env.get(PREFIX + "DB_PATH")
    log_dir = env.get(PREFIX + "LOG_DIR")

    return Settings(
        data_folder=data_folder,
        db_path=Path(db_path) if db_path else data_folder / "jobs.db",
        retry_base_delay=_number(env, "RETRY_BASE_DELAY", 0.1, float),
        retry_max_delay=_number(env, "RETRY_MAX_DELAY", 5.0, float),
        retry_max_attempts=_number(env, "RETRY_MAX_ATTEMPTS", 10, int),
        lock_timeout=_number(env, "LOCK_TIMEOUT", 5.0, float),
        log_level=(env.get(PREFIX + "LOG_LEVEL") or "INFO").upper(),
        log_dir=Path(log_dir) if log_dir else None,
    )
