"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "browser_monitor.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_CDP_HOST = "localhost"
DEFAULT_CDP_PORT = 9222
DEFAULT_API_PORT = 8765
DEFAULT_QUERY_LIMIT = 100
LIVE_FEED_SIZE = 100

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def persistence_enabled(env_value: str | None = None) -> bool:
    """Read PERSIST_REQUESTS; anything but an explicit off value enables it."""
    if env_value is None:
        env_value = os.getenv("PERSIST_REQUESTS", "1")
    return env_value.strip().lower() not in {"0", "false", "no", "off"}
