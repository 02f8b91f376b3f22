"""Load environment configuration for the dashboard. Uses python-dotenv.

Callers should use the accessor functions below rather than reading `os.environ`
directly, to keep environment handling consistent.
"""

from pathlib import Path

from dotenv import load_dotenv
import os


def _project_root() -> Path:
    """Resolve project root (the directory holding `crc_dashboard/`)."""
    return Path(__file__).resolve().parent.parent.parent


def load_config() -> None:
    """
    Load .env from project root. Idempotent; safe to call multiple times.
    Existing environment variables win over .env values.
    """
    env_path = _project_root() / ".env"
    load_dotenv(env_path, override=False)


def get_optional(key: str, default: str = "") -> str:
    """Get optional env var; return default if missing or empty."""
    load_config()
    val = os.getenv(key, "").strip()
    return val if val else default


def get_optional_int(key: str, default: int) -> int:
    """Get optional env var as int; return default if missing or invalid."""
    load_config()
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_optional_float(key: str, default: float) -> float:
    """Get optional env var as float; return default if missing or invalid."""
    load_config()
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# --- Public config accessors ---

def data_dir() -> Path:
    """Optional: directory holding the persisted collections. Default data/store."""
    raw = get_optional("CRC_DATA_DIR", "")
    if raw:
        return Path(raw).expanduser()
    return _project_root() / "data" / "store"


def default_commission() -> float:
    """Optional: commission percent written to Defaults on first start. Default 6."""
    return get_optional_float("CRC_DEFAULT_COMMISSION", 6.0)


def channel_name() -> str:
    """Optional: broadcast channel namespace shared by all tabs."""
    return get_optional("CRC_CHANNEL_NAME", "crc_channel_v3")


def key_version() -> str:
    """Optional: suffix used in storage keys (crc_users_<version>). Default v3."""
    return get_optional("CRC_KEY_VERSION", "v3")


def feed_size() -> int:
    """Optional: number of broadcast messages kept in a tab's activity feed. Default 50."""
    return get_optional_int("CRC_FEED_SIZE", 50)


def inbox_size() -> int:
    """Optional: events a tab may hold undelivered before the oldest are dropped. Default 200."""
    return get_optional_int("CRC_INBOX_SIZE", 200)


def log_level() -> str:
    """Optional: logging level name. Default INFO."""
    return get_optional("CRC_LOG_LEVEL", "INFO").upper()


def log_file() -> Path | None:
    """Optional: also write logs to this file. Unset means stderr only."""
    raw = get_optional("CRC_LOG_FILE")
    return Path(raw).expanduser() if raw else None


def project_root() -> Path:
    """Project root directory."""
    return _project_root()
