"""Configuration management for todocal."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TODOCAL_HOME = Path(os.environ.get("TODOCAL_HOME", Path.home() / "todocal"))
CONFIG_FILE = TODOCAL_HOME / "config" / "todocal.conf"
DATA_DIR = TODOCAL_HOME / "data"


@dataclass
class Config:
    """todocal configuration."""

    backend: str = "file"
    data_file: str = ""
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_access_token: str = ""
    request_timeout: float = 10.0
    # Delete a task's time sessions along with it (default: keep them)
    cascade_sessions: bool = False
    legacy_file: str = ""


def _parse_bool(value: str) -> bool | None:
    match value.lower():
        case "1" | "true" | "yes" | "on":
            return True
        case "0" | "false" | "no" | "off":
            return False
    return None


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from todocal.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "backend":
                config.backend = value.lower()
            case "data_file":
                config.data_file = value
            case "supabase_url":
                config.supabase_url = value
            case "supabase_key":
                config.supabase_key = value
            case "supabase_access_token":
                config.supabase_access_token = value
            case "request_timeout":
                try:
                    config.request_timeout = float(value)
                except ValueError:
                    logger.warning(f"Invalid REQUEST_TIMEOUT: {value}")
            case "cascade_sessions":
                flag = _parse_bool(value)
                if flag is None:
                    logger.warning(f"Invalid CASCADE_SESSIONS: {value}")
                else:
                    config.cascade_sessions = flag
            case "legacy_file":
                config.legacy_file = value

    return config
