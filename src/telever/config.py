"""Configuration management for telever."""

import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

REPO_MARKERS = (".git", "pyproject.toml")
REPO_CONFIG = Path(".telever") / "config.toml"


def _load_repo_config(start_dir: Path) -> dict:
    """Read .telever/config.toml from the nearest enclosing repo root.

    The root is the first directory upward holding .git or pyproject.toml,
    falling back to ``start_dir``. A missing or malformed file gives {}.
    """
    root = next(
        (d for d in (start_dir, *start_dir.parents) if any((d / m).exists() for m in REPO_MARKERS)),
        start_dir,
    )
    try:
        with open(root / REPO_CONFIG, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _setting(env_name: str, repo_config: dict, section: str, key: str, default: str) -> str:
    """Resolve one setting: environment variable, then [section] key, then default."""
    value = os.environ.get(env_name)
    if value:
        return value
    table = repo_config.get(section)
    value = table.get(key) if isinstance(table, dict) else None
    # Tables, arrays and booleans are not valid here
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return default


class TeleverConfig(BaseModel):
    """Configuration for the verification ledger and its CLI."""

    data_dir: Path = Field(default=Path("data"))
    timezone: str = Field(default="Africa/Addis_Ababa")
    booking_ttl_minutes: int = Field(default=10)
    log_dir: Path = Field(default=Path("logs"))
    log_level: str = Field(default="INFO")

    model_config = {"frozen": False}

    @classmethod
    def from_env(cls, cli_data_dir: Optional[str] = None) -> "TeleverConfig":
        """Load configuration with the following precedence:

        1. CLI --data-dir option (if provided)
        2. TELEVER_* environment variables
        3. repo-local .telever/config.toml (walk upward from CWD)
        4. Defaults

        Args:
            cli_data_dir: Data directory from the CLI --data-dir option

        Raises:
            ValueError: If TELEVER_BOOKING_TTL_MINUTES is not an integer
        """
        repo = _load_repo_config(Path.cwd())

        data_dir = cli_data_dir or _setting("TELEVER_DATA_DIR", repo, "ledger", "data_dir", "data")
        ttl = _setting("TELEVER_BOOKING_TTL_MINUTES", repo, "bookings", "ttl_minutes", "10")

        return cls(
            data_dir=Path(data_dir).expanduser(),
            timezone=_setting("TELEVER_TIMEZONE", repo, "ledger", "timezone", "Africa/Addis_Ababa"),
            booking_ttl_minutes=int(ttl),
            log_dir=Path(_setting("TELEVER_LOG_DIR", repo, "logging", "dir", "logs")).expanduser(),
            log_level=_setting("TELEVER_LOG_LEVEL", repo, "logging", "level", "INFO").upper(),
        )
