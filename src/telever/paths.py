"""Path management for the telever data directory."""

import re
from pathlib import Path
from typing import Optional

from .config import TeleverConfig

LEDGER_PREFIX = "ledger-"
LEDGER_SUFFIX = ".json"

_LEDGER_NAME_RE = re.compile(r"^ledger-(\d{4}-\d{2}-\d{2})\.json$")


class DataPaths:
    """Manages paths within the telever data directory."""

    def __init__(self, data_dir: Path):
        """Initialize data paths from the data directory.

        Args:
            data_dir: Directory holding the ledger and its side files
        """
        self.root = data_dir
        self.locations_file = data_dir / "locations.json"

    @classmethod
    def from_config(cls, config: TeleverConfig) -> "DataPaths":
        """Create DataPaths from a TeleverConfig."""
        return cls(config.data_dir)

    def ledger_file(self, date_str: str) -> Path:
        """Get path to the ledger file for a specific date.

        Args:
            date_str: Date in YYYY-MM-DD format

        Returns:
            Path to the dated ledger JSON file
        """
        return self.root / f"{LEDGER_PREFIX}{date_str}{LEDGER_SUFFIX}"

    def existing_ledger_files(self) -> list[Path]:
        """List ledger files on disk, newest date first."""
        if not self.root.exists():
            return []
        files = [p for p in self.root.glob(f"{LEDGER_PREFIX}*{LEDGER_SUFFIX}") if ledger_date(p)]
        return sorted(files, key=lambda p: ledger_date(p) or "", reverse=True)


def ledger_date(path: Path) -> Optional[str]:
    """Return the YYYY-MM-DD date encoded in a ledger filename, or None."""
    match = _LEDGER_NAME_RE.match(path.name)
    return match.group(1) if match else None
