"""Day-scoped verification ledger stored as a single JSON document.

The ledger lives at <data_dir>/ledger-YYYY-MM-DD.json. Every operation reads
the whole document and every mutation writes it back in full. When the file
on disk carries an older date it is renamed forward to today's name before
use, so there is one logical ledger carried from day to day.
"""

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, TypeVar
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from .config import TeleverConfig
from .errors import InvalidScheduleInput, LedgerIOError
from .models.ledger import Booking, Ledger, PaidCode, ScheduleEntry
from .paths import DataPaths

logger = logging.getLogger(__name__)

BOOKING_TTL = timedelta(minutes=10)

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerStore:
    """Owns the on-disk ledger: load, mutate, persist, rotate, reset.

    All mutations and the rotation rename run under a single re-entrant lock,
    so callers on several threads cannot lose each other's updates.
    """

    def __init__(
        self,
        paths: DataPaths,
        clock: Optional[Callable[[], datetime]] = None,
        booking_ttl: timedelta = BOOKING_TTL,
    ):
        """Initialize the store.

        Args:
            paths: Data directory layout
            clock: Returns the current timezone-aware time; its date picks
                the ledger file. Defaults to UTC now.
            booking_ttl: Age after which bookings are evicted
        """
        self.paths = paths
        self.clock = clock or _utc_now
        self.booking_ttl = booking_ttl
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: TeleverConfig, clock: Optional[Callable[[], datetime]] = None) -> "LedgerStore":
        """Create a store from config, dating ledgers in the configured timezone."""
        if clock is None:
            tz = ZoneInfo(config.timezone)

            def clock() -> datetime:
                return datetime.now(tz)

        return cls(
            DataPaths.from_config(config),
            clock=clock,
            booking_ttl=timedelta(minutes=config.booking_ttl_minutes),
        )

    @property
    def lock(self) -> threading.RLock:
        """Lock serializing ledger access; hold it to group several operations."""
        return self._lock

    def today(self) -> str:
        return self.clock().strftime("%Y-%m-%d")

    def current_path(self) -> Path:
        """Path of the ledger file for the current date."""
        return self.paths.ledger_file(self.today())

    # ------------------------------------------------------------------
    # Rotation

    def rotate(self) -> Optional[Path]:
        """Rename a stale-dated ledger file forward to today's name.

        Returns:
            The new path if a file was renamed, otherwise None
        """
        with self._lock:
            return self._rotate_into(self.current_path())

    def _rotate_into(self, target: Path) -> Optional[Path]:
        stale = [p for p in self.paths.existing_ledger_files() if p != target]
        if not stale:
            return None

        if target.exists():
            # Renaming would overwrite today's data
            logger.warning(
                "Ledger %s already exists; leaving stale file(s) in place: %s",
                target.name,
                ", ".join(p.name for p in stale),
            )
            return None

        source = stale[0]
        if len(stale) > 1:
            logger.warning(
                "Found %d stale ledger files; carrying forward newest %s",
                len(stale),
                source.name,
            )

        try:
            source.rename(target)
        except FileNotFoundError:
            logger.warning("Ledger %s disappeared before rotation; skipping rename", source)
            return None
        except OSError as e:
            raise LedgerIOError(f"Failed to rotate ledger {source} to {target}: {e}", source) from e

        logger.info("Rotated ledger %s -> %s", source.name, target.name)
        return target

    # ------------------------------------------------------------------
    # Load / save

    def open(self) -> Ledger:
        """Load today's ledger, rotating a stale file forward first.

        A missing file yields an empty ledger. A malformed or unreadable file
        is moved aside (``.corrupt`` suffix) and an empty ledger is substituted.
        """
        with self._lock:
            path = self.current_path()
            self._rotate_into(path)
            return self._load(path)

    def _load(self, path: Path, strict: bool = False) -> Ledger:
        """Read ``path``; with ``strict``, refuse to hand back an empty ledger
        while a bad file that could not be moved aside is still in place."""
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            logger.debug("No ledger at %s; starting empty", path)
            return Ledger()
        except OSError as e:
            self._recover(path, e, strict)
            return Ledger()

        if not raw.strip():
            logger.warning("Ledger %s is empty; using empty ledger", path)
            return Ledger()

        try:
            return Ledger.model_validate(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            self._recover(path, e, strict)
            return Ledger()

    def _recover(self, path: Path, error: Exception, strict: bool) -> None:
        if not self._quarantine(path, error) and strict:
            raise LedgerIOError(f"Ledger {path} is unreadable and could not be moved aside: {error}", path) from error

    def _quarantine(self, path: Path, error: Exception) -> bool:
        corrupt = path.with_name(path.name + ".corrupt")
        if corrupt.exists():
            stamp = self.clock().strftime("%H%M%S")
            corrupt = path.with_name(f"{path.name}.{stamp}.corrupt")
        logger.error("Bad ledger %s (%s); moving to %s", path, error, corrupt.name)
        try:
            path.rename(corrupt)
        except OSError as e:
            logger.error("Failed to move bad ledger %s aside: %s", path, e)
            return False
        return True

    def save(self, ledger: Ledger) -> Path:
        """Serialize the full ledger and overwrite today's file.

        Raises:
            LedgerIOError: If the file cannot be written
        """
        with self._lock:
            return self._write(ledger, self.current_path())

    def _write(self, ledger: Ledger, path: Path) -> Path:
        data = ledger.model_dump(mode="json")
        temp_file = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            temp_file.replace(path)
        except OSError as e:
            logger.warning("Failed to write ledger %s: %s", path, e)
            try:
                temp_file.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove temp file %s", temp_file)
            raise LedgerIOError(f"Failed to write ledger {path}: {e}", path) from e

        logger.debug("Saved ledger to %s", path)
        return path

    def _mutate(self, change: Callable[[Ledger], tuple[T, bool]]) -> T:
        """Open, apply ``change`` in memory, save when it reports a change.

        Raises:
            LedgerIOError: If a bad ledger file could not be moved aside, so
                saving would overwrite it
        """
        with self._lock:
            path = self.current_path()
            self._rotate_into(path)
            ledger = self._load(path, strict=True)
            result, changed = change(ledger)
            if changed:
                self._write(ledger, path)
            return result

    def reset(self) -> bool:
        """Delete the ledger file(s) entirely.

        Returns:
            True if any file was deleted
        """
        with self._lock:
            files = self.paths.existing_ledger_files()
            for path in files:
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise LedgerIOError(f"Failed to delete ledger {path}: {e}", path) from e
                logger.info("Deleted ledger %s", path)
            return bool(files)

    # ------------------------------------------------------------------
    # Mutations

    def set_link(self, name: str, url: str) -> None:
        def change(ledger: Ledger):
            ledger.links[name] = url
            return None, True

        self._mutate(change)
        logger.info("Link %s set to %s", name, url)

    def upsert_schedule_entry(self, entry: ScheduleEntry) -> bool:
        """Add a schedule entry unless one with the same details exists.

        Returns:
            True if the entry was added, False if it already existed
        """
        def change(ledger: Ledger):
            if ledger.has_schedule_entry(entry.details):
                return False, False
            ledger.schedule.append(entry)
            return True, True

        added = self._mutate(change)
        if added:
            logger.info("Schedule entry added: %s", entry.details)
        else:
            logger.info("Schedule entry already exists: %s", entry.details)
        return added

    def remove_schedule_entries(self, term: str) -> int:
        """Remove entries whose details contain ``term`` (case-insensitive).

        Returns:
            Number of entries removed

        Raises:
            InvalidScheduleInput: If the term is blank
        """
        needle = (term or "").strip().lower()
        if not needle:
            raise InvalidScheduleInput("Removal term must not be empty")

        def change(ledger: Ledger):
            kept = [e for e in ledger.schedule if needle not in e.details.lower()]
            removed = len(ledger.schedule) - len(kept)
            ledger.schedule = kept
            return removed, removed > 0

        removed = self._mutate(change)
        logger.info("Removed %d schedule entr%s matching '%s'", removed, "y" if removed == 1 else "ies", needle)
        return removed

    def add_paid_code(self, code: str) -> bool:
        """Idempotently record a paid transaction code.

        Returns:
            True if newly added, False if already present
        """
        def change(ledger: Ledger):
            if ledger.has_paid_code(code):
                return False, False
            ledger.paid_codes.append(PaidCode(transaction_code=code))
            return True, True

        return self._mutate(change)

    def add_verification_request(self, code: str) -> bool:
        """Idempotently record a verification request.

        Returns:
            True if newly added, False if already present
        """
        def change(ledger: Ledger):
            if code in ledger.verification_requests:
                return False, False
            ledger.verification_requests.append(code)
            return True, True

        return self._mutate(change)

    def add_booking(self, booking: Booking) -> None:
        def change(ledger: Ledger):
            ledger.bookings.append(booking)
            return None, True

        self._mutate(change)
        logger.info("Booking %s added for %s", booking.booking_code, booking.event)

    def evict_expired_bookings(self, now: Optional[datetime] = None) -> int:
        """Drop bookings older than the TTL and persist the purge.

        A naive ``now`` is taken as UTC, like stored booking times.

        Returns:
            Number of bookings evicted
        """
        now = now or self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        def change(ledger: Ledger):
            kept = [b for b in ledger.bookings if now - b.booking_time <= self.booking_ttl]
            evicted = len(ledger.bookings) - len(kept)
            ledger.bookings = kept
            return evicted, evicted > 0

        evicted = self._mutate(change)
        if evicted:
            logger.info("Evicted %d expired booking(s)", evicted)
        return evicted

    def list_bookings(self, now: Optional[datetime] = None) -> list[Booking]:
        """Read bookings, evicting expired ones first."""
        with self._lock:
            self.evict_expired_bookings(now)
            return list(self.open().bookings)


def format_export(ledger: Ledger) -> str:
    """Render every ledger collection as an indexed text listing."""
    lines: list[str] = []
    for key, value in ledger.model_dump(mode="json").items():
        lines.append(f"{key}:")
        if isinstance(value, list):
            for index, item in enumerate(value, 1):
                lines.append(f"  {index}. {item}")
        elif isinstance(value, dict):
            for name, item in value.items():
                lines.append(f"  {name}: {item}")
        else:
            lines.append(f"  {value}")
    return "\n".join(lines)
