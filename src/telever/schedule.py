"""Schedule entry validation, display and booking-detail parsing."""

import re
from datetime import time as dt_time
from typing import Mapping, Optional, Sequence

from .errors import InvalidScheduleInput
from .ledger import LedgerStore
from .models.ledger import ScheduleEntry

TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3])([0-5]\d)$")

_DETAIL_RE = {
    "event": re.compile(r"event:\s*(.+)", re.IGNORECASE),
    "day": re.compile(r"day:\s*(.+)", re.IGNORECASE),
    "time": re.compile(r"time:\s*(.+)", re.IGNORECASE),
}


def is_valid_time_of_day(value: str) -> bool:
    """True for four-digit 24h times between 0000 and 2359."""
    return bool(TIME_OF_DAY_RE.match(value or ""))


def build_schedule_entry(fields: Sequence[str], links: Mapping[str, Optional[str]]) -> ScheduleEntry:
    """Validate [event, day, HHMM] and build a ScheduleEntry.

    Args:
        fields: Event name, day of week and four-digit time of day
        links: Current links; a copy is stored with the entry

    Raises:
        InvalidScheduleInput: On a wrong field count or malformed time
    """
    if len(fields) != 3:
        raise InvalidScheduleInput("Invalid schedule data. Please provide all details: event, day, and time.")
    if not is_valid_time_of_day(fields[2]):
        raise InvalidScheduleInput("Invalid time format. Please provide time in four digits between 0000 and 2359.")
    return ScheduleEntry(details=" ".join(fields), links=dict(links))


def display_time(hhmm: str) -> str:
    """Format a four-digit time of day as a 12-hour clock string ("1530" -> "3:30 PM")."""
    if not is_valid_time_of_day(hhmm):
        return hhmm
    value = dt_time(int(hhmm[:2]), int(hhmm[2:]))
    return value.strftime("%I:%M %p").lstrip("0")


def format_schedule_detail(entry: ScheduleEntry) -> str:
    """Render an entry for display; parse_booking_details reads it back."""
    parts = entry.parts
    event = parts[0] if parts else ""
    day = parts[1] if len(parts) > 1 else ""
    hhmm = parts[2] if len(parts) > 2 else ""
    return f"Event: {event} | Day: {day} | Time: {display_time(hhmm)}"


def parse_booking_details(text: str) -> dict[str, str]:
    """Pull event, day and time out of a displayed schedule detail.

    Missing parts are simply absent from the result.
    """
    details: dict[str, str] = {}
    for chunk in (text or "").split("|"):
        chunk = chunk.strip()
        for key, pattern in _DETAIL_RE.items():
            match = pattern.search(chunk)
            if match and key not in details:
                details[key] = match.group(1).strip()
                break
    return details


def event_names(schedule: Sequence[ScheduleEntry]) -> list[str]:
    """Unique event names in schedule order."""
    names: list[str] = []
    for entry in schedule:
        parts = entry.parts
        if parts and parts[0] not in names:
            names.append(parts[0])
    return names


def add_schedule_entry(store: LedgerStore, fields: Sequence[str]) -> tuple[ScheduleEntry, bool]:
    """Validate fields, snapshot the current links and add the entry.

    Returns:
        The entry and whether it was newly added

    Raises:
        InvalidScheduleInput: Before any mutation, on invalid fields
    """
    with store.lock:
        entry = build_schedule_entry(fields, store.open().links)
        return entry, store.upsert_schedule_entry(entry)
