"""Pydantic models for telever."""

from .ledger import Booking, Ledger, PaidCode, ScheduleEntry
from .transaction import BulkEntry, TransactionRecord, TransactionStatus
from .verification import (
    Attachment,
    BulkResult,
    BulkStatus,
    GeoAttachment,
    ImageAttachment,
    MatchResult,
    Outcome,
)

__all__ = [
    # Ledger document
    "Booking",
    "Ledger",
    "PaidCode",
    "ScheduleEntry",
    # Parsing
    "BulkEntry",
    "TransactionRecord",
    "TransactionStatus",
    # Verification
    "Attachment",
    "BulkResult",
    "BulkStatus",
    "GeoAttachment",
    "ImageAttachment",
    "MatchResult",
    "Outcome",
]
