"""Pydantic models for the verification ledger document."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class ScheduleEntry(BaseModel):
    """Recurring event entry, identified by its ``details`` string."""

    details: str = Field(description="'<event> <day> <HHMM>' identity key")
    links: dict[str, str | None] = Field(default_factory=dict, description="Snapshot of links at creation time")

    @property
    def parts(self) -> list[str]:
        """Split details into [event, day, time]."""
        return self.details.split()


class PaidCode(BaseModel):
    """A transaction code an operator confirmed as received payment."""

    transaction_code: str


class Booking(BaseModel):
    """Time-boxed reservation with a random confirmation code."""

    event: str
    day: str
    time: str
    booking_time: datetime = Field(description="When the booking was made (timezone-aware)")
    booking_code: int = Field(ge=1000, le=9999)

    @field_validator("booking_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Hand-edited files may carry naive timestamps
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Ledger(BaseModel):
    """The day-scoped ledger document.

    Serialized in full on every save; the five collections are always
    present, even when empty.
    """

    links: dict[str, str | None] = Field(default_factory=dict)
    schedule: list[ScheduleEntry] = Field(default_factory=list)
    paid_codes: list[PaidCode] = Field(default_factory=list)
    verification_requests: list[str] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)

    def has_paid_code(self, code: str) -> bool:
        return any(entry.transaction_code == code for entry in self.paid_codes)

    def has_schedule_entry(self, details: str) -> bool:
        return any(entry.details == details for entry in self.schedule)
