"""Verification matching and booking logic on top of the ledger store.

A user's first request for a code only records it; a repeat request checks
the code against the operator-confirmed paid codes. Operator confirmation
usually lags the user's request, so the first call never matches.
"""

import json
import logging
import random
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .errors import LedgerIOError, NotifierError
from .ledger import LedgerStore
from .models.ledger import Booking
from .models.transaction import TransactionRecord
from .models.verification import (
    BulkResult,
    BulkStatus,
    GeoAttachment,
    ImageAttachment,
    MatchResult,
    Outcome,
)
from .notifier import Notifier
from .parser import extract_bulk_entry, parse_transaction
from .schedule import display_time, parse_booking_details

logger = logging.getLogger(__name__)

BOOKING_CODE_MIN = 1000
BOOKING_CODE_MAX = 9999

MATCH_LINK_NAME = "link1"

VERIFY_USAGE_TEXT = "Usage: /verify <transaction code>"
PRIVATE_ONLY_TEXT = "Payment verification works only in a private chat with the bot."
REGISTERED_TEXT = "Your verification request has been recorded. Send the same code again shortly to check it."
UNMATCHED_TEXT = "This payment has not been confirmed yet. Please wait a little or contact support."
MATCHED_TEXT = "Payment verified."
UNAVAILABLE_TEXT = "No data is available right now. Please try again later."
PAID_ADDED_TEXT = "Payment recorded; the user can now verify it."
PAID_DUPLICATE_TEXT = "This payment was already recorded."
BOOKING_REQUEST_TEXT = "Processing your booking request..."
COMPLETE_PAYMENT_TEXT = "Please complete the payment and send the confirmation to verify it."


def utf8_payload(payload: str) -> bytes:
    """Default QR renderer: the payload bytes themselves; transports render the PNG."""
    return payload.encode("utf-8")


def load_locations(path: Path) -> list[GeoAttachment]:
    """Load location hints from a JSON file of the form {"locations": [{latitude, longitude}]}.

    A missing or malformed file yields no locations.
    """
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return [GeoAttachment(**item) for item in data.get("locations", [])]
    except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
        logger.warning("Failed to load locations from %s: %s", path, e)
        return []


class VerificationMatcher:
    """Registers paid codes and verification requests and decides matches.

    Ledger I/O faults never escape: they are logged and reported as
    Outcome.UNAVAILABLE (or an empty result) so the caller keeps running.
    """

    def __init__(
        self,
        store: LedgerStore,
        notifier: Optional[Notifier] = None,
        qr_renderer: Callable[[str], bytes] = utf8_payload,
        locations: Optional[list[GeoAttachment]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.qr_renderer = qr_renderer
        self.locations = list(locations or [])
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Core operations

    def register_paid(self, code: str) -> bool:
        """Idempotently record an operator-confirmed code.

        Returns:
            True if newly added; informational only

        Raises:
            LedgerIOError: If the ledger cannot be written
        """
        added = self.store.add_paid_code(code)
        if added:
            logger.info("Paid code %s stored", code)
        else:
            logger.info("Paid code %s already exists", code)
        return added

    def request_verification(self, code: str) -> MatchResult:
        """Record or check a user's verification request.

        The first request for a code returns REGISTERED. Later requests
        return MATCHED (with link1) when the code is a paid code, otherwise
        UNMATCHED.
        """
        try:
            with self.store.lock:
                self.store.evict_expired_bookings()
                if self.store.add_verification_request(code):
                    logger.info("Verification request %s stored", code)
                    return MatchResult(outcome=Outcome.REGISTERED, code=code)

                ledger = self.store.open()
                if ledger.has_paid_code(code):
                    logger.info("Verification request %s matched a paid code", code)
                    return MatchResult(outcome=Outcome.MATCHED, code=code, link=ledger.links.get(MATCH_LINK_NAME))

                logger.info("Verification request %s has no paid code yet", code)
                return MatchResult(outcome=Outcome.UNMATCHED, code=code)
        except LedgerIOError as e:
            logger.error("Ledger unavailable while verifying %s: %s", code, e)
            return MatchResult(outcome=Outcome.UNAVAILABLE, code=code)

    def evict_expired_bookings(self, now: Optional[datetime] = None) -> int:
        try:
            return self.store.evict_expired_bookings(now)
        except LedgerIOError as e:
            logger.error("Failed to evict expired bookings: %s", e)
            return 0

    def create_booking(self, event: str, day: str, time: str) -> Optional[Booking]:
        """Create and persist a 10-minute booking with a random 4-digit code.

        Returns:
            The booking, or None if the ledger could not be written
        """
        try:
            with self.store.lock:
                self.store.evict_expired_bookings()
                booking = Booking(
                    event=event,
                    day=day,
                    time=time,
                    booking_time=self.store.clock(),
                    booking_code=self.rng.randint(BOOKING_CODE_MIN, BOOKING_CODE_MAX),
                )
                self.store.add_booking(booking)
                return booking
        except LedgerIOError as e:
            logger.error("Failed to store booking for %s: %s", event, e)
            return None

    # ------------------------------------------------------------------
    # Notifying flows

    def _notify(self, recipient: str, text: str, attachment=None) -> None:
        if self.notifier is None:
            logger.debug("No notifier configured; dropping message to %s", recipient)
            return
        self.notifier.notify(recipient, text, attachment)

    def verify_and_notify(self, recipient: str, code: Optional[str], private_chat: bool = True) -> Optional[MatchResult]:
        """Handle a /verify request end to end and notify the recipient."""
        if not private_chat:
            logger.info("Rejected verification from non-private chat %s", recipient)
            self._notify(recipient, PRIVATE_ONLY_TEXT)
            return None
        if not code:
            self._notify(recipient, VERIFY_USAGE_TEXT)
            return None

        result = self.request_verification(code)
        if result.outcome == Outcome.REGISTERED:
            self._notify(recipient, f"{code} - \n{REGISTERED_TEXT}")
        elif result.outcome == Outcome.UNMATCHED:
            self._notify(recipient, f"{code} - \n{UNMATCHED_TEXT}")
        elif result.outcome == Outcome.UNAVAILABLE:
            self._notify(recipient, UNAVAILABLE_TEXT)
        else:
            self._notify_matched(recipient, result)
        return result

    def _notify_matched(self, recipient: str, result: MatchResult) -> None:
        if self.locations:
            self._notify(recipient, "", self.rng.choice(self.locations))
        caption = f"{MATCHED_TEXT}\n\n{result.link or ''}\n\nScan this QR code to verify payment."
        image = ImageAttachment(image=self.qr_renderer(result.qr_payload or result.code), caption=caption)
        self._notify(recipient, "", image)

    def ingest_confirmation_text(
        self,
        recipient: str,
        text: str,
        private_chat: bool = True,
    ) -> Optional[TransactionRecord]:
        """Handle pasted or OCR-extracted confirmation text.

        Transaction texts go through verification with the parsed code;
        anything else is echoed back unprocessed.
        """
        record = parse_transaction(text)
        if record is None:
            logger.info("Text from %s does not contain key terms; echoing", recipient)
            self._notify(recipient, f"Extracted text reads: {text}")
            return None

        self.verify_and_notify(recipient, record.code, private_chat=private_chat)
        self._notify(recipient, f"Extracted text reads: {record}")
        return record

    def register_bulk(self, recipient: str, text: str) -> BulkResult:
        """Register the paid code found in operator-pasted confirmation text."""
        logger.info("Processing bulk paid codes")
        entry = extract_bulk_entry(text)
        if entry is None:
            return BulkResult(status=BulkStatus.NOT_FOUND)

        code = entry.transaction_code
        try:
            added = self.register_paid(code)
        except LedgerIOError as e:
            logger.error("Ledger unavailable while recording %s: %s", code, e)
            self._notify(recipient, UNAVAILABLE_TEXT)
            return BulkResult(status=BulkStatus.UNAVAILABLE, transaction_code=code)

        if added:
            self._notify(recipient, f"{code} - \n{PAID_ADDED_TEXT}")
            return BulkResult(status=BulkStatus.ADDED, transaction_code=code)
        self._notify(recipient, PAID_DUPLICATE_TEXT)
        return BulkResult(status=BulkStatus.DUPLICATE, transaction_code=code)

    def book_and_notify(self, recipient: str, event: str, day: str, time: str) -> Optional[Booking]:
        """Book an event for a recipient and send the confirmation.

        An unreachable recipient aborts the attempt before the ledger is touched.
        """
        try:
            self._notify(recipient, BOOKING_REQUEST_TEXT)
        except NotifierError as e:
            logger.warning("Failed to initiate private chat with %s: %s", recipient, e)
            return None

        booking = self.create_booking(event, day, time)
        if booking is None:
            self._notify(recipient, UNAVAILABLE_TEXT)
            return None

        minutes = int(self.store.booking_ttl.total_seconds() // 60)
        self._notify(
            recipient,
            f"The event '{event}' is scheduled for {day} at {display_time(time)}.\n"
            f"I've booked this event for you for the next {minutes} minutes with booking code "
            f"{booking.booking_code}\n{COMPLETE_PAYMENT_TEXT}",
        )
        return booking

    def book_from_detail(self, recipient: str, detail_text: str) -> Optional[Booking]:
        """Book from a displayed schedule detail ("Event: X | Day: Y | Time: Z")."""
        details = parse_booking_details(detail_text)
        return self.book_and_notify(
            recipient,
            details.get("event", ""),
            details.get("day", ""),
            details.get("time", ""),
        )
