"""Tests for verification matching, bulk entry and bookings."""

import json
import random
from datetime import timedelta

from telever.errors import LedgerIOError
from telever.matcher import (
    PAID_DUPLICATE_TEXT,
    PRIVATE_ONLY_TEXT,
    UNAVAILABLE_TEXT,
    VERIFY_USAGE_TEXT,
    VerificationMatcher,
    load_locations,
)
from telever.models.verification import (
    BulkStatus,
    GeoAttachment,
    ImageAttachment,
    Outcome,
)

CODE = "ABCDEFGHJ1"


def test_verification_two_step_contract(matcher):
    """Test Registered, then Unmatched, then Matched after the code is paid."""
    assert matcher.request_verification(CODE).outcome == Outcome.REGISTERED
    assert matcher.request_verification(CODE).outcome == Outcome.UNMATCHED

    matcher.register_paid(CODE)
    result = matcher.request_verification(CODE)

    assert result.outcome == Outcome.MATCHED
    assert result.qr_payload == CODE


def test_first_request_never_matches_even_if_paid(matcher):
    """Test that a first request only registers, even for an already paid code."""
    matcher.register_paid(CODE)

    assert matcher.request_verification(CODE).outcome == Outcome.REGISTERED
    assert matcher.request_verification(CODE).outcome == Outcome.MATCHED


def test_repeat_request_is_not_duplicated(matcher, store):
    for _ in range(3):
        matcher.request_verification(CODE)

    assert store.open().verification_requests == [CODE]


def test_matched_result_carries_link1(matcher, store):
    store.set_link("link1", "t.me/achannel")
    store.set_link("link2", "t.me/other")
    matcher.register_paid(CODE)
    matcher.request_verification(CODE)

    result = matcher.request_verification(CODE)

    assert result.link == "t.me/achannel"


def test_register_paid_is_idempotent(matcher, store):
    assert matcher.register_paid(CODE) is True
    assert matcher.register_paid(CODE) is False

    assert [p.transaction_code for p in store.open().paid_codes] == [CODE]


def test_request_verification_evicts_expired_bookings(matcher, store, clock):
    matcher.create_booking("Dr.Kiros", "Friday", "1530")
    clock.advance(minutes=10, seconds=1)

    matcher.request_verification(CODE)

    assert store.open().bookings == []


def test_ledger_fault_degrades_to_unavailable(matcher, monkeypatch):
    def fail(code):
        raise LedgerIOError("disk full")

    monkeypatch.setattr(matcher.store, "add_verification_request", fail)

    assert matcher.request_verification(CODE).outcome == Outcome.UNAVAILABLE


def test_undecodable_ledger_still_registers(matcher, data_paths):
    (data_paths.root / "ledger-2026-10-19.json").write_bytes(b"\xff\xfe garbage")

    assert matcher.request_verification(CODE).outcome == Outcome.REGISTERED
    assert (data_paths.root / "ledger-2026-10-19.json.corrupt").exists()


def test_create_booking_code_and_timestamp(matcher, store, clock):
    booking = matcher.create_booking("Dr.Kiros", "Friday", "1530")

    assert booking is not None
    assert 1000 <= booking.booking_code <= 9999
    assert booking.booking_time == clock()
    assert store.open().bookings == [booking]


def test_booking_expires_after_ten_minutes(matcher, store, clock):
    """Test presence at T+9m59s and eviction at T+10m01s."""
    created = clock()
    matcher.create_booking("Dr.Kiros", "Friday", "1530")

    clock.now = created + timedelta(minutes=9, seconds=59)
    matcher.evict_expired_bookings()
    assert len(store.open().bookings) == 1

    clock.now = created + timedelta(minutes=10, seconds=1)
    matcher.evict_expired_bookings()
    assert store.open().bookings == []


def test_verify_and_notify_messages(matcher, notifier, store):
    matcher.verify_and_notify("alice", CODE)
    matcher.verify_and_notify("alice", CODE)

    texts = notifier.texts("alice")
    assert texts[0].startswith(f"{CODE} - ")
    assert "recorded" in texts[0]
    assert "not been confirmed" in texts[1]


def test_verify_and_notify_matched_sends_location_and_qr(store, notifier, clock):
    store.set_link("link1", "t.me/achannel")
    location = GeoAttachment(latitude=9.03, longitude=38.74)
    matcher = VerificationMatcher(
        store,
        notifier=notifier,
        qr_renderer=lambda payload: b"PNG:" + payload.encode(),
        locations=[location],
        rng=random.Random(1),
    )
    matcher.register_paid(CODE)
    matcher.request_verification(CODE)

    result = matcher.verify_and_notify("alice", CODE)

    assert result.outcome == Outcome.MATCHED
    geo, image = notifier.sent[-2:]
    assert geo.attachment == location
    assert isinstance(image.attachment, ImageAttachment)
    assert image.attachment.image == b"PNG:" + CODE.encode()
    assert "t.me/achannel" in image.attachment.caption


def test_verify_and_notify_without_locations_sends_only_qr(matcher, notifier):
    matcher.register_paid(CODE)
    matcher.request_verification(CODE)

    matcher.verify_and_notify("alice", CODE)

    assert len(notifier.sent) == 1
    assert notifier.sent[0].attachment.image == CODE.encode("utf-8")


def test_verify_and_notify_rejects_group_chat(matcher, notifier, store):
    result = matcher.verify_and_notify("group-1", CODE, private_chat=False)

    assert result is None
    assert notifier.texts() == [PRIVATE_ONLY_TEXT]
    assert store.open().verification_requests == []


def test_verify_and_notify_requires_code(matcher, notifier):
    assert matcher.verify_and_notify("alice", "") is None
    assert notifier.texts() == [VERIFY_USAGE_TEXT]


def test_ingest_transaction_text_registers_code(matcher, notifier, store):
    text = "Transfer Successful -500.00 (ETB) 2026/10/19 09:41:07 BCL3GHPES3"

    record = matcher.ingest_confirmation_text("alice", text)

    assert record.code == "BCL3GHPES3"
    assert store.open().verification_requests == ["BCL3GHPES3"]
    assert notifier.texts()[-1].startswith("Extracted text reads: status=Successful amount=500.00")


def test_ingest_non_transaction_text_is_echoed(matcher, notifier, store):
    record = matcher.ingest_confirmation_text("alice", "hello there")

    assert record is None
    assert notifier.texts() == ["Extracted text reads: hello there"]
    assert store.open().verification_requests == []


def test_register_bulk_adds_then_reports_duplicate(matcher, notifier, store):
    text = "You have transferred ETB 500.00 to X on 19/10/2026. Your transaction number is BCL3GHPES3. Thanks"

    first = matcher.register_bulk("operator", text)
    second = matcher.register_bulk("operator", text)

    assert first.status == BulkStatus.ADDED
    assert first.transaction_code == "BCL3GHPES3"
    assert second.status == BulkStatus.DUPLICATE
    assert notifier.texts()[-1] == PAID_DUPLICATE_TEXT
    assert [p.transaction_code for p in store.open().paid_codes] == ["BCL3GHPES3"]


def test_register_bulk_without_pattern_is_noop(matcher, notifier, store, data_paths):
    """Test that unparseable bulk text leaves the ledger untouched."""
    result = matcher.register_bulk("operator", "nothing useful here")

    assert result.status == BulkStatus.NOT_FOUND
    assert notifier.sent == []
    assert list(data_paths.root.iterdir()) == []


def test_register_bulk_ledger_fault(matcher, notifier, monkeypatch):
    def fail(code):
        raise LedgerIOError("read-only")

    monkeypatch.setattr(matcher.store, "add_paid_code", fail)

    result = matcher.register_bulk("operator", "ETB 1.00 x transaction number is BCL3GHPES3.")

    assert result.status == BulkStatus.UNAVAILABLE
    assert notifier.texts() == [UNAVAILABLE_TEXT]


def test_book_and_notify_sends_code(matcher, notifier, store):
    booking = matcher.book_and_notify("alice", "Dr.Kiros", "Friday", "1530")

    assert booking is not None
    confirmation = notifier.texts("alice")[-1]
    assert "'Dr.Kiros' is scheduled for Friday at 3:30 PM" in confirmation
    assert str(booking.booking_code) in confirmation
    assert "10 minutes" in confirmation
    assert len(store.open().bookings) == 1


def test_book_unreachable_recipient_leaves_ledger_untouched(matcher, notifier, data_paths):
    """Test that an unreachable recipient aborts the booking before any write."""
    notifier.unreachable.add("ghost")

    assert matcher.book_and_notify("ghost", "Dr.Kiros", "Friday", "1530") is None
    assert list(data_paths.root.iterdir()) == []


def test_book_from_displayed_detail(matcher, store):
    booking = matcher.book_from_detail("alice", "Event: Dr.Hana | Day: Sunday | Time: 6:00 PM")

    assert booking.event == "Dr.Hana"
    assert booking.day == "Sunday"
    assert booking.time == "6:00 PM"


def test_load_locations(tmp_path):
    path = tmp_path / "locations.json"
    path.write_text(json.dumps({"locations": [{"latitude": 9.0, "longitude": 38.7}]}))

    assert load_locations(path) == [GeoAttachment(latitude=9.0, longitude=38.7)]
    assert load_locations(tmp_path / "missing.json") == []

    path.write_text("[1, 2]")
    assert load_locations(path) == []
