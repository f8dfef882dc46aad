"""Tests for confirmation-text parsing."""

from telever.models.transaction import TransactionStatus
from telever.parser import (
    extract_bulk_entry,
    is_transaction_text,
    parse_transaction,
)

RECEIPT_TEXT = """
telebirr
Transfer Successful
-500.00 (ETB)
Transaction Time 2026/10/19 09:41:07
Transaction Number BCL3GHPES3
"""

SMS_SENT = """/ver Dear Abebe
You have transferred ETB 500.00 to Kebede(0911000000) on 19/10/2026. Your transaction
number is BCL3GHPES3. The service fee is ETB 0.02. Your current E-Money Account
balance is ETB 4,333.02. To download your payment information please click this
link: https://transactioninfo.ethiotelecom.et/receipt/BCL3GHPES3
"""

SMS_RECEIVED = """/ver Dear Abebe
You have received ETB 500.00 from Kebede(0911000000) on 19/10/2026. Your trans
number is BCL0H88HN9. Your current E-money Account balance is ETB 1,244.99. Thank you
for using telebirr Ethio telecom
"""


def test_parse_receipt_extracts_all_fields():
    """Test that every field is extracted from a typical receipt."""
    record = parse_transaction(RECEIPT_TEXT)

    assert record is not None
    assert record.status == TransactionStatus.SUCCESSFUL
    assert record.amount == "500.00"
    assert record.currency == "ETB"
    assert record.date == "2026/10/19"
    assert record.time == "09:41:07"
    assert record.code == "BCL3GHPES3"


def test_parse_requires_successful_token():
    """Test that text without a standalone 'Successful' word is not a transaction."""
    assert parse_transaction("Transfer failed 500.00 (ETB) BCL3GHPES3") is None
    assert parse_transaction("Unsuccessful 500.00 BCL3GHPES3") is None
    assert parse_transaction("") is None
    assert not is_transaction_text("TransferSuccessful")
    assert is_transaction_text("Transfer Successful")


def test_parse_currency_defaults_to_etb():
    record = parse_transaction("Successful 12.50 ABCDEFGHJ1")

    assert record is not None
    assert record.currency == "ETB"


def test_parse_currency_from_parenthesized_token():
    record = parse_transaction("Successful (USD) 12.50")

    assert record is not None
    assert record.currency == "USD"


def test_parse_currency_keeps_rest_of_token():
    """Test that only the parentheses are removed from the currency token."""
    record = parse_transaction("Successful Amount(USD) 12.50")

    assert record is not None
    assert record.currency == "AmountUSD"


def test_parse_unknown_currency_ignored():
    record = parse_transaction("Successful (XYZ) 12.50")

    assert record is not None
    assert record.currency == "ETB"


def test_parse_amount_strips_sign_markers():
    """Test that minus signs and em-dashes are stripped from the amount."""
    assert parse_transaction("Successful -75.25").amount == "75.25"
    assert parse_transaction("Successful —75.25").amount == "75.25"


def test_parse_amount_requires_two_decimals():
    record = parse_transaction("Successful 75.5 100")

    assert record is not None
    assert record.amount == ""


def test_parse_first_match_wins():
    record = parse_transaction("Successful 10.00 20.00 AAAAAAAAA1 BBBBBBBBB2")

    assert record.amount == "10.00"
    assert record.code == "AAAAAAAAA1"


def test_parse_missing_fields_default_empty():
    """Test that absent fields fall back to defaults instead of raising."""
    record = parse_transaction("Successful")

    assert record is not None
    assert record.amount == ""
    assert record.date == ""
    assert record.time == ""
    assert record.code == ""


def test_parse_code_is_substring_match():
    """Test that longer alphanumeric tokens still match the code pattern."""
    record = parse_transaction("Successful REF12345678901")

    assert record.code == "REF12345678901"


def test_bulk_entry_from_sent_message():
    entry = extract_bulk_entry(SMS_SENT)

    assert entry is not None
    assert entry.transaction_code == "BCL3GHPES3"
    assert entry.amount == ["500.00", "to"]


def test_bulk_entry_accepts_trans_abbreviation():
    entry = extract_bulk_entry(SMS_RECEIVED)

    assert entry is not None
    assert entry.transaction_code == "BCL0H88HN9"


def test_bulk_entry_case_insensitive_marker():
    entry = extract_bulk_entry("ETB 10.00 x TRANSACTION number is CODE123456.")

    assert entry is not None
    assert entry.transaction_code == "CODE123456"


def test_bulk_entry_requires_amount():
    """Test that a missing ETB amount makes extraction fail."""
    assert extract_bulk_entry("Your transaction number is BCL3GHPES3.") is None


def test_bulk_entry_requires_code():
    assert extract_bulk_entry("You have transferred ETB 500.00 to someone.") is None
    assert extract_bulk_entry("ETB 500.00 transaction number") is None
    assert extract_bulk_entry("") is None
