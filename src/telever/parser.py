"""Parsing of payment-confirmation text into structured records.

Two grammars are supported:

- receipt text (pasted or OCR-extracted from a screenshot), which becomes a
  TransactionRecord when it contains the token ``Successful``;
- operator-pasted SMS confirmations ("... ETB 500.00 ... Your transaction
  number is BCL3GHPES3. ..."), from which only the transaction code is kept.

Nothing here raises on malformed input; missing fields fall back to defaults.
"""

import logging
import re
from typing import Iterable, Optional

from .models.transaction import BulkEntry, TransactionRecord, TransactionStatus

logger = logging.getLogger(__name__)

SUCCESS_TOKEN = "Successful"
DEFAULT_CURRENCY = "ETB"
CURRENCIES = ("ETB", "USD", "EUR", "RUB", "GBP", "CAD", "INR", "KRW", "BRL", "ZAR")

CURRENCY_RE = re.compile(r"\((?:" + "|".join(CURRENCIES) + r")\)")
AMOUNT_RE = re.compile(r"\d+\.\d{2}$")
DATE_RE = re.compile(r"\d{4}/\d{2}/\d{2}")
TIME_RE = re.compile(r"\d{2}:\d{2}:\d{2}")
# Substring match on purpose: any token containing 10 uppercase letters/digits
# qualifies, so long references or phone numbers can be picked up first.
CODE_RE = re.compile(r"[A-Z0-9]{10}")

SIGN_MARKERS = ("-", "—")


def _first_match(tokens: Iterable[str], pattern: re.Pattern) -> Optional[str]:
    for token in tokens:
        if pattern.search(token):
            return token
    return None


def is_transaction_text(text: str) -> bool:
    """True when the text contains ``Successful`` as a whitespace-delimited word."""
    return SUCCESS_TOKEN in (text or "").split()


def extract_currency(tokens: list[str]) -> str:
    """Return the first ``(CUR)`` token with its parentheses removed.

    The whole token is kept, so ``Amount(USD)`` yields ``AmountUSD``.
    """
    for token in tokens:
        if CURRENCY_RE.search(token):
            return token.replace("(", "").replace(")", "")
    return DEFAULT_CURRENCY


def extract_amount(tokens: list[str]) -> str:
    token = _first_match(tokens, AMOUNT_RE)
    if token is None:
        return ""
    for marker in SIGN_MARKERS:
        token = token.replace(marker, "")
    return token


def parse_transaction(text: str) -> Optional[TransactionRecord]:
    """Parse receipt text into a TransactionRecord.

    Fields are extracted independently from the whitespace-split tokens;
    the first matching token wins for each field.

    Args:
        text: Free text, typed or OCR output

    Returns:
        TransactionRecord, or None when the text is not a successful
        transaction (callers echo such text back unprocessed)
    """
    tokens = (text or "").split()
    if not is_transaction_text(text):
        logger.debug("Text has no '%s' token; not a transaction", SUCCESS_TOKEN)
        return None

    record = TransactionRecord(
        status=TransactionStatus.SUCCESSFUL,
        amount=extract_amount(tokens),
        currency=extract_currency(tokens),
        date=_first_match(tokens, DATE_RE) or "",
        time=_first_match(tokens, TIME_RE) or "",
        code=_first_match(tokens, CODE_RE) or "",
    )
    logger.info("Parsed transaction record: %s", record)
    return record


def extract_bulk_entry(text: str) -> Optional[BulkEntry]:
    """Extract the amount and transaction code from operator-pasted text.

    The token ``ETB`` records the two following tokens as amount data. The
    pair ``transaction number`` (or ``trans number``, first word matched
    case-insensitively) ends the scan; the code is the third token after
    ``transaction`` with a trailing period removed.

    Returns:
        BulkEntry, or None when either the amount or the code is missing
    """
    tokens = (text or "").split()
    amount: Optional[list[str]] = None
    code: Optional[str] = None

    for index, token in enumerate(tokens):
        if token == "ETB":
            amount = tokens[index + 1:index + 3]
        elif token.lower() in ("transaction", "trans") and index + 1 < len(tokens) and tokens[index + 1] == "number":
            if index + 3 < len(tokens):
                code = tokens[index + 3].removesuffix(".")
            break

    if not amount or not code:
        logger.error("Failed to extract amount data or transaction code from the provided text.")
        return None

    return BulkEntry(amount=amount, transaction_code=code)
