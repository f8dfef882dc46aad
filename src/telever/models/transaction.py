"""Pydantic models for parsed payment confirmations."""

from enum import Enum

from pydantic import BaseModel, Field


class TransactionStatus(str, Enum):
    """Status recognized in a confirmation text."""

    SUCCESSFUL = "Successful"
    OTHER = "Other"


class TransactionRecord(BaseModel):
    """Structured view of a payment-confirmation text.

    Ephemeral: produced by the parser and consumed immediately. Only ``code``
    is ever persisted (into the ledger's paid codes).
    """

    status: TransactionStatus = Field(description="Confirmation status")
    amount: str = Field(default="", description="Decimal amount with two fractional digits, sign stripped")
    currency: str = Field(default="ETB", description="ISO-4217-like currency code")
    date: str = Field(default="", description="Date token as found (YYYY/MM/DD)")
    time: str = Field(default="", description="Time token as found (HH:MM:SS)")
    code: str = Field(default="", description="Transaction code token")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return (
            f"status={self.status.value} amount={self.amount} currency={self.currency} "
            f"date={self.date} time={self.time} code={self.code}"
        )


class BulkEntry(BaseModel):
    """Amount and transaction code pulled from operator-pasted confirmation text."""

    amount: list[str] = Field(description="The two tokens following the ETB marker")
    transaction_code: str

    model_config = {"frozen": True}
