"""Pydantic models for verification outcomes and notification attachments."""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class Outcome(str, Enum):
    """Result of a single verification request."""

    REGISTERED = "registered"
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    UNAVAILABLE = "unavailable"


class MatchResult(BaseModel):
    """Outcome of request_verification for one code."""

    outcome: Outcome
    code: str
    link: Optional[str] = Field(default=None, description="Configured link1, set only when matched")

    model_config = {"frozen": True}

    @property
    def qr_payload(self) -> Optional[str]:
        """Payload for the QR artifact: the code itself, only for matched results."""
        return self.code if self.outcome == Outcome.MATCHED else None


class BulkStatus(str, Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class BulkResult(BaseModel):
    status: BulkStatus
    transaction_code: Optional[str] = None

    model_config = {"frozen": True}


class ImageAttachment(BaseModel):
    """Image bytes plus a caption (used for the QR artifact)."""

    image: bytes
    caption: str = ""

    model_config = {"frozen": True}


class GeoAttachment(BaseModel):
    """Geo coordinates sent as a location hint."""

    latitude: float
    longitude: float

    model_config = {"frozen": True}


Attachment = Union[ImageAttachment, GeoAttachment]
