"""Exception types for telever."""


class TeleverError(Exception):
    """Base class for all telever errors."""


class LedgerIOError(TeleverError):
    """The ledger file could not be read or written."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class InvalidScheduleInput(TeleverError, ValueError):
    """A schedule entry had the wrong field count or a malformed time of day."""


class NotifierError(TeleverError):
    """A notification could not be delivered (e.g. the recipient is unreachable)."""

    def __init__(self, message: str, recipient: str | None = None):
        super().__init__(message)
        self.recipient = recipient
