"""telever - payment-confirmation parsing and verification ledger."""

__version__ = "0.1.0"
