"""Exception hierarchy for scan failures.

Each exception carries a stable ``code`` so the API layer and the logs
can classify failures without parsing messages.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base exception for all scan failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class TargetNotFoundError(ScanError):
    """The requested politician or party does not exist."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("TARGET_NOT_FOUND", message, details)


class PersistenceError(ScanError):
    """Writing the target update, ledger row or log entry failed."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("PERSISTENCE_FAILED", message, details)
