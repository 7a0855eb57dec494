"""Audit-layer exceptions. Typed, no HTTP. Never propagated to audited requests."""


class AuditError(Exception):
    """Base for all audit-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ParseError(AuditError):
    """Raised when a request or response body cannot be read as structured data."""


class StorageError(AuditError):
    """Raised by storage adapters when an audit record cannot be persisted or read."""
