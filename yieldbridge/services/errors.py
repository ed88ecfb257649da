"""Shared exception hierarchy for yieldbridge services."""


class YieldBridgeError(Exception):
    """Base exception for all service errors."""


# ── Orders ────────────────────────────────────────────────────────────────────


class OrderError(YieldBridgeError):
    """Base exception for order building and encoding."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.fields: list[str] = list(fields or [])


class ValidationError(OrderError):
    """Order request is missing fields or carries malformed values."""


class SchemaViolation(OrderError):
    """Encoder was handed a value that does not fit its ABI slot."""


# ── Chain ─────────────────────────────────────────────────────────────────────


class ChainReaderError(YieldBridgeError):
    """Base exception for chain reader errors."""


class ReadUnavailable(ChainReaderError):
    """Endpoint unreachable, contract missing the interface, or a call reverted."""


# ── Store ─────────────────────────────────────────────────────────────────────


class StoreError(YieldBridgeError):
    """Persistence failure."""
