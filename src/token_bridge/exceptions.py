"""Exception hierarchy for the token bridge lifecycle manager."""

from typing import Any


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(BridgeError):
    """Raised when providers or settings are wired to the wrong layer."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.setting = setting


class ValidationError(BridgeError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class NetworkError(BridgeError):
    """Raised when network/connection issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint


class EstimationError(BridgeError):
    """Raised when an estimate collaborator returns an unusable value."""


class MessageLookupError(BridgeError):
    """Raised when a receipt does not yield exactly one cross-layer message."""

    def __init__(
        self,
        message: str,
        tx_hash: str | None = None,
        found: int = 0,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.tx_hash = tx_hash
        self.found = found


class NotConfirmedError(BridgeError):
    """Raised when finalization is attempted before the dispute window has passed."""

    def __init__(self, observed: Any, required: Any, details: dict | None = None):
        super().__init__(
            f"Message is not confirmed, status is {getattr(observed, 'name', observed)} "
            f"when it should be {getattr(required, 'name', required)}. "
            "Has the dispute period passed?",
            details,
        )
        self.observed = observed
        self.required = required


class AlreadyExecutedError(BridgeError):
    """Raised when an outbound message has already been executed on L1."""


class UnexpectedStatusError(BridgeError):
    """Raised when a message reports a status the caller cannot act on."""

    def __init__(self, message: str, status: Any, details: dict | None = None):
        super().__init__(message, details)
        self.status = status


class FinalizationTimeout(BridgeError):
    """Raised when a bounded wait for confirmation runs out of time."""

    def __init__(self, message: str, waited: float, last_status: Any = None):
        super().__init__(message, {"waited": waited, "last_status": last_status})
        self.waited = waited
        self.last_status = last_status


class TransactionError(BridgeError):
    """Raised when a submitted transaction reverts or cannot be sent."""

    def __init__(
        self,
        message: str,
        action: str | None = None,
        tx_hash: str | None = None,
        reason: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.action = action
        self.tx_hash = tx_hash
        self.reason = reason
