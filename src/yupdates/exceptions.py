"""Exception hierarchy for the yupdates SDK.

All exceptions inherit from :class:`YupdatesError`, which carries a
class-level ``kind`` tag so callers can branch on the failure category
without importing every subclass.  Errors raised inside the operation
layer also record the ``operation`` that failed (``"ping"``,
``"read_items"``, ...).

Subclass hierarchy::

    YupdatesError              (kind "error")
    +-- ConfigurationError     (kind "configuration")
    +-- ValidationError        (kind "validation")
    +-- TransportError         (kind "transport")
    +-- ServiceError           (kind "service")
    +-- DeserializationError   (kind "deserialization")
"""

from __future__ import annotations

from typing import Optional


class YupdatesError(Exception):
    """Base exception for all yupdates errors.

    Args:
        message: Human-readable error description.
        operation: Name of the API operation that failed, if known.
    """

    kind: str = "error"

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ConfigurationError(YupdatesError):
    """Raised when the token or endpoint is missing or invalid, or a client is used after close."""

    kind = "configuration"


class ValidationError(YupdatesError):
    """Raised when caller-supplied parameters fail local validation before any network call."""

    kind = "validation"


TRANSPORT_REASONS = ("timeout", "connect", "tls", "network")


class TransportError(YupdatesError):
    """Raised on network-level failures (timeout, refused connection, TLS handshake).

    Args:
        message: Human-readable error description.
        reason: One of ``"timeout"``, ``"connect"``, ``"tls"`` or ``"network"``.
        operation: Name of the API operation that failed, if known.
    """

    kind = "transport"

    def __init__(
        self,
        message: str,
        reason: str = "network",
        operation: Optional[str] = None,
    ):
        super().__init__(message, operation=operation)
        if reason not in TRANSPORT_REASONS:
            raise ValueError(f"unknown transport failure reason: {reason!r}")
        self.reason = reason

    @property
    def is_timeout(self) -> bool:
        """Whether the transport timeout elapsed (as opposed to a refused or broken connection)."""
        return self.reason == "timeout"


class ServiceError(YupdatesError):
    """Raised when the API responds with a non-success HTTP status.

    ``error`` and ``error_detail`` come from the service's JSON error body
    when it could be parsed; ``text`` always holds the raw response body.

    Args:
        status: The HTTP status code.
        message: Combined service message (``error | error_detail``), may be empty.
        code: The ``code`` field of the error body, if present.
        error: The ``error`` field of the error body, if present.
        error_detail: The ``error_detail`` field of the error body, if present.
        text: The raw response body.
        operation: Name of the API operation that failed, if known.
    """

    kind = "service"

    def __init__(
        self,
        status: int,
        message: str = "",
        code: Optional[int] = None,
        error: Optional[str] = None,
        error_detail: Optional[str] = None,
        text: str = "",
        operation: Optional[str] = None,
    ):
        summary = f"HTTP {status}: {message}" if message else f"HTTP {status}"
        super().__init__(summary, operation=operation)
        self.status = status
        self.service_message = message
        self.code = code
        self.error = error
        self.error_detail = error_detail
        self.text = text

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429


class DeserializationError(YupdatesError):
    """Raised when a successful response body does not match the expected schema."""

    kind = "deserialization"
