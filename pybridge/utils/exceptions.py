"""
Exception hierarchy and error formatting for pybridge.

Provides:
- Bridge exception classes with error codes
- Error categorization (transport-fatal, protocol, request-level)
- Safe error message formatting (no sensitive data leak)
"""

from __future__ import annotations

import re
import traceback
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    FATAL = "fatal"
    PROTOCOL = "protocol"
    RECOVERABLE = "recoverable"
    NOT_FOUND = "not_found"


class BridgeError(Exception):
    """Base exception for all pybridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class TransportError(BridgeError):
    """Control channel could not be opened or failed while open."""

    def __init__(self, message: str, url: str | None = None, code: str = "TRANSPORT_ERROR"):
        details = {"url": url} if url else {}
        super().__init__(message, code=code, category=ErrorCategory.FATAL, details=details)


class ChannelClosedError(TransportError):
    """Peer closed the control channel."""

    def __init__(self, message: str = "Server closed the connection", url: str | None = None):
        super().__init__(message, url=url, code="CHANNEL_CLOSED")


class ProtocolError(BridgeError):
    """Frame was well-transported but violates the bridge protocol."""

    def __init__(self, message: str, code: str = "PROTOCOL_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message, code=code, category=ErrorCategory.PROTOCOL, details=details)


class DecodeError(ProtocolError):
    """Bytes are not a valid serialization of the expected envelope."""

    def __init__(self, message: str, what: str | None = None):
        details = {"what": what} if what else {}
        super().__init__(message, code="DECODE_ERROR", details=details)


class ExecutionError(BridgeError):
    """Request-level failure inside a script executor."""

    def __init__(self, executor: str, message: str):
        super().__init__(
            message,
            code="EXECUTION_ERROR",
            category=ErrorCategory.RECOVERABLE,
            details={"executor": executor},
        )


class RuntimeImageError(BridgeError):
    """Sandbox runtime image is missing or could not be fetched."""

    def __init__(self, message: str, path: str | None = None):
        details = {"path": path} if path else {}
        super().__init__(message, code="RUNTIME_IMAGE_ERROR", category=ErrorCategory.NOT_FOUND, details=details)


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove credentials and bearer tokens from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def format_execution_error(exc: BaseException) -> str:
    """
    Format an exception the way the interpreter prints its last line.

    BridgeError subclasses yield their bare message; everything else yields
    "ExcType: message" (e.g. "AttributeError: module has no attribute 'greet'").
    """
    if isinstance(exc, BridgeError):
        return sanitize_error_message(exc.message)
    text = "".join(traceback.format_exception_only(type(exc), exc)).strip()
    return sanitize_error_message(text or type(exc).__name__)
