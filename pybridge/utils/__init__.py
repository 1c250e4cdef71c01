"""Utility functions for pybridge."""

from pybridge.utils.exceptions import (
    BridgeError,
    ChannelClosedError,
    DecodeError,
    ErrorCategory,
    ExecutionError,
    ProtocolError,
    RuntimeImageError,
    TransportError,
    format_execution_error,
    sanitize_error_message,
)

__all__ = [
    "BridgeError",
    "ChannelClosedError",
    "DecodeError",
    "ErrorCategory",
    "ExecutionError",
    "ProtocolError",
    "RuntimeImageError",
    "TransportError",
    "format_execution_error",
    "sanitize_error_message",
]
