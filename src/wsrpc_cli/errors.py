"""Errors raised while preparing, delegating or performing a call."""

from __future__ import annotations

from typing import Any, Optional


class CallError(Exception):
    """Base class for every failure that ends an invocation."""


class InputError(CallError):
    """Malformed arguments or certificate material, detected before any I/O."""


class TransportError(CallError):
    """The agent channel or the RPC endpoint could not be reached or read."""


class EncodingError(TransportError):
    """A protocol value could not be serialized or deserialized."""


class RemoteError(CallError):
    """The agent reported a failure for the delegated call."""


class RpcError(RemoteError):
    """The endpoint answered the call with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.code}: {self.message}"


class CancelledError(CallError):
    """The call was abandoned before an outcome arrived."""
