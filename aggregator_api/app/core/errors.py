"""
Exception types raised by the gateway.

Handlers translate ``UpstreamError`` (and its subclass ``RPCError``)
into HTTP 400 responses.  ``ProviderConnectionError`` only occurs at
startup and is fatal.
"""

from typing import Any, Optional


class GatewayError(Exception):
    """Base class for gateway errors."""


class ProviderConnectionError(GatewayError):
    """The upstream target cannot be used."""


class UpstreamError(GatewayError):
    """An upstream call failed: transport, HTTP status or malformed body."""


class RPCError(UpstreamError):
    """The upstream answered with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        return self.message


class UnknownServiceError(GatewayError, KeyError):
    """A service group name that the router does not know."""

    def __str__(self) -> str:
        return f"unknown service: {self.args[0]}" if self.args else "unknown service"
