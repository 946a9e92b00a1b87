"""
Provider interface.

A provider implements one request handler per supported upstream
method.  Each handler receives the inbound request, extracts its
parameters, calls the upstream and returns the response to send back.
The service router only binds these handlers to paths, so any class
implementing this interface (another upstream, a test double) can be
plugged in without touching the routing code.
"""

import abc

from fastapi import Request, Response


class Provider(abc.ABC):
    """Handlers for the upstream methods exposed by the gateway."""

    @abc.abstractmethod
    async def block_number(self, request: Request) -> Response:
        """Current "latest" block number."""

    @abc.abstractmethod
    async def block_by_number(self, request: Request) -> Response:
        """Block by number; path parameters ``block`` and ``flag``."""

    @abc.abstractmethod
    async def block_by_hash(self, request: Request) -> Response:
        """Block by hash; path parameters ``block`` and ``flag``."""

    @abc.abstractmethod
    async def tx_by_block_number_and_index(self, request: Request) -> Response:
        """Transaction by block number and index; path parameters ``block`` and ``index``."""

    @abc.abstractmethod
    async def tx_by_block_hash_and_index(self, request: Request) -> Response:
        """Transaction by block hash and index; path parameters ``block`` and ``index``."""

    @abc.abstractmethod
    async def send_raw_transaction(self, request: Request) -> Response:
        """Broadcast a signed transaction; form field ``tx``."""
