"""
Service groups.

Provider methods that share a common factor are grouped into services
(blocks, transactions, send) which are switched on independently.  A
service that was never enabled has no routes in the dispatch table, so
its URLs answer 404 exactly like URLs that never existed.  Turning a
service off is a matter of not enabling it at startup; there is no
disable operation.

Routes are added straight to the live router passed in, so enabling a
service takes effect for the next request even if the application is
already built.
"""

import logging
from typing import Dict, List, Tuple

from fastapi import APIRouter
from fastapi.routing import APIRoute
from typing_extensions import Self

from aggregator_api.app.core.errors import UnknownServiceError
from aggregator_api.app.providers.base import Provider

logger = logging.getLogger(__name__)

BLOCKS = "blocks"
TRANSACTIONS = "transactions"
SEND = "send"

# (HTTP method, path relative to the version prefix, provider handler name)
SERVICE_ROUTES: Dict[str, List[Tuple[str, str, str]]] = {
    # eth_blockNumber, eth_get[Block]ByNumber, eth_get[Block]ByHash
    BLOCKS: [
        ("GET", "/block/", "block_number"),
        ("GET", "/block/by/number/{block}/{flag}", "block_by_number"),
        ("GET", "/block/by/hash/{block}/{flag}", "block_by_hash"),
    ],
    # eth_get[Transaction]ByBlockNumberAndIndex, eth_get[Transaction]ByBlockHashAndIndex
    TRANSACTIONS: [
        ("GET", "/tx/by/number/{block}/{index}", "tx_by_block_number_and_index"),
        ("GET", "/tx/by/hash/{block}/{index}", "tx_by_block_hash_and_index"),
    ],
    SEND: [
        ("POST", "/send/raw", "send_raw_transaction"),
    ],
}


class Services:
    """Switch board binding provider handlers to routes, one group at a time.

    Parameters
    ----------
    router : APIRouter
        Live routing table, normally ``app.router``.
    provider : Provider
        Handlers to bind.
    prefix : str
        Version prefix prepended to every path, e.g. ``"/v1"``.
    """

    def __init__(self, router: APIRouter, provider: Provider, prefix: str = "") -> None:
        self.router = router
        self.provider = provider
        self.prefix = prefix.rstrip("/")

    def enable_blocks(self) -> Self:
        """Enable the "blocks" service."""
        return self._enable(BLOCKS)

    def enable_transactions(self) -> Self:
        """Enable the "transactions" service."""
        return self._enable(TRANSACTIONS)

    def enable_send_transactions(self) -> Self:
        """Enable the "send" service."""
        return self._enable(SEND)

    def enable(self, name: str) -> Self:
        """Enable a service by name; raises ``UnknownServiceError`` for unknown names."""
        if name not in SERVICE_ROUTES:
            raise UnknownServiceError(name)
        return self._enable(name)

    def enabled_services(self) -> List[str]:
        """Names of the services whose routes are in the dispatch table."""
        return [
            name
            for name, routes in SERVICE_ROUTES.items()
            if all(self._is_registered(method, path) for method, path, _ in routes)
        ]

    def _enable(self, name: str) -> Self:
        for method, path, handler_name in SERVICE_ROUTES[name]:
            if self._is_registered(method, path):
                continue
            self.router.add_api_route(
                self.prefix + path,
                getattr(self.provider, handler_name),
                methods=[method],
                name=handler_name,
                tags=[name],
            )
        logger.info("%s service enabled", name)
        return self

    def _is_registered(self, method: str, path: str) -> bool:
        full_path = self.router.prefix + self.prefix + path
        return any(
            isinstance(route, APIRoute) and route.path == full_path and method in route.methods
            for route in self.router.routes
        )
