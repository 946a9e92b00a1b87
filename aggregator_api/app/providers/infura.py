"""
Infura provider.

Implements every handler of :class:`Provider` on top of Infura's
JSON-RPC API.  Handlers are blind pass-through: path and form
parameters are forwarded positionally without validation, the
upstream ``result`` is written back as JSON, and any failure of the
upstream call becomes an HTTP 400 carrying the error text.

Reference: https://docs.infura.io/infura/networks/ethereum/json-rpc-methods
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from typing import Any, Callable, List, Optional
from urllib.parse import urlsplit

import requests
from fastapi import Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from requests.adapters import HTTPAdapter

from aggregator_api.app.core.errors import ProviderConnectionError, RPCError, UpstreamError
from aggregator_api.app.providers.base import Provider
from aggregator_api.app.schemas.jsonrpc import RPCRequest, RPCResponse

logger = logging.getLogger(__name__)

# Allowed RPC methods.
BLOCK_NUMBER = "eth_blockNumber"
BLOCK_BY_HASH = "eth_getBlockByHash"
BLOCK_BY_NUMBER = "eth_getBlockByNumber"
SEND_RAW_TRANSACTION = "eth_sendRawTransaction"
TX_BY_BLOCK_NUMBER_AND_INDEX = "eth_getTransactionByBlockNumberAndIndex"
TX_BY_BLOCK_HASH_AND_INDEX = "eth_getTransactionByBlockHashAndIndex"

_FALSE_TOKENS = {"0", "f", "F", "FALSE", "false", "False"}


def parse_flag(flag: Optional[str]) -> bool:
    """Parse the ``flag`` path parameter of the block routes.

    Only the strict boolean tokens are recognised.  Anything else
    returns ``True`` (full transaction objects) instead of failing.
    """
    if flag in _FALSE_TOKENS:
        return False
    return True


def _new_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"Content-Type": "application/json"})
    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=4)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class InfuraRPC:
    """JSON-RPC 2.0 over HTTP.

    Safe to share between worker threads: each thread gets its own
    ``requests.Session`` and request ids come from a shared counter.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 15.0,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._session_factory = session_factory or _new_session
        self._local = threading.local()
        self._lock = threading.Lock()
        self._sessions: List[requests.Session] = []
        self._ids = itertools.count(1)

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def call(self, method: str, *args: Any) -> Any:
        """Execute ``method`` upstream and return its decoded ``result``.

        Raises
        ------
        RPCError
            The upstream returned a JSON-RPC error object.
        UpstreamError
            Transport failure, non-2xx status without an error object,
            or a body that is not a JSON-RPC response.
        """
        with self._lock:
            request_id = next(self._ids)
        payload = RPCRequest(id=request_id, method=method, params=list(args))
        try:
            resp = self.session.post(self.url, data=payload.model_dump_json(), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("error calling RPC method %s: %s", method, exc)
            raise UpstreamError(str(exc)) from exc

        try:
            envelope = RPCResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            if not resp.ok:
                message = f"{resp.status_code} {resp.reason}: {resp.text}"
            else:
                message = f"invalid response from upstream for {method}"
            logger.error("error calling RPC method %s: %s", method, message)
            raise UpstreamError(message) from exc

        if envelope.error is not None:
            err = envelope.error
            logger.error("error calling RPC method %s: %s (code %s)", method, err.message, err.code)
            raise RPCError(err.message, code=err.code, data=err.data)
        if not resp.ok:
            message = f"{resp.status_code} {resp.reason}: {resp.text}"
            logger.error("error calling RPC method %s: %s", method, message)
            raise UpstreamError(message)
        return envelope.result

    def json_from_call(self, method: str, *args: Any) -> bytes:
        """Like :meth:`call` but return the result serialised as JSON."""
        result = self.call(method, *args)
        return json.dumps(result, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()


class Infura(Provider):
    """Provider backed by an :class:`InfuraRPC` forwarder."""

    def __init__(self, rpc: InfuraRPC) -> None:
        self.rpc = rpc

    @classmethod
    def dial(cls, url: str, *, timeout: float = 15.0) -> "Infura":
        """Create a provider for ``url``.

        Only plain HTTP(S) endpoints are supported.  Nothing is sent
        upstream here; an unusable URL raises ``ProviderConnectionError``.
        """
        if not url:
            raise ProviderConnectionError("could not connect to upstream: no endpoint configured")
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            # The path usually carries the access key, keep it out of the message.
            raise ProviderConnectionError(
                f"could not connect to upstream: unsupported endpoint {parts.scheme}://{parts.netloc}"
            )
        logger.info("using upstream %s://%s", parts.scheme, parts.netloc)
        return cls(InfuraRPC(url, timeout=timeout))

    def close(self) -> None:
        self.rpc.close()

    async def _forward(self, method: str, *args: Any) -> Response:
        try:
            body = await run_in_threadpool(self.rpc.json_from_call, method, *args)
        except UpstreamError as exc:
            return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)
        return Response(content=body, media_type="application/json")

    async def tx_by_block_number_and_index(self, request: Request) -> Response:
        """eth_getTransactionByBlockNumberAndIndex

        ``block`` is a hex block number or "latest", "earliest", "pending";
        ``index`` is a hex integer position in the block.
        """
        params = request.path_params
        return await self._forward(TX_BY_BLOCK_NUMBER_AND_INDEX, params["block"], params["index"])

    async def tx_by_block_hash_and_index(self, request: Request) -> Response:
        """eth_getTransactionByBlockHashAndIndex

        ``block`` is a 32 byte block hash; ``index`` a hex integer.
        """
        params = request.path_params
        return await self._forward(TX_BY_BLOCK_HASH_AND_INDEX, params["block"], params["index"])

    async def block_by_number(self, request: Request) -> Response:
        """eth_getBlockByNumber

        When ``flag`` is true the block carries full transaction
        objects, otherwise only their hashes.
        """
        params = request.path_params
        return await self._forward(BLOCK_BY_NUMBER, params["block"], parse_flag(params.get("flag")))

    async def block_by_hash(self, request: Request) -> Response:
        """eth_getBlockByHash"""
        params = request.path_params
        return await self._forward(BLOCK_BY_HASH, params["block"], parse_flag(params.get("flag")))

    async def block_number(self, request: Request) -> Response:
        """eth_blockNumber"""
        return await self._forward(BLOCK_NUMBER)

    async def send_raw_transaction(self, request: Request) -> Response:
        """eth_sendRawTransaction with the signed data from form field ``tx``."""
        form = await request.form()
        # Body fields take precedence over the query string.
        tx = form.get("tx") or request.query_params.get("tx") or ""
        return await self._forward(SEND_RAW_TRANSACTION, str(tx))
