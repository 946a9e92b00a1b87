"""
Aggregator API test fixtures.
"""

import json
from typing import Any, Dict, List, Optional

import pytest
import requests
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from aggregator_api.app.core.config import Settings
from aggregator_api.app.providers.base import Provider
from aggregator_api.app.providers.infura import Infura, InfuraRPC

BLOCK_HASH = "0xb3b20624f8f0f86eb50dd04688409e5cea4bd02d700bf6e79e9384d47d6a5a35"


class MockProvider(Provider):
    """Echoes the handler name and the raw request parameters."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def _echo(self, name: str, request: Request) -> Response:
        self.calls.append(name)
        return JSONResponse({"handler": name, **request.path_params})

    async def block_number(self, request: Request) -> Response:
        return self._echo("block_number", request)

    async def block_by_number(self, request: Request) -> Response:
        return self._echo("block_by_number", request)

    async def block_by_hash(self, request: Request) -> Response:
        return self._echo("block_by_hash", request)

    async def tx_by_block_number_and_index(self, request: Request) -> Response:
        return self._echo("tx_by_block_number_and_index", request)

    async def tx_by_block_hash_and_index(self, request: Request) -> Response:
        return self._echo("tx_by_block_hash_and_index", request)

    async def send_raw_transaction(self, request: Request) -> Response:
        form = await request.form()
        self.calls.append("send_raw_transaction")
        return JSONResponse({"handler": "send_raw_transaction", "tx": form.get("tx")})


def make_response(
    status_code: int = 200,
    payload: Any = None,
    text: Optional[str] = None,
    reason: str = "OK",
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp.reason = reason
    resp.encoding = "utf-8"
    body = text if text is not None else json.dumps(payload)
    resp._content = body.encode("utf-8")
    return resp


class FakeSession:
    """Stands in for ``requests.Session`` and records posted envelopes."""

    def __init__(self) -> None:
        self.requests: List[Dict[str, Any]] = []
        self.responses: List[Any] = []
        self.closed = False

    def queue(self, item: Any) -> None:
        """Queue a ``requests.Response`` or an exception to raise."""
        self.responses.append(item)

    def queue_result(self, result: Any) -> None:
        self.queue(make_response(payload={"jsonrpc": "2.0", "id": 1, "result": result}))

    def queue_error(self, code: int, message: str) -> None:
        self.queue(
            make_response(payload={"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}})
        )

    def post(self, url: str, data: str = "", timeout: Optional[float] = None) -> requests.Response:
        self.requests.append({"url": url, "timeout": timeout, **json.loads(data)})
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def rpc(fake_session: FakeSession) -> InfuraRPC:
    return InfuraRPC("https://upstream.test/v3/key", timeout=5, session_factory=lambda: fake_session)


@pytest.fixture
def infura(rpc: InfuraRPC) -> Infura:
    return Infura(rpc)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        endpoint="https://upstream.test/v3",
        key="secret",
        api_version="v1",
        enabled_services="",
        log_level="WARNING",
    )
