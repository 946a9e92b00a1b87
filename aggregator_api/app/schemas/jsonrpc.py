"""
Pydantic schemas for the JSON-RPC 2.0 envelope.

Only the envelope is modelled.  ``params`` and ``result`` are passed
through untouched because the gateway does not interpret blockchain
data.
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field


class RPCRequest(BaseModel):
    """Outbound call envelope."""

    jsonrpc: str = "2.0"
    id: int
    method: str
    params: List[Any] = Field(default_factory=list)


class RPCErrorObject(BaseModel):
    """Error member of a failed response."""

    code: int
    message: str
    data: Optional[Any] = None


class RPCResponse(BaseModel):
    """Inbound response envelope.

    Exactly one of ``result`` and ``error`` is meaningful.  A ``null``
    result is a valid answer (e.g. unknown block) and is forwarded as is.
    """

    jsonrpc: str = "2.0"
    id: Optional[Union[int, str]] = None
    result: Any = None
    error: Optional[RPCErrorObject] = None
