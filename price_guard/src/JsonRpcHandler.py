"""JsonRpcHandler: Inbound JSON-RPC 2.0 request handling.

Maps handler outcomes onto JSON-RPC responses:
    - success: ``{"jsonrpc": "2.0", "id": ..., "result": ...}``
    - price validation failure: its own code (-40001/-40002/-40003),
      message and data
    - malformed JSON (-32700), malformed request (-32600), unknown
      method (-32601)
    - anything else: -32603 "Internal error", details only in the log

Requests are parsed into :class:`RpcRequestModel`; responses are built from
:class:`RpcSuccessResponse` and :class:`RpcErrorResponse`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Mapping, Union

from pydantic import BaseModel, StrictInt, StrictStr, ValidationError

from .errors import PriceValidationError

if TYPE_CHECKING:
    from .PriceFeedService import PriceFeedService

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

MethodHandler = Callable[[], Awaitable[Any]]
RequestId = Union[StrictInt, StrictStr, None]


class RpcRequestModel(BaseModel):
    """An inbound JSON-RPC 2.0 request. A null id marks a notification."""

    jsonrpc: Literal["2.0"]
    method: StrictStr
    params: list[Any] | dict[str, Any] | None = None
    id: RequestId = None


class RpcErrorObject(BaseModel):
    code: int
    message: str
    data: Any = None


class RpcSuccessResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    result: Any


class RpcErrorResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    error: RpcErrorObject


def error_response(
    request_id: Any, code: int, message: str, data: Any = None
) -> dict[str, Any]:
    """Build a JSON-RPC error response.

    ``error.data`` is omitted when there is no data; ``id`` is always present.
    """
    response = RpcErrorResponse(
        id=request_id, error=RpcErrorObject(code=code, message=message, data=data)
    )
    return response.model_dump(exclude={"error": {"data"}} if data is None else None)


def success_response(request_id: Any, result: Any) -> dict[str, Any]:
    """Build a JSON-RPC success response."""
    return RpcSuccessResponse(id=request_id, result=result).model_dump()


def parse_request(body: str | bytes) -> RpcRequestModel | dict[str, Any]:
    """Parse a raw request body.

    :param body: Raw JSON request.
    :returns: The parsed request, or the error response to send instead.
    """
    try:
        return RpcRequestModel.model_validate_json(body)
    except ValidationError as e:
        if any(error["type"] == "json_invalid" for error in e.errors()):
            return error_response(None, PARSE_ERROR, "Parse error")
        return error_response(None, INVALID_REQUEST, "Invalid Request")


class JsonRpcHandler:
    """Dispatches JSON-RPC requests to parameterless async methods.

    :ivar methods: Method name to handler.
    """

    def __init__(self, methods: Mapping[str, MethodHandler]) -> None:
        self.methods = dict(methods)

    async def handle(self, body: str | bytes) -> dict[str, Any]:
        """Handle one raw request body.

        :param body: Raw JSON request.
        :returns: JSON-RPC response object.
        """
        request = parse_request(body)
        if not isinstance(request, RpcRequestModel):
            return request

        handler = self.methods.get(request.method)
        if handler is None:
            return error_response(request.id, METHOD_NOT_FOUND, "Method not found")

        return await self.call(request.id, request.method, handler)

    async def call(
        self, request_id: Any, method: str, handler: MethodHandler
    ) -> dict[str, Any]:
        """Invoke a handler and convert its outcome into a response."""
        try:
            result = await handler()
        except PriceValidationError as e:
            logger.warning(f"{method}: {e.message} {e.data}")
            return error_response(request_id, e.code, e.message, e.data)
        except Exception:
            logger.exception(f"{method}: unexpected error")
            return error_response(request_id, INTERNAL_ERROR, "Internal error")
        return success_response(request_id, result)


def build_handler(service: PriceFeedService) -> JsonRpcHandler:
    """Create the handler exposing ``currentPrice``."""
    return JsonRpcHandler({"currentPrice": service.current_safe_price})
