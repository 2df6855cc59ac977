"""Request ids, request logging, and JSON error responses for the API."""

from __future__ import annotations

from collections.abc import Sequence
from time import perf_counter
from typing import TYPE_CHECKING, Any, NoReturn
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from intake_board.core.config import settings
from intake_board.core.logging import get_logger
from intake_board.services.results import WorkflowErrorCode, WorkflowResult

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
_HEALTH_PATHS = frozenset({"/health", "/healthz", "/readyz"})

WORKFLOW_ERROR_STATUS: dict[WorkflowErrorCode, int] = {
    WorkflowErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    WorkflowErrorCode.NOT_OPEN_FOR_VOTING: status.HTTP_409_CONFLICT,
    WorkflowErrorCode.INSUFFICIENT_VOTES: status.HTTP_409_CONFLICT,
    WorkflowErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    WorkflowErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    WorkflowErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    WorkflowErrorCode.UNEXPECTED_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_result(result: WorkflowResult[Any]) -> None:
    """Raise an ``HTTPException`` carrying the code and reasons of a failed result."""
    if result.succeeded:
        return
    code = result.code or WorkflowErrorCode.UNEXPECTED_ERROR
    raise HTTPException(
        status_code=WORKFLOW_ERROR_STATUS[code],
        detail={"code": code.value, "errors": list(result.errors)},
    )


def fail_http(code: WorkflowErrorCode, *errors: str) -> NoReturn:
    raise HTTPException(
        status_code=WORKFLOW_ERROR_STATUS[code],
        detail={"code": code.value, "errors": list(errors)},
    )


class RequestIdMiddleware:
    """Assign a request id, echo it in the response, and log request timing."""

    def __init__(self, app: ASGIApp) -> None:
        self._app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id
        path = str(scope.get("path", ""))
        method = str(scope.get("method", ""))
        status_code = 500
        started = perf_counter()

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = int(message["status"])
                header_name = REQUEST_ID_HEADER.lower().encode("latin-1")
                headers = [
                    (name, value)
                    for name, value in message.get("headers", [])
                    if name.lower() != header_name
                ]
                headers.append((header_name, request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self._app(scope, receive, send_with_request_id)
        finally:
            _log_request(
                method=method,
                path=path,
                status_code=status_code,
                request_id=request_id,
                duration_ms=(perf_counter() - started) * 1000,
            )


def _incoming_request_id(scope: Scope) -> str | None:
    wanted = REQUEST_ID_HEADER.lower().encode("latin-1")
    for name, value in scope.get("headers", []):
        if name.lower() == wanted:
            candidate = value.decode("latin-1").strip()
            return candidate or None
    return None


def _log_request(
    *,
    method: str,
    path: str,
    status_code: int,
    request_id: str,
    duration_ms: float,
) -> None:
    if path in _HEALTH_PATHS and not settings.request_log_include_health:
        return
    extra = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "request_id": request_id,
        "duration_ms": round(duration_ms, 2),
    }
    threshold = settings.request_log_slow_ms
    if threshold and duration_ms >= threshold:
        logger.warning("http.request.slow", extra={**extra, "slow_threshold_ms": threshold})
    else:
        logger.info("http.request.complete", extra=extra)


def _get_request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _json_safe(value: object) -> object:
    """Coerce validation error payload values into JSON-serialisable data."""
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, str):
        return [_json_safe(item) for item in value]
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return str(value)


def _error_payload(*, detail: object, request_id: str | None) -> dict[str, object]:
    payload: dict[str, object] = {"detail": detail}
    if request_id is not None:
        payload["request_id"] = request_id
    return payload


def _json_response(request: Request, *, status_code: int, detail: object) -> JSONResponse:
    request_id = _get_request_id(request)
    response = JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(_error_payload(detail=detail, request_id=request_id)),
    )
    if request_id is not None:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def _request_validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        raise TypeError("Expected RequestValidationError")
    return _json_response(
        request,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=_json_safe(list(exc.errors())),
    )


async def _response_validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, ResponseValidationError):
        raise TypeError("Expected ResponseValidationError")
    logger.error(
        "http.response_validation_failed",
        extra={"path": request.url.path, "request_id": _get_request_id(request)},
    )
    return _json_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


async def _http_exception_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, StarletteHTTPException):
        raise TypeError("Expected StarletteHTTPException")
    response = _json_response(request, status_code=exc.status_code, detail=exc.detail)
    for name, value in (exc.headers or {}).items():
        response.headers[name] = value
    return response


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "http.unhandled_exception",
        extra={"path": request.url.path, "request_id": _get_request_id(request)},
        exc_info=exc,
    )
    return _json_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


def install_error_handling(app: FastAPI) -> None:
    """Attach the request-id middleware and JSON exception handlers."""
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(RequestValidationError, _request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, _response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
