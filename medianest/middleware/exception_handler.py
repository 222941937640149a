"""Exception handlers: MediaNestException to JSON, and envelopes for malformed RPC bodies."""

import logging

from fastapi import Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import MediaNestException, ValidationError
from ..schemas.rpc import RpcResponse

logger = logging.getLogger(__name__)

RPC_PATH = "/api/rpc"


async def medianest_exception_handler(request: Request, exc: MediaNestException) -> JSONResponse:
    """Log the failure and answer with ``exc.to_dict()`` at ``exc.status_code``.

    Client errors (4xx) log at WARNING, everything else at ERROR.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"MediaNestException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def rpc_request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies on the action endpoint still get a failure envelope.

    Other routes keep FastAPI's standard 422 response.
    """
    if request.url.path != RPC_PATH:
        return await request_validation_exception_handler(request, exc)

    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [part for part in first.get("loc", ()) if part != "body"]
    error = ValidationError(
        f"Invalid request: {first.get('msg', 'malformed body')}",
        field=str(loc[0]) if loc else None,
    )
    logger.warning("Malformed RPC request", extra={"path": request.url.path, "details": error.details})
    return JSONResponse(
        status_code=error.status_code,
        content=RpcResponse.fail(error.to_dict()).model_dump(),
    )
