"""Exception handlers that render domain errors as JSON responses.

Every error type carries its HTTP status. Bodies look like
``{"error": {"field": ["message", ...]}}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError

from ordering.exceptions import InsufficientStockError, UpstreamFailureError

logger = structlog.get_logger(__name__)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    status_code = getattr(exc, "status_code", 400)
    content = {"error": exc.messages}
    if isinstance(exc, InsufficientStockError):
        content["product_id"] = exc.product_id
        content["available"] = exc.available
        content["requested"] = exc.requested
    if isinstance(exc, UpstreamFailureError):
        content["details"] = exc.details
        logger.warning("Upstream failure", path=request.url.path, details=exc.details)
    return JSONResponse(status_code=status_code, content=content)


def not_found_messages(exc: ObjectNotFoundError) -> dict:
    """``{"field": [...]}`` payload of a NotFound error.

    ObjectNotFoundError carries no ``messages`` attribute; our own raise sites
    pass the dict as the first argument, repositories pass a plain string.
    """
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0]
    return {"_entity": [str(exc.args[0]) if exc.args else "Not found"]}


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": not_found_messages(exc)})


async def stale_write_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.info("Concurrent update lost", path=request.url.path)
    return JSONResponse(
        status_code=409,
        content={"error": {"_entity": ["The record was changed by another request. Please retry."]}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(ExpectedVersionError, stale_write_handler)
