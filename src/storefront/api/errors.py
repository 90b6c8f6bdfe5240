"""HTTP mapping for storefront error kinds.

Registered after Protean's generic handlers so the specific kinds win:

    ValidationError (incl. InsufficientStock, EmptyCart)  -> 400
    AuthorizationError                                    -> 403
    ObjectNotFoundError                                   -> 404
    InvalidStateTransitionError                           -> 409
    StorageError                                          -> 500 (opaque)
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.exceptions import (
    AuthorizationError,
    EmptyCartError,
    InsufficientStockError,
    InvalidStateTransitionError,
    StorageError,
)

logger = structlog.get_logger(__name__)


def _messages(exc):
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        return messages
    return {"_entity": [str(messages or exc)]}


def _error_response(status_code, kind, exc):
    return JSONResponse(status_code=status_code, content={"error": kind, "messages": _messages(exc)})


async def _validation_error(request: Request, exc: ValidationError):
    if isinstance(exc, InsufficientStockError):
        return _error_response(400, "insufficient_stock", exc)
    if isinstance(exc, EmptyCartError):
        return _error_response(400, "empty_cart", exc)
    return _error_response(400, "validation", exc)


async def _authorization_error(request: Request, exc: AuthorizationError):
    logger.info("Request refused", path=request.url.path, reason=str(exc))
    return _error_response(403, "authorization", exc)


async def _not_found_error(request: Request, exc: ObjectNotFoundError):
    return _error_response(404, "not_found", exc)


async def _invalid_transition_error(request: Request, exc: InvalidStateTransitionError):
    return _error_response(409, "invalid_state_transition", exc)


async def _storage_error(request: Request, exc: StorageError):
    # Details stay in the log
    logger.error("Storage failure", path=request.url.path, reason=str(exc))
    return JSONResponse(
        status_code=500,
        content={"error": "storage", "messages": {"_entity": ["The operation could not be completed"]}},
    )


def register_storefront_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(AuthorizationError, _authorization_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found_error)
    app.add_exception_handler(InvalidStateTransitionError, _invalid_transition_error)
    app.add_exception_handler(StorageError, _storage_error)
