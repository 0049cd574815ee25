from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    EmailAlreadyRegisteredError,
    InsufficientFundsError,
    InvalidOrderRequestError,
    InvalidTransactionStateError,
    InvalidVerificationTokenError,
    OrderNotFoundError,
    PersistenceFailureError,
    ServiceNotFoundError,
    TransactionNotFoundError,
    UpstreamPlacementFailedError,
    UserNotFoundError,
)

_STATUS_BY_ERROR: dict[type[Exception], int] = {
    InvalidOrderRequestError: 400,
    InvalidVerificationTokenError: 400,
    ServiceNotFoundError: 404,
    OrderNotFoundError: 404,
    UserNotFoundError: 404,
    TransactionNotFoundError: 404,
    InsufficientFundsError: 409,
    EmailAlreadyRegisteredError: 409,
    InvalidTransactionStateError: 409,
    UpstreamPlacementFailedError: 502,
    PersistenceFailureError: 500,
}


def register_exception_handlers(app: FastAPI) -> None:
    async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=_STATUS_BY_ERROR[type(exc)], content={"detail": str(exc)}
        )

    for error_type in _STATUS_BY_ERROR:
        app.add_exception_handler(error_type, domain_error_handler)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})
