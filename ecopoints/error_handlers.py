from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .services.exceptions import (
    ConflictError,
    DomainValidationError,
    InsufficientBalanceError,
    InvalidTransitionError,
    LedgerError,
    NotFoundError,
    OutOfStockError,
    StoreError,
)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(OutOfStockError)
    async def handle_out_of_stock(_: Request, exc: OutOfStockError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail, "code": "out_of_stock"})

    @app.exception_handler(InsufficientBalanceError)
    async def handle_insufficient_balance(_: Request, exc: InsufficientBalanceError) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={
                "detail": exc.detail,
                "code": "insufficient_balance",
                "required": exc.required,
                "available": exc.available,
            },
        )

    @app.exception_handler(InvalidTransitionError)
    async def handle_invalid_transition(_: Request, exc: InvalidTransitionError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail, "code": "invalid_transition"})

    @app.exception_handler(ConflictError)
    async def handle_conflict(_: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail, "code": "conflict"})

    @app.exception_handler(DomainValidationError)
    async def handle_validation(_: Request, exc: DomainValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(StoreError)
    async def handle_store_error(_: Request, exc: StoreError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})

    @app.exception_handler(LedgerError)
    async def handle_ledger_error(_: Request, exc: LedgerError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.detail})
