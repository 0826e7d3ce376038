"""Global exception handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from riskchat.infra.db import InvalidAuthor, RiskNotFound

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Map repository errors onto JSON error responses."""

    @app.exception_handler(InvalidAuthor)
    async def handle_invalid_author(
        request: Request, exc: InvalidAuthor
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "code": "INVALID_AUTHOR"},
        )

    @app.exception_handler(RiskNotFound)
    async def handle_risk_not_found(
        request: Request, exc: RiskNotFound
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": str(exc), "code": "RISK_NOT_FOUND"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_data_store_error(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        logger.error("Risk database error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=503,
            content={
                "detail": "The risk database is unavailable.",
                "code": "DATA_STORE_UNAVAILABLE",
            },
        )

