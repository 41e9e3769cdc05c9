"""
API error mapping

Engine errors are raised from the services unchanged; the handlers here
translate them into HTTP responses.
"""

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from revenue_engine.core.errors import (
    CommissionStateError,
    DuplicateLeadError,
    EntityNotFoundError,
    InvalidValueError,
    LeadValidationError,
    RevenueEngineError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: Dict[Type[RevenueEngineError], int] = {
    EntityNotFoundError: 404,
    LeadValidationError: 400,
    InvalidValueError: 400,
    CommissionStateError: 400,
    DuplicateLeadError: 409,
}


def status_code_for(exc: RevenueEngineError) -> int:
    for error_cls in type(exc).__mro__:
        if error_cls in STATUS_CODES:
            return STATUS_CODES[error_cls]
    return 400


def error_body(exc: RevenueEngineError) -> dict:
    body = {"success": False, "error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, LeadValidationError):
        body["missing_fields"] = exc.missing_fields
    elif isinstance(exc, DuplicateLeadError):
        body["existing_lead_id"] = exc.existing_lead_id
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Register the engine error handlers on the FastAPI app."""

    @app.exception_handler(RevenueEngineError)
    async def engine_error_handler(request: Request, exc: RevenueEngineError) -> JSONResponse:
        status_code = status_code_for(exc)
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
        return JSONResponse(status_code=status_code, content=error_body(exc))

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} -> 422: {exc.error_count()} validation errors")
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "ValidationError",
                "detail": exc.errors(include_url=False, include_context=False, include_input=False),
            },
        )
