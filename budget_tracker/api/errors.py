"""Maps domain exceptions to HTTP responses"""

import logging
from dataclasses import asdict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from budget_tracker.api.dependencies import get_request_id
from budget_tracker.domain.exceptions import (
    BusinessRuleFailure,
    ConflictFailure,
    DomainException,
    NotFoundFailure,
    RollbackFailure,
    StoreFailure,
    ValidationFailure,
)

# Most specific first: RollbackFailure is a StoreFailure
STATUS_CODES = [
    (ValidationFailure, 422),
    (BusinessRuleFailure, 422),
    (NotFoundFailure, 404),
    (ConflictFailure, 409),
    (RollbackFailure, 500),
    (StoreFailure, 503),
]


def status_for(exc: DomainException) -> int:
    for exc_type, status in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 500


def error_body(exc: DomainException) -> dict:
    return {
        "error": exc.code,
        "message": exc.message,
        "field_errors": [asdict(error) for error in getattr(exc, "errors", [])],
    }


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logging.error(f"Request failed: {exc.message}", extra={"request_id": get_request_id(request), "error": exc.code})
    return JSONResponse(status_code=status, content=error_body(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters use the same error shape as ValidationFailure"""
    field_errors = [
        {
            # Drop the "body"/"query"/"path" prefix
            "field": ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0]),
            "code": error["type"],
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "error": ValidationFailure.code,
            "message": field_errors[0]["message"] if field_errors else "Invalid input",
            "field_errors": field_errors,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
