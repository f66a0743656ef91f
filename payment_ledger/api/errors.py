"""
Error responses.

Services raise PaymentError subclasses; this module turns them
into JSON responses with a stable shape:

    {"success": false, "error": "<message>", "code": "<CODE>"}

Request bodies and query parameters rejected by FastAPI use the
same shape, with a 400 status and a "details" list naming each
offending field.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from payment_ledger.exceptions import PaymentError

logger = logging.getLogger(__name__)

STATUS_BY_CODE: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "INVALID_AMOUNT": 400,
    "SELF_TRANSFER": 400,
    "DUPLICATE_ORDERID": 400,
    "RECEIVER_NOT_VERIFIED": 403,
    "SENDER_NOT_FOUND": 404,
    "RECEIVER_NOT_FOUND": 404,
    "SENDER_BALANCE_NOT_FOUND": 404,
    "INSUFFICIENT_FUNDS": 402,
    "LOCK_TIMEOUT": 503,
    "DATABASE_ERROR": 500,
}


class AuthenticationError(Exception):
    """Missing or invalid API key."""

    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        super().__init__(message)


def error_response(
    status_code: int,
    message: str,
    code: str,
    details: list[dict] | None = None,
) -> JSONResponse:
    content = {"success": False, "error": message, "code": code}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    status_code = STATUS_BY_CODE.get(exc.code, 500)
    if status_code >= 500:
        # Storage details stay in the logs
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(status_code, exc.default_message, exc.code)
    return error_response(status_code, exc.message, exc.code)


async def authentication_error_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    return error_response(401, exc.message, exc.code)


def _field_name(loc: tuple) -> str:
    # loc starts with "body", "query" or "header"
    return ".".join(str(part) for part in loc[1:]) or str(loc[0])


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    details = [
        {"field": _field_name(tuple(err["loc"])), "message": err["msg"]}
        for err in errors
    ]

    # A present but unusable amount gets the same code the payment core uses
    if any(
        tuple(err["loc"]) == ("body", "amount") and err["type"] != "missing"
        for err in errors
    ):
        return error_response(400, "Amount must be a valid number", "INVALID_AMOUNT", details)

    if errors and errors[0]["loc"][0] == "query":
        message = "Invalid query parameters"
    else:
        message = "Request body validation failed"
    return error_response(400, message, "VALIDATION_ERROR", details)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PaymentError, payment_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
