"""
JSON response helpers shared by all routers
"""

import re
from typing import Iterable, List

from fastapi.responses import JSONResponse

from models.results import Conflict, Failed, NotFound, Result, Unauthorized

# Required-field messages that don't follow "<Label> is required"
REQUIRED_MESSAGES = {
    "goals": "Goals are required",
    "issues_faced": "Issues faced are required",
    "items": "Items are required",
    "paymentMethodId": "Payment method ID is required",
    "priceId": "Price ID is required",
    "productId": "Product ID is required",
    "planId": "Plan ID is required",
    "catId": "Cat ID is required",
}


def message_response(message: str, status: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status, content={"message": message})


def error_response(error: str, status: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": error})


def errors_response(errors: List[str], status: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status, content={"errors": errors})


def result_response(result: Result, as_error: bool = False) -> JSONResponse:
    """
    Map a non-Found result to its HTTP response.

    as_error switches the body key from "message" to "error" for routers
    that use the error envelope.
    """
    if isinstance(result, NotFound):
        status, text = 404, result.message
    elif isinstance(result, Unauthorized):
        status, text = 403, result.message
    elif isinstance(result, Conflict):
        status, text = 400, result.message
    elif isinstance(result, Failed):
        return error_response(result.reason, result.status_code)
    else:
        raise TypeError(f"Unexpected result type: {type(result).__name__}")
    return error_response(text, status) if as_error else message_response(text, status)


def field_label(name: str) -> str:
    """billing_period -> 'Billing period', paymentMethodId -> 'Payment method id'"""
    spaced = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", name).replace("_", " ")
    return spaced.lower().capitalize()


def format_validation_errors(errors: Iterable[dict]) -> List[str]:
    """Turn pydantic error dicts into the human-readable messages clients display."""
    messages = []
    for error in errors:
        loc = [part for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = str(loc[-1]) if loc else ""
        kind = error.get("type", "")
        ctx = error.get("ctx") or {}

        if kind == "missing":
            message = REQUIRED_MESSAGES.get(field) or f"{field_label(field)} is required"
        elif kind in ("value_error", "assertion_error") and "error" in ctx:
            message = str(ctx["error"])
        elif kind.startswith("date"):
            message = f"{field_label(field)} must be a valid ISO 8601 date"
        elif kind.startswith(("int", "float")):
            message = f"{field_label(field)} must be a number"
        elif kind.startswith("string"):
            message = f"{field_label(field)} must be a string"
        elif field:
            message = f"{field_label(field)}: {error.get('msg', 'is invalid')}"
        else:
            message = error.get("msg", "Invalid request body")

        if message not in messages:
            messages.append(message)
    return messages
