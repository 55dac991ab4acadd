# Domain errors and problem-document responses
# app/core/errors.py

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_TITLE = "Internal Server Error"
INTERNAL_ERROR_DETAILS = (
    "Something went wrong on our end. Please try again later or contact support if the issue persists."
)
UNPROCESSABLE_TITLE = "Unable to Process Request"
UNPROCESSABLE_DETAILS = (
    "We encountered an issue while trying to process your request. "
    "The data you provided is not in the expected format."
)
UNPROCESSABLE_PAYLOAD_MESSAGE = (
    "The information provided is not correctly formatted or is missing required fields. "
    "Please review and try again."
)
VALIDATION_TITLE = "Validation Error"
VALIDATION_DETAILS = "One or more fields are invalid."

# Errors that mean the body could not be decoded at all, not that a field broke a rule
UNDECODABLE_ERROR_TYPES = {"json_invalid", "date_parsing", "date_from_datetime_parsing", "datetime_parsing"}


# --- Domain errors raised by services ---

class DomainError(Exception):
    """Base class for expected business-rule failures."""
    status_code: int = status.HTTP_400_BAD_REQUEST
    title: str = "Bad Request"
    message: str = "The request could not be completed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class EmailAlreadyRegisteredError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    title = "Conflict"
    message = "There is already a user registered with this email."


class UserNotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "User not found"
    message = "User not found."


class InvalidPasswordError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Unauthorized credentials"
    message = "Unauthorized credentials. Review the data sent."


class IndicativeRatingNotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Indicative rating not found"
    message = "The indicative rating provided does not exist."


class IndicativeRatingsNotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Indicative ratings not found"
    message = "No indicative ratings were found."


class MovieNotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Movie not found"
    message = "The requested movie was not found."


class MovieNotBelongUserError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Forbidden"
    message = "The movie does not belong to the authenticated user."


class CinemaNotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Cinema not found"
    message = "The requested cinema was not found."


class CinemaNotBelongUserError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Forbidden"
    message = "The cinema does not belong to the authenticated user."


class ImageValidationError(DomainError):
    status_code = 422
    title = VALIDATION_TITLE
    message = VALIDATION_DETAILS

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message)


class ImageConversionError(Exception):
    """Raised when an uploaded image cannot be read into bytes."""
    pass


class ImageTooLargeError(ImageConversionError):
    """Raised when the bytes read from an upload exceed the size limit."""
    pass


# --- HTTP-level exceptions ---

class ProblemException(HTTPException):
    """HTTPException rendered as a problem document: status, title, details, errors."""
    def __init__(
        self,
        status_code: int,
        title: str,
        details: str,
        errors: Optional[List[Dict[str, str]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=details, headers=headers)
        self.title = title
        self.errors = errors


class InternalServerErrorException(ProblemException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            title=INTERNAL_ERROR_TITLE,
            details=INTERNAL_ERROR_DETAILS,
        )


def problem_from_domain_error(error: DomainError) -> ProblemException:
    """Maps a DomainError onto the HTTP problem it should produce."""
    return ProblemException(
        status_code=error.status_code,
        title=error.title,
        details=error.message,
        errors=getattr(error, "errors", None),
    )


def problem_body(status_code: int, title: str, details: str, errors: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": status_code, "title": title, "details": details}
    if errors:
        body["errors"] = errors
    return body


# --- Exception handlers (registered in app/server.py) ---

async def problem_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    title = getattr(exc, "title", None) or _default_title(exc.status_code)
    details = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=problem_body(exc.status_code, title, details, getattr(exc, "errors", None)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any(error.get("type") in UNDECODABLE_ERROR_TYPES for error in errors):
        logger.info(f"Undecodable body on {request.method} {request.url.path}")
        body = problem_body(
            422,
            UNPROCESSABLE_TITLE,
            UNPROCESSABLE_DETAILS,
            [{"field": "payload", "message": UNPROCESSABLE_PAYLOAD_MESSAGE}],
        )
    else:
        body = problem_body(
            422,
            VALIDATION_TITLE,
            VALIDATION_DETAILS,
            [_format_validation_error(error) for error in errors],
        )
    return JSONResponse(status_code=422, content=jsonable_encoder(body))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=problem_body(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_TITLE, INTERNAL_ERROR_DETAILS),
    )


def _format_validation_error(error: Dict[str, Any]) -> Dict[str, str]:
    loc = [part for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
    field = str(loc[-1]).lower() if loc else "payload"
    error_type = error.get("type")
    ctx = error.get("ctx") or {}
    if error_type == "missing" or (error_type == "string_too_short" and ctx.get("min_length") == 1):
        message = "This field is required"
    else:
        message = error.get("msg", "Invalid value")
        # Custom validators raise ValueError; pydantic prefixes the message
        if message.startswith("value is not a valid email address"):
            message = "Invalid email format"
        elif message.startswith("Value error, "):
            message = message[len("Value error, "):]
    return {"field": field, "message": message}


def _default_title(status_code: int) -> str:
    return {
        status.HTTP_400_BAD_REQUEST: "Bad Request",
        status.HTTP_401_UNAUTHORIZED: "Unauthorized",
        status.HTTP_403_FORBIDDEN: "Forbidden",
        status.HTTP_404_NOT_FOUND: "Not Found",
        status.HTTP_405_METHOD_NOT_ALLOWED: "Method Not Allowed",
        status.HTTP_409_CONFLICT: "Conflict",
        status.HTTP_503_SERVICE_UNAVAILABLE: "Service Unavailable",
    }.get(status_code, INTERNAL_ERROR_TITLE)
