from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

logger = logging.getLogger(__name__)


class RentalServiceError(Exception):
    """Base exception for book rental errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidCredentialsError(RentalServiceError):
    """Raised when a username/password pair does not match a stored user."""

    def __init__(self):
        super().__init__("Invalid credentials")


class UsernameTakenError(RentalServiceError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username {username} is already registered")


class UnauthorizedError(RentalServiceError):
    """Raised when a protected route is called without a token."""

    status_code = 401

    def __init__(self):
        super().__init__("Access Denied")


class InvalidTokenError(RentalServiceError):
    """Raised when a token fails signature, expiry or subject checks."""

    def __init__(self):
        super().__init__("Invalid Token")


class BookUnavailableError(RentalServiceError):
    """Raised when a book does not exist or is already rented."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__("Book unavailable")


class AlreadyRentingError(RentalServiceError):
    """Raised when a user with an active rental tries to rent again."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("User already rented a book")


class NoActiveRentalError(RentalServiceError):
    """Raised when a user returns a book without holding one."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("No rented book found")


class DatabaseError(RentalServiceError):
    status_code = 500

    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database error during {operation}")


# Exception handlers
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.error(f"HTTP error {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Request validation error: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Invalid request parameters. Please check your input."},
    )


async def response_validation_exception_handler(
    request: Request, exc: ResponseValidationError
):
    logger.error(f"Response validation error: {exc.errors()}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "The server encountered an unexpected error. Please contact support."
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please contact support."},
    )


async def rental_exception_handler(request: Request, exc: RentalServiceError):
    details = getattr(exc, "details", None)
    if details:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}: {details}")
    else:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
    )


def add_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(
        ResponseValidationError, response_validation_exception_handler
    )
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(RentalServiceError, rental_exception_handler)
