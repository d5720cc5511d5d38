from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog import get_logger

logger = get_logger()


class ErrorMessage:
    INTERNAL = "Internal server error"
    WALLET_REQUIRED = (
        "Wallet address not provided. Please include address in Authorization header "
        "or X-Wallet-Address header."
    )
    WALLET_REQUIRED_WITH_BODY = (
        "Wallet address not provided. Please include address in Authorization header, "
        "X-Wallet-Address header, or request body."
    )
    INVESTOR_WALLET_REQUIRED = "Wallet address not provided"
    INVALID_ADDRESS = "Invalid wallet address format"

    PROPERTY_NOT_FOUND = "Property not found"
    PROPERTY_ID_REQUIRED = "Property ID is required"
    PROPERTY_TITLE_REQUIRED = "Property title is required"
    PROPERTY_LOCATION_REQUIRED = "Property location is required"
    PROPERTY_PRICE_INVALID = "Valid property price is required"
    PROPERTY_SHARES_INVALID = "Valid number of shares is required"
    PROPERTY_NOT_OWNER = "Unauthorized - can only update your own property"
    PROPERTY_HAS_INVESTORS = "Cannot delete a property with outstanding shares"

    PROFILE_NOT_FOUND = "Profile not found"
    DISPLAY_NAME_REQUIRED = "Display name is required"
    PROFILE_NOT_OWNER = "Unauthorized - can only update your own profile"

    INVESTMENT_FIELDS_REQUIRED = "Missing required fields: propertyId, shares, amountInvested"
    INVESTMENT_SHARES_INVALID = "Shares must be a positive whole number"
    INVESTMENT_AMOUNT_INVALID = "Amount invested must be positive"
    TRANSFER_UNVERIFIED = "Transaction could not be verified"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def bad_request(message: str) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, message)


def forbidden(message: str) -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, message)


def not_found(message: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, message)


def internal_error() -> ApiError:
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorMessage.INTERNAL)


def _envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def api_error_handler(request: Request, exc: ApiError):
    return _envelope(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid value for {field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    logger.warning("Request validation failed", path=request.url.path, errors=errors)
    return _envelope(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=exc)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorMessage.INTERNAL)


def register_exception_handlers(app):
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
