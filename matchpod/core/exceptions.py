# MERGED: 3 sections with separation comments
#│   │   ├── SECTION 1: Base exception
#│   │   ├── SECTION 2: HTTP-mapped exceptions
#│   │   └── SECTION 3: Startup / service exceptions
"""
================================================================================
FILE: matchpod/core/exceptions.py
================================================================================

PURPOSE:
    Custom exception hierarchy for the API. Every application error carries
    the HTTP status it maps to and a machine-readable error code, so the
    global exception handlers can render a consistent JSON body.

WORKFLOW:
    1. Define base exception class (AppError) with status_code + error_code
    2. Define one subclass per client-facing status (400/401/403/404/409/429)
    3. Define server-side errors (500 / 503) for startup and connections
    4. Provide helpers: is_app_error(), create_error_from_status()

IMPORTS:
    - None (only Python builtins)

KEY FACTS:
    - NO imports from matchpod modules (prevents circular dependencies)
    - All exceptions inherit from AppError
    - Handlers in matchpod/api/errors.py turn these into responses
    - Details are hidden from clients in production

STATUS MAPPING:
    - ValidationError      400  VALIDATION_ERROR
    - AuthError            401  AUTH_ERROR
    - ForbiddenError       403  FORBIDDEN
    - NotFoundError        404  NOT_FOUND
    - ConflictError        409  CONFLICT
    - RateLimitError       429  RATE_LIMIT
    - ServerError          500  SERVER_ERROR
    - anything else        500  INTERNAL_ERROR
"""

# ================================================================================
# IMPORTS
# ================================================================================

from typing import Any, Dict, Optional

# ================================================================================
# SECTION 1: BASE EXCEPTION
# ================================================================================

class AppError(Exception):
    """
    Root exception for all application errors.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status returned to the client
        error_code (str): Machine-readable error code for categorization
        details (dict): Additional context (optional, hidden in production)
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        """Convert exception to the `error` object of a JSON response"""
        body: Dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if include_details and self.details:
            body["details"] = self.details
        return body

# ================================================================================
# SECTION 2: HTTP-MAPPED EXCEPTIONS
# ================================================================================

class ValidationError(AppError):
    """Request validation failed"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, "VALIDATION_ERROR", details)


class AuthError(AppError):
    """Missing or invalid credentials"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 401, "AUTH_ERROR", details)


class ForbiddenError(AppError):
    """Authenticated but not allowed"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 403, "FORBIDDEN", details)


class NotFoundError(AppError):
    """Resource does not exist"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 404, "NOT_FOUND", details)


class ConflictError(AppError):
    """Resource state conflict (duplicate, stale write)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, "CONFLICT", details)


class RateLimitError(AppError):
    """
    Too many requests.

    details carries `reset_after`, `limit` and `remaining` so the rate limit
    response can fill its headers.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 429, "RATE_LIMIT", details)


class ServerError(AppError):
    """Generic server-side failure"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 500, "SERVER_ERROR", details)

# ================================================================================
# SECTION 3: STARTUP / SERVICE EXCEPTIONS
# ================================================================================

class ConfigurationError(AppError):
    """Invalid or missing environment configuration (fatal at startup)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 500, "CONFIG_ERROR", details)


class ServiceConnectionError(AppError):
    """A backing service (MongoDB, Redis, HTTP listener) could not be reached"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 503, "SERVICE_UNAVAILABLE", details)


def is_app_error(error: BaseException) -> bool:
    return isinstance(error, AppError)


_STATUS_TO_ERROR = {
    400: ValidationError,
    401: AuthError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitError,
}


def create_error_from_status(
    status: int,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> AppError:
    """
    Build the AppError subclass matching an HTTP status.

    Unknown statuses fall back to ServerError.
    """
    error_cls = _STATUS_TO_ERROR.get(status, ServerError)
    return error_cls(message, details)
