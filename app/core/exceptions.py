"""
Application exceptions, rendered to JSON by error_handlers
"""

from typing import Optional, Dict, Any


class BaseAppException(Exception):
    """Base of every error the API reports with its own status code"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


# === Auth ===
class AuthenticationError(BaseAppException):
    """Missing, invalid or expired bearer token"""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 401, "AUTHENTICATION_ERROR", details)


class PermissionDeniedError(BaseAppException):
    """Caller lacks the authority for the action"""

    def __init__(
        self,
        action: str,
        resource: str,
        reason: str = None,
        error_code: str = "PERMISSION_DENIED",
    ):
        message = f"Permission denied: cannot {action} {resource}"
        if reason:
            message += f" - {reason}"
        details = {"action": action, "resource": resource, "reason": reason}
        super().__init__(message, 403, error_code, details)


class NotSupervisingError(PermissionDeniedError):
    """A REGIONAL user tried to reach a club they are not linked to"""

    def __init__(self, regional_id: int, club_id: int):
        super().__init__(
            "access",
            "club",
            "regional user does not supervise this club",
            error_code="NOT_SUPERVISING",
        )
        self.details.update({"regional_id": regional_id, "club_id": club_id})


# === Validation ===
class ValidationError(BaseAppException):
    """Malformed or out-of-range input"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, "VALIDATION_ERROR", details)


class DuplicateError(BaseAppException):
    def __init__(self, resource: str, field: str, value: str):
        message = f"{resource} with {field} '{value}' already exists"
        details = {"resource": resource, "field": field, "value": value}
        super().__init__(message, 409, "DUPLICATE_ERROR", details)


# === Resources ===
class NotFoundError(BaseAppException):
    def __init__(self, resource: str, identifier: str = None):
        if identifier:
            message = f"{resource} with identifier '{identifier}' not found"
            details = {"resource": resource, "identifier": identifier}
        else:
            message = f"{resource} not found"
            details = {"resource": resource}
        super().__init__(message, 404, "NOT_FOUND", details)


# === Business rules ===
class BusinessLogicError(BaseAppException):
    """Business rule violation; ``rule`` names the rule that failed"""

    def __init__(
        self, message: str, rule: str, details: Optional[Dict[str, Any]] = None
    ):
        error_details = {"rule": rule}
        if details:
            error_details.update(details)
        super().__init__(message, 400, "BUSINESS_LOGIC_ERROR", error_details)


# === Database ===
class DatabaseError(BaseAppException):
    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 500, "DATABASE_ERROR", details)


class DatabaseConnectionError(BaseAppException):
    def __init__(self, message: str = "Database connection failed"):
        super().__init__(message, 503, "DATABASE_CONNECTION_ERROR")


class DatabaseTimeoutError(BaseAppException):
    def __init__(self, operation: str, timeout: int):
        message = f"Database operation '{operation}' timed out after {timeout}s"
        details = {"operation": operation, "timeout": timeout}
        super().__init__(message, 504, "DATABASE_TIMEOUT", details)


class DatabaseIntegrityError(BaseAppException):
    """Constraint violation not mapped to a domain error"""

    def __init__(self, constraint: str, details: Optional[Dict[str, Any]] = None):
        message = f"Database integrity constraint violated: {constraint}"
        error_details = {"constraint": constraint}
        if details:
            error_details.update(details)
        super().__init__(message, 409, "DATABASE_INTEGRITY_ERROR", error_details)


# === Configuration ===
class ConfigurationError(BaseAppException):
    def __init__(self, parameter: str, message: str = None):
        message = (
            message or f"Configuration parameter '{parameter}' is invalid or missing"
        )
        details = {"parameter": parameter}
        super().__init__(message, 500, "CONFIGURATION_ERROR", details)
