from typing import Optional, Dict, Any


class AppException(Exception):
    """Base application exception"""
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "APP_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_ERROR",
            details=details
        )


class AuthorizationError(AppException):
    """Authorization related errors"""
    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="AUTHZ_ERROR",
            details=details
        )


class NotFoundError(AppException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details
        )


class ValidationError(AppException):
    """Validation errors"""
    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            message=message,
            status_code=422,
            error_code=error_code,
            details=details
        )


class ConflictError(AppException):
    """Request conflicts with the current state of a resource"""
    def __init__(
        self,
        message: str = "Conflict with current state",
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "CONFLICT"
    ):
        super().__init__(
            message=message,
            status_code=409,
            error_code=error_code,
            details=details
        )


class InvalidContractTerms(ValidationError):
    """Contract value or duration out of range"""
    def __init__(self, message: str = "Invalid contract terms", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="INVALID_CONTRACT_TERMS")


class DealAlreadyClosed(ConflictError):
    """Customer deal was already closed"""
    def __init__(self, message: str = "Customer deal is already closed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="DEAL_ALREADY_CLOSED")


class NotActiveContract(ConflictError):
    """Contract can only be ended for active customers"""
    def __init__(self, message: str = "Customer has no active contract", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="NOT_ACTIVE_CONTRACT")


class InvalidStateTransition(ConflictError):
    """Commission status change not allowed"""
    def __init__(self, message: str = "Invalid state transition", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="INVALID_STATE_TRANSITION")
