"""Custom exceptions for the application."""


class BaseAPIException(Exception):
    """Base exception for API errors."""
    
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = None,
        details: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseAPIException):
    """Missing or malformed input."""
    
    def __init__(self, message: str = "Validation failed", details: dict = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class InvalidCredentialError(BaseAPIException):
    """Unknown email.
    
    The message stays generic so callers cannot enumerate accounts.
    """
    
    def __init__(
        self,
        message: str = "Invalid email",
        status_code: int = 400,
        details: dict = None
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="INVALID_CREDENTIAL",
            details=details
        )


class AccountStateError(BaseAPIException):
    """Account exists but may not authenticate (unverified or inactive)."""
    
    def __init__(self, message: str = "Account cannot be used", details: dict = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="ACCOUNT_STATE_ERROR",
            details=details
        )


class OTPStateError(BaseAPIException):
    """OTP absent, expired or mismatched."""
    
    def __init__(self, message: str = "Invalid OTP", details: dict = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="OTP_STATE_ERROR",
            details=details
        )


class AuthenticationError(BaseAPIException):
    """Authentication error."""
    
    def __init__(self, message: str = "Not authorized to access this route", details: dict = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_ERROR",
            details=details
        )


class NotFoundError(BaseAPIException):
    """Resource not found error."""
    
    def __init__(self, message: str = "Resource not found", details: dict = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND_ERROR",
            details=details
        )


class DeliveryError(BaseAPIException):
    """Notification transport failure."""
    
    def __init__(self, message: str = "Failed to send OTP email", details: dict = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="DELIVERY_ERROR",
            details=details
        )


class StoreError(BaseAPIException):
    """Persistence failure."""
    
    def __init__(
        self,
        message: str = "Unable to save user",
        status_code: int = 500,
        error_code: str = "STORE_ERROR",
        details: dict = None
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )


class DuplicateEmailError(StoreError):
    """Unique email constraint violated."""
    
    def __init__(self, message: str = "Email is already in use", details: dict = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="DUPLICATE_EMAIL",
            details=details
        )
