"""
Domain exceptions.

Domain exceptions represent business rule violations
and domain-specific error conditions. The API layer maps each
family onto an HTTP status (see api.exceptions).
"""


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    def __init__(self, message: str, code: str = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainException):
    """Raised when input or target state makes the action invalid."""

    def __init__(self, message: str = "Invalid request", code: str = "VALIDATION_ERROR"):
        super().__init__(message, code=code)


class AuthorizationError(DomainException):
    """Raised when the actor is not permitted to perform the action."""

    def __init__(self, message: str = "Action not permitted", code: str = "NOT_AUTHORIZED"):
        super().__init__(message, code=code)


class ConflictError(DomainException):
    """Raised when the target changed state underneath the caller."""

    def __init__(self, message: str = "Resource state conflict", code: str = "CONFLICT"):
        super().__init__(message, code=code)


class NotFoundError(DomainException):
    """Base exception for missing (or invisible) resources."""

    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(message, code=code)


class OrganizationNotFoundError(NotFoundError):
    """Raised when an organization is not found."""

    def __init__(self, message: str = "Organization not found"):
        super().__init__(message, code="ORGANIZATION_NOT_FOUND")


class DeviceNotFoundError(NotFoundError):
    """Raised when a device is not found or not owned by the caller's scope."""

    def __init__(self, message: str = "Device not found"):
        super().__init__(message, code="DEVICE_NOT_FOUND")


class RenewalRequestNotFoundError(NotFoundError):
    """Raised when a renewal request is not found."""

    def __init__(self, message: str = "Renewal request not found"):
        super().__init__(message, code="REQUEST_NOT_FOUND")


class QuoteArtifactNotFoundError(NotFoundError):
    """Raised when a request has no stored quote artifact."""

    def __init__(self, message: str = "Quote not found"):
        super().__init__(message, code="QUOTE_NOT_FOUND")


class InvalidAPIKeyError(AuthorizationError):
    """Raised when an API key is invalid."""

    def __init__(self, message: str = "Invalid API key"):
        super().__init__(message, code="INVALID_API_KEY")


class ExternalServiceError(DomainException):
    """Raised when a collaborator (payment, renderer, geocoder) fails."""

    def __init__(self, message: str = "External service failed", code: str = "EXTERNAL_SERVICE_ERROR"):
        super().__init__(message, code=code)


class TransientExternalServiceError(ExternalServiceError):
    """Raised for timeouts and unavailability; safe to retry."""

    def __init__(self, message: str = "External service unavailable"):
        super().__init__(message, code="EXTERNAL_SERVICE_UNAVAILABLE")


class PaymentDeclinedError(ExternalServiceError):
    """Raised when the payment gateway definitively declines a charge."""

    def __init__(self, message: str = "Payment declined"):
        super().__init__(message, code="PAYMENT_DECLINED")
