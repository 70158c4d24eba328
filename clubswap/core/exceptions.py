"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(AppException):
    """Request conflicts with the current state of a resource."""

    def __init__(self, detail: str = "The resource was modified by another request") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ListingNotAvailable(ConflictError):
    """Listing not available for the requested dates."""

    def __init__(self, detail: str = "Listing is not available for selected dates") -> None:
        super().__init__(detail=detail)


class InvalidBookingStatus(ConflictError):
    """Invalid booking status for operation."""

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(detail=detail)


class DuplicateReview(ConflictError):
    """A review of this kind was already submitted for the booking."""

    def __init__(self, detail: str = "You have already reviewed this booking") -> None:
        super().__init__(detail=detail)


class PaymentError(AppException):
    """Payment processing error."""

    retryable: bool = False

    def __init__(
        self,
        detail: str = "Payment processing failed",
        status_code: int = status.HTTP_402_PAYMENT_REQUIRED,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail)


class PaymentDeclined(PaymentError):
    """The processor declined the card or funds. Not worth retrying."""

    retryable = False

    def __init__(self, detail: str = "Your payment method was declined") -> None:
        super().__init__(detail=detail)


class PaymentGatewayUnavailable(PaymentError):
    """Transient gateway failure. The caller may retry the whole operation."""

    retryable = True

    def __init__(self, detail: str = "Payment processor is temporarily unavailable. Please try again.") -> None:
        super().__init__(detail=detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
