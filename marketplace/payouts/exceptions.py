from typing import Any, Optional
from fastapi import HTTPException, status


class PayoutError(HTTPException):
    """Base for payout errors , rendered by the shared http exception handler."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "PAYOUT_ERROR"

    def __init__(self, detail: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(status_code=self.status_code, detail=detail)
        self.errors = errors


class PayoutValidationError(PayoutError):
    code = "VALIDATION_ERROR"


class PayoutLimitExceededError(PayoutError):
    code = "LIMIT_EXCEEDED"


class PayoutAuthenticationError(PayoutError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_FAILED"


class PayoutNotFoundError(PayoutError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
