from fastapi import HTTPException
from typing import Optional


class CheckoutError(HTTPException):
    status_code = 400
    reason = "CheckoutError"

    def __init__(self, detail: str, reason: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail)
        if reason:
            self.reason = reason


class ValidationError(CheckoutError):
    status_code = 400
    reason = "ValidationError"


class NotFoundError(CheckoutError):
    status_code = 404
    reason = "NotFound"


class StateConflictError(CheckoutError):
    status_code = 409
    reason = "StateConflict"


class AuthorizationError(CheckoutError):
    status_code = 401
    reason = "Unauthorized"


class CoursesUnavailable(ValidationError):
    reason = "CoursesUnavailable"


class InvalidCoupon(NotFoundError):
    reason = "InvalidCoupon"


class CouponInactive(ValidationError):
    reason = "CouponInactive"


class CouponExpired(ValidationError):
    reason = "CouponExpired"


class CouponExhausted(StateConflictError):
    reason = "CouponExhausted"


class AlreadyCompleted(StateConflictError):
    reason = "AlreadyCompleted"


class UpstreamError(Exception):
    """Failure talking to a collaborator outside the request path (mail, queue)."""
