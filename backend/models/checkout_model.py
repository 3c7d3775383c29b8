from pydantic import BaseModel, Field, AliasChoices
from typing import List, Optional
from datetime import datetime
from enum import Enum


class CheckoutStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class CheckoutSession(BaseModel):
    id: str
    user_id: str
    course_ids: List[str]
    total_amount: int
    discount_amount: int = 0
    coupon_id: Optional[str] = None
    payment_method: str = "VietQR"
    status: CheckoutStatus = CheckoutStatus.PENDING
    created_at: datetime
    processed_at: Optional[datetime] = None


class CreateCheckoutRequest(BaseModel):
    course_ids: List[str] = Field(default=[], validation_alias=AliasChoices("course_ids", "courseIds"))
    coupon_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("coupon_code", "couponCode"))
    total_amount: Optional[float] = Field(default=None, validation_alias=AliasChoices("total_amount", "totalAmount"))


class CheckCouponRequest(BaseModel):
    code: str = Field(validation_alias=AliasChoices("code", "couponCode"))
    course_ids: List[str] = Field(validation_alias=AliasChoices("course_ids", "courseIds"))


class ApplyCouponRequest(BaseModel):
    code: str = Field(validation_alias=AliasChoices("code", "couponCode"))


class CheckoutResponse(BaseModel):
    checkout_id: str
    total_amount: int
    discount_amount: int
    coupon_code: Optional[str] = None
    payment_method: str
    status: CheckoutStatus


class AppliedCouponResponse(BaseModel):
    total_amount: int
    discount_amount: int
    coupon_code: Optional[str] = None


class CheckoutStatusResponse(BaseModel):
    id: str
    status: CheckoutStatus
    course_ids: List[str]
    total_amount: int
    discount_amount: int
    coupon_code: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None
