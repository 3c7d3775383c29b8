from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class Coupon(BaseModel):
    id: str
    code: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal
    is_active: bool = True
    expires_at: Optional[datetime] = None
    max_uses: Optional[int] = None
    used_count: int = 0


class CouponEvaluation(BaseModel):
    discount_amount: Decimal
    original_total: Decimal


class CouponCheckResponse(BaseModel):
    valid: bool
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    original_total: int
    discount_amount: int
    new_total: int


class AvailableCoupon(BaseModel):
    code: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal
    expires_at: Optional[datetime] = None
    remaining_uses: Optional[int] = None
