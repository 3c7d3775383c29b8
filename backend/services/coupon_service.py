from fastapi import HTTPException
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional
from models.coupon_model import (
    Coupon,
    CouponEvaluation,
    DiscountType,
    AvailableCoupon,
)
from db.checkout_store import VN_TZ, fetch_coupon_by_code, fetch_available_coupons
from utils.errors import (
    InvalidCoupon,
    CouponInactive,
    CouponExpired,
    CouponExhausted,
)


def evaluate(
    coupon: Optional[Coupon], course_prices: Iterable, now: Optional[datetime] = None
):
    """Compute the discount a coupon gives on a set of course prices.

    Raises the coupon error matching the first failed check. The discount is
    clamped to the price total so the payable amount never goes negative.
    """
    if coupon is None:
        raise InvalidCoupon("Coupon code is invalid")
    if not coupon.is_active:
        raise CouponInactive("Coupon is no longer active")
    now = now or datetime.now(VN_TZ)
    if coupon.expires_at is not None and coupon.expires_at <= now:
        raise CouponExpired("Coupon has expired")
    if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
        raise CouponExhausted("Coupon usage limit has been reached")

    original_total = sum((Decimal(str(price)) for price in course_prices), Decimal(0))
    value = Decimal(coupon.discount_value)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount_amount = original_total * value / 100
    else:
        discount_amount = value
    discount_amount = max(Decimal(0), min(discount_amount, original_total))
    return CouponEvaluation(discount_amount=discount_amount, original_total=original_total)


async def get_coupon_by_code(code: str, db):
    try:
        row = await fetch_coupon_by_code(code, db)
        return Coupon(**row) if row else None
    except Exception as e:
        print(f"Coupon lookup failed: {e}")
        raise HTTPException(status_code=500, detail="Coupon lookup failed")


async def list_available_coupons(db):
    try:
        rows = await fetch_available_coupons(db)
        return [
            AvailableCoupon(
                code=row["code"],
                description=row.get("description"),
                discount_type=DiscountType(row["discount_type"]),
                discount_value=row["discount_value"],
                expires_at=row.get("expires_at"),
                remaining_uses=(
                    row["max_uses"] - row["used_count"]
                    if row.get("max_uses") is not None
                    else None
                ),
            )
            for row in rows
        ]
    except Exception as e:
        print(f"Could not list coupons: {e}")
        raise HTTPException(status_code=500, detail="Could not list coupons")
