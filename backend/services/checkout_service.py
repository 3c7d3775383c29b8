from fastapi import HTTPException
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from models.checkout_model import (
    CheckoutResponse,
    CheckoutStatus,
    CheckoutStatusResponse,
    AppliedCouponResponse,
)
from models.coupon_model import Coupon, CouponCheckResponse
from services.coupon_service import evaluate, get_coupon_by_code
from db.checkout_store import (
    fetch_purchasable_courses,
    fetch_courses_by_ids,
    fetch_owned_session,
    insert_session,
    update_session_coupon,
)
from utils.errors import (
    ValidationError,
    NotFoundError,
    CoursesUnavailable,
    AlreadyCompleted,
    InvalidCoupon,
)


def to_amount(value):
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def price_summary(course_prices: List, coupon: Optional[Coupon] = None):
    """Return (subtotal, discount, total) in whole currency units."""
    if coupon is None:
        subtotal = to_amount(sum((Decimal(str(p)) for p in course_prices), Decimal(0)))
        return subtotal, 0, subtotal
    evaluation = evaluate(coupon, course_prices)
    subtotal = to_amount(evaluation.original_total)
    discount = min(to_amount(evaluation.discount_amount), subtotal)
    return subtotal, discount, subtotal - discount


def unique_ids(course_ids: List[str]):
    return list(dict.fromkeys(course_id for course_id in course_ids if course_id))


async def load_course_prices(course_ids: List[str], db):
    courses = await fetch_purchasable_courses(course_ids, db)
    if len(courses) != len(course_ids):
        found = {course["id"] for course in courses}
        missing = [course_id for course_id in course_ids if course_id not in found]
        print(f"Courses unavailable for checkout: {missing}")
        raise CoursesUnavailable("Some courses are invalid or unavailable")
    return [course["price"] for course in courses]


async def load_session_prices(course_ids: List[str], db):
    courses = await fetch_courses_by_ids(course_ids, db)
    if len(courses) != len(course_ids):
        raise CoursesUnavailable("Some courses in this checkout no longer exist")
    return [course["price"] for course in courses]


async def resolve_coupon(code: str, db):
    coupon = await get_coupon_by_code(code, db)
    if coupon is None:
        raise InvalidCoupon("Coupon code is invalid")
    return coupon


async def create_session(
    user_id: str,
    course_ids: List[str],
    coupon_code: Optional[str],
    db,
    client_total: Optional[float] = None,
):
    course_ids = unique_ids(course_ids or [])
    if not course_ids:
        raise ValidationError("No courses selected")
    try:
        prices = await load_course_prices(course_ids, db)
        coupon = await resolve_coupon(coupon_code, db) if coupon_code and coupon_code.strip() else None
        subtotal, discount, total = price_summary(prices, coupon)
        if client_total is not None and abs(Decimal(str(client_total)) - subtotal) > 1:
            print(f"Client total {client_total} differs from calculated subtotal {subtotal}, using calculated")

        session = await insert_session(
            user_id,
            course_ids,
            total,
            discount,
            coupon.id if coupon else None,
            db,
        )
        print(f"Checkout {session['id']} created for user {user_id}: {len(course_ids)} courses, total {total}")
        return CheckoutResponse(
            checkout_id=session["id"],
            total_amount=session["total_amount"],
            discount_amount=session["discount_amount"],
            coupon_code=coupon.code if coupon else None,
            payment_method=session["payment_method"],
            status=CheckoutStatus(session["status"]),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Create checkout failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to create checkout session")


async def load_pending_session(session_id: str, user_id: str, db):
    session = await fetch_owned_session(session_id, user_id, db)
    if not session:
        raise NotFoundError("Checkout session not found")
    if session["status"] != CheckoutStatus.PENDING.value:
        raise AlreadyCompleted("Checkout session is already completed")
    return session


async def apply_coupon(session_id: str, user_id: str, code: str, db):
    if not code or not code.strip():
        raise ValidationError("Coupon code is required")
    try:
        session = await load_pending_session(session_id, user_id, db)
        prices = await load_session_prices(session["course_ids"], db)
        coupon = await resolve_coupon(code, db)
        _, discount, total = price_summary(prices, coupon)
        if not await update_session_coupon(session_id, user_id, coupon.id, discount, total, db):
            # settled between our read and the update
            raise AlreadyCompleted("Checkout session is already completed")
        print(f"Coupon {coupon.code} applied to checkout {session_id}: discount {discount}")
        return AppliedCouponResponse(
            total_amount=total, discount_amount=discount, coupon_code=coupon.code
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Apply coupon failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to apply coupon")


async def remove_coupon(session_id: str, user_id: str, db):
    try:
        session = await load_pending_session(session_id, user_id, db)
        prices = await load_session_prices(session["course_ids"], db)
        _, _, total = price_summary(prices)
        if not await update_session_coupon(session_id, user_id, None, 0, total, db):
            raise AlreadyCompleted("Checkout session is already completed")
        print(f"Coupon removed from checkout {session_id}")
        return AppliedCouponResponse(total_amount=total, discount_amount=0, coupon_code=None)
    except HTTPException:
        raise
    except Exception as e:
        print(f"Remove coupon failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove coupon")


async def check_coupon(code: str, course_ids: List[str], db):
    course_ids = unique_ids(course_ids or [])
    if not code or not code.strip():
        raise ValidationError("Coupon code is required")
    if not course_ids:
        raise ValidationError("No courses selected")
    try:
        prices = await load_course_prices(course_ids, db)
        coupon = await resolve_coupon(code, db)
        subtotal, discount, total = price_summary(prices, coupon)
        return CouponCheckResponse(
            valid=True,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            original_total=subtotal,
            discount_amount=discount,
            new_total=total,
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Check coupon failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to check coupon")


async def get_checkout_status(session_id: str, user_id: str, db):
    try:
        session = await fetch_owned_session(session_id, user_id, db)
        if not session:
            raise NotFoundError("Checkout session not found")
        return CheckoutStatusResponse(
            id=session["id"],
            status=CheckoutStatus(session["status"]),
            course_ids=session["course_ids"],
            total_amount=session["total_amount"],
            discount_amount=session["discount_amount"],
            coupon_code=session.get("coupon_code"),
            created_at=session["created_at"],
            processed_at=session.get("processed_at"),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Get checkout status failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to get checkout status")
