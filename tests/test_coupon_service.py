from datetime import timedelta
from decimal import Decimal

import pytest

from models.coupon_model import Coupon, DiscountType
from services.coupon_service import evaluate, get_coupon_by_code, list_available_coupons
from utils.errors import (
    InvalidCoupon,
    CouponInactive,
    CouponExpired,
    CouponExhausted,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from conftest import FakeConnection


def make_coupon(**overrides):
    fields = {
        "id": "c1",
        "code": "SAVE20",
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": Decimal("20"),
        "is_active": True,
        "expires_at": None,
        "max_uses": None,
        "used_count": 0,
    }
    fields.update(overrides)
    return Coupon(**fields)


def test_percentage_discount_on_total():
    result = evaluate(make_coupon(), [1000])
    assert result.original_total == 1000
    assert result.discount_amount == 200


def test_percentage_discount_sums_all_prices():
    result = evaluate(make_coupon(discount_value=Decimal("10")), [Decimal("100000"), Decimal("50000")])
    assert result.original_total == 150000
    assert result.discount_amount == 15000


def test_fixed_discount_is_taken_as_is():
    result = evaluate(make_coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("300")), [1000])
    assert result.discount_amount == 300


def test_fixed_discount_larger_than_total_is_clamped():
    result = evaluate(make_coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("5000")), [1000, 500])
    assert result.discount_amount == 1500
    assert result.original_total - result.discount_amount == 0


def test_percentage_over_hundred_is_clamped():
    result = evaluate(make_coupon(discount_value=Decimal("150")), [1000])
    assert result.discount_amount == 1000


def test_empty_price_list_gives_zero_discount():
    result = evaluate(make_coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("100")), [])
    assert result.discount_amount == 0


def test_missing_coupon_is_invalid():
    with pytest.raises(InvalidCoupon) as exc_info:
        evaluate(None, [1000])
    assert exc_info.value.status_code == 404
    assert exc_info.value.reason == "InvalidCoupon"
    assert isinstance(exc_info.value, NotFoundError)


def test_inactive_coupon_is_rejected():
    with pytest.raises(CouponInactive) as exc_info:
        evaluate(make_coupon(is_active=False), [1000])
    assert isinstance(exc_info.value, ValidationError)


def test_expired_coupon_is_rejected(now):
    with pytest.raises(CouponExpired):
        evaluate(make_coupon(expires_at=now - timedelta(minutes=1)), [1000], now=now)


def test_coupon_expiring_later_is_accepted(now):
    result = evaluate(make_coupon(expires_at=now + timedelta(hours=1)), [1000], now=now)
    assert result.discount_amount == 200


def test_exhausted_coupon_is_rejected():
    with pytest.raises(CouponExhausted) as exc_info:
        evaluate(make_coupon(max_uses=5, used_count=5), [1000])
    assert isinstance(exc_info.value, StateConflictError)
    assert exc_info.value.status_code == 409


def test_inactive_check_runs_before_expiry(now):
    coupon = make_coupon(is_active=False, expires_at=now - timedelta(days=1), max_uses=1, used_count=1)
    with pytest.raises(CouponInactive):
        evaluate(coupon, [1000], now=now)


async def test_get_coupon_by_code_normalizes_code(coupon_row):
    db = FakeConnection()
    db.fetchrow.return_value = coupon_row
    coupon = await get_coupon_by_code("  save10 ", db)
    assert coupon.code == "SAVE10"
    assert db.fetchrow.await_args.args[1] == "SAVE10"


async def test_get_coupon_by_code_returns_none_when_missing():
    db = FakeConnection()
    assert await get_coupon_by_code("NOPE", db) is None


async def test_list_available_coupons_reports_remaining_uses(coupon_row):
    unlimited = dict(coupon_row, id="c2", code="FOREVER", max_uses=None)
    db = FakeConnection()
    db.fetch.return_value = [dict(coupon_row, used_count=40), unlimited]
    coupons = await list_available_coupons(db)
    assert [c.code for c in coupons] == ["SAVE10", "FOREVER"]
    assert coupons[0].remaining_uses == 60
    assert coupons[1].remaining_uses is None
