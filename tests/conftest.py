import os

os.environ.setdefault("JWT_SECRET", "test-jwt-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("CASSO_SECURE_TOKEN", "test-casso-token")
os.environ.setdefault("ENABLE_PAYMENT_SIMULATION", "true")

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from db.checkout_store import VN_TZ


def by_query(responses, default=None):
    """Build an AsyncMock side effect that answers by SQL fragment.

    Values may be callables; they receive the positional query arguments.
    """

    async def respond(query, *args):
        for fragment, value in responses.items():
            if fragment in query:
                return value(*args) if callable(value) else value
        return default

    return respond


class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type:
            self.conn.rollbacks += 1
        else:
            self.conn.commits += 1
        return False


class FakeConnection:
    def __init__(self):
        self.fetch = AsyncMock(return_value=[])
        self.fetchrow = AsyncMock(return_value=None)
        self.fetchval = AsyncMock(return_value=None)
        self.execute = AsyncMock(return_value="UPDATE 1")
        self.transactions = 0
        self.commits = 0
        self.rollbacks = 0

    def transaction(self):
        return FakeTransaction(self)

    def executed(self, fragment):
        return [c for c in self.execute.await_args_list if fragment in c.args[0]]


class SettlementDb(FakeConnection):
    """Fake connection holding one checkout session, one coupon and a buyer.

    Writes update the in-memory state only when the surrounding fake
    transaction commits, mirroring rollback behaviour.
    """

    def __init__(self, session, coupon=None, user=None, courses=()):
        super().__init__()
        self.session = session
        self.coupon = coupon
        self.user = user or {"email": "buyer@example.com", "full_name": "Linh Tran"}
        self.courses = list(courses)
        self.bills = []
        self.enrollments = {}
        self.pending = []
        self.fetchrow.side_effect = by_query(
            {
                "FROM checkout_sessions WHERE id": lambda *a: dict(self.session),
                "FROM users": self.user,
                "FROM coupons WHERE id": lambda *a: dict(self.coupon) if self.coupon else None,
            }
        )
        self.fetchval.side_effect = by_query({"INSERT INTO bills": self._insert_bill})
        self.execute.side_effect = by_query(
            {
                "INSERT INTO enrollments": self._upsert_enrollment,
                "DELETE FROM wishlists": "DELETE 0",
                "UPDATE coupons": self._increment_coupon,
                "UPDATE checkout_sessions SET status": self._complete,
            },
            default="UPDATE 1",
        )
        self.fetch.side_effect = by_query({"FROM courses": self.courses})

    def _insert_bill(self, bill_id, user_id, checkout_id, amount, *rest):
        bill = {"id": bill_id, "user_id": user_id, "checkout_id": checkout_id, "amount": amount}
        self.pending.append(lambda: self.bills.append(bill))
        return bill_id

    def _upsert_enrollment(self, user_id, course_id, bill_id):
        self.pending.append(
            lambda: self.enrollments.__setitem__((user_id, course_id), {"status": "Active", "bill_id": bill_id})
        )
        return "INSERT 0 1"

    def _increment_coupon(self, coupon_id):
        coupon = self.coupon
        if coupon["max_uses"] is not None and coupon["used_count"] >= coupon["max_uses"]:
            return "UPDATE 0"
        self.pending.append(lambda: coupon.__setitem__("used_count", coupon["used_count"] + 1))
        return "UPDATE 1"

    def _complete(self, processed_at, session_id):
        if self.session["status"] != "PENDING":
            return "UPDATE 0"
        self.pending.append(
            lambda: self.session.update(status="COMPLETED", processed_at=processed_at)
        )
        return "UPDATE 1"

    def transaction(self):
        conn = self

        class _Tx(FakeTransaction):
            async def __aexit__(self, exc_type, exc, tb):
                if not exc_type:
                    for apply in conn.pending:
                        apply()
                conn.pending = []
                return await super().__aexit__(exc_type, exc, tb)

        return _Tx(self)


@pytest.fixture
def now():
    return datetime.now(VN_TZ)


@pytest.fixture
def coupon_row(now):
    return {
        "id": "coupon-save10",
        "code": "SAVE10",
        "description": "10% off",
        "discount_type": "PERCENTAGE",
        "discount_value": Decimal("10"),
        "is_active": True,
        "expires_at": now + timedelta(days=7),
        "max_uses": 100,
        "used_count": 0,
    }


@pytest.fixture
def course_rows():
    return [
        {"id": "course-python", "title": "Python for Data", "price": Decimal("100000"), "thumbnail_url": None},
        {"id": "course-sql", "title": "SQL Fundamentals", "price": Decimal("50000"), "thumbnail_url": None},
    ]


@pytest.fixture
def session_row(now):
    return {
        "id": "checkout-1",
        "user_id": "user-1",
        "course_ids": ["course-python", "course-sql"],
        "total_amount": 135000,
        "discount_amount": 15000,
        "coupon_id": "coupon-save10",
        "payment_method": "VietQR",
        "status": "PENDING",
        "created_at": now,
        "processed_at": None,
    }
