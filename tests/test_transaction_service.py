from decimal import Decimal

import pytest
from fastapi import HTTPException

from services.transaction_service import get_user_transactions
from conftest import FakeConnection, by_query


async def test_transactions_group_courses_by_bill(now):
    db = FakeConnection()
    bills = [
        {
            "id": "bill-2",
            "transaction_id": "FT-2",
            "created_at": now,
            "amount": 50000,
            "original_amount": 50000,
            "discount_amount": 0,
            "is_successful": True,
            "gateway": "VietQR (Casso)",
        },
        {
            "id": "bill-1",
            "transaction_id": "TXN_1",
            "created_at": now,
            "amount": 135000,
            "original_amount": 150000,
            "discount_amount": 15000,
            "is_successful": True,
            "gateway": "VietQR",
        },
    ]
    items = [
        {"bill_id": "bill-1", "course_id": "course-python", "title": "Python for Data", "thumbnail_url": None, "price": Decimal("100000")},
        {"bill_id": "bill-1", "course_id": "course-sql", "title": "SQL Fundamentals", "thumbnail_url": None, "price": Decimal("50000")},
    ]
    db.fetch.side_effect = by_query({"FROM bills": bills, "FROM enrollments": items})

    transactions = await get_user_transactions("user-1", db)

    assert [t.id for t in transactions] == ["bill-2", "bill-1"]
    assert transactions[0].items == []
    assert [i.course_id for i in transactions[1].items] == ["course-python", "course-sql"]
    assert transactions[1].discount_amount == 15000
    assert transactions[1].status == "Successful"


async def test_no_bills_skips_item_query():
    db = FakeConnection()
    assert await get_user_transactions("user-1", db) == []
    assert db.fetch.await_count == 1


async def test_storage_error_is_reported_as_500():
    db = FakeConnection()
    db.fetch.side_effect = RuntimeError("connection lost")
    with pytest.raises(HTTPException) as exc_info:
        await get_user_transactions("user-1", db)
    assert exc_info.value.status_code == 500
