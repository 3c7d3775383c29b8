"""SQL access for checkout sessions, coupons and the course catalog.

Every function takes an asyncpg connection so callers decide the transaction
boundary. Row values come back as plain dicts.
"""
from datetime import datetime
from zoneinfo import ZoneInfo
from typing import List, Optional
import uuid

VN_TZ = ZoneInfo("Asia/Ho_Chi_Minh")

PURCHASABLE_STATUS = "Ongoing"
APPROVED = "APPROVED"


def new_id():
    return str(uuid.uuid4())


async def fetch_purchasable_courses(course_ids: List[str], db):
    select_query = "SELECT id, title, price FROM courses WHERE id = ANY($1::text[]) AND status = $2 AND approval_status = $3"
    rows = await db.fetch(select_query, course_ids, PURCHASABLE_STATUS, APPROVED)
    return [dict(row) for row in rows]


async def fetch_courses_by_ids(course_ids: List[str], db):
    select_query = "SELECT id, title, price, thumbnail_url FROM courses WHERE id = ANY($1::text[])"
    rows = await db.fetch(select_query, course_ids)
    by_id = {row["id"]: dict(row) for row in rows}
    return [by_id[course_id] for course_id in course_ids if course_id in by_id]


async def insert_session(
    user_id: str,
    course_ids: List[str],
    total_amount: int,
    discount_amount: int,
    coupon_id: Optional[str],
    db,
    payment_method: str = "VietQR",
):
    insert_query = """
        INSERT INTO checkout_sessions (id, user_id, course_ids, total_amount,
                                       discount_amount, coupon_id, payment_method,
                                       status, created_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, 'PENDING', $8)
        RETURNING *
    """
    row = await db.fetchrow(
        insert_query,
        new_id(),
        user_id,
        course_ids,
        total_amount,
        discount_amount,
        coupon_id,
        payment_method,
        datetime.now(VN_TZ),
    )
    return dict(row)


async def fetch_session(session_id: str, db, for_update: bool = False):
    select_query = "SELECT * FROM checkout_sessions WHERE id = $1"
    if for_update:
        select_query += " FOR UPDATE"
    row = await db.fetchrow(select_query, session_id)
    return dict(row) if row else None


async def fetch_owned_session(session_id: str, user_id: str, db):
    select_query = """
        SELECT cs.*, c.code AS coupon_code
        FROM checkout_sessions cs
        LEFT JOIN coupons c ON cs.coupon_id = c.id
        WHERE cs.id = $1 AND cs.user_id = $2
    """
    row = await db.fetchrow(select_query, session_id, user_id)
    return dict(row) if row else None


async def update_session_coupon(
    session_id: str,
    user_id: str,
    coupon_id: Optional[str],
    discount_amount: int,
    total_amount: int,
    db,
):
    """Overwrite the coupon on a still-pending session. Returns False when no row matched."""
    update_query = """
        UPDATE checkout_sessions
        SET coupon_id = $1, discount_amount = $2, total_amount = $3
        WHERE id = $4 AND user_id = $5 AND status = 'PENDING'
    """
    result = await db.execute(
        update_query, coupon_id, discount_amount, total_amount, session_id, user_id
    )
    return result == "UPDATE 1"


async def mark_session_completed(session_id: str, db):
    update_query = "UPDATE checkout_sessions SET status = 'COMPLETED', processed_at = $1 WHERE id = $2 AND status = 'PENDING'"
    result = await db.execute(update_query, datetime.now(VN_TZ), session_id)
    return result == "UPDATE 1"


async def fetch_coupon_by_id(coupon_id: str, db):
    row = await db.fetchrow("SELECT * FROM coupons WHERE id = $1", coupon_id)
    return dict(row) if row else None


async def fetch_coupon_by_code(code: str, db):
    select_query = "SELECT * FROM coupons WHERE code = $1"
    row = await db.fetchrow(select_query, normalize_code(code))
    return dict(row) if row else None


async def fetch_available_coupons(db):
    select_query = """
        SELECT * FROM coupons
        WHERE is_active = true
          AND (expires_at IS NULL OR expires_at > NOW())
          AND (max_uses IS NULL OR used_count < max_uses)
        ORDER BY expires_at NULLS LAST, code
    """
    rows = await db.fetch(select_query)
    return [dict(row) for row in rows]


async def increment_coupon_usage(coupon_id: str, db):
    """Compare-and-increment: only succeeds while the coupon still has uses left."""
    update_query = """
        UPDATE coupons SET used_count = used_count + 1
        WHERE id = $1 AND (max_uses IS NULL OR used_count < max_uses)
    """
    result = await db.execute(update_query, coupon_id)
    return result == "UPDATE 1"


def normalize_code(code: str):
    return (code or "").strip().upper()
