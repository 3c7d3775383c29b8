from fastapi import HTTPException
from datetime import datetime
from typing import Optional
from models.checkout_model import CheckoutStatus
from models.payment_model import (
    Gateway,
    BankTransaction,
    BankWebhookPayload,
    SettlementResult,
    WebhookItemResult,
)
from db.checkout_store import (
    VN_TZ,
    new_id,
    fetch_session,
    fetch_coupon_by_id,
    fetch_courses_by_ids,
    increment_coupon_usage,
    mark_session_completed,
)
from services.checkout_service import to_amount
from services.queue_service import EmailQueue, PURCHASE_SUCCESS_JOB
from utils.errors import (
    NotFoundError,
    StateConflictError,
    AuthorizationError,
    CouponExhausted,
    UpstreamError,
)
from dotenv import load_dotenv
import hmac
import os
import re

load_dotenv()

CASSO_SECURE_TOKEN = os.getenv("CASSO_SECURE_TOKEN")
SIMULATION_ENABLED = os.getenv("ENABLE_PAYMENT_SIMULATION", "true").lower() in ("1", "true", "yes")

ORDER_PATTERN = re.compile(r"ORDER\s+([a-zA-Z0-9-]+)", re.IGNORECASE)


def parse_checkout_id(description: Optional[str]):
    match = ORDER_PATTERN.search(description or "")
    return match.group(1).lower() if match else None


def verify_secure_token(secure_token: Optional[str]):
    expected = CASSO_SECURE_TOKEN
    if not expected or not secure_token or not hmac.compare_digest(
        secure_token.encode(), expected.encode()
    ):
        print("Bank webhook rejected: invalid secure token")
        raise AuthorizationError("Unauthorized")


async def insert_bill(session: dict, amount: int, gateway: str, transaction_id: str, db):
    insert_query = """
        INSERT INTO bills (id, user_id, checkout_id, action, amount, original_amount,
                           discount_amount, coupon_id, gateway, is_successful,
                           transaction_id, created_at)
        VALUES ($1, $2, $3, 'Payment', $4, $5, $6, $7, $8, true, $9, $10)
        RETURNING id
    """
    return await db.fetchval(
        insert_query,
        new_id(),
        session["user_id"],
        session["id"],
        amount,
        session["total_amount"] + session["discount_amount"],
        session["discount_amount"],
        session["coupon_id"],
        gateway,
        transaction_id,
        datetime.now(VN_TZ),
    )


async def upsert_enrollment(user_id: str, course_id: str, bill_id: str, db):
    upsert_query = """
        INSERT INTO enrollments (user_id, course_id, bill_id, status)
        VALUES ($1, $2, $3, 'Active')
        ON CONFLICT (user_id, course_id)
        DO UPDATE SET status = 'Active', bill_id = EXCLUDED.bill_id, updated_at = NOW()
    """
    await db.execute(upsert_query, user_id, course_id, bill_id)


async def remove_from_wishlist(user_id: str, course_ids: list, db):
    delete_query = "DELETE FROM wishlists WHERE user_id = $1 AND course_id = ANY($2::text[])"
    await db.execute(delete_query, user_id, course_ids)


async def settle_checkout(
    session_id: str,
    db,
    gateway: str,
    transaction_id: str,
    received_amount: Optional[int] = None,
):
    """Mark a checkout paid and grant its courses, all in one transaction.

    The session row is locked for the duration, so two deliveries of the same
    payment serialize and the second one sees COMPLETED and writes nothing.
    `received_amount` is only passed for bank transfers; anything below the
    session total leaves the session pending.
    """
    async with db.transaction():
        session = await fetch_session(session_id, db, for_update=True)
        if not session:
            raise NotFoundError("Checkout session not found")
        if session["status"] == CheckoutStatus.COMPLETED.value:
            print(f"Checkout {session_id} already completed, skipping")
            return SettlementResult(
                checkout_id=session_id,
                status=CheckoutStatus.COMPLETED.value,
                already_completed=True,
            )
        if received_amount is not None and received_amount < session["total_amount"]:
            print(f"Insufficient amount for checkout {session_id}: expected {session['total_amount']}, received {received_amount}")
            return SettlementResult(
                checkout_id=session_id,
                status=CheckoutStatus.PENDING.value,
                insufficient_amount=True,
                amount=received_amount,
            )

        amount = received_amount if received_amount is not None else session["total_amount"]
        bill_id = await insert_bill(session, amount, gateway, transaction_id, db)
        course_ids = session["course_ids"]
        for course_id in sorted(course_ids):
            await upsert_enrollment(session["user_id"], course_id, bill_id, db)
        await remove_from_wishlist(session["user_id"], course_ids, db)

        if session["coupon_id"]:
            if not await increment_coupon_usage(session["coupon_id"], db):
                print(f"Coupon {session['coupon_id']} exhausted while settling checkout {session_id}")
                raise CouponExhausted("Coupon usage limit was reached before payment completed")

        if not await mark_session_completed(session_id, db):
            raise StateConflictError("Checkout session could not be completed")

    print(f"Payment successful for checkout {session_id}: bill {bill_id}, {len(course_ids)} enrollments")
    return SettlementResult(
        checkout_id=session_id,
        status=CheckoutStatus.COMPLETED.value,
        bill_id=bill_id,
        enrollments_count=len(course_ids),
        amount=amount,
    )


async def notify_purchase(checkout_id: str, db, queue: Optional[EmailQueue]):
    try:
        if queue is None:
            raise UpstreamError("Email queue unavailable")
        session = await fetch_session(checkout_id, db)
        if not session:
            raise UpstreamError(f"Checkout {checkout_id} vanished before notification")
        user = await db.fetchrow(
            "SELECT email, full_name FROM users WHERE id = $1", session["user_id"]
        )
        if not user:
            raise UpstreamError(f"User {session['user_id']} not found for notification")
        courses = await fetch_courses_by_ids(session["course_ids"], db)
        coupon = (
            await fetch_coupon_by_id(session["coupon_id"], db)
            if session["coupon_id"]
            else None
        )
        queue.enqueue(
            PURCHASE_SUCCESS_JOB,
            {
                "email": user["email"],
                "full_name": user["full_name"],
                "order_data": {
                    "order_id": checkout_id,
                    "courses": [
                        {"id": c["id"], "title": c["title"], "price": to_amount(c["price"])}
                        for c in courses
                    ],
                    "total_amount": session["total_amount"],
                    "discount_amount": session["discount_amount"],
                    "coupon_code": coupon["code"] if coupon else None,
                },
            },
        )
        return True
    except Exception as e:
        print(f"Could not queue purchase email for checkout {checkout_id}: {e}")
        return False


async def handle_simulated_payment(checkout_id: str, db, queue: Optional[EmailQueue]):
    if not SIMULATION_ENABLED:
        raise NotFoundError("Not found")
    try:
        result = await settle_checkout(
            checkout_id,
            db,
            Gateway.VIETQR.value,
            f"TXN_{int(datetime.now(VN_TZ).timestamp() * 1000)}",
        )
        if not result.already_completed:
            await notify_purchase(checkout_id, db, queue)
        return result
    except HTTPException:
        raise
    except Exception as e:
        print(f"Payment simulation error: {e}")
        raise HTTPException(status_code=500, detail="Payment processing failed")


async def settle_bank_transaction(transaction: BankTransaction, db, queue: Optional[EmailQueue]):
    checkout_id = parse_checkout_id(transaction.description)
    if not checkout_id:
        print(f"Ignored non-order transaction: {transaction.description}")
        return WebhookItemResult(transaction_id=transaction.transaction_id, outcome="ignored")
    try:
        result = await settle_checkout(
            checkout_id,
            db,
            Gateway.CASSO.value,
            transaction.transaction_id,
            received_amount=transaction.amount,
        )
    except NotFoundError:
        print(f"Checkout not found for ID: {checkout_id}")
        return WebhookItemResult(
            transaction_id=transaction.transaction_id, checkout_id=checkout_id, outcome="not_found"
        )
    except HTTPException as http_exc:
        return WebhookItemResult(
            transaction_id=transaction.transaction_id,
            checkout_id=checkout_id,
            outcome=getattr(http_exc, "reason", "failed"),
            detail=http_exc.detail,
        )
    except Exception as e:
        print(f"Settling bank transaction {transaction.transaction_id} failed: {e}")
        return WebhookItemResult(
            transaction_id=transaction.transaction_id, checkout_id=checkout_id, outcome="failed"
        )

    if result.already_completed:
        outcome = "already_completed"
    elif result.insufficient_amount:
        outcome = "insufficient_amount"
    else:
        outcome = "completed"
        await notify_purchase(checkout_id, db, queue)
    return WebhookItemResult(
        transaction_id=transaction.transaction_id,
        checkout_id=checkout_id,
        outcome=outcome,
        detail=result.model_dump(),
    )


async def handle_bank_webhook(
    payload: BankWebhookPayload, secure_token: Optional[str], db, queue: Optional[EmailQueue]
):
    verify_secure_token(secure_token)
    if payload.error != 0:
        print(f"Bank webhook delivered error payload {payload.error}, ignoring")
        return []
    results = []
    for transaction in payload.data:
        results.append(await settle_bank_transaction(transaction, db, queue))
    return results
