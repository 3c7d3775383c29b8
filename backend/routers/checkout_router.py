from fastapi import APIRouter, HTTPException, Depends, Header
from typing import Optional
import asyncpg
from utils.dependencies import get_connection, get_email_queue
from utils.auth import require_auth
from models.auth_model import User
from models.response_model import ApiResponse, ok
from models.checkout_model import (
    CreateCheckoutRequest,
    CheckCouponRequest,
    ApplyCouponRequest,
)
from models.payment_model import SimulatePaymentRequest, BankWebhookPayload
from services.checkout_service import (
    create_session,
    apply_coupon,
    remove_coupon,
    check_coupon,
    get_checkout_status,
)
from services.coupon_service import list_available_coupons
from services.payment_service import handle_simulated_payment, handle_bank_webhook
from services.queue_service import EmailQueue

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


@router.post("/create", response_model=ApiResponse)
async def create_checkout_endpoint(
    request: CreateCheckoutRequest,
    current_user: User = Depends(require_auth),
    db: asyncpg.Connection = Depends(get_connection),
):
    try:
        checkout = await create_session(
            current_user.id,
            request.course_ids,
            request.coupon_code,
            db,
            client_total=request.total_amount,
        )
        return ok(checkout)
    except HTTPException as http_exc:
        print(f"{http_exc.status_code} - {http_exc.detail}")
        raise http_exc
    except Exception as e:
        print(f"Create checkout failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to create checkout session")


@router.post("/check-coupon", response_model=ApiResponse)
async def check_coupon_endpoint(
    request: CheckCouponRequest,
    current_user: User = Depends(require_auth),
    db: asyncpg.Connection = Depends(get_connection),
):
    try:
        return ok(await check_coupon(request.code, request.course_ids, db))
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        print(f"Check coupon failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to check coupon")


@router.get("/coupons", response_model=ApiResponse)
async def available_coupons_endpoint(
    current_user: User = Depends(require_auth),
    db: asyncpg.Connection = Depends(get_connection),
):
    try:
        return ok(await list_available_coupons(db))
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        print(f"Could not list coupons: {e}")
        raise HTTPException(status_code=500, detail="Could not list coupons")


@router.post("/webhook/simulate", response_model=ApiResponse)
async def simulate_payment_endpoint(
    request: SimulatePaymentRequest,
    db: asyncpg.Connection = Depends(get_connection),
    queue: Optional[EmailQueue] = Depends(get_email_queue),
):
    try:
        return ok(await handle_simulated_payment(request.checkout_id, db, queue))
    except HTTPException as http_exc:
        print(f"{http_exc.status_code} - {http_exc.detail}")
        raise http_exc
    except Exception as e:
        print(f"Payment simulation error: {e}")
        raise HTTPException(status_code=500, detail="Payment processing failed")


@router.post("/webhook/bank", response_model=ApiResponse)
async def bank_webhook_endpoint(
    payload: BankWebhookPayload,
    secure_token: Optional[str] = Header(None, alias="secure-token"),
    db: asyncpg.Connection = Depends(get_connection),
    queue: Optional[EmailQueue] = Depends(get_email_queue),
):
    try:
        return ok(await handle_bank_webhook(payload, secure_token, db, queue))
    except HTTPException as http_exc:
        print(f"{http_exc.status_code} - {http_exc.detail}")
        raise http_exc
    except Exception as e:
        print(f"Bank webhook error: {e}")
        raise HTTPException(status_code=500, detail="Webhook processing failed")


@router.post("/{checkout_id}/apply-coupon", response_model=ApiResponse)
async def apply_coupon_endpoint(
    checkout_id: str,
    request: ApplyCouponRequest,
    current_user: User = Depends(require_auth),
    db: asyncpg.Connection = Depends(get_connection),
):
    try:
        return ok(await apply_coupon(checkout_id, current_user.id, request.code, db))
    except HTTPException as http_exc:
        print(f"{http_exc.status_code} - {http_exc.detail}")
        raise http_exc
    except Exception as e:
        print(f"Apply coupon failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to apply coupon")


@router.delete("/{checkout_id}/coupon", response_model=ApiResponse)
async def remove_coupon_endpoint(
    checkout_id: str,
    current_user: User = Depends(require_auth),
    db: asyncpg.Connection = Depends(get_connection),
):
    try:
        return ok(await remove_coupon(checkout_id, current_user.id, db))
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        print(f"Remove coupon failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove coupon")


@router.get("/{checkout_id}/status", response_model=ApiResponse)
async def checkout_status_endpoint(
    checkout_id: str,
    current_user: User = Depends(require_auth),
    db: asyncpg.Connection = Depends(get_connection),
):
    try:
        return ok(await get_checkout_status(checkout_id, current_user.id, db))
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        print(f"Get checkout status failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to get checkout status")
