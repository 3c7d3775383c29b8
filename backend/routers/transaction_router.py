from fastapi import APIRouter, HTTPException, Depends
import asyncpg
from utils.dependencies import get_connection
from utils.auth import require_auth
from models.auth_model import User
from models.response_model import ApiResponse, ok
from services.transaction_service import get_user_transactions

router = APIRouter(prefix="/api", tags=["transaction"])


@router.get("/transactions", response_model=ApiResponse)
async def get_transactions_endpoint(
    current_user: User = Depends(require_auth),
    db: asyncpg.Connection = Depends(get_connection),
):
    try:
        return ok(await get_user_transactions(current_user.id, db))
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        print(f"Fetching transactions failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch transaction history")
