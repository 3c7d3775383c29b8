from fastapi import HTTPException, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from dotenv import load_dotenv
import jwt
import os
from datetime import datetime, timedelta, timezone
from models.auth_model import User
from utils.dependencies import get_connection
import asyncpg

load_dotenv()

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ISSUER = "flyup-edutech"
JWT_AUDIENCE = "flyup-users"
JWT_ACCESS_EXPIRY = timedelta(minutes=int(os.getenv("JWT_ACCESS_EXPIRY_MINUTES", 30)))

security = HTTPBearer(auto_error=False)


def decode_access_token(token: str):
    payload = jwt.decode(
        token,
        JWT_SECRET,
        algorithms=["HS256"],
        issuer=JWT_ISSUER,
        audience=JWT_AUDIENCE,
    )
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Invalid token type")
    return payload


def create_access_token(user_id: str, email: str, role: str = "student"):
    now = datetime.now(tz=timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "role": role,
        "type": "access",
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + JWT_ACCESS_EXPIRY,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: asyncpg.Connection = Depends(get_connection),
):
    if not credentials:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
        user_id = payload.get("userId")
        if not user_id:
            return None
        select_query = "SELECT id, email, full_name, role FROM users WHERE id = $1"
        user_data = await db.fetchrow(select_query, user_id)
        return User(**dict(user_data)) if user_data else None
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
    except Exception as e:
        print(f"Could not load current user: {e}")
        return None


async def require_auth(current_user: Optional[User] = Depends(get_current_user)):
    if not current_user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return current_user
