import asyncpg
from fastapi import Request, HTTPException
from services.queue_service import EmailQueue


async def get_connection(request: Request):
    if not hasattr(request.app.state, "db_pool") or not request.app.state.db_pool:
        print("Database pool unavailable")
        raise HTTPException(status_code=503, detail="Database service unavailable")
    pool: asyncpg.Pool = request.app.state.db_pool
    async with pool.acquire() as connection:
        yield connection


async def get_email_queue(request: Request):
    queue: EmailQueue = getattr(request.app.state, "email_queue", None)
    if not queue:
        # settlement must not depend on the mailer being up
        print("Email queue unavailable, notifications will be skipped")
        return None
    return queue
