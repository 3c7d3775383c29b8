from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from db.database import close_pool, create_pool
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from models.response_model import fail
from routers import checkout_router, transaction_router
from services.background_service import email_worker_loop
from services.queue_service import EmailQueue
import asyncio
import os

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.db_pool = None
    app.state.email_queue = None
    app.state.email_worker = None
    try:
        app.state.db_pool = await create_pool()
        app.state.email_queue = EmailQueue()
        app.state.email_worker = asyncio.create_task(
            email_worker_loop(app.state.email_queue)
        )
        yield
    except Exception as e:
        print(f"Service failed to start: {e}")
        raise
    finally:
        if app.state.email_queue:
            app.state.email_queue.close()
        if app.state.email_worker and not app.state.email_worker.done():
            app.state.email_worker.cancel()
        if app.state.email_worker:
            await asyncio.gather(app.state.email_worker, return_exceptions=True)
        if app.state.db_pool:
            await close_pool(app.state.db_pool)
        app.state.db_pool = None
        app.state.email_queue = None
        app.state.email_worker = None


app = FastAPI(title="Fly Up Checkout API", lifespan=lifespan)

origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:5173,http://localhost:5174"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(checkout_router.router)
app.include_router(transaction_router.router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = fail(str(exc.detail), getattr(exc, "reason", None))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    body = fail(errors or "Invalid request", "ValidationError")
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    print(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500, content=fail("Internal server error").model_dump(exclude_none=True)
    )


@app.get("/status")
async def check_status():
    worker = getattr(app.state, "email_worker", None)
    if (
        not getattr(app.state, "db_pool", None)
        or not getattr(app.state, "email_queue", None)
        or not worker
        or worker.done()
    ):
        raise HTTPException(status_code=500, detail="Backend service unavailable")
    return {"success": True, "data": {"status": "ok"}}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
