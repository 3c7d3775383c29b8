import asyncpg
from dotenv import load_dotenv
import os

load_dotenv()

DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", 5432)
DB_DATABASE = os.getenv("DB_DATABASE")
DB_POOL_MIN = int(os.getenv("DB_POOL_MIN", 2))
DB_POOL_MAX = int(os.getenv("DB_POOL_MAX", 15))

DB_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_DATABASE}",
)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")


async def create_pool(dsn: str = DB_URL):
    try:
        pool = await asyncpg.create_pool(
            dsn=dsn, min_size=DB_POOL_MIN, max_size=DB_POOL_MAX
        )
        print("Database pool created")
        return pool
    except Exception as e:
        print(f"Could not create database pool: {e}")
        raise


async def close_pool(pool: asyncpg.Pool):
    if pool:
        await pool.close()


async def apply_schema(db):
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        await db.execute(f.read())
