from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def _to_async_url(url: str) -> str:
    if url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": settings.db_pool_size, "pool_pre_ping": True}


_url = _to_async_url(settings.database_url)
engine = create_async_engine(_url, echo=settings.db_echo, future=True, **_engine_kwargs(_url))
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
Base = declarative_base()


async def get_db():
    async with SessionLocal() as db:
        yield db


@asynccontextmanager
async def transaction(db: AsyncSession):
    """整个 with 块作为一个事务：正常退出 commit，任何异常 rollback 后继续抛出。"""
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise


def _violation_code(err: IntegrityError) -> str | None:
    orig = getattr(err, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is None and orig is not None:
        code = getattr(orig.__cause__, "sqlstate", None)
    return code


def is_unique_violation(err: IntegrityError) -> bool:
    """唯一约束冲突（PostgreSQL 23505；SQLite 无 sqlstate，按错误信息判断）。"""
    code = _violation_code(err)
    if code:
        return code == UNIQUE_VIOLATION
    msg = str(getattr(err, "orig", err)).lower()
    return "unique" in msg or "primary key" in msg


def is_foreign_key_violation(err: IntegrityError) -> bool:
    code = _violation_code(err)
    if code:
        return code == FOREIGN_KEY_VIOLATION
    return "foreign key" in str(getattr(err, "orig", err)).lower()
