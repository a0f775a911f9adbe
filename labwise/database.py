"""Async database engine and session factory; PostgreSQL via asyncpg in production."""
import uuid
from functools import lru_cache
from typing import Any, Dict, Tuple
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from labwise.config import get_settings

SSL_REQUIRED_MODES = frozenset({"require", "verify-ca", "verify-full"})


def split_asyncpg_url(url: str) -> Tuple[str, Dict[str, Any]]:
    """Move a libpq ``sslmode`` query parameter, which asyncpg rejects, into connect_args."""
    parsed = urlparse(url)
    if not parsed.query:
        return url, {}
    kept, sslmode = [], None
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if key.lower() in ("sslmode", "ssl_mode"):
            sslmode = sslmode or value
        else:
            kept.append((key, value))
    connect_args: Dict[str, Any] = {}
    if sslmode and sslmode.lower() in SSL_REQUIRED_MODES:
        connect_args["ssl"] = True
    return urlunparse(parsed._replace(query=urlencode(kept))), connect_args


@lru_cache
def get_engine() -> AsyncEngine:
    url, connect_args = split_asyncpg_url(get_settings().database_url_async)
    return create_async_engine(url, echo=False, connect_args=connect_args)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


class Base(DeclarativeBase):
    pass


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create tables if they do not exist. Import labwise.models before calling so tables are registered."""
    from labwise import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncSession:
    async with get_session_factory()() as session:
        yield session


def generate_id() -> str:
    return str(uuid.uuid4())
