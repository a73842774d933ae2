from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import MetaData

from helios_oncall.infra.settings import settings

# Deterministic constraint/index names
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def _engine_kwargs(url: str) -> dict[str, object]:
    if url.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            # One shared connection, otherwise every session sees an empty database.
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_size": settings.pool_size,
        "max_overflow": settings.max_overflow,
        "pool_timeout": settings.pool_timeout,
    }


def get_engine(db_url: str | None = None, for_test: bool = False) -> Engine:
    """Create a database engine.

    If ``for_test`` is True and ``settings.test_database_url`` is set, that URL is used.
    Otherwise falls back to the provided ``db_url`` or ``settings.database_url``.
    """
    if for_test and settings.test_database_url:
        chosen_url = settings.test_database_url
    else:
        chosen_url = db_url or settings.database_url

    return create_engine(
        chosen_url,
        echo=settings.echo_sql,
        pool_pre_ping=True,
        future=True,
        **_engine_kwargs(chosen_url),
    )


engine = get_engine()

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def get_sessionmaker(bind: Engine | None = None) -> sessionmaker:
    """Return the global session factory, or one bound to ``bind``."""
    if bind is None:
        return SessionLocal
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True)


def create_schema(bind: Engine | None = None) -> None:
    """Create all on-call tables that do not exist yet."""
    # Table classes register themselves on Base.metadata when imported.
    from helios_oncall.domain import entities  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
