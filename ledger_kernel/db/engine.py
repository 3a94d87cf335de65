"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, tenant-routed sessions,
    tenant schema provisioning and the transactional scope used by every
    service call.
Architecture position: Kernel > DB.  May import from db/, tenancy and
    logging_config.  Models are imported lazily for DDL only.

Invariants enforced:
    - Every tenant session is bound through ``tenant_bind``: the ledger
      tables are unqualified and the tenant's schema is applied per
      connection with ``schema_translate_map``.  A session can therefore
      never read another tenant's schema.
    - PostgreSQL runs at READ COMMITTED; stronger guarantees come from
      explicit row locks (``SELECT ... FOR UPDATE``).
    - SQLite (test backend) gets one ATTACHed in-memory database per tenant
      schema, a single shared connection, and explicit BEGIN so that
      SAVEPOINT works.

Failure modes:
    - RuntimeError if get_engine/get_session_factory is called before
      init_engine_from_url().
    - Any exception inside session_scope() rolls the transaction back and
      is re-raised unchanged.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.schema import CreateSchema, DropSchema

from ledger_kernel.logging_config import LogContext, configure_logging, get_logger
from ledger_kernel.tenancy import TenantContext

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _install_sqlite_transaction_hooks(engine: Engine) -> None:
    # pysqlite's own transaction handling breaks SAVEPOINT; take it over.
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Initialize the module-level engine and session factory.

    PostgreSQL URLs get a QueuePool at READ COMMITTED.  ``sqlite://`` URLs
    (tests) get a single StaticPool connection so that ATTACHed tenant
    databases stay visible to every session.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        _install_sqlite_transaction_hooks(_engine)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def tenant_bind(engine: Engine, tenant: TenantContext) -> Engine:
    """An engine view whose connections resolve tables in ``tenant``'s schema."""
    return engine.execution_options(
        schema_translate_map={None: tenant.schema_name}
    )


def open_tenant_session(
    tenant: TenantContext,
    session_factory: sessionmaker[Session] | None = None,
) -> Session:
    """Create a session routed to ``tenant``'s schema.  Caller closes it."""
    factory = session_factory or get_session_factory()
    engine = factory.kw.get("bind") or get_engine()
    return factory(bind=tenant_bind(engine, tenant))


@contextmanager
def session_scope(
    tenant: TenantContext,
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Transactional scope for one tenant.

    Postconditions: On normal exit the session is committed and closed.
        On exception it is rolled back, closed, and the exception re-raised.
        ``tenant_id`` is bound on LogContext for the duration.

    Usage:
        with session_scope(tenant) as session:
            JournalEntryManager(...).post(entry_id, actor_id)
    """
    session = open_tenant_session(tenant, session_factory)
    with LogContext.bind(tenant_id=str(tenant.tenant_id)):
        logger.debug("transaction_started", extra={"schema": tenant.schema_name})
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except Exception:
            session.rollback()
            logger.warning("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()


def _sqlite_attached_schemas(engine: Engine) -> set[str]:
    raw = engine.raw_connection()
    try:
        rows = raw.driver_connection.execute("PRAGMA database_list").fetchall()
    finally:
        raw.close()
    return {row[1] for row in rows}


def provision_tenant_schema(tenant: TenantContext, engine: Engine | None = None) -> None:
    """
    Create ``tenant``'s schema (if missing) and every ledger table in it.

    PostgreSQL: CREATE SCHEMA IF NOT EXISTS.  SQLite: ATTACH an in-memory
    database under the schema name.  Idempotent.
    """
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  registers tables

    engine = engine or get_engine()

    if engine.dialect.name == "sqlite":
        if tenant.schema_name not in _sqlite_attached_schemas(engine):
            raw = engine.raw_connection()
            try:
                # schema_name is validated as a plain identifier by TenantContext
                raw.driver_connection.execute(
                    f"ATTACH DATABASE ':memory:' AS \"{tenant.schema_name}\""
                )
            finally:
                raw.close()
    else:
        with engine.begin() as conn:
            conn.execute(CreateSchema(tenant.schema_name, if_not_exists=True))

    with tenant_bind(engine, tenant).begin() as conn:
        Base.metadata.create_all(conn)

    logger.info(
        "tenant_schema_provisioned",
        extra={"tenant_id": str(tenant.tenant_id), "schema": tenant.schema_name},
    )


def drop_tenant_schema(tenant: TenantContext, engine: Engine | None = None) -> None:
    """Drop ``tenant``'s schema and everything in it.  Tests and tooling only."""
    engine = engine or get_engine()

    if engine.dialect.name == "sqlite":
        if tenant.schema_name in _sqlite_attached_schemas(engine):
            raw = engine.raw_connection()
            try:
                raw.driver_connection.execute(f'DETACH DATABASE "{tenant.schema_name}"')
            finally:
                raw.close()
    else:
        with engine.begin() as conn:
            conn.execute(DropSchema(tenant.schema_name, cascade=True, if_exists=True))

    logger.info(
        "tenant_schema_dropped",
        extra={"tenant_id": str(tenant.tenant_id), "schema": tenant.schema_name},
    )


def reset_engine() -> None:
    """
    Reset the engine and session factory.

    Useful for test cleanup.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)
