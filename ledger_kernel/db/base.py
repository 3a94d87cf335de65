"""
Module: ledger_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the UUID primary key convention, the type annotation map, the
    TrackedBase audit mixin and the TenantScopedBase tenant column.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - UUID primary keys (uuid4) on every model.
    - Decimal maps to ExactNumeric(38, 9) system-wide.  No float columns.
    - Every ledger table is unqualified (schema=None).  The physical schema
      is supplied per connection through ``schema_translate_map`` by
      ``ledger_kernel.db.engine``, so one metadata serves every tenant.
    - Every tenant-owned row carries ``tenant_id`` in addition to living in
      the tenant's schema.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import String, TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID stored as String(36) for cross-database portability.

    Converts Python ``UUID`` to its 36-character string on bind and back
    on load.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class ExactNumeric(TypeDecorator):
    """
    Numeric column that always loads as an exact ``Decimal``.

    PostgreSQL NUMERIC round-trips Decimal natively.  SQLite (the test
    backend) stores REAL, so values are read back as floats, restored
    through their shortest repr and fitted to ``scale``.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = 38, scale: int = 9):
        super().__init__(precision=precision, scale=scale)
        self.precision = precision
        self.scale = scale

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(
                Numeric(self.precision, self.scale, asdecimal=False)
            )
        return dialect.type_descriptor(Numeric(self.precision, self.scale))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, float):
            value = Decimal(repr(value))
        elif not isinstance(value, Decimal):
            value = Decimal(value)
        return value.quantize(Decimal(1).scaleb(-self.scale))


class Base(DeclarativeBase):
    """
    Declarative base for all ledger models.

    Guarantees:
        - ``id`` is a uuid4 stored as String(36).
        - Decimal -> ExactNumeric(38, 9); datetime -> timezone-aware DateTime;
          int -> BigInteger (safe for monotonic sequences).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: ExactNumeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps and actor tracking.

    ``updated_at`` / ``updated_by_id`` are audit metadata, not ledger data,
    and may change even on otherwise-immutable rows (see
    db/immutability.py).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


class TenantScopedBase(TrackedBase):
    """Abstract base for rows owned by exactly one tenant."""

    __abstract__ = True

    tenant_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
        index=True,
    )


# Re-export UUID for convenience
UUID = PyUUID
