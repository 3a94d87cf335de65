"""Per-tenant sequence counter rows (locked on allocation)."""

from sqlalchemy import BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUID, UUIDString


class SequenceCounter(Base):
    """
    Named counter, one row per (tenant, sequence name).

    Row-level locking in SequenceAllocator keeps allocation monotonic under
    concurrency.  Aggregate max+1 is never used.
    """

    __tablename__ = "sequence_counters"

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_sequence_tenant_name"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # e.g. "journal_entry"
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
