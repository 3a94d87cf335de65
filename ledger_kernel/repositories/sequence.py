"""
SequenceAllocator -- monotonic per-tenant numbering via locked counter rows.

Responsibility:
    Hands out strictly increasing integers for a named sequence within one
    tenant.  Journal entry numbers come from here.

Invariants enforced:
    - The locked counter row is the sole source of truth.  Aggregate
      max+1 over journal_entries is never used.
    - The increment is part of the caller's transaction; a rollback returns
      the value, so gaps only come from aborted transactions.

Failure modes:
    - IntegrityError on a concurrent first allocation is absorbed by a
      savepoint rollback and a re-read of the winner's row.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("repositories.sequence")


class SequenceAllocator:
    """
    Allocates sequence values for one tenant.

    Non-goals:
        - Does NOT call ``session.commit()``; caller controls boundaries.
    """

    JOURNAL_ENTRY = "journal_entry"

    def __init__(self, session: Session, tenant_id: UUID):
        self._session = session
        self._tenant_id = tenant_id

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(
                SequenceCounter.tenant_id == self._tenant_id,
                SequenceCounter.name == sequence_name,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the counter row (creating it on first use), increment, return.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously returned for this tenant and name.
            - The counter row stays locked until the transaction ends.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(
                    tenant_id=self._tenant_id,
                    name=sequence_name,
                    current_value=1,
                )
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                # Another transaction created the row first
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value
