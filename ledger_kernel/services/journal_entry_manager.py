"""
JournalEntryManager -- the journal entry state machine.

Responsibility:
    Owns the DRAFT -> POSTED -> VOID lifecycle: builds and edits drafts,
    posts them (pricing every line in the tenant base currency, proving the
    balance, assigning the entry number) and voids posted entries by
    manufacturing a posted reversal.

Architecture position:
    Kernel > Services -- imperative shell.  Pure arithmetic lives in
    domain/posting.py; rates come from ExchangeRateResolver, period rules
    from PeriodService, numbers from the repository's locked counter.

Invariants enforced:
    - Only DRAFT entries change.  POSTED and VOID entries are append-only
      (backed by the ORM listeners in db/immutability.py).
    - Posting is all-or-nothing: on any failure the entry stays DRAFT with
      no number, its lines unpriced.
    - Sum of base debits == sum of base credits, by exact Decimal equality.
    - Entry numbers are allocated only at posting, from a locked per-tenant
      counter, never max+1.
    - A reversal mirrors the original line-for-line with the same account,
      amounts, rate and base amount; the original's lines are untouched.

Failure modes:
    - Validation: InvalidLineError, InvalidCurrencyError,
      InactiveAccountError, UnbalancedEntryError, ClosedPeriodError,
      PeriodNotFoundError.  Logged at WARNING.
    - State: InvalidStateError, AlreadyVoidError.
    - Not found: EntryNotFoundError, AccountNotFoundError.
    - Integrity: NoRateError.  Logged at ERROR.

Audit relevance:
    ``entry_posted`` and ``entry_voided`` are the two events every ledger
    mutation produces; both carry the entry number and actor.
"""

from contextlib import contextmanager
from datetime import date
from typing import Iterator, Sequence
from uuid import UUID

from ledger_kernel.db.types import to_decimal, validate_currency
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    UNSET,
    DraftEntryRequest,
    DraftLine,
    EntryFilter,
    EntryStatus,
    JournalEntryRecord,
    VoidResult,
    format_entry_number,
)
from ledger_kernel.domain.money import CurrencyPair
from ledger_kernel.domain.posting import (
    ensure_balanced,
    price_lines,
    reverse_lines,
    validate_line_shapes,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyVoidError,
    EntryNotFoundError,
    InactiveAccountError,
    InvalidLineError,
    InvalidStateError,
    LedgerError,
    LedgerIntegrityError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.repositories.base import LedgerRepository
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.rate_resolver import ExchangeRateResolver

logger = get_logger("services.journal")

VOID_SOURCE_TYPE = "VOID"


class JournalEntryManager(BaseService[JournalEntry]):
    """
    Journal entry lifecycle service.

    Contract:
        Returns frozen ``JournalEntryRecord`` / ``VoidResult`` DTOs.  Flushes
        within the caller's transaction; ``post`` and ``void`` additionally
        run inside ``repository.atomic()``.

    Non-goals:
        - Does NOT commit.  LedgerService (or the caller) does.
        - Does NOT compute balances; see BalanceCalculator.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        rate_resolver: ExchangeRateResolver | None = None,
        period_service: PeriodService | None = None,
        clock: Clock | None = None,
        entry_number_prefix: str = "JE-",
        entry_number_width: int = 5,
    ):
        super().__init__(repository)
        self._clock = clock or SystemClock()
        self._rates = rate_resolver or ExchangeRateResolver(repository)
        self._periods = period_service or PeriodService(repository, self._clock)
        self._prefix = entry_number_prefix
        self._width = entry_number_width

    def display_number(self, entry_number: int) -> str:
        return format_entry_number(entry_number, self._prefix, self._width)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self, entry_id: UUID, for_update: bool = False) -> JournalEntry:
        entry = self.repository.get_entry(entry_id, for_update=for_update)
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def _require_draft(self, entry: JournalEntry, operation: str) -> None:
        if entry.status != EntryStatus.DRAFT:
            logger.warning(
                "entry_state_rejected",
                extra={
                    "entry_id": str(entry.id),
                    "status": entry.status,
                    "operation": operation,
                },
            )
            raise InvalidStateError(str(entry.id), str(EntryStatus(entry.status).value), operation)

    def _validate_accounts(self, account_ids: Sequence[UUID]) -> None:
        """Every account must exist in this tenant and be active."""
        accounts = self.repository.get_accounts(set(account_ids))
        for account_id in account_ids:
            account = accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(str(account_id))
            if not account.is_active:
                raise InactiveAccountError(str(account_id), account.code)

    def _build_lines(self, lines: Sequence[DraftLine], actor_id: UUID) -> list[JournalLine]:
        normalized = [
            DraftLine(
                account_id=line.account_id,
                debit_amount=to_decimal(line.debit_amount),
                credit_amount=to_decimal(line.credit_amount),
                description=line.description,
            )
            for line in lines
        ]
        validate_line_shapes(normalized)
        self._validate_accounts([line.account_id for line in normalized])
        return [
            JournalLine(
                tenant_id=self.tenant.tenant_id,
                line_number=number,
                account_id=line.account_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                description=line.description,
                created_by_id=actor_id,
            )
            for number, line in enumerate(normalized, start=1)
        ]

    @contextmanager
    def _logged_failures(self, event: str, **fields) -> Iterator[None]:
        """Log typed failures at the level their category calls for, then re-raise."""
        try:
            yield
        except LedgerIntegrityError as exc:
            logger.error(event, exc_info=True, extra={"error_code": exc.code, **fields})
            raise
        except LedgerError as exc:
            logger.warning(event, extra={"error_code": exc.code, "error": str(exc), **fields})
            raise

    # -------------------------------------------------------------------------
    # Drafts
    # -------------------------------------------------------------------------

    def create_draft(self, request: DraftEntryRequest, actor_id: UUID) -> JournalEntryRecord:
        """
        Persist a DRAFT entry.  Balance is not required until posting.

        Raises:
            InvalidCurrencyError, InvalidLineError, AccountNotFoundError,
            InactiveAccountError.
        """
        with self._logged_failures("draft_rejected"):
            currency = validate_currency(request.currency)
            lines = self._build_lines(request.lines, actor_id)

        entry = JournalEntry(
            tenant_id=self.tenant.tenant_id,
            entry_date=request.entry_date,
            status=EntryStatus.DRAFT.value,
            currency=currency,
            description=request.description or "",
            reference=request.reference,
            source_type=request.source_type,
            source_id=request.source_id,
            created_by_id=actor_id,
            lines=lines,
        )
        self.repository.add_entry(entry)

        logger.info(
            "draft_created",
            extra={
                "entry_id": str(entry.id),
                "entry_date": entry.entry_date,
                "currency": currency,
                "line_count": len(lines),
            },
        )
        return entry.to_dto()

    def update_draft(
        self,
        entry_id: UUID,
        actor_id: UUID,
        *,
        lines=UNSET,
        entry_date=UNSET,
        description=UNSET,
        currency=UNSET,
        reference=UNSET,
    ) -> JournalEntryRecord:
        """
        Edit a DRAFT.  Only supplied keyword arguments change; ``lines``
        replaces the whole line set.

        Raises:
            InvalidStateError: Entry is not DRAFT.
        """
        entry = self._load(entry_id, for_update=True)
        self._require_draft(entry, "update")

        with self._logged_failures("draft_update_rejected", entry_id=str(entry_id)):
            new_currency = validate_currency(currency) if currency is not UNSET else UNSET
            new_lines = self._build_lines(lines, actor_id) if lines is not UNSET else UNSET

        if entry_date is not UNSET:
            entry.entry_date = entry_date
        if description is not UNSET:
            entry.description = description or ""
        if reference is not UNSET:
            entry.reference = reference
        if new_currency is not UNSET:
            entry.currency = new_currency
        if new_lines is not UNSET:
            # Old lines must be gone before renumbered ones are inserted
            entry.lines.clear()
            self.repository.flush()
            entry.lines.extend(new_lines)
        entry.updated_by_id = actor_id
        self.repository.flush()

        logger.info("draft_updated", extra={"entry_id": str(entry.id)})
        return entry.to_dto()

    def delete_draft(self, entry_id: UUID) -> None:
        """Delete a DRAFT and its lines.  Raises InvalidStateError otherwise."""
        entry = self._load(entry_id, for_update=True)
        self._require_draft(entry, "delete")
        self.repository.delete_entry(entry)
        logger.info("draft_deleted", extra={"entry_id": str(entry_id)})

    # -------------------------------------------------------------------------
    # Posting
    # -------------------------------------------------------------------------

    def post(self, entry_id: UUID, actor_id: UUID) -> JournalEntryRecord:
        """
        Post a DRAFT.

        Steps, all inside one savepoint:
            1. Resolve entry currency -> base currency at entry_date and
               price every line (amount * rate, 9 dp).
            2. Prove base debits == base credits.
            3. Re-check every account exists and is active.
            4. Check the entry date is in an open period.
            5. Allocate the next number; stamp POSTED, posted_at, posted_by_id.

        Raises:
            InvalidStateError: Entry is not DRAFT.
            NoRateError, UnbalancedEntryError, InactiveAccountError,
            ClosedPeriodError, PeriodNotFoundError, InvalidLineError.
        """
        with LogContext.bind(entry_id=str(entry_id), actor_id=str(actor_id)):
            entry = self._load(entry_id, for_update=True)
            self._require_draft(entry, "post")

            with self._logged_failures("entry_post_rejected"):
                with self.repository.atomic():
                    self._post_draft(entry, actor_id)

            logger.info(
                "entry_posted",
                extra={
                    "entry_number": entry.entry_number,
                    "display_number": self.display_number(entry.entry_number),
                    "entry_date": entry.entry_date,
                    "currency": entry.currency,
                },
            )
            return entry.to_dto()

    def _post_draft(self, entry: JournalEntry, actor_id: UUID) -> None:
        lines = list(entry.lines)
        validate_line_shapes(lines)

        base_currency = self.tenant.base_currency
        resolved = self._rates.resolve(
            CurrencyPair(entry.currency, base_currency),
            entry.entry_date,
        )
        priced = price_lines(lines, resolved.rate)
        total = ensure_balanced(priced, base_currency)

        self._validate_accounts([line.account_id for line in lines])
        self._periods.validate_open(entry.entry_date)

        # Lines are priced while the entry is still DRAFT
        for line, priced_line in zip(lines, priced):
            line.exchange_rate = priced_line.exchange_rate
            line.base_currency_amount = priced_line.base_currency_amount
            line.updated_by_id = actor_id
        self.repository.flush()

        entry.entry_number = self.repository.next_entry_number()
        entry.status = EntryStatus.POSTED.value
        entry.posted_at = self._clock.now()
        entry.posted_by_id = actor_id
        entry.updated_by_id = actor_id
        self.repository.flush()

        logger.debug(
            "entry_priced",
            extra={
                "rate": resolved.rate,
                "rate_id": str(resolved.rate_id) if resolved.rate_id else None,
                "base_total": total,
            },
        )

    # -------------------------------------------------------------------------
    # Voiding
    # -------------------------------------------------------------------------

    def void(self, entry_id: UUID, reason: str, actor_id: UUID) -> VoidResult:
        """
        Void a POSTED entry with a posted reversal dated today (clock).

        The original becomes VOID with its lines untouched; the reversal is
        numbered like any other posted entry.  On failure nothing changes.

        Raises:
            InvalidLineError: Empty reason.
            InvalidStateError: Entry is DRAFT.
            AlreadyVoidError: Entry is already VOID.
            ClosedPeriodError / PeriodNotFoundError: Void date not open.
        """
        if not (reason or "").strip():
            raise InvalidLineError("void reason is required")

        with LogContext.bind(entry_id=str(entry_id), actor_id=str(actor_id)):
            original = self._load(entry_id, for_update=True)

            if original.status == EntryStatus.VOID:
                logger.warning(
                    "entry_void_rejected",
                    extra={"error_code": AlreadyVoidError.code},
                )
                raise AlreadyVoidError(str(entry_id), str(original.reversed_by_entry_id))
            if original.status != EntryStatus.POSTED:
                logger.warning(
                    "entry_void_rejected",
                    extra={"error_code": InvalidStateError.code, "status": original.status},
                )
                raise InvalidStateError(
                    str(entry_id), EntryStatus(original.status).value, "void"
                )

            with self._logged_failures("entry_void_rejected"):
                with self.repository.atomic():
                    reversal = self._reverse(original, reason.strip(), actor_id)

            logger.info(
                "entry_voided",
                extra={
                    "entry_number": original.entry_number,
                    "reversal_entry_id": str(reversal.id),
                    "reversal_entry_number": reversal.entry_number,
                    "reason": original.void_reason,
                },
            )
            return VoidResult(original=original.to_dto(), reversal=reversal.to_dto())

    def _reverse(self, original: JournalEntry, reason: str, actor_id: UUID) -> JournalEntry:
        void_date: date = self._clock.today()
        self._periods.validate_open(void_date)

        now = self._clock.now()
        display = self.display_number(original.entry_number)
        mirrored = reverse_lines(line.to_dto() for line in original.lines)

        reversal = JournalEntry(
            tenant_id=self.tenant.tenant_id,
            entry_number=self.repository.next_entry_number(),
            entry_date=void_date,
            status=EntryStatus.POSTED.value,
            currency=original.currency,
            description=f"Reversal of {display}: {reason}",
            reference=display,
            source_type=VOID_SOURCE_TYPE,
            source_id=original.id,
            reversal_of_entry_id=original.id,
            posted_at=now,
            posted_by_id=actor_id,
            created_by_id=actor_id,
            lines=[
                JournalLine(
                    tenant_id=self.tenant.tenant_id,
                    line_number=line.line_number,
                    account_id=line.account_id,
                    debit_amount=line.debit_amount,
                    credit_amount=line.credit_amount,
                    exchange_rate=line.exchange_rate,
                    base_currency_amount=line.base_currency_amount,
                    description=line.description,
                    created_by_id=actor_id,
                )
                for line in mirrored
            ],
        )
        # Insert the reversal before pointing the original at it
        self.repository.add_entry(reversal)

        original.status = EntryStatus.VOID.value
        original.reversed_by_entry_id = reversal.id
        original.voided_at = now
        original.voided_by_id = actor_id
        original.void_reason = reason
        original.updated_by_id = actor_id
        self.repository.flush()
        return reversal

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_entry(self, entry_id: UUID) -> JournalEntryRecord:
        return self._load(entry_id).to_dto()

    def list_entries(self, entry_filter: EntryFilter | None = None) -> list[JournalEntryRecord]:
        return [entry.to_dto() for entry in self.repository.list_entries(entry_filter)]
