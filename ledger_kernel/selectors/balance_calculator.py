"""
Module: ledger_kernel.selectors.balance_calculator
Responsibility: Account balances, hierarchy rollups, the trial balance and
    period activity, all derived from journal lines at query time in the
    tenant base currency.
Architecture position: Kernel > Selectors.  Reads through LedgerRepository;
    signing arithmetic comes from domain/posting.py.

Invariants enforced:
    - No stored balances.  Every figure is aggregated from lines.
    - Lines count when their entry is POSTED or VOID and dated on or before
      ``as_of``.  A VOID original and its POSTED reversal cancel exactly
      from the void date on, and history before the void date is unchanged.
    - An account's balance is signed by its own normal side.  A child's
      balance enters its parent's rollup converted to the parent's side.
    - Trial balance: sum of own debit balances == sum of own credit
      balances, or TrialBalanceIntegrityError.

Failure modes:
    - AccountNotFoundError for an unknown account.
    - TrialBalanceIntegrityError (integrity, logged at ERROR).
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import (
    AccountActivity,
    AccountBalance,
    AccountType,
    LineTotals,
    NormalBalance,
    TrialBalance,
    TrialBalanceRow,
)
from ledger_kernel.domain.posting import signed_balance
from ledger_kernel.exceptions import AccountNotFoundError, TrialBalanceIntegrityError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.balance")


class _Chart:
    """In-memory view of the account tree plus per-account raw totals."""

    def __init__(self, accounts: list[Account], totals: dict[UUID, LineTotals]):
        self.accounts = {a.id: a for a in accounts}
        self.totals = totals
        self.children: dict[UUID, list[UUID]] = defaultdict(list)
        for account in accounts:
            if account.parent_id is not None and account.parent_id in self.accounts:
                self.children[account.parent_id].append(account.id)
        self._net_cache: dict[UUID, Decimal] = {}

    def own(self, account_id: UUID) -> LineTotals:
        return self.totals.get(account_id) or LineTotals(account_id=account_id)

    def subtree_net_debit(self, account_id: UUID) -> Decimal:
        """Raw debit-minus-credit over the account and all its descendants."""
        if account_id in self._net_cache:
            return self._net_cache[account_id]
        own = self.own(account_id)
        net = own.debit_total - own.credit_total
        stack = list(self.children.get(account_id, ()))
        seen = {account_id}
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            totals = self.own(current)
            net += totals.debit_total - totals.credit_total
            stack.extend(self.children.get(current, ()))
        self._net_cache[account_id] = net
        return net

    def rollup(self, account_id: UUID) -> Decimal:
        """
        Own balance plus every child's balance, on this account's side.

        Signing each child by its own side and flipping it when the sides
        differ is the same as signing the raw subtree net by this side.
        """
        account = self.accounts[account_id]
        net = self.subtree_net_debit(account_id)
        if NormalBalance(account.normal_balance) == NormalBalance.DEBIT:
            return net
        return -net


class BalanceCalculator(BaseSelector):
    """
    Read-only balance computations for one tenant.

    Contract:
        All amounts are base-currency Decimals; every method returns frozen
        DTOs.  Holds no state between calls.
    """

    def _chart(self, as_of: date, start: date | None = None) -> _Chart:
        return _Chart(
            self.repository.list_accounts(),
            self.repository.line_totals(as_of, start),
        )

    def _balance_dto(self, chart: _Chart, account: Account, as_of: date) -> AccountBalance:
        own = chart.own(account.id)
        normal = NormalBalance(account.normal_balance)
        return AccountBalance(
            account_id=account.id,
            code=account.code,
            name=account.name,
            account_type=AccountType(account.account_type),
            normal_balance=normal,
            as_of=as_of,
            currency=self.tenant.base_currency,
            debit_total=own.debit_total,
            credit_total=own.credit_total,
            own_balance=signed_balance(normal, own.debit_total, own.credit_total),
            balance=chart.rollup(account.id),
        )

    def account_balance(self, account_id: UUID, as_of: date) -> AccountBalance:
        """
        Balance of ``account_id`` and its descendants as of ``as_of``.

        Raises:
            AccountNotFoundError: Unknown account.
        """
        chart = self._chart(as_of)
        account = chart.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return self._balance_dto(chart, account, as_of)

    def account_balances(self, as_of: date) -> list[AccountBalance]:
        """Balances of every account, ordered by code."""
        chart = self._chart(as_of)
        return [
            self._balance_dto(chart, account, as_of)
            for account in sorted(chart.accounts.values(), key=lambda a: a.code)
        ]

    def trial_balance(self, as_of: date) -> TrialBalance:
        """
        One row per account with own totals and rollup, plus grand totals.

        Raises:
            TrialBalanceIntegrityError: Own debit balances do not equal own
                credit balances.
        """
        chart = self._chart(as_of)
        rows: list[TrialBalanceRow] = []
        for account in sorted(chart.accounts.values(), key=lambda a: a.code):
            own = chart.own(account.id)
            normal = NormalBalance(account.normal_balance)
            rows.append(
                TrialBalanceRow(
                    account_id=account.id,
                    code=account.code,
                    name=account.name,
                    account_type=AccountType(account.account_type),
                    normal_balance=normal,
                    parent_id=account.parent_id,
                    debit_total=own.debit_total,
                    credit_total=own.credit_total,
                    own_balance=signed_balance(normal, own.debit_total, own.credit_total),
                    rollup_balance=chart.rollup(account.id),
                )
            )

        # Lines on accounts missing from the chart would silently drop out
        orphaned = set(chart.totals) - set(chart.accounts)
        total_debits = sum((row.debit_balance for row in rows), ZERO)
        total_credits = sum((row.credit_balance for row in rows), ZERO)

        if orphaned or total_debits != total_credits:
            logger.error(
                "trial_balance_imbalance",
                extra={
                    "as_of": as_of,
                    "total_debits": total_debits,
                    "total_credits": total_credits,
                    "orphaned_accounts": sorted(str(a) for a in orphaned),
                },
            )
            raise TrialBalanceIntegrityError(
                as_of.isoformat(), str(total_debits), str(total_credits)
            )

        logger.info(
            "trial_balance_computed",
            extra={"as_of": as_of, "accounts": len(rows), "total": total_debits},
        )
        return TrialBalance(
            tenant_id=self.tenant.tenant_id,
            as_of=as_of,
            currency=self.tenant.base_currency,
            rows=tuple(rows),
            total_debits=total_debits,
            total_credits=total_credits,
        )

    def period_activity(self, start: date, end: date) -> list[AccountActivity]:
        """
        Own-line movement per account within ``[start, end]``.

        Accounts without movement are omitted.
        """
        if start > end:
            raise ValidationError(f"start ({start}) cannot be after end ({end})")
        chart = self._chart(end, start)
        activity = []
        for account in sorted(chart.accounts.values(), key=lambda a: a.code):
            if account.id not in chart.totals:
                continue
            own = chart.own(account.id)
            activity.append(
                AccountActivity(
                    account_id=account.id,
                    code=account.code,
                    name=account.name,
                    account_type=AccountType(account.account_type),
                    start=start,
                    end=end,
                    debit_total=own.debit_total,
                    credit_total=own.credit_total,
                    net_activity=signed_balance(
                        NormalBalance(account.normal_balance),
                        own.debit_total,
                        own.credit_total,
                    ),
                )
            )
        return activity
