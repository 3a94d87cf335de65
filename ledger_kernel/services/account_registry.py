"""
AccountRegistry -- the tenant's chart of accounts.

Responsibility:
    Creates, reads, updates, deactivates and (when unreferenced) deletes
    accounts, and answers hierarchy questions (children, descendants).

Architecture position:
    Kernel > Services -- imperative shell.  Used by JournalEntryManager to
    validate line accounts and by BalanceCalculator (through the
    repository) for the hierarchy.

Invariants enforced:
    - (tenant, code) is unique.
    - ``normal_balance`` always equals ``NormalBalance.for_type(account_type)``.
    - The parent graph is acyclic; an account cannot be its own ancestor.
    - ``account_type`` is frozen once any POSTED or VOID entry has a line on
      the account.
    - Deactivation is soft.  Hard delete is refused while any line (draft
      or posted) references the account, or while it has children.

Failure modes:
    - DuplicateCodeError, AccountNotFoundError, CyclicHierarchyError,
      ImmutableFieldError, AccountReferencedError.
"""

from uuid import UUID

from ledger_kernel.domain.dtos import (
    UNSET,
    AccountFilter,
    AccountInfo,
    AccountType,
    NormalBalance,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    CyclicHierarchyError,
    DuplicateCodeError,
    ImmutableFieldError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("services.accounts")


class AccountRegistry(BaseService[Account]):
    """
    Chart-of-accounts service.

    Contract:
        Returns ``AccountInfo`` DTOs.  Writes flush within the caller's
        transaction.
    """

    def _load(self, account_id: UUID) -> Account:
        account = self.repository.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def _ensure_code_free(self, code: str, exclude_id: UUID | None = None) -> None:
        existing = self.repository.get_account_by_code(code)
        if existing is not None and existing.id != exclude_id:
            logger.warning("duplicate_account_code", extra={"code": code})
            raise DuplicateCodeError(code)

    def _ensure_acyclic(self, account_id: UUID | None, parent_id: UUID) -> None:
        """Walk up from ``parent_id``; reaching ``account_id`` means a cycle."""
        seen: set[UUID] = set()
        current: UUID | None = parent_id
        while current is not None:
            if current == account_id or current in seen:
                raise CyclicHierarchyError(str(account_id), str(parent_id))
            seen.add(current)
            current = self._load(current).parent_id

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        parent_id: UUID | None = None,
        description: str | None = None,
        is_system: bool = False,
    ) -> AccountInfo:
        """
        Create an account.

        Raises:
            ValidationError: Blank code or name.
            DuplicateCodeError: Code already used in this tenant.
            AccountNotFoundError: Unknown parent.
        """
        code = (code or "").strip()
        if not code or not (name or "").strip():
            raise ValidationError("Account code and name are required")
        account_type = AccountType(account_type)

        self._ensure_code_free(code)
        if parent_id is not None:
            self._load(parent_id)

        account = Account(
            tenant_id=self.tenant.tenant_id,
            code=code,
            name=name.strip(),
            account_type=account_type.value,
            normal_balance=NormalBalance.for_type(account_type).value,
            parent_id=parent_id,
            description=description,
            is_active=True,
            is_system=is_system,
            created_by_id=actor_id,
        )
        self.repository.add_account(account)

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "code": code,
                "account_type": account_type.value,
                "parent_id": str(parent_id) if parent_id else None,
            },
        )
        return account.to_dto()

    def update_account(
        self,
        account_id: UUID,
        actor_id: UUID,
        *,
        code=UNSET,
        name=UNSET,
        description=UNSET,
        parent_id=UNSET,
        account_type=UNSET,
    ) -> AccountInfo:
        """
        Update mutable attributes.  Only supplied keyword arguments change.

        Raises:
            DuplicateCodeError, AccountNotFoundError, CyclicHierarchyError,
            ImmutableFieldError (account_type with posted lines).
        """
        account = self._load(account_id)
        changed: list[str] = []

        if code is not UNSET and code != account.code:
            code = (code or "").strip()
            if not code:
                raise ValidationError("Account code is required")
            self._ensure_code_free(code, exclude_id=account.id)
            account.code = code
            changed.append("code")

        if name is not UNSET and name != account.name:
            if not (name or "").strip():
                raise ValidationError("Account name is required")
            account.name = name.strip()
            changed.append("name")

        if description is not UNSET and description != account.description:
            account.description = description
            changed.append("description")

        if parent_id is not UNSET and parent_id != account.parent_id:
            if parent_id is not None:
                self._ensure_acyclic(account.id, parent_id)
            account.parent_id = parent_id
            changed.append("parent_id")

        if account_type is not UNSET:
            new_type = AccountType(account_type)
            if new_type != AccountType(account.account_type):
                if self.repository.account_has_posted_lines(account.id):
                    logger.warning(
                        "account_type_change_rejected",
                        extra={"account_id": str(account.id), "code": account.code},
                    )
                    raise ImmutableFieldError(
                        "Account",
                        str(account.id),
                        "account_type",
                        "account is referenced by posted journal lines",
                    )
                account.account_type = new_type.value
                account.normal_balance = NormalBalance.for_type(new_type).value
                changed.append("account_type")

        if changed:
            account.updated_by_id = actor_id
            self.repository.flush()
            logger.info(
                "account_updated",
                extra={"account_id": str(account.id), "fields": changed},
            )
        return account.to_dto()

    def _set_active(self, account_id: UUID, actor_id: UUID, active: bool) -> AccountInfo:
        account = self._load(account_id)
        if account.is_active != active:
            account.is_active = active
            account.updated_by_id = actor_id
            self.repository.flush()
            logger.info(
                "account_activated" if active else "account_deactivated",
                extra={"account_id": str(account.id), "code": account.code},
            )
        return account.to_dto()

    def deactivate(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        """Soft-deactivate.  New draft lines on the account are then refused."""
        return self._set_active(account_id, actor_id, False)

    def reactivate(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        return self._set_active(account_id, actor_id, True)

    def delete_account(self, account_id: UUID) -> None:
        """
        Hard-delete an account nothing refers to.

        Raises:
            AccountReferencedError: Lines or child accounts reference it.
        """
        account = self._load(account_id)
        if (
            self.repository.account_has_lines(account.id)
            or self.repository.child_accounts(account.id)
        ):
            logger.warning(
                "account_delete_rejected",
                extra={"account_id": str(account.id), "code": account.code},
            )
            raise AccountReferencedError(str(account.id))
        self.repository.delete_account(account)
        logger.info("account_deleted", extra={"account_id": str(account_id)})

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_account(self, account_id: UUID) -> AccountInfo:
        return self._load(account_id).to_dto()

    def get_account_by_code(self, code: str) -> AccountInfo:
        account = self.repository.get_account_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return account.to_dto()

    def list_accounts(self, account_filter: AccountFilter | None = None) -> list[AccountInfo]:
        return [a.to_dto() for a in self.repository.list_accounts(account_filter)]

    def children(self, account_id: UUID) -> list[AccountInfo]:
        self._load(account_id)
        return [a.to_dto() for a in self.repository.child_accounts(account_id)]

    def descendant_ids(self, account_id: UUID) -> set[UUID]:
        """Every account below ``account_id`` (excluding itself)."""
        self._load(account_id)
        result: set[UUID] = set()
        frontier = [account_id]
        while frontier:
            current = frontier.pop()
            for child in self.repository.child_accounts(current):
                if child.id not in result:
                    result.add(child.id)
                    frontier.append(child.id)
        return result
