"""
Draft entry tests.

Verifies:
- Drafts are stored unnumbered and unpriced; balance is not required yet
- Only drafts can be edited or deleted
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import DraftEntryRequest, DraftLine, EntryFilter, EntryStatus
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    EntryNotFoundError,
    InvalidCurrencyError,
    InvalidLineError,
    InvalidStateError,
)


class TestCreateDraft:
    def test_draft_is_unnumbered_and_unpriced(self, draft_entry, standard_accounts):
        draft = draft_entry([
            (standard_accounts["office_supplies"], "100.00", None),
            (standard_accounts["cash"], None, "100.00"),
        ])

        assert draft.status == EntryStatus.DRAFT
        assert draft.entry_number is None
        assert draft.display_number is None
        assert [line.line_number for line in draft.lines] == [1, 2]
        assert all(line.exchange_rate is None for line in draft.lines)
        assert all(line.base_currency_amount is None for line in draft.lines)

    def test_unbalanced_draft_accepted(self, draft_entry, standard_accounts):
        draft = draft_entry([
            (standard_accounts["office_supplies"], "100.00", None),
            (standard_accounts["cash"], None, "99.99"),
        ])
        assert draft.status == EntryStatus.DRAFT

    def test_invalid_currency_rejected(self, draft_entry, standard_accounts):
        with pytest.raises(InvalidCurrencyError):
            draft_entry(
                [(standard_accounts["cash"], "1", None), (standard_accounts["revenue"], None, "1")],
                currency="ABC",
            )

    def test_malformed_line_rejected(self, journal_manager, standard_accounts, test_actor_id):
        request = DraftEntryRequest(
            entry_date=date(2024, 3, 1),
            currency="EUR",
            lines=(DraftLine(standard_accounts["cash"].id, Decimal("5"), Decimal("5")),),
        )
        with pytest.raises(InvalidLineError):
            journal_manager.create_draft(request, test_actor_id)

    def test_empty_draft_rejected(self, journal_manager, test_actor_id):
        request = DraftEntryRequest(entry_date=date(2024, 3, 1), currency="EUR", lines=())
        with pytest.raises(InvalidLineError):
            journal_manager.create_draft(request, test_actor_id)

    def test_unknown_account_rejected(self, journal_manager, standard_accounts, test_actor_id):
        request = DraftEntryRequest(
            entry_date=date(2024, 3, 1),
            currency="EUR",
            lines=(
                DraftLine.debit(uuid4(), "5"),
                DraftLine.credit(standard_accounts["cash"].id, "5"),
            ),
        )
        with pytest.raises(AccountNotFoundError):
            journal_manager.create_draft(request, test_actor_id)


class TestUpdateDraft:
    def test_replace_lines(self, draft_entry, journal_manager, standard_accounts, test_actor_id):
        draft = draft_entry([
            (standard_accounts["office_supplies"], "100.00", None),
            (standard_accounts["cash"], None, "99.99"),
        ])

        updated = journal_manager.update_draft(
            draft.id,
            test_actor_id,
            lines=(
                DraftLine.debit(standard_accounts["office_supplies"].id, "60"),
                DraftLine.debit(standard_accounts["rent"].id, "40"),
                DraftLine.credit(standard_accounts["cash"].id, "100"),
            ),
            description="Corrected",
        )

        assert updated.description == "Corrected"
        assert [line.line_number for line in updated.lines] == [1, 2, 3]
        assert updated.lines[1].account_id == standard_accounts["rent"].id
        assert updated.lines[2].credit_amount == Decimal("100")

    def test_redate_and_recurrency(self, draft_entry, journal_manager, standard_accounts, test_actor_id):
        draft = draft_entry([
            (standard_accounts["cash"], "10", None),
            (standard_accounts["revenue"], None, "10"),
        ])
        updated = journal_manager.update_draft(
            draft.id, test_actor_id, entry_date=date(2025, 2, 1), currency="usd"
        )
        assert updated.entry_date == date(2025, 2, 1)
        assert updated.currency == "USD"
        assert len(updated.lines) == 2

    def test_posted_entry_cannot_be_edited(
        self, posted_entry, journal_manager, standard_accounts, test_actor_id
    ):
        posted = posted_entry([
            (standard_accounts["cash"], "10", None),
            (standard_accounts["revenue"], None, "10"),
        ])
        with pytest.raises(InvalidStateError) as exc_info:
            journal_manager.update_draft(posted.id, test_actor_id, description="Edited")
        assert exc_info.value.code == "INVALID_STATE"


class TestDeleteDraft:
    def test_delete_draft(self, draft_entry, journal_manager, standard_accounts):
        draft = draft_entry([
            (standard_accounts["cash"], "10", None),
            (standard_accounts["revenue"], None, "10"),
        ])
        journal_manager.delete_draft(draft.id)
        with pytest.raises(EntryNotFoundError):
            journal_manager.get_entry(draft.id)

    def test_posted_entry_cannot_be_deleted(self, posted_entry, journal_manager, standard_accounts):
        posted = posted_entry([
            (standard_accounts["cash"], "10", None),
            (standard_accounts["revenue"], None, "10"),
        ])
        with pytest.raises(InvalidStateError):
            journal_manager.delete_draft(posted.id)
        assert journal_manager.get_entry(posted.id).status == EntryStatus.POSTED

    def test_unknown_entry(self, journal_manager):
        with pytest.raises(EntryNotFoundError):
            journal_manager.delete_draft(uuid4())


class TestListEntries:
    def test_filter_by_status_and_account(
        self, draft_entry, posted_entry, journal_manager, standard_accounts
    ):
        posted = posted_entry([
            (standard_accounts["cash"], "10", None),
            (standard_accounts["revenue"], None, "10"),
        ])
        draft = draft_entry([
            (standard_accounts["rent"], "5", None),
            (standard_accounts["cash"], None, "5"),
        ])

        drafts = journal_manager.list_entries(EntryFilter(status=EntryStatus.DRAFT))
        assert [e.id for e in drafts] == [draft.id]

        on_revenue = journal_manager.list_entries(
            EntryFilter(account_id=standard_accounts["revenue"].id)
        )
        assert [e.id for e in on_revenue] == [posted.id]
        assert len(journal_manager.list_entries()) == 2
