"""Persistence boundary: the LedgerRepository interface and its SQLAlchemy implementation."""

from ledger_kernel.repositories.base import LedgerRepository
from ledger_kernel.repositories.sqlalchemy_repository import SqlAlchemyLedgerRepository

__all__ = ["LedgerRepository", "SqlAlchemyLedgerRepository"]
