"""Persistence for the reconciliation engine.

Every method opens its own session from the injected session maker, so a
commit or rollback here never touches a caller's unit of work. Reads return
frozen snapshots instead of ORM rows; they stay valid after the session that
loaded them is gone.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finrecon.logger import get_logger
from finrecon.models import (
    BreakdownType,
    Document,
    DocumentFileType,
    ReconciliationStatus,
    Transaction,
)

logger = get_logger(__name__)


class CommitOutcome(str, Enum):
    """Result of a single match commit attempt."""

    COMMITTED = "committed"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class ReconciliationPersistenceError(Exception):
    """Raised when the database rejects a reconciliation read or write."""


class _ClaimLost(Exception):
    """Internal signal that a conditional update matched no row."""


@dataclass(frozen=True)
class TransactionSnapshot:
    """Read-only view of a categorized transaction."""

    id: UUID
    user_id: UUID
    job_id: UUID | None
    original_description: str
    amount: Decimal
    date: date
    category: str | None
    subcategory: str | None
    bank_account_id: UUID | None
    reconciliation_status: ReconciliationStatus
    matched_document_id: UUID | None
    is_breakdown_entry: bool

    @classmethod
    def from_model(cls, transaction: Transaction) -> TransactionSnapshot:
        return cls(
            id=transaction.id,
            user_id=transaction.user_id,
            job_id=transaction.job_id,
            original_description=transaction.original_description,
            amount=transaction.amount,
            date=transaction.date,
            category=transaction.category,
            subcategory=transaction.subcategory,
            bank_account_id=transaction.bank_account_id,
            reconciliation_status=transaction.reconciliation_status,
            matched_document_id=transaction.matched_document_id,
            is_breakdown_entry=transaction.is_breakdown_entry,
        )

    @property
    def is_matched(self) -> bool:
        return self.matched_document_id is not None or self.reconciliation_status == ReconciliationStatus.MATCHED


@dataclass(frozen=True)
class DocumentSnapshot:
    """Read-only view of a financial document and its amount fields."""

    id: UUID
    user_id: UUID
    file_type: DocumentFileType
    original_filename: str
    document_date: date | None
    vendor_name: str | None
    total_amount: Decimal | None
    subtotal_amount: Decimal | None
    tax_amount: Decimal | None
    fee_amount: Decimal | None
    shipping_amount: Any
    reconciliation_status: ReconciliationStatus
    matched_transaction_id: UUID | None

    @classmethod
    def from_model(cls, document: Document) -> DocumentSnapshot:
        return cls(
            id=document.id,
            user_id=document.user_id,
            file_type=document.file_type,
            original_filename=document.original_filename,
            document_date=document.document_date,
            vendor_name=document.vendor_name,
            total_amount=document.total_amount,
            subtotal_amount=document.subtotal_amount,
            tax_amount=document.tax_amount,
            fee_amount=document.fee_amount,
            shipping_amount=document.shipping_amount,
            reconciliation_status=document.reconciliation_status,
            matched_transaction_id=document.matched_transaction_id,
        )

    @property
    def is_matched(self) -> bool:
        return (
            self.matched_transaction_id is not None
            or self.reconciliation_status == ReconciliationStatus.MATCHED
        )


class ReconciliationStore:
    """Candidate reads, the compare-and-set commit, and breakdown inserts."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def list_unmatched_transactions(
        self,
        user_id: UUID,
        *,
        transaction_ids: Collection[UUID] | None = None,
        exclude_ids: Collection[UUID] = (),
        bank_account_id: UUID | None = None,
    ) -> list[TransactionSnapshot]:
        """Unmatched, non-breakdown transactions of a user, newest first."""
        stmt = select(Transaction).where(
            Transaction.user_id == user_id,
            Transaction.matched_document_id.is_(None),
            Transaction.reconciliation_status == ReconciliationStatus.UNRECONCILED,
            Transaction.is_breakdown_entry.is_(False),
        )
        if transaction_ids is not None:
            if not transaction_ids:
                return []
            stmt = stmt.where(Transaction.id.in_(list(transaction_ids)))
        if exclude_ids:
            stmt = stmt.where(Transaction.id.not_in(list(exclude_ids)))
        if bank_account_id is not None:
            stmt = stmt.where(Transaction.bank_account_id == bank_account_id)
        stmt = stmt.order_by(Transaction.date.desc(), Transaction.id)

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return [TransactionSnapshot.from_model(row) for row in result.scalars()]
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError("Failed to load unmatched transactions") from exc

    async def list_unmatched_documents(
        self,
        user_id: UUID,
        *,
        file_types: Iterable[DocumentFileType] | None = None,
        exclude_file_types: Iterable[DocumentFileType] = (),
        exclude_ids: Collection[UUID] = (),
        document_ids: Collection[UUID] | None = None,
    ) -> list[DocumentSnapshot]:
        """Unmatched documents of a user, newest first with undated documents last."""
        stmt = select(Document).where(
            Document.user_id == user_id,
            Document.matched_transaction_id.is_(None),
            Document.reconciliation_status == ReconciliationStatus.UNRECONCILED,
        )
        if file_types is not None:
            stmt = stmt.where(Document.file_type.in_(list(file_types)))
        excluded_types = list(exclude_file_types)
        if excluded_types:
            stmt = stmt.where(Document.file_type.not_in(excluded_types))
        if exclude_ids:
            stmt = stmt.where(Document.id.not_in(list(exclude_ids)))
        if document_ids is not None:
            if not document_ids:
                return []
            stmt = stmt.where(Document.id.in_(list(document_ids)))
        stmt = stmt.order_by(Document.document_date.desc().nulls_last(), Document.id)

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return [DocumentSnapshot.from_model(row) for row in result.scalars()]
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError("Failed to load unmatched documents") from exc

    async def get_transaction(self, transaction_id: UUID) -> TransactionSnapshot | None:
        try:
            async with self._session_maker() as session:
                transaction = await session.get(Transaction, transaction_id)
                return TransactionSnapshot.from_model(transaction) if transaction else None
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError("Failed to load transaction") from exc

    async def get_document(self, document_id: UUID) -> DocumentSnapshot | None:
        try:
            async with self._session_maker() as session:
                document = await session.get(Document, document_id)
                return DocumentSnapshot.from_model(document) if document else None
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError("Failed to load document") from exc

    async def commit_match(self, transaction_id: UUID, document_id: UUID) -> CommitOutcome:
        """Atomically pair a transaction and a document.

        Both sides are claimed with conditional updates that only touch rows
        still unmatched. If either update misses, the database transaction is
        rolled back and neither side changes.
        """
        now = datetime.now(UTC)
        try:
            async with self._session_maker() as session, session.begin():
                document_result = await session.execute(
                    update(Document)
                    .where(
                        Document.id == document_id,
                        Document.matched_transaction_id.is_(None),
                        Document.reconciliation_status == ReconciliationStatus.UNRECONCILED,
                    )
                    .values(
                        matched_transaction_id=transaction_id,
                        reconciliation_status=ReconciliationStatus.MATCHED,
                        reconciled_at=now,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if document_result.rowcount != 1:
                    raise _ClaimLost

                transaction_result = await session.execute(
                    update(Transaction)
                    .where(
                        Transaction.id == transaction_id,
                        Transaction.matched_document_id.is_(None),
                        Transaction.reconciliation_status == ReconciliationStatus.UNRECONCILED,
                    )
                    .values(
                        matched_document_id=document_id,
                        reconciliation_status=ReconciliationStatus.MATCHED,
                        reconciled_at=now,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if transaction_result.rowcount != 1:
                    raise _ClaimLost
        except _ClaimLost:
            return await self._classify_miss(transaction_id, document_id)
        except IntegrityError as exc:
            # A unique constraint fired: the counterpart was claimed concurrently.
            logger.warning(
                "Match commit rejected by constraint",
                transaction_id=str(transaction_id),
                document_id=str(document_id),
                error=str(exc.orig),
            )
            return CommitOutcome.CONFLICT
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError(
                f"Failed to commit match {transaction_id} -> {document_id}"
            ) from exc

        logger.info(
            "Match committed",
            transaction_id=str(transaction_id),
            document_id=str(document_id),
        )
        return CommitOutcome.COMMITTED

    async def _classify_miss(self, transaction_id: UUID, document_id: UUID) -> CommitOutcome:
        try:
            async with self._session_maker() as session:
                transaction_exists = await session.scalar(
                    select(exists().where(Transaction.id == transaction_id))
                )
                document_exists = await session.scalar(select(exists().where(Document.id == document_id)))
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError("Failed to inspect match conflict") from exc

        if not transaction_exists or not document_exists:
            logger.warning(
                "Match commit target missing",
                transaction_id=str(transaction_id),
                document_id=str(document_id),
                transaction_exists=bool(transaction_exists),
                document_exists=bool(document_exists),
            )
            return CommitOutcome.NOT_FOUND

        logger.info(
            "Match commit lost race",
            transaction_id=str(transaction_id),
            document_id=str(document_id),
        )
        return CommitOutcome.CONFLICT

    async def has_breakdown_entries(self, document_id: UUID) -> bool:
        try:
            async with self._session_maker() as session:
                found = await session.scalar(
                    select(
                        exists().where(
                            Transaction.matched_document_id == document_id,
                            Transaction.is_breakdown_entry.is_(True),
                        )
                    )
                )
                return bool(found)
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError("Failed to check breakdown entries") from exc

    async def insert_breakdown_entries(self, entries: list[dict[str, Any]]) -> int:
        """Insert breakdown transactions in one database transaction.

        Returns the number of rows written. A unique-constraint violation means
        another run already exploded the same document; nothing is written.
        """
        if not entries:
            return 0
        try:
            async with self._session_maker() as session, session.begin():
                session.add_all([Transaction(**entry) for entry in entries])
        except IntegrityError as exc:
            logger.warning(
                "Breakdown entries already exist",
                document_id=str(entries[0].get("matched_document_id")),
                breakdown_types=[
                    BreakdownType(entry["breakdown_type"]).value for entry in entries
                ],
                error=str(exc.orig),
            )
            return 0
        except SQLAlchemyError as exc:
            raise ReconciliationPersistenceError("Failed to insert breakdown entries") from exc
        return len(entries)
