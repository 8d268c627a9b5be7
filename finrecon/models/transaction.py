"""Categorized transaction model."""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from finrecon.database import Base
from finrecon.models.base import TimestampMixin, UserOwnedMixin, UUIDMixin
from finrecon.models.enums import BreakdownType, ReconciliationStatus


class Transaction(UUIDMixin, UserOwnedMixin, TimestampMixin, Base):
    """A categorized ledger line, either extracted by ingestion or a breakdown entry.

    Breakdown entries are itemized children (tax, fee, shipping, subtotal) of a
    matched parent transaction and point at the same document.
    """

    __tablename__ = "categorized_transactions"
    __table_args__ = (
        CheckConstraint(
            "(matched_document_id IS NULL AND reconciliation_status = 'unreconciled') "
            "OR (matched_document_id IS NOT NULL AND reconciliation_status = 'matched')",
            name="ck_categorized_transactions_match_status",
        ),
        UniqueConstraint(
            "matched_document_id",
            "breakdown_type",
            name="uq_categorized_transactions_document_breakdown",
        ),
    )

    job_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    original_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # negative = outflow
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # 0-1
    bank_account_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    reconciliation_status: Mapped[ReconciliationStatus] = mapped_column(
        SQLEnum(
            ReconciliationStatus,
            name="reconciliation_status_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
        default=ReconciliationStatus.UNRECONCILED,
    )
    matched_document_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("financial_documents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reconciled_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_breakdown_entry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    breakdown_type: Mapped[BreakdownType] = mapped_column(
        SQLEnum(
            BreakdownType,
            name="breakdown_type_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
        default=BreakdownType.NONE,
    )
    parent_transaction_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("categorized_transactions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    user_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
