"""Financial document model."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from finrecon.database import Base
from finrecon.models.base import JSONType, TimestampMixin, UserOwnedMixin, UUIDMixin
from finrecon.models.enums import DocumentFileType, ReconciliationStatus


class Document(UUIDMixin, UserOwnedMixin, TimestampMixin, Base):
    """Metadata and OCR-extracted amounts for one uploaded financial file."""

    __tablename__ = "financial_documents"
    __table_args__ = (
        CheckConstraint(
            "(matched_transaction_id IS NULL AND reconciliation_status = 'unreconciled') "
            "OR (matched_transaction_id IS NOT NULL AND reconciliation_status = 'matched')",
            name="ck_financial_documents_match_status",
        ),
        UniqueConstraint("matched_transaction_id", name="uq_financial_documents_matched_transaction_id"),
    )

    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[DocumentFileType] = mapped_column(
        SQLEnum(
            DocumentFileType,
            name="document_file_type_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
        default=DocumentFileType.OTHER,
    )
    document_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    vendor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    subtotal_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    fee_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    extracted_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    reconciliation_status: Mapped[ReconciliationStatus] = mapped_column(
        SQLEnum(
            ReconciliationStatus,
            name="reconciliation_status_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
        default=ReconciliationStatus.UNRECONCILED,
    )
    # Plain column rather than a foreign key: categorized_transactions already
    # references this table and the pair is kept consistent by the commit.
    matched_transaction_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )
    reconciled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def shipping_amount(self) -> Any:
        """Shipping is only available through the extracted fields map."""
        return (self.extracted_data or {}).get("shipping_amount")
