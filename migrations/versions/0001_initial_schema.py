"""Initial reconciliation schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    reconciliation_status_enum = postgresql.ENUM(
        "unreconciled",
        "matched",
        name="reconciliation_status_enum",
        create_type=False,
    )
    document_file_type_enum = postgresql.ENUM(
        "bank_statement",
        "invoice",
        "receipt",
        "tax_document",
        "other",
        name="document_file_type_enum",
        create_type=False,
    )
    breakdown_type_enum = postgresql.ENUM(
        "none",
        "subtotal",
        "tax",
        "fee",
        "shipping",
        name="breakdown_type_enum",
        create_type=False,
    )
    bind = op.get_bind()
    for enum_type in (reconciliation_status_enum, document_file_type_enum, breakdown_type_enum):
        enum_type.create(bind, checkfirst=True)

    json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

    op.create_table(
        "financial_documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=False),
        sa.Column("file_type", document_file_type_enum, nullable=False),
        sa.Column("document_date", sa.Date(), nullable=True),
        sa.Column("vendor_name", sa.String(length=255), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("subtotal_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("fee_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("extracted_data", json_type, nullable=False),
        sa.Column("reconciliation_status", reconciliation_status_enum, nullable=False),
        sa.Column("matched_transaction_id", sa.Uuid(), nullable=True),
        sa.Column("reconciled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("matched_transaction_id", name="uq_financial_documents_matched_transaction_id"),
        sa.CheckConstraint(
            "(matched_transaction_id IS NULL AND reconciliation_status = 'unreconciled') "
            "OR (matched_transaction_id IS NOT NULL AND reconciliation_status = 'matched')",
            name="ck_financial_documents_match_status",
        ),
    )
    op.create_index("ix_financial_documents_user_id", "financial_documents", ["user_id"])

    op.create_table(
        "categorized_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=True),
        sa.Column("original_description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("subcategory", sa.String(length=100), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("bank_account_id", sa.Uuid(), nullable=True),
        sa.Column("reconciliation_status", reconciliation_status_enum, nullable=False),
        sa.Column(
            "matched_document_id",
            sa.Uuid(),
            sa.ForeignKey("financial_documents.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("reconciled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_breakdown_entry", sa.Boolean(), nullable=False),
        sa.Column("breakdown_type", breakdown_type_enum, nullable=False),
        sa.Column(
            "parent_transaction_id",
            sa.Uuid(),
            sa.ForeignKey("categorized_transactions.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("user_confirmed", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "matched_document_id",
            "breakdown_type",
            name="uq_categorized_transactions_document_breakdown",
        ),
        sa.CheckConstraint(
            "(matched_document_id IS NULL AND reconciliation_status = 'unreconciled') "
            "OR (matched_document_id IS NOT NULL AND reconciliation_status = 'matched')",
            name="ck_categorized_transactions_match_status",
        ),
    )
    op.create_index("ix_categorized_transactions_user_id", "categorized_transactions", ["user_id"])
    op.create_index("ix_categorized_transactions_job_id", "categorized_transactions", ["job_id"])
    op.create_index(
        "ix_categorized_transactions_matched_document_id",
        "categorized_transactions",
        ["matched_document_id"],
    )
    op.create_index(
        "ix_categorized_transactions_parent_transaction_id",
        "categorized_transactions",
        ["parent_transaction_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_categorized_transactions_parent_transaction_id", table_name="categorized_transactions")
    op.drop_index("ix_categorized_transactions_matched_document_id", table_name="categorized_transactions")
    op.drop_index("ix_categorized_transactions_job_id", table_name="categorized_transactions")
    op.drop_index("ix_categorized_transactions_user_id", table_name="categorized_transactions")
    op.drop_table("categorized_transactions")
    op.drop_index("ix_financial_documents_user_id", table_name="financial_documents")
    op.drop_table("financial_documents")
    sa.Enum(name="breakdown_type_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="document_file_type_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="reconciliation_status_enum").drop(op.get_bind(), checkfirst=True)
