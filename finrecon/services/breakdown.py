"""General-ledger breakdown of matched receipts and invoices."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from finrecon.logger import get_logger
from finrecon.models import BreakdownType, DocumentFileType, ReconciliationStatus
from finrecon.services.reconciliation_store import (
    DocumentSnapshot,
    ReconciliationStore,
    TransactionSnapshot,
)
from finrecon.services.scoring import to_decimal

logger = get_logger(__name__)

EXPLODABLE_FILE_TYPES = frozenset({DocumentFileType.RECEIPT, DocumentFileType.INVOICE})


@dataclass(frozen=True)
class BreakdownRule:
    """How one document amount field becomes a ledger line.

    A category of None inherits the parent transaction's category and
    subcategory.
    """

    breakdown_type: BreakdownType
    field_name: str
    label: str
    category: str | None
    confidence: float


BREAKDOWN_RULES: tuple[BreakdownRule, ...] = (
    BreakdownRule(BreakdownType.SUBTOTAL, "subtotal_amount", "Subtotal", None, 0.8),
    BreakdownRule(BreakdownType.TAX, "tax_amount", "Tax", "Tax Expense", 0.9),
    BreakdownRule(BreakdownType.FEE, "fee_amount", "Fee", "Fees & Charges", 0.8),
    BreakdownRule(BreakdownType.SHIPPING, "shipping_amount", "Shipping", "Shipping & Delivery", 0.8),
)


def is_explodable(document: DocumentSnapshot) -> bool:
    return document.file_type in EXPLODABLE_FILE_TYPES


def build_breakdown_entries(
    document: DocumentSnapshot,
    parent: TransactionSnapshot,
) -> list[dict[str, Any]]:
    """Build breakdown transaction rows for every positive amount field."""
    vendor = document.vendor_name or "Vendor"
    entries: list[dict[str, Any]] = []

    for rule in BREAKDOWN_RULES:
        amount = to_decimal(getattr(document, rule.field_name))
        if amount is None or amount <= Decimal("0"):
            continue

        if rule.category is None:
            category, subcategory = parent.category, parent.subcategory
        else:
            category, subcategory = rule.category, None

        entries.append(
            {
                "user_id": parent.user_id,
                "job_id": parent.job_id,
                "original_description": f"{vendor} - {rule.label}",
                "amount": amount,
                "date": document.document_date or parent.date,
                "category": category,
                "subcategory": subcategory,
                "confidence_score": rule.confidence,
                "bank_account_id": parent.bank_account_id,
                "reconciliation_status": ReconciliationStatus.MATCHED,
                "matched_document_id": document.id,
                "is_breakdown_entry": True,
                "breakdown_type": rule.breakdown_type,
                "parent_transaction_id": parent.id,
                "user_confirmed": False,
            }
        )
    return entries


async def explode_breakdown(
    store: ReconciliationStore,
    document: DocumentSnapshot,
    parent: TransactionSnapshot,
) -> int:
    """Create breakdown entries for a freshly matched pair.

    Returns the number of rows created. Documents that are not receipts or
    invoices, or that were already exploded, produce nothing.
    """
    if not is_explodable(document):
        return 0

    if await store.has_breakdown_entries(document.id):
        logger.info(
            "Breakdown entries already present",
            document_id=str(document.id),
            parent_transaction_id=str(parent.id),
        )
        return 0

    entries = build_breakdown_entries(document, parent)
    if not entries:
        return 0

    created = await store.insert_breakdown_entries(entries)
    logger.info(
        "Breakdown entries created",
        document_id=str(document.id),
        parent_transaction_id=str(parent.id),
        count=created,
        breakdown_types=[entry["breakdown_type"].value for entry in entries],
    )
    return created
