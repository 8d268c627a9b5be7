"""Enumerations shared by reconciliation models."""

from enum import Enum


class ReconciliationStatus(str, Enum):
    """Whether a transaction or document has been paired with its counterpart."""

    UNRECONCILED = "unreconciled"
    MATCHED = "matched"


class BreakdownType(str, Enum):
    """Which document amount field a breakdown ledger line was built from."""

    NONE = "none"
    SUBTOTAL = "subtotal"
    TAX = "tax"
    FEE = "fee"
    SHIPPING = "shipping"


class DocumentFileType(str, Enum):
    """Kind of uploaded financial document."""

    BANK_STATEMENT = "bank_statement"
    INVOICE = "invoice"
    RECEIPT = "receipt"
    TAX_DOCUMENT = "tax_document"
    OTHER = "other"
