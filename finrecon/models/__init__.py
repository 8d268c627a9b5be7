"""SQLAlchemy models package."""

from finrecon.models.document import Document
from finrecon.models.enums import BreakdownType, DocumentFileType, ReconciliationStatus
from finrecon.models.transaction import Transaction

__all__ = [
    "BreakdownType",
    "Document",
    "DocumentFileType",
    "ReconciliationStatus",
    "Transaction",
]
