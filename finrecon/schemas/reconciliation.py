"""Pydantic schemas for reconciliation API."""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from finrecon.models import DocumentFileType
from finrecon.schemas.base import BaseResponse, ListResponse


class MatchConfidenceEnum(str, Enum):
    """Review tier of a candidate document."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ManualMatchRequest(BaseModel):
    """Pair chosen by the user."""

    transaction_id: UUID
    document_id: UUID


class MatchedPairResponse(BaseResponse):
    transaction_id: UUID
    document_id: UUID
    # Scores are non-monetary; floats are acceptable for display.
    score: float | None
    breakdown_entries_created: int


class AutoMatchResponse(BaseModel):
    """Summary of a user-wide auto-match sweep."""

    matched_count: int
    conflicts: int
    breakdown_entries_created: int
    matches: list[MatchedPairResponse]
    message: str


class ManualMatchResponse(BaseModel):
    transaction_id: UUID
    document_id: UUID
    breakdown_entries_created: int
    message: str


class TransactionSummary(BaseResponse):
    """Unmatched transaction shown in the review list."""

    id: UUID
    date: date
    original_description: str
    amount: Decimal
    category: str | None


class DocumentSummary(BaseResponse):
    id: UUID
    original_filename: str
    file_type: DocumentFileType
    vendor_name: str | None
    document_date: date | None
    total_amount: Decimal | None


class CandidateDocumentResponse(BaseModel):
    document: DocumentSummary
    amount_diff: Decimal
    date_diff: int
    description_score: float
    confidence: MatchConfidenceEnum


class CandidateSuggestionResponse(BaseModel):
    transaction: TransactionSummary
    candidates: list[CandidateDocumentResponse]


CandidateListResponse = ListResponse[CandidateSuggestionResponse]
