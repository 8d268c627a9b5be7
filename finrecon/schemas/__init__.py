"""Pydantic schemas package."""

from finrecon.schemas.base import BaseResponse, ListResponse
from finrecon.schemas.reconciliation import (
    AutoMatchResponse,
    CandidateDocumentResponse,
    CandidateListResponse,
    CandidateSuggestionResponse,
    DocumentSummary,
    ManualMatchRequest,
    ManualMatchResponse,
    MatchConfidenceEnum,
    MatchedPairResponse,
    TransactionSummary,
)

__all__ = [
    "AutoMatchResponse",
    "BaseResponse",
    "CandidateDocumentResponse",
    "CandidateListResponse",
    "CandidateSuggestionResponse",
    "DocumentSummary",
    "ListResponse",
    "ManualMatchRequest",
    "ManualMatchResponse",
    "MatchConfidenceEnum",
    "MatchedPairResponse",
    "TransactionSummary",
]
