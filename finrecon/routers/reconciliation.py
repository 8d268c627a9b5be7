"""Reconciliation API router."""

from uuid import UUID

from fastapi import APIRouter, Query

from finrecon.deps import CurrentUserId, Store
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
from finrecon.services.reconciliation import (
    CandidateSuggestion,
    auto_match,
    match_manually,
    suggest_candidates,
)
from finrecon.utils.exceptions import raise_conflict, raise_internal_error, raise_not_found

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])


def _build_suggestion_response(suggestion: CandidateSuggestion) -> CandidateSuggestionResponse:
    return CandidateSuggestionResponse(
        transaction=TransactionSummary.model_validate(suggestion.transaction),
        candidates=[
            CandidateDocumentResponse(
                document=DocumentSummary.model_validate(candidate.document),
                amount_diff=candidate.score.amount_diff,
                date_diff=candidate.score.date_diff,
                description_score=float(candidate.score.description_score),
                confidence=MatchConfidenceEnum(candidate.confidence.value),
            )
            for candidate in suggestion.candidates
        ],
    )


@router.post("/auto-match", response_model=AutoMatchResponse)
async def run_auto_match(store: Store, user_id: CurrentUserId) -> AutoMatchResponse:
    """Match all unmatched transactions against unmatched receipts and invoices."""
    result = await auto_match(store, user_id=user_id)
    if result.errors and result.matched_count == 0:
        raise_internal_error("Auto-match failed")

    return AutoMatchResponse(
        matched_count=result.matched_count,
        conflicts=result.conflicts,
        breakdown_entries_created=result.breakdown_entries_created,
        matches=[MatchedPairResponse.model_validate(pair) for pair in result.matched_pairs],
        message=f"Matched {result.matched_count} transaction(s) to documents",
    )


@router.post("/match", response_model=ManualMatchResponse)
async def create_manual_match(
    payload: ManualMatchRequest,
    store: Store,
    user_id: CurrentUserId,
) -> ManualMatchResponse:
    """Pair a transaction with a document chosen by the user."""
    result = await match_manually(
        store,
        user_id=user_id,
        transaction_id=payload.transaction_id,
        document_id=payload.document_id,
    )
    if result.not_found:
        raise_not_found("Transaction or document")
    if result.conflicts:
        raise_conflict("Transaction or document is already matched")
    if result.matched_count != 1:
        raise_internal_error("Manual match failed")

    return ManualMatchResponse(
        transaction_id=payload.transaction_id,
        document_id=payload.document_id,
        breakdown_entries_created=result.breakdown_entries_created,
        message="Match created",
    )


@router.get("/candidates", response_model=CandidateListResponse)
async def list_candidates(
    store: Store,
    user_id: CurrentUserId,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    bank_account_id: UUID | None = Query(None),
) -> CandidateListResponse:
    """List unmatched transactions with tiered candidate documents."""
    suggestions = await suggest_candidates(
        store,
        user_id=user_id,
        limit=limit,
        offset=offset,
        bank_account_id=bank_account_id,
    )
    items = [_build_suggestion_response(suggestion) for suggestion in suggestions]
    return CandidateListResponse(items=items, total=len(items))
