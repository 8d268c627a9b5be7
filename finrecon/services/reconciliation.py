"""Reconciliation orchestrator.

Every ingestion path (bank statement batch, single invoice or receipt,
user-wide sweep, manual pairing) runs through the functions here. They load
candidate snapshots, let a match strategy pick pairs, commit each pair through
the store and explode matched receipts into breakdown entries. Failures are
logged and reported in the returned result; nothing is raised to the caller.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from finrecon.logger import get_logger, log_exception, log_timing
from finrecon.models import DocumentFileType
from finrecon.services.breakdown import EXPLODABLE_FILE_TYPES, explode_breakdown
from finrecon.services.matching import (
    AcceptedPair,
    FirstFitStrategy,
    MatchStrategy,
    SelectionVerdict,
    order_documents,
    order_transactions,
    select_matches,
)
from finrecon.services.reconciliation_store import (
    CommitOutcome,
    DocumentSnapshot,
    ReconciliationPersistenceError,
    ReconciliationStore,
    TransactionSnapshot,
)
from finrecon.services.scoring import (
    MatchConfidence,
    PairScore,
    ScoringConfig,
    confidence_tier,
    is_suggestable,
    load_scoring_config,
    score_pair,
)

logger = get_logger(__name__)

_TIER_ORDER = {MatchConfidence.HIGH: 0, MatchConfidence.MEDIUM: 1, MatchConfidence.LOW: 2}


@dataclass(frozen=True)
class MatchedPair:
    transaction_id: UUID
    document_id: UUID
    score: Decimal | None
    breakdown_entries_created: int = 0


@dataclass
class ReconciliationResult:
    """Counts and pairs produced by one orchestrator invocation."""

    matched_count: int = 0
    matched_pairs: list[MatchedPair] = field(default_factory=list)
    conflicts: int = 0
    not_found: int = 0
    breakdown_entries_created: int = 0
    errors: list[str] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return {
            "matched_count": self.matched_count,
            "conflicts": self.conflicts,
            "not_found": self.not_found,
            "breakdown_entries_created": self.breakdown_entries_created,
            "error_count": len(self.errors),
        }


@dataclass(frozen=True)
class CandidateDocument:
    document: DocumentSnapshot
    score: PairScore
    confidence: MatchConfidence


@dataclass(frozen=True)
class CandidateSuggestion:
    transaction: TransactionSnapshot
    candidates: list[CandidateDocument]


def default_strategy() -> MatchStrategy:
    return FirstFitStrategy(load_scoring_config())


async def _explode_after_commit(
    store: ReconciliationStore,
    pair: AcceptedPair,
    result: ReconciliationResult,
) -> int:
    if pair.document.file_type not in EXPLODABLE_FILE_TYPES:
        return 0
    try:
        created = await explode_breakdown(store, pair.document, pair.transaction)
    except Exception as exc:
        # The match itself is already committed and stays in place.
        log_exception(
            logger,
            exc,
            "Breakdown explosion failed",
            transaction_id=str(pair.transaction.id),
            document_id=str(pair.document.id),
        )
        result.errors.append(f"breakdown {pair.document.id}: {exc}")
        return 0
    result.breakdown_entries_created += created
    return created


async def _commit_pair(
    store: ReconciliationStore,
    pair: AcceptedPair,
    result: ReconciliationResult,
) -> CommitOutcome | None:
    """Commit one pair and record it; None means the commit itself failed."""
    try:
        outcome = await store.commit_match(pair.transaction.id, pair.document.id)
    except ReconciliationPersistenceError as exc:
        log_exception(
            logger,
            exc,
            "Match commit failed",
            transaction_id=str(pair.transaction.id),
            document_id=str(pair.document.id),
        )
        result.errors.append(f"commit {pair.transaction.id} -> {pair.document.id}: {exc}")
        return None

    if outcome is CommitOutcome.COMMITTED:
        created = await _explode_after_commit(store, pair, result)
        result.matched_count += 1
        result.matched_pairs.append(
            MatchedPair(
                transaction_id=pair.transaction.id,
                document_id=pair.document.id,
                score=pair.score.total_score,
                breakdown_entries_created=created,
            )
        )
    elif outcome is CommitOutcome.CONFLICT:
        result.conflicts += 1
    else:
        result.not_found += 1
    return outcome


async def _run_matching(
    store: ReconciliationStore,
    transactions: Sequence[TransactionSnapshot],
    documents: Sequence[DocumentSnapshot],
    strategy: MatchStrategy,
    result: ReconciliationResult,
) -> None:
    async def commit(pair: AcceptedPair) -> SelectionVerdict:
        outcome = await _commit_pair(store, pair, result)
        if outcome is CommitOutcome.COMMITTED:
            return SelectionVerdict.TAKEN
        if outcome is None:
            return SelectionVerdict.SKIP

        # The compare-and-set missed; only retry if the transaction is still open.
        try:
            current = await store.get_transaction(pair.transaction.id)
        except ReconciliationPersistenceError as exc:
            log_exception(
                logger,
                exc,
                "Transaction re-read after lost commit failed",
                transaction_id=str(pair.transaction.id),
                document_id=str(pair.document.id),
            )
            result.errors.append(f"reload {pair.transaction.id}: {exc}")
            return SelectionVerdict.SKIP
        if current is None or current.is_matched:
            return SelectionVerdict.SKIP
        return SelectionVerdict.RETRY

    await select_matches(transactions, documents, commit=commit, strategy=strategy)


async def reconcile_transactions(
    store: ReconciliationStore,
    *,
    user_id: UUID,
    transaction_ids: Collection[UUID],
    source_document_id: UUID | None = None,
    strategy: MatchStrategy | None = None,
) -> ReconciliationResult:
    """Match a freshly ingested batch of transactions against unmatched documents.

    The document the batch came from, and bank statements in general, are
    never candidates.
    """
    result = ReconciliationResult()
    with log_timing(
        "reconcile_transactions",
        logger=logger,
        user_id=str(user_id),
        source_document_id=str(source_document_id) if source_document_id else None,
    ) as timing:
        try:
            transactions = await store.list_unmatched_transactions(
                user_id, transaction_ids=transaction_ids
            )
            documents = await store.list_unmatched_documents(
                user_id,
                exclude_file_types=(DocumentFileType.BANK_STATEMENT,),
                exclude_ids=(source_document_id,) if source_document_id else (),
            )
            timing["transaction_count"] = len(transactions)
            timing["document_count"] = len(documents)
            await _run_matching(store, transactions, documents, strategy or default_strategy(), result)
        except Exception as exc:
            log_exception(logger, exc, "Transaction reconciliation failed", user_id=str(user_id))
            result.errors.append(str(exc))
        timing.update(result.summary())
    return result


async def reconcile_document(
    store: ReconciliationStore,
    *,
    user_id: UUID,
    document_id: UUID,
    exclude_transaction_ids: Collection[UUID] = (),
    strategy: MatchStrategy | None = None,
) -> ReconciliationResult:
    """Match one processed invoice or receipt against the user's unmatched transactions.

    Transactions extracted from the document itself are passed in
    ``exclude_transaction_ids`` so a document never matches its own lines.
    Bank statements and other document types are left alone.
    """
    result = ReconciliationResult()
    with log_timing(
        "reconcile_document",
        logger=logger,
        user_id=str(user_id),
        document_id=str(document_id),
    ) as timing:
        try:
            document = await store.get_document(document_id)
            if document is None or document.user_id != user_id:
                logger.warning(
                    "Document not found for reconciliation",
                    user_id=str(user_id),
                    document_id=str(document_id),
                )
                result.not_found += 1
            elif document.is_matched:
                logger.info("Document already matched", document_id=str(document_id))
            elif document.file_type not in EXPLODABLE_FILE_TYPES:
                logger.info(
                    "Document type is not reconciled against transactions",
                    document_id=str(document_id),
                    file_type=document.file_type.value,
                )
            else:
                transactions = await store.list_unmatched_transactions(
                    user_id, exclude_ids=exclude_transaction_ids
                )
                timing["transaction_count"] = len(transactions)
                await _run_matching(store, transactions, [document], strategy or default_strategy(), result)
        except Exception as exc:
            log_exception(
                logger,
                exc,
                "Document reconciliation failed",
                user_id=str(user_id),
                document_id=str(document_id),
            )
            result.errors.append(str(exc))
        timing.update(result.summary())
    return result


async def auto_match(
    store: ReconciliationStore,
    *,
    user_id: UUID,
    strategy: MatchStrategy | None = None,
) -> ReconciliationResult:
    """Sweep all of a user's unmatched transactions against unmatched receipts and invoices."""
    result = ReconciliationResult()
    with log_timing("auto_match", logger=logger, user_id=str(user_id)) as timing:
        try:
            transactions = await store.list_unmatched_transactions(user_id)
            documents = await store.list_unmatched_documents(
                user_id, file_types=sorted(EXPLODABLE_FILE_TYPES, key=lambda t: t.value)
            )
            timing["transaction_count"] = len(transactions)
            timing["document_count"] = len(documents)
            await _run_matching(store, transactions, documents, strategy or default_strategy(), result)
        except Exception as exc:
            log_exception(logger, exc, "Auto-match failed", user_id=str(user_id))
            result.errors.append(str(exc))
        timing.update(result.summary())
    return result


async def match_manually(
    store: ReconciliationStore,
    *,
    user_id: UUID,
    transaction_id: UUID,
    document_id: UUID,
) -> ReconciliationResult:
    """Commit a user-chosen pair without scoring it.

    Records the user does not own count as missing. A pair that is already
    matched on either side comes back as a conflict.
    """
    result = ReconciliationResult()
    with log_timing(
        "match_manually",
        logger=logger,
        user_id=str(user_id),
        transaction_id=str(transaction_id),
        document_id=str(document_id),
    ) as timing:
        try:
            transaction = await store.get_transaction(transaction_id)
            document = await store.get_document(document_id)
            if (
                transaction is None
                or document is None
                or transaction.user_id != user_id
                or document.user_id != user_id
            ):
                result.not_found += 1
            else:
                pair = AcceptedPair(
                    transaction=transaction,
                    document=document,
                    score=score_pair(transaction, document, load_scoring_config()),
                )
                await _commit_pair(store, pair, result)
        except Exception as exc:
            log_exception(
                logger,
                exc,
                "Manual match failed",
                user_id=str(user_id),
                transaction_id=str(transaction_id),
                document_id=str(document_id),
            )
            result.errors.append(str(exc))
        timing.update(result.summary())
    return result


def rank_candidates(
    transaction: TransactionSnapshot,
    documents: Sequence[DocumentSnapshot],
    config: ScoringConfig,
) -> list[CandidateDocument]:
    """Tiered review candidates for one transaction, best first."""
    candidates: list[CandidateDocument] = []
    for document in documents:
        score = score_pair(transaction, document, config)
        if not is_suggestable(score, config) or score.amount_diff is None:
            continue
        candidates.append(
            CandidateDocument(
                document=document,
                score=score,
                confidence=confidence_tier(score.amount_diff, score.date_diff, config),
            )
        )
    candidates.sort(
        key=lambda c: (_TIER_ORDER[c.confidence], c.score.amount_diff, c.score.date_diff)
    )
    return candidates[: config.suggest_per_transaction]


async def suggest_candidates(
    store: ReconciliationStore,
    *,
    user_id: UUID,
    limit: int = 100,
    offset: int = 0,
    bank_account_id: UUID | None = None,
    config: ScoringConfig | None = None,
) -> list[CandidateSuggestion]:
    """Read-only review list of unmatched transactions and their likely documents.

    Transactions are paged newest first with ``offset``/``limit`` and can be
    narrowed to one bank account.
    """
    config = config or load_scoring_config()
    try:
        transactions = await store.list_unmatched_transactions(user_id, bank_account_id=bank_account_id)
        documents = order_documents(
            await store.list_unmatched_documents(
                user_id, exclude_file_types=(DocumentFileType.BANK_STATEMENT,)
            )
        )
    except Exception as exc:
        log_exception(logger, exc, "Candidate suggestion failed", user_id=str(user_id))
        return []

    return [
        CandidateSuggestion(
            transaction=transaction,
            candidates=rank_candidates(transaction, documents, config),
        )
        for transaction in order_transactions(transactions)[offset : offset + limit]
    ]
