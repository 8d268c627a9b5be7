"""Candidate selection for one-to-one transaction/document matching."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Protocol
from uuid import UUID

from finrecon.services.reconciliation_store import DocumentSnapshot, TransactionSnapshot
from finrecon.services.scoring import DEFAULT_CONFIG, PairScore, ScoringConfig, score_pair

Scorer = Callable[[TransactionSnapshot, DocumentSnapshot, ScoringConfig], PairScore]


@dataclass
class ClaimedSet:
    """Ids already taken during one run, plus documents ruled out for it."""

    transactions: set[UUID] = field(default_factory=set)
    documents: set[UUID] = field(default_factory=set)

    def claim(self, transaction_id: UUID, document_id: UUID) -> None:
        self.transactions.add(transaction_id)
        self.documents.add(document_id)

    def exclude_document(self, document_id: UUID) -> None:
        self.documents.add(document_id)

    def has_transaction(self, transaction_id: UUID) -> bool:
        return transaction_id in self.transactions

    def has_document(self, document_id: UUID) -> bool:
        return document_id in self.documents


@dataclass(frozen=True)
class AcceptedPair:
    """A pair the selector wants committed."""

    transaction: TransactionSnapshot
    document: DocumentSnapshot
    score: PairScore


class MatchStrategy(Protocol):
    """Picks at most one document for a transaction."""

    def select_for(
        self,
        transaction: TransactionSnapshot,
        documents: Sequence[DocumentSnapshot],
        claimed: ClaimedSet,
    ) -> AcceptedPair | None: ...


def order_transactions(transactions: Iterable[TransactionSnapshot]) -> list[TransactionSnapshot]:
    """Date descending, id as tie-break."""
    by_id = sorted(transactions, key=lambda tx: str(tx.id))
    return sorted(by_id, key=lambda tx: tx.date, reverse=True)


def order_documents(documents: Iterable[DocumentSnapshot]) -> list[DocumentSnapshot]:
    """Document date descending, undated documents last, id as tie-break."""
    by_id = sorted(documents, key=lambda doc: str(doc.id))
    dated = [doc for doc in by_id if doc.document_date is not None]
    undated = [doc for doc in by_id if doc.document_date is None]
    dated.sort(key=lambda doc: doc.document_date or date.min, reverse=True)
    return dated + undated


def _available_documents(
    documents: Sequence[DocumentSnapshot], claimed: ClaimedSet
) -> Iterable[DocumentSnapshot]:
    for document in documents:
        if document.is_matched or claimed.has_document(document.id):
            continue
        yield document


class FirstFitStrategy:
    """Accept the first document, in pool order, that clears the threshold."""

    def __init__(self, config: ScoringConfig = DEFAULT_CONFIG, scorer: Scorer = score_pair) -> None:
        self.config = config
        self.scorer = scorer

    def select_for(
        self,
        transaction: TransactionSnapshot,
        documents: Sequence[DocumentSnapshot],
        claimed: ClaimedSet,
    ) -> AcceptedPair | None:
        for document in _available_documents(documents, claimed):
            score = self.scorer(transaction, document, self.config)
            if score.accepted:
                return AcceptedPair(transaction=transaction, document=document, score=score)
        return None


class BestScoreStrategy:
    """Accept the highest-scoring document; earlier pool position wins ties."""

    def __init__(self, config: ScoringConfig = DEFAULT_CONFIG, scorer: Scorer = score_pair) -> None:
        self.config = config
        self.scorer = scorer

    def select_for(
        self,
        transaction: TransactionSnapshot,
        documents: Sequence[DocumentSnapshot],
        claimed: ClaimedSet,
    ) -> AcceptedPair | None:
        best: AcceptedPair | None = None
        for document in _available_documents(documents, claimed):
            score = self.scorer(transaction, document, self.config)
            if not score.accepted or score.total_score is None:
                continue
            if best is None or score.total_score > best.score.total_score:
                best = AcceptedPair(transaction=transaction, document=document, score=score)
        return best


class SelectionVerdict(str, Enum):
    """What the commit step reports back for one proposed pair."""

    TAKEN = "taken"
    RETRY = "retry"
    SKIP = "skip"


CommitPair = Callable[[AcceptedPair], Awaitable[SelectionVerdict]]


async def take_every_pair(pair: AcceptedPair) -> SelectionVerdict:
    return SelectionVerdict.TAKEN


async def select_matches(
    transactions: Iterable[TransactionSnapshot],
    documents: Iterable[DocumentSnapshot],
    *,
    commit: CommitPair = take_every_pair,
    strategy: MatchStrategy | None = None,
    claimed: ClaimedSet | None = None,
) -> list[AcceptedPair]:
    """Pick at most one document per transaction without reusing either side.

    Each proposed pair goes through ``commit``. ``TAKEN`` claims both sides,
    ``RETRY`` rules the document out and asks the strategy for the next one
    for the same transaction, ``SKIP`` moves on to the next transaction.
    Returns the pairs that were taken.
    """
    strategy = strategy or FirstFitStrategy()
    claimed = claimed if claimed is not None else ClaimedSet()
    pool = order_documents(documents)

    taken: list[AcceptedPair] = []
    for transaction in order_transactions(transactions):
        if transaction.is_matched or claimed.has_transaction(transaction.id):
            continue

        while (pair := strategy.select_for(transaction, pool, claimed)) is not None:
            verdict = await commit(pair)
            if verdict is SelectionVerdict.TAKEN:
                claimed.claim(transaction.id, pair.document.id)
                taken.append(pair)
                break
            if verdict is SelectionVerdict.SKIP:
                break
            claimed.exclude_document(pair.document.id)
    return taken
