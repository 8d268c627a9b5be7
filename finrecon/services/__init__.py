"""Services package."""

from finrecon.services.breakdown import build_breakdown_entries, explode_breakdown
from finrecon.services.matching import (
    BestScoreStrategy,
    ClaimedSet,
    FirstFitStrategy,
    MatchStrategy,
    SelectionVerdict,
    select_matches,
)
from finrecon.services.reconciliation import (
    ReconciliationResult,
    auto_match,
    match_manually,
    reconcile_document,
    reconcile_transactions,
    suggest_candidates,
)
from finrecon.services.reconciliation_store import (
    CommitOutcome,
    ReconciliationPersistenceError,
    ReconciliationStore,
)
from finrecon.services.scoring import (
    DEFAULT_CONFIG,
    PairScore,
    ScoringConfig,
    load_scoring_config,
    score_pair,
)

__all__ = [
    "BestScoreStrategy",
    "ClaimedSet",
    "CommitOutcome",
    "DEFAULT_CONFIG",
    "FirstFitStrategy",
    "MatchStrategy",
    "PairScore",
    "ReconciliationPersistenceError",
    "ReconciliationResult",
    "ReconciliationStore",
    "ScoringConfig",
    "SelectionVerdict",
    "auto_match",
    "build_breakdown_entries",
    "explode_breakdown",
    "load_scoring_config",
    "match_manually",
    "reconcile_document",
    "reconcile_transactions",
    "score_pair",
    "select_matches",
    "suggest_candidates",
]
