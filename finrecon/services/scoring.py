"""Similarity scoring for transaction/document pairs."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from finrecon.config import DEFAULT_RECONCILIATION_CONFIG_PATH
from finrecon.logger import get_logger

if TYPE_CHECKING:
    from finrecon.services.reconciliation_store import DocumentSnapshot, TransactionSnapshot

logger = get_logger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ScoringConfig:
    """Runtime configuration for pair scoring and candidate suggestions."""

    weight_amount: Decimal
    weight_date: Decimal
    weight_description: Decimal
    match_threshold: Decimal
    amount_tolerance: Decimal
    date_days: int
    missing_date_days: int
    min_token_length: int
    suggest_max_amount_diff: Decimal
    suggest_max_date_days: int
    suggest_per_transaction: int
    high_amount_diff: Decimal
    high_date_days: int
    medium_amount_diff: Decimal
    medium_date_days: int


class MatchConfidence(str, Enum):
    """Review tier for a suggested pair."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class PairScore:
    """Score breakdown for one transaction/document pair.

    amount_diff is None when either side has no usable amount. total_score is
    only computed for pairs that pass the eligibility gate.
    """

    amount_diff: Decimal | None
    date_diff: int
    description_score: Decimal
    total_score: Decimal | None
    eligible: bool
    accepted: bool


DEFAULT_CONFIG = ScoringConfig(
    weight_amount=Decimal("0.5"),
    weight_date=Decimal("0.3"),
    weight_description=Decimal("0.2"),
    match_threshold=Decimal("80"),
    amount_tolerance=Decimal("0.01"),
    date_days=7,
    missing_date_days=999,
    min_token_length=4,
    suggest_max_amount_diff=Decimal("100"),
    suggest_max_date_days=60,
    suggest_per_transaction=5,
    high_amount_diff=Decimal("0.01"),
    high_date_days=7,
    medium_amount_diff=Decimal("1.00"),
    medium_date_days=30,
)

_config_cache: ScoringConfig | None = None


def _read_yaml_config(config_path: Path, config: ScoringConfig) -> ScoringConfig:
    import yaml

    raw = yaml.safe_load(config_path.read_text()) or {}
    scoring = raw.get("scoring", {})
    weights = scoring.get("weights", {})
    gates = scoring.get("gates", {})
    description = scoring.get("description", {})
    suggestions = raw.get("suggestions", {})
    tiers = suggestions.get("tiers", {})
    high = tiers.get("high", {})
    medium = tiers.get("medium", {})

    return ScoringConfig(
        weight_amount=Decimal(str(weights.get("amount", config.weight_amount))),
        weight_date=Decimal(str(weights.get("date", config.weight_date))),
        weight_description=Decimal(str(weights.get("description", config.weight_description))),
        match_threshold=Decimal(str(scoring.get("threshold", config.match_threshold))),
        amount_tolerance=Decimal(str(gates.get("amount_tolerance", config.amount_tolerance))),
        date_days=int(gates.get("date_days", config.date_days)),
        missing_date_days=int(gates.get("missing_date_days", config.missing_date_days)),
        min_token_length=int(description.get("min_token_length", config.min_token_length)),
        suggest_max_amount_diff=Decimal(
            str(suggestions.get("max_amount_diff", config.suggest_max_amount_diff))
        ),
        suggest_max_date_days=int(suggestions.get("max_date_days", config.suggest_max_date_days)),
        suggest_per_transaction=int(
            suggestions.get("per_transaction", config.suggest_per_transaction)
        ),
        high_amount_diff=Decimal(str(high.get("amount_diff", config.high_amount_diff))),
        high_date_days=int(high.get("date_days", config.high_date_days)),
        medium_amount_diff=Decimal(str(medium.get("amount_diff", config.medium_amount_diff))),
        medium_date_days=int(medium.get("date_days", config.medium_date_days)),
    )


def load_scoring_config(force_reload: bool = False) -> ScoringConfig:
    """Load scoring configuration from YAML if available.

    Caches the result to avoid repeated disk I/O. RECONCILIATION_CONFIG_PATH
    points at another file; RECONCILIATION_MATCH_THRESHOLD overrides the
    threshold from the file.
    """
    global _config_cache
    if _config_cache is not None and not force_reload:
        return _config_cache

    config = DEFAULT_CONFIG
    config_path = Path(os.getenv("RECONCILIATION_CONFIG_PATH") or DEFAULT_RECONCILIATION_CONFIG_PATH)

    if config_path.exists():
        try:
            config = _read_yaml_config(config_path, config)
        except Exception as e:
            logger.warning(
                "Failed to load reconciliation config - using defaults",
                config_path=str(config_path),
                error=str(e),
                error_type=type(e).__name__,
            )

    threshold_env = os.getenv("RECONCILIATION_MATCH_THRESHOLD")
    if threshold_env:
        config = replace(config, match_threshold=Decimal(threshold_env))

    _config_cache = config
    return config


def to_decimal(value: Any) -> Decimal | None:
    """Parse an amount into a Decimal, or None when it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, Decimal):
            parsed = value
        elif isinstance(value, str):
            # Remove currency symbols, thousands separators and whitespace
            cleaned = re.sub(r"[^\d.\-+]", "", value.replace(",", ""))
            if not cleaned:
                return None
            parsed = Decimal(cleaned)
        else:
            parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def amount_difference(tx_amount: Any, doc_total: Any) -> Decimal | None:
    """|abs(transaction amount) - document total|, None when either is unusable."""
    tx_value = to_decimal(tx_amount)
    doc_value = to_decimal(doc_total)
    if tx_value is None or doc_value is None:
        return None
    return abs(abs(tx_value) - doc_value)


def day_difference(tx_date: date | None, doc_date: date | None, missing_days: int = 999) -> int:
    """Absolute distance in days, or the missing-date sentinel when either is unknown."""
    if tx_date is None or doc_date is None:
        return missing_days
    return abs((tx_date - doc_date).days)


def score_description(description: str | None, vendor: str | None, min_token_length: int = 4) -> Decimal:
    """Score how well a transaction description names a vendor (0-100).

    Containment either way scores 100. Otherwise long tokens are compared
    pairwise and the share of containing pairs is taken against the longer
    token list.
    """
    if not description or not vendor:
        return Decimal("0")

    desc = description.lower()
    vend = vendor.lower()
    if desc in vend or vend in desc:
        return HUNDRED

    desc_tokens = [token for token in desc.split() if len(token) >= min_token_length]
    vend_tokens = [token for token in vend.split() if len(token) >= min_token_length]
    max_tokens = max(len(desc_tokens), len(vend_tokens))
    if max_tokens == 0:
        return Decimal("0")

    match_count = sum(
        1
        for desc_token in desc_tokens
        for vend_token in vend_tokens
        if desc_token in vend_token or vend_token in desc_token
    )
    # Repeated tokens can contain each other more than once; cap at a full match.
    return min(Decimal(match_count) / Decimal(max_tokens) * HUNDRED, HUNDRED)


def score_pair(
    transaction: TransactionSnapshot,
    document: DocumentSnapshot,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> PairScore:
    """Score one transaction against one document.

    A pair is eligible only when the amounts agree within the tolerance and the
    dates are at most ``config.date_days`` apart. Eligible pairs get a weighted
    total and are accepted at or above the threshold.
    """
    amount_diff = amount_difference(transaction.amount, document.total_amount)
    date_diff = day_difference(transaction.date, document.document_date, config.missing_date_days)
    description_score = score_description(
        transaction.original_description,
        document.vendor_name or document.original_filename,
        config.min_token_length,
    )

    eligible = (
        amount_diff is not None
        and amount_diff < config.amount_tolerance
        and date_diff <= config.date_days
    )
    if not eligible:
        return PairScore(
            amount_diff=amount_diff,
            date_diff=date_diff,
            description_score=description_score,
            total_score=None,
            eligible=False,
            accepted=False,
        )

    total = (
        (HUNDRED - amount_diff) * config.weight_amount
        + (HUNDRED - Decimal(date_diff)) * config.weight_date
        + description_score * config.weight_description
    )
    return PairScore(
        amount_diff=amount_diff,
        date_diff=date_diff,
        description_score=description_score,
        total_score=total,
        eligible=True,
        accepted=total >= config.match_threshold,
    )


def confidence_tier(amount_diff: Decimal, date_diff: int, config: ScoringConfig = DEFAULT_CONFIG) -> MatchConfidence:
    """Bucket a pair for the review list."""
    if amount_diff < config.high_amount_diff and date_diff <= config.high_date_days:
        return MatchConfidence.HIGH
    if amount_diff < config.medium_amount_diff and date_diff <= config.medium_date_days:
        return MatchConfidence.MEDIUM
    return MatchConfidence.LOW


def is_suggestable(score: PairScore, config: ScoringConfig = DEFAULT_CONFIG) -> bool:
    """Whether a pair is close enough to show as a manual-review candidate."""
    return (
        score.amount_diff is not None
        and score.amount_diff < config.suggest_max_amount_diff
        and score.date_diff <= config.suggest_max_date_days
    )
