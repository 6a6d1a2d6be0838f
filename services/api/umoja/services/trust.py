"""Farmer trust score calculation.

Trust Score (0-100) is a composite of four sub-scores:
- Verification (max 40): identity/farm verification approved
- Transaction (max 25): completed order count and cumulative volume
- Rating (max 20): buyer ratings, only once there are enough of them
- Reliability (max 15): on-time confirmations minus dispute penalties

Everything here is a pure function of TrustSignals: no I/O, no clock,
no randomness. Recalculation must always feed the full current signal set
through calculate_composite_score rather than patching a stored score.
"""

from dataclasses import dataclass
import math

from umoja.models.enums import TrustTier, VerificationStatus


@dataclass(frozen=True)
class TrustSignals:
    """Raw inputs pulled from the store for one farmer."""

    verification_status: VerificationStatus
    completed_orders: int = 0
    total_volume: float = 0.0  # KES
    total_ratings: int = 0
    average_rating: float = 0.0
    on_time_confirmation_rate: float = 1.0  # 0.0-1.0
    dispute_count: int = 0
    disputes_ruled_against: int = 0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Sub-score contributions, composite score and tier."""

    verification_score: int
    transaction_score: float
    rating_score: int
    reliability_score: float
    composite_score: int
    tier: TrustTier


# Sub-score caps
MAX_VERIFICATION = 40
MAX_TRANSACTION = 25
MAX_RATING = 20
MAX_RELIABILITY = 15

_TRANSACTION = {
    "points_per_order": 0.5,
    "order_points_cap": 12,
    "volume_per_point": 50_000,  # KES
    "volume_points_cap": 13,
}

_RELIABILITY = {
    "on_time_weight": 12,
    "dispute_penalty": 2,
    "ruled_against_penalty": 5,
}

# Ratings are ignored until a farmer has at least this many
MIN_RATINGS_FOR_SCORE = 3

# Lower bound (inclusive) of each tier, highest first
_TIER_THRESHOLDS: tuple[tuple[int, TrustTier], ...] = (
    (80, TrustTier.PREMIUM),
    (60, TrustTier.TRUSTED),
    (40, TrustTier.ESTABLISHED),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_verification_score(status: VerificationStatus) -> int:
    return MAX_VERIFICATION if status == VerificationStatus.APPROVED else 0


def calculate_transaction_score(completed_orders: int, total_volume: float) -> float:
    order_points = min(completed_orders * _TRANSACTION["points_per_order"], _TRANSACTION["order_points_cap"])
    volume_points = min(total_volume / _TRANSACTION["volume_per_point"], _TRANSACTION["volume_points_cap"])
    return min(order_points + volume_points, MAX_TRANSACTION)


def calculate_rating_score(total_ratings: int, average_rating: float) -> int:
    """Linear scale once there are enough ratings: 1 star = 0 points, 5 stars = 20."""
    if total_ratings < MIN_RATINGS_FOR_SCORE:
        return 0
    return _round_half_up(((average_rating - 1) / 4) * MAX_RATING)


def calculate_reliability_score(
    on_time_confirmation_rate: float,
    dispute_count: int,
    disputes_ruled_against: int,
) -> float:
    base = on_time_confirmation_rate * _RELIABILITY["on_time_weight"]
    penalty = (
        dispute_count * _RELIABILITY["dispute_penalty"]
        + disputes_ruled_against * _RELIABILITY["ruled_against_penalty"]
    )
    return max(0.0, min(base - penalty, MAX_RELIABILITY))


def assign_tier(composite_score: int) -> TrustTier:
    """Map a composite score onto its tier."""
    for lower_bound, tier in _TIER_THRESHOLDS:
        if composite_score >= lower_bound:
            return tier
    return TrustTier.NEW


def calculate_composite_score(signals: TrustSignals) -> ScoreBreakdown:
    """Calculate every sub-score, the composite score and the tier.

    Args:
        signals: Full current signal set for one farmer.

    Returns:
        ScoreBreakdown; identical input always yields an identical breakdown.
    """
    verification = calculate_verification_score(signals.verification_status)
    transaction = calculate_transaction_score(signals.completed_orders, signals.total_volume)
    rating = calculate_rating_score(signals.total_ratings, signals.average_rating)
    reliability = calculate_reliability_score(
        signals.on_time_confirmation_rate,
        signals.dispute_count,
        signals.disputes_ruled_against,
    )

    composite = _round_half_up(verification + transaction + rating + reliability)
    return ScoreBreakdown(
        verification_score=verification,
        transaction_score=transaction,
        rating_score=rating,
        reliability_score=reliability,
        composite_score=composite,
        tier=assign_tier(composite),
    )
