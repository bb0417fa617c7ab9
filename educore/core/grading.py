"""
Pure grading engine: grade-band lookup and score aggregation.

No database access here; the grading and aggregation services load the
ranges/configs and call into these functions.
"""

from statistics import median
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from educore.core.enums import AggregationStrategy, GradingSystemType
from educore.core.exceptions import ValidationError

# Strategies that read config.n_value
N_STRATEGIES = (AggregationStrategy.BEST_N, AggregationStrategy.DROP_LOWEST_N)


def resolve_grade(percentage: float, ranges: Iterable[Any]) -> Optional[Any]:
    """
    Return the first range (highest min_percentage first) whose inclusive
    [min_percentage, max_percentage] contains percentage, or None if unranked.
    """
    for band in sorted(ranges, key=lambda r: r.min_percentage, reverse=True):
        if band.min_percentage <= percentage <= band.max_percentage:
            return band
    return None


def _mean(scores: Sequence[float]) -> float:
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def _simple_average(scores: List[float], n_value: Optional[int], weight: float) -> float:
    return _mean(scores)


def _best_n(scores: List[float], n_value: Optional[int], weight: float) -> float:
    # Fewer than N scores: average over what exists
    return _mean(sorted(scores, reverse=True)[:n_value])


def _drop_lowest_n(scores: List[float], n_value: Optional[int], weight: float) -> float:
    keep = len(scores) - n_value
    if keep <= 0:
        return 0.0
    return _mean(sorted(scores, reverse=True)[:keep])


def _weighted_average(scores: List[float], n_value: Optional[int], weight: float) -> float:
    return weight * _mean(scores)


def _median(scores: List[float], n_value: Optional[int], weight: float) -> float:
    return float(median(scores))


STRATEGIES: Dict[AggregationStrategy, Callable[[List[float], Optional[int], float], float]] = {
    AggregationStrategy.SIMPLE_AVERAGE: _simple_average,
    AggregationStrategy.BEST_N: _best_n,
    AggregationStrategy.DROP_LOWEST_N: _drop_lowest_n,
    AggregationStrategy.WEIGHTED_AVERAGE: _weighted_average,
    AggregationStrategy.MEDIAN: _median,
}


def validate_strategy_params(strategy: AggregationStrategy, n_value: Optional[int], weight: Optional[float]) -> None:
    """Raise ValidationError for a config the engine cannot evaluate."""
    if strategy in N_STRATEGIES and (n_value is None or n_value <= 0):
        raise ValidationError(f"n_value must be a positive integer for {strategy.value}")
    if weight is not None and not 0 <= weight <= 100:
        raise ValidationError("weight must be between 0 and 100")


def aggregate(
    scores: Sequence[float],
    strategy: AggregationStrategy = AggregationStrategy.SIMPLE_AVERAGE,
    n_value: Optional[int] = None,
    weight: float = 1.0,
) -> float:
    """Aggregate scores per strategy. An empty score list aggregates to 0.0."""
    strategy = AggregationStrategy(strategy)
    validate_strategy_params(strategy, n_value, weight)
    values = [float(s) for s in scores]
    if not values:
        return 0.0
    return STRATEGIES[strategy](values, n_value, 1.0 if weight is None else float(weight))


def select_aggregation_config(
    configs: Iterable[Any],
    assessment_type: Optional[str],
    grade: Optional[str] = None,
    learning_area: Optional[str] = None,
) -> Optional[Any]:
    """
    Most specific active config wins:
    type+grade+area > type+grade > type+area > type > school default (all NULL).
    """
    candidates = [c for c in configs if getattr(c, "active", True)]
    ladder = []
    if assessment_type is not None:
        ladder = [
            (assessment_type, grade, learning_area),
            (assessment_type, grade, None),
            (assessment_type, None, learning_area),
            (assessment_type, None, None),
        ]
    ladder.append((None, None, None))
    for key in ladder:
        for config in candidates:
            if (config.assessment_type, config.grade, config.learning_area) == key:
                return config
    return None


DEFAULT_RANGES: Dict[GradingSystemType, List[Dict[str, Any]]] = {
    GradingSystemType.SUMMATIVE: [
        {"label": "A", "min_percentage": 80, "max_percentage": 100, "summative_grade": "A", "points": 4, "color": "#10b981", "description": "Excellent"},
        {"label": "B", "min_percentage": 60, "max_percentage": 79, "summative_grade": "B", "points": 3, "color": "#3b82f6", "description": "Good"},
        {"label": "C", "min_percentage": 50, "max_percentage": 59, "summative_grade": "C", "points": 2, "color": "#f59e0b", "description": "Average"},
        {"label": "D", "min_percentage": 40, "max_percentage": 49, "summative_grade": "D", "points": 1, "color": "#ef4444", "description": "Below Average"},
        {"label": "E", "min_percentage": 0, "max_percentage": 39, "summative_grade": "E", "points": 0, "color": "#991b1b", "description": "Fail"},
    ],
    GradingSystemType.CBC: [
        {"label": "EE1", "min_percentage": 90, "max_percentage": 100, "rubric_rating": "EE1", "points": 8, "color": "#10b981", "description": "Outstanding"},
        {"label": "EE2", "min_percentage": 75, "max_percentage": 89, "rubric_rating": "EE2", "points": 7, "color": "#34d399", "description": "Very High"},
        {"label": "ME1", "min_percentage": 58, "max_percentage": 74, "rubric_rating": "ME1", "points": 6, "color": "#3b82f6", "description": "High Average"},
        {"label": "ME2", "min_percentage": 41, "max_percentage": 57, "rubric_rating": "ME2", "points": 5, "color": "#60a5fa", "description": "Average"},
        {"label": "AE1", "min_percentage": 31, "max_percentage": 40, "rubric_rating": "AE1", "points": 4, "color": "#f59e0b", "description": "Low Average"},
        {"label": "AE2", "min_percentage": 21, "max_percentage": 30, "rubric_rating": "AE2", "points": 3, "color": "#fbbf24", "description": "Below Average"},
        {"label": "BE1", "min_percentage": 11, "max_percentage": 20, "rubric_rating": "BE1", "points": 2, "color": "#ef4444", "description": "Low"},
        {"label": "BE2", "min_percentage": 0, "max_percentage": 10, "rubric_rating": "BE2", "points": 1, "color": "#b91c1c", "description": "Very Low"},
    ],
}

DEFAULT_SYSTEM_NAMES = {
    GradingSystemType.SUMMATIVE: "Standard Summative Grading",
    GradingSystemType.CBC: "Standard CBC Rubric",
}

# assessment_type, strategy, n_value, weight
DEFAULT_AGGREGATION_CONFIGS = [
    ("OPENER", AggregationStrategy.DROP_LOWEST_N, 2, 0.2),
    ("CAT", AggregationStrategy.BEST_N, 3, 0.5),
    ("ASSIGNMENT", AggregationStrategy.SIMPLE_AVERAGE, None, 0.3),
]


def check_ranges(ranges: Sequence[Any]) -> None:
    """Bands must lie in 0-100, have min <= max and not overlap."""
    for band in ranges:
        if not (0 <= band.min_percentage <= 100 and 0 <= band.max_percentage <= 100):
            raise ValidationError(f"Range {band.label} must lie between 0 and 100")
        if band.min_percentage > band.max_percentage:
            raise ValidationError(f"Range {band.label}: min_percentage exceeds max_percentage")
    ordered = sorted(ranges, key=lambda r: r.min_percentage)
    for lower, upper in zip(ordered, ordered[1:]):
        if upper.min_percentage <= lower.max_percentage:
            raise ValidationError(f"Ranges {lower.label} and {upper.label} overlap")
