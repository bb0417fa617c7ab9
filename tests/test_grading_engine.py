from types import SimpleNamespace

import pytest

from educore.core.enums import AggregationStrategy, GradingSystemType
from educore.core.exceptions import ValidationError
from educore.core.grading import (
    DEFAULT_RANGES,
    STRATEGIES,
    aggregate,
    check_ranges,
    resolve_grade,
    select_aggregation_config,
    validate_strategy_params,
)


def _bands(system_type: GradingSystemType):
    return [SimpleNamespace(**r) for r in DEFAULT_RANGES[system_type]]


def _config(assessment_type=None, grade=None, learning_area=None, active=True, name=""):
    return SimpleNamespace(
        assessment_type=assessment_type,
        grade=grade,
        learning_area=learning_area,
        active=active,
        name=name,
    )


def test_every_strategy_has_an_implementation() -> None:
    assert set(STRATEGIES) == set(AggregationStrategy)


def test_best_n_averages_highest_scores() -> None:
    assert aggregate([80, 70, 90], AggregationStrategy.BEST_N, n_value=2) == 85


def test_drop_lowest_n_averages_remaining_scores() -> None:
    assert aggregate([80, 70, 90], AggregationStrategy.DROP_LOWEST_N, n_value=1) == 85


def test_median_of_even_count() -> None:
    assert aggregate([1, 2, 3, 4], AggregationStrategy.MEDIAN) == 2.5


def test_simple_and_weighted_average() -> None:
    assert aggregate([60, 80]) == 70
    assert aggregate([60, 80], AggregationStrategy.WEIGHTED_AVERAGE, weight=0.5) == 35


def test_best_n_with_fewer_scores_than_n() -> None:
    assert aggregate([40, 60], AggregationStrategy.BEST_N, n_value=5) == 50


def test_drop_lowest_n_dropping_everything_is_zero() -> None:
    assert aggregate([80, 70], AggregationStrategy.DROP_LOWEST_N, n_value=2) == 0.0
    assert aggregate([80, 70], AggregationStrategy.DROP_LOWEST_N, n_value=5) == 0.0


@pytest.mark.parametrize("strategy", list(AggregationStrategy))
def test_empty_scores_aggregate_to_zero(strategy: AggregationStrategy) -> None:
    n_value = 2 if strategy in (AggregationStrategy.BEST_N, AggregationStrategy.DROP_LOWEST_N) else None
    assert aggregate([], strategy, n_value=n_value) == 0.0


def test_n_strategies_require_positive_n() -> None:
    with pytest.raises(ValidationError):
        aggregate([1, 2], AggregationStrategy.BEST_N)
    with pytest.raises(ValidationError):
        validate_strategy_params(AggregationStrategy.DROP_LOWEST_N, 0, 1.0)
    with pytest.raises(ValidationError):
        validate_strategy_params(AggregationStrategy.SIMPLE_AVERAGE, None, 101)


def test_resolve_grade_inclusive_bounds() -> None:
    bands = _bands(GradingSystemType.SUMMATIVE)
    assert resolve_grade(80, bands).label == "A"
    assert resolve_grade(79, bands).label == "B"
    assert resolve_grade(100, bands).label == "A"
    assert resolve_grade(0, bands).label == "E"


def test_resolve_grade_cbc_rubric() -> None:
    bands = _bands(GradingSystemType.CBC)
    assert resolve_grade(95, bands).rubric_rating == "EE1"
    assert resolve_grade(58, bands).rubric_rating == "ME1"
    assert resolve_grade(10, bands).rubric_rating == "BE2"


def test_resolve_grade_unranked_returns_none() -> None:
    bands = _bands(GradingSystemType.SUMMATIVE)
    # Integer bands leave 79-80 uncovered
    assert resolve_grade(79.5, bands) is None
    assert resolve_grade(101, bands) is None
    assert resolve_grade(50, []) is None


def test_resolve_grade_prefers_highest_min_on_shared_boundary() -> None:
    bands = [
        SimpleNamespace(label="low", min_percentage=0, max_percentage=50),
        SimpleNamespace(label="high", min_percentage=50, max_percentage=100),
    ]
    assert resolve_grade(50, bands).label == "high"


def test_config_precedence_ladder() -> None:
    configs = [
        _config(name="default"),
        _config("CAT", name="type"),
        _config("CAT", learning_area="MATH", name="type+area"),
        _config("CAT", grade="GRADE_4", name="type+grade"),
        _config("CAT", grade="GRADE_4", learning_area="MATH", name="exact"),
    ]
    assert select_aggregation_config(configs, "CAT", "GRADE_4", "MATH").name == "exact"
    assert select_aggregation_config(configs, "CAT", "GRADE_4", "ENGLISH").name == "type+grade"
    assert select_aggregation_config(configs, "CAT", "GRADE_5", "MATH").name == "type+area"
    assert select_aggregation_config(configs, "CAT", "GRADE_5", "ENGLISH").name == "type"
    assert select_aggregation_config(configs, "OPENER", "GRADE_4", "MATH").name == "default"
    assert select_aggregation_config(configs, None).name == "default"


def test_config_precedence_skips_inactive() -> None:
    configs = [_config("CAT", active=False, name="off"), _config(name="default")]
    assert select_aggregation_config(configs, "CAT").name == "default"
    assert select_aggregation_config([_config("CAT", active=False)], "CAT") is None


def test_default_ranges_are_well_formed() -> None:
    for system_type in GradingSystemType:
        check_ranges(_bands(system_type))


def test_check_ranges_rejects_overlap_and_inverted_bands() -> None:
    with pytest.raises(ValidationError):
        check_ranges([
            SimpleNamespace(label="A", min_percentage=70, max_percentage=100),
            SimpleNamespace(label="B", min_percentage=60, max_percentage=70),
        ])
    with pytest.raises(ValidationError):
        check_ranges([SimpleNamespace(label="A", min_percentage=90, max_percentage=80)])
    with pytest.raises(ValidationError):
        check_ranges([SimpleNamespace(label="A", min_percentage=90, max_percentage=120)])
