import math

import numpy as np
import pandas as pd
import pytest

from food_hub_siting.aggregate import (
    above_threshold, group_mean, group_thresholds, percentile_threshold, rank_groups, uniform_groups,
)
from food_hub_siting.errors import InsufficientDataError


@pytest.fixture
def states():
    return pd.DataFrame({
        "state": ["A", "A", "A", "B", "B", "C"],
        "value": [10.0, 20.0, np.nan, 5.0, 7.0, np.nan],
    })


def test_group_mean_excludes_missing_from_both_sides(states):
    means = group_mean(states, "state", "value")
    assert means["A"] == pytest.approx(15.0)
    assert means["B"] == pytest.approx(6.0)


def test_group_with_no_values_is_undefined_not_zero(states):
    means = group_mean(states, "state", "value")
    assert math.isnan(means["C"])


def test_group_mean_without_skipna(states):
    means = group_mean(states, "state", "value", skipna=False)
    assert math.isnan(means["A"])
    assert means["B"] == pytest.approx(6.0)


def test_rank_groups_skips_undefined(states):
    ranked = rank_groups(group_mean(states, "state", "value"))
    assert ranked["group"].tolist() == ["A", "B"]
    assert ranked["rank"].tolist() == [1, 2]


def test_percentile_linear_interpolation():
    assert percentile_threshold([1, 2, 3, 4], 0.5) == pytest.approx(2.5)
    assert percentile_threshold([1, 2, 3, 4], 0.0) == 1
    assert percentile_threshold([1, 2, 3, 4], 1.0) == 4


def test_percentile_ignores_missing_by_default():
    assert percentile_threshold([1, np.nan, 3], 0.5) == pytest.approx(2.0)
    assert math.isnan(percentile_threshold([1, np.nan, 3], 0.5, skipna=False))


def test_percentile_monotone_in_q(rng):
    values = rng.normal(size=200)
    qs = np.linspace(0, 1, 21)
    cuts = [percentile_threshold(values, q) for q in qs]
    assert all(a <= b for a, b in zip(cuts, cuts[1:]))


def test_percentile_undefined_with_fewer_than_two_values():
    assert math.isnan(percentile_threshold([3.0], 0.5))
    assert math.isnan(percentile_threshold([np.nan, np.nan], 0.5))
    with pytest.raises(InsufficientDataError):
        percentile_threshold([3.0], 0.5, strict=True)


@pytest.mark.parametrize("q", [-0.1, 1.5, float("nan")])
def test_percentile_rejects_bad_q(q):
    with pytest.raises(ValueError):
        percentile_threshold([1, 2, 3], q)


def test_group_thresholds(states):
    t = group_thresholds(states, "state", "value", 0.5)
    assert t["A"] == pytest.approx(15.0)
    assert math.isnan(t["C"])


def test_above_threshold_missing_is_false():
    s = pd.Series([1.0, 5.0, np.nan])
    assert above_threshold(s, 5.0).tolist() == [False, True, False]
    assert above_threshold(s, float("nan")).tolist() == [False, False, False]


def test_uniform_groups_flags_state_level_values():
    df = pd.DataFrame({
        "state": ["NY", "NY", "NJ", "NJ", "CT"],
        "county": ["1", "2", "3", "4", "5"],
        "rate": [12.5, 12.5, 10.0, 11.0, 9.0],
    })
    # CT has one county only, so it cannot be judged uniform
    assert uniform_groups(df, "state", "rate", unit="county") == ["NY"]
