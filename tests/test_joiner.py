import pandas as pd
import pytest

from food_hub_siting.errors import DuplicateKeyError, SchemaMismatchError
from food_hub_siting.joiner import join
from food_hub_siting.keys import normalize_keys
from food_hub_siting.quality import DataQualityReport


@pytest.fixture
def fine():
    return pd.DataFrame({
        "tract": list("abcde"),
        "coarse_key": ["36061", "36061", "36005", "99999", "36061"],
    })


@pytest.fixture
def coarse():
    return pd.DataFrame({"coarse_key": ["36061", "36005"], "metric": [17.9, 22.3]})


def test_end_to_end_join_scenario(fine, coarse):
    merged = join(fine, coarse)
    assert len(merged) == 5
    assert merged.loc[merged["coarse_key"] == "36061", "metric"].tolist() == [17.9, 17.9, 17.9]
    assert merged.loc[merged["coarse_key"] == "36005", "metric"].tolist() == [22.3]
    assert pd.isna(merged.loc[merged["coarse_key"] == "99999", "metric"]).all()


def test_join_preserves_fine_row_order(fine, coarse):
    merged = join(fine, coarse)
    assert merged["tract"].tolist() == list("abcde")


def test_unmatched_rows_recorded(fine, coarse):
    q = DataQualityReport()
    join(fine, coarse, quality=q)
    assert q.total("fine.unmatched_rows") == 1
    assert q.total("merged.rows") == 5


def test_duplicate_coarse_keys_rejected(fine):
    dup = pd.DataFrame({"coarse_key": ["36061", "36061"], "metric": [1.0, 2.0]})
    with pytest.raises(DuplicateKeyError) as exc:
        join(fine, dup)
    assert exc.value.duplicates == ["36061"]


def test_duplicate_coarse_keys_fan_out_when_allowed(fine):
    dup = pd.DataFrame({"coarse_key": ["36061", "36061"], "metric": [1.0, 2.0]})
    merged = join(fine, dup, duplicates="fanout")
    # three 36061 rows each matched twice, plus two unmatched rows
    assert len(merged) == 8


def test_missing_coarse_keys_never_match_each_other():
    fine = pd.DataFrame({"coarse_key": [None, "36061"]})
    coarse = pd.DataFrame({"coarse_key": [None, "36061"], "metric": [5.0, 1.0]})
    merged = join(fine, coarse)
    assert len(merged) == 2
    assert pd.isna(merged["metric"].iloc[0])


def test_key_derivation_applied_before_join():
    fine = pd.DataFrame({"TractFIPS": ["36061000100", "06037101110"]})
    coarse = pd.DataFrame({"FIPS": [36061, 6037], "metric": [1.0, 2.0]})
    merged = join(fine, coarse,
                  key_derivation=lambda f, c: normalize_keys(f, c, "TractFIPS", "FIPS"))
    assert merged["metric"].tolist() == [1.0, 2.0]


def test_missing_key_column():
    with pytest.raises(SchemaMismatchError):
        join(pd.DataFrame({"x": [1]}), pd.DataFrame({"coarse_key": ["1"]}))


def test_clashing_column_names_get_suffix():
    fine = pd.DataFrame({"coarse_key": ["1"], "name": ["tract"]})
    coarse = pd.DataFrame({"coarse_key": ["1"], "name": ["county"]})
    merged = join(fine, coarse)
    assert merged["name"].iloc[0] == "tract"
    assert merged["name_coarse"].iloc[0] == "county"


def test_unknown_duplicate_policy(fine, coarse):
    with pytest.raises(ValueError):
        join(fine, coarse, duplicates="merge")
