import pandas as pd
import pytest

from food_hub_siting.keys import canonical_fips, derive_coarse_key, normalize_keys
from food_hub_siting.quality import DataQualityReport


def test_tract_key_truncates_to_county():
    assert derive_coarse_key(pd.Series(["36061000100"])).tolist() == ["36061"]


def test_integer_county_key_becomes_five_digit_text():
    out = canonical_fips(pd.Series([36061]), 5)
    assert out.tolist() == ["36061"]


def test_leading_zero_restored():
    # 06037 read as a number is 6037; it must not come back as "6037"
    assert canonical_fips(pd.Series([6037, "6037", 6037.0, "06037"]), 5).tolist() == ["06037"] * 4


def test_tract_key_missing_leading_zero_is_repadded():
    assert derive_coarse_key(pd.Series([6037101110])).tolist() == ["06037"]


def test_short_tract_keys_truncate_as_given():
    keys = pd.Series(["36061", "360610001", "3606100", 36061000100])
    assert derive_coarse_key(keys).tolist() == ["36061"] * 4


def test_tract_key_too_short_or_non_digit_prefix_is_missing():
    assert derive_coarse_key(pd.Series(["3606", "36A61000100", ""])).isna().all()


def test_normalize_keys_counts_wrong_length_tract_keys():
    fine = pd.DataFrame({"TractFIPS": ["3606100", "6037101110", "36061000100"]})
    coarse = pd.DataFrame({"FIPS": ["36061", "06037"]})
    q = DataQualityReport()
    f2, _ = normalize_keys(fine, coarse, "TractFIPS", "FIPS", quality=q)

    assert f2["coarse_key"].tolist() == ["36061", "06037", "36061"]
    assert q.total("fine.malformed_keys") == 2


@pytest.mark.parametrize("bad", ["36A61", "", "123456", "36-061", " "])
def test_malformed_keys_become_missing(bad):
    assert canonical_fips(pd.Series([bad]), 5).isna().all()


def test_missing_key_stays_missing():
    out = canonical_fips(pd.Series(["36061", None]), 5)
    assert out.iloc[0] == "36061"
    assert pd.isna(out.iloc[1])


def test_width_must_be_positive():
    with pytest.raises(ValueError):
        canonical_fips(pd.Series(["1"]), 0)


def test_normalize_keys_adds_shared_column_and_counts_bad_keys():
    fine = pd.DataFrame({"TractFIPS": ["36061000100", "ABC", None]})
    coarse = pd.DataFrame({"FIPS": [36061, 36005]})
    q = DataQualityReport()
    f2, c2 = normalize_keys(fine, coarse, "TractFIPS", "FIPS", quality=q)

    assert f2["coarse_key"].iloc[0] == "36061"
    assert c2["coarse_key"].tolist() == ["36061", "36005"]
    assert "coarse_key" not in fine.columns  # inputs untouched
    assert q.total("fine.malformed_keys") == 1
    assert q.total("fine.missing_keys") == 1
    assert q.total("coarse.malformed_keys") == 0
