import pandas as pd
import pytest

from food_hub_siting.errors import SchemaMismatchError
from food_hub_siting.loader import ATLAS_LONG_SCHEMA, PLACES_SCHEMA, TableSchema, load, select_columns
from food_hub_siting.quality import DataQualityReport

from conftest import make_places


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load(tmp_path / "nope.csv", PLACES_SCHEMA)


def test_missing_columns_named_in_error(tmp_path):
    path = tmp_path / "atlas.csv"
    pd.DataFrame({"FIPS": ["01001"], "State": ["AL"]}).to_csv(path, index=False)
    with pytest.raises(SchemaMismatchError) as exc:
        load(path, ATLAS_LONG_SCHEMA)
    assert set(exc.value.missing) == {"County", "Variable_Code", "Value"}


@pytest.mark.parametrize("content", ["", "\n\n"])
def test_empty_file_is_schema_mismatch(tmp_path, content):
    path = tmp_path / "empty.csv"
    path.write_text(content)
    with pytest.raises(SchemaMismatchError) as exc:
        load(path, PLACES_SCHEMA)
    assert set(exc.value.missing) == set(PLACES_SCHEMA.columns)


def test_strict_schema_rejects_unknown_columns(tmp_path):
    path = tmp_path / "t.csv"
    pd.DataFrame({"a": ["1"], "b": [2.0], "extra": [0]}).to_csv(path, index=False)
    schema = TableSchema("t", {"a": "text", "b": "float"}, strict=True)
    with pytest.raises(SchemaMismatchError) as exc:
        load(path, schema)
    assert exc.value.unexpected == ["extra"]


def test_extra_columns_dropped_and_order_follows_schema(tmp_path):
    path = tmp_path / "t.csv"
    pd.DataFrame({"extra": [0], "b": [2.0], "a": ["x"]}).to_csv(path, index=False)
    df = load(path, TableSchema("t", {"a": "text", "b": "float"}))
    assert df.columns.tolist() == ["a", "b"]


def test_fips_text_keeps_leading_zeros(tmp_path):
    path = tmp_path / "places.csv"
    make_places([{"TractFIPS": "06037101110", "CountyFIPS": "06037"}]).to_csv(path, index=False)
    df = load(path, PLACES_SCHEMA)
    assert df["TractFIPS"].iloc[0] == "06037101110"
    assert df["CountyFIPS"].iloc[0] == "06037"


def test_non_numeric_cells_coerced_and_counted(tmp_path):
    path = tmp_path / "atlas.csv"
    pd.DataFrame({
        "FIPS": ["36061", "36061"], "State": ["NY", "NY"], "County": ["New York"] * 2,
        "Variable_Code": ["GROCPTH16", "POVRATE15"], "Value": ["0.3", "abc"],
    }).to_csv(path, index=False)
    q = DataQualityReport()
    df = load(path, ATLAS_LONG_SCHEMA, quality=q)
    assert df["Value"].iloc[0] == pytest.approx(0.3)
    assert pd.isna(df["Value"].iloc[1])
    assert q.total("atlas_county_long.non_numeric_cells") == 1
    assert q.total("atlas_county_long.rows") == 2


def test_select_columns():
    df = pd.DataFrame({"a": [1], "b": [2], "c": [3]})
    out = select_columns(df, ["c", "a"])
    assert out.columns.tolist() == ["c", "a"]
    with pytest.raises(SchemaMismatchError):
        select_columns(df, ["a", "zzz"])


def test_sample_inputs_match_schemas(sample_dir):
    places = load(sample_dir / "places_tracts.csv", PLACES_SCHEMA)
    atlas = load(sample_dir / "atlas_county_long.csv", ATLAS_LONG_SCHEMA)
    assert len(places) > 0 and len(atlas) > 0
