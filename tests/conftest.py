from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from food_hub_siting.schema import ATLAS_METRICS, HEALTH_MEASURES, PLACES_COLUMNS

REPO_SAMPLE = Path(__file__).resolve().parents[1] / "data" / "sample"


def make_places(rows):
    """Tract frame with every PLACES column; rows give the interesting fields."""
    base = {
        "StateAbbr": "NY", "StateDesc": "New York", "CountyName": "X", "CountyFIPS": None,
        "TractFIPS": None, "TotalPopulation": 1000.0, "Geolocation": "(40.7, -74.0)",
        **{m: 10.0 for m in HEALTH_MEASURES},
    }
    df = pd.DataFrame([{**base, **r} for r in rows])
    return df[list(PLACES_COLUMNS)]


def make_atlas_long(counties):
    """counties: {fips: (state, county, {metric: value})} -> long atlas frame."""
    recs = []
    for fips, (state, county, metrics) in counties.items():
        for var, val in metrics.items():
            recs.append({"FIPS": fips, "State": state, "County": county,
                         "Variable_Code": var, "Value": val})
    return pd.DataFrame(recs, columns=["FIPS", "State", "County", "Variable_Code", "Value"])


def full_metrics(**overrides):
    m = {v: 1.0 for v in ATLAS_METRICS}
    m.update(overrides)
    return m


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def sample_dir():
    return REPO_SAMPLE


@pytest.fixture
def write_inputs(tmp_path):
    """Write (places, atlas_long) frames to CSV and return their paths."""
    def _write(places, atlas_long):
        p = tmp_path / "places.csv"
        a = tmp_path / "atlas.csv"
        places.to_csv(p, index=False)
        atlas_long.to_csv(a, index=False)
        return p, a
    return _write
