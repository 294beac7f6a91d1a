# src/food_hub_siting/report.py
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from .aggregate import group_mean, rank_groups, uniform_groups
from .config import ENGAGEMENT_RATE_DEFAULT, EXPORT_FORMATS
from .errors import ConfigError
from .quality import DataQualityReport
from .schema import (
    ATLAS_STATE_COL, COARSE_KEY_COL, FOOD_INSECURITY_COL, POPULATION_COL, STATE_COL,
)

logger = logging.getLogger(__name__)


def _county_rows(merged: pd.DataFrame, state_col: str) -> pd.DataFrame:
    """One row per (state, county) among matched rows, so county metrics aren't weighted by tract count."""
    return (
        merged.dropna(subset=[COARSE_KEY_COL])
        .drop_duplicates(subset=[state_col, COARSE_KEY_COL])
    )


def state_insecurity_averages(
    merged: pd.DataFrame,
    state_col: str = STATE_COL,
    column: str = FOOD_INSECURITY_COL,
    quality: Optional[DataQualityReport] = None,
) -> pd.DataFrame:
    """Mean county food insecurity per state, ranked (1 = highest). Undefined states keep a NaN rank."""
    counties = _county_rows(merged, state_col)
    states = sorted(merged[state_col].dropna().unique().tolist())
    means = group_mean(counties, state_col, column).reindex(states)
    n_counties = counties.dropna(subset=[column]).groupby(state_col)[COARSE_KEY_COL].nunique()

    ranked = rank_groups(means).set_index("group")["rank"]
    out = pd.DataFrame({
        state_col: states,
        f"mean_{column}": means.to_numpy(),
        "n_counties": n_counties.reindex(states).fillna(0).astype(int).to_numpy(),
    })
    out["rank"] = out[state_col].map(ranked).astype("Int64")
    undefined = int(means.isna().sum())
    if quality is not None:
        quality.record("report", "states.undefined_mean", undefined,
                       note=f"no {column} values; excluded from ranking")
    return out.sort_values(["rank", state_col], na_position="last").reset_index(drop=True)


def engagement_estimates(
    merged: pd.DataFrame,
    rate: float = ENGAGEMENT_RATE_DEFAULT,
    state_col: str = STATE_COL,
    column: str = FOOD_INSECURITY_COL,
) -> pd.DataFrame:
    """
    Rough engagement per state.

    food_insecure_population = sum over tracts of population * insecurity% / 100
    estimated_engaged        = food_insecure_population * rate
    A state with no insecurity values at all gets NaN, not 0.
    """
    if not 0.0 <= rate <= 1.0:
        raise ConfigError(f"engagement rate must be in [0, 1], got {rate}")
    df = merged[[state_col, POPULATION_COL, column]].dropna(subset=[state_col])
    df = df.assign(_insecure=df[POPULATION_COL] * df[column] / 100.0)
    grouped = df.groupby(state_col)
    out = pd.DataFrame({
        "population": grouped[POPULATION_COL].sum(min_count=1),
        "food_insecure_population": grouped["_insecure"].sum(min_count=1),
    })
    county_means = group_mean(_county_rows(merged, state_col), state_col, column)
    out["mean_food_insecurity"] = county_means.reindex(out.index)
    out["engagement_rate"] = rate
    out["estimated_engaged"] = out["food_insecure_population"] * rate
    out.index.name = state_col
    out = out.reset_index()
    return out.sort_values("estimated_engaged", ascending=False, na_position="last").reset_index(drop=True)


def audit_data_flaws(
    merged: pd.DataFrame,
    quality: DataQualityReport,
    state_col: str = STATE_COL,
    column: str = FOOD_INSECURITY_COL,
) -> None:
    """Record the known data flaws: state-level values repeated per county, and rows without a state."""
    uniform = uniform_groups(merged, state_col, column, unit=COARSE_KEY_COL)
    quality.record("audit", f"states.uniform_{column}", len(uniform),
                   note="same value for every county: " + ", ".join(uniform[:10]))
    quality.record("audit", "rows.missing_state", int(merged[state_col].isna().sum()),
                   note=f"{state_col} missing")
    if ATLAS_STATE_COL in merged.columns:
        quality.record("audit", "rows.missing_county_state", int(merged[ATLAS_STATE_COL].isna().sum()),
                       note="no county record for the tract's state/county")


def export_tables(
    tables: Dict[str, pd.DataFrame],
    out_dir: Union[str, Path],
    fmt: str = "csv",
) -> Dict[str, Path]:
    """Write each table to out_dir/<name>.<fmt>; json uses records orientation."""
    if fmt not in EXPORT_FORMATS:
        raise ConfigError(f"export format must be one of {EXPORT_FORMATS}, got {fmt!r}")
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = {}
    for name, df in tables.items():
        path = out_dir / f"{name}.{fmt}"
        if fmt == "csv":
            df.to_csv(path, index=False)
        else:
            df.to_json(path, orient="records", indent=2)
        written[name] = path
        logger.info("Wrote %s (%d rows)", path, len(df))
    return written
