# src/food_hub_siting/reshape.py
import logging
from typing import List, Optional, Sequence

import pandas as pd

from .errors import DuplicateKeyError
from .keys import canonical_fips
from .quality import DataQualityReport
from .schema import (
    ATLAS_COUNTY_COL, ATLAS_FIPS_COL, ATLAS_METRICS, ATLAS_STATE_COL,
    ATLAS_VALUE_COL, ATLAS_VARIABLE_COL, COARSE_KEY_COL, COUNTY_FIPS_WIDTH,
)

logger = logging.getLogger(__name__)


def long_to_wide(
    df: pd.DataFrame,
    index_cols: Sequence[str],
    variable_col: str,
    value_col: str,
    variables: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """One row per index, one column per variable. Requested-but-absent variables come back all-NaN."""
    index_cols = list(index_cols)
    sub = df if variables is None else df[df[variable_col].isin(variables)]

    dup = sub.duplicated(subset=index_cols + [variable_col], keep=False)
    if dup.any():
        pairs = sub.loc[dup, index_cols + [variable_col]].drop_duplicates()
        raise DuplicateKeyError(
            "+".join(index_cols + [variable_col]),
            [tuple(r) for r in pairs.itertuples(index=False)],
        )

    wide = sub.pivot(index=index_cols, columns=variable_col, values=value_col)
    if variables is not None:
        wide = wide.reindex(columns=list(variables))
    wide.columns.name = None
    return wide.reset_index()


def coarse_table(atlas_long: pd.DataFrame, quality: Optional[DataQualityReport] = None,
                 metrics: List[str] = ATLAS_METRICS) -> pd.DataFrame:
    """Atlas long layout -> one row per county keyed by zero-padded COARSE_KEY_COL."""
    keyed = atlas_long.assign(
        **{COARSE_KEY_COL: canonical_fips(atlas_long[ATLAS_FIPS_COL], COUNTY_FIPS_WIDTH)}
    )
    bad = keyed[COARSE_KEY_COL].isna()
    if quality is not None:
        quality.record("reshape", "coarse.rows_bad_fips", int(bad.sum()),
                       note="atlas rows dropped before pivot")
    keyed = keyed[~bad]

    names = (
        keyed.groupby(COARSE_KEY_COL, as_index=False)
        .agg({ATLAS_STATE_COL: "first", ATLAS_COUNTY_COL: "first"})
    )
    wide = long_to_wide(keyed, [COARSE_KEY_COL], ATLAS_VARIABLE_COL, ATLAS_VALUE_COL, metrics)
    out = names.merge(wide, on=COARSE_KEY_COL, how="left")
    logger.info("Reshaped atlas to %d counties x %d metrics", len(out), len(metrics))
    if quality is not None:
        quality.record("reshape", "coarse.counties", len(out), warn=False)
    return out
