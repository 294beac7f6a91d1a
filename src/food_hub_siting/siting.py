# src/food_hub_siting/siting.py
"""
Candidate tracts for donation hubs in one state.

A tract is a donor-access candidate when its county has high store density,
meaning at or above the in-state percentile of the county values. The
combination of the three store types depends on `precedence`:

    nested: grocery | (convenience & farmers_market)   (Python's reading of A | B & C)
    flat:   (grocery | convenience) & farmers_market
"""
import logging
from typing import Dict, Optional, Tuple

import pandas as pd

from .aggregate import above_threshold, percentile_threshold
from .config import (
    ACCESS_QUANTILE_DEFAULT, NEED_COLUMN_DEFAULT, NEED_QUANTILE_DEFAULT, PRECEDENCE_CHOICES,
    PRECEDENCE_DEFAULT,
)
from .errors import ConfigError
from .geo import valid_coordinates
from .quality import DataQualityReport
from .schema import (
    ATLAS_METRICS, COARSE_KEY_COL, CONVENIENCE_COL, FARMERS_MARKET_COL, GROCERY_COL,
    STATE_COL,
)

logger = logging.getLogger(__name__)

ACCESS_FLAGS = {
    "high_grocery": GROCERY_COL,
    "high_convenience": CONVENIENCE_COL,
    "high_farmers_market": FARMERS_MARKET_COL,
}
DONOR_ACCESS_COL = "donor_access"
HIGH_NEED_COL = "high_need"


def _scope_values(df: pd.DataFrame, column: str, in_scope: pd.Series) -> pd.Series:
    """Values the percentile is taken over: one per county for county metrics, else one per row."""
    scoped = df.loc[in_scope]
    if column in ATLAS_METRICS:
        scoped = scoped.dropna(subset=[COARSE_KEY_COL]).drop_duplicates(subset=COARSE_KEY_COL)
    return scoped[column]


def scope_thresholds(df: pd.DataFrame, columns, in_scope: pd.Series, q: float) -> Dict[str, float]:
    out = {}
    for col in columns:
        out[col] = percentile_threshold(_scope_values(df, col, in_scope), q)
        if pd.isna(out[col]):
            logger.warning("Threshold for %s undefined in scope (too few values)", col)
    return out


def access_flags(
    df: pd.DataFrame,
    state: str,
    q_access: float = ACCESS_QUANTILE_DEFAULT,
    state_col: str = STATE_COL,
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """Add high_grocery / high_convenience / high_farmers_market flags (False outside `state`)."""
    in_state = (df[state_col] == state).fillna(False)
    thresholds = scope_thresholds(df, ACCESS_FLAGS.values(), in_state, q_access)
    flags = {
        flag: above_threshold(df[col], thresholds[col]) & in_state
        for flag, col in ACCESS_FLAGS.items()
    }
    return df.assign(**flags), thresholds


def donor_access_mask(flags: pd.DataFrame, precedence: str = PRECEDENCE_DEFAULT) -> pd.Series:
    grocery = flags["high_grocery"]
    convenience = flags["high_convenience"]
    market = flags["high_farmers_market"]
    if precedence == "nested":
        return grocery | (convenience & market)
    if precedence == "flat":
        return (grocery | convenience) & market
    raise ConfigError(f"precedence must be one of {PRECEDENCE_CHOICES}, got {precedence!r}")


def high_need_mask(
    df: pd.DataFrame,
    state: str,
    q_need: float = NEED_QUANTILE_DEFAULT,
    column: str = NEED_COLUMN_DEFAULT,
    state_col: str = STATE_COL,
) -> Tuple[pd.Series, float]:
    in_state = (df[state_col] == state).fillna(False)
    threshold = scope_thresholds(df, [column], in_state, q_need)[column]
    return above_threshold(df[column], threshold) & in_state, threshold


def siting_candidates(
    merged: pd.DataFrame,
    state: str,
    q_access: float = ACCESS_QUANTILE_DEFAULT,
    q_need: float = NEED_QUANTILE_DEFAULT,
    precedence: str = PRECEDENCE_DEFAULT,
    need_column: str = NEED_COLUMN_DEFAULT,
    state_col: str = STATE_COL,
    quality: Optional[DataQualityReport] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    In-state rows passing the donor-access filter with usable coordinates.

    Returns (candidates, thresholds) where thresholds has one row per metric:
    state, metric, quantile, threshold.
    """
    flagged, access_t = access_flags(merged, state, q_access, state_col)
    need, need_t = high_need_mask(flagged, state, q_need, need_column, state_col)
    flagged = flagged.assign(**{
        DONOR_ACCESS_COL: donor_access_mask(flagged, precedence),
        HIGH_NEED_COL: need,
    })

    in_state = (flagged[state_col] == state).fillna(False)
    donor = flagged[DONOR_ACCESS_COL]
    coords_ok = valid_coordinates(flagged)
    candidates = flagged[donor & coords_ok].copy()

    logger.info("%s: %d tracts in state, %d pass donor-access (%s), %d with usable coordinates",
                state, int(in_state.sum()), int(donor.sum()), precedence, len(candidates))
    if quality is not None:
        quality.record("siting", "state.rows", int(in_state.sum()), note=state, warn=False)
        quality.record("siting", "state.rows_failing_donor_access", int((in_state & ~donor).sum()),
                       note=f"precedence={precedence}", warn=False)
        quality.record("siting", "candidates.excluded_bad_coordinates", int((donor & ~coords_ok).sum()),
                       note="excluded from clustering input")
        undefined = [c for c, t in {**access_t, need_column: need_t}.items() if pd.isna(t)]
        quality.record("siting", "thresholds.undefined", len(undefined), note=", ".join(undefined))

    rows = [(state, col, q_access, t) for col, t in access_t.items()]
    rows.append((state, need_column, q_need, need_t))
    thresholds = pd.DataFrame(rows, columns=[state_col, "metric", "quantile", "threshold"])
    return candidates, thresholds
