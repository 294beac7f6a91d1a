# src/food_hub_siting/aggregate.py
"""
Group means and percentile cutoffs.

Missing-value handling is an explicit argument everywhere (``skipna``) rather
than a library default: with skipna=True missing values drop out of both the
numerator and the denominator; with skipna=False any missing value makes the
result undefined (NaN). An undefined result is never reported as 0.
"""
import logging
import math
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from .config import PERCENTILE_MIN_COUNT
from .errors import InsufficientDataError

logger = logging.getLogger(__name__)


def group_mean(df: pd.DataFrame, by: Union[str, List[str]], column: str, skipna: bool = True) -> pd.Series:
    """Arithmetic mean of `column` per group. Groups with no usable values -> NaN."""
    values = pd.to_numeric(df[column], errors="coerce")
    keys = df[by] if isinstance(by, str) else [df[b] for b in by]
    grouped = values.groupby(keys)
    if skipna:
        out = grouped.mean()
    else:
        out = grouped.agg(lambda s: s.mean(skipna=False))
    return out.rename(column)


def rank_groups(means: pd.Series, ascending: bool = False) -> pd.DataFrame:
    """Rank defined groups (1 = top). Undefined (NaN) groups are left out."""
    defined = means.dropna()
    out = pd.DataFrame({"group": defined.index, "value": defined.to_numpy()})
    out["rank"] = out["value"].rank(method="min", ascending=ascending).astype(int)
    return out.sort_values(["rank", "group"]).reset_index(drop=True)


def percentile_threshold(
    values,
    q: float,
    skipna: bool = True,
    min_count: int = PERCENTILE_MIN_COUNT,
    strict: bool = False,
) -> float:
    """
    q-th quantile (q in [0, 1], linear interpolation) of `values`.

    Fewer than `min_count` usable values: NaN, or InsufficientDataError when strict.
    """
    if not 0.0 <= q <= 1.0:
        raise ValueError(f"q must be in [0, 1], got {q}")
    s = pd.to_numeric(pd.Series(values), errors="coerce").astype(float)
    if not skipna and s.isna().any():
        return math.nan
    s = s.dropna()
    if len(s) < min_count:
        msg = f"percentile needs at least {min_count} values, got {len(s)}"
        if strict:
            raise InsufficientDataError(msg)
        logger.warning("%s; threshold undefined", msg)
        return math.nan
    return float(np.quantile(s.to_numpy(), q))


def group_thresholds(
    df: pd.DataFrame,
    by: str,
    column: str,
    q: float,
    skipna: bool = True,
    min_count: int = PERCENTILE_MIN_COUNT,
) -> pd.Series:
    """Per-group percentile cutoffs (a ThresholdSet). Undefined groups stay NaN."""
    return (
        df.groupby(by)[column]
        .agg(lambda s: percentile_threshold(s, q, skipna=skipna, min_count=min_count))
        .rename(f"{column}_p{int(round(q * 100))}")
    )


def above_threshold(values: pd.Series, threshold: Optional[float]) -> pd.Series:
    """values >= threshold. Missing values and an undefined threshold both give False."""
    values = pd.to_numeric(values, errors="coerce")
    if threshold is None or math.isnan(threshold):
        return pd.Series(False, index=values.index)
    return (values >= threshold).fillna(False).astype(bool)


def uniform_groups(df: pd.DataFrame, by: str, column: str, unit: str) -> list:
    """
    Groups whose `column` takes a single value across more than one `unit`.

    Flags metrics that are really published at the group level (e.g. a
    state-wide rate copied onto every county).
    """
    sub = df[[by, unit, column]].dropna(subset=[column])
    stats = sub.groupby(by).agg(units=(unit, "nunique"), values=(column, "nunique"))
    return sorted(stats.index[(stats["units"] > 1) & (stats["values"] == 1)].tolist())
