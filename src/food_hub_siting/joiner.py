# src/food_hub_siting/joiner.py
import logging
from typing import Callable, Optional, Tuple

import pandas as pd

from .errors import DuplicateKeyError, SchemaMismatchError
from .quality import DataQualityReport
from .schema import COARSE_KEY_COL

logger = logging.getLogger(__name__)

KeyDerivation = Callable[[pd.DataFrame, pd.DataFrame], Tuple[pd.DataFrame, pd.DataFrame]]

COARSE_SUFFIX = "_coarse"


def duplicate_keys(df: pd.DataFrame, key: str) -> list:
    keys = df[key].dropna()
    return sorted(keys[keys.duplicated()].unique().tolist())


def join(
    fine: pd.DataFrame,
    coarse: pd.DataFrame,
    key_derivation: Optional[KeyDerivation] = None,
    key: str = COARSE_KEY_COL,
    duplicates: str = "reject",
    quality: Optional[DataQualityReport] = None,
) -> pd.DataFrame:
    """
    Left join of the fine (tract) table onto the coarse (county) table.

    Every fine row is kept. Rows without a coarse match get NaN in all
    coarse-side columns. Coarse keys must be unique unless duplicates="fanout",
    in which case matched fine rows repeat once per duplicate.
    """
    if duplicates not in ("reject", "fanout"):
        raise ValueError(f"duplicates must be 'reject' or 'fanout', got {duplicates!r}")
    if key_derivation is not None:
        fine, coarse = key_derivation(fine, coarse)

    for name, df in (("fine", fine), ("coarse", coarse)):
        if key not in df.columns:
            raise SchemaMismatchError(name, {key})

    dups = duplicate_keys(coarse, key)
    if dups:
        if duplicates == "reject":
            raise DuplicateKeyError(key, dups)
        logger.warning("Coarse table has %d duplicated keys; join will fan out", len(dups))

    # NaN keys never match (pandas would otherwise pair NaN with NaN)
    right = coarse[coarse[key].notna()]
    merged = fine.merge(
        right, on=key, how="left", suffixes=("", COARSE_SUFFIX), indicator=True,
        validate="many_to_one" if duplicates == "reject" else None,
    )
    unmatched = int((merged["_merge"] == "left_only").sum())
    merged = merged.drop(columns="_merge")

    logger.info("Joined %d fine rows to %d coarse rows (%d unmatched)",
                len(fine), len(coarse), unmatched)
    if quality is not None:
        quality.record("join", "fine.unmatched_rows", unmatched, note="no county match; coarse fields missing")
        quality.record("join", "coarse.duplicate_keys", len(dups),
                       note="fan-out" if dups else "", warn=bool(dups))
        quality.record("join", "merged.rows", len(merged), warn=False)
    return merged
