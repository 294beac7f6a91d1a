# src/food_hub_siting/keys.py
"""
FIPS key normalisation.

Tract keys (11 digits) and county keys (5 digits) only line up as text of a
fixed width. A county code read as a number loses its leading zero
(06037 -> 6037), so county keys are re-padded to 5 digits. A tract key that
lost exactly one leading zero is re-padded too; any other tract key is
truncated as given and counted as malformed.
"""
import logging
import re
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .quality import DataQualityReport
from .schema import COARSE_KEY_COL, COUNTY_FIPS_WIDTH, TRACT_FIPS_WIDTH

logger = logging.getLogger(__name__)

_FLOAT_SUFFIX = re.compile(r"\.0+$")


def _key_text(values: pd.Series) -> Tuple[pd.Series, pd.Series]:
    """(stripped text without a float '.0' suffix, missing mask)."""
    s = pd.Series(values, copy=True)
    missing = s.isna()
    text = s.astype(str).str.strip().str.replace(_FLOAT_SUFFIX, "", regex=True)
    return text, missing


def _all_digits(text: pd.Series) -> pd.Series:
    return text.str.fullmatch(r"\d+").fillna(False).astype(bool)


def canonical_fips(values: pd.Series, width: int) -> pd.Series:
    """Zero-padded text FIPS of the given width; non-digit or over-long values become NA."""
    if width <= 0:
        raise ValueError(f"width must be positive, got {width}")
    text, missing = _key_text(values)
    ok = ~missing & _all_digits(text) & (text.str.len() <= width)
    out = text.str.zfill(width).where(ok, other=np.nan)
    return out.astype(object)


def well_formed_fips(values: pd.Series, width: int) -> pd.Series:
    """True where the key is exactly `width` digits as given."""
    text, missing = _key_text(values)
    return ~missing & _all_digits(text) & (text.str.len() == width)


def derive_coarse_key(
    fine_keys: pd.Series,
    fine_width: int = TRACT_FIPS_WIDTH,
    coarse_width: int = COUNTY_FIPS_WIDTH,
) -> pd.Series:
    """
    County key from a tract key: the first coarse_width characters.

    A numeric key one digit short of fine_width is zero-padded first
    (6037101110 -> 06037101110). Keys shorter than coarse_width, or whose
    prefix is not all digits, give NA.
    """
    if coarse_width > fine_width:
        raise ValueError("coarse_width cannot exceed fine_width")
    text, missing = _key_text(fine_keys)
    lost_zero = _all_digits(text) & (text.str.len() == fine_width - 1)
    text = text.where(~lost_zero, text.str.zfill(fine_width))
    head = text.str.slice(0, coarse_width)
    ok = ~missing & _all_digits(head) & (head.str.len() == coarse_width)
    return head.where(ok, other=np.nan).astype(object)


def normalize_keys(
    fine: pd.DataFrame,
    coarse: pd.DataFrame,
    fine_key_col: str,
    coarse_key_col: str,
    quality: Optional[DataQualityReport] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Return copies of both tables with a shared COARSE_KEY_COL column."""
    fine = fine.assign(**{COARSE_KEY_COL: derive_coarse_key(fine[fine_key_col])})
    coarse = coarse.assign(**{COARSE_KEY_COL: canonical_fips(coarse[coarse_key_col], COUNTY_FIPS_WIDTH)})

    missing_fine = fine[fine_key_col].isna()
    bad_fine = int((~missing_fine & ~well_formed_fips(fine[fine_key_col], TRACT_FIPS_WIDTH)).sum())
    bad_coarse = int(coarse[COARSE_KEY_COL].isna().sum())
    if quality is not None:
        quality.record("keys", "fine.malformed_keys", bad_fine,
                       note=f"{fine_key_col} not {TRACT_FIPS_WIDTH} digits; county key re-padded or truncated as given")
        quality.record("keys", "fine.missing_keys", int(missing_fine.sum()))
        quality.record("keys", "coarse.malformed_keys", bad_coarse, note="county FIPS missing or invalid")
    return fine, coarse
