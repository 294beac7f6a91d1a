# src/food_hub_siting/geo.py
import logging
import math
import re
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .quality import DataQualityReport
from .schema import GEOLOCATION_COL, LAT_COL, LAT_MAX, LAT_MIN, LON_COL, LON_MAX, LON_MIN

logger = logging.getLogger(__name__)

NAN_POINT = (math.nan, math.nan)

# PLACES publishes WKT with lon first: "POINT (-73.97 40.78)"
_WKT_POINT = re.compile(r"^POINT\s*\(\s*(\S+)\s+(\S+)\s*\)$", re.IGNORECASE)


def _to_float(s: str) -> float:
    v = float(s)
    if not math.isfinite(v):
        raise ValueError(f"non-finite coordinate {s!r}")
    return v


def parse_point(text) -> Tuple[float, float]:
    """
    "(lat, lon)" -> (lat, lon). Also accepts WKT "POINT (lon lat)".
    Anything unparseable gives (nan, nan) instead of raising.
    """
    if text is None or (isinstance(text, float) and math.isnan(text)):
        return NAN_POINT
    t = str(text).strip()
    try:
        m = _WKT_POINT.match(t)
        if m:
            lon, lat = _to_float(m.group(1)), _to_float(m.group(2))
            return lat, lon
        t = t.strip("()").strip()
        if "," not in t:
            return NAN_POINT
        lat_s, lon_s = t.split(",", 1)
        return _to_float(lat_s), _to_float(lon_s)
    except ValueError:
        return NAN_POINT


def split_geolocation(
    df: pd.DataFrame,
    column: str = GEOLOCATION_COL,
    quality: Optional[DataQualityReport] = None,
) -> pd.DataFrame:
    """Return a copy with float LAT_COL/LON_COL parsed from `column`; bad or out-of-range -> NaN."""
    coords = [parse_point(v) for v in df[column]]
    lat = pd.Series([c[0] for c in coords], index=df.index, dtype=float)
    lon = pd.Series([c[1] for c in coords], index=df.index, dtype=float)

    unparsed = int((lat.isna() | lon.isna()).sum() - df[column].isna().sum())
    out_of_range = (lat < LAT_MIN) | (lat > LAT_MAX) | (lon < LON_MIN) | (lon > LON_MAX)
    lat = lat.mask(out_of_range)
    lon = lon.mask(out_of_range)

    if quality is not None:
        quality.record("geo", "geolocation.missing", int(df[column].isna().sum()))
        quality.record("geo", "geolocation.unparseable", unparsed, note="recorded as missing coordinates")
        quality.record("geo", "geolocation.out_of_range", int(out_of_range.sum()),
                       note="lat/lon outside valid bounds")
    return df.assign(**{LAT_COL: lat, LON_COL: lon})


def valid_coordinates(df: pd.DataFrame) -> pd.Series:
    """Finite, in-bounds lat/lon."""
    lat = df[LAT_COL].to_numpy(dtype=float)
    lon = df[LON_COL].to_numpy(dtype=float)
    ok = (
        np.isfinite(lat) & np.isfinite(lon)
        & (lat >= LAT_MIN) & (lat <= LAT_MAX)
        & (lon >= LON_MIN) & (lon <= LON_MAX)
    )
    return pd.Series(ok, index=df.index)
