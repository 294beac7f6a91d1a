# src/food_hub_siting/loader.py
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from .errors import SchemaMismatchError
from .quality import DataQualityReport
from .schema import PLACES_COLUMNS, ATLAS_LONG_COLUMNS

logger = logging.getLogger(__name__)

COLUMN_KINDS = ("text", "float")


@dataclass(frozen=True)
class TableSchema:
    """Named, typed columns expected in an input file."""
    name: str
    columns: Dict[str, str] = field(default_factory=dict)
    strict: bool = False  # reject columns not listed here

    def __post_init__(self):
        bad = {c: k for c, k in self.columns.items() if k not in COLUMN_KINDS}
        if bad:
            raise ValueError(f"Unknown column kinds in schema {self.name}: {bad}")

    def names(self, kind: Optional[str] = None) -> List[str]:
        return [c for c, k in self.columns.items() if kind is None or k == kind]


PLACES_SCHEMA = TableSchema("places_tracts", PLACES_COLUMNS)
ATLAS_LONG_SCHEMA = TableSchema("atlas_county_long", ATLAS_LONG_COLUMNS)


def check_columns(present: Sequence[str], schema: TableSchema) -> None:
    """Raise SchemaMismatchError when required columns are absent (or extras exist under strict)."""
    present = set(present)
    missing = set(schema.columns) - present
    unexpected = present - set(schema.columns) if schema.strict else set()
    if missing or unexpected:
        raise SchemaMismatchError(schema.name, missing, unexpected)


def load(
    path: Union[str, Path],
    schema: TableSchema,
    quality: Optional[DataQualityReport] = None,
) -> pd.DataFrame:
    """
    Read a delimited file and return exactly the schema's columns, in schema order.

    - Text columns are read as str so zero-padded FIPS codes keep their width.
    - Float columns go through pd.to_numeric(errors="coerce"); cells that fail
      to parse become NaN and are counted, not raised.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")

    try:
        header = pd.read_csv(path, nrows=0).columns.tolist()
    except pd.errors.EmptyDataError as exc:
        raise SchemaMismatchError(schema.name, missing=schema.columns) from exc
    check_columns(header, schema)

    dtypes = {c: str for c in schema.names("text")}
    df = pd.read_csv(path, usecols=list(schema.columns), dtype=dtypes, low_memory=False)

    coerced = 0
    for c in schema.names("float"):
        before = df[c].notna()
        df[c] = pd.to_numeric(df[c], errors="coerce")
        coerced += int((before & df[c].isna()).sum())

    df = df[list(schema.columns)]
    logger.info("Loaded %s: %d rows x %d cols from %s", schema.name, len(df), df.shape[1], path)
    if quality is not None:
        quality.record("load", f"{schema.name}.rows", len(df), warn=False)
        quality.record("load", f"{schema.name}.non_numeric_cells", coerced,
                       note="coerced to missing")
    return df


def select_columns(df: pd.DataFrame, columns: Sequence[str], table: str = "table") -> pd.DataFrame:
    """Copy of the named columns; absent columns raise instead of propagating silently."""
    missing = set(columns) - set(df.columns)
    if missing:
        raise SchemaMismatchError(table, missing)
    return df.loc[:, list(columns)].copy()
