# src/food_hub_siting/quality.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

QUALITY_COLUMNS = ["stage", "metric", "count", "note"]


@dataclass
class QualityEntry:
    stage: str
    metric: str
    count: int
    note: str = ""


@dataclass
class DataQualityReport:
    """
    Running tally of rows excluded, coerced or left unmatched along the pipeline.

    Stages record counts here instead of dropping rows silently, so the run ends
    with an auditable table next to the analytical outputs.
    """
    entries: List[QualityEntry] = field(default_factory=list)

    def record(self, stage: str, metric: str, count: int, note: str = "", warn: bool = True) -> None:
        count = int(count)
        self.entries.append(QualityEntry(stage, metric, count, note))
        if warn and count > 0:
            logger.warning("%s: %s = %d %s", stage, metric, count, note)
        else:
            logger.debug("%s: %s = %d %s", stage, metric, count, note)

    def total(self, metric: str, stage: Optional[str] = None) -> int:
        return sum(
            e.count for e in self.entries
            if e.metric == metric and (stage is None or e.stage == stage)
        )

    def to_frame(self) -> pd.DataFrame:
        if not self.entries:
            return pd.DataFrame(columns=QUALITY_COLUMNS)
        return pd.DataFrame(
            [(e.stage, e.metric, e.count, e.note) for e in self.entries],
            columns=QUALITY_COLUMNS,
        )

    def __len__(self) -> int:
        return len(self.entries)
