# src/food_hub_siting/pipeline.py
"""
End-to-end run: load -> reshape -> key normalisation -> join -> geocoordinates
-> thresholds/siting -> clustering -> reports.

Each stage takes frames and returns new frames; nothing is mutated in place.
A clustering failure is kept on the result (``cluster_error``) so the tables
computed before it are still available for export.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd

from .config import Settings
from .errors import ClusteringError
from .geo import split_geolocation
from .geo_clustering import CENTROID_COLUMNS, ClusterResult, cluster
from .joiner import join
from .keys import normalize_keys
from .loader import ATLAS_LONG_SCHEMA, PLACES_SCHEMA, load
from .quality import DataQualityReport
from .report import audit_data_flaws, engagement_estimates, state_insecurity_averages
from .reshape import coarse_table
from .schema import (
    CLUSTER_COL, COARSE_KEY_COL, COUNTY_NAME_COL, LAT_COL, LON_COL, POPULATION_COL,
    STATE_COL, TRACT_FIPS_COL,
)
from .siting import DONOR_ACCESS_COL, HIGH_NEED_COL, siting_candidates

logger = logging.getLogger(__name__)

HUB_COLUMNS = CENTROID_COLUMNS + ["high_need_share", "population_served"]

CANDIDATE_COLUMNS = [
    TRACT_FIPS_COL, COARSE_KEY_COL, STATE_COL, COUNTY_NAME_COL, POPULATION_COL,
    LAT_COL, LON_COL, DONOR_ACCESS_COL, HIGH_NEED_COL, CLUSTER_COL,
]


@dataclass
class PipelineResult:
    merged: pd.DataFrame
    state_averages: pd.DataFrame
    thresholds: pd.DataFrame
    candidates: pd.DataFrame
    centroids: pd.DataFrame
    engagement: pd.DataFrame
    quality: DataQualityReport = field(default_factory=DataQualityReport)
    cluster_result: Optional[ClusterResult] = None
    cluster_error: Optional[str] = None

    def tables(self) -> Dict[str, pd.DataFrame]:
        """Aggregate tables for export (the merged tract table is left out)."""
        return {
            "state_food_insecurity": self.state_averages,
            "thresholds": self.thresholds,
            "siting_candidates": self.candidates,
            "proposed_hubs": self.centroids,
            "engagement_estimates": self.engagement,
            "data_quality": self.quality.to_frame(),
        }


def build_merged(
    places: pd.DataFrame,
    atlas_long: pd.DataFrame,
    duplicates: str = "reject",
    quality: Optional[DataQualityReport] = None,
) -> pd.DataFrame:
    """Tract table joined to the pivoted county table, with lat/lon split out."""
    counties = coarse_table(atlas_long, quality=quality)
    merged = join(
        places, counties,
        key_derivation=lambda f, c: normalize_keys(f, c, TRACT_FIPS_COL, COARSE_KEY_COL, quality=quality),
        duplicates=duplicates,
        quality=quality,
    )
    return split_geolocation(merged, quality=quality)


def propose_hubs(candidates: pd.DataFrame, settings: Settings):
    """Cluster candidate coordinates; returns (labelled candidates, centroids, ClusterResult)."""
    result = cluster(candidates[[LAT_COL, LON_COL]], settings.k, seed=settings.seed,
                     max_iter=settings.max_iter)
    labelled = candidates.assign(**{CLUSTER_COL: result.labels})
    need_share = labelled.groupby(CLUSTER_COL)[HIGH_NEED_COL].mean()
    pop = labelled.groupby(CLUSTER_COL)[POPULATION_COL].sum(min_count=1)
    centroids = result.centroids.assign(
        high_need_share=result.centroids[CLUSTER_COL].map(need_share),
        population_served=result.centroids[CLUSTER_COL].map(pop),
    )[HUB_COLUMNS]
    return labelled, centroids, result


def run_pipeline(settings: Settings) -> PipelineResult:
    quality = DataQualityReport()
    places = load(settings.places_path, PLACES_SCHEMA, quality=quality)
    atlas_long = load(settings.atlas_path, ATLAS_LONG_SCHEMA, quality=quality)

    merged = build_merged(places, atlas_long, duplicates=settings.duplicates, quality=quality)
    audit_data_flaws(merged, quality)

    state_averages = state_insecurity_averages(merged, quality=quality)
    engagement = engagement_estimates(merged, rate=settings.engagement_rate)

    candidates, thresholds = siting_candidates(
        merged, settings.state,
        q_access=settings.access_quantile, q_need=settings.need_quantile,
        precedence=settings.precedence, need_column=settings.need_column,
        quality=quality,
    )

    cluster_result = None
    cluster_error = None
    centroids = pd.DataFrame(columns=HUB_COLUMNS)
    try:
        candidates, centroids, cluster_result = propose_hubs(candidates, settings)
    except ClusteringError as exc:
        cluster_error = str(exc)
        logger.error("Hub clustering for %s failed: %s", settings.state, exc)
        candidates = candidates.assign(**{CLUSTER_COL: pd.Series(dtype="Int64")})
        quality.record("cluster", "clustering.failed", 1, note=cluster_error)

    return PipelineResult(
        merged=merged,
        state_averages=state_averages,
        thresholds=thresholds,
        candidates=candidates[CANDIDATE_COLUMNS].reset_index(drop=True),
        centroids=centroids,
        engagement=engagement,
        quality=quality,
        cluster_result=cluster_result,
        cluster_error=cluster_error,
    )
