# src/food_hub_siting/geo_clustering.py
import logging
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans

from .config import KMEANS_MAX_ITER, KMEANS_N_INIT, KMEANS_SEED_DEFAULT
from .errors import ClusteringError
from .schema import CLUSTER_COL, LAT_COL, LON_COL

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

CENTROID_COLUMNS = [CLUSTER_COL, LAT_COL, LON_COL, "n_points", "mean_km_to_hub"]


@dataclass
class ClusterResult:
    labels: np.ndarray          # one label in [0, k) per input point, input order
    centroids: pd.DataFrame     # CENTROID_COLUMNS, one row per cluster
    k: int
    seed: int
    n_iter: int
    inertia: float


def haversine_km(lat1, lon1, lat2, lon2):
    """Vectorized haversine distance in kilometers."""
    lat1, lon1, lat2, lon2 = map(np.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat/2.0)**2 + np.cos(lat1)*np.cos(lat2)*np.sin(dlon/2.0)**2
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(a))


def build_geo_matrix(points: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
    """Return 2-col float array [lat, lon] in degrees; non-finite values are an error."""
    if isinstance(points, pd.DataFrame):
        if not {LAT_COL, LON_COL}.issubset(points.columns):
            missing = {LAT_COL, LON_COL} - set(points.columns)
            raise ClusteringError(f"Missing required geo columns: {missing}")
        X = points[[LAT_COL, LON_COL]].to_numpy(dtype=float)
    else:
        X = np.asarray(points, dtype=float)

    if X.ndim != 2 or X.shape[1] != 2:
        raise ClusteringError("Expected points with shape (n_samples, 2) = [lat, lon].")
    if not np.all(np.isfinite(X)):
        bad = int((~np.isfinite(X)).any(axis=1).sum())
        raise ClusteringError(f"{bad} point(s) have non-finite coordinates.")
    return X


def _nearest(X: np.ndarray, centers: np.ndarray) -> np.ndarray:
    # argmin returns the first minimum, so ties go to the lowest cluster index
    d2 = ((X[:, None, :] - centers[None, :, :]) ** 2).sum(axis=2)
    return np.argmin(d2, axis=1)


def _means(X: np.ndarray, labels: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
    counts = np.bincount(labels, minlength=k)
    sums = np.zeros((k, X.shape[1]))
    np.add.at(sums, labels, X)
    with np.errstate(invalid="ignore", divide="ignore"):
        return sums / counts[:, None], counts


def _settle(X: np.ndarray, labels: np.ndarray, k: int, max_iter: int) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    Lloyd steps from the KMeans labels until assignment is stable, so centroids are
    exactly the member means and every point sits with its nearest centroid.
    """
    centers, counts = _means(X, labels, k)
    n_iter = 0
    while n_iter < max_iter:
        new_labels = _nearest(X, centers)
        if np.array_equal(new_labels, labels):
            break
        new_centers, new_counts = _means(X, new_labels, k)
        if np.any(new_counts == 0):
            logger.warning("Reassignment would empty a cluster; keeping previous assignment")
            break
        labels, centers, counts = new_labels, new_centers, new_counts
        n_iter += 1
    return labels, centers, n_iter


def cluster(
    points: Union[pd.DataFrame, np.ndarray],
    k: int,
    seed: int = KMEANS_SEED_DEFAULT,
    max_iter: int = KMEANS_MAX_ITER,
    n_init: int = KMEANS_N_INIT,
) -> ClusterResult:
    """
    Partition (lat, lon) points into exactly k non-empty groups with Lloyd's k-means.

    Deterministic for a given seed (k-means++ seeding via random_state). Fails
    with ClusteringError for k <= 0, n < k, non-finite input, or fewer than k
    distinct points.
    """
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k <= 0:
        raise ClusteringError(f"k must be a positive integer, got {k!r}")
    X = build_geo_matrix(points)
    n = X.shape[0]
    if n < k:
        raise ClusteringError(f"Need at least k={k} points to cluster, got {n}.")
    n_distinct = len(np.unique(X, axis=0))
    if n_distinct < k:
        raise ClusteringError(f"Only {n_distinct} distinct point(s) for k={k} clusters.")

    model = KMeans(
        n_clusters=k, init="k-means++", n_init=n_init, max_iter=max_iter,
        tol=0.0, algorithm="lloyd", random_state=seed,
    )
    labels = model.fit_predict(X).astype(int)
    labels, centers, extra = _settle(X, labels, k, max_iter)
    n_iter = int(model.n_iter_) + extra
    inertia = float(((X - centers[labels]) ** 2).sum())

    centroids = compute_geo_centroids(pd.DataFrame(X, columns=[LAT_COL, LON_COL]), labels)
    logger.info("KMeans k=%d over %d points converged in %d iterations (inertia %.4f)",
                k, n, n_iter, inertia)
    return ClusterResult(labels=labels, centroids=centroids, k=k, seed=seed,
                         n_iter=n_iter, inertia=inertia)


def compute_geo_centroids(df: pd.DataFrame, geo_labels: np.ndarray) -> pd.DataFrame:
    """Mean lat/lon per cluster (the proposed hub), member count and mean member distance in km."""
    tmp = df[[LAT_COL, LON_COL]].assign(_label=np.asarray(geo_labels))
    out = (
        tmp.groupby("_label", as_index=False)
        .agg(**{LAT_COL: (LAT_COL, "mean"), LON_COL: (LON_COL, "mean"), "n_points": (LAT_COL, "size")})
        .rename(columns={"_label": CLUSTER_COL})
    )
    hub = out.set_index(CLUSTER_COL).loc[tmp["_label"]]
    dist = haversine_km(tmp[LAT_COL].to_numpy(), tmp[LON_COL].to_numpy(),
                        hub[LAT_COL].to_numpy(), hub[LON_COL].to_numpy())
    mean_km = pd.Series(dist, index=tmp.index).groupby(tmp["_label"]).mean()
    out["mean_km_to_hub"] = out[CLUSTER_COL].map(mean_km)
    return out[CENTROID_COLUMNS]
