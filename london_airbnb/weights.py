"""
Weights module: spatial weights over administrative polygons.
"""

import numpy as np
from libpysal.weights import Queen, Rook, KNN

from . import config


def _make_weights(gdf, kind, k):
    if kind == 'queen':
        return Queen.from_dataframe(gdf, use_index=False, silence_warnings=True)
    if kind == 'rook':
        return Rook.from_dataframe(gdf, use_index=False, silence_warnings=True)
    if kind == 'knn':
        # kNN on polygon centroids in metric CRS
        centroids = gdf.to_crs(config.CRS_METRIC).copy()
        centroids.geometry = centroids.geometry.centroid
        return KNN.from_dataframe(centroids, k=k)
    raise ValueError(f"Unknown weights kind '{kind}' (use 'queen', 'rook' or 'knn')")


def build_weights(gdf_areas, kind=None, k=None):
    """
    Build row-standardized spatial weights over polygons.

    Islands (polygons without neighbours) are removed and the weights rebuilt,
    so every observation has a non-empty neighbour set.

    Args:
        gdf_areas: Polygon GeoDataFrame (modelled areas only)
        kind: 'queen', 'rook' or 'knn' (default config.WEIGHTS_KIND)
        k: Number of neighbours for 'knn' (default config.KNN_K)

    Returns:
        (w, gdf_kept, log) where gdf_kept is aligned with w (positional ids)
    """
    log = []
    kind = kind or config.WEIGHTS_KIND
    k = k or config.KNN_K

    gdf = gdf_areas.reset_index(drop=True)
    if kind == 'knn' and len(gdf) <= k:
        raise ValueError(f"kNN weights need more than k={k} areas (got {len(gdf)})")

    w = _make_weights(gdf, kind, k)

    if w.islands:
        log.append(f"⚠️  {len(w.islands)} isolated areas detected; removing and rebuilding weights")
        gdf = gdf.drop(index=w.islands).reset_index(drop=True)
        if len(gdf) < 2:
            raise ValueError("Fewer than 2 areas left after removing islands")
        w = _make_weights(gdf, kind, k)

    w.transform = 'r'

    log.append(f"✓ {kind.capitalize()} weights: {w.n} areas, "
               f"{w.mean_neighbors:.2f} mean neighbours, {len(w.islands)} islands")
    if w.n_components > 1:
        log.append(f"⚠️  Weights graph has {w.n_components} disconnected components")

    return w, gdf, log


def weights_summary(w):
    """Summary statistics of a weights object."""
    cardinalities = np.array(list(w.cardinalities.values()))
    return {
        'n': w.n,
        'transform': w.transform,
        'mean_neighbors': float(cardinalities.mean()),
        'min_neighbors': int(cardinalities.min()),
        'max_neighbors': int(cardinalities.max()),
        'islands': len(w.islands),
        'components': w.n_components,
        'pct_nonzero': float(w.pct_nonzero),
    }
