"""
K-means clustering of areas on their GWR local coefficients.

Areas with similar local price responses form "submarkets"; coefficients are
standardized so no covariate dominates the distance.
"""

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.metrics import silhouette_score
from sklearn.preprocessing import StandardScaler

from . import config


def scan_k(features, k_range=None, n_init=None):
    """
    Fit k-means for each k and record inertia (elbow) and silhouette score.

    Args:
        features: Standardized feature matrix (n x p)
        k_range: Candidate numbers of clusters (default config.KMEANS_K_RANGE)

    Returns:
        DataFrame with columns k, inertia, silhouette
    """
    k_range = k_range or config.KMEANS_K_RANGE
    n_init = n_init or config.KMEANS_N_INIT
    n = len(features)

    rows = []
    for k in k_range:
        # silhouette needs 2 <= k <= n - 1
        if k < 2 or k >= n:
            continue
        kmeans = KMeans(n_clusters=k, random_state=config.RANDOM_SEED, n_init=n_init)
        labels = kmeans.fit_predict(features)
        sil = silhouette_score(features, labels) if len(np.unique(labels)) > 1 else np.nan
        rows.append({'k': k, 'inertia': kmeans.inertia_, 'silhouette': sil})

    if not rows:
        raise ValueError(f"No valid k in {list(k_range)} for {n} areas")

    return pd.DataFrame(rows)


def choose_k(scan):
    """k with the highest silhouette score (smallest k on ties)."""
    best = scan.sort_values(['silhouette', 'k'], ascending=[False, True]).iloc[0]
    return int(best['k'])


def cluster_coefficients(gdf_gwr, coef_cols, k=None, k_range=None):
    """
    Cluster areas on local coefficients.

    Args:
        gdf_gwr: Areas with GWR local coefficients
        coef_cols: Coefficient columns to cluster on
        k: Number of clusters; chosen by silhouette over k_range when None

    Returns:
        (gdf_clustered, profiles, scan) where gdf_clustered has a `cluster`
        column, profiles holds size and mean coefficient per cluster, and scan
        is the k scan table (None when k is given).
    """
    coef_cols = list(coef_cols)
    features = gdf_gwr[coef_cols].astype(float).values
    if not np.isfinite(features).all():
        raise ValueError("NaN/inf in local coefficients")

    features_std = StandardScaler().fit_transform(features)

    scan = None
    if k is None:
        scan = scan_k(features_std, k_range=k_range)
        k = choose_k(scan)

    kmeans = KMeans(n_clusters=k, random_state=config.RANDOM_SEED, n_init=config.KMEANS_N_INIT)
    labels = kmeans.fit_predict(features_std)

    gdf_clustered = gdf_gwr.copy()
    gdf_clustered['cluster'] = labels

    profiles = gdf_clustered.groupby('cluster')[coef_cols].mean()
    profiles.insert(0, 'n_areas', gdf_clustered.groupby('cluster').size())
    profiles = profiles.reset_index()

    return gdf_clustered, profiles, scan
