"""
Spatial autocorrelation: global and local Moran's I.
"""

import numpy as np
import pandas as pd
from esda import Moran, Moran_Local

from . import config

QUADRANT_LABELS = {1: 'HH', 2: 'LH', 3: 'LL', 4: 'HL'}
CLUSTER_LABELS = {
    'HH': 'High-High (hot spot)',
    'LH': 'Low-High (outlier)',
    'LL': 'Low-Low (cold spot)',
    'HL': 'High-Low (outlier)',
}


def significance_stars(p_value):
    if p_value < 0.001:
        return "***"
    if p_value < 0.01:
        return "**"
    if p_value < 0.05:
        return "*"
    return "ns"


def global_morans_i(gdf, variables, w, permutations=None):
    """
    Global Moran's I for each variable.

    Args:
        gdf: Areas GeoDataFrame aligned with w
        variables: Column names to test
        w: Row-standardized libpysal weights

    Returns:
        DataFrame (one row per variable) and dict of esda.Moran objects
    """
    permutations = config.MORAN_PERMUTATIONS if permutations is None else permutations
    if len(gdf) != w.n:
        raise ValueError(f"Length mismatch: {len(gdf)} areas vs W.n={w.n}")

    rows = []
    morans = {}
    for var in variables:
        y = gdf[var].astype(float).values
        moran = Moran(y, w, permutations=permutations)
        morans[var] = moran

        pattern = "Positive Clustering" if moran.I > moran.EI else "Spatial Dispersion"
        sig = "Significant" if moran.p_norm < config.SIGNIFICANCE_LEVEL else "Not Significant"

        rows.append({
            'variable': var,
            'morans_I': moran.I,
            'expected_I': moran.EI,
            'z_norm': moran.z_norm,
            'p_norm': moran.p_norm,
            'z_sim': moran.z_sim if permutations else np.nan,
            'p_sim': moran.p_sim if permutations else np.nan,
            'significance': significance_stars(moran.p_norm),
            'interpretation': f"{pattern} ({sig})",
        })

    return pd.DataFrame(rows), morans


def local_morans_i(gdf, variable, w, permutations=None, alpha=None):
    """
    Local Moran's I (LISA) for one variable.

    Returns a copy of `gdf` with columns `lisa_I`, `lisa_p`, `lisa_q`
    (HH/LH/LL/HL), `lisa_sig` and `lisa_cluster`, and the esda.Moran_Local object.
    """
    permutations = config.MORAN_PERMUTATIONS if permutations is None else permutations
    alpha = alpha or config.SIGNIFICANCE_LEVEL

    y = gdf[variable].astype(float).values
    lisa = Moran_Local(y, w, permutations=permutations, seed=config.RANDOM_SEED)

    out = gdf.copy()
    out['lisa_I'] = lisa.Is
    out['lisa_p'] = lisa.p_sim
    out['lisa_q'] = pd.Series(lisa.q, index=out.index).map(QUADRANT_LABELS)
    out['lisa_sig'] = lisa.p_sim < alpha
    out['lisa_cluster'] = np.where(
        out['lisa_sig'], out['lisa_q'].map(CLUSTER_LABELS), 'Not significant'
    )

    return out, lisa


def lisa_counts(gdf_lisa):
    """Number of areas per LISA cluster label."""
    return (gdf_lisa['lisa_cluster'].value_counts()
            .rename_axis('cluster').reset_index(name='n_areas'))


def residual_morans_i(residuals_by_model, w, permutations=None):
    """
    Moran's I on model residuals (post-fit diagnostic; lower is better).

    Args:
        residuals_by_model: dict {model name: 1-D residual array aligned with w}
    """
    permutations = config.MORAN_PERMUTATIONS if permutations is None else permutations
    rows = []
    for name, residuals in residuals_by_model.items():
        if residuals is None:
            continue
        residuals = np.asarray(residuals, dtype=float).flatten()
        if len(residuals) != w.n or np.isnan(residuals).any():
            continue
        mi = Moran(residuals, w, permutations=permutations)
        rows.append({
            'model': name,
            'morans_I': mi.I,
            'z_norm': mi.z_norm,
            'p_norm': mi.p_norm,
            'p_sim': mi.p_sim if permutations else np.nan,
        })
    return pd.DataFrame(rows, columns=['model', 'morans_I', 'z_norm', 'p_norm', 'p_sim'])
