import numpy as np
import pytest

from london_airbnb.autocorrelation import (
    global_morans_i,
    lisa_counts,
    local_morans_i,
    residual_morans_i,
    significance_stars,
)
from london_airbnb.weights import build_weights


@pytest.fixture
def grid_with_patterns(grid_polygons):
    w, gdf, _ = build_weights(grid_polygons, kind='rook')
    gdf = gdf.copy()
    gdf['gradient'] = gdf['col'].astype(float) + 0.1 * gdf['row']
    gdf['checkerboard'] = ((gdf['row'] + gdf['col']) % 2).astype(float)
    return w, gdf


def test_significance_stars():
    assert significance_stars(0.0001) == "***"
    assert significance_stars(0.005) == "**"
    assert significance_stars(0.03) == "*"
    assert significance_stars(0.2) == "ns"


def test_global_morans_i_detects_clustering_and_dispersion(grid_with_patterns):
    w, gdf = grid_with_patterns
    table, morans = global_morans_i(gdf, ['gradient', 'checkerboard'], w, permutations=99)

    gradient = table.set_index('variable').loc['gradient']
    checker = table.set_index('variable').loc['checkerboard']

    assert gradient['morans_I'] > 0.8
    assert gradient['p_norm'] < 0.001
    assert gradient['interpretation'].startswith("Positive Clustering")
    # perfect checkerboard under rook contiguity
    assert checker['morans_I'] == pytest.approx(-1.0)
    assert checker['interpretation'].startswith("Spatial Dispersion")
    assert set(morans) == {'gradient', 'checkerboard'}


def test_global_morans_i_length_mismatch(grid_with_patterns):
    w, gdf = grid_with_patterns
    with pytest.raises(ValueError):
        global_morans_i(gdf.iloc[:-1], ['gradient'], w, permutations=0)


def test_local_morans_i_labels(grid_with_patterns):
    w, gdf = grid_with_patterns
    gdf_lisa, lisa = local_morans_i(gdf, 'gradient', w, permutations=99)

    assert len(gdf_lisa) == len(gdf)
    assert set(gdf_lisa['lisa_q'].unique()) <= {'HH', 'LH', 'LL', 'HL'}
    # east side (high values next to high values) is HH
    east = gdf_lisa[gdf_lisa['col'] == gdf_lisa['col'].max()]
    assert (east['lisa_q'] == 'HH').all()
    assert (gdf_lisa.loc[~gdf_lisa['lisa_sig'], 'lisa_cluster'] == 'Not significant').all()

    counts = lisa_counts(gdf_lisa)
    assert counts['n_areas'].sum() == len(gdf)


def test_residual_morans_i_skips_missing_models(grid_with_patterns):
    w, gdf = grid_with_patterns
    rng = np.random.default_rng(1)
    table = residual_morans_i({
        'OLS': gdf['gradient'].values - gdf['gradient'].mean(),
        'NOISE': rng.normal(size=w.n),
        'FAILED': None,
    }, w, permutations=99)

    assert list(table['model']) == ['OLS', 'NOISE']
    ols_i = table.set_index('model').loc['OLS', 'morans_I']
    noise_i = table.set_index('model').loc['NOISE', 'morans_I']
    assert ols_i > noise_i
