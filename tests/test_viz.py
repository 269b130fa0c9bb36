import numpy as np
import pandas as pd
import pytest

from london_airbnb import viz
from london_airbnb.autocorrelation import global_morans_i, local_morans_i


def test_map_and_moran_plots(model_areas, tmp_path):
    w, gdf = model_areas
    _, morans = global_morans_i(gdf, ['price'], w, permutations=99)
    _, lisa = local_morans_i(gdf, 'price', w, permutations=99)

    paths = [
        viz.plot_choropleth(gdf, 'price', "Mean price", tmp_path / "map.png"),
        viz.plot_moran_scatter(morans['price'], "Moran", tmp_path / "moran.png"),
        viz.plot_lisa_clusters(lisa, gdf, "LISA", tmp_path / "lisa.png"),
    ]
    assert all(p.exists() for p in paths)


def test_model_diagnostic_plots(tmp_path):
    rng = np.random.default_rng(0)
    postfit = pd.DataFrame({'model': ['OLS', 'SAR_ML'], 'morans_I': [0.3, 0.01],
                            'p_norm': [0.0001, 0.6]})
    assert viz.plot_morans_postfit(postfit, tmp_path / "postfit.png").exists()

    path = viz.plot_residual_histograms({'OLS': rng.normal(size=50), 'SEM_ML': None},
                                        tmp_path / "resid.png")
    assert path.exists()
    with pytest.raises(ValueError):
        viz.plot_residual_histograms({'SAR_ML': None}, tmp_path / "none.png")


def test_coefficient_and_cluster_plots(grid_polygons, tmp_path):
    rng = np.random.default_rng(1)
    gdf = grid_polygons.copy()
    gdf['intercept_coef'] = rng.normal(size=len(gdf))
    gdf['intercept_sig'] = gdf['intercept_coef'].abs() > 0.5
    gdf['price_coef'] = rng.normal(size=len(gdf))
    gdf['cluster'] = gdf['col'] // 5
    profiles = pd.DataFrame({'cluster': [0, 1], 'n_areas': [50, 50],
                             'intercept_coef': [0.1, -0.1], 'price_coef': [0.5, 0.2]})
    scan = pd.DataFrame({'k': [2, 3, 4], 'inertia': [10.0, 6.0, 5.0],
                         'silhouette': [0.4, 0.5, 0.3]})

    maps = viz.plot_gwr_coefficients(gdf, ['intercept', 'price'], tmp_path)
    assert [p.name for p in maps] == ['gwr_coef_intercept.png', 'gwr_coef_price.png']
    assert all(p.exists() for p in maps)

    others = [
        viz.plot_coefficient_histograms(gdf, ['intercept', 'price'], tmp_path / "hist.png",
                                        global_coefs={'price': 0.0}),
        viz.plot_k_scan(scan, tmp_path / "scan.png"),
        viz.plot_clusters(gdf, tmp_path / "clusters.png"),
        viz.plot_cluster_profiles(profiles, ['intercept_coef', 'price_coef'], tmp_path / "profiles.png"),
    ]
    assert all(p.exists() for p in others)
