import numpy as np
import pytest

from london_airbnb import gwr
from tests.conftest import make_grid

X_VARS = ['accommodates', 'entire_home']


def test_standardize():
    rng = np.random.default_rng(3)
    X = rng.normal(5, 2, size=(50, 2))
    y = rng.normal(100, 10, size=50)

    X_std, y_std, scaler_X, scaler_y = gwr.standardize(X, y)

    assert y_std.shape == (50, 1)
    assert np.allclose(X_std.mean(axis=0), 0)
    assert np.allclose(X_std.std(axis=0), 1)
    assert np.allclose(scaler_y.inverse_transform(y_std).flatten(), y)


def test_back_transform_recovers_linear_model():
    # y = 3 + 2*x1 - 0.5*x2 exactly, so standardized OLS coefficients map back
    rng = np.random.default_rng(4)
    X = rng.normal([10, 50], [3, 8], size=(200, 2))
    y = 3 + 2 * X[:, 0] - 0.5 * X[:, 1]
    X_std, y_std, scaler_X, scaler_y = gwr.standardize(X, y)

    design = np.column_stack([np.ones(len(X_std)), X_std])
    beta_std = np.linalg.lstsq(design, y_std.flatten(), rcond=None)[0]
    params = np.tile(beta_std, (3, 1))

    out = gwr.back_transform(params, scaler_X, scaler_y, ['x1', 'x2'])

    assert list(out.columns) == ['intercept_coef_orig', 'x1_coef_orig', 'x2_coef_orig']
    assert np.allclose(out['intercept_coef_orig'], 3)
    assert np.allclose(out['x1_coef_orig'], 2)
    assert np.allclose(out['x2_coef_orig'], -0.5)


def test_select_bandwidth_rejects_unknown_criterion():
    coords = np.column_stack([np.arange(10.0), np.zeros(10)])
    with pytest.raises(ValueError):
        gwr.select_bandwidth(coords, np.zeros((10, 1)), np.zeros((10, 1)), criterion='R2')


def test_run_gwr(model_areas):
    _, gdf = model_areas
    gdf_gwr, info = gwr.run_gwr(gdf, 'price', X_VARS)

    assert len(gdf_gwr) == len(gdf)
    assert gdf_gwr.crs == gdf.crs
    for name in ['intercept'] + X_VARS:
        for suffix in ('_coef', '_tval', '_pval', '_sig', '_coef_orig'):
            assert f'{name}{suffix}' in gdf_gwr.columns
    assert gdf_gwr['local_R2'].between(0, 1).all()
    assert gdf_gwr[[f'{v}_pval' for v in X_VARS]].stack().between(0, 1).all()
    assert np.allclose(gdf_gwr['gwr_fitted'] + gdf_gwr['gwr_residual'], gdf['price'])

    summary = info['summary']
    assert summary['n'] == len(gdf)
    assert 0 < summary['R2'] <= 1
    assert summary['effective_params_trS'] > len(X_VARS)
    assert summary['RMSE'] >= summary['MAE'] > 0

    stats = info['coefficient_stats']
    assert list(stats.index) == ['Mean', 'Std', 'Min', 'Q1', 'Median', 'Q3', 'Max']
    assert list(stats.columns) == ['intercept'] + X_VARS

    sig = info['significance']
    assert list(sig['variable']) == X_VARS
    assert (sig['significant_positive'] + sig['significant_negative']
            == sig['significant_areas']).all()


def test_small_sample_uses_widened_adaptive_search():
    # 30 wards is below the default adaptive minimum of 40 + 2k neighbours
    gdf = make_grid(n_rows=6, n_cols=5).reset_index(drop=True)
    rng = np.random.default_rng(5)
    gdf['x1'] = rng.normal(size=len(gdf))
    gdf['x2'] = rng.normal(size=len(gdf))
    gdf['price'] = 100 + (8 + 2 * gdf['col']) * gdf['x1'] - 5 * gdf['x2'] + rng.normal(0, 1, len(gdf))

    gdf_gwr, info = gwr.run_gwr(gdf, 'price', ['x1', 'x2'], kernel='bisquare', fixed=False)

    k, n = 2, len(gdf)
    assert k + 2 <= info['bandwidth'] <= n
    assert np.isfinite(info['summary']['AICc'])
    assert len(gdf_gwr) == n


def test_standardize_coefficients_matches_standardized_ols():
    rng = np.random.default_rng(6)
    X = rng.normal([3, 20], [1, 5], size=(150, 2))
    y = 10 + 4 * X[:, 0] + 0.5 * X[:, 1] + rng.normal(0, 1, 150)
    X_std, y_std, scaler_X, scaler_y = gwr.standardize(X, y)

    beta = np.linalg.lstsq(np.column_stack([np.ones(150), X]), y, rcond=None)[0]
    beta_std = np.linalg.lstsq(np.column_stack([np.ones(150), X_std]), y_std.flatten(), rcond=None)[0]

    out = gwr.standardize_coefficients({'x1': beta[1], 'x2': beta[2]}, scaler_X, scaler_y, ['x1', 'x2'])

    assert out['x1'] == pytest.approx(beta_std[1])
    assert out['x2'] == pytest.approx(beta_std[2])
