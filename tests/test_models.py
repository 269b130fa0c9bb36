import numpy as np
import pandas as pd
import pytest

from london_airbnb import models
from london_airbnb.autocorrelation import residual_morans_i

X_VARS = ['accommodates', 'entire_home']


@pytest.fixture
def design(model_areas):
    w, gdf = model_areas
    y, X = models.prepare_design(gdf, 'price', X_VARS)
    return w, y, X


def test_prepare_design_shapes(model_areas):
    w, gdf = model_areas
    y, X = models.prepare_design(gdf, 'price', X_VARS)
    assert y.shape == (w.n, 1)
    assert X.shape == (w.n, 2)


def test_prepare_design_rejects_missing_values(model_areas):
    _, gdf = model_areas
    gdf = gdf.copy()
    gdf.loc[0, 'accommodates'] = np.nan
    with pytest.raises(ValueError, match="NaN/inf"):
        models.prepare_design(gdf, 'price', X_VARS)
    with pytest.raises(ValueError, match="not found"):
        models.prepare_design(gdf, 'price', ['no_such_column'])


def test_fit_ols(design):
    w, y, X = design
    ols = models.fit_ols(y, X, X_VARS, w, y_name='price')

    assert ols['n'] == w.n
    assert list(ols['coefficients']['variable']) == ['CONSTANT'] + X_VARS
    # prices were generated with +20 per guest and +50 for entire homes
    coefs = ols['coefficients'].set_index('variable')['estimate']
    assert coefs['accommodates'] > 0
    assert coefs['entire_home'] > 0
    assert list(ols['lm_tests']['test']) == [
        'LM-lag', 'Robust LM-lag', 'LM-error', 'Robust LM-error', 'LM-SARMA']
    assert ols['lm_tests']['p_value'].between(0, 1).all()
    assert list(ols['vif']['variable']) == X_VARS
    assert len(ols['residuals']) == w.n


@pytest.mark.parametrize('method', ['ml', 'gmm'])
def test_fit_spatial_lag(design, method):
    w, y, X = design
    sar = models.fit_spatial_lag(y, X, w, X_VARS, y_name='price', method=method)

    assert sar['name'] == f"SAR_{method.upper()}"
    assert sar['spatial_coeff_name'] == 'rho'
    assert np.isfinite(sar['spatial_coeff'])
    assert sar['coefficients']['variable'].iloc[-1] == 'rho (spatial lag)'
    assert sar['coefficients']['variable'].iloc[0] == 'CONSTANT'
    assert len(sar['residuals']) == w.n
    if method == 'ml':
        assert np.isfinite(sar['logll'])
        assert np.isfinite(sar['aic'])


@pytest.mark.parametrize('method', ['ml', 'gmm'])
def test_fit_spatial_error(design, method):
    w, y, X = design
    sem = models.fit_spatial_error(y, X, w, X_VARS, y_name='price', method=method)

    assert sem['spatial_coeff_name'] == 'lambda'
    assert np.isfinite(sem['spatial_coeff'])
    assert sem['coefficients']['variable'].iloc[-1] == 'lambda (spatial error)'
    assert len(sem['residuals']) == w.n


def test_unknown_method(design):
    w, y, X = design
    with pytest.raises(ValueError):
        models.fit_spatial_lag(y, X, w, X_VARS, method='bayes')
    with pytest.raises(ValueError):
        models.fit_spatial_error(y, X, w, X_VARS, method='bayes')


def test_compare_models(design):
    w, y, X = design
    ols = models.fit_ols(y, X, X_VARS, w)
    sar = models.fit_spatial_lag(y, X, w, X_VARS)
    postfit = residual_morans_i({'OLS': ols['residuals'], sar['name']: sar['residuals']}, w,
                                permutations=0)

    comparison = models.compare_models([ols, sar, None], postfit)

    assert list(comparison['model']) == ['OLS', 'SAR_ML']
    assert comparison['morans_I_resid'].notna().all()
    assert comparison.loc[0, 'spatial_coeff_name'] == 'none'


def _lm(lag, rlag, err, rerr):
    return pd.DataFrame({
        'test': ['LM-lag', 'Robust LM-lag', 'LM-error', 'Robust LM-error', 'LM-SARMA'],
        'statistic': [10.0, 8.0, 9.0, 3.0, 12.0],
        'p_value': [lag, rlag, err, rerr, 0.001],
    })


@pytest.mark.parametrize('p_values, expected', [
    ((0.5, 0.5, 0.5, 0.5), 'OLS'),
    ((0.01, 0.2, 0.3, 0.4), 'SAR'),
    ((0.3, 0.4, 0.01, 0.2), 'SEM'),
    ((0.01, 0.01, 0.01, 0.3), 'SAR'),
    ((0.01, 0.3, 0.01, 0.01), 'SEM'),
    ((0.01, 0.01, 0.01, 0.01), 'SAR'),
])
def test_choose_spatial_model(p_values, expected):
    choice, reason = models.choose_spatial_model(_lm(*p_values), alpha=0.05)
    assert choice == expected
    assert reason
