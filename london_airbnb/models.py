"""
Spatial econometric models: OLS baseline, LM diagnostics, spatial lag (SAR)
and spatial error (SEM) models.

y = X*beta + e                        (OLS)
y = rho*W*y + X*beta + e              (SAR, spatial lag)
y = X*beta + u,  u = lambda*W*u + e   (SEM, spatial error)
"""

import time

import numpy as np
import pandas as pd
import spreg
from spreg.diagnostics_sp import LMtests
import statsmodels.api as sm
from statsmodels.tools.tools import add_constant
from statsmodels.stats.outliers_influence import variance_inflation_factor as vif

from . import config


def prepare_design(gdf, y_var, x_vars):
    """
    Return aligned (y, X) arrays for spatial regression.

    y is (n x 1), X is (n x k) without constant. Raises on NaN/inf.
    """
    missing = [c for c in [y_var] + list(x_vars) if c not in gdf.columns]
    if missing:
        raise ValueError(f"Columns not found in areas data: {missing}")

    y = gdf[y_var].astype(float).values.reshape(-1, 1)
    X = gdf[list(x_vars)].astype(float).values

    if not np.isfinite(y).all():
        raise ValueError(f"NaN/inf in dependent variable '{y_var}'")
    if not np.isfinite(X).all():
        raise ValueError("NaN/inf in explanatory variables")
    if len(y) <= X.shape[1] + 1:
        raise ValueError(f"Not enough observations (N={len(y)}) for K={X.shape[1]} covariates")

    return y, X


def vif_table(X, names):
    """Variance inflation factors (constant excluded)."""
    X_const = add_constant(X, has_constant='add')
    return pd.DataFrame({
        'variable': list(names),
        'VIF': [vif(X_const, i + 1) for i in range(len(names))],
    })


def coefficient_table(model, spatial_name=None):
    """
    Tidy coefficient table for a spreg model (estimate, std_err, z_stat, p_value).

    The spatial parameter (rho or lambda) is the last row; GMM error models do
    not report inference on lambda, so its statistics are NaN.
    """
    names = list(model.name_x)
    betas = np.asarray(model.betas, dtype=float).flatten()
    n_par = len(betas)
    names = (names + [f"param_{i}" for i in range(len(names), n_par)])[:n_par]

    se = np.full(n_par, np.nan)
    z = np.full(n_par, np.nan)
    p = np.full(n_par, np.nan)
    std_err = np.asarray(model.std_err, dtype=float).flatten()
    se[:len(std_err)] = std_err
    z_stat = np.asarray(model.z_stat, dtype=float)
    if z_stat.ndim == 2:
        z[:len(z_stat)] = z_stat[:, 0]
        p[:len(z_stat)] = z_stat[:, 1]

    table = pd.DataFrame({
        'variable': names,
        'estimate': betas,
        'std_err': se,
        'z_stat': z,
        'p_value': p,
    })
    if spatial_name is not None:
        table.loc[table.index[-1], 'variable'] = spatial_name
    return table


def fit_ols(y, X, x_names, w, y_name=None):
    """
    Fit the OLS baseline.

    statsmodels OLS with HC1 standard errors gives the coefficient table;
    spreg OLS on the same data gives LM diagnostics for spatial dependence.

    Returns:
        dict with model objects, fit statistics, coefficients, LM tests, VIF, residuals
    """
    y_name = y_name or config.DEPENDENT_VAR
    x_names = list(x_names)

    X_const = add_constant(X, has_constant='add')
    results = sm.OLS(y.flatten(), X_const).fit(cov_type='HC1')

    coefficients = pd.DataFrame({
        'variable': ['CONSTANT'] + x_names,
        'estimate': np.asarray(results.params),
        'std_err': np.asarray(results.bse),
        'z_stat': np.asarray(results.tvalues),
        'p_value': np.asarray(results.pvalues),
    })

    ols_spreg = spreg.OLS(y, X, name_y=y_name, name_x=x_names, name_w=config.WEIGHTS_KIND)
    lm = LMtests(ols_spreg, w)
    lm_tests = pd.DataFrame([
        {'test': 'LM-lag', 'statistic': lm.lml[0], 'p_value': lm.lml[1]},
        {'test': 'Robust LM-lag', 'statistic': lm.rlml[0], 'p_value': lm.rlml[1]},
        {'test': 'LM-error', 'statistic': lm.lme[0], 'p_value': lm.lme[1]},
        {'test': 'Robust LM-error', 'statistic': lm.rlme[0], 'p_value': lm.rlme[1]},
        {'test': 'LM-SARMA', 'statistic': lm.sarma[0], 'p_value': lm.sarma[1]},
    ])

    return {
        'name': 'OLS',
        'model': results,
        'n': int(results.nobs),
        'k': len(x_names),
        'logll': results.llf,
        'aic': results.aic,
        'schwarz': results.bic,
        'r2': results.rsquared,
        'r2_adj': results.rsquared_adj,
        'spatial_coeff': np.nan,
        'spatial_coeff_name': 'none',
        'spatial_coeff_p': np.nan,
        'residuals': np.asarray(results.resid).flatten(),
        'coefficients': coefficients,
        'lm_tests': lm_tests,
        'vif': vif_table(X, x_names),
    }


def choose_spatial_model(lm_tests, alpha=None):
    """
    Anselin decision rule on LM diagnostics.

    Returns:
        ('OLS' | 'SAR' | 'SEM', reason)
    """
    alpha = alpha or config.SIGNIFICANCE_LEVEL
    p = dict(zip(lm_tests['test'], lm_tests['p_value']))

    lag_sig = p['LM-lag'] < alpha
    err_sig = p['LM-error'] < alpha
    if not lag_sig and not err_sig:
        return 'OLS', "Neither LM-lag nor LM-error is significant: OLS is adequate"
    if lag_sig and not err_sig:
        return 'SAR', "Only LM-lag is significant: spatial lag model preferred"
    if err_sig and not lag_sig:
        return 'SEM', "Only LM-error is significant: spatial error model preferred"

    rlag_sig = p['Robust LM-lag'] < alpha
    rerr_sig = p['Robust LM-error'] < alpha
    if rlag_sig and not rerr_sig:
        return 'SAR', "Both LM tests significant; only robust LM-lag is: spatial lag model preferred"
    if rerr_sig and not rlag_sig:
        return 'SEM', "Both LM tests significant; only robust LM-error is: spatial error model preferred"

    stats = dict(zip(lm_tests['test'], lm_tests['statistic']))
    choice = 'SAR' if stats['Robust LM-lag'] >= stats['Robust LM-error'] else 'SEM'
    return choice, (f"Both robust LM tests {'significant' if rlag_sig else 'not significant'}: "
                    f"{choice} chosen on the larger robust statistic")


def _fit_summary(name, model, spatial_name, spatial_value, k, residuals):
    table = coefficient_table(model, spatial_name=spatial_name)
    spatial_p = table['p_value'].iloc[-1]
    return {
        'name': name,
        'model': model,
        'n': int(model.n),
        'k': k,
        'logll': float(getattr(model, 'logll', np.nan)),
        'aic': float(getattr(model, 'aic', np.nan)),
        'schwarz': float(getattr(model, 'schwarz', np.nan)),
        'r2': float(getattr(model, 'pr2', np.nan)),
        'r2_adj': np.nan,
        'spatial_coeff': float(np.asarray(spatial_value).squeeze()),
        'spatial_coeff_name': spatial_name.split()[0],
        'spatial_coeff_p': float(spatial_p),
        'residuals': np.asarray(residuals, dtype=float).flatten(),
        'coefficients': table,
    }


def fit_spatial_lag(y, X, w, x_names, y_name=None, method=None):
    """
    Spatial lag (SAR) model.

    Args:
        method: 'ml' (maximum likelihood, gives logLik/AIC) or 'gmm'

    Returns:
        dict with rho, pseudo-R², fit statistics, coefficient table, residuals
    """
    y_name = y_name or config.DEPENDENT_VAR
    method = (method or config.SPATIAL_MODEL_METHOD).lower()
    x_names = list(x_names)

    t0 = time.perf_counter()
    if method == 'ml':
        model = spreg.ML_Lag(y, X, w=w, name_y=y_name, name_x=x_names,
                             name_w=config.WEIGHTS_KIND)
    elif method == 'gmm':
        model = spreg.GM_Lag(y, X, w=w, name_y=y_name, name_x=x_names,
                             name_w=config.WEIGHTS_KIND, robust='white')
    else:
        raise ValueError(f"Unknown estimation method '{method}' (use 'ml' or 'gmm')")

    result = _fit_summary(f"SAR_{method.upper()}", model, 'rho (spatial lag)',
                          model.rho, len(x_names), model.u)
    result['seconds'] = time.perf_counter() - t0
    return result


def fit_spatial_error(y, X, w, x_names, y_name=None, method=None):
    """
    Spatial error (SEM) model.

    Residuals are the spatially filtered errors e = u - lambda*W*u, the
    quantity expected to be free of spatial autocorrelation.
    """
    y_name = y_name or config.DEPENDENT_VAR
    method = (method or config.SPATIAL_MODEL_METHOD).lower()
    x_names = list(x_names)

    t0 = time.perf_counter()
    if method == 'ml':
        model = spreg.ML_Error(y, X, w=w, name_y=y_name, name_x=x_names,
                               name_w=config.WEIGHTS_KIND)
    elif method == 'gmm':
        model = spreg.GM_Error(y, X, w=w, name_y=y_name, name_x=x_names,
                               name_w=config.WEIGHTS_KIND)
    else:
        raise ValueError(f"Unknown estimation method '{method}' (use 'ml' or 'gmm')")

    lam = np.asarray(model.betas, dtype=float).flatten()[-1]
    residuals = getattr(model, 'e_filtered', model.u)
    result = _fit_summary(f"SEM_{method.upper()}", model, 'lambda (spatial error)',
                          lam, len(x_names), residuals)
    result['seconds'] = time.perf_counter() - t0
    return result


def compare_models(results, morans_postfit=None):
    """
    Model comparison table (N, K, logLik, AIC, Schwarz, R²/pseudo-R²,
    spatial coefficient, post-fit Moran's I).

    Args:
        results: list of model result dicts (None entries for failed fits are skipped)
        morans_postfit: DataFrame from autocorrelation.residual_morans_i
    """
    rows = []
    for r in results:
        if r is None:
            continue
        rows.append({
            'model': r['name'],
            'N': r['n'],
            'K': r['k'],
            'logLik': r['logll'],
            'AIC': r['aic'],
            'Schwarz': r['schwarz'],
            'R2_or_pseudoR2': r['r2'],
            'spatial_coeff_name': r['spatial_coeff_name'],
            'spatial_coeff': r['spatial_coeff'],
            'spatial_coeff_pval': r['spatial_coeff_p'],
        })
    comparison = pd.DataFrame(rows)

    comparison['morans_I_resid'] = np.nan
    if morans_postfit is not None and not morans_postfit.empty and not comparison.empty:
        morans_map = dict(zip(morans_postfit['model'], morans_postfit['morans_I']))
        comparison['morans_I_resid'] = comparison['model'].map(morans_map)

    return comparison
