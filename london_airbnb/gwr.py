"""
Geographically Weighted Regression (GWR) of area prices on area characteristics.

Variables are z-scored before fitting so local coefficients are comparable
across covariates; `back_transform` maps them to the original units.
"""

import numpy as np
import pandas as pd
from mgwr.gwr import GWR
from mgwr.sel_bw import Sel_BW
from scipy.stats import t as student_t
from sklearn.preprocessing import StandardScaler

from . import config
from .spatial import polygon_centroids

CRITERIA = ('AICc', 'AIC', 'BIC', 'CV')


def standardize(X, y):
    """Z-score X (n x k) and y (n x 1). Returns (X_std, y_std, scaler_X, scaler_y)."""
    scaler_X = StandardScaler()
    scaler_y = StandardScaler()
    X_std = scaler_X.fit_transform(np.asarray(X, dtype=float))
    y_std = scaler_y.fit_transform(np.asarray(y, dtype=float).reshape(-1, 1))
    return X_std, y_std, scaler_X, scaler_y


def select_bandwidth(coords, y, X, kernel=None, fixed=None, criterion=None):
    """
    Golden-section bandwidth search.

    Adaptive bandwidths are a number of nearest neighbours, fixed bandwidths
    a distance in CRS units (metres).

    Returns:
        (bandwidth, Sel_BW selector)
    """
    kernel = kernel or config.GWR_KERNEL
    fixed = config.GWR_FIXED if fixed is None else fixed
    criterion = criterion or config.GWR_CRITERION
    if criterion not in CRITERIA:
        raise ValueError(f"Unknown bandwidth criterion '{criterion}' (use one of {CRITERIA})")

    selector = Sel_BW(coords, y, X, kernel=kernel, fixed=fixed)

    search_kwargs = {'criterion': criterion}
    n, k = X.shape
    if not fixed and n < 40 + 2 * (k + 1):
        # default adaptive search window starts at 40 + 2k neighbours
        search_kwargs.update(bw_min=k + 2, bw_max=n)

    bw = selector.search(**search_kwargs)
    return bw, selector


def fit_gwr(coords, y, X, bw, kernel=None, fixed=None):
    """Fit GWR with a given bandwidth. Returns mgwr GWRResults."""
    kernel = kernel or config.GWR_KERNEL
    fixed = config.GWR_FIXED if fixed is None else fixed
    return GWR(coords, y, X, bw=bw, kernel=kernel, fixed=fixed).fit()


def local_estimates(results, x_names, alpha=None):
    """
    Per-location estimates as a DataFrame.

    Columns: `<var>_coef`, `<var>_tval`, `<var>_pval` (Student t on n - tr(S)
    degrees of freedom), `<var>_sig` (significant after the multiple-testing
    corrected critical t), and `local_R2`. The intercept is named `intercept`.
    """
    alpha = alpha or config.SIGNIFICANCE_LEVEL
    names = ['intercept'] + list(x_names)

    dof = max(1, int(round(results.n - results.tr_S)))
    pvalues = 2 * (1 - student_t.cdf(np.abs(results.tvalues), df=dof))
    filtered = results.filter_tvals(alpha=alpha)

    out = {}
    for i, name in enumerate(names):
        out[f'{name}_coef'] = results.params[:, i]
        out[f'{name}_tval'] = results.tvalues[:, i]
        out[f'{name}_pval'] = pvalues[:, i]
        out[f'{name}_sig'] = filtered[:, i] != 0
    out['local_R2'] = np.asarray(results.localR2).flatten()

    return pd.DataFrame(out)


def back_transform(params, scaler_X, scaler_y, x_names):
    """
    Local coefficients on the original scale.

    b_j = b*_j * sigma_y / sigma_xj
    b_0 = mu_y + sigma_y * b*_0 - sum_j b_j * mu_xj
    """
    sigma_y = float(scaler_y.scale_[0])
    mu_y = float(scaler_y.mean_[0])
    sigma_x = scaler_X.scale_.astype(float)
    mu_x = scaler_X.mean_.astype(float)

    b_vars = params[:, 1:] * (sigma_y / sigma_x)
    intercept = mu_y + sigma_y * params[:, 0] - np.sum(b_vars * mu_x, axis=1)

    out = pd.DataFrame(b_vars, columns=[f'{name}_coef_orig' for name in x_names])
    out.insert(0, 'intercept_coef_orig', intercept)
    return out


def standardize_coefficients(coefficients, scaler_X, scaler_y, x_names):
    """
    Global slopes on the standardized scale used by GWR: b*_j = b_j * sigma_xj / sigma_y.

    Args:
        coefficients: mapping {variable: estimate} on the original scale

    Returns:
        dict {variable: standardized estimate}
    """
    sigma_y = float(scaler_y.scale_[0])
    return {name: float(coefficients[name]) * float(sigma_x) / sigma_y
            for name, sigma_x in zip(x_names, scaler_X.scale_)}


def gwr_summary(results, y, scaler_y, bw):
    """Fit statistics; MAE/RMSE on the original scale of y."""
    y = np.asarray(y, dtype=float).flatten()
    fitted = scaler_y.inverse_transform(np.asarray(results.predy).reshape(-1, 1)).flatten()
    residuals = y - fitted

    return {
        'n': int(results.n),
        'bandwidth': float(bw),
        'effective_params_trS': float(results.tr_S),
        'dof_resid': float(results.n - results.tr_S),
        'AIC': float(results.aic),
        'AICc': float(results.aicc),
        'BIC': float(results.bic),
        'R2': float(results.R2),
        'adj_R2': float(results.adj_R2),
        'MAE': float(np.mean(np.abs(residuals))),
        'RMSE': float(np.sqrt(np.mean(residuals ** 2))),
    }


def coefficient_statistics(local, names):
    """Distribution of local coefficients (mean, std, min, quartiles, max) per variable."""
    stats = {}
    for name in names:
        col = local[f'{name}_coef']
        stats[name] = [col.mean(), col.std(), col.min(), col.quantile(0.25),
                       col.median(), col.quantile(0.75), col.max()]
    return pd.DataFrame(stats, index=['Mean', 'Std', 'Min', 'Q1', 'Median', 'Q3', 'Max'])


def significance_summary(local, names):
    """Share of areas with a significant local coefficient, and sign split."""
    rows = []
    total = len(local)
    for name in names:
        sig = local[f'{name}_sig']
        coef = local[f'{name}_coef']
        rows.append({
            'variable': name,
            'significant_areas': int(sig.sum()),
            'total_areas': total,
            'pct_significant': sig.sum() / total * 100 if total else np.nan,
            'significant_positive': int((sig & (coef > 0)).sum()),
            'significant_negative': int((sig & (coef < 0)).sum()),
        })
    return pd.DataFrame(rows)


def run_gwr(gdf_areas, y_var, x_vars, kernel=None, fixed=None, criterion=None):
    """
    Standardize, select bandwidth, fit GWR and attach local estimates.

    Args:
        gdf_areas: Modelled areas GeoDataFrame
        y_var: Dependent variable column
        x_vars: Explanatory variable columns

    Returns:
        (gdf_gwr, info) where gdf_gwr carries local estimates, back-transformed
        coefficients, fitted values and residuals, and info holds results,
        summary, coefficient statistics and significance summary.
    """
    x_vars = list(x_vars)
    gdf = gdf_areas.reset_index(drop=True)
    coords = polygon_centroids(gdf)
    y = gdf[y_var].astype(float).values.reshape(-1, 1)
    X = gdf[x_vars].astype(float).values

    X_std, y_std, scaler_X, scaler_y = standardize(X, y)
    bw, _ = select_bandwidth(coords, y_std, X_std, kernel=kernel, fixed=fixed, criterion=criterion)
    results = fit_gwr(coords, y_std, X_std, bw, kernel=kernel, fixed=fixed)

    local = local_estimates(results, x_vars)
    original = back_transform(results.params, scaler_X, scaler_y, x_vars)

    gdf_gwr = gdf.join(local).join(original)
    fitted = scaler_y.inverse_transform(np.asarray(results.predy).reshape(-1, 1)).flatten()
    gdf_gwr['gwr_fitted'] = fitted
    gdf_gwr['gwr_residual'] = y.flatten() - fitted
    gdf_gwr['gwr_std_residual'] = gdf_gwr['gwr_residual'] / np.std(gdf_gwr['gwr_residual'])

    names = ['intercept'] + x_vars
    info = {
        'results': results,
        'bandwidth': bw,
        'summary': gwr_summary(results, y, scaler_y, bw),
        'coefficient_stats': coefficient_statistics(local, names),
        'significance': significance_summary(local, x_vars),
        'scaler_X': scaler_X,
        'scaler_y': scaler_y,
    }
    return gdf_gwr, info
