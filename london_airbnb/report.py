"""
Report module: console output helpers and interpretive commentary.
"""

import numpy as np

from . import config


def print_section(title):
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def print_log(log, verbose=None):
    verbose = config.VERBOSE if verbose is None else verbose
    if verbose:
        for line in log:
            print(line)


def interpret_morans(moran_table, alpha=None):
    """One line per variable: direction, strength and significance of Moran's I."""
    alpha = alpha or config.SIGNIFICANCE_LEVEL
    lines = []
    for _, row in moran_table.iterrows():
        p = row['p_norm']
        if p < alpha:
            value = abs(row['morans_I'])
            strength = "strong" if value >= 0.5 else "moderate" if value >= 0.2 else "weak"
            if row['morans_I'] > row['expected_I']:
                meaning = "positive spatial autocorrelation", "similar values cluster in neighbouring areas"
            else:
                meaning = "negative spatial autocorrelation", "neighbouring areas tend to differ"
            lines.append(f"{row['variable']}: {strength} {meaning[0]} "
                         f"(I={row['morans_I']:.3f}, p={p:.3g}) → {meaning[1]}")
        else:
            lines.append(f"{row['variable']}: no significant spatial autocorrelation "
                         f"(I={row['morans_I']:.3f}, p={p:.3g}) → values appear spatially random")
    return lines


def interpret_model_comparison(comparison, choice=None, reason=None):
    """Commentary on OLS vs SAR vs SEM: fit and residual autocorrelation."""
    lines = []
    if choice is not None:
        lines.append(f"LM diagnostics → {choice}: {reason}")

    if comparison.empty:
        return lines + ["No models were fitted."]

    ols = comparison[comparison['model'] == 'OLS']
    spatial = comparison[comparison['model'] != 'OLS']

    for _, row in spatial.iterrows():
        name = row['spatial_coeff_name']
        sig = "significant" if row['spatial_coeff_pval'] < config.SIGNIFICANCE_LEVEL else "not significant"
        lines.append(f"{row['model']}: {name} = {row['spatial_coeff']:.3f} ({sig}), "
                     f"pseudo-R² = {row['R2_or_pseudoR2']:.3f}")

    with_aic = comparison.dropna(subset=['AIC'])
    if len(with_aic) > 1:
        best = with_aic.loc[with_aic['AIC'].idxmin()]
        lines.append(f"Lowest AIC: {best['model']} (AIC = {best['AIC']:.1f})")

    if not ols.empty and ols['morans_I_resid'].notna().any():
        ols_mi = float(ols['morans_I_resid'].iloc[0])
        for _, row in spatial.dropna(subset=['morans_I_resid']).iterrows():
            verb = "reduces" if row['morans_I_resid'] < ols_mi else "does not reduce"
            lines.append(f"{row['model']} {verb} residual Moran's I "
                         f"({ols_mi:.3f} → {row['morans_I_resid']:.3f})")

    return lines


def interpret_gwr(summary, coef_stats, significance, global_r2=None):
    """Commentary on GWR fit and spatial non-stationarity of coefficients."""
    lines = [
        f"GWR bandwidth = {summary['bandwidth']:.1f}, effective parameters tr(S) = "
        f"{summary['effective_params_trS']:.1f}, R² = {summary['R2']:.3f} "
        f"(adj. {summary['adj_R2']:.3f}), AICc = {summary['AICc']:.1f}"
    ]
    if global_r2 is not None:
        lines.append(f"Local model R² {summary['R2']:.3f} vs global OLS R² {global_r2:.3f}")

    for _, row in significance.iterrows():
        var = row['variable']
        col = coef_stats[var]
        sign_change = col['Min'] < 0 < col['Max']
        lines.append(
            f"{var}: local coefficients range {col['Min']:.3f} to {col['Max']:.3f} "
            f"(IQR {col['Q1']:.3f} to {col['Q3']:.3f}); significant in "
            f"{row['pct_significant']:.0f}% of areas"
            + ("; sign changes across London" if sign_change else "")
        )
    return lines


def interpret_clusters(profiles, coef_cols):
    """Describe each cluster by its most extreme mean coefficients relative to the other clusters."""
    lines = []
    data = profiles.set_index('cluster')[list(coef_cols)]
    centred = (data - data.mean()) / data.std(ddof=0).replace(0, np.nan)
    for cluster_id, row in centred.iterrows():
        n_areas = int(profiles.loc[profiles['cluster'] == cluster_id, 'n_areas'].iloc[0])
        ranked = row.dropna().sort_values()
        if ranked.empty:
            lines.append(f"Cluster {cluster_id} ({n_areas} areas): coefficients equal across clusters")
            continue
        hi, lo = ranked.index[-1], ranked.index[0]
        lines.append(f"Cluster {cluster_id} ({n_areas} areas): highest relative {hi} "
                     f"({data.loc[cluster_id, hi]:.3f}), lowest relative {lo} "
                     f"({data.loc[cluster_id, lo]:.3f})")
    return lines
