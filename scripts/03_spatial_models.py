#!/usr/bin/env python
"""
Spatial Econometric Models: OLS vs SAR vs SEM on area-level prices
==================================================================

1. OLS (HC1) with LM diagnostics (LM-lag, LM-error, robust variants, SARMA)
2. SAR - spatial lag of y
3. SEM - spatially autocorrelated errors

Output:
- outputs/tables/ols_coeffs.csv, ols_vif.csv, lm_tests.csv
- outputs/tables/sar_coeffs.csv, sem_coeffs.csv
- outputs/tables/morans_postfit.csv, model_comparison.csv
- outputs/figures/morans_postfit_compare.png, residuals_hist_compare.png
"""

import sys
import warnings
from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

warnings.filterwarnings('ignore')

from london_airbnb import config, viz
from london_airbnb.pipeline import load_or_prepare_areas, modelled_areas, run_spatial_models, save_tables
from london_airbnb.report import interpret_model_comparison, print_log, print_section


def main():
    config.ensure_output_dirs()

    print_section("SPATIAL ECONOMETRIC MODELS: OLS vs SAR vs SEM")

    gdf_areas, log = load_or_prepare_areas()
    print_log(log)
    w, gdf_model, log = modelled_areas(gdf_areas)
    print_log(log)

    y_var, x_vars = config.DEPENDENT_VAR, config.EXPLANATORY_VARS
    print(f"\n  y = {y_var}, X = {x_vars}, N = {len(gdf_model)}")

    print_section("FITTING MODELS")
    fitted = run_spatial_models(gdf_model, w, y_var, x_vars)
    print_log(fitted['log'])

    print("\nVIF:")
    print(fitted['ols']['vif'].to_string(index=False))
    print("\nLM diagnostics:")
    print(fitted['ols']['lm_tests'].to_string(index=False))
    for key in ('ols', 'sar', 'sem'):
        if fitted[key] is not None:
            print(f"\n{fitted[key]['name']} coefficients:")
            print(fitted[key]['coefficients'].to_string(index=False))

    print_section("SAVING RESULTS")
    paths = save_tables({
        'ols_coeffs': fitted['ols']['coefficients'],
        'ols_vif': fitted['ols']['vif'],
        'lm_tests': fitted['ols']['lm_tests'],
        'sar_coeffs': fitted['sar']['coefficients'] if fitted['sar'] else None,
        'sem_coeffs': fitted['sem']['coefficients'] if fitted['sem'] else None,
        'morans_postfit': fitted['morans_postfit'],
        'model_comparison': fitted['comparison'],
    }, config.OUTPUT_TABLES)
    for path in paths.values():
        print(f"✓ Saved: {path}")

    if not fitted['morans_postfit'].empty:
        viz.plot_morans_postfit(fitted['morans_postfit'],
                                config.OUTPUT_FIGURES / "morans_postfit_compare.png")
    viz.plot_residual_histograms(
        {r['name']: r['residuals'] for r in (fitted['ols'], fitted['sar'], fitted['sem']) if r is not None},
        config.OUTPUT_FIGURES / "residuals_hist_compare.png")
    print(f"✓ Figures saved to {config.OUTPUT_FIGURES}")

    print_section("MODEL COMPARISON")
    print(fitted['comparison'].to_string(index=False))
    print()
    print_log(interpret_model_comparison(fitted['comparison'], fitted['choice'], fitted['reason']),
              verbose=True)


if __name__ == "__main__":
    main()
