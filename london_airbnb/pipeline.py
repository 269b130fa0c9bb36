"""
Pipeline module: end-to-end analysis run.

load files → clean → spatial join → aggregate → weights → Moran's I
→ OLS/LM tests → SAR → SEM → GWR → k-means on local coefficients
→ figures, tables and commentary.
"""

from pathlib import Path

import pandas as pd

from . import autocorrelation, cleaning, clustering, config, gwr, io, models, qc, report, spatial, viz
from .weights import build_weights, weights_summary


def build_areas(df_listings_raw, gdf_polygons_raw, id_col=None, variables=None, min_listings=None,
                required=None):
    """
    Clean listings and polygons, join them and aggregate to one row per polygon.

    Returns:
        (gdf_areas, gdf_joined, id_col, log); gdf_areas holds every polygon
        with a `modelled` flag.
    """
    log = []

    df_listings, step_log = cleaning.clean_listings(df_listings_raw)
    log += step_log

    gdf_listings, step_log = spatial.listings_to_geodataframe(df_listings)
    log += step_log

    gdf_polygons, id_col, step_log = spatial.clean_polygons(gdf_polygons_raw, id_col=id_col)
    log += step_log

    gdf_joined, step_log = spatial.spatial_join_listings_polygons(gdf_listings, gdf_polygons, id_col)
    log += step_log

    gdf_areas, step_log = spatial.aggregate_to_polygons(
        gdf_joined, gdf_polygons, id_col, variables=variables, min_listings=min_listings,
        required=required,
    )
    log += step_log

    return gdf_areas, gdf_joined, id_col, log


def prepare_areas(listings_path=None, polygons_path=None, id_col=None, required=None):
    """Load the listings CSV and polygon shapefile from disk, then `build_areas`."""
    listings_path = listings_path or config.INPUT_FILES['listings']
    polygons_path = polygons_path or config.INPUT_FILES['polygons']

    df_listings_raw = io.load_csv(listings_path, low_memory=False)
    gdf_polygons_raw = io.load_shapefile(polygons_path)

    gdf_areas, gdf_joined, id_col, log = build_areas(df_listings_raw, gdf_polygons_raw, id_col=id_col,
                                                       required=required)
    log.insert(0, f"✓ Loaded {len(df_listings_raw):,} listings and {len(gdf_polygons_raw)} polygons")
    return gdf_areas, gdf_joined, id_col, log


def load_or_prepare_areas(areas_path=None):
    """
    Load the enriched areas GeoParquet if a previous step saved it; otherwise
    build it from the raw inputs and save it.
    """
    areas_path = Path(areas_path or config.OUTPUT_FILES['areas_enriched'])
    if areas_path.exists():
        gdf_areas = io.load_parquet(areas_path)
        return gdf_areas, [f"✓ Loaded {areas_path.name} with {len(gdf_areas)} areas"]

    gdf_areas, _, _, log = prepare_areas()
    io.save_parquet(gdf_areas, areas_path)
    log.append(f"✓ Built and saved {areas_path.name} with {len(gdf_areas)} areas")
    return gdf_areas, log


def modelled_areas(gdf_areas, kind=None):
    """Areas flagged for modelling, with weights built over them (islands removed)."""
    gdf_model = gdf_areas[gdf_areas['modelled']].reset_index(drop=True)
    if len(gdf_model) < 3:
        raise ValueError(f"Only {len(gdf_model)} areas with enough listings to model")
    return build_weights(gdf_model, kind=kind)


def run_spatial_models(gdf_model, w, y_var, x_vars, method=None):
    """
    Fit OLS, SAR and SEM; a failing spatial estimator is reported and skipped.

    Returns:
        dict with 'ols', 'sar', 'sem' results, 'choice'/'reason' from the LM
        decision rule, 'morans_postfit', 'comparison' and 'log'
    """
    log = []
    y, X = models.prepare_design(gdf_model, y_var, x_vars)

    ols = models.fit_ols(y, X, x_vars, w, y_name=y_var)
    log.append(f"✓ OLS: R² = {ols['r2']:.4f}, AIC = {ols['aic']:.2f}")
    choice, reason = models.choose_spatial_model(ols['lm_tests'])
    log.append(f"✓ LM decision: {choice} ({reason})")

    fitted = {'ols': ols}
    for key, fit in (('sar', models.fit_spatial_lag), ('sem', models.fit_spatial_error)):
        try:
            result = fit(y, X, w, x_vars, y_name=y_var, method=method)
            log.append(f"✓ {result['name']}: {result['spatial_coeff_name']} = "
                       f"{result['spatial_coeff']:.4f}, pseudo-R² = {result['r2']:.4f} "
                       f"({result['seconds']:.2f}s)")
        except Exception as e:
            log.append(f"⚠️  {key.upper()} fit failed: {e}")
            result = None
        fitted[key] = result

    residuals = {r['name']: r['residuals'] for r in fitted.values() if r is not None}
    morans_postfit = autocorrelation.residual_morans_i(residuals, w)
    comparison = models.compare_models(list(fitted.values()), morans_postfit)

    fitted.update({
        'choice': choice,
        'reason': reason,
        'morans_postfit': morans_postfit,
        'comparison': comparison,
        'log': log,
    })
    return fitted


def save_tables(tables, out_dir):
    """Save a dict {file stem: DataFrame} as CSV files."""
    out_dir = Path(out_dir)
    paths = {}
    for stem, df in tables.items():
        if df is None:
            continue
        paths[stem] = io.save_csv(df, out_dir / f"{stem}.csv")
    return paths


def run_analysis(listings_path=None, polygons_path=None, output_dir=None, make_figures=True,
                 y_var=None, x_vars=None, id_col=None):
    """
    Run the full analysis once, top to bottom.

    Args:
        listings_path: Listings CSV (default config.INPUT_FILES['listings'])
        polygons_path: Polygon shapefile (default config.INPUT_FILES['polygons'])
        output_dir: Folder for tables/ and figures/ (default config.OUTPUTS_DIR)
        make_figures: Save PNG figures
        y_var: Dependent variable (area mean), default config.DEPENDENT_VAR
        x_vars: Explanatory variables (area means), default config.EXPLANATORY_VARS

    Returns:
        dict with every intermediate result
    """
    y_var = y_var or config.DEPENDENT_VAR
    x_vars = list(x_vars or config.EXPLANATORY_VARS)
    output_dir = Path(output_dir) if output_dir else config.OUTPUTS_DIR
    tables_dir, figures_dir = output_dir / "tables", output_dir / "figures"
    config.ensure_output_dirs(tables_dir, figures_dir)

    # 1. Data
    report.print_section("[STEP 1] LOAD, CLEAN, JOIN AND AGGREGATE")
    gdf_areas, gdf_joined, id_col, log = prepare_areas(listings_path, polygons_path, id_col=id_col,
                                                   required=[y_var] + x_vars)
    report.print_log(log)

    # 2. Weights
    report.print_section("[STEP 2] SPATIAL WEIGHTS")
    w, gdf_model, log = modelled_areas(gdf_areas)
    report.print_log(log)
    qc.print_qc_report([
        ("Geometry validity", qc.check_geometry_validity, {'gdf': gdf_model}),
        ("Listing counts", qc.check_area_listing_counts,
         {'gdf_listings_joined': gdf_joined, 'gdf_areas': gdf_areas, 'id_col': id_col}),
        ("Spatial join coverage", qc.check_spatial_join_coverage,
         {'gdf_joined': gdf_joined, 'id_col': id_col, 'min_coverage': config.MIN_SPATIAL_JOIN_COVERAGE}),
        ("Weights alignment", qc.check_weights_alignment, {'w': w, 'gdf_areas': gdf_model}),
        ("Row standardization", qc.check_row_standardized, {'w': w}),
    ])

    # 3. Moran's I
    report.print_section("[STEP 3] GLOBAL AND LOCAL MORAN'S I")
    moran_vars = [y_var] + [v for v in x_vars if v != y_var]
    moran_table, morans = autocorrelation.global_morans_i(gdf_model, moran_vars, w)
    print(moran_table.to_string(index=False))
    gdf_lisa, lisa = autocorrelation.local_morans_i(gdf_model, y_var, w)
    print(autocorrelation.lisa_counts(gdf_lisa).to_string(index=False))
    report.print_log(report.interpret_morans(moran_table), verbose=True)

    # 4. OLS, SAR, SEM
    report.print_section("[STEP 4] OLS, SPATIAL LAG AND SPATIAL ERROR MODELS")
    fitted = run_spatial_models(gdf_model, w, y_var, x_vars)
    report.print_log(fitted['log'])
    print("\nOLS coefficients (HC1):")
    print(fitted['ols']['coefficients'].to_string(index=False))
    print("\nLM diagnostics:")
    print(fitted['ols']['lm_tests'].to_string(index=False))
    for key in ('sar', 'sem'):
        if fitted[key] is not None:
            print(f"\n{fitted[key]['name']} coefficients:")
            print(fitted[key]['coefficients'].to_string(index=False))
    print("\nModel comparison:")
    print(fitted['comparison'].to_string(index=False))
    report.print_log(report.interpret_model_comparison(
        fitted['comparison'], fitted['choice'], fitted['reason']), verbose=True)

    # 5. GWR
    report.print_section("[STEP 5] GEOGRAPHICALLY WEIGHTED REGRESSION")
    gdf_gwr, gwr_info = gwr.run_gwr(gdf_model, y_var, x_vars)
    print(pd.Series(gwr_info['summary']).to_string())
    print("\nLocal coefficient distribution (standardized):")
    print(gwr_info['coefficient_stats'].to_string())
    print("\nSignificance:")
    print(gwr_info['significance'].to_string(index=False))
    report.print_log(report.interpret_gwr(
        gwr_info['summary'], gwr_info['coefficient_stats'], gwr_info['significance'],
        global_r2=fitted['ols']['r2']), verbose=True)

    # 6. K-means on local coefficients
    report.print_section("[STEP 6] K-MEANS ON LOCAL COEFFICIENTS")
    coef_cols = [f'{v}_coef' for v in x_vars]
    gdf_clustered, profiles, scan = clustering.cluster_coefficients(gdf_gwr, coef_cols)
    if scan is not None:
        print(scan.to_string(index=False))
    print(profiles.to_string(index=False))
    report.print_log(report.interpret_clusters(profiles, coef_cols), verbose=True)

    # 7. Outputs
    report.print_section("[STEP 7] SAVING RESULTS")
    local_cols = [id_col] + [c for c in gdf_clustered.columns
                             if c.endswith(('_coef', '_tval', '_pval', '_sig', '_coef_orig'))
                             or c in ('local_R2', 'gwr_fitted', 'gwr_residual', 'cluster')]
    tables = {
        'areas_summary': gdf_areas,
        'morans_global': moran_table,
        'lisa_clusters': gdf_lisa[[id_col, y_var, 'lisa_I', 'lisa_p', 'lisa_q', 'lisa_cluster']],
        'ols_coeffs': fitted['ols']['coefficients'],
        'ols_vif': fitted['ols']['vif'],
        'lm_tests': fitted['ols']['lm_tests'],
        'sar_coeffs': fitted['sar']['coefficients'] if fitted['sar'] else None,
        'sem_coeffs': fitted['sem']['coefficients'] if fitted['sem'] else None,
        'morans_postfit': fitted['morans_postfit'],
        'model_comparison': fitted['comparison'],
        'gwr_summary': pd.DataFrame(list(gwr_info['summary'].items()), columns=['metric', 'value']),
        'gwr_coefficient_stats': gwr_info['coefficient_stats'].reset_index(names='statistic'),
        'gwr_significance': gwr_info['significance'],
        'gwr_local_estimates': gdf_clustered[local_cols],
        'cluster_scan': scan,
        'cluster_profiles': profiles,
    }
    table_paths = save_tables(tables, tables_dir)
    print(f"✓ Saved {len(table_paths)} tables to {tables_dir}")

    figure_paths = []
    if make_figures:
        ols_coefs = fitted['ols']['coefficients'].set_index('variable')['estimate']
        global_coefs = gwr.standardize_coefficients(ols_coefs, gwr_info['scaler_X'],
                                                    gwr_info['scaler_y'], x_vars)
        figure_paths += [
            viz.plot_choropleth(gdf_areas, y_var, f"Mean listing {y_var} by area",
                                figures_dir / f"map_{y_var}.png"),
            viz.plot_moran_scatter(morans[y_var], f"Moran scatterplot: {y_var}",
                                   figures_dir / f"moran_scatter_{y_var}.png"),
            viz.plot_lisa_clusters(lisa, gdf_model, f"LISA clusters: {y_var}",
                                   figures_dir / f"lisa_clusters_{y_var}.png"),
            viz.plot_residual_histograms(
                {r['name']: r['residuals'] for r in (fitted['ols'], fitted['sar'], fitted['sem'])
                 if r is not None}, figures_dir / "residuals_hist_compare.png"),
            viz.plot_coefficient_histograms(gdf_gwr, x_vars, figures_dir / "gwr_coef_histograms.png",
                                            global_coefs=global_coefs),
            viz.plot_clusters(gdf_clustered, figures_dir / "gwr_clusters_map.png"),
            viz.plot_cluster_profiles(profiles, coef_cols, figures_dir / "gwr_cluster_profiles.png"),
        ]
        if not fitted['morans_postfit'].empty:
            figure_paths.append(viz.plot_morans_postfit(
                fitted['morans_postfit'], figures_dir / "morans_postfit_compare.png"))
        figure_paths += viz.plot_gwr_coefficients(gdf_gwr, ['intercept'] + x_vars, figures_dir)
        if scan is not None:
            figure_paths.append(viz.plot_k_scan(scan, figures_dir / "kmeans_k_scan.png"))
        print(f"✓ Saved {len(figure_paths)} figures to {figures_dir}")

    return {
        'id_col': id_col,
        'areas': gdf_areas,
        'listings_joined': gdf_joined,
        'areas_model': gdf_model,
        'weights': w,
        'weights_summary': weights_summary(w),
        'morans': moran_table,
        'lisa': gdf_lisa,
        'models': fitted,
        'gwr': gdf_gwr,
        'gwr_info': gwr_info,
        'clusters': gdf_clustered,
        'cluster_profiles': profiles,
        'cluster_scan': scan,
        'tables': table_paths,
        'figures': figure_paths,
    }
