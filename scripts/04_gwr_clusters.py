#!/usr/bin/env python
"""
Geographically Weighted Regression and k-means submarkets
=========================================================

- Bandwidth selection (golden section, AICc by default)
- Local coefficients, t-values, corrected significance, local R²
- K-means on standardized local coefficients (k by silhouette)

Output:
- outputs/tables/gwr_*.csv, cluster_scan.csv, cluster_profiles.csv
- outputs/figures/gwr_coef_<var>.png, gwr_clusters_map.png, ...
- data/processed/areas_gwr_clusters.geojson
"""

import sys
import warnings
from pathlib import Path

import pandas as pd

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

warnings.filterwarnings('ignore')

from london_airbnb import clustering, config, gwr, io, viz
from london_airbnb.pipeline import load_or_prepare_areas, modelled_areas, save_tables
from london_airbnb.report import interpret_clusters, interpret_gwr, print_log, print_section


def main():
    config.ensure_output_dirs()

    print_section("GEOGRAPHICALLY WEIGHTED REGRESSION")

    gdf_areas, log = load_or_prepare_areas()
    print_log(log)
    # contiguity weights only used here to drop islands, as in the global models
    _, gdf_model, log = modelled_areas(gdf_areas)
    print_log(log)

    y_var, x_vars = config.DEPENDENT_VAR, config.EXPLANATORY_VARS
    print(f"\n  Kernel: {config.GWR_KERNEL} ({'fixed' if config.GWR_FIXED else 'adaptive'}), "
          f"criterion: {config.GWR_CRITERION}")

    gdf_gwr, info = gwr.run_gwr(gdf_model, y_var, x_vars)
    print(pd.Series(info['summary']).to_string())
    print("\nLocal coefficient distribution (standardized):")
    print(info['coefficient_stats'].to_string())
    print("\nSignificance:")
    print(info['significance'].to_string(index=False))

    print_section("K-MEANS ON LOCAL COEFFICIENTS")
    coef_cols = [f'{v}_coef' for v in x_vars]
    gdf_clustered, profiles, scan = clustering.cluster_coefficients(gdf_gwr, coef_cols)
    print(scan.to_string(index=False))
    print(f"\n  → k = {profiles['cluster'].nunique()} (best silhouette)")
    print(profiles.to_string(index=False))

    print_section("SAVING RESULTS")
    save_tables({
        'gwr_summary': pd.DataFrame(list(info['summary'].items()), columns=['metric', 'value']),
        'gwr_coefficient_stats': info['coefficient_stats'].reset_index(names='statistic'),
        'gwr_significance': info['significance'],
        'cluster_scan': scan,
        'cluster_profiles': profiles,
    }, config.OUTPUT_TABLES)
    geojson_path = io.save_geojson(gdf_clustered, config.OUTPUT_FILES['areas_gwr_geojson'])
    print(f"✓ Saved: {geojson_path}")

    viz.plot_gwr_coefficients(gdf_gwr, ['intercept'] + x_vars, config.OUTPUT_FIGURES)
    viz.plot_coefficient_histograms(gdf_gwr, x_vars, config.OUTPUT_FIGURES / "gwr_coef_histograms.png")
    viz.plot_k_scan(scan, config.OUTPUT_FIGURES / "kmeans_k_scan.png")
    viz.plot_clusters(gdf_clustered, config.OUTPUT_FIGURES / "gwr_clusters_map.png")
    viz.plot_cluster_profiles(profiles, coef_cols, config.OUTPUT_FIGURES / "gwr_cluster_profiles.png")
    print(f"✓ Figures saved to {config.OUTPUT_FIGURES}")

    print_section("INTERPRETATION")
    print_log(interpret_gwr(info['summary'], info['coefficient_stats'], info['significance']), verbose=True)
    print_log(interpret_clusters(profiles, coef_cols), verbose=True)


if __name__ == "__main__":
    main()
