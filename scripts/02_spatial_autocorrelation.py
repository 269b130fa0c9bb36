#!/usr/bin/env python
"""
Spatial Autocorrelation: Global and Local Moran's I on area-level means
=======================================================================

Queen contiguity weights over London wards (row-standardized, islands removed).

Output:
- outputs/tables/morans_global.csv
- outputs/tables/lisa_clusters.csv
- outputs/figures/moran_scatter_<var>.png
- outputs/figures/lisa_clusters_<var>.png
"""

import sys
import warnings
from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

warnings.filterwarnings('ignore')

from london_airbnb import autocorrelation, config, io, viz
from london_airbnb.pipeline import load_or_prepare_areas, modelled_areas
from london_airbnb.report import interpret_morans, print_log, print_section
from london_airbnb.weights import weights_summary


def main():
    config.ensure_output_dirs()

    print_section("SPATIAL AUTOCORRELATION ANALYSIS: MORAN'S I")

    print("\n[STEP 1] Loading areas...")
    gdf_areas, log = load_or_prepare_areas()
    print_log(log)

    print("\n[STEP 2] Building spatial weights...")
    w, gdf_model, log = modelled_areas(gdf_areas)
    print_log(log)
    for key, value in weights_summary(w).items():
        print(f"  {key}: {value}")

    print("\n[STEP 3] Global Moran's I...")
    variables = [config.DEPENDENT_VAR] + config.EXPLANATORY_VARS
    moran_table, morans = autocorrelation.global_morans_i(gdf_model, variables, w)
    print(moran_table.to_string(index=False))
    io.save_csv(moran_table, config.OUTPUT_TABLES / "morans_global.csv")

    print("\n[STEP 4] Local Moran's I (LISA)...")
    y_var = config.DEPENDENT_VAR
    gdf_lisa, lisa = autocorrelation.local_morans_i(gdf_model, y_var, w)
    print(autocorrelation.lisa_counts(gdf_lisa).to_string(index=False))
    io.save_csv(gdf_lisa, config.OUTPUT_TABLES / "lisa_clusters.csv")

    print("\n[STEP 5] Figures...")
    for var in variables:
        path = viz.plot_moran_scatter(morans[var], f"Moran scatterplot: {var}",
                                      config.OUTPUT_FIGURES / f"moran_scatter_{var}.png")
        print(f"  ✓ Saved: {path.name}")
    path = viz.plot_lisa_clusters(lisa, gdf_model, f"LISA clusters: mean {y_var}",
                                  config.OUTPUT_FIGURES / f"lisa_clusters_{y_var}.png")
    print(f"  ✓ Saved: {path.name}")

    print_section("INTERPRETATION")
    print_log(interpret_morans(moran_table), verbose=True)


if __name__ == "__main__":
    main()
