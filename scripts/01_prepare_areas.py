#!/usr/bin/env python
"""
01_prepare_areas.py
- Load Inside Airbnb London listings (CSV) and ward polygons (Shapefile)
- Clean listings, point-in-polygon join, aggregate to one row per ward
- QC checks
- Save data/processed/areas_enriched.parquet (+ GeoJSON for web maps)
"""

import sys
import warnings
from pathlib import Path

# ensure repo root on path for package imports when running as script
REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

warnings.filterwarnings('ignore')

from london_airbnb import config, io, qc
from london_airbnb.pipeline import prepare_areas
from london_airbnb.report import print_log, print_section


def main():
    config.print_config()
    config.ensure_output_dirs()

    print_section("PREPARE AREAS: LISTINGS → POLYGONS")
    gdf_areas, gdf_joined, id_col, log = prepare_areas()
    print_log(log)

    qc.print_qc_report([
        ("Unique listing ids", qc.check_unique_ids, {'df': gdf_joined}),
        ("Unique area ids", qc.check_unique_ids, {'df': gdf_areas, 'id_col': id_col}),
        ("Geometry validity", qc.check_geometry_validity, {'gdf': gdf_areas}),
        ("Polygon CRS", qc.check_crs, {'gdf': gdf_areas, 'expected_crs': config.CRS_METRIC}),
        ("Spatial join coverage", qc.check_spatial_join_coverage,
         {'gdf_joined': gdf_joined, 'id_col': id_col, 'min_coverage': config.MIN_SPATIAL_JOIN_COVERAGE}),
        ("Listing counts", qc.check_area_listing_counts,
         {'gdf_listings_joined': gdf_joined, 'gdf_areas': gdf_areas, 'id_col': id_col}),
    ])

    parquet_path = io.save_parquet(gdf_areas, config.OUTPUT_FILES['areas_enriched'])
    geojson_path = io.save_geojson(gdf_areas, config.OUTPUT_FILES['areas_enriched_geojson'])
    print(f"✓ Saved: {parquet_path}")
    print(f"✓ Saved: {geojson_path}")


if __name__ == "__main__":
    main()
