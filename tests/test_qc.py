import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Polygon, box

from london_airbnb import config, qc


def test_check_unique_ids():
    assert qc.check_unique_ids(pd.DataFrame({'listing_id': [1, 2, 3]})).startswith("✓")
    with pytest.raises(AssertionError):
        qc.check_unique_ids(pd.DataFrame({'listing_id': [1, 1, 2]}))


def test_check_geometry_validity():
    bowtie = Polygon([(0, 0), (2, 2), (2, 0), (0, 2)])
    assert qc.check_geometry_validity(gpd.GeoDataFrame(geometry=[box(0, 0, 1, 1)])).startswith("✓")
    with pytest.raises(AssertionError):
        qc.check_geometry_validity(gpd.GeoDataFrame(geometry=[bowtie]))


def test_check_crs(grid_polygons):
    assert qc.check_crs(grid_polygons, config.CRS_METRIC).startswith("✓")
    with pytest.raises(AssertionError):
        qc.check_crs(grid_polygons, config.CRS_WEB)


def test_join_and_count_checks(areas):
    gdf_areas, gdf_joined, id_col = areas
    assert qc.check_spatial_join_coverage(gdf_joined, id_col).startswith("✓")
    assert qc.check_area_listing_counts(gdf_joined, gdf_areas, id_col).startswith("✓")

    partial = gdf_joined.copy()
    partial.loc[partial.index[:len(partial) // 2], id_col] = None
    with pytest.raises(AssertionError):
        qc.check_spatial_join_coverage(partial, id_col, min_coverage=0.95)
    with pytest.raises(AssertionError):
        qc.check_area_listing_counts(partial, gdf_areas, id_col)


def test_weights_checks(model_areas):
    w, gdf_model = model_areas
    assert qc.check_weights_alignment(w, gdf_model).startswith("✓")
    assert qc.check_row_standardized(w).startswith("✓")
    with pytest.raises(AssertionError):
        qc.check_weights_alignment(w, gdf_model.iloc[:-1])


def test_print_qc_report_counts_failures(capsys):
    df = pd.DataFrame({'listing_id': [1, 1]})
    failed = qc.print_qc_report([
        ("Unique IDs", qc.check_unique_ids, {'df': df}),
        ("Unique IDs (ok)", qc.check_unique_ids, {'df': df.drop_duplicates()}),
    ])
    out = capsys.readouterr().out
    assert failed == 1
    assert "QUALITY CONTROL REPORT" in out
    assert "❌ Unique IDs" in out
