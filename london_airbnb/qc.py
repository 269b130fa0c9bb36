"""
Quality Control (QC) module: Assertions and data quality checks.
"""

import numpy as np

def check_unique_ids(df, id_col='listing_id'):
    """Assert IDs are unique (no duplicates)."""
    assert df[id_col].duplicated().sum() == 0, f"Duplicate {id_col} values found!"
    assert df[id_col].isnull().sum() == 0, f"Null {id_col} values found!"
    return f"✓ {id_col} is unique (n={len(df)})"

def check_geometry_validity(gdf):
    """Assert all geometries are valid."""
    assert (~gdf.geometry.is_valid).sum() == 0, "Found invalid geometries!"
    assert gdf.geometry.is_empty.sum() == 0, "Found empty geometries!"
    return f"✓ All {len(gdf)} geometries are valid"

def check_crs(gdf, expected_crs='EPSG:4326'):
    """Assert CRS matches expected."""
    assert gdf.crs == expected_crs, f"CRS mismatch: {gdf.crs} != {expected_crs}"
    return f"✓ CRS is {expected_crs}"

def check_spatial_join_coverage(gdf_joined, id_col, min_coverage=0.95):
    """Assert spatial join coverage meets minimum threshold."""
    total = len(gdf_joined)
    matched = gdf_joined[id_col].notna().sum()
    coverage = matched / total if total > 0 else 0

    assert coverage >= min_coverage, f"Spatial join coverage {coverage:.1%} < {min_coverage:.1%}"
    return f"✓ Spatial join coverage: {coverage:.1%}"

def check_area_listing_counts(gdf_listings_joined, gdf_areas, id_col):
    """Verify that aggregated n_listings matches individual listings count."""
    total_joined = gdf_listings_joined[id_col].notna().sum()
    sum_n_listings = gdf_areas['n_listings'].sum()

    assert total_joined == sum_n_listings, (
        f"Listing count mismatch: {total_joined} individual != {sum_n_listings} aggregated"
    )
    return f"✓ Listing counts match: {sum_n_listings:,} total"

def check_weights_alignment(w, gdf_areas):
    """Assert weights cover exactly the modelled areas, with no islands."""
    assert w.n == len(gdf_areas), f"Length mismatch: W.n={w.n} vs {len(gdf_areas)} areas"
    assert len(w.islands) == 0, f"Islands detected: {len(w.islands)}"
    return f"✓ Weights aligned with {w.n} areas, 0 islands"

def check_row_standardized(w):
    """Assert every row of W sums to 1."""
    row_sums = np.asarray(w.sparse.sum(axis=1)).flatten()
    assert np.allclose(row_sums, 1.0), f"Row sums range {row_sums.min():.3f}-{row_sums.max():.3f}"
    return f"✓ W is row-standardized"

def print_qc_report(checks):
    """
    Print formatted QC report.

    Args:
        checks: List of (name, check_func, kwargs) tuples

    Returns:
        Number of failed checks
    """
    print("\n" + "=" * 80)
    print("QUALITY CONTROL REPORT")
    print("=" * 80)

    failed = 0
    for name, check_func, kwargs in checks:
        try:
            result = check_func(**kwargs)
            print(f"\n{name}")
            print(f"  {result}")
        except AssertionError as e:
            failed += 1
            print(f"\n❌ {name}")
            print(f"  ERROR: {e}")

    print("\n" + "=" * 80)
    return failed
