"""
Spatial module: Create geometries, spatial joins, area aggregation, area/density calculations.
"""

import pandas as pd
import geopandas as gpd
import numpy as np
from . import config

def listings_to_geodataframe(df_listings):
    """
    Convert listings DataFrame with lat/lon to GeoDataFrame with Point geometries.

    Args:
        df_listings: DataFrame with 'latitude' and 'longitude' columns

    Returns:
        GeoDataFrame with Point geometries in EPSG:4326 and log info
    """
    log = []

    if 'latitude' not in df_listings.columns or 'longitude' not in df_listings.columns:
        raise ValueError("'latitude' and 'longitude' columns required")

    gdf = gpd.GeoDataFrame(
        df_listings.copy(),
        geometry=gpd.points_from_xy(df_listings['longitude'], df_listings['latitude']),
        crs=config.CRS_WEB
    )

    log.append(f"✓ Created Point geometries for {len(gdf)} listings (CRS: {config.CRS_WEB})")

    return gdf, log

def find_id_column(gdf_polygons, candidates=None):
    """Pick the polygon identifier column: a known code column, else the first unique column."""
    candidates = candidates or config.POLYGON_ID_CANDIDATES
    for col in candidates:
        if col in gdf_polygons.columns and gdf_polygons[col].is_unique:
            return col

    for col in gdf_polygons.columns:
        if col != gdf_polygons.geometry.name and gdf_polygons[col].is_unique:
            return col

    return None

def clean_polygons(gdf_polygons, id_col=None):
    """
    Validate and clean administrative polygon geometries.

    Args:
        gdf_polygons: Polygon GeoDataFrame (wards, MSOAs, LSOAs, boroughs)
        id_col: Identifier column; auto-detected when None

    Returns:
        Cleaned GeoDataFrame, identifier column name and log info
    """
    log = []
    gdf_clean = gdf_polygons.copy()

    # 1. Check CRS
    if gdf_clean.crs is None:
        log.append(f"⚠️  CRS missing; assuming {config.CRS_METRIC}")
        gdf_clean = gdf_clean.set_crs(config.CRS_METRIC)
    else:
        log.append(f"✓ CRS: {gdf_clean.crs}")

    # 2. Drop empty geometries
    empty = (gdf_clean.geometry.isna() | gdf_clean.geometry.is_empty).sum()
    if empty > 0:
        log.append(f"⚠️  Dropped {empty} empty geometries")
        gdf_clean = gdf_clean[~(gdf_clean.geometry.isna() | gdf_clean.geometry.is_empty)].copy()

    # 3. Validate geometries
    invalid_before = (~gdf_clean.geometry.is_valid).sum()
    if invalid_before > 0:
        log.append(f"⚠️  Found {invalid_before} invalid geometries; repairing...")
        gdf_clean.geometry = gdf_clean.geometry.buffer(0)
        invalid_after = (~gdf_clean.geometry.is_valid).sum()
        log.append(f"   → After repair: {invalid_after} invalid (target: 0)")
        assert invalid_after == 0, "Failed to repair geometries!"
    else:
        log.append(f"✓ All geometries are valid")

    # 4. Identifier column
    if id_col is None:
        id_col = find_id_column(gdf_clean)
    if id_col is None:
        id_col = 'area_id'
        gdf_clean[id_col] = range(len(gdf_clean))
        log.append(f"⚠️  No polygon ID column found; using row number")
    elif id_col not in gdf_clean.columns:
        raise ValueError(f"Polygon ID column '{id_col}' not found")
    else:
        log.append(f"✓ Using polygon ID column: '{id_col}'")

    gdf_clean = gdf_clean.reset_index(drop=True)
    log.append(f"✓ Polygon cleaning complete ({len(gdf_clean)} polygons)")

    return gdf_clean, id_col, log

def spatial_join_listings_polygons(gdf_listings, gdf_polygons, id_col):
    """
    Assign listings to polygons via spatial join (point-in-polygon).

    Args:
        gdf_listings: Listings GeoDataFrame (Points, EPSG:4326)
        gdf_polygons: Polygon GeoDataFrame
        id_col: Polygon identifier column

    Returns:
        Listings GeoDataFrame (in the polygon CRS) with `id_col` added, and log info
    """
    log = []

    if gdf_listings.crs != gdf_polygons.crs:
        log.append(f"✓ Reprojecting listings to {gdf_polygons.crs}")
        gdf_listings = gdf_listings.to_crs(gdf_polygons.crs)

    polygons = gdf_polygons[[id_col, 'geometry']]

    gdf_joined = gpd.sjoin(
        gdf_listings,
        polygons,
        how='left',
        predicate=config.SPATIAL_JOIN_PREDICATE
    )

    # Points exactly on a boundary fail 'within'; retry with 'intersects'
    if gdf_joined[id_col].notna().sum() == 0:
        log.append(f"⚠️  No matches with '{config.SPATIAL_JOIN_PREDICATE}'; trying 'intersects'...")
        gdf_joined = gpd.sjoin(gdf_listings, polygons, how='left', predicate='intersects')

    # a point on a shared edge can match two polygons with 'intersects'
    gdf_joined = gdf_joined[~gdf_joined.index.duplicated(keep='first')]
    gdf_joined = gdf_joined.drop(columns=['index_right'], errors='ignore')

    total = len(gdf_joined)
    matched = gdf_joined[id_col].notna().sum()
    coverage = (matched / total * 100) if total > 0 else 0

    log.append(f"✓ Spatial join complete:")
    log.append(f"  - Total listings: {total:,}")
    log.append(f"  - Matched to polygon: {matched:,} ({coverage:.1f}%)")

    if coverage < config.MIN_SPATIAL_JOIN_COVERAGE * 100:
        log.append(f"⚠️  Coverage {coverage:.1f}% below threshold {config.MIN_SPATIAL_JOIN_COVERAGE*100:.1f}%")

    return gdf_joined, log

def aggregate_to_polygons(gdf_listings_joined, gdf_polygons, id_col, variables=None,
                          min_listings=None, required=None):
    """
    Aggregate listing attributes to polygon level (one row per polygon).

    Computes `n_listings` and the mean of each variable for listings falling
    inside the polygon, plus area and density in the metric CRS. Polygons with
    fewer than `min_listings` listings or a missing mean of a `required`
    variable are flagged with `modelled = False`.

    Args:
        gdf_listings_joined: Listings with polygon assignment
        gdf_polygons: Polygon GeoDataFrame
        id_col: Polygon identifier column
        variables: Listing attributes to average (default config.AGGREGATE_VARS)
        min_listings: Minimum listings per area to keep it in the models
        required: Variables that must have a mean for the area to be modelled
            (default: the dependent and explanatory variables)

    Returns:
        Enriched polygon GeoDataFrame and log info
    """
    log = []
    variables = variables or config.AGGREGATE_VARS
    min_listings = config.MIN_LISTINGS_PER_AREA if min_listings is None else min_listings
    required = required or [config.DEPENDENT_VAR] + config.EXPLANATORY_VARS

    listings = gdf_listings_joined[gdf_listings_joined[id_col].notna()]
    skipped = [v for v in variables if v not in listings.columns]
    variables = [v for v in variables if v in listings.columns]
    if skipped:
        log.append(f"⚠️  Variables not in listings, skipped: {skipped}")
    if not variables:
        raise ValueError("None of the aggregation variables are present in the listings")

    # 1. Aggregate metrics
    grouped = listings.groupby(id_col)
    area_agg = grouped[variables].mean()
    area_agg.insert(0, 'n_listings', grouped.size())
    area_agg = area_agg.reset_index()
    log.append(f"✓ Aggregated {len(listings):,} listings to {len(area_agg)} polygons "
               f"(means of {variables})")

    # 2. Merge back with geometries
    gdf_enriched = gdf_polygons.merge(area_agg, on=id_col, how='left')
    gdf_enriched['n_listings'] = gdf_enriched['n_listings'].fillna(0).astype('int64')

    # 3. Area and density (metric CRS)
    area_km2 = gdf_enriched.to_crs(config.CRS_METRIC).geometry.area / 1e6
    gdf_enriched['area_km2'] = area_km2.values
    gdf_enriched['listing_density'] = gdf_enriched['n_listings'] / gdf_enriched['area_km2'].clip(lower=0.01)
    log.append(f"✓ Area and density calculated (in {config.CRS_METRIC})")
    log.append(f"  - Density range: {gdf_enriched['listing_density'].min():.1f} - "
               f"{gdf_enriched['listing_density'].max():.1f} listings/km²")

    # 4. Flag areas usable for modelling
    enough = gdf_enriched['n_listings'] >= max(min_listings, 1)
    # only model variables gate the flag; other means may be missing
    required = [v for v in required if v in variables] or variables
    complete = gdf_enriched[required].notna().all(axis=1)
    gdf_enriched['modelled'] = enough & complete
    n_dropped = int((~gdf_enriched['modelled']).sum())
    if n_dropped > 0:
        log.append(f"⚠️  {n_dropped} polygons excluded from models "
                   f"(< {min_listings} listings or missing means)")
    log.append(f"✓ {int(gdf_enriched['modelled'].sum())} polygons available for modelling")

    return gdf_enriched, log

def polygon_centroids(gdf_polygons):
    """Centroid coordinates (n x 2 array) in the metric CRS."""
    centroids = gdf_polygons.to_crs(config.CRS_METRIC).geometry.centroid
    return np.column_stack([centroids.x.values, centroids.y.values])
