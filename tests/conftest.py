"""
Shared fixtures: a 10 x 10 grid of "wards" over central London with synthetic
Inside Airbnb style listings whose prices rise from west to east.
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import geopandas as gpd
import pytest
from shapely.geometry import box

from london_airbnb.pipeline import build_areas, modelled_areas

N_ROWS = N_COLS = 10
LON0, LAT0 = -0.25, 51.45
DLON, DLAT = 0.03, 0.01
LISTINGS_PER_CELL = 6


def make_grid(n_rows=N_ROWS, n_cols=N_COLS):
    cells = []
    for r in range(n_rows):
        for c in range(n_cols):
            cells.append({
                'GSS_CODE': f"E0500{r:02d}{c:02d}",
                'NAME': f"Ward {r}-{c}",
                'row': r,
                'col': c,
                'geometry': box(LON0 + c * DLON, LAT0 + r * DLAT,
                                LON0 + (c + 1) * DLON, LAT0 + (r + 1) * DLAT),
            })
    # Ward shapefiles ship in British National Grid
    return gpd.GeoDataFrame(cells, crs="EPSG:4326").to_crs("EPSG:27700")


def make_listings(seed=0, per_cell=LISTINGS_PER_CELL):
    rng = np.random.default_rng(seed)
    rows = []
    listing_id = 1000
    for r in range(N_ROWS):
        for c in range(N_COLS):
            for _ in range(per_cell):
                accommodates = int(rng.integers(1, 7))
                entire = rng.random() < 0.3 + 0.04 * c
                price = 60 + 20 * accommodates + 50 * entire + 12 * c + rng.normal(0, 10)
                rows.append({
                    'id': listing_id,
                    'price': f"${price:,.2f}",
                    'room_type': 'Entire home/apt' if entire else 'Private room',
                    'accommodates': accommodates,
                    'bedrooms': max(1, accommodates // 2),
                    'bathrooms_text': rng.choice(['1 bath', '1.5 baths', '2 baths', 'Half-bath']),
                    'review_scores_rating': round(float(rng.uniform(4.0, 5.0)), 2),
                    'number_of_reviews': int(rng.integers(0, 200)),
                    'latitude': LAT0 + (r + rng.uniform(0.1, 0.9)) * DLAT,
                    'longitude': LON0 + (c + rng.uniform(0.1, 0.9)) * DLON,
                })
                listing_id += 1
    return pd.DataFrame(rows)


@pytest.fixture
def grid_polygons():
    return make_grid()


@pytest.fixture
def raw_listings():
    return make_listings()


@pytest.fixture
def areas(raw_listings, grid_polygons):
    gdf_areas, gdf_joined, id_col, _ = build_areas(raw_listings, grid_polygons)
    return gdf_areas, gdf_joined, id_col


@pytest.fixture
def model_areas(areas):
    gdf_areas, _, _ = areas
    w, gdf_model, _ = modelled_areas(gdf_areas)
    return w, gdf_model


@pytest.fixture
def input_files(tmp_path, raw_listings, grid_polygons):
    listings_path = tmp_path / "listings.csv"
    polygons_path = tmp_path / "wards.shp"
    raw_listings.to_csv(listings_path, index=False)
    grid_polygons.to_file(polygons_path)
    return listings_path, polygons_path
