"""
I/O module: Load and save data in various formats (CSV, Shapefile, Parquet, GeoJSON).
"""

import pandas as pd
import geopandas as gpd
from pathlib import Path
import warnings

from . import config

def load_csv(filepath, **kwargs):
    """
    Load CSV file with error handling.

    Args:
        filepath: Path to CSV file
        **kwargs: Additional arguments for pd.read_csv()

    Returns:
        pd.DataFrame
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"CSV file not found: {filepath}")

    return pd.read_csv(filepath, **kwargs)

def load_shapefile(filepath, **kwargs):
    """
    Load a polygon layer (Shapefile, GeoJSON, GeoPackage) with CRS validation.

    London statistical boundaries ship in British National Grid; a layer
    without CRS is assumed to be in config.CRS_METRIC.

    Args:
        filepath: Path to the vector file
        **kwargs: Additional arguments for gpd.read_file()

    Returns:
        geopandas.GeoDataFrame
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Shapefile not found: {filepath}")

    gdf = gpd.read_file(filepath, **kwargs)

    if gdf.crs is None:
        warnings.warn(f"⚠️  CRS missing in {filepath.name}. Assuming {config.CRS_METRIC}")
        gdf = gdf.set_crs(config.CRS_METRIC)

    return gdf

def load_parquet(filepath, **kwargs):
    """Load a Parquet file (GeoParquet is read back as a GeoDataFrame)."""
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Parquet file not found: {filepath}")

    try:
        return gpd.read_parquet(filepath, **kwargs)
    except ValueError:
        # plain parquet without geo metadata
        return pd.read_parquet(filepath, **kwargs)

def save_parquet(df, filepath, **kwargs):
    """
    Save DataFrame to Parquet.

    Args:
        df: DataFrame to save
        filepath: Output path
        **kwargs: Additional arguments for df.to_parquet()

    Returns:
        Path to saved file
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    # Preserve geometry for GeoDataFrames
    if isinstance(df, gpd.GeoDataFrame):
        df.to_parquet(filepath, **kwargs)
    else:
        df.to_parquet(filepath, index=False, **kwargs)

    return filepath

def save_geojson(gdf, filepath, **kwargs):
    """
    Save GeoDataFrame to GeoJSON (always EPSG:4326).

    Returns:
        Path to saved file
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    if gdf.crs != config.CRS_WEB:
        gdf = gdf.to_crs(config.CRS_WEB)

    gdf.to_file(filepath, driver="GeoJSON", **kwargs)

    return filepath

def save_csv(df, filepath, **kwargs):
    """
    Save DataFrame to CSV (geometry column dropped).

    Returns:
        Path to saved file
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(df, gpd.GeoDataFrame):
        df = pd.DataFrame(df.drop(columns=df.geometry.name))

    df.to_csv(filepath, index=False, **kwargs)

    return filepath
