"""
Configuration module: paths, CRS constants, and analysis settings.
"""

from pathlib import Path

# ============================================================================
# PROJECT PATHS (all relative to PROJECT_ROOT)
# ============================================================================

# Detect PROJECT_ROOT: either cwd or parent if in notebooks/scripts
def get_project_root():
    """Auto-detect project root by checking for data/ and london_airbnb/ folders."""
    cwd = Path.cwd()

    # If already in project root
    if (cwd / "data").exists() and (cwd / "london_airbnb").exists():
        return cwd

    # If in notebooks/ or scripts/
    if cwd.name in ["notebooks", "scripts"] and (cwd.parent / "data").exists():
        return cwd.parent

    # Fallback: the package lives one level below the root
    return Path(__file__).resolve().parent.parent

PROJECT_ROOT = get_project_root()

# Core data paths
DATA_DIR = PROJECT_ROOT / "data"
ORIGINAL_DIR = DATA_DIR / "original"
PROCESSED_DIR = DATA_DIR / "processed"
OUTPUTS_DIR = PROJECT_ROOT / "outputs"
OUTPUT_TABLES = OUTPUTS_DIR / "tables"
OUTPUT_FIGURES = OUTPUTS_DIR / "figures"

# Input files (raw data)
INPUT_FILES = {
    "listings": ORIGINAL_DIR / "listings.csv",
    "polygons": ORIGINAL_DIR / "statistical-gis-boundaries-london" / "ESRI" / "London_Ward.shp",
}

# Output files (processed)
OUTPUT_FILES = {
    "areas_enriched": PROCESSED_DIR / "areas_enriched.parquet",
    "areas_enriched_geojson": PROCESSED_DIR / "areas_enriched.geojson",
    "areas_gwr_geojson": PROCESSED_DIR / "areas_gwr_clusters.geojson",
}


def ensure_output_dirs(*dirs):
    """Create processed/output directories if missing."""
    targets = dirs or (PROCESSED_DIR, OUTPUT_TABLES, OUTPUT_FIGURES)
    for d in targets:
        Path(d).mkdir(parents=True, exist_ok=True)
    return targets

# ============================================================================
# GEOSPATIAL & CRS CONSTANTS
# ============================================================================

# Web mapping CRS (WGS84 - listings coordinates and all web outputs)
CRS_WEB = "EPSG:4326"

# Metric CRS for London (British National Grid - area/distance calculations)
CRS_METRIC = "EPSG:27700"

# Candidate polygon identifier columns (London statistical boundaries)
POLYGON_ID_CANDIDATES = ["GSS_CODE", "MSOA11CD", "LSOA11CD", "LAD11CD", "NAME", "id", "name"]

# ============================================================================
# DATA QUALITY CONSTANTS
# ============================================================================

# Price cleaning (GBP per night)
PRICE_MIN = 10
PRICE_MAX = 1000

# Spatial join
SPATIAL_JOIN_PREDICATE = "within"      # Use 'within' or 'intersects' for point-in-polygon
MIN_SPATIAL_JOIN_COVERAGE = 0.95       # Minimum share of listings matched to polygons

# Areas with fewer listings than this are left out of the models
MIN_LISTINGS_PER_AREA = 3

# ============================================================================
# ANALYSIS SETTINGS
# ============================================================================

# Listing attributes averaged per area
AGGREGATE_VARS = [
    "price", "log_price", "accommodates", "bedrooms", "bathrooms",
    "review_scores_rating", "number_of_reviews", "entire_home",
]

DEPENDENT_VAR = "price"
EXPLANATORY_VARS = ["accommodates", "bathrooms", "review_scores_rating", "entire_home"]

# Spatial weights: 'queen', 'rook' or 'knn'
WEIGHTS_KIND = "queen"
KNN_K = 6

# Moran's I
MORAN_PERMUTATIONS = 999
SIGNIFICANCE_LEVEL = 0.05

# Spatial lag / error estimation: 'ml' (maximum likelihood) or 'gmm'
SPATIAL_MODEL_METHOD = "ml"

# GWR
GWR_KERNEL = "bisquare"     # 'bisquare', 'gaussian' or 'exponential'
GWR_FIXED = False           # False = adaptive (nearest-neighbour) bandwidth
GWR_CRITERION = "AICc"      # 'AICc', 'AIC', 'BIC' or 'CV'

# K-means on local coefficients
KMEANS_K_RANGE = range(2, 9)
KMEANS_N_INIT = 20

RANDOM_SEED = 42

# ============================================================================
# LOGGING & VERBOSITY
# ============================================================================

VERBOSE = True
FIGURE_DPI = 200

def print_config():
    """Print all configuration settings."""
    print("\n" + "=" * 80)
    print("PIPELINE CONFIGURATION")
    print("=" * 80)
    print(f"\n📁 PROJECT ROOT: {PROJECT_ROOT}")
    print(f"📂 DATA DIR: {DATA_DIR}")
    print(f"📂 PROCESSED DIR: {PROCESSED_DIR}")
    print(f"📂 OUTPUTS DIR: {OUTPUTS_DIR}")
    print(f"\n🗺️  CRS Settings:")
    print(f"   Web (input/output): {CRS_WEB}")
    print(f"   Metric (calculations): {CRS_METRIC}")
    print(f"\n📐 Model Settings:")
    print(f"   y = {DEPENDENT_VAR}; X = {EXPLANATORY_VARS}")
    print(f"   Weights: {WEIGHTS_KIND}, spatial models: {SPATIAL_MODEL_METHOD.upper()}")
    print(f"   GWR: kernel={GWR_KERNEL}, fixed={GWR_FIXED}, criterion={GWR_CRITERION}")
    print(f"\n✓ Configuration loaded successfully")
    print("=" * 80 + "\n")
