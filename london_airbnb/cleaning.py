"""
Cleaning module: Data cleaning and normalization for Inside Airbnb London listings.
"""

import pandas as pd
import numpy as np
import re
from . import config


NUMERIC_COLUMNS = ['accommodates', 'bedrooms', 'beds', 'bathrooms',
                   'review_scores_rating', 'number_of_reviews']


def parse_price_series(s: pd.Series) -> pd.Series:
    """
    Robustly parse price series, handling $ € £ symbols, spaces, NBSP, and decimal formats.

    Handles both 1,234.56 (comma thousands sep) and 1.234,56 (comma decimal sep).
    Decision: use the LAST separator (comma or dot) as decimal point.

    Args:
        s: pd.Series of price strings (e.g., '$157.00', '£1,250.00', '€100,50')

    Returns:
        pd.Series of float values (NaN for unparseable)
    """
    def parse_single(val):
        if val is None or pd.isna(val) or val == '':
            return np.nan

        if isinstance(val, (int, float)):
            return float(val)

        val_str = str(val).strip()

        # Remove currency symbols, spaces, NBSP
        val_str = re.sub(r'[$€£\s\xa0]', '', val_str)

        # Keep only digits, dots, commas, minus sign
        val_str = re.sub(r'[^\d.,\-]', '', val_str)

        if not val_str or val_str == '-':
            return np.nan

        last_comma_idx = val_str.rfind(',')
        last_dot_idx = val_str.rfind('.')

        if last_comma_idx > last_dot_idx:
            # Last separator is comma: only a decimal separator if 1-2 digits follow it
            if len(val_str) - last_comma_idx - 1 in (1, 2):
                val_str = val_str.replace('.', '').replace(',', '.')
            else:
                val_str = val_str.replace(',', '')
        elif last_dot_idx > last_comma_idx:
            val_str = val_str.replace(',', '')

        try:
            return float(val_str)
        except ValueError:
            return np.nan

    return s.apply(parse_single)


def parse_bathrooms_text(s: pd.Series) -> pd.Series:
    """
    Parse Inside Airbnb `bathrooms_text` ('1 bath', '1.5 shared baths', 'Half-bath').

    Returns:
        pd.Series of float bathroom counts (NaN for unparseable)
    """
    def parse_single(val):
        if val is None or pd.isna(val):
            return np.nan
        text = str(val).strip().lower()
        match = re.search(r'\d+(\.\d+)?', text)
        if match:
            return float(match.group(0))
        if 'half' in text:
            return 0.5
        return np.nan

    return s.apply(parse_single)


def clean_listings(df_listings):
    """
    Clean listings data: normalize columns, parse prices, fix geo columns,
    derive model variables.

    Args:
        df_listings: Raw listings DataFrame (Inside Airbnb listings.csv)

    Returns:
        Cleaned DataFrame and log info
    """
    log = []
    df_clean = df_listings.copy()

    # 1. Normalize column names
    df_clean.columns = [col.strip().lower().replace(' ', '_') for col in df_clean.columns]
    log.append(f"✓ Column names normalized")

    # 2. Find and rename ID column
    if 'listing_id' not in df_clean.columns and 'id' in df_clean.columns:
        df_clean.rename(columns={'id': 'listing_id'}, inplace=True)
        log.append(f"✓ Renamed 'id' to 'listing_id'")

    if 'listing_id' not in df_clean.columns:
        df_clean = df_clean.reset_index(drop=True)
        df_clean['listing_id'] = df_clean.index.astype('int64')
        log.append(f"⚠️  No id column found; using row number as listing_id")

    df_clean['listing_id'] = pd.to_numeric(df_clean['listing_id'], errors='coerce')
    df_clean = df_clean[df_clean['listing_id'].notna()].copy()
    df_clean['listing_id'] = df_clean['listing_id'].astype('int64')

    # 3. Parse price
    if 'price' not in df_clean.columns:
        raise ValueError("'price' column not found in listings")

    df_clean['price'] = parse_price_series(df_clean['price'])
    price_not_null = df_clean['price'].notna().sum()
    if price_not_null == 0:
        raw_examples = df_listings[[c for c in df_listings.columns if c.strip().lower() == 'price'][0]] \
            .dropna().astype(str).head(10).tolist()
        raise ValueError(f"PRICE PARSING FAILED: 0 valid prices. Raw examples: {raw_examples}")
    log.append(f"✓ price: {price_not_null:,} prices parsed successfully")

    before = len(df_clean)
    df_clean = df_clean[df_clean['price'].notna()]
    df_clean = df_clean[
        (df_clean['price'] >= config.PRICE_MIN) & (df_clean['price'] <= config.PRICE_MAX)
    ].copy()
    removed = before - len(df_clean)
    if removed > 0:
        log.append(f"⚠️  Removed {removed} listings with missing or out-of-range price "
                   f"(<£{config.PRICE_MIN} or >£{config.PRICE_MAX})")

    # 4. Coordinates
    if 'latitude' not in df_clean.columns or 'longitude' not in df_clean.columns:
        raise ValueError("'latitude' and 'longitude' columns required")

    df_clean['latitude'] = pd.to_numeric(df_clean['latitude'], errors='coerce')
    df_clean['longitude'] = pd.to_numeric(df_clean['longitude'], errors='coerce')
    before = len(df_clean)
    df_clean = df_clean.dropna(subset=['latitude', 'longitude'])
    removed = before - len(df_clean)
    if removed > 0:
        log.append(f"⚠️  Removed {removed} listings with missing coordinates")

    # 5. Bathrooms (newer exports only carry bathrooms_text)
    if 'bathrooms_text' in df_clean.columns:
        parsed = parse_bathrooms_text(df_clean['bathrooms_text'])
        if 'bathrooms' in df_clean.columns:
            df_clean['bathrooms'] = pd.to_numeric(df_clean['bathrooms'], errors='coerce').fillna(parsed)
        else:
            df_clean['bathrooms'] = parsed
        log.append(f"✓ bathrooms derived from bathrooms_text")

    for col in NUMERIC_COLUMNS:
        if col in df_clean.columns:
            df_clean[col] = pd.to_numeric(df_clean[col], errors='coerce')

    # 6. Room type
    if 'room_type' in df_clean.columns:
        df_clean['room_type'] = df_clean['room_type'].astype(str).str.lower().str.strip()
        df_clean['entire_home'] = (df_clean['room_type'] == 'entire home/apt').astype(int)
        log.append(f"✓ room_type standardized ({df_clean['entire_home'].mean():.1%} entire homes)")
    else:
        log.append(f"⚠️  No room_type column found")

    df_clean['log_price'] = np.log(df_clean['price'])

    # 7. Remove duplicate listing_ids (keep first)
    duplicate_ids = df_clean['listing_id'].duplicated(keep='first').sum()
    if duplicate_ids > 0:
        log.append(f"⚠️  Removed {duplicate_ids} duplicate listing_ids (kept first occurrence)")
        df_clean = df_clean.drop_duplicates(subset=['listing_id'], keep='first')

    df_clean = df_clean.reset_index(drop=True)
    log.append(f"✓ Listings cleaning complete: {df_listings.shape} → {df_clean.shape}")

    return df_clean, log
