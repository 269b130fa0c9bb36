import numpy as np
import pandas as pd
import pytest

from london_airbnb import config
from london_airbnb.cleaning import clean_listings, parse_bathrooms_text, parse_price_series


def test_parse_price_series_handles_currency_formats():
    s = pd.Series(['$157.00', '£1,250.00', '€100,50', '$1,250', ' 85 ', None, 'n/a', 99])
    parsed = parse_price_series(s)
    assert parsed.iloc[0] == pytest.approx(157.0)
    assert parsed.iloc[1] == pytest.approx(1250.0)
    assert parsed.iloc[2] == pytest.approx(100.5)
    assert parsed.iloc[3] == pytest.approx(1250.0)
    assert parsed.iloc[4] == pytest.approx(85.0)
    assert np.isnan(parsed.iloc[5])
    assert np.isnan(parsed.iloc[6])
    assert parsed.iloc[7] == pytest.approx(99.0)


def test_parse_bathrooms_text():
    s = pd.Series(['1 bath', '1.5 shared baths', 'Half-bath', 'Shared half-bath', None, 'unknown'])
    parsed = parse_bathrooms_text(s)
    assert list(parsed.iloc[:4]) == [1.0, 1.5, 0.5, 0.5]
    assert parsed.iloc[4:].isna().all()


def _raw():
    return pd.DataFrame({
        'id': [1, 2, 3, 3, 4, 5],
        'price': ['$100.00', '$5.00', '$120.00', '$120.00', '$90.00', '$2,000.00'],
        'room_type': ['Entire home/apt', 'Private room', 'Private room',
                      'Private room', ' ENTIRE HOME/APT ', 'Entire home/apt'],
        'accommodates': [2, 1, 2, 2, 4, 6],
        'bathrooms_text': ['1 bath', '1 bath', 'Half-bath', 'Half-bath', '2 baths', '3 baths'],
        'latitude': [51.5, 51.5, 51.51, 51.51, None, 51.52],
        'longitude': [-0.1, -0.1, -0.12, -0.12, -0.11, -0.13],
    })


def test_clean_listings_filters_and_derives():
    df, log = clean_listings(_raw())

    # $5 and $2,000 are outside the price range, id 4 has no latitude, id 3 is duplicated
    assert list(df['listing_id']) == [1, 3]
    assert df['price'].between(config.PRICE_MIN, config.PRICE_MAX).all()
    assert list(df['entire_home']) == [1, 0]
    assert list(df['bathrooms']) == [1.0, 0.5]
    assert np.allclose(df['log_price'], np.log(df['price']))
    assert any('duplicate' in line for line in log)


def test_clean_listings_normalizes_room_type():
    raw = _raw()
    raw.loc[4, 'latitude'] = 51.49
    df, _ = clean_listings(raw)
    row = df[df['listing_id'] == 4].iloc[0]
    assert row['room_type'] == 'entire home/apt'
    assert row['entire_home'] == 1


def test_clean_listings_requires_parseable_prices():
    raw = _raw()
    raw['price'] = 'free'
    with pytest.raises(ValueError, match="PRICE PARSING FAILED"):
        clean_listings(raw)


def test_clean_listings_requires_price_and_coordinates():
    with pytest.raises(ValueError):
        clean_listings(_raw().drop(columns='price'))
    with pytest.raises(ValueError):
        clean_listings(_raw().drop(columns='longitude'))


def test_clean_listings_unparseable_prices_with_padded_header():
    raw = _raw().rename(columns={'price': ' Price'})
    raw[' Price'] = 'on request'
    with pytest.raises(ValueError, match="PRICE PARSING FAILED"):
        clean_listings(raw)
