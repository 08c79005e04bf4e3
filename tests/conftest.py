"""Shared fixtures for the dog bite pipeline tests.

All fixtures are synthetic -- no network or real data files required.
"""

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from nyc_dog_bites.age_lookup import AgeLookup
from nyc_dog_bites.fetch import records_to_frame


# ---------------------------------------------------------------------------
# Raw API records
# ---------------------------------------------------------------------------


def _record(uniqueid, dateofbite, zipcode, age="2 years", breed="Mixed", gender="M",
            spayneuter="false", borough="Brooklyn"):
    record = {
        "uniqueid": uniqueid,
        "dateofbite": dateofbite,
        "species": "DOG",
        "breed": breed,
        "age": age,
        "gender": gender,
        "spayneuter": spayneuter,
        "borough": borough,
    }
    if zipcode is not None:
        record["zipcode"] = zipcode
    return record


@pytest.fixture
def raw_records():
    """Records in fetch order; dates deliberately out of order."""
    return [
        _record("1", "March 05 2018", "11201", age="2 years", breed="  Pit Bull Mix!!"),
        _record("1", "2018-01-15T00:00:00.000", "10001", age="3 months",
                breed="Labrador  Retriever", gender="F", spayneuter="true", borough="Manhattan"),
        _record("2", "January 15 2018", "10451", age="1 year 6 months",
                breed="SHIH TZU ", gender="x", borough="Bronx"),
        _record("3", "not a date", "11201"),
        _record("4", "February 01 2018", None),
        _record("5", "February 02 2018", "07030", borough="Other"),
        _record("6", "February 03 2018", "11001", borough="Queens"),
        _record("7", "April 01 2018", "99999"),
        _record("8", "May 01 2018", "11201", age="2 Years", breed="pit bull mix 2"),
        _record("9", "June 01 2018", "10451", age=None, breed=None, gender=None,
                spayneuter=None, borough="Bronx"),
    ]


@pytest.fixture
def raw_frame(raw_records):
    return records_to_frame(raw_records)


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@pytest.fixture
def zip_reference():
    return pd.DataFrame(
        {
            "zipcode": pd.array(["11201", "10001", "10451", "07030", "11001"], dtype="string"),
            "major_city": pd.array(
                ["Brooklyn", "New York", "Bronx", "Hoboken", "Floral Park"], dtype="string"
            ),
            "state": pd.array(["NY", "NY", "NY", "NJ", "NY"], dtype="string"),
            "county": pd.array(
                ["Kings County", "New York County", "Bronx County", "Hudson County",
                 "Nassau County"],
                dtype="string",
            ),
            "lat": [40.69, 40.75, 40.82, 40.74, 40.72],
            "lng": [-73.99, -73.99, -73.92, -74.03, -73.70],
            "land_area_in_sqmi": [1.0, 0.6, 1.1, 1.3, 1.6],
            "water_area_in_sqmi": [0.1, 0.0, 0.0, 0.6, 0.0],
            "housing_units": [30000.0, 15000.0, 17000.0, 28000.0, 9000.0],
            "occupied_housing_units": [28000.0, 14000.0, 16000.0, 26000.0, 8800.0],
            "population": [50000.0, 0.0, 45000.0, 50000.0, 25000.0],
            "population_density": [50000.0, 0.0, 41000.0, 38000.0, 15600.0],
            "median_home_value": [900000.0, 1000000.0, 300000.0, 600000.0, 500000.0],
            "median_household_income": [110000.0, 90000.0, 30000.0, 120000.0, 100000.0],
        }
    )


@pytest.fixture
def age_table():
    return pd.DataFrame(
        {
            "age": ["2 years", "3 months", "1 year 6 months", "unknown"],
            "age_months": [np.nan, 3.0, np.nan, np.nan],
            "age_years": [2.0, np.nan, 1.0, np.nan],
        }
    )


@pytest.fixture
def age_lookup(age_table):
    return AgeLookup(age_table, version="test")


# ---------------------------------------------------------------------------
# Boundary geometry
# ---------------------------------------------------------------------------


@pytest.fixture
def borough_boundaries():
    return gpd.GeoDataFrame(
        {
            "boro_name": ["Manhattan", "Brooklyn", "Bronx", "Queens", "Staten Island"],
            "geometry": [
                box(-74.02, 40.70, -73.93, 40.88),
                box(-74.04, 40.57, -73.86, 40.70),
                box(-73.93, 40.79, -73.77, 40.92),
                box(-73.96, 40.54, -73.70, 40.80),
                box(-74.26, 40.50, -74.05, 40.65),
            ],
        },
        crs="EPSG:4326",
    )


@pytest.fixture
def zip_boundaries():
    return gpd.GeoDataFrame(
        {
            "modzcta": ["10001", "11201", "10451"],
            "geometry": [
                box(-74.01, 40.74, -73.98, 40.76),
                box(-74.00, 40.68, -73.98, 40.70),
                box(-73.93, 40.81, -73.91, 40.83),
            ],
        },
        crs="EPSG:4326",
    )
