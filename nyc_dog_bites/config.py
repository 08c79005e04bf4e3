"""
Configuration settings for the NYC dog bite report.

This module contains all configuration parameters for fetching, normalizing,
enriching and reporting on the NYC DOHMH dog bite dataset.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import pyarrow as pa


# =============================================================================
# PROJECT PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
RESOURCES_DIR = Path(__file__).parent / "resources"
OUTPUT_DIR = PROJECT_ROOT / "output"


# =============================================================================
# SOCRATA API CONFIGURATION
# =============================================================================

API_ENDPOINT = "data.cityofnewyork.us"
DATASET_ID = "rsgh-akpg"  # DOHMH Dog Bite Data
DATE_COLUMN = "dateofbite"

# Accepted bite date formats; anything else (including partial dates) is dropped
TEXT_DATE_FORMAT = "%B %d %Y"  # January 15 2018
ISO_DATE_PATTERN = r"\d{4}-\d{2}-\d{2}"  # 2018-01-15T00:00:00.000

# API Credentials (loaded from environment variables)
APP_TOKEN = os.getenv("SOCRATA_APP_TOKEN")


# =============================================================================
# DATA FETCHING CONFIGURATION
# =============================================================================

# Socrata returns 1,000 rows unless $limit is raised; the full table is ~30k rows
RECORD_LIMIT = 100_000

REQUEST_TIMEOUT = 120  # seconds
MAX_RETRIES = 3
BACKOFF_BASE = 2  # seconds


# =============================================================================
# REFERENCE DATA PATHS
# =============================================================================

ZIP_REFERENCE_PATH = RESOURCES_DIR / "zip_code_reference.csv"
AGE_LOOKUP_PATH = RESOURCES_DIR / "mappings" / "age_lookup.xlsx"
BOROUGH_BOUNDARIES_PATH = RESOURCES_DIR / "boundaries" / "borough_boundaries.geojson"
ZIP_BOUNDARIES_PATH = RESOURCES_DIR / "boundaries" / "modzcta.geojson"

BOROUGH_BOUNDARY_KEY = "boro_name"
ZIP_BOUNDARY_KEY = "modzcta"


# =============================================================================
# SOURCE DATA CONFIGURATION
# =============================================================================

SOURCE_COLUMNS = [
    "uniqueid",
    "dateofbite",
    "species",
    "breed",
    "age",
    "gender",
    "spayneuter",
    "borough",
    "zipcode",
]

SOURCE_TO_INCIDENT_COLUMNS = {
    "zipcode": "zip_code",
    "borough": "borough",
    "breed": "breed_raw",
    "gender": "gender",
    "age": "age_raw",
    "spayneuter": "spay_neuter_status",
}

INCIDENT_COLUMNS = [
    "id",
    "date",
    "year",
    "month",
    "day",
    "day_of_week",
    "zip_code",
    "borough",
    "breed_raw",
    "gender",
    "age_raw",
    "spay_neuter_status",
]

GENDER_CATEGORIES = ["M", "F", "U"]


# =============================================================================
# GEOGRAPHIC FILTER
# =============================================================================

TARGET_STATE = "NY"

# Reference county name -> borough name used on the boundary files
NYC_COUNTIES = {
    "New York County": "Manhattan",
    "Kings County": "Brooklyn",
    "Bronx County": "Bronx",
    "Queens County": "Queens",
    "Richmond County": "Staten Island",
}

ZIP_REFERENCE_REQUIRED_COLUMNS = ["zipcode", "state", "county", "lat", "lng"]
ZIP_REFERENCE_COLUMNS = [
    "zipcode",
    "major_city",
    "state",
    "county",
    "lat",
    "lng",
    "land_area_in_sqmi",
    "water_area_in_sqmi",
    "housing_units",
    "occupied_housing_units",
    "population",
    "population_density",
    "median_home_value",
    "median_household_income",
]


# =============================================================================
# AGE LOOKUP CONFIGURATION
# =============================================================================

AGE_LOOKUP_COLUMNS = ["age", "age_months", "age_years"]

# Ages in years above this are treated as months when drafting lookup entries
MAX_PLAUSIBLE_AGE_YEARS = 30
WEEKS_PER_YEAR = 52


# =============================================================================
# OUTPUT SCHEMA
# =============================================================================

INCIDENT_SCHEMA = pa.schema(
    [
        ("id", pa.int64()),
        ("date", pa.timestamp("ms")),
        ("year", pa.int32()),
        ("month", pa.int32()),
        ("day", pa.int32()),
        ("day_of_week", pa.string()),
        ("zip_code", pa.string()),  # keep as text to preserve leading zeros
        ("borough", pa.string()),
        ("county_borough", pa.string()),
        ("breed_raw", pa.string()),
        ("breed_normalized", pa.string()),
        ("gender", pa.string()),
        ("age_raw", pa.string()),
        ("age_months", pa.float64()),
        ("age_years", pa.float64()),
        ("spay_neuter_status", pa.bool_()),
        ("major_city", pa.string()),
        ("state", pa.string()),
        ("county", pa.string()),
        ("lat", pa.float64()),
        ("lng", pa.float64()),
        ("land_area_in_sqmi", pa.float64()),
        ("water_area_in_sqmi", pa.float64()),
        ("housing_units", pa.float64()),
        ("occupied_housing_units", pa.float64()),
        ("population", pa.float64()),
        ("population_density", pa.float64()),
        ("median_home_value", pa.float64()),
        ("median_household_income", pa.float64()),
    ]
)


# =============================================================================
# REPORT CONFIGURATION
# =============================================================================

TOP_N_BREEDS = 15
RATE_PER_RESIDENTS = 10_000


# =============================================================================
# RUN SETTINGS
# =============================================================================


@dataclass(frozen=True)
class PipelineSettings:
    """Explicit settings for a single report run.

    Defaults come from the module constants above. ``from_env`` applies
    ``DOG_BITES_*`` environment overrides on top of them.
    """

    api_endpoint: str = API_ENDPOINT
    dataset_id: str = DATASET_ID
    app_token: Optional[str] = APP_TOKEN
    record_limit: int = RECORD_LIMIT
    request_timeout: float = REQUEST_TIMEOUT
    max_retries: int = MAX_RETRIES
    backoff_base: float = BACKOFF_BASE
    zip_reference_path: Path = ZIP_REFERENCE_PATH
    age_lookup_path: Path = AGE_LOOKUP_PATH
    borough_boundaries_path: Path = BOROUGH_BOUNDARIES_PATH
    zip_boundaries_path: Path = ZIP_BOUNDARIES_PATH
    zip_boundary_key: str = ZIP_BOUNDARY_KEY
    output_dir: Path = OUTPUT_DIR

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "PipelineSettings":
        env = os.environ if environ is None else environ
        settings = cls(app_token=env.get("SOCRATA_APP_TOKEN", APP_TOKEN))

        overrides = {}
        if "DOG_BITES_API_ENDPOINT" in env:
            overrides["api_endpoint"] = env["DOG_BITES_API_ENDPOINT"]
        if "DOG_BITES_DATASET_ID" in env:
            overrides["dataset_id"] = env["DOG_BITES_DATASET_ID"]
        if "DOG_BITES_RECORD_LIMIT" in env:
            overrides["record_limit"] = int(env["DOG_BITES_RECORD_LIMIT"])
        if "DOG_BITES_REQUEST_TIMEOUT" in env:
            overrides["request_timeout"] = float(env["DOG_BITES_REQUEST_TIMEOUT"])
        if "DOG_BITES_MAX_RETRIES" in env:
            overrides["max_retries"] = int(env["DOG_BITES_MAX_RETRIES"])
        if "DOG_BITES_ZIP_REFERENCE" in env:
            overrides["zip_reference_path"] = Path(env["DOG_BITES_ZIP_REFERENCE"])
        if "DOG_BITES_AGE_LOOKUP" in env:
            overrides["age_lookup_path"] = Path(env["DOG_BITES_AGE_LOOKUP"])
        if "DOG_BITES_BOROUGH_BOUNDARIES" in env:
            overrides["borough_boundaries_path"] = Path(env["DOG_BITES_BOROUGH_BOUNDARIES"])
        if "DOG_BITES_ZIP_BOUNDARIES" in env:
            overrides["zip_boundaries_path"] = Path(env["DOG_BITES_ZIP_BOUNDARIES"])
        if "DOG_BITES_OUTPUT_DIR" in env:
            overrides["output_dir"] = Path(env["DOG_BITES_OUTPUT_DIR"])

        return replace(settings, **overrides)

    def with_overrides(self, **kwargs) -> "PipelineSettings":
        """Return a copy with the non-None keyword arguments applied."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})
