"""
Enrichment Module for NYC Dog Bite Incidents

This module joins normalized incidents with the ZIP code reference table and
the curated age lookup, normalizes breed text, and restricts the data to the
five NYC borough counties.

Join misses are not errors: unmatched rows keep NA fields and are counted.
"""

import logging
import re
from pathlib import Path
from typing import Union

import pandas as pd

from . import config
from .age_lookup import AgeLookup
from .metrics import StageMetrics
from .preprocessing import assign_incident_ids


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_TRAILING_NON_LETTERS = re.compile(r"[\W\d_]+$")

_TEXT_REFERENCE_COLUMNS = ["zipcode", "major_city", "state", "county"]

ENRICHED_COLUMNS = (
    config.INCIDENT_COLUMNS
    + ["county_borough", "breed_normalized", "age_months", "age_years"]
    + [c for c in config.ZIP_REFERENCE_COLUMNS if c != "zipcode"]
)


def load_zip_reference(path: Union[str, Path]) -> pd.DataFrame:
    """
    Load the static ZIP code reference table.

    ZIP codes are read as text to keep leading zeros. Optional attribute
    columns that are absent from the file are added as NA.

    Parameters
    ----------
    path : str or Path
        CSV file with one row per ZIP code

    Returns
    -------
    pd.DataFrame
        Reference table with ``config.ZIP_REFERENCE_COLUMNS``
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"ZIP code reference not found: {path}")

    df_zip = pd.read_csv(path, dtype={"zipcode": str})

    missing = [c for c in config.ZIP_REFERENCE_REQUIRED_COLUMNS if c not in df_zip.columns]
    if missing:
        raise ValueError(f"ZIP code reference {path} is missing columns: {missing}")

    for col in config.ZIP_REFERENCE_COLUMNS:
        if col not in df_zip.columns:
            df_zip[col] = pd.NA

    for col in config.ZIP_REFERENCE_COLUMNS:
        if col in _TEXT_REFERENCE_COLUMNS:
            df_zip[col] = df_zip[col].astype("string")
        else:
            df_zip[col] = pd.to_numeric(df_zip[col], errors="coerce").astype("float64")

    logger.info("Loaded %d ZIP codes from %s", len(df_zip), path)
    return df_zip[config.ZIP_REFERENCE_COLUMNS]


def merge_zip_reference(df: pd.DataFrame, df_zip: pd.DataFrame) -> tuple[pd.DataFrame, int]:
    """
    Left-join incidents to the ZIP reference by exact ZIP code.

    Parameters
    ----------
    df : pd.DataFrame
        Normalized incidents with a ``zip_code`` column
    df_zip : pd.DataFrame
        Reference table from ``load_zip_reference``

    Returns
    -------
    tuple[pd.DataFrame, int]
        Incidents with reference attributes (NA when unmatched), and the
        number of incidents that found no reference row
    """
    df_zip = df_zip[df_zip["zipcode"].notna()]

    duplicated = df_zip.loc[df_zip["zipcode"].duplicated(), "zipcode"].unique().tolist()
    if duplicated:
        raise ValueError(f"ZIP code reference has duplicate ZIP codes: {duplicated[:10]}")

    df = df.assign(zip_code=df["zip_code"].astype("string"))
    df_merged = df.merge(
        df_zip,
        left_on="zip_code",
        right_on="zipcode",
        how="left",
        indicator=True,
    )
    n_unmatched = int((df_merged["_merge"] == "left_only").sum())
    df_merged = df_merged.drop(columns=["zipcode", "_merge"])

    if n_unmatched:
        logger.info("%d incidents have no ZIP reference match", n_unmatched)

    return df_merged, n_unmatched


def filter_to_nyc(df: pd.DataFrame) -> tuple[pd.DataFrame, dict[str, int]]:
    """
    Keep only incidents geocoded to one of the five borough counties.

    Applies, in order:
    1. Drop incidents without a reference latitude (no ZIP match)
    2. Keep incidents whose reference state is NY
    3. Keep incidents whose reference county is a borough county

    No correction is attempted for unmapped or out-of-region ZIP codes.
    Adds ``county_borough``, the borough name implied by the county.

    Parameters
    ----------
    df : pd.DataFrame
        Incidents merged with the ZIP reference

    Returns
    -------
    tuple[pd.DataFrame, dict[str, int]]
        Filtered incidents and the number dropped at each step
    """
    counts = {}

    has_lat = df["lat"].notna()
    counts["dropped_no_latitude"] = int((~has_lat).sum())
    df = df[has_lat]

    in_state = (df["state"] == config.TARGET_STATE).fillna(False).astype(bool)
    counts["dropped_not_ny"] = int((~in_state).sum())
    df = df[in_state]

    in_nyc = df["county"].isin(list(config.NYC_COUNTIES))
    counts["dropped_not_nyc_county"] = int((~in_nyc).sum())
    df = df[in_nyc].copy()

    df["county_borough"] = df["county"].map(config.NYC_COUNTIES).astype("string")

    return df, counts


def normalize_breed(text):
    """
    Normalize a free-text breed.

    Lower-cases, trims, collapses interior whitespace to single spaces, then
    strips trailing characters that are not letters. Stripping runs last so
    it sees the true trailing token. NA values are returned unchanged.

    >>> normalize_breed("  Pit Bull Mix!!")
    'pit bull mix'
    """
    if text is None or pd.isna(text):
        return text
    text = str(text).lower().strip()
    text = _WHITESPACE.sub(" ", text)
    return _TRAILING_NON_LETTERS.sub("", text)


def normalize_breed_series(series: pd.Series) -> pd.Series:
    """Vectorized ``normalize_breed`` for a pandas Series."""
    return (
        series.astype("string")
        .str.lower()
        .str.strip()
        .str.replace(_WHITESPACE.pattern, " ", regex=True)
        .str.replace(_TRAILING_NON_LETTERS.pattern, "", regex=True)
    )


def merge_age_lookup(df: pd.DataFrame, age_lookup: AgeLookup) -> tuple[pd.DataFrame, dict[str, int]]:
    """
    Left-join the raw age text against the curated age lookup.

    The key is matched exactly as submitted; variants that are not
    byte-identical to a curated entry stay unresolved.

    Parameters
    ----------
    df : pd.DataFrame
        Incidents with an ``age_raw`` column
    age_lookup : AgeLookup
        Curated lookup

    Returns
    -------
    tuple[pd.DataFrame, dict[str, int]]
        Incidents with ``age_months`` and ``age_years``, plus counts of
        missing (``age_missing``) and present-but-unmatched
        (``age_unresolved``) raw ages
    """
    df = df.assign(age_raw=df["age_raw"].astype("string"))
    df_merged = df.merge(
        age_lookup.to_frame(),
        left_on="age_raw",
        right_on="age",
        how="left",
        indicator=True,
    )
    missed = df_merged["_merge"] == "left_only"
    raw_missing = df_merged["age_raw"].isna()
    counts = {
        "age_missing": int((missed & raw_missing).sum()),
        "age_unresolved": int((missed & ~raw_missing).sum()),
    }
    df_merged = df_merged.drop(columns=["age", "_merge"])

    if counts["age_unresolved"]:
        logger.info("%d incidents have an age with no lookup entry", counts["age_unresolved"])

    return df_merged, counts


def enrich_incidents(
    df: pd.DataFrame, df_zip: pd.DataFrame, age_lookup: AgeLookup
) -> tuple[pd.DataFrame, StageMetrics]:
    """
    Main enrichment pipeline for normalized incidents.

    Parameters
    ----------
    df : pd.DataFrame
        Output of ``preprocessing.normalize_incidents``
    df_zip : pd.DataFrame
        ZIP code reference table
    age_lookup : AgeLookup
        Curated age lookup

    Returns
    -------
    tuple[pd.DataFrame, StageMetrics]
        Final incidents with ids re-stamped densely over the filtered rows,
        and row accounting for the stage
    """
    rows_in = len(df)

    df, n_zip_unmatched = merge_zip_reference(df, df_zip)
    df, filter_counts = filter_to_nyc(df)

    df = df.copy()
    df["breed_normalized"] = normalize_breed_series(df["breed_raw"])

    df, age_counts = merge_age_lookup(df, age_lookup)
    df = assign_incident_ids(df)

    keep = ENRICHED_COLUMNS + (["fetch_order"] if "fetch_order" in df.columns else [])
    df = df[keep]

    metrics = StageMetrics(
        stage="enrich",
        rows_in=rows_in,
        rows_out=len(df),
        counts={"zip_unmatched": n_zip_unmatched, **filter_counts, **age_counts},
    )
    return df, metrics
