"""
Normalization Module for NYC Dog Bite Incidents

This module turns the raw records returned by the Socrata API into the
Incident schema: parsed bite dates, a dense id ordered by date, calendar
features derived from the date, and a fixed projection of the source fields.
"""

import logging

import numpy as np
import pandas as pd

from . import config
from .metrics import StageMetrics


logger = logging.getLogger(__name__)


def parse_bite_dates(df: pd.DataFrame) -> tuple[pd.DataFrame, int]:
    """
    Parse the bite date and drop records whose date cannot be parsed.

    The source has used both long-form text dates (``January 01 2018``) and
    ISO timestamps. Only those two exact formats are accepted, so partial
    values such as ``May 2018`` are never completed with a default day or
    month. Missing or unparsable dates are removed.

    Parameters
    ----------
    df : pd.DataFrame
        Raw records with a ``dateofbite`` column

    Returns
    -------
    tuple[pd.DataFrame, int]
        Dataframe with a day-precision ``date`` column, and the number of
        records dropped because their date could not be parsed
    """
    df = df.copy()

    text = df[config.DATE_COLUMN].astype("string").str.strip()

    parsed = pd.to_datetime(text, format=config.TEXT_DATE_FORMAT, errors="coerce")
    # ISO8601 also accepts "2018" or "2018-05", so require a full date first
    is_iso = text.str.match(config.ISO_DATE_PATTERN).fillna(False).astype(bool)
    iso_parsed = pd.to_datetime(text.where(is_iso), format="ISO8601", errors="coerce")
    df["date"] = parsed.fillna(iso_parsed).dt.normalize()

    unparsable = df["date"].isna()
    n_unparsable = int(unparsable.sum())
    if n_unparsable:
        logger.warning("Dropping %d records with a missing or unparsable bite date", n_unparsable)

    return df[~unparsable], n_unparsable


def assign_incident_ids(df: pd.DataFrame) -> pd.DataFrame:
    """
    Sort incidents by date and stamp a dense 1-based ``id``.

    Ties on date keep their fetch order. Any existing ``id`` is replaced, so
    calling this again after a filter re-densifies the sequence.

    Parameters
    ----------
    df : pd.DataFrame
        Dataframe with a ``date`` column and, optionally, ``fetch_order``

    Returns
    -------
    pd.DataFrame
        New dataframe sorted by date with a fresh RangeIndex and ``id`` column
    """
    sort_cols = ["date", "fetch_order"] if "fetch_order" in df.columns else ["date"]
    df = df.sort_values(sort_cols, kind="stable").reset_index(drop=True)

    df["id"] = np.arange(1, len(df) + 1, dtype="int64")

    return df


def add_date_features(df: pd.DataFrame) -> pd.DataFrame:
    """
    Derive calendar fields from ``date``.

    Creates ``year``, ``month``, ``day`` and ``day_of_week`` (weekday name).
    """
    df = df.copy()

    df["year"] = df["date"].dt.year
    df["month"] = df["date"].dt.month
    df["day"] = df["date"].dt.day
    df["day_of_week"] = df["date"].dt.day_name()

    return df


def _coerce_gender(series: pd.Series) -> pd.Series:
    cleaned = series.astype("string").str.strip().str.upper()
    cleaned = cleaned.where(cleaned.isin(config.GENDER_CATEGORIES), "U").fillna("U")
    return pd.Categorical(cleaned, categories=config.GENDER_CATEGORIES)


def _coerce_spay_neuter(series: pd.Series) -> pd.Series:
    # Source only distinguishes "true" from everything else
    flag = series.astype("string").str.strip().str.lower().eq("true")
    return flag.fillna(False).astype(bool)


def project_incident_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename source fields to Incident names and drop everything else.

    The upstream ``uniqueid`` is not unique and ``species`` is constant, so
    neither survives. ``fetch_order`` is kept for tie-breaking.

    Parameters
    ----------
    df : pd.DataFrame
        Dataframe with parsed dates, date features and ``id``

    Returns
    -------
    pd.DataFrame
        Dataframe restricted to ``config.INCIDENT_COLUMNS`` plus ``fetch_order``
    """
    df = df.rename(columns=config.SOURCE_TO_INCIDENT_COLUMNS)

    for col in ["zip_code", "borough", "breed_raw", "age_raw"]:
        df[col] = df[col].astype("string")
    df["gender"] = _coerce_gender(df["gender"])
    df["spay_neuter_status"] = _coerce_spay_neuter(df["spay_neuter_status"])

    keep = config.INCIDENT_COLUMNS + (["fetch_order"] if "fetch_order" in df.columns else [])
    return df[keep]


def normalize_incidents(df: pd.DataFrame) -> tuple[pd.DataFrame, StageMetrics]:
    """
    Main normalization pipeline for raw dog bite records.

    Parameters
    ----------
    df : pd.DataFrame
        Raw records as produced by ``fetch.records_to_frame``

    Returns
    -------
    tuple[pd.DataFrame, StageMetrics]
        Incident dataframe ordered by ``id``, and row accounting for the stage
    """
    rows_in = len(df)

    df, n_unparsable = parse_bite_dates(df)
    df = assign_incident_ids(df)
    df = add_date_features(df)
    df = project_incident_columns(df)

    metrics = StageMetrics(
        stage="normalize",
        rows_in=rows_in,
        rows_out=len(df),
        counts={"unparsable_dates": n_unparsable},
    )
    return df, metrics
