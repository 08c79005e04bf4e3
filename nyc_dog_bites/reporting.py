"""
Descriptive statistics and report artifacts for NYC dog bite incidents.

Every function here consumes the final incident DataFrame produced by
``enrichment.enrich_incidents`` and never modifies it.
"""

import logging
from pathlib import Path
from typing import Optional

import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd

from . import config
from . import plotting


logger = logging.getLogger(__name__)


def age_in_years(df: pd.DataFrame) -> pd.Series:
    """Single numeric age per incident: years when given, else months / 12."""
    return df["age_years"].fillna(df["age_months"] / 12).rename("age_in_years")


def summary_statistics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Headline numbers for the report.

    Returns
    -------
    pd.DataFrame
        Two columns, ``metric`` and ``value``
    """
    n = len(df)
    ages = age_in_years(df)

    def pct(mask) -> float:
        return round(100 * float(mask.sum()) / n, 1) if n else float("nan")

    rows = [
        ("total_incidents", n),
        ("first_date", df["date"].min().date().isoformat() if n else None),
        ("last_date", df["date"].max().date().isoformat() if n else None),
        ("distinct_zip_codes", int(df["zip_code"].nunique())),
        ("pct_age_resolved", pct(ages.notna())),
        ("pct_spayed_neutered", pct(df["spay_neuter_status"])),
        ("median_age_years", float(ages.median()) if ages.notna().any() else None),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def counts_by(df: pd.DataFrame, column: str, top_n: Optional[int] = None) -> pd.DataFrame:
    """
    Count and percentage of incidents per value of ``column``.

    Missing values are counted under ``(missing)``. With ``top_n`` only the
    most frequent values are kept; percentages still use the full total.
    """
    values = df[column].astype("string").fillna("(missing)")
    counts = values.value_counts().rename("count").reset_index()
    counts.columns = [column, "count"]

    total = counts["count"].sum()
    counts["percent"] = (100 * counts["count"] / total).round(1) if total else 0.0

    if top_n is not None:
        counts = counts.head(top_n)
    return counts.reset_index(drop=True)


def incidents_by_year_borough(df: pd.DataFrame) -> pd.DataFrame:
    """Year x borough table of incident counts."""
    return pd.crosstab(df["year"], df["county_borough"]).rename_axis(columns=None).reset_index()


def monthly_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Incidents per calendar month, with empty months filled as zero."""
    monthly = df.set_index("date").resample("MS").size()
    return monthly.rename("incidents").rename_axis("month").reset_index()


def zip_rates(df: pd.DataFrame) -> pd.DataFrame:
    """
    Incidents per ZIP code and per 10,000 residents (``rate_per_10k``).

    The rate is NA where the reference population is missing or zero.
    """
    grouped = df.groupby("zip_code", dropna=True).agg(
        incidents=("id", "size"),
        population=("population", "first"),
        county_borough=("county_borough", "first"),
    )
    population = grouped["population"].where(grouped["population"] > 0)
    grouped["rate_per_10k"] = grouped["incidents"] / population * config.RATE_PER_RESIDENTS

    return grouped.reset_index().sort_values("incidents", ascending=False, kind="stable")


def unmapped_zip_codes(
    df: pd.DataFrame, gdf_zip: gpd.GeoDataFrame, zip_key: Optional[str] = None
) -> list:
    """ZIP codes present in the incidents but missing from the boundary file."""
    if zip_key is None:
        zip_key = config.ZIP_BOUNDARY_KEY

    incident_zips = set(df["zip_code"].dropna().astype(str))
    boundary_zips = set(gdf_zip[zip_key].astype(str))
    return sorted(incident_zips - boundary_zips)


def _to_output_frame(df: pd.DataFrame) -> pd.DataFrame:
    df_out = df.copy()
    df_out["gender"] = df_out["gender"].astype("string")
    return df_out[config.INCIDENT_SCHEMA.names]


def write_incidents(df: pd.DataFrame, path) -> Path:
    """Write the final incidents to Parquet with the fixed output schema."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    _to_output_frame(df).to_parquet(path, index=False, schema=config.INCIDENT_SCHEMA)
    return path


def _save_figure(fig, path: Path) -> Path:
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def write_report(
    df: pd.DataFrame,
    output_dir,
    gdf_boros: Optional[gpd.GeoDataFrame] = None,
    gdf_zip: Optional[gpd.GeoDataFrame] = None,
    zip_key: Optional[str] = None,
) -> dict[str, Path]:
    """
    Write the incident dataset, summary tables and figures.

    Parameters
    ----------
    df : pd.DataFrame
        Final incidents
    output_dir : str or Path
        Directory for all artifacts (created if needed)
    gdf_boros : gpd.GeoDataFrame, optional
        Borough polygons; enables the borough choropleth
    gdf_zip : gpd.GeoDataFrame, optional
        ZIP polygons; enables the ZIP choropleth
    zip_key : str, optional
        ZIP column in ``gdf_zip``

    Returns
    -------
    dict[str, Path]
        Artifact name -> written path
    """
    if zip_key is None:
        zip_key = config.ZIP_BOUNDARY_KEY

    output_dir = Path(output_dir)
    tables_dir = output_dir / "tables"
    figures_dir = output_dir / "figures"
    tables_dir.mkdir(parents=True, exist_ok=True)
    figures_dir.mkdir(parents=True, exist_ok=True)

    artifacts = {}

    artifacts["incidents"] = write_incidents(df, output_dir / "incidents.parquet")

    df_monthly = monthly_counts(df)
    df_rates = zip_rates(df)

    tables = {
        "summary": summary_statistics(df),
        "breeds": counts_by(df, "breed_normalized", top_n=config.TOP_N_BREEDS),
        "gender": counts_by(df, "gender"),
        "spay_neuter": counts_by(df, "spay_neuter_status"),
        "boroughs": counts_by(df, "county_borough"),
        "day_of_week": counts_by(df, "day_of_week"),
        "year_borough": incidents_by_year_borough(df),
        "monthly": df_monthly,
        "zip_rates": df_rates,
    }
    for name, table in tables.items():
        path = tables_dir / f"{name}.csv"
        table.to_csv(path, index=False)
        artifacts[name] = path

    fig, _ = plotting.plot_monthly_time_series(df_monthly)
    artifacts["monthly_time_series"] = _save_figure(fig, figures_dir / "monthly_time_series.png")

    if gdf_boros is not None:
        fig, _ = plotting.plot_borough_choropleth(df, gdf_boros)
        artifacts["borough_choropleth"] = _save_figure(fig, figures_dir / "borough_choropleth.png")

    if gdf_zip is not None:
        missing = unmapped_zip_codes(df, gdf_zip, zip_key)
        if missing:
            logger.warning(
                "%d ZIP codes have no boundary polygon and are left off the map: %s",
                len(missing),
                missing[:20],
            )
        fig, _ = plotting.plot_zip_choropleth(
            df_rates, gdf_zip, zip_key=zip_key, gdf_boros=gdf_boros
        )
        artifacts["zip_choropleth"] = _save_figure(fig, figures_dir / "zip_choropleth.png")

    logger.info("Wrote %d report artifacts to %s", len(artifacts), output_dir)
    return artifacts
