"""End-to-end pipeline for the NYC dog bite report.

Runs the stages in order: fetch, normalize, enrich, report. Each stage only
sees the previous stage's output; nothing is kept between runs.
"""

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from . import boundaries
from . import enrichment
from . import fetch
from . import preprocessing
from . import reporting
from .age_lookup import AgeLookup, draft_age_lookup
from .config import PipelineSettings
from .metrics import RunMetrics, StageMetrics


logger = logging.getLogger(__name__)


def fetch_raw_incidents(settings: PipelineSettings) -> pd.DataFrame:
    """Fetch the raw records and return them as a DataFrame."""
    records = fetch.fetch_dog_bites(
        endpoint=settings.api_endpoint,
        dataset_id=settings.dataset_id,
        limit=settings.record_limit,
        app_token=settings.app_token,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        backoff_base=settings.backoff_base,
    )
    return fetch.records_to_frame(records)


def build_incident_dataset(
    df_raw: pd.DataFrame,
    df_zip: pd.DataFrame,
    age_lookup: AgeLookup,
    metrics: Optional[RunMetrics] = None,
) -> tuple[pd.DataFrame, RunMetrics]:
    """Normalize and enrich raw records into the final incident dataset.

    Args:
        df_raw: Raw records from ``fetch.records_to_frame``.
        df_zip: ZIP code reference table.
        age_lookup: Curated age lookup.
        metrics: Metrics to append to. A new ``RunMetrics`` is created if None.

    Returns:
        Final incidents and the run metrics.
    """
    if metrics is None:
        metrics = RunMetrics()
    metrics.age_lookup_version = age_lookup.version

    df, stage = preprocessing.normalize_incidents(df_raw)
    metrics.add(stage)

    df, stage = enrichment.enrich_incidents(df, df_zip, age_lookup)
    metrics.add(stage)

    return df, metrics


def run_report(settings: PipelineSettings, skip_report: bool = False) -> dict[str, Path]:
    """Fetch, clean and report on the dog bite data.

    Reference files are loaded before the network call so a bad path fails
    fast.

    Args:
        settings: Run settings.
        skip_report: Only write the incident dataset and run metrics.

    Returns:
        Artifact name -> written path.
    """
    df_zip = enrichment.load_zip_reference(settings.zip_reference_path)
    age_lookup = AgeLookup.from_excel(settings.age_lookup_path)

    gdf_boros = gdf_zip = None
    if not skip_report:
        gdf_boros = boundaries.load_borough_boundaries(settings.borough_boundaries_path)
        gdf_zip = boundaries.load_zip_boundaries(
            settings.zip_boundaries_path, settings.zip_boundary_key
        )

    metrics = RunMetrics()
    df_raw = fetch_raw_incidents(settings)
    metrics.add(StageMetrics(stage="fetch", rows_in=len(df_raw), rows_out=len(df_raw)))

    df, metrics = build_incident_dataset(df_raw, df_zip, age_lookup, metrics)

    output_dir = Path(settings.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if skip_report:
        artifacts = {"incidents": output_dir / "incidents.parquet"}
        reporting.write_incidents(df, artifacts["incidents"])
    else:
        artifacts = reporting.write_report(
            df,
            output_dir,
            gdf_boros=gdf_boros,
            gdf_zip=gdf_zip,
            zip_key=settings.zip_boundary_key,
        )

    metrics_path = output_dir / "run_metrics.json"
    metrics.save(metrics_path)
    artifacts["run_metrics"] = metrics_path

    return artifacts


def draft_missing_ages(settings: PipelineSettings, output_path: Path) -> pd.DataFrame:
    """Write a draft lookup sheet for raw ages the current lookup cannot resolve.

    Only records that survive the geographic filter are considered, since
    those are the only ones the report uses.
    """
    df_zip = enrichment.load_zip_reference(settings.zip_reference_path)
    age_lookup = AgeLookup.from_excel(settings.age_lookup_path)

    df, _ = build_incident_dataset(fetch_raw_incidents(settings), df_zip, age_lookup)
    known = df["age_raw"].map(lambda text: text in age_lookup).astype(bool)
    unresolved = df.loc[df["age_raw"].notna() & ~known, "age_raw"]

    df_draft = draft_age_lookup(unresolved)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df_draft.to_excel(output_path, index=False)

    logger.info("Wrote %d draft age entries to %s", len(df_draft), output_path)
    return df_draft
