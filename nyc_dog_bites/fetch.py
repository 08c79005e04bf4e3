"""NYC Dog Bite Data Loader.

This module fetches the DOHMH dog bite dataset from the Socrata Open Data API
in a single request and converts the raw JSON records into a DataFrame.

Socrata caps unqualified requests at a small default page size, so the caller
always sends an explicit limit. Transient failures (connection errors,
timeouts, HTTP 429 and 5xx) are retried with exponential backoff; anything
else is fatal to the run.
"""

import logging
import time
from typing import Optional

import pandas as pd
import requests
from sodapy import Socrata

from . import config


logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class FetchError(RuntimeError):
    """Raised when the dog bite records cannot be retrieved or parsed."""


def _create_socrata_client(api_endpoint: str, app_token: Optional[str], timeout: float) -> Socrata:
    """Create and configure a Socrata API client.

    Args:
        api_endpoint: The Socrata API endpoint (e.g., "data.cityofnewyork.us").
        app_token: Application token. Requests without one are throttled
            more aggressively but still work.
        timeout: Per-request timeout in seconds.

    Returns:
        Configured Socrata client instance.
    """
    return Socrata(api_endpoint, app_token, timeout=timeout)


def _validate_records(payload, dataset_id: str) -> list[dict]:
    """Check that a Socrata payload is a list of record dicts.

    Raises:
        FetchError: If the payload is not a JSON array of objects.
    """
    if not isinstance(payload, list):
        raise FetchError(
            f"Expected a JSON array from {dataset_id}, got {type(payload).__name__}"
        )
    bad = sum(1 for item in payload if not isinstance(item, dict))
    if bad:
        raise FetchError(f"{bad} of {len(payload)} records from {dataset_id} are not objects")
    return payload


def fetch_dog_bites(
    endpoint: Optional[str] = None,
    dataset_id: Optional[str] = None,
    limit: Optional[int] = None,
    app_token: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: Optional[int] = None,
    backoff_base: Optional[float] = None,
    client: Optional[Socrata] = None,
) -> list[dict]:
    """Fetch all raw dog bite records from the Socrata API.

    Args:
        endpoint: Socrata domain. Defaults to ``config.API_ENDPOINT``.
        dataset_id: Dataset identifier. Defaults to ``config.DATASET_ID``.
        limit: Maximum number of rows to request. Must be large enough to
            cover the whole table. Defaults to ``config.RECORD_LIMIT``.
        app_token: Socrata app token. Defaults to ``config.APP_TOKEN``.
        timeout: Per-request timeout in seconds.
        max_retries: Total number of attempts for transient failures.
        backoff_base: Base for exponential backoff between attempts.
        client: Optional pre-built Socrata client (mainly for tests).

    Returns:
        Raw records exactly as returned by the API. Field set and order are
        whatever upstream provides.

    Raises:
        ValueError: If ``limit`` is not a positive integer.
        FetchError: If the request fails after all retries or the response
            cannot be parsed.
    """
    endpoint = endpoint or config.API_ENDPOINT
    dataset_id = dataset_id or config.DATASET_ID
    limit = config.RECORD_LIMIT if limit is None else limit
    app_token = config.APP_TOKEN if app_token is None else app_token
    timeout = config.REQUEST_TIMEOUT if timeout is None else timeout
    max_retries = config.MAX_RETRIES if max_retries is None else max_retries
    backoff_base = config.BACKOFF_BASE if backoff_base is None else backoff_base

    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    if max_retries < 1:
        raise ValueError(f"max_retries must be at least 1, got {max_retries!r}")

    owns_client = client is None
    if owns_client:
        client = _create_socrata_client(endpoint, app_token, timeout)

    last_error = None
    try:
        for attempt in range(1, max_retries + 1):
            try:
                payload = client.get(dataset_id, limit=limit)
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                last_error = e
                logger.warning(
                    "%s: request failed (%s), attempt %d/%d", dataset_id, e, attempt, max_retries
                )
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status not in RETRYABLE_STATUS_CODES:
                    raise FetchError(f"Unable to fetch {endpoint}/{dataset_id}: {e}") from e
                last_error = e
                logger.warning("%s: HTTP %d, attempt %d/%d", dataset_id, status, attempt, max_retries)
            except ValueError as e:
                raise FetchError(f"Response for {dataset_id} is not valid JSON: {e}") from e
            else:
                records = _validate_records(payload, dataset_id)
                logger.info("Fetched %s records from %s/%s", f"{len(records):,}", endpoint, dataset_id)
                if len(records) >= limit:
                    logger.warning(
                        "Received %d records, equal to the limit; the table may be truncated",
                        len(records),
                    )
                return records

            if attempt < max_retries:
                delay = backoff_base**attempt
                logger.info("Retrying in %.1fs", delay)
                time.sleep(delay)
    finally:
        if owns_client:
            client.close()

    raise FetchError(
        f"Unable to fetch {endpoint}/{dataset_id} after {max_retries} attempts: {last_error}"
    )


def records_to_frame(records: list[dict]) -> pd.DataFrame:
    """Convert raw API records to a DataFrame with all source columns present.

    Args:
        records: Raw records from :func:`fetch_dog_bites`.

    Returns:
        DataFrame with every column in ``config.SOURCE_COLUMNS`` (missing ones
        filled with NA), any extra upstream columns, and ``fetch_order``
        recording the arrival position of each record.
    """
    df = pd.DataFrame.from_records(records)

    for col in config.SOURCE_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA

    df["fetch_order"] = range(len(df))
    return df
