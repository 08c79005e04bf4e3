"""Tests for report aggregates, figures and boundary loading."""

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from nyc_dog_bites import plotting
from nyc_dog_bites.boundaries import load_borough_boundaries, load_zip_boundaries
from nyc_dog_bites.pipeline import build_incident_dataset
from nyc_dog_bites.reporting import (
    age_in_years,
    counts_by,
    incidents_by_year_borough,
    monthly_counts,
    summary_statistics,
    unmapped_zip_codes,
    write_report,
    zip_rates,
)


@pytest.fixture
def incidents(raw_frame, zip_reference, age_lookup):
    df, _ = build_incident_dataset(raw_frame, zip_reference, age_lookup)
    return df


def test_age_in_years_prefers_years(incidents):
    ages = age_in_years(incidents)

    assert ages.tolist()[:3] == [0.25, 1.0, 2.0]
    assert ages.iloc[3:].isna().all()


def test_summary_statistics(incidents):
    summary = summary_statistics(incidents).set_index("metric")["value"]

    assert summary["total_incidents"] == 5
    assert summary["first_date"] == "2018-01-15"
    assert summary["last_date"] == "2018-06-01"
    assert summary["distinct_zip_codes"] == 3
    assert summary["pct_age_resolved"] == 60.0
    assert summary["pct_spayed_neutered"] == 20.0
    assert summary["median_age_years"] == 1.0


def test_counts_by_with_missing_and_top_n(incidents):
    breeds = counts_by(incidents, "breed_normalized")

    assert breeds.iloc[0].tolist() == ["pit bull mix", 2, 40.0]
    assert "(missing)" in breeds["breed_normalized"].tolist()
    assert breeds["count"].sum() == 5

    top = counts_by(incidents, "breed_normalized", top_n=1)
    assert len(top) == 1


def test_incidents_by_year_borough(incidents):
    table = incidents_by_year_borough(incidents)

    assert table["year"].tolist() == [2018]
    assert table.loc[0, "Bronx"] == 2
    assert table.loc[0, "Manhattan"] == 1


def test_monthly_counts_fills_gaps(incidents):
    monthly = monthly_counts(incidents)

    assert monthly["month"].tolist() == list(pd.date_range("2018-01-01", "2018-06-01", freq="MS"))
    assert monthly["incidents"].tolist() == [2, 0, 1, 0, 1, 1]


def test_zip_rates(incidents):
    rates = zip_rates(incidents).set_index("zip_code")

    assert rates.loc["11201", "incidents"] == 2
    assert rates.loc["11201", "rate_per_10k"] == pytest.approx(0.4)
    # Reference population of zero gives no rate
    assert pd.isna(rates.loc["10001", "rate_per_10k"])


def test_unmapped_zip_codes(incidents, zip_boundaries):
    assert unmapped_zip_codes(incidents, zip_boundaries) == []
    assert unmapped_zip_codes(incidents, zip_boundaries.iloc[:1]) == ["10451", "11201"]


def test_plots_return_figures(incidents, borough_boundaries, zip_boundaries):
    fig, ax = plotting.plot_monthly_time_series(monthly_counts(incidents))
    assert ax.get_title() == "Reported Dog Bites per Month"
    plt.close(fig)

    fig, ax = plotting.plot_borough_choropleth(incidents, borough_boundaries)
    labels = sorted(text.get_text() for text in ax.texts)
    assert labels == sorted(borough_boundaries["boro_name"])
    plt.close(fig)

    fig, _ = plotting.plot_zip_choropleth(
        zip_rates(incidents), zip_boundaries, gdf_boros=borough_boundaries
    )
    plt.close(fig)


def test_write_report_without_boundaries(incidents, tmp_path):
    artifacts = write_report(incidents, tmp_path / "out")

    assert "borough_choropleth" not in artifacts
    assert "zip_choropleth" not in artifacts
    assert artifacts["monthly_time_series"].exists()
    gender = pd.read_csv(artifacts["gender"]).set_index("gender")["count"]
    assert gender.to_dict() == {"M": 2, "U": 2, "F": 1}


def test_load_boundaries_round_trip(tmp_path, borough_boundaries, zip_boundaries):
    boro_path = tmp_path / "boroughs.geojson"
    borough_boundaries.to_file(boro_path, driver="GeoJSON")

    gdf = load_borough_boundaries(boro_path)

    assert gdf.crs.to_epsg() == 4326
    assert list(gdf.columns) == ["boro_name", "geometry"]

    zip_path = tmp_path / "zips.geojson"
    duplicated = pd.concat([zip_boundaries, zip_boundaries.iloc[:1]], ignore_index=True)
    duplicated.to_file(zip_path, driver="GeoJSON")

    gdf_zip = load_zip_boundaries(zip_path)
    assert sorted(gdf_zip["modzcta"]) == ["10001", "10451", "11201"]


def test_load_boundaries_requires_key(tmp_path, zip_boundaries):
    path = tmp_path / "zips.geojson"
    zip_boundaries.to_file(path, driver="GeoJSON")

    with pytest.raises(ValueError, match="zcta"):
        load_zip_boundaries(path, key="zcta")

    with pytest.raises(FileNotFoundError):
        load_borough_boundaries(tmp_path / "missing.geojson")
