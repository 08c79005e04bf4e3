"""Tests for the curated age lookup and the drafting rules."""

import numpy as np
import pandas as pd
import pytest

from nyc_dog_bites.age_lookup import AgeLookup, draft_age_entry, draft_age_lookup


def test_lookup_exact_matches(age_lookup):
    assert age_lookup.lookup("2 years") == (None, 2.0)
    assert age_lookup.lookup("3 months") == (3.0, None)
    assert age_lookup.lookup("1 year 6 months") == (None, 1.0)


def test_lookup_curated_entry_with_no_values(age_lookup):
    assert age_lookup.lookup("unknown") == (None, None)
    assert "unknown" in age_lookup


@pytest.mark.parametrize("text", ["2 Years", " 2 years", "2 years ", "two years", None, np.nan])
def test_lookup_misses_are_none(age_lookup, text):
    assert age_lookup.lookup(text) is None


def test_duplicate_keys_rejected():
    table = pd.DataFrame({"age": ["2", "2"], "age_months": [None, None], "age_years": [2, 2]})

    with pytest.raises(ValueError, match="duplicate"):
        AgeLookup(table)


def test_missing_columns_rejected():
    with pytest.raises(ValueError, match="missing columns"):
        AgeLookup(pd.DataFrame({"age": ["2"]}))


def test_version_tracks_content(age_table):
    first = AgeLookup(age_table)
    same = AgeLookup(age_table.copy())
    changed = AgeLookup(pd.concat([age_table, pd.DataFrame({"age": ["4"], "age_years": [4.0]})]))

    assert first.version == same.version
    assert first.version != changed.version
    assert len(first.version) == 12


def test_from_excel_keeps_keys_as_text(tmp_path):
    path = tmp_path / "age_lookup.xlsx"
    pd.DataFrame(
        {
            "Age Text": ["2", "3 months", 5],
            "Months": [None, 3, None],
            "Years": [2, None, 5],
        }
    ).to_excel(path, index=False)

    lookup = AgeLookup.from_excel(path)

    assert len(lookup) == 3
    assert lookup.lookup("2") == (None, 2.0)
    assert lookup.lookup("5") == (None, 5.0)
    assert lookup.lookup("3 months") == (3.0, None)
    assert lookup.to_frame()["age"].tolist() == ["2", "3 months", "5"]


def test_from_excel_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AgeLookup.from_excel(tmp_path / "nope.xlsx")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2", (None, 2.0)),
        ("2 years", (None, 2.0)),
        ("1.5 yrs", (None, 1.5)),
        ("3 months", (3.0, None)),
        ("3 MOS", (3.0, None)),
        ("1 year 6 months", (None, 1.0)),
        ("6 months 1 year", (None, 1.0)),
        ("18 months", (18.0, None)),
        ("8 weeks", (1.8, None)),
        ("6-8 months", (8.0, None)),
        ("45", (45.0, None)),
        ("puppy", None),
        (None, None),
    ],
)
def test_draft_age_entry(text, expected):
    assert draft_age_entry(text) == expected


def test_draft_age_lookup_deduplicates_and_sorts():
    df = draft_age_lookup(["3 months", "2", None, "3 months", "old"])

    assert df["age"].tolist() == ["2", "3 months", "old"]
    assert df.loc[0, "age_years"] == 2.0
    assert df.loc[1, "age_months"] == 3.0
    assert pd.isna(df.loc[2, "age_months"]) and pd.isna(df.loc[2, "age_years"])
