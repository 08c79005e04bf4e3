"""Curated lookup from free-text dog ages to numeric months/years.

The lookup is a hand-maintained spreadsheet with three columns: the raw age
text exactly as it appears in the source, the age in months, and the age in
years. At most one of the two numeric columns is filled per row. Matching is
exact; no normalization is applied to either side.

``draft_age_entry`` encodes the rules curators follow when adding rows. The
pipeline never calls it; it only exists to pre-fill new entries for review.
"""

import hashlib
import logging
import re
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from . import config


logger = logging.getLogger(__name__)

AgeValue = tuple[Optional[float], Optional[float]]

_NUMBER_UNIT = re.compile(r"(\d+(?:\.\d+)?)\s*-?\s*([a-z]*)")


def _to_optional(value) -> Optional[float]:
    return None if pd.isna(value) else float(value)


class AgeLookup:
    """Versioned, read-only mapping from raw age text to (months, years).

    Args:
        table: DataFrame with columns ``age``, ``age_months``, ``age_years``.
        version: Identifier recorded in run metrics. Defaults to a short
            digest of the table content.

    Raises:
        ValueError: If columns are missing or a key appears more than once.
    """

    def __init__(self, table: pd.DataFrame, version: Optional[str] = None):
        missing = [c for c in config.AGE_LOOKUP_COLUMNS if c not in table.columns]
        if missing:
            raise ValueError(f"Age lookup is missing columns: {missing}")

        table = table.loc[table["age"].notna(), config.AGE_LOOKUP_COLUMNS].copy()
        table["age"] = table["age"].astype("string")
        table["age_months"] = pd.to_numeric(table["age_months"], errors="coerce").astype("float64")
        table["age_years"] = pd.to_numeric(table["age_years"], errors="coerce").astype("float64")

        duplicated = table.loc[table["age"].duplicated(), "age"].unique().tolist()
        if duplicated:
            raise ValueError(f"Age lookup has duplicate keys: {duplicated[:10]}")

        self._table = table.reset_index(drop=True)
        self._entries = {
            row.age: (_to_optional(row.age_months), _to_optional(row.age_years))
            for row in self._table.itertuples(index=False)
        }
        self.version = version or self._digest()

    @classmethod
    def from_excel(cls, path: Union[str, Path], version: Optional[str] = None) -> "AgeLookup":
        """Load the lookup from the first sheet of a spreadsheet.

        Columns are taken by position (key, months, years) so header
        spelling in the curated file does not matter. Every cell is read as
        text first so numeric-looking keys such as ``"2"`` stay strings.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Age lookup not found: {path}")

        table = pd.read_excel(path, sheet_name=0, dtype=str)
        if table.shape[1] < 3:
            raise ValueError(f"Age lookup {path} must have 3 columns, found {table.shape[1]}")
        table = table.iloc[:, :3]
        table.columns = config.AGE_LOOKUP_COLUMNS

        lookup = cls(table, version=version)
        logger.info(
            "Loaded %d age lookup entries from %s (version %s)", len(lookup), path, lookup.version
        )
        return lookup

    def _digest(self) -> str:
        content = self._table.to_csv(index=False).encode("utf-8")
        return hashlib.sha256(content).hexdigest()[:12]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text) -> bool:
        return self.lookup(text) is not None

    def lookup(self, text) -> Optional[AgeValue]:
        """Return ``(age_months, age_years)`` for an exact key, else None."""
        if text is None or pd.isna(text):
            return None
        return self._entries.get(text)

    def to_frame(self) -> pd.DataFrame:
        return self._table.copy()


def _classify_unit(word: str) -> Optional[str]:
    if not word:
        return None
    if word.startswith("w"):
        return "weeks"
    if word.startswith("mo") or word == "m":
        return "months"
    if word.startswith("y"):
        return "years"
    return None


def draft_age_entry(text) -> Optional[AgeValue]:
    """Propose ``(age_months, age_years)`` for a raw age string.

    Rules:
      - a bare number is years;
      - a number followed by a month/week unit uses that unit, weeks being
        converted to months;
      - unitless numbers take the unit qualifier found elsewhere in the text
        (``"6-8 months"``), else years;
      - years above ``MAX_PLAUSIBLE_AGE_YEARS`` are read as months;
      - with several magnitudes the longest duration wins and is reported
        in its own unit, so ``"1 year 6 months"`` is one year.

    Returns None when the text holds no number.
    """
    if text is None or pd.isna(text):
        return None
    lowered = str(text).casefold()

    if "week" in lowered or re.search(r"\d\s*wks?\b", lowered):
        default_unit = "weeks"
    elif "month" in lowered or re.search(r"\d\s*mos?\b", lowered):
        default_unit = "months"
    else:
        default_unit = "years"

    candidates = []
    for number, word in _NUMBER_UNIT.findall(lowered):
        value = float(number)
        unit = _classify_unit(word) or default_unit

        if unit == "years" and value > config.MAX_PLAUSIBLE_AGE_YEARS:
            unit = "months"
        if unit == "weeks":
            unit = "months"
            value = round(value * 12 / config.WEEKS_PER_YEAR, 1)

        months_equivalent = value * 12 if unit == "years" else value
        candidates.append((months_equivalent, unit, value))

    if not candidates:
        return None

    _, unit, value = max(candidates, key=lambda c: c[0])
    if unit == "years":
        return None, value
    return value, None


def draft_age_lookup(texts: Iterable) -> pd.DataFrame:
    """Build a draft lookup table for curation from raw age strings.

    Texts with no number are kept with empty values so curators still see
    them.
    """
    unique_texts = sorted({t for t in texts if t is not None and not pd.isna(t)})

    rows = []
    for text in unique_texts:
        months, years = draft_age_entry(text) or (None, None)
        rows.append({"age": text, "age_months": months, "age_years": years})

    return pd.DataFrame(rows, columns=config.AGE_LOOKUP_COLUMNS)
