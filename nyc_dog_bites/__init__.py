"""NYC Dog Bite Report Package.

This package fetches the NYC DOHMH dog bite dataset, normalizes and enriches it
with ZIP code, age and boundary reference data, and produces the descriptive
tables and maps for the report.
"""

__version__ = "0.1.0"
