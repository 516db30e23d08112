"""
Error types
===========

Every failure the calibration code can hit has its own exception class, so
that batch processing can record *which* country failed and why.
"""

from __future__ import annotations
from typing import Sequence


class CountryRiskError(Exception):
    """Base class for all countryrisk errors."""


class MissingArgument(CountryRiskError, ValueError):
    pass


class InvalidTableFile(CountryRiskError, FileNotFoundError):
    """Indicator table not found, or the user cancelled the file selection."""


class CountryNotFound(CountryRiskError, KeyError):
    def __init__(self, country: str, table_name: str = "") -> None:
        self.country = country
        self.table_name = table_name
        where = f" in {table_name}" if table_name else ""
        super().__init__(
            f"{country} not found{where}. Make sure all country names (or ISO3 codes) "
            f"match the names used in the indicator table."
        )

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return str(self.args[0])


class MissingIndicatorData(CountryRiskError, ValueError):
    def __init__(self, country: str, term: str, columns: Sequence[str]) -> None:
        self.country = country
        self.term = term
        self.columns = tuple(columns)
        super().__init__(
            f"Missing data - could not calculate {term} of {country}. "
            f"Make sure the indicator table contains {', '.join(self.columns)} for {country}."
        )
