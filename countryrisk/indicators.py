"""
Indicator table (normalization + country lookup)
================================================

The economic indicator table has one row per country. Before it is used:

1) Two raw columns are bucketed into small factor sets:
   - income_group 1..4 (World Bank) -> {0.9, 0.4, 0.5, 1.0}; missing -> 0.4.
     The loss vs. GNI per capita relationship is assumed to be an inverted U
     (highest losses for middle income countries).
   - insurance_penetration (% of GDP) -> 0 (<=5), 0.5 (5..10], 1.0 (>10); missing -> 0.
2) An index (normalized key -> row position) is built so that a country can
   be found by ISO3 code or by name regardless of case and punctuation.

`IndicatorTable` is read-only once built.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional
import os
import numpy as np
import pandas as pd
from .errors import CountryNotFound
from .config import RiskConfig
from .loader import norm_key, read_indicator_table

INCOME_GROUP_FACTORS: Dict[int, float] = {1: 0.9, 2: 0.4, 3: 0.5, 4: 1.0}
INCOME_GROUP_MISSING = 0.4

# (upper bound inclusive, factor)
INSURANCE_PENETRATION_BUCKETS = ((5.0, 0.0), (10.0, 0.5), (np.inf, 1.0))
INSURANCE_PENETRATION_MISSING = 0.0

HAZARD_EXPOSURE_COLUMN = "Natural_Hazards_Economic_Exposure"


def normalize_income_group(raw: pd.Series) -> pd.Series:
    """Map income groups 1-4 to their factors, NaN to the default.

    Any other value is not a valid income group and becomes NaN.
    """
    raw = pd.to_numeric(raw, errors="coerce")
    out = raw.map(lambda v: INCOME_GROUP_FACTORS.get(v, np.nan)).astype(float)
    out.loc[raw.isna()] = INCOME_GROUP_MISSING
    return out


def normalize_insurance_penetration(raw: pd.Series) -> pd.Series:
    """Bucket insurance penetration; bucket boundaries belong to the lower bucket."""
    raw = pd.to_numeric(raw, errors="coerce")
    out = pd.Series(INSURANCE_PENETRATION_MISSING, index=raw.index, dtype=float)
    lower = -np.inf
    for upper, factor in INSURANCE_PENETRATION_BUCKETS:
        out.loc[(raw > lower) & (raw <= upper)] = factor
        lower = upper
    return out


def normalize_table(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of the (canonical) table with the bucketed columns replaced."""
    df = df.copy()
    df["income_group"] = normalize_income_group(df["income_group"])
    df["insurance_penetration"] = normalize_insurance_penetration(df["insurance_penetration"])
    return df


@dataclass(frozen=True, eq=False)
class IndicatorTable:
    """Normalized indicator table plus lookup indices.

    - `by_iso3["CRI"]` gives the row position of Costa Rica.
    - `by_name["costarica"]` gives the same row by normalized name.
    """
    data: pd.DataFrame
    by_iso3: Dict[str, int]
    by_name: Dict[str, int]
    source: str = ""

    @property
    def has_hazard_exposure(self) -> bool:
        return HAZARD_EXPOSURE_COLUMN in self.data.columns

    @property
    def countries(self):
        return list(self.data["Country"])

    def find(self, country_name: str, iso3: Optional[str] = None) -> Optional[int]:
        """Return the row position for a country, or None."""
        if iso3:
            pos = self.by_iso3.get(norm_key(iso3))
            if pos is not None:
                return pos
        return self.by_name.get(norm_key(country_name))

    def row(self, country_name: str, iso3: Optional[str] = None) -> pd.Series:
        pos = self.find(country_name, iso3)
        if pos is None:
            raise CountryNotFound(country_name or iso3 or "", self.source)
        return self.data.iloc[pos]


def build_indicator_table(df: pd.DataFrame, source: str = "") -> IndicatorTable:
    """Normalize a canonical indicator frame and build the lookup indices.

    When a key appears twice, the first row wins.
    """
    data = normalize_table(df)
    by_iso3: Dict[str, int] = {}
    by_name: Dict[str, int] = {}
    for pos, name in enumerate(data["Country"]):
        by_name.setdefault(norm_key(name), pos)
    if "ISO3" in data.columns:
        for pos, code in enumerate(data["ISO3"]):
            if code:
                by_iso3.setdefault(norm_key(code), pos)
    return IndicatorTable(data=data, by_iso3=by_iso3, by_name=by_name, source=source)


def load_indicator_table(path: str, config: Optional[RiskConfig] = None) -> IndicatorTable:
    """Read, normalize and index the indicator table at `path`."""
    df = read_indicator_table(path, config)
    return build_indicator_table(df, source=os.path.basename(path))
