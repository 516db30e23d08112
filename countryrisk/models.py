"""
Data model (country risk results)
=================================

A country risk run produces one `CountryRiskResult` per country. Each of them
holds one `HazardResult` per peril, and each hazard result carries the
`EventDamageSet` (EDS) computed from an entity (assets + damage functions)
and a hazard event set.

All records are immutable (`frozen=True`) so that:
- calibration and economic loss adjustment return *new* results, and
- the caller can keep earlier results around (undo/redo in the CLI).

`DisasterEvent` is one historic EM-DAT record, used to compare simulated
damage frequency curves with reported losses.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
import numpy as np


@dataclass(frozen=True)
class DamageFunction:
    """Vulnerability curve: mean damage degree (MDD) and percentage of assets affected (PAA)."""
    function_id: int
    peril_id: str
    intensity: Tuple[float, ...]
    mdd: Tuple[float, ...]
    paa: Tuple[float, ...]
    name: str = ""

    def mean_damage_ratio(self, intensity):
        """Return MDD * PAA interpolated at `intensity` (scalar or array).

        Intensities outside the sampled range take the edge values.
        """
        x = np.asarray(self.intensity, dtype=float)
        mdd = np.interp(intensity, x, np.asarray(self.mdd, dtype=float))
        paa = np.interp(intensity, x, np.asarray(self.paa, dtype=float))
        return mdd * paa


@dataclass(frozen=True)
class Asset:
    value: float
    centroid_index: int
    damage_function_id: int = 1


@dataclass(frozen=True)
class Entity:
    """Exposed assets and the damage functions they refer to."""
    assets: Tuple[Asset, ...]
    damage_functions: Tuple[DamageFunction, ...] = ()

    def damage_function(self, peril_id: str, function_id: int) -> DamageFunction:
        for f in self.damage_functions:
            if f.peril_id == peril_id and f.function_id == function_id:
                return f
        raise KeyError(f"No damage function for peril={peril_id!r} id={function_id}")


@dataclass(frozen=True, eq=False)
class Hazard:
    """Hazard event set: intensity per (event, centroid) and the event frequencies."""
    peril_id: str
    intensity: np.ndarray
    frequency: np.ndarray
    event_ids: Tuple[int, ...] = ()
    reference_year: int = 2014

    @property
    def n_events(self) -> int:
        return int(self.intensity.shape[0])


@dataclass(frozen=True)
class EventDamageSet:
    """Damage per event. Once produced, the event count never changes."""
    damage: Tuple[float, ...]
    frequency: Tuple[float, ...]
    event_ids: Tuple[int, ...] = ()
    reference_year: int = 2014
    annotation: str = ""

    def __post_init__(self) -> None:
        if len(self.damage) != len(self.frequency):
            raise ValueError(f"damage ({len(self.damage)}) and frequency ({len(self.frequency)}) lengths differ")
        if self.event_ids and len(self.event_ids) != len(self.damage):
            raise ValueError("event_ids length does not match damage length")

    def __len__(self) -> int:
        return len(self.damage)

    @property
    def is_empty(self) -> bool:
        return len(self.damage) == 0

    @property
    def expected_annual_damage(self) -> float:
        return float(sum(d * f for d, f in zip(self.damage, self.frequency)))

    @classmethod
    def empty(cls) -> "EventDamageSet":
        return cls(damage=(), frequency=())


@dataclass(frozen=True)
class HazardResult:
    peril_id: str
    entity_file: str = ""
    hazard_set_file: str = ""
    eds: Optional[EventDamageSet] = None


@dataclass(frozen=True)
class CountryRiskResult:
    country_name: str
    hazards: Tuple[HazardResult, ...] = field(default_factory=tuple)
    iso3: Optional[str] = None


@dataclass(frozen=True)
class DisasterEvent:
    """Immutable record for one EM-DAT row (historic reported loss)."""
    event_id: int
    dis_no: str
    country: str
    disaster_type: str
    disaster_subtype: str
    start_year: int
    total_deaths: Optional[int] = None
    total_affected: Optional[int] = None
    # stored in US$ (not '000)
    total_damage_adj_usd: Optional[float] = None
