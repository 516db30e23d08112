"""
Loaders (Excel / JSON / NPZ -> records)
=======================================

This module reads every file the calibration scripts consume:

- the economic indicator table (one row per country) -> pandas DataFrame,
- the EM-DAT Excel export (historic damages) -> DisasterEvent list,
- entities (assets + damage functions, Excel) and hazard sets (NPZ),
- country risk results (JSON), so a CLI session can be saved and resumed.

Key ideas:
- We try multiple possible column names because tables from different
  sources spell columns differently (case, underscores, "Hazard" vs "Hazards").
- We keep conversion helpers (_to_int/_to_float/_to_str) to safely handle blanks.
- Loaders return plain records; nothing here edits the input files.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import json
import os
import re
import numpy as np
import pandas as pd
from .config import RiskConfig
from .errors import InvalidTableFile
from .models import (Asset, CountryRiskResult, DamageFunction, DisasterEvent, Entity,
                     EventDamageSet, Hazard, HazardResult)

# canonical indicator column -> accepted spellings
INDICATOR_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "Country": ("Country", "Country Name", "country_name"),
    "income_group": ("income_group", "Income Group"),
    "insurance_penetration": ("insurance_penetration", "Insurance Penetration"),
    "total_reserves": ("total_reserves", "Total Reserves"),
    "GDP_today": ("GDP_today", "GDP"),
    "central_government_debt": ("central_government_debt", "Central Government Debt"),
    "GDP_industry": ("GDP_industry", "GDP Industry"),
    "FM_resilience_index_supply_chain": ("FM_resilience_index_supply_chain",),
    "FM_resilience_index_risk_quality": ("FM_resilience_index_risk_quality",),
    "global_competitiveness_index": ("global_competitiveness_index", "Global Competitiveness Index"),
}
OPTIONAL_INDICATOR_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "ISO3": ("ISO3", "iso3", "Country Code"),
    "Natural_Hazards_Economic_Exposure": ("Natural_Hazards_Economic_Exposure",
                                          "Natural_Hazard_Economic_Exposure"),
}


def _to_int(x) -> Optional[int]:
    """Convert a cell to int, returning None if missing/invalid."""
    if pd.isna(x): return None
    try: return int(float(x))
    except (TypeError, ValueError): return None

def _to_float(x) -> Optional[float]:
    """Convert a cell to float, returning None if missing/invalid."""
    if pd.isna(x): return None
    try: return float(x)
    except (TypeError, ValueError): return None

def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x).strip()

def norm_key(s: str) -> str:
    """Lowercase and drop everything but letters/digits ("Costa Rica" -> "costarica")."""
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

def _find_col(df: pd.DataFrame, *names: str) -> Optional[str]:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {norm_key(c): c for c in cols}
    for n in names:
        nn = norm_key(n)
        if nn in norm_map:
            return norm_map[nn]
    return None

def _col(df: pd.DataFrame, *names: str) -> str:
    c = _find_col(df, *names)
    if c is None:
        raise KeyError(f"Missing required column. Tried={names}. Available={list(df.columns)}")
    return c


# ---------------- Indicator table ----------------

def resolve_table_path(path: Optional[str] = None,
                       config: Optional[RiskConfig] = None,
                       prompt: Optional[Callable[[str], Optional[str]]] = None) -> str:
    """Find the indicator table file.

    Order: explicit `path`, else the extended default table if it exists, else
    the standard default table. If the file does not exist, `prompt` (a file
    picker) is asked for a path; returning None means the user cancelled.
    """
    config = config or RiskConfig()
    if not path:
        path = config.default_table_path
        if os.path.exists(config.extended_table_path):
            path = config.extended_table_path

    if not os.path.exists(path):
        if prompt is None:
            raise InvalidTableFile(f"Indicator table not found: {path}")
        picked = prompt(config.default_table_path)
        if not picked:
            raise InvalidTableFile("No indicator table selected, aborted")
        path = picked

    if not os.path.exists(path):
        raise InvalidTableFile(f"Indicator table not found: {path}")
    return path


def read_indicator_table(path: str, config: Optional[RiskConfig] = None) -> pd.DataFrame:
    """Read the raw indicator table (.xls/.xlsx/.csv) with canonical column names.

    Missing-data sentinels (-999) are replaced by NaN.
    """
    config = config or RiskConfig()
    ext = os.path.splitext(path)[1].lower()
    if ext == ".csv":
        df = pd.read_csv(path)
    elif ext == ".xlsx":
        df = pd.read_excel(path, engine="openpyxl")
    elif ext == ".xls":
        df = pd.read_excel(path, engine="xlrd")
    else:
        raise InvalidTableFile(f"Unsupported indicator table format: {path} (use .xls, .xlsx or .csv)")
    return canonical_indicator_frame(df, config.missing_data_value)


def canonical_indicator_frame(df: pd.DataFrame, missing_data_value: float = -999) -> pd.DataFrame:
    """Rename columns to their canonical names and coerce the numeric ones."""
    df = df.rename(columns={c: str(c).strip() for c in df.columns})
    rename = {}
    for canon, names in INDICATOR_COLUMNS.items():
        rename[_col(df, *names)] = canon
    for canon, names in OPTIONAL_INDICATOR_COLUMNS.items():
        c = _find_col(df, *names)
        if c is not None:
            rename[c] = canon
    df = df[list(rename)].rename(columns=rename)

    df["Country"] = df["Country"].map(_to_str)
    if "ISO3" in df.columns:
        df["ISO3"] = df["ISO3"].map(_to_str).str.upper()
    for c in df.columns:
        if c in ("Country", "ISO3"):
            continue
        df[c] = pd.to_numeric(df[c], errors="coerce").replace(missing_data_value, np.nan)
    return df.reset_index(drop=True)


# ---------------- EM-DAT ----------------

def _damage_adjusted_column(df: pd.DataFrame) -> Optional[str]:
    cols = list(df.columns)
    exact = "Total Damage, Adjusted ('000 US$)"
    if exact in cols:
        return exact
    exact_norm = norm_key(exact)
    for c in cols:
        if norm_key(c) == exact_norm:
            return c
    for c in cols:
        nc = norm_key(c)
        if "totaldamage" in nc and "adjust" in nc:
            return c
    return None

def emdat_events_from_frame(df: pd.DataFrame) -> List[DisasterEvent]:
    """Convert an EM-DAT export (already read into a DataFrame) into DisasterEvent records.

    Note: Total Damage, Adjusted ('000 US$) is converted to US$ by *1000.
    """
    df = df.rename(columns={c: str(c).strip() for c in df.columns})

    dis_no_col = _col(df, "DisNo.", "Dis No", "DisNo", "Disaster No", "Disaster Number")
    country_col = _col(df, "Country", "Country/Area", "Country / Area")
    type_col = _col(df, "Disaster Type", "Disaster type", "Type")
    subtype_col = _find_col(df, "Disaster Subtype", "Disaster Sub-type", "SubType")
    sy_col = _col(df, "Start Year", "Start year", "Year")
    deaths_col = _find_col(df, "Total Deaths", "Deaths")
    affected_col = _find_col(df, "Total Affected", "Affected")
    dmg_col = _damage_adjusted_column(df)

    events: List[DisasterEvent] = []
    for i, row in df.iterrows():
        year = _to_int(row[sy_col])
        if year is None:
            continue
        dmg = _to_float(row[dmg_col]) if dmg_col else None
        if dmg is not None and "'000" in dmg_col:
            dmg = dmg * 1000.0  # convert to US$
        events.append(DisasterEvent(
            event_id=int(i),
            dis_no=_to_str(row[dis_no_col]),
            country=_to_str(row[country_col]),
            disaster_type=_to_str(row[type_col]),
            disaster_subtype=_to_str(row[subtype_col]) if subtype_col else "",
            start_year=year,
            total_deaths=_to_int(row[deaths_col]) if deaths_col else None,
            total_affected=_to_int(row[affected_col]) if affected_col else None,
            total_damage_adj_usd=dmg,
        ))
    return events

def load_emdat_xlsx(path: str) -> List[DisasterEvent]:
    return emdat_events_from_frame(pd.read_excel(path, engine="openpyxl"))


# ---------------- Entity / hazard ----------------

def entity_from_frames(assets: pd.DataFrame, damagefunctions: pd.DataFrame) -> Entity:
    """Build an Entity from an `assets` and a `damagefunctions` table."""
    value_col = _col(assets, "Value", "value")
    centroid_col = _col(assets, "centroid_index", "Centroid_ID", "centroid")
    asset_fun_col = _find_col(assets, "DamageFunID", "damage_function_id")

    out_assets: List[Asset] = []
    for _, row in assets.iterrows():
        fun_id = _to_int(row[asset_fun_col]) if asset_fun_col else None
        out_assets.append(Asset(value=float(row[value_col]),
                                centroid_index=int(row[centroid_col]),
                                damage_function_id=fun_id if fun_id is not None else 1))

    fun_col = _col(damagefunctions, "DamageFunID", "damage_function_id")
    peril_col = _col(damagefunctions, "peril_ID", "peril_id", "peril")
    int_col = _col(damagefunctions, "Intensity")
    mdd_col = _col(damagefunctions, "MDD")
    paa_col = _col(damagefunctions, "PAA")
    name_col = _find_col(damagefunctions, "name", "Description")

    functions: List[DamageFunction] = []
    for (peril, fun_id), grp in damagefunctions.groupby([peril_col, fun_col], sort=False):
        grp = grp.sort_values(int_col)
        functions.append(DamageFunction(
            function_id=int(fun_id),
            peril_id=_to_str(peril),
            intensity=tuple(float(v) for v in grp[int_col]),
            mdd=tuple(float(v) for v in grp[mdd_col]),
            paa=tuple(float(v) for v in grp[paa_col]),
            name=_to_str(grp[name_col].iloc[0]) if name_col else "",
        ))
    return Entity(assets=tuple(out_assets), damage_functions=tuple(functions))

def load_entity_xlsx(path: str) -> Entity:
    sheets = pd.read_excel(path, sheet_name=["assets", "damagefunctions"], engine="openpyxl")
    return entity_from_frames(sheets["assets"], sheets["damagefunctions"])

def load_hazard_npz(path: str) -> Hazard:
    with np.load(path, allow_pickle=False) as data:
        intensity = np.asarray(data["intensity"], dtype=float)
        frequency = np.asarray(data["frequency"], dtype=float)
        event_ids = tuple(int(v) for v in data["event_ids"]) if "event_ids" in data else ()
        peril_id = str(data["peril_id"]) if "peril_id" in data else ""
        reference_year = int(data["reference_year"]) if "reference_year" in data else 2014
    if intensity.ndim != 2 or intensity.shape[0] != frequency.shape[0]:
        raise ValueError(f"Inconsistent hazard set in {path}: intensity {intensity.shape}, frequency {frequency.shape}")
    return Hazard(peril_id=peril_id, intensity=intensity, frequency=frequency,
                  event_ids=event_ids, reference_year=reference_year)


# ---------------- Results (JSON) ----------------

def _eds_to_dict(eds: Optional[EventDamageSet]) -> Optional[dict]:
    if eds is None:
        return None
    return {
        "damage": list(eds.damage),
        "frequency": list(eds.frequency),
        "event_ids": list(eds.event_ids),
        "reference_year": eds.reference_year,
        "annotation": eds.annotation,
    }

def _eds_from_dict(d: Optional[dict]) -> Optional[EventDamageSet]:
    if d is None:
        return None
    return EventDamageSet(
        damage=tuple(float(v) for v in d.get("damage", [])),
        frequency=tuple(float(v) for v in d.get("frequency", [])),
        event_ids=tuple(int(v) for v in d.get("event_ids", [])),
        reference_year=int(d.get("reference_year", 2014)),
        annotation=d.get("annotation", ""),
    )

def results_to_payload(results: Sequence[CountryRiskResult]) -> List[dict]:
    return [
        {
            "country_name": r.country_name,
            "iso3": r.iso3,
            "hazards": [
                {
                    "peril_id": h.peril_id,
                    "entity_file": h.entity_file,
                    "hazard_set_file": h.hazard_set_file,
                    "eds": _eds_to_dict(h.eds),
                }
                for h in r.hazards
            ],
        }
        for r in results
    ]

def results_from_payload(payload: Sequence[dict]) -> Tuple[CountryRiskResult, ...]:
    return tuple(
        CountryRiskResult(
            country_name=item["country_name"],
            iso3=item.get("iso3"),
            hazards=tuple(
                HazardResult(
                    peril_id=h["peril_id"],
                    entity_file=h.get("entity_file", ""),
                    hazard_set_file=h.get("hazard_set_file", ""),
                    eds=_eds_from_dict(h.get("eds")),
                )
                for h in item.get("hazards", [])
            ),
        )
        for item in payload
    )

def load_results_json(path: str) -> Tuple[CountryRiskResult, ...]:
    with open(path, "r", encoding="utf-8") as f:
        return results_from_payload(json.load(f))

def save_results_json(results: Sequence[CountryRiskResult], path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(results_to_payload(results), f, ensure_ascii=False, indent=2)
