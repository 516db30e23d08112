import numpy as np
import pandas as pd
import pytest

from countryrisk.indicators import build_indicator_table
from countryrisk.loader import canonical_indicator_frame
from countryrisk.models import (Asset, CountryRiskResult, DamageFunction, Entity, EventDamageSet,
                                Hazard, HazardResult)


def raw_indicator_frame(extended=False):
    """Indicator table as it comes out of the spreadsheet (-999 = missing)."""
    data = {
        "Country": ["Costa Rica", "Colombia", "Resilientland", "Missingland"],
        "ISO3": ["CRI", "COL", "RSL", "MSL"],
        "income_group": [3, 2, 4, 1],
        "insurance_penetration": [7, 3, 12, -999],
        "total_reserves": [20, 5, 100, 10],
        "GDP_today": [100, 200, 100, 50],
        "central_government_debt": [0.3, 0.8, 0.0, 0.2],
        "GDP_industry": [0.25, 0.3, 0.1, -999],
        "FM_resilience_index_supply_chain": [60, 40, 100, 50],
        "FM_resilience_index_risk_quality": [50, 20, 100, 50],
        "global_competitiveness_index": [4, 3, 7, 4],
    }
    if extended:
        # spelled the way older tables spell it
        data["Natural_Hazard_Economic_Exposure"] = [5, 8, 10, 5]
    return pd.DataFrame(data)


@pytest.fixture
def indicator_table():
    return build_indicator_table(canonical_indicator_frame(raw_indicator_frame()), source="test table")


@pytest.fixture
def extended_indicator_table():
    return build_indicator_table(canonical_indicator_frame(raw_indicator_frame(extended=True)))


@pytest.fixture
def linear_tc_function():
    return DamageFunction(function_id=1, peril_id="TC", intensity=(0.0, 100.0), mdd=(0.0, 1.0), paa=(1.0, 1.0))


@pytest.fixture
def entity(linear_tc_function):
    assets = (Asset(100.0, 0), Asset(200.0, 1), Asset(300.0, 2))
    return Entity(assets=assets, damage_functions=(linear_tc_function,))


@pytest.fixture
def hazard():
    intensity = np.array([
        [10.0, 30.0, 50.0],
        [40.0, 60.0, 80.0],
        [0.0, 0.0, 0.0],
        [100.0, 110.0, 116.0],
    ])
    return Hazard(peril_id="TC", intensity=intensity, frequency=np.full(4, 0.25),
                  event_ids=(11, 12, 13, 14), reference_year=2014)


@pytest.fixture
def results():
    cr_eds = EventDamageSet(damage=(220.0, 400.0, 0.0, 600.0), frequency=(0.25,) * 4,
                            event_ids=(11, 12, 13, 14))
    col_eds = EventDamageSet(damage=(50.0, 10.0), frequency=(0.1, 0.5), event_ids=(1, 2))
    return (
        CountryRiskResult(
            country_name="Costa Rica",
            iso3="CRI",
            hazards=(
                HazardResult("TC", "cri_entity.xlsx", "cri_tc.npz", cr_eds),
                HazardResult("TS", "cri_entity.xlsx", "cri_ts.npz", None),
            ),
        ),
        CountryRiskResult(
            country_name="Colombia",
            hazards=(HazardResult("TC", "col_entity.xlsx", "col_tc.npz", col_eds),),
        ),
    )
