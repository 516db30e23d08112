import math
from unittest.mock import MagicMock

import pytest

from countryrisk.errors import CountryNotFound, InvalidTableFile, MissingIndicatorData
from countryrisk.config import RiskConfig
from countryrisk.economic_loss import (FINANCIAL_STRENGTH_FLOOR, adjust_country, adjust_economic_loss,
                                       combine_damage_factor, country_damage_factor, damage_weight, failed,
                                       financial_strength, rescale_damages, successful)
from countryrisk.models import CountryRiskResult, EventDamageSet, HazardResult

from .conftest import raw_indicator_frame


def _eds(*damage):
    return EventDamageSet(damage=tuple(damage), frequency=(1.0,) * len(damage))


class TestFinancialStrength:
    def test_reserves_ratio_capped_at_one(self):
        assert financial_strength(500, 100, 0.5, 0.5, 0.2) == pytest.approx(1.8)

    @pytest.mark.parametrize("debt", [0.9, 1.5, 10.0])
    def test_floor_is_exactly_half(self, debt):
        assert financial_strength(0, 100, 0.0, 0.4, debt) == FINANCIAL_STRENGTH_FLOOR

    def test_nan_passes_through(self):
        assert math.isnan(financial_strength(10, float("nan"), 0.0, 0.4, 0.1))

    def test_zero_gdp_is_missing(self):
        assert math.isnan(financial_strength(10, 0, 0.0, 0.4, 0.1))


class TestCountryDamageFactor:
    def test_terms(self, indicator_table):
        f = country_damage_factor(indicator_table, "Costa Rica")
        assert f.financial_strength == pytest.approx(0.9)
        assert f.bi_and_supply_chain_risk == pytest.approx(0.65)
        assert f.natural_hazard_economic_exposure == 0.0
        assert f.disaster_resilience == pytest.approx(1.0)
        assert f.value == pytest.approx(1 / 0.9 + 0.65 - 1.0)
        assert f.gdp == 100

    def test_floored_financial_strength_caps_reciprocal_at_two(self, indicator_table):
        f = country_damage_factor(indicator_table, "Colombia")
        assert f.financial_strength == 0.5
        assert f.value == pytest.approx(2 + 0.9 - (0.2 + 2 / 6))

    def test_never_negative(self, indicator_table):
        f = country_damage_factor(indicator_table, "Resilientland")
        assert f.value == 0.0
        assert combine_damage_factor(3.0, 0.0, 0.0, 10.0) == 0.0

    def test_extended_table_adds_hazard_exposure(self, extended_indicator_table):
        f = country_damage_factor(extended_indicator_table, "Costa Rica")
        assert f.natural_hazard_economic_exposure == pytest.approx(0.5)
        assert f.value == pytest.approx(1 / 0.9 + 0.65 + 0.5 - 1.0)

    def test_missing_data_names_country_and_columns(self, indicator_table):
        with pytest.raises(MissingIndicatorData) as exc:
            country_damage_factor(indicator_table, "Missingland")
        assert exc.value.country == "Missingland"
        assert exc.value.term == "BI_and_supply_chain_risk"
        assert "GDP_industry" in exc.value.columns
        assert "Missingland" in str(exc.value)

    def test_unknown_country(self, indicator_table):
        with pytest.raises(CountryNotFound):
            country_damage_factor(indicator_table, "Atlantis")


class TestDamageWeight:
    def test_zero_for_no_damage(self):
        assert damage_weight(0.0) == 0.0

    def test_monotonic_and_bounded(self):
        ratios = [0.001, 0.01, 0.05, 0.1, 0.5, 1.0]
        weights = [damage_weight(r) for r in ratios]
        assert weights == sorted(weights)
        assert all(0.0 < w < 1.0 for w in weights)


class TestRescale:
    def test_end_to_end_example(self):
        out = rescale_damages(_eds(10.0), gdp=100.0, factor=2.0,
                              weight_fn=lambda r: 0.3 if r == pytest.approx(0.1) else 0.0)
        assert out.damage[0] == pytest.approx(16.0)

    def test_zero_factor_leaves_damage_unchanged(self):
        eds = _eds(1.0, 50.0, 1e6)
        out = rescale_damages(eds, gdp=100.0, factor=0.0, weight_fn=lambda r: 123.0)
        assert out.damage == eds.damage

    def test_keeps_event_count_and_frequencies(self):
        eds = EventDamageSet(damage=(1.0, 2.0, 3.0), frequency=(0.1, 0.2, 0.3), event_ids=(7, 8, 9))
        out = rescale_damages(eds, gdp=10.0, factor=1.0, weight_fn=lambda r: r)
        assert len(out) == 3
        assert out.frequency == eds.frequency
        assert out.event_ids == eds.event_ids
        assert out.damage == pytest.approx((1.1, 2.4, 3.9))

    def test_empty_and_missing_sets_pass_through_empty(self):
        assert rescale_damages(None, 100.0, 2.0, damage_weight).is_empty
        assert rescale_damages(EventDamageSet.empty(), 100.0, 2.0, damage_weight).is_empty


class TestAdjust:
    def test_adjust_country_returns_new_result(self, results, indicator_table):
        original = results[0]
        adjusted = adjust_country(original, indicator_table, weight_fn=lambda r: 0.5)
        factor = country_damage_factor(indicator_table, "Costa Rica").value
        assert adjusted.hazards[0].eds.damage == pytest.approx(
            tuple(d * (1 + 0.5 * factor) for d in original.hazards[0].eds.damage))
        # hazard without damage set becomes an explicit empty set
        assert adjusted.hazards[1].eds.is_empty
        # input untouched
        assert original.hazards[0].eds.damage == (220.0, 400.0, 0.0, 600.0)
        assert original.hazards[1].eds is None

    def test_batch_keeps_countries_before_a_failure(self, results, indicator_table):
        batch = (results[0], CountryRiskResult("Atlantis", (HazardResult("TC", eds=_eds(1.0)),)), results[1])
        outcomes = adjust_economic_loss(batch, table=indicator_table)
        assert [o.country for o in outcomes] == ["Costa Rica", "Atlantis", "Colombia"]
        assert [o.ok for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, CountryNotFound)
        assert [r.country_name for r in successful(outcomes)] == ["Costa Rica", "Colombia"]
        assert [o.country for o in failed(outcomes)] == ["Atlantis"]

    def test_missing_data_is_a_per_country_failure(self, indicator_table):
        batch = (CountryRiskResult("Missingland", (HazardResult("TC", eds=_eds(1.0)),)),)
        outcomes = adjust_economic_loss(batch, table=indicator_table)
        assert isinstance(outcomes[0].error, MissingIndicatorData)
        assert outcomes[0].result is None

    def test_empty_results_return_early(self, tmp_path, caplog):
        # no table is needed (or looked up) when there is nothing to adjust
        config = RiskConfig(data_dir=str(tmp_path))
        prompt = MagicMock()
        assert adjust_economic_loss((), config=config, prompt=prompt) == []
        assert adjust_economic_loss(None, config=config, prompt=prompt) == []
        prompt.assert_not_called()
        assert "no results given" in caplog.text

    def test_resolves_default_table_from_config(self, tmp_path, results):
        system = tmp_path / "system"
        system.mkdir()
        raw_indicator_frame().to_csv(system / "table.csv", index=False)
        config = RiskConfig(data_dir=str(tmp_path), indicator_table_name="table.csv")
        outcomes = adjust_economic_loss(results, config=config, weight_fn=lambda r: 1.0)
        assert all(o.ok for o in outcomes)

    def test_cancelled_table_selection_aborts(self, tmp_path, results):
        config = RiskConfig(data_dir=str(tmp_path))
        with pytest.raises(InvalidTableFile):
            adjust_economic_loss(results, config=config, prompt=lambda default: None)
