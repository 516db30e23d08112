from unittest.mock import MagicMock, patch

import pytest

from countryrisk.calibrate import calibrate
from countryrisk.config import RiskConfig
from countryrisk.damagefunctions import DamageFunctionParams
from countryrisk.models import EventDamageSet
from countryrisk.plots import plot_dfc


@pytest.fixture
def collaborators(entity, hazard):
    """Stub loaders and plots; the damage calculation is the real default one."""
    return dict(
        load_entity=MagicMock(return_value=entity),
        load_hazard=MagicMock(return_value=hazard),
        plot_single=MagicMock(),
        plot_aggregate=MagicMock(),
        close_figures=MagicMock(),
    )


class TestCalibrate:
    def test_recognized_peril_keeps_event_count(self, results, hazard, collaborators):
        out = calibrate(results, 0, 0, show_plot=0, **collaborators)
        new_eds = out[0].hazards[0].eds
        assert len(new_eds) == hazard.n_events == len(results[0].hazards[0].eds)
        assert new_eds.event_ids == (11, 12, 13, 14)
        # s-shape function with a threshold of 20: the calm event does no damage
        assert new_eds.damage[2] == 0.0
        assert new_eds.damage != results[0].hazards[0].eds.damage

    def test_only_selected_pair_changes(self, results, collaborators):
        out = calibrate(results, 0, 0, show_plot=0, **collaborators)
        assert out[1] is results[1]
        assert out[0].hazards[1] is results[0].hazards[1]
        # the input is never modified
        assert results[0].hazards[0].eds.damage == (220.0, 400.0, 0.0, 600.0)

    def test_loads_files_of_selected_hazard(self, results, collaborators):
        calibrate(results, 1, 0, show_plot=0, **collaborators)
        collaborators["load_entity"].assert_called_once_with("col_entity.xlsx")
        collaborators["load_hazard"].assert_called_once_with("col_tc.npz")

    def test_generated_function_is_substituted(self, results, collaborators):
        calc = MagicMock(return_value=EventDamageSet(damage=(1.0,) * 4, frequency=(0.25,) * 4))
        calibrate(results, 0, 0, show_plot=0, calc_eds=calc, **collaborators)
        entity_used = calc.call_args[0][0]
        dmf = entity_used.damage_function("TC", 1)
        assert dmf.intensity[0] == 1.0 and dmf.intensity[-1] == 116.0
        assert max(dmf.paa) == pytest.approx(0.9)

    def test_unrecognized_peril_still_recalculates(self, results, entity, collaborators):
        presets = {"EQ": DamageFunctionParams(intensity=(0.0, 10.0), intensity_threshold=5.0)}
        calc = MagicMock(return_value=EventDamageSet(damage=(9.0,) * 4, frequency=(0.25,) * 4))
        out = calibrate(results, 0, 0, show_plot=0, calc_eds=calc, presets=presets, **collaborators)
        assert calc.call_args[0][0] == entity
        assert out[0].hazards[0].eds.damage == (9.0,) * 4

    def test_lin_preset_against_known_damages(self, results, collaborators):
        presets = {"TC": DamageFunctionParams(intensity=(0.0, 100.0), intensity_threshold=0.0,
                                              paa_impact=1.0, shape="lin")}
        out = calibrate(results, 0, 0, show_plot=0, presets=presets, **collaborators)
        # MDD and PAA both rise linearly from 0 to 1 over 0..100, so damage = value * (I/100)**2
        assert out[0].hazards[0].eds.damage == pytest.approx((94.0, 280.0, 0.0, 600.0))

    def test_empty_results_returned_unchanged(self, collaborators):
        assert calibrate((), **collaborators) == ()
        assert calibrate(None, **collaborators) == ()
        collaborators["load_entity"].assert_not_called()

    @pytest.mark.parametrize("country_index, hazard_index", [(2, 0), (-1, 0), (1, 1)])
    def test_invalid_indices(self, results, collaborators, country_index, hazard_index):
        with pytest.raises(IndexError):
            calibrate(results, country_index, hazard_index, **collaborators)


class TestCalibratePlots:
    def test_single_plot_uses_default_cagr(self, results, collaborators):
        config = RiskConfig(global_cagr=0.03)
        out = calibrate(results, 0, 0, config=config, **collaborators)
        collaborators["plot_single"].assert_called_once_with(out, 0, 0, 0.03)
        collaborators["plot_aggregate"].assert_not_called()

    def test_aggregate_plot_and_close_figures(self, results, collaborators):
        out = calibrate(results, 0, 0, cagr=0.01, show_plot=-2, **collaborators)
        collaborators["close_figures"].assert_called_once_with()
        collaborators["plot_single"].assert_called_once_with(out, 0, 0, 0.01)
        collaborators["plot_aggregate"].assert_called_once_with(out, 0.01)

    def test_plot_failure_does_not_affect_result(self, results, collaborators):
        collaborators["plot_single"].side_effect = RuntimeError("no display")
        out = calibrate(results, 0, 0, show_plot=1, **collaborators)
        assert len(out[0].hazards[0].eds) == 4


class TestDefaultPlots:
    """The built-in plotting collaborators, run against matplotlib's Agg backend."""

    @pytest.fixture
    def plt(self):
        matplotlib = pytest.importorskip("matplotlib")
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        plt.close("all")
        yield plt
        plt.close("all")

    def test_plots_are_saved_and_closed(self, plt, tmp_path, results, entity, hazard):
        config = RiskConfig(plot_dir=str(tmp_path / "plots"))
        for _ in range(3):
            calibrate(results, 0, 0, show_plot=2, config=config,
                      load_entity=MagicMock(return_value=entity), load_hazard=MagicMock(return_value=hazard))

        assert plt.get_fignums() == []
        written = sorted(p.name for p in (tmp_path / "plots").iterdir())
        assert written == ["dfc_Costa_Rica_TC.png", "dfc_all.png"]

    def test_emdat_events_reach_the_plot(self, plt, tmp_path, results, entity, hazard):
        from countryrisk.models import DisasterEvent

        events = [DisasterEvent(1, "2010-0001", "Costa Rica", "Storm", "Tropical cyclone", 2010,
                                total_damage_adj_usd=300.0)]
        config = RiskConfig(plot_dir=str(tmp_path))
        with patch("countryrisk.plots.plot_dfc", wraps=plot_dfc) as spy:
            calibrate(results, 0, 0, show_plot=1, config=config, emdat_events=events,
                      load_entity=MagicMock(return_value=entity), load_hazard=MagicMock(return_value=hazard))
        assert spy.call_args.kwargs["emdat_events"] == events
        assert spy.call_args.kwargs["out_path"] == str(tmp_path / "dfc_Costa_Rica_TC.png")
        assert plt.get_fignums() == []
