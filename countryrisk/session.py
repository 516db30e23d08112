"""
Calibration session
===================

State behind the interactive CLI:

1) Load country risk results (immutable CountryRiskResult records)
2) Optionally load the indicator table and EM-DAT records once
3) Each calibration / economic loss step produces a *new* results tuple
4) Earlier tuples are kept on undo/redo stacks

Nothing is written back to the input files unless `save()` is called.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
import logging
from .calibrate import calibrate
from .config import RiskConfig
from .errors import CountryRiskError
from .economic_loss import CountryDamageFactor, CountryOutcome, adjust_economic_loss, country_damage_factor
from .indicators import IndicatorTable, load_indicator_table
from .loader import resolve_table_path, save_results_json
from .models import CountryRiskResult, DisasterEvent

logger = logging.getLogger(__name__)


@dataclass
class CalibrationSession:
    """Current results plus everything needed to recalculate them."""
    results: Tuple[CountryRiskResult, ...]
    config: RiskConfig = field(default_factory=RiskConfig)
    table_path: Optional[str] = None
    emdat_events: List[DisasterEvent] = field(default_factory=list)
    prompt: Optional[Callable[[str], Optional[str]]] = None
    # Stores CLI commands (for reproducibility in reports)
    command_log: List[str] = field(default_factory=list)
    calibrate_kwargs: dict = field(default_factory=dict)

    _table: Optional[IndicatorTable] = field(default=None, init=False)
    _undo: List[Tuple[CountryRiskResult, ...]] = field(default_factory=list, init=False)
    _redo: List[Tuple[CountryRiskResult, ...]] = field(default_factory=list, init=False)

    # ---------------- History (Stacks) ----------------
    def _push(self, new_results: Tuple[CountryRiskResult, ...]) -> None:
        self._undo.append(self.results)
        self._redo.clear()
        self.results = new_results

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.results)
        self.results = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.results)
        self.results = self._redo.pop()
        return True

    # ---------------- Indicator table ----------------
    @property
    def table(self) -> IndicatorTable:
        if self._table is None:
            path = resolve_table_path(self.table_path, self.config, self.prompt)
            self._table = load_indicator_table(path, self.config)
            self.table_path = path
        return self._table

    # ---------------- Operations ----------------
    def calibrate(self, country_index: int, hazard_index: int,
                  cagr: Optional[float] = None, show_plot: int = 0) -> None:
        kwargs = dict(self.calibrate_kwargs)
        kwargs.setdefault("emdat_events", self.emdat_events or None)
        new = calibrate(self.results, country_index, hazard_index, cagr, show_plot,
                        config=self.config, **kwargs)
        self._push(new)

    def economic_loss(self) -> List[CountryOutcome]:
        """Adjust all countries; successful ones replace their results, failed ones stay as they were."""
        outcomes = adjust_economic_loss(self.results, config=self.config, table=self.table)
        new = tuple(o.result if o.ok else r for o, r in zip(outcomes, self.results))
        self._push(new)
        return outcomes

    def factor(self, country_name: str) -> CountryDamageFactor:
        return country_damage_factor(self.table, country_name)

    def factors(self) -> List[CountryDamageFactor]:
        """Damage factors for all countries that can be computed (others are skipped)."""
        out: List[CountryDamageFactor] = []
        for r in self.results:
            try:
                out.append(country_damage_factor(self.table, r.country_name, r.iso3))
            except CountryRiskError as e:
                logger.warning("no damage factor for %s, left out: %s", r.country_name, e)
                continue
        return out

    def dfc(self, country_index: int, hazard_index: int, out_path: str) -> str:
        from .plots import plot_dfc
        return plot_dfc(self.results, country_index, hazard_index, self.config.global_cagr,
                        emdat_events=self.emdat_events, out_path=out_path)

    def report(self, out_path: str, with_factors: bool = True) -> str:
        from .report import ReportConfig, generate_docx_report
        cfg = ReportConfig(cagr=self.config.global_cagr, command_log=self.command_log)
        factors = self.factors() if with_factors else []
        return generate_docx_report(self.results, out_path, factors=factors, config=cfg,
                                    emdat_events=self.emdat_events)

    def save(self, out_path: str) -> None:
        save_results_json(self.results, out_path)
