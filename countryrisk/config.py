"""
Configuration (RiskConfig)
==========================

Process-wide settings used by the calibration scripts:
- the default compound annual growth rate (CAGR) used to inflate historic damages,
- the data directory where the economic indicator table lives.

The config is an explicit, immutable object that callers pass into
`calibrate()` and `adjust_economic_loss()`. There is no global state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os

_PACKAGE_PARENT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@dataclass(frozen=True)
class RiskConfig:
    """Knobs shared by calibration and economic loss adjustment."""
    global_cagr: float = 0.02
    data_dir: str = field(default_factory=lambda: os.path.join(_PACKAGE_PARENT, "data"))
    indicator_table_name: str = "economic_indicators_mastertable.xlsx"
    indicator_table_extended_name: str = "economic_indicators_mastertable_extended.xlsx"
    # cells with this value are treated as missing data
    missing_data_value: float = -999
    # scale of the default damage weight curve (damage/GDP ratio)
    damage_weight_scale: float = 0.05
    # calibrate() writes its DFC plots here (relative to the working directory)
    plot_dir: str = "dfc_plots"

    @property
    def system_dir(self) -> str:
        return os.path.join(self.data_dir, "system")

    @property
    def default_table_path(self) -> str:
        return os.path.join(self.system_dir, self.indicator_table_name)

    @property
    def extended_table_path(self) -> str:
        return os.path.join(self.system_dir, self.indicator_table_extended_name)

    @classmethod
    def from_env(cls) -> "RiskConfig":
        """Build a config from COUNTRYRISK_* environment variables (unset ones keep defaults)."""
        kwargs = {}
        data_dir = os.getenv("COUNTRYRISK_DATA_DIR")
        if data_dir:
            kwargs["data_dir"] = data_dir
        cagr = os.getenv("COUNTRYRISK_GLOBAL_CAGR")
        if cagr:
            kwargs["global_cagr"] = float(cagr)
        plot_dir = os.getenv("COUNTRYRISK_PLOT_DIR")
        if plot_dir:
            kwargs["plot_dir"] = plot_dir
        return cls(**kwargs)
