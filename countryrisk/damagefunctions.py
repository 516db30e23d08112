"""
Damage function generation
==========================

Parametric vulnerability curves used while calibrating a country/peril pair.

A curve is sampled at given intensities (e.g. wind speed in m/s):
- below `intensity_threshold` nothing is damaged (MDD = PAA = 0),
- above it the mean damage degree (MDD) follows the selected shape, scaled by
  `mdd_impact`, and the share of assets affected (PAA) is `paa_impact`.

Shapes:
- "s-shape": v^3 / (1 + v^3), with v = (i - threshold) / (i_half - threshold)
  and i_half half way between the threshold and the largest intensity.
- "lin": linear from the threshold to the largest intensity.
- "exp": 1 - exp(-(i - threshold) / scale), scale = a third of the range.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Sequence, Tuple
import numpy as np
from .models import DamageFunction, Entity

SHAPES = ("s-shape", "lin", "exp")


def _shape_values(shape: str, x: np.ndarray, threshold: float) -> np.ndarray:
    span = float(x.max()) - threshold
    if span <= 0:
        raise ValueError("intensity_threshold must be below the largest intensity")
    above = np.clip(x - threshold, 0.0, None)
    if shape == "s-shape":
        v = above / (span / 2.0)
        return v ** 3 / (1.0 + v ** 3)
    if shape == "lin":
        return above / span
    if shape == "exp":
        return 1.0 - np.exp(-above / (span / 3.0))
    raise ValueError(f"shape must be one of {', '.join(SHAPES)} (got {shape!r})")


def generate_damage_function(intensity: Sequence[float],
                             intensity_threshold: float,
                             mdd_impact: float = 1.0,
                             paa_impact: float = 1.0,
                             shape: str = "s-shape",
                             peril_id: str = "TC",
                             function_id: int = 1) -> Tuple[DamageFunction, str]:
    """Generate a damage function and a one-line description of it."""
    x = np.asarray(sorted(float(i) for i in intensity), dtype=float)
    if x.size < 2:
        raise ValueError("need at least two intensity points")
    mdd = mdd_impact * _shape_values(shape, x, float(intensity_threshold))
    paa = np.where(x > intensity_threshold, float(paa_impact), 0.0)

    info = (f"{shape} {peril_id} damage function, threshold {intensity_threshold:g}, "
            f"MDD max {mdd.max():.3f}, PAA {paa_impact:.2f} ({x.size} points)")
    dmf = DamageFunction(
        function_id=function_id,
        peril_id=peril_id,
        intensity=tuple(float(v) for v in x),
        mdd=tuple(float(v) for v in mdd),
        paa=tuple(float(v) for v in paa),
        name=info,
    )
    return dmf, info


def replace_damage_functions(entity: Entity, functions: Iterable[DamageFunction]) -> Entity:
    """Return a new entity where functions with the same (peril, id) are replaced, others appended."""
    new: Dict[Tuple[str, int], DamageFunction] = {(f.peril_id, f.function_id): f for f in functions}
    out: List[DamageFunction] = []
    for f in entity.damage_functions:
        key = (f.peril_id, f.function_id)
        out.append(new.pop(key, f))
    out.extend(new.values())
    return replace(entity, damage_functions=tuple(out))


@dataclass(frozen=True)
class DamageFunctionParams:
    """Fixed shape parameters used to regenerate a peril's damage function."""
    intensity: Tuple[float, ...]
    intensity_threshold: float
    mdd_impact: float = 1.0
    paa_impact: float = 1.0
    shape: str = "s-shape"
    function_id: int = 1

    def generate(self, peril_id: str) -> Tuple[DamageFunction, str]:
        return generate_damage_function(self.intensity, self.intensity_threshold, self.mdd_impact,
                                        self.paa_impact, self.shape, peril_id, self.function_id)


# perils whose damage function is regenerated by calibrate()
CALIBRATION_PRESETS: Dict[str, DamageFunctionParams] = {
    "TC": DamageFunctionParams(
        intensity=tuple(float(i) for i in range(1, 121, 5)),
        intensity_threshold=20.0,
        mdd_impact=1.0,
        paa_impact=0.9,
        shape="s-shape",
    ),
}
