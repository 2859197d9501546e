"""Piecewise fuel-consumption model: power-law regime joined to a linear regime."""

import math
from dataclasses import dataclass, fields

import numpy as np

from backend.config import PARAM_NAMES, RANDOMIZE_RANGES, REFERENCE_RATIO, REFERENCE_THROTTLE


@dataclass(frozen=True)
class CylinderModelParams:
    """Fixed per-cylinder fuel curve, calibrated offline."""
    base_a: float = 0.00009782660801279454
    base_b: float = 0.00978251199152855959
    base_c: float = 0.0
    wave_amp: float = 0.01956600381495192040
    wave_grow: float = 0.99999232491636780296
    wave_period: float = 62.83181597823495678767
    wave_phase: float = 3.14158481683757129233


@dataclass(frozen=True)
class FitParams:
    """Evolvable coefficients of the throttle/ratio multiplier."""
    power_a: float = 0.002746
    power_n: float = 3.0
    power_m: float = 3.0
    linear_c: float = 0.14
    linear_m: float = 1.0

    def to_list(self) -> list[float]:
        return [getattr(self, name) for name in PARAM_NAMES]

    @classmethod
    def from_list(cls, genome) -> "FitParams":
        return cls(**{name: float(g) for name, g in zip(PARAM_NAMES, genome)})

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_canonical(self) -> dict:
        """High-precision dump for rebuilding the model elsewhere."""
        return {name: f"{getattr(self, name):.15e}" for name in PARAM_NAMES}


def fuel_per_cylinder(c, cyl: CylinderModelParams):
    """Quadratic base curve plus a rectified, growth-scaled wave.

    The wave term enters through its absolute value, so it can only add
    to the base curve.
    """
    c = np.asarray(c, dtype=float)
    base = cyl.base_a * c * c + cyl.base_b * c + cyl.base_c
    amp = cyl.wave_amp * np.power(c, cyl.wave_grow)
    wave = amp * np.sin(2 * math.pi * c / cyl.wave_period + cyl.wave_phase)
    return _as_scalar(base + np.abs(wave))


def threshold_multiplier(fit: FitParams) -> float:
    """Power-law multiplier at the reference point (t=100, r=14)."""
    with np.errstate(all="ignore"):
        return float(fit.power_a * np.power(REFERENCE_THROTTLE, fit.power_n)
                     / np.power(REFERENCE_RATIO, fit.power_m))


def piecewise_fuel(t, r, fpc, fit: FitParams):
    """Fuel estimate given a precomputed fuel-per-cylinder value.

    Below the reference fuel the power law applies. Above it, a line in t
    takes over, offset so that both branches meet at the throttle where the
    power law reaches the reference fuel for this ratio.
    """
    t = np.asarray(t, dtype=float)
    r = np.asarray(r, dtype=float)
    fpc = np.asarray(fpc, dtype=float)

    with np.errstate(all="ignore"):
        power_multiplier = fit.power_a * np.power(t, fit.power_n) / np.power(r, fit.power_m)
        power_fuel = power_multiplier * fpc

        thr_multiplier = threshold_multiplier(fit)
        threshold_fuel = thr_multiplier * fpc

        t_threshold = np.power(thr_multiplier * np.power(r, fit.power_m) / fit.power_a,
                               1.0 / fit.power_n)
        linear_e = thr_multiplier - fit.linear_c * t_threshold / np.power(r, fit.linear_m)
        linear_fuel = (fit.linear_c * t / np.power(r, fit.linear_m) + linear_e) * fpc

        fuel = np.where(power_fuel < threshold_fuel, power_fuel, linear_fuel)

    return _as_scalar(fuel)


def calc_fuel(t, r, c, fit: FitParams, cyl: CylinderModelParams):
    """Evaluate the model at throttle t, ratio r (> 0), cylinders c.

    Works on scalars or numpy arrays of matching shape.
    """
    return piecewise_fuel(t, r, fuel_per_cylinder(c, cyl), fit)


def random_fit_params(rng: np.random.Generator, ranges=None) -> FitParams:
    """Draw a fresh starting point, one uniform draw per parameter."""
    ranges = ranges or RANDOMIZE_RANGES
    return FitParams.from_list([lo + rng.random() * span for lo, span in ranges])


def _as_scalar(value):
    if np.ndim(value) == 0:
        return float(value)
    return value
