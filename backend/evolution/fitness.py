"""Mean-percentage-error fitness of a parameter vector against measured fuel."""

import math

import numpy as np

from backend.config import MIN_ACTUAL_FUEL, ROUND_DECIMALS
from backend.model.fuel_model import (
    CylinderModelParams, FitParams, fuel_per_cylinder, piecewise_fuel,
)


def round_half_up(values, decimals: int = ROUND_DECIMALS):
    """Round to a fixed number of decimals, ties toward +inf."""
    scale = 10.0 ** decimals
    return np.floor(np.asarray(values, dtype=float) * scale + 0.5) / scale


class FitnessEvaluator:
    """Scores candidate FitParams against a fixed dataset. Lower is better.

    Per-record arrays, including the fuel-per-cylinder curve (which does not
    depend on the evolvable parameters), are built once per dataset.
    """

    def __init__(self, dataset: list, cylinder_params: CylinderModelParams):
        self.cylinder_params = cylinder_params
        self.size = len(dataset)

        throttle = np.array([d.throttle for d in dataset], dtype=float)
        ratio = np.array([d.ratio for d in dataset], dtype=float)
        cylinders = np.array([d.cylinders for d in dataset], dtype=float)
        actual = round_half_up([d.fuel for d in dataset])

        # Only records whose rounded actual value clears the floor count
        mask = actual > MIN_ACTUAL_FUEL
        self._throttle = throttle[mask]
        self._ratio = ratio[mask]
        self._fpc = np.asarray(fuel_per_cylinder(cylinders[mask], cylinder_params), dtype=float)
        self._actual = actual[mask]

    @property
    def qualifying(self) -> int:
        return int(self._actual.size)

    def score(self, params: FitParams) -> float:
        """Mean absolute percentage error after rounding, or inf."""
        if self._actual.size == 0:
            return math.inf

        calc = round_half_up(piecewise_fuel(self._throttle, self._ratio, self._fpc, params))
        with np.errstate(all="ignore"):
            pct = np.abs((calc - self._actual) / self._actual * 100.0)
            total = float(np.mean(pct))

        if not math.isfinite(total):
            return math.inf
        return total

    def evaluate(self, genome) -> tuple:
        """DEAP-style evaluation of a raw gene list."""
        return (self.score(FitParams.from_list(genome)),)


def score(params: FitParams, dataset: list,
          cylinder_params: CylinderModelParams = CylinderModelParams()) -> float:
    return FitnessEvaluator(dataset, cylinder_params).score(params)
