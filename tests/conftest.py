"""Shared fixtures for the fuel formula fitter test suite."""

import numpy as np
import pytest

from backend.data.ingest import DataPoint
from backend.model.fuel_model import CylinderModelParams, FitParams, calc_fuel

# Parameters used to synthesize measurements
TRUE_PARAMS = FitParams(power_a=0.0035, power_n=2.6, power_m=2.8, linear_c=0.2, linear_m=1.2)

CYLINDERS = (40.0, 80.0, 120.0)
RATIOS = (8.0, 12.0, 16.0)
THROTTLES = (20.0, 40.0, 60.0, 80.0, 100.0)


def make_dataset(params: FitParams, cyl: CylinderModelParams, exact: bool = False) -> list:
    records = []
    for c in CYLINDERS:
        for r in RATIOS:
            for t in THROTTLES:
                fuel = calc_fuel(t, r, c, params, cyl)
                records.append(DataPoint(cylinders=c, ratio=r, throttle=t,
                                         fuel=fuel if exact else round(fuel, 3)))
    return records


@pytest.fixture
def cylinder_params():
    return CylinderModelParams()


@pytest.fixture
def true_params():
    return TRUE_PARAMS


@pytest.fixture
def seed_params():
    return FitParams()


@pytest.fixture
def synthetic_dataset(cylinder_params):
    """Measurements generated from TRUE_PARAMS, rounded like logged data."""
    return make_dataset(TRUE_PARAMS, cylinder_params)


@pytest.fixture
def exact_dataset(cylinder_params, seed_params):
    """Measurements the default seed reproduces exactly (fitness 0)."""
    return make_dataset(seed_params, cylinder_params, exact=True)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)
