"""Tests for the piecewise fuel model."""

import math

import numpy as np
import pytest

from backend.config import PARAM_NAMES, REFERENCE_RATIO, REFERENCE_THROTTLE
from backend.model.fuel_model import (
    CylinderModelParams, FitParams, calc_fuel, fuel_per_cylinder, random_fit_params,
    threshold_multiplier,
)


def t_threshold(r, fit):
    m = threshold_multiplier(fit)
    return (m * r ** fit.power_m / fit.power_a) ** (1.0 / fit.power_n)


class TestFuelPerCylinder:

    def test_never_below_base_curve(self, cylinder_params):
        c = np.arange(1, 200, dtype=float)
        cp = cylinder_params
        base = cp.base_a * c * c + cp.base_b * c + cp.base_c
        assert np.all(fuel_per_cylinder(c, cp) >= base)

    def test_scalar_input_returns_float(self, cylinder_params):
        assert isinstance(fuel_per_cylinder(4, cylinder_params), float)

    def test_known_value(self, cylinder_params):
        """c=4 with the calibrated constants."""
        assert fuel_per_cylinder(4, cylinder_params) == pytest.approx(0.0711718, rel=1e-4)

    def test_wave_folded_to_positive(self):
        # Pure wave, phase chosen so sin() is negative at c=1
        cp = CylinderModelParams(base_a=0.0, base_b=0.0, base_c=0.0, wave_amp=1.0,
                                 wave_grow=0.0, wave_period=4.0, wave_phase=math.pi)
        assert fuel_per_cylinder(1.0, cp) == pytest.approx(1.0)


class TestPiecewiseModel:

    def test_power_regime_matches_power_law(self, cylinder_params, seed_params):
        t, r, c = 50.0, 10.0, 4.0
        p = seed_params
        expected = (p.power_a * t ** p.power_n / r ** p.power_m) * fuel_per_cylinder(c, cylinder_params)
        assert calc_fuel(t, r, c, p, cylinder_params) == pytest.approx(expected, rel=1e-12)

    def test_linear_regime_above_threshold(self, cylinder_params, seed_params):
        p = seed_params
        r, c = 8.0, 80.0
        t = t_threshold(r, p) + 20.0
        fpc = fuel_per_cylinder(c, cylinder_params)
        thr = threshold_multiplier(p)
        linear_e = thr - p.linear_c * t_threshold(r, p) / r ** p.linear_m
        expected = (p.linear_c * t / r ** p.linear_m + linear_e) * fpc
        assert calc_fuel(t, r, c, p, cylinder_params) == pytest.approx(expected, rel=1e-12)

    @pytest.mark.parametrize("r", [6.0, 10.0, 14.0, 20.0])
    @pytest.mark.parametrize("c", [4.0, 40.0, 120.0])
    def test_continuous_across_threshold(self, cylinder_params, seed_params, r, c):
        """Power and linear branches meet where powerFuel == thresholdFuel."""
        tt = t_threshold(r, seed_params)
        eps = 1e-7 * tt
        below = calc_fuel(tt - eps, r, c, seed_params, cylinder_params)
        above = calc_fuel(tt + eps, r, c, seed_params, cylinder_params)
        assert below == pytest.approx(above, rel=1e-5)

    def test_reference_point_value(self, cylinder_params, seed_params):
        c = 40.0
        fuel = calc_fuel(REFERENCE_THROTTLE, REFERENCE_RATIO, c, seed_params, cylinder_params)
        expected = threshold_multiplier(seed_params) * fuel_per_cylinder(c, cylinder_params)
        assert fuel == pytest.approx(expected, rel=1e-12)

    def test_array_matches_scalar(self, cylinder_params, seed_params):
        t = np.array([10.0, 50.0, 90.0, 100.0])
        r = np.array([14.0, 10.0, 8.0, 6.0])
        c = np.array([4.0, 12.0, 40.0, 80.0])
        vectorized = calc_fuel(t, r, c, seed_params, cylinder_params)
        scalars = [calc_fuel(ti, ri, ci, seed_params, cylinder_params) for ti, ri, ci in zip(t, r, c)]
        np.testing.assert_allclose(vectorized, scalars, rtol=1e-12)

    def test_deterministic(self, cylinder_params, seed_params):
        a = calc_fuel(73.0, 11.0, 16.0, seed_params, cylinder_params)
        b = calc_fuel(73.0, 11.0, 16.0, seed_params, cylinder_params)
        assert a == b


class TestFitParams:

    def test_list_round_trip_order(self):
        p = FitParams(power_a=0.01, power_n=2.0, power_m=3.0, linear_c=0.5, linear_m=1.5)
        assert p.to_list() == [0.01, 2.0, 3.0, 0.5, 1.5]
        assert FitParams.from_list(p.to_list()) == p

    def test_canonical_dump(self, seed_params):
        dump = seed_params.to_canonical()
        assert list(dump) == PARAM_NAMES
        assert dump["power_a"] == "2.746000000000000e-03"
        for name, text in dump.items():
            assert float(text) == pytest.approx(getattr(seed_params, name), rel=1e-15)

    def test_random_params_ranges(self):
        rng = np.random.default_rng(3)
        for _ in range(50):
            p = random_fit_params(rng)
            assert 0.001 <= p.power_a <= 0.011
            assert 2.0 <= p.power_n <= 4.0
            assert 2.0 <= p.power_m <= 4.0
            assert 0.05 <= p.linear_c <= 0.35
            assert 0.5 <= p.linear_m <= 2.5
