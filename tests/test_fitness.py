"""Tests for the rounded mean-percentage-error fitness."""

import math

import pytest

from backend.data.ingest import DataPoint
from backend.evolution.fitness import FitnessEvaluator, round_half_up, score
from backend.model.fuel_model import FitParams, calc_fuel


class TestRounding:

    def test_half_rounds_up(self):
        assert round_half_up(0.0125) == pytest.approx(0.013)
        assert round_half_up(2.5, decimals=0) == 3.0

    def test_plain_values(self):
        assert round_half_up(0.02443) == pytest.approx(0.024)


class TestScore:

    def test_pinned_single_record(self, cylinder_params, seed_params):
        """c=4, r=10, t=50: model gives ~0.02443, rounds to 0.024, vs 5.000."""
        dataset = [DataPoint(cylinders=4, ratio=10, throttle=50, fuel=5.000)]
        assert score(seed_params, dataset, cylinder_params) == pytest.approx(99.52)

    def test_zero_error_when_model_matches(self, exact_dataset, seed_params, cylinder_params):
        assert score(seed_params, exact_dataset, cylinder_params) == 0.0

    def test_near_zero_actuals_are_skipped(self, cylinder_params, seed_params):
        exact = calc_fuel(50.0, 10.0, 40.0, seed_params, cylinder_params)
        dataset = [
            DataPoint(cylinders=40, ratio=10, throttle=50, fuel=exact),
            DataPoint(cylinders=40, ratio=10, throttle=60, fuel=0.0004),
        ]
        assert score(seed_params, dataset, cylinder_params) == 0.0

    def test_no_qualifying_records_is_infinite(self, cylinder_params, seed_params):
        dataset = [DataPoint(cylinders=4, ratio=10, throttle=50, fuel=0.001)]
        assert score(seed_params, dataset, cylinder_params) == math.inf

    def test_empty_dataset_is_infinite(self, cylinder_params, seed_params):
        assert score(seed_params, [], cylinder_params) == math.inf

    def test_non_finite_model_output_is_infinite(self, exact_dataset, cylinder_params):
        # power_a = 0 makes the threshold throttle 0/0
        broken = FitParams(power_a=0.0)
        assert score(broken, exact_dataset, cylinder_params) == math.inf

    def test_score_is_mean_of_percentages(self, cylinder_params, seed_params):
        calc = round_half_up(calc_fuel(50.0, 10.0, 80.0, seed_params, cylinder_params))
        dataset = [
            DataPoint(cylinders=80, ratio=10, throttle=50, fuel=float(calc) * 2),
            DataPoint(cylinders=80, ratio=10, throttle=60,
                      fuel=calc_fuel(60.0, 10.0, 80.0, seed_params, cylinder_params)),
        ]
        # 50% off on the first record, exact on the second
        assert score(seed_params, dataset, cylinder_params) == pytest.approx(25.0, rel=1e-3)


class TestFitnessEvaluator:

    def test_counts_qualifying_records(self, exact_dataset, cylinder_params):
        dataset = exact_dataset + [DataPoint(cylinders=4, ratio=10, throttle=1, fuel=0.0)]
        evaluator = FitnessEvaluator(dataset, cylinder_params)
        assert evaluator.size == len(dataset)
        assert evaluator.qualifying == len(exact_dataset)

    def test_deap_evaluate_returns_tuple(self, exact_dataset, cylinder_params, seed_params):
        evaluator = FitnessEvaluator(exact_dataset, cylinder_params)
        assert evaluator.evaluate(seed_params.to_list()) == (0.0,)

    def test_lower_for_truth_than_for_seed(self, synthetic_dataset, cylinder_params,
                                           seed_params, true_params):
        evaluator = FitnessEvaluator(synthetic_dataset, cylinder_params)
        assert evaluator.score(true_params) < evaluator.score(seed_params)
