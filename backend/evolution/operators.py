"""Differential-evolution operators for the five-gene fuel parameter vector."""

import numpy as np

from backend.config import PARAM_BOUNDS


def feasibility_repair(individual, bounds=PARAM_BOUNDS):
    """Clamp each gene to its feasible bounds."""
    for i in range(min(len(individual), len(bounds))):
        lo, hi = bounds[i]
        individual[i] = max(lo, min(hi, individual[i]))
    return individual


def sample_donors(target: int, size: int, rng: np.random.Generator) -> tuple:
    """Rejection-sample three distinct indices, all different from target."""
    a = target
    while a == target:
        a = int(rng.integers(size))
    b = target
    while b in (target, a):
        b = int(rng.integers(size))
    c = target
    while c in (target, a, b):
        c = int(rng.integers(size))
    return a, b, c


def de_crossover(trial, donor_a, donor_b, donor_c, differential_weight: float,
                 crossover_rate: float, rng: np.random.Generator, bounds=PARAM_BOUNDS):
    """Binomial crossover with a DE/rand/1 mutant, gene by gene.

    Each gene of the trial is independently replaced with probability
    crossover_rate by a + F * (b - c), clamped to that gene's bounds.
    """
    for i in range(len(trial)):
        if rng.random() < crossover_rate:
            lo, hi = bounds[i]
            mutant = donor_a[i] + differential_weight * (donor_b[i] - donor_c[i])
            trial[i] = max(lo, min(hi, mutant))
    return trial


def scale_genome(genome, ranges, rng: np.random.Generator, bounds=PARAM_BOUNDS) -> list:
    """Multiply every gene by its own uniform factor, then clamp."""
    scaled = [g * rng.uniform(lo, hi) for g, (lo, hi) in zip(genome, ranges)]
    return feasibility_repair(scaled, bounds)
