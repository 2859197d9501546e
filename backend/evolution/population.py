"""Population seeding, regeneration and diversity tracking."""

import math

import numpy as np
from scipy.spatial.distance import pdist

from backend.config import INIT_SCALE_RANGES, INJECTION_SCALE_RANGES, KEEP_FRACTION, PARAM_BOUNDS
from backend.evolution.operators import scale_genome


def initialize_population_from_seed(seed_genome, size: int, rng: np.random.Generator,
                                    ranges=INIT_SCALE_RANGES) -> list:
    """Seed verbatim in slot 0, scaled copies of it everywhere else.

    Keeping the seed guarantees the run never ends worse than it started.
    Returns list of genome vectors (list of floats).
    """
    genomes = [list(seed_genome)]
    for _ in range(1, size):
        genomes.append(scale_genome(seed_genome, ranges, rng))
    return genomes


def keep_count(size: int, fraction: float = KEEP_FRACTION) -> int:
    """Number of top slots left untouched by diversity injection (at least one)."""
    return max(1, int(math.floor(size * fraction)))


def rank_slots(fitnesses) -> list:
    """Slot indices ordered by fitness ascending; ties keep slot order."""
    return sorted(range(len(fitnesses)), key=lambda i: fitnesses[i])


def regenerate_around(best_genome, rng: np.random.Generator,
                      ranges=INJECTION_SCALE_RANGES) -> list:
    return scale_genome(best_genome, ranges, rng)


def diversity_metric(population) -> float:
    """Compute normalized average pairwise distance in parameter space.

    Higher values = more diverse population.
    """
    if len(population) < 2:
        return 0.0

    genomes = np.array([list(ind) for ind in population], dtype=float)

    # Normalize each gene to [0, 1]
    bounds = np.array(PARAM_BOUNDS)
    ranges = bounds[:, 1] - bounds[:, 0]
    normalized = (genomes - bounds[:, 0]) / ranges

    return float(np.mean(pdist(normalized)))
