"""Stagnation tracking for the differential evolution loop."""

import math

from backend.config import STAGNATION_INTERVAL


class StagnationMonitor:
    """Counts generations since the global best last improved.

    Injection is due every `interval` stagnant generations (500, 1000, ...).
    Only a genuine improvement resets the counter.
    """

    def __init__(self, interval: int = STAGNATION_INTERVAL):
        if interval < 1:
            raise ValueError(f"Stagnation interval must be positive, got {interval}")
        self.interval = interval
        self.best_fitness = math.inf
        self.count = 0

    def reset(self, best_fitness: float = math.inf):
        self.best_fitness = best_fitness
        self.count = 0

    def observe(self, best_fitness: float) -> bool:
        """Record one generation's best. Returns True on improvement."""
        if best_fitness < self.best_fitness:
            self.best_fitness = best_fitness
            self.count = 0
            return True
        self.count += 1
        return False

    @property
    def should_inject(self) -> bool:
        return self.count > 0 and self.count % self.interval == 0
