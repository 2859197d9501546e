"""Differential evolution engine using DEAP containers for fuel-model fitting."""

import numpy as np
from deap import base, creator, tools

from backend.config import MIN_POPULATION_SIZE, PBEST_PROBABILITY
from backend.evolution.fitness import FitnessEvaluator
from backend.evolution.operators import de_crossover, sample_donors
from backend.evolution.population import (
    initialize_population_from_seed, keep_count, rank_slots, regenerate_around,
)
from backend.model.fuel_model import FitParams


# DEAP creator setup (module-level, only once)
if not hasattr(creator, "FitnessMin"):
    creator.create("FitnessMin", base.Fitness, weights=(-1.0,))
if not hasattr(creator, "Individual"):
    creator.create("Individual", list, fitness=creator.FitnessMin)


def fitness_of(individual) -> float:
    return individual.fitness.values[0]


class DifferentialEvolutionEngine:
    """Advances a fixed-size population one generation at a time.

    Every operation returns a new population list; the list passed in is
    never modified, so donors for every slot of a generation come from the
    same snapshot.
    """

    def __init__(self, evaluator: FitnessEvaluator, population_size: int,
                 differential_weight: float, crossover_rate: float,
                 rng: np.random.Generator = None,
                 pbest_prob: float = PBEST_PROBABILITY):
        if population_size < MIN_POPULATION_SIZE:
            raise ValueError(
                f"Population size must be at least {MIN_POPULATION_SIZE}, got {population_size}")
        self.pop_size = population_size
        self.differential_weight = differential_weight
        self.crossover_rate = crossover_rate
        self.pbest_prob = pbest_prob
        self.evaluator = evaluator
        self.rng = rng if rng is not None else np.random.default_rng()

        # Setup DEAP toolbox
        self.toolbox = base.Toolbox()
        self.toolbox.register("evaluate", evaluator.evaluate)
        self.toolbox.register("mate", de_crossover,
                              differential_weight=differential_weight,
                              crossover_rate=crossover_rate, rng=self.rng)

    def _create_individual(self, genome):
        ind = creator.Individual(genome)
        ind.fitness.values = self.toolbox.evaluate(ind)
        return ind

    def initialize(self, seed: FitParams) -> list:
        """Build and score the starting population around the seed."""
        genomes = initialize_population_from_seed(seed.to_list(), self.pop_size, self.rng)
        return [self._create_individual(g) for g in genomes]

    @staticmethod
    def best_index(population) -> int:
        """Slot of the lowest fitness (first one on ties)."""
        return min(range(len(population)), key=lambda i: fitness_of(population[i]))

    @staticmethod
    def best(population):
        return tools.selBest(population, 1)[0]

    def step(self, population) -> list:
        """One generation of DE/rand/1/bin with pBest bias and per-slot elitism."""
        n = len(population)
        best_idx = self.best_index(population)
        offspring = []

        for i, target in enumerate(population):
            a, b, c = sample_donors(i, n, self.rng)
            if self.rng.random() < self.pbest_prob:
                a = best_idx

            trial = self.toolbox.clone(target)
            self.toolbox.mate(trial, population[a], population[b], population[c])
            trial.fitness.values = self.toolbox.evaluate(trial)

            # A slot only ever moves to strictly better fitness
            if fitness_of(trial) < fitness_of(target):
                offspring.append(trial)
            else:
                offspring.append(target)

        return offspring

    def inject_diversity(self, population) -> list:
        """Keep the top slots, regenerate the rest around the current best."""
        order = rank_slots([fitness_of(ind) for ind in population])
        best = population[order[0]]

        refreshed = list(population)
        for idx in order[keep_count(len(population)):]:
            refreshed[idx] = self._create_individual(regenerate_around(best, self.rng))
        return refreshed
