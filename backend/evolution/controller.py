"""Optimization controller: runs DE generations cooperatively on the event loop."""

import asyncio
import math
from collections import deque
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional

import numpy as np

from backend.config import LOG_CAPACITY, MIN_POPULATION_SIZE, STAGNATION_INTERVAL
from backend.evolution.de_engine import DifferentialEvolutionEngine, fitness_of
from backend.evolution.fitness import FitnessEvaluator
from backend.evolution.population import diversity_metric
from backend.evolution.stagnation import StagnationMonitor
from backend.log import get_logger
from backend.model.fuel_model import CylinderModelParams, FitParams

logger = get_logger(__name__)


class NoDataError(ValueError):
    """Raised when an optimization is started without any data points."""


@dataclass(frozen=True)
class OptimizationState:
    generation: int = 0
    best_fitness: float = math.inf
    best_params: Optional[FitParams] = None
    stagnation_count: int = 0
    running: bool = False


class OptimizationController:
    """Idle -> Running -> Idle state machine around the DE engine.

    The scheduler (run_async) only decides when to call step(); step() alone
    decides what a generation does and publishes a fresh OptimizationState.
    """

    def __init__(self, cylinder_params: CylinderModelParams = CylinderModelParams(),
                 rng: np.random.Generator = None,
                 stagnation_interval: int = STAGNATION_INTERVAL,
                 log_capacity: int = LOG_CAPACITY):
        self.cylinder_params = cylinder_params
        self.rng = rng if rng is not None else np.random.default_rng()
        self.monitor = StagnationMonitor(stagnation_interval)
        self.engine: Optional[DifferentialEvolutionEngine] = None
        self.population: list = []
        self.max_generations = 0
        self._state = OptimizationState()
        self._log = deque(maxlen=log_capacity)

    @property
    def state(self) -> OptimizationState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def log(self) -> list:
        return list(self._log)

    def add_log(self, message: str):
        self._log.append(message)
        logger.info(message)

    def start(self, seed_params: FitParams, dataset: list, population_size: int,
              differential_weight: float, crossover_rate: float,
              max_generations: int = 0,
              rng: np.random.Generator = None) -> OptimizationState:
        """Seed a population and enter Running. Raises before any generation on bad input.

        Passing rng replaces the random source for this and later runs.
        """
        if not dataset:
            self.add_log("ERROR: No data loaded")
            raise NoDataError("No data loaded")
        if population_size < MIN_POPULATION_SIZE:
            raise ValueError(
                f"Population size must be at least {MIN_POPULATION_SIZE}, got {population_size}")
        if rng is not None:
            self.rng = rng

        evaluator = FitnessEvaluator(dataset, self.cylinder_params)
        self.engine = DifferentialEvolutionEngine(
            evaluator=evaluator,
            population_size=population_size,
            differential_weight=differential_weight,
            crossover_rate=crossover_rate,
            rng=self.rng,
        )
        self.max_generations = max_generations

        self.add_log(f"START: {len(dataset)} rows, N={population_size}, "
                     f"F={differential_weight:.2f}, CR={crossover_rate:.2f}")
        self.population = self.engine.initialize(seed_params)
        self.add_log(f"Initial fitness: {fitness_of(self.population[0]):.3f}%")

        best = self.engine.best(self.population)
        self.monitor.reset(fitness_of(best))
        self._state = OptimizationState(
            generation=0,
            best_fitness=fitness_of(best),
            best_params=FitParams.from_list(best),
            stagnation_count=0,
            running=True,
        )
        return self._state

    def step(self) -> OptimizationState:
        """Advance exactly one generation."""
        if not self._state.running:
            return self._state

        state = self._state
        self.population = self.engine.step(self.population)

        best_idx = self.engine.best_index(self.population)
        best = self.population[best_idx]
        best_fitness = fitness_of(best)
        best_params = state.best_params

        if self.monitor.observe(best_fitness):
            best_params = FitParams.from_list(best)
            self.add_log(f"Gen {state.generation}: {best_fitness:.3f}%")

        if self.monitor.should_inject:
            logger.warning("Stuck for %d generations", self.monitor.count)
            self.add_log(f"Stuck for {self.monitor.count} gens, injecting diversity")
            self.population = self.engine.inject_diversity(self.population)

        generation = state.generation + 1
        running = True
        if self.max_generations > 0 and generation >= self.max_generations:
            self.add_log(f"Reached {self.max_generations} generations")
            running = False

        self._state = replace(
            state,
            generation=generation,
            best_fitness=self.monitor.best_fitness,
            best_params=best_params,
            stagnation_count=self.monitor.count,
            running=running,
        )
        return self._state

    async def run_async(self, on_generation: Callable[[OptimizationState], Awaitable] = None
                        ) -> OptimizationState:
        """Step until stopped or capped, yielding to the event loop between generations."""
        while self._state.running:
            state = self.step()
            if on_generation is not None:
                await on_generation(state)
            await asyncio.sleep(0)
        return self._state

    def stop(self):
        """Leave Running; honored at the next generation boundary."""
        if self._state.running:
            self.add_log(f"Stopped at generation {self._state.generation}")
            self._state = replace(self._state, running=False)

    def boost(self) -> bool:
        """Manual diversity injection. Does not touch the stagnation counter."""
        if not self._state.running:
            return False
        self.population = self.engine.inject_diversity(self.population)
        self.add_log("Diversity injected manually")
        return True

    def status(self) -> dict:
        state = self._state
        return {
            "generation": state.generation,
            "best_fitness": state.best_fitness,
            "best_params": state.best_params.to_dict() if state.best_params else None,
            "canonical_params": state.best_params.to_canonical() if state.best_params else None,
            "stagnation_count": state.stagnation_count,
            "running": state.running,
            "population_size": len(self.population),
            "diversity": diversity_metric(self.population),
            "log": self.log,
        }
