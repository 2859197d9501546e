"""Process-wide fitting session shared by the REST and WebSocket handlers."""

import asyncio
import math
from typing import Awaitable, Callable, Optional

import numpy as np

from backend.api.schemas import OptimizerConfig
from backend.data.ingest import DataPoint, IngestResult
from backend.evolution.controller import OptimizationController, OptimizationState
from backend.log import get_logger
from backend.model.fuel_model import CylinderModelParams, FitParams, random_fit_params

logger = get_logger(__name__)


def finite_or_none(value):
    """Recursively replace non-finite floats so payloads stay valid JSON."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: finite_or_none(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [finite_or_none(v) for v in value]
    return value


class FitSession:
    """Holds the dataset, the current parameters and the running optimizer."""

    def __init__(self, cylinder_params: CylinderModelParams = CylinderModelParams()):
        self.cylinder_params = cylinder_params
        self.dataset: list[DataPoint] = []
        self.params = FitParams()
        self.controller = OptimizationController(cylinder_params)
        self._task: Optional[asyncio.Task] = None

    @property
    def optimizing(self) -> bool:
        return self.controller.running

    def load(self, result: IngestResult) -> dict:
        self.dataset = result.records
        self.controller.add_log(result.summary())
        return {
            "rows": len(result.records),
            "total_rows": result.total_rows,
            "duplicates": result.duplicates,
            "rejected": result.rejected,
        }

    def randomize_params(self, seed: Optional[int] = None) -> FitParams:
        self.params = random_fit_params(np.random.default_rng(seed))
        return self.params

    def start_optimization(self, config: OptimizerConfig,
                           on_generation: Callable[[OptimizationState], Awaitable] = None,
                           on_complete: Callable[[dict], Awaitable] = None) -> dict:
        """Start a fresh run as a background task on the current event loop.

        Raises NoDataError / ValueError before anything is scheduled.
        """
        self.stop_optimization()
        if config.params is not None:
            self.params = config.params.to_params()

        controller = self.controller
        controller.start(
            seed_params=self.params,
            dataset=self.dataset,
            population_size=config.population_size,
            differential_weight=config.differential_weight,
            crossover_rate=config.crossover_rate,
            max_generations=config.max_generations,
            rng=np.random.default_rng(config.seed),
        )

        async def track(state: OptimizationState):
            # Current parameters follow the best individual while running
            if state.best_params is not None:
                self.params = state.best_params
            if on_generation is not None:
                await on_generation(state)

        async def evo_loop():
            try:
                await controller.run_async(track)
                if on_complete is not None:
                    await on_complete(self.status())
            except Exception:
                logger.exception("Optimization loop failed")
                controller.stop()
                raise

        self._task = asyncio.create_task(evo_loop())
        return self.status()

    def stop_optimization(self):
        self.controller.stop()
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    def status(self) -> dict:
        return finite_or_none(self.controller.status())


session = FitSession()
