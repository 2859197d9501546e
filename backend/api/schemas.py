"""Pydantic models for API request/response validation."""

from pydantic import BaseModel, Field
from typing import Optional

from backend.config import DEDefaults, MIN_POPULATION_SIZE
from backend.model.fuel_model import FitParams

_de = DEDefaults()
_fit = FitParams()


class FitParamsModel(BaseModel):
    power_a: float = Field(_fit.power_a, gt=0.0, allow_inf_nan=False)
    power_n: float = Field(_fit.power_n, gt=0.0, allow_inf_nan=False)
    power_m: float = Field(_fit.power_m, allow_inf_nan=False)
    linear_c: float = Field(_fit.linear_c, allow_inf_nan=False)
    linear_m: float = Field(_fit.linear_m, allow_inf_nan=False)

    def to_params(self) -> FitParams:
        return FitParams(**self.model_dump())


class DataPointModel(BaseModel):
    cylinders: float = Field(..., ge=0.0, allow_inf_nan=False)
    ratio: float = Field(..., gt=0.0, allow_inf_nan=False)
    throttle: float = Field(..., ge=0.0, allow_inf_nan=False)
    fuel: float = Field(..., allow_inf_nan=False)
    torque: Optional[float] = None


class DataUpload(BaseModel):
    text: str = Field(..., min_length=1)


class DataRecords(BaseModel):
    records: list[DataPointModel] = Field(default_factory=list)


class OptimizerConfig(BaseModel):
    population_size: int = Field(_de.population_size, ge=MIN_POPULATION_SIZE, le=1000)
    differential_weight: float = Field(_de.differential_weight, ge=0.0, le=2.0)
    crossover_rate: float = Field(_de.crossover_rate, ge=0.0, le=1.0)
    max_generations: int = Field(_de.max_generations, ge=0)
    seed: Optional[int] = Field(None, ge=0)
    # None = start from the session's current parameters
    params: Optional[FitParamsModel] = None
