"""Delimited-text ingestion, validation and deduplication of fuel measurements."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from backend.log import get_logger
from backend.model.fuel_model import CylinderModelParams, fuel_per_cylinder

logger = get_logger(__name__)

COLUMNS = ["cylinders", "ratio", "throttle", "torque", "fuel"]
REQUIRED_COLUMNS = ["cylinders", "ratio", "throttle", "fuel"]
DEDUP_KEY = ["cylinders", "ratio", "throttle"]


@dataclass(frozen=True)
class DataPoint:
    cylinders: float
    ratio: float
    throttle: float
    fuel: float
    torque: Optional[float] = None

    @property
    def key(self) -> tuple:
        return (self.cylinders, self.ratio, self.throttle)


@dataclass
class IngestResult:
    records: list[DataPoint] = field(default_factory=list)
    total_rows: int = 0
    duplicates: int = 0
    rejected: int = 0

    def summary(self) -> str:
        return (f"Loaded: {len(self.records)} rows "
                f"({self.duplicates} duplicates removed, {self.rejected} rejected)")


def detect_delimiter(line: str) -> str:
    """Tab if the line holds more tabs than commas, comma otherwise."""
    return "\t" if line.count("\t") > line.count(",") else ","


def parse_delimited(text: str) -> IngestResult:
    """Parse CSV/TSV text whose first line is a header.

    Columns are positional: cylinders, ratio, throttle, torque, fuel.
    """
    lines = text.strip().splitlines()
    if len(lines) < 2:
        return IngestResult()

    delimiter = detect_delimiter(lines[0])
    rows = []
    for line in lines[1:]:
        cells = [cell.strip() for cell in line.split(delimiter)][:len(COLUMNS)]
        cells += [""] * (len(COLUMNS) - len(cells))
        rows.append(cells)

    frame = pd.DataFrame(rows, columns=COLUMNS).apply(pd.to_numeric, errors="coerce")
    frame = frame.dropna(subset=REQUIRED_COLUMNS)
    return _validate_and_dedupe(frame, total_rows=len(rows))


def ingest_records(rows: Iterable[dict]) -> IngestResult:
    """Validate and deduplicate already-structured rows (e.g. from JSON)."""
    rows = list(rows)
    if not rows:
        return IngestResult()
    frame = pd.DataFrame(rows, columns=COLUMNS).apply(pd.to_numeric, errors="coerce")
    missing = frame[REQUIRED_COLUMNS].isna().any(axis=1)
    result = _validate_and_dedupe(frame[~missing], total_rows=len(rows))
    result.rejected += int(missing.sum())
    return result


def _validate_and_dedupe(frame: pd.DataFrame, total_rows: int) -> IngestResult:
    finite = np.isfinite(frame[REQUIRED_COLUMNS].to_numpy(dtype=float)).all(axis=1)
    cylinders = frame["cylinders"].to_numpy(dtype=float)
    valid = (finite
             & (frame["ratio"].to_numpy(dtype=float) > 0)
             & (cylinders >= 0)
             & (frame["throttle"].to_numpy(dtype=float) >= 0))
    # Negative cylinder counts make the wave term NaN
    with np.errstate(all="ignore"):
        fpc = np.asarray(fuel_per_cylinder(cylinders, CylinderModelParams()), dtype=float)
    valid &= np.isfinite(fpc)
    rejected = int((~valid).sum())
    frame = frame[valid]

    deduped = frame.drop_duplicates(subset=DEDUP_KEY, keep="first")
    duplicates = len(frame) - len(deduped)

    records = [
        DataPoint(
            cylinders=float(row.cylinders),
            ratio=float(row.ratio),
            throttle=float(row.throttle),
            fuel=float(row.fuel),
            torque=None if pd.isna(row.torque) else float(row.torque),
        )
        for row in deduped.itertuples(index=False)
    ]

    result = IngestResult(records=records, total_rows=total_rows,
                          duplicates=duplicates, rejected=rejected)
    logger.info(result.summary())
    return result
