"""Error analysis and grouped chart views of a fitted model.

Display glue only: nothing here feeds back into the optimizer, which always
scores against the full deduplicated dataset.
"""

from collections import defaultdict

import numpy as np

from backend.config import (
    CYLINDER_GROUP_MIN, MIN_ACTUAL_FUEL, ROUND_DECIMALS, THROTTLE_GROUP_MIN, WORST_ERRORS_SHOWN,
)
from backend.evolution.fitness import round_half_up
from backend.model.fuel_model import CylinderModelParams, FitParams, calc_fuel

HALF_ULP = 0.5 * 10.0 ** -ROUND_DECIMALS

CHART_MODES = ("cylinder", "ratio-throttle")


def analyze(dataset: list, fit: FitParams, cyl: CylinderModelParams) -> dict:
    """Per-record errors plus summary statistics.

    `remaining_to_round` is how far the modeled value sits outside the window
    that would round to the actual value (0 when it already rounds correctly).
    """
    if not dataset:
        return {"rows": [], "avg_err": 0.0, "max_err": 0.0, "avg_pct": 0.0,
                "correct_rounds": 0, "total": 0, "worst": [], "wrong_count": 0}

    actual = np.array([d.fuel for d in dataset], dtype=float)
    calc = np.asarray(calc_fuel(
        np.array([d.throttle for d in dataset], dtype=float),
        np.array([d.ratio for d in dataset], dtype=float),
        np.array([d.cylinders for d in dataset], dtype=float),
        fit, cyl,
    ), dtype=float)

    rounded_calc = round_half_up(calc)
    rounded_actual = round_half_up(actual)
    err = np.abs(actual - calc)
    with np.errstate(all="ignore"):
        pct = np.where(rounded_actual > MIN_ACTUAL_FUEL,
                       np.abs((rounded_calc - rounded_actual) / rounded_actual * 100.0), 0.0)
    correct = rounded_calc == rounded_actual

    lower = actual - HALF_ULP
    upper = actual + HALF_ULP
    remaining = np.where(calc < lower, lower - calc, np.where(calc > upper, calc - upper, 0.0))
    remaining = np.where(correct, 0.0, remaining)

    rows = []
    for i, d in enumerate(dataset):
        rows.append({
            "cylinders": d.cylinders, "ratio": d.ratio, "throttle": d.throttle, "fuel": d.fuel,
            "calc": float(calc[i]), "err": float(err[i]), "pct": float(pct[i]),
            "rounds_correct": bool(correct[i]), "remaining_to_round": float(remaining[i]),
        })

    wrong = sorted((r for r in rows if not r["rounds_correct"]),
                   key=lambda r: (-r["remaining_to_round"], -r["pct"]))

    return {
        "rows": rows,
        "avg_err": float(np.mean(err)),
        "max_err": float(np.max(err)),
        "avg_pct": float(np.mean(pct)),
        "correct_rounds": int(correct.sum()),
        "total": len(dataset),
        "worst": wrong[:WORST_ERRORS_SHOWN],
        "wrong_count": len(wrong),
    }


def _group_key(d, mode: str) -> tuple:
    if mode == "cylinder":
        return (d.ratio, d.throttle)
    return (d.cylinders, d.ratio)


def group_records(records: list, mode: str) -> dict:
    """Group records by (ratio, throttle) in cylinder mode, else by (cylinders, ratio).

    Groups smaller than the mode's threshold are dropped.
    """
    if mode not in CHART_MODES:
        raise ValueError(f"Unknown chart mode: {mode}")
    minimum = CYLINDER_GROUP_MIN if mode == "cylinder" else THROTTLE_GROUP_MIN

    groups = defaultdict(list)
    for d in records:
        groups[_group_key(d, mode)].append(d)
    return {key: group for key, group in groups.items() if len(group) >= minimum}


def filter_by_group_size(records: list, mode: str) -> list:
    filtered = []
    for group in group_records(records, mode).values():
        filtered.extend(group)
    return filtered


def chart_series(records: list, fit: FitParams, cyl: CylinderModelParams, mode: str) -> dict:
    """Averaged actual vs. modeled fuel per qualifying group.

    Cylinder mode plots against cylinder count, the other mode against throttle.
    """
    groups = group_records(records, mode)
    x_name = "cylinders" if mode == "cylinder" else "throttle"

    lines = []
    for key in groups:
        if mode == "cylinder":
            lines.append({"key": f"{key[0]}-{key[1]}", "ratio": key[0], "throttle": key[1]})
        else:
            lines.append({"key": f"{key[0]}-{key[1]}", "cylinders": key[0], "ratio": key[1]})

    xs = sorted({getattr(d, x_name) for group in groups.values() for d in group})
    points = []
    for x in xs:
        point = {x_name: x}
        for line, group in zip(lines, groups.values()):
            matches = [d for d in group if getattr(d, x_name) == x]
            if not matches:
                continue
            avg_fuel = float(np.mean([d.fuel for d in matches]))
            if mode == "cylinder":
                avg_ratio = float(np.mean([d.ratio for d in matches]))
                avg_throttle = float(np.mean([d.throttle for d in matches]))
                calc = calc_fuel(avg_throttle, avg_ratio, x, fit, cyl)
            else:
                avg_cylinders = float(np.mean([d.cylinders for d in matches]))
                calc = calc_fuel(x, line["ratio"], avg_cylinders, fit, cyl)
            point[f"{line['key']}_actual"] = avg_fuel
            point[f"{line['key']}_calc"] = float(calc)
        points.append(point)

    return {"mode": mode, "x": x_name, "lines": lines, "points": points}
