"""Global configuration and constants for the fuel formula fitter."""

from dataclasses import dataclass


# Calibration anchor separating the power-law and linear regimes
REFERENCE_THROTTLE = 100.0
REFERENCE_RATIO = 14.0

# Fitness rounding rule
ROUND_DECIMALS = 3
MIN_ACTUAL_FUEL = 0.001  # rounded actual values at or below this are skipped


@dataclass
class DEDefaults:
    population_size: int = 100
    differential_weight: float = 0.4  # F
    crossover_rate: float = 0.5       # CR
    max_generations: int = 0          # 0 = run until stopped


MIN_POPULATION_SIZE = 4  # target + 3 distinct donors

# ── Evolvable parameter vector: 5 genes ──
PARAM_NAMES = ["power_a", "power_n", "power_m", "linear_c", "linear_m"]

PARAM_BOUNDS = [
    (0.0001, 0.1),  # [0] power_a
    (1.0, 5.0),     # [1] power_n: throttle exponent
    (1.0, 5.0),     # [2] power_m: ratio exponent (power regime)
    (0.01, 5.0),    # [3] linear_c
    (0.1, 5.0),     # [4] linear_m: ratio exponent (linear regime)
]

# Multiplier ranges applied to the seed when filling slots 1..N-1
INIT_SCALE_RANGES = [
    (0.3, 1.7),
    (0.8, 1.2),
    (0.8, 1.2),
    (0.3, 1.7),
    (0.7, 1.3),
]

# Wider multiplier ranges applied to the best individual on diversity injection
INJECTION_SCALE_RANGES = [
    (0.1, 1.9),
    (0.7, 1.3),
    (0.7, 1.3),
    (0.3, 1.7),
    (0.5, 1.5),
]

# (offset, span) pairs for drawing a fresh random starting point
RANDOMIZE_RANGES = [
    (0.001, 0.01),
    (2.0, 2.0),
    (2.0, 2.0),
    (0.05, 0.3),
    (0.5, 2.0),
]

PBEST_PROBABILITY = 0.2
STAGNATION_INTERVAL = 500
KEEP_FRACTION = 0.2

# Controller event log and push cadence
LOG_CAPACITY = 6
SNAPSHOT_INTERVAL = 50

# Chart grouping thresholds (display only, never applied to fitting)
CYLINDER_GROUP_MIN = 15   # groups keyed by (ratio, throttle)
THROTTLE_GROUP_MIN = 10   # groups keyed by (cylinders, ratio)

WORST_ERRORS_SHOWN = 10

SERVER_HOST = "0.0.0.0"
SERVER_PORT = 8000
