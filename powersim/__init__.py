"""
powersim: simulation-based power estimation for randomized trials.

Estimates the probability that a trial detects a treatment effect by
simulating many synthetic trials and analyzing each one, for fixed
sample sizes and for group-sequential designs with interim looks.

Submodules:
    simulation: Data generation, power aggregation, sequential trials
    regression: Generalized linear models used as the trial analysis
"""

__version__ = "0.1.0"

from powersim import regression
from powersim import simulation
from powersim.simulation import (
    estimate_power,
    estimate_sequential_power,
    power_curve,
    simulate,
)

__all__ = [
    "__version__",
    "regression",
    "simulation",
    "simulate",
    "estimate_power",
    "estimate_sequential_power",
    "power_curve",
]
