"""
Monte Carlo power estimation for randomized trials.

Simulates many synthetic trials under a data-generating design, analyzes
each with a pre-declared model and reports the proportion that reach
significance, for fixed-sample and group-sequential designs.

Usage:
    from powersim.simulation import (
        estimate_power, estimate_sequential_power, LookSchedule,
    )

    # Fixed sample size
    result = estimate_power([0.4, 0.3], n=1000, reps=2000, seed=1)

    # Three looks with pre-computed nominal thresholds
    schedule = LookSchedule.build([500, 750, 1000], [0.0031, 0.0183, 0.0440])
    seq = estimate_sequential_power([0.4, 0.3], schedule, reps=2000, seed=1)
    print(seq.summary())
"""

from powersim.simulation._common import (
    Dataset,
    FitResult,
    PowerSummary,
    Record,
    StopCategory,
    StopDistribution,
    StopState,
    TrialOutcome,
)
from powersim.simulation._ci import clopper_pearson
from powersim.simulation.analyzer import GLMAnalyzer, TrialAnalyzer
from powersim.simulation.design import (
    BoundaryProvider,
    LookSchedule,
    PowerDesign,
    SequentialDesign,
    TrialDesign,
)
from powersim.simulation.sequential import SequentialTrialRunner
from powersim.simulation.solution import (
    PowerCurveSolution,
    PowerSolution,
    SequentialPowerSolution,
)
from powersim.simulation.solvers import (
    estimate_power,
    estimate_sequential_power,
    power_curve,
    simulate,
)

__all__ = [
    # Functions
    "simulate",
    "estimate_power",
    "estimate_sequential_power",
    "power_curve",
    "clopper_pearson",
    # Designs
    "TrialDesign",
    "LookSchedule",
    "BoundaryProvider",
    "PowerDesign",
    "SequentialDesign",
    # Analysis
    "TrialAnalyzer",
    "GLMAnalyzer",
    "SequentialTrialRunner",
    # Data and results
    "Record",
    "Dataset",
    "FitResult",
    "StopState",
    "TrialOutcome",
    "PowerSummary",
    "StopCategory",
    "StopDistribution",
    "PowerSolution",
    "SequentialPowerSolution",
    "PowerCurveSolution",
]
