"""
Solver dispatch for power simulation.

Public API:
    simulate(design, seed)                      one synthetic dataset
    estimate_power(design, n, ...)              fixed-sample power
    estimate_sequential_power(design, schedule) group-sequential power
    power_curve(design, sample_sizes, ...)      power over a grid of n

Input validation happens here, at the boundary; designs are frozen and
trusted everywhere else. Every run is reproducible: repetition i uses
seed base_seed + i, and when no seed is given a base seed is drawn from
fresh OS entropy and reported in solution.seed.
"""

from __future__ import annotations

import warnings
from typing import Iterable, Sequence

import numpy as np

from powersim.core.exceptions import InvalidConfiguration, InvalidDesign
from powersim.core.result import Result
from powersim.core.compute.timing import Timer
from powersim.core.validation import check_positive_int
from powersim.simulation._common import Dataset, PowerCurveParams
from powersim.simulation._executor import EXECUTORS, CancelCheck, ProgressCallback
from powersim.simulation._generate import generate
from powersim.simulation.analyzer import GLMAnalyzer, TrialAnalyzer
from powersim.simulation.backends.cpu import CPUPowerBackend, CPUSequentialBackend
from powersim.simulation.design import (
    LookSchedule, PowerDesign, SequentialDesign, TrialDesign,
)
from powersim.simulation.solution import (
    PowerCurveSolution, PowerSolution, SequentialPowerSolution,
)


def simulate(
    design: TrialDesign | Sequence[float],
    seed: int | None = None,
    *,
    n: int | None = None,
    family: str = 'binomial',
) -> Dataset:
    """
    Generate one synthetic trial.

    Args:
        design: TrialDesign, or per-arm outcome parameters (then n is required).
        seed: Random seed. The same seed always yields the same dataset.
        n: Total sample size when design is given as parameters.
        family: Outcome family when design is given as parameters.

    Returns:
        Read-only Dataset with balanced arm assignment.

    Raises:
        InvalidDesign: If the design is malformed.
    """
    trial = _resolve_trial(design, n, family)
    if seed is not None:
        seed = check_positive_int(seed, 'seed', error=InvalidConfiguration, minimum=0)
    return generate(trial, seed)


def estimate_power(
    design: TrialDesign | Sequence[float],
    n: int | None = None,
    *,
    reps: int = 1000,
    alpha: float = 0.05,
    conf_level: float = 0.95,
    seed: int | None = None,
    analyzer: TrialAnalyzer | None = None,
    target: int = 1,
    family: str = 'binomial',
    n_jobs: int = 1,
    executor: str = 'thread',
    progress: ProgressCallback | None = None,
    cancel_check: CancelCheck | None = None,
) -> PowerSolution:
    """
    Estimate power of a fixed-sample trial by simulation.

    Each repetition generates a trial, fits the analyzer and records the
    FitResult. Power is the proportion of repetitions with p < alpha,
    reported with an exact Clopper-Pearson interval at conf_level.

    Args:
        design: TrialDesign, or per-arm outcome parameters (then n is required).
        n: Total sample size; overrides design.n when design is a TrialDesign.
        reps: Number of repetitions (>= 1).
        alpha: Significance level of the analysis test.
        conf_level: Confidence level of the power interval.
        seed: Base seed; repetition i uses seed + i.
        analyzer: TrialAnalyzer; defaults to GLMAnalyzer(family).
        target: Coefficient tested (1 = arm 1 vs arm 0).
        family: Outcome family when design is given as parameters.
        n_jobs: Worker count; 1 runs inline, -1 uses every CPU.
        executor: 'thread' or 'process' pool when n_jobs != 1.
        progress: Called as progress(completed, total) after each repetition.
        cancel_check: Polled before launching each repetition; returning
            True stops the run with SimulationCancelled.

    Returns:
        PowerSolution

    Raises:
        InvalidDesign: If the data-generating design is malformed.
        InvalidConfiguration: If reps, alpha, conf_level, target or the
            execution settings are unusable.
        SimulationCancelled: If cancel_check() requested cancellation.

    Example:
        >>> result = estimate_power([0.4, 0.3], n=1000, reps=2000, seed=1)
        >>> print(result.summary())
    """
    trial = _resolve_trial(design, n, family)
    _check_execution(n_jobs, executor)
    power_design = PowerDesign.for_power(
        trial,
        reps=reps,
        alpha=alpha,
        conf_level=conf_level,
        base_seed=_resolve_seed(seed),
        analyzer=analyzer if analyzer is not None else GLMAnalyzer(trial.family),
        target=target,
    )

    result = CPUPowerBackend().solve(
        power_design, n_jobs=n_jobs, executor=executor,
        progress=progress, cancel_check=cancel_check,
    )
    _emit_warnings(result)
    return PowerSolution(_result=result, _design=power_design)


def estimate_sequential_power(
    design: TrialDesign | Sequence[float],
    look_schedule: LookSchedule | Iterable[tuple[int, float]],
    *,
    reps: int = 1000,
    conf_level: float = 0.95,
    seed: int | None = None,
    analyzer: TrialAnalyzer | None = None,
    target: int = 1,
    family: str = 'binomial',
    n_jobs: int = 1,
    executor: str = 'thread',
    progress: ProgressCallback | None = None,
    cancel_check: CancelCheck | None = None,
) -> SequentialPowerSolution:
    """
    Estimate power of a group-sequential trial by simulation.

    Each trial is analyzed at every look of the schedule in turn and stops
    at the first look whose p-value is below that look's threshold. Power
    is the proportion of trials that stopped for efficacy; the stop
    distribution reports where trials stopped and the mean effect estimate
    at stopping.

    Args:
        design: TrialDesign, or per-arm outcome parameters (the total
            sample size is then the schedule's final cumulative_n).
        look_schedule: LookSchedule, or (cumulative_n, threshold) pairs.
        reps: Number of simulated trials (>= 1).
        conf_level: Confidence level for power and stop proportions.
        seed: Base seed; trial i uses seed + i, so a fixed-sample run with
            the same seed analyzes the same full datasets.
        analyzer, target, family, n_jobs, executor, progress, cancel_check:
            As for estimate_power.

    Returns:
        SequentialPowerSolution

    Raises:
        InvalidDesign: If the design or schedule is malformed, or the
            schedule's final look is not the design's sample size.
        InvalidConfiguration: If the schedule is empty or settings are unusable.
        SimulationCancelled: If cancel_check() requested cancellation.
    """
    schedule = _resolve_schedule(look_schedule)
    if isinstance(design, TrialDesign):
        trial = design
    else:
        trial = _resolve_trial(design, schedule.final_n, family)
    _check_execution(n_jobs, executor)

    seq_design = SequentialDesign.for_sequential(
        trial,
        schedule,
        reps=reps,
        conf_level=conf_level,
        base_seed=_resolve_seed(seed),
        analyzer=analyzer if analyzer is not None else GLMAnalyzer(trial.family),
        target=target,
    )

    result = CPUSequentialBackend().solve(
        seq_design, n_jobs=n_jobs, executor=executor,
        progress=progress, cancel_check=cancel_check,
    )
    _emit_warnings(result)
    return SequentialPowerSolution(_result=result, _design=seq_design)


def power_curve(
    design: TrialDesign | Sequence[float],
    sample_sizes: Sequence[int],
    *,
    reps: int = 1000,
    alpha: float = 0.05,
    conf_level: float = 0.95,
    seed: int | None = None,
    analyzer: TrialAnalyzer | None = None,
    target: int = 1,
    family: str = 'binomial',
    n_jobs: int = 1,
    executor: str = 'thread',
    cancel_check: CancelCheck | None = None,
) -> PowerCurveSolution:
    """
    Simulated power at each total sample size in sample_sizes.

    Every sample size is simulated with the same base seed. Arguments are
    as for estimate_power.

    Raises:
        InvalidConfiguration: If sample_sizes is empty.
    """
    sizes = [check_positive_int(m, 'sample_sizes', error=InvalidDesign) for m in sample_sizes]
    if not sizes:
        raise InvalidConfiguration(
            "sample_sizes must not be empty",
            parameter='sample_sizes', value=sample_sizes,
        )
    sizes = sorted(set(sizes))

    base = _resolve_trial(design, sizes[0], family)
    base_seed = _resolve_seed(seed)

    timer = Timer()
    timer.start()
    solutions = []
    for m in sizes:
        with timer.section(f'n={m}'):
            solutions.append(estimate_power(
                base.with_n(m),
                reps=reps, alpha=alpha, conf_level=conf_level, seed=base_seed,
                analyzer=analyzer, target=target, n_jobs=n_jobs,
                executor=executor, cancel_check=cancel_check,
            ))
    timer.stop()

    params = PowerCurveParams(
        sample_sizes=np.array(sizes, dtype=np.int64),
        summaries=tuple(s.power_summary for s in solutions),
    )
    result = Result(
        params=params,
        info={'base_seed': base_seed, 'reps': reps},
        timing=timer.result(),
        backend_name=solutions[0].backend_name,
        warnings=tuple(
            f"n={m}: {w}" for m, s in zip(sizes, solutions) for w in s.warnings
        ),
    )
    return PowerCurveSolution(_result=result, _design=solutions[0]._design)


def _resolve_trial(design, n, family) -> TrialDesign:
    if isinstance(design, TrialDesign):
        if n is None or n == design.n:
            return design
        return design.with_n(n)
    if n is None:
        raise InvalidDesign(
            "n is required when the design is given as outcome parameters",
            parameter='n', value=n,
        )
    return TrialDesign.build(design, n, family=family)


def _resolve_schedule(look_schedule) -> LookSchedule:
    if isinstance(look_schedule, LookSchedule):
        return look_schedule
    pairs = list(look_schedule)
    if not pairs:
        raise InvalidConfiguration(
            "look schedule must contain at least one look",
            parameter='look_schedule', value=look_schedule,
        )
    cumulative_n, thresholds = zip(*pairs)
    return LookSchedule.build(cumulative_n, thresholds)


def _resolve_seed(seed: int | None) -> int:
    if seed is None:
        return int(np.random.SeedSequence().generate_state(1)[0])
    return check_positive_int(seed, 'seed', error=InvalidConfiguration, minimum=0)


def _check_execution(n_jobs: int, executor: str) -> None:
    if executor not in EXECUTORS:
        raise InvalidConfiguration(
            f"executor must be one of {EXECUTORS}, got {executor!r}",
            parameter='executor', value=executor,
        )
    if n_jobs != -1:
        check_positive_int(n_jobs, 'n_jobs', error=InvalidConfiguration)


def _emit_warnings(result: Result) -> None:
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=3)
