"""
CPU backends for power simulation.

CPUPowerBackend: fixed-sample power, one analysis per repetition.
CPUSequentialBackend: group-sequential power, one SequentialTrialRunner
    trial per repetition.

Both fork independent repetitions through _executor.fork_join and reduce
only after every repetition has completed. A repetition is atomic: it
contributes exactly one FitResult or TrialOutcome, or its exception
propagates and no summary is produced.
"""

from __future__ import annotations

import math
from functools import partial

import numpy as np

from powersim.core.result import Result
from powersim.core.compute.timing import Timer
from powersim.simulation._ci import clopper_pearson
from powersim.simulation._common import (
    FitResult, PowerParams, PowerSummary, SequentialParams, StopCategory,
    StopDistribution, TrialOutcome,
)
from powersim.simulation._executor import fork_join, resolve_n_jobs
from powersim.simulation._generate import generate
from powersim.simulation.design import PowerDesign, SequentialDesign, TrialDesign, LookSchedule
from powersim.simulation.sequential import SequentialTrialRunner, safe_analyze

# Failure rate above which a run is flagged in Result.warnings
FAILURE_RATE_WARNING = 0.10


def _fixed_repetition(trial: TrialDesign, analyzer, target: int, seed: int) -> FitResult:
    return safe_analyze(analyzer, generate(trial, seed), target)


def _sequential_repetition(
    trial: TrialDesign,
    schedule: LookSchedule,
    analyzer,
    target: int,
    seed: int,
) -> TrialOutcome:
    runner = SequentialTrialRunner(schedule, analyzer, target)
    return runner.run(generate(trial, seed))


def summarize_power(
    n_significant: int,
    reps: int,
    n_failed: int,
    conf_level: float,
) -> PowerSummary:
    """Reduce counts to a PowerSummary with a Clopper-Pearson interval."""
    lower, upper = clopper_pearson(n_significant, reps, conf_level)
    return PowerSummary(
        power=n_significant / reps,
        ci_lower=lower,
        ci_upper=upper,
        conf_level=conf_level,
        n_significant=n_significant,
        reps=reps,
        n_failed=n_failed,
        all_failed=n_failed == reps,
    )


def _failure_warnings(n_failed: int, reps: int, unit: str) -> list[str]:
    if n_failed == reps:
        return [
            f"all {reps} {unit} failed to produce a usable fit; "
            f"power is reported as 0"
        ]
    if n_failed / reps > FAILURE_RATE_WARNING:
        return [
            f"{n_failed} of {reps} {unit} ({n_failed / reps:.1%}) had a "
            f"fit failure and were counted as not significant"
        ]
    return []


class CPUPowerBackend:
    """Fixed-sample power via repeated generate -> analyze."""

    @property
    def name(self) -> str:
        return 'cpu_power'

    def solve(
        self,
        design: PowerDesign,
        *,
        n_jobs: int = 1,
        executor: str = 'thread',
        progress=None,
        cancel_check=None,
    ) -> Result[PowerParams]:
        """Run all repetitions and return Result[PowerParams]."""
        timer = Timer()
        timer.start()

        unit = partial(_fixed_repetition, design.trial, design.analyzer, design.target)

        with timer.section('repetitions'):
            fits = fork_join(
                unit, design.seeds(), n_jobs=n_jobs, executor=executor,
                progress=progress, cancel_check=cancel_check,
            )

        with timer.section('reduce'):
            n_failed = sum(f.failed for f in fits)
            n_significant = sum(f.significant(design.alpha) for f in fits)
            summary = summarize_power(
                n_significant, design.reps, n_failed, design.conf_level,
            )
            estimates = np.array([f.estimate for f in fits], dtype=np.float64)
            std_errors = np.array([f.std_error for f in fits], dtype=np.float64)
            p_values = np.array([f.p_value for f in fits], dtype=np.float64)
            failures = tuple(f.failure for f in fits)

        timer.stop()

        params = PowerParams(
            summary=summary,
            alpha=design.alpha,
            estimates=estimates,
            std_errors=std_errors,
            p_values=p_values,
            failures=failures,
        )

        return Result(
            params=params,
            info={
                'base_seed': design.base_seed,
                'reps': design.reps,
                'n': design.trial.n,
                'k': design.trial.k,
                'family': design.trial.family,
                'n_jobs': resolve_n_jobs(n_jobs),
                'executor': executor,
                'failure_reasons': _count_reasons(failures),
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(_failure_warnings(n_failed, design.reps, 'repetitions')),
        )


class CPUSequentialBackend:
    """Group-sequential power via repeated generate -> SequentialTrialRunner."""

    @property
    def name(self) -> str:
        return 'cpu_sequential'

    def solve(
        self,
        design: SequentialDesign,
        *,
        n_jobs: int = 1,
        executor: str = 'thread',
        progress=None,
        cancel_check=None,
    ) -> Result[SequentialParams]:
        """Run all trials and return Result[SequentialParams]."""
        timer = Timer()
        timer.start()

        unit = partial(
            _sequential_repetition,
            design.trial, design.schedule, design.analyzer, design.target,
        )

        with timer.section('trials'):
            outcomes = fork_join(
                unit, design.seeds(), n_jobs=n_jobs, executor=executor,
                progress=progress, cancel_check=cancel_check,
            )

        with timer.section('reduce'):
            n_failed = sum(o.fit.failed for o in outcomes)
            n_significant = sum(o.significant for o in outcomes)
            summary = summarize_power(
                n_significant, design.reps, n_failed, design.conf_level,
            )
            distribution = self._stop_distribution(
                outcomes, design.schedule, design.reps, design.conf_level,
            )
            expected_n = float(np.mean([o.cumulative_n for o in outcomes]))
            n_failed_looks = sum(o.n_failed_looks for o in outcomes)

        timer.stop()

        params = SequentialParams(
            summary=summary,
            distribution=distribution,
            outcomes=tuple(outcomes),
            expected_n=expected_n,
            n_failed_looks=n_failed_looks,
        )

        return Result(
            params=params,
            info={
                'base_seed': design.base_seed,
                'reps': design.reps,
                'n': design.trial.n,
                'k': design.trial.k,
                'family': design.trial.family,
                'n_looks': design.schedule.n_looks,
                'n_jobs': resolve_n_jobs(n_jobs),
                'executor': executor,
                'failure_reasons': _count_reasons(tuple(o.fit.failure for o in outcomes)),
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(_failure_warnings(n_failed, design.reps, 'trials')),
        )

    @staticmethod
    def _stop_distribution(
        outcomes: list[TrialOutcome],
        schedule: LookSchedule,
        reps: int,
        conf_level: float,
    ) -> StopDistribution:
        """Group outcomes by (look, significant) in look order."""
        groups: list[tuple[int, bool, str]] = [
            (look, True, f"look {look}: significant")
            for look in range(1, schedule.n_looks + 1)
        ]
        groups.append((schedule.n_looks, False, "final: not significant"))

        categories = []
        for look, significant, label in groups:
            members = [
                o for o in outcomes
                if o.look == look and o.significant == significant
            ]
            count = len(members)
            lower, upper = clopper_pearson(count, reps, conf_level)
            usable = [o.fit.estimate for o in members if not o.fit.failed]
            mean_estimate = math.fsum(usable) / len(usable) if usable else float('nan')
            categories.append(StopCategory(
                look=look,
                label=label,
                cumulative_n=schedule.cumulative_n[look - 1],
                threshold=schedule.thresholds[look - 1],
                significant=significant,
                count=count,
                proportion=count / reps,
                ci_lower=lower,
                ci_upper=upper,
                mean_estimate=mean_estimate,
                n_failed=sum(o.fit.failed for o in members),
            ))

        return StopDistribution(
            categories=tuple(categories), reps=reps, conf_level=conf_level,
        )


def _count_reasons(failures) -> dict[str, int]:
    counts: dict[str, int] = {}
    for reason in failures:
        if reason is not None:
            counts[reason] = counts.get(reason, 0) + 1
    return counts
