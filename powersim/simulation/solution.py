"""
Solution wrappers for power simulation results.

PowerSolution, SequentialPowerSolution and PowerCurveSolution wrap
Result[P] and provide convenient accessors, plain-record export for
reporting layers, and fixed-width summary output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from powersim.core.result import Result
from powersim.simulation._common import (
    PowerCurveParams, PowerParams, PowerSummary, SequentialParams,
    StopDistribution, TrialOutcome,
)

if TYPE_CHECKING:
    from powersim.simulation.design import PowerDesign, SequentialDesign, TrialDesign


def _format_ci(summary: PowerSummary) -> str:
    pct = f"{summary.conf_level * 100:g}%"
    return f"{pct} CI [{summary.ci_lower:.4f}, {summary.ci_upper:.4f}]"


@dataclass
class PowerSolution:
    """
    User-facing fixed-sample power results.

    power is the proportion of repetitions with p < alpha; ci is its
    Clopper-Pearson interval.
    """
    _result: Result[PowerParams]
    _design: 'PowerDesign'

    # --- Core fields ---

    @property
    def power_summary(self) -> PowerSummary:
        return self._result.params.summary

    @property
    def power(self) -> float:
        return self._result.params.summary.power

    @property
    def ci(self) -> tuple[float, float]:
        return self._result.params.summary.ci

    @property
    def n_significant(self) -> int:
        return self._result.params.summary.n_significant

    @property
    def n_failed(self) -> int:
        """Repetitions whose fit failed (counted as not significant)."""
        return self._result.params.summary.n_failed

    @property
    def failure_rate(self) -> float:
        return self._result.params.summary.failure_rate

    @property
    def all_failed(self) -> bool:
        return self._result.params.summary.all_failed

    @property
    def estimates(self) -> NDArray[np.floating[Any]]:
        """Per-repetition effect estimates, shape (reps,), NaN for failures."""
        return self._result.params.estimates

    @property
    def std_errors(self) -> NDArray[np.floating[Any]]:
        return self._result.params.std_errors

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.p_values

    @property
    def failures(self) -> tuple[str | None, ...]:
        return self._result.params.failures

    # --- Metadata ---

    @property
    def trial(self) -> 'TrialDesign':
        return self._design.trial

    @property
    def reps(self) -> int:
        return self._design.reps

    @property
    def alpha(self) -> float:
        return self._design.alpha

    @property
    def seed(self) -> int:
        """Base seed; repetition i used seed + i."""
        return self._design.base_seed

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Reporting ---

    def to_records(self) -> list[dict[str, Any]]:
        """One plain record describing the run."""
        record = {
            'n': self.trial.n,
            'props': self.trial.props,
            'family': self.trial.family,
            'alpha': self.alpha,
        }
        record.update(self.power_summary.to_record())
        return [record]

    def summary(self) -> str:
        s = self.power_summary
        lines = [
            "\nSIMULATED POWER",
            "",
            f"Arms: {self.trial.k}   props: {list(self.trial.props)}   "
            f"family: {self.trial.family}",
            f"Sample size: {self.trial.n}   alpha: {self.alpha:g}   "
            f"repetitions: {self.reps}   seed: {self.seed}",
            "",
            f"Power: {s.power:.4f}  {_format_ci(s)}",
            f"Significant: {s.n_significant} / {s.reps}",
            f"Fit failures: {s.n_failed} ({s.failure_rate:.1%})",
        ]
        if s.all_failed:
            lines.append("WARNING: every repetition failed; power reported as 0")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"PowerSolution(n={self.trial.n}, reps={self.reps}, "
            f"power={self.power:.4f}, backend={self.backend_name!r})"
        )


@dataclass
class SequentialPowerSolution:
    """
    User-facing group-sequential power results.

    power_summary counts trials that crossed their look's boundary;
    stop_distribution breaks trials down by where they stopped.
    """
    _result: Result[SequentialParams]
    _design: 'SequentialDesign'

    # --- Core fields ---

    @property
    def power_summary(self) -> PowerSummary:
        return self._result.params.summary

    @property
    def stop_distribution(self) -> StopDistribution:
        return self._result.params.distribution

    @property
    def power(self) -> float:
        return self._result.params.summary.power

    @property
    def ci(self) -> tuple[float, float]:
        return self._result.params.summary.ci

    @property
    def expected_n(self) -> float:
        """Mean number of records analyzed when trials stopped."""
        return self._result.params.expected_n

    @property
    def outcomes(self) -> tuple[TrialOutcome, ...]:
        """Per-trial terminal records, in repetition order."""
        return self._result.params.outcomes

    @property
    def n_failed(self) -> int:
        """Trials whose terminal fit failed."""
        return self._result.params.summary.n_failed

    @property
    def n_failed_looks(self) -> int:
        """Failed fits over all looks of all trials."""
        return self._result.params.n_failed_looks

    @property
    def stopping_looks(self) -> NDArray[np.int64]:
        return np.array([o.look for o in self.outcomes], dtype=np.int64)

    # --- Metadata ---

    @property
    def trial(self) -> 'TrialDesign':
        return self._design.trial

    @property
    def reps(self) -> int:
        return self._design.reps

    @property
    def seed(self) -> int:
        return self._design.base_seed

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Reporting ---

    def to_records(self) -> list[dict[str, Any]]:
        """One record per stop category."""
        return self.stop_distribution.to_records()

    def summary(self) -> str:
        s = self.power_summary
        schedule = self._design.schedule
        lines = [
            "\nGROUP SEQUENTIAL SIMULATED POWER",
            "",
            f"Arms: {self.trial.k}   props: {list(self.trial.props)}   "
            f"family: {self.trial.family}",
            f"Looks at n = {list(schedule.cumulative_n)}",
            f"Thresholds  = {[round(t, 5) for t in schedule.thresholds]}",
            f"Repetitions: {self.reps}   seed: {self.seed}",
            "",
            f"Power: {s.power:.4f}  {_format_ci(s)}",
            f"Expected sample size: {self.expected_n:.1f}",
            f"Fit failures at stop: {s.n_failed} ({s.failure_rate:.1%})",
            "",
            "Stopping distribution:",
            f"{'':<24s} {'n':>6s} {'prop':>8s} {'lower':>8s} {'upper':>8s} {'mean est':>10s}",
        ]
        for c in self.stop_distribution:
            lines.append(
                f"{c.label:<24s} {c.cumulative_n:6d} {c.proportion:8.4f} "
                f"{c.ci_lower:8.4f} {c.ci_upper:8.4f} {c.mean_estimate:10.4f}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SequentialPowerSolution(n_looks={self._design.schedule.n_looks}, "
            f"reps={self.reps}, power={self.power:.4f}, "
            f"expected_n={self.expected_n:.1f})"
        )


@dataclass
class PowerCurveSolution:
    """Simulated power at each of several total sample sizes."""
    _result: Result[PowerCurveParams]
    _design: 'PowerDesign'

    @property
    def sample_sizes(self) -> NDArray[np.int64]:
        return self._result.params.sample_sizes

    @property
    def summaries(self) -> tuple[PowerSummary, ...]:
        return self._result.params.summaries

    @property
    def power(self) -> NDArray[np.floating[Any]]:
        return np.array([s.power for s in self.summaries], dtype=np.float64)

    @property
    def ci_lower(self) -> NDArray[np.floating[Any]]:
        return np.array([s.ci_lower for s in self.summaries], dtype=np.float64)

    @property
    def ci_upper(self) -> NDArray[np.floating[Any]]:
        return np.array([s.ci_upper for s in self.summaries], dtype=np.float64)

    def min_n_for(self, target_power: float) -> int | None:
        """Smallest simulated sample size whose power estimate reaches target_power."""
        for n, s in zip(self.sample_sizes, self.summaries):
            if s.power >= target_power:
                return int(n)
        return None

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def to_records(self) -> list[dict[str, Any]]:
        records = []
        for n, s in zip(self.sample_sizes, self.summaries):
            record = {'n': int(n)}
            record.update(s.to_record())
            records.append(record)
        return records

    def summary(self) -> str:
        trial = self._design.trial
        lines = [
            "\nSIMULATED POWER CURVE",
            "",
            f"props: {list(trial.props)}   family: {trial.family}   "
            f"alpha: {self._design.alpha:g}   repetitions: {self._design.reps}",
            "",
            f"{'n':>8s} {'power':>8s} {'lower':>8s} {'upper':>8s} {'failed':>7s}",
        ]
        for n, s in zip(self.sample_sizes, self.summaries):
            lines.append(
                f"{int(n):8d} {s.power:8.4f} {s.ci_lower:8.4f} "
                f"{s.ci_upper:8.4f} {s.n_failed:7d}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"PowerCurveSolution(sample_sizes={self.sample_sizes.tolist()}, "
            f"reps={self._design.reps})"
        )
