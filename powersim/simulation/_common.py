"""
Common data structures for power simulation.

Dataset and FitResult flow through a single repetition; TrialOutcome is
the terminal record of one sequential trial. PowerSummary and
StopDistribution are the reduced outputs, and the *Params classes are
the payloads wrapped by Result[P] and exposed through Solution classes.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, asdict
from typing import Any, Iterator

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class Record:
    """One simulated unit."""
    index: int
    arm: int
    outcome: float


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Read-only simulated trial data.

    arm and outcome are non-writeable arrays of equal length; prefix()
    returns views over the same memory, so interim looks see exactly the
    first records of the full trial.
    """
    arm: NDArray[np.int64]            # shape (n,), values in [0, k)
    outcome: NDArray[np.floating[Any]]  # shape (n,)
    k: int
    seed: int | None = None

    def __post_init__(self) -> None:
        # read-only views; the caller's buffers stay writeable
        for name in ('arm', 'outcome'):
            view = np.asarray(getattr(self, name)).view()
            view.flags.writeable = False
            object.__setattr__(self, name, view)

    def __len__(self) -> int:
        return self.arm.shape[0]

    def __getitem__(self, i: int) -> Record:
        if not -len(self) <= i < len(self):
            raise IndexError(f"record index {i} out of range for {len(self)} records")
        i = i % len(self)
        return Record(index=i, arm=int(self.arm[i]), outcome=float(self.outcome[i]))

    def __iter__(self) -> Iterator[Record]:
        for i in range(len(self)):
            yield Record(index=i, arm=int(self.arm[i]), outcome=float(self.outcome[i]))

    def prefix(self, m: int) -> Dataset:
        """First m records as a new read-only view."""
        if not 0 < m <= len(self):
            raise ValueError(f"prefix size must be in [1, {len(self)}], got {m}")
        return Dataset(
            arm=self.arm[:m], outcome=self.outcome[:m], k=self.k, seed=self.seed,
        )

    def arm_counts(self) -> NDArray[np.int64]:
        """Number of records per arm, shape (k,)."""
        return np.bincount(self.arm, minlength=self.k)


@dataclass(frozen=True)
class FitResult:
    """
    Analysis outcome for one (sub)dataset.

    failure is None for a usable fit; otherwise it holds the failure reason
    and the numeric fields are NaN. A failed fit is never significant.
    """
    estimate: float
    std_error: float
    p_value: float
    failure: str | None = None

    @classmethod
    def failure_of(cls, reason: str) -> FitResult:
        nan = float('nan')
        return cls(estimate=nan, std_error=nan, p_value=nan, failure=reason)

    @property
    def failed(self) -> bool:
        return self.failure is not None

    def significant(self, threshold: float) -> bool:
        """p < threshold for a usable fit; always False for a failure."""
        return not self.failed and self.p_value < threshold


class StopState(enum.Enum):
    """Terminal states of a sequential trial."""
    STOPPED_SIGNIFICANT = 'stopped_significant'
    STOPPED_FUTILITY_OR_FINAL = 'stopped_futility_or_final'


@dataclass(frozen=True)
class TrialOutcome:
    """
    Terminal record of one simulated sequential trial.

    look is 1-based. n_analyses counts TrialAnalyzer calls made for the
    trial and always equals look.
    """
    state: StopState
    look: int
    cumulative_n: int
    threshold: float
    fit: FitResult
    n_analyses: int
    n_failed_looks: int = 0

    @property
    def significant(self) -> bool:
        return self.state is StopState.STOPPED_SIGNIFICANT


@dataclass(frozen=True)
class PowerSummary:
    """
    Power estimate with an exact binomial confidence interval.

    power = n_significant / reps. Failed fits count as not significant and
    are reported separately through n_failed; all_failed flags a run in
    which no repetition produced a usable fit.
    """
    power: float
    ci_lower: float
    ci_upper: float
    conf_level: float
    n_significant: int
    reps: int
    n_failed: int
    all_failed: bool

    @property
    def ci(self) -> tuple[float, float]:
        return (self.ci_lower, self.ci_upper)

    @property
    def failure_rate(self) -> float:
        return self.n_failed / self.reps

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StopCategory:
    """One row of a StopDistribution."""
    look: int
    label: str
    cumulative_n: int
    threshold: float
    significant: bool
    count: int
    proportion: float
    ci_lower: float
    ci_upper: float
    mean_estimate: float
    n_failed: int


@dataclass(frozen=True)
class StopDistribution:
    """
    Where simulated sequential trials stopped.

    One category per look for efficacy stops, then one for trials that ran
    through the final look without crossing a boundary. Proportions are
    out of reps and sum to 1.
    """
    categories: tuple[StopCategory, ...]
    reps: int
    conf_level: float

    def __iter__(self) -> Iterator[StopCategory]:
        return iter(self.categories)

    def __len__(self) -> int:
        return len(self.categories)

    def __getitem__(self, i: int) -> StopCategory:
        return self.categories[i]

    @property
    def total_proportion(self) -> float:
        return math.fsum(c.proportion for c in self.categories)

    @property
    def not_significant(self) -> StopCategory:
        """The ran-to-final-look-without-significance category."""
        return self.categories[-1]

    def significant_at(self, look: int) -> StopCategory:
        """Efficacy-stop category for a 1-based look."""
        for c in self.categories:
            if c.significant and c.look == look:
                return c
        raise KeyError(f"no efficacy-stop category for look {look}")

    def to_records(self) -> list[dict[str, Any]]:
        return [asdict(c) for c in self.categories]


@dataclass(frozen=True)
class PowerParams:
    """
    Parameter payload for a fixed-sample power simulation.

    Per-repetition arrays are in repetition order (seed_i = base_seed + i).
    """
    summary: PowerSummary
    alpha: float
    estimates: NDArray[np.floating[Any]]     # shape (reps,), NaN for failures
    std_errors: NDArray[np.floating[Any]]    # shape (reps,)
    p_values: NDArray[np.floating[Any]]      # shape (reps,)
    failures: tuple[str | None, ...]         # per-repetition failure reason


@dataclass(frozen=True)
class SequentialParams:
    """Parameter payload for a sequential power simulation."""
    summary: PowerSummary
    distribution: StopDistribution
    outcomes: tuple[TrialOutcome, ...]
    expected_n: float
    n_failed_looks: int


@dataclass(frozen=True)
class PowerCurveParams:
    """Parameter payload for power across a grid of sample sizes."""
    sample_sizes: NDArray[np.int64]
    summaries: tuple[PowerSummary, ...]
