"""
Design classes for power simulation.

TrialDesign describes the data-generating process for one simulated
trial; LookSchedule describes when a sequential trial is analyzed and at
which nominal significance threshold. Both are immutable and validated at
construction, so backends never re-check them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

import numpy as np

from powersim.core.exceptions import InvalidDesign, InvalidConfiguration, ValidationError
from powersim.core.validation import (
    check_array, check_finite, check_positive_int, check_open_unit_interval,
)


# Outcome family → (human-readable domain, predicate on the parameter vector)
_PARAMETER_DOMAINS = {
    'binomial': ('[0, 1]', lambda p: (p >= 0.0) & (p <= 1.0)),
    'poisson': ('[0, inf)', lambda p: p >= 0.0),
}


@dataclass(frozen=True)
class TrialDesign:
    """
    Frozen data-generating design.

    Attributes:
        props: Per-arm outcome parameter, shape (k,). Success probability
            for 'binomial', mean count for 'poisson'.
        n: Total number of records per simulated trial.
        family: Outcome family name: 'binomial' or 'poisson'.
    """
    props: tuple[float, ...]
    n: int
    family: str

    @classmethod
    def build(
        cls,
        props: Sequence[float],
        n: int,
        *,
        family: str = 'binomial',
    ) -> TrialDesign:
        """
        Create a trial design with validation.

        Args:
            props: Per-arm outcome parameters; its length is the number of arms.
            n: Total sample size. Must be >= number of arms.
            family: 'binomial' (default) or 'poisson'.

        Returns:
            Validated TrialDesign.

        Raises:
            InvalidDesign: For fewer than two arms, n < k, or a parameter
                outside the family's domain.
        """
        if not isinstance(family, str) or family.lower() not in _PARAMETER_DOMAINS:
            valid = ', '.join(sorted(_PARAMETER_DOMAINS))
            raise InvalidDesign(
                f"family must be one of {valid}, got {family!r}",
                parameter='family', value=family,
            )
        family = family.lower()

        try:
            props_arr = check_array(props, 'props')
        except ValidationError as e:
            raise InvalidDesign(str(e), parameter='props', value=props) from e

        if props_arr.ndim != 1:
            raise InvalidDesign(
                f"props must be 1D, got shape {props_arr.shape}",
                parameter='props', value=props,
            )
        k = props_arr.shape[0]
        if k < 2:
            raise InvalidDesign(
                f"props must describe at least 2 arms, got {k}",
                parameter='props', value=props,
            )
        check_finite(props_arr, 'props', error=InvalidDesign)

        domain, predicate = _PARAMETER_DOMAINS[family]
        bad = np.where(~predicate(props_arr))[0]
        if len(bad) > 0:
            raise InvalidDesign(
                f"props{bad.tolist()} outside the {family} domain {domain}: "
                f"{props_arr[bad].tolist()}",
                parameter='props', value=props,
            )

        n = check_positive_int(n, 'n', error=InvalidDesign)
        if n < k:
            raise InvalidDesign(
                f"n ({n}) must be >= number of arms ({k}) for balanced assignment",
                parameter='n', value=n,
            )

        return cls(props=tuple(float(p) for p in props_arr), n=n, family=family)

    @property
    def k(self) -> int:
        """Number of arms."""
        return len(self.props)

    def with_n(self, n: int) -> TrialDesign:
        """Same outcome model at a different total sample size."""
        return TrialDesign.build(self.props, n, family=self.family)


@runtime_checkable
class BoundaryProvider(Protocol):
    """
    External group-sequential boundary designer.

    Given look timing and a family-wise alpha, returns one nominal
    significance threshold per look. The engine never inspects how the
    thresholds were derived.
    """

    def boundaries(
        self,
        n_looks: int,
        information_fractions: Sequence[float],
        alpha: float,
    ) -> Sequence[float]:
        ...


@dataclass(frozen=True)
class LookSchedule:
    """
    Frozen sequence of interim looks.

    Attributes:
        cumulative_n: Records analyzed at each look, strictly increasing.
        thresholds: Nominal two-sided significance threshold per look.
    """
    cumulative_n: tuple[int, ...]
    thresholds: tuple[float, ...]

    @classmethod
    def build(
        cls,
        cumulative_n: Sequence[int],
        thresholds: Sequence[float],
    ) -> LookSchedule:
        """
        Create a look schedule with validation.

        Raises:
            InvalidConfiguration: If the schedule is empty.
            InvalidDesign: If lengths differ, cumulative_n is not strictly
                increasing, or a threshold is outside (0, 1).
        """
        cumulative_n = list(cumulative_n)
        thresholds = list(thresholds)

        if len(cumulative_n) == 0:
            raise InvalidConfiguration(
                "look schedule must contain at least one look",
                parameter='cumulative_n', value=cumulative_n,
            )
        if len(cumulative_n) != len(thresholds):
            raise InvalidDesign(
                f"cumulative_n ({len(cumulative_n)}) and thresholds "
                f"({len(thresholds)}) must have the same length",
                parameter='thresholds', value=thresholds,
            )

        ns = tuple(
            check_positive_int(m, f'cumulative_n[{j}]', error=InvalidDesign)
            for j, m in enumerate(cumulative_n)
        )
        for j in range(1, len(ns)):
            if ns[j] <= ns[j - 1]:
                raise InvalidDesign(
                    f"cumulative_n must be strictly increasing, got "
                    f"{ns[j - 1]} then {ns[j]} at look {j + 1}",
                    parameter='cumulative_n', value=cumulative_n,
                )

        ts = tuple(
            check_open_unit_interval(t, f'thresholds[{j}]', error=InvalidDesign)
            for j, t in enumerate(thresholds)
        )
        return cls(cumulative_n=ns, thresholds=ts)

    @classmethod
    def single(cls, n: int, alpha: float) -> LookSchedule:
        """One look at the full sample: the fixed-sample-size test."""
        return cls.build([n], [alpha])

    @classmethod
    def from_provider(
        cls,
        provider: BoundaryProvider,
        n: int,
        information_fractions: Sequence[float],
        alpha: float,
    ) -> LookSchedule:
        """
        Build a schedule from an external boundary designer.

        cumulative_n[j] = round(information_fractions[j] * n); the final
        fraction must be 1.
        """
        fractions = [float(f) for f in information_fractions]
        if len(fractions) == 0:
            raise InvalidConfiguration(
                "information_fractions must not be empty",
                parameter='information_fractions', value=information_fractions,
            )
        if not np.isclose(fractions[-1], 1.0):
            raise InvalidDesign(
                f"final information fraction must be 1, got {fractions[-1]}",
                parameter='information_fractions', value=information_fractions,
            )
        thresholds = provider.boundaries(len(fractions), fractions, alpha)
        cumulative_n = [int(round(f * n)) for f in fractions]
        return cls.build(cumulative_n, thresholds)

    @property
    def n_looks(self) -> int:
        return len(self.cumulative_n)

    @property
    def final_n(self) -> int:
        return self.cumulative_n[-1]

    def check_compatible(self, design: TrialDesign) -> None:
        """
        Verify the schedule fits the design.

        Raises:
            InvalidDesign: If the final look is not the full sample or the
                first look has fewer records than arms.
        """
        if self.final_n != design.n:
            raise InvalidDesign(
                f"final look cumulative_n ({self.final_n}) must equal the "
                f"design sample size ({design.n})",
                parameter='cumulative_n', value=self.cumulative_n,
            )
        if self.cumulative_n[0] < design.k:
            raise InvalidDesign(
                f"first look ({self.cumulative_n[0]} records) must include "
                f"at least one record per arm ({design.k} arms)",
                parameter='cumulative_n', value=self.cumulative_n,
            )


def _check_run_settings(reps, conf_level) -> tuple[int, float]:
    reps = check_positive_int(reps, 'reps', error=InvalidConfiguration)
    conf_level = check_open_unit_interval(
        conf_level, 'conf_level', error=InvalidConfiguration,
    )
    return reps, conf_level


def _check_target(target, k: int) -> int:
    target = check_positive_int(target, 'target', error=InvalidConfiguration, minimum=0)
    if target >= k:
        raise InvalidConfiguration(
            f"target must index a coefficient in [0, {k}), got {target}",
            parameter='target', value=target,
        )
    return target


def _check_analyzer(analyzer) -> None:
    if not callable(getattr(analyzer, 'analyze', None)):
        raise InvalidConfiguration(
            f"analyzer must provide analyze(dataset, target), "
            f"got {type(analyzer).__name__}",
            parameter='analyzer', value=analyzer,
        )


@dataclass(frozen=True)
class PowerDesign:
    """
    Frozen design for a fixed-sample power simulation.

    Attributes:
        trial: Data-generating design.
        reps: Number of repetitions.
        alpha: Significance level of the analysis test.
        conf_level: Confidence level of the power interval.
        base_seed: Repetition i uses seed base_seed + i.
        analyzer: TrialAnalyzer applied to every repetition.
        target: Coefficient index handed to the analyzer.
    """
    trial: TrialDesign
    reps: int
    alpha: float
    conf_level: float
    base_seed: int
    analyzer: object
    target: int

    @classmethod
    def for_power(
        cls,
        trial: TrialDesign,
        *,
        reps: int,
        alpha: float,
        conf_level: float,
        base_seed: int,
        analyzer,
        target: int,
    ) -> PowerDesign:
        """
        Create a power design with validation.

        Raises:
            InvalidConfiguration: For reps < 1, alpha or conf_level outside
                (0, 1), a target outside [0, k), or an object without
                analyze().
        """
        reps, conf_level = _check_run_settings(reps, conf_level)
        alpha = check_open_unit_interval(alpha, 'alpha', error=InvalidConfiguration)
        target = _check_target(target, trial.k)
        _check_analyzer(analyzer)
        return cls(
            trial=trial, reps=reps, alpha=alpha, conf_level=conf_level,
            base_seed=int(base_seed), analyzer=analyzer, target=target,
        )

    def seeds(self) -> list[int]:
        return [self.base_seed + i for i in range(self.reps)]


@dataclass(frozen=True)
class SequentialDesign:
    """
    Frozen design for a group-sequential power simulation.

    Same fields as PowerDesign, with a LookSchedule in place of alpha.
    """
    trial: TrialDesign
    schedule: LookSchedule
    reps: int
    conf_level: float
    base_seed: int
    analyzer: object
    target: int

    @classmethod
    def for_sequential(
        cls,
        trial: TrialDesign,
        schedule: LookSchedule,
        *,
        reps: int,
        conf_level: float,
        base_seed: int,
        analyzer,
        target: int,
    ) -> SequentialDesign:
        """
        Create a sequential design with validation.

        Raises:
            InvalidDesign: If the schedule does not fit the trial design.
            InvalidConfiguration: As for PowerDesign.for_power.
        """
        if not isinstance(schedule, LookSchedule):
            raise InvalidConfiguration(
                f"look_schedule must be a LookSchedule, got {type(schedule).__name__}",
                parameter='look_schedule', value=schedule,
            )
        schedule.check_compatible(trial)
        reps, conf_level = _check_run_settings(reps, conf_level)
        target = _check_target(target, trial.k)
        _check_analyzer(analyzer)
        return cls(
            trial=trial, schedule=schedule, reps=reps, conf_level=conf_level,
            base_seed=int(base_seed), analyzer=analyzer, target=target,
        )

    def seeds(self) -> list[int]:
        return [self.base_seed + i for i in range(self.reps)]
