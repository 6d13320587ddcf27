"""
Trial analysis: fit the pre-declared model to one (sub)dataset.

Any object with an analyze(dataset, target) -> FitResult method can be
used by the aggregators. GLMAnalyzer is the default: it fits

    outcome ~ arm

as a GLM with an intercept and k - 1 treatment indicators (arm 0 is the
reference), and reports the Wald estimate, standard error and two-sided
p-value of coefficient `target` (1 = arm 1 vs arm 0).

Analyzers must be pure functions of their input so repetitions can run
on any worker in any order. A fit that cannot be trusted is returned as
FitResult.failure_of(reason), never as a degenerate p-value; analyzers
may also raise FitFailure, which the aggregators convert the same way.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from powersim.core.exceptions import FitFailure, SingularMatrixError
from powersim.regression.families import Family, Link, resolve_family
from powersim.regression.backends.cpu_glm import CPUIRLSBackend
from powersim.simulation._common import Dataset, FitResult


@runtime_checkable
class TrialAnalyzer(Protocol):
    """Contract: analyze(dataset, target) -> FitResult."""

    def analyze(self, dataset: Dataset, target: int) -> FitResult:
        ...


class GLMAnalyzer:
    """
    Wald test on a treatment coefficient of an arm-indicator GLM.

    Args:
        family: 'binomial' (logistic regression) or 'poisson', or a Family.
        link: Optional link override, e.g. 'probit'.
        tol: IRLS relative deviance tolerance.
        max_iter: IRLS iteration limit.

    Failure reasons reported in FitResult.failure:
        'empty_arm'       arm 0 or the target arm has no records
        'separation'      arm 0 or the target arm has all outcomes on a
                          domain boundary (all 0 or all 1 for binary,
                          all 0 for counts)
        'rank_deficient'  the weighted design matrix lost rank
        'not_converged'   IRLS hit max_iter
        'non_finite'      NaN/Inf standard error or p-value

    Any other arm that is empty or on the boundary is left out of the
    fit; the tested coefficient does not depend on it.
    """

    def __init__(
        self,
        family: str | Family = 'binomial',
        link: str | Link | None = None,
        tol: float = 1e-8,
        max_iter: int = 25,
    ):
        family_obj = resolve_family(family)
        if link is not None:
            family_obj = type(family_obj)(link=link)
        self.family = family_obj
        self.tol = tol
        self.max_iter = max_iter
        self._backend = CPUIRLSBackend()

    def analyze(self, dataset: Dataset, target: int = 1) -> FitResult:
        k = dataset.k
        if not 0 <= target < k:
            raise ValueError(
                f"target must index a coefficient in [0, {k}), got {target}"
            )

        arm = dataset.arm
        y = np.asarray(dataset.outcome, dtype=np.float64)

        # arm 0 and the target arm determine the tested coefficient
        tested = {0, target}
        counts = np.bincount(arm, minlength=k)
        empty = counts == 0
        if any(empty[j] for j in tested):
            return FitResult.failure_of('empty_arm')

        boundary = self._arms_on_boundary(arm, y, counts)
        if any(boundary[j] for j in tested):
            return FitResult.failure_of('separation')

        # Other arms that are empty or on the boundary carry no information
        # about the tested coefficient; their records and columns are dropped.
        kept = [j for j in range(1, k) if not (empty[j] or boundary[j])]
        if len(kept) < k - 1:
            rows = np.isin(arm, [0, *kept])
            arm = arm[rows]
            y = y[rows]
        column = 0 if target == 0 else kept.index(target) + 1

        X = np.empty((arm.shape[0], len(kept) + 1), dtype=np.float64)
        X[:, 0] = 1.0
        for col, j in enumerate(kept, start=1):
            X[:, col] = arm == j

        try:
            result = self._backend.solve(
                X, y, self.family, tol=self.tol, max_iter=self.max_iter,
            )
        except SingularMatrixError:
            return FitResult.failure_of('rank_deficient')
        except FitFailure as e:
            return FitResult.failure_of(e.reason)

        params = result.params
        return FitResult(
            estimate=float(params.coefficients[column]),
            std_error=float(params.standard_errors[column]),
            p_value=float(params.p_values[column]),
        )

    def _arms_on_boundary(self, arm, y, counts) -> np.ndarray:
        sums = np.bincount(arm, weights=y, minlength=len(counts))
        if self.family.name == 'binomial':
            return (counts > 0) & ((sums == 0) | (sums == counts))
        return (counts > 0) & (sums == 0)

    def __repr__(self) -> str:
        return f"GLMAnalyzer(family={self.family!r})"
