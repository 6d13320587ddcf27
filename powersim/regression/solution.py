"""
GLM solution types.

Contains the parameter payload produced by the IRLS backend and the
user-facing solution wrapper with Wald inference accessors.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from powersim.core.result import Result


@dataclass(frozen=True)
class GLMParams:
    """
    Parameter payload for a fitted GLM.

    This is the immutable data computed by backends. Standard errors come
    from the unscaled covariance of the final IRLS iteration; dispersion is
    fixed at 1 for the supported families, so z-tests are exact Wald tests.
    """
    coefficients: NDArray[np.floating[Any]]
    standard_errors: NDArray[np.floating[Any]]
    z_values: NDArray[np.floating[Any]]
    p_values: NDArray[np.floating[Any]]
    deviance: float
    n_iter: int
    converged: bool
    family_name: str
    link_name: str


@dataclass
class GLMSolution:
    """
    User-facing GLM results.

    Wraps the backend Result and exposes coefficient-level inference.
    """
    _result: Result[GLMParams]
    n: int

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        return self._result.params.standard_errors

    @property
    def z_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.z_values

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """Two-sided Wald p-values."""
        return self._result.params.p_values

    @property
    def deviance(self) -> float:
        return self._result.params.deviance

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

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

    def summary(self) -> str:
        """R-style coefficient table."""
        p = self._result.params
        lines = [
            f"Generalized Linear Model ({p.family_name}, link={p.link_name})",
            "=" * 60,
            f"Observations: {self.n}",
            f"Residual deviance: {p.deviance:.4f}",
            f"IRLS iterations: {p.n_iter}",
            "",
            f"{'':<8} {'Estimate':>12} {'Std.Error':>12} {'z value':>10} {'Pr(>|z|)':>10}",
            "-" * 60,
        ]
        for i, (b, se, z, pv) in enumerate(zip(
            p.coefficients, p.standard_errors, p.z_values, p.p_values
        )):
            lines.append(
                f"  β[{i}]: {b:12.6f} {se:12.6f} {z:10.3f} {pv:10.4g}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"GLMSolution(n={self.n}, p={len(self.coefficients)}, "
            f"family={self._result.params.family_name!r}, "
            f"converged={self.converged})"
        )
