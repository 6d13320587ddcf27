"""
CPU backend for Generalized Linear Models via IRLS.

Implements Iteratively Reweighted Least Squares (Fisher scoring) with
R's glm.fit() convergence rule. Each iteration solves a weighted least
squares problem via QR on the transformed system √W·X, √W·z.

Algorithm:
    Initialize: μ = family.initialize(y), η = link(μ)
    For iteration 1..max_iter:
        z = η + (y - μ) / (dμ/dη)            # working response
        w = (dμ/dη)² / V(μ)                  # working weights
        Solve WLS: min_β || √w·z - √w·X·β ||²  via QR
        η = X @ β, μ = linkinv(η)
        Check: |dev - dev_old| / (|dev| + 0.1) < tol

Inference:
    Cov(β) = (X' W X)⁻¹ at the final estimates (dispersion fixed at 1),
    Wald z = β / SE, two-sided p = 2·(1 - Φ(|z|)).

Failures that make the Wald p-value untrustworthy are raised rather
than returned: SingularMatrixError for rank deficiency, FitFailure with
reason 'separation' when fitted means reach the edge of their domain,
ConvergenceError when the iteration limit is hit, and FitFailure with
reason 'non_finite' for NaN/Inf standard errors.
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.stats import norm

from powersim.core.result import Result
from powersim.core.exceptions import ConvergenceError, FitFailure
from powersim.core.compute.timing import Timer
from powersim.core.compute.linalg import qr_factor, qr_solve
from powersim.regression.families import Family
from powersim.regression.solution import GLMParams


class CPUIRLSBackend:
    """CPU backend using IRLS with QR inner solve.

    Defaults match R's glm.control(): tol=1e-8, max_iter=25.
    """

    @property
    def name(self) -> str:
        return 'cpu_irls'

    def solve(
        self,
        X: NDArray[np.floating[Any]],
        y: NDArray[np.floating[Any]],
        family: Family,
        tol: float = 1e-8,
        max_iter: int = 25,
    ) -> Result[GLMParams]:
        """Run IRLS to fit the GLM.

        Args:
            X: Design matrix (n x p), including the intercept column
            y: Response vector (n,)
            family: GLM family
            tol: Convergence tolerance (relative deviance change)
            max_iter: Maximum IRLS iterations

        Returns:
            Result[GLMParams] with coefficients and Wald inference
        """
        timer = Timer()
        timer.start()

        link = family.link

        with timer.section('initialize'):
            mu = family.initialize(y)
            eta = link.link(mu)
            dev_old = family.deviance(y, mu)

        converged = False
        change = float('nan')
        n_iter = 0

        with timer.section('irls'):
            for n_iter in range(1, max_iter + 1):
                mu_eta_val = link.mu_eta(eta)
                z = eta + (y - mu) / mu_eta_val
                w = np.maximum((mu_eta_val ** 2) / family.variance(mu), 1e-30)

                sqrt_w = np.sqrt(w)
                coefficients, _ = qr_solve(X * sqrt_w[:, np.newaxis], z * sqrt_w)

                eta = X @ coefficients
                mu = link.linkinv(eta)
                dev = family.deviance(y, mu)

                change = abs(dev - dev_old) / (abs(dev) + 0.1)
                if change < tol:
                    converged = True
                    break
                dev_old = dev

        if family.at_boundary(mu):
            raise FitFailure(
                f"fitted {family.name} means numerically at the boundary "
                f"after {n_iter} iterations (separation)",
                reason='separation',
            )

        if not converged:
            raise ConvergenceError(
                f"IRLS did not converge in {max_iter} iterations "
                f"(relative deviance change={change:.3g})",
                iterations=max_iter,
                final_change=change,
                threshold=tol,
            )

        with timer.section('inference'):
            mu_eta_val = link.mu_eta(eta)
            w = (mu_eta_val ** 2) / family.variance(mu)
            qr = qr_factor(X * np.sqrt(w)[:, np.newaxis])
            cov = qr.unscaled_covariance()
            with np.errstate(invalid='ignore'):
                standard_errors = np.sqrt(np.diag(cov))
                z_values = coefficients / standard_errors
            p_values = 2.0 * norm.sf(np.abs(z_values))

        if not (np.all(np.isfinite(standard_errors)) and np.all(np.isfinite(p_values))):
            raise FitFailure(
                "non-finite standard errors or p-values",
                reason='non_finite',
            )

        timer.stop()

        params = GLMParams(
            coefficients=coefficients,
            standard_errors=standard_errors,
            z_values=z_values,
            p_values=p_values,
            deviance=dev,
            n_iter=n_iter,
            converged=converged,
            family_name=family.name,
            link_name=link.name,
        )

        return Result(
            params=params,
            info={
                'method': 'irls_qr',
                'rank': qr.rank,
                'final_change': change,
            },
            timing=timer.result(),
            backend_name=self.name,
        )
