"""
Solver dispatch for GLM fitting.

This module provides the glm() function (public API). Input validation
happens here; the backend trusts what it receives.
"""

import numpy as np
from numpy.typing import ArrayLike

from powersim.core.validation import (
    check_array, check_finite, check_ndim, check_consistent_length,
)
from powersim.regression.families import Family, resolve_family
from powersim.regression.solution import GLMSolution
from powersim.regression.backends.cpu_glm import CPUIRLSBackend


def glm(
    X: ArrayLike,
    y: ArrayLike,
    family: str | Family = 'binomial',
    *,
    tol: float = 1e-8,
    max_iter: int = 25,
) -> GLMSolution:
    """
    Fit a generalized linear model by IRLS.

    Args:
        X: Design matrix (n x p). Include a column of ones for an intercept.
        y: Response vector (n,)
        family: 'binomial' (logit), 'poisson' (log), or a Family instance
        tol: Relative deviance convergence tolerance
        max_iter: Maximum IRLS iterations

    Returns:
        GLMSolution with coefficients, standard errors and Wald p-values

    Raises:
        ValidationError: If inputs are invalid
        DimensionError: If X and y have inconsistent dimensions
        SingularMatrixError: If X (or its weighted form) is rank-deficient
        FitFailure: On separation or non-finite inference
        ConvergenceError: If IRLS hits max_iter

    Example:
        >>> X = np.column_stack([np.ones(200), np.repeat([0.0, 1.0], 100)])
        >>> y = (np.random.default_rng(1).random(200) < 0.3).astype(float)
        >>> fit = glm(X, y, family='binomial')
        >>> fit.p_values[1]
    """
    X_arr = check_array(X, 'X')
    y_arr = check_array(y, 'y')

    if X_arr.ndim == 1:
        X_arr = X_arr.reshape(-1, 1)
    if y_arr.ndim == 2 and y_arr.shape[1] == 1:
        y_arr = y_arr.ravel()

    check_ndim(X_arr, 2, 'X')
    check_ndim(y_arr, 1, 'y')
    check_finite(X_arr, 'X')
    check_finite(y_arr, 'y')
    check_consistent_length(X_arr, y_arr, names=('X', 'y'))

    family_obj = resolve_family(family)
    result = CPUIRLSBackend().solve(
        X_arr, y_arr, family_obj, tol=tol, max_iter=max_iter,
    )
    return GLMSolution(_result=result, n=X_arr.shape[0])
