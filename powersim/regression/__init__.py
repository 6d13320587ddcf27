"""
Generalized linear models used to analyze simulated trials.

Public API:
    glm(X, y, family) -> GLMSolution

The glm() function handles input validation, family resolution and
result wrapping; CPUIRLSBackend does the fitting.

Example:
    >>> from powersim.regression import glm
    >>> fit = glm(X, y, family='binomial')
    >>> print(fit.summary())
"""

from powersim.regression.families import (
    Family, Binomial, Poisson, Link, LogitLink, ProbitLink, LogLink,
    resolve_family,
)
from powersim.regression.solution import GLMParams, GLMSolution
from powersim.regression.solvers import glm

__all__ = [
    "glm",
    "GLMParams",
    "GLMSolution",
    "Family",
    "Binomial",
    "Poisson",
    "Link",
    "LogitLink",
    "ProbitLink",
    "LogLink",
    "resolve_family",
]
