"""
GLM family and link function definitions.

Each Family defines:
- A variance function V(μ) relating variance to the mean
- A default link function g(μ) mapping the mean to the linear predictor
- A deviance function used by the IRLS convergence check
- An initialization function for IRLS starting values
- A boundary check for fitted means (separation diagnostics)

Each Link defines:
- g(μ) → η  (link)
- g⁻¹(η) → μ  (inverse link)
- dμ/dη  (derivative of inverse link, for IRLS weights)

Only the families that match a simulated outcome type are provided:
binomial for binary outcomes and poisson for counts.

References:
    McCullagh, P., & Nelder, J. A. (1989). Generalized Linear Models (2nd ed.)
    R Core Team. stats::family, stats::make.link
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import numpy as np
from numpy.typing import NDArray
from scipy.stats import norm


# R's glm.fit threshold for "fitted probabilities numerically 0 or 1"
_BOUNDARY_EPS = 10 * np.finfo(np.float64).eps


# =====================================================================
# Link functions
# =====================================================================

class Link(ABC):
    """Abstract link function g(μ) mapping mean to linear predictor."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def link(self, mu: NDArray) -> NDArray:
        """g(μ) → η."""
        ...

    @abstractmethod
    def linkinv(self, eta: NDArray) -> NDArray:
        """g⁻¹(η) → μ."""
        ...

    @abstractmethod
    def mu_eta(self, eta: NDArray) -> NDArray:
        """dμ/dη = (g⁻¹)'(η)."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class LogitLink(Link):
    """Logit link: g(μ) = log(μ/(1-μ)). Default for Binomial family."""

    @property
    def name(self) -> str:
        return 'logit'

    def link(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        return np.log(mu / (1 - mu))

    def linkinv(self, eta: NDArray) -> NDArray:
        # Clip to prevent overflow in exp
        eta = np.clip(eta, -500, 500)
        return 1.0 / (1.0 + np.exp(-eta))

    def mu_eta(self, eta: NDArray) -> NDArray:
        eta = np.clip(eta, -500, 500)
        p = 1.0 / (1.0 + np.exp(-eta))
        return np.maximum(p * (1.0 - p), 1e-10)


class ProbitLink(Link):
    """Probit link: g(μ) = Φ⁻¹(μ). Alternative for Binomial family."""

    @property
    def name(self) -> str:
        return 'probit'

    def link(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        return norm.ppf(mu)

    def linkinv(self, eta: NDArray) -> NDArray:
        return norm.cdf(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.maximum(norm.pdf(eta), 1e-10)


class LogLink(Link):
    """Log link: g(μ) = log(μ). Default for Poisson family."""

    @property
    def name(self) -> str:
        return 'log'

    def link(self, mu: NDArray) -> NDArray:
        return np.log(np.maximum(mu, 1e-10))

    def linkinv(self, eta: NDArray) -> NDArray:
        eta = np.clip(eta, -500, 500)
        return np.exp(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        eta = np.clip(eta, -500, 500)
        return np.exp(eta)


_LINK_CLASSES: dict[str, type[Link]] = {
    'logit': LogitLink,
    'probit': ProbitLink,
    'log': LogLink,
}


def _resolve_link(link: str | Link | None, default: Link) -> Link:
    """Resolve a link argument to a Link instance."""
    if link is None:
        return default
    if isinstance(link, Link):
        return link
    if isinstance(link, str):
        cls = _LINK_CLASSES.get(link.lower())
        if cls is None:
            valid = ', '.join(sorted(_LINK_CLASSES.keys()))
            raise ValueError(f"Unknown link: {link!r}. Valid links: {valid}")
        return cls()
    raise TypeError(f"link must be str or Link, got {type(link).__name__}")


# =====================================================================
# Family base class
# =====================================================================

class Family(ABC):
    """
    GLM family definition.

    Defines the relationship between the mean and variance of the
    response distribution, along with a link function. Both concrete
    families have dispersion fixed at 1, so Wald tests use the normal
    reference distribution.
    """

    def __init__(self, link: str | Link | None = None):
        self._link = _resolve_link(link, self._default_link())

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def _default_link(self) -> Link:
        ...

    @property
    def link(self) -> Link:
        return self._link

    @abstractmethod
    def variance(self, mu: NDArray) -> NDArray:
        """Variance function V(μ)."""
        ...

    @abstractmethod
    def deviance(self, y: NDArray, mu: NDArray) -> float:
        """Total deviance: twice the saturated minus model log-likelihood."""
        ...

    @abstractmethod
    def initialize(self, y: NDArray) -> NDArray:
        """Initialize μ from y for IRLS starting values."""
        ...

    @abstractmethod
    def at_boundary(self, mu: NDArray) -> bool:
        """True if any fitted mean is numerically on the edge of its domain."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(link={self._link.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Family):
            return NotImplemented
        return self.name == other.name and self.link.name == other.link.name

    def __hash__(self) -> int:
        return hash((self.name, self.link.name))


# =====================================================================
# Concrete families
# =====================================================================

class Binomial(Family):
    """Binomial family for 0/1 outcomes. Default link: logit.

    V(μ) = μ(1-μ)
    Deviance = 2 * Σ [y_i log(y_i/μ_i) + (1-y_i) log((1-y_i)/(1-μ_i))]
    """

    @property
    def name(self) -> str:
        return 'binomial'

    def _default_link(self) -> Link:
        return LogitLink()

    def variance(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        return mu * (1.0 - mu)

    def initialize(self, y: NDArray) -> NDArray:
        # R's default: (y + 0.5) / 2 for binary data
        return (y + 0.5) / 2.0

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        # 0*log(0) = 0; np.where evaluates both branches
        with np.errstate(divide='ignore', invalid='ignore'):
            term1 = np.where(y > 0, y * np.log(y / mu), 0.0)
            term2 = np.where(y < 1, (1 - y) * np.log((1 - y) / (1 - mu)), 0.0)
        return 2.0 * float(np.sum(term1 + term2))

    def at_boundary(self, mu: NDArray) -> bool:
        return bool(np.any(mu < _BOUNDARY_EPS) or np.any(mu > 1 - _BOUNDARY_EPS))


class Poisson(Family):
    """Poisson family for counts. Default link: log.

    V(μ) = μ
    Deviance = 2 * Σ [y_i log(y_i/μ_i) - (y_i - μ_i)]
    """

    @property
    def name(self) -> str:
        return 'poisson'

    def _default_link(self) -> Link:
        return LogLink()

    def variance(self, mu: NDArray) -> NDArray:
        return np.maximum(mu, 1e-10)

    def initialize(self, y: NDArray) -> NDArray:
        # R: y + 0.1 (to avoid log(0))
        return y + 0.1

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        mu = np.maximum(mu, 1e-10)
        with np.errstate(divide='ignore', invalid='ignore'):
            term = np.where(y > 0, y * np.log(y / mu), 0.0)
        return 2.0 * float(np.sum(term - (y - mu)))

    def at_boundary(self, mu: NDArray) -> bool:
        return bool(np.any(mu < _BOUNDARY_EPS))


# =====================================================================
# Family name → class mapping + resolver
# =====================================================================

_FAMILY_CLASSES: dict[str, type[Family]] = {
    'binomial': Binomial,
    'poisson': Poisson,
}


def resolve_family(family: str | Family) -> Family:
    """Resolve a family argument to a Family instance.

    Args:
        family: Either a string name ('binomial', 'poisson')
                or a Family instance (passed through).

    Raises:
        ValueError: If string name is not recognized.
        TypeError: If argument is neither string nor Family.
    """
    if isinstance(family, Family):
        return family
    if isinstance(family, str):
        cls = _FAMILY_CLASSES.get(family.lower())
        if cls is None:
            valid = ', '.join(sorted(_FAMILY_CLASSES.keys()))
            raise ValueError(
                f"Unknown family: {family!r}. Valid families: {valid}"
            )
        return cls()
    raise TypeError(f"family must be str or Family, got {type(family).__name__}")
