"""
Exact binomial confidence intervals.

Clopper-Pearson interval for a proportion x/n, matching R's
binom.test()$conf.int:

    lower = Beta(α/2; x, n - x + 1)        (0 when x == 0)
    upper = Beta(1 - α/2; x + 1, n - x)    (1 when x == n)

Used for power estimates and stop-category proportions, where the number
of repetitions may be small and the proportion close to 0 or 1.
"""

from __future__ import annotations

from scipy import stats as sp_stats


def clopper_pearson(x: int, n: int, conf_level: float = 0.95) -> tuple[float, float]:
    """
    Two-sided exact confidence interval for a binomial proportion.

    Args:
        x: Number of successes, 0 <= x <= n.
        n: Number of trials, n >= 1.
        conf_level: Confidence level in (0, 1).

    Returns:
        (lower, upper)
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    if not 0 <= x <= n:
        raise ValueError(f"x must be in [0, {n}], got {x}")

    alpha = 1.0 - conf_level
    lower = 0.0 if x == 0 else float(sp_stats.beta.ppf(alpha / 2.0, x, n - x + 1))
    upper = 1.0 if x == n else float(sp_stats.beta.ppf(1.0 - alpha / 2.0, x + 1, n - x))
    return lower, upper
