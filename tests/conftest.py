"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from powersim.simulation import FitResult


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


class CountingAnalyzer:
    """
    Mock analyzer that records the size of every dataset it sees.

    p_values is consumed one entry per call, so a test can script exactly
    which look crosses its threshold.
    """

    def __init__(self, p_values):
        self.p_values = list(p_values)
        self.sizes = []

    def analyze(self, dataset, target=1):
        self.sizes.append(len(dataset))
        p = self.p_values[len(self.sizes) - 1]
        if p is None:
            return FitResult.failure_of('scripted')
        return FitResult(estimate=float(len(dataset)), std_error=1.0, p_value=p)


@pytest.fixture
def counting_analyzer():
    """Factory for CountingAnalyzer instances."""
    return CountingAnalyzer
