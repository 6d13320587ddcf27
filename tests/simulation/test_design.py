"""
Tests for TrialDesign, LookSchedule and the aggregation designs.

Every malformed input must be rejected at construction with the right
exception class: InvalidDesign for the data-generating process and the
look schedule, InvalidConfiguration for aggregation settings.
"""

import numpy as np
import pytest

from powersim.core.exceptions import InvalidConfiguration, InvalidDesign
from powersim.simulation import (
    BoundaryProvider, GLMAnalyzer, LookSchedule, PowerDesign, SequentialDesign,
    TrialDesign,
)


class FixedBoundaries:
    """Boundary provider returning pre-computed thresholds."""

    def __init__(self, thresholds):
        self.thresholds = thresholds
        self.calls = []

    def boundaries(self, n_looks, information_fractions, alpha):
        self.calls.append((n_looks, list(information_fractions), alpha))
        return self.thresholds


# ═══════════════════════════════════════════════════════════════════════
# TrialDesign
# ═══════════════════════════════════════════════════════════════════════


class TestTrialDesign:

    def test_build(self):
        d = TrialDesign.build([0.4, 0.3], 1000)
        assert d.props == (0.4, 0.3)
        assert d.n == 1000
        assert d.k == 2
        assert d.family == 'binomial'

    def test_family_case_insensitive(self):
        assert TrialDesign.build([1.0, 2.0], 10, family='Poisson').family == 'poisson'

    def test_with_n(self):
        d = TrialDesign.build([0.4, 0.3], 1000).with_n(200)
        assert d.n == 200
        assert d.props == (0.4, 0.3)

    def test_frozen(self):
        d = TrialDesign.build([0.4, 0.3], 100)
        with pytest.raises(AttributeError):
            d.n = 5

    @pytest.mark.parametrize("props", [[0.5], [], [[0.1, 0.2]]])
    def test_needs_two_arms(self, props):
        with pytest.raises(InvalidDesign) as exc_info:
            TrialDesign.build(props, 10)
        assert exc_info.value.parameter == 'props'

    @pytest.mark.parametrize("props", [[0.4, 1.2], [-0.1, 0.3]])
    def test_binomial_domain(self, props):
        with pytest.raises(InvalidDesign, match="outside the binomial domain"):
            TrialDesign.build(props, 100)

    def test_poisson_domain(self):
        TrialDesign.build([0.0, 7.5], 100, family='poisson')
        with pytest.raises(InvalidDesign, match="outside the poisson domain"):
            TrialDesign.build([-1.0, 2.0], 100, family='poisson')

    def test_non_finite(self):
        with pytest.raises(InvalidDesign, match="non-finite"):
            TrialDesign.build([0.4, np.nan], 100)

    def test_non_numeric(self):
        with pytest.raises(InvalidDesign):
            TrialDesign.build(["a", "b"], 100)

    def test_n_below_k(self):
        with pytest.raises(InvalidDesign, match="must be >= number of arms"):
            TrialDesign.build([0.1, 0.2, 0.3], 2)

    @pytest.mark.parametrize("n", [0, 10.5, True])
    def test_bad_n(self, n):
        with pytest.raises(InvalidDesign):
            TrialDesign.build([0.1, 0.2], n)

    def test_unknown_family(self):
        with pytest.raises(InvalidDesign, match="family must be one of"):
            TrialDesign.build([0.1, 0.2], 10, family='gaussian')


# ═══════════════════════════════════════════════════════════════════════
# LookSchedule
# ═══════════════════════════════════════════════════════════════════════


class TestLookSchedule:

    def test_build(self):
        s = LookSchedule.build([500, 750, 1000], [0.003, 0.018, 0.044])
        assert s.n_looks == 3
        assert s.final_n == 1000
        assert s.cumulative_n == (500, 750, 1000)

    def test_single(self):
        s = LookSchedule.single(400, 0.05)
        assert s.cumulative_n == (400,)
        assert s.thresholds == (0.05,)

    def test_empty_is_configuration_error(self):
        with pytest.raises(InvalidConfiguration):
            LookSchedule.build([], [])

    def test_length_mismatch(self):
        with pytest.raises(InvalidDesign, match="same length"):
            LookSchedule.build([500, 1000], [0.01])

    @pytest.mark.parametrize("ns", [[500, 500, 1000], [750, 500, 1000]])
    def test_not_strictly_increasing(self, ns):
        with pytest.raises(InvalidDesign, match="strictly increasing"):
            LookSchedule.build(ns, [0.01, 0.02, 0.03])

    @pytest.mark.parametrize("t", [0.0, 1.0, 1.5])
    def test_threshold_outside_unit_interval(self, t):
        with pytest.raises(InvalidDesign):
            LookSchedule.build([100, 200], [0.01, t])

    def test_from_provider(self):
        provider = FixedBoundaries([0.003, 0.018, 0.044])
        assert isinstance(provider, BoundaryProvider)
        s = LookSchedule.from_provider(provider, 1000, [0.5, 0.75, 1.0], 0.05)
        assert s.cumulative_n == (500, 750, 1000)
        assert s.thresholds == (0.003, 0.018, 0.044)
        assert provider.calls == [(3, [0.5, 0.75, 1.0], 0.05)]

    def test_from_provider_final_fraction(self):
        with pytest.raises(InvalidDesign, match="final information fraction"):
            LookSchedule.from_provider(FixedBoundaries([0.01, 0.04]), 1000, [0.5, 0.9], 0.05)

    def test_from_provider_bad_thresholds(self):
        with pytest.raises(InvalidDesign):
            LookSchedule.from_provider(FixedBoundaries([0.01]), 1000, [0.5, 1.0], 0.05)

    def test_check_compatible(self):
        trial = TrialDesign.build([0.4, 0.3], 1000)
        LookSchedule.build([500, 1000], [0.01, 0.04]).check_compatible(trial)
        with pytest.raises(InvalidDesign, match="must equal the design sample size"):
            LookSchedule.build([500, 900], [0.01, 0.04]).check_compatible(trial)
        with pytest.raises(InvalidDesign, match="at least one record per arm"):
            LookSchedule.build([1, 1000], [0.01, 0.04]).check_compatible(trial)


# ═══════════════════════════════════════════════════════════════════════
# Aggregation designs
# ═══════════════════════════════════════════════════════════════════════


class TestPowerDesign:

    @pytest.fixture
    def trial(self):
        return TrialDesign.build([0.4, 0.3], 100)

    def _build(self, trial, **overrides):
        kwargs = dict(
            reps=10, alpha=0.05, conf_level=0.95, base_seed=7,
            analyzer=GLMAnalyzer(), target=1,
        )
        kwargs.update(overrides)
        return PowerDesign.for_power(trial, **kwargs)

    def test_seeds(self, trial):
        assert self._build(trial).seeds() == list(range(7, 17))

    @pytest.mark.parametrize("overrides", [
        {'reps': 0},
        {'reps': -5},
        {'alpha': 0.0},
        {'alpha': 1.0},
        {'conf_level': 1.0},
        {'target': 2},
        {'target': -1},
        {'analyzer': object()},
    ])
    def test_rejects_bad_settings(self, trial, overrides):
        with pytest.raises(InvalidConfiguration):
            self._build(trial, **overrides)

    def test_target_zero_is_intercept(self, trial):
        assert self._build(trial, target=0).target == 0


class TestSequentialDesign:

    def test_build_and_seeds(self):
        trial = TrialDesign.build([0.4, 0.3], 100)
        schedule = LookSchedule.build([50, 100], [0.01, 0.04])
        d = SequentialDesign.for_sequential(
            trial, schedule, reps=3, conf_level=0.95, base_seed=0,
            analyzer=GLMAnalyzer(), target=1,
        )
        assert d.seeds() == [0, 1, 2]

    def test_schedule_must_be_look_schedule(self):
        trial = TrialDesign.build([0.4, 0.3], 100)
        with pytest.raises(InvalidConfiguration):
            SequentialDesign.for_sequential(
                trial, [(50, 0.01), (100, 0.04)], reps=3, conf_level=0.95,
                base_seed=0, analyzer=GLMAnalyzer(), target=1,
            )

    def test_incompatible_schedule(self):
        trial = TrialDesign.build([0.4, 0.3], 100)
        schedule = LookSchedule.build([50, 120], [0.01, 0.04])
        with pytest.raises(InvalidDesign):
            SequentialDesign.for_sequential(
                trial, schedule, reps=3, conf_level=0.95, base_seed=0,
                analyzer=GLMAnalyzer(), target=1,
            )
