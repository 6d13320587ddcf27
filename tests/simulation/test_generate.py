"""
Tests for synthetic trial generation.

Verifies seed determinism, permuted-block arm balance (whole dataset and
every prefix), marginal convergence of outcomes to the design parameters,
and the read-only Dataset interface.
"""

import numpy as np
import pytest

from powersim.simulation import Dataset, Record, TrialDesign, simulate
from powersim.simulation._generate import assign_arms, sample_outcomes


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------

class TestDeterminism:

    def test_same_seed_same_dataset(self):
        a = simulate([0.4, 0.3], seed=123, n=200)
        b = simulate([0.4, 0.3], seed=123, n=200)
        np.testing.assert_array_equal(a.arm, b.arm)
        np.testing.assert_array_equal(a.outcome, b.outcome)
        assert a.seed == 123

    def test_different_seeds_differ(self):
        a = simulate([0.4, 0.3], seed=1, n=200)
        b = simulate([0.4, 0.3], seed=2, n=200)
        assert not np.array_equal(a.outcome, b.outcome)

    def test_design_object_and_props_agree(self):
        design = TrialDesign.build([0.2, 0.5, 0.6], 90)
        a = simulate(design, seed=9)
        b = simulate([0.2, 0.5, 0.6], seed=9, n=90)
        np.testing.assert_array_equal(a.outcome, b.outcome)


# ---------------------------------------------------------------------------
# Arm balance
# ---------------------------------------------------------------------------

class TestBalance:

    @pytest.mark.parametrize("n,k", [(1000, 2), (10, 3), (101, 4), (7, 7)])
    def test_counts_within_one(self, n, k, rng):
        counts = np.bincount(assign_arms(n, k, rng), minlength=k)
        assert counts.sum() == n
        assert np.all(np.abs(counts - n / k) <= 1)

    def test_exact_balance_when_divisible(self):
        ds = simulate([0.4, 0.3], seed=5, n=1000)
        np.testing.assert_array_equal(ds.arm_counts(), [500, 500])

    def test_every_prefix_balanced(self):
        ds = simulate([0.1, 0.2, 0.3], seed=17, n=300)
        for m in range(1, 301):
            counts = ds.prefix(m).arm_counts()
            assert np.all(np.abs(counts - m / 3) <= 1), m

    def test_assignment_is_random(self, rng):
        a = assign_arms(100, 2, rng)
        b = assign_arms(100, 2, rng)
        assert not np.array_equal(a, b)


# ---------------------------------------------------------------------------
# Outcome distribution
# ---------------------------------------------------------------------------

class TestOutcomes:

    def test_binomial_marginals_converge(self):
        ds = simulate([0.2, 0.7], seed=3, n=40000)
        for j, p in enumerate([0.2, 0.7]):
            assert ds.outcome[ds.arm == j].mean() == pytest.approx(p, abs=0.015)

    def test_poisson_marginals_converge(self):
        ds = simulate([1.5, 4.0], seed=4, n=40000, family='poisson')
        for j, lam in enumerate([1.5, 4.0]):
            assert ds.outcome[ds.arm == j].mean() == pytest.approx(lam, abs=0.06)

    def test_binomial_marginals_converge_across_seeds(self):
        props = [0.2, 0.7]
        means = np.array([
            [ds.outcome[ds.arm == j].mean() for j in range(2)]
            for ds in (simulate(props, seed=s, n=1000) for s in range(200))
        ])
        np.testing.assert_allclose(means.mean(axis=0), props, atol=0.006)

    def test_poisson_marginals_converge_across_seeds(self):
        rates = [1.5, 4.0]
        means = np.array([
            [ds.outcome[ds.arm == j].mean() for j in range(2)]
            for ds in (
                simulate(rates, seed=s, n=1000, family='poisson')
                for s in range(200)
            )
        ])
        np.testing.assert_allclose(means.mean(axis=0), rates, atol=0.03)

    def test_binomial_outcomes_are_binary(self):
        ds = simulate([0.5, 0.5], seed=8, n=100)
        assert set(np.unique(ds.outcome)) <= {0.0, 1.0}

    def test_degenerate_props(self, rng):
        arm = np.array([0, 1, 0, 1])
        y = sample_outcomes(arm, np.array([0.0, 1.0]), 'binomial', rng)
        np.testing.assert_array_equal(y, [0.0, 1.0, 0.0, 1.0])

    def test_unknown_family(self, rng):
        with pytest.raises(ValueError, match="Unknown outcome family"):
            sample_outcomes(np.array([0, 1]), np.array([0.1, 0.2]), 'gamma', rng)


# ---------------------------------------------------------------------------
# Dataset interface
# ---------------------------------------------------------------------------

class TestDataset:

    def test_read_only(self):
        ds = simulate([0.4, 0.3], seed=1, n=10)
        with pytest.raises(ValueError):
            ds.outcome[0] = 5.0
        with pytest.raises(ValueError):
            ds.arm[0] = 1

    def test_caller_arrays_stay_writeable(self):
        arm = np.array([0, 1, 0, 1], dtype=np.int64)
        y = np.array([0.0, 1.0, 1.0, 0.0])
        ds = Dataset(arm=arm, outcome=y, k=2)
        assert arm.flags.writeable and y.flags.writeable
        assert not ds.arm.flags.writeable
        assert not ds.outcome.flags.writeable
        assert np.shares_memory(ds.arm, arm)

    def test_records(self):
        ds = simulate([0.4, 0.3], seed=1, n=10)
        assert len(ds) == 10
        rec = ds[3]
        assert isinstance(rec, Record)
        assert rec.index == 3
        assert rec.arm == ds.arm[3]
        assert ds[-1].index == 9
        assert [r.index for r in ds] == list(range(10))

    def test_index_out_of_range(self):
        ds = simulate([0.4, 0.3], seed=1, n=10)
        with pytest.raises(IndexError):
            ds[10]

    def test_prefix_is_view(self):
        ds = simulate([0.4, 0.3], seed=1, n=10)
        head = ds.prefix(4)
        assert isinstance(head, Dataset)
        assert len(head) == 4
        assert np.shares_memory(head.outcome, ds.outcome)
        np.testing.assert_array_equal(head.arm, ds.arm[:4])

    @pytest.mark.parametrize("m", [0, 11])
    def test_prefix_bounds(self, m):
        ds = simulate([0.4, 0.3], seed=1, n=10)
        with pytest.raises(ValueError, match="prefix size"):
            ds.prefix(m)
