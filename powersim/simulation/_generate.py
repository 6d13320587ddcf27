"""
Synthetic trial generation.

generate() composes two steps driven by one numpy Generator seeded from
the repetition's seed, so a fixed seed reproduces the dataset byte for
byte:

    assign_arms      permuted-block randomization: every consecutive block
                     of k records holds each arm exactly once, in random
                     order. Arm counts of the whole dataset, and of every
                     prefix, differ from m/k by at most 1.
    sample_outcomes  independent draws conditioned only on the record's
                     arm parameter (Bernoulli or Poisson).
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from powersim.simulation._common import Dataset
from powersim.simulation.design import TrialDesign


def assign_arms(n: int, k: int, rng: np.random.Generator) -> NDArray[np.int64]:
    """Balanced arm labels in [0, k) for n records, shape (n,)."""
    n_blocks = -(-n // k)
    blocks = np.tile(np.arange(k, dtype=np.int64), (n_blocks, 1))
    return rng.permuted(blocks, axis=1).ravel()[:n]


def sample_outcomes(
    arm: NDArray[np.int64],
    props: NDArray[np.floating],
    family: str,
    rng: np.random.Generator,
) -> NDArray[np.floating]:
    """Draw one outcome per record from its arm's distribution."""
    param = props[arm]
    if family == 'binomial':
        return (rng.random(arm.shape[0]) < param).astype(np.float64)
    if family == 'poisson':
        return rng.poisson(param).astype(np.float64)
    raise ValueError(f"Unknown outcome family: {family!r}")


def generate(design: TrialDesign, seed: int | None) -> Dataset:
    """Simulate one trial's dataset under the design."""
    rng = np.random.default_rng(seed)
    props = np.asarray(design.props, dtype=np.float64)
    arm = assign_arms(design.n, design.k, rng)
    outcome = sample_outcomes(arm, props, design.family, rng)
    return Dataset(arm=arm, outcome=outcome, k=design.k, seed=seed)
