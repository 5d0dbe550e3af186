# processes.py
# Geometric Brownian motion stepping for the Monte Carlo pricer.
# Paths are never stored: the caller owns one vector of current spots
# and advances it one step at a time.

from __future__ import annotations
import numpy as np
from typing import Optional


__all__ = [
    "make_rng",
    "seed_root",
    "gbm_step",
]


def make_rng(seed: Optional[int | np.random.SeedSequence]) -> np.random.Generator:
    """``None`` draws fresh OS entropy, anything else is reproducible."""
    return np.random.default_rng(seed)


def seed_root(seed: Optional[int | np.random.SeedSequence]) -> np.random.SeedSequence:
    """Root of a spawn tree.  A caller's ``SeedSequence`` is copied, never spawned
    from directly, so reusing it reproduces the same streams."""
    if isinstance(seed, np.random.SeedSequence):
        return np.random.SeedSequence(seed.entropy, spawn_key=seed.spawn_key,
                                      pool_size=seed.pool_size)
    return np.random.SeedSequence(seed)


def gbm_step(
    spots: np.ndarray,
    r: float, sigma: float, dt: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Advance every path by one exact-discretization GBM step, in place:
        log S_{t+dt} ~ N(log S_t + (r - 0.5*sigma^2) dt, sigma * sqrt(dt))
    Returns ``spots`` for convenience.
    """
    dtype = spots.dtype
    drift = (dtype.type(r) - dtype.type(sigma) ** 2 / 2) * dtype.type(dt)
    vol = dtype.type(sigma) * np.sqrt(dtype.type(dt))

    Z = rng.standard_normal(spots.shape[0]).astype(dtype, copy=False)

    np.log(spots, out=spots)
    spots += drift + vol * Z
    np.exp(spots, out=spots)
    return spots
