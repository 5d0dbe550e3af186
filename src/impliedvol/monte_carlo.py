# impliedvol/monte_carlo.py

from __future__ import annotations
import logging
import numpy as np
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor

from .core import (
    OptionSpec, OptionType, CALL,
    DEFAULT_N_PATHS, DEFAULT_N_STEPS, payoff,
)
from .processes import make_rng, seed_root, gbm_step

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10_000


@dataclass(frozen=True)
class PricingResult:
    """Premiums from one pricing run.

    ``call_step`` / ``put_step`` are the time-step indices (0..n_steps) at
    which the best average payoff was seen; 0 means expiring immediately
    was never beaten. Premiums are numpy scalars of the simulation dtype.
    """
    call: np.floating
    put: np.floating
    call_step: int
    put_step: int


# ---- helper: one simulation chunk (no path storage, only per-step sums) ----

def _simulate_chunk(
    n: int,
    *,
    S0: float, K: float, T: float, r: float, sigma: float,
    n_steps: int, seed: np.random.SeedSequence | int | None,
    dtype=np.longdouble,
):
    """
    Evolve `n` GBM paths over `n_steps` steps and return, for every step,
    the sum across paths of the call payoff and of the put payoff:
        (n, call_sums[n_steps], put_sums[n_steps])
    """
    rng = make_rng(seed)
    dt = T / n_steps
    spots = np.full(n, S0, dtype=dtype)
    call_sums = np.zeros(n_steps, dtype=dtype)
    put_sums = np.zeros(n_steps, dtype=dtype)
    strike = dtype(K)

    for t in range(n_steps):
        gbm_step(spots, r, sigma, dt, rng)
        call_sums[t] = payoff(spots, strike, OptionType.CALL).sum()
        put_sums[t] = payoff(spots, strike, OptionType.PUT).sum()

    return n, call_sums, put_sums


def _plan_chunks(n_paths: int, chunk_size: int) -> list[int]:
    chunks = []
    remaining = int(n_paths)
    while remaining > 0:
        m = min(chunk_size, remaining)
        chunks.append(m)
        remaining -= m
    return chunks


def _best_of_steps(averages: np.ndarray) -> tuple[np.floating, int]:
    """Max over steps, with an implicit zero at step 0.

    The premium keeps the dtype of the simulation (extended by default).
    """
    i = int(np.argmax(averages))
    best = averages[i]
    if best > 0:
        return best, i + 1
    return averages.dtype.type(0), 0


class BestAverageMC:
    """Monte Carlo premium estimator for a single volatility.

    The simulation runs to completion inside the constructor; afterwards
    the object only exposes read-only accessors.

    Each premium is the *largest* cross-path average payoff observed at any
    of the ``n_steps`` discretisation points (or zero), un-discounted. This
    is not the European expected terminal payoff.

    Parameters
    ----------
    T, S0, K, r, sigma : float
        Time to maturity (years), spot, strike, continuously-compounded
        rate and annualised volatility.
    n_paths, n_steps : int
        Number of independent paths and of time steps.
    seed : int | SeedSequence | None
        ``None`` seeds from OS entropy, so two pricers never agree.
        Pass a seed for reproducible runs.
    n_workers : int
        Process-level parallelism across path chunks. The result for a
        given seed depends on ``chunk_size`` but not on ``n_workers``.
    chunk_size : int
        Paths per chunk; every chunk draws from its own generator.
    dtype
        Floating type of the simulation state (extended precision by
        default).
    """

    def __init__(
        self,
        T: float, S0: float, K: float, r: float, sigma: float,
        *,
        n_paths: int = DEFAULT_N_PATHS,
        n_steps: int = DEFAULT_N_STEPS,
        seed: int | np.random.SeedSequence | None = None,
        n_workers: int = 1,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        dtype=np.longdouble,
    ):
        if n_paths <= 0 or n_steps <= 0:
            raise ValueError("n_paths and n_steps must be positive.")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self._spec = OptionSpec(S0=S0, K=K, T=T, r=r, sigma=sigma)
        self._n_paths = int(n_paths)
        self._n_steps = int(n_steps)
        self._result = self._simulate(seed, n_workers, chunk_size, np.dtype(dtype).type)

    @classmethod
    def from_spec(cls, spec: OptionSpec, **kwargs) -> "BestAverageMC":
        return cls(spec.T, spec.S0, spec.K, spec.r, spec.sigma, **kwargs)

    def _simulate(self, seed, n_workers, chunk_size, dtype) -> PricingResult:
        spec = self._spec
        ss_root = seed_root(seed)
        chunks = _plan_chunks(self._n_paths, chunk_size)
        child_seeds = ss_root.spawn(len(chunks))
        kw = dict(S0=spec.S0, K=spec.K, T=spec.T, r=spec.r, sigma=spec.sigma,
                  n_steps=self._n_steps, dtype=dtype)

        if n_workers <= 1 or len(chunks) == 1:
            stats_list = [_simulate_chunk(m, seed=ss, **kw)
                          for m, ss in zip(chunks, child_seeds)]
        else:
            with ProcessPoolExecutor(max_workers=n_workers) as ex:
                futs = [ex.submit(_simulate_chunk, m, seed=ss, **kw)
                        for m, ss in zip(chunks, child_seeds)]
                # keep submission order so the reduction is deterministic
                stats_list = [f.result() for f in futs]

        n = sum(s[0] for s in stats_list)
        call_avg = sum(s[1] for s in stats_list) / dtype(n)
        put_avg = sum(s[2] for s in stats_list) / dtype(n)

        call, call_step = _best_of_steps(call_avg)
        put, put_step = _best_of_steps(put_avg)
        logger.debug(
            "priced sigma=%.6f over %d paths x %d steps: call=%.6f (step %d) put=%.6f (step %d)",
            spec.sigma, n, self._n_steps, call, call_step, put, put_step,
        )
        return PricingResult(call=call, put=put, call_step=call_step, put_step=put_step)

    # --- read-only accessors -------------------------------------------------
    def get_price(self, kind: OptionType | str) -> float:
        """Premium for ``kind`` (``call``/``put``)."""
        if OptionType.parse(kind) is CALL:
            return self._result.call
        return self._result.put

    @property
    def call(self) -> float:
        return self._result.call

    @property
    def put(self) -> float:
        return self._result.put

    @property
    def result(self) -> PricingResult:
        return self._result

    @property
    def spec(self) -> OptionSpec:
        return self._spec

    @property
    def n_paths(self) -> int:
        return self._n_paths

    @property
    def n_steps(self) -> int:
        return self._n_steps
