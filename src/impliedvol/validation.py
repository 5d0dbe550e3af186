"""Statistical validation of the pricer and the implied-vol solver.

Monte Carlo premiums are noisy by construction, so the checks here run
the model repeatedly under independent, seeded streams and summarise the
spread instead of comparing single numbers.
"""

from __future__ import annotations

import numpy as np
from typing import Optional

from .core import OptionSpec, OptionType
from .monte_carlo import BestAverageMC
from .processes import seed_root
from .solver import solve_implied_vol

__all__ = [
    "price_dispersion",
    "iv_dispersion",
    "monotonicity_check",
    "convergence_analysis",
]


def _summary(values: np.ndarray) -> dict:
    return {
        "values": values,
        "mean": float(values.mean()),
        "std": float(values.std(ddof=1)) if values.size > 1 else 0.0,
        "min": float(values.min()),
        "max": float(values.max()),
    }


def _child_seeds(seed, n: int) -> list[np.random.SeedSequence]:
    return seed_root(seed).spawn(n)


# ---------------------------------------------------------------------------
# Repeatability
# ---------------------------------------------------------------------------

def price_dispersion(
    spec: OptionSpec,
    kind: OptionType | str,
    *,
    n_runs: int = 10,
    seed: Optional[int] = None,
    **pricer_kw,
) -> dict:
    """Premium statistics over ``n_runs`` independent pricers.

    Returns
    -------
    dict
        ``"values"`` (ndarray), ``"mean"``, ``"std"``, ``"min"``, ``"max"``.
    """
    prices = np.array([
        BestAverageMC.from_spec(spec, seed=ss, **pricer_kw).get_price(kind)
        for ss in _child_seeds(seed, n_runs)
    ])
    return _summary(prices)


def iv_dispersion(
    T: float, S0: float, K: float, r: float,
    kind: OptionType | str,
    premium: float,
    *,
    n_runs: int = 10,
    seed: Optional[int] = None,
    **solver_kw,
) -> dict:
    """Implied-vol statistics over ``n_runs`` independent searches.

    Same keys as :func:`price_dispersion`, plus ``"spread"`` (max - min).
    """
    vols = np.array([
        solve_implied_vol(T, S0, K, r, kind, premium, seed=ss, **solver_kw).vol
        for ss in _child_seeds(seed, n_runs)
    ])
    out = _summary(vols)
    out["spread"] = out["max"] - out["min"]
    return out


# ---------------------------------------------------------------------------
# Monotonicity in volatility
# ---------------------------------------------------------------------------

def monotonicity_check(
    spec: OptionSpec,
    kind: OptionType | str,
    sigma_low: float,
    sigma_high: float,
    *,
    n_trials: int = 30,
    seed: Optional[int] = None,
    **pricer_kw,
) -> dict:
    """Fraction of trials where the higher-vol premium beats the lower one.

    Each trial prices both volatilities under independent streams.

    Returns
    -------
    dict
        ``"fraction"``, ``"low_prices"``, ``"high_prices"``.
    """
    if not sigma_low < sigma_high:
        raise ValueError("sigma_low must be below sigma_high.")

    seeds = _child_seeds(seed, 2 * n_trials)
    lo = np.empty(n_trials)
    hi = np.empty(n_trials)
    for i in range(n_trials):
        lo[i] = BestAverageMC.from_spec(spec.with_sigma(sigma_low),
                                        seed=seeds[2 * i], **pricer_kw).get_price(kind)
        hi[i] = BestAverageMC.from_spec(spec.with_sigma(sigma_high),
                                        seed=seeds[2 * i + 1], **pricer_kw).get_price(kind)
    return {
        "fraction": float(np.mean(hi > lo)),
        "low_prices": lo,
        "high_prices": hi,
    }


# ---------------------------------------------------------------------------
# Convergence analysis
# ---------------------------------------------------------------------------

def convergence_analysis(
    spec: OptionSpec,
    kind: OptionType | str,
    n_paths_values: list | np.ndarray,
    *,
    n_runs: int = 10,
    seed: Optional[int] = None,
    n_steps: Optional[int] = None,
) -> dict:
    """Spread of the premium as the number of paths grows.

    Parameters
    ----------
    n_paths_values : list of int
        Path counts to test.

    Returns
    -------
    dict
        ``"n_paths"``, ``"means"``, ``"stds"`` (arrays aligned with the
        input) and ``"order"``: fitted slope of log(std) vs log(n_paths);
        about -0.5 for a healthy estimator.
    """
    extra = {} if n_steps is None else {"n_steps": n_steps}
    seeds = _child_seeds(seed, len(n_paths_values))

    means, stds = [], []
    for n, ss in zip(n_paths_values, seeds):
        stats = price_dispersion(spec, kind, n_runs=n_runs, seed=ss,
                                 n_paths=int(n), **extra)
        means.append(stats["mean"])
        stds.append(stats["std"])

    n_arr = np.asarray(n_paths_values, dtype=float)
    std_arr = np.asarray(stds)

    order = float("nan")
    mask = std_arr > 0
    if mask.sum() >= 2:
        order = float(np.polyfit(np.log(n_arr[mask]), np.log(std_arr[mask]), 1)[0])

    return {
        "n_paths": n_arr,
        "means": np.asarray(means),
        "stds": std_arr,
        "order": order,
    }
