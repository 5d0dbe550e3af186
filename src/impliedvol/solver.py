"""Implied volatility by bisection over a Monte Carlo pricer.

Every trial volatility gets a freshly simulated premium, so comparisons
near the root are noisy.  The loop is driven by bracket width alone and
therefore always stops after ``ceil(log2((high - low) / tol))`` pricings,
but a wrong-way comparison can leave the root outside the final bracket.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .core import (
    OptionSpec, OptionType,
    DEFAULT_N_PATHS, DEFAULT_N_STEPS, DEFAULT_TOL, VOL_LOWER, VOL_UPPER,
)
from .monte_carlo import BestAverageMC
from .processes import seed_root

__all__ = [
    "BisectionStep",
    "ImpliedVolResult",
    "PremiumOutOfRangeError",
    "max_iterations",
    "solve_implied_vol",
    "compute_implied_volatility",
]

logger = logging.getLogger(__name__)


class PremiumOutOfRangeError(ValueError):
    """Observed premium cannot be produced by any volatility in the bracket."""

    def __init__(self, premium: float, price_low: float, price_high: float,
                 bracket: tuple[float, float]):
        self.premium = premium
        self.price_low = price_low
        self.price_high = price_high
        self.bracket = bracket
        super().__init__(
            f"premium {premium} outside achievable range "
            f"[{price_low:.6f}, {price_high:.6f}] for sigma in "
            f"[{bracket[0]}, {bracket[1]}]"
        )


@dataclass(frozen=True)
class BisectionStep:
    low: float
    mid: float
    high: float
    model_price: float


@dataclass(frozen=True)
class ImpliedVolResult:
    """Outcome of one bisection search.

    ``vol`` is the returned estimate, ``(low, high)`` the final bracket.
    ``converged_to_bound`` is set when the search never left one end of the
    initial bracket, which usually means the premium is out of range.
    """
    vol: float
    low: float
    high: float
    iterations: int
    converged_to_bound: bool
    history: tuple[BisectionStep, ...]


def max_iterations(low: float, high: float, tol: float) -> int:
    """Number of halvings needed to shrink ``high - low`` to ``tol``."""
    if high - low <= tol:
        return 0
    return math.ceil(math.log2((high - low) / tol))


def _seed_stream(seed) -> Callable[[], Optional[np.random.SeedSequence]]:
    if seed is None:
        return lambda: None
    root = seed_root(seed)
    return lambda: root.spawn(1)[0]


def solve_implied_vol(
    T: float, S0: float, K: float, r: float,
    kind: OptionType | str,
    premium: float,
    *,
    tol: float = DEFAULT_TOL,
    bracket: tuple[float, float] = (VOL_LOWER, VOL_UPPER),
    seed: int | np.random.SeedSequence | None = None,
    n_paths: int = DEFAULT_N_PATHS,
    n_steps: int = DEFAULT_N_STEPS,
    n_workers: int = 1,
    check_bracket: bool = False,
    pricer: Callable[..., BestAverageMC] = BestAverageMC,
) -> ImpliedVolResult:
    """Bisection search on sigma.

    Parameters
    ----------
    T, S0, K, r : float
        Contract and market inputs.
    kind : OptionType or str
        ``"call"`` or ``"put"``.
    premium : float
        Observed market premium.
    tol : float
        Stop once ``high - low <= tol``.
    bracket : (float, float)
        Initial ``(low, high)`` volatility bracket.
    seed : int | SeedSequence | None
        ``None`` reseeds every pricer from OS entropy.  Otherwise one child
        seed is spawned per pricing, making the whole search reproducible.
    n_paths, n_steps, n_workers :
        Forwarded to the pricer.
    check_bracket : bool
        Price both ends of the bracket first and raise
        :class:`PremiumOutOfRangeError` if ``premium`` is not between them.
    pricer : callable
        ``pricer(T, S0, K, r, sigma, n_paths=, n_steps=, seed=, n_workers=)``
        returning an object with ``get_price(kind)``.

    Returns
    -------
    ImpliedVolResult
    """
    kind = OptionType.parse(kind)
    low, high = float(bracket[0]), float(bracket[1])
    if not tol > 0:
        raise ValueError(f"tol must be positive, got {tol}")
    if not (0 < low < high and math.isfinite(high)):
        raise ValueError(f"bracket must satisfy 0 < low < high, got {bracket}")
    if not (premium >= 0 and math.isfinite(premium)):
        raise ValueError(f"premium must be finite and non-negative, got {premium}")
    # validate contract inputs before any simulation
    OptionSpec(S0=S0, K=K, T=T, r=r, sigma=low)

    next_seed = _seed_stream(seed)

    def model_price(sigma: float) -> float:
        model = pricer(T, S0, K, r, sigma, n_paths=n_paths, n_steps=n_steps,
                       seed=next_seed(), n_workers=n_workers)
        return model.get_price(kind)

    if check_bracket:
        p_lo, p_hi = model_price(low), model_price(high)
        if not p_lo <= premium <= p_hi:
            raise PremiumOutOfRangeError(premium, p_lo, p_hi, (low, high))

    low0, high0 = low, high
    history: list[BisectionStep] = []

    while high - low > tol:
        mid = (low + high) / 2
        price = model_price(mid)
        history.append(BisectionStep(low=low, mid=mid, high=high, model_price=price))
        logger.debug("iter %d: [%.8f, %.8f] mid=%.8f model=%.6f target=%.6f",
                     len(history), low, high, mid, price, premium)
        if price > premium:
            high = mid
        elif price < premium:
            low = mid
        else:
            return ImpliedVolResult(vol=mid, low=low, high=high,
                                    iterations=len(history),
                                    converged_to_bound=False,
                                    history=tuple(history))

    at_bound = low == low0 or high == high0
    if at_bound:
        logger.warning(
            "implied vol search for premium %s converged to the bracket end "
            "[%s, %s]; the premium is probably out of range",
            premium, low, high,
        )
    return ImpliedVolResult(vol=low, low=low, high=high,
                            iterations=len(history),
                            converged_to_bound=at_bound,
                            history=tuple(history))


def compute_implied_volatility(
    time_to_maturity: float,
    spot: float,
    strike: float,
    rate: float,
    option_type: OptionType | str,
    observed_premium: float,
    tolerance: float = DEFAULT_TOL,
    **options,
) -> float:
    """Implied volatility as a decimal fraction (0.25 means 25%).

    ``options`` are passed through to :func:`solve_implied_vol`.
    """
    res = solve_implied_vol(time_to_maturity, spot, strike, rate,
                            option_type, observed_premium, tol=tolerance,
                            **options)
    return res.vol
