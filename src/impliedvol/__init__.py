# impliedvol: Monte Carlo implied volatility engine
# Public API

from .core import (
    OptionType, OptionSpec, CALL, PUT, payoff,
    DEFAULT_N_PATHS, DEFAULT_N_STEPS, DEFAULT_TOL, VOL_LOWER, VOL_UPPER,
)

# Simulation pricer
from .processes import gbm_step
from .monte_carlo import BestAverageMC, PricingResult

# Bisection solver
from .solver import (
    compute_implied_volatility, solve_implied_vol,
    ImpliedVolResult, BisectionStep, PremiumOutOfRangeError, max_iterations,
)

# Model validation
from .validation import (
    price_dispersion, iv_dispersion, monotonicity_check, convergence_analysis,
)

__all__ = [
    # Core
    "OptionType", "OptionSpec", "CALL", "PUT", "payoff",
    "DEFAULT_N_PATHS", "DEFAULT_N_STEPS", "DEFAULT_TOL", "VOL_LOWER", "VOL_UPPER",
    # Pricer
    "gbm_step", "BestAverageMC", "PricingResult",
    # Solver
    "compute_implied_volatility", "solve_implied_vol",
    "ImpliedVolResult", "BisectionStep", "PremiumOutOfRangeError", "max_iterations",
    # Validation
    "price_dispersion", "iv_dispersion", "monotonicity_check", "convergence_analysis",
]

__version__ = "0.1.0"
