from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np


# ---------------------------------------------------------------------------
# Defaults shared by the pricer, the solver and the CLI
# ---------------------------------------------------------------------------
DEFAULT_N_PATHS = 10_000
DEFAULT_N_STEPS = 100
DEFAULT_TOL = 1e-5

# Plausible range for annualised volatility; the bisection starts here.
VOL_LOWER = 0.03
VOL_UPPER = 6.0


class OptionType(str, Enum):
    CALL = "call"
    PUT = "put"

    @classmethod
    def parse(cls, value: "OptionType | str") -> "OptionType":
        """Accept an ``OptionType`` or one of ``call|put|c|p`` (any case)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            s = value.strip().lower()
            if s in {"call", "c"}:
                return cls.CALL
            if s in {"put", "p"}:
                return cls.PUT
        raise ValueError(f"kind must be 'call' or 'put', got {value!r}")


CALL = OptionType.CALL
PUT  = OptionType.PUT


@dataclass(frozen=True)
class OptionSpec:
    """Contract and market inputs for one pricing run.

    ``r`` is the continuously-compounded risk-free rate and may take any
    sign; everything else must be strictly positive.
    """
    S0: float
    K: float
    T: float          # years
    r: float
    sigma: float      # annualised

    def __post_init__(self):
        if not (self.S0 > 0 and math.isfinite(self.S0)):
            raise ValueError(f"S0 must be positive and finite, got {self.S0}")
        if not (self.K > 0 and math.isfinite(self.K)):
            raise ValueError(f"K must be positive and finite, got {self.K}")
        if not (self.T > 0 and math.isfinite(self.T)):
            raise ValueError(f"T must be positive and finite, got {self.T}")
        if not (self.sigma > 0 and math.isfinite(self.sigma)):
            raise ValueError(f"sigma must be positive and finite, got {self.sigma}")
        if not math.isfinite(self.r):
            raise ValueError(f"r must be finite, got {self.r}")

    def with_sigma(self, sigma: float) -> "OptionSpec":
        return OptionSpec(S0=self.S0, K=self.K, T=self.T, r=self.r, sigma=sigma)


def payoff(spot, strike, kind: OptionType | str):
    """Exercise value of a vanilla option at ``spot``.

    Scalars in, scalar out; arrays are handled elementwise.
    """
    kind = OptionType.parse(kind)
    if kind is CALL:
        out = np.maximum(np.subtract(spot, strike), 0)
    else:
        out = np.maximum(np.subtract(strike, spot), 0)
    if np.ndim(out) == 0:
        return out.item()
    return out
