# src/vaxsim/sir_model.py
"""SIR model with demography and constant vaccination coverage.

State is the vector of population fractions y = (s, i, r). Newborns enter at
rate pi; a fraction `coverage` (P) of them is vaccinated at birth and enters
the recovered class directly:

    ds/dt = (1 - P) pi - beta s i - pi s
    di/dt = beta s i - (gamma + pi) i
    dr/dt = P pi + gamma i - pi r

The derivatives sum to pi (1 - s - i - r), so s + i + r = 1 is preserved
exactly by the flow; any drift comes from the integrator.

The right-hand side is pure arithmetic and never raises. Inputs outside [0, 1]
are evaluated as-is.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import numpy as np

from .errors import raise_invalid_scenario

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

COMPARTMENTS: Final[tuple[str, str, str]] = ("s", "i", "r")
N_COMPARTMENTS: Final[int] = len(COMPARTMENTS)

_NON_FINITE_PARAM_MSG = "parameter {name}={value!r} must be finite"
_NEGATIVE_RATE_MSG = "rate {name}={value!r} must be non-negative"
_COVERAGE_RANGE_MSG = "coverage P={value!r} must lie in [0, 1]"


@dataclass(slots=True, frozen=True)
class SIRParameters:
    """Rates of the SIR-with-vaccination model.

    Attributes:
        beta: Transmission rate.
        gamma: Recovery rate.
        pi: Birth rate, equal to the death rate (constant population).
        coverage: Fraction of newborns vaccinated, P in [0, 1].
    """

    beta: float
    gamma: float
    pi: float
    coverage: float

    def __post_init__(self) -> None:
        """Validate parameter domains.

        Raises:
            InvalidScenarioError: If any rate is non-finite or negative, or if
                coverage lies outside [0, 1].
        """
        for name in ("beta", "gamma", "pi", "coverage"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise_invalid_scenario(
                    detail=_NON_FINITE_PARAM_MSG.format(name=name, value=value)
                )
        for name in ("beta", "gamma", "pi"):
            value = getattr(self, name)
            if value < 0.0:
                raise_invalid_scenario(
                    detail=_NEGATIVE_RATE_MSG.format(name=name, value=value)
                )
        if not (0.0 <= self.coverage <= 1.0):
            raise_invalid_scenario(
                detail=_COVERAGE_RANGE_MSG.format(value=self.coverage)
            )


def sirv_rhs(
    t: float,  # noqa: ARG001 (autonomous system)
    state: NDArray[np.floating],
    params: SIRParameters,
) -> NDArray[np.float64]:
    """RHS of the SIR model with vaccination.

    Args:
        t: Current time (unused; included for API compatibility).
        state: State vector of shape (3,) with entries (s, i, r).
        params: Model parameters.

    Returns:
        Derivative vector of shape (3,): (ds/dt, di/dt, dr/dt).
    """
    s = float(state[0])
    i = float(state[1])
    r = float(state[2])

    beta = params.beta
    pi = params.pi
    coverage = params.coverage

    new_inf = beta * s * i

    out = np.empty(N_COMPARTMENTS, dtype=np.float64)
    out[0] = (1.0 - coverage) * pi - new_inf - pi * s
    out[1] = new_inf - (params.gamma + pi) * i
    out[2] = coverage * pi + params.gamma * i - pi * r
    return out


def make_rhs(
    params: SIRParameters,
) -> Callable[[float, NDArray[np.floating]], NDArray[np.float64]]:
    """Bind parameters into an integrator callback ``rhs(t, y) -> dy/dt``.

    Args:
        params: Model parameters.

    Returns:
        Callable suitable for :func:`vaxsim.integrator.integrate`.
    """

    def rhs(t: float, y: NDArray[np.floating]) -> NDArray[np.float64]:
        return sirv_rhs(t, y, params)

    return rhs


# -----------------------------------------------------------------------------
# Threshold quantities and equilibria
# -----------------------------------------------------------------------------


def basic_reproduction_number(params: SIRParameters) -> float:
    """Return R0 = beta / (gamma + pi), ignoring vaccination."""
    outflow = params.gamma + params.pi
    if outflow == 0.0:
        return math.inf
    return params.beta / outflow


def effective_reproduction_number(params: SIRParameters) -> float:
    """Return R0 scaled by the unvaccinated fraction of newborns, (1 - P) R0."""
    r0 = basic_reproduction_number(params)
    if math.isinf(r0):
        return r0 if params.coverage < 1.0 else 0.0
    return (1.0 - params.coverage) * r0


def disease_free_equilibrium(params: SIRParameters) -> NDArray[np.float64]:
    """Return the disease-free steady state (1 - P, 0, P)."""
    return np.array([1.0 - params.coverage, 0.0, params.coverage], dtype=np.float64)


def endemic_equilibrium(params: SIRParameters) -> NDArray[np.float64] | None:
    """Return the endemic steady state, or None if it does not exist.

    A steady state with i > 0 exists only when the effective reproduction
    number exceeds one. At equilibrium s* = (gamma + pi) / beta and
    i* = pi ((1 - P) - s*) / (gamma + pi).

    Args:
        params: Model parameters.

    Returns:
        Array (s*, i*, r*) or None if R_eff <= 1.
    """
    outflow = params.gamma + params.pi
    if params.beta <= 0.0 or outflow <= 0.0:
        return None
    if effective_reproduction_number(params) <= 1.0:
        return None

    s_star = outflow / params.beta
    i_star = params.pi * ((1.0 - params.coverage) - s_star) / outflow
    r_star = 1.0 - s_star - i_star
    return np.array([s_star, i_star, r_star], dtype=np.float64)
