# src/vaxsim/scenarios.py
"""Scenario records and the built-in vaccination scenarios.

A Scenario bundles validated model parameters, an initial state, and the
report times at which the trajectory is wanted. Scenarios are immutable and
validated at construction, so malformed input fails before any integration.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import numpy as np

from .errors import raise_invalid_scenario
from .sir_model import N_COMPARTMENTS, SIRParameters

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray


# Defaults shared by the built-in scenarios ---------------------------------

DEFAULT_BETA: Final[float] = 0.8
DEFAULT_GAMMA: Final[float] = 0.03
DEFAULT_PI: Final[float] = 0.4
DEFAULT_HORIZON: Final[float] = 10.0
DEFAULT_N_POINTS: Final[int] = 101

_EMPTY_NAME_MSG = "scenario name must be a non-empty string"
_INITIAL_STATE_SHAPE_MSG = "initial_state must have shape ({n},), got {shape}"
_INITIAL_STATE_FINITE_MSG = "initial_state must be finite, got {values}"
_TIMES_1D_MSG = "report_times must be a 1D array"
_TIMES_EMPTY_MSG = "report_times must contain at least one time point"
_TIMES_FINITE_MSG = "report_times must be finite"
_TIMES_MONOTONE_MSG = "report_times must be strictly increasing"
_N_POINTS_MSG = "n_points must be >= 1, got {n_points}"
_HORIZON_MSG = "horizon must be finite and > 0 when n_points > 1, got {horizon}"


@dataclass(slots=True, frozen=True, eq=False)
class Scenario:
    """One simulation case.

    Attributes:
        name: Unique scenario label.
        parameters: Model parameters.
        initial_state: Initial (s, i, r) at report_times[0].
        report_times: Strictly increasing output times; the first entry is the
            initial time.
        description: Free-text description of the case.
    """

    name: str
    parameters: SIRParameters
    initial_state: NDArray[np.float64]
    report_times: NDArray[np.float64]
    description: str = ""

    def __post_init__(self) -> None:
        """Validate and freeze the scenario arrays.

        Raises:
            InvalidScenarioError: If the name, initial state, or report times are
                malformed.
        """
        if not isinstance(self.name, str) or not self.name.strip():
            raise_invalid_scenario(detail=_EMPTY_NAME_MSG)

        y0 = np.array(self.initial_state, dtype=np.float64)
        if y0.shape != (N_COMPARTMENTS,):
            raise_invalid_scenario(
                name=self.name,
                detail=_INITIAL_STATE_SHAPE_MSG.format(n=N_COMPARTMENTS, shape=y0.shape),
            )
        if not np.all(np.isfinite(y0)):
            raise_invalid_scenario(
                name=self.name,
                detail=_INITIAL_STATE_FINITE_MSG.format(values=y0.tolist()),
            )

        times = np.array(self.report_times, dtype=np.float64)
        if times.ndim != 1:
            raise_invalid_scenario(name=self.name, detail=_TIMES_1D_MSG)
        if times.size < 1:
            raise_invalid_scenario(name=self.name, detail=_TIMES_EMPTY_MSG)
        if not np.all(np.isfinite(times)):
            raise_invalid_scenario(name=self.name, detail=_TIMES_FINITE_MSG)
        if times.size > 1 and np.any(np.diff(times) <= 0.0):
            raise_invalid_scenario(name=self.name, detail=_TIMES_MONOTONE_MSG)

        y0.flags.writeable = False
        times.flags.writeable = False
        object.__setattr__(self, "initial_state", y0)
        object.__setattr__(self, "report_times", times)

    @property
    def t0(self) -> float:
        """Initial time."""
        return float(self.report_times[0])

    @property
    def t_end(self) -> float:
        """Last report time."""
        return float(self.report_times[-1])


def evenly_spaced_times(
    horizon: float,
    n_points: int,
    *,
    t0: float = 0.0,
) -> NDArray[np.float64]:
    """Return n_points evenly spaced report times on [t0, t0 + horizon].

    Args:
        horizon: Length of the simulated interval.
        n_points: Number of report times, including t0.
        t0: Initial time.

    Raises:
        InvalidScenarioError: If n_points < 1, or horizon is not positive when
            more than one point is requested.

    Returns:
        1D array of report times.
    """
    if n_points < 1:
        raise_invalid_scenario(detail=_N_POINTS_MSG.format(n_points=n_points))
    if n_points > 1 and not (math.isfinite(horizon) and horizon > 0.0):
        raise_invalid_scenario(detail=_HORIZON_MSG.format(horizon=horizon))
    return np.linspace(t0, t0 + horizon, int(n_points), dtype=np.float64)


def make_scenario(
    name: str,
    *,
    coverage: float,
    initial_state: ArrayLike,
    beta: float = DEFAULT_BETA,
    gamma: float = DEFAULT_GAMMA,
    pi: float = DEFAULT_PI,
    horizon: float = DEFAULT_HORIZON,
    n_points: int = DEFAULT_N_POINTS,
    t0: float = 0.0,
    description: str = "",
) -> Scenario:
    """Build a Scenario on an evenly spaced report grid.

    Args:
        name: Scenario label.
        coverage: Vaccination coverage P.
        initial_state: Initial (s, i, r).
        beta: Transmission rate.
        gamma: Recovery rate.
        pi: Birth/death rate.
        horizon: Length of the simulated interval.
        n_points: Number of report times, including t0.
        t0: Initial time.
        description: Free-text description.

    Returns:
        Validated Scenario.
    """
    return Scenario(
        name=name,
        parameters=SIRParameters(beta=beta, gamma=gamma, pi=pi, coverage=coverage),
        initial_state=np.asarray(initial_state, dtype=np.float64),
        report_times=evenly_spaced_times(horizon, n_points, t0=t0),
        description=description,
    )


def default_scenarios() -> tuple[Scenario, ...]:
    """Return the four built-in vaccination scenarios.

    All share beta=0.8, gamma=0.03, pi=0.4 on [0, 10] with 101 report times:

    1. eradication_no_infection: P=0.9, no infected individuals at t=0.
    2. eradication_with_infection: P=0.9, 20% initially infected.
    3. endemic_with_vaccination: P=0.3, below the critical coverage.
    4. no_vaccination: P=0.

    Returns:
        Tuple of scenarios in the order above.
    """
    cases: Sequence[tuple[str, float, tuple[float, float, float], str]] = (
        (
            "eradication_no_infection",
            0.9,
            (1.0, 0.0, 0.0),
            "Eradication: high coverage, no initial infection",
        ),
        (
            "eradication_with_infection",
            0.9,
            (0.8, 0.2, 0.0),
            "Eradication: high coverage with initial infection",
        ),
        (
            "endemic_with_vaccination",
            0.3,
            (0.8, 0.2, 0.0),
            "No eradication: coverage below the critical threshold",
        ),
        (
            "no_vaccination",
            0.0,
            (0.8, 0.2, 0.0),
            "No vaccination",
        ),
    )
    return tuple(
        make_scenario(name, coverage=coverage, initial_state=y0, description=desc)
        for name, coverage, y0, desc in cases
    )
