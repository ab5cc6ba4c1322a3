# src/vaxsim/trajectory.py
"""Read-only container for a simulated trajectory.

A Trajectory pairs a 1D grid of report times with the state at each time and
the names of the state components. It is produced once per scenario and not
modified afterwards: the underlying arrays are marked read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .sir_model import COMPARTMENTS

if TYPE_CHECKING:
    from collections.abc import Iterator

    from numpy.typing import ArrayLike, NDArray

    from .integrator import Solution


# Error / message constants -------------------------------------------------

_TIMES_1D_ERROR = "times must be a 1D array"
_TIMES_MIN_POINTS_ERROR = "times must contain at least one time point"
_TIMES_MONOTONE_ERROR = "times must be strictly increasing"
_STATES_SHAPE_ERROR = "states shape {actual} mismatch vs. expected {expected}"
_UNKNOWN_COMPONENT_ERROR = "Unknown component: {name}"


def _frozen(arr: ArrayLike) -> NDArray[np.float64]:
    out = np.array(arr, dtype=np.float64)
    out.flags.writeable = False
    return out


@dataclass(slots=True, frozen=True, eq=False)
class Trajectory:
    """States of a model at a sequence of report times.

    Attributes:
        times: Report times, shape (T,).
        states: States, shape (T, n_components).
        names: Component names, one per state column.
    """

    times: NDArray[np.float64]
    states: NDArray[np.float64]
    names: tuple[str, ...] = COMPARTMENTS

    def __post_init__(self) -> None:
        """Validate shapes and freeze the arrays.

        Raises:
            ValueError: If times is not a strictly increasing, non-empty 1D array
                or if states does not have shape (T, len(names)).
        """
        times = _frozen(self.times)
        if times.ndim != 1:
            raise ValueError(_TIMES_1D_ERROR)
        if times.size < 1:
            raise ValueError(_TIMES_MIN_POINTS_ERROR)
        if times.size > 1 and np.any(np.diff(times) <= 0):
            raise ValueError(_TIMES_MONOTONE_ERROR)

        states = _frozen(self.states)
        expected = (times.size, len(self.names))
        if states.shape != expected:
            raise ValueError(
                _STATES_SHAPE_ERROR.format(actual=states.shape, expected=expected)
            )

        object.__setattr__(self, "times", times)
        object.__setattr__(self, "states", states)
        object.__setattr__(self, "names", tuple(self.names))

    @classmethod
    def from_solution(
        cls,
        solution: Solution,
        names: tuple[str, ...] = COMPARTMENTS,
    ) -> Trajectory:
        """Build a Trajectory from an integrator Solution.

        Args:
            solution: Integrator output.
            names: Component names for the state columns.

        Returns:
            Trajectory holding copies of the solution arrays.
        """
        return cls(times=solution.times, states=solution.states, names=names)

    def __len__(self) -> int:
        return int(self.times.size)

    def __iter__(self) -> Iterator[tuple[float, NDArray[np.float64]]]:
        """Iterate over (time, state) pairs in time order."""
        for t, y in zip(self.times, self.states, strict=True):
            yield float(t), y

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def component(self, name: str) -> NDArray[np.float64]:
        """
        Return the time series of one component.

        Args:
            name: Component name (e.g. "s", "i", "r").

        Raises:
            KeyError: if name is not a component of this trajectory.

        Returns:
            Array of shape (T,).
        """
        try:
            idx = self.names.index(name)
        except ValueError as exc:
            raise KeyError(_UNKNOWN_COMPONENT_ERROR.format(name=name)) from exc
        return self.states[:, idx]

    @property
    def initial_state(self) -> NDArray[np.float64]:
        """State at the first report time."""
        return self.states[0]

    @property
    def final_state(self) -> NDArray[np.float64]:
        """State at the last report time."""
        return self.states[-1]

    def totals(self) -> NDArray[np.float64]:
        """Sum of all components at each report time, shape (T,)."""
        return self.states.sum(axis=1)

    def conservation_drift(self) -> float:
        """Return max |sum(state) - sum(initial state)| over stored times."""
        totals = self.totals()
        return float(np.max(np.abs(totals - totals[0])))
