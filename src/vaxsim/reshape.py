# src/vaxsim/reshape.py
"""Wide-to-long reshaping of trajectories for visualization.

A trajectory with one column per compartment becomes a table of
(time, variable, value) rows: three rows per report time, ordered by time and
then by compartment order (s, i, r). The transform is deterministic, so
reshaping the same trajectory twice yields identical output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import pandas as pd

if TYPE_CHECKING:
    from .runner import BatchResult
    from .scenarios import Scenario
    from .trajectory import Trajectory

LONG_COLUMNS: Final[tuple[str, str, str]] = ("time", "variable", "value")
SCENARIO_COLUMN: Final[str] = "scenario"
SUBTITLE_COLUMN: Final[str] = "subtitle"

_COLUMN_DTYPES: Final[dict[str, str]] = {
    "time": "float64",
    "variable": "string",
    "value": "float64",
    SCENARIO_COLUMN: "string",
    SUBTITLE_COLUMN: "string",
}


@dataclass(slots=True, frozen=True)
class LongRecord:
    """One row of the long-format table."""

    time: float
    variable: str
    value: float


def to_long_records(trajectory: Trajectory) -> list[LongRecord]:
    """Flatten a trajectory into long-format records.

    Args:
        trajectory: Source trajectory.

    Returns:
        len(trajectory) * n_components records, time-major.
    """
    return [
        LongRecord(time=t, variable=name, value=float(value))
        for t, state in trajectory
        for name, value in zip(trajectory.names, state, strict=True)
    ]


def to_long_frame(
    trajectory: Trajectory,
    *,
    scenario: str | None = None,
    subtitle: str | None = None,
) -> pd.DataFrame:
    """Return the long-format table of a trajectory as a DataFrame.

    Args:
        trajectory: Source trajectory.
        scenario: Optional scenario label added as a constant column.
        subtitle: Optional subtitle added as a constant column.

    Returns:
        DataFrame with columns time, variable, value (and scenario/subtitle
        when given), in the same order as :func:`to_long_records`. Label
        columns use the pandas string dtype.
    """
    n_times = len(trajectory)
    n_vars = len(trajectory.names)
    df = pd.DataFrame(
        {
            "time": trajectory.times.repeat(n_vars),
            "variable": list(trajectory.names) * n_times,
            "value": trajectory.states.flatten(),
        },
        columns=list(LONG_COLUMNS),
    )
    if scenario is not None:
        df[SCENARIO_COLUMN] = scenario
    if subtitle is not None:
        df[SUBTITLE_COLUMN] = subtitle
    return df.astype({col: _COLUMN_DTYPES[col] for col in df.columns})


def scenario_subtitle(scenario: Scenario) -> str:
    """Summarize the parameters and initial state of a scenario.

    Args:
        scenario: Scenario to describe.

    Returns:
        Single-line text, e.g.
        "beta=0.8, gamma=0.03, pi=0.4, P=0.9 | s0=1, i0=0, r0=0".
    """
    p = scenario.parameters
    s0, i0, r0 = (float(v) for v in scenario.initial_state)
    return (
        f"beta={p.beta:g}, gamma={p.gamma:g}, pi={p.pi:g}, P={p.coverage:g}"
        f" | s0={s0:g}, i0={i0:g}, r0={r0:g}"
    )


def batch_to_long_frame(batch: BatchResult) -> pd.DataFrame:
    """Concatenate the long tables of all successful scenarios in a batch.

    Failed scenarios contribute no rows.

    Args:
        batch: Result of a ScenarioRunner run.

    Returns:
        DataFrame with columns time, variable, value, scenario, subtitle.
    """
    frames = [
        to_long_frame(
            outcome.trajectory,
            scenario=outcome.name,
            subtitle=scenario_subtitle(outcome.scenario),
        )
        for outcome in batch
        if outcome.trajectory is not None
    ]
    if not frames:
        return pd.DataFrame(
            {col: pd.Series(dtype=dtype) for col, dtype in _COLUMN_DTYPES.items()}
        )
    return pd.concat(frames, ignore_index=True)
