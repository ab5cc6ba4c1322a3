# vaxsim/examples/vaccination_scenarios.py
"""The four built-in vaccination scenarios, plotted from the long table.

This example demonstrates the batch API:

- run_scenarios() integrates every built-in scenario with the default
  Dormand-Prince settings and returns a BatchResult.
- batch_to_long_frame(...) flattens all trajectories into one
  (time, variable, value, scenario, subtitle) DataFrame.
- Each scenario is drawn as a small-multiple panel with its parameter
  subtitle.

The long table is also written to CSV next to the figure.

This script saves plots to disk (no interactive windows).
"""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from vaxsim import batch_to_long_frame, run_scenarios
from vaxsim.reshape import SCENARIO_COLUMN, SUBTITLE_COLUMN

_OUTPUT_DIR = Path(__file__).resolve().parent / "output" / "vaccination"
_LABELS = {"s": "S", "i": "I", "r": "R"}


def save_scenario_panels(df: pd.DataFrame, *, out_path: Path) -> None:
    """Save one S, I, R panel per scenario.

    Args:
        df: Long table with scenario and subtitle columns.
        out_path: Output path for the saved figure.
    """
    names = list(df[SCENARIO_COLUMN].drop_duplicates())
    fig, axes = plt.subplots(
        2, (len(names) + 1) // 2, figsize=(12, 8), sharex=True, sharey=True
    )

    for ax, name in zip(axes.flat, names, strict=False):
        block = df[df[SCENARIO_COLUMN] == name]
        for variable, series in block.groupby("variable", sort=False):
            ax.plot(series["time"], series["value"], label=_LABELS[str(variable)])
        ax.set_title(f"{name}\n{block[SUBTITLE_COLUMN].iloc[0]}", fontsize=9)
        ax.grid(visible=True)

    for ax in axes.flat:
        ax.set_xlabel("Time")
        ax.set_ylabel("Proportion")
    axes.flat[0].legend()

    fig.tight_layout()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=150)
    plt.close(fig)


def main() -> None:
    """Run the built-in scenarios and save the panel plot and long table.

    Files are written to: examples/output/vaccination/
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    result = run_scenarios()
    result.raise_for_failures()

    for outcome in result:
        if outcome.trajectory is not None:
            logging.getLogger(__name__).info(
                "%s: max |S+I+R-1| = %.3e",
                outcome.name,
                outcome.trajectory.conservation_drift(),
            )

    df = batch_to_long_frame(result)

    _OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    df.to_csv(_OUTPUT_DIR / "vaccination_scenarios_long.csv", index=False)
    save_scenario_panels(df, out_path=_OUTPUT_DIR / "vaccination_scenarios.png")


if __name__ == "__main__":
    main()
