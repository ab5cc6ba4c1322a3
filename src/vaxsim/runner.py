# src/vaxsim/runner.py
"""Batch runner: integrate each scenario once and collect labeled outcomes.

Failure policy:
- Scenario validation happens when Scenario records are built, before the
  runner is involved.
- An IntegrationError in one scenario is recorded on that scenario's outcome;
  the remaining scenarios still run.
- Any other exception (for example a malformed RHS) propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import IntegrationError, VaxsimError, raise_invalid_scenario
from .integrator import AdaptiveIntegrator, RunConfig
from .scenarios import default_scenarios
from .sir_model import make_rhs
from .trajectory import Trajectory

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from .integrator import IntegrationStats
    from .scenarios import Scenario

logger = logging.getLogger(__name__)

_DUPLICATE_NAME_MSG = "scenario names must be unique within a batch"
_UNKNOWN_SCENARIO_ERROR = "Unknown scenario: {name}"
_OUTCOME_STATE_ERROR = "Exactly one of trajectory or error must be set"
_BATCH_FAILED_MSG = "{n_failed} of {n_total} scenarios failed: {details}"


class BatchFailedError(VaxsimError):
    """Raised by BatchResult.raise_for_failures when any scenario failed."""

    def __init__(self, message: str, *, failures: tuple[ScenarioOutcome, ...]) -> None:
        """
        Initialize a BatchFailedError.

        Args:
            message: Human-readable error message.
            failures: Failed outcomes.
        """
        super().__init__(message)
        self.failures = failures


@dataclass(slots=True, frozen=True)
class ScenarioOutcome:
    """Tagged result of integrating one scenario.

    Attributes:
        scenario: The scenario that was run.
        trajectory: Trajectory on success, else None.
        error: Integration error on failure, else None.
        stats: Integrator counters on success, else None.
    """

    scenario: Scenario
    trajectory: Trajectory | None = None
    error: IntegrationError | None = None
    stats: IntegrationStats | None = None

    def __post_init__(self) -> None:
        """Enforce that exactly one of trajectory/error is set.

        Raises:
            ValueError: If both or neither are set.
        """
        if (self.trajectory is None) == (self.error is None):
            raise ValueError(_OUTCOME_STATE_ERROR)

    @property
    def name(self) -> str:
        """Scenario name."""
        return self.scenario.name

    @property
    def ok(self) -> bool:
        """Whether the integration succeeded."""
        return self.error is None


@dataclass(slots=True, frozen=True)
class BatchResult:
    """Outcomes of a batch run, in scenario order."""

    outcomes: tuple[ScenarioOutcome, ...]

    def __iter__(self) -> Iterator[ScenarioOutcome]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def __getitem__(self, name: str) -> ScenarioOutcome:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        raise KeyError(_UNKNOWN_SCENARIO_ERROR.format(name=name))

    @property
    def successes(self) -> tuple[ScenarioOutcome, ...]:
        """Outcomes that produced a trajectory."""
        return tuple(o for o in self.outcomes if o.ok)

    @property
    def failures(self) -> tuple[ScenarioOutcome, ...]:
        """Outcomes that ended in an integration error."""
        return tuple(o for o in self.outcomes if not o.ok)

    @property
    def all_ok(self) -> bool:
        """Whether every scenario succeeded."""
        return not self.failures

    def trajectories(self) -> dict[str, Trajectory]:
        """Return successful trajectories keyed by scenario name."""
        return {
            o.name: o.trajectory for o in self.outcomes if o.trajectory is not None
        }

    def raise_for_failures(self) -> None:
        """Raise if any scenario failed.

        Raises:
            BatchFailedError: If at least one outcome holds an error.
        """
        failures = self.failures
        if not failures:
            return
        details = "; ".join(f"{o.name}: {o.error}" for o in failures)
        raise BatchFailedError(
            _BATCH_FAILED_MSG.format(
                n_failed=len(failures),
                n_total=len(self.outcomes),
                details=details,
            ),
            failures=failures,
        )


class ScenarioRunner:
    """Run a fixed, ordered list of scenarios through the integrator."""

    def __init__(
        self,
        scenarios: Iterable[Scenario] | None = None,
        *,
        config: RunConfig | None = None,
    ) -> None:
        """Initialize ScenarioRunner.

        Args:
            scenarios: Scenarios to run. Defaults to the built-in four.
            config: Integrator configuration shared by all scenarios.

        Raises:
            InvalidScenarioError: If two scenarios share a name.
        """
        self.scenarios: tuple[Scenario, ...] = (
            tuple(scenarios) if scenarios is not None else default_scenarios()
        )
        self.config = config or RunConfig()

        seen: set[str] = set()
        for scenario in self.scenarios:
            if scenario.name in seen:
                raise_invalid_scenario(name=scenario.name, detail=_DUPLICATE_NAME_MSG)
            seen.add(scenario.name)

    def run_one(self, scenario: Scenario) -> ScenarioOutcome:
        """Integrate a single scenario.

        Args:
            scenario: Scenario to integrate.

        Returns:
            Outcome holding either the trajectory or the integration error.
        """
        integrator = AdaptiveIntegrator(self.config)
        logger.info("Running scenario '%s'", scenario.name)
        try:
            solution = integrator.integrate(
                make_rhs(scenario.parameters),
                scenario.initial_state,
                scenario.report_times,
            )
        except IntegrationError as exc:
            logger.warning(
                "Scenario '%s' failed [%s]: %s", scenario.name, exc.code, exc
            )
            return ScenarioOutcome(scenario=scenario, error=exc)

        logger.info(
            "Scenario '%s' finished: %d accepted, %d rejected steps",
            scenario.name,
            solution.stats.n_accepted,
            solution.stats.n_rejected,
        )
        return ScenarioOutcome(
            scenario=scenario,
            trajectory=Trajectory.from_solution(solution),
            stats=solution.stats,
        )

    def run(self) -> BatchResult:
        """Integrate every scenario in order.

        Returns:
            BatchResult with one outcome per scenario.
        """
        outcomes = tuple(self.run_one(scenario) for scenario in self.scenarios)
        n_failed = sum(1 for o in outcomes if not o.ok)
        if n_failed:
            logger.warning("%d of %d scenarios failed", n_failed, len(outcomes))
        return BatchResult(outcomes=outcomes)


def run_scenarios(
    scenarios: Iterable[Scenario] | None = None,
    *,
    config: RunConfig | None = None,
) -> BatchResult:
    """Run scenarios (default: the built-in four) and return the batch result.

    Args:
        scenarios: Scenarios to run.
        config: Integrator configuration.

    Returns:
        BatchResult in scenario order.
    """
    return ScenarioRunner(scenarios, config=config).run()
