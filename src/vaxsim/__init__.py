"""vaxsim: SIR epidemics under constant vaccination, with an adaptive ODE core."""

from __future__ import annotations

from .config import BatchConfig, ScenarioConfig, SolverConfig, load_batch_config
from .errors import (
    ErrorCode,
    IntegrationError,
    InvalidScenarioError,
    MaxStepsExceededError,
    StepSizeUnderflowError,
    VaxsimError,
)
from .integrator import (
    AdaptiveConfig,
    AdaptiveIntegrator,
    DtControllerConfig,
    RunConfig,
    Solution,
    integrate,
)
from .reshape import (
    LongRecord,
    batch_to_long_frame,
    scenario_subtitle,
    to_long_frame,
    to_long_records,
)
from .runner import BatchResult, ScenarioOutcome, ScenarioRunner, run_scenarios
from .scenarios import Scenario, default_scenarios, make_scenario
from .sir_model import COMPARTMENTS, SIRParameters, make_rhs, sirv_rhs
from .trajectory import Trajectory

__all__ = [
    "COMPARTMENTS",
    "AdaptiveConfig",
    "AdaptiveIntegrator",
    "BatchConfig",
    "BatchResult",
    "DtControllerConfig",
    "ErrorCode",
    "IntegrationError",
    "InvalidScenarioError",
    "LongRecord",
    "MaxStepsExceededError",
    "RunConfig",
    "SIRParameters",
    "Scenario",
    "ScenarioConfig",
    "ScenarioOutcome",
    "ScenarioRunner",
    "Solution",
    "SolverConfig",
    "StepSizeUnderflowError",
    "Trajectory",
    "VaxsimError",
    "batch_to_long_frame",
    "default_scenarios",
    "integrate",
    "load_batch_config",
    "make_rhs",
    "make_scenario",
    "run_scenarios",
    "scenario_subtitle",
    "sirv_rhs",
    "to_long_frame",
    "to_long_records",
]

__version__ = "0.1.0"
