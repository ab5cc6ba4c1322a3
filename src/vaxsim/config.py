# src/vaxsim/config.py
"""Configuration models for scenario batches.

This module defines the pydantic-facing configuration objects used for YAML or
dict input and translates them into native vaxsim records:

- SolverConfig -> integrator.RunConfig
- ScenarioConfig -> scenarios.Scenario
- BatchConfig -> runner.ScenarioRunner

Notes:
    - Scenario models forbid unknown fields so a misspelled key fails loudly
      instead of silently falling back to a default.
    - The source notation names the birth/death rate "p" and the coverage "P";
      both are accepted as aliases of `pi` and `coverage`.
    - pydantic ValidationError is re-raised as InvalidScenarioError.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from .errors import InvalidScenarioError, raise_invalid_scenario
from .integrator import AdaptiveConfig, DtControllerConfig, MethodName, RunConfig
from .runner import ScenarioRunner
from .scenarios import make_scenario

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .scenarios import Scenario

_TOLERANCE_ERROR = "at least one of rtol or atol must be > 0"
_DT_BOUNDS_ERROR = "dt_min ({dt_min}) must not exceed dt_max ({dt_max})"
_FAC_BOUNDS_ERROR = "fac_min ({fac_min}) must be <= 1 <= fac_max ({fac_max})"
_DUPLICATE_NAMES_ERROR = "scenario names must be unique, duplicated: {names}"
_CONFIG_ROOT_ERROR = "configuration root must be a mapping, got {kind}"


class SolverConfig(BaseModel):
    """Integrator settings.

    This model mirrors RunConfig fields flat, with YAML-friendly defaults.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    method: MethodName = Field(
        default="dopri5",
        description="Embedded Runge-Kutta pair",
    )

    # Adaptive stepping controls
    rtol: float = Field(default=1e-6, ge=0.0)
    atol: float = Field(default=1e-6, ge=0.0)
    dt_init: float | None = Field(default=None, gt=0.0)
    max_steps: int = Field(default=100_000, ge=1)
    record_steps: bool = False

    # dt controller controls
    dt_min: float = Field(default=1e-12, ge=0.0)
    dt_max: float = Field(default=float("inf"), gt=0.0)
    safety: float = Field(default=0.9, gt=0.0, le=1.0)
    fac_min: float = Field(default=0.2, gt=0.0)
    fac_max: float = Field(default=5.0, gt=0.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> SolverConfig:
        if self.rtol == 0.0 and self.atol == 0.0:
            raise ValueError(_TOLERANCE_ERROR)
        if self.dt_min > self.dt_max:
            raise ValueError(
                _DT_BOUNDS_ERROR.format(dt_min=self.dt_min, dt_max=self.dt_max)
            )
        if not (self.fac_min <= 1.0 <= self.fac_max):
            raise ValueError(
                _FAC_BOUNDS_ERROR.format(fac_min=self.fac_min, fac_max=self.fac_max)
            )
        return self

    def to_run_config(self) -> RunConfig:
        """Convert this config to a native RunConfig.

        Returns:
            Fully constructed RunConfig instance.
        """
        adaptive_cfg = AdaptiveConfig(
            rtol=self.rtol,
            atol=self.atol,
            dt_init=self.dt_init,
            max_steps=self.max_steps,
            record_steps=self.record_steps,
        )

        dt_controller = DtControllerConfig(
            dt_min=self.dt_min,
            dt_max=self.dt_max,
            safety=self.safety,
            fac_min=self.fac_min,
            fac_max=self.fac_max,
        )

        return RunConfig(
            method=self.method,
            dt_controller=dt_controller,
            adaptive_cfg=adaptive_cfg,
        )


class ParametersConfig(BaseModel):
    """Model rates of one scenario."""

    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    beta: float = Field(ge=0.0, description="Transmission rate")
    gamma: float = Field(ge=0.0, description="Recovery rate")
    pi: float = Field(
        ge=0.0,
        validation_alias=AliasChoices("pi", "p"),
        description="Birth/death rate",
    )
    coverage: float = Field(
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("coverage", "P"),
        description="Vaccination coverage of newborns",
    )


class InitialStateConfig(BaseModel):
    """Initial compartment fractions."""

    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    s: float
    i: float
    r: float = 0.0


class ScenarioConfig(BaseModel):
    """One scenario on an evenly spaced report grid."""

    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    name: str = Field(min_length=1)
    description: str = ""
    parameters: ParametersConfig
    initial_state: InitialStateConfig
    t0: float = 0.0
    horizon: float = Field(default=10.0, gt=0.0)
    n_points: int = Field(default=101, ge=1)

    def to_scenario(self) -> Scenario:
        """Convert this config to a validated Scenario.

        Returns:
            Scenario instance.
        """
        p = self.parameters
        y0 = self.initial_state
        return make_scenario(
            self.name,
            beta=p.beta,
            gamma=p.gamma,
            pi=p.pi,
            coverage=p.coverage,
            initial_state=(y0.s, y0.i, y0.r),
            horizon=self.horizon,
            n_points=self.n_points,
            t0=self.t0,
            description=self.description,
        )


class BatchConfig(BaseModel):
    """Solver settings plus an ordered list of scenarios."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    solver: SolverConfig = Field(default_factory=SolverConfig)
    scenarios: list[ScenarioConfig] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_unique_names(self) -> BatchConfig:
        names = [s.name for s in self.scenarios]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise_invalid_scenario(
                detail=_DUPLICATE_NAMES_ERROR.format(names=duplicated)
            )
        return self

    def to_scenarios(self) -> tuple[Scenario, ...]:
        """Return the configured scenarios in order."""
        return tuple(s.to_scenario() for s in self.scenarios)

    def to_runner(self) -> ScenarioRunner:
        """Build a ScenarioRunner for this batch."""
        return ScenarioRunner(
            self.to_scenarios(),
            config=self.solver.to_run_config(),
        )


def parse_batch_config(data: Mapping[str, Any]) -> BatchConfig:
    """Validate a plain mapping as a BatchConfig.

    Args:
        data: Parsed configuration, e.g. from YAML.

    Raises:
        InvalidScenarioError: If the mapping does not validate.

    Returns:
        Validated BatchConfig.
    """
    try:
        return BatchConfig.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid scenario configuration.\n{exc}"
        raise InvalidScenarioError(msg) from exc


def load_batch_config(path: str | Path) -> BatchConfig:
    """Read and validate a YAML batch configuration file.

    Args:
        path: Path to a YAML file.

    Raises:
        InvalidScenarioError: If the file content is not a valid batch config.

    Returns:
        Validated BatchConfig.
    """
    with Path(path).open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise InvalidScenarioError(
            _CONFIG_ROOT_ERROR.format(kind=type(data).__name__)
        )
    return parse_batch_config(data)
