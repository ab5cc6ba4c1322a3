"""Tests for vaxsim.config (pydantic models and YAML loading)."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import numpy as np
import pytest
import yaml

from vaxsim.config import (
    BatchConfig,
    ParametersConfig,
    ScenarioConfig,
    SolverConfig,
    load_batch_config,
    parse_batch_config,
)
from vaxsim.errors import ErrorCode, InvalidScenarioError
from vaxsim.integrator import RunConfig
from vaxsim.runner import ScenarioRunner

if TYPE_CHECKING:
    from pathlib import Path


def _scenario_dict(name: str = "case", **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": name,
        "parameters": {"beta": 0.8, "gamma": 0.03, "pi": 0.4, "coverage": 0.9},
        "initial_state": {"s": 0.8, "i": 0.2, "r": 0.0},
    }
    data.update(overrides)
    return data


# -----------------------------------------------------------------------------
# A) SolverConfig
# -----------------------------------------------------------------------------


def test_solver_defaults_map_to_run_config() -> None:
    """Default SolverConfig converts to the default RunConfig."""
    assert SolverConfig().to_run_config() == RunConfig()


def test_solver_fields_map_to_run_config() -> None:
    """Flat solver fields land in the nested RunConfig."""
    cfg = SolverConfig(
        method="bs23",
        rtol=1e-8,
        atol=1e-10,
        dt_init=0.01,
        max_steps=500,
        record_steps=True,
        dt_min=1e-9,
        dt_max=0.5,
        safety=0.8,
        fac_min=0.1,
        fac_max=4.0,
    )
    run = cfg.to_run_config()

    assert run.method == "bs23"
    assert run.adaptive_cfg.rtol == 1e-8
    assert run.adaptive_cfg.atol == 1e-10
    assert run.adaptive_cfg.dt_init == 0.01
    assert run.adaptive_cfg.max_steps == 500
    assert run.adaptive_cfg.record_steps is True
    assert run.dt_controller.dt_min == 1e-9
    assert run.dt_controller.dt_max == 0.5
    assert run.dt_controller.safety == 0.8
    assert run.dt_controller.fac_min == 0.1
    assert run.dt_controller.fac_max == 4.0


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [
        ({"rtol": 0.0, "atol": 0.0}, "rtol or atol"),
        ({"dt_min": 1.0, "dt_max": 0.1}, "dt_min"),
        ({"fac_min": 1.5}, "fac_min"),
        ({"fac_max": 0.5}, "fac_max"),
        ({"method": "rk4"}, "method"),
        ({"safety": 1.5}, "safety"),
        ({"unknown": 1}, "unknown"),
    ],
)
def test_solver_validation(kwargs: dict[str, Any], match: str) -> None:
    """Inconsistent or unknown solver settings are rejected."""
    with pytest.raises(ValueError, match=match):
        SolverConfig(**kwargs)


# -----------------------------------------------------------------------------
# B) Scenario models
# -----------------------------------------------------------------------------


def test_parameter_aliases() -> None:
    """"p" and "P" are accepted for the birth/death rate and the coverage."""
    params = ParametersConfig.model_validate(
        {"beta": 0.8, "gamma": 0.03, "p": 0.4, "P": 0.3}
    )
    assert params.pi == 0.4
    assert params.coverage == 0.3


@pytest.mark.parametrize(
    "parameters",
    [
        {"beta": 0.8, "gamma": 0.03, "pi": 0.4, "coverage": 1.2},
        {"beta": -0.8, "gamma": 0.03, "pi": 0.4, "coverage": 0.5},
        {"beta": math.nan, "gamma": 0.03, "pi": 0.4, "coverage": 0.5},
        {"beta": 0.8, "gamma": 0.03, "pi": 0.4, "coverage": 0.5, "mu": 1.0},
        {"beta": 0.8, "gamma": 0.03, "coverage": 0.5},
    ],
)
def test_invalid_parameters_are_rejected(parameters: dict[str, Any]) -> None:
    """Out-of-range, non-finite, unknown or missing parameters fail."""
    with pytest.raises(ValueError, match="parameters"):
        ScenarioConfig.model_validate(_scenario_dict(parameters=parameters))


def test_scenario_config_to_scenario() -> None:
    """ScenarioConfig builds an evenly spaced Scenario."""
    cfg = ScenarioConfig.model_validate(
        _scenario_dict(description="demo", horizon=5.0, n_points=11, t0=1.0)
    )
    scenario = cfg.to_scenario()

    assert scenario.name == "case"
    assert scenario.description == "demo"
    assert scenario.parameters.coverage == 0.9
    np.testing.assert_array_equal(scenario.initial_state, [0.8, 0.2, 0.0])
    np.testing.assert_allclose(scenario.report_times, np.linspace(1.0, 6.0, 11))


def test_initial_state_r_defaults_to_zero() -> None:
    """Omitting r means no initially recovered individuals."""
    cfg = ScenarioConfig.model_validate(
        _scenario_dict(initial_state={"s": 1.0, "i": 0.0})
    )
    assert cfg.to_scenario().initial_state[2] == 0.0


# -----------------------------------------------------------------------------
# C) BatchConfig
# -----------------------------------------------------------------------------


def test_batch_config_builds_runner() -> None:
    """A batch mapping produces a runner with the configured solver."""
    batch = parse_batch_config(
        {
            "solver": {"method": "bs23", "rtol": 1e-7},
            "scenarios": [_scenario_dict("a"), _scenario_dict("b")],
        }
    )
    runner = batch.to_runner()

    assert isinstance(runner, ScenarioRunner)
    assert [s.name for s in runner.scenarios] == ["a", "b"]
    assert runner.config.method == "bs23"
    assert runner.config.adaptive_cfg.rtol == 1e-7


def test_batch_solver_defaults_when_omitted() -> None:
    """The solver section is optional."""
    batch = parse_batch_config({"scenarios": [_scenario_dict()]})
    assert batch.solver == SolverConfig()


@pytest.mark.parametrize(
    ("data", "match"),
    [
        ({"scenarios": []}, "scenarios"),
        ({"scenarios": [_scenario_dict("x"), _scenario_dict("x")]}, "unique"),
        ({"scenarios": [_scenario_dict()], "extra": 1}, "extra"),
    ],
)
def test_invalid_batches_raise_invalid_scenario(
    data: dict[str, Any],
    match: str,
) -> None:
    """Validation failures surface as InvalidScenarioError."""
    with pytest.raises(InvalidScenarioError, match=match) as excinfo:
        parse_batch_config(data)
    assert excinfo.value.code is ErrorCode.INVALID_SCENARIO


def test_to_scenarios_keeps_order() -> None:
    """to_scenarios returns one Scenario per entry, in file order."""
    batch = BatchConfig.model_validate(
        {"scenarios": [_scenario_dict("b"), _scenario_dict("a")]}
    )
    assert [s.name for s in batch.to_scenarios()] == ["b", "a"]


def test_out_of_range_coverage_is_invalid_scenario() -> None:
    """Coverage above 1 in a batch mapping is an InvalidScenarioError."""
    with pytest.raises(InvalidScenarioError, match="coverage"):
        parse_batch_config(
            {
                "scenarios": [
                    _scenario_dict(
                        parameters={
                            "beta": 0.8,
                            "gamma": 0.03,
                            "pi": 0.4,
                            "coverage": 2.0,
                        }
                    )
                ]
            }
        )


def test_pure_relative_tolerance_runs_case_without_infection() -> None:
    """atol=0 is accepted and integrates a scenario whose i stays exactly 0."""
    batch = parse_batch_config(
        {
            "solver": {"rtol": 1e-6, "atol": 0.0},
            "scenarios": [
                _scenario_dict(
                    "c1",
                    initial_state={"s": 1.0, "i": 0.0, "r": 0.0},
                )
            ],
        }
    )
    outcome = batch.to_runner().run()["c1"]

    assert outcome.ok, outcome.error
    assert outcome.trajectory is not None
    assert np.all(outcome.trajectory.component("i") == 0.0)


# -----------------------------------------------------------------------------
# D) YAML loading
# -----------------------------------------------------------------------------


def test_load_batch_config_from_yaml(tmp_path: Path) -> None:
    """A YAML file round-trips into a runnable batch."""
    path = tmp_path / "batch.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "solver": {"rtol": 1e-8, "atol": 1e-10},
                "scenarios": [
                    _scenario_dict(
                        "high_coverage",
                        parameters={"beta": 0.8, "gamma": 0.03, "p": 0.4, "P": 0.9},
                        n_points=21,
                    )
                ],
            }
        ),
        encoding="utf-8",
    )

    batch = load_batch_config(path)
    result = batch.to_runner().run()

    outcome = result["high_coverage"]
    assert outcome.ok
    assert outcome.trajectory is not None
    assert len(outcome.trajectory) == 21


@pytest.mark.parametrize("content", ["- a\n- b\n", "just a string\n", ""])
def test_load_batch_config_rejects_non_mapping_root(
    tmp_path: Path,
    content: str,
) -> None:
    """The YAML root must be a mapping."""
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(InvalidScenarioError, match="mapping"):
        load_batch_config(path)
