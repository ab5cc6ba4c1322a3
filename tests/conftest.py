"""Global pytest configuration and shared fixtures for vaxsim."""

from __future__ import annotations

import pytest

from vaxsim.integrator import AdaptiveConfig, RunConfig
from vaxsim.scenarios import Scenario, default_scenarios
from vaxsim.sir_model import SIRParameters

# -----------------------------------------------------------------------------
# Scenario fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def builtin_scenarios() -> dict[str, Scenario]:
    """Built-in scenarios keyed by name."""
    return {s.name: s for s in default_scenarios()}


@pytest.fixture
def endemic_params() -> SIRParameters:
    """Parameters with R_eff > 1 and no vaccination."""
    return SIRParameters(beta=0.8, gamma=0.03, pi=0.4, coverage=0.0)


@pytest.fixture
def eradication_params() -> SIRParameters:
    """Parameters with R_eff < 1 thanks to vaccination."""
    return SIRParameters(beta=0.8, gamma=0.03, pi=0.4, coverage=0.9)


# -----------------------------------------------------------------------------
# Solver fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def tight_config() -> RunConfig:
    """Dormand-Prince with tight tolerances."""
    return RunConfig(
        method="dopri5",
        adaptive_cfg=AdaptiveConfig(rtol=1e-10, atol=1e-12),
    )
