"""Tests for the SIR-with-vaccination right-hand side and equilibria."""

from __future__ import annotations

import math

import numpy as np
import pytest

from vaxsim.errors import InvalidScenarioError
from vaxsim.sir_model import (
    COMPARTMENTS,
    SIRParameters,
    basic_reproduction_number,
    disease_free_equilibrium,
    effective_reproduction_number,
    endemic_equilibrium,
    make_rhs,
    sirv_rhs,
)

# -----------------------------------------------------------------------------
# A) Parameters
# -----------------------------------------------------------------------------


def test_compartment_order() -> None:
    """Compartments are ordered s, i, r."""
    assert COMPARTMENTS == ("s", "i", "r")


@pytest.mark.parametrize("coverage", [-0.01, 1.01])
def test_coverage_outside_unit_interval_is_rejected(coverage: float) -> None:
    """Coverage must lie in [0, 1]."""
    with pytest.raises(InvalidScenarioError, match="coverage"):
        SIRParameters(beta=0.8, gamma=0.03, pi=0.4, coverage=coverage)


@pytest.mark.parametrize("name", ["beta", "gamma", "pi"])
def test_negative_rates_are_rejected(name: str) -> None:
    """Rates must be non-negative."""
    kwargs = {"beta": 0.8, "gamma": 0.03, "pi": 0.4, "coverage": 0.5}
    kwargs[name] = -1.0
    with pytest.raises(InvalidScenarioError, match=name):
        SIRParameters(**kwargs)


def test_non_finite_parameters_are_rejected() -> None:
    """NaN and inf parameters are rejected."""
    with pytest.raises(InvalidScenarioError, match="finite"):
        SIRParameters(beta=math.nan, gamma=0.03, pi=0.4, coverage=0.5)
    with pytest.raises(InvalidScenarioError, match="finite"):
        SIRParameters(beta=0.8, gamma=math.inf, pi=0.4, coverage=0.5)


def test_coverage_bounds_are_inclusive() -> None:
    """Coverage 0 and 1 are valid."""
    SIRParameters(beta=0.8, gamma=0.03, pi=0.4, coverage=0.0)
    SIRParameters(beta=0.8, gamma=0.03, pi=0.4, coverage=1.0)


# -----------------------------------------------------------------------------
# B) Right-hand side
# -----------------------------------------------------------------------------


def test_rhs_matches_hand_computed_values() -> None:
    """RHS reproduces the model equations at an arbitrary point."""
    p = SIRParameters(beta=0.8, gamma=0.03, pi=0.4, coverage=0.9)
    s, i, r = 0.5, 0.2, 0.3

    out = sirv_rhs(0.0, np.array([s, i, r]), p)

    expected = np.array(
        [
            (1 - 0.9) * 0.4 - 0.8 * s * i - 0.4 * s,
            0.8 * s * i - (0.03 + 0.4) * i,
            0.9 * 0.4 + 0.03 * i - 0.4 * r,
        ]
    )
    assert out.shape == (3,)
    assert out.dtype == np.float64
    np.testing.assert_allclose(out, expected, rtol=0.0, atol=1e-15)


def test_rhs_total_derivative_restores_unit_total(
    endemic_params: SIRParameters,
) -> None:
    """d(s+i+r)/dt = pi (1 - s - i - r), which vanishes on the unit simplex."""
    rng = np.random.default_rng(0)
    for _ in range(20):
        y = rng.uniform(-0.5, 1.5, size=3)
        total = float(np.sum(sirv_rhs(0.0, y, endemic_params)))
        assert total == pytest.approx(endemic_params.pi * (1.0 - y.sum()), abs=1e-12)

    y = np.array([0.6, 0.3, 0.1])
    assert float(np.sum(sirv_rhs(0.0, y, endemic_params))) == pytest.approx(
        0.0, abs=1e-15
    )


def test_rhs_ignores_time(endemic_params: SIRParameters) -> None:
    """The system is autonomous."""
    y = np.array([0.7, 0.2, 0.1])
    np.testing.assert_array_equal(
        sirv_rhs(0.0, y, endemic_params),
        sirv_rhs(123.4, y, endemic_params),
    )


def test_rhs_does_not_clamp_out_of_range_states(
    endemic_params: SIRParameters,
) -> None:
    """Out-of-range states are evaluated as-is, without clamping or errors."""
    y = np.array([-0.1, 1.2, -0.3])
    out = sirv_rhs(0.0, y, endemic_params)
    assert np.all(np.isfinite(out))
    # di/dt = (beta s - gamma - pi) i with s < 0 and i > 0 is negative.
    assert out[1] < 0.0


def test_zero_infected_is_invariant(eradication_params: SIRParameters) -> None:
    """With i = 0 the infected derivative is exactly zero."""
    out = sirv_rhs(0.0, np.array([1.0, 0.0, 0.0]), eradication_params)
    assert out[1] == 0.0


def test_make_rhs_binds_parameters(endemic_params: SIRParameters) -> None:
    """make_rhs returns a (t, y) callback equivalent to sirv_rhs."""
    rhs = make_rhs(endemic_params)
    y = np.array([0.8, 0.2, 0.0])
    np.testing.assert_array_equal(rhs(1.0, y), sirv_rhs(1.0, y, endemic_params))


# -----------------------------------------------------------------------------
# C) Thresholds and equilibria
# -----------------------------------------------------------------------------


def test_reproduction_numbers(eradication_params: SIRParameters) -> None:
    """R0 = beta/(gamma+pi) and R_eff = (1-P) R0."""
    r0 = basic_reproduction_number(eradication_params)
    assert r0 == pytest.approx(0.8 / 0.43)
    assert effective_reproduction_number(eradication_params) == pytest.approx(
        0.1 * r0
    )


def test_disease_free_equilibrium_is_steady(
    eradication_params: SIRParameters,
) -> None:
    """RHS vanishes at (1-P, 0, P)."""
    dfe = disease_free_equilibrium(eradication_params)
    np.testing.assert_allclose(dfe, [0.1, 0.0, 0.9])
    np.testing.assert_allclose(
        sirv_rhs(0.0, dfe, eradication_params), 0.0, atol=1e-15
    )


def test_endemic_equilibrium_is_steady(endemic_params: SIRParameters) -> None:
    """RHS vanishes at the endemic state, which has i* > 0."""
    ee = endemic_equilibrium(endemic_params)
    assert ee is not None
    assert ee[1] > 0.0
    assert ee.sum() == pytest.approx(1.0)
    assert ee[0] == pytest.approx(0.43 / 0.8)
    np.testing.assert_allclose(sirv_rhs(0.0, ee, endemic_params), 0.0, atol=1e-14)


def test_endemic_equilibrium_absent_below_threshold(
    eradication_params: SIRParameters,
) -> None:
    """No endemic state exists when R_eff <= 1."""
    assert effective_reproduction_number(eradication_params) < 1.0
    assert endemic_equilibrium(eradication_params) is None


def test_endemic_equilibrium_absent_without_transmission() -> None:
    """No endemic state exists when beta = 0."""
    p = SIRParameters(beta=0.0, gamma=0.03, pi=0.4, coverage=0.0)
    assert endemic_equilibrium(p) is None
