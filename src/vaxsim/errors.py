# src/vaxsim/errors.py
"""Error types and standardized raise helpers for vaxsim.

Design intent:
- scenario/configuration problems fail fast, before any integration work
- integrator failures are typed so a batch runner can record them per scenario
- every error carries a machine-readable code for logging and reporting
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable classification for vaxsim failures.

    Use these codes to support consistent logging and (optional) programmatic
    recovery without requiring callers to match on exception classes.
    """

    INVALID_SCENARIO = "invalid_scenario"
    STEP_SIZE_UNDERFLOW = "step_size_underflow"
    MAX_STEPS_EXCEEDED = "max_steps_exceeded"


class VaxsimError(Exception):
    """Base exception for vaxsim errors."""

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        """
        Initialize a VaxsimError.

        Args:
            message: Human-readable error message.
            code: Optional machine-readable error code classifying the error.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code


class InvalidScenarioError(VaxsimError, ValueError):
    """Raised when a scenario, its parameters, or its time grid are invalid."""

    def __init__(self, message: str) -> None:
        """
        Initialize an InvalidScenarioError.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message, code=ErrorCode.INVALID_SCENARIO)


class IntegrationError(VaxsimError, RuntimeError):
    """Base class for failures raised while advancing an ODE system."""

    def __init__(self, message: str, *, code: ErrorCode, t: float) -> None:
        """
        Initialize an IntegrationError.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            t: Integration time reached when the failure occurred.
        """
        super().__init__(message, code=code)
        self.t = float(t)


class StepSizeUnderflowError(IntegrationError):
    """Raised when local error cannot be met even at the minimum step size."""

    def __init__(self, message: str, *, t: float, dt: float) -> None:
        """
        Initialize a StepSizeUnderflowError.

        Args:
            message: Human-readable error message.
            t: Integration time at which the step was attempted.
            dt: Step size of the last rejected attempt.
        """
        super().__init__(message, code=ErrorCode.STEP_SIZE_UNDERFLOW, t=t)
        self.dt = float(dt)


class MaxStepsExceededError(IntegrationError):
    """Raised when the internal step budget runs out before the final time."""

    def __init__(self, message: str, *, t: float, max_steps: int) -> None:
        """
        Initialize a MaxStepsExceededError.

        Args:
            message: Human-readable error message.
            t: Integration time reached when the budget ran out.
            max_steps: Configured step budget.
        """
        super().__init__(message, code=ErrorCode.MAX_STEPS_EXCEEDED, t=t)
        self.max_steps = int(max_steps)


def raise_invalid_scenario(
    *,
    name: str | None = None,
    detail: str,
) -> None:
    """Raise a standardized InvalidScenarioError.

    Args:
        name: Scenario name, if known.
        detail: Description of what is wrong.

    Raises:
        InvalidScenarioError: Always.
    """
    where = f"Invalid scenario '{name}'." if name else "Invalid scenario."
    raise InvalidScenarioError(f"{where} Detail: {detail}")


def raise_step_size_underflow(*, t: float, dt: float, dt_min: float) -> None:
    """Raise a standardized StepSizeUnderflowError.

    Args:
        t: Integration time at which the step was attempted.
        dt: Step size of the last rejected attempt.
        dt_min: Configured minimum step size.

    Raises:
        StepSizeUnderflowError: Always.
    """
    msg = (
        f"Step size underflow at t={t:.12g}: error tolerance could not be met "
        f"with dt={dt:.3e} (dt_min={dt_min:.3e}). The system may be stiff or "
        "the tolerances too tight."
    )
    raise StepSizeUnderflowError(msg, t=t, dt=dt)


def raise_max_steps_exceeded(*, t: float, t_final: float, max_steps: int) -> None:
    """Raise a standardized MaxStepsExceededError.

    Args:
        t: Integration time reached when the budget ran out.
        t_final: Final report time that was not reached.
        max_steps: Configured step budget.

    Raises:
        MaxStepsExceededError: Always.
    """
    msg = (
        f"Exceeded max_steps={max_steps} at t={t:.12g} before reaching "
        f"t_final={t_final:.12g}."
    )
    raise MaxStepsExceededError(msg, t=t, max_steps=max_steps)
