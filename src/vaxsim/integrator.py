# src/vaxsim/integrator.py
"""Adaptive embedded Runge-Kutta integrator for explicit ODE systems.

The integrator advances y' = f(t, y) from an initial state through a sequence
of *report times*: the times at which the caller wants a stored solution state.
Between consecutive report times it takes as many internal steps as the error
controller requires and always lands exactly on the next report time.

Supported methods (keyword `method=`):
    - "dopri5":     Dormand-Prince 5(4), FSAL, 6 RHS evaluations per step.
    - "bs23":       Bogacki-Shampine 3(2), FSAL, 3 RHS evaluations per step.
    - "heun-euler": Heun (order 2) with embedded explicit Euler (order 1).

Error control:
    Each step produces a propagated solution y_high and an embedded estimate
    y_low of lower order q. The local error estimate err = y_high - y_low is
    scaled component-wise by

        atol + rtol * max(|y_n|, |y_{n+1}|)

    and reduced to an RMS norm. A step is accepted iff the norm is <= 1. The
    next step size is dt * clip(safety * norm^(-1/(q+1)), fac_min, fac_max),
    clamped to [dt_min, dt_max]. Rejected steps are retried from the same
    (t, y) with the reduced dt.

Report-time landing:
    A step that would pass the next report time is shortened to end on it, and
    the stored time is the report time itself. Once landed, stepping resumes
    with the dt chosen before the shortening.

Failures:
    - StepSizeUnderflowError: a step was rejected at dt <= dt_min, or dt is too
      small to advance t in floating point.
    - MaxStepsExceededError: the total number of attempted steps (accepted and
      rejected) reached max_steps before the final report time.

State components are never clamped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Final, Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import raise_max_steps_exceeded, raise_step_size_underflow

logger = logging.getLogger(__name__)


# =============================================================================
# Errors / messages
# =============================================================================

_RHS_SHAPE_ERROR_MSG = "rhs shape {actual} does not match expected {expected}"
_UNKNOWN_METHOD_ERROR_MSG = "Unknown method: {method}"
_REPORT_TIMES_1D_ERROR_MSG = "report_times must be a 1D array"
_REPORT_TIMES_EMPTY_ERROR_MSG = "report_times must contain at least one time point"
_REPORT_TIMES_INCREASING_ERROR_MSG = "report_times must be strictly increasing"
_REPORT_TIMES_FINITE_ERROR_MSG = "report_times must be finite"
_T0_AFTER_FIRST_REPORT_ERROR_MSG = (
    "t0={t0} must not be later than the first report time {first}"
)
_Y0_1D_ERROR_MSG = "y0 must be a non-empty 1D array, got shape {shape}"

# A step within this relative distance of the report time lands on it.
_LANDING_RTOL: Final[float] = 1e-10


# =============================================================================
# Type aliases
# =============================================================================

RHSFunction = Callable[[float, NDArray[np.floating]], ArrayLike]
MethodName = Literal["dopri5", "bs23", "heun-euler"]


# =============================================================================
# Butcher tableaux
# =============================================================================


@dataclass(slots=True, frozen=True)
class EmbeddedTableau:
    """Coefficients of an explicit embedded Runge-Kutta pair.

    Attributes:
        c: Stage nodes.
        a: Lower-triangular stage coefficients, one row per stage.
        b: Weights of the propagated solution.
        b_low: Weights of the embedded lower-order solution.
        order: Order of the propagated solution.
        error_order: Order q of the embedded solution used for step control.
        fsal: Whether the last stage equals f(t + dt, y_next) ("first same as
            last"), allowing its reuse as the first stage of the next step.
    """

    c: tuple[float, ...]
    a: tuple[tuple[float, ...], ...]
    b: tuple[float, ...]
    b_low: tuple[float, ...]
    order: int
    error_order: int
    fsal: bool

    @property
    def n_stages(self) -> int:
        """Number of stages."""
        return len(self.c)


DOPRI5: Final[EmbeddedTableau] = EmbeddedTableau(
    c=(0.0, 1 / 5, 3 / 10, 4 / 5, 8 / 9, 1.0, 1.0),
    a=(
        (),
        (1 / 5,),
        (3 / 40, 9 / 40),
        (44 / 45, -56 / 15, 32 / 9),
        (19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729),
        (9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656),
        (35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84),
    ),
    b=(35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84, 0.0),
    b_low=(
        5179 / 57600,
        0.0,
        7571 / 16695,
        393 / 640,
        -92097 / 339200,
        187 / 2100,
        1 / 40,
    ),
    order=5,
    error_order=4,
    fsal=True,
)

BS23: Final[EmbeddedTableau] = EmbeddedTableau(
    c=(0.0, 1 / 2, 3 / 4, 1.0),
    a=(
        (),
        (1 / 2,),
        (0.0, 3 / 4),
        (2 / 9, 1 / 3, 4 / 9),
    ),
    b=(2 / 9, 1 / 3, 4 / 9, 0.0),
    b_low=(7 / 24, 1 / 4, 1 / 3, 1 / 8),
    order=3,
    error_order=2,
    fsal=True,
)

HEUN_EULER: Final[EmbeddedTableau] = EmbeddedTableau(
    c=(0.0, 1.0),
    a=((), (1.0,)),
    b=(0.5, 0.5),
    b_low=(1.0, 0.0),
    order=2,
    error_order=1,
    fsal=False,
)

TABLEAUX: Final[dict[str, EmbeddedTableau]] = {
    "dopri5": DOPRI5,
    "bs23": BS23,
    "heun-euler": HEUN_EULER,
}


# =============================================================================
# Configuration dataclasses
# =============================================================================


@dataclass(slots=True, frozen=True)
class DtControllerConfig:
    """Configuration for adaptive timestep control.

    Attributes:
        dt_min: Minimum allowed dt. A step rejected at this size fails with
            StepSizeUnderflowError.
        dt_max: Maximum allowed dt.
        safety: Safety factor applied to dt updates.
        fac_min: Minimum multiplicative change factor.
        fac_max: Maximum multiplicative change factor.
    """

    dt_min: float = 1e-12
    dt_max: float = float("inf")
    safety: float = 0.9
    fac_min: float = 0.2
    fac_max: float = 5.0


@dataclass(slots=True, frozen=True)
class AdaptiveConfig:
    """Configuration for adaptive stepping.

    Attributes:
        rtol: Relative tolerance.
        atol: Absolute tolerance (scalar or array-like matching the state).
        dt_init: Optional initial dt guess; if None, use the first report
            interval.
        max_steps: Maximum number of attempted internal steps over the whole
            integration.
        record_steps: If True, keep a StepRecord for every attempted step.
    """

    rtol: float = 1e-6
    atol: float | NDArray[np.floating] = 1e-6
    dt_init: float | None = None
    max_steps: int = 100_000
    record_steps: bool = False


@dataclass(slots=True, frozen=True)
class RunConfig:
    """Configuration for AdaptiveIntegrator.

    Attributes:
        method: Method name.
        dt_controller: Parameters for the dt controller.
        adaptive_cfg: Parameters controlling error tolerances and limits.
    """

    method: str = "dopri5"
    dt_controller: DtControllerConfig = DtControllerConfig()
    adaptive_cfg: AdaptiveConfig = AdaptiveConfig()


# =============================================================================
# Results
# =============================================================================


@dataclass(slots=True, frozen=True)
class StepRecord:
    """Diagnostic record of one attempted internal step.

    Attributes:
        t: Time at the start of the step.
        dt: Attempted step size.
        error_norm: Scaled RMS error estimate of the attempt.
        accepted: Whether the step was accepted.
    """

    t: float
    dt: float
    error_norm: float
    accepted: bool


@dataclass(slots=True)
class IntegrationStats:
    """Counters collected during one integration.

    Attributes:
        n_accepted: Number of accepted internal steps.
        n_rejected: Number of rejected internal steps.
        n_rhs_evals: Number of RHS evaluations.
        steps: Per-step records (only filled when record_steps is set).
    """

    n_accepted: int = 0
    n_rejected: int = 0
    n_rhs_evals: int = 0
    steps: list[StepRecord] = field(default_factory=list)

    @property
    def n_attempted(self) -> int:
        """Total number of attempted internal steps."""
        return self.n_accepted + self.n_rejected


@dataclass(slots=True, frozen=True)
class Solution:
    """States at the requested report times.

    Attributes:
        times: Report times, shape (T,), identical to the requested times.
        states: States at the report times, shape (T, n).
        stats: Integration counters.
    """

    times: NDArray[np.float64]
    states: NDArray[np.float64]
    stats: IntegrationStats

    @property
    def y_final(self) -> NDArray[np.float64]:
        """State at the last report time."""
        return self.states[-1]


@dataclass(slots=True)
class _StepState:
    """Mutable stepping state carried across report intervals."""

    t: float
    dt: float
    y: NDArray[np.float64]
    f: NDArray[np.float64] | None = None


# =============================================================================
# AdaptiveIntegrator
# =============================================================================


class AdaptiveIntegrator:
    """Embedded Runge-Kutta integrator with report-time landing."""

    def __init__(self, config: RunConfig | None = None) -> None:
        """Initialize AdaptiveIntegrator.

        Args:
            config: Run configuration. If None, defaults are used.
        """
        self.config = config or RunConfig()
        self.tableau = TABLEAUX[self._normalize_method(self.config.method)]

        tab = self.tableau
        self._a_rows = [np.asarray(row, dtype=np.float64) for row in tab.a]
        self._b = np.asarray(tab.b, dtype=np.float64)
        self._e = self._b - np.asarray(tab.b_low, dtype=np.float64)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_method(method: str) -> MethodName:
        """Normalize and validate method string.

        Args:
            method: User-provided method string.

        Raises:
            ValueError: If method is unknown.

        Returns:
            Normalized method literal.
        """
        method_norm = str(method).strip().lower()
        if method_norm not in TABLEAUX:
            raise ValueError(_UNKNOWN_METHOD_ERROR_MSG.format(method=method))
        return method_norm  # type: ignore[return-value]

    @staticmethod
    def _validate_report_times(report_times: ArrayLike) -> NDArray[np.float64]:
        """Return report times as a validated float64 array.

        Args:
            report_times: Requested output times.

        Raises:
            ValueError: If the times are not 1D, empty, non-finite, or not
                strictly increasing.

        Returns:
            Report times as a 1D float64 array.
        """
        times = np.asarray(report_times, dtype=np.float64)
        if times.ndim != 1:
            raise ValueError(_REPORT_TIMES_1D_ERROR_MSG)
        if times.size < 1:
            raise ValueError(_REPORT_TIMES_EMPTY_ERROR_MSG)
        if not np.all(np.isfinite(times)):
            raise ValueError(_REPORT_TIMES_FINITE_ERROR_MSG)
        if times.size > 1 and np.any(np.diff(times) <= 0.0):
            raise ValueError(_REPORT_TIMES_INCREASING_ERROR_MSG)
        return times

    def _initial_dt(self, times: NDArray[np.float64], t0: float) -> float:
        """Choose the first internal step size.

        Args:
            times: Validated report times.
            t0: Initial time.

        Returns:
            Initial dt, clamped to [dt_min, dt_max].
        """
        ctrl = self.config.dt_controller
        dt_init = self.config.adaptive_cfg.dt_init

        if dt_init is not None and np.isfinite(dt_init) and dt_init > 0.0:
            dt = float(dt_init)
        elif times[0] > t0:
            dt = float(times[0] - t0)
        elif times.size > 1:
            dt = float(times[1] - times[0])
        else:
            dt = 1.0

        return min(max(dt, ctrl.dt_min), ctrl.dt_max)

    # ------------------------------------------------------------------
    # RHS evaluation helper (shape + dtype enforcement)
    # ------------------------------------------------------------------

    @staticmethod
    def _eval_rhs(
        rhs_func: RHSFunction,
        t: float,
        y: NDArray[np.float64],
        stats: IntegrationStats,
    ) -> NDArray[np.float64]:
        """Evaluate the RHS with shape enforcement.

        Args:
            rhs_func: RHS function f(t, y).
            t: Time.
            y: State.
            stats: Counters to update.

        Raises:
            ValueError: If the RHS returns an array with an unexpected shape.

        Returns:
            Derivative as a float64 array shaped like y.
        """
        f = np.asarray(rhs_func(float(t), y), dtype=np.float64)
        stats.n_rhs_evals += 1
        if f.shape != y.shape:
            raise ValueError(
                _RHS_SHAPE_ERROR_MSG.format(actual=f.shape, expected=y.shape)
            )
        return f

    # ------------------------------------------------------------------
    # Error norm + dt controller
    # ------------------------------------------------------------------

    @staticmethod
    def _error_norm(
        err: NDArray[np.float64],
        y_new: NDArray[np.float64],
        y_prev: NDArray[np.float64],
        *,
        rtol: float,
        atol: float | NDArray[np.floating],
    ) -> float:
        """
        Compute RMS scaled error norm.

        Args:
            err: Error estimate array.
            y_new: Candidate solution array.
            y_prev: Previous solution array.
            rtol: Relative tolerance.
            atol: Absolute tolerance.

        Returns:
            RMS scaled error norm (inf if non-finite). Components with zero
            scale count as 0 when their error is exactly 0, else as inf.
        """
        scale = np.maximum(np.abs(y_new), np.abs(y_prev))
        scale *= float(rtol)
        scale += np.asarray(atol, dtype=np.float64)

        positive = scale > 0.0
        ratio = np.divide(err, scale, out=np.zeros_like(err), where=positive)
        ratio[~positive & (err != 0.0)] = np.inf
        v = float(np.sqrt(np.mean(ratio * ratio)))
        if not np.isfinite(v):
            return float("inf")
        return v

    @staticmethod
    def _propose_dt(
        dt: float,
        err_norm: float,
        error_order: int,
        *,
        cfg: DtControllerConfig,
    ) -> float:
        """
        Propose a new dt based on error norm and embedded order.

        Args:
            dt: Current dt.
            err_norm: Current error norm.
            error_order: Order q of the embedded estimate.
            cfg: Dt controller configuration.

        Returns:
            Proposed new dt.
        """
        if err_norm <= 0.0:
            fac = cfg.fac_max
        else:
            exp = 1.0 / float(error_order + 1)
            fac = cfg.safety * (err_norm ** (-exp))
            fac = min(cfg.fac_max, max(cfg.fac_min, fac))

        dt_new = dt * fac
        if dt_new < cfg.dt_min:
            return cfg.dt_min
        if dt_new > cfg.dt_max:
            return cfg.dt_max
        return dt_new

    # ------------------------------------------------------------------
    # One-step kernel
    # ------------------------------------------------------------------

    def _attempt_step(
        self,
        rhs_func: RHSFunction,
        *,
        t: float,
        dt: float,
        y: NDArray[np.float64],
        f0: NDArray[np.float64],
        stats: IntegrationStats,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64] | None]:
        """Take one embedded RK step without deciding acceptance.

        Args:
            rhs_func: RHS function.
            t: Time at the start of the step.
            dt: Step size.
            y: State at t.
            f0: f(t, y).
            stats: Counters to update.

        Returns:
            (y_next, err, f_next) where f_next is f(t + dt, y_next) for FSAL
            tableaux and None otherwise.
        """
        tab = self.tableau
        k = np.empty((tab.n_stages, y.size), dtype=np.float64)
        k[0] = f0

        for s in range(1, tab.n_stages):
            y_stage = y + dt * (self._a_rows[s] @ k[:s])
            k[s] = self._eval_rhs(rhs_func, t + tab.c[s] * dt, y_stage, stats)

        y_next = y + dt * (self._b @ k)
        err = dt * (self._e @ k)
        f_next = k[-1].copy() if tab.fsal else None
        return y_next, err, f_next

    # ------------------------------------------------------------------
    # Adaptive advance
    # ------------------------------------------------------------------

    def _advance_to_time(
        self,
        rhs_func: RHSFunction,
        state: _StepState,
        *,
        t1: float,
        t_final: float,
        stats: IntegrationStats,
    ) -> None:
        """Advance with adaptive substepping to land exactly on t1.

        Args:
            rhs_func: RHS function.
            state: Stepping state, updated in place.
            t1: Report time to land on.
            t_final: Last report time (for error messages).
            stats: Counters to update.
        """
        adaptive_cfg = self.config.adaptive_cfg
        dt_ctrl = self.config.dt_controller
        q = self.tableau.error_order

        while state.t < t1:
            if stats.n_attempted >= adaptive_cfg.max_steps:
                raise_max_steps_exceeded(
                    t=state.t,
                    t_final=t_final,
                    max_steps=adaptive_cfg.max_steps,
                )

            remaining = t1 - state.t
            landing = state.dt >= remaining * (1.0 - _LANDING_RTOL)
            dt_try = remaining if landing else state.dt

            if not landing and state.t + dt_try == state.t:
                raise_step_size_underflow(t=state.t, dt=dt_try, dt_min=dt_ctrl.dt_min)

            if state.f is None:
                state.f = self._eval_rhs(rhs_func, state.t, state.y, stats)

            y_next, err, f_next = self._attempt_step(
                rhs_func,
                t=state.t,
                dt=dt_try,
                y=state.y,
                f0=state.f,
                stats=stats,
            )
            err_norm = self._error_norm(
                err,
                y_next,
                state.y,
                rtol=adaptive_cfg.rtol,
                atol=adaptive_cfg.atol,
            )
            accepted = err_norm <= 1.0

            if adaptive_cfg.record_steps:
                stats.steps.append(
                    StepRecord(
                        t=state.t,
                        dt=dt_try,
                        error_norm=err_norm,
                        accepted=accepted,
                    )
                )

            dt_new = self._propose_dt(dt_try, err_norm, q, cfg=dt_ctrl)

            if accepted:
                stats.n_accepted += 1
                state.t = t1 if landing else state.t + dt_try
                state.y = y_next
                state.f = f_next
                # A landing step shorter than the chosen dt does not shrink it.
                state.dt = max(state.dt, dt_new) if dt_try < state.dt else dt_new
                continue

            stats.n_rejected += 1
            logger.debug(
                "Rejected step at t=%.6g: dt=%.3e error_norm=%.3e",
                state.t,
                dt_try,
                err_norm,
            )
            if dt_try <= dt_ctrl.dt_min:
                raise_step_size_underflow(t=state.t, dt=dt_try, dt_min=dt_ctrl.dt_min)
            state.dt = dt_new

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def integrate(
        self,
        rhs_func: RHSFunction,
        y0: ArrayLike,
        report_times: ArrayLike,
        *,
        t0: float | None = None,
    ) -> Solution:
        """Integrate from (t0, y0) and return the state at each report time.

        Args:
            rhs_func: Function computing f(t, y) for a 1D state y.
            y0: Initial state, 1D.
            report_times: Strictly increasing output times.
            t0: Initial time. Defaults to report_times[0].

        Raises:
            ValueError: If inputs are malformed.

        Returns:
            Solution holding the report times and the states at those times.
        """
        times = self._validate_report_times(report_times)
        t_start = float(times[0]) if t0 is None else float(t0)
        if t_start > times[0]:
            raise ValueError(
                _T0_AFTER_FIRST_REPORT_ERROR_MSG.format(t0=t_start, first=times[0])
            )

        y_init = np.array(y0, dtype=np.float64)
        if y_init.ndim != 1 or y_init.size == 0:
            raise ValueError(_Y0_1D_ERROR_MSG.format(shape=y_init.shape))

        states = np.empty((times.size, y_init.size), dtype=np.float64)
        stats = IntegrationStats()
        state = _StepState(t=t_start, dt=self._initial_dt(times, t_start), y=y_init)
        t_final = float(times[-1])

        for idx, t1 in enumerate(times):
            self._advance_to_time(
                rhs_func,
                state,
                t1=float(t1),
                t_final=t_final,
                stats=stats,
            )
            states[idx] = state.y

        logger.debug(
            "Integrated %d report times with %s: %d accepted, %d rejected, "
            "%d rhs evaluations",
            times.size,
            self.config.method,
            stats.n_accepted,
            stats.n_rejected,
            stats.n_rhs_evals,
        )
        return Solution(times=times, states=states, stats=stats)


def integrate(
    rhs_func: RHSFunction,
    y0: ArrayLike,
    report_times: ArrayLike,
    *,
    t0: float | None = None,
    config: RunConfig | None = None,
) -> Solution:
    """Integrate an ODE system with a fresh AdaptiveIntegrator.

    Args:
        rhs_func: Function computing f(t, y) for a 1D state y.
        y0: Initial state, 1D.
        report_times: Strictly increasing output times.
        t0: Initial time. Defaults to report_times[0].
        config: Optional run configuration.

    Returns:
        Solution at the report times.
    """
    return AdaptiveIntegrator(config).integrate(rhs_func, y0, report_times, t0=t0)
