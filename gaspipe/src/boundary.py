"""
Boundary conditions imposed on a pipe end by its neighbouring component.
"""

import numpy as np
from abc import ABC, abstractmethod
from scipy import optimize
from typing import Callable, Optional, Union

from .discretization import INLET, OUTLET, boundary_acceleration, boundary_acceleration_slope
from .errors import BoundarySolveError
from .segment import PipeSegment
from .state import PipeState

Schedule = Union[float, Callable[[float], float]]


def _evaluate(schedule: Schedule, t: float) -> float:
    return float(schedule(t)) if callable(schedule) else float(schedule)


def _rate(schedule: Schedule, rate: Optional[Schedule], t: float, dt: float) -> float:
    """Time derivative of a schedule, by central difference if none given."""
    if rate is not None:
        return _evaluate(rate, t)
    if not callable(schedule):
        return 0.0
    return (float(schedule(t + dt)) - float(schedule(t - dt))) / (2.0 * dt)


def _check_side(side: str) -> None:
    if side not in (INLET, OUTLET):
        raise ValueError(f"Unknown side: {side!r}. Options: 'inlet', 'outlet'")


class BoundaryCondition(ABC):
    """Abstract base class for boundary conditions."""

    #: True if the condition fixes the port pressure, False if it fixes the flow
    prescribes_pressure = True

    @abstractmethod
    def apply(self, state: PipeState, segment: PipeSegment, t: float, side: str) -> None:
        """
        Apply boundary condition to the boundary slots of state (in place).

        Args:
            state: Pipe state; the boundary pressure and/or flux is overwritten
            segment: Pipe parameters
            t: Time [s]
            side: 'inlet' or 'outlet'
        """
        pass

    @abstractmethod
    def rates(self, t: float, side: str):
        """
        Time derivatives of the pinned boundary slots.

        Returns:
            (dp_b/dt, dqm_b/dt); None marks a slot left to the pipe equations
        """
        pass

    @abstractmethod
    def port_value(self, t: float, side: str) -> float:
        """Imposed port pressure [Pa] or signed port flow [kg/s] at time t."""
        pass


class PressureBC(BoundaryCondition):
    """
    Imposed port pressure, e.g. a reservoir or pressure source.

    The boundary flux stays a differential unknown governed by the boundary
    momentum equation.
    """

    def __init__(self, p: Schedule, dp_dt: Optional[Schedule] = None, dt_fd: float = 1e-6):
        """
        Args:
            p: Pressure [Pa], constant or function of time
            dp_dt: Pressure rate [Pa/s]; finite-differenced if omitted
            dt_fd: Step for the finite-difference rate [s]
        """
        self.p = p
        self.dp_dt = dp_dt
        self.dt_fd = dt_fd

    def apply(self, state: PipeState, segment: PipeSegment, t: float, side: str) -> None:
        _check_side(side)
        if side == INLET:
            state.p[0] = _evaluate(self.p, t)
        else:
            state.p[-1] = _evaluate(self.p, t)

    def rates(self, t: float, side: str):
        return _rate(self.p, self.dp_dt, t, self.dt_fd), None

    def port_value(self, t: float, side: str) -> float:
        return _evaluate(self.p, t)


class MassFlowBC(BoundaryCondition):
    """
    Imposed signed port flow, e.g. a compressor or consumer.

    The boundary flux becomes algebraic (qm[0] = inlet.qm, qm[-1] = -outlet.qm)
    and the boundary pressure is the value for which the boundary momentum
    equation reproduces the imposed flow rate.
    """
    prescribes_pressure = False

    def __init__(self, qm: Schedule, dqm_dt: Optional[Schedule] = None,
                 dt_fd: float = 1e-6, tol: float = 1e-6, maxiter: int = 50):
        """
        Args:
            qm: Port flow [kg/s], positive into the pipe; constant or function of time
            dqm_dt: Port flow rate [kg/s²]; finite-differenced if omitted
            dt_fd: Step for the finite-difference rate [s]
            tol: Absolute tolerance on the boundary pressure [Pa]
            maxiter: Newton iteration limit
        """
        self.qm = qm
        self.dqm_dt = dqm_dt
        self.dt_fd = dt_fd
        self.tol = tol
        self.maxiter = maxiter

    def _internal_flux(self, t: float, side: str) -> float:
        q = _evaluate(self.qm, t)
        return q if side == INLET else -q

    def apply(self, state: PipeState, segment: PipeSegment, t: float, side: str) -> None:
        _check_side(side)
        q_internal = self._internal_flux(t, side)
        rate = _rate(self.qm, self.dqm_dt, t, self.dt_fd)
        rate_internal = rate if side == INLET else -rate

        if side == INLET:
            state.qm[0] = q_internal
            p_adj = state.p[1]
        else:
            state.qm[-1] = q_internal
            p_adj = state.p[-2]

        p_b = solve_boundary_pressure(side, state, segment, rate_internal,
                                      p_guess=p_adj, tol=self.tol, maxiter=self.maxiter)
        if side == INLET:
            state.p[0] = p_b
        else:
            state.p[-1] = p_b

    def rates(self, t: float, side: str):
        rate = _rate(self.qm, self.dqm_dt, t, self.dt_fd)
        return None, (rate if side == INLET else -rate)

    def port_value(self, t: float, side: str) -> float:
        return _evaluate(self.qm, t)


class ClosedEndBC(MassFlowBC):
    """Closed valve or dead end: zero port flow."""

    def __init__(self):
        super().__init__(qm=0.0, dqm_dt=0.0)


def solve_boundary_pressure(side: str, state: PipeState, segment: PipeSegment,
                            target_rate: float, p_guess: float,
                            tol: float = 1e-6, maxiter: int = 50) -> float:
    """
    Find the boundary pressure p_b with boundary_acceleration(p_b) = target_rate.

    Raises:
        BoundarySolveError: if Newton fails or returns a non-physical pressure
    """
    def residual(p_b):
        return boundary_acceleration(side, p_b, state, segment) - target_rate

    def slope(p_b):
        return boundary_acceleration_slope(side, p_b, state, segment)

    try:
        p_b = optimize.newton(residual, x0=float(p_guess), fprime=slope,
                              tol=tol, maxiter=maxiter)
    except (RuntimeError, ZeroDivisionError, FloatingPointError) as exc:
        raise BoundarySolveError(f"{side} boundary pressure did not converge: {exc}") from exc

    if not np.isfinite(p_b) or p_b <= 0:
        raise BoundarySolveError(f"{side} boundary pressure is not physical: {p_b}")
    return float(p_b)
