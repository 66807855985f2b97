"""
Finite-difference discretization of the isothermal pipe equations.

Continuity at interior pressure nodes i = 1..n-1:
    dp[i]/dt = c1 * (qm[i-1] - qm[i]) / dx

Momentum at flux node i (between faces i and i+1):
    dqm[i]/dt = (c1*qm²/pm² - A) * (p[i+1] - p[i]) / dx
                + c1*qm/pm * S[i]
                - c2*qm*|qm| / pm

with pm = 0.5*(p[i] + p[i+1]) and S the self-advection stencil
(central inside, one-sided three-point at both ends).
"""

import numpy as np
from typing import Tuple

from .segment import PipeSegment
from .state import PipeState
from .stencils import self_advection_stencil

INLET = 'inlet'
OUTLET = 'outlet'


def equation_layout(n: int) -> Tuple[Tuple[str, int], ...]:
    """
    Ordered list of the discretized equations for n control volumes.

    Each entry is (kind, index) where kind is 'continuity' (index is the
    pressure node), or 'momentum', 'momentum_inlet', 'momentum_outlet'
    (index is the flux node).
    """
    n_flux = n if n >= 2 else 2
    layout = [('continuity', i) for i in range(1, n)]
    layout.append(('momentum_inlet', 0))
    layout += [('momentum', i) for i in range(1, n_flux - 1)]
    layout.append(('momentum_outlet', n_flux - 1))
    return tuple(layout)


def momentum_terms(qm, p_left, p_right, S, segment: PipeSegment):
    """
    Momentum right-hand side for flux nodes with the given neighbouring
    face pressures. Works on scalars and arrays.
    """
    c1 = segment.c1
    pm = 0.5 * (p_left + p_right)
    convective = (c1 * qm**2 / pm**2 - segment.A) * (p_right - p_left) / segment.dx
    advective = c1 * qm / pm * S
    friction = segment.c2 * qm * np.abs(qm) / pm
    return convective + advective - friction


def continuity_rhs(state: PipeState, segment: PipeSegment) -> np.ndarray:
    """Pressure rates at interior faces (n - 1,)."""
    qm = state.qm
    if segment.n < 2:
        return np.zeros(0)
    return segment.c1 * (qm[:-1] - qm[1:]) / segment.dx


def momentum_rhs(state: PipeState, segment: PipeSegment) -> np.ndarray:
    """Mass-flux rates at every flux node (n_flux,)."""
    p = state.p
    S = self_advection_stencil(state.qm, segment.dx)
    if segment.n < 2:
        p_left = np.full(2, p[0])
        p_right = np.full(2, p[-1])
    else:
        p_left = p[:-1]
        p_right = p[1:]
    return momentum_terms(state.qm, p_left, p_right, S, segment)


def compute_rhs(state: PipeState, segment: PipeSegment) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute dp/dt and dqm/dt.

    Boundary pressures are inputs (bound to the ports), so their entries in
    dp/dt are left at zero for the caller to fill.

    Args:
        state: Current state with boundary values already applied
        segment: Pipe parameters

    Returns:
        dp: Pressure rates (n + 1,)
        dq: Flux rates (n_flux,)
    """
    dp = np.zeros(state.n_pressure)
    dp[1:-1] = continuity_rhs(state, segment)
    dq = momentum_rhs(state, segment)
    return dp, dq


def _boundary_cell(side: str, state: PipeState, segment: PipeSegment):
    """Flux, adjacent interior pressure and stencil value at a boundary cell."""
    S = self_advection_stencil(state.qm, segment.dx)
    if side == INLET:
        return state.qm[0], state.p[1], S[0]
    if side == OUTLET:
        return state.qm[-1], state.p[-2], S[-1]
    raise ValueError(f"Unknown side: {side!r}. Options: 'inlet', 'outlet'")


def boundary_acceleration(side: str, p_b: float, state: PipeState,
                          segment: PipeSegment) -> float:
    """
    Boundary momentum rate as a function of the boundary pressure p_b.

    All other unknowns are taken from state.
    """
    q, p_adj, S = _boundary_cell(side, state, segment)
    if side == INLET:
        return float(momentum_terms(q, p_b, p_adj, S, segment))
    return float(momentum_terms(q, p_adj, p_b, S, segment))


def boundary_acceleration_slope(side: str, p_b: float, state: PipeState,
                                segment: PipeSegment) -> float:
    """Derivative of boundary_acceleration with respect to p_b."""
    q, p_adj, S = _boundary_cell(side, state, segment)
    c1, dx = segment.c1, segment.dx
    pm = 0.5 * (p_b + p_adj)

    # d(pm)/d(p_b) = 1/2
    if side == INLET:
        gradient, d_gradient = (p_adj - p_b) / dx, -1.0 / dx
    else:
        gradient, d_gradient = (p_b - p_adj) / dx, 1.0 / dx

    d_convective = (-c1 * q**2 / pm**3) * gradient + (c1 * q**2 / pm**2 - segment.A) * d_gradient
    d_advective = -0.5 * c1 * q * S / pm**2
    d_friction = 0.5 * segment.c2 * q * abs(q) / pm**2
    return float(d_convective + d_advective + d_friction)
