"""
Finite-difference stencils for the flux self-advection term.

The momentum balance needs -2 * d(qm)/dx at every flux node. The interior
uses a central difference; the two end nodes use one-sided three-point
differences, which keep second-order accuracy where no exterior node exists.
"""

import numpy as np


def central_derivative(q: np.ndarray, dx: float) -> np.ndarray:
    """
    Second-order central derivative at interior nodes.

    Returns:
        dq/dx at nodes 1..len(q)-2
    """
    return (q[2:] - q[:-2]) / (2.0 * dx)


def forward_derivative(q: np.ndarray, dx: float) -> float:
    """Second-order one-sided derivative at the first node."""
    return (-3.0 * q[0] + 4.0 * q[1] - q[2]) / (2.0 * dx)


def backward_derivative(q: np.ndarray, dx: float) -> float:
    """Second-order one-sided derivative at the last node."""
    return (3.0 * q[-1] - 4.0 * q[-2] + q[-3]) / (2.0 * dx)


def self_advection_stencil(qm: np.ndarray, dx: float) -> np.ndarray:
    """
    Discrete -2 * d(qm)/dx at every flux node.

    With three or more nodes:
        inlet:    (3*qm[0] - 4*qm[1] + qm[2]) / dx
        interior: (qm[i-1] - qm[i+1]) / dx
        outlet:   (-3*qm[-1] + 4*qm[-2] - qm[-3]) / dx

    With two nodes both ends fall back to 2*(qm[0] - qm[1]) / dx.

    Args:
        qm: Mass flux at flux nodes (n_flux,)
        dx: Node spacing

    Returns:
        S: Self-advection difference (n_flux,)
    """
    n_flux = len(qm)
    S = np.empty(n_flux)

    if n_flux < 3:
        S[:] = 2.0 * (qm[0] - qm[-1]) / dx
        return S

    S[1:-1] = (qm[:-2] - qm[2:]) / dx
    S[0] = (3.0 * qm[0] - 4.0 * qm[1] + qm[2]) / dx
    S[-1] = (-3.0 * qm[-1] + 4.0 * qm[-2] - qm[-3]) / dx

    return S
