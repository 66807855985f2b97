"""
Pipe state representation and flat-vector layout.

State is defined by:
    p    - pressure at the n + 1 faces [Pa]
    qm   - mass flux at the flux nodes [kg/s], positive downstream
    rho  - port densities (inlet, outlet) [kg/m³], compressible variant only
    mu   - port viscosities (inlet, outlet) [Pa·s], compressible variant only

Flat vector: [p_0 .. p_n, qm_0 .. qm_{m-1}, rho_in, rho_out, mu_in, mu_out]
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional

from .errors import ConfigurationError, PhysicalStateError


def vector_size(n_pressure: int, n_flux: int, compressible: bool = False) -> int:
    """Length of the flat unknown vector."""
    return n_pressure + n_flux + (4 if compressible else 0)


def unknown_names(n_pressure: int, n_flux: int, compressible: bool = False) -> List[str]:
    """Ordered names of the unknowns, matching the flat vector."""
    names = [f"p[{i}]" for i in range(n_pressure)]
    names += [f"qm[{i}]" for i in range(n_flux)]
    if compressible:
        names += ["rho_in", "rho_out", "mu_in", "mu_out"]
    return names


@dataclass
class PipeState:
    """
    Snapshot of one pipe's unknowns.

    Arrays are views into the flat vector when created with from_array, so
    writing into them writes into the vector.
    """
    p: np.ndarray                       # Face pressures [Pa], shape (n + 1,)
    qm: np.ndarray                      # Mass fluxes [kg/s], shape (n_flux,)
    rho: Optional[np.ndarray] = None    # Port densities (inlet, outlet)
    mu: Optional[np.ndarray] = None     # Port viscosities (inlet, outlet)

    @property
    def compressible(self) -> bool:
        return self.rho is not None

    @property
    def n_pressure(self) -> int:
        return len(self.p)

    @property
    def n_flux(self) -> int:
        return len(self.qm)

    def interior_mass(self, dx: float, c1: float) -> float:
        """
        Gas mass held by the interior pressure nodes.

        Each interior node owns one control volume A*dx, so the mass is
        sum(p) * dx / c1.
        """
        return float(np.sum(self.p[1:-1]) * dx / c1)

    # --- Array conversion methods ---

    def to_array(self) -> np.ndarray:
        """Flatten into a newly allocated unknown vector."""
        parts = [self.p, self.qm]
        if self.compressible:
            parts += [self.rho, self.mu]
        return np.concatenate([np.asarray(part, dtype=float) for part in parts])

    @classmethod
    def from_array(cls, y: np.ndarray, n_pressure: int, n_flux: int,
                   compressible: bool = False) -> 'PipeState':
        """
        Create a PipeState viewing a flat unknown vector.

        Args:
            y: Flat vector of length vector_size(n_pressure, n_flux, compressible)
            n_pressure: Number of face pressures
            n_flux: Number of flux nodes
            compressible: Whether port density and viscosity are unknowns
        """
        expected = vector_size(n_pressure, n_flux, compressible)
        if len(y) != expected:
            raise ConfigurationError(f"State vector has length {len(y)}, expected {expected}")

        p = y[:n_pressure]
        qm = y[n_pressure:n_pressure + n_flux]
        rho = mu = None
        if compressible:
            k = n_pressure + n_flux
            rho = y[k:k + 2]
            mu = y[k + 2:k + 4]

        return cls(p=p, qm=qm, rho=rho, mu=mu)

    def copy(self) -> 'PipeState':
        return PipeState(
            p=self.p.copy(),
            qm=self.qm.copy(),
            rho=None if self.rho is None else self.rho.copy(),
            mu=None if self.mu is None else self.mu.copy(),
        )


def check_state(state: PipeState) -> None:
    """
    Raise PhysicalStateError if any pressure is non-positive or non-finite.

    The right-hand side does not call this; it is the precondition the
    integration layer must uphold.
    """
    if not np.all(np.isfinite(state.p)) or not np.all(np.isfinite(state.qm)):
        bad = np.where(~np.isfinite(state.p))[0][:10]
        raise PhysicalStateError(f"Non-finite state, bad pressure nodes: {bad.tolist()}")
    if np.any(state.p <= 0):
        i = int(np.argmin(state.p))
        raise PhysicalStateError(f"Non-positive pressure p[{i}] = {state.p[i]:.6g} Pa")
