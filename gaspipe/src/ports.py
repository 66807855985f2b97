"""
Flow ports and the coupling between a pipe's boundary unknowns and its ports.

Sign convention:
    port.qm > 0 means gas enters the component the port is attached to.
    The pipe's internal flux is positive downstream, so
        qm[0]  =  inlet.qm
        qm[-1] = -outlet.qm
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from .gas import GasProperties
from .state import PipeState


@dataclass
class FlowPort:
    """
    Compressible-flow connection point shared with a neighbouring component.

    rho and mu are only meaningful in the compressible variant, where they
    are free unknowns tied to p and T by the port's own equations.
    """
    p: float = 1.0e5                # Pressure [Pa]
    T: float = 293.15               # Temperature [K]
    qm: float = 0.0                 # Signed mass flow [kg/s], positive into the component
    rho: Optional[float] = None     # Density [kg/m³]
    mu: Optional[float] = None      # Dynamic viscosity [Pa·s]


def port_flows(state: PipeState) -> Tuple[float, float]:
    """
    Port flows implied by the pipe's boundary fluxes.

    Returns:
        (inlet.qm, outlet.qm) with the port sign convention
    """
    return float(state.qm[0]), -float(state.qm[-1])


def binding_residuals(state: PipeState, inlet: FlowPort, outlet: FlowPort) -> np.ndarray:
    """
    Algebraic equations binding the boundary unknowns to the ports.

    Returns:
        [p[0] - inlet.p, p[n] - outlet.p, qm[0] - inlet.qm, qm[-1] + outlet.qm]
    """
    return np.array([
        state.p[0] - inlet.p,
        state.p[-1] - outlet.p,
        state.qm[0] - inlet.qm,
        state.qm[-1] + outlet.qm,
    ])


def port_state_residuals(state: PipeState, T: float, gas: GasProperties) -> np.ndarray:
    """
    Port equations of the compressible variant.

    Returns:
        [p_in - rho_in*R*T, p_out - rho_out*R*T, mu_in - mu(T), mu_out - mu(T)]
    """
    p_ports = np.array([state.p[0], state.p[-1]])
    return np.concatenate([
        gas.state_residual(p_ports, state.rho, T),
        state.mu - gas.viscosity(T),
    ])


def write_ports(state: PipeState, inlet: FlowPort, outlet: FlowPort, T: float,
                gas: Optional[GasProperties] = None, compressible: bool = False) -> None:
    """
    Write the pipe's boundary pressures and signed flows into the shared ports.

    In the compressible variant the port density and viscosity follow from
    the equation of state.
    """
    inlet.qm, outlet.qm = port_flows(state)
    inlet.p = float(state.p[0])
    outlet.p = float(state.p[-1])
    inlet.T = outlet.T = T

    if compressible:
        gas = gas if gas is not None else GasProperties()
        if state.rho is not None:
            inlet.rho, outlet.rho = (float(v) for v in state.rho)
            inlet.mu, outlet.mu = (float(v) for v in state.mu)
        else:
            inlet.rho = gas.density(inlet.p, T)
            outlet.rho = gas.density(outlet.p, T)
            inlet.mu = outlet.mu = gas.viscosity(T)
