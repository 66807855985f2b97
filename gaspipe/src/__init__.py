"""
Isothermal Gas Pipe Discretization Package
==========================================

Finite-difference model of unsteady, isothermal, compressible gas flow in a
pipe, exposed as a flat-vector ODE/DAE system for external integrators.

Features:
- Staggered grid: pressure at faces, mass flux at cell centres
- Second-order self-advection stencils, one-sided at the pipe ends
- Port coupling with a fixed sign convention (positive into the component)
- Pressure, mass-flow and closed-end boundary conditions
- Optional compressible ports (density and viscosity as unknowns)
- Multi-pipe networks with explicit junction reconciliation
- Reference driver on scipy.integrate.solve_ivp

State representation:
    p   - pressure at faces [Pa]
    qm  - mass flux at flux nodes [kg/s], positive downstream

Example:
    segment = PipeSegment(n=10, L=100.0, D=0.2, f=0.016, T=300.0)
    model = PipeModel(segment, PressureBC(6e5), PressureBC(5e5))

    y0 = model.y0
    dydt = model.rhs(0.0, y0)
    F = model.residual(0.0, y0, dydt)       # ~0 for a consistent state

    result = Simulation(model).run_to_steady_state(max_time=60.0)
    print(result.port_flows[-1])
"""

from .errors import (
    GasPipeError, ConfigurationError, PhysicalStateError, BoundarySolveError, IntegrationError
)
from .gas import GasProperties
from .segment import PipeSegment
from .mesh import PipeGrid
from .state import PipeState, check_state
from .discretization import compute_rhs, equation_layout
from .ports import FlowPort, binding_residuals, port_flows
from .boundary import BoundaryCondition, PressureBC, MassFlowBC, ClosedEndBC
from .initial import InitialProfile, steady_state_flow, steady_state_pressure
from .model import PipeModel
from .network import PipeNetwork
from .solver import Simulation, SimulationResult, SolverConfig
from .config import PipeConfig
from .utils import AdvancedJSONEncoder

__all__ = [
    # Errors
    'GasPipeError',
    'ConfigurationError',
    'PhysicalStateError',
    'BoundarySolveError',
    'IntegrationError',

    # Gas and pipe parameters
    'GasProperties',
    'PipeSegment',
    'PipeGrid',

    # State
    'PipeState',
    'check_state',

    # Discretization
    'compute_rhs',
    'equation_layout',

    # Ports
    'FlowPort',
    'binding_residuals',
    'port_flows',

    # Boundary conditions
    'BoundaryCondition',
    'PressureBC',
    'MassFlowBC',
    'ClosedEndBC',

    # Initial profiles
    'InitialProfile',
    'steady_state_flow',
    'steady_state_pressure',

    # Assembly
    'PipeModel',
    'PipeNetwork',

    # Driver
    'Simulation',
    'SimulationResult',
    'SolverConfig',

    # Configuration
    'PipeConfig',
    'AdvancedJSONEncoder',
]

__version__ = '1.0.0'
