"""
gaspipe - Isothermal Gas Pipe Model
===================================

Re-exports all public components from gaspipe.src
"""

from gaspipe.src import (
    # Errors
    GasPipeError,
    ConfigurationError,
    PhysicalStateError,
    BoundarySolveError,
    IntegrationError,
    # Gas and pipe parameters
    GasProperties,
    PipeSegment,
    PipeGrid,
    # State
    PipeState,
    # Ports
    FlowPort,
    # Boundary conditions
    BoundaryCondition,
    PressureBC,
    MassFlowBC,
    ClosedEndBC,
    # Initial profiles
    InitialProfile,
    # Assembly
    PipeModel,
    PipeNetwork,
    # Driver
    Simulation,
    SimulationResult,
    SolverConfig,
    # Configuration
    PipeConfig,
    __version__,
)

__all__ = [
    'GasPipeError',
    'ConfigurationError',
    'PhysicalStateError',
    'BoundarySolveError',
    'IntegrationError',
    'GasProperties',
    'PipeSegment',
    'PipeGrid',
    'PipeState',
    'FlowPort',
    'BoundaryCondition',
    'PressureBC',
    'MassFlowBC',
    'ClosedEndBC',
    'InitialProfile',
    'PipeModel',
    'PipeNetwork',
    'Simulation',
    'SimulationResult',
    'SolverConfig',
    'PipeConfig',
]
