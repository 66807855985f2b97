"""
Test suite for the gas pipe model.

Run tests with pytest:
    pytest gaspipe/tests/ -v

Or run individual test files:
    pytest gaspipe/tests/test_steady_state.py -v
    pytest gaspipe/tests/test_network.py -v
"""

from .scenarios import (
    REFERENCE_PIPE, P_REF, make_segment, driver_config, kinetic_steady_flow,
    run_pipe, run_steady_pipe, closed_pipe_model, series_network, branched_network
)

__all__ = [
    'REFERENCE_PIPE',
    'P_REF',
    'make_segment',
    'driver_config',
    'kinetic_steady_flow',
    'run_pipe',
    'run_steady_pipe',
    'closed_pipe_model',
    'series_network',
    'branched_network',
]
