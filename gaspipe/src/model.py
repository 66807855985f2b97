"""
Residual assembly for one discretized pipe.

PipeModel is the only object an external integrator needs:

    model = PipeModel(segment, PressureBC(6e5), PressureBC(5e5))
    y0 = model.y0
    dydt = model.rhs(t, y)                 # explicit ODE form
    F = model.residual(t, y, ydot)         # implicit DAE form

The boundary slots of the vector play the role of ghost values: every
evaluation overwrites them from the boundary conditions before the interior
equations are evaluated.
"""

import numpy as np
from typing import List, Optional, Tuple

from .boundary import BoundaryCondition
from .discretization import INLET, OUTLET, compute_rhs, equation_layout, momentum_rhs
from .errors import ConfigurationError
from .gas import GasProperties
from .initial import InitialProfile
from .mesh import PipeGrid
from .ports import FlowPort, binding_residuals, port_flows, port_state_residuals, write_ports
from .segment import PipeSegment
from .state import PipeState, unknown_names, vector_size


class PipeModel:
    """
    Discretized pipe bound to two boundary conditions.

    The compressible variant adds port density and viscosity as unknowns,
    tied to the boundary pressures by the equation of state.
    """

    def __init__(self, segment: PipeSegment, inlet_bc: BoundaryCondition,
                 outlet_bc: BoundaryCondition, initial: Optional[InitialProfile] = None,
                 compressible: bool = False, t0: float = 0.0):
        """
        Initialize the model.

        Args:
            segment: Pipe parameters
            inlet_bc: Condition imposed on the inlet port
            outlet_bc: Condition imposed on the outlet port
            initial: Initial profile; derived from the boundary pressures if omitted
            compressible: Whether port density and viscosity are unknowns
            t0: Time at which the initial vector is made consistent
        """
        self.segment = segment
        self.gas: GasProperties = segment.gas
        self.grid = PipeGrid.for_segment(segment)
        self.inlet_bc = inlet_bc
        self.outlet_bc = outlet_bc
        self.compressible = compressible
        self.t0 = t0

        self.inlet = FlowPort(T=segment.T)
        self.outlet = FlowPort(T=segment.T)

        self.initial = initial if initial is not None else self._default_profile()

        self.n_pressure = segment.n_pressure
        self.n_flux = segment.n_flux
        self.size = vector_size(self.n_pressure, self.n_flux, compressible)
        self.names: List[str] = unknown_names(self.n_pressure, self.n_flux, compressible)
        self.equations = equation_layout(segment.n)

        self._y0 = self._initial_vector()

    def _default_profile(self) -> InitialProfile:
        pressures = [bc.port_value(self.t0, side)
                     for bc, side in ((self.inlet_bc, INLET), (self.outlet_bc, OUTLET))
                     if bc.prescribes_pressure]
        if len(pressures) == 2:
            return InitialProfile.steady(*pressures)
        if len(pressures) == 1:
            return InitialProfile.uniform(pressures[0])
        raise ConfigurationError(
            "An initial profile is required when neither end prescribes pressure")

    def _initial_vector(self) -> np.ndarray:
        state = self.initial.build(self.segment)
        if self.compressible:
            state.rho = np.zeros(2)
            state.mu = np.zeros(2)
        return self.resolve(self.t0, state.to_array()).to_array()

    # --- Layout ---

    @property
    def y0(self) -> np.ndarray:
        """Initial unknown vector, consistent with the boundary conditions."""
        return self._y0.copy()

    def split(self, y: np.ndarray) -> PipeState:
        """View a flat vector as a PipeState (no copy, no boundary update)."""
        return PipeState.from_array(y, self.n_pressure, self.n_flux, self.compressible)

    def boundary_slots(self) -> Tuple[int, int, int, int]:
        """Vector indices of (p_in, p_out, qm_in, qm_out)."""
        k = self.n_pressure
        return 0, k - 1, k, k + self.n_flux - 1

    # --- Evaluation ---

    def resolve(self, t: float, y: np.ndarray) -> PipeState:
        """
        Copy of the state with the boundary conditions applied at time t.

        Args:
            t: Time [s]
            y: Unknown vector

        Returns:
            PipeState with consistent boundary pressures, fluxes and port properties
        """
        y = np.array(y, dtype=float, copy=True)
        if len(y) != self.size:
            raise ConfigurationError(f"State vector has length {len(y)}, expected {self.size}")
        state = self.split(y)

        self.inlet_bc.apply(state, self.segment, t, INLET)
        self.outlet_bc.apply(state, self.segment, t, OUTLET)

        if self.compressible:
            T = self.segment.T
            state.rho[:] = self.gas.density(np.array([state.p[0], state.p[-1]]), T)
            state.mu[:] = self.gas.viscosity(T)

        return state

    def rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        """
        Explicit right-hand side dy/dt = F(t, y).

        Boundary slots carry the rate of the imposed value. Algebraic slots
        (the pressure behind an imposed flow, port density and viscosity)
        carry the rate implied by their constraint, or zero.
        """
        state = self.resolve(t, y)
        dp, dq = compute_rhs(state, self.segment)

        for bc, side, ip, iq in ((self.inlet_bc, INLET, 0, 0),
                                 (self.outlet_bc, OUTLET, -1, -1)):
            dp_b, dq_b = bc.rates(t, side)
            if dp_b is not None:
                dp[ip] = dp_b
            if dq_b is not None:
                dq[iq] = dq_b

        parts = [dp, dq]
        if self.compressible:
            drho = np.array([dp[0], dp[-1]]) / self.gas.rt(self.segment.T)
            parts += [drho, np.zeros(2)]
        return np.concatenate(parts)

    def imposed_ports(self, t: float) -> Tuple[FlowPort, FlowPort]:
        """Ports carrying the values imposed by the boundary conditions at time t."""
        ports = []
        for bc, side in ((self.inlet_bc, INLET), (self.outlet_bc, OUTLET)):
            port = FlowPort(T=self.segment.T)
            if bc.prescribes_pressure:
                port.p = bc.port_value(t, side)
            else:
                port.qm = bc.port_value(t, side)
            ports.append(port)
        return ports[0], ports[1]

    def residual(self, t: float, y: np.ndarray, ydot: np.ndarray) -> np.ndarray:
        """
        Implicit residual F(t, y, ydot) = 0.

        Rows are ordered like the unknowns:
            interior p rows   - continuity
            qm rows           - momentum
            boundary p/qm row - port binding (p = port.p or qm = +/-port.qm);
                                behind an imposed flow the momentum row of the
                                boundary flux moves to the pressure slot
            rho/mu rows       - port equation of state (compressible only)
        """
        y = np.asarray(y, dtype=float)
        ydot = np.asarray(ydot, dtype=float)
        state = self.split(y)
        rates = self.split(ydot)
        inlet, outlet = self.imposed_ports(t)

        F = np.zeros(self.size)
        Fs = self.split(F)

        dp, _ = compute_rhs(state, self.segment)
        Fs.p[1:-1] = rates.p[1:-1] - dp[1:-1]
        momentum = rates.qm - momentum_rhs(state, self.segment)
        Fs.qm[:] = momentum

        bind_p_in, bind_p_out, bind_q_in, bind_q_out = binding_residuals(state, inlet, outlet)

        if self.inlet_bc.prescribes_pressure:
            Fs.p[0] = bind_p_in
        else:
            Fs.p[0] = momentum[0]
            Fs.qm[0] = bind_q_in

        if self.outlet_bc.prescribes_pressure:
            Fs.p[-1] = bind_p_out
        else:
            Fs.p[-1] = momentum[-1]
            Fs.qm[-1] = bind_q_out

        if self.compressible:
            port_rows = port_state_residuals(state, self.segment.T, self.gas)
            Fs.rho[:] = port_rows[:2]
            Fs.mu[:] = port_rows[2:]

        return F

    # --- Port access ---

    def update_ports(self, t: float, y: np.ndarray) -> Tuple[FlowPort, FlowPort]:
        """Write the resolved boundary values into the shared inlet/outlet ports."""
        state = self.resolve(t, y)
        write_ports(state, self.inlet, self.outlet, self.segment.T,
                    gas=self.gas, compressible=self.compressible)
        return self.inlet, self.outlet

    def port_flows(self, t: float, y: np.ndarray) -> Tuple[float, float]:
        """(inlet.qm, outlet.qm) with the port sign convention."""
        return port_flows(self.resolve(t, y))

    def interior_mass(self, y: np.ndarray) -> float:
        """Gas mass held by the interior pressure nodes [kg]."""
        return self.split(np.asarray(y, dtype=float)).interior_mass(self.segment.dx, self.segment.c1)
