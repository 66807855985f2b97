"""
Assembly of several pipes joined at shared nodes.

Each pipe owns one contiguous slice of the global unknown vector. Nodes are
reconciled explicitly on every evaluation:

- a node with a PressureBC pins the pressure of every attached pipe end;
- any other node (junction, dead end, imposed flow) gets the pressure for
  which the signed port flows keep summing to the imposed external flow,
      sum_k s_k * dqm_k/dt = dq_ext/dt,
  with s_k = +1 for a pipe inlet and -1 for a pipe outlet.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from scipy import optimize
from typing import Dict, List, Optional, Tuple

from .boundary import BoundaryCondition
from .discretization import INLET, OUTLET, boundary_acceleration, boundary_acceleration_slope, compute_rhs
from .errors import BoundarySolveError, ConfigurationError
from .initial import InitialProfile
from .segment import PipeSegment
from .state import PipeState, unknown_names, vector_size

logger = logging.getLogger(__name__)


@dataclass
class Node:
    """
    Network node.

    bc is None for an internal junction or a dead end. A PressureBC pins the
    node pressure; a MassFlowBC injects flow (positive into the network).
    """
    uid: str
    bc: Optional[BoundaryCondition] = None


@dataclass
class NetworkPipe:
    """A pipe segment connecting node_from (inlet) to node_to (outlet)."""
    uid: str
    segment: PipeSegment
    node_from: str
    node_to: str
    initial: Optional[InitialProfile] = None

    offset: int = field(default=0, init=False)
    size: int = field(default=0, init=False)

    def view(self, y: np.ndarray) -> PipeState:
        s = self.segment
        return PipeState.from_array(y[self.offset:self.offset + self.size], s.n_pressure, s.n_flux)


class PipeNetwork:
    """
    Network of pipes with explicit node reconciliation.

    Example:
        net = PipeNetwork()
        net.add_node("source", PressureBC(6e5))
        net.add_node("j1")
        net.add_node("sink", PressureBC(5e5))
        net.add_pipe("a", segment, "source", "j1")
        net.add_pipe("b", segment, "j1", "sink")
        net.build()
        dydt = net.rhs(0.0, net.y0)
    """

    def __init__(self, tol: float = 1e-6, maxiter: int = 50, imbalance_tol: float = 1e-8):
        """
        Args:
            tol: Absolute tolerance on node pressures [Pa]
            maxiter: Newton iteration limit for node pressures
            imbalance_tol: Allowed initial flow imbalance at a node [kg/s]
        """
        self.nodes: Dict[str, Node] = {}
        self.pipes: Dict[str, NetworkPipe] = {}
        self.tol = tol
        self.maxiter = maxiter
        self.imbalance_tol = imbalance_tol

        self.size = 0
        self.names: List[str] = []
        self._ends: Dict[str, List[Tuple[NetworkPipe, str]]] = {}
        self._y0: Optional[np.ndarray] = None
        self.t0 = 0.0

    # --- Construction ---

    def add_node(self, uid: str, bc: Optional[BoundaryCondition] = None) -> Node:
        if uid in self.nodes:
            raise ConfigurationError(f"Duplicate node uid={uid!r}")
        node = Node(uid=uid, bc=bc)
        self.nodes[uid] = node
        self._y0 = None
        return node

    def add_pipe(self, uid: str, segment: PipeSegment, node_from: str, node_to: str,
                 initial: Optional[InitialProfile] = None) -> NetworkPipe:
        if uid in self.pipes:
            raise ConfigurationError(f"Duplicate pipe uid={uid!r}")
        pipe = NetworkPipe(uid=uid, segment=segment, node_from=node_from,
                           node_to=node_to, initial=initial)
        self.pipes[uid] = pipe
        self._y0 = None
        return pipe

    def build(self, t0: float = 0.0) -> 'PipeNetwork':
        """
        Validate topology, lay out the unknown vector and build y0.

        Raises:
            ConfigurationError: on unknown node references, isolated nodes,
                missing initial profiles or an inconsistent initial flow balance
        """
        if not self.pipes:
            raise ConfigurationError("Network has zero pipes")

        self._ends = {uid: [] for uid in self.nodes}
        for pipe in self.pipes.values():
            for node_uid, side in ((pipe.node_from, INLET), (pipe.node_to, OUTLET)):
                if node_uid not in self.nodes:
                    raise ConfigurationError(
                        f"Pipe(uid={pipe.uid}) references unknown node uid={node_uid!r}")
                self._ends[node_uid].append((pipe, side))
            if pipe.node_from == pipe.node_to:
                raise ConfigurationError(f"Pipe(uid={pipe.uid}) starts and ends at the same node")

        for uid, ends in self._ends.items():
            if not ends:
                raise ConfigurationError(f"Node(uid={uid}) has no attached pipes")

        offset = 0
        self.names = []
        for pipe in self.pipes.values():
            s = pipe.segment
            pipe.offset = offset
            pipe.size = vector_size(s.n_pressure, s.n_flux)
            offset += pipe.size
            self.names += [f"{pipe.uid}.{name}" for name in unknown_names(s.n_pressure, s.n_flux)]
        self.size = offset

        y = np.zeros(self.size)
        default = self._default_profile(t0)
        for pipe in self.pipes.values():
            profile = pipe.initial if pipe.initial is not None else default
            y[pipe.offset:pipe.offset + pipe.size] = profile.build(pipe.segment).to_array()

        self._pin_flows(y, t0)
        imbalance = self.junction_imbalance(t0, y)
        bad = {uid: v for uid, v in imbalance.items() if abs(v) > self.imbalance_tol}
        if bad:
            raise ConfigurationError(f"Initial flows do not balance at nodes: {bad}")

        self.t0 = t0
        self._y0 = self._resolve_vector(t0, y)
        logger.info("Built network: %d nodes, %d pipes, %d unknowns",
                    len(self.nodes), len(self.pipes), self.size)
        return self

    def _default_profile(self, t0: float) -> Optional[InitialProfile]:
        pressures = [node.bc.port_value(t0, INLET) for node in self.nodes.values()
                     if node.bc is not None and node.bc.prescribes_pressure]
        if not pressures:
            missing = [p.uid for p in self.pipes.values() if p.initial is None]
            if missing:
                raise ConfigurationError(
                    f"Pipes {missing} need an initial profile: no node prescribes pressure")
            return None
        return InitialProfile.uniform(max(pressures))

    # --- Layout ---

    @property
    def y0(self) -> np.ndarray:
        if self._y0 is None:
            self.build(self.t0)
        return self._y0.copy()

    def views(self, y: np.ndarray) -> Dict[str, PipeState]:
        """PipeState views into y, keyed by pipe uid."""
        return {uid: pipe.view(y) for uid, pipe in self.pipes.items()}

    # --- Node reconciliation ---

    @staticmethod
    def _external_flow(node: Node, t: float) -> Tuple[float, float]:
        if node.bc is None:
            return 0.0, 0.0
        _, rate = node.bc.rates(t, INLET)
        return node.bc.port_value(t, INLET), rate

    def _pin_flows(self, y: np.ndarray, t: float) -> None:
        """Set the boundary flux of every single-pipe node without an imposed pressure."""
        for uid, node in self.nodes.items():
            ends = self._ends[uid]
            if len(ends) != 1 or (node.bc is not None and node.bc.prescribes_pressure):
                continue
            q_ext, _ = self._external_flow(node, t)
            pipe, side = ends[0]
            state = pipe.view(y)
            if side == INLET:
                state.qm[0] = q_ext
            else:
                state.qm[-1] = -q_ext

    def _solve_node_pressure(self, node: Node, ends, target_rate: float) -> float:
        def residual(p_node):
            return sum((1.0 if side == INLET else -1.0) *
                       boundary_acceleration(side, p_node, state, pipe.segment)
                       for pipe, side, state in ends) - target_rate

        def slope(p_node):
            return sum((1.0 if side == INLET else -1.0) *
                       boundary_acceleration_slope(side, p_node, state, pipe.segment)
                       for pipe, side, state in ends)

        p_guess = np.mean([state.p[1] if side == INLET else state.p[-2]
                           for _, side, state in ends])
        try:
            p_node = optimize.newton(residual, x0=float(p_guess), fprime=slope,
                                     tol=self.tol, maxiter=self.maxiter)
        except (RuntimeError, ZeroDivisionError, FloatingPointError) as exc:
            raise BoundarySolveError(f"Node(uid={node.uid}) pressure did not converge: {exc}") from exc

        if not np.isfinite(p_node) or p_node <= 0:
            raise BoundarySolveError(f"Node(uid={node.uid}) pressure is not physical: {p_node}")
        return float(p_node)

    def _resolve_vector(self, t: float, y: np.ndarray) -> np.ndarray:
        """Copy of y with every node reconciled at time t."""
        y = np.array(y, dtype=float, copy=True)
        self._pin_flows(y, t)
        states = self.views(y)

        for uid, node in self.nodes.items():
            ends = [(pipe, side, states[pipe.uid]) for pipe, side in self._ends[uid]]
            if node.bc is not None and node.bc.prescribes_pressure:
                p_node = node.bc.port_value(t, INLET)
            else:
                _, rate_ext = self._external_flow(node, t)
                p_node = self._solve_node_pressure(node, ends, rate_ext)

            for _, side, state in ends:
                if side == INLET:
                    state.p[0] = p_node
                else:
                    state.p[-1] = p_node
        return y

    def resolve(self, t: float, y: np.ndarray) -> Dict[str, PipeState]:
        """Reconciled PipeState copies keyed by pipe uid."""
        return self.views(self._resolve_vector(t, y))

    # --- Evaluation ---

    def rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        """Right-hand side of the assembled network, dy/dt = F(t, y)."""
        y = self._resolve_vector(t, y)
        dydt = np.zeros(self.size)

        for pipe in self.pipes.values():
            dp, dq = compute_rhs(pipe.view(y), pipe.segment)
            out = pipe.view(dydt)
            out.p[:] = dp
            out.qm[:] = dq

        for uid, node in self.nodes.items():
            ends = self._ends[uid]
            if node.bc is not None and node.bc.prescribes_pressure:
                dp_b, _ = node.bc.rates(t, INLET)
                for pipe, side in ends:
                    out = pipe.view(dydt)
                    if side == INLET:
                        out.p[0] = dp_b
                    else:
                        out.p[-1] = dp_b
            elif len(ends) == 1:
                _, rate_ext = self._external_flow(node, t)
                pipe, side = ends[0]
                out = pipe.view(dydt)
                if side == INLET:
                    out.qm[0] = rate_ext
                else:
                    out.qm[-1] = -rate_ext

        return dydt

    def junction_imbalance(self, t: float, y: np.ndarray) -> Dict[str, float]:
        """
        Signed port-flow balance per node without an imposed pressure.

        Returns:
            node uid -> sum of port flows into the attached pipes minus the
            imposed external inflow (0 for a reconciled state)
        """
        out = {}
        for uid, node in self.nodes.items():
            if node.bc is not None and node.bc.prescribes_pressure:
                continue
            q_ext, _ = self._external_flow(node, t)
            total = 0.0
            for pipe, side in self._ends[uid]:
                state = pipe.view(np.asarray(y, dtype=float))
                total += state.qm[0] if side == INLET else -state.qm[-1]
            out[uid] = float(total - q_ext)
        return out

    def node_pressures(self, t: float, y: np.ndarray) -> Dict[str, float]:
        """Reconciled pressure at every node [Pa]."""
        states = self.resolve(t, y)
        out = {}
        for uid in self.nodes:
            pipe, side = self._ends[uid][0]
            state = states[pipe.uid]
            out[uid] = float(state.p[0] if side == INLET else state.p[-1])
        return out
