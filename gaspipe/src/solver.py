"""
Reference driver handing a pipe model to scipy's ODE integrators.

The discretization does not depend on this module; any integrator that
consumes (y0, rhs(t, y)) or (y0, residual(t, y, ydot)) can replace it.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from scipy.integrate import solve_ivp
from typing import Any, Dict, List, Optional

from .errors import IntegrationError, PhysicalStateError
from .ports import port_flows
from .state import check_state

logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """Configuration for the reference driver."""
    method: str = 'Radau'           # Any solve_ivp method; steady runs need an L-stable one
    rtol: float = 1e-8
    atol: float = 1e-6
    max_step: float = np.inf
    steady_tol: float = 1e-6        # Normalized RHS norm treated as steady
    check_interval: float = 5.0     # Integration chunk between steady-state checks [s]
    check_physical: bool = True     # Raise on non-positive or non-finite pressure
    verbose: bool = False
    print_interval: int = 1         # Steady-state checks between progress lines


@dataclass
class SimulationResult:
    """Trajectory returned by Simulation.solve."""
    t: np.ndarray                   # Output times (nt,)
    y: np.ndarray                   # Raw unknown vectors (nt, size)
    states: List[Any]               # Resolved states (PipeState, or dict of them for networks)
    converged: bool = False
    residual: Optional[float] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def final_state(self):
        return self.states[-1]

    @property
    def p(self) -> np.ndarray:
        """Face pressures over time (nt, n + 1); single-pipe models only."""
        return np.array([s.p for s in self.states])

    @property
    def qm(self) -> np.ndarray:
        """Mass fluxes over time (nt, n_flux); single-pipe models only."""
        return np.array([s.qm for s in self.states])

    @property
    def port_flows(self) -> np.ndarray:
        """(inlet.qm, outlet.qm) over time (nt, 2); single-pipe models only."""
        return np.array([port_flows(s) for s in self.states])


class Simulation:
    """
    Integrates a PipeModel or PipeNetwork with scipy.integrate.solve_ivp.

    The model must provide y0, rhs(t, y) and resolve(t, y).
    """

    def __init__(self, model, config: SolverConfig = None):
        """
        Args:
            model: PipeModel or PipeNetwork
            config: Driver configuration
        """
        self.model = model
        self.config = config if config is not None else SolverConfig()
        self.y = model.y0
        self.time = getattr(model, 't0', 0.0)
        self.residual_history: List[float] = []

    def _check(self, t: float, y: np.ndarray) -> None:
        resolved = self.model.resolve(t, y)
        states = resolved.values() if isinstance(resolved, dict) else [resolved]
        for state in states:
            check_state(state)

    def _integrate(self, t_end: float, t_eval: Optional[np.ndarray] = None):
        cfg = self.config
        sol = solve_ivp(self.model.rhs, (self.time, t_end), self.y, method=cfg.method,
                        t_eval=t_eval, rtol=cfg.rtol, atol=cfg.atol, max_step=cfg.max_step)
        if not sol.success:
            raise IntegrationError(f"Integration failed at t = {self.time:.6g} s: {sol.message}")
        if not np.all(np.isfinite(sol.y)):
            raise PhysicalStateError(f"Non-finite state between t = {self.time:.6g} and {t_end:.6g} s")

        self.y = sol.y[:, -1].copy()
        self.time = float(sol.t[-1])
        if cfg.check_physical:
            self._check(self.time, self.y)
        return sol

    def compute_residual(self) -> float:
        """Normalized RHS norm of the current state (steady-state measure)."""
        dydt = self.model.rhs(self.time, self.y)
        scale = np.maximum(np.abs(self.y), 1.0)
        return float(np.sqrt(np.mean((dydt / scale)**2)))

    def solve(self, t_end: float, n_out: int = 101) -> SimulationResult:
        """
        Integrate from the current time to t_end.

        Args:
            t_end: Final time [s]
            n_out: Number of output samples

        Returns:
            SimulationResult with resolved states at the output times
        """
        if t_end <= self.time:
            raise ValueError(f"t_end = {t_end} must be greater than the current time {self.time}")

        if self.config.verbose:
            print("Starting pipe simulation")
            print("=" * 50)
            print(f"Unknowns: {len(self.y)}, method: {self.config.method}")
            print(f"t = {self.time:.4g} -> {t_end:.4g} s")
            print("=" * 50)

        t_eval = np.linspace(self.time, t_end, n_out)
        sol = self._integrate(t_end, t_eval=t_eval)
        residual = self.compute_residual()
        self.residual_history.append(residual)
        logger.info("Integrated to t = %.6g s, residual = %.3e", self.time, residual)

        states = [self.model.resolve(t, y) for t, y in zip(sol.t, sol.y.T)]
        return SimulationResult(
            t=sol.t, y=sol.y.T.copy(), states=states,
            converged=residual < self.config.steady_tol, residual=residual,
            meta={'nfev': sol.nfev, 'method': self.config.method},
        )

    def run_to_steady_state(self, max_time: float = 1000.0) -> SimulationResult:
        """
        Integrate in chunks of check_interval until the residual falls below
        steady_tol or max_time is reached.
        """
        if max_time <= 0:
            raise ValueError(f"max_time must be > 0, got {max_time}")

        cfg = self.config
        t_start = self.time
        converged = False
        times, ys = [self.time], [self.y.copy()]

        while self.time < t_start + max_time:
            t_next = min(self.time + cfg.check_interval, t_start + max_time)
            self._integrate(t_next)
            times.append(self.time)
            ys.append(self.y.copy())

            residual = self.compute_residual()
            self.residual_history.append(residual)
            if cfg.verbose and len(self.residual_history) % cfg.print_interval == 0:
                print(f"t = {self.time:10.4f} s, res = {residual:.4e}")

            if residual < cfg.steady_tol:
                converged = True
                logger.info("Steady state reached at t = %.6g s", self.time)
                break
        else:
            logger.warning("No steady state within %.6g s, residual = %.3e",
                           max_time, self.residual_history[-1])

        states = [self.model.resolve(t, y) for t, y in zip(times, ys)]
        return SimulationResult(
            t=np.array(times), y=np.array(ys), states=states,
            converged=converged, residual=self.residual_history[-1],
            meta={'method': cfg.method},
        )
