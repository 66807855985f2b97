"""
Initial pressure and flux profiles.
"""

import numpy as np
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from .errors import ConfigurationError
from .segment import PipeSegment
from .state import PipeState

ProfileMode = Literal["uniform", "linear", "steady", "explicit"]


def steady_state_flow(p_in: float, p_out: float, segment: PipeSegment) -> float:
    """
    Quasi-steady isothermal mass flow through the pipe.

        qm = sign(p_in² - p_out²) * sqrt(|p_in² - p_out²| / (f*L*R*T / (D*A²)))

    The kinetic (acceleration) term is neglected.
    """
    dp2 = p_in**2 - p_out**2
    return float(np.sign(dp2) * np.sqrt(abs(dp2) / segment.resistance))


def steady_state_pressure(p_in: float, p_out: float, x: np.ndarray, length: float) -> np.ndarray:
    """Quasi-steady pressure profile, p(x)² linear between p_in² and p_out²."""
    return np.sqrt(p_in**2 - (p_in**2 - p_out**2) * np.asarray(x) / length)


@dataclass(frozen=True)
class InitialProfile:
    """
    Initial pressure/flux profile.

    Modes:
        uniform  - p = p_in everywhere, qm = qm0
        linear   - p linear between p_in and p_out, qm = qm0
        steady   - quasi-steady profile and flux from p_in and p_out
        explicit - p (n + 1 values) and qm (n values) given directly
    """
    mode: ProfileMode = "linear"
    p_in: Optional[float] = None
    p_out: Optional[float] = None
    qm0: float = 0.0
    p: Optional[Sequence[float]] = None
    qm: Optional[Sequence[float]] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.mode not in ("uniform", "linear", "steady", "explicit"):
            raise ConfigurationError(f"Unknown initial profile mode: {self.mode!r}")

        if self.mode == "explicit":
            if self.p is None or self.qm is None:
                raise ConfigurationError("Explicit initial profile needs both p and qm arrays")
            return

        if self.p_in is None:
            raise ConfigurationError(f"Initial profile mode {self.mode!r} needs p_in")
        if self.mode in ("linear", "steady") and self.p_out is None:
            raise ConfigurationError(f"Initial profile mode {self.mode!r} needs p_out")

        for name in ("p_in", "p_out"):
            value = getattr(self, name)
            if value is not None and not value > 0:
                raise ConfigurationError(f"{name} must be > 0, got {value}")

    @classmethod
    def uniform(cls, p: float, qm: float = 0.0) -> 'InitialProfile':
        return cls(mode="uniform", p_in=p, qm0=qm)

    @classmethod
    def linear(cls, p_in: float, p_out: float, qm: float = 0.0) -> 'InitialProfile':
        return cls(mode="linear", p_in=p_in, p_out=p_out, qm0=qm)

    @classmethod
    def steady(cls, p_in: float, p_out: float) -> 'InitialProfile':
        return cls(mode="steady", p_in=p_in, p_out=p_out)

    @classmethod
    def explicit(cls, p: Sequence[float], qm: Sequence[float]) -> 'InitialProfile':
        return cls(mode="explicit", p=tuple(p), qm=tuple(qm))

    def build(self, segment: PipeSegment) -> PipeState:
        """
        Evaluate the profile on the segment's grid.

        Raises:
            ConfigurationError: on array length mismatch or non-positive pressure
        """
        n, n_flux = segment.n, segment.n_flux
        x = np.linspace(0.0, segment.L, n + 1)

        if self.mode == "uniform":
            p = np.full(n + 1, float(self.p_in))
            qm = np.full(n_flux, float(self.qm0))
        elif self.mode == "linear":
            p = np.linspace(self.p_in, self.p_out, n + 1)
            qm = np.full(n_flux, float(self.qm0))
        elif self.mode == "steady":
            p = steady_state_pressure(self.p_in, self.p_out, x, segment.L)
            qm = np.full(n_flux, steady_state_flow(self.p_in, self.p_out, segment))
        else:
            p = np.asarray(self.p, dtype=float)
            qm = np.asarray(self.qm, dtype=float)
            if len(p) != n + 1:
                raise ConfigurationError(f"Initial pressure profile has {len(p)} values, expected {n + 1}")
            if n == 1 and len(qm) == 1:
                qm = np.repeat(qm, 2)
            if len(qm) != n_flux:
                raise ConfigurationError(f"Initial flux profile has {len(qm)} values, expected {n_flux}")

        if np.any(~np.isfinite(p)) or np.any(p <= 0):
            raise ConfigurationError("Initial pressures must be finite and > 0")
        if np.any(~np.isfinite(qm)):
            raise ConfigurationError("Initial fluxes must be finite")

        return PipeState(p=p.copy(), qm=qm.copy())
