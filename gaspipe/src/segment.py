"""
Static parameters of one discretized pipe.
"""

import math
import numbers
from dataclasses import dataclass, field

from .errors import ConfigurationError
from .gas import GasProperties


@dataclass(frozen=True)
class PipeSegment:
    """
    Pipe geometry, friction and temperature plus the derived discretization
    coefficients.

    Derived coefficients:
        A  = lambda1 * pi*D²/4
        c1 = lambda2 * R*T / (pi*D²/4)
        c2 = lambda3 * c1_unscaled * f / (2D)
        dx = L / n

    The calibration factors only rescale coefficients; they never change the
    grid or the equation structure.
    """
    n: int              # Number of control volumes
    L: float            # Length [m]
    D: float            # Inner diameter [m]
    f: float            # Darcy friction factor [-]
    T: float            # Uniform gas temperature [K]
    lambda1: float = 1.0
    lambda2: float = 1.0
    lambda3: float = 1.0
    gas: GasProperties = field(default_factory=GasProperties)

    def __post_init__(self):
        if isinstance(self.n, bool) or not isinstance(self.n, numbers.Integral):
            raise ConfigurationError(f"n must be an integer, got {self.n!r}")
        if self.n < 1:
            raise ConfigurationError(f"n must be >= 1, got {self.n}")

        for name in ("L", "D", "f", "T", "lambda1", "lambda2", "lambda3"):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}")
            if value <= 0:
                raise ConfigurationError(f"{name} must be > 0, got {value}")

    @property
    def area(self) -> float:
        """Geometric cross-section pi*D²/4 [m²]."""
        return math.pi * self.D**2 / 4.0

    @property
    def A(self) -> float:
        """Scaled cross-section used in the momentum balance [m²]."""
        return self.lambda1 * self.area

    @property
    def c1(self) -> float:
        """Compressibility coefficient R*T/A."""
        return self.lambda2 * self.gas.rt(self.T) / self.area

    @property
    def c2(self) -> float:
        """Friction coefficient c1*f/(2D)."""
        return self.lambda3 * (self.gas.rt(self.T) / self.area) * self.f / (2.0 * self.D)

    @property
    def dx(self) -> float:
        """Control-volume length [m]."""
        return self.L / self.n

    @property
    def n_pressure(self) -> int:
        """Number of pressure unknowns (faces)."""
        return self.n + 1

    @property
    def n_flux(self) -> int:
        """
        Number of mass-flux unknowns.

        A single control volume keeps separate inlet and outlet fluxes so
        that both ends have their own boundary momentum equation.
        """
        return self.n if self.n >= 2 else 2

    @property
    def resistance(self) -> float:
        """
        Quasi-steady resistance of the whole pipe, f*L*R*T/(D*A²) when all
        calibration factors are 1.
        """
        return 2.0 * self.c2 * self.L / self.A
