"""
Gas properties for an isothermal ideal gas (dry air).
"""

import numpy as np
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class GasProperties:
    """
    Ideal-gas relation p = rho * R * T with a fixed species constant.

    R is a class constant: changing species would change friction and
    compressibility behaviour that the pipe model does not parameterize.
    """
    R: ClassVar[float] = 287.11     # Specific gas constant of dry air [J/(kg·K)]

    # Sutherland's law constants for air
    mu_ref: float = 1.716e-5        # Reference viscosity [Pa·s]
    T_ref: float = 273.15           # Reference temperature [K]
    S: float = 110.4                # Sutherland temperature [K]

    def rt(self, T):
        """Ideal-gas constant product R*T [J/kg]."""
        return self.R * T

    def density(self, p, T):
        """Density from pressure and temperature [kg/m³]."""
        return p / (self.R * T)

    def pressure(self, rho, T):
        """Pressure from density and temperature [Pa]."""
        return rho * self.R * T

    def state_residual(self, p, rho, T):
        """Residual of the equation of state, 0 = p - rho*R*T."""
        return p - rho * self.R * T

    def viscosity(self, T):
        """Dynamic viscosity from Sutherland's law [Pa·s]."""
        T = np.asarray(T, dtype=float)
        mu = self.mu_ref * (T / self.T_ref)**1.5 * (self.T_ref + self.S) / (T + self.S)
        return float(mu) if mu.ndim == 0 else mu
