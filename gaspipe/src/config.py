"""
Dictionary configuration for a single pipe, with unit-aware values.

Values may be plain numbers (taken as SI), pint quantities, or strings such
as "100 m", "200 mm" or "0.56 MPa".

Example:
    cfg = PipeConfig.from_dict({
        "n": 10, "length": "100 m", "diameter": "200 mm",
        "friction": 0.016, "temperature": "300 K",
        "inlet": {"type": "pressure", "value": "6 bar"},
        "outlet": {"type": "pressure", "value": "5 bar"},
    })
    model = cfg.build_model()
"""

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple

from pint import Quantity, UnitRegistry
from pint.errors import PintError

from .boundary import BoundaryCondition, ClosedEndBC, MassFlowBC, PressureBC
from .errors import ConfigurationError
from .initial import InitialProfile
from .model import PipeModel
from .segment import PipeSegment

ureg = UnitRegistry()

BoundaryKind = Literal["pressure", "mass_flow", "closed"]


def to_si(value: Any, unit: str, name: str) -> float:
    """
    Convert a number, quantity or string to a float in the given SI unit.

    Raises:
        ConfigurationError: on unparsable values or incompatible dimensions
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number or quantity, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    try:
        quantity = ureg.parse_expression(value) if isinstance(value, str) else value
        if not isinstance(quantity, Quantity):
            return float(quantity)
        if quantity.dimensionless and unit != "dimensionless":
            # bare numbers in strings are taken as SI
            return float(quantity.magnitude)
        return float(quantity.to(unit).magnitude)
    except (PintError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name}: cannot convert {value!r} to {unit}: {exc}") from exc


@dataclass(frozen=True)
class BoundaryConfig:
    """Condition imposed on one pipe end."""
    kind: BoundaryKind = "pressure"
    value: float = 0.0      # [Pa] for pressure, [kg/s] for mass_flow

    @staticmethod
    def from_dict(cfg: Dict[str, Any], name: str) -> "BoundaryConfig":
        kind = str(cfg.get("type", cfg.get("kind", "pressure"))).strip().lower()
        if kind == "pressure":
            value = to_si(cfg.get("value", cfg.get("p")), "Pa", f"{name}.value")
        elif kind == "mass_flow":
            value = to_si(cfg.get("value", cfg.get("qm", 0.0)), "kg/s", f"{name}.value")
        elif kind == "closed":
            value = 0.0
        else:
            raise ConfigurationError(f"{name}: unknown boundary type {kind!r}")

        out = BoundaryConfig(kind=kind, value=value)
        out.validate(name)
        return out

    def validate(self, name: str = "boundary") -> None:
        if self.kind == "pressure" and not self.value > 0:
            raise ConfigurationError(f"{name}: pressure must be > 0 (got {self.value})")

    def build(self) -> BoundaryCondition:
        if self.kind == "pressure":
            return PressureBC(self.value)
        if self.kind == "mass_flow":
            return MassFlowBC(self.value)
        return ClosedEndBC()


@dataclass(frozen=True)
class PipeConfig:
    """
    Pipe parameters, boundary conditions and initial profile in SI units.
    """
    n: int
    L: float
    D: float
    f: float
    T: float
    lambda1: float = 1.0
    lambda2: float = 1.0
    lambda3: float = 1.0
    inlet: Optional[BoundaryConfig] = None
    outlet: Optional[BoundaryConfig] = None
    initial: Optional[InitialProfile] = None
    compressible: bool = False

    @staticmethod
    def from_dict(cfg: Dict[str, Any]) -> "PipeConfig":
        if "n" not in cfg:
            raise ConfigurationError("Pipe configuration needs 'n'")
        n = cfg["n"]
        if isinstance(n, float) and n.is_integer():
            n = int(n)

        def required(*keys, unit):
            for key in keys:
                if key in cfg:
                    return to_si(cfg[key], unit, key)
            raise ConfigurationError(f"Pipe configuration needs {keys[0]!r}")

        inlet = outlet = None
        if "inlet" in cfg:
            inlet = BoundaryConfig.from_dict(cfg["inlet"], "inlet")
        if "outlet" in cfg:
            outlet = BoundaryConfig.from_dict(cfg["outlet"], "outlet")

        initial = None
        if "initial" in cfg:
            initial = _initial_from_dict(cfg["initial"])

        out = PipeConfig(
            n=n,
            L=required("L", "length", unit="m"),
            D=required("D", "diameter", unit="m"),
            f=required("f", "friction", unit="dimensionless"),
            T=required("T", "temperature", unit="K"),
            lambda1=to_si(cfg.get("lambda1", 1.0), "dimensionless", "lambda1"),
            lambda2=to_si(cfg.get("lambda2", 1.0), "dimensionless", "lambda2"),
            lambda3=to_si(cfg.get("lambda3", 1.0), "dimensionless", "lambda3"),
            inlet=inlet,
            outlet=outlet,
            initial=initial,
            compressible=bool(cfg.get("compressible", False)),
        )
        out.segment()
        return out

    def segment(self) -> PipeSegment:
        """PipeSegment with these parameters (validated on construction)."""
        return PipeSegment(n=self.n, L=self.L, D=self.D, f=self.f, T=self.T,
                           lambda1=self.lambda1, lambda2=self.lambda2, lambda3=self.lambda3)

    def boundary_conditions(self) -> Tuple[BoundaryCondition, BoundaryCondition]:
        if self.inlet is None or self.outlet is None:
            raise ConfigurationError("Both 'inlet' and 'outlet' boundary conditions are required")
        return self.inlet.build(), self.outlet.build()

    def build_model(self, t0: float = 0.0) -> PipeModel:
        """PipeModel for this configuration."""
        inlet_bc, outlet_bc = self.boundary_conditions()
        return PipeModel(self.segment(), inlet_bc, outlet_bc, initial=self.initial,
                         compressible=self.compressible, t0=t0)


def _initial_from_dict(cfg: Dict[str, Any]) -> InitialProfile:
    mode = str(cfg.get("mode", "linear")).strip().lower()
    if mode == "explicit":
        p = [to_si(v, "Pa", "initial.p") for v in cfg.get("p", ())]
        qm = [to_si(v, "kg/s", "initial.qm") for v in cfg.get("qm", ())]
        return InitialProfile.explicit(p, qm)

    p_in = cfg.get("p_in")
    p_out = cfg.get("p_out")
    return InitialProfile(
        mode=mode,
        p_in=None if p_in is None else to_si(p_in, "Pa", "initial.p_in"),
        p_out=None if p_out is None else to_si(p_out, "Pa", "initial.p_out"),
        qm0=to_si(cfg.get("qm0", 0.0), "kg/s", "initial.qm0"),
    )
