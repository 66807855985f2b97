"""
Pytest tests for the residual assembly interface of a single pipe.

Tests verify:
1. Unknown vector layout and names
2. Consistent initial vectors
3. residual(t, y, rhs(t, y)) = 0 for both variants
4. Initial profile validation
5. Shared port updates
"""

import numpy as np
import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from gaspipe.src import (
    PipeSegment, PipeModel, PressureBC, MassFlowBC, ClosedEndBC, InitialProfile,
    ConfigurationError, steady_state_flow
)


@pytest.fixture
def segment():
    return PipeSegment(n=10, L=100.0, D=0.2, f=0.016, T=300.0)


@pytest.fixture
def reservoir_model(segment):
    """Pipe between two pressure reservoirs."""
    return PipeModel(segment, PressureBC(6e5), PressureBC(5e5))


class TestLayout:
    """Tests for the unknown vector."""

    def test_names_and_size(self, reservoir_model):
        assert reservoir_model.size == 21
        assert reservoir_model.names[0] == "p[0]"
        assert reservoir_model.names[10] == "p[10]"
        assert reservoir_model.names[11] == "qm[0]"
        assert reservoir_model.names[-1] == "qm[9]"
        assert reservoir_model.boundary_slots() == (0, 10, 11, 20)

    def test_equations_plus_bindings_match_unknowns(self, reservoir_model):
        assert len(reservoir_model.equations) + 2 == reservoir_model.size

    def test_compressible_adds_port_unknowns(self, segment):
        model = PipeModel(segment, PressureBC(6e5), PressureBC(5e5), compressible=True)
        assert model.size == 25
        assert model.names[-4:] == ["rho_in", "rho_out", "mu_in", "mu_out"]

    def test_single_volume(self):
        segment = PipeSegment(n=1, L=20.0, D=0.2, f=0.016, T=300.0)
        model = PipeModel(segment, PressureBC(6e5), PressureBC(5e5))
        assert model.size == 4
        assert len(model.equations) == 2
        dydt = model.rhs(0.0, model.y0)
        assert dydt.shape == (4,)
        assert np.all(np.isfinite(dydt))

    def test_wrong_vector_length(self, reservoir_model):
        with pytest.raises(ConfigurationError):
            reservoir_model.rhs(0.0, np.ones(20))


class TestInitialVector:
    """Tests for the initial unknown vector."""

    def test_default_profile_is_quasi_steady(self, segment, reservoir_model):
        state = reservoir_model.split(reservoir_model.y0)
        assert state.p[0] == pytest.approx(6e5)
        assert state.p[-1] == pytest.approx(5e5)
        np.testing.assert_allclose(state.qm, steady_state_flow(6e5, 5e5, segment))

    def test_y0_is_a_copy(self, reservoir_model):
        y = reservoir_model.y0
        y[:] = 0.0
        assert np.all(reservoir_model.y0[:11] > 0)

    def test_one_pressure_end_gives_uniform_profile(self, segment):
        model = PipeModel(segment, MassFlowBC(0.0), PressureBC(5e5))
        state = model.split(model.y0)
        np.testing.assert_allclose(state.p, 5e5)
        np.testing.assert_allclose(state.qm, 0.0)

    def test_flow_ends_need_profile(self, segment):
        with pytest.raises(ConfigurationError):
            PipeModel(segment, ClosedEndBC(), ClosedEndBC())

    def test_explicit_profile_lengths(self, segment):
        good = InitialProfile.explicit(p=np.full(11, 5e5), qm=np.zeros(10))
        PipeModel(segment, PressureBC(5e5), PressureBC(5e5), initial=good)

        with pytest.raises(ConfigurationError):
            PipeModel(segment, PressureBC(5e5), PressureBC(5e5),
                      initial=InitialProfile.explicit(p=np.full(10, 5e5), qm=np.zeros(10)))
        with pytest.raises(ConfigurationError):
            PipeModel(segment, PressureBC(5e5), PressureBC(5e5),
                      initial=InitialProfile.explicit(p=np.full(11, 5e5), qm=np.zeros(11)))

    def test_non_positive_initial_pressure(self, segment):
        p = np.full(11, 5e5)
        p[4] = 0.0
        with pytest.raises(ConfigurationError):
            PipeModel(segment, PressureBC(5e5), PressureBC(5e5),
                      initial=InitialProfile.explicit(p=p, qm=np.zeros(10)))
        with pytest.raises(ConfigurationError):
            InitialProfile.linear(5e5, -1.0)

    def test_unknown_profile_mode(self):
        with pytest.raises(ConfigurationError):
            InitialProfile(mode="parabolic", p_in=5e5, p_out=4e5)

    def test_single_volume_explicit_flux(self):
        segment = PipeSegment(n=1, L=20.0, D=0.2, f=0.016, T=300.0)
        profile = InitialProfile.explicit(p=[6e5, 5e5], qm=[3.0])
        state = profile.build(segment)
        np.testing.assert_allclose(state.qm, [3.0, 3.0])

    def test_single_volume_flux_length_message(self):
        segment = PipeSegment(n=1, L=20.0, D=0.2, f=0.016, T=300.0)
        profile = InitialProfile.explicit(p=[6e5, 5e5], qm=[3.0, 3.0, 3.0])
        with pytest.raises(ConfigurationError, match="expected 2"):
            profile.build(segment)


class TestResidual:
    """The implicit residual vanishes on the explicit right-hand side."""

    def test_reservoir_pipe(self, reservoir_model):
        y = reservoir_model.y0
        F = reservoir_model.residual(0.0, y, reservoir_model.rhs(0.0, y))
        np.testing.assert_allclose(F, 0.0, atol=1e-9)

    def test_closed_outlet(self, segment):
        model = PipeModel(segment, PressureBC(6e5), ClosedEndBC(),
                          initial=InitialProfile.linear(6e5, 5.5e5, qm=2.0))
        y = model.y0
        F = model.residual(0.0, y, model.rhs(0.0, y))
        np.testing.assert_allclose(F, 0.0, atol=1e-6)

    def test_compressible_variant(self, segment):
        model = PipeModel(segment, PressureBC(6e5), MassFlowBC(-5.0),
                          initial=InitialProfile.linear(6e5, 5.5e5, qm=5.0), compressible=True)
        y = model.y0
        state = model.split(y)
        np.testing.assert_allclose(state.rho, state.p[[0, -1]] / (287.11 * 300.0))
        F = model.residual(0.0, y, model.rhs(0.0, y))
        np.testing.assert_allclose(F, 0.0, atol=1e-6)

    def test_residual_detects_broken_binding(self, reservoir_model):
        y = reservoir_model.y0
        ydot = reservoir_model.rhs(0.0, y)
        y[0] += 100.0
        F = reservoir_model.residual(0.0, y, ydot)
        assert F[0] == pytest.approx(100.0)


class TestBoundaryResolution:
    """Tests for the boundary slots after resolve."""

    def test_closed_end_pressure(self, segment):
        model = PipeModel(segment, ClosedEndBC(), PressureBC(5e5),
                          initial=InitialProfile.linear(5.6e5, 5e5))
        state = model.resolve(0.0, model.y0)
        assert state.qm[0] == 0.0
        assert state.p[0] == pytest.approx(state.p[1], rel=1e-12)

    def test_imposed_flow_port(self, segment):
        model = PipeModel(segment, MassFlowBC(4.0), PressureBC(5e5))
        q_in, _ = model.port_flows(0.0, model.y0)
        assert q_in == pytest.approx(4.0)

    def test_time_dependent_pressure_rate(self, segment):
        model = PipeModel(segment, PressureBC(lambda t: 6e5 + 500.0 * t), PressureBC(5e5))
        dydt = model.rhs(1.0, model.y0)
        assert dydt[0] == pytest.approx(500.0, rel=1e-4)
        assert dydt[10] == 0.0

    def test_update_ports(self, reservoir_model):
        inlet, outlet = reservoir_model.update_ports(0.0, reservoir_model.y0)
        assert inlet is reservoir_model.inlet
        assert inlet.p == pytest.approx(6e5)
        assert outlet.p == pytest.approx(5e5)
        assert outlet.qm == pytest.approx(-inlet.qm)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
