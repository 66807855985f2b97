"""
Pytest tests for multi-pipe networks.

Tests verify:
1. Topology validation and vector layout
2. Junction reconciliation (equal pressures, balanced flows)
3. Port sign convention across a series connection
4. Steady flow through series and branched networks
5. Flow-imposing and dead-end nodes
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
    PipeNetwork, PressureBC, MassFlowBC, InitialProfile, Simulation, ConfigurationError,
    port_flows
)
from gaspipe.tests.scenarios import (
    make_segment, driver_config, kinetic_steady_flow, series_network, branched_network
)


@pytest.fixture(scope="module")
def series_steady():
    """Series network integrated to steady state."""
    net = series_network()
    result = Simulation(net, driver_config()).run_to_steady_state(max_time=150.0)
    return net, result


class TestTopology:
    """Tests for network construction."""

    def test_layout(self):
        net = series_network()
        assert net.size == 42
        assert net.names[0] == "upstream.p[0]"
        assert net.names[21] == "downstream.p[0]"
        assert net.pipes["downstream"].offset == 21

    def test_duplicate_uids(self):
        net = PipeNetwork()
        net.add_node("a")
        with pytest.raises(ConfigurationError):
            net.add_node("a")
        net.add_node("b", PressureBC(5e5))
        net.add_pipe("p1", make_segment(), "a", "b")
        with pytest.raises(ConfigurationError):
            net.add_pipe("p1", make_segment(), "a", "b")

    def test_unknown_node(self):
        net = PipeNetwork()
        net.add_node("a", PressureBC(5e5))
        net.add_pipe("p1", make_segment(), "a", "missing")
        with pytest.raises(ConfigurationError):
            net.build()

    def test_self_loop(self):
        net = PipeNetwork()
        net.add_node("a", PressureBC(5e5))
        net.add_pipe("p1", make_segment(), "a", "a")
        with pytest.raises(ConfigurationError):
            net.build()

    def test_isolated_node(self):
        net = PipeNetwork()
        net.add_node("a", PressureBC(6e5))
        net.add_node("b", PressureBC(5e5))
        net.add_node("orphan")
        net.add_pipe("p1", make_segment(), "a", "b")
        with pytest.raises(ConfigurationError):
            net.build()

    def test_empty_network(self):
        with pytest.raises(ConfigurationError):
            PipeNetwork().build()

    def test_start_time_follows_build(self):
        net = PipeNetwork()
        net.add_node("source", PressureBC(lambda t: 5e5 + 1e4 * t))
        net.add_node("sink", PressureBC(5e5))
        net.add_pipe("line", make_segment(), "source", "sink")
        net.build(t0=5.0)

        sim = Simulation(net)
        assert net.t0 == 5.0
        assert sim.time == 5.0
        assert net.resolve(5.0, sim.y)["line"].p[0] == pytest.approx(5.5e5)

    def test_lazy_build_keeps_start_time(self):
        net = PipeNetwork()
        net.add_node("source", PressureBC(lambda t: 5e5 + 1e4 * t))
        net.add_node("sink", PressureBC(5e5))
        net.add_pipe("line", make_segment(), "source", "sink")
        net.build(t0=2.0)
        net.add_pipe("spare", make_segment(), "source", "sink")

        y0 = net.y0
        assert net.t0 == 2.0
        assert net.views(y0)["spare"].p[0] == pytest.approx(5.2e5)

    def test_profile_required_without_pressure_nodes(self):
        net = PipeNetwork()
        net.add_node("a", MassFlowBC(1.0))
        net.add_node("b", MassFlowBC(-1.0))
        net.add_pipe("p1", make_segment(), "a", "b")
        with pytest.raises(ConfigurationError):
            net.build()

    def test_initial_imbalance_rejected(self):
        net = PipeNetwork()
        net.add_node("source", PressureBC(6e5))
        net.add_node("j1")
        net.add_node("sink", PressureBC(5e5))
        net.add_pipe("a", make_segment(), "source", "j1", initial=InitialProfile.uniform(6e5, qm=1.0))
        net.add_pipe("b", make_segment(), "j1", "sink")
        with pytest.raises(ConfigurationError):
            net.build()


class TestJunctionReconciliation:
    """Tests for the explicit junction step."""

    def test_equal_pressures_at_junction(self):
        net = series_network()
        states = net.resolve(0.0, net.y0)
        assert states["upstream"].p[-1] == pytest.approx(states["downstream"].p[0])
        assert states["upstream"].p[0] == pytest.approx(6e5)
        assert states["downstream"].p[-1] == pytest.approx(5e5)

    def test_initial_balance(self):
        net = series_network()
        imbalance = net.junction_imbalance(0.0, net.y0)
        assert set(imbalance) == {"j1"}
        assert imbalance["j1"] == pytest.approx(0.0, abs=1e-12)

    def test_junction_flow_rates_balance(self):
        net = series_network()
        y = net.y0
        y[net.pipes["upstream"].offset + 3] += 1e3     # perturb an interior pressure
        dydt = net.rhs(0.0, y)
        up = net.pipes["upstream"].view(dydt)
        down = net.pipes["downstream"].view(dydt)
        assert down.qm[0] - up.qm[-1] == pytest.approx(0.0, abs=1e-6), \
            "Junction pressure should keep the signed flow rates balanced"

    def test_rhs_finite(self):
        net = branched_network()
        dydt = net.rhs(0.0, net.y0)
        assert dydt.shape == (net.size,)
        assert np.all(np.isfinite(dydt))


class TestSeriesNetwork:
    """Two identical pipes in series between 6 and 5 bar."""

    def test_converges(self, series_steady):
        _, result = series_steady
        assert result.converged, f"No steady state, residual = {result.residual:.3e}"

    def test_sign_convention(self, series_steady):
        _, result = series_steady
        up, down = result.final_state["upstream"], result.final_state["downstream"]
        up_in, up_out = port_flows(up)
        down_in, _ = port_flows(down)

        assert up_out == pytest.approx(-up.qm[-1]), "Outlet port flow is the negated internal flux"
        assert up_out < 0, "Gas leaves the upstream pipe at its outlet"
        assert down_in > 0, "Gas enters the downstream pipe at its inlet"
        assert up_out == pytest.approx(-down_in, rel=1e-6)

    def test_flux_matches_closed_form(self, series_steady):
        net, result = series_steady
        segment = net.pipes["upstream"].segment
        expected = kinetic_steady_flow(6e5, 5e5, segment, length=2 * segment.L)
        for uid, state in result.final_state.items():
            np.testing.assert_allclose(state.qm, expected, rtol=1e-3, err_msg=f"pipe {uid}")

    def test_junction_pressure(self, series_steady):
        net, result = series_steady
        t_end, y_end = result.t[-1], result.y[-1]
        p_j = net.node_pressures(t_end, y_end)["j1"]
        q = result.final_state["upstream"].qm[0]
        segment = net.pipes["upstream"].segment

        assert 5e5 < p_j < 6e5
        assert kinetic_steady_flow(6e5, p_j, segment) == pytest.approx(q, rel=1e-3)
        assert kinetic_steady_flow(p_j, 5e5, segment) == pytest.approx(q, rel=1e-3)

    def test_imbalance_stays_zero(self, series_steady):
        net, result = series_steady
        for t, y in zip(result.t, result.y):
            imbalance = net.junction_imbalance(t, y)["j1"]
            assert abs(imbalance) < 1e-6, f"Junction imbalance {imbalance:.3e} kg/s at t = {t:.2f} s"


class TestBranchedNetwork:
    """Trunk feeding two branches."""

    def test_flow_splits(self):
        net = branched_network()
        result = Simulation(net, driver_config()).run_to_steady_state(max_time=150.0)
        states = result.final_state
        q_trunk = states["trunk"].qm[-1]
        q_a = states["branch_a"].qm[0]
        q_b = states["branch_b"].qm[0]

        assert q_trunk == pytest.approx(q_a + q_b, rel=1e-6)
        assert q_a > q_b > 0, "The wider branch should carry more gas"
        assert abs(net.junction_imbalance(result.t[-1], result.y[-1])["tee"]) < 1e-6


class TestFlowNodes:
    """Nodes imposing flow or closing a pipe."""

    def test_imposed_injection(self):
        net = PipeNetwork()
        net.add_node("compressor", MassFlowBC(2.0))
        net.add_node("sink", PressureBC(5e5))
        net.add_pipe("line", make_segment(), "compressor", "sink")
        net.build()

        result = Simulation(net, driver_config()).run_to_steady_state(max_time=150.0)
        state = result.final_state["line"]
        np.testing.assert_allclose(state.qm, 2.0, rtol=1e-4)
        assert state.p[0] > 5e5

    def test_dead_end(self):
        net = PipeNetwork()
        net.add_node("source", PressureBC(5e5))
        net.add_node("cap")
        net.add_pipe("stub", make_segment(), "source", "cap",
                     initial=InitialProfile.linear(5e5, 4.9e5))
        net.build()

        state = net.resolve(0.0, net.y0)["stub"]
        assert state.qm[-1] == 0.0
        assert state.p[-1] == pytest.approx(state.p[-2], rel=1e-12)
        assert net.node_pressures(0.0, net.y0)["cap"] == pytest.approx(state.p[-2])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
