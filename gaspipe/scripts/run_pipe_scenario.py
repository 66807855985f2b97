"""
Run the reference pipe scenario and a pressure-driven variant to steady state.

This script demonstrates:
1. Loading a pipe from a unit-aware configuration dictionary
2. Integrating the pipe model with the reference driver
3. Comparing the converged flux with the quasi-steady closed form
4. A two-pipe series network

Run from the repository root:
    python gaspipe/scripts/run_pipe_scenario.py [--json summary.json]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add repository root to path
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import numpy as np
from gaspipe.src import (
    PipeConfig, PipeNetwork, PressureBC, Simulation, SolverConfig, steady_state_flow
)
from gaspipe.src.utils import AdvancedJSONEncoder, run_summary

REFERENCE = {
    "n": 10,
    "length": "100 m",
    "diameter": "0.2 m",
    "friction": 0.016,
    "temperature": "300 K",
    "inlet": {"type": "pressure", "value": "0.56 MPa"},
    "outlet": {"type": "pressure", "value": "0.56 MPa"},
}


def run_single(cfg_dict, max_time=120.0, verbose=False):
    cfg = PipeConfig.from_dict(cfg_dict)
    model = cfg.build_model()
    sim = Simulation(model, SolverConfig(check_interval=10.0, verbose=verbose))
    result = sim.run_to_steady_state(max_time=max_time)

    state = result.final_state
    p_in, p_out = cfg.inlet.value, cfg.outlet.value
    q_closed = steady_state_flow(p_in, p_out, model.segment)

    print(f"\np_in = {p_in/1e5:.3f} bar, p_out = {p_out/1e5:.3f} bar")
    print(f"Converged: {result.converged} at t = {result.t[-1]:.1f} s (residual {result.residual:.2e})")
    print(f"Mass flux:    {state.qm.mean(): .5f} kg/s")
    print(f"Closed form:  {q_closed: .5f} kg/s")
    print(f"Pressure [bar]: {np.array2string(state.p / 1e5, precision=4)}")
    return model, result


def run_series(p_in=6e5, p_out=5e5, max_time=120.0):
    seg = PipeConfig.from_dict(REFERENCE).segment()
    net = PipeNetwork()
    net.add_node("source", PressureBC(p_in))
    net.add_node("j1")
    net.add_node("sink", PressureBC(p_out))
    net.add_pipe("upstream", seg, "source", "j1")
    net.add_pipe("downstream", seg, "j1", "sink")
    net.build()

    result = Simulation(net, SolverConfig(check_interval=10.0)).run_to_steady_state(max_time=max_time)
    p_nodes = net.node_pressures(result.t[-1], result.y[-1])
    imbalance = net.junction_imbalance(result.t[-1], result.y[-1])

    print("\nSeries network")
    for uid, state in result.final_state.items():
        print(f"  {uid:10s} qm = {state.qm.mean():.5f} kg/s")
    print(f"  junction p = {p_nodes['j1']/1e5:.4f} bar, imbalance = {imbalance['j1']:.2e} kg/s")
    return net, result


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--json", type=Path, help="Write the reference run summary to this file")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(name)s: %(message)s")

    print("=" * 60)
    print("Isothermal gas pipe: L = 100 m, D = 0.2 m, f = 0.016, T = 300 K, n = 10")
    print("=" * 60)

    model, result = run_single(REFERENCE, verbose=args.verbose)

    driven = dict(REFERENCE)
    driven["inlet"] = {"type": "pressure", "value": "6 bar"}
    driven["outlet"] = {"type": "pressure", "value": "5 bar"}
    run_single(driven, verbose=args.verbose)

    run_series()

    if args.json is not None:
        args.json.write_text(json.dumps(run_summary(model, result), cls=AdvancedJSONEncoder, indent=2))
        print(f"\nSummary written to {args.json}")


if __name__ == "__main__":
    main()
