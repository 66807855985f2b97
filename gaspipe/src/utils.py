import dataclasses
import json

import numpy as np
from pint import Quantity


class AdvancedJSONEncoder(json.JSONEncoder):
    """JSON encoder for dataclasses, numpy values and pint quantities (as SI magnitudes)."""

    def default(self, o):
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return dataclasses.asdict(o)
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.generic):
            return o.item()
        if isinstance(o, Quantity):
            return o.to_base_units().magnitude
        return super().default(o)


def run_summary(model, result) -> dict:
    """Final port values and pipe parameters of a single-pipe run."""
    state = result.final_state
    q_in, q_out = result.port_flows[-1]
    return {
        'segment': model.segment,
        't_end': result.t[-1],
        'converged': result.converged,
        'residual': result.residual,
        'p': state.p,
        'qm': state.qm,
        'inlet': {'p': state.p[0], 'qm': q_in},
        'outlet': {'p': state.p[-1], 'qm': q_out},
        'mass': model.interior_mass(result.y[-1]),
    }
