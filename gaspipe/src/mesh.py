"""
Staggered 1D grid for a single pipe.
"""

import numpy as np
from dataclasses import dataclass

from .segment import PipeSegment


@dataclass
class PipeGrid:
    """
    Staggered grid with pressure at faces and mass flux at cell centres.

    - x_faces: Pressure node locations (n + 1), from 0 to L
    - x_cells: Flux node locations (n), midpoints between faces
    - dx: Uniform control-volume length

    Flux node i sits between pressure nodes i and i + 1. For a single control
    volume both the inlet and the outlet flux sit at the cell centre.
    """
    x_faces: np.ndarray

    def __post_init__(self):
        self.n_cells = len(self.x_faces) - 1
        self.dx = float(self.x_faces[1] - self.x_faces[0])
        self.x_cells = 0.5 * (self.x_faces[:-1] + self.x_faces[1:])
        if self.n_cells == 1:
            self.x_cells = np.repeat(self.x_cells, 2)

    @property
    def length(self) -> float:
        return float(self.x_faces[-1] - self.x_faces[0])

    @classmethod
    def uniform(cls, length: float, n_cells: int) -> 'PipeGrid':
        """
        Create a uniform grid.

        Args:
            length: Pipe length [m]
            n_cells: Number of control volumes
        """
        return cls(x_faces=np.linspace(0.0, length, n_cells + 1))

    @classmethod
    def for_segment(cls, segment: PipeSegment) -> 'PipeGrid':
        """Grid matching a pipe segment."""
        return cls.uniform(segment.L, segment.n)
