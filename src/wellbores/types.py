import enum
import typing

import numpy as np
from typing_extensions import TypeAlias


__all__ = [
    "CellIndex",
    "Point",
    "Vector",
    "PointLike",
    "Points",
    "Permeability",
    "CellExtents",
    "SourceTerm",
    "Axis",
    "FaceRelation",
    "ReduceSum",
]

CellIndex: TypeAlias = int
"""Stable index (handle) of a mesh cell."""

Point: TypeAlias = np.typing.NDArray[np.float64]
"""A point in 3D space, as a (3,) array."""
Vector: TypeAlias = np.typing.NDArray[np.float64]
"""A vector in 3D space, as a (3,) array."""
PointLike = typing.Union[typing.Sequence[float], np.typing.NDArray[np.floating]]
"""Anything convertible to a 3D point."""
Points: TypeAlias = np.typing.NDArray[np.float64]
"""A sequence of points in 3D space, as an (N, 3) array."""

Permeability: TypeAlias = typing.Tuple[float, float, float]
"""Diagonal permeability (kx, ky, kz)."""
CellExtents: TypeAlias = typing.Tuple[float, float, float]
"""Cell extents (dx, dy, dz) along the coordinate axes."""
SourceTerm: TypeAlias = typing.Tuple[float, float]
"""A (J, Q) well source term pair for one cell."""

ReduceSum = typing.Callable[[float], float]
"""
Collective reduction hook. Receives a partition-local partial sum and returns
the sum over all partitions (e.g. an MPI allreduce).
"""


class Axis(enum.IntEnum):
    """Coordinate axes."""

    X = 0
    Y = 1
    Z = 2

    @property
    def orthogonal(self) -> typing.Tuple["Axis", "Axis"]:
        """The two axes orthogonal to this one, in increasing order."""
        return typing.cast(
            typing.Tuple["Axis", "Axis"],
            tuple(axis for axis in Axis if axis is not self),
        )


class FaceRelation(enum.Enum):
    """
    Topological relation between a cell and the cell(s) across one of its faces.
    """

    BOUNDARY = "boundary"
    """The face lies on the domain boundary. No neighbor."""
    SAME_LEVEL = "same_level"
    """A single neighbor at the same refinement level, not refined further."""
    COARSER = "coarser"
    """A single, coarser neighbor. This cell's face is a subface of the neighbor's face."""
    REFINED = "refined"
    """Several finer neighbors, one per subface of this cell's face (hanging nodes)."""
