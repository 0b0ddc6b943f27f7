"""Mesh adapter interface consumed by the well-to-grid coupling."""

import typing

import attrs
import numpy as np

from wellbores.types import CellExtents, CellIndex, FaceRelation, Point, Vector

__all__ = [
    "FaceNeighbor",
    "CellFace",
    "MeshAdapter",
    "point_inside_cell",
    "compute_cell_extents",
]


@attrs.frozen(slots=True, eq=False)
class FaceNeighbor:
    """A cell across a (sub)face, together with the outward unit normal of that (sub)face."""

    cell: CellIndex
    """Stable index of the neighboring cell."""
    normal: Vector
    """Outward unit normal of the (sub)face, pointing from the cell towards the neighbor."""


@attrs.frozen(slots=True, eq=False)
class CellFace:
    """Topology of a single cell face."""

    index: int
    """Local index of the face within its cell."""
    relation: FaceRelation
    """Relation between the cell and the cell(s) across the face."""
    neighbors: typing.Tuple[FaceNeighbor, ...] = ()
    """
    Neighbors across the face.

    Empty for boundary faces, a single entry for same-level and coarser neighbors,
    and one entry per subface for refined neighbors.
    """

    @property
    def at_boundary(self) -> bool:
        return self.relation is FaceRelation.BOUNDARY


@typing.runtime_checkable
class MeshAdapter(typing.Protocol):
    """
    Protocol for the meshes wells are bound to.

    Cells are identified by stable integer handles. Handles must not depend on the order
    cells are visited in, since they are used to break geometric ties.
    """

    def cells(self) -> typing.Iterable[CellIndex]:
        """
        Iterate over the locally visible (owned and ghost) cells.

        :return: An iterable of cell handles.
        """
        ...

    def contains(self, cell: CellIndex, point: Point) -> bool:
        """
        Check whether a point lies inside a cell (boundary inclusive).

        :param cell: The cell handle.
        :param point: The point to test.
        :return: True if the point lies inside the cell or on its boundary.
        """
        ...

    def center(self, cell: CellIndex) -> Point:
        """Center of the cell."""
        ...

    def diameter(self, cell: CellIndex) -> float:
        """Diameter of the cell (largest distance between two of its vertices)."""
        ...

    def faces(self, cell: CellIndex) -> typing.Sequence[CellFace]:
        """
        Face topology of the cell.

        :param cell: The cell handle.
        :return: One `CellFace` per face of the cell.
        """
        ...

    def face_points(self, cell: CellIndex) -> np.typing.NDArray[np.float64]:
        """
        Sample points on the faces of the cell, one per face (e.g. face centers).

        :param cell: The cell handle.
        :return: An (n_faces, 3) array of points. Row `i` lies on the face whose
            `CellFace.index` is `i`.
        """
        ...


def point_inside_cell(
    mesh: MeshAdapter, cell: CellIndex, point: Point, tolerance: float
) -> bool:
    """
    Tolerant point-in-cell test.

    The point is inside if it, or the point shifted by `tolerance` in the positive or
    negative direction of any coordinate axis, lies inside the cell. This absorbs round-off
    for points on (or within `tolerance` of) cell boundaries.

    :param mesh: The mesh the cell belongs to.
    :param cell: The cell handle.
    :param point: The point to test.
    :param tolerance: Absolute perturbation along each axis.
    :return: True if the point is considered inside the cell.
    """
    if mesh.contains(cell, point):
        return True
    for axis in range(3):
        shift = np.zeros(3)
        shift[axis] = tolerance
        if mesh.contains(cell, point + shift) or mesh.contains(cell, point - shift):
            return True
    return False


def compute_cell_extents(mesh: MeshAdapter, cell: CellIndex) -> CellExtents:
    """
    Compute the extents (dx, dy, dz) of a cell.

    The extents are the sides of the coordinate-wise bounding box of the cell center
    and its face sample points, not of the exact cell geometry.

    :param mesh: The mesh the cell belongs to.
    :param cell: The cell handle.
    :return: The cell extents along the x, y and z axes.
    """
    points = np.vstack(
        [np.asarray(mesh.center(cell), dtype=np.float64).reshape(1, 3),
         np.asarray(mesh.face_points(cell), dtype=np.float64).reshape(-1, 3)]
    )
    extents = points.max(axis=0) - points.min(axis=0)
    return typing.cast(CellExtents, tuple(float(value) for value in extents))
