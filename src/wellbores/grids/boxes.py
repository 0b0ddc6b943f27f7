"""Axis-aligned hexahedral reference mesh with hierarchical refinement."""

import logging
import typing

import attrs
import numba
import numpy as np
from typing_extensions import Self

from wellbores.errors import ValidationError
from wellbores.grids.base import CellFace, FaceNeighbor
from wellbores.types import CellIndex, FaceRelation, Point, PointLike

logger = logging.getLogger(__name__)

__all__ = ["BoxMesh"]


@numba.njit(cache=True)
def _contains(
    lower: np.ndarray, upper: np.ndarray, cell: int, point: np.ndarray
) -> bool:
    for axis in range(3):
        if point[axis] < lower[cell, axis] or point[axis] > upper[cell, axis]:
            return False
    return True


@numba.njit(cache=True)
def _find_face_neighbors(
    lower: np.ndarray,
    upper: np.ndarray,
    cell: int,
    axis: int,
    side: int,
    tolerance: float,
) -> np.ndarray:
    """
    Find the cells sharing part of a face of `cell` with positive area.

    :param side: 0 for the face at the lower bound along `axis`, 1 for the upper bound.
    :return: Indices of the neighboring cells, in increasing order.
    """
    n = lower.shape[0]
    result = np.empty(n, dtype=np.int64)
    count = 0
    plane = lower[cell, axis] if side == 0 else upper[cell, axis]
    for other in range(n):
        if other == cell:
            continue
        other_plane = upper[other, axis] if side == 0 else lower[other, axis]
        if abs(other_plane - plane) > tolerance:
            continue
        overlaps = True
        for d in range(3):
            if d == axis:
                continue
            low = max(lower[cell, d], lower[other, d])
            high = min(upper[cell, d], upper[other, d])
            if high - low <= tolerance:
                overlaps = False
                break
        if overlaps:
            result[count] = other
            count += 1
    return result[:count]


def _as_bounds(value: typing.Any) -> np.ndarray:
    return np.ascontiguousarray(np.asarray(value, dtype=np.float64).reshape(-1, 3))


def _as_levels(value: typing.Any) -> np.ndarray:
    return np.ascontiguousarray(np.asarray(value, dtype=np.int64).reshape(-1))


@attrs.frozen(eq=False)
class BoxMesh:
    """
    Mesh of axis-aligned boxes.

    Cells are identified by their row in `lower`/`upper`. Refined cells are replaced by
    their children, so every row is an active cell. Neighbors across faces are found
    geometrically, which makes hanging nodes (refined or coarser neighbors) explicit.

    A mesh may be restricted to a subset of locally visible cells, to mimic a partition of
    a distributed mesh. Restriction only limits `cells()`. Topology queries still see every
    cell, like ghost layers do.
    """

    lower: np.ndarray = attrs.field(converter=_as_bounds)
    """Lower corners of the cells, as an (n_cells, 3) array."""
    upper: np.ndarray = attrs.field(converter=_as_bounds)
    """Upper corners of the cells, as an (n_cells, 3) array."""
    levels: np.ndarray = attrs.field(converter=_as_levels)
    """Refinement level of each cell. Level 0 cells come from the initial grid."""
    local_cells: typing.Optional[typing.Tuple[CellIndex, ...]] = attrs.field(
        default=None,
        converter=attrs.converters.optional(lambda cells: tuple(sorted(set(cells)))),
    )
    """Locally visible cells. None means all cells."""
    _faces: typing.Dict[CellIndex, typing.Tuple[CellFace, ...]] = attrs.field(
        factory=dict, init=False, repr=False
    )

    def __attrs_post_init__(self) -> None:
        n = self.lower.shape[0]
        if self.upper.shape[0] != n or self.levels.shape[0] != n:
            raise ValidationError(
                f"Inconsistent mesh arrays: {n} lower corners, {self.upper.shape[0]} upper corners "
                f"and {self.levels.shape[0]} levels."
            )
        if n == 0:
            raise ValidationError("A mesh needs at least one cell.")
        if np.any(self.upper <= self.lower):
            raise ValidationError("Cells must have positive extents along every axis.")
        if self.local_cells is not None and any(
            cell < 0 or cell >= n for cell in self.local_cells
        ):
            raise ValidationError(f"Local cells must be in the range [0, {n}).")

    @classmethod
    def from_coordinates(
        cls,
        x: typing.Sequence[float],
        y: typing.Sequence[float],
        z: typing.Sequence[float],
    ) -> Self:
        """
        Build a rectilinear mesh from node coordinates along each axis.

        Cells are numbered with x varying fastest, then y, then z.

        :param x: Strictly increasing node coordinates along x.
        :param y: Strictly increasing node coordinates along y.
        :param z: Strictly increasing node coordinates along z.
        :return: The mesh.
        """
        nodes = []
        for name, coordinates in zip("xyz", (x, y, z)):
            array = np.asarray(coordinates, dtype=np.float64)
            if array.ndim != 1 or array.size < 2:
                raise ValidationError(
                    f"At least two {name}-coordinates are required, got {array.size}."
                )
            if np.any(np.diff(array) <= 0):
                raise ValidationError(f"{name}-coordinates must be strictly increasing.")
            nodes.append(array)

        nx, ny, nz = (array.size - 1 for array in nodes)
        i, j, k = np.meshgrid(
            np.arange(nx), np.arange(ny), np.arange(nz), indexing="ij"
        )
        i, j, k = (index.ravel(order="F") for index in (i, j, k))
        lower = np.column_stack([nodes[0][i], nodes[1][j], nodes[2][k]])
        upper = np.column_stack([nodes[0][i + 1], nodes[1][j + 1], nodes[2][k + 1]])
        return cls(lower=lower, upper=upper, levels=np.zeros(lower.shape[0]))

    @classmethod
    def uniform(
        cls,
        shape: typing.Tuple[int, int, int],
        bounds: typing.Sequence[typing.Tuple[float, float]] = (
            (0.0, 1.0),
            (0.0, 1.0),
            (0.0, 1.0),
        ),
    ) -> Self:
        """
        Build a uniform mesh.

        :param shape: Number of cells along x, y and z.
        :param bounds: (min, max) of the domain along x, y and z.
        :return: The mesh.
        """
        if len(shape) != 3 or any(int(count) < 1 for count in shape):
            raise ValidationError(f"Invalid mesh shape {shape!r}.")
        if len(bounds) != 3:
            raise ValidationError("Bounds are required along all three axes.")
        coordinates = [
            np.linspace(low, high, int(count) + 1)
            for count, (low, high) in zip(shape, bounds)
        ]
        return cls.from_coordinates(*coordinates)

    @property
    def n_cells(self) -> int:
        return int(self.lower.shape[0])

    def __len__(self) -> int:
        return self.n_cells

    @property
    def tolerance(self) -> float:
        """Absolute tolerance used to match faces, relative to the domain size."""
        extent = float(np.max(self.upper.max(axis=0) - self.lower.min(axis=0)))
        return 1e-12 * extent

    def cells(self) -> typing.Iterable[CellIndex]:
        if self.local_cells is None:
            return range(self.n_cells)
        return self.local_cells

    def contains(self, cell: CellIndex, point: Point) -> bool:
        return bool(
            _contains(self.lower, self.upper, cell, np.asarray(point, dtype=np.float64))
        )

    def center(self, cell: CellIndex) -> Point:
        return 0.5 * (self.lower[cell] + self.upper[cell])

    def diameter(self, cell: CellIndex) -> float:
        return float(np.linalg.norm(self.upper[cell] - self.lower[cell]))

    def face_points(self, cell: CellIndex) -> np.ndarray:
        """Face centers, ordered x-, x+, y-, y+, z-, z+."""
        center = self.center(cell)
        points = np.tile(center, (6, 1))
        for axis in range(3):
            points[2 * axis, axis] = self.lower[cell, axis]
            points[2 * axis + 1, axis] = self.upper[cell, axis]
        return points

    def faces(self, cell: CellIndex) -> typing.Tuple[CellFace, ...]:
        """Face topology, ordered x-, x+, y-, y+, z-, z+."""
        faces = self._faces.get(cell)
        if faces is None:
            faces = self._build_faces(cell)
            self._faces[cell] = faces
        return faces

    def _build_faces(self, cell: CellIndex) -> typing.Tuple[CellFace, ...]:
        tolerance = self.tolerance
        level = self.levels[cell]
        faces = []
        for axis in range(3):
            for side in (0, 1):
                normal = np.zeros(3)
                normal[axis] = 1.0 if side == 1 else -1.0
                found = _find_face_neighbors(
                    self.lower, self.upper, cell, axis, side, tolerance
                )
                neighbors = tuple(
                    FaceNeighbor(cell=int(other), normal=normal) for other in found
                )
                if not neighbors:
                    relation = FaceRelation.BOUNDARY
                elif len(neighbors) == 1 and self.levels[found[0]] == level:
                    relation = FaceRelation.SAME_LEVEL
                elif len(neighbors) == 1 and self.levels[found[0]] < level:
                    relation = FaceRelation.COARSER
                else:
                    relation = FaceRelation.REFINED
                faces.append(
                    CellFace(index=2 * axis + side, relation=relation, neighbors=neighbors)
                )
        return tuple(faces)

    def locate_point(self, point: PointLike) -> typing.Optional[CellIndex]:
        """
        Find the cell containing a point, searching all cells.

        :param point: The point to locate.
        :return: The highest index among the cells containing the point (points on shared
            faces lie in several cells), or None if the point is outside the mesh.
        """
        point = np.asarray(point, dtype=np.float64)
        inside = np.all((self.lower <= point) & (point <= self.upper), axis=1)
        found = np.flatnonzero(inside)
        if found.size == 0:
            return None
        return int(found[-1])

    def refine(self, cells: typing.Iterable[CellIndex]) -> Self:
        """
        Split cells into eight children each.

        Cells are renumbered: each refined cell is replaced, in place, by its children
        (x varying fastest, then y, then z), and all following cells are shifted. The
        returned mesh is not restricted to a partition.

        :param cells: Cells to refine.
        :return: The refined mesh. This mesh is left untouched.
        """
        marked = set(int(cell) for cell in cells)
        invalid = [cell for cell in marked if cell < 0 or cell >= self.n_cells]
        if invalid:
            raise ValidationError(f"Cannot refine unknown cells {sorted(invalid)}.")

        lower, upper, levels = [], [], []
        for cell in range(self.n_cells):
            if cell not in marked:
                lower.append(self.lower[cell])
                upper.append(self.upper[cell])
                levels.append(self.levels[cell])
                continue
            middle = self.center(cell)
            for k in (0, 1):
                for j in (0, 1):
                    for i in (0, 1):
                        bits = np.array([i, j, k], dtype=bool)
                        lower.append(np.where(bits, middle, self.lower[cell]))
                        upper.append(np.where(bits, self.upper[cell], middle))
                        levels.append(self.levels[cell] + 1)

        logger.debug(
            f"Refined {len(marked)} cells: {self.n_cells} -> {len(levels)} cells"
        )
        return type(self)(lower=lower, upper=upper, levels=levels)

    def restrict(self, cells: typing.Iterable[CellIndex]) -> Self:
        """
        Restrict the locally visible cells, as for one partition of a distributed mesh.

        :param cells: The locally owned and ghost cells.
        :return: A view of this mesh iterating only the given cells.
        """
        return type(self)(
            lower=self.lower,
            upper=self.upper,
            levels=self.levels,
            local_cells=tuple(cells),
        )
