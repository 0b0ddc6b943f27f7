"""Binding of well trajectories to the mesh cells they pass through."""

import logging
import math
import typing

import attrs
import numpy as np

from wellbores.config import Config
from wellbores.constants import c
from wellbores.errors import ValidationError
from wellbores.grids.base import MeshAdapter, compute_cell_extents, point_inside_cell
from wellbores.trajectory import Segment, WellTrajectory
from wellbores.types import CellIndex, Point, Vector

logger = logging.getLogger(__name__)

__all__ = ["BoundCell", "CellBinding", "CellBinder"]


@attrs.frozen(slots=True, eq=False)
class BoundCell:
    """A mesh cell occupied by a well."""

    cell: CellIndex
    """Stable index of the cell."""
    length: float
    """Length of the well inside the cell."""
    direction: Vector
    """
    Direction of the well inside the cell.

    Unit tangent of the trajectory segment for cells crossed by a single segment. For cells
    crossed by several segments, the running arithmetic mean of the segment tangents,
    which is not re-normalized.
    """


def _sort_entries(entries: typing.Iterable[BoundCell]) -> typing.Tuple[BoundCell, ...]:
    return tuple(sorted(entries, key=lambda entry: entry.cell))


@attrs.frozen(eq=False)
class CellBinding:
    """
    The cells occupied by a well, ordered by cell index.

    A cell appears at most once.
    """

    entries: typing.Tuple[BoundCell, ...] = attrs.field(
        factory=tuple, converter=_sort_entries
    )
    """Bound cells, in increasing cell index order."""
    positions: typing.Dict[CellIndex, int] = attrs.field(init=False, repr=False)
    """Map of cell index to position in `entries`."""

    @positions.default
    def _build_positions(self) -> typing.Dict[CellIndex, int]:
        positions = {entry.cell: position for position, entry in enumerate(self.entries)}
        if len(positions) != len(self.entries):
            raise ValidationError("A cell can only be bound once per well.")
        return positions

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> typing.Iterator[BoundCell]:
        return iter(self.entries)

    def __contains__(self, cell: CellIndex) -> bool:
        return cell in self.positions

    def __getitem__(self, cell: CellIndex) -> BoundCell:
        """Get the binding of a cell, by cell index."""
        return self.entries[self.positions[cell]]

    def get(self, cell: CellIndex) -> typing.Optional[BoundCell]:
        position = self.positions.get(cell)
        return None if position is None else self.entries[position]

    def position(self, cell: CellIndex) -> typing.Optional[int]:
        """Position of a cell in the binding order, or None if the cell is not bound."""
        return self.positions.get(cell)

    @property
    def cells(self) -> typing.Tuple[CellIndex, ...]:
        return tuple(entry.cell for entry in self.entries)

    @property
    def lengths(self) -> np.typing.NDArray[np.float64]:
        return np.array([entry.length for entry in self.entries], dtype=np.float64)

    @property
    def directions(self) -> np.typing.NDArray[np.float64]:
        return np.array(
            [entry.direction for entry in self.entries], dtype=np.float64
        ).reshape(-1, 3)

    @property
    def total_length(self) -> float:
        return float(self.lengths.sum())


class CellBinder:
    """
    Finds the mesh cells a well passes through, and the length and direction of the
    well inside each of them.
    """

    def __init__(self, config: typing.Optional[Config] = None) -> None:
        """
        :param config: Binding tolerances. Defaults to `Config()`.
        """
        self.config = config or Config()

    def bind(self, mesh: MeshAdapter, trajectory: WellTrajectory) -> CellBinding:
        """
        Bind a well trajectory to the locally visible cells of a mesh.

        The result does not depend on the order the mesh yields cells in. Wells entirely
        outside the (local) mesh bind to no cells.

        :param mesh: The mesh.
        :param trajectory: The well trajectory.
        :return: The binding of the well to the mesh cells.
        """
        if trajectory.is_point_well:
            entries = self._bind_point(mesh, trajectory.points[0])
        else:
            entries = self._bind_segments(mesh, trajectory)

        binding = CellBinding(entries)
        logger.debug(
            f"Well {trajectory.name or '<unnamed>'!s} bound to {len(binding)} cells "
            f"(length {binding.total_length:.6g} of {trajectory.length:.6g})"
        )
        return binding

    def _bind_point(self, mesh: MeshAdapter, point: Point) -> typing.List[BoundCell]:
        # Points on shared faces lie in several cells. Only one may claim the well.
        candidates = [cell for cell in mesh.cells() if mesh.contains(cell, point)]
        if not candidates:
            return []
        cell = max(candidates)
        extents = compute_cell_extents(mesh, cell)
        direction = np.array(c.SINGLE_POINT_WELL_DIRECTION, dtype=np.float64)
        return [BoundCell(cell=cell, length=extents[2], direction=direction)]

    def _bind_segments(
        self, mesh: MeshAdapter, trajectory: WellTrajectory
    ) -> typing.List[BoundCell]:
        cells = np.array(sorted(mesh.cells()), dtype=np.int64)
        if cells.size == 0:
            return []
        centers = np.array([mesh.center(cell) for cell in cells], dtype=np.float64)
        diameters = np.array([mesh.diameter(cell) for cell in cells], dtype=np.float64)

        lengths: typing.Dict[CellIndex, float] = {}
        directions: typing.Dict[CellIndex, Vector] = {}
        for segment in trajectory.segments:
            for position in self._candidates(segment, centers, diameters):
                cell = int(cells[position])
                length = self._bind_segment_to_cell(
                    mesh=mesh,
                    cell=cell,
                    center=centers[position],
                    diameter=float(diameters[position]),
                    segment=segment,
                )
                if length is None:
                    continue
                tangent = segment.tangent
                if cell not in lengths:
                    lengths[cell] = length
                    directions[cell] = tangent.copy()
                else:
                    lengths[cell] += length
                    directions[cell] = 0.5 * (directions[cell] + tangent)

        return [
            BoundCell(cell=cell, length=lengths[cell], direction=directions[cell])
            for cell in lengths
        ]

    @staticmethod
    def _candidates(
        segment: Segment, centers: np.ndarray, diameters: np.ndarray
    ) -> np.ndarray:
        """
        Positions of the cells that may intersect the segment.

        A cell whose center lies farther than its diameter from the segment line, or whose
        center projects farther than its diameter beyond the segment ends, can neither
        contain the projection of its center nor an endpoint of the segment.
        """
        tangent = segment.tangent
        t = (centers - segment.start) @ tangent
        offsets = segment.start + np.outer(t, tangent) - centers
        distances = np.linalg.norm(offsets, axis=1)
        mask = (
            (distances <= diameters)
            & (t >= -diameters)
            & (t <= segment.length + diameters)
        )
        return np.flatnonzero(mask)

    def _bind_segment_to_cell(
        self,
        mesh: MeshAdapter,
        cell: CellIndex,
        center: Point,
        diameter: float,
        segment: Segment,
    ) -> typing.Optional[float]:
        """
        Get the length of a segment inside a cell.

        :return: The length, or None if the cell does not claim the segment.
        """
        x0, x1 = segment.start, segment.end
        tangent = segment.tangent
        segment_length = segment.length
        tolerance = self.config.geometry_tolerance * diameter

        t = float(np.dot(center - x0, tangent))
        nearest = segment.point_at(t)
        if not point_inside_cell(mesh, cell, nearest, tolerance):
            return None

        if (t < 0.0 or t > segment_length) and not (
            mesh.contains(cell, x0) or mesh.contains(cell, x1)
        ):
            return None

        if self._is_claimed_by_neighbor(
            mesh=mesh,
            cell=cell,
            center=center,
            diameter=diameter,
            nearest=nearest,
            tangent=tangent,
        ):
            return None

        # Integration starts at x0 (t < 0), x1 (t > L) or the projection of the center
        start = min(max(t, 0.0), segment_length)
        return self._integrate_length(
            mesh=mesh,
            cell=cell,
            segment=segment,
            start=start,
            tolerance=tolerance,
        )

    def _is_claimed_by_neighbor(
        self,
        mesh: MeshAdapter,
        cell: CellIndex,
        center: Point,
        diameter: float,
        nearest: Point,
        tangent: Vector,
    ) -> bool:
        """
        Check whether a neighbor cell claims the well instead of `cell`.

        A well lying in the plane of an interior (sub)face is seen by the cells on both
        sides of it. Among the neighbors that also contain the well, the cell whose center
        is closest to the well line claims it. On ties, the cell with the larger index does.

        :param nearest: Projection of the cell center on the well line.
        :param tangent: Unit tangent of the well segment.
        """
        tolerance = self.config.geometry_tolerance * diameter
        distance_tolerance = self.config.distance_tolerance * diameter
        max_sine = math.sin(self.config.small_angle)
        distance = float(np.linalg.norm(nearest - center))
        face_points = np.asarray(mesh.face_points(cell), dtype=np.float64).reshape(-1, 3)

        for face in mesh.faces(cell):
            if face.at_boundary:
                continue
            face_point = face_points[face.index]
            for neighbor in face.neighbors:
                normal = np.asarray(neighbor.normal, dtype=np.float64)
                normal = normal / np.linalg.norm(normal)
                # The well must run in the face plane
                if abs(float(np.dot(tangent, normal))) > max_sine:
                    continue
                if abs(float(np.dot(nearest - face_point, normal))) > tolerance:
                    continue
                if not point_inside_cell(mesh, neighbor.cell, nearest, tolerance):
                    continue

                offset = np.asarray(mesh.center(neighbor.cell), dtype=np.float64) - nearest
                offset = offset - np.dot(offset, tangent) * tangent
                neighbor_distance = float(np.linalg.norm(offset))
                if neighbor_distance < distance - distance_tolerance:
                    return True
                if (
                    abs(neighbor_distance - distance) <= distance_tolerance
                    and neighbor.cell > cell
                ):
                    return True
        return False

    def _integrate_length(
        self,
        mesh: MeshAdapter,
        cell: CellIndex,
        segment: Segment,
        start: float,
        tolerance: float,
    ) -> float:
        """
        Integrate the length of a segment inside a cell by marching from a start point.

        The march proceeds with a fixed step forward then backward from `start`, as long as
        the point stays inside the cell and on the segment. This works for any convex cell
        without clipping the segment against the cell geometry.

        :param start: Arc-length position of the start point on the segment.
        :return: The length of the segment inside the cell.
        """
        segment_length = segment.length
        step = segment_length * self.config.step_fraction

        length = 0.0
        for sign in (1.0, -1.0):
            t = previous = start
            while 0.0 <= t <= segment_length and point_inside_cell(
                mesh, cell, segment.point_at(t), tolerance
            ):
                # Unit tangent, so the step length is the change in arc length
                length += abs(t - previous)
                previous = t
                t += sign * step
        return length
