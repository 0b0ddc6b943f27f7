"""Well trajectory data model."""

import typing

import attrs
import numpy as np

from wellbores.errors import ValidationError
from wellbores.types import Points, PointLike, Vector

__all__ = ["WellTrajectory", "Segment"]


def _as_points(value: typing.Union[Points, typing.Sequence[PointLike]]) -> Points:
    points = np.array(value, dtype=np.float64, copy=True)
    if points.ndim == 1 and points.size == 3:
        points = points.reshape(1, 3)
    points.setflags(write=False)
    return points


def _validate_points(instance: "WellTrajectory", attribute, points: Points) -> None:
    if points.size == 0:
        raise ValidationError("A well trajectory needs at least one point.")
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValidationError(
            f"Trajectory points must be an (N, 3) array, got shape {points.shape}."
        )
    if not np.all(np.isfinite(points)):
        raise ValidationError("Trajectory points must be finite.")
    # Zero-length segments have no direction
    lengths = np.linalg.norm(np.diff(points, axis=0), axis=1)
    duplicates = np.flatnonzero(lengths <= 0.0)
    if duplicates.size:
        index = int(duplicates[0])
        raise ValidationError(
            f"Duplicate consecutive trajectory points at positions {index} and {index + 1}: "
            f"{points[index].tolist()}."
        )


@attrs.frozen(slots=True, eq=False)
class Segment:
    """A straight section of a well trajectory between two consecutive control points."""

    start: Vector
    """Start point of the segment."""
    end: Vector
    """End point of the segment."""

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))

    @property
    def tangent(self) -> Vector:
        """Unit vector pointing from start to end."""
        return (self.end - self.start) / self.length

    def point_at(self, t: float) -> Vector:
        """Point at arc-length `t` from the start (not clipped to the segment)."""
        return self.start + self.tangent * t


@attrs.frozen(eq=False)
class WellTrajectory:
    """
    Models the path of a wellbore through the reservoir.

    The trajectory is a polyline through ordered control points. A trajectory with a
    single point denotes a vertical point well.
    """

    points: Points = attrs.field(converter=_as_points, validator=_validate_points)
    """Ordered control points of the trajectory, as an (N, 3) array."""
    radius: float = attrs.field(converter=float)
    """Radius of the wellbore."""
    skin_factor: float = attrs.field(default=0.0, converter=float)
    """Skin factor of the well (dimensionless). Negative for stimulated wells."""
    name: typing.Optional[str] = None
    """Optional name of the well."""

    @radius.validator
    def _check_radius(self, attribute, value: float) -> None:
        if not value > 0:
            raise ValidationError(f"Well radius should be a positive number, got {value}.")

    @skin_factor.validator
    def _check_skin_factor(self, attribute, value: float) -> None:
        if not np.isfinite(value):
            raise ValidationError(f"Skin factor must be finite, got {value}.")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WellTrajectory):
            return NotImplemented
        return (
            np.array_equal(self.points, other.points)
            and self.radius == other.radius
            and self.skin_factor == other.skin_factor
            and self.name == other.name
        )

    def __hash__(self) -> int:
        return hash(
            (self.points.tobytes(), self.radius, self.skin_factor, self.name)
        )

    @property
    def is_point_well(self) -> bool:
        """Whether the trajectory is a single (vertical) point well."""
        return self.points.shape[0] == 1

    @property
    def segments(self) -> typing.List[Segment]:
        """Straight segments between consecutive control points. Empty for point wells."""
        return [
            Segment(start=self.points[i - 1], end=self.points[i])
            for i in range(1, self.points.shape[0])
        ]

    @property
    def segment_lengths(self) -> np.typing.NDArray[np.float64]:
        return np.linalg.norm(np.diff(self.points, axis=0), axis=1)

    @property
    def length(self) -> float:
        """Total measured length of the trajectory."""
        return float(self.segment_lengths.sum())
