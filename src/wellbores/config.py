import typing

import attrs

from wellbores.constants import c

__all__ = ["Config"]


@attrs.frozen
class Config:
    """Well-to-grid coupling configuration and tolerances."""

    geometry_tolerance: float = attrs.field(
        factory=lambda: c.SMALL_NUMBER_GEOMETRY,
        validator=attrs.validators.and_(attrs.validators.gt(0), attrs.validators.lt(1)),
    )
    """
    Relative perturbation used by tolerant point-in-cell tests.

    A point is considered inside a cell if it, or the point shifted by
    `geometry_tolerance * cell_diameter` along any coordinate axis, lies in the cell.
    """
    distance_tolerance: float = attrs.field(
        factory=lambda: c.SMALL_NUMBER,
        validator=attrs.validators.and_(attrs.validators.ge(0), attrs.validators.lt(1)),
    )
    """
    Relative tolerance (times cell diameter) used when comparing how close a cell and
    its neighbor are to the well during the face-alignment tie-break.
    """
    small_angle: float = attrs.field(
        factory=lambda: c.SMALL_ANGLE,
        validator=attrs.validators.and_(attrs.validators.gt(0), attrs.validators.lt(1)),
    )
    """
    Angle (rad) below which a well is considered to run in the plane of a face.
    """
    march_step_fraction: typing.Optional[float] = attrs.field(
        default=None,
        validator=attrs.validators.optional(
            attrs.validators.and_(attrs.validators.gt(0), attrs.validators.le(0.1))
        ),
    )
    """
    Marching step used to integrate the in-cell well length, as a fraction of the segment length.

    Defaults to `geometry_tolerance` when not set. Smaller steps are more accurate but
    proportionally slower. Capped at 0.1 since coarser steps skip whole cells.
    """

    @property
    def step_fraction(self) -> float:
        """Effective marching step fraction."""
        if self.march_step_fraction is None:
            return self.geometry_tolerance
        return self.march_step_fraction
