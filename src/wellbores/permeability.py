"""Permeability fields sampled by the productivity model."""

import typing

import attrs
import numpy as np
from scipy.interpolate import RegularGridInterpolator

from wellbores.errors import ValidationError
from wellbores.types import Permeability, Point

__all__ = [
    "PermeabilityField",
    "UniformPermeability",
    "GriddedPermeability",
    "validate_permeability",
]


@typing.runtime_checkable
class PermeabilityField(typing.Protocol):
    """
    Protocol for anisotropic (diagonal) permeability fields.

    Any callable mapping a point to (kx, ky, kz) satisfies it.
    """

    def __call__(self, point: Point) -> typing.Sequence[float]:
        """
        Get the permeability at a point.

        :param point: The point, as a (3,) array.
        :return: The diagonal permeability (kx, ky, kz).
        """
        ...


def validate_permeability(value: typing.Sequence[float]) -> Permeability:
    """
    Check that a permeability has three finite, positive components.

    :param value: The permeability to check.
    :return: The permeability as a tuple of floats.
    :raises ValidationError: If the permeability is invalid.
    """
    array = np.asarray(value, dtype=np.float64).reshape(-1)
    if array.size != 3:
        raise ValidationError(
            f"Permeability must have 3 components (kx, ky, kz), got {array.size}."
        )
    if not np.all(np.isfinite(array)) or np.any(array <= 0):
        raise ValidationError(
            f"Permeability components must be finite and positive, got {array.tolist()}."
        )
    return typing.cast(Permeability, tuple(float(k) for k in array))


@attrs.frozen
class UniformPermeability:
    """Spatially constant permeability."""

    kx: float = attrs.field(converter=float)
    """Permeability along x."""
    ky: typing.Optional[float] = None
    """Permeability along y. Defaults to `kx`."""
    kz: typing.Optional[float] = None
    """Permeability along z. Defaults to `kx`."""

    def __attrs_post_init__(self) -> None:
        validate_permeability(self.value)

    @classmethod
    def from_anisotropy(
        cls, permeability: float, anisotropy: typing.Sequence[float] = (1.0, 1.0, 1.0)
    ) -> "UniformPermeability":
        """
        Build from a scalar permeability and per-axis anisotropy multipliers.

        :param permeability: Reference permeability.
        :param anisotropy: Multipliers applied to the reference along x, y and z.
        :return: The permeability field.
        """
        kx, ky, kz = validate_permeability(
            np.asarray(anisotropy, dtype=np.float64) * float(permeability)
        )
        return cls(kx=kx, ky=ky, kz=kz)

    @property
    def value(self) -> Permeability:
        ky = self.kx if self.ky is None else float(self.ky)
        kz = self.kx if self.kz is None else float(self.kz)
        return (self.kx, ky, kz)

    def __call__(self, point: Point) -> Permeability:
        return self.value


class GriddedPermeability:
    """
    Permeability given on the cells of a rectilinear property grid.

    Values are looked up by nearest cell center. Points outside the grid take the value of
    the closest boundary cell.
    """

    def __init__(
        self,
        x: typing.Sequence[float],
        y: typing.Sequence[float],
        z: typing.Sequence[float],
        values: np.typing.ArrayLike,
    ) -> None:
        """
        Build the field.

        :param x: Cell-center coordinates along x (strictly increasing).
        :param y: Cell-center coordinates along y (strictly increasing).
        :param z: Cell-center coordinates along z (strictly increasing).
        :param values: Permeabilities, as an (nx, ny, nz, 3) array of (kx, ky, kz),
            or an (nx, ny, nz) array for isotropic permeability.
        """
        axes = tuple(
            np.asarray(coordinates, dtype=np.float64).reshape(-1) for coordinates in (x, y, z)
        )
        if any(axis.size == 0 for axis in axes):
            raise ValidationError("At least one cell-center coordinate is required per axis.")
        shape = tuple(axis.size for axis in axes)
        values = np.asarray(values, dtype=np.float64)
        if values.shape == shape:
            values = np.repeat(values[..., np.newaxis], 3, axis=-1)
        if values.shape != shape + (3,):
            raise ValidationError(
                f"Permeability values must have shape {shape} or {shape + (3,)}, "
                f"got {values.shape}."
            )
        if not np.all(np.isfinite(values)) or np.any(values <= 0):
            raise ValidationError("Permeability values must be finite and positive.")

        if any(np.any(np.diff(axis) <= 0) for axis in axes):
            raise ValidationError("Cell-center coordinates must be strictly increasing.")

        self.axes = axes
        self.values = values
        self._lower = np.array([axis[0] for axis in axes])
        self._upper = np.array([axis[-1] for axis in axes])

        # The interpolator needs two points along every axis
        grid_axes = list(axes)
        grid_values = values
        for dimension, axis in enumerate(axes):
            if axis.size == 1:
                grid_axes[dimension] = np.array([axis[0], axis[0] + 1.0])
                grid_values = np.repeat(grid_values, 2, axis=dimension)
        self.interpolator = RegularGridInterpolator(
            tuple(grid_axes),
            grid_values,
            method="nearest",
            bounds_error=False,
            fill_value=None,
        )

    def __call__(self, point: Point) -> Permeability:
        point = np.clip(np.asarray(point, dtype=np.float64), self._lower, self._upper)
        kx, ky, kz = self.interpolator(point.reshape(1, 3))[0]
        return (float(kx), float(ky), float(kz))
