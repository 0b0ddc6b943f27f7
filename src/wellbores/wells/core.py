"""Core well calculations."""

import logging
import typing

import numba
import numpy as np

from wellbores.constants import c
from wellbores.errors import ComputationError
from wellbores.types import Axis, CellExtents, Permeability

logger = logging.getLogger(__name__)

__all__ = [
    "compute_peaceman_radius",
    "compute_well_index",
    "compute_directional_well_indices",
    "compute_productivity_index",
]


@numba.njit(cache=True)
def compute_peaceman_radius(
    k1: float,
    k2: float,
    dx1: float,
    dx2: float,
    coefficient: float = 0.28,
) -> float:
    """
    Compute Peaceman's equivalent well-block radius for anisotropic permeability.

    The formula is given by:

        r_eq = 0.28 * √[ √(k2/k1) * ∆x1² + √(k1/k2) * ∆x2² ] / [ (k2/k1)^¼ + (k1/k2)^¼ ]

    where:
        - k1, k2 are the permeabilities along the two axes orthogonal to the well.
        - ∆x1, ∆x2 are the cell extents along those axes.

    For isotropic permeability and square cells this reduces to r_eq = 0.14 * √2 * ∆x ≈ 0.198 ∆x.

    :param k1: Permeability along the first axis orthogonal to the well.
    :param k2: Permeability along the second axis orthogonal to the well.
    :param dx1: Cell extent along the first orthogonal axis.
    :param dx2: Cell extent along the second orthogonal axis.
    :param coefficient: Peaceman coefficient (0.28).
    :return: The equivalent radius.
    """
    ratio = k2 / k1
    numerator = np.sqrt(np.sqrt(ratio) * dx1**2 + np.sqrt(1.0 / ratio) * dx2**2)
    denominator = ratio**0.25 + (1.0 / ratio) ** 0.25
    return coefficient * numerator / denominator


@numba.njit(cache=True)
def compute_well_index(
    k1: float,
    k2: float,
    length: float,
    wellbore_radius: float,
    equivalent_radius: float,
    skin_factor: float = 0.0,
) -> float:
    """
    Compute the well index of a well section aligned with one axis, using the Peaceman equation.

    The formula is:

        J = 2π * √(k1 * k2) * L / (ln(r_eq / r_w) + s)

    where:
        - k1, k2 are the permeabilities orthogonal to the well section.
        - L is the length of the well section.
        - r_eq is Peaceman's equivalent radius.
        - r_w is the wellbore radius.
        - s is the skin factor.

    :param k1: Permeability along the first axis orthogonal to the well.
    :param k2: Permeability along the second axis orthogonal to the well.
    :param length: Length of the well section.
    :param wellbore_radius: Radius of the wellbore.
    :param equivalent_radius: Peaceman's equivalent radius.
    :param skin_factor: Skin factor (dimensionless).
    :return: The well index.
    """
    return (
        2.0
        * np.pi
        * np.sqrt(k1 * k2)
        * length
        / (np.log(equivalent_radius / wellbore_radius) + skin_factor)
    )


def compute_directional_well_indices(
    extents: CellExtents,
    permeability: Permeability,
    length: float,
    direction: typing.Sequence[float],
    wellbore_radius: float,
    skin_factor: float = 0.0,
) -> np.typing.NDArray[np.float64]:
    """
    Compute the well index of a cell's well section projected on each coordinate axis.

    The well section is treated as three sections aligned with the x, y and z axes, of
    length `length * |direction[m]|`. Axes the well has no projection on contribute zero.

    :param extents: Cell extents (dx, dy, dz).
    :param permeability: Diagonal permeability (kx, ky, kz) in the cell.
    :param length: Length of the well inside the cell.
    :param direction: Direction of the well inside the cell.
    :param wellbore_radius: Radius of the wellbore.
    :param skin_factor: Skin factor (dimensionless).
    :return: The well indices (J_x, J_y, J_z).
    :raises ComputationError: If the Peaceman log term ln(r_eq / r_w) + s is not positive
        for an axis the well projects on. The cell is too small relative to the
        wellbore radius for the Peaceman correction to be valid.
    """
    coefficient = float(c.PEACEMAN_RADIUS_COEFFICIENT)
    indices = np.zeros(3, dtype=np.float64)
    for axis in Axis:
        axis_length = float(length) * abs(float(direction[axis]))
        if axis_length == 0.0:
            continue
        first, second = axis.orthogonal
        k1, k2 = float(permeability[first]), float(permeability[second])
        equivalent_radius = compute_peaceman_radius(
            k1, k2, float(extents[first]), float(extents[second]), coefficient
        )
        log_term = np.log(equivalent_radius / wellbore_radius) + skin_factor
        if not log_term > 0.0:
            raise ComputationError(
                f"Peaceman formula is not valid along {axis.name.lower()}: "
                f"ln(r_eq/r_w) + s = {log_term:.6g} <= 0 (r_eq={equivalent_radius:.6g}, "
                f"r_w={wellbore_radius:.6g}, s={skin_factor:.6g}). "
                "The cell is probably too small relative to the wellbore radius."
            )
        indices[axis] = compute_well_index(
            k1, k2, axis_length, wellbore_radius, equivalent_radius, skin_factor
        )
    return indices


def compute_productivity_index(
    extents: CellExtents,
    permeability: Permeability,
    length: float,
    direction: typing.Sequence[float],
    wellbore_radius: float,
    skin_factor: float = 0.0,
) -> float:
    """
    Compute the scalar productivity index of a cell's well section.

    This is the Euclidean norm of the per-axis well indices. For wells that are not
    aligned with an axis this combination is an approximation without a rigorous
    derivation, and should be reviewed for strongly deviated wells.

    :param extents: Cell extents (dx, dy, dz).
    :param permeability: Diagonal permeability (kx, ky, kz) in the cell.
    :param length: Length of the well inside the cell.
    :param direction: Direction of the well inside the cell.
    :param wellbore_radius: Radius of the wellbore.
    :param skin_factor: Skin factor (dimensionless).
    :return: The productivity index.
    """
    indices = compute_directional_well_indices(
        extents=extents,
        permeability=permeability,
        length=length,
        direction=direction,
        wellbore_radius=wellbore_radius,
        skin_factor=skin_factor,
    )
    return float(np.linalg.norm(indices))
