"""Well controls and allocation of well sources to bound cells."""

import logging
import typing

import attrs
import numpy as np

from wellbores._precision import get_dtype
from wellbores.errors import ValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "BHPControl",
    "TotalRateControl",
    "WellControl",
    "check_control",
    "local_productivity_sum",
    "allocate",
    "ControlAllocator",
]


def _check_finite(instance, attribute, value) -> None:
    if value is not None and not np.isfinite(value):
        raise ValidationError(f"{attribute.name} must be finite, got {value}.")


_optional_float = attrs.converters.optional(float)


@attrs.frozen
class BHPControl:
    """
    Bottom hole pressure (BHP) control.

    Each bound cell contributes `J = productivity` to the system matrix and
    `Q = bottom_hole_pressure * productivity` to the right-hand side.
    """

    bottom_hole_pressure: float = attrs.field(converter=float, validator=_check_finite)
    """Well bottom-hole flowing pressure."""
    skin_factor: typing.Optional[float] = attrs.field(
        default=None, converter=_optional_float, validator=_check_finite
    )
    """Skin factor override. None keeps the trajectory's skin factor."""

    @property
    def value(self) -> float:
        return self.bottom_hole_pressure


@attrs.frozen
class TotalRateControl:
    """
    Total rate control.

    The target rate is distributed over the bound cells in proportion to their
    productivities. Cells contribute only to the right-hand side (`J = 0`).
    """

    target_rate: float = attrs.field(converter=float, validator=_check_finite)
    """Total well rate to distribute."""
    skin_factor: typing.Optional[float] = attrs.field(
        default=None, converter=_optional_float, validator=_check_finite
    )
    """Skin factor override. None keeps the trajectory's skin factor."""

    @property
    def value(self) -> float:
        return self.target_rate


WellControl = typing.Union[BHPControl, TotalRateControl]
"""A well control variant."""


def check_control(control: typing.Any) -> WellControl:
    """
    Check that `control` is a known well control variant.

    :raises ValidationError: If it is not.
    """
    if not isinstance(control, (BHPControl, TotalRateControl)):
        raise ValidationError(
            f"Unknown well control {control!r}. Expected one of: BHPControl, TotalRateControl."
        )
    return control


def local_productivity_sum(productivities: np.typing.ArrayLike) -> float:
    """
    Sum of the productivities of the locally bound cells of a well.

    On a partitioned mesh this is a partial sum. Reduce it over all partitions before
    passing it to `allocate` as `total_productivity`.
    """
    return float(np.sum(np.asarray(productivities, dtype=np.float64)))


def allocate(
    control: WellControl,
    productivities: np.typing.ArrayLike,
    total_productivity: typing.Optional[float] = None,
) -> typing.Tuple[np.typing.NDArray, np.typing.NDArray]:
    """
    Compute the well source terms of the bound cells of a well.

    :param control: The well control.
    :param productivities: Productivities of the bound cells.
    :param total_productivity: Productivity sum over all bound cells, for rate control
        on partitioned meshes. Defaults to the local sum.
    :return: The `(J, Q)` arrays, one entry per bound cell.
    :raises ValidationError: If the control is not a known control variant.
    """
    check_control(control)
    dtype = get_dtype()
    productivities = np.asarray(productivities, dtype=np.float64)

    if isinstance(control, BHPControl):
        j = productivities.astype(dtype, copy=True)
        q = control.bottom_hole_pressure * j
        return j, q

    j = np.zeros(productivities.shape, dtype=dtype)
    total = (
        local_productivity_sum(productivities)
        if total_productivity is None
        else float(total_productivity)
    )
    if total == 0.0:
        if productivities.size and control.target_rate != 0.0:
            logger.warning(
                f"Total productivity is zero, the target rate {control.target_rate:.6g} "
                "cannot be allocated"
            )
        return j, np.zeros(productivities.shape, dtype=dtype)
    q = (control.target_rate * productivities / total).astype(dtype)
    return j, q


class ControlAllocator:
    """
    Allocates the source terms of a well under its current control.

    Keeps the productivities of a well's bound cells, in binding order, and answers
    per-cell `(J, Q)` queries.
    """

    def __init__(
        self,
        cells: typing.Sequence[int],
        productivities: np.typing.ArrayLike,
    ) -> None:
        """
        :param cells: Bound cells, in binding order.
        :param productivities: Productivity of each bound cell.
        """
        self.cells = tuple(int(cell) for cell in cells)
        self.productivities = np.asarray(productivities, dtype=np.float64).reshape(-1)
        if self.productivities.size != len(self.cells):
            raise ValidationError(
                f"Got {self.productivities.size} productivities for {len(self.cells)} cells."
            )
        self._positions = {cell: position for position, cell in enumerate(self.cells)}

    def local_productivity_sum(self) -> float:
        return local_productivity_sum(self.productivities)

    def allocate(
        self,
        control: WellControl,
        total_productivity: typing.Optional[float] = None,
    ) -> typing.Tuple[np.typing.NDArray, np.typing.NDArray]:
        """Compute `(J, Q)` for all bound cells. See `allocate`."""
        return allocate(control, self.productivities, total_productivity)

    def get_J_and_Q(
        self,
        cell: int,
        control: WellControl,
        total_productivity: typing.Optional[float] = None,
    ) -> typing.Tuple[float, float]:
        """
        Get the source term of one cell.

        :param cell: The cell index.
        :param control: The well control.
        :param total_productivity: Global productivity sum, for rate control.
        :return: `(J, Q)` for the cell, `(0.0, 0.0)` if the well is not bound to it.
        """
        check_control(control)
        position = self._positions.get(cell)
        if position is None:
            return 0.0, 0.0

        productivity = float(self.productivities[position])
        if isinstance(control, BHPControl):
            return productivity, control.bottom_hole_pressure * productivity

        total = (
            self.local_productivity_sum()
            if total_productivity is None
            else float(total_productivity)
        )
        if total == 0.0:
            return 0.0, 0.0
        return 0.0, control.target_rate * productivity / total
