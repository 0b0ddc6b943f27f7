"""Productivity of the cells bound to a well."""

import logging

import numpy as np

from wellbores._precision import get_dtype
from wellbores.errors import ComputationError
from wellbores.grids.base import MeshAdapter, compute_cell_extents
from wellbores.permeability import PermeabilityField, validate_permeability
from wellbores.wells.binding import CellBinding
from wellbores.wells.core import compute_productivity_index

logger = logging.getLogger(__name__)

__all__ = ["ProductivityCalculator"]


class ProductivityCalculator:
    """
    Computes the Peaceman productivity index of each cell a well is bound to.
    """

    def __init__(self, mesh: MeshAdapter, permeability: PermeabilityField) -> None:
        """
        :param mesh: The mesh the well is bound to.
        :param permeability: Diagonal permeability field, sampled at cell centers.
        """
        self.mesh = mesh
        self.permeability = permeability

    def compute(
        self,
        binding: CellBinding,
        wellbore_radius: float,
        skin_factor: float = 0.0,
    ) -> np.typing.NDArray:
        """
        Compute the productivities of the bound cells.

        :param binding: The cells the well is bound to.
        :param wellbore_radius: Radius of the wellbore.
        :param skin_factor: Skin factor of the well.
        :return: Productivity of each bound cell, in binding order.
        :raises ValidationError: If the permeability in a bound cell is not positive.
        :raises ComputationError: If the Peaceman formula is not valid in a bound cell.
        """
        productivities = np.zeros(len(binding), dtype=get_dtype())
        for position, entry in enumerate(binding):
            extents = compute_cell_extents(self.mesh, entry.cell)
            permeability = validate_permeability(
                self.permeability(np.asarray(self.mesh.center(entry.cell)))
            )
            try:
                productivities[position] = compute_productivity_index(
                    extents=extents,
                    permeability=permeability,
                    length=entry.length,
                    direction=entry.direction,
                    wellbore_radius=wellbore_radius,
                    skin_factor=skin_factor,
                )
            except ComputationError as exc:
                raise ComputationError(f"Cell {entry.cell}: {exc}") from exc

        if productivities.size:
            logger.debug(
                f"Computed productivities of {productivities.size} cells "
                f"(min {productivities.min():.6g}, max {productivities.max():.6g}, "
                f"sum {productivities.sum():.6g})"
            )
        return productivities
