"""Wellbores coupled to a mesh, and collections of them."""

from concurrent.futures import ThreadPoolExecutor
import logging
import typing

import attrs
import numpy as np

from wellbores._precision import get_dtype
from wellbores.config import Config
from wellbores.errors import ComputationError, ValidationError
from wellbores.grids.base import MeshAdapter
from wellbores.permeability import PermeabilityField
from wellbores.trajectory import WellTrajectory
from wellbores.types import CellIndex, ReduceSum, SourceTerm
from wellbores.wells.binding import CellBinder, CellBinding
from wellbores.wells.controls import (
    ControlAllocator,
    TotalRateControl,
    WellControl,
    check_control,
)
from wellbores.wells.productivity import ProductivityCalculator

logger = logging.getLogger(__name__)

__all__ = ["Wellbore", "Wells"]


def _validate_control(instance, attribute, value) -> None:
    check_control(value)


@attrs.define(eq=False)
class Wellbore:
    """
    A well coupled to a mesh.

    The coupling happens in two stages. `locate` binds the trajectory to the mesh cells
    and must be repeated whenever the mesh changes. `update_productivity` computes the
    productivity of each bound cell and must be repeated whenever the permeability or
    the effective skin factor changes. Source terms can then be queried under the
    current control.
    """

    trajectory: WellTrajectory
    """Path of the well through the reservoir."""
    _control: WellControl = attrs.field(
        factory=lambda: TotalRateControl(0.0), validator=_validate_control
    )
    """Current well control."""
    config: Config = attrs.field(
        factory=Config, converter=attrs.converters.default_if_none(factory=Config)
    )
    """Binding tolerances."""
    _binding: typing.Optional[CellBinding] = attrs.field(
        default=None, init=False, repr=False
    )
    _mesh: typing.Optional[MeshAdapter] = attrs.field(default=None, init=False, repr=False)
    _allocator: typing.Optional[ControlAllocator] = attrs.field(
        default=None, init=False, repr=False
    )

    @property
    def name(self) -> typing.Optional[str]:
        return self.trajectory.name

    @property
    def control(self) -> WellControl:
        return self._control

    @property
    def skin_factor(self) -> float:
        """Effective skin factor. The control's skin factor, if set, overrides the trajectory's."""
        if self._control.skin_factor is not None:
            return self._control.skin_factor
        return self.trajectory.skin_factor

    @property
    def is_located(self) -> bool:
        """Whether the well has been bound to a mesh."""
        return self._binding is not None

    @property
    def is_stale(self) -> bool:
        """Whether the productivities need to be (re)computed."""
        return self._allocator is None

    def locate(self, mesh: MeshAdapter) -> CellBinding:
        """
        Bind the well to the cells of a mesh.

        Previously computed productivities are discarded.

        :param mesh: The mesh. It is not modified.
        :return: The binding of the well to the mesh cells.
        """
        binding = CellBinder(self.config).bind(mesh, self.trajectory)
        if not binding:
            logger.warning(
                f"Well {self.name or '<unnamed>'!s} is not bound to any local cell"
            )
        self._binding = binding
        self._mesh = mesh
        self._allocator = None
        return binding

    def update_productivity(self, permeability: PermeabilityField) -> np.typing.NDArray:
        """
        Compute the productivity of each bound cell.

        :param permeability: The permeability field.
        :return: Productivity of each bound cell, in binding order.
        :raises ComputationError: If the well is not located, or the Peaceman formula is
            not valid in a bound cell.
        """
        binding = self.binding
        productivities = ProductivityCalculator(self._mesh, permeability).compute(
            binding,
            wellbore_radius=self.trajectory.radius,
            skin_factor=self.skin_factor,
        )
        self._allocator = ControlAllocator(binding.cells, productivities)
        return productivities

    def set_control(self, control: WellControl) -> None:
        """
        Change the well control.

        If the effective skin factor changes, the productivities become stale and must be
        recomputed with `update_productivity` before querying source terms.

        :param control: The new control.
        :raises ValidationError: If the control is not a known control variant.
        """
        check_control(control)
        previous_skin = self.skin_factor
        self._control = control
        if self.skin_factor != previous_skin and self._allocator is not None:
            logger.debug(
                f"Skin factor of well {self.name or '<unnamed>'!s} changed from "
                f"{previous_skin} to {self.skin_factor}. Productivities are stale."
            )
            self._allocator = None

    def _check_located(self) -> CellBinding:
        if self._binding is None:
            raise ComputationError(
                f"Well {self.name or '<unnamed>'!s} is not located. Call `locate(mesh)` first."
            )
        return self._binding

    @property
    def binding(self) -> CellBinding:
        return self._check_located()

    @property
    def mesh(self) -> typing.Optional[MeshAdapter]:
        """The mesh the well was last located on."""
        return self._mesh

    @property
    def cells(self) -> typing.Tuple[CellIndex, ...]:
        """Bound cells, in increasing index order."""
        return self.binding.cells

    def _get_allocator(self) -> ControlAllocator:
        self._check_located()
        if self._allocator is None:
            raise ComputationError(
                f"Productivities of well {self.name or '<unnamed>'!s} are stale. "
                "Call `update_productivity(permeability)` first."
            )
        return self._allocator

    @property
    def productivities(self) -> np.typing.NDArray:
        """Productivity of each bound cell, in binding order."""
        return self._get_allocator().productivities

    def local_productivity_sum(self) -> float:
        """Productivity sum over the locally bound cells (a partial sum on partitioned meshes)."""
        return self._get_allocator().local_productivity_sum()

    def allocate(
        self, total_productivity: typing.Optional[float] = None
    ) -> typing.Tuple[np.typing.NDArray, np.typing.NDArray]:
        """
        Compute the source terms of all bound cells under the current control.

        :param total_productivity: Productivity sum over all partitions, for rate control.
            Defaults to the local sum.
        :return: The `(J, Q)` arrays, in binding order.
        """
        return self._get_allocator().allocate(self._control, total_productivity)

    def get_J_and_Q(
        self, cell: CellIndex, total_productivity: typing.Optional[float] = None
    ) -> SourceTerm:
        """
        Get the source term of a cell under the current control.

        :param cell: The cell index.
        :param total_productivity: Productivity sum over all partitions, for rate control.
            Defaults to the local sum.
        :return: `(J, Q)` for the cell, `(0.0, 0.0)` if the well is not bound to it.
        """
        return self._get_allocator().get_J_and_Q(
            cell, self._control, total_productivity
        )

    def get_transmissibility(self, cell: CellIndex) -> float:
        """Productivity of a bound cell, 0.0 for cells the well is not bound to."""
        allocator = self._get_allocator()
        position = self.binding.position(cell)
        if position is None:
            return 0.0
        return float(allocator.productivities[position])


class Wells:
    """
    Collection of wellbores coupled to the same mesh.
    """

    def __init__(self, wellbores: typing.Iterable[Wellbore] = ()) -> None:
        """
        :param wellbores: The wellbores. Named wellbores must have unique names.
        """
        self.wellbores: typing.List[Wellbore] = []
        for wellbore in wellbores:
            self.add(wellbore)

    def add(self, wellbore: Wellbore) -> None:
        """
        Add a wellbore.

        :raises ValidationError: If a wellbore with the same name exists.
        """
        if wellbore.name is not None and self.get_by_name(wellbore.name) is not None:
            raise ValidationError(f"A well named {wellbore.name!r} already exists.")
        self.wellbores.append(wellbore)

    def __len__(self) -> int:
        return len(self.wellbores)

    def __iter__(self) -> typing.Iterator[Wellbore]:
        return iter(self.wellbores)

    def __getitem__(self, key: typing.Union[int, str], /) -> Wellbore:
        """
        Get a wellbore by position or by name.

        :raises KeyError: If no wellbore has the given name.
        """
        if isinstance(key, str):
            wellbore = self.get_by_name(key)
            if wellbore is None:
                raise KeyError(key)
            return wellbore
        return self.wellbores[key]

    def get_by_name(self, name: str) -> typing.Optional[Wellbore]:
        return next(
            (wellbore for wellbore in self.wellbores if wellbore.name == name), None
        )

    @property
    def names(self) -> typing.List[typing.Optional[str]]:
        return [wellbore.name for wellbore in self.wellbores]

    def locate(
        self, mesh: MeshAdapter, max_workers: typing.Optional[int] = None
    ) -> typing.List[CellBinding]:
        """
        Bind all wells to the cells of a mesh.

        :param mesh: The mesh. It is only read, and must not change while wells are bound.
        :param max_workers: Number of threads binding wells concurrently. None or 1 binds
            the wells one after the other.
        :return: The binding of each well, in collection order.
        """
        if max_workers is None or max_workers <= 1 or len(self.wellbores) <= 1:
            return [wellbore.locate(mesh) for wellbore in self.wellbores]

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(lambda wellbore: wellbore.locate(mesh), self.wellbores))

    def update_productivities(self, permeability: PermeabilityField) -> None:
        """Compute the productivities of all wells."""
        for wellbore in self.wellbores:
            wellbore.update_productivity(permeability)

    def set_controls(self, controls: typing.Mapping[str, WellControl]) -> None:
        """
        Change the controls of wells, by name.

        :param controls: Mapping of well names to their new control.
        :raises KeyError: If a well name is unknown.
        """
        for name, control in controls.items():
            self[name].set_control(control)

    def total_productivities(
        self, reduce_sum: typing.Optional[ReduceSum] = None
    ) -> typing.List[typing.Optional[float]]:
        """
        Productivity sums of the rate controlled wells.

        On partitioned meshes, `reduce_sum` is called once per rate controlled well, in
        collection order, so every partition must call this method.

        :param reduce_sum: Collective reduction of the partition-local partial sums,
            e.g. an MPI allreduce. None uses the local sums.
        :return: The total productivity of each well, None for wells not under rate control.
        """
        totals: typing.List[typing.Optional[float]] = []
        for wellbore in self.wellbores:
            if not isinstance(wellbore.control, TotalRateControl):
                totals.append(None)
                continue
            total = wellbore.local_productivity_sum()
            if reduce_sum is not None:
                total = float(reduce_sum(total))
            totals.append(total)
        return totals

    def get_J_and_Q(
        self,
        cell: CellIndex,
        reduce_sum: typing.Optional[ReduceSum] = None,
        totals: typing.Optional[typing.Sequence[typing.Optional[float]]] = None,
    ) -> typing.List[SourceTerm]:
        """
        Get the source terms of all wells bound to a cell.

        :param cell: The cell index.
        :param reduce_sum: Collective reduction of rate controlled wells' partial sums.
            Ignored if `totals` is given.
        :param totals: Precomputed `total_productivities`, to avoid reducing per cell.
        :return: A `(J, Q)` pair per well bound to the cell, in collection order.
        """
        if totals is None:
            totals = self.total_productivities(reduce_sum)
        return [
            wellbore.get_J_and_Q(cell, total)
            for wellbore, total in zip(self.wellbores, totals)
            if cell in wellbore.binding
        ]

    def assemble_sources(
        self, n_cells: int, reduce_sum: typing.Optional[ReduceSum] = None
    ) -> typing.Tuple[np.typing.NDArray, np.typing.NDArray]:
        """
        Assemble the well source terms of all cells.

        A cell with pressure `p` receives `J * p - Q` in its accumulation term.

        :param n_cells: Number of cells (length of the returned arrays).
        :param reduce_sum: Collective reduction of rate controlled wells' partial sums.
        :return: The `(J, Q)` arrays, summed over all wells.
        """
        dtype = get_dtype()
        j_total = np.zeros(n_cells, dtype=dtype)
        q_total = np.zeros(n_cells, dtype=dtype)
        totals = self.total_productivities(reduce_sum)
        for wellbore, total in zip(self.wellbores, totals):
            cells = np.asarray(wellbore.cells, dtype=np.int64)
            if cells.size == 0:
                continue
            j, q = wellbore.allocate(total)
            np.add.at(j_total, cells, j)
            np.add.at(q_total, cells, q)

        logger.debug(
            f"Assembled sources of {len(self.wellbores)} wells: "
            f"sum J = {j_total.sum():.6g}, sum Q = {q_total.sum():.6g}"
        )
        return j_total, q_total
