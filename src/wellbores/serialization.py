"""Serialization of trajectories, controls, bindings and wellbores to plain data."""

import typing

import cattrs
from cattrs.strategies import configure_tagged_union
import numpy as np

from wellbores.config import Config
from wellbores.errors import DeserializationError, SerializationError
from wellbores.trajectory import WellTrajectory
from wellbores.wells.base import Wellbore
from wellbores.wells.binding import BoundCell, CellBinding
from wellbores.wells.controls import BHPControl, TotalRateControl, WellControl


__all__ = ["converter", "dump", "load"]


converter = cattrs.Converter()

_CONTROL_TYPES: typing.Dict[typing.Type[typing.Any], str] = {
    BHPControl: "bhp",
    TotalRateControl: "total_rate",
}
"""Registry of control variants and their serialized type tags."""

configure_tagged_union(
    WellControl,
    converter,
    tag_generator=lambda cls: _CONTROL_TYPES[cls],
    tag_name="type",
)


def _unstructure_trajectory(trajectory: WellTrajectory) -> typing.Dict[str, typing.Any]:
    return {
        "points": trajectory.points.tolist(),
        "radius": trajectory.radius,
        "skin_factor": trajectory.skin_factor,
        "name": trajectory.name,
    }


def _structure_trajectory(
    data: typing.Mapping[str, typing.Any], cls: typing.Type[WellTrajectory]
) -> WellTrajectory:
    return cls(
        points=data["points"],
        radius=data["radius"],
        skin_factor=data.get("skin_factor", 0.0),
        name=data.get("name"),
    )


def _unstructure_bound_cell(entry: BoundCell) -> typing.Dict[str, typing.Any]:
    return {
        "cell": int(entry.cell),
        "length": float(entry.length),
        "direction": np.asarray(entry.direction, dtype=np.float64).tolist(),
    }


def _structure_bound_cell(
    data: typing.Mapping[str, typing.Any], cls: typing.Type[BoundCell]
) -> BoundCell:
    return cls(
        cell=int(data["cell"]),
        length=float(data["length"]),
        direction=np.asarray(data["direction"], dtype=np.float64),
    )


def _unstructure_binding(binding: CellBinding) -> typing.Dict[str, typing.Any]:
    return {"entries": [_unstructure_bound_cell(entry) for entry in binding]}


def _structure_binding(
    data: typing.Mapping[str, typing.Any], cls: typing.Type[CellBinding]
) -> CellBinding:
    return cls(
        tuple(_structure_bound_cell(entry, BoundCell) for entry in data["entries"])
    )


def _unstructure_wellbore(wellbore: Wellbore) -> typing.Dict[str, typing.Any]:
    return {
        "trajectory": _unstructure_trajectory(wellbore.trajectory),
        "control": converter.unstructure(wellbore.control, unstructure_as=WellControl),
        "config": converter.unstructure(wellbore.config),
    }


def _structure_wellbore(
    data: typing.Mapping[str, typing.Any], cls: typing.Type[Wellbore]
) -> Wellbore:
    config = data.get("config")
    return cls(
        trajectory=_structure_trajectory(data["trajectory"], WellTrajectory),
        control=converter.structure(data["control"], WellControl),
        config=Config() if config is None else converter.structure(config, Config),
    )


converter.register_unstructure_hook(WellTrajectory, _unstructure_trajectory)
converter.register_structure_hook(WellTrajectory, _structure_trajectory)
converter.register_unstructure_hook(BoundCell, _unstructure_bound_cell)
converter.register_structure_hook(BoundCell, _structure_bound_cell)
converter.register_unstructure_hook(CellBinding, _unstructure_binding)
converter.register_structure_hook(CellBinding, _structure_binding)
converter.register_unstructure_hook(Wellbore, _unstructure_wellbore)
converter.register_structure_hook(Wellbore, _structure_wellbore)

_SERIALIZABLE_TYPES = (
    WellTrajectory,
    BHPControl,
    TotalRateControl,
    BoundCell,
    CellBinding,
    Wellbore,
    Config,
)

T = typing.TypeVar("T")


def dump(o: typing.Any, /) -> typing.Dict[str, typing.Any]:
    """
    Dump an object to a JSON-compatible dictionary.

    Controls are tagged with their variant, as `{"type": "bhp" | "total_rate", ...}`.
    Wellbores are dumped without their binding and productivities, which are recomputed
    by `locate` and `update_productivity` after loading.

    :param o: A trajectory, control, binding, wellbore or configuration.
    :return: The dumped data.
    :raises SerializationError: If the object cannot be dumped.
    """
    if not isinstance(o, _SERIALIZABLE_TYPES):
        raise SerializationError(f"Cannot dump object of type {type(o).__name__!r}")

    unstructure_as = (
        WellControl if isinstance(o, (BHPControl, TotalRateControl)) else type(o)
    )
    try:
        return converter.unstructure(o, unstructure_as=unstructure_as)
    except Exception as exc:
        raise SerializationError(
            f"Failed to dump object of type {type(o).__name__!r}"
        ) from exc


def load(cls: typing.Type[T], data: typing.Mapping[str, typing.Any]) -> T:
    """
    Load an object from a dictionary created by `dump`.

    :param cls: The type to load. Use `WellControl` to load any control variant.
    :param data: The dumped data.
    :return: The loaded object.
    :raises DeserializationError: If the data cannot be loaded.
    """
    try:
        return converter.structure(data, cls)
    except Exception as exc:
        raise DeserializationError(
            f"Failed to load object of type {getattr(cls, '__name__', cls)!r}"
        ) from exc
