"""Numerical constants and tolerances for well-to-grid coupling"""

from contextvars import ContextVar
import typing

import attrs


__all__ = ["Constant", "Constants", "c", "ConstantsContext", "get_constant"]


@attrs.frozen(slots=True)
class Constant:
    """
    A constant value with optional description and unit.
    """

    value: typing.Any
    """The actual value of the constant."""

    description: typing.Optional[str] = None
    """Optional description of what this constant represents."""

    unit: typing.Optional[str] = None
    """Optional unit of measurement for this constant."""

    def __str__(self) -> str:
        return f"{self.value}{self.unit or ''}"

    def __repr__(self) -> str:
        parts = [f"value={self.value}"]
        if self.description:
            parts.append(f"description='{self.description}'")
        if self.unit:
            parts.append(f"unit='{self.unit}'")
        return f"Constant({', '.join(parts)})"


DEFAULT_CONSTANTS: typing.Dict[str, typing.Union[typing.Any, Constant]] = {
    # Peaceman model
    "PEACEMAN_RADIUS_COEFFICIENT": Constant(
        value=0.28,
        description="Coefficient of Peaceman's equivalent well-block radius",
        unit=None,
    ),
    # Tolerances
    "SMALL_NUMBER": Constant(
        value=1e-10,
        description="Relative tolerance (times cell diameter) for comparing cell-to-well distances",
        unit="fraction",
    ),
    "SMALL_NUMBER_GEOMETRY": Constant(
        value=1e-3,
        description=(
            "Relative perturbation (times cell diameter) used by tolerant point-in-cell tests, "
            "and relative marching step (times segment length) used to integrate in-cell well length"
        ),
        unit="fraction",
    ),
    "SMALL_ANGLE": Constant(
        value=1e-3,
        description="Angle below which a well is considered to run in the plane of a face",
        unit="rad",
    ),
    "SINGLE_POINT_WELL_DIRECTION": Constant(
        value=(0.0, 0.0, 1.0),
        description="Direction assigned to single-point (vertical) wells",
        unit=None,
    ),
}


class Constants:
    """
    Store of named `Constant` values.

    Values are read with dot notation (`constants.SMALL_NUMBER`) and the wrapping
    `Constant`, with its description and unit, with bracket notation.
    """

    __slots__ = ("_store",)

    def __init__(
        self,
        overrides: typing.Optional[
            typing.Mapping[str, typing.Union[typing.Any, Constant]]
        ] = None,
    ) -> None:
        """
        Initialize the store with the default constants.

        :param overrides: Optional mapping of constant names to values (or `Constant`s)
            replacing or extending the defaults.
        """
        object.__setattr__(self, "_store", {})
        for name, value in DEFAULT_CONSTANTS.items():
            self[name] = value
        for name, value in (overrides or {}).items():
            self[name] = value

    def __getattr__(self, name: str) -> typing.Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        try:
            return self._store[name].value
        except KeyError:
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            ) from None

    def __setattr__(self, name: str, value: typing.Union[typing.Any, Constant]) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            self[name] = value

    def __getitem__(self, name: str) -> Constant:
        return self._store[name]

    def __setitem__(self, name: str, value: typing.Union[typing.Any, Constant]) -> None:
        self._store[name] = value if isinstance(value, Constant) else Constant(value)

    def __contains__(self, name: str) -> bool:
        return name in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(constants={len(self._store)})"

    def get(self, name: str, default: typing.Any = None) -> typing.Any:
        """
        Get a constant's value, or `default` if it is not defined.

        :param name: Name of the constant
        :param default: Value returned when the constant is missing
        """
        constant = self._store.get(name)
        return default if constant is None else constant.value

    def get_constant(self, name: str) -> typing.Optional[Constant]:
        """Get the `Constant` object for `name`, or None if it is not defined."""
        return self._store.get(name)

    def __call__(self) -> "ConstantsContext":
        """
        Use this store as the global constants (`wellbores.c`) within a `with` block.

        :return: `ConstantsContext` for temporary overrides
        """
        return ConstantsContext(self)


_constants_context: ContextVar[Constants] = ContextVar(
    "constants_context", default=Constants()
)


class ConstantsContext:
    """Context manager that temporarily swaps the global `Constants` instance."""

    def __init__(self, constants: Constants) -> None:
        self._new_constants = constants
        self._token = None

    def __enter__(self) -> Constants:
        self._token = _constants_context.set(self._new_constants)
        return self._new_constants

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._token is not None:
            _constants_context.reset(self._token)
            self._token = None


class _ConstantsProxy:
    """Proxy resolving attribute access against the current context's `Constants`."""

    @property
    def _constants(self) -> Constants:
        return _constants_context.get()

    def __getattr__(self, name: str) -> typing.Any:
        return getattr(self._constants, name)

    def __getitem__(self, name: str) -> Constant:
        return self._constants[name]


c = _ConstantsProxy()
"""Global proxy to access numerical constants and tolerances."""


def get_constant(name: str) -> typing.Optional[Constant]:
    """
    Get a `Constant` object by name from the global constants.

    :param name: Name of the constant
    :return: `Constant` object or None if not found
    """
    return c._constants.get_constant(name)
