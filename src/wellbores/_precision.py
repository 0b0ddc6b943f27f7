from contextlib import contextmanager
from contextvars import ContextVar

import numpy as np


__all__ = ["get_dtype", "with_precision"]

_wellbores_dtype: ContextVar[np.typing.DTypeLike] = ContextVar(
    "_wellbores_dtype", default=np.float64
)


def get_dtype() -> np.typing.DTypeLike:
    """
    Get the current data type used for productivity and source arrays.

    Geometry is always evaluated in float64, whatever the current data type.

    :return: The current data type.
    """
    return _wellbores_dtype.get()


@contextmanager
def with_precision(dtype: np.typing.DTypeLike):
    """
    Context manager to temporarily set the data type, and hence the precision of
    productivity and source arrays.

    :param dtype: The data type to set within the context.
    """
    token = _wellbores_dtype.set(dtype)
    try:
        yield
    finally:
        _wellbores_dtype.reset(token)
