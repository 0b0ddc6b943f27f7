"""
*WELLBORES*

Coupling of deviated and multi-segment wells to (adaptively refined) meshes,
with Peaceman productivity indices and well source terms.
"""

from ._precision import *  # noqa
from .constants import *  # noqa
from .config import *  # noqa
from .types import *  # noqa
from .trajectory import *  # noqa
from .grids import *  # noqa
from .permeability import *  # noqa
from .wells import *  # noqa
from .serialization import *  # noqa
from .visualization import *  # noqa

__version__ = "0.1.0"
