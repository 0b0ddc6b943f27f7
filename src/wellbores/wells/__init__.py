"""Well-to-grid coupling: binding, productivity and source terms."""

from .base import *  # noqa
from .binding import *  # noqa
from .controls import *  # noqa
from .core import *  # noqa
from .productivity import *  # noqa
