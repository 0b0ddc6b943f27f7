"""Mesh adapters."""

from .base import *  # noqa
from .boxes import *  # noqa
