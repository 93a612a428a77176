"""Multipole Poisson solver with a quintic spline in ``(ln r, cos theta)``."""

from .grid import MultipoleGrid, build_multipole_grid
from .potential import Multipole

__all__ = ["Multipole", "MultipoleGrid", "build_multipole_grid"]
