"""Separable disks split into an analytic ansatz and a residual density."""

from .components import DiskAnsatz, DiskResidual, make_disk_pair
from .functions import (
    RadialDiskFunction,
    VerticalDiskFunction,
    VerticalProfile,
    create_radial_disk_function,
    create_vertical_disk_function,
)

__all__ = [
    "DiskAnsatz",
    "DiskResidual",
    "RadialDiskFunction",
    "VerticalDiskFunction",
    "VerticalProfile",
    "create_radial_disk_function",
    "create_vertical_disk_function",
    "make_disk_pair",
]
