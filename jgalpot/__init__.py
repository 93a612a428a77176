"""jgalpot: axisymmetric galaxy potentials from disk and spheroid components."""

import jax

jax.config.update("jax_enable_x64", True)

from ._typecheck import enable_runtime_typecheck

enable_runtime_typecheck()

from .base import (
    PotentialEval,
    SymmetryType,
    circular_velocity,
    evaluate_cartesian,
    laplacian_density,
)
from .composite import CompositeDensity, CompositePotential
from .config import DiskParams, GridPreset, MultipoleConfig, SpheroidParams
from .coords import GradCar, GradCyl, HessCar, HessCyl, PosCar, PosCyl
from .disk import DiskAnsatz, DiskResidual
from .errors import DomainError, NonFiniteError
from .galaxy import create_galaxy_potential
from .multipole import Multipole, MultipoleGrid
from .spheroid import SpheroidDensity

__all__ = [
    "CompositeDensity",
    "CompositePotential",
    "DiskAnsatz",
    "DiskParams",
    "DiskResidual",
    "DomainError",
    "GradCar",
    "GradCyl",
    "GridPreset",
    "HessCar",
    "HessCyl",
    "Multipole",
    "MultipoleConfig",
    "MultipoleGrid",
    "NonFiniteError",
    "PosCar",
    "PosCyl",
    "PotentialEval",
    "SpheroidDensity",
    "SpheroidParams",
    "SymmetryType",
    "circular_velocity",
    "create_galaxy_potential",
    "evaluate_cartesian",
    "laplacian_density",
]
