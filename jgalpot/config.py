"""Parameter structs and preset-first grid configuration for jgalpot."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GridPreset(str, Enum):
    """User-facing accuracy/speed presets for the multipole grid."""

    FAST = "fast"
    BALANCED = "balanced"
    ACCURATE = "accurate"


@dataclass(frozen=True)
class DiskParams:
    """Separable disk ``rho(R, z) = f(R) h(z)``.

    ``scale_height`` selects the vertical profile: zero gives an
    infinitesimally thin disk, positive an exponential and negative an
    isothermal (sech^2) profile with scale ``|scale_height|``.
    """

    surface_density: float
    scale_length: float
    scale_height: float = 0.0
    inner_cutoff_radius: float = 0.0
    modulation_amplitude: float = 0.0


@dataclass(frozen=True)
class SpheroidParams:
    """Flattened two-power-law spheroid with an optional Gaussian cutoff."""

    density_norm: float
    axis_ratio: float = 1.0
    gamma: float = 1.0
    beta: float = 3.0
    scale_radius: float = 1.0
    outer_cutoff_radius: float = 0.0


@dataclass(frozen=True)
class MultipoleConfig:
    """Overrides for the multipole grid; ``None`` defers to the preset.

    ``r_min``/``r_max`` are absolute radii. When omitted they are derived from
    the component length scales times ``r_min_factor``/``r_max_factor``.
    """

    r_min: Optional[float] = None
    r_max: Optional[float] = None
    r_min_factor: Optional[float] = None
    r_max_factor: Optional[float] = None
    num_radial_points: Optional[int] = None
    num_angular_points: Optional[int] = None
    lmax: Optional[int] = None
    num_quadrature_points: Optional[int] = None
    num_radial_substeps: Optional[int] = None
    gamma: Optional[float] = None
    beta: Optional[float] = None


__all__ = [
    "DiskParams",
    "GridPreset",
    "MultipoleConfig",
    "SpheroidParams",
]
