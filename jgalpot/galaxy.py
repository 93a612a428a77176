"""Preset-first assembly of a composite galaxy potential."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence, Union

from .composite import CompositeDensity, CompositePotential
from .config import DiskParams, GridPreset, MultipoleConfig, SpheroidParams
from .disk.components import make_disk_pair
from .errors import DomainError
from .multipole.potential import Multipole
from .spheroid import SpheroidDensity

_DEFAULT_GAMMA = 0.0
_DEFAULT_BETA = 4.0


def _default_config_for_preset(preset: GridPreset) -> MultipoleConfig:
    if preset is GridPreset.FAST:
        return MultipoleConfig(
            r_min_factor=1e-2,
            r_max_factor=1e2,
            num_radial_points=40,
            num_angular_points=12,
            lmax=12,
            num_quadrature_points=32,
            num_radial_substeps=3,
        )
    if preset is GridPreset.BALANCED:
        return MultipoleConfig(
            r_min_factor=1e-3,
            r_max_factor=1e3,
            num_radial_points=60,
            num_angular_points=16,
            lmax=16,
            num_quadrature_points=48,
            num_radial_substeps=4,
        )
    # ACCURATE
    return MultipoleConfig(
        r_min_factor=1e-4,
        r_max_factor=1e4,
        num_radial_points=100,
        num_angular_points=24,
        lmax=24,
        num_quadrature_points=64,
        num_radial_substeps=6,
    )


def _normalize_preset(preset: Union[GridPreset, str]) -> GridPreset:
    if isinstance(preset, GridPreset):
        return preset
    return GridPreset(str(preset).strip().lower())


def _resolve_optional(value, preset_value):
    """Pick the explicit value, falling back to the preset value."""
    return preset_value if value is None else value


def _length_scales(
    disk_params: Sequence[DiskParams],
    spheroid_params: Sequence[SpheroidParams],
) -> list[float]:
    scales = []
    for prm in disk_params:
        scales.append(float(prm.scale_length))
        if prm.scale_height != 0:
            scales.append(abs(float(prm.scale_height)))
        if prm.inner_cutoff_radius > 0:
            scales.append(float(prm.inner_cutoff_radius))
    for prm in spheroid_params:
        scales.append(float(prm.scale_radius))
        if prm.outer_cutoff_radius > 0:
            scales.append(float(prm.outer_cutoff_radius))
    return [s for s in scales if s > 0]


def _default_slopes(spheroid_params: Sequence[SpheroidParams]) -> tuple[float, float]:
    """Steepest inner cusp and shallowest untruncated outer slope."""

    gamma = max((float(p.gamma) for p in spheroid_params), default=_DEFAULT_GAMMA)
    gamma = max(gamma, _DEFAULT_GAMMA)
    beta = min(
        (float(p.beta) for p in spheroid_params if p.outer_cutoff_radius == 0),
        default=_DEFAULT_BETA,
    )
    return gamma, beta


def resolve_multipole_config(
    disk_params: Sequence[DiskParams],
    spheroid_params: Sequence[SpheroidParams],
    *,
    preset: Union[GridPreset, str] = GridPreset.BALANCED,
    config: Optional[MultipoleConfig] = None,
) -> MultipoleConfig:
    """Fill every field of ``config`` from the preset and component scales."""

    base = _default_config_for_preset(_normalize_preset(preset))
    user = config if config is not None else MultipoleConfig()
    merged = MultipoleConfig(
        **{
            name: _resolve_optional(getattr(user, name), getattr(base, name))
            for name in MultipoleConfig.__dataclass_fields__
        }
    )

    scales = _length_scales(disk_params, spheroid_params)
    if merged.r_min is None or merged.r_max is None:
        if not scales:
            raise DomainError("no component length scale to derive the grid extent from")
    r_min = merged.r_min if merged.r_min is not None else merged.r_min_factor * min(scales)
    r_max = merged.r_max if merged.r_max is not None else merged.r_max_factor * max(scales)

    gamma, beta = _default_slopes(spheroid_params)
    return replace(
        merged,
        r_min=float(r_min),
        r_max=float(r_max),
        gamma=float(_resolve_optional(merged.gamma, gamma)),
        beta=float(_resolve_optional(merged.beta, beta)),
    )


def create_galaxy_potential(
    disk_params: Sequence[DiskParams],
    spheroid_params: Sequence[SpheroidParams],
    *,
    preset: Union[GridPreset, str] = GridPreset.BALANCED,
    config: Optional[MultipoleConfig] = None,
) -> CompositePotential:
    """Build ``sum(DiskAnsatz) + Multipole(sum(DiskResidual) + sum(Spheroid))``.

    Every disk contributes an analytic ansatz term and a residual density
    sharing the same parameters; spheroids contribute only to the multipole
    source. Grid extent, size and boundary slopes come from ``config``
    overrides, falling back to ``preset`` and the component length scales.
    """

    disk_params = list(disk_params)
    spheroid_params = list(spheroid_params)
    if not disk_params and not spheroid_params:
        raise DomainError("galaxy potential needs at least one disk or spheroid")

    ansatz_terms = []
    sources = []
    for prm in disk_params:
        ansatz, residual = make_disk_pair(prm)
        ansatz_terms.append(ansatz)
        sources.append(residual)
    sources.extend(SpheroidDensity(prm) for prm in spheroid_params)

    cfg = resolve_multipole_config(
        disk_params, spheroid_params, preset=preset, config=config
    )
    multipole = Multipole(
        CompositeDensity(sources),
        cfg.r_min,
        cfg.r_max,
        cfg.num_radial_points,
        cfg.gamma,
        cfg.beta,
        lmax=cfg.lmax,
        num_angular_points=cfg.num_angular_points,
        num_quadrature_points=cfg.num_quadrature_points,
        num_radial_substeps=cfg.num_radial_substeps,
    )
    return CompositePotential(ansatz_terms + [multipole])


__all__ = ["create_galaxy_potential", "resolve_multipole_config"]
