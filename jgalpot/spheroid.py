"""Flattened two-power-law spheroid density.

    rho(R, z) = rho_0 (s/r_0)^-gamma (1 + s/r_0)^(gamma - beta) exp[-(s/r_t)^2],
    s = sqrt(R^2 + z^2/q^2).

There is no analytic potential counterpart: the whole mass of a spheroid is
handed to the multipole solver.
"""

from __future__ import annotations

import math
from functools import partial

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, ArrayLike, jaxtyped

from .base import SymmetryType
from .config import SpheroidParams
from .coords import PosCyl, as_pos_cyl
from .errors import DomainError


@partial(jax.jit, static_argnames=("has_cutoff",))
@jaxtyped(typechecker=beartype)
def spheroid_density_kernel(
    R: ArrayLike,
    z: ArrayLike,
    density_norm: ArrayLike,
    axis_ratio: ArrayLike,
    gamma: ArrayLike,
    beta: ArrayLike,
    scale_radius: ArrayLike,
    outer_cutoff: ArrayLike,
    *,
    has_cutoff: bool,
) -> Array:
    R = jnp.asarray(R, dtype=float)
    z = jnp.asarray(z, dtype=float)
    s = jnp.sqrt(R * R + (z / axis_ratio) ** 2)
    x = s / scale_radius
    rho = density_norm * jnp.power(x, -gamma) * jnp.power(1.0 + x, gamma - beta)
    if has_cutoff:
        rho = rho * jnp.exp(-((s / outer_cutoff) ** 2))
    return rho


def _validate_spheroid_params(params: SpheroidParams) -> None:
    values = (
        params.density_norm,
        params.axis_ratio,
        params.gamma,
        params.beta,
        params.scale_radius,
        params.outer_cutoff_radius,
    )
    if not all(math.isfinite(float(v)) for v in values):
        raise DomainError("spheroid parameters must be finite")
    if params.gamma >= 3:
        raise DomainError(f"spheroid gamma must be < 3 for a finite central mass, got {params.gamma}")
    if not 0 < params.axis_ratio <= 1:
        raise DomainError(f"spheroid axis_ratio must lie in (0, 1], got {params.axis_ratio}")
    if params.scale_radius <= 0:
        raise DomainError("spheroid scale_radius must be > 0")
    if params.outer_cutoff_radius < 0:
        raise DomainError("spheroid outer_cutoff_radius must be >= 0")
    if params.outer_cutoff_radius == 0 and params.beta <= 2:
        raise DomainError(
            f"spheroid beta must be > 2 without an outer cutoff, got {params.beta}"
        )


class SpheroidDensity:
    """Two-power-law spheroid, spherical when ``axis_ratio == 1``."""

    name = "TwoPowerLawSpheroid"

    def __init__(self, params: SpheroidParams):
        _validate_spheroid_params(params)
        self.params = params

    def density(self: "SpheroidDensity", pos: PosCyl) -> Array:
        p = as_pos_cyl(pos)
        prm = self.params
        return spheroid_density_kernel(
            p.R,
            p.z,
            float(prm.density_norm),
            float(prm.axis_ratio),
            float(prm.gamma),
            float(prm.beta),
            float(prm.scale_radius),
            float(prm.outer_cutoff_radius),
            has_cutoff=bool(prm.outer_cutoff_radius > 0),
        )

    def symmetry(self: "SpheroidDensity") -> SymmetryType:
        if self.params.axis_ratio == 1:
            return SymmetryType.SPHERICAL
        return SymmetryType.AXISYMMETRIC


__all__ = ["SpheroidDensity", "spheroid_density_kernel"]
