"""Radial and vertical functions of a separable disk (Dehnen & Binney 1998).

The disk density is ``rho(R, z) = f(R) h(z)`` with

    f(R) = Sigma_0 exp(-R_0/R - R/R_d + eps cos(R/R_d))

and ``h(z)`` one of three vertical profiles. The vertical function exposes
``H(z)``, the second antiderivative of ``h`` with ``H(0) = H'(0) = 0``, so its
derivatives are ``(H, H', H'' = h)``. Table 2 of Dehnen & Binney (1998):

    thin          h = delta(z)                  H = |z|/2
    exponential   h = exp(-|z|/h)/(2h)          H = h/2 (exp(-|z|/h) - 1 + |z|/h)
    isothermal    h = sech^2(z/2|h|)/(4|h|)     H = |h| ln cosh(z/2|h|)

The Dirac term of the thin disk is never returned as ``h``; it is carried by
the ansatz potential alone and cancels exactly in the residual density.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from functools import partial

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, ArrayLike, jaxtyped

from ..config import DiskParams
from ..errors import DomainError

_LN2 = 0.6931471805599453


class VerticalProfile(str, Enum):
    """Vertical profile family, selected by the sign of the scale height."""

    THIN = "thin"
    EXPONENTIAL = "exponential"
    ISOTHERMAL = "isothermal"


@jax.jit
@jaxtyped(typechecker=beartype)
def radial_disk_derivatives(
    R: ArrayLike,
    surface_density: ArrayLike,
    scale_length: ArrayLike,
    inner_cutoff: ArrayLike,
    modulation: ArrayLike,
) -> tuple[Array, Array, Array]:
    """Return ``(f, f', f'')`` of the radial surface-density law.

    With a central hole (``inner_cutoff > 0``) all three vanish at ``R = 0``.
    """

    R = jnp.asarray(R, dtype=float)
    positive = R > 0
    inv_R = jnp.where(positive, 1.0 / jnp.where(positive, R, 1.0), 0.0)
    x = R / scale_length
    exponent = -inner_cutoff * inv_R - x + modulation * jnp.cos(x)
    d1 = inner_cutoff * inv_R**2 - (1.0 + modulation * jnp.sin(x)) / scale_length
    d2 = -2.0 * inner_cutoff * inv_R**3 - modulation * jnp.cos(x) / scale_length**2

    f = surface_density * jnp.exp(exponent)
    # exp(-R0/R) underflows before R0/R^2 overflows; keep 0 * inf out.
    vanishing = (f == 0) | ((inner_cutoff > 0) & ~positive)
    f1 = jnp.where(vanishing, 0.0, f * d1)
    f2 = jnp.where(vanishing, 0.0, f * (d1 * d1 + d2))
    return jnp.where(vanishing, 0.0, f), f1, f2


@partial(jax.jit, static_argnames=("profile",))
@jaxtyped(typechecker=beartype)
def vertical_disk_derivatives(
    z: ArrayLike,
    scale_height: ArrayLike,
    *,
    profile: VerticalProfile,
) -> tuple[Array, Array, Array]:
    """Return ``(H, H', h)`` for the requested vertical profile."""

    z = jnp.asarray(z, dtype=float)
    abs_z = jnp.abs(z)
    sign_z = jnp.sign(z)

    if profile is VerticalProfile.THIN:
        return 0.5 * abs_z, 0.5 * sign_z, jnp.zeros_like(z)

    if profile is VerticalProfile.EXPONENTIAL:
        h = jnp.abs(scale_height)
        x = abs_z / h
        e = jnp.exp(-x)
        H = 0.5 * h * (jnp.expm1(-x) + x)
        return H, 0.5 * sign_z * (-jnp.expm1(-x)), 0.5 * e / h

    h = jnp.abs(scale_height)
    x = abs_z / (2.0 * h)
    e = jnp.exp(-2.0 * x)
    # ln cosh(x) = x + ln(1 + e^{-2x}) - ln 2, stable for any |z|
    H = h * (x + jnp.log1p(e) - _LN2)
    Hp = 0.5 * sign_z * (1.0 - e) / (1.0 + e)
    rho = e / ((1.0 + e) ** 2 * h)
    return H, Hp, rho


@dataclass(frozen=True)
class RadialDiskFunction:
    """Radial law ``f(R)`` of a disk; immutable and cheap to copy."""

    surface_density: float
    scale_length: float
    inner_cutoff_radius: float = 0.0
    modulation_amplitude: float = 0.0

    def evaluate(self: "RadialDiskFunction", R: ArrayLike) -> tuple[Array, Array, Array]:
        return radial_disk_derivatives(
            R,
            self.surface_density,
            self.scale_length,
            self.inner_cutoff_radius,
            self.modulation_amplitude,
        )

    def value(self: "RadialDiskFunction", R: ArrayLike) -> Array:
        return self.evaluate(R)[0]


@dataclass(frozen=True)
class VerticalDiskFunction:
    """Vertical law: ``H(z)`` and its derivatives ``H'(z)``, ``h(z)``."""

    profile: VerticalProfile
    scale_height: float = 0.0

    def evaluate(self: "VerticalDiskFunction", z: ArrayLike) -> tuple[Array, Array, Array]:
        return vertical_disk_derivatives(z, self.scale_height, profile=self.profile)

    def value(self: "VerticalDiskFunction", z: ArrayLike) -> Array:
        return self.evaluate(z)[0]

    def density(self: "VerticalDiskFunction", z: ArrayLike) -> Array:
        """Vertical density ``h(z)`` (zero everywhere for the thin profile)."""

        return self.evaluate(z)[2]


def vertical_profile_for(scale_height: float) -> VerticalProfile:
    if scale_height > 0:
        return VerticalProfile.EXPONENTIAL
    if scale_height < 0:
        return VerticalProfile.ISOTHERMAL
    return VerticalProfile.THIN


def _validate_disk_params(params: DiskParams) -> None:
    values = (
        params.surface_density,
        params.scale_length,
        params.scale_height,
        params.inner_cutoff_radius,
        params.modulation_amplitude,
    )
    if not all(math.isfinite(float(v)) for v in values):
        raise DomainError("disk parameters must be finite")
    if params.scale_length <= 0:
        raise DomainError("disk scale_length must be > 0")
    if params.inner_cutoff_radius < 0:
        raise DomainError("disk inner_cutoff_radius must be >= 0")


def create_radial_disk_function(params: DiskParams) -> RadialDiskFunction:
    """Build the radial function of a disk from its parameters."""

    _validate_disk_params(params)
    return RadialDiskFunction(
        surface_density=float(params.surface_density),
        scale_length=float(params.scale_length),
        inner_cutoff_radius=float(params.inner_cutoff_radius),
        modulation_amplitude=float(params.modulation_amplitude),
    )


def create_vertical_disk_function(params: DiskParams) -> VerticalDiskFunction:
    """Build the vertical function of a disk from its parameters."""

    _validate_disk_params(params)
    height = float(params.scale_height)
    return VerticalDiskFunction(profile=vertical_profile_for(height), scale_height=height)


__all__ = [
    "RadialDiskFunction",
    "VerticalDiskFunction",
    "VerticalProfile",
    "create_radial_disk_function",
    "create_vertical_disk_function",
    "radial_disk_derivatives",
    "vertical_disk_derivatives",
    "vertical_profile_for",
]
