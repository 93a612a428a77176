"""Positions, gradients and Hessians in cylindrical and Cartesian coordinates.

All containers are NamedTuples of broadcastable JAX arrays, so they are valid
pytrees and can be passed straight through ``jax.jit``/``jax.tree_util``.

Conversions of derivatives assume an axisymmetric field: the azimuthal
derivatives of a ``GradCyl``/``HessCyl`` are carried along but the Cartesian
Hessian only uses the meridional-plane terms.
"""

from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, ArrayLike, jaxtyped


class PosCar(NamedTuple):
    x: ArrayLike
    y: ArrayLike
    z: ArrayLike


class PosCyl(NamedTuple):
    R: ArrayLike
    z: ArrayLike
    phi: ArrayLike = 0.0


class GradCar(NamedTuple):
    dx: Array
    dy: Array
    dz: Array


class GradCyl(NamedTuple):
    dR: Array
    dz: Array
    dphi: Array


class HessCar(NamedTuple):
    dx2: Array
    dy2: Array
    dz2: Array
    dxdy: Array
    dydz: Array
    dxdz: Array


class HessCyl(NamedTuple):
    dR2: Array
    dz2: Array
    dphi2: Array
    dRdz: Array
    dRdphi: Array
    dzdphi: Array


def _as_float(x: ArrayLike) -> Array:
    return jnp.asarray(x, dtype=float)


@jaxtyped(typechecker=beartype)
def as_pos_cyl(pos: PosCyl) -> PosCyl:
    """Broadcast the fields of ``pos`` to a common float array shape."""

    R, z, phi = jnp.broadcast_arrays(_as_float(pos.R), _as_float(pos.z), _as_float(pos.phi))
    return PosCyl(R, z, phi)


@jaxtyped(typechecker=beartype)
def to_pos_cyl(pos: PosCar) -> PosCyl:
    x, y, z = jnp.broadcast_arrays(_as_float(pos.x), _as_float(pos.y), _as_float(pos.z))
    return PosCyl(jnp.hypot(x, y), z, jnp.arctan2(y, x))


@jaxtyped(typechecker=beartype)
def to_pos_car(pos: PosCyl) -> PosCar:
    p = as_pos_cyl(pos)
    return PosCar(p.R * jnp.cos(p.phi), p.R * jnp.sin(p.phi), p.z)


@jaxtyped(typechecker=beartype)
def to_grad_car(grad: GradCyl, pos: PosCyl) -> GradCar:
    """Rotate a cylindrical gradient into Cartesian components."""

    p = as_pos_cyl(pos)
    cos_phi, sin_phi = jnp.cos(p.phi), jnp.sin(p.phi)
    on_axis = p.R == 0
    dphi_over_R = jnp.where(on_axis, 0.0, grad.dphi / jnp.where(on_axis, 1.0, p.R))
    return GradCar(
        dx=grad.dR * cos_phi - dphi_over_R * sin_phi,
        dy=grad.dR * sin_phi + dphi_over_R * cos_phi,
        dz=grad.dz,
    )


@jaxtyped(typechecker=beartype)
def to_hess_car(grad: GradCyl, hess: HessCyl, pos: PosCyl) -> HessCar:
    """Cartesian Hessian of an axisymmetric field.

    On the symmetry axis ``dPhi/dR / R`` is replaced by its limit ``d2Phi/dR2``.
    """

    p = as_pos_cyl(pos)
    cos_phi, sin_phi = jnp.cos(p.phi), jnp.sin(p.phi)
    on_axis = p.R == 0
    dR_over_R = jnp.where(on_axis, hess.dR2, grad.dR / jnp.where(on_axis, 1.0, p.R))
    return HessCar(
        dx2=hess.dR2 * cos_phi**2 + dR_over_R * sin_phi**2,
        dy2=hess.dR2 * sin_phi**2 + dR_over_R * cos_phi**2,
        dz2=hess.dz2,
        dxdy=(hess.dR2 - dR_over_R) * sin_phi * cos_phi,
        dydz=hess.dRdz * sin_phi,
        dxdz=hess.dRdz * cos_phi,
    )


__all__ = [
    "GradCar",
    "GradCyl",
    "HessCar",
    "HessCyl",
    "PosCar",
    "PosCyl",
    "as_pos_cyl",
    "to_grad_car",
    "to_hess_car",
    "to_pos_car",
    "to_pos_cyl",
]
