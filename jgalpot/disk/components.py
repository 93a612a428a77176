"""Disk ansatz potential and its residual density.

For a separable disk ``rho = f(R) h(z)`` the potential is split into

    Phi = 4 pi f(r) H(z) + Phi_res,        r = sqrt(R^2 + z^2),

where the first term is the analytic :class:`DiskAnsatz` and ``Phi_res`` is
sourced by the :class:`DiskResidual` density

    rho_res = [f(R) - f(r)] h(z) - f''(r) H(z) - 2 f'(r) [H(z) + z H'(z)] / r.

The ansatz density (its Laplacian over 4 pi) plus ``rho_res`` equals
``f(R) h(z)`` identically. Terms with ``1/r`` are replaced by their limit 0
at the origin, where ``H`` and ``z H'`` vanish.
"""

from __future__ import annotations

from functools import partial

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, ArrayLike, jaxtyped

from ..base import (
    PotentialEval,
    SymmetryType,
    derivative_order,
    pack_potential_derivatives,
)
from ..config import DiskParams
from ..coords import PosCyl, as_pos_cyl
from .functions import (
    VerticalProfile,
    create_radial_disk_function,
    create_vertical_disk_function,
    radial_disk_derivatives,
    vertical_disk_derivatives,
)

_FOUR_PI = 4.0 * jnp.pi


def _safe_ratios(R: Array, z: Array) -> tuple[Array, Array, Array, Array]:
    r = jnp.hypot(R, z)
    origin = r == 0
    inv_r = jnp.where(origin, 0.0, 1.0 / jnp.where(origin, 1.0, r))
    return r, inv_r, R * inv_r, z * inv_r


@partial(jax.jit, static_argnames=("profile",))
@jaxtyped(typechecker=beartype)
def residual_density_kernel(
    R: ArrayLike,
    z: ArrayLike,
    radial: tuple[ArrayLike, ArrayLike, ArrayLike, ArrayLike],
    scale_height: ArrayLike,
    *,
    profile: VerticalProfile,
) -> Array:
    R, z = jnp.broadcast_arrays(jnp.asarray(R, dtype=float), jnp.asarray(z, dtype=float))
    r, inv_r, _, _ = _safe_ratios(R, z)
    H, Hp, h = vertical_disk_derivatives(z, scale_height, profile=profile)
    f_R, _, _ = radial_disk_derivatives(R, *radial)
    f_r, fp_r, fpp_r = radial_disk_derivatives(r, *radial)
    return (f_R - f_r) * h - fpp_r * H - 2.0 * fp_r * (H + z * Hp) * inv_r


@partial(jax.jit, static_argnames=("profile",))
@jaxtyped(typechecker=beartype)
def ansatz_density_kernel(
    R: ArrayLike,
    z: ArrayLike,
    radial: tuple[ArrayLike, ArrayLike, ArrayLike, ArrayLike],
    scale_height: ArrayLike,
    *,
    profile: VerticalProfile,
) -> Array:
    R, z = jnp.broadcast_arrays(jnp.asarray(R, dtype=float), jnp.asarray(z, dtype=float))
    r, inv_r, _, _ = _safe_ratios(R, z)
    H, Hp, h = vertical_disk_derivatives(z, scale_height, profile=profile)
    f, fp, fpp = radial_disk_derivatives(r, *radial)
    return f * h + fpp * H + 2.0 * fp * (H + z * Hp) * inv_r


@partial(jax.jit, static_argnames=("profile", "order"))
@jaxtyped(typechecker=beartype)
def ansatz_potential_kernel(
    R: ArrayLike,
    z: ArrayLike,
    radial: tuple[ArrayLike, ArrayLike, ArrayLike, ArrayLike],
    scale_height: ArrayLike,
    *,
    profile: VerticalProfile,
    order: int,
) -> tuple[Array, ...]:
    """Potential ``4 pi f(r) H(z)`` and its cylindrical derivatives.

    Returns ``(Phi,)``, ``(Phi, Phi_R, Phi_z)`` or
    ``(Phi, Phi_R, Phi_z, Phi_RR, Phi_zz, Phi_Rz)`` for ``order`` 0, 1, 2.
    """

    R, z = jnp.broadcast_arrays(jnp.asarray(R, dtype=float), jnp.asarray(z, dtype=float))
    r, inv_r, R_r, z_r = _safe_ratios(R, z)
    H, Hp, h = vertical_disk_derivatives(z, scale_height, profile=profile)
    f, fp, fpp = radial_disk_derivatives(r, *radial)

    phi = _FOUR_PI * f * H
    if order == 0:
        return (phi,)

    dR = _FOUR_PI * fp * R_r * H
    dz = _FOUR_PI * (fp * z_r * H + f * Hp)
    if order == 1:
        return phi, dR, dz

    fp_over_r = fp * inv_r
    dR2 = _FOUR_PI * H * (fpp * R_r * R_r + fp_over_r * z_r * z_r)
    dz2 = _FOUR_PI * (H * (fpp * z_r * z_r + fp_over_r * R_r * R_r) + 2.0 * fp * z_r * Hp + f * h)
    dRdz = _FOUR_PI * R_r * (H * z_r * (fpp - fp_over_r) + fp * Hp)
    return phi, dR, dz, dR2, dz2, dRdz


class _DiskComponent:
    """Holds this component's own copy of the radial and vertical functions."""

    def __init__(self, params: DiskParams):
        self.params = params
        self.radial_fnc = create_radial_disk_function(params)
        self.vertical_fnc = create_vertical_disk_function(params)

    @property
    def _radial_args(self) -> tuple[float, float, float, float]:
        fnc = self.radial_fnc
        return (
            fnc.surface_density,
            fnc.scale_length,
            fnc.inner_cutoff_radius,
            fnc.modulation_amplitude,
        )

    def symmetry(self: "_DiskComponent") -> SymmetryType:
        return SymmetryType.AXISYMMETRIC

    def input_density(self: "_DiskComponent", pos: PosCyl) -> Array:
        """The disk profile ``f(R) h(z)`` this component was built from."""

        p = as_pos_cyl(pos)
        return self.radial_fnc.value(p.R) * self.vertical_fnc.density(p.z)


class DiskResidual(_DiskComponent):
    """Residual density of a disk (eq. 9 of Dehnen & Binney 1998)."""

    name = "DiskResidual"

    def density(self: "DiskResidual", pos: PosCyl) -> Array:
        p = as_pos_cyl(pos)
        return residual_density_kernel(
            p.R,
            p.z,
            self._radial_args,
            self.vertical_fnc.scale_height,
            profile=self.vertical_fnc.profile,
        )


class DiskAnsatz(_DiskComponent):
    """Analytic part ``4 pi f(r) H(z)`` of a disk potential."""

    name = "DiskAnsatz"

    def evaluate(
        self: "DiskAnsatz",
        pos: PosCyl,
        *,
        gradient: bool = False,
        hessian: bool = False,
    ) -> PotentialEval:
        p = as_pos_cyl(pos)
        terms = ansatz_potential_kernel(
            p.R,
            p.z,
            self._radial_args,
            self.vertical_fnc.scale_height,
            profile=self.vertical_fnc.profile,
            order=derivative_order(gradient, hessian),
        )
        return pack_potential_derivatives(terms, gradient=gradient, hessian=hessian)

    def density(self: "DiskAnsatz", pos: PosCyl) -> Array:
        """Laplacian of the ansatz over 4 pi, in closed form."""

        p = as_pos_cyl(pos)
        return ansatz_density_kernel(
            p.R,
            p.z,
            self._radial_args,
            self.vertical_fnc.scale_height,
            profile=self.vertical_fnc.profile,
        )


def make_disk_pair(params: DiskParams) -> tuple[DiskAnsatz, DiskResidual]:
    """Ansatz potential and residual density built from the same parameters."""

    return DiskAnsatz(params), DiskResidual(params)


__all__ = [
    "DiskAnsatz",
    "DiskResidual",
    "ansatz_density_kernel",
    "ansatz_potential_kernel",
    "make_disk_pair",
    "residual_density_kernel",
]
