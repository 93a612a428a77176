"""Multipole potential of an axisymmetric density.

Inside ``[r_min, r_max]`` the potential is the tensor-product quintic spline
in ``(ln r, mu = |z|/r)``; outside, every even harmonic follows its fitted
power law. Derivatives are taken analytically in ``(ln r, mu)`` and chained
to cylindrical ``(R, z)``. Points below the plane use the reflection
``Phi(R, -z) = Phi(R, z)``.
"""

from __future__ import annotations

from functools import partial

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, ArrayLike, jaxtyped

from ..base import (
    DensityModel,
    PotentialEval,
    SymmetryType,
    density_from_derivatives,
    derivative_order,
    pack_potential_derivatives,
)
from ..coords import PosCyl, as_pos_cyl
from .grid import MultipoleGrid, build_multipole_grid
from .legendre import legendre_table
from .quintic import contract_tensor_spline, gather_cell_coefficients, hermite_basis, locate_cells


def _power_law_harmonics(
    grid: MultipoleGrid,
    x: Array,
    below: Array,
    inside: Array,
    order: int,
) -> list[Array]:
    """``ln r`` derivatives ``0..order`` of every extrapolated harmonic, ``(..., L)``."""

    sel = below[..., None]
    U = jnp.where(sel, grid.inner_coefs[:, 0], grid.outer_coefs[:, 0])
    W = jnp.where(sel, grid.inner_coefs[:, 1], grid.outer_coefs[:, 1])
    v1 = jnp.where(sel, grid.inner_exponents[:, 0], grid.outer_exponents[:, 0])
    v2 = jnp.where(sel, grid.inner_exponents[:, 1], grid.outer_exponents[:, 1])
    log_mode = jnp.where(sel, grid.inner_log, grid.outer_log)

    boundary = jnp.where(below, grid.log_radii[0], grid.log_radii[-1])
    lr = jnp.where(inside, 0.0, x - boundary)[..., None]
    b1 = jnp.exp(v1 * lr)
    e2 = jnp.exp(v2 * lr)

    out = [U * b1 + W * jnp.where(log_mode, b1 * lr, e2)]
    if order >= 1:
        out.append(U * v1 * b1 + W * jnp.where(log_mode, b1 * (v1 * lr + 1.0), v2 * e2))
    if order >= 2:
        out.append(
            U * v1 * v1 * b1
            + W * jnp.where(log_mode, b1 * (v1 * v1 * lr + 2.0 * v1), v2 * v2 * e2)
        )
    return out


@partial(jax.jit, static_argnames=("order",))
@jaxtyped(typechecker=beartype)
def multipole_kernel(grid: MultipoleGrid, R: ArrayLike, z: ArrayLike, *, order: int) -> tuple[Array, ...]:
    """Potential and cylindrical derivatives up to ``order`` (same layout as the disk ansatz)."""

    R, z = jnp.broadcast_arrays(jnp.asarray(R, dtype=float), jnp.asarray(z, dtype=float))
    sign = jnp.where(z < 0, -1.0, 1.0)
    abs_z = jnp.abs(z)
    r = jnp.hypot(R, abs_z)
    origin = r == 0
    lo = grid.log_radii[0]
    hi = grid.log_radii[-1]
    r_safe = jnp.where(origin, jnp.exp(lo), r)
    x = jnp.log(r_safe)
    s = jnp.where(origin, 0.0, R / r_safe)
    c = jnp.clip(jnp.where(origin, 0.0, abs_z / r_safe), 0.0, 1.0)

    below = x < lo
    inside = (x >= lo) & (x <= hi)

    ix, tx, wx = locate_cells(grid.log_radii, jnp.clip(x, lo, hi))
    iy, ty, wy = locate_cells(grid.mu_nodes, c)
    coeffs = gather_cell_coefficients(grid.table, ix, iy)
    bx = [hermite_basis(tx, wx, deriv=d) for d in range(order + 1)]
    by = [hermite_basis(ty, wy, deriv=d) for d in range(order + 1)]

    lmax = 2 * (grid.degrees.shape[0] - 1)
    legendre = jnp.moveaxis(legendre_table(c, lmax=lmax)[:, ::2], 1, -1)
    radial = _power_law_harmonics(grid, x, below, inside, order)

    def mixed(a: int, b: int) -> Array:
        spline = contract_tensor_spline(bx[a], coeffs, by[b])
        outside = jnp.sum(radial[a] * legendre[b], axis=-1)
        return jnp.where(inside, spline, outside)

    phi = jnp.where(origin, grid.central_potential, mixed(0, 0))
    if order == 0:
        return (phi,)

    f_x = mixed(1, 0)
    f_m = mixed(0, 1)
    inv_r = 1.0 / r_safe
    x_R, x_z = s * inv_r, c * inv_r
    m_R, m_z = -s * c * inv_r, s * s * inv_r
    dR = jnp.where(origin, 0.0, f_x * x_R + f_m * m_R)
    dz = jnp.where(origin, 0.0, sign * (f_x * x_z + f_m * m_z))
    if order == 1:
        return phi, dR, dz

    f_xx = mixed(2, 0)
    f_xm = mixed(1, 1)
    f_mm = mixed(0, 2)
    inv_r2 = inv_r * inv_r
    x_RR = (c * c - s * s) * inv_r2
    x_zz = -x_RR
    x_Rz = -2.0 * s * c * inv_r2
    m_RR = c * (3.0 * s * s - 1.0) * inv_r2
    m_zz = -3.0 * s * s * c * inv_r2
    m_Rz = s * (2.0 - 3.0 * s * s) * inv_r2

    dR2 = f_xx * x_R * x_R + 2.0 * f_xm * x_R * m_R + f_mm * m_R * m_R + f_x * x_RR + f_m * m_RR
    dz2 = f_xx * x_z * x_z + 2.0 * f_xm * x_z * m_z + f_mm * m_z * m_z + f_x * x_zz + f_m * m_zz
    dRdz = (
        f_xx * x_R * x_z
        + f_xm * (x_R * m_z + x_z * m_R)
        + f_mm * m_R * m_z
        + f_x * x_Rz
        + f_m * m_Rz
    )
    dR2 = jnp.where(origin, grid.central_dR2, dR2)
    dz2 = jnp.where(origin, grid.central_dz2, dz2)
    dRdz = jnp.where(origin, 0.0, sign * dRdz)
    return phi, dR, dz, dR2, dz2, dRdz


class Multipole:
    """Spline approximation to the potential of an axisymmetric density.

    The grid is built eagerly and the source is not retained; only the
    immutable :class:`MultipoleGrid` survives construction.

    Args:
        source: Density reporting ``AXISYMMETRIC`` or stricter symmetry.
        r_min, r_max: Radial extent of the spline.
        num_grid_points: Number of log-spaced radial nodes (at least 6).
        gamma: Density slope assumed below ``r_min`` (``< 3``).
        beta: Density slope assumed above ``r_max`` (``> 2``).
        lmax: Highest harmonic degree; only even degrees are kept.
        num_angular_points: Spline nodes in ``mu`` on ``[0, 1]``.
        num_quadrature_points: Gauss-Legendre nodes for the angular moments.
        num_radial_substeps: Gauss-Legendre points per radial interval.
    """

    name = "Multipole"

    def __init__(
        self,
        source: DensityModel,
        r_min: float,
        r_max: float,
        num_grid_points: int,
        gamma: float,
        beta: float,
        *,
        lmax: int = 16,
        num_angular_points: int = 16,
        num_quadrature_points: int = 48,
        num_radial_substeps: int = 4,
    ):
        self._grid = build_multipole_grid(
            source,
            r_min,
            r_max,
            num_grid_points,
            gamma,
            beta,
            lmax=lmax,
            num_angular_points=num_angular_points,
            num_quadrature_points=num_quadrature_points,
            num_radial_substeps=num_radial_substeps,
        )

    @property
    def grid(self: "Multipole") -> MultipoleGrid:
        return self._grid

    def evaluate(
        self: "Multipole",
        pos: PosCyl,
        *,
        gradient: bool = False,
        hessian: bool = False,
    ) -> PotentialEval:
        p = as_pos_cyl(pos)
        terms = multipole_kernel(
            self._grid, p.R, p.z, order=derivative_order(gradient, hessian)
        )
        return pack_potential_derivatives(terms, gradient=gradient, hessian=hessian)

    def density(self: "Multipole", pos: PosCyl) -> Array:
        """Density implied by the spline through Poisson's equation."""

        result = self.evaluate(pos, gradient=True, hessian=True)
        return density_from_derivatives(pos, result.gradient, result.hessian)

    def symmetry(self: "Multipole") -> SymmetryType:
        return SymmetryType.AXISYMMETRIC


__all__ = ["Multipole", "multipole_kernel"]
