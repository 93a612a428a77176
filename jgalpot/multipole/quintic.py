"""Quintic Hermite splines in one and two dimensions.

Each node carries the value and the first two derivatives, so on every cell
the interpolant is the unique quintic matching six end conditions. Adjacent
cells share the node data, hence the spline is C^2 everywhere and exact at
the nodes for value, slope and curvature. The 2D spline is the tensor
product: nodes carry all nine mixed derivatives ``d^(a+b) F / dx^a dy^b``
with ``a, b`` in ``{0, 1, 2}``.

Basis ordering on a cell ``[x_i, x_{i+1}]`` is ``(left value, left slope,
left curvature, right value, right slope, right curvature)``.
"""

from __future__ import annotations

from functools import partial

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, ArrayLike, jaxtyped


def _basis_polynomials(t: Array, deriv: int) -> tuple[Array, ...]:
    t2 = t * t
    t3 = t2 * t
    t4 = t3 * t
    t5 = t4 * t
    if deriv == 0:
        return (
            1.0 - 10.0 * t3 + 15.0 * t4 - 6.0 * t5,
            t - 6.0 * t3 + 8.0 * t4 - 3.0 * t5,
            0.5 * (t2 - 3.0 * t3 + 3.0 * t4 - t5),
            10.0 * t3 - 15.0 * t4 + 6.0 * t5,
            -4.0 * t3 + 7.0 * t4 - 3.0 * t5,
            0.5 * (t3 - 2.0 * t4 + t5),
        )
    if deriv == 1:
        return (
            -30.0 * t2 + 60.0 * t3 - 30.0 * t4,
            1.0 - 18.0 * t2 + 32.0 * t3 - 15.0 * t4,
            0.5 * (2.0 * t - 9.0 * t2 + 12.0 * t3 - 5.0 * t4),
            30.0 * t2 - 60.0 * t3 + 30.0 * t4,
            -12.0 * t2 + 28.0 * t3 - 15.0 * t4,
            0.5 * (3.0 * t2 - 8.0 * t3 + 5.0 * t4),
        )
    if deriv == 2:
        return (
            -60.0 * t + 180.0 * t2 - 120.0 * t3,
            -36.0 * t + 96.0 * t2 - 60.0 * t3,
            0.5 * (2.0 - 18.0 * t + 36.0 * t2 - 20.0 * t3),
            60.0 * t - 180.0 * t2 + 120.0 * t3,
            -24.0 * t + 84.0 * t2 - 60.0 * t3,
            0.5 * (6.0 * t - 24.0 * t2 + 20.0 * t3),
        )
    raise ValueError("deriv must be 0, 1 or 2")


@partial(jax.jit, static_argnames=("deriv",))
@jaxtyped(typechecker=beartype)
def hermite_basis(t: ArrayLike, width: ArrayLike, *, deriv: int) -> Array:
    """Cell basis functions (and their x-derivatives) scaled by the cell width.

    ``t`` is the local coordinate in ``[0, 1]``; the result has shape
    ``t.shape + (6,)`` and already includes the factors ``width**(a - deriv)``
    so it can be contracted directly with node data ``d^a F / dx^a``.
    """

    t = jnp.asarray(t, dtype=float)
    width = jnp.asarray(width, dtype=float)
    powers = (0, 1, 2, 0, 1, 2)
    polys = _basis_polynomials(t, deriv)
    return jnp.stack(
        [poly * width ** (a - deriv) for poly, a in zip(polys, powers)],
        axis=-1,
    )


def locate_cells(nodes: Array, x: Array) -> tuple[Array, Array, Array]:
    """Cell index, local coordinate and width for points ``x`` (clamped)."""

    idx = jnp.clip(jnp.searchsorted(nodes, x, side="right") - 1, 0, nodes.shape[0] - 2)
    left = nodes[idx]
    width = nodes[idx + 1] - left
    return idx, (x - left) / width, width


@partial(jax.jit, static_argnames=("deriv",))
@jaxtyped(typechecker=beartype)
def evaluate_quintic_1d(nodes: Array, data: Array, x: ArrayLike, *, deriv: int = 0) -> Array:
    """Evaluate a 1D quintic Hermite spline.

    ``data`` has shape ``(K, 3)`` holding ``F, F', F''`` at each node.
    """

    x = jnp.asarray(x, dtype=float)
    idx, t, width = locate_cells(nodes, x)
    basis = hermite_basis(t, width, deriv=deriv)
    coeffs = jnp.concatenate([data[idx], data[idx + 1]], axis=-1)
    return jnp.sum(basis * coeffs, axis=-1)


def gather_cell_coefficients(table: Array, ix: Array, iy: Array) -> Array:
    """Corner data of the cells ``(ix, iy)`` as ``(..., 6, 6)`` matrices.

    ``table`` has shape ``(Kx, Ky, 3, 3)`` indexed by node and derivative
    orders; rows of the result follow the x basis ordering, columns the y one.
    """

    corners = jnp.stack(
        [
            jnp.stack([table[ix, iy], table[ix, iy + 1]], axis=-3),
            jnp.stack([table[ix + 1, iy], table[ix + 1, iy + 1]], axis=-3),
        ],
        axis=-4,
    )
    # (..., p, q, a, b) -> (..., p, a, q, b)
    corners = jnp.swapaxes(corners, -3, -2)
    shape = corners.shape[:-4] + (6, 6)
    return corners.reshape(shape)


def contract_tensor_spline(bx: Array, coeffs: Array, by: Array) -> Array:
    return jnp.einsum("...i,...ij,...j->...", bx, coeffs, by)


@partial(jax.jit, static_argnames=("deriv_x", "deriv_y"))
@jaxtyped(typechecker=beartype)
def evaluate_quintic_2d(
    x_nodes: Array,
    y_nodes: Array,
    table: Array,
    x: ArrayLike,
    y: ArrayLike,
    *,
    deriv_x: int = 0,
    deriv_y: int = 0,
) -> Array:
    """Evaluate one mixed derivative of a 2D tensor-product quintic spline."""

    x, y = jnp.broadcast_arrays(jnp.asarray(x, dtype=float), jnp.asarray(y, dtype=float))
    ix, tx, wx = locate_cells(x_nodes, x)
    iy, ty, wy = locate_cells(y_nodes, y)
    coeffs = gather_cell_coefficients(table, ix, iy)
    return contract_tensor_spline(
        hermite_basis(tx, wx, deriv=deriv_x),
        coeffs,
        hermite_basis(ty, wy, deriv=deriv_y),
    )


__all__ = [
    "contract_tensor_spline",
    "evaluate_quintic_1d",
    "evaluate_quintic_2d",
    "gather_cell_coefficients",
    "hermite_basis",
    "locate_cells",
]
