"""Legendre polynomials and their first two derivatives."""

from __future__ import annotations

from functools import partial

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from jaxtyping import Array, ArrayLike, jaxtyped


@partial(jax.jit, static_argnames=("lmax",))
@jaxtyped(typechecker=beartype)
def legendre_table(mu: ArrayLike, *, lmax: int) -> Array:
    """Return ``P_l``, ``P_l'``, ``P_l''`` for ``l = 0..lmax``.

    The result has shape ``(3, lmax + 1) + mu.shape``. Uses the three-term
    recurrence and ``P'_{l+1} = P'_{l-1} + (2l + 1) P_l`` (and the same for
    the second derivative), which stay regular at ``mu = +-1``.
    """

    if lmax < 0:
        raise ValueError("lmax must be >= 0")
    mu = jnp.asarray(mu, dtype=float)
    one = jnp.ones_like(mu)
    zero = jnp.zeros_like(mu)

    p = [one, mu]
    dp = [zero, one]
    d2p = [zero, zero]
    for ell in range(1, lmax):
        p.append(((2 * ell + 1) * mu * p[ell] - ell * p[ell - 1]) / (ell + 1))
        dp.append(dp[ell - 1] + (2 * ell + 1) * p[ell])
        d2p.append(d2p[ell - 1] + (2 * ell + 1) * dp[ell])

    n = lmax + 1
    return jnp.stack([jnp.stack(p[:n]), jnp.stack(dp[:n]), jnp.stack(d2p[:n])])


def even_degrees(lmax: int) -> np.ndarray:
    """Even harmonic degrees ``0, 2, ..., <= lmax`` kept by reflection symmetry."""

    return np.arange(0, int(lmax) + 1, 2)


def gauss_legendre_unit(n: int) -> tuple[np.ndarray, np.ndarray]:
    """Gauss-Legendre nodes and weights mapped to ``[0, 1]`` (weights sum to 1)."""

    nodes, weights = np.polynomial.legendre.leggauss(int(n))
    return 0.5 * (nodes + 1.0), 0.5 * weights


__all__ = ["even_degrees", "gauss_legendre_unit", "legendre_table"]
