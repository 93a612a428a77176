"""Construction of the immutable multipole grid.

Pipeline (all eager, run once per :class:`~jgalpot.multipole.Multipole`):

1. ``K`` radii log-spaced in ``[r_min, r_max]``.
2. Angular moments ``rho_l(r) = (2l + 1) int_0^1 rho(r, mu) P_l(mu) dmu``
   for even ``l`` by Gauss-Legendre quadrature in ``mu = cos(theta)``,
   sampled at the nodes and at Gauss points inside every radial interval.
3. Green-function recursion for each harmonic::

       P_{i+1} = (r_i/r_{i+1})^(l+1) P_i + r_{i+1}^-(l+1) int rho_l r^(l+2) dr
       Q_i     = (r_i/r_{i+1})^l Q_{i+1} + r_i^l int rho_l r^(1-l) dr
       Phi_l   = -4 pi / (2l + 1) (P + Q)

   started from power-law density tails ``rho_l ~ r^(l - gamma)`` below
   ``r_min`` and ``rho_l ~ r^-beta`` above ``r_max``. The extra ``r^l`` keeps
   the non-spherical part of the source regular at the centre. The curvature
   in ``ln r`` follows from the radial equation
   ``Phi'' + Phi' - l(l+1) Phi = 4 pi r^2 rho_l``.
4. Node table of all mixed derivatives up to second order in ``(ln r, mu)``
   feeding the tensor-product quintic spline.
5. Power-law extrapolation coefficients matching value and slope of every
   harmonic at both grid boundaries, and their limits at ``r = 0``.
"""

from __future__ import annotations

import math
import warnings
from typing import NamedTuple

import jax.numpy as jnp
import numpy as np
from jax import lax
from jaxtyping import Array

from ..base import DensityModel, is_axisymmetric
from ..coords import PosCyl
from ..errors import DomainError, NonFiniteError
from .legendre import even_degrees, gauss_legendre_unit, legendre_table

MIN_RADIAL_POINTS = 6
_DEGENERATE_EXPONENT = 1e-10


class MultipoleGrid(NamedTuple):
    """Read-only spline and extrapolation tables of a multipole potential.

    ``table[i, j, a, b]`` is ``d^(a+b) Phi / d(ln r)^a dmu^b`` at radius node
    ``i`` and angular node ``j``. ``harmonics[i, k, a]`` holds the ``a``-th
    ``ln r`` derivative of the ``k``-th even harmonic at node ``i``.
    """

    log_radii: Array
    mu_nodes: Array
    table: Array
    degrees: Array
    harmonics: Array
    inner_coefs: Array
    outer_coefs: Array
    inner_exponents: Array
    outer_exponents: Array
    inner_log: Array
    outer_log: Array
    central_potential: Array
    central_dR2: Array
    central_dz2: Array
    gamma: Array
    beta: Array

    @property
    def num_radial(self: "MultipoleGrid") -> int:
        return int(self.log_radii.shape[0])

    @property
    def num_angular(self: "MultipoleGrid") -> int:
        return int(self.mu_nodes.shape[0])

    @property
    def lmax(self: "MultipoleGrid") -> int:
        return 2 * (int(self.degrees.shape[0]) - 1)

    @property
    def r_min(self: "MultipoleGrid") -> float:
        return float(jnp.exp(self.log_radii[0]))

    @property
    def r_max(self: "MultipoleGrid") -> float:
        return float(jnp.exp(self.log_radii[-1]))

    @property
    def radii(self: "MultipoleGrid") -> Array:
        return jnp.exp(self.log_radii)

    def node(self: "MultipoleGrid", i: int, j: int, dx: int = 0, dy: int = 0) -> float:
        """Bounds-checked access to one node entry of the spline table."""

        if not 0 <= i < self.num_radial:
            raise IndexError(f"radial node {i} outside [0, {self.num_radial})")
        if not 0 <= j < self.num_angular:
            raise IndexError(f"angular node {j} outside [0, {self.num_angular})")
        if not (0 <= dx <= 2 and 0 <= dy <= 2):
            raise IndexError("derivative orders must lie in 0..2")
        return float(self.table[i, j, dx, dy])


def _angular_moments(
    source: DensityModel,
    radii: Array,
    mu: Array,
    weights: Array,
    legendre: Array,
    degrees: np.ndarray,
) -> Array:
    """Moments ``(2l+1) sum_q w_q rho(r, mu_q) P_l(mu_q)`` of shape ``(S, L)``."""

    sin_theta = jnp.sqrt(1.0 - mu * mu)
    R = radii[:, None] * sin_theta[None, :]
    z = radii[:, None] * mu[None, :]
    rho = jnp.asarray(source.density(PosCyl(R, z)), dtype=float)
    norm = jnp.asarray(2.0 * degrees + 1.0)
    return norm * jnp.einsum("sq,q,lq->sl", rho, weights, legendre)


def _scan_inner(start: Array, decay: Array, increment: Array) -> Array:
    def _step(carry: Array, inputs: tuple[Array, Array]) -> tuple[Array, Array]:
        d, inc = inputs
        nxt = d * carry + inc
        return nxt, nxt

    _, rest = lax.scan(_step, start, (decay, increment))
    return jnp.concatenate([start[None], rest], axis=0)


def _scan_outer(start: Array, decay: Array, increment: Array) -> Array:
    def _step(carry: Array, inputs: tuple[Array, Array]) -> tuple[Array, Array]:
        d, inc = inputs
        nxt = d * carry + inc
        return nxt, nxt

    _, rest = lax.scan(_step, start, (decay, increment), reverse=True)
    return jnp.concatenate([rest, start[None]], axis=0)


def _boundary_coefficients(
    phi: Array,
    dphi: Array,
    v1: np.ndarray,
    v2: np.ndarray,
) -> tuple[Array, Array, np.ndarray]:
    """``U, W`` of ``U (r/r_b)^v1 + W (r/r_b)^v2`` matching value and slope.

    Coinciding exponents switch the second basis to ``(r/r_b)^v1 ln(r/r_b)``.
    """

    log_mode = np.abs(v1 - v2) < _DEGENERATE_EXPONENT
    denom = np.where(log_mode, 1.0, v1 - v2)
    u_plain = (dphi - v2 * phi) / denom
    U = jnp.where(log_mode, phi, u_plain)
    W = jnp.where(log_mode, dphi - v1 * phi, phi - u_plain)
    return U, W, log_mode


def _inner_terms(
    U: float,
    W: float,
    v1: float,
    v2: float,
    log_mode: bool,
    r_min: float,
) -> list[tuple[float, int, float]]:
    """One inner harmonic as ``sum c r^e (ln r)^k``, listed as ``(e, k, c)``."""

    lead = (v1, 0, U / r_min**v1)
    if log_mode:
        scale = W / r_min**v1
        return [lead, (v1, 1, scale), (v1, 0, -scale * math.log(r_min))]
    return [lead, (v2, 0, W / r_min**v2)]


def _derivative_over_r(terms: list[tuple[float, int, float]]) -> list[tuple[float, int, float]]:
    out = []
    for e, k, c in terms:
        out.append((e - 2.0, k, c * e))
        if k:
            out.append((e - 2.0, k - 1, c * k))
    return out


def _limit_at_origin(terms: list[tuple[float, int, float]]) -> float:
    """Limit of ``sum c r^e (ln r)^k`` as ``r -> 0``.

    Positive powers vanish. The most negative power, then the highest power
    of the logarithm, fixes the sign of a divergence; only when nothing
    diverges is the sum of the constant terms returned.
    """

    def same(a: float, b: float) -> bool:
        return abs(a - b) < _DEGENERATE_EXPONENT

    divergent = [
        (e, k, c)
        for e, k, c in terms
        if c != 0 and (e < -_DEGENERATE_EXPONENT or (same(e, 0.0) and k > 0))
    ]
    while divergent:
        e0 = min(e for e, _, _ in divergent)
        k0 = max(k for e, k, _ in divergent if same(e, e0))
        lead = [t for t in divergent if same(t[0], e0) and t[1] == k0]
        total = sum(c for _, _, c in lead)
        if total != 0:
            return math.copysign(math.inf, total * (-1) ** k0)
        divergent = [t for t in divergent if t not in lead]
    return float(sum(c for e, k, c in terms if same(e, 0.0) and k == 0))


def _central_limits(
    degrees: np.ndarray,
    coefs: np.ndarray,
    exponents: np.ndarray,
    log_mode: np.ndarray,
    r_min: float,
) -> tuple[float, float, float]:
    """Potential, ``Phi_RR`` and ``Phi_zz`` of the inner power laws at ``r = 0``.

    Each second derivative is the limit approached along the other axis:
    ``Phi_RR`` on the symmetry axis, where it equals
    ``sum_l [Phi_l' / r - l(l+1)/2 Phi_l / r^2]``, and ``Phi_zz`` in the plane,
    ``sum_l [P_l(0) Phi_l' / r + P_l''(0) Phi_l / r^2]``. For a core,
    ``Phi ~ A r^2 + B r^2 P_2(mu)`` near the centre, both are the unique limits
    ``2A - B`` and ``2A + 2B``. At a cusp they diverge with the sign of the
    monopole ``Phi_r / r``, whereas ``Phi_rr`` along the approach direction
    may stay finite.
    """

    at_equator = np.asarray(legendre_table(np.zeros(1), lmax=int(degrees[-1])))[:, degrees, 0]
    potential_terms = []
    dR2_terms = []
    dz2_terms = []
    for idx, ell in enumerate(degrees.astype(float)):
        terms = _inner_terms(
            float(coefs[idx, 0]),
            float(coefs[idx, 1]),
            float(exponents[idx, 0]),
            float(exponents[idx, 1]),
            bool(log_mode[idx]),
            r_min,
        )
        over_r = _derivative_over_r(terms)
        over_r2 = [(e - 2.0, k, c) for e, k, c in terms]
        if ell == 0:
            potential_terms.extend(terms)
        dR2_terms.extend(over_r)
        dR2_terms.extend((e, k, -0.5 * ell * (ell + 1.0) * c) for e, k, c in over_r2)
        dz2_terms.extend((e, k, at_equator[0, idx] * c) for e, k, c in over_r)
        dz2_terms.extend((e, k, at_equator[2, idx] * c) for e, k, c in over_r2)
    return (
        _limit_at_origin(potential_terms),
        _limit_at_origin(dR2_terms),
        _limit_at_origin(dz2_terms),
    )


def validate_grid_parameters(
    source: DensityModel,
    r_min: float,
    r_max: float,
    num_grid_points: int,
    gamma: float,
    beta: float,
    *,
    lmax: int,
    num_angular_points: int,
    num_quadrature_points: int,
    num_radial_substeps: int,
) -> None:
    if not is_axisymmetric(source.symmetry()):
        raise DomainError(
            f"multipole source must be axisymmetric, got {source.symmetry().name}"
        )
    if not (math.isfinite(r_min) and math.isfinite(r_max)):
        raise DomainError("grid extent must be finite")
    if r_min <= 0:
        raise DomainError(f"r_min must be > 0, got {r_min}")
    if r_max <= r_min:
        raise DomainError(f"r_max must exceed r_min, got r_min={r_min}, r_max={r_max}")
    if num_grid_points < MIN_RADIAL_POINTS:
        raise DomainError(
            f"num_grid_points must be >= {MIN_RADIAL_POINTS} for a quintic spline, "
            f"got {num_grid_points}"
        )
    if gamma >= 3:
        raise DomainError(f"inner density slope gamma must be < 3, got {gamma}")
    if beta <= 2:
        raise DomainError(f"outer density slope beta must be > 2, got {beta}")
    if lmax < 0:
        raise DomainError("lmax must be >= 0")
    if num_angular_points < 2:
        raise DomainError("num_angular_points must be >= 2")
    if num_quadrature_points < 1 or num_radial_substeps < 1:
        raise DomainError("quadrature sizes must be >= 1")


def build_multipole_grid(
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
) -> MultipoleGrid:
    """Sample ``source``, solve the radial equations and tabulate the spline."""

    r_min, r_max, gamma, beta = float(r_min), float(r_max), float(gamma), float(beta)
    num_grid_points = int(num_grid_points)
    validate_grid_parameters(
        source,
        r_min,
        r_max,
        num_grid_points,
        gamma,
        beta,
        lmax=int(lmax),
        num_angular_points=int(num_angular_points),
        num_quadrature_points=int(num_quadrature_points),
        num_radial_substeps=int(num_radial_substeps),
    )
    if num_quadrature_points <= lmax:
        warnings.warn(
            f"{num_quadrature_points} angular quadrature nodes under-resolve "
            f"harmonics up to lmax={lmax}",
            RuntimeWarning,
            stacklevel=3,
        )

    degrees = even_degrees(lmax)
    ell = degrees.astype(float)
    lmax_even = int(degrees[-1])

    # radial nodes and Gauss points inside each interval
    log_radii = np.linspace(math.log(r_min), math.log(r_max), num_grid_points)
    radii = np.exp(log_radii)
    delta = np.diff(log_radii)
    t_sub, w_sub = gauss_legendre_unit(num_radial_substeps)
    log_sub = log_radii[:-1, None] + delta[:, None] * t_sub[None, :]
    r_sub = np.exp(log_sub)

    # angular moments
    mu_q, w_q = gauss_legendre_unit(num_quadrature_points)
    legendre_q = legendre_table(mu_q, lmax=lmax_even)[0][degrees]
    rho_nodes = _angular_moments(source, jnp.asarray(radii), mu_q, w_q, legendre_q, degrees)
    rho_sub = _angular_moments(
        source, jnp.asarray(r_sub.ravel()), mu_q, w_q, legendre_q, degrees
    ).reshape(r_sub.shape + (ell.size,))
    if not (bool(jnp.all(jnp.isfinite(rho_nodes))) and bool(jnp.all(jnp.isfinite(rho_sub)))):
        raise NonFiniteError("source density produced non-finite angular moments")

    # radial Green-function recursion, vectorised over harmonics
    ratio_in = (r_sub / radii[1:, None])[..., None] ** (ell + 1.0)
    ratio_out = (radii[:-1, None] / r_sub)[..., None] ** ell
    weight = (w_sub[None, :] * r_sub**2)[..., None]
    inc_in = delta[:, None] * jnp.sum(weight * rho_sub * ratio_in, axis=1)
    inc_out = delta[:, None] * jnp.sum(weight * rho_sub * ratio_out, axis=1)
    decay_in = jnp.asarray(np.exp(-delta[:, None] * (ell + 1.0)))
    decay_out = jnp.asarray(np.exp(-delta[:, None] * ell))

    p_start = rho_nodes[0] * radii[0] ** 2 / (2.0 * ell + 3.0 - gamma)
    q_start = rho_nodes[-1] * radii[-1] ** 2 / (beta + ell - 2.0)
    P = _scan_inner(p_start, decay_in, inc_in)
    Q = _scan_outer(q_start, decay_out, inc_out)

    pref = -4.0 * jnp.pi / (2.0 * ell + 1.0)
    phi = pref * (P + Q)
    phi_x = pref * (-(ell + 1.0) * P + ell * Q)
    phi_xx = 4.0 * jnp.pi * (radii**2)[:, None] * rho_nodes - phi_x + ell * (ell + 1.0) * phi
    harmonics = jnp.stack([phi, phi_x, phi_xx], axis=-1)

    # angular nodes uniform in theta, mu ascending from the equator to the pole
    mu_nodes = np.sin(0.5 * np.pi * np.arange(num_angular_points) / (num_angular_points - 1))
    legendre_nodes = legendre_table(mu_nodes, lmax=lmax_even)[:, degrees]
    table = jnp.einsum("kla,blm->kmab", harmonics, legendre_nodes)
    if not bool(jnp.all(jnp.isfinite(table))):
        raise NonFiniteError("multipole spline table contains non-finite values")

    inner_exp = np.stack([ell + 2.0 - gamma, ell], axis=-1)
    outer_exp = np.stack([np.full_like(ell, 2.0 - beta), -ell - 1.0], axis=-1)
    U_in, W_in, log_in = _boundary_coefficients(phi[0], phi_x[0], inner_exp[:, 0], inner_exp[:, 1])
    U_out, W_out, log_out = _boundary_coefficients(
        phi[-1], phi_x[-1], outer_exp[:, 0], outer_exp[:, 1]
    )
    central_potential, central_dR2, central_dz2 = _central_limits(
        degrees,
        np.stack([np.asarray(U_in), np.asarray(W_in)], axis=-1),
        inner_exp,
        log_in,
        r_min,
    )

    return MultipoleGrid(
        log_radii=jnp.asarray(log_radii),
        mu_nodes=jnp.asarray(mu_nodes),
        table=table,
        degrees=jnp.asarray(ell),
        harmonics=harmonics,
        inner_coefs=jnp.stack([U_in, W_in], axis=-1),
        outer_coefs=jnp.stack([U_out, W_out], axis=-1),
        inner_exponents=jnp.asarray(inner_exp),
        outer_exponents=jnp.asarray(outer_exp),
        inner_log=jnp.asarray(log_in),
        outer_log=jnp.asarray(log_out),
        central_potential=jnp.asarray(central_potential),
        central_dR2=jnp.asarray(central_dR2),
        central_dz2=jnp.asarray(central_dz2),
        gamma=jnp.asarray(gamma),
        beta=jnp.asarray(beta),
    )


__all__ = [
    "MIN_RADIAL_POINTS",
    "MultipoleGrid",
    "build_multipole_grid",
    "validate_grid_parameters",
]
