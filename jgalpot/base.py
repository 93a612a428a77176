"""Shared capability interface for densities and potentials.

Every component exposes the same narrow contract:

- ``density(pos) -> Array``
- ``symmetry() -> SymmetryType``
- potentials additionally ``evaluate(pos, gradient=..., hessian=...)``

Positions are :class:`~jgalpot.coords.PosCyl` tuples of broadcastable arrays
and all derivatives are returned in cylindrical coordinates.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, NamedTuple, Optional, Protocol, Sequence, runtime_checkable

import jax
import jax.numpy as jnp
from jaxtyping import Array, ArrayLike

from .coords import (
    GradCyl,
    HessCyl,
    PosCar,
    PosCyl,
    as_pos_cyl,
    to_grad_car,
    to_hess_car,
    to_pos_cyl,
)


class SymmetryType(IntEnum):
    """Symmetry advertised by a model, ordered from strictest to weakest.

    ``AXISYMMETRIC`` also implies reflection symmetry about the ``z = 0``
    plane; the multipole solver relies on it.
    """

    SPHERICAL = 0
    AXISYMMETRIC = 1
    TRIAXIAL = 2
    NONE = 3


def is_axisymmetric(symmetry: SymmetryType) -> bool:
    """True if ``symmetry`` is axisymmetric or stricter."""

    return SymmetryType(symmetry) <= SymmetryType.AXISYMMETRIC


def weakest_symmetry(symmetries: Sequence[SymmetryType]) -> SymmetryType:
    if not symmetries:
        return SymmetryType.SPHERICAL
    return SymmetryType(max(int(s) for s in symmetries))


class PotentialEval(NamedTuple):
    """Potential value and the optionally requested derivatives."""

    value: Array
    gradient: Optional[Any] = None
    hessian: Optional[Any] = None


@runtime_checkable
class DensityModel(Protocol):
    def density(self: "DensityModel", pos: PosCyl) -> Array: ...

    def symmetry(self: "DensityModel") -> SymmetryType: ...


@runtime_checkable
class PotentialModel(Protocol):
    def evaluate(
        self: "PotentialModel",
        pos: PosCyl,
        *,
        gradient: bool = False,
        hessian: bool = False,
    ) -> PotentialEval: ...

    def density(self: "PotentialModel", pos: PosCyl) -> Array: ...

    def symmetry(self: "PotentialModel") -> SymmetryType: ...


def derivative_order(gradient: bool, hessian: bool) -> int:
    if hessian:
        return 2
    return 1 if gradient else 0


def pack_potential_derivatives(
    terms: tuple[Array, ...],
    *,
    gradient: bool,
    hessian: bool,
) -> PotentialEval:
    """Wrap kernel output ``(Phi, Phi_R, Phi_z, Phi_RR, Phi_zz, Phi_Rz)``."""

    value = terms[0]
    zeros = jnp.zeros_like(value)
    grad = GradCyl(terms[1], terms[2], zeros) if gradient else None
    hess = HessCyl(terms[3], terms[4], zeros, terms[5], zeros, zeros) if hessian else None
    return PotentialEval(value, grad, hess)


def add_evals(first: PotentialEval, second: PotentialEval) -> PotentialEval:
    """Elementwise sum of two evaluations holding the same requested fields."""

    gradient = (
        None
        if first.gradient is None
        else jax.tree_util.tree_map(jnp.add, first.gradient, second.gradient)
    )
    hessian = (
        None
        if first.hessian is None
        else jax.tree_util.tree_map(jnp.add, first.hessian, second.hessian)
    )
    return PotentialEval(first.value + second.value, gradient, hessian)


def density_from_derivatives(pos: PosCyl, grad: GradCyl, hess: HessCyl) -> Array:
    """Poisson density ``(Phi_RR + Phi_R / R + Phi_zz) / 4 pi`` with G = 1.

    On the axis ``Phi_R / R`` is replaced by its limit ``Phi_RR``.
    """

    p = as_pos_cyl(pos)
    on_axis = p.R == 0
    dR_over_R = jnp.where(on_axis, hess.dR2, grad.dR / jnp.where(on_axis, 1.0, p.R))
    return (hess.dR2 + dR_over_R + hess.dz2) / (4.0 * jnp.pi)


def laplacian_density(model: PotentialModel, pos: PosCyl) -> Array:
    """Density implied by a potential through its analytic Hessian."""

    result = model.evaluate(pos, gradient=True, hessian=True)
    return density_from_derivatives(pos, result.gradient, result.hessian)


def circular_velocity(model: PotentialModel, R: ArrayLike) -> Array:
    """Equatorial circular speed ``sqrt(R dPhi/dR)``, clipped at zero."""

    radius = jnp.asarray(R, dtype=float)
    result = model.evaluate(PosCyl(radius, jnp.zeros_like(radius)), gradient=True)
    return jnp.sqrt(jnp.maximum(radius * result.gradient.dR, 0.0))


def evaluate_cartesian(
    model: PotentialModel,
    pos: PosCar,
    *,
    gradient: bool = False,
    hessian: bool = False,
) -> PotentialEval:
    """Evaluate ``model`` at Cartesian points, returning Cartesian derivatives."""

    cyl = to_pos_cyl(pos)
    need_grad = gradient or hessian
    result = model.evaluate(cyl, gradient=need_grad, hessian=hessian)
    grad_car = to_grad_car(result.gradient, cyl) if gradient else None
    hess_car = to_hess_car(result.gradient, result.hessian, cyl) if hessian else None
    return PotentialEval(result.value, grad_car, hess_car)


__all__ = [
    "DensityModel",
    "PotentialEval",
    "PotentialModel",
    "SymmetryType",
    "add_evals",
    "circular_velocity",
    "density_from_derivatives",
    "derivative_order",
    "evaluate_cartesian",
    "is_axisymmetric",
    "laplacian_density",
    "pack_potential_derivatives",
    "weakest_symmetry",
]
