"""Additive combinations of densities and potentials."""

from __future__ import annotations

from typing import Sequence

import jax.numpy as jnp
from jaxtyping import Array

from .base import (
    DensityModel,
    PotentialEval,
    PotentialModel,
    SymmetryType,
    add_evals,
    weakest_symmetry,
)
from .coords import PosCyl, as_pos_cyl
from .errors import DomainError


class CompositeDensity:
    """Sum of several densities; symmetry is the weakest of the parts."""

    name = "CompositeDensity"

    def __init__(self, components: Sequence[DensityModel]):
        if len(components) == 0:
            raise DomainError("composite density needs at least one component")
        self.components = tuple(components)

    def density(self: "CompositeDensity", pos: PosCyl) -> Array:
        p = as_pos_cyl(pos)
        total = jnp.zeros_like(p.R)
        for comp in self.components:
            total = total + comp.density(p)
        return total

    def symmetry(self: "CompositeDensity") -> SymmetryType:
        return weakest_symmetry([c.symmetry() for c in self.components])

    def __len__(self) -> int:
        return len(self.components)


class CompositePotential:
    """Sum of potential terms evaluated at the same points."""

    name = "CompositePotential"

    def __init__(self, components: Sequence[PotentialModel]):
        if len(components) == 0:
            raise DomainError("composite potential needs at least one component")
        self.components = tuple(components)

    def evaluate(
        self: "CompositePotential",
        pos: PosCyl,
        *,
        gradient: bool = False,
        hessian: bool = False,
    ) -> PotentialEval:
        p = as_pos_cyl(pos)
        total = None
        for comp in self.components:
            part = comp.evaluate(p, gradient=gradient, hessian=hessian)
            total = part if total is None else add_evals(total, part)
        return total

    def density(self: "CompositePotential", pos: PosCyl) -> Array:
        p = as_pos_cyl(pos)
        total = jnp.zeros_like(p.R)
        for comp in self.components:
            total = total + comp.density(p)
        return total

    def symmetry(self: "CompositePotential") -> SymmetryType:
        return weakest_symmetry([c.symmetry() for c in self.components])

    def __len__(self) -> int:
        return len(self.components)


__all__ = ["CompositeDensity", "CompositePotential"]
