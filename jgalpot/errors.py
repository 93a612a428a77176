"""Exception types raised by jgalpot components."""

from __future__ import annotations


class DomainError(ValueError):
    """Invalid construction parameters, reported before any work is done."""


class NonFiniteError(ArithmeticError):
    """A non-finite value appeared while building a potential approximation."""


__all__ = ["DomainError", "NonFiniteError"]
