import jax.numpy as jnp
import numpy as np
import pytest

from jgalpot.base import SymmetryType
from jgalpot.config import SpheroidParams
from jgalpot.coords import PosCyl
from jgalpot.errors import DomainError
from jgalpot.spheroid import SpheroidDensity


def test_spherical_spheroid_depends_on_radius_only():
    halo = SpheroidDensity(SpheroidParams(density_norm=0.7, gamma=1.0, beta=3.0, scale_radius=2.0))
    rng = np.random.default_rng(3)
    R = rng.uniform(0.0, 5.0, 40)
    z = rng.uniform(-5.0, 5.0, 40)
    r = np.hypot(R, z)
    a = halo.density(PosCyl(R, z))
    b = halo.density(PosCyl(r, np.zeros_like(r)))
    assert jnp.allclose(a, b, rtol=1e-13)
    assert halo.symmetry() is SymmetryType.SPHERICAL


def test_two_power_law_matches_closed_form():
    params = SpheroidParams(density_norm=3.0, gamma=0.5, beta=4.0, scale_radius=1.5)
    halo = SpheroidDensity(params)
    r = np.logspace(-2, 2, 25)
    x = r / 1.5
    expected = 3.0 * x**-0.5 * (1.0 + x) ** (0.5 - 4.0)
    assert np.allclose(np.asarray(halo.density(PosCyl(r, 0.0))), expected, rtol=1e-12)


def test_flattening_stretches_isodensity_surfaces():
    halo = SpheroidDensity(SpheroidParams(density_norm=1.0, axis_ratio=0.5, gamma=1.0, beta=4.0))
    in_plane = halo.density(PosCyl(1.2, 0.0))
    on_axis = halo.density(PosCyl(0.0, 0.6))
    assert float(in_plane) == pytest.approx(float(on_axis), rel=1e-13)
    assert halo.symmetry() is SymmetryType.AXISYMMETRIC


def test_outer_cutoff_is_gaussian_in_spheroidal_radius():
    base = SpheroidParams(density_norm=1.0, gamma=1.0, beta=3.0, scale_radius=1.0)
    cut = SpheroidParams(density_norm=1.0, gamma=1.0, beta=3.0, scale_radius=1.0, outer_cutoff_radius=5.0)
    r = jnp.array([0.5, 2.0, 7.0])
    ratio = SpheroidDensity(cut).density(PosCyl(r, 0.0)) / SpheroidDensity(base).density(PosCyl(r, 0.0))
    assert jnp.allclose(ratio, jnp.exp(-((r / 5.0) ** 2)), rtol=1e-12)


def test_outer_cutoff_allows_shallow_outer_slope():
    halo = SpheroidDensity(
        SpheroidParams(density_norm=1.0, gamma=1.0, beta=2.0, outer_cutoff_radius=10.0)
    )
    assert jnp.isfinite(halo.density(PosCyl(3.0, 1.0)))


@pytest.mark.parametrize(
    "kwargs, match",
    [
        (dict(gamma=3.0), "gamma"),
        (dict(axis_ratio=0.0), "axis_ratio"),
        (dict(axis_ratio=1.5), "axis_ratio"),
        (dict(scale_radius=0.0), "scale_radius"),
        (dict(outer_cutoff_radius=-1.0), "outer_cutoff_radius"),
        (dict(beta=2.0), "beta"),
        (dict(density_norm=float("inf")), "finite"),
    ],
)
def test_invalid_spheroid_params_raise(kwargs, match):
    params = SpheroidParams(**{"density_norm": 1.0, **kwargs})
    with pytest.raises(DomainError, match=match):
        SpheroidDensity(params)
