import math

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from jgalpot import (
    CompositePotential,
    DiskAnsatz,
    DiskParams,
    DomainError,
    GridPreset,
    Multipole,
    MultipoleConfig,
    PosCar,
    PosCyl,
    SpheroidParams,
    SymmetryType,
    circular_velocity,
    create_galaxy_potential,
    evaluate_cartesian,
)
from jgalpot.galaxy import resolve_multipole_config


@pytest.fixture(scope="module")
def exponential_disk():
    config = MultipoleConfig(
        r_min=0.01, r_max=100.0, num_radial_points=50, gamma=0.0, beta=4.0
    )
    return create_galaxy_potential(
        [DiskParams(surface_density=1.0, scale_length=1.0, scale_height=0.1)],
        [],
        config=config,
    )


def test_exponential_disk_scenario(exponential_disk):
    pot = exponential_disk
    assert float(pot.evaluate(PosCyl(1.0, 0.0)).value) < 0.0

    R = jnp.linspace(0.05, 60.0, 200)
    value = pot.evaluate(PosCyl(R, jnp.zeros_like(R))).value
    assert jnp.all(jnp.diff(value) > 0.0)

    z = jnp.array([0.01, 0.03, 0.1, 0.3])
    force_z = -pot.evaluate(PosCyl(jnp.ones_like(z), z), gradient=True).gradient.dz
    assert jnp.all(force_z < 0.0)
    force_below = -pot.evaluate(PosCyl(jnp.ones_like(z), -z), gradient=True).gradient.dz
    assert jnp.all(force_below > 0.0)


def test_galaxy_is_sum_of_its_terms(exponential_disk):
    pot = exponential_disk
    assert isinstance(pot, CompositePotential)
    assert len(pot) == 2
    assert isinstance(pot.components[0], DiskAnsatz)
    assert isinstance(pot.components[1], Multipole)

    pos = PosCyl(jnp.array([0.0, 0.5, 2.0, 30.0]), jnp.array([0.0, -0.2, 0.05, 8.0]))
    total = pot.evaluate(pos, gradient=True, hessian=True)
    parts = [c.evaluate(pos, gradient=True, hessian=True) for c in pot.components]
    expected = jax.tree_util.tree_map(lambda a, b: a + b, parts[0], parts[1])
    for got, want in zip(jax.tree_util.tree_leaves(total), jax.tree_util.tree_leaves(expected)):
        assert jnp.array_equal(got, want)


def test_disk_circular_velocity_is_physical(exponential_disk):
    vc = circular_velocity(exponential_disk, jnp.array([0.5, 1.0, 2.2, 5.0, 20.0]))
    assert jnp.all(jnp.isfinite(vc))
    assert jnp.all(vc > 0.0)
    # Keplerian fall-off far outside the disk (total mass 2 pi Sigma0 Rd^2)
    far = circular_velocity(exponential_disk, jnp.array([500.0]))
    assert float(far[0]) == pytest.approx(math.sqrt(2 * math.pi / 500.0), rel=1e-2)


def test_galaxy_is_finite_on_axis_and_at_origin(exponential_disk):
    pos = PosCyl(jnp.array([0.0, 0.0, 0.0]), jnp.array([0.0, 0.5, -3.0]))
    result = exponential_disk.evaluate(pos, gradient=True, hessian=True)
    for leaf in jax.tree_util.tree_leaves(result):
        assert jnp.all(jnp.isfinite(leaf))


def test_galaxy_hessian_is_continuous_at_origin(exponential_disk):
    centre = exponential_disk.evaluate(PosCyl(0.0, 0.0), gradient=True, hessian=True).hessian
    for R, z in ((1e-7, 0.0), (0.0, 1e-7), (1e-7, 1e-7)):
        near = exponential_disk.evaluate(PosCyl(R, z), gradient=True, hessian=True).hessian
        assert float(near.dR2) == pytest.approx(float(centre.dR2), rel=1e-4, abs=1e-4)
        assert float(near.dz2) == pytest.approx(float(centre.dz2), rel=1e-4)


def test_cartesian_evaluation_agrees_with_cylindrical(exponential_disk):
    car = evaluate_cartesian(
        exponential_disk, PosCar(0.6, 0.8, 0.25), gradient=True, hessian=True
    )
    cyl = exponential_disk.evaluate(PosCyl(1.0, 0.25), gradient=True, hessian=True)
    assert float(car.value) == pytest.approx(float(cyl.value))
    assert float(car.gradient.dx) == pytest.approx(0.6 * float(cyl.gradient.dR))
    assert float(car.gradient.dy) == pytest.approx(0.8 * float(cyl.gradient.dR))
    assert float(car.hessian.dz2) == pytest.approx(float(cyl.hessian.dz2))


@pytest.mark.parametrize("scale_height", [0.0, -0.2])
def test_thin_and_isothermal_disks(scale_height):
    pot = create_galaxy_potential(
        [DiskParams(1.0, 2.0, scale_height=scale_height, inner_cutoff_radius=0.5)],
        [SpheroidParams(density_norm=0.1, gamma=1.0, beta=3.0, scale_radius=5.0, outer_cutoff_radius=50.0)],
        preset="fast",
    )
    R = jnp.array([0.0, 0.3, 1.0, 4.0, 40.0])
    z = jnp.array([0.0, 0.0, 0.3, -1.0, 10.0])
    result = pot.evaluate(PosCyl(R, z), gradient=True, hessian=True)
    assert jnp.all(jnp.isfinite(result.value[1:]))
    assert jnp.all(result.value < 0.0)
    assert jnp.all(jnp.isfinite(result.gradient.dR))


def test_spheroid_only_galaxy_matches_closed_form():
    pot = create_galaxy_potential(
        [], [SpheroidParams(density_norm=1.0, gamma=0.0, beta=5.0, scale_radius=1.0)]
    )
    assert len(pot) == 1
    assert pot.symmetry() is SymmetryType.AXISYMMETRIC
    r = np.array([0.1, 1.0, 10.0])
    x = r
    expected = -np.pi * (x**2 + 3 * x + 1) / (3 * (1 + x) ** 3)
    value = np.asarray(pot.evaluate(PosCyl(r / np.sqrt(2), r / np.sqrt(2))).value)
    assert np.allclose(value, expected, rtol=1e-5)


def test_preset_and_length_scales_set_grid_extent():
    disks = [DiskParams(1.0, 3.0, scale_height=0.3)]
    cfg = resolve_multipole_config(disks, [], preset="BALANCED")
    assert cfg.r_min == pytest.approx(3e-4)
    assert cfg.r_max == pytest.approx(3e3)
    assert cfg.num_radial_points == 60
    assert cfg.lmax == 16
    assert (cfg.gamma, cfg.beta) == (0.0, 4.0)

    fast = resolve_multipole_config(disks, [], preset=GridPreset.FAST)
    assert fast.num_radial_points == 40
    assert fast.lmax == 12
    accurate = resolve_multipole_config(disks, [], preset=" accurate ")
    assert accurate.num_radial_points == 100
    assert accurate.lmax == 24


def test_explicit_config_overrides_preset():
    cfg = resolve_multipole_config(
        [DiskParams(1.0, 1.0)],
        [],
        preset=GridPreset.FAST,
        config=MultipoleConfig(r_min=0.5, num_radial_points=12, lmax=2, beta=3.5),
    )
    assert cfg.r_min == 0.5
    assert cfg.r_max == pytest.approx(100.0)
    assert cfg.num_radial_points == 12
    assert cfg.lmax == 2
    assert cfg.beta == 3.5


def test_boundary_slopes_follow_spheroids():
    spheroids = [
        SpheroidParams(1.0, gamma=0.5, beta=4.0),
        SpheroidParams(1.0, gamma=1.5, beta=3.0),
        SpheroidParams(1.0, gamma=1.0, beta=2.0, outer_cutoff_radius=20.0),
    ]
    cfg = resolve_multipole_config([], spheroids)
    assert cfg.gamma == 1.5
    assert cfg.beta == 3.0
    assert cfg.r_max == pytest.approx(2e4)


def test_galaxy_requires_components():
    with pytest.raises(DomainError, match="at least one"):
        create_galaxy_potential([], [])


def test_unknown_preset_is_rejected():
    with pytest.raises(ValueError):
        create_galaxy_potential([DiskParams(1.0, 1.0)], [], preset="turbo")
