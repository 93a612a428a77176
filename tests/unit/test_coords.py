import jax
import jax.numpy as jnp
import numpy as np

from jgalpot.coords import (
    GradCyl,
    HessCyl,
    PosCar,
    PosCyl,
    to_grad_car,
    to_hess_car,
    to_pos_car,
    to_pos_cyl,
)


def _plummer(x, y, z):
    return -1.0 / jnp.sqrt(1.0 + x * x + y * y + 0.5 * z * z)


def _plummer_cyl(R, z):
    return _plummer(R, 0.0, z)


def _cyl_derivatives(R, z):
    dR = jax.grad(_plummer_cyl, argnums=0)(R, z)
    dz = jax.grad(_plummer_cyl, argnums=1)(R, z)
    dR2 = jax.grad(jax.grad(_plummer_cyl, argnums=0), argnums=0)(R, z)
    dz2 = jax.grad(jax.grad(_plummer_cyl, argnums=1), argnums=1)(R, z)
    dRdz = jax.grad(jax.grad(_plummer_cyl, argnums=0), argnums=1)(R, z)
    zero = jnp.zeros_like(dR)
    return GradCyl(dR, dz, zero), HessCyl(dR2, dz2, zero, dRdz, zero, zero)


def test_position_round_trip():
    rng = np.random.default_rng(5)
    pts = PosCar(*rng.normal(size=(3, 20)))
    back = to_pos_car(to_pos_cyl(pts))
    for a, b in zip(back, pts):
        assert np.allclose(np.asarray(a), b, atol=1e-13)


def test_cartesian_gradient_and_hessian_match_autodiff():
    point = jnp.array([0.4, -0.9, 0.3])
    cyl = to_pos_cyl(PosCar(*point))
    grad, hess = _cyl_derivatives(cyl.R, cyl.z)

    g = to_grad_car(grad, cyl)
    h = to_hess_car(grad, hess, cyl)
    auto_g = jax.grad(lambda p: _plummer(*p))(point)
    auto_h = jax.hessian(lambda p: _plummer(*p))(point)

    assert jnp.allclose(jnp.stack(g), auto_g, atol=1e-12)
    assert jnp.allclose(h.dx2, auto_h[0, 0], atol=1e-12)
    assert jnp.allclose(h.dy2, auto_h[1, 1], atol=1e-12)
    assert jnp.allclose(h.dz2, auto_h[2, 2], atol=1e-12)
    assert jnp.allclose(h.dxdy, auto_h[0, 1], atol=1e-12)
    assert jnp.allclose(h.dydz, auto_h[1, 2], atol=1e-12)
    assert jnp.allclose(h.dxdz, auto_h[0, 2], atol=1e-12)


def test_hessian_on_axis_uses_limit():
    point = jnp.array([0.0, 0.0, 0.8])
    cyl = to_pos_cyl(PosCar(*point))
    grad, hess = _cyl_derivatives(cyl.R, cyl.z)
    h = to_hess_car(grad, hess, cyl)
    auto_h = jax.hessian(lambda p: _plummer(*p))(point)
    assert jnp.allclose(h.dx2, auto_h[0, 0], atol=1e-12)
    assert jnp.allclose(h.dy2, auto_h[1, 1], atol=1e-12)
    assert jnp.isfinite(h.dxdy)


def test_position_fields_broadcast():
    cyl = to_pos_cyl(PosCar(jnp.ones(3), 0.0, 2.0))
    assert cyl.R.shape == (3,)
    assert cyl.z.shape == (3,)
    assert np.allclose(np.asarray(cyl.phi), 0.0)
    assert isinstance(PosCyl(1.0, 2.0).phi, float)
