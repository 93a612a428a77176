"""Build a disk + halo galaxy for every grid preset and time construction/evaluation.

Run with:
    python examples/benchmark_presets.py
"""

from __future__ import annotations

import time

import jax
import jax.numpy as jnp

from jgalpot import (
    DiskParams,
    GridPreset,
    PosCyl,
    SpheroidParams,
    circular_velocity,
    create_galaxy_potential,
)


def _sync(value):
    return jax.tree_util.tree_map(
        lambda x: x.block_until_ready() if hasattr(x, "block_until_ready") else x,
        value,
    )


def _time_mean(fn, *args, repeats: int = 3, **kwargs) -> float:
    out = fn(*args, **kwargs)
    _sync(out)
    samples = []
    for _ in range(repeats):
        t0 = time.perf_counter()
        out = fn(*args, **kwargs)
        _sync(out)
        samples.append(time.perf_counter() - t0)
    return float(sum(samples) / len(samples))


def main() -> None:
    disks = [
        DiskParams(surface_density=8.9e8, scale_length=2.5, scale_height=0.3),
        DiskParams(surface_density=1.8e8, scale_length=3.0, scale_height=1.0),
    ]
    spheroids = [
        SpheroidParams(density_norm=9.5e10, axis_ratio=0.5, gamma=0.0, beta=1.8,
                       scale_radius=0.075, outer_cutoff_radius=2.1),
        SpheroidParams(density_norm=4.2e8, axis_ratio=0.8, gamma=1.0, beta=3.0,
                       scale_radius=20.0),
    ]

    num_points = 100_000
    key = jax.random.PRNGKey(0)
    R = jax.random.uniform(key, (num_points,), minval=0.0, maxval=30.0)
    z = jax.random.uniform(jax.random.fold_in(key, 1), (num_points,), minval=-5.0, maxval=5.0)
    pos = PosCyl(R, z)
    radii = jnp.array([1.0, 2.0, 4.0, 8.0, 16.0])

    for preset in GridPreset:
        t0 = time.perf_counter()
        pot = create_galaxy_potential(disks, spheroids, preset=preset)
        build_s = time.perf_counter() - t0
        eval_s = _time_mean(lambda p: pot.evaluate(p, gradient=True, hessian=True), pos)
        vc = circular_velocity(pot, radii)
        print(
            f"{preset.value:>9}: build={build_s:.3f}s "
            f"evaluate(N={num_points})={eval_s:.4f}s "
            f"vc={[round(float(v), 1) for v in vc]}"
        )


if __name__ == "__main__":
    main()
