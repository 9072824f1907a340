from typing import Iterator

import jax.numpy as jnp
import jax.random as jr
import numpy as np
import pytest

from gp_max_values.linalg import NotPositiveDefiniteError
from gp_max_values.maximizer import GlobalMaximizer, MaximizerConfig
from gp_max_values.sampler import (
    DEFAULT_EPSILON,
    draw_sampled_functions,
    sample_max_values,
    sample_max_values_and_locations,
)
from gp_max_values.types import Hyperparameters, Observations


class Consts:
    num_settings = 2
    num_samples = 3
    num_features = 20


def _get_key_iter(seed: int) -> Iterator[jr.PRNGKey]:
    key = jr.PRNGKey(seed)
    while True:
        key, ykey = jr.split(key)
        yield ykey


_KEY_ITER = _get_key_iter(seed=3)

_FAST = GlobalMaximizer(MaximizerConfig(num_candidates=200, num_restarts=2, max_iterations=50))


def _hyperparameters(num_settings: int, input_dim: int, noise_variance: float = 0.01) -> Hyperparameters:
    return Hyperparameters(
        noise_variance=jnp.full((num_settings,), noise_variance),
        signal_variance=jnp.linspace(0.5, 2.0, num_settings),
        lengthscales=jnp.ones((num_settings, input_dim)) * jnp.linspace(0.5, 2.0, num_settings)[:, None],
    )


def _observations(num_points: int, input_dim: int) -> Observations:
    x = jr.uniform(next(_KEY_ITER), (num_points, input_dim), minval=-1.0, maxval=1.0)
    y = jnp.sin(3 * x).sum(axis=1)
    return Observations(x=x, y=y)


@pytest.fixture(name="problem", params=[(1, 4), (2, 30)])
def _problem_fixture(request):
    input_dim, num_points = request.param
    return (
        _hyperparameters(Consts.num_settings, input_dim),
        _observations(num_points, input_dim),
        -jnp.ones((input_dim,)),
        jnp.ones((input_dim,)),
    )


def test_output_shape(problem):
    hyperparameters, observations, lower, upper = problem
    samples, locations = sample_max_values_and_locations(
        next(_KEY_ITER),
        hyperparameters,
        observations,
        lower,
        upper,
        num_samples=Consts.num_samples,
        num_features=Consts.num_features,
        maximizer=_FAST,
    )
    input_dim = observations.input_dim
    assert samples.shape == (Consts.num_settings, Consts.num_samples)
    assert locations.shape == (Consts.num_settings, Consts.num_samples, input_dim)
    assert jnp.all(locations >= lower) and jnp.all(locations <= upper)


@pytest.mark.parametrize("epsilon", [0.0, DEFAULT_EPSILON, 5.0])
def test_floor_invariant(problem, epsilon):
    hyperparameters, observations, lower, upper = problem
    samples = sample_max_values(
        next(_KEY_ITER),
        hyperparameters,
        observations,
        lower,
        upper,
        num_samples=Consts.num_samples,
        num_features=Consts.num_features,
        epsilon=epsilon,
        maximizer=_FAST,
    )
    assert jnp.all(samples >= jnp.max(observations.y) + epsilon)


def test_large_epsilon_floors_every_sample(problem):
    hyperparameters, observations, lower, upper = problem
    epsilon = 1e3
    samples = sample_max_values(
        next(_KEY_ITER),
        hyperparameters,
        observations,
        lower,
        upper,
        num_samples=Consts.num_samples,
        num_features=Consts.num_features,
        epsilon=epsilon,
        maximizer=_FAST,
    )
    np.testing.assert_allclose(samples, jnp.max(observations.y) + epsilon)


def test_same_key_gives_same_samples(problem):
    hyperparameters, observations, lower, upper = problem
    key = next(_KEY_ITER)
    kwargs = dict(num_samples=Consts.num_samples, num_features=Consts.num_features, maximizer=_FAST)
    first = sample_max_values(key, hyperparameters, observations, lower, upper, **kwargs)
    second = sample_max_values(key, hyperparameters, observations, lower, upper, **kwargs)
    np.testing.assert_array_equal(first, second)


def test_every_cell_draws_its_own_feature_map():
    hyperparameters = _hyperparameters(Consts.num_settings, 2)
    observations = _observations(5, 2)
    functions = draw_sampled_functions(
        next(_KEY_ITER), hyperparameters, observations, Consts.num_features, Consts.num_samples
    )
    weights = functions.feature_map.weights
    assert weights.shape == (Consts.num_settings, Consts.num_samples, Consts.num_features, 2)
    assert functions.coefficients.shape == (Consts.num_settings, Consts.num_samples, Consts.num_features)
    flat = weights.reshape(Consts.num_settings * Consts.num_samples, -1)
    for a in range(len(flat)):
        for b in range(a + 1, len(flat)):
            assert not jnp.allclose(flat[a], flat[b])


@pytest.mark.parametrize("num_features, num_points", [(1, 1), (1, 3), (3, 1)])
def test_degenerate_sizes(num_features, num_points):
    hyperparameters = _hyperparameters(1, 1)
    observations = _observations(num_points, 1)
    epsilon = 0.1
    samples = sample_max_values(
        next(_KEY_ITER),
        hyperparameters,
        observations,
        jnp.array([-1.0]),
        jnp.array([1.0]),
        num_samples=2,
        num_features=num_features,
        epsilon=epsilon,
        maximizer=_FAST,
    )
    assert samples.shape == (1, 2)
    assert jnp.all(jnp.isfinite(samples))
    assert jnp.all(samples >= jnp.max(observations.y) + epsilon)


@pytest.mark.parametrize("num_points, noise_variance", [(2, -100.0), (40, -1e-3)])
def test_non_positive_definite_system_raises(num_points, noise_variance):
    # both regimes take √σ₀, which is undefined for a negative noise variance
    hyperparameters = _hyperparameters(Consts.num_settings, 1, noise_variance=noise_variance)
    observations = _observations(num_points, 1)
    with pytest.raises(NotPositiveDefiniteError) as excinfo:
        sample_max_values(
            next(_KEY_ITER),
            hyperparameters,
            observations,
            jnp.array([-1.0]),
            jnp.array([1.0]),
            num_samples=Consts.num_samples,
            num_features=Consts.num_features,
            maximizer=_FAST,
        )
    assert len(excinfo.value.cells) > 0


def test_one_dimensional_scenario():
    observations = Observations(
        x=jnp.array([[0.0], [1.0], [2.0]]),
        y=jnp.array([0.0, 1.0, 0.5]),
    )
    hyperparameters = Hyperparameters(
        noise_variance=jnp.array([0.01]),
        signal_variance=jnp.array([1.0]),
        lengthscales=jnp.array([[1.0]]),
    )
    samples = sample_max_values(
        jr.PRNGKey(0),
        hyperparameters,
        observations,
        jnp.array([-1.0]),
        jnp.array([3.0]),
        num_samples=20,
        num_features=50,
        epsilon=0.1,
    )
    assert samples.shape == (1, 20)
    assert jnp.all(samples >= 1.1)
    assert jnp.std(samples) > 0.0
    assert len(np.unique(np.asarray(samples))) > 1


@pytest.mark.parametrize("num_points, noise_variance", [(10, 1e-8), (60, 1e-6)])
def test_single_precision_inputs_with_tiny_noise(num_points, noise_variance):
    dtype = jnp.float32
    x = jnp.linspace(0.0, 3.0, num_points, dtype=dtype)[:, None]
    observations = Observations(x=x, y=jnp.sin(3 * x[:, 0]))
    hyperparameters = Hyperparameters(
        noise_variance=jnp.full((1,), noise_variance, dtype=dtype),
        signal_variance=jnp.ones((1,), dtype=dtype),
        lengthscales=jnp.ones((1, 1), dtype=dtype),
    )
    functions = draw_sampled_functions(next(_KEY_ITER), hyperparameters, observations, Consts.num_features, 4)
    assert functions.coefficients.dtype == dtype
    assert jnp.all(jnp.isfinite(functions.coefficients))

    samples = sample_max_values(
        next(_KEY_ITER),
        hyperparameters,
        observations,
        jnp.array([0.0], dtype=dtype),
        jnp.array([3.0], dtype=dtype),
        num_samples=4,
        num_features=Consts.num_features,
        maximizer=_FAST,
    )
    assert jnp.all(jnp.isfinite(samples))
    assert jnp.all(samples >= float(jnp.max(observations.y)) + DEFAULT_EPSILON)
