"""Samples of the maximum value of a GP posterior, via random Fourier features.

For every hyperparameter setting and every requested sample, a function is
drawn from the (approximate) posterior, maximised over a box, and the result is
floored at ``max(y) + epsilon``. All cells of the ``[num_settings, num_samples]``
grid use their own random key and share nothing but the observations.
"""
import itertools
from functools import partial
from typing import Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from absl import logging
from check_shapes import check_shapes
from jaxtyping import Array

from .linalg import raise_if_not_finite
from .maximizer import GlobalMaximizer
from .sampled_function import SampledFunction, build_sampled_function
from .types import Hyperparameter, Hyperparameters, Observations, Rng, ndarray

DEFAULT_EPSILON = 0.1


def _as_float(a) -> Array:
    return jnp.asarray(a, dtype=jnp.result_type(float))


def _split_grid(key: Rng, num_settings: int, num_samples: int) -> Array:
    keys = jax.random.split(key, num_settings * num_samples)
    return keys.reshape((num_settings, num_samples) + keys.shape[1:])


@partial(jax.jit, static_argnames=("num_features",))
def _draw_grid(
    keys: Array, hyperparameters: Hyperparameters, observations: Observations, num_features: int
) -> SampledFunction:
    def draw_one(key, noise_variance, signal_variance, lengthscales):
        hyperparameter = Hyperparameter(
            noise_variance=noise_variance,
            signal_variance=signal_variance,
            lengthscales=lengthscales,
        )
        return build_sampled_function(key, hyperparameter, observations, num_features)

    draw_setting = jax.vmap(draw_one, in_axes=(0, None, None, None))
    return jax.vmap(draw_setting)(
        keys,
        hyperparameters.noise_variance,
        hyperparameters.signal_variance,
        hyperparameters.lengthscales,
    )


@check_shapes(
    "hyperparameters.lengthscales: [num_settings, input_dim]",
    "observations.x: [num_points, input_dim]",
    "return.coefficients: [num_settings, num_samples, num_features]",
)
def draw_sampled_functions(
    key: Rng,
    hyperparameters: Hyperparameters,
    observations: Observations,
    num_features: int,
    num_samples: int,
) -> SampledFunction:
    """Draws ``num_samples`` posterior functions for every hyperparameter setting.

    Returns a single :class:`SampledFunction` whose leaves carry two leading
    batch axes ``[num_settings, num_samples]``. Each cell has its own feature
    map, even for a fixed setting.
    """
    keys = _split_grid(key, len(hyperparameters), num_samples)
    return _draw_grid(keys, hyperparameters, observations, num_features)


@check_shapes(
    "hyperparameters.lengthscales: [num_settings, input_dim]",
    "observations.x: [num_points, input_dim]",
    "lower: [input_dim]",
    "upper: [input_dim]",
    "return[0]: [num_settings, num_samples]",
    "return[1]: [num_settings, num_samples, input_dim]",
)
def _sample_grid(
    key: Rng,
    hyperparameters: Hyperparameters,
    observations: Observations,
    lower: Array,
    upper: Array,
    num_samples: int,
    num_features: int,
    epsilon: float,
    maximizer: GlobalMaximizer,
) -> Tuple[Array, Array]:
    num_settings = len(hyperparameters)
    regime = "n < F, n x n algebra" if len(observations) < num_features else "n >= F, F x F algebra"
    logging.info(
        "Sampling %d x %d max-values with %d random features (%s).",
        num_settings,
        num_samples,
        num_features,
        regime,
    )

    draw_key, search_key = jax.random.split(key)
    functions = draw_sampled_functions(
        draw_key, hyperparameters, observations, num_features, num_samples
    )
    raise_if_not_finite(functions.coefficients, num_batch_dims=2)

    search_keys = _split_grid(search_key, num_settings, num_samples)
    values = np.empty((num_settings, num_samples))
    locations = np.empty((num_settings, num_samples, observations.input_dim))
    for i, j in itertools.product(range(num_settings), range(num_samples)):
        function = jax.tree_util.tree_map(lambda leaf: leaf[i, j], functions)
        locations[i, j], values[i, j] = maximizer.maximize(
            search_keys[i, j], function, lower, upper, observations.x
        )
        logging.debug("cell (%d, %d): maximum %.6f at %s", i, j, values[i, j], locations[i, j])

    floor = float(jnp.max(observations.y)) + epsilon
    below = values < floor
    if np.any(below):
        logging.debug(
            "%d of %d samples were below max(y) + epsilon = %.6f and have been floored.",
            int(np.sum(below)),
            below.size,
            floor,
        )
    values = np.where(below, floor, values)
    logging.info("Max-value samples: mean %.6f, min %.6f, max %.6f.", values.mean(), values.min(), values.max())
    return jnp.asarray(values), jnp.asarray(locations)


def sample_max_values_and_locations(
    key: Rng,
    hyperparameters: Hyperparameters,
    observations: Observations,
    lower: ndarray,
    upper: ndarray,
    *,
    num_samples: int,
    num_features: int,
    epsilon: float = DEFAULT_EPSILON,
    maximizer: Optional[GlobalMaximizer] = None,
) -> Tuple[Array, Array]:
    """Like :func:`sample_max_values`, but also returns the maximisers.

    Returns:
        A ``[num_settings, num_samples]`` array of floored maximum values and a
        ``[num_settings, num_samples, input_dim]`` array with the locations found
        by the maximiser. Floored cells keep the location the maximiser returned.
    """
    return _sample_grid(
        key,
        hyperparameters,
        observations,
        _as_float(lower),
        _as_float(upper),
        num_samples,
        num_features,
        float(epsilon),
        maximizer or GlobalMaximizer(),
    )


def sample_max_values(
    key: Rng,
    hyperparameters: Hyperparameters,
    observations: Observations,
    lower: ndarray,
    upper: ndarray,
    *,
    num_samples: int,
    num_features: int,
    epsilon: float = DEFAULT_EPSILON,
    maximizer: Optional[GlobalMaximizer] = None,
) -> Array:
    """Samples maximum values of functions drawn from the GP posterior.

    Args:
        key: random key; every (setting, sample) cell derives its own key from it.
        hyperparameters: ``num_settings`` squared-exponential settings.
        observations: the data the posterior is conditioned on.
        lower, upper: bounds of the search box, ``[input_dim]`` each.
        num_samples: samples per hyperparameter setting.
        num_features: number of random Fourier features approximating the kernel.
        epsilon: offset of the floor. Defaults to ``DEFAULT_EPSILON`` (0.1). Every
            returned value is at least ``max(observations.y) + epsilon``; lower
            results of the maximiser are replaced by that floor.
        maximizer: defaults to ``GlobalMaximizer()`` seeded with ``observations.x``.

    Returns:
        ``[num_settings, num_samples]`` array of sampled maxima.

    Raises:
        NotPositiveDefiniteError: when the posterior system of a cell could not be
            factorised.
    """
    values, _ = sample_max_values_and_locations(
        key,
        hyperparameters,
        observations,
        lower,
        upper,
        num_samples=num_samples,
        num_features=num_features,
        epsilon=epsilon,
        maximizer=maximizer,
    )
    return values
