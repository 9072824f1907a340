from typing import Tuple, Union

import equinox as eqx
import jax
import jax.numpy as jnp
from check_shapes import check_shapes
from jaxtyping import Array

from .features import FeatureMap, evaluate_features, feature_projection, feature_scale, sample_feature_map
from .posterior import sample_coefficients
from .types import Hyperparameter, Observations, Rng


class SampledFunction(eqx.Module):
    """One function drawn from the approximate GP posterior, f(x) = aᵀφ(x)."""

    coefficients: Array
    feature_map: FeatureMap
    signal_variance: Array

    @check_shapes("x: [num_points, input_dim]", "return: [num_points]")
    def value(self, x: Array) -> Array:
        z = evaluate_features(self.feature_map, self.signal_variance, x)
        return self.coefficients @ z

    @check_shapes("x: [num_points, input_dim]", "return: [num_points, input_dim]")
    def gradient(self, x: Array) -> Array:
        scale = feature_scale(self.signal_variance, self.feature_map.num_features)
        s = jnp.sin(feature_projection(self.feature_map, x))
        return -scale * (self.coefficients[:, None] * s).T @ self.feature_map.weights

    def __call__(
        self, x: Array, with_gradient: bool = False
    ) -> Union[Array, Tuple[Array, Array]]:
        if with_gradient:
            return self.value(x), self.gradient(x)
        return self.value(x)


def build_sampled_function(
    key: Rng,
    hyperparameter: Hyperparameter,
    observations: Observations,
    num_features: int,
) -> SampledFunction:
    """Draws a feature map and posterior weights for a single setting.

    The same feature evaluation is used to condition on ``observations`` and,
    later, to evaluate the returned function.
    """
    fkey, ckey = jax.random.split(key)
    feature_map = sample_feature_map(fkey, num_features, hyperparameter.lengthscales)
    z = evaluate_features(feature_map, hyperparameter.signal_variance, observations.x)
    coefficients = sample_coefficients(ckey, z, observations.y, hyperparameter.noise_variance)
    return SampledFunction(
        coefficients=coefficients,
        feature_map=feature_map,
        signal_variance=hyperparameter.signal_variance,
    )
