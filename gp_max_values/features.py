import equinox as eqx
import jax
import jax.numpy as jnp
from check_shapes import check_shape, check_shapes
from jaxtyping import Array

from .types import Rng


class FeatureMap(eqx.Module):
    """Random frequencies and phases of a random Fourier feature map.

    ``weights`` holds one frequency per row, ``phases`` one phase per feature.
    """

    weights: Array
    phases: Array

    @property
    def num_features(self) -> int:
        return self.weights.shape[-2]

    @property
    def input_dim(self) -> int:
        return self.weights.shape[-1]

    @check_shapes()
    def __post_init__(self) -> None:
        check_shape(self.weights, "[batch..., num_features, input_dim]")
        check_shape(self.phases, "[batch..., num_features]")


@check_shapes("lengthscales: [input_dim]")
def sample_feature_map(key: Rng, num_features: int, lengthscales: Array) -> FeatureMap:
    """Draws W ~ N(0, diag(lengthscales)) row-wise and b ~ U[0, 2π)."""
    wkey, bkey = jax.random.split(key)
    input_dim = lengthscales.shape[0]
    weights = jax.random.normal(
        wkey, (num_features, input_dim), dtype=lengthscales.dtype
    ) * jnp.sqrt(lengthscales)[None, :]
    phases = jax.random.uniform(
        bkey, (num_features,), minval=0.0, maxval=2 * jnp.pi, dtype=lengthscales.dtype
    )
    return FeatureMap(weights=weights, phases=phases)


@check_shapes("x: [num_points, input_dim]", "return: [num_features, num_points]")
def feature_projection(feature_map: FeatureMap, x: Array) -> Array:
    """W xᵀ + b, with the phase broadcast along the points axis."""
    return feature_map.weights @ x.T + feature_map.phases[:, None]


def feature_scale(signal_variance: Array, num_features: int) -> Array:
    return jnp.sqrt(2.0 * signal_variance / num_features)


@check_shapes(
    "signal_variance: []",
    "x: [num_points, input_dim]",
    "return: [num_features, num_points]",
)
def evaluate_features(feature_map: FeatureMap, signal_variance: Array, x: Array) -> Array:
    """Z = sqrt(2σ / F) cos(W xᵀ + b), so that Zᵀ Z approximates the SE gram matrix."""
    scale = feature_scale(signal_variance, feature_map.num_features)
    return scale * jnp.cos(feature_projection(feature_map, x))
