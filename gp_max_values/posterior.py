"""Posterior over the weights of a random-feature linear model.

With features Z (one column per observation) and Gaussian noise of variance
σ₀, the weights a of f(x) = aᵀφ(x) have posterior

    a | y ~ N((ZZᵀ/σ₀ + I)⁻¹ Z y / σ₀,  (ZZᵀ/σ₀ + I)⁻¹)
          = N(Z (ZᵀZ + σ₀I)⁻¹ y,  I − Z (ZᵀZ + σ₀I)⁻¹ Zᵀ).

The first form needs an F × F factorisation and is used when there are at
least as many observations as features; the second only factorises an n × n
matrix and is used otherwise.
"""
from typing import Tuple

import jax
import jax.numpy as jnp
import jax.scipy.linalg as jsl
from check_shapes import check_shapes
from jaxtyping import Array

from .linalg import cholesky_inverse, gram_factor
from .types import Rng


@check_shapes(
    "z: [num_features, num_points]",
    "y: [num_points]",
    "noise_variance: []",
    "noise: [num_features]",
    "return: [num_features]",
)
def underdetermined_coefficients(
    z: Array, y: Array, noise_variance: Array, noise: Array
) -> Array:
    """Maps standard-normal ``noise`` to a posterior draw using only n × n algebra.

    With ZᵀZ + σ₀I = U D Uᵀ and R = 1 / (√D (√D + √σ₀)), the matrix
    A = I − Z U diag(R) Uᵀ Zᵀ satisfies A Aᵀ = I − Z (ZᵀZ + σ₀I)⁻¹ Zᵀ.

    U and D come from the singular values of Z rather than from ZᵀZ, so
    D ≥ σ₀ holds in any precision.
    """
    _, s, Vh = jnp.linalg.svd(z, full_matrices=False)
    U = Vh.T
    D = s**2 + noise_variance
    mean = z @ (U @ ((U.T @ y) / D))
    sqrt_D = jnp.sqrt(D)
    R = 1.0 / (sqrt_D * (sqrt_D + jnp.sqrt(noise_variance)))
    return noise - z @ (U @ (R * (U.T @ (z.T @ noise)))) + mean


@check_shapes(
    "z: [num_features, num_points]",
    "y: [num_points]",
    "noise_variance: []",
    "noise: [num_features]",
    "return: [num_features]",
)
def overdetermined_coefficients(
    z: Array, y: Array, noise_variance: Array, noise: Array
) -> Array:
    """Maps standard-normal ``noise`` to a posterior draw through the F × F precision.

    The upper factor R of P = ZZᵀ/σ₀ + I comes from a QR decomposition of
    [I; Zᵀ/√σ₀], so ZZᵀ is never formed. Then a = P⁻¹ Z y / σ₀ + R⁻¹ ε has
    covariance R⁻¹ R⁻ᵀ = P⁻¹.
    """
    num_features = z.shape[0]
    eye = jnp.eye(num_features, dtype=z.dtype)
    R = gram_factor(jnp.concatenate([eye, (z / jnp.sqrt(noise_variance)).T], axis=0))
    mean = jsl.cho_solve((R, False), z @ y / noise_variance)
    return mean + jsl.solve_triangular(R, noise, lower=False)


@check_shapes(
    "z: [num_features, num_points]",
    "y: [num_points]",
    "noise_variance: []",
    "return: [num_features]",
)
def sample_coefficients(key: Rng, z: Array, y: Array, noise_variance: Array) -> Array:
    """Draws one weight vector from the feature-space posterior."""
    num_features, num_points = z.shape
    noise = jax.random.normal(key, (num_features,), dtype=z.dtype)
    if num_points < num_features:
        return underdetermined_coefficients(z, y, noise_variance, noise)
    else:
        return overdetermined_coefficients(z, y, noise_variance, noise)


@check_shapes(
    "z: [num_features, num_points]",
    "y: [num_points]",
    "noise_variance: []",
    "return[0]: [num_features]",
    "return[1]: [num_features, num_features]",
)
def feature_posterior(z: Array, y: Array, noise_variance: Array) -> Tuple[Array, Array]:
    """Dense posterior mean and covariance of the weights. Only for small problems."""
    num_features = z.shape[0]
    precision = z @ z.T / noise_variance + jnp.eye(num_features, dtype=z.dtype)
    covariance = cholesky_inverse(precision)
    mean = covariance @ z @ y / noise_variance
    return mean, covariance
