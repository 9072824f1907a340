# Exact GP posterior for the squared-exponential kernel that the random
# features approximate. Used to check the feature-space approximation.
from typing import Callable, Tuple

import gpjax.kernels as jaxkern
import jax.numpy as jnp
import jax.scipy.linalg as jsl
from check_shapes import check_shapes

from .linalg import cholesky
from .types import Hyperparameter, Observations, ndarray

jitter = 1e-6


@check_shapes("signal_variance: []", "lengthscales: [input_dim]")
def se_kernel(signal_variance: ndarray, lengthscales: ndarray) -> jaxkern.RBF:
    """k(x, x') = σ exp(-½ Σ_k ℓ_k (x_k - x'_k)²), with ℓ the spectral precision.

    GPJax divides distances by its lengthscale, which is therefore 1 / √ℓ.
    """
    return jaxkern.RBF(lengthscale=1.0 / jnp.sqrt(lengthscales), variance=signal_variance)


def predict(
    hyperparameter: Hyperparameter,
    train_data: Observations,
) -> Callable[[ndarray], Tuple[ndarray, ndarray]]:
    """Conditional on a training data set, compute the GP's posterior
    predictive distribution for a single hyperparameter setting. The returned
    function can be evaluated at a set of test inputs to compute the
    corresponding latent mean and covariance.

    Args:
        hyperparameter: noise variance, signal variance and lengthscales.
        train_data: the observations to condition on.

    Returns:
        Callable[[Float[Array, "N D"]], Tuple[mean, covariance]]: a function
            that accepts test inputs and returns the posterior mean ``[N]``
            and covariance ``[N, N]`` of the latent function (without the
            observation noise).
    """
    # Unpack training data
    x, y = train_data.x, train_data.y
    n = x.shape[0]

    kernel = se_kernel(hyperparameter.signal_variance, hyperparameter.lengthscales)

    # Σ = Kxx + Iσ²
    Kxx = kernel.cross_covariance(x, x)
    Sigma = Kxx + jnp.eye(n) * (hyperparameter.noise_variance + jitter)
    L = cholesky(Sigma)
    alpha = jsl.cho_solve((L, True), y)

    def predict(test_inputs: ndarray) -> Tuple[ndarray, ndarray]:
        Kxt = kernel.cross_covariance(x, test_inputs)
        Ktt = kernel.cross_covariance(test_inputs, test_inputs)

        # Ktx (Kxx + Iσ²)⁻¹ y
        mean = Kxt.T @ alpha

        # Ktt  -  Ktx (Kxx + Iσ²)⁻¹ Kxt
        covariance = Ktt - Kxt.T @ jsl.cho_solve((L, True), Kxt)
        return mean, covariance

    return predict
