from __future__ import annotations

from typing import Union

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
from check_shapes import check_shape, check_shapes

ndarray = Union[jnp.ndarray, np.ndarray]
Rng = jax.Array


class Observations(eqx.Module):
    """Noisy evaluations of the unknown function, shared by every sampling cell."""

    x: ndarray
    y: ndarray

    def __len__(self) -> int:
        return len(self.x)

    @property
    def input_dim(self) -> int:
        return self.x.shape[1]

    @check_shapes()
    def __post_init__(self) -> None:
        check_shape(self.x, "[num_points, input_dim]")
        check_shape(self.y, "[num_points]")


class Hyperparameters(eqx.Module):
    """A batch of squared-exponential GP hyperparameter settings.

    ``lengthscales`` is the precision of the spectral density, i.e. random
    frequencies are drawn from ``N(0, diag(lengthscales))`` and the kernel is
    ``signal_variance * exp(-0.5 * sum(lengthscales * (x - x')**2))``.
    """

    noise_variance: ndarray
    signal_variance: ndarray
    lengthscales: ndarray

    def __len__(self) -> int:
        return len(self.noise_variance)

    @check_shapes()
    def __post_init__(self) -> None:
        check_shape(self.noise_variance, "[num_settings]")
        check_shape(self.signal_variance, "[num_settings]")
        check_shape(self.lengthscales, "[num_settings, input_dim]")


class Hyperparameter(eqx.Module):
    """A single setting, as seen by one sampling cell."""

    noise_variance: ndarray
    signal_variance: ndarray
    lengthscales: ndarray

    @check_shapes()
    def __post_init__(self) -> None:
        check_shape(self.noise_variance, "[]")
        check_shape(self.signal_variance, "[]")
        check_shape(self.lengthscales, "[input_dim]")
