import dataclasses
from typing import Optional, Protocol, Tuple, Union

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
import scipy.optimize as spo
from absl import logging
from check_shapes import check_shapes
from jaxtyping import Array

from .types import Rng


class Target(Protocol):
    def __call__(
        self, x: Array, with_gradient: bool = False
    ) -> Union[Array, Tuple[Array, Array]]:
        """Values ``[num_points]`` and, if requested, gradients ``[num_points, input_dim]``."""
        ...


@eqx.filter_jit
def _evaluate(target: Target, x: Array, with_gradient: bool = False):
    # array leaves of an equinox target are traced, anything else is static
    return target(x, with_gradient=with_gradient)


@dataclasses.dataclass
class MaximizerConfig:
    num_candidates: int = 1000
    num_restarts: int = 5
    max_iterations: int = 200
    tolerance: float = 1e-9


class GlobalMaximizer:
    """Random candidate sweep followed by bounded L-BFGS-B restarts.

    The result is best-effort: a local optimum may be returned when every
    restart lands in the basin of one.
    """

    def __init__(self, config: Optional[MaximizerConfig] = None):
        self.config = config or MaximizerConfig()

    @check_shapes(
        "lower: [input_dim]",
        "upper: [input_dim]",
        "starts: [num_starts, input_dim]",
        "return[0]: [input_dim]",
    )
    def maximize(
        self, key: Rng, target: Target, lower: Array, upper: Array, starts: Array
    ) -> Tuple[np.ndarray, float]:
        lower = np.asarray(lower, dtype=np.float64)
        upper = np.asarray(upper, dtype=np.float64)

        candidates = jax.random.uniform(
            key,
            (self.config.num_candidates, lower.shape[0]),
            minval=jnp.asarray(lower),
            maxval=jnp.asarray(upper),
        )
        candidates = np.concatenate(
            [np.asarray(candidates, dtype=np.float64), np.clip(np.asarray(starts), lower, upper)],
            axis=0,
        )
        values = np.asarray(_evaluate(target, jnp.asarray(candidates)), dtype=np.float64)
        order = np.argsort(-values)

        best_x, best_value = candidates[order[0]], float(values[order[0]])
        for idx in order[: self.config.num_restarts]:
            x, value = self._local_search(target, candidates[idx], lower, upper)
            if value > best_value:
                best_x, best_value = x, value
        return best_x, best_value

    def _local_search(
        self, target: Target, x0: np.ndarray, lower: np.ndarray, upper: np.ndarray
    ) -> Tuple[np.ndarray, float]:
        def negative(x):
            value, gradient = _evaluate(target, jnp.asarray(x[None, :]), with_gradient=True)
            return -float(value[0]), -np.asarray(gradient[0], dtype=np.float64)

        result = spo.minimize(
            negative,
            x0,
            method="L-BFGS-B",
            jac=True,
            bounds=list(zip(lower, upper)),
            options={"maxiter": self.config.max_iterations, "gtol": self.config.tolerance},
        )
        if not result.success:
            logging.log_every_n(
                logging.WARNING, "L-BFGS-B restart stopped early: %s", 50, result.message
            )
        x = np.clip(result.x, lower, upper)
        return x, -float(result.fun)
