from typing import Sequence, Tuple

import jax.numpy as jnp
import jax.scipy.linalg as jsl
import numpy as np
from check_shapes import check_shapes
from jaxtyping import Array


class NotPositiveDefiniteError(ValueError):
    """Raised when a system that must be symmetric positive definite is not.

    ``cells`` lists the ``(setting, sample)`` indices whose factorisation broke
    down, so that the caller can identify the ill-conditioned hyperparameters.
    """

    def __init__(self, cells: Sequence[Tuple[int, ...]]):
        self.cells = [tuple(int(i) for i in cell) for cell in cells]
        super().__init__(
            "Factorisation of a posterior system failed (matrix not symmetric positive "
            f"definite) for cells {self.cells}. Check the noise variance, signal variance "
            "and lengthscales of the corresponding hyperparameter settings."
        )


@check_shapes("a: [n, n]", "return: [n, n]")
def cholesky(a: Array) -> Array:
    """Lower Cholesky factor. Non-finite entries signal that ``a`` is not SPD."""
    return jnp.linalg.cholesky(a)


@check_shapes("a: [n, m]", "return: [m, m]")
def gram_factor(a: Array) -> Array:
    """Upper triangular R with RᵀR = aᵀa, from a QR decomposition of ``a``.

    The gram matrix is never formed, so the factor keeps the conditioning of
    ``a`` rather than its square. Non-finite entries of ``a`` propagate.
    """
    return jnp.linalg.qr(a, mode="r")


@check_shapes("a: [n, n]", "return: [n, n]")
def cholesky_inverse(a: Array) -> Array:
    """Computes a⁻¹ for symmetric positive definite ``a`` through its Cholesky factor.

    Works under ``jit`` and ``vmap``: when ``a`` is not positive definite the
    factorisation yields NaNs, which propagate to the result. Use
    :func:`raise_if_not_finite` outside of traced code to turn them into an error.
    """
    L = cholesky(a)
    inv = jsl.cho_solve((L, True), jnp.eye(a.shape[0], dtype=a.dtype))
    return 0.5 * (inv + inv.T)


def raise_if_not_finite(values: Array, num_batch_dims: int) -> None:
    """Raises :class:`NotPositiveDefiniteError` for batch entries containing NaN or inf."""
    values = np.asarray(values)
    event_axes = tuple(range(num_batch_dims, values.ndim))
    bad = ~np.all(np.isfinite(values), axis=event_axes)
    if np.any(bad):
        raise NotPositiveDefiniteError(list(zip(*np.nonzero(bad))))
