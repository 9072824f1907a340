import dataclasses
from typing import Callable

import numpy as np


@dataclasses.dataclass
class Objective:
    function: Callable[[np.ndarray], np.ndarray]
    lower: np.ndarray
    upper: np.ndarray
    maximum: float


def negative_branin(x: np.ndarray) -> np.ndarray:
    """Branin test function, negated so that the optimum is a maximum.

    constraints: -5 <= x1 <= 10, 0 <= x2 <= 15
    three global optima: (-pi, 12.275), (pi, 2.275), (9.42478, 2.475),
    where branin = 0.397887
    """
    x1, x2 = x[:, 0], x[:, 1]
    result = (x2 - (5.1 / (4 * np.pi**2)) * x1**2 + 5 * x1 / np.pi - 6) ** 2
    result += 10 * (1 - 1 / (8 * np.pi)) * np.cos(x1) + 10
    return -result


def negative_forrester(x: np.ndarray) -> np.ndarray:
    """Forrester et al. (2008) function on [0, 1], negated."""
    x = x[:, 0]
    return -((6 * x - 2) ** 2) * np.sin(12 * x - 4)


_REGISTRY = {
    "branin": Objective(
        function=negative_branin,
        lower=np.array([-5.0, 0.0]),
        upper=np.array([10.0, 15.0]),
        maximum=-0.397887,
    ),
    "forrester": Objective(
        function=negative_forrester,
        lower=np.array([0.0]),
        upper=np.array([1.0]),
        maximum=6.02074,
    ),
}


def get(name: str) -> Objective:
    try:
        return _REGISTRY[name.lower()]
    except KeyError:
        raise NotImplementedError("Unknown objective: %s" % name) from None
