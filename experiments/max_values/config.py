from dataclasses import dataclass, field
from typing import List

from gp_max_values.maximizer import MaximizerConfig


@dataclass
class DataConfig:
    objective: str = "forrester"
    num_points: int = 10
    noise_std: float = 0.01


@dataclass
class HyperparameterConfig:
    # One entry per hyperparameter setting. ``lengthscales`` is broadcast over
    # the input dimensions of the objective.
    noise_variance: List[float] = field(default_factory=lambda: [1e-4])
    signal_variance: List[float] = field(default_factory=lambda: [10.0])
    lengthscales: List[float] = field(default_factory=lambda: [10.0])


@dataclass
class Config:
    seed: int = 42
    num_samples: int = 100
    num_features: int = 500
    epsilon: float = 0.1
    data: DataConfig = field(default_factory=DataConfig)
    hyperparameters: HyperparameterConfig = field(default_factory=HyperparameterConfig)
    maximizer: MaximizerConfig = field(default_factory=MaximizerConfig)
