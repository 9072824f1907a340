from . import features, gp, linalg, maximizer, posterior, sampled_function, sampler
from .features import FeatureMap, evaluate_features, sample_feature_map
from .linalg import NotPositiveDefiniteError, cholesky_inverse
from .maximizer import GlobalMaximizer, MaximizerConfig
from .posterior import (
    feature_posterior,
    overdetermined_coefficients,
    sample_coefficients,
    underdetermined_coefficients,
)
from .sampled_function import SampledFunction, build_sampled_function
from .sampler import (
    DEFAULT_EPSILON,
    draw_sampled_functions,
    sample_max_values,
    sample_max_values_and_locations,
)
from .types import Hyperparameter, Hyperparameters, Observations

__all__ = [
    "DEFAULT_EPSILON",
    "FeatureMap",
    "GlobalMaximizer",
    "Hyperparameter",
    "Hyperparameters",
    "MaximizerConfig",
    "NotPositiveDefiniteError",
    "Observations",
    "SampledFunction",
    "build_sampled_function",
    "cholesky_inverse",
    "draw_sampled_functions",
    "evaluate_features",
    "feature_posterior",
    "overdetermined_coefficients",
    "sample_coefficients",
    "sample_feature_map",
    "sample_max_values",
    "sample_max_values_and_locations",
    "underdetermined_coefficients",
]
