import dataclasses
import datetime
import pathlib

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import yaml
from absl import logging

jax.config.update("jax_enable_x64", True)

import gp_max_values as gmv
from gp_max_values.utils.config import setup_config

import objectives
from config import Config


EXPERIMENT = "max-values"
DATETIME = datetime.datetime.now().strftime("%b%d_%H%M%S")
HERE = pathlib.Path(__file__).parent
LOG_DIR = 'logs'


def get_experiment_dir(config: Config, output: str = "root", exist_ok: bool = True) -> pathlib.Path:
    root = HERE / LOG_DIR / EXPERIMENT / f"{DATETIME}_{config.data.objective}_{config.seed}"

    if output == "root":
        dir_ = root
    elif output == "plots":
        dir_ = root / "plots"
    else:
        raise ValueError("Unknown output: %s" % output)

    dir_.mkdir(parents=True, exist_ok=exist_ok)
    return dir_


def get_observations(key, objective: objectives.Objective, num_points: int, noise_std: float) -> gmv.Observations:
    xkey, nkey = jax.random.split(key)
    x = jax.random.uniform(
        xkey,
        (num_points, len(objective.lower)),
        minval=objective.lower,
        maxval=objective.upper,
        dtype=jnp.float64,
    )
    y = objective.function(np.asarray(x)) + noise_std * jax.random.normal(nkey, (num_points,))
    return gmv.Observations(x=x, y=jnp.asarray(y))


def get_hyperparameters(config: Config, input_dim: int) -> gmv.Hyperparameters:
    hyp = config.hyperparameters
    lengthscales = jnp.asarray(hyp.lengthscales, dtype=jnp.float64)
    return gmv.Hyperparameters(
        noise_variance=jnp.asarray(hyp.noise_variance, dtype=jnp.float64),
        signal_variance=jnp.asarray(hyp.signal_variance, dtype=jnp.float64),
        lengthscales=jnp.tile(lengthscales[:, None], (1, input_dim)),
    )


config: Config = setup_config(Config)
logging.set_verbosity(logging.INFO)

path = get_experiment_dir(config, "root") / "config.yaml"
with open(str(path), "w") as f:
    f.write(yaml.safe_dump(dataclasses.asdict(config)))

key = jax.random.PRNGKey(config.seed)
data_key, sample_key = jax.random.split(key)

objective = objectives.get(config.data.objective)
observations = get_observations(data_key, objective, config.data.num_points, config.data.noise_std)
hyperparameters = get_hyperparameters(config, observations.input_dim)
logging.info(
    "Objective %s: %d observations, best observed %.4f, true maximum %.4f.",
    config.data.objective,
    len(observations),
    float(jnp.max(observations.y)),
    objective.maximum,
)

samples, locations = gmv.sample_max_values_and_locations(
    sample_key,
    hyperparameters,
    observations,
    objective.lower,
    objective.upper,
    num_samples=config.num_samples,
    num_features=config.num_features,
    epsilon=config.epsilon,
    maximizer=gmv.GlobalMaximizer(config.maximizer),
)

num_settings, num_samples = samples.shape
rows = []
for i in range(num_settings):
    for j in range(num_samples):
        row = {"setting": i, "sample": j, "max_value": float(samples[i, j])}
        row.update({f"x{k}": float(v) for k, v in enumerate(locations[i, j])})
        rows.append(row)
df = pd.DataFrame(rows)
df.to_csv(str(get_experiment_dir(config, "root") / "samples.csv"), index=False)
logging.info("Summary per setting:\n%s", df.groupby("setting")["max_value"].describe())

fig, ax = plt.subplots()
for i in range(num_settings):
    ax.hist(np.asarray(samples[i]), bins=30, alpha=0.5, label=f"setting {i}")
ax.axvline(objective.maximum, color="k", linestyle="--", label="true maximum")
ax.axvline(float(jnp.max(observations.y)) + config.epsilon, color="r", linestyle=":", label="floor")
ax.legend()
fig.savefig(str(get_experiment_dir(config, "plots") / "max_values.png"))
