"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

import jax
import jax.numpy as jnp
import numpy as np
from jax.sharding import Mesh, PartitionSpec as P, NamedSharding
from jaxtyping import Array
from typing import Dict, Optional, Sequence, Tuple

from gpfit.dataset import Dataset
from gpfit.fitness_functions import (
    BaseFitnessFunction,
    LogLossFitnessFunction,
    MeanAbsoluteErrorFitnessFunction,
    MeanSquareErrorFitnessFunction,
    RootMeanSquareErrorFitnessFunction,
    WeightedPearsonFitnessFunction,
    WeightedSpearmanFitnessFunction,
)
from gpfit.program import Program, encode_programs
from gpfit.tree_evaluator import execute, predict

METRICS: Dict[str, BaseFitnessFunction] = {f.name: f for f in (WeightedPearsonFitnessFunction(),
                                                               WeightedSpearmanFitnessFunction(),
                                                               MeanAbsoluteErrorFitnessFunction(),
                                                               MeanSquareErrorFitnessFunction(),
                                                               RootMeanSquareErrorFitnessFunction(),
                                                               LogLossFitnessFunction())}

_jit_metrics = {name: jax.jit(f.__call__) for name, f in METRICS.items()}

def get_fitness_function(metric: str) -> BaseFitnessFunction:
    if metric not in METRICS:
        raise ValueError(f"Unknown metric '{metric}', expected one of {list(METRICS)}")
    return METRICS[metric]

def compute_metric(metric: str, y: Array, y_pred: Array, w: Optional[Array] = None) -> Array:
    """
    Computes the fitness of a matrix of predictions without assigning it to programs.

    Parameters
    ----------
    metric : str
        Name of the metric.
    y : Array
        Targets of shape (n_samples,).
    y_pred : Array
        Predictions of shape (n_programs, n_samples).
    w : Array, optional
        Sample weights. Defaults to uniform weights.

    Returns
    -------
    Array
        Fitness of every program.
    """
    get_fitness_function(metric)
    y = jnp.asarray(y, dtype=jnp.float32)
    y_pred = jnp.atleast_2d(jnp.asarray(y_pred, dtype=jnp.float32))
    w = jnp.ones_like(y) if w is None else jnp.asarray(w, dtype=jnp.float32)
    return _jit_metrics[metric](y, y_pred, w)

def set_fitness(programs: Sequence[Program], fitness: Array) -> None:
    for program, f in zip(programs, np.asarray(fitness)):
        program.fitness = float(f)

def _assign_metric(metric: str, programs: Sequence[Program], y: Array, y_pred: Array, w: Optional[Array]) -> Array:
    y_pred = jnp.atleast_2d(jnp.asarray(y_pred, dtype=jnp.float32))
    n_programs = y_pred.shape[0]
    if len(programs) != n_programs:
        raise ValueError(f"Got {len(programs)} programs, but predictions for {n_programs} programs")

    fitness = compute_metric(metric, y, y_pred, w)
    set_fitness(programs, fitness)
    return fitness

def weighted_pearson(programs: Sequence[Program], y: Array, y_pred: Array, w: Optional[Array] = None) -> Array:
    """
    Assigns the weighted Pearson correlation between predictions and targets to every program.

    Parameters
    ----------
    programs : Sequence[Program]
        Programs whose fitness is written.
    y : Array
        Targets of shape (n_samples,).
    y_pred : Array
        Predictions of shape (n_programs, n_samples).
    w : Array, optional
        Sample weights. Defaults to uniform weights.

    Returns
    -------
    Array
        Fitness of every program.
    """
    return _assign_metric("pearson", programs, y, y_pred, w)

def weighted_spearman(programs: Sequence[Program], y: Array, y_pred: Array, w: Optional[Array] = None) -> Array:
    """Assigns the weighted Spearman correlation (on dense ranks) to every program."""
    return _assign_metric("spearman", programs, y, y_pred, w)

def mean_absolute_error(programs: Sequence[Program], y: Array, y_pred: Array, w: Optional[Array] = None) -> Array:
    """Assigns the weighted mean absolute error to every program."""
    return _assign_metric("mae", programs, y, y_pred, w)

def mean_square_error(programs: Sequence[Program], y: Array, y_pred: Array, w: Optional[Array] = None) -> Array:
    """Assigns the weighted mean squared error to every program."""
    return _assign_metric("mse", programs, y, y_pred, w)

def root_mean_square_error(programs: Sequence[Program], y: Array, y_pred: Array, w: Optional[Array] = None) -> Array:
    """Assigns the weighted root mean squared error to every program."""
    return _assign_metric("rmse", programs, y, y_pred, w)

def log_loss(programs: Sequence[Program], y: Array, y_pred: Array, w: Optional[Array] = None) -> Array:
    """Assigns the weighted logistic loss of the predicted logits to every program."""
    return _assign_metric("logloss", programs, y, y_pred, w)

def find_batched_fitness(programs: Sequence[Program], dataset: Dataset, metric: str, max_nodes: Optional[int] = None) -> Array:
    """
    Evaluates every program on the dataset and assigns the fitness.

    Parameters
    ----------
    programs : Sequence[Program]
        Batch of programs.
    dataset : Dataset
        Targets, features and weights.
    metric : str
        Name of the metric.
    max_nodes : int, optional
        Capacity of the encoded programs. Defaults to the length of the longest program.

    Returns
    -------
    Array
        Fitness of every program.
    """
    y_pred = execute(programs, dataset, max_nodes)
    return _assign_metric(metric, programs, dataset.y, y_pred, dataset.w)

class FitnessEvaluator:
    """Evaluates batches of programs with a fixed metric. The batch is distributed over the available devices.

    Parameters
    ----------
    metric : str, optional
        Name of the metric, one of "pearson", "spearman", "mae", "mse", "rmse" or "logloss".
    max_nodes : int, optional
        Capacity of the encoded programs. If None, the length of the longest program in each batch is used.
    device_type : str, optional
        Type of device on which the evaluation takes place.
    verbose : bool, optional
        Whether to print the detected devices and the best fitness of every batch.
    """

    def __init__(self,
                 metric: str = "mse",
                 max_nodes: Optional[int] = None,
                 device_type: str = "cpu",
                 verbose: bool = False) -> None:

        assert metric in METRICS, f"The metric should be one of {list(METRICS)}"
        self.fitness_function = METRICS[metric]

        assert max_nodes is None or max_nodes > 0, "The max number of nodes should be larger than 0"
        self.max_nodes = max_nodes

        assert device_type in ["cpu", "gpu", "tpu"], "The device type is not supported"
        self.devices = jax.devices(device_type)
        self.mesh = Mesh(np.array(self.devices), axis_names=('i',))
        self.program_sharding = NamedSharding(self.mesh, P('i'))
        self.data_sharding = NamedSharding(self.mesh, P())

        self.verbose = verbose
        if self.verbose:
            print(f"These device(s) are detected: {self.devices}")

        self.jit_eval = jax.jit(self.evaluate_encoded)

    def evaluate_encoded(self, nodes: Array, lengths: Array, data: Dataset) -> Array:
        """
        Computes the fitness of encoded programs.

        Parameters
        ----------
        nodes : Array
            Encoded programs of shape (n_programs, max_nodes, 2).
        lengths : Array
            Number of nodes of each program.
        data : Dataset
            Targets, features and weights.

        Returns
        -------
        Array
            Fitness of every program.
        """
        y_pred = predict(nodes, lengths, data.X)
        return self.fitness_function(data.y.astype(y_pred.dtype), y_pred, data.w.astype(y_pred.dtype))

    def pad_programs(self, nodes: Array, lengths: Array) -> Tuple[Array, Array]:
        """Pads the batch with constant programs, so that it can be split evenly over the devices."""
        n_padding = -nodes.shape[0] % len(self.devices)
        if n_padding == 0:
            return nodes, lengths
        padding = jnp.zeros((n_padding, *nodes.shape[1:]), dtype=nodes.dtype).at[:, 0, 0].set(1.0)
        return jnp.concatenate([nodes, padding]), jnp.concatenate([lengths, jnp.ones(n_padding, dtype=lengths.dtype)])

    def __call__(self, programs: Sequence[Program], dataset: Dataset) -> Array:
        """
        Evaluates every program on the dataset and assigns the fitness.

        Parameters
        ----------
        programs : Sequence[Program]
            Batch of programs.
        dataset : Dataset
            Targets, features and weights.

        Returns
        -------
        Array
            Fitness of every program.
        """
        n_programs = len(programs)
        nodes, lengths = self.pad_programs(*encode_programs(programs, self.max_nodes))

        nodes = jax.device_put(nodes, self.program_sharding)
        lengths = jax.device_put(lengths, self.program_sharding)
        data = jax.device_put(dataset, self.data_sharding)

        fitness = self.jit_eval(nodes, lengths, data)[:n_programs]
        fitness.block_until_ready()
        set_fitness(programs, fitness)

        if self.verbose and n_programs > 0:
            best_fitness = jnp.nanmax(fitness) if self.fitness_function.greater_is_better else jnp.nanmin(fitness)
            print(f"Evaluated {n_programs} programs with {self.fitness_function.name}, best fitness = {float(best_fitness):.4f}")

        return fitness
