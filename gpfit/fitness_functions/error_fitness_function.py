"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array
from typing import Callable

from gpfit.fitness_functions.base_fitness_function import BaseFitnessFunction

class WeightedErrorFitnessFunction(BaseFitnessFunction):
    """
    Weighted mean of an elementwise error between the predictions of each program and the targets.

    Parameters
    ----------
    error : Callable
        Elementwise error of the predictions with respect to the targets.

    Methods
    -------
    __call__(y, y_pred, w)
        Computes the fitness of every program.
    weighted_mean_error(y_pred, y, w, WS)
        Computes the weighted mean error of a single row of predictions.
    """
    greater_is_better = False

    def __init__(self, error: Callable[[Array, Array], Array]) -> None:
        self.error = error

    def __call__(self, y: Array, y_pred: Array, w: Array) -> Array:
        """
        Computes the fitness of every program.

        Parameters
        ----------
        y : :class:`jax.Array`
            Targets of shape (n_samples,).
        y_pred : :class:`jax.Array`
            Predictions of shape (n_programs, n_samples).
        w : :class:`jax.Array`
            Sample weights of shape (n_samples,).

        Returns
        -------
        :class:`jax.Array`
            Weighted mean error of every program, shape (n_programs,).
        """
        WS = jnp.sum(w)
        return jax.vmap(self.weighted_mean_error, in_axes=[0, None, None, None])(y_pred, y, w, WS)

    def weighted_mean_error(self, y_pred: Array, y: Array, w: Array, WS: Array) -> Array:
        N = y.shape[0]
        error = N * w * self.error(y_pred, y) / WS
        return jnp.sum(error / N)

class MeanAbsoluteErrorFitnessFunction(WeightedErrorFitnessFunction):
    """Weighted mean absolute error."""
    name = "mae"

    def __init__(self) -> None:
        super().__init__(lambda y_pred, y: jnp.abs(y_pred - y))

class MeanSquareErrorFitnessFunction(WeightedErrorFitnessFunction):
    """Weighted mean squared error."""
    name = "mse"

    def __init__(self) -> None:
        super().__init__(lambda y_pred, y: (y_pred - y) * (y_pred - y))

class RootMeanSquareErrorFitnessFunction(MeanSquareErrorFitnessFunction):
    """Square root of the weighted mean squared error."""
    name = "rmse"

    def __call__(self, y: Array, y_pred: Array, w: Array) -> Array:
        return jnp.sqrt(super().__call__(y, y_pred, w))
