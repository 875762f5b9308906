"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array
from typing import Tuple

from gpfit.fitness_functions.base_fitness_function import BaseFitnessFunction

def weighted_moments(values: Array, w: Array, WS: Array) -> Tuple[Array, Array]:
    """
    Computes the weighted mean and the square root of the weighted sum of squared deviations.

    Parameters
    ----------
    values : Array
        Values of shape (n_samples,).
    w : Array
        Sample weights.
    WS : Array
        Sum of the sample weights.

    Returns
    -------
    Tuple[Array, Array]
        Weighted mean and weighted standard deviation (not normalized by the weight sum).
    """
    mu = jnp.sum(values * w) / WS
    diff = values - mu
    std = jnp.sqrt(jnp.sum(diff * diff * w))
    return mu, std

def dense_rank(x: Array) -> Array:
    """
    Ranks the values in ascending order. Equal values share a rank and the rank increases by exactly one
    at every distinct value, starting from 1.

    Parameters
    ----------
    x : Array
        Values of shape (n_samples,).

    Returns
    -------
    Array
        Rank of every value, in the original order.
    """
    order = jnp.argsort(x)
    x_sorted = x[order]

    # Indicator of a new distinct value, the first value always starts a new rank
    changed = jnp.concatenate([jnp.ones_like(x_sorted[:1], dtype=bool), x_sorted[1:] != x_sorted[:-1]])
    ranks = jnp.cumsum(changed.astype(x.dtype))

    return jnp.zeros_like(x).at[order].set(ranks)

class WeightedPearsonFitnessFunction(BaseFitnessFunction):
    """
    Weighted Pearson correlation coefficient between the predictions of each program and the targets.
    Zero variance of the targets or the predictions results in a NaN or infinite fitness.

    Methods
    -------
    __call__(y, y_pred, w)
        Computes the fitness of every program.
    correlation(x, y, w, y_mu, y_std, WS)
        Computes the correlation of a single row of predictions.
    """
    name = "pearson"
    greater_is_better = True

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
            Correlation of every program, shape (n_programs,).
        """
        WS = jnp.sum(w)
        y_mu, y_std = weighted_moments(y, w, WS)
        return jax.vmap(self.correlation, in_axes=[0, None, None, None, None, None])(y_pred, y, w, y_mu, y_std, WS)

    def correlation(self, x: Array, y: Array, w: Array, y_mu: Array, y_std: Array, WS: Array) -> Array:
        """
        Computes the correlation of a single row of predictions.

        Parameters
        ----------
        x : :class:`jax.Array`
            Predictions of one program.
        y : :class:`jax.Array`
            Targets.
        w : :class:`jax.Array`
            Sample weights.
        y_mu : :class:`jax.Array`
            Weighted mean of the targets.
        y_std : :class:`jax.Array`
            Weighted standard deviation of the targets.
        WS : :class:`jax.Array`
            Sum of the weights.

        Returns
        -------
        :class:`jax.Array`
            Correlation coefficient.
        """
        N = x.shape[0]
        x_mu, x_std = weighted_moments(x, w, WS)

        # Cross covariance, scaled by N so the mean over samples gives the coefficient
        corr = N * w * (x - x_mu) * (y - y_mu) / y_std
        corr = corr / x_std

        return jnp.sum(corr / N)

class WeightedSpearmanFitnessFunction(WeightedPearsonFitnessFunction):
    """
    Weighted Spearman correlation, computed as the weighted Pearson correlation between the dense ranks
    of the predictions and the dense ranks of the targets. With ties this differs from the textbook
    coefficient that assigns average ranks.

    Methods
    -------
    __call__(y, y_pred, w)
        Computes the fitness of every program.
    """
    name = "spearman"
    greater_is_better = True

    def __call__(self, y: Array, y_pred: Array, w: Array) -> Array:
        y_rank = dense_rank(y)
        y_pred_rank = jax.vmap(dense_rank)(y_pred)
        return super().__call__(y_rank, y_pred_rank, w)
