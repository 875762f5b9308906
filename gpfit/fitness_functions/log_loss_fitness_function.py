"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array

from gpfit.fitness_functions.base_fitness_function import BaseFitnessFunction

def log_sigmoid(x: Array) -> Array:
    """
    Computes log(1 / (1 + exp(-x))) piecewise, so that exp does not overflow and log1p does not
    lose precision anywhere on the float range. See http://fa.bianp.net/blog/2019/evaluate_logistic/.

    Parameters
    ----------
    x : Array
        Logits.

    Returns
    -------
    Array
        Log of the sigmoid of the logits.
    """
    # Only the selected region is kept, so the exps of the other regions are allowed to overflow
    return jnp.where(x < -33.3, x,
                     jnp.where(x <= -18, x - jnp.exp(x),
                               jnp.where(x <= 37, -jnp.log1p(jnp.exp(-x)), -jnp.exp(-x))))

class LogLossFitnessFunction(BaseFitnessFunction):
    """
    Weighted logistic loss of the predictions, which are interpreted as logits, with respect to binary targets.

    Methods
    -------
    __call__(y, y_pred, w)
        Computes the fitness of every program.
    """
    name = "logloss"
    greater_is_better = False

    def __call__(self, y: Array, y_pred: Array, w: Array) -> Array:
        """
        Computes the fitness of every program.

        Parameters
        ----------
        y : :class:`jax.Array`
            Binary targets of shape (n_samples,).
        y_pred : :class:`jax.Array`
            Logits of shape (n_programs, n_samples).
        w : :class:`jax.Array`
            Sample weights of shape (n_samples,).

        Returns
        -------
        :class:`jax.Array`
            Log loss of every program, shape (n_programs,).
        """
        WS = jnp.sum(w)

        def loss(yp):
            return jnp.sum(((1 - y) * yp - log_sigmoid(yp)) * (w / WS))

        return jax.vmap(loss)(y_pred)
