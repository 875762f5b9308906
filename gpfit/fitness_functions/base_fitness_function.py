"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

from abc import ABC, abstractmethod
from jaxtyping import Array

class BaseFitnessFunction(ABC):
    """
    Abstract base class for reducing the predictions of a batch of programs to a fitness per program.

    Attributes
    ----------
    name : str
        Name under which the fitness function is registered.
    greater_is_better : bool
        Whether a higher fitness indicates a better program.

    Methods
    -------
    __call__(y, y_pred, w)
        Computes the fitness of every program.
    """
    name: str = None
    greater_is_better: bool = False

    @abstractmethod
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
            Fitness of every program, shape (n_programs,).
        """
        raise NotImplementedError
