"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

from typing import NamedTuple, Optional

import jax.numpy as jnp
from jaxtyping import Array

class Dataset(NamedTuple):
    """
    Data on which a batch of programs is evaluated.

    Parameters
    ----------
    y : Array
        Targets of shape (n_samples,).
    X : Array
        Features in column-major layout, shape (n_features, n_samples).
    w : Array
        Non-negative sample weights of shape (n_samples,). The weights should not sum to zero.
    """
    y: Array
    X: Array
    w: Array

    @classmethod
    def from_arrays(cls, y, X, w: Optional[Array] = None, column_major: bool = True) -> "Dataset":
        """
        Creates a dataset from array-likes.

        Parameters
        ----------
        y : array-like
            Targets of shape (n_samples,).
        X : array-like
            Features, shape (n_features, n_samples) if `column_major`, otherwise (n_samples, n_features).
        w : array-like, optional
            Sample weights. Defaults to uniform weights.
        column_major : bool, optional
            Layout of `X`.

        Returns
        -------
        Dataset
            The dataset.
        """
        y = jnp.asarray(y, dtype=jnp.float32)
        X = jnp.atleast_2d(jnp.asarray(X, dtype=jnp.float32))
        if not column_major:
            X = X.T
        w = jnp.ones_like(y) if w is None else jnp.asarray(w, dtype=jnp.float32)
        return cls(y, X, w)

    @property
    def n_samples(self) -> int:
        return self.y.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[0]
