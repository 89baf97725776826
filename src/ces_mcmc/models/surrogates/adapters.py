"""Adapters that present plain functions or data-space emulators as surrogates."""

from collections.abc import Callable
from typing import Any

import numpy as np

from ces_mcmc.models.decorrelation import SVDDecomposition


class FunctionSurrogate:
    """Wrap row-wise mean/variance callables as a batch surrogate.

    Args:
        mean_fn: maps a (d,) parameter to a (k,) predicted mean
        var_fn: maps a (d,) parameter to a (k,) variance or (k, k) covariance;
            None means the surrogate reports no uncertainty
    """

    def __init__(
        self,
        mean_fn: Callable[[np.ndarray], Any],
        var_fn: Callable[[np.ndarray], Any] | None = None,
    ):
        self.mean_fn = mean_fn
        self.var_fn = var_fn
        self.n_calls = 0

    def predict(self, params: np.ndarray) -> tuple[np.ndarray, list[np.ndarray] | None]:
        params = np.atleast_2d(np.asarray(params, dtype=np.float64))
        self.n_calls += params.shape[0]
        means = np.stack([np.asarray(self.mean_fn(p), dtype=np.float64) for p in params])
        if self.var_fn is None:
            return means, None
        return means, [np.asarray(self.var_fn(p), dtype=np.float64) for p in params]


class DecorrelatedSurrogate:
    """Express a data-space surrogate's predictions in the SVD-decorrelated basis.

    Use with a chain built with ``svd=True`` when the emulator was trained on
    raw outputs: means map as A g and covariances as A C Aᵀ, with
    A = S^{-1/2} Vᵀ from the chain's decomposition.
    """

    def __init__(self, surrogate, decomposition: SVDDecomposition):
        self.surrogate = surrogate
        self.decomposition = decomposition
        self._A = np.asarray(decomposition.transform_matrix)

    def predict(self, params: np.ndarray) -> tuple[np.ndarray, list[np.ndarray] | None]:
        mean, var = self.surrogate.predict(params)
        mean = np.atleast_2d(np.asarray(mean, dtype=np.float64))
        A = self._A
        out_mean = mean @ A.T
        if var is None:
            return out_mean, None

        out_cov = []
        for row_var in var:
            row_var = np.asarray(row_var, dtype=np.float64)
            if row_var.ndim == 1:
                row_var = np.diag(row_var)
            out_cov.append(A @ row_var @ A.T)
        return out_mean, out_cov
