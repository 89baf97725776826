"""Surrogate predictor protocol and prediction unpacking.

The sampler consumes any object exposing

    predict(params: (N, d) array) -> (mean: (N, k), var)

where ``var`` is either a sequence of N per-row (k, k) covariance matrices, an
(N, k) array of per-output variances, or None when the surrogate reports no
uncertainty. The sampler only ever asks for one row at a time.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class Surrogate(Protocol):
    """Protocol for cheap stand-ins of the forward model (e.g. a fitted GP)."""

    def predict(self, params: np.ndarray) -> tuple[np.ndarray, Any]:
        """Predict outputs for a batch of parameters.

        Args:
            params: (N, d) parameter batch

        Returns:
            Tuple of (N, k) means and the predictive variance (see module doc),
            or None for the variance when unavailable
        """
        ...


def unpack_prediction(prediction: tuple[Any, Any]) -> tuple[np.ndarray, np.ndarray | None]:
    """Turn a single-row surrogate prediction into (g, gvar).

    Per-row covariance matrices contribute their diagonal; flat variance
    arrays are used as-is.

    Returns:
        Tuple of (k,) mean and (k,) variance, or None for the variance
    """
    mean, var = prediction
    g = np.asarray(mean, dtype=np.float64).reshape(-1)
    if var is None:
        return g, None

    k = g.shape[0]
    if isinstance(var, Sequence) and not isinstance(var, np.ndarray):
        var = var[0]
    var = np.asarray(var, dtype=np.float64)
    if var.ndim == 3:
        var = var[0]
    if var.ndim == 2 and var.shape == (k, k):
        gvar = np.diag(var).copy()
    else:
        gvar = var.reshape(-1)

    if gvar.shape != (k,):
        raise ValueError(f"Surrogate variance has {gvar.size} entries, expected {k}")
    return g, gvar
