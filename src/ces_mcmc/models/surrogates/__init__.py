"""Surrogate predictors consumed by the sampler.

The emulator itself (e.g. a fitted Gaussian process) lives outside this
package; anything with a compatible ``predict`` works.
"""

from ces_mcmc.models.surrogates.adapters import DecorrelatedSurrogate, FunctionSurrogate
from ces_mcmc.models.surrogates.base import Surrogate, unpack_prediction

__all__ = [
    "DecorrelatedSurrogate",
    "FunctionSurrogate",
    "Surrogate",
    "unpack_prediction",
]
