"""Log-likelihood and log-prior of a candidate parameter.

Two Gaussian likelihood forms, chosen by whether the surrogate reports a
predictive variance:

- Known covariance (gvar is None):
      log L = -0.5 * diffᵀ Γ⁻¹ diff
  with Γ the (possibly decorrelated) observational noise covariance.

- Surrogate variance (gvar given, one variance per output):
      log L = -0.5 * diffᵀ diag(gvar)⁻¹ diff - 0.5 * log det diag(gvar)
  The log-det term penalises regions where the surrogate is uncertain.

In both cases diff = g - observed.
"""

import logging
import math

import jax
import jax.numpy as jnp
import jax.scipy.linalg as jla
import numpy as np

from ces_mcmc.models.mcmc.state import ChainState

logger = logging.getLogger(__name__)


@jax.jit
def _known_cov_log_likelihood(diff, noise_chol):
    # Γ = L Lᵀ, so diffᵀ Γ⁻¹ diff = ||L⁻¹ diff||²
    z = jla.solve_triangular(noise_chol, diff, lower=True)
    return -0.5 * jnp.dot(z, z)


@jax.jit
def _surrogate_var_log_likelihood(diff, gvar):
    log_gpfidelity = -0.5 * jnp.sum(jnp.log(gvar))
    return -0.5 * jnp.sum(diff**2 / gvar) + log_gpfidelity


def log_likelihood(state: ChainState, g: np.ndarray, gvar: np.ndarray | None = None) -> float:
    """Gaussian log-likelihood of a surrogate prediction.

    Args:
        state: chain whose observation and noise covariance are used
        g: (k,) predicted mean at the candidate
        gvar: (k,) predicted variances, or None for the known-covariance form

    Returns:
        Log-likelihood (up to an additive constant) as a float
    """
    g = np.asarray(g, dtype=np.float64).reshape(-1)
    if g.shape != state.observed.shape:
        raise ValueError(
            f"Prediction has shape {g.shape}, observation has shape {state.observed.shape}"
        )
    diff = g - state.observed

    if gvar is None:
        return float(_known_cov_log_likelihood(diff, state.noise_chol))

    gvar = np.asarray(gvar, dtype=np.float64).reshape(-1)
    if gvar.shape != diff.shape:
        raise ValueError(f"gvar has shape {gvar.shape}, expected {diff.shape}")
    if not np.all(gvar > 0):
        raise ValueError(f"Surrogate variances must be positive, got min {gvar.min()}")
    return float(_surrogate_var_log_likelihood(diff, gvar))


def log_prior(state: ChainState, param: np.ndarray | None = None) -> float:
    """Prior log-density at ``param`` (defaults to the chain's current parameter).

    Out-of-support points give -inf, including priors that raise a domain
    error there instead of returning -inf.
    """
    param = np.asarray(state.param if param is None else param, dtype=np.float64)
    if param.shape != (state.n_params,):
        raise ValueError(
            f"Expected parameter vector of shape ({state.n_params},), got {param.shape}"
        )
    try:
        return state.prior.logpdf(param)
    except (ValueError, ArithmeticError) as e:
        logger.debug("Prior log-density failed at %s: %s", param, e)
        return -math.inf


def log_posterior(state: ChainState, g: np.ndarray, gvar: np.ndarray | None = None) -> float:
    """Log-likelihood plus log-prior for the chain's current parameter.

    An out-of-support parameter short-circuits to -inf so the transition
    rejects it.
    """
    lp = log_prior(state)
    if not math.isfinite(lp):
        return -math.inf
    return log_likelihood(state, g, gvar) + lp
