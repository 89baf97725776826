"""Random-walk Metropolis transition driven by surrogate predictions.

Each transition scores the parameter proposed on the previous call, decides
whether the chain moves there, then immediately proposes the next candidate:

    1. log_post = log L(g, gvar) + log prior(param)
    2. first call only: reference = log_post - log(0.5), so p_accept = 0.5
    3. p_accept = min(1, exp(log_post - reference))
    4. u ~ U(0, 1); accept -> chain[it] = param, reference = log_post
                    reject -> chain[it] = chain[it - 1]
    5. param = chain[it] + step * L eps,  L Lᵀ = prior covariance, eps ~ N(0, I)
    6. it += 1

Callers therefore need a surrogate prediction for ``state.param`` on every
call. The proposal covariance is the prior covariance scaled by step².
"""

import logging
import math
from functools import partial

import jax
import jax.numpy as jnp
import jax.random as random
import numpy as np

from ces_mcmc.models.mcmc.errors import ChainExhaustedError
from ces_mcmc.models.mcmc.likelihood import log_posterior
from ces_mcmc.models.mcmc.state import ChainState, accept_ratio
from ces_mcmc.models.surrogates import Surrogate, unpack_prediction

logger = logging.getLogger(__name__)

_LOG_HALF = math.log(0.5)


@jax.jit
def _split3(rng_key):
    return random.split(rng_key, 3)


@jax.jit
def _uniform(rng_key):
    return random.uniform(rng_key, dtype=jnp.float64)


@partial(jax.jit, static_argnums=1)
def _standard_normal(rng_key, n):
    return random.normal(rng_key, (n,), dtype=jnp.float64)


def acceptance_probability(log_post: float, reference: float) -> float:
    """min(1, exp(log_post - reference)); NaN differences (e.g. -inf - -inf) give 0."""
    delta = log_post - reference
    if math.isnan(delta):
        return 0.0
    if delta >= 0.0:
        return 1.0
    return math.exp(delta)


def proposal(state: ChainState, rng_key: jnp.ndarray) -> np.ndarray:
    """Random-walk candidate centred on the most recent chain entry."""
    eps = np.asarray(_standard_normal(rng_key, state.n_params))
    return state.chain[state.iteration] + state.step_size * (state.proposal_chol @ eps)


def mcmc_sample(state: ChainState, g: np.ndarray, gvar: np.ndarray | None = None) -> bool:
    """Run one transition in place.

    Args:
        state: chain to advance
        g: (k,) surrogate mean at ``state.param``
        gvar: (k,) surrogate variance at ``state.param``, or None to use the
            observational noise covariance

    Returns:
        True if ``state.param`` was accepted

    Raises:
        ChainExhaustedError: the sample buffer is already full
    """
    if state.is_finished:
        raise ChainExhaustedError(
            f"Chain is full after {state.max_iter} transitions; reset it or build a longer one"
        )

    log_post = log_posterior(state, g, gvar)
    if state.log_posterior is None:
        state.log_posterior = log_post - _LOG_HALF
    p_accept = acceptance_probability(log_post, state.log_posterior)

    state.rng_key, accept_key, prop_key = _split3(state.rng_key)
    u = float(_uniform(accept_key))

    it = state.iteration
    accepted = u < p_accept
    if accepted:
        state.chain[it] = state.param
        state.log_posterior = log_post
        state.accepted += 1
    else:
        state.chain[it] = state.chain[it - 1]

    state.param = proposal(state, prop_key)
    state.iteration += 1
    return accepted


def surrogate_step(state: ChainState, surrogate: Surrogate) -> bool:
    """Query the surrogate at the current parameter and run one transition."""
    g, gvar = unpack_prediction(surrogate.predict(state.param.reshape(1, -1)))
    return mcmc_sample(state, g, gvar)


def sample_posterior(
    state: ChainState,
    surrogate: Surrogate,
    max_iter: int | None = None,
    log_every: int = 10_000,
) -> float:
    """Advance the chain with surrogate predictions.

    Args:
        state: chain to advance
        surrogate: predictor queried once per transition
        max_iter: transitions to run; defaults to filling the rest of the buffer
        log_every: progress logging interval in transitions

    Returns:
        Acceptance ratio after the run
    """
    remaining = state.max_iter - state.n_transitions
    n_steps = remaining if max_iter is None else max_iter
    if n_steps > remaining:
        raise ValueError(f"Requested {n_steps} transitions but only {remaining} rows remain")

    logger.info("Sampling %d transitions with step size %.4g", n_steps, state.step_size)
    for i in range(1, n_steps + 1):
        surrogate_step(state, surrogate)
        if log_every and i % log_every == 0:
            logger.info(
                "iteration %d/%d; acceptance rate = %.3f", i, n_steps, accept_ratio(state)
            )

    ratio = accept_ratio(state)
    logger.info("Finished sampling; acceptance rate = %.3f", ratio)
    return ratio
