"""Stage 1: Step-size search on a short trial chain.

The trial chain starts at the same initial parameter as the production run,
keeps no burn-in and is discarded once a step size is found.
"""

import logging
from typing import Literal

import numpy as np
from prefect import task
from prefect.cache_policies import NO_CACHE

from ces_mcmc.models.mcmc import ChainState, StepSizeSearchError, find_mcmc_step
from ces_mcmc.models.priors import ParameterDistribution
from ces_mcmc.models.surrogates import DecorrelatedSurrogate, Surrogate
from ces_mcmc.utils.config import CESConfig

logger = logging.getLogger(__name__)

SurrogateSpace = Literal["decorrelated", "data"]


def build_chain(
    observed: np.ndarray,
    obs_noise_cov: np.ndarray,
    prior: ParameterDistribution,
    param_init: np.ndarray,
    step_size: float,
    max_iter: int,
    burnin: int,
    seed: int,
    config: CESConfig,
) -> ChainState:
    """Construct a chain from the sampler section of the config."""
    sampler = config.sampler
    return ChainState.create(
        observed,
        obs_noise_cov,
        prior,
        step_size,
        param_init,
        max_iter,
        algorithm=sampler.algorithm,
        burnin=burnin,
        svd=sampler.svd,
        truncate_svd=sampler.truncate_svd,
        seed=seed,
    )


def wrap_surrogate(
    surrogate: Surrogate, state: ChainState, surrogate_space: SurrogateSpace
) -> Surrogate:
    """Map data-space predictions into the chain's decorrelated basis when needed."""
    if surrogate_space == "data" and state.decomposition is not None:
        return DecorrelatedSurrogate(surrogate, state.decomposition)
    return surrogate


@task(cache_policy=NO_CACHE, persist_result=False)
def find_step_size(
    observed: np.ndarray,
    obs_noise_cov: np.ndarray,
    prior: ParameterDistribution,
    surrogate: Surrogate,
    param_init: np.ndarray,
    config: CESConfig,
    surrogate_space: SurrogateSpace = "decorrelated",
) -> dict:
    """Tune the random-walk step on a fresh trial chain.

    Returns:
        Dict with ``found`` and, on success, ``step_size``, ``acceptance_rate``
        and ``n_trials``; on failure ``error``. ``history`` lists every probe
        batch as a dict in both cases.
    """
    sampler = config.sampler
    trial = build_chain(
        observed,
        obs_noise_cov,
        prior,
        param_init,
        step_size=sampler.initial_step,
        max_iter=sampler.trial_max_iter,
        burnin=0,
        seed=sampler.seed,
        config=config,
    )
    surrogate = wrap_surrogate(surrogate, trial, surrogate_space)

    try:
        result = find_mcmc_step(trial, surrogate, config.step_search)
    except StepSizeSearchError as e:
        logger.exception("Step size search failed")
        return {
            "found": False,
            "error": str(e),
            "history": [vars(t) for t in e.history],
        }

    return {
        "found": True,
        "step_size": result.step_size,
        "acceptance_rate": result.acceptance_rate,
        "n_trials": result.n_trials,
        "history": [vars(t) for t in result.history],
    }
