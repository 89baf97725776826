"""Stage 2: Production chain and posterior extraction."""

import logging

import numpy as np
from prefect import task
from prefect.cache_policies import NO_CACHE

from ces_mcmc.models.mcmc import get_posterior, sample_posterior
from ces_mcmc.models.priors import ParameterDistribution
from ces_mcmc.models.surrogates import Surrogate
from ces_mcmc.utils.config import CESConfig

from .stage1_step_search import SurrogateSpace, build_chain, wrap_surrogate

logger = logging.getLogger(__name__)


@task(cache_policy=NO_CACHE, persist_result=False)
def run_sampler(
    observed: np.ndarray,
    obs_noise_cov: np.ndarray,
    prior: ParameterDistribution,
    surrogate: Surrogate,
    param_init: np.ndarray,
    step_size: float,
    config: CESConfig,
    surrogate_space: SurrogateSpace = "decorrelated",
) -> dict:
    """Run the production chain with a tuned step size.

    Returns:
        Dict with ``sampled`` and, on success, the ``posterior``
        (PosteriorDistribution), ``acceptance_rate`` and ``step_size``;
        on failure ``error``.
    """
    sampler = config.sampler
    try:
        chain = build_chain(
            observed,
            obs_noise_cov,
            prior,
            param_init,
            step_size=step_size,
            max_iter=sampler.max_iter,
            burnin=sampler.burnin,
            seed=sampler.seed + 1,
            config=config,
        )
        surrogate = wrap_surrogate(surrogate, chain, surrogate_space)
        ratio = sample_posterior(chain, surrogate)
    except Exception as e:
        logger.exception("Production chain failed")
        return {"sampled": False, "error": str(e)}

    return {
        "sampled": True,
        "posterior": get_posterior(chain),
        "acceptance_rate": ratio,
        "step_size": step_size,
    }


@task(cache_policy=NO_CACHE, persist_result=False)
def summarize_posterior(sampling_result: dict) -> dict:
    """Posterior mean and covariance per parameter, for reporting collaborators."""
    if not sampling_result.get("sampled", False):
        return {"summarized": False, "error": sampling_result.get("error", "Not sampled")}

    posterior = sampling_result["posterior"]
    posterior.print_summary()
    mean = posterior.get_mean()
    return {
        "summarized": True,
        "n_samples": posterior.n_samples,
        "names": posterior.names,
        "mean": {
            name: mean[start:end].tolist() for name, (start, end) in posterior.slices.items()
        },
        "cov": posterior.get_cov().tolist(),
    }
