"""Random-walk Metropolis sampling against a surrogate.

Typical use mirrors a calibrate-emulate-sample run:

    trial = ChainState.create(y, gamma, prior, 0.1, u0, max_iter=5000)
    step = find_mcmc_step(trial, surrogate).step_size
    chain = ChainState.create(y, gamma, prior, step, u0, max_iter=100_000, burnin=1000)
    sample_posterior(chain, surrogate)
    posterior = get_posterior(chain)
"""

from ces_mcmc.models.mcmc.errors import (
    ChainExhaustedError,
    MCMCError,
    StepSizeSearchError,
    UnsupportedAlgorithmError,
)
from ces_mcmc.models.mcmc.likelihood import log_likelihood, log_posterior, log_prior
from ces_mcmc.models.mcmc.metropolis import (
    acceptance_probability,
    mcmc_sample,
    proposal,
    sample_posterior,
    surrogate_step,
)
from ces_mcmc.models.mcmc.posterior import PosteriorDistribution, get_posterior
from ces_mcmc.models.mcmc.state import (
    ChainState,
    MCMCAlgorithm,
    accept_ratio,
    reset_with_step,
)
from ces_mcmc.models.mcmc.step_size import StepSearchResult, StepTrial, find_mcmc_step

__all__ = [
    "ChainExhaustedError",
    "ChainState",
    "MCMCAlgorithm",
    "MCMCError",
    "PosteriorDistribution",
    "StepSearchResult",
    "StepSizeSearchError",
    "StepTrial",
    "UnsupportedAlgorithmError",
    "accept_ratio",
    "acceptance_probability",
    "find_mcmc_step",
    "get_posterior",
    "log_likelihood",
    "log_posterior",
    "log_prior",
    "mcmc_sample",
    "proposal",
    "reset_with_step",
    "sample_posterior",
    "surrogate_step",
]
