"""Mutable state of a single surrogate-driven Markov chain.

A ChainState is owned by exactly one chain: the Metropolis transition and
``reset_with_step`` are the only functions that mutate it. Independent chains
(step-size trials, production runs) each get their own instance and their own
PRNG key, so they can run on separate threads or processes.

Layout of the sample buffer:
    chain[0]            initial parameter, never overwritten
    chain[1..max_iter]  one row per completed transition
    iteration           index of the next row to write (starts at 1)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

import jax.numpy as jnp
import jax.random as random
import numpy as np

from ces_mcmc.models.decorrelation import (
    SVDDecomposition,
    check_covariance,
    svd_transform,
    transform_covariance,
)
from ces_mcmc.models.mcmc.errors import UnsupportedAlgorithmError
from ces_mcmc.models.priors import ParameterDistribution

logger = logging.getLogger(__name__)


class MCMCAlgorithm(StrEnum):
    """Supported transition rules."""

    RANDOM_WALK_METROPOLIS = "rwm"

    @classmethod
    def parse(cls, tag: str | MCMCAlgorithm) -> MCMCAlgorithm:
        if isinstance(tag, cls):
            return tag
        try:
            return cls(tag)
        except ValueError:
            supported = ", ".join(repr(a.value) for a in cls)
            raise UnsupportedAlgorithmError(
                f"Unsupported MCMC algorithm {tag!r}; implemented: {supported}"
            ) from None


def _cholesky(cov: jnp.ndarray, name: str) -> np.ndarray:
    return np.linalg.cholesky(np.asarray(check_covariance(cov, name)))


@dataclass
class ChainState:
    """Everything one random-walk Metropolis chain needs between transitions."""

    observed: np.ndarray  # (k,) observation, decorrelated if svd was applied
    obs_noise_cov: np.ndarray  # (k, k) noise covariance in the same basis
    prior: ParameterDistribution
    step_size: float
    burnin: int
    param: np.ndarray  # (d,) parameter evaluated on the next transition
    chain: np.ndarray  # (max_iter + 1, d)
    algorithm: MCMCAlgorithm
    rng_key: jnp.ndarray
    decomposition: SVDDecomposition | None = None
    log_posterior: float | None = None
    iteration: int = 1
    accepted: int = 0
    noise_chol: np.ndarray | None = field(default=None, repr=False)
    proposal_chol: np.ndarray | None = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        observed: np.ndarray,
        obs_noise_cov: np.ndarray,
        prior: ParameterDistribution,
        step_size: float,
        param_init: np.ndarray,
        max_iter: int,
        algorithm: str | MCMCAlgorithm = MCMCAlgorithm.RANDOM_WALK_METROPOLIS,
        burnin: int = 0,
        *,
        svd: bool = True,
        truncate_svd: float = 1.0,
        seed: int = 0,
        rng_key: jnp.ndarray | None = None,
    ) -> ChainState:
        """Build a fresh chain.

        Args:
            observed: (k,) observation in data space
            obs_noise_cov: (k, k) observational noise covariance
            prior: prior over the unconstrained parameters
            step_size: random-walk scale, > 0
            param_init: (d,) initial parameter, stored in chain[0]
            max_iter: number of transitions the buffer holds
            algorithm: transition rule tag; only "rwm" is implemented
            burnin: leading samples dropped by get_posterior; at least two
                rows must remain, so burnin < max_iter
            svd: decorrelate observation and noise covariance via SVD
            truncate_svd: fraction of noise variance kept when decorrelating
            seed: PRNG seed, used when rng_key is not given
            rng_key: explicit JAX PRNG key

        Raises:
            UnsupportedAlgorithmError: unknown algorithm tag
            ValueError: malformed covariances or inconsistent sizes
        """
        algorithm = MCMCAlgorithm.parse(algorithm)
        if not step_size > 0:
            raise ValueError(f"step_size must be positive, got {step_size}")
        if max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {max_iter}")
        if not 0 <= burnin < max_iter:
            raise ValueError(f"burnin must be in [0, max_iter={max_iter}), got {burnin}")

        param_init = np.array(param_init, dtype=np.float64).reshape(-1)
        if param_init.shape[0] != prior.n_params:
            raise ValueError(
                f"param_init has {param_init.shape[0]} entries, prior has {prior.n_params}"
            )

        observed = jnp.asarray(observed, dtype=jnp.float64).reshape(-1)
        obs_noise_cov = check_covariance(obs_noise_cov, "obs_noise_cov")
        decomposition = None
        if svd:
            logger.info("Applying SVD to decorrelate outputs; pass svd=False if not required")
            observed, decomposition = svd_transform(observed, obs_noise_cov, truncate_svd)
            obs_noise_cov = transform_covariance(obs_noise_cov, decomposition)
        else:
            logger.info("Using raw outputs with the full noise covariance")
            if observed.shape[0] != obs_noise_cov.shape[0]:
                raise ValueError(
                    f"observed has {observed.shape[0]} entries, "
                    f"obs_noise_cov is {obs_noise_cov.shape}"
                )

        chain = np.zeros((max_iter + 1, param_init.shape[0]))
        chain[0] = param_init

        return cls(
            observed=np.asarray(observed),
            obs_noise_cov=np.asarray(obs_noise_cov),
            prior=prior,
            step_size=float(step_size),
            burnin=int(burnin),
            param=param_init.copy(),
            chain=chain,
            algorithm=algorithm,
            rng_key=random.PRNGKey(seed) if rng_key is None else rng_key,
            decomposition=decomposition,
            noise_chol=_cholesky(obs_noise_cov, "obs_noise_cov"),
            proposal_chol=_cholesky(prior.get_cov(), "prior covariance"),
        )

    @property
    def max_iter(self) -> int:
        return self.chain.shape[0] - 1

    @property
    def n_params(self) -> int:
        return self.chain.shape[1]

    @property
    def is_initialized(self) -> bool:
        """True once the reference log-posterior has been set."""
        return self.log_posterior is not None

    @property
    def is_finished(self) -> bool:
        return self.iteration > self.max_iter

    @property
    def n_transitions(self) -> int:
        return self.iteration - 1


def reset_with_step(
    state: ChainState, step_size: float, rng_key: jnp.ndarray | None = None
) -> None:
    """Rewind the chain to its initial parameter with a new step size.

    Counters restart, stored samples past chain[0] are zeroed and the
    reference log-posterior is cleared. The PRNG key carries on unless a new
    one is given.
    """
    if not step_size > 0:
        raise ValueError(f"step_size must be positive, got {step_size}")
    state.step_size = float(step_size)
    state.log_posterior = None
    state.iteration = 1
    state.accepted = 0
    state.chain[1:] = 0.0
    state.param = state.chain[0].copy()
    if rng_key is not None:
        state.rng_key = rng_key


def accept_ratio(state: ChainState) -> float:
    """Fraction of accepted proposals so far."""
    return state.accepted / state.iteration
