"""Sample stage of a calibrate-emulate-sample run.

The surrogate (e.g. a GP emulator trained on EKI ensemble members) and the
prior come from upstream collaborators. This flow:

- Stage 1: tunes the random-walk step on a short trial chain
- Stage 2: runs the production chain, drops burn-in and summarises the posterior
"""

import numpy as np
from prefect import flow

from ces_mcmc.models.priors import ParameterDistribution
from ces_mcmc.models.surrogates import Surrogate
from ces_mcmc.utils.config import CESConfig, get_config

from .stages import (
    # Stage 1
    find_step_size,
    # Stage 2
    run_sampler,
    summarize_posterior,
)
from .stages.stage1_step_search import SurrogateSpace


@flow(log_prints=True)
def calibrate_emulate_sample_flow(
    observed: np.ndarray,
    obs_noise_cov: np.ndarray,
    prior: ParameterDistribution,
    surrogate: Surrogate,
    param_init: np.ndarray,
    config: CESConfig | None = None,
    surrogate_space: SurrogateSpace = "decorrelated",
):
    """
    Sample the parameter posterior using a surrogate in place of the forward model.

    Args:
        observed: (k,) observation in data space
        obs_noise_cov: (k, k) observational noise covariance
        prior: prior over the unconstrained parameters
        surrogate: predictor with ``predict((N, d)) -> (mean, var)``
        param_init: (d,) starting point for both chains
        config: sampler settings (default: ``get_config()``)
        surrogate_space: "decorrelated" if the surrogate already predicts in
            the SVD basis, "data" to have its predictions mapped into it
    """
    config = config or get_config()

    # ══════════════════════════════════════════════════════════════════════════
    # Stage 1: Step-size search
    # ══════════════════════════════════════════════════════════════════════════
    print("\n=== Stage 1: Step Size Search ===")
    step_result = find_step_size(
        observed, obs_noise_cov, prior, surrogate, param_init, config, surrogate_space
    )
    if not step_result["found"]:
        raise RuntimeError(f"Step size search failed: {step_result['error']}")
    step_size = step_result["step_size"]
    print(
        f"Step size {step_size:.4g} after {step_result['n_trials']} probe batches "
        f"(acceptance rate {step_result['acceptance_rate']:.3f})"
    )

    # ══════════════════════════════════════════════════════════════════════════
    # Stage 2: Production chain
    # ══════════════════════════════════════════════════════════════════════════
    print("\n=== Stage 2: Posterior Sampling ===")
    sampling_result = run_sampler(
        observed, obs_noise_cov, prior, surrogate, param_init, step_size, config, surrogate_space
    )
    if not sampling_result["sampled"]:
        raise RuntimeError(f"Posterior sampling failed: {sampling_result['error']}")
    print(f"Acceptance rate: {sampling_result['acceptance_rate']:.3f}")

    summary = summarize_posterior(sampling_result)

    return {
        "step_search": step_result,
        "posterior": sampling_result["posterior"],
        "summary": summary,
    }
