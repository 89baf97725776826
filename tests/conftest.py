"""Shared fixtures: a standard-normal prior over three named parameters and
simple analytic surrogates."""

import numpy as np
import numpyro.distributions as dist
import pytest
from numpyro.distributions import constraints

from ces_mcmc.models.mcmc import ChainState
from ces_mcmc.models.priors import ParameterDistribution, PriorBlock
from ces_mcmc.models.surrogates import FunctionSurrogate


@pytest.fixture
def standard_prior():
    """Independent N(0, 1) prior on three scalars; identity covariance."""
    return ParameterDistribution(
        [
            PriorBlock("N0", dist.Normal(0.0, 1.0), constraints.positive),
            PriorBlock("theta", dist.Normal(0.0, 1.0)),
            PriorBlock("k", dist.Normal(0.0, 1.0)),
        ]
    )


@pytest.fixture
def param_init():
    return np.array([5.2, 0.0, -2.0])


@pytest.fixture
def identity_surrogate():
    """g(u) = u with a small fixed variance."""
    return FunctionSurrogate(lambda u: u, lambda u: np.full(3, 0.1))


@pytest.fixture
def make_chain(standard_prior, param_init):
    """Factory for chains observing y = 0 with identity noise, no decorrelation."""

    def _make(step_size=0.1, max_iter=500, burnin=0, seed=0, **kwargs):
        kwargs.setdefault("svd", False)
        return ChainState.create(
            np.zeros(3),
            np.eye(3),
            standard_prior,
            step_size,
            kwargs.pop("param_init", param_init),
            max_iter,
            burnin=burnin,
            seed=seed,
            **kwargs,
        )

    return _make
