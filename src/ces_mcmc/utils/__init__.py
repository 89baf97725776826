"""Utility functions for ces-mcmc."""

from ces_mcmc.utils.config import (
    CESConfig,
    SamplerConfig,
    StepSearchConfig,
    get_config,
    load_config,
)

__all__ = [
    "CESConfig",
    "SamplerConfig",
    "StepSearchConfig",
    "get_config",
    "load_config",
]
