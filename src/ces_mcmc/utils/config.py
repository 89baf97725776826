"""Sampler configuration loaded from YAML.

The step-search constants (probe length, trial ceiling, acceptance band and
the damping factor applied after an oscillation) are empirical, so they live
here rather than in the sampler code.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

CONFIG_ENV_VAR = "CES_MCMC_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config.yaml"


class StepSearchConfig(BaseModel):
    """Control-loop settings for the step-size search."""

    probe_length: int = Field(default=2000, gt=0, description="Iterations per probe batch")
    max_trials: int = Field(default=20, gt=0, description="Probe batches before giving up")
    target_low: float = Field(default=0.15, gt=0.0, lt=1.0)
    target_high: float = Field(default=0.35, gt=0.0, lt=1.0)
    damping: float = Field(
        default=0.75,
        gt=0.0,
        lt=1.0,
        description="Step multiplier applied once both halving and doubling occurred",
    )
    grow: float = Field(default=2.0, gt=1.0)
    shrink: float = Field(default=0.5, gt=0.0, lt=1.0)

    @model_validator(mode="after")
    def _check_band(self) -> StepSearchConfig:
        if self.target_low >= self.target_high:
            raise ValueError(
                f"target_low ({self.target_low}) must be below target_high ({self.target_high})"
            )
        return self


class SamplerConfig(BaseModel):
    """Chain construction settings for the trial and production runs."""

    algorithm: str = Field(
        default="rwm", description="Transition rule tag, validated at chain construction"
    )
    initial_step: float = Field(default=0.1, gt=0.0)
    trial_max_iter: int = Field(default=5000, gt=0)
    max_iter: int = Field(default=100_000, gt=0)
    burnin: int = Field(default=1000, ge=0)
    svd: bool = True
    truncate_svd: float = Field(default=1.0, gt=0.0, le=1.0)
    seed: int = 0

    @model_validator(mode="after")
    def _check_burnin(self) -> SamplerConfig:
        if self.burnin >= self.max_iter:
            raise ValueError(
                f"burnin ({self.burnin}) must be below max_iter ({self.max_iter})"
            )
        return self


class CESConfig(BaseModel):
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    step_search: StepSearchConfig = Field(default_factory=StepSearchConfig)


def load_config(path: str | Path) -> CESConfig:
    """Parse a YAML config file. Missing sections fall back to defaults."""
    path = Path(path)
    with path.open() as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")
    return CESConfig.model_validate(raw)


@lru_cache(maxsize=1)
def get_config() -> CESConfig:
    """Return the process-wide config.

    Reads ``$CES_MCMC_CONFIG`` if set, else ``config.yaml`` at the repository
    root; uses built-in defaults when neither exists.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return load_config(env_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return CESConfig()
