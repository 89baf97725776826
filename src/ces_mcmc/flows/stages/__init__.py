"""Pipeline stages."""

from .stage1_step_search import (
    build_chain,
    find_step_size,
)
from .stage2_sampling import (
    run_sampler,
    summarize_posterior,
)

__all__ = [
    # Stage 1
    "build_chain",
    "find_step_size",
    # Stage 2
    "run_sampler",
    "summarize_posterior",
]
