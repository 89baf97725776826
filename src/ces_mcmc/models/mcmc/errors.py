"""Exceptions raised by the MCMC sampler."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ces_mcmc.models.mcmc.step_size import StepTrial


class MCMCError(Exception):
    """Base class for sampler errors."""


class UnsupportedAlgorithmError(MCMCError, ValueError):
    """Transition rule tag is not one of the implemented algorithms."""


class ChainExhaustedError(MCMCError, RuntimeError):
    """A transition was requested after the chain buffer was filled."""


class StepSizeSearchError(MCMCError, RuntimeError):
    """Step-size search ran out of probe batches without hitting the target band.

    Not retriable with the same settings: the caller has to change the
    initial step, the surrogate or the search configuration.
    """

    def __init__(self, message: str, history: list[StepTrial] | None = None):
        super().__init__(message)
        self.history = list(history or [])
