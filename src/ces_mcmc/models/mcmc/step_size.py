"""Step-size search for the random-walk proposal.

Runs probe batches on a trial chain and rescales the step until the batch
acceptance rate falls inside the target band (default (0.15, 0.35)):

    ratio < low   -> step *= shrink (0.5), mark halved
    ratio > high  -> step *= grow (2.0),   mark doubled
    otherwise     -> accept the step

Once the search has both halved and doubled it is oscillating around the
band, so the next batch applies the damping factor (0.75) instead and clears
both marks. Every rescale rewinds the trial chain to its initial parameter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from ces_mcmc.models.mcmc.errors import StepSizeSearchError
from ces_mcmc.models.mcmc.metropolis import surrogate_step
from ces_mcmc.models.mcmc.state import ChainState, accept_ratio, reset_with_step
from ces_mcmc.models.surrogates import Surrogate
from ces_mcmc.utils.config import StepSearchConfig, get_config

logger = logging.getLogger(__name__)

StepAction = Literal["accept", "halve", "double", "damp"]


@dataclass
class StepTrial:
    """One probe batch: the step it ran with, its acceptance rate and the decision."""

    trial: int
    step_size: float
    acceptance_rate: float
    action: StepAction


@dataclass
class StepSearchResult:
    """Outcome of a successful search: the accepted step and every probe batch run."""

    step_size: float
    acceptance_rate: float
    n_trials: int
    history: list[StepTrial] = field(default_factory=list)


def _run_probe(state: ChainState, surrogate: Surrogate, n_steps: int) -> float:
    for _ in range(n_steps):
        surrogate_step(state, surrogate)
    return accept_ratio(state)


def find_mcmc_step(
    state: ChainState,
    surrogate: Surrogate,
    config: StepSearchConfig | None = None,
) -> StepSearchResult:
    """Tune ``state.step_size`` until a probe batch hits the acceptance band.

    The trial chain is mutated in place and left holding the accepted probe
    batch.

    Args:
        state: trial chain; needs room for at least one probe batch
        surrogate: predictor queried once per transition
        config: search settings; defaults to ``get_config().step_search``

    Returns:
        StepSearchResult with the accepted step and the per-batch history

    Raises:
        StepSizeSearchError: no acceptable step within ``config.max_trials`` batches
    """
    config = config or get_config().step_search
    if state.max_iter < config.probe_length:
        raise ValueError(
            f"Trial chain holds {state.max_iter} transitions, "
            f"fewer than one probe batch of {config.probe_length}"
        )
    if state.n_transitions > 0:
        reset_with_step(state, state.step_size)

    step = state.step_size
    doubled = False
    halved = False
    history: list[StepTrial] = []

    logger.info("Begin step size search; initial step %.4g", step)
    logger.debug("Initial parameters %s", state.param)

    for trial in range(1, config.max_trials + 1):
        ratio = _run_probe(state, surrogate, config.probe_length)
        logger.info(
            "Probe %d: step size %.4g, acceptance rate = %.3f", trial, state.step_size, ratio
        )

        action: StepAction
        if doubled and halved:
            action = "damp"
            step *= config.damping
            doubled = False
            halved = False
        elif ratio < config.target_low:
            action = "halve"
            step *= config.shrink
            halved = True
        elif ratio > config.target_high:
            action = "double"
            step *= config.grow
            doubled = True
        else:
            action = "accept"

        history.append(StepTrial(trial, state.step_size, ratio, action))
        if action == "accept":
            logger.info("Accepted step size %.4g after %d probe batches", step, trial)
            return StepSearchResult(
                step_size=step, acceptance_rate=ratio, n_trials=trial, history=history
            )

        logger.info("New step size: %.4g", step)
        reset_with_step(state, step)

    logger.error(
        "Failed to choose a suitable step size in %d probe batches", config.max_trials
    )
    raise StepSizeSearchError(
        f"No step size reached acceptance band ({config.target_low}, {config.target_high}) "
        f"within {config.max_trials} probe batches of {config.probe_length} iterations; "
        f"last step {step:.4g}",
        history=history,
    )
