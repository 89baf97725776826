"""Posterior extraction from a finished chain."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpyro.distributions as dist
import polars as pl
from numpyro.distributions import constraints

from ces_mcmc.models.mcmc.state import ChainState


@dataclass
class PosteriorDistribution:
    """Samples of the unconstrained parameters with the prior's names and constraints.

    Samples live in the same (unconstrained) space as the prior; use
    ``transform_unconstrained_to_constrained`` for physical values.
    """

    samples: np.ndarray  # (n_samples, n_params)
    names: list[str]
    constraints: list[constraints.Constraint]
    slices: dict[str, tuple[int, int]]

    @property
    def n_samples(self) -> int:
        return self.samples.shape[0]

    def get_samples(self, name: str | None = None) -> dict[str, np.ndarray] | np.ndarray:
        """Marginal samples: one (n_samples, width) block, or a dict of all blocks."""
        if name is None:
            return {n: self.get_samples(n) for n in self.names}
        if name not in self.slices:
            raise KeyError(f"Unknown parameter {name!r}; available: {self.names}")
        start, end = self.slices[name]
        return self.samples[:, start:end]

    def get_mean(self) -> np.ndarray:
        return self.samples.mean(axis=0)

    def get_cov(self) -> np.ndarray:
        if self.n_samples < 2:
            raise ValueError(f"Covariance needs at least 2 samples, got {self.n_samples}")
        return np.atleast_2d(np.cov(self.samples, rowvar=False))

    def transform_unconstrained_to_constrained(self) -> np.ndarray:
        """(n_samples, n_params) samples mapped through each block's constraint."""
        parts = []
        for name, constraint in zip(self.names, self.constraints, strict=True):
            start, end = self.slices[name]
            transform = dist.transforms.biject_to(constraint)
            parts.append(np.asarray(transform(self.samples[:, start:end])))
        return np.concatenate(parts, axis=1)

    def _column_names(self) -> list[str]:
        columns = []
        for name in self.names:
            start, end = self.slices[name]
            if end - start == 1:
                columns.append(name)
            else:
                columns.extend(f"{name}[{i}]" for i in range(end - start))
        return columns

    def to_dataframe(self, constrained: bool = False) -> pl.DataFrame:
        """One column per scalar parameter component, one row per sample."""
        values = self.transform_unconstrained_to_constrained() if constrained else self.samples
        return pl.DataFrame(
            {col: values[:, i] for i, col in enumerate(self._column_names())}
        )

    def print_summary(self) -> None:
        """Print mean, std and 5%/95% quantiles per parameter component."""
        print(f"\nPosterior samples: {self.n_samples}")
        print(f"{'Parameter':<30} {'Mean':>10} {'Std':>10} {'5%':>10} {'95%':>10}")
        print("-" * 72)
        for i, label in enumerate(self._column_names()):
            col = self.samples[:, i]
            mean = float(np.mean(col))
            std = float(np.std(col))
            q5 = float(np.percentile(col, 5))
            q95 = float(np.percentile(col, 95))
            print(f"{label:<30} {mean:>10.4f} {std:>10.4f} {q5:>10.4f} {q95:>10.4f}")


def get_posterior(state: ChainState) -> PosteriorDistribution:
    """Drop the burn-in rows and wrap the rest with the prior's metadata."""
    prior = state.prior
    return PosteriorDistribution(
        samples=state.chain[state.burnin :].copy(),
        names=prior.get_name(),
        constraints=prior.get_all_constraints(),
        slices=dict(prior.slices),
    )
