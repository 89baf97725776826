"""Named parameter distributions for calibration priors.

Each parameter block carries a numpyro distribution over the *unconstrained*
space the sampler walks in, plus the constraint describing the physical
(constrained) space. Mapping between the two uses ``biject_to`` on the
constraint, the same way numpyro maps sample sites to unconstrained space.

The sampler only needs ``get_cov``, ``logpdf`` and the name/constraint
metadata; the transforms are used when reporting posterior samples.
"""

from __future__ import annotations

import math
from typing import NamedTuple

import jax
import jax.numpy as jnp
import jax.random as random
import jax.scipy.linalg as jla
import numpyro.distributions as dist
from numpyro.distributions import constraints


class PriorBlock(NamedTuple):
    """One named parameter (scalar or vector) and its prior."""

    name: str
    distribution: dist.Distribution  # over the unconstrained space
    constraint: constraints.Constraint = constraints.real


def _block_width(d: dist.Distribution) -> int:
    shape = tuple(d.batch_shape) + tuple(d.event_shape)
    width = 1
    for s in shape:
        width *= s
    return width


def _block_cov(d: dist.Distribution) -> jnp.ndarray:
    if isinstance(d, dist.MultivariateNormal):
        return jnp.asarray(d.covariance_matrix, dtype=jnp.float64)
    variance = jnp.ravel(jnp.asarray(d.variance, dtype=jnp.float64))
    return jnp.diag(variance)


class ParameterDistribution:
    """Ordered collection of named prior blocks over a flat parameter vector.

    Example:
        >>> prior = ParameterDistribution.from_blocks([
        ...     PriorBlock("N0", dist.Normal(5.3, 0.3), constraints.positive),
        ...     PriorBlock("theta", dist.Normal(0.0, 1.0)),
        ... ])
        >>> prior.n_params
        2
    """

    def __init__(self, blocks: list[PriorBlock]):
        if not blocks:
            raise ValueError("ParameterDistribution needs at least one block")
        names = [b.name for b in blocks]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate parameter names: {names}")

        self.blocks = list(blocks)
        self.slices: dict[str, tuple[int, int]] = {}
        offset = 0
        for block in self.blocks:
            width = _block_width(block.distribution)
            self.slices[block.name] = (offset, offset + width)
            offset += width
        self.n_params = offset
        self._logpdf = jax.jit(self._logpdf_impl)

    @classmethod
    def from_blocks(cls, blocks: list[PriorBlock]) -> ParameterDistribution:
        return cls(blocks)

    def get_name(self) -> list[str]:
        return [b.name for b in self.blocks]

    def get_all_constraints(self) -> list[constraints.Constraint]:
        return [b.constraint for b in self.blocks]

    def get_mean(self) -> jnp.ndarray:
        return jnp.concatenate(
            [jnp.ravel(jnp.asarray(b.distribution.mean, dtype=jnp.float64)) for b in self.blocks]
        )

    def get_cov(self) -> jnp.ndarray:
        """Block-diagonal covariance in the unconstrained space."""
        return jla.block_diag(*[_block_cov(b.distribution) for b in self.blocks])

    def _unpack(self, x: jnp.ndarray) -> dict[str, jnp.ndarray]:
        out = {}
        for block in self.blocks:
            start, end = self.slices[block.name]
            d = block.distribution
            shape = tuple(d.batch_shape) + tuple(d.event_shape)
            out[block.name] = x[start:end].reshape(shape)
        return out

    def _logpdf_impl(self, x: jnp.ndarray) -> jnp.ndarray:
        values = self._unpack(x)
        total = jnp.asarray(0.0, dtype=jnp.float64)
        for block in self.blocks:
            d = block.distribution
            value = values[block.name]
            lp = jnp.sum(d.log_prob(value))
            # numpyro does not mask log_prob outside the support
            total = total + jnp.where(jnp.all(d.support(value)), lp, -jnp.inf)
        return total

    def logpdf(self, x: jnp.ndarray) -> float:
        """Log prior density at an unconstrained parameter vector.

        Points outside a block's support give ``-inf`` rather than raising.
        """
        x = jnp.asarray(x, dtype=jnp.float64)
        if x.shape != (self.n_params,):
            raise ValueError(
                f"Expected parameter vector of shape ({self.n_params},), got {x.shape}"
            )
        value = float(self._logpdf(x))
        return value if math.isfinite(value) else -math.inf

    def sample(self, rng_key: jnp.ndarray, n: int = 1) -> jnp.ndarray:
        """Draw (n, n_params) unconstrained samples."""
        keys = random.split(rng_key, len(self.blocks))
        parts = [
            block.distribution.sample(key, (n,)).reshape(n, -1)
            for key, block in zip(keys, self.blocks, strict=True)
        ]
        return jnp.concatenate(parts, axis=1)

    def _apply(self, x: jnp.ndarray, inverse: bool) -> jnp.ndarray:
        x = jnp.asarray(x, dtype=jnp.float64)
        parts = []
        for block in self.blocks:
            start, end = self.slices[block.name]
            transform = dist.transforms.biject_to(block.constraint)
            fn = transform.inv if inverse else transform
            parts.append(fn(x[..., start:end]))
        return jnp.concatenate(parts, axis=-1)

    def transform_unconstrained_to_constrained(self, x: jnp.ndarray) -> jnp.ndarray:
        """Map (n_params,) or (N, n_params) unconstrained values to physical space."""
        return self._apply(x, inverse=False)

    def transform_constrained_to_unconstrained(self, x: jnp.ndarray) -> jnp.ndarray:
        """Inverse of transform_unconstrained_to_constrained."""
        return self._apply(x, inverse=True)
