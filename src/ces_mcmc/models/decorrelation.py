"""SVD decorrelation of observations and surrogate outputs.

Given the observational noise covariance Γ = V S Vᵀ (symmetric, so U = V),
the map

    y -> S^{-1/2} Vᵀ y

sends Γ to the identity. Observations are mapped once per run; surrogate
outputs trained in the same basis can then be scored with a diagonal
likelihood.

Truncation keeps only the leading singular directions that explain a given
fraction of the total noise variance. A truncated transform is not invertible;
the reverse maps below project back from the retained subspace.
"""

from typing import NamedTuple

import jax.numpy as jnp


class SVDDecomposition(NamedTuple):
    """Singular value decomposition of a noise covariance.

    Only the leading ``n_retained`` directions enter the transform.
    """

    u: jnp.ndarray  # (k, k)
    singular_values: jnp.ndarray  # (k,)
    vt: jnp.ndarray  # (k, k)
    n_retained: int

    @property
    def transform_matrix(self) -> jnp.ndarray:
        """(r, k) matrix S_r^{-1/2} V_rᵀ applied to data-space vectors."""
        r = self.n_retained
        return self.vt[:r] / jnp.sqrt(self.singular_values[:r])[:, None]

    @property
    def reverse_matrix(self) -> jnp.ndarray:
        """(k, r) matrix V_r S_r^{1/2} mapping decorrelated vectors back."""
        r = self.n_retained
        return self.vt[:r].T * jnp.sqrt(self.singular_values[:r])[None, :]


def check_covariance(cov: jnp.ndarray, name: str = "covariance") -> jnp.ndarray:
    """Validate a covariance matrix and return it as a float64 array.

    Raises:
        ValueError: if the matrix is not square, not symmetric, has non-finite
            entries or is not positive definite.
    """
    cov = jnp.asarray(cov, dtype=jnp.float64)
    if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
        raise ValueError(f"{name} must be a square matrix, got shape {cov.shape}")
    if not bool(jnp.all(jnp.isfinite(cov))):
        raise ValueError(f"{name} contains non-finite entries")
    if not bool(jnp.allclose(cov, cov.T, rtol=1e-8, atol=1e-12)):
        raise ValueError(f"{name} is not symmetric")
    # jnp.linalg.cholesky returns NaNs instead of raising
    chol = jnp.linalg.cholesky(cov)
    if not bool(jnp.all(jnp.isfinite(chol))):
        raise ValueError(f"{name} is not positive definite")
    return cov


def svd_transform(
    data: jnp.ndarray,
    obs_noise_cov: jnp.ndarray,
    truncate_svd: float = 1.0,
) -> tuple[jnp.ndarray, SVDDecomposition]:
    """Decorrelate data using the SVD of the noise covariance.

    Args:
        data: (k,) vector or (k, N) matrix whose columns are samples
        obs_noise_cov: (k, k) observational noise covariance
        truncate_svd: fraction of total singular value mass to keep, in (0, 1]

    Returns:
        Tuple of (transformed data with leading dimension r, decomposition)
    """
    if not 0.0 < truncate_svd <= 1.0:
        raise ValueError(f"truncate_svd must be in (0, 1], got {truncate_svd}")

    cov = check_covariance(obs_noise_cov, "obs_noise_cov")
    data = jnp.asarray(data, dtype=jnp.float64)
    if data.shape[0] != cov.shape[0]:
        raise ValueError(
            f"data has leading dimension {data.shape[0]}, expected {cov.shape[0]} "
            "to match obs_noise_cov"
        )

    u, s, vt = jnp.linalg.svd(cov)
    if truncate_svd < 1.0:
        explained = jnp.cumsum(s) / jnp.sum(s)
        n_retained = int(jnp.searchsorted(explained, truncate_svd)) + 1
        n_retained = min(n_retained, s.shape[0])
    else:
        n_retained = s.shape[0]

    decomposition = SVDDecomposition(u=u, singular_values=s, vt=vt, n_retained=n_retained)
    return decomposition.transform_matrix @ data, decomposition


def transform_covariance(cov: jnp.ndarray, decomposition: SVDDecomposition) -> jnp.ndarray:
    """Express a data-space covariance in the decorrelated basis.

    The noise covariance the decomposition was built from maps to the identity.
    """
    A = decomposition.transform_matrix
    return A @ jnp.asarray(cov, dtype=jnp.float64) @ A.T


def svd_reverse_transform(
    transformed: jnp.ndarray, decomposition: SVDDecomposition
) -> jnp.ndarray:
    """Map decorrelated vectors (r,) or columns (r, N) back to data space."""
    return decomposition.reverse_matrix @ jnp.asarray(transformed, dtype=jnp.float64)


def svd_reverse_transform_mean_cov(
    mean: jnp.ndarray,
    var: jnp.ndarray,
    decomposition: SVDDecomposition,
) -> tuple[jnp.ndarray, jnp.ndarray]:
    """Map surrogate predictions from the decorrelated basis to data space.

    Args:
        mean: (N, r) predicted means, one row per input
        var: (N, r) predicted per-output variances
        decomposition: decomposition used for the forward transform

    Returns:
        Tuple of ((N, k) means, (N, k, k) full covariances)
    """
    mean = jnp.atleast_2d(jnp.asarray(mean, dtype=jnp.float64))
    var = jnp.atleast_2d(jnp.asarray(var, dtype=jnp.float64))
    B = decomposition.reverse_matrix
    real_mean = mean @ B.T
    # B diag(v) Bᵀ for each row v
    real_cov = jnp.einsum("ir,nr,jr->nij", B, var, B)
    return real_mean, real_cov
