"""Surrogate-driven MCMC sampling for calibrate-emulate-sample workflows.

Likelihood arithmetic relies on float64; x64 mode is switched on at import.
"""

import numpyro

numpyro.enable_x64()

__version__ = "0.1.0"
