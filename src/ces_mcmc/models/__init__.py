"""Sampler models: priors, surrogates, decorrelation and the MCMC engine."""
