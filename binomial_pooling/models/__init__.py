# models/__init__.py
# Statistical models for grouped binomial counts
#
# Complete / no pooling : binomial GLM (binomial_glm.py, statsmodels)
# Partial pooling (ML)  : random-intercept binomial (mixed_binomial.py)
# Partial pooling (EB)  : beta-binomial (beta_binomial.py)
# Partial pooling (MCMC): hierarchical model in PyMC (bayesian_binomial.py)
#
# The PyMC module is imported lazily by callers; importing it here would
# pull in pytensor compilation for every ML-only workflow.

from .beta_binomial import BetaBinomialFit, fit_beta_binomial
from .binomial_glm import (
    BinomialFit,
    fit_binomial_glm,
    fit_complete_pooling,
    fit_no_pooling,
    overdispersion_test,
)
from .mixed_binomial import MixedBinomialFit, fit_mixed_binomial, marginal_loglik

__all__ = [
    "BetaBinomialFit",
    "fit_beta_binomial",
    "BinomialFit",
    "fit_binomial_glm",
    "fit_complete_pooling",
    "fit_no_pooling",
    "overdispersion_test",
    "MixedBinomialFit",
    "fit_mixed_binomial",
    "marginal_loglik",
]
