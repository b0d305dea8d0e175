"""Shared numerical helpers."""

from .math import binomial_logpmf_logit, finite_objective, log_binom_coef

__all__ = ["binomial_logpmf_logit", "finite_objective", "log_binom_coef"]
