# bayesian_binomial.py
# Bayesian hierarchical binomial model (PyMC)
# -------------------------------------------------------------------
# Same structure as the maximum-likelihood mixed model, with priors on
# the hyperparameters and a non-centered parameterization for the
# group effects (better NUTS geometry when sigma is small):
#
#   mu      ~ Normal(0, mu_prior_sd)          population logit
#   sigma   ~ HalfNormal(sigma_prior_sd)      among-group SD
#   z_g     ~ Normal(0, 1)
#   theta_g = invlogit(mu + sigma * z_g)
#   y_g     ~ Binomial(n_g, theta_g)
# -------------------------------------------------------------------

import logging
from pathlib import Path

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm

from .. import config
from ..data_processing.counts import group_codes, validate_counts

logger = logging.getLogger(__name__)

OBS_NAME = "y_obs"


def build_hierarchical_model(df: pd.DataFrame,
                             mu_prior_sd: float = 1.5,
                             sigma_prior_sd: float = 1.0) -> pm.Model:
    """Build the PyMC model; rows sharing a group share its theta."""
    validate_counts(df)
    gi, labels = group_codes(df)
    coords = {"group": list(labels), "obs_id": np.arange(len(df))}

    with pm.Model(coords=coords) as model:
        mu = pm.Normal("mu", mu=0.0, sigma=mu_prior_sd)
        sigma = pm.HalfNormal("sigma", sigma=sigma_prior_sd)

        z = pm.Normal("z", mu=0.0, sigma=1.0, dims="group")
        theta = pm.Deterministic("theta", pm.math.invlogit(mu + sigma * z), dims="group")

        # population-level success probability at the mean logit
        pm.Deterministic("p_pop", pm.math.invlogit(mu))

        pm.Binomial(OBS_NAME,
                    n=df["trials"].to_numpy(),
                    p=theta[gi],
                    observed=df["successes"].to_numpy(),
                    dims="obs_id")
    return model


def sample_hierarchical_model(model: pm.Model, **sampler_kwargs) -> az.InferenceData:
    """
    Run NUTS with the project defaults (``config.SAMPLER_KWARGS``).

    Keyword arguments override the defaults; the pointwise log-likelihood
    is stored so that LOO/WAIC can be computed afterwards.
    """
    kwargs = dict(config.SAMPLER_KWARGS)
    kwargs.update(sampler_kwargs)
    logger.info("Sampling: draws=%s tune=%s chains=%s sampler=%s",
                kwargs.get("draws"), kwargs.get("tune"), kwargs.get("chains"),
                kwargs.get("nuts_sampler"))
    with model:
        idata = pm.sample(return_inferencedata=True,
                          idata_kwargs={"log_likelihood": True},
                          **kwargs)
    return idata


def posterior_group_estimates(idata: az.InferenceData,
                              hdi_prob: float | None = None) -> pd.DataFrame:
    """Posterior mean, sd and HDI of theta for each group."""
    hdi_prob = config.CI_PROB if hdi_prob is None else hdi_prob
    theta = idata.posterior["theta"]
    interval = az.hdi(idata, var_names=["theta"], hdi_prob=hdi_prob)["theta"]

    out = pd.DataFrame({
        "estimate": theta.mean(("chain", "draw")).values,
        "sd": theta.std(("chain", "draw")).values,
        "lower": interval.sel(hdi="lower").values,
        "upper": interval.sel(hdi="higher").values,
    }, index=pd.Index(theta.coords["group"].values, name="group"))
    return out


def save_idata(idata: az.InferenceData, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    az.to_netcdf(idata, path)
    logger.info("InferenceData written to %s", path)
    return path


def load_idata(path) -> az.InferenceData:
    return az.from_netcdf(Path(path))
