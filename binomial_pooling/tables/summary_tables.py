# summary_tables.py
# Parameter tables for the chapter reports
# -------------------------------------------------------------------

import logging
from pathlib import Path

import arviz as az
import numpy as np
import pandas as pd

from .. import config

logger = logging.getLogger(__name__)


def parameter_table(fits: dict) -> pd.DataFrame:
    """
    Long table of estimates and standard errors across ML fits.

    Mixed-model fits contribute an extra ``sigma`` row; quasi-binomial fits
    report their estimated dispersion as ``scale``.
    """
    rows = []
    for label, f in fits.items():
        for name, est in f.params.items():
            rows.append({"model": label, "parameter": name,
                         "estimate": float(est), "se": float(f.bse[name])})
        if hasattr(f, "sigma"):
            rows.append({"model": label, "parameter": "sigma",
                         "estimate": f.sigma, "se": f.sigma_se})
        if getattr(f, "quasi", False):
            rows.append({"model": label, "parameter": "scale",
                         "estimate": f.scale, "se": np.nan})
    return pd.DataFrame(rows, columns=["model", "parameter", "estimate", "se"])


def posterior_table(idata: az.InferenceData, var_names=("mu", "sigma", "p_pop")) -> pd.DataFrame:
    """az.summary restricted to the variables present, with CI_PROB HDIs."""
    present = [v for v in var_names if v in idata.posterior.data_vars]
    if not present:
        raise KeyError(f"None of {list(var_names)} in posterior")
    return az.summary(idata, var_names=present, hdi_prob=config.CI_PROB, round_to=4)


def write_table(df: pd.DataFrame, name: str, output_dir=None) -> Path:
    output_dir = Path(output_dir or config.DIR_TABLES)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{name}.csv"
    df.to_csv(path)
    logger.info("Table written to %s", path)
    return path
