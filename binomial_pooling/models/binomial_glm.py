# binomial_glm.py
# Binomial GLMs (logit link) fitted with statsmodels
# -------------------------------------------------------------------
# Response is the two-column (successes, failures) matrix, so the
# log-likelihood includes the binomial coefficients and AIC values are
# directly comparable with the mixed model in mixed_binomial.py.
#
#   complete pooling : successes + failures ~ 1
#   no pooling       : successes + failures ~ 0 + C(group)
#   quasi-binomial   : same mean model, dispersion from Pearson X2
# -------------------------------------------------------------------

import logging
import warnings
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import patsy
import statsmodels.api as sm
from scipy import stats
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from ..data_processing.counts import add_count_columns, validate_counts

logger = logging.getLogger(__name__)


@dataclass
class BinomialFit:
    """Summary of a fitted binomial GLM; ``result`` keeps the statsmodels object."""

    name: str
    formula: str
    params: pd.Series
    bse: pd.Series
    llf: float
    n_params: int
    nobs: int
    deviance: float
    pearson_chi2: float
    df_resid: float
    scale: float
    converged: bool
    quasi: bool = False
    result: object = field(default=None, repr=False)
    design_info: object = field(default=None, repr=False)

    @property
    def aic(self) -> float:
        # No likelihood behind a quasi family, so no AIC either
        if self.quasi:
            return np.nan
        return -2.0 * self.llf + 2.0 * self.n_params

    @property
    def dispersion(self) -> float:
        if self.df_resid <= 0:
            return np.nan
        return self.pearson_chi2 / self.df_resid

    def conf_int(self, alpha: float = 0.05) -> pd.DataFrame:
        ci = self.result.conf_int(alpha=alpha)
        ci.columns = ["lower", "upper"]
        return ci

    def predict_proba(self, df: pd.DataFrame) -> np.ndarray:
        """Fitted success probabilities for the rows of ``df``."""
        X = patsy.dmatrix(self.design_info, df, return_type="dataframe")
        return self.result.predict(X)


def _design(df: pd.DataFrame, formula: str):
    X = patsy.dmatrix(formula, df, return_type="dataframe")
    y = np.column_stack([df["successes"].to_numpy(), df["failures"].to_numpy()])
    return y, X


def fit_binomial_glm(df: pd.DataFrame,
                     formula: str = "1",
                     scale=None,
                     name: str | None = None) -> BinomialFit:
    """
    Fit a binomial GLM with logit link.

    Parameters
    ----------
    df : DataFrame
        Canonical count columns (see data_processing.counts).
    formula : str
        Right-hand side of a patsy formula, e.g. ``"1"`` or ``"C(supplier)"``.
    scale : None or "X2"
        ``"X2"`` estimates the dispersion from the Pearson statistic
        (quasi-binomial); point estimates are unchanged, SEs are inflated.
    name : str, optional
        Label used in comparison tables.
    """
    validate_counts(df)
    if "failures" not in df.columns:
        df = add_count_columns(df)

    y, X = _design(df, formula)
    model = sm.GLM(y, X, family=sm.families.Binomial())

    result = model.fit(scale=scale)
    converged = bool(getattr(result, "converged", True))
    if not converged:
        logger.warning("IRLS did not converge for formula '%s'", formula)
        warnings.warn(f"IRLS did not converge for formula '{formula}'", ConvergenceWarning)

    quasi = scale is not None
    label = name or (f"quasi-binomial ~ {formula}" if quasi else f"binomial ~ {formula}")

    return BinomialFit(
        name=label,
        formula=formula,
        params=result.params,
        bse=result.bse,
        llf=float(result.llf),
        n_params=X.shape[1],
        nobs=len(df),
        deviance=float(result.deviance),
        pearson_chi2=float(result.pearson_chi2),
        df_resid=float(result.df_resid),
        scale=float(result.scale),
        converged=converged,
        quasi=quasi,
        result=result,
        design_info=X.design_info,
    )


def fit_complete_pooling(df: pd.DataFrame) -> BinomialFit:
    """One success probability shared by every group."""
    return fit_binomial_glm(df, "1", name="complete pooling")


def fit_no_pooling(df: pd.DataFrame) -> BinomialFit:
    """A separate, unconstrained probability per group."""
    return fit_binomial_glm(df, "0 + C(group)", name="no pooling")


def overdispersion_test(fit: BinomialFit) -> dict:
    """
    Pearson chi-square goodness-of-fit test against the binomial variance.

    Returns the dispersion ratio, the statistic, its residual df and the
    upper-tail p-value; a small p-value indicates extra-binomial variation.
    """
    if fit.df_resid <= 0:
        raise ValueError("No residual degrees of freedom left for a dispersion test")
    return {
        "dispersion": fit.dispersion,
        "pearson_chi2": fit.pearson_chi2,
        "df_resid": fit.df_resid,
        "p_value": float(stats.chi2.sf(fit.pearson_chi2, fit.df_resid)),
    }
