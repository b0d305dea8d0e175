# counts.py
# Canonical count columns shared by every model in the package
# -------------------------------------------------------------------
# group      : label of the unit being pooled (player, carton, ...)
# successes  : number of successes (shots made, eggs broken, ...)
# trials     : number of trials (shots attempted, eggs in carton, ...)
# failures   : trials - successes
# proportion : successes / trials (NaN when trials == 0)
# -------------------------------------------------------------------

import numpy as np
import pandas as pd

COUNT_COLUMNS = ["group", "successes", "trials"]


def validate_counts(df: pd.DataFrame, allow_zero_trials: bool = False) -> pd.DataFrame:
    """
    Check the count invariants and return ``df`` unchanged.

    Raises ValueError for an empty frame, missing columns, non-integer or
    negative counts, successes greater than trials, or (unless allowed) rows
    with zero trials.
    """
    missing = [c for c in COUNT_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing count columns: {missing}")
    if df.empty:
        raise ValueError("No rows to model")

    for col in ("successes", "trials"):
        vals = pd.to_numeric(df[col], errors="coerce")
        if vals.isna().any():
            raise ValueError(f"Column '{col}' has missing or non-numeric values")
        if not np.allclose(vals, np.round(vals)):
            raise ValueError(f"Column '{col}' must hold whole-number counts")
        if (vals < 0).any():
            bad = df.loc[vals < 0, "group"].tolist()
            raise ValueError(f"Negative '{col}' for groups {bad}")

    over = df["successes"] > df["trials"]
    if over.any():
        raise ValueError(f"successes > trials for groups {df.loc[over, 'group'].tolist()}")

    if not allow_zero_trials and (df["trials"] == 0).any():
        raise ValueError(f"Zero trials for groups {df.loc[df['trials'] == 0, 'group'].tolist()}")

    return df


def add_count_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with integer counts plus ``failures`` and ``proportion``."""
    out = df.copy()
    out["successes"] = out["successes"].astype(int)
    out["trials"] = out["trials"].astype(int)
    out["failures"] = out["trials"] - out["successes"]
    with np.errstate(invalid="ignore", divide="ignore"):
        out["proportion"] = np.where(out["trials"] > 0,
                                     out["successes"] / out["trials"].where(out["trials"] > 0, 1),
                                     np.nan)
    return out


def group_codes(df: pd.DataFrame):
    """Integer code per row and the ordered group labels."""
    cat = df["group"].astype("category")
    return cat.cat.codes.to_numpy().astype(int), cat.cat.categories
