# league.py
# Load league shooting statistics (one row per player)
# -------------------------------------------------------------------

import logging
from pathlib import Path

import pandas as pd

from .counts import add_count_columns, validate_counts

logger = logging.getLogger(__name__)


def load_league_stats(path,
                      made_col: str = "made",
                      attempts_col: str = "attempts",
                      group_col: str = "player",
                      min_attempts: int = 0) -> pd.DataFrame:
    """
    Read a league statistics CSV and return canonical count columns.

    Parameters
    ----------
    path : str or Path
        CSV with at least the player, made and attempts columns.
    made_col, attempts_col, group_col : str
        Source column names for successes, trials and the group label.
    min_attempts : int
        Players with fewer total attempts are dropped. Players with zero
        attempts are always dropped since they carry no information.

    Returns
    -------
    DataFrame with one row per player: ``group``, ``successes``, ``trials``,
    ``failures``, ``proportion`` plus any descriptive columns (team,
    position, ...) taken from the player's first row.
    """
    path = Path(path)
    df = pd.read_csv(path)
    logger.info("Read %d rows from %s", len(df), path.name)

    missing = [c for c in (group_col, made_col, attempts_col) if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name}: missing columns {missing}")

    df = df.rename(columns={group_col: "group",
                            made_col: "successes",
                            attempts_col: "trials"})
    df = df.dropna(subset=["group"])
    validate_counts(df, allow_zero_trials=True)

    # Sum split rows (e.g. a player traded mid-season) into one row per player
    extra = [c for c in df.columns if c not in ("group", "successes", "trials")]
    agg = {"successes": "sum", "trials": "sum"}
    agg.update({c: "first" for c in extra})
    n_before = len(df)
    df = df.groupby("group", sort=False, as_index=False).agg(agg)
    if len(df) < n_before:
        logger.info("Combined %d split rows into single player totals", n_before - len(df))

    keep = (df["trials"] > 0) & (df["trials"] >= min_attempts)
    if (~keep).any():
        logger.info("Dropped %d players below %d attempts", int((~keep).sum()), max(min_attempts, 1))
    df = df.loc[keep].reset_index(drop=True)

    validate_counts(df)
    return add_count_columns(df)[["group", "successes", "trials", "failures", "proportion"] + extra]
