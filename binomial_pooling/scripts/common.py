# common.py
# Argument parsing and console helpers shared by the chapter scripts
# -------------------------------------------------------------------

import argparse
import logging
from pathlib import Path

import pandas as pd

from .. import config


def add_common_args(parser: argparse.ArgumentParser):
    parser.add_argument("--output-dir", type=Path, default=None,
                        help=f"Directory for tables/figures (default: {config.DIR_OUTPUT})")
    parser.add_argument("--no-plots", action="store_true", help="Skip figure output")
    parser.add_argument("--seed", type=int, default=config.RANDOM_SEED, help="Random seed")
    parser.add_argument("--n-agq", type=int, default=config.N_AGQ,
                        help="Adaptive Gauss-Hermite points for the mixed model (1 = Laplace)")
    parser.add_argument("--bayes", action="store_true", help="Also fit the PyMC hierarchical model")
    parser.add_argument("--draws", type=int, default=None, help="Posterior draws per chain for --bayes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def configure(args):
    """Logging and output directories from parsed arguments."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.output_dir is not None:
        config.set_output_dir(args.output_dir)
    config.ensure_dirs()


def banner(title: str):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def show(df: pd.DataFrame, digits: int = 4, max_rows: int = 30):
    with pd.option_context("display.max_rows", max_rows, "display.width", 120):
        print(df.round(digits))
