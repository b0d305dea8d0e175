# config.py
# Centralized path and run configuration for binomial-pooling
# -------------------------------------------------------------------
# All paths are defined relative to the project root.
# Input CSV files live in data/, outputs go to results/.
# Set BINOMIAL_POOLING_OUTPUT to write results somewhere else.
# -------------------------------------------------------------------

import os
from pathlib import Path

# Project root (parent of the package directory)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# =====================================================================
# Input Data
# =====================================================================
DIR_DATA = PROJECT_ROOT / "data"

# One row per player: player, team, position, made, attempts
PATH_LEAGUE_STATS = DIR_DATA / "league_stats.csv"

# =====================================================================
# Output Directories
# =====================================================================
DIR_OUTPUT = Path(os.environ.get("BINOMIAL_POOLING_OUTPUT", PROJECT_ROOT / "results"))
DIR_FIGURES = DIR_OUTPUT / "figures"
DIR_TABLES = DIR_OUTPUT / "tables"

# NetCDF files containing posterior samples
PATH_IDATA_LEAGUE = DIR_OUTPUT / "league_hierarchical.nc"
PATH_IDATA_EGGS = DIR_OUTPUT / "eggs_hierarchical.nc"

# =====================================================================
# Estimation Settings
# =====================================================================
CI_PROB = 0.95        # interval mass for confidence and credible intervals
N_AGQ = 1             # adaptive Gauss-Hermite points (1 = Laplace)
RANDOM_SEED = 20240601

SAMPLER_KWARGS = {
    "draws": 2_000,
    "tune": 1_000,
    "chains": 4,
    "cores": 4,
    "target_accept": 0.95,
    "nuts_sampler": os.environ.get("BINOMIAL_POOLING_SAMPLER", "pymc"),
    "random_seed": RANDOM_SEED,
}


# =====================================================================
# Utility Functions
# =====================================================================
def set_output_dir(path):
    """Point every output path at a new root directory."""
    global DIR_OUTPUT, DIR_FIGURES, DIR_TABLES, PATH_IDATA_LEAGUE, PATH_IDATA_EGGS
    DIR_OUTPUT = Path(path)
    DIR_FIGURES = DIR_OUTPUT / "figures"
    DIR_TABLES = DIR_OUTPUT / "tables"
    PATH_IDATA_LEAGUE = DIR_OUTPUT / "league_hierarchical.nc"
    PATH_IDATA_EGGS = DIR_OUTPUT / "eggs_hierarchical.nc"


def ensure_dirs():
    """Create output directories if they don't exist."""
    for d in [DIR_OUTPUT, DIR_FIGURES, DIR_TABLES]:
        d.mkdir(parents=True, exist_ok=True)
