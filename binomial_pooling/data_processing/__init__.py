# data_processing/__init__.py
# Loading, validation and simulation of grouped binomial counts

from .counts import add_count_columns, group_codes, validate_counts
from .league import load_league_stats
from .simulate import simulate_egg_cartons, simulate_grouped_binomial

__all__ = [
    "add_count_columns",
    "group_codes",
    "validate_counts",
    "load_league_stats",
    "simulate_egg_cartons",
    "simulate_grouped_binomial",
]
