"""
binomial_pooling - binomial GLMs and partial pooling of grouped counts

Subpackages
-----------
data_processing : loading, validation and simulation of count data
models          : binomial GLM, ML mixed model, beta-binomial, PyMC model
analysis        : shrinkage, likelihood profiles, model comparison, diagnostics
tables          : parameter and posterior summary tables
visualization   : chapter figures
scripts         : runnable league and egg-carton chapters
"""

__version__ = "0.1.0"
