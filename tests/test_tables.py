import arviz as az
import numpy as np
import pandas as pd
import pytest

from binomial_pooling.models import fit_binomial_glm
from binomial_pooling.tables import parameter_table, posterior_table, write_table


def test_parameter_table(eggs_df, mixed_fit, pooled_fit):
    quasi = fit_binomial_glm(eggs_df, "C(supplier)", scale="X2")
    tbl = parameter_table({"pooled": pooled_fit, "mixed": mixed_fit, "quasi": quasi})
    assert list(tbl.columns) == ["model", "parameter", "estimate", "se"]
    mixed_rows = tbl[tbl["model"] == "mixed"].set_index("parameter")
    assert mixed_rows.loc["sigma", "estimate"] == pytest.approx(mixed_fit.sigma)
    quasi_rows = tbl[tbl["model"] == "quasi"].set_index("parameter")
    assert quasi_rows.loc["scale", "estimate"] == pytest.approx(quasi.scale)
    assert len(tbl[tbl["model"] == "pooled"]) == 1


def test_posterior_table_uses_present_variables():
    rng = np.random.default_rng(1)
    idata = az.from_dict(posterior={"mu": rng.normal(size=(2, 200)),
                                    "sigma": np.abs(rng.normal(size=(2, 200)))})
    tbl = posterior_table(idata)
    assert list(tbl.index) == ["mu", "sigma"]
    assert "hdi_2.5%" in tbl.columns
    with pytest.raises(KeyError):
        posterior_table(idata, var_names=("theta",))


def test_write_table(tmp_path):
    path = write_table(pd.DataFrame({"a": [1, 2]}), "example", output_dir=tmp_path)
    assert path == tmp_path / "example.csv"
    assert pd.read_csv(path, index_col=0)["a"].tolist() == [1, 2]
