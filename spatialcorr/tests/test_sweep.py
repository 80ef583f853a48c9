import numpy as np
import pandas as pd
import pytest
from libpysal.common import ATOL, RTOL

from ..exceptions import ConfigurationError
from ..graph import DistanceBand, KNearest
from ..sweep import default_support, sweep
from ..units import UnitTable

GRID3 = [(i, j) for i in range(3) for j in range(3)]
RULES = [
    DistanceBand(0.5),
    DistanceBand(1.0),
    DistanceBand(2.0, min_dist=3.0),
    KNearest(3),
    KNearest(20),
]


class TestSweep:
    def setup_method(self):
        self.y = np.arange(1.0, 10.0)

    def test_statuses(self):
        out = sweep(GRID3, self.y, rules=RULES)
        assert out["status"].tolist() == [
            "insufficient_data",
            "ok",
            "configuration_error",
            "ok",
            "configuration_error",
        ]
        assert out["rule"].tolist() == [repr(r) for r in RULES]
        np.testing.assert_allclose(out["I"].iloc[1], 5 / 9, rtol=RTOL, atol=ATOL)
        np.testing.assert_allclose(out["EI"].iloc[1], -1 / 8)
        assert out["I"].iloc[[0, 2, 4]].isna().all()
        assert out["message"].iloc[1] == ""
        assert "min_dist" in out["message"].iloc[2]
        assert out["n_islands"].iloc[0] == 9

    def test_invalid_stat_kwargs(self):
        out = sweep(
            GRID3,
            self.y,
            rules=[DistanceBand(1.0), KNearest(3)],
            stat_kwargs={"permutations": -1},
        )
        assert (out["status"] == "configuration_error").all()
        assert out["message"].str.contains("permutations").all()

    def test_degenerate(self):
        out = sweep(GRID3, np.ones(9), rules=[DistanceBand(1.0), KNearest(2)])
        assert (out["status"] == "degenerate_attribute").all()

    def test_columns(self):
        out = sweep(GRID3, self.y, rules=[KNearest(2)])
        assert list(out.columns) == [
            "rule",
            "I",
            "EI",
            "VI_rand",
            "z_rand",
            "p_rand",
            "n_islands",
            "status",
            "message",
        ]
        assert out["I"].dtype == np.float64

    def test_default_band(self):
        support = default_support(GRID3, n_bins=5)
        assert len(support) == 5
        assert support[0] == DistanceBand(1.0)
        np.testing.assert_allclose(support[-1].max_dist, np.sqrt(8) / 2)
        out = sweep(GRID3, self.y, n_bins=5)
        assert len(out) == 5
        assert (out["status"] == "ok").all()

    def test_default_knn(self):
        support = default_support(GRID3, distance_type="knn", n_bins=4)
        assert [r.k for r in support] == [1, 3, 6, 8]

    def test_bad_distance_type(self):
        with pytest.raises(ConfigurationError):
            default_support(GRID3, distance_type="queen")

    def test_parallel(self):
        serial = sweep(GRID3, self.y, rules=RULES)
        parallel = sweep(GRID3, self.y, rules=RULES, n_jobs=2)
        pd.testing.assert_frame_equal(serial, parallel)

    def test_unit_table(self):
        table = UnitTable({"price": self.y}, points=GRID3)
        out = sweep(table, "price", rules=[DistanceBand(1.0)])
        np.testing.assert_allclose(out["I"].iloc[0], 5 / 9, rtol=RTOL, atol=ATOL)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            sweep(GRID3, self.y[:5], rules=RULES)
