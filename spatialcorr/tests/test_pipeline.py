import numpy as np
import pytest
from libpysal.common import ATOL, RTOL

from ..classify import HOTSPOT, NOT_SIGNIFICANT, UNDEFINED
from ..exceptions import ConfigurationError, InsufficientData, UnknownAttribute
from ..graph import DistanceBand, KNearest
from ..pipeline import analyze, attach
from ..units import UnitTable

SQUARE = [(0, 0), (1, 0), (0, 1), (1, 1)]
GRID3 = [(i, j) for i in range(3) for j in range(3)]


class CountingBand(DistanceBand):
    builds = 0

    def build(self, points):
        self.builds += 1
        return super().build(points)


class TestAnalyze:
    def setup_method(self):
        self.y = np.arange(1.0, 10.0)
        self.table = UnitTable({"price": self.y}, points=GRID3)

    def test_complete_graph(self):
        y = np.array([100.0, 100.0, 200.0, 200.0])
        with pytest.warns(RuntimeWarning):
            run = analyze(SQUARE, y, DistanceBand(1.5))
        assert run.graph.cardinalities.tolist() == [3, 3, 3, 3]
        np.testing.assert_allclose(run.weights.sparse.toarray().sum(axis=1), 1.0)
        np.testing.assert_allclose(run.weights.weights(0)[1], 1 / 3)
        np.testing.assert_allclose(run.global_result.I, -1 / 3, rtol=RTOL, atol=ATOL)
        assert np.isnan(run.global_result.z)

    def test_attribute_name(self):
        run = analyze(self.table, "price", DistanceBand(1.0))
        np.testing.assert_allclose(run.global_result.I, 5 / 9, rtol=RTOL, atol=ATOL)
        np.testing.assert_allclose(run.local.Is.sum(), 9 * 5 / 9)
        frame = run.table()
        assert list(frame.columns) == ["Is", "p_value", "label", "quadrant", "defined"]
        assert len(frame) == 9
        assert frame["defined"].all()

    def test_attach(self):
        run = analyze(self.table, "price", DistanceBand(1.0))
        out = attach(self.table, run, "price")
        assert out.columns == (
            "price",
            "price_Is",
            "price_p_value",
            "price_label",
            "price_defined",
        )
        assert self.table.columns == ("price",)
        np.testing.assert_allclose(out.attribute("price_Is"), run.local.Is)

    def test_unknown_attribute(self):
        with pytest.raises(UnknownAttribute):
            analyze(self.table, "rent", DistanceBand(1.0))

    def test_name_needs_table(self):
        with pytest.raises(TypeError):
            analyze(GRID3, "price", DistanceBand(1.0))

    def test_insufficient_data(self):
        with pytest.warns(UserWarning, match="no unit has a neighbour"):
            with pytest.raises(InsufficientData):
                analyze([(0, 0), (10, 0), (0, 10)], [1.0, 2.0, 3.0], DistanceBand(1.0))

    @pytest.mark.parametrize(
        "rule, kwargs",
        [
            (KNearest(10), {}),
            (KNearest(0), {}),
            (DistanceBand(1.0, min_dist=2.0), {}),
            (DistanceBand(1.0), {"alpha": 1.5}),
            (DistanceBand(1.0), {"transformation": "v"}),
            (DistanceBand(1.0), {"pvalue": "sim"}),
            (DistanceBand(1.0), {"pvalue": "norm", "permutations": 9}),
            (DistanceBand(1.0), {"permutations": -5}),
            (DistanceBand(1.0), {"permutations": 2.5}),
        ],
    )
    def test_configuration_errors(self, rule, kwargs):
        with pytest.raises(ConfigurationError):
            analyze(GRID3, self.y, rule, **kwargs)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"alpha": 0.0},
            {"transformation": "v"},
            {"pvalue": "norm", "permutations": 9},
            {"pvalue": "z_sim"},
            {"permutations": -1},
        ],
    )
    def test_configuration_checked_before_building(self, kwargs):
        rule = CountingBand(1.0)
        with pytest.raises(ConfigurationError):
            analyze(GRID3, self.y, rule, **kwargs)
        assert rule.builds == 0

    def test_island_is_undefined(self):
        pts = SQUARE + [(10, 10)]
        y = [1.0, 2.0, 3.0, 4.0, 50.0]
        run = analyze(pts, y, DistanceBand(1.0))
        frame = run.table()
        assert frame["label"].iloc[4] == UNDEFINED
        assert np.isnan(frame["Is"].iloc[4])
        assert np.isnan(frame["p_value"].iloc[4])
        assert not frame["defined"].iloc[4]
        assert frame["defined"].iloc[:4].all()
        assert run.moran.n == 4

    def test_labels(self):
        rng = np.random.default_rng(0)
        pts = rng.uniform(0, 10, size=(100, 2))
        y = pts[:, 0] + rng.normal(scale=0.5, size=100)
        run = analyze(pts, y, KNearest(8))
        labels = run.table()["label"]
        assert set(labels) <= {HOTSPOT, "Coldspot", NOT_SIGNIFICANT, UNDEFINED}
        assert (labels == HOTSPOT).any()
        strict = analyze(pts, y, KNearest(8), alpha=0.001).table()["label"]
        assert (strict == NOT_SIGNIFICANT).sum() >= (labels == NOT_SIGNIFICANT).sum()

    def test_repeatable(self):
        y = self.y.copy()
        first = analyze(GRID3, y, KNearest(3), permutations=99, seed=7, pvalue="sim")
        second = analyze(GRID3, y, KNearest(3), permutations=99, seed=7, pvalue="sim")
        np.testing.assert_array_equal(y, self.y)
        np.testing.assert_array_equal(first.local.Is, second.local.Is)
        np.testing.assert_array_equal(first.local.p_sim, second.local.p_sim)
        assert first.moran.p_sim == second.moran.p_sim
        assert first.table()["label"].tolist() == second.table()["label"].tolist()
