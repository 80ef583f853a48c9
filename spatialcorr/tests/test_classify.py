import numpy as np
import pytest

from .. import classify
from ..exceptions import ConfigurationError
from ..graph import knn
from ..moran import Moran_Local


class TestClassifyHotspots:
    def test_rule(self):
        labels = classify.classify_hotspots(
            [0.8, -0.4, 0.2, -0.1, np.nan, 0.5], [0.01, 0.02, 0.3, 0.05, np.nan, np.nan]
        )
        np.testing.assert_array_equal(
            labels,
            [
                "Hotspot",
                "Coldspot",
                "NotSignificant",
                "NotSignificant",
                "Undefined",
                "Undefined",
            ],
        )

    def test_zero_statistic_is_not_significant(self):
        labels = classify.classify_hotspots([0.0], [0.001])
        assert labels[0] == classify.NOT_SIGNIFICANT

    def test_alpha_is_configurable(self):
        Is = [0.5, 0.5]
        p = [0.03, 0.08]
        assert list(classify.classify_hotspots(Is, p, alpha=0.1)) == ["Hotspot"] * 2
        assert list(classify.classify_hotspots(Is, p, alpha=0.01)) == [
            "NotSignificant"
        ] * 2

    @pytest.mark.parametrize("alpha", [0, 1, -0.1, 1.5])
    def test_invalid_alpha(self, alpha):
        with pytest.raises(ConfigurationError):
            classify.classify_hotspots([0.1], [0.01], alpha=alpha)

    def test_misaligned(self):
        with pytest.raises(ValueError):
            classify.classify_hotspots([0.1, 0.2], [0.01])

    def test_monotonic_in_alpha(self):
        rng = np.random.default_rng(7)
        Is = rng.normal(size=500)
        p = rng.uniform(size=500)
        Is[::50] = np.nan
        alphas = [0.2, 0.1, 0.05, 0.01, 0.001]
        labels = [classify.classify_hotspots(Is, p, alpha=a) for a in alphas]
        significant = {classify.HOTSPOT, classify.COLDSPOT}
        for looser, stricter in zip(labels, labels[1:]):
            for before, after in zip(looser, stricter):
                if after in significant:
                    assert before == after
                if before not in significant:
                    assert after == before


class TestLocalLabels:
    def setup_method(self):
        rng = np.random.default_rng(3)
        pts = rng.uniform(size=(80, 2))
        self.y = pts[:, 0] * 10 + rng.normal(size=80)
        self.lm = Moran_Local(self.y, knn(pts, 6))

    def test_hotspot_labels(self):
        labels = classify.hotspot_labels(self.lm, alpha=0.05)
        hot = labels == classify.HOTSPOT
        cold = labels == classify.COLDSPOT
        assert (self.lm.Is[hot] > 0).all()
        assert (self.lm.Is[cold] < 0).all()
        assert (self.lm.p_rand[hot | cold] < 0.05).all()
        assert hot.any()
        np.testing.assert_array_equal(labels, self.lm.get_hotspot_labels(0.05))

    def test_monotonic_on_local_results(self):
        strict = classify.hotspot_labels(self.lm, alpha=0.01)
        loose = classify.hotspot_labels(self.lm, alpha=0.1)
        moved = strict != loose
        assert (strict[moved] == classify.NOT_SIGNIFICANT).all()

    def test_cluster_labels(self):
        labels = classify.cluster_labels(self.lm, crit_value=0.05)
        assert set(labels) <= {
            "High-High", "Low-High", "Low-Low", "High-Low", "Insignificant"
        }
        hh = labels == "High-High"
        assert (self.lm.q[hh] == 1).all()

    def test_permutation_pvalue_requires_permutations(self):
        with pytest.raises(ConfigurationError):
            classify.hotspot_labels(self.lm, pvalue="sim")

    @pytest.mark.parametrize("pvalue", ["norm", "p_rand", None])
    def test_unknown_pvalue(self, pvalue):
        with pytest.raises(ConfigurationError, match="pvalue"):
            classify.hotspot_labels(self.lm, pvalue=pvalue)
        with pytest.raises(ConfigurationError):
            classify.cluster_labels(self.lm, pvalue=pvalue)

    def test_permutation_pvalue(self):
        lm = Moran_Local(self.y, self.lm.w, permutations=49, seed=1)
        labels = classify.hotspot_labels(lm, pvalue="sim")
        significant = labels != classify.NOT_SIGNIFICANT
        assert (lm.p_sim[significant] < 0.05).all()
