import numpy as np
import pytest

from .. import functions
from ..graph import distance_band
from ..moran import Moran, Moran_Local

GRID3 = [(i, j) for i in range(3) for j in range(3)]


@pytest.mark.parametrize(
    "func, cls", [(functions.moran, Moran), (functions.moran_local, Moran_Local)]
)
def test_matches_class(func, cls):
    w = distance_band(GRID3, 1.0)
    y = np.arange(1.0, 10.0)
    stat, p = func(y, w)
    obj = cls(y, w)
    np.testing.assert_array_equal(stat, obj._statistic)
    np.testing.assert_array_equal(p, obj.p_rand)
    assert func.__doc__ == cls.__doc__
