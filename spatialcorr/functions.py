"""
Function-style access to the statistics: each returns the statistic and its
analytical p-value.
"""

from .moran import Moran, Moran_Local

__all__ = ["moran", "moran_local"]


def moran(*args, **kwargs):
    obj = Moran(*args, **kwargs)
    return obj._statistic, obj.p_rand


def moran_local(*args, **kwargs):
    obj = Moran_Local(*args, **kwargs)
    return obj._statistic, obj.p_rand


moran.__doc__ = Moran.__doc__
moran_local.__doc__ = Moran_Local.__doc__
