"""
Global Moran's I across several neighbour rules
"""

__all__ = ["sweep", "default_support"]

import warnings

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from scipy import spatial

from .exceptions import ConfigurationError, DegenerateAttribute, InsufficientData
from .graph import DistanceBand, KNearest
from .moran import Moran
from .points import PointSet
from .units import UnitTable
from .weights import WeightsMatrix

_COLUMNS = ["rule", "I", "EI", "VI_rand", "z_rand", "p_rand", "n_islands",
            "status", "message"]

_STATUS = (
    (ConfigurationError, "configuration_error"),
    (InsufficientData, "insufficient_data"),
    (DegenerateAttribute, "degenerate_attribute"),
)


def _get_stat(inputs: tuple) -> pd.Series:
    """helper function for computing the statistic under one neighbour rule

    Parameters
    ----------
    inputs : tuple
        tuple of (y, points, rule, transformation, stat_kwargs)

    Returns
    -------
    pandas.Series
        the global statistic and its inference, or the reason the rule was
        skipped in ``status`` and ``message``
    """
    y, points, rule, transformation, stat_kwargs = inputs
    row = dict.fromkeys(_COLUMNS, np.nan)
    row["rule"] = repr(rule)
    try:
        rule.validate(points.n)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            graph = rule.build(points)
        row["n_islands"] = graph.n_islands
        w = WeightsMatrix(graph, transformation=transformation)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            mi = Moran(y, w, **stat_kwargs)
    except (ConfigurationError, InsufficientData, DegenerateAttribute) as exc:
        row["status"] = next(s for k, s in _STATUS if isinstance(exc, k))
        row["message"] = str(exc)
    else:
        row.update(mi.result()._asdict())
        row["VI_rand"] = row.pop("VI")
        row["z_rand"] = row.pop("z")
        row["p_rand"] = row.pop("p")
        row["status"] = "ok"
        row["message"] = ""
    name = rule.k if isinstance(rule, KNearest) else getattr(rule, "max_dist", None)
    return pd.Series(row, name=name)[_COLUMNS]


def default_support(points, distance_type="band", n_bins=10):
    """Neighbour rules spanning the extent of the points

    For ``"band"``, ``n_bins`` distance bands from the smallest
    nearest-neighbour distance to half the diagonal of the bounding box.
    For ``"knn"``, about ``n_bins`` values of k between 1 and n-1.
    """
    if not isinstance(points, PointSet):
        points = PointSet(points)
    n_samples = points.n
    if n_samples < 2:
        raise ConfigurationError("a sweep needs at least two units")
    if distance_type == "band":
        coords = points.coords
        stop = (
            spatial.distance.cdist(
                coords.max(axis=0).reshape(1, 2), coords.min(axis=0).reshape(1, 2)
            ).item()
            / 2
        )
        d, _ = spatial.KDTree(coords).query(coords, k=2)
        positive = d[:, 1][d[:, 1] > 0]
        start = positive.min() if positive.size else stop
        support = np.linspace(start, max(start, stop), n_bins).tolist()
        return [DistanceBand(float(dist)) for dist in dict.fromkeys(support)]
    elif distance_type == "knn":
        if n_bins < 2 or n_samples == 2:
            return [KNearest(1)]
        step = max((n_samples - 1) / (n_bins - 1), 1)
        # not guaranteed to be n_bins if n_samples not divisible by n_bins
        ks = [*np.arange(1, n_samples - 1, step).astype(int), n_samples - 1]
        return [KNearest(int(k)) for k in dict.fromkeys(ks)]
    raise ConfigurationError("distance_type must be either `band` or `knn`")


def sweep(
    units,
    variable,
    rules=None,
    distance_type: str = "band",
    n_bins: int = 10,
    transformation: str = "r",
    stat_kwargs: dict = None,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """Compare global Moran's I across neighbour rules

    Rules that cannot be evaluated (bad parameters, too few connected units,
    no variation among the connected units) do not stop the sweep; their row
    records the reason.

    Parameters
    ----------
    units : UnitTable | PointSet | array
        spatial units or their representative points
    variable : str | array
        attribute name (for a UnitTable) or values aligned with the units
    rules : list or None
        DistanceBand / KNearest rules to compare. If None, built with
        :func:`default_support`.
    distance_type : str
        ``'band'`` or ``'knn'``, used only when ``rules`` is None
    n_bins : int
        number of rules to generate when ``rules`` is None
    transformation : str
        weights transformation, row-standardized by default
    stat_kwargs : dict
        additional keyword arguments passed to :class:`Moran`
    n_jobs : int
        number of jobs to pass to joblib, by default 1. Rows keep the order
        of ``rules`` whatever the number of jobs.

    Returns
    -------
    outputs : pandas.DataFrame
        one row per rule with columns ``rule``, ``I``, ``EI``, ``VI_rand``,
        ``z_rand``, ``p_rand``, ``n_islands``, ``status`` and ``message``
    """
    if stat_kwargs is None:
        stat_kwargs = dict()

    if isinstance(units, UnitTable):
        points = units.points()
        if isinstance(variable, str):
            variable = units.attribute(variable)
    else:
        points = units if isinstance(units, PointSet) else PointSet(units)

    y = np.asarray(variable, dtype=float).squeeze()
    if y.shape[0] != points.n:
        raise ValueError(f"variable is length {len(y)} but there are {points.n} units")

    if rules is None:
        rules = default_support(points, distance_type=distance_type, n_bins=n_bins)

    inputs = [(y, points, rule, transformation, stat_kwargs) for rule in rules]
    if n_jobs == 1:
        outputs = [_get_stat(i) for i in inputs]
    else:
        outputs = Parallel(n_jobs=n_jobs, backend="loky")(
            delayed(_get_stat)(i) for i in inputs
        )
    return pd.DataFrame(outputs, columns=_COLUMNS).infer_objects()
