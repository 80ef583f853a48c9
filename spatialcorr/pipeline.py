"""
End-to-end analysis of one attribute under one neighbour rule
"""

__all__ = ["Analysis", "analyze", "attach"]

from typing import NamedTuple

import numpy as np
import pandas as pd

from .classify import ALPHA, _check_alpha, _check_pvalue
from .exceptions import ConfigurationError
from .graph import NeighborGraph
from .moran import (
    PERMUTATIONS,
    AutocorrelationResult,
    Moran,
    Moran_Local,
    _check_permutations,
)
from .points import PointSet
from .units import UnitTable
from .weights import WeightsMatrix, _check_transformation


class Analysis(NamedTuple):
    """Everything produced by one :func:`analyze` run."""

    graph: NeighborGraph
    weights: WeightsMatrix
    moran: Moran
    local: Moran_Local
    alpha: float
    pvalue: str

    @property
    def global_result(self) -> AutocorrelationResult:
        return self.moran.result()

    def table(self) -> pd.DataFrame:
        """Per-unit local statistic, p-value and label, aligned with the units.

        Units without neighbours carry ``nan`` in ``Is`` and ``p_value``,
        ``defined == False`` and the label ``"Undefined"``.
        """
        p = getattr(self.local, f"p_{self.pvalue}")
        return pd.DataFrame(
            {
                "Is": self.local.Is,
                "p_value": p,
                "label": self.local.get_hotspot_labels(self.alpha, pvalue=self.pvalue),
                "quadrant": self.local.q,
                "defined": self.local.defined,
            }
        )


def _resolve(units, y):
    if isinstance(units, UnitTable):
        points = units.points()
        values = units.attribute(y) if isinstance(y, str) else y
    else:
        points = units if isinstance(units, PointSet) else PointSet(units)
        if isinstance(y, str):
            raise TypeError("an attribute name needs a UnitTable, not bare points")
        values = y
    values = np.asarray(values, dtype=float).flatten()
    if values.shape[0] != points.n:
        raise ValueError(
            f"attribute has {values.shape[0]} values but there are {points.n} units"
        )
    return points, values


def analyze(
    units,
    y,
    rule,
    transformation="r",
    alpha=ALPHA,
    pvalue="rand",
    permutations=PERMUTATIONS,
    seed=None,
):
    """Global and local Moran's I with hot/cold spot labels

    Parameters
    ----------
    units          : UnitTable | PointSet | array
                     spatial units, or their representative points
    y              : str | array
                     attribute name (for a UnitTable) or values aligned with
                     the units
    rule           : DistanceBand | KNearest
                     neighbour rule; validated before anything is computed
    transformation : {'r', 'b'}
                     weights transformation, row-standardized by default
    alpha          : float
                     significance level of the hot/cold classification
    pvalue         : {'rand', 'sim', 'z_sim'}
                     local p-value used by the classification
    permutations   : int
                     permutations for pseudo p-values, 0 for none
    seed           : None/int
                     seed for the permutations

    Returns
    -------
    Analysis

    Raises
    ------
    ConfigurationError
        invalid rule, transformation, significance level, p-value choice or
        number of permutations; raised before any graph is built
    InsufficientData
        fewer than two units have a neighbour under the rule
    DegenerateAttribute
        the attribute does not vary over the units with neighbours

    Examples
    --------
    >>> from spatialcorr.graph import DistanceBand
    >>> grid = [(i, j) for i in range(3) for j in range(3)]
    >>> run = analyze(grid, np.arange(1, 10), DistanceBand(1.0))
    >>> round(run.global_result.I, 4)
    0.5556
    """
    _check_alpha(alpha)
    _check_pvalue(pvalue)
    _check_permutations(permutations)
    transformation = _check_transformation(transformation)
    points, values = _resolve(units, y)
    rule.validate(points.n)
    if pvalue != "rand" and not permutations:
        raise ConfigurationError(f"pvalue={pvalue!r} needs permutations > 0")
    graph = rule.build(points)
    weights = WeightsMatrix(graph, transformation=transformation)
    moran = Moran(values, weights, permutations=permutations, seed=seed)
    local = Moran_Local(values, weights, permutations=permutations, seed=seed)
    return Analysis(graph, weights, moran, local, alpha, pvalue)


def attach(table, analysis, prefix):
    """Return a new UnitTable with the local results appended

    Columns are named ``{prefix}_Is``, ``{prefix}_p_value``,
    ``{prefix}_label`` and ``{prefix}_defined``.
    """
    local = analysis.table()
    return table.with_columns(
        {
            f"{prefix}_Is": local["Is"],
            f"{prefix}_p_value": local["p_value"],
            f"{prefix}_label": local["label"],
            f"{prefix}_defined": local["defined"],
        }
    )
