"""
Hot and cold spot labels from local statistics
"""

__all__ = [
    "ALPHA",
    "HOTSPOT",
    "COLDSPOT",
    "NOT_SIGNIFICANT",
    "UNDEFINED",
    "PVALUES",
    "classify_hotspots",
    "hotspot_labels",
    "cluster_labels",
]

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError

ALPHA = 0.05

HOTSPOT = "Hotspot"
COLDSPOT = "Coldspot"
NOT_SIGNIFICANT = "NotSignificant"
UNDEFINED = "Undefined"

PVALUES = ("rand", "sim", "z_sim")

_QUADRANT_LABELS = {1: "High-High", 2: "Low-High", 3: "Low-Low", 4: "High-Low"}


def _check_alpha(alpha):
    if not 0 < alpha < 1:
        raise ConfigurationError(f"significance level must lie in (0, 1), got {alpha}")


def _check_pvalue(pvalue):
    if pvalue not in PVALUES:
        raise ConfigurationError(f"pvalue={pvalue!r} is not one of {PVALUES}")


def classify_hotspots(Is, p_values, alpha=ALPHA):  # noqa: N803
    """Label units from their local statistic and p-value

    Parameters
    ----------
    Is       : array
               local statistics, ``nan`` for undefined units
    p_values : array
               p-values aligned with ``Is``, ``nan`` for undefined units
    alpha    : float
               significance level, by default 0.05

    Returns
    -------
    numpy.ndarray
        object array of ``"Hotspot"``, ``"Coldspot"``, ``"NotSignificant"``
        or ``"Undefined"``

    Examples
    --------
    >>> classify_hotspots([0.8, -0.4, 0.2, np.nan], [0.01, 0.02, 0.3, np.nan])
    array(['Hotspot', 'Coldspot', 'NotSignificant', 'Undefined'], dtype=object)
    """
    _check_alpha(alpha)
    Is = np.asarray(Is, dtype=float)  # noqa: N806
    p_values = np.asarray(p_values, dtype=float)
    if Is.shape != p_values.shape:
        raise ValueError(
            f"statistics {Is.shape} and p-values {p_values.shape} are not aligned"
        )
    undefined = np.isnan(Is) | np.isnan(p_values)
    with np.errstate(invalid="ignore"):
        significant = (p_values < alpha) & ~undefined
    labels = np.full(Is.shape, NOT_SIGNIFICANT, dtype=object)
    labels[significant & (Is > 0)] = HOTSPOT
    labels[significant & (Is < 0)] = COLDSPOT
    labels[undefined] = UNDEFINED
    return labels


def hotspot_labels(local, alpha=ALPHA, pvalue="rand"):
    """Hot/cold labels of a fitted local statistic

    Parameters
    ----------
    local  : Moran_Local
             fitted local statistic
    alpha  : float
             significance level, by default 0.05
    pvalue : {'rand', 'sim', 'z_sim'}
             which p-value to use: the analytical one under randomization
             (default), the conditional-permutation pseudo p-value, or the
             normal approximation of the permutation distribution
    """
    return classify_hotspots(local.Is, _pvalues(local, pvalue), alpha=alpha)


def cluster_labels(local, crit_value=ALPHA, pvalue="rand"):
    """LISA cluster labels from the Moran scatterplot quadrant

    Returns an array of ``"High-High"``, ``"Low-High"``, ``"Low-Low"``,
    ``"High-Low"``, ``"Insignificant"`` and ``"Undefined"``.
    """
    _check_alpha(crit_value)
    df = pd.DataFrame()
    df["q"] = local.q
    df["p"] = _pvalues(local, pvalue)
    df["Moran Cluster"] = "Insignificant"
    for quadrant, label in _QUADRANT_LABELS.items():
        df.loc[(df["p"] < crit_value) & (df["q"] == quadrant), "Moran Cluster"] = label
    df.loc[df["p"].isna() | (df["q"] == 0), "Moran Cluster"] = UNDEFINED
    return df["Moran Cluster"].values


def _pvalues(local, pvalue):
    _check_pvalue(pvalue)
    attr = f"p_{pvalue}"
    p = getattr(local, attr, None)
    if p is None:
        raise ConfigurationError(
            f"p-value {pvalue!r} is not available; fit with permutations > 0 "
            "for 'sim' and 'z_sim'"
        )
    return p
