"""
Conditional randomisation of local statistics.
"""

import numpy as np

__all__ = ["crand", "vec_permutations"]


def vec_permutations(max_card, n, k_replications, rng):
    """
    Generate `max_card` permuted IDs, sampled from `n` without replacement,
    `k_replications` times

    Parameters
    ----------
    max_card : int
        Number of permuted IDs to generate per sample
    n : int
        Size of the sample to sample IDs from
    k_replications : int
        Number of samples of permuted IDs to perform
    rng : numpy.random.Generator
        Source of randomness

    Returns
    -------
    result : ndarray
        (k_replications, max_card) array with permuted IDs
    """
    result = np.empty((k_replications, max_card), dtype=np.int64)
    for k in range(k_replications):
        result[k] = rng.choice(n, size=max_card, replace=False)
    return result


def crand(z, w, observed, permutations, scaling, seed=None, keep=True):
    """
    Conduct conditional randomization of local Moran-type statistics.

    The value at site i is held fixed while its neighbours are replaced by
    values drawn without replacement from the other sites.

    Parameters
    ----------
    z : ndarray
        (n,) array of centred observed values
    w : scipy.sparse.csr_matrix
        (n, n) spatial weights without self-weights
    observed : ndarray
        (n,) array with observed local statistics
    permutations : int
        Number of permutations for conditional randomisation
    scaling : float
        Scaling value applied to every local statistic
    seed : None/int/numpy.random.Generator
        Seed to ensure reproducibility of conditional randomizations
    keep : Boolean
        If True, return the simulated statistics; else return None

    Returns
    -------
    p_sim : ndarray
        (n,) array with pseudo p-values from conditional permutation
    rlocals : ndarray or None
        (n, permutations) array with simulated values of the statistic
        under the null of spatial randomness
    """
    rng = np.random.default_rng(seed)
    w = w.tocsr()
    n = len(z)
    cardinalities = np.diff(w.indptr)
    max_card = int(cardinalities.max()) if n else 0
    permuted_ids = vec_permutations(max_card, n - 1, permutations, rng)

    larger = np.zeros((n,), dtype=np.int64)
    rlocals = np.empty((n, permutations)) if keep else None
    for i in range(n):
        start, stop = w.indptr[i], w.indptr[i + 1]
        weights_i = w.data[start:stop]
        # ids index the sites other than i
        z_no_i = np.delete(z, i)
        zrand = z_no_i[permuted_ids[:, : stop - start]]
        rstats = z[i] * (zrand @ weights_i) * scaling
        larger[i] = (rstats >= observed[i]).sum()
        if keep:
            rlocals[i] = rstats

    low_extreme = (permutations - larger) < larger
    larger[low_extreme] = permutations - larger[low_extreme]
    p_sim = (larger + 1.0) / (permutations + 1.0)
    return p_sim, rlocals
