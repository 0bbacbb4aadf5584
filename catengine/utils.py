import numpy as np
from scipy.stats import rankdata


def rank_scores(candidate_scores, tol=1e-12):
    """
    Rank candidate item scores, highest score first.

    Scores within ``tol`` of their predecessor (after sorting) are treated as
    tied, so criteria that differ only by quadrature noise share a rank.

    Args:
        candidate_scores (list or np.ndarray): One score per candidate item,
            in candidate order.
        tol (float): Tolerance threshold for treating scores as equal.

    Returns:
        dict: {
            "competition": np.ndarray of ranks (1,2,2,4),
            "competition_max": np.ndarray of ranks (1,3,3,4),
            "dense": np.ndarray of ranks (1,2,2,3),
            "avg": np.ndarray of fractional ranks (1.0,2.5,2.5,4.0)
        }
    """
    scores = np.asarray(candidate_scores, dtype=float)
    if scores.ndim != 1:
        raise ValueError(f"candidate_scores must be 1D, got shape {scores.shape}")

    order = np.argsort(-scores, kind="stable")
    grouped = scores[order].copy()
    for i in range(1, grouped.size):
        if abs(grouped[i] - grouped[i - 1]) <= tol:
            grouped[i] = grouped[i - 1]

    ranks = {}
    for key, method in (
        ("competition", "min"),
        ("competition_max", "max"),
        ("dense", "dense"),
        ("avg", "average"),
    ):
        in_order = rankdata(-grouped, method=method)
        out = np.empty_like(in_order)
        out[order] = in_order
        ranks[key] = out
    return ranks
