"""Coarse float64 scan of epoch counts over a grid of start rates.

Float64 resolves the epoch length only up to roughly 25 steps (the
deviation from the worst-case trajectory grows about 4x per step), so
this is a quick look at the landscape before the high-precision search:
where the peak roughly is and whether the endpoint parities differ.
"""
import numpy as np
import numba


SCAN_INFEASIBLE = -10
SCAN_BREAKDOWN = -1
PARITY_UNDEFINED = -1


@numba.njit(cache=True)
def _count_epoch_f64(r0, s0, eps):
    """Float64 epoch length; -10 for infeasible starts, -1 on a negative radicand."""
    if s0 > 1.0 / (1.0 + r0):
        return SCAN_INFEASIBLE
    counter = 0
    r = r0
    s = s0
    while r > eps:
        num = 1.0 - (r + 1.0) ** 2 * s * s
        den = 2.0 - 2.0 * s - (2.0 + r) * r * s * s
        q = num / den
        if q < 0.0:
            return SCAN_BREAKDOWN
        s_new = np.sqrt(q)
        if s_new < s:
            return counter
        r = r * s
        s = s_new
        counter += 1
    return counter


@numba.njit(parallel=True, cache=True)
def scan_epoch_counts(r0, s_values, eps):
    """Epoch length for every start rate in s_values (int64 array)."""
    n = s_values.shape[0]
    out = np.empty(n, dtype=np.int64)
    for i in numba.prange(n):
        out[i] = _count_epoch_f64(r0, s_values[i], eps)
    return out


def scan_interval(lo, hi, n_points, r0=1.0, eps=1e-10, verbose=False):
    """Scan [lo, hi] on an evenly spaced grid.

    Sentinel counts (SCAN_INFEASIBLE, SCAN_BREAKDOWN) carry no epoch
    parity: their parity entry is PARITY_UNDEFINED, and an endpoint with
    a sentinel count never counts as a parity change.

    Returns
    -------
    dict with keys:
        s_values : (n_points,) float64 array
        counts : (n_points,) int64 array
        parities : (n_points,) int64 array, PARITY_UNDEFINED at sentinels
        n_sentinel : number of grid points with a sentinel count
        s_peak, peak_count : coarse location of the largest count
        endpoint_parities_differ : bool
            Necessary condition for the parity bisection on [lo, hi].
    """
    if n_points < 2:
        raise ValueError(f"need at least 2 grid points, got {n_points}")
    s_values = np.linspace(float(lo), float(hi), n_points)
    counts = scan_epoch_counts(float(r0), s_values, float(eps))
    valid = counts >= 0
    parities = np.where(valid, counts % 2, PARITY_UNDEFINED)
    idx = int(np.argmax(counts))
    differ = bool(valid[0] and valid[-1] and parities[0] != parities[-1])

    if verbose:
        n_flips = int(np.count_nonzero(np.diff(parities[valid])))
        print(f"Coarse scan of [{float(lo)}, {float(hi)}] at r0={r0}: "
              f"{n_points} points")
        print(f"  peak count {counts[idx]} at s ~ {s_values[idx]:.6f}")
        print(f"  parity flips: {n_flips}, "
              f"endpoint parities {'differ' if differ else 'AGREE'}")
        if not valid.all():
            print(f"  {int(np.count_nonzero(~valid))} sentinel counts "
                  f"(infeasible or breakdown)")

    return {
        's_values': s_values,
        'counts': counts,
        'parities': parities,
        'n_sentinel': int(np.count_nonzero(~valid)),
        's_peak': float(s_values[idx]),
        'peak_count': int(counts[idx]),
        'endpoint_parities_differ': differ,
    }
