"""Parity-based bisection search for the worst-case contraction rate.

For r0 = 1 the epoch length count_epoch(1, s) has a single peak on
[0.4, 0.5]. Off the worst-case trajectory the contraction-rate deviation
flips sign every step, so the step at which monotonicity first breaks
has one parity on the left of the peak and the other parity on the right.
Bisection on the parity therefore homes in on the peak, even though the
count itself is not monotone.

Precondition (analytic, not re-derived here): the interval isolates one
peak and its endpoints have different parities. The endpoint condition is
checked; the single-peak part is only detected when a midpoint parity
falls below both endpoint parities.
"""
import time

from fw_worstcase.core import (ParityInvariantError, bisection_width,
                               feasibility_bound, get_precision, next_rate,
                               parity, to_mpf, working_precision)


EPOCH_INFEASIBLE = -10

# Interval isolating the single peak of count_epoch(1, s).
SEARCH_LO = '0.4'
SEARCH_HI = '0.5'
SEARCH_R0 = 1

PROGRESS_EVERY = 100


def count_epoch(r0, s0, eps=1e-10):
    """Number of steps for which the contraction rates keep increasing.

    Counts steps of s_0 < s_1 < ... < s_n under the forward map, stopping
    at the first decrease or once r <= eps.

    Returns
    -------
    int
        The epoch length, or EPOCH_INFEASIBLE (-10) if s0 > 1/(1+r0).
    """
    r = to_mpf(r0)
    s = to_mpf(s0)
    eps = to_mpf(eps)
    if s > feasibility_bound(r):
        return EPOCH_INFEASIBLE

    counter = 0
    while r > eps:
        s_new = next_rate(r, s)
        if s_new < s:
            return counter
        r = r * s
        s = s_new
        counter += 1
    return counter


def _check_parity(parity_m, parity_l, parity_u, m):
    if parity_m < min(parity_l, parity_u):
        raise ParityInvariantError(
            f"midpoint parity {parity_m} below endpoint parities "
            f"({parity_l}, {parity_u}) at s = {float(m):.15g}: "
            f"interval does not isolate a single peak")


def parity_bisection(lo, hi, r0=SEARCH_R0, eps=1e-10, width=None,
                     max_steps=1000, verbose=False):
    """Bisect [lo, hi] on the parity of count_epoch(r0, .) at current precision.

    Parameters
    ----------
    lo, hi : mpf or str
        Interval endpoints, lo < hi.
    r0 : number
        Starting residual.
    eps : float
        Convergence tolerance passed to count_epoch.
    width : mpf or None
        Stop once hi - lo <= width. Defaults to bisection_width(mp.prec).
    max_steps : int
        Bisection step budget.
    verbose : bool
        Print progress.

    Returns
    -------
    dict with keys:
        s_max : mpf
            Sample with the largest epoch count seen.
        max_count : int
        lo, hi : mpf
            Final interval.
        count_lo, count_hi : int
            Epoch counts at the final endpoints.
        steps : int
        converged : bool
            True if hi - lo <= width at exit.
        stats : dict

    Raises
    ------
    ParityInvariantError
        Endpoint parities agree, or a midpoint parity is below both.
    """
    l = to_mpf(lo)
    u = to_mpf(hi)
    if not l < u:
        raise ValueError(f"need lo < hi, got [{lo}, {hi}]")
    r0 = to_mpf(r0)
    if width is None:
        width = bisection_width(get_precision())

    if verbose:
        print("-" * 60)
        print("Parity bisection: searching for the worst start point")
        print(f"  interval = [{float(l)}, {float(u)}], r0 = {float(r0)}")
        print(f"  precision = {get_precision()} bits, "
              f"target width = {float(width):.3e}")

    t0 = time.time()
    count_l = count_epoch(r0, l, eps=eps)
    count_u = count_epoch(r0, u, eps=eps)
    parity_l = parity(count_l)
    parity_u = parity(count_u)
    if parity_l == parity_u:
        raise ParityInvariantError(
            f"endpoint counts {count_l} and {count_u} have the same parity")

    # Best sample, independent of which endpoint is retained.
    if count_u > count_l:
        s_max, max_count = u, count_u
    else:
        s_max, max_count = l, count_l

    steps = 0
    while u - l > width and steps < max_steps:
        steps += 1
        m = (l + u) / 2
        count_m = count_epoch(r0, m, eps=eps)
        parity_m = parity(count_m)
        _check_parity(parity_m, parity_l, parity_u, m)

        if verbose and steps % PROGRESS_EVERY == 0:
            print(f"  Step {steps}: max_count={max(count_m, max_count)}, "
                  f"parity_m={parity_m}", flush=True)

        # Same parity as u: the peak is in [l, m].
        if parity_m == parity_u:
            u, count_u, parity_u = m, count_m, parity_m
        else:
            l, count_l, parity_l = m, count_m, parity_m

        if count_m > max_count:
            s_max, max_count = m, count_m

    final_s = (l + u) / 2
    final_count = count_epoch(r0, final_s, eps=eps)
    if final_count > max_count:
        s_max, max_count = final_s, final_count

    elapsed = time.time() - t0
    converged = u - l <= width
    if verbose:
        print(f"  Search completed after {steps} steps "
              f"({'converged' if converged else 'step budget exhausted'}, "
              f"{elapsed:.2f}s)")
        print(f"  Worst start point s_max: {float(s_max):.15f}")
        print(f"  Maximum stable phase length: {max_count}")
        print("-" * 60)

    return {
        's_max': s_max,
        'max_count': max_count,
        'lo': l,
        'hi': u,
        'count_lo': count_l,
        'count_hi': count_u,
        'steps': steps,
        'converged': converged,
        'stats': {
            'r0': r0,
            'eps': eps,
            'width': width,
            'precision': get_precision(),
            'elapsed': elapsed,
        },
    }


def search(precision, eps=1e-10, max_steps=1000, verbose=False):
    """Worst-case contraction rate on [0.4, 0.5] at r0 = 1.

    Runs at `precision` bits and restores the caller's precision.

    Returns
    -------
    (s_max, max_count)
    """
    precision = int(precision)
    with working_precision(precision):
        result = parity_bisection(SEARCH_LO, SEARCH_HI, r0=SEARCH_R0,
                                  eps=eps, width=bisection_width(precision),
                                  max_steps=max_steps, verbose=verbose)
    return result['s_max'], result['max_count']
