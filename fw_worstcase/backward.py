"""Backward reconstruction of the worst-case trajectory.

Starts deep in the asymptotic regime (r = epsilon_target, s on the
asymptotic curve) and inverts the forward map one step at a time until
either no real predecessor exists or the residual leaves the safe range.

The inverse has two branches, s_prev = X +/- Y; the worst-case trajectory
lives on the X + Y branch, which is the only one implemented here.
"""
import time

import mpmath
from mpmath import mpf

from fw_worstcase.core import (NumericalDomainError, asymptotic_seed, to_mpf,
                               get_precision)


# Residual above which the backward trace stops. The domain boundary is
# r = 2 (diameter of the unit ball) and steps blow up well before it.
SAFETY_THRESHOLD = mpf('0.5')

PROGRESS_EVERY = 100


def invert(r_next, s_next):
    """Previous residual under the X + Y branch of the inverse map.

    Parameters
    ----------
    r_next, s_next : mpf
        State at time t.

    Returns
    -------
    mpf or None
        r_{t-1}, or None when X + Y <= 0 (no real predecessor on this
        branch; the trace has reached the boundary).

    Raises
    ------
    NumericalDomainError
        If s_next^2 > 1 or (1 + r_next)^2 s_next^2 > 1. Callers never
        produce such states, so this signals a logic error upstream.
    """
    u = to_mpf(r_next)
    v = to_mpf(s_next)
    v2 = v ** 2

    X = (1 + u) * v2 - u
    a = 1 - v2
    b = 1 - (1 + u) ** 2 * v2
    # Each factor is checked on its own: for s > 1 both are negative and
    # the product is not.
    if a < 0:
        raise NumericalDomainError(
            f"inverse map: 1 - s^2 < 0 at s = {mpmath.nstr(v, 10)}")
    if b < 0:
        raise NumericalDomainError(
            f"inverse map: 1 - (1 + r)^2 s^2 < 0 at "
            f"r = {mpmath.nstr(u, 10)}, s = {mpmath.nstr(v, 10)}")
    Y = mpmath.sqrt(a * b)

    if X + Y <= 0:
        return None
    return u / (X + Y)


def backward_trace(epsilon_target, max_steps=None, keep_states=False,
                   verbose=False):
    """Trace the worst-case trajectory backward from the asymptotic regime.

    Parameters
    ----------
    epsilon_target : mpf, str or float
        Seed residual. Must be small enough that the seed curve's O(r^3)
        error is negligible (1/precision is the usual choice).
    max_steps : int or None
        Optional hard cap on backward steps.
    keep_states : bool
        Keep the full list of (r, s) states, seed first.
    verbose : bool
        Print progress.

    Returns
    -------
    dict with keys:
        r_final, s_final : mpf
            State when the trace stopped. On the threshold stop this is
            the state that crossed SAFETY_THRESHOLD.
        step_count : int
            Completed backward steps.
        stop_reason : str
            'boundary' (no predecessor), 'threshold' or 'budget'.
        r_safe, s_safe, safe_step_count :
            Last state with r <= SAFETY_THRESHOLD and its step count.
        states : list of (mpf, mpf) or None
        stats : dict
    """
    r = to_mpf(epsilon_target)
    if r <= 0:
        raise ValueError(f"epsilon_target must be positive, got {epsilon_target}")
    s = asymptotic_seed(r)

    if verbose:
        print("-" * 60)
        print("Backward pass")
        print(f"  precision = {get_precision()} bits")
        print(f"  seed r = {float(r):.6e}, s = {float(s):.12f}")

    t0 = time.time()
    step_count = 0
    r_safe, s_safe, safe_step_count = r, s, 0
    states = [(r, s)] if keep_states else None
    stop_reason = None

    while True:
        if max_steps is not None and step_count >= max_steps:
            stop_reason = 'budget'
            break

        r_prev = invert(r, s)
        if r_prev is None:
            stop_reason = 'boundary'
            if verbose:
                print("  Next step would overshoot the boundary. Stopping.")
            break

        # r_t = r_{t-1} * s_{t-1}
        s_prev = r / r_prev
        r, s = r_prev, s_prev
        step_count += 1
        if keep_states:
            states.append((r, s))

        if r > SAFETY_THRESHOLD:
            stop_reason = 'threshold'
            if verbose:
                print(f"  Residual past the safety threshold "
                      f"(r > {float(SAFETY_THRESHOLD)}). Stopping.")
            break
        r_safe, s_safe, safe_step_count = r, s, step_count

        if verbose and step_count % PROGRESS_EVERY == 0:
            print(f"  Step {step_count}: r = {float(r):.6e}", flush=True)

    elapsed = time.time() - t0
    if verbose:
        print(f"  Backward trace stopped after {step_count} steps "
              f"({stop_reason}, {elapsed:.2f}s)")
        print(f"  r_final = {float(r):.12f}, s_final = {float(s):.12f}")
        print("-" * 60)

    return {
        'r_final': r,
        's_final': s,
        'step_count': step_count,
        'stop_reason': stop_reason,
        'r_safe': r_safe,
        's_safe': s_safe,
        'safe_step_count': safe_step_count,
        'states': states,
        'stats': {
            'epsilon_target': to_mpf(epsilon_target),
            'precision': get_precision(),
            'elapsed': elapsed,
        },
    }


def trace(epsilon_target):
    """Backward trace at the current precision: (r_final, s_final, step_count)."""
    result = backward_trace(epsilon_target)
    return result['r_final'], result['s_final'], result['step_count']
