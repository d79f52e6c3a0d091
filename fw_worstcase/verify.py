"""Forward verification with Frank-Wolfe on the unit ball.

Rebuilds a concrete start point from (r, s) coordinates and runs
Frank-Wolfe on

    min ||x - p||^2   subject to ||x|| <= 1,

with p on the unit circle. The forward iteration is as sensitive as the
backward one is stable, so the whole run stays in mpmath (numpy object
arrays of mpf) at the working precision.
"""
import mpmath
import numpy as np

from fw_worstcase.core import checked_sqrt, to_mpf


def _vec(values):
    return np.array([to_mpf(v) for v in values], dtype=object)


def _norm(x):
    return mpmath.sqrt(np.dot(x, x))


def objective(x, p_opt):
    d = x - p_opt
    return np.dot(d, d)


def gradient(x, p_opt):
    return 2 * (x - p_opt)


def lmo_ball(g):
    """Linear minimization oracle of the unit ball: argmin_{||v||<=1} <g, v>."""
    n = _norm(g)
    if n == 0:
        return np.zeros_like(g)
    return -g / n


def reconstruct_start_point(r_start, s_start, p_opt):
    """Start point at distance r_start from p_opt whose first rate is s_start.

    theta0 = -s^2 (r+1) - sqrt((1 - s^2 (r+1)^2)(1 - s^2)) is the cosine
    between x0 - p and p; q is p rotated by -90 degrees.
    """
    r = to_mpf(r_start)
    s = to_mpf(s_start)
    p = _vec(p_opt)
    if len(p) != 2:
        raise ValueError(f"p_opt must be a 2-vector, got {len(p)} entries")

    rad = (1 - s ** 2 * (r + 1) ** 2) * (1 - s ** 2)
    theta0 = -s ** 2 * (r + 1) - checked_sqrt(rad, "start point reconstruction")
    q = np.array([p[1], -p[0]], dtype=object)
    c0 = theta0 * p + checked_sqrt(1 - theta0 ** 2, "start direction") * q
    return p + r * c0


def run_frank_wolfe(x0, p_opt, iterations, verbose=False, print_iter=100):
    """Frank-Wolfe with the short step (exact line search for this quadratic).

    Returns
    -------
    (path, gaps)
        path : list of object arrays, x0 first.
        gaps : list of mpf, objective value at each point of path.
    """
    p = _vec(p_opt)
    x = _vec(x0)
    path = [x.copy()]
    gaps = [objective(x, p)]

    for t in range(1, int(iterations) + 1):
        g = gradient(x, p)
        v = lmo_ball(g)
        d = x - v
        dual_gap = np.dot(g, d)
        dd = np.dot(d, d)
        if dual_gap <= 0 or dd == 0:
            if verbose:
                print(f"  t={t}: Frank-Wolfe gap is zero, stopping.")
            break
        gamma = min(mpmath.mpf(1), dual_gap / (2 * dd))
        x = x - gamma * d
        path.append(x.copy())
        gaps.append(objective(x, p))
        if verbose and t % print_iter == 0:
            print(f"  t={t}: f={mpmath.nstr(gaps[-1], 8)} "
                  f"gap={mpmath.nstr(dual_gap, 8)} gamma={mpmath.nstr(gamma, 8)}",
                  flush=True)

    return path, gaps


def run_frank_wolfe_experiment(r_start, s_start, p_opt, iterations,
                               verbose=False):
    """Reconstruct x0 from (r_start, s_start) and run Frank-Wolfe from it.

    Returns
    -------
    (path, gaps, x0)
    """
    p = _vec(p_opt)
    x0 = reconstruct_start_point(r_start, s_start, p)

    if verbose:
        print("-" * 60)
        print("Forward simulation: verifying with Frank-Wolfe")
        print(f"  Starting point x0: {[float(c) for c in x0]}")
        print(f"  Distance to optimum: {float(_norm(x0 - p)):.12f}")
        print(f"  Running {int(iterations)} iterations...")

    path, gaps = run_frank_wolfe(x0, p, iterations, verbose=verbose)

    if verbose:
        print(f"  Final objective: {float(gaps[-1]):.6e}")
        print("-" * 60)
    return path, gaps, x0


def distance_ratios(path, p_opt):
    """Observed contraction rates ||x_{t+1} - p|| / ||x_t - p|| along a path."""
    p = _vec(p_opt)
    dists = [_norm(x - p) for x in path]
    return [b / a for a, b in zip(dists[:-1], dists[1:]) if a != 0]
