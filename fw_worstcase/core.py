"""Core recurrence for worst-case Frank-Wolfe starting points.

Models the distance-to-optimum of Frank-Wolfe on a strongly convex set
(the unit ball) when the optimum p lies on the boundary. Writing
r_t = ||x_t - p|| and s_t = r_{t+1} / r_t, the iterates follow

    r_{t+1} = r_t * s_t
    s_{t+1} = sqrt( (1 - (r_t+1)^2 s_t^2) / (2 - 2 s_t - (2+r_t) r_t s_t^2) )

as long as the contraction rates keep increasing. Near convergence the
slowest trajectory hugs the asymptotic curve s = 1 - 4/3 r + 2 r^2.

Conventions:
  All state is mpmath.mpf at the active working precision mp.prec (bits).
  Set it once per run with set_precision() or scope it with
  working_precision(); changing it mid-run leaves earlier values at the
  old precision.
"""
import mpmath
from mpmath import mp, mpf


DEFAULT_PRECISION_BITS = 1000


class NumericalDomainError(ArithmeticError):
    """Negative radicand in a guarded square root.

    Raised only when an upstream invariant is broken; expected boundaries
    are reported with sentinels instead.
    """


class ParityInvariantError(AssertionError):
    """The single-peak parity precondition of a search interval failed."""


def set_precision(bits):
    """Fix the process-wide working precision (in bits)."""
    bits = int(bits)
    if bits <= 0:
        raise ValueError(f"precision must be positive, got {bits}")
    mp.prec = bits
    return mp.prec


def get_precision():
    return mp.prec


def working_precision(bits):
    """Context manager running a block at `bits` of precision.

    The caller's precision is restored on exit. Values created inside keep
    their full mantissa after the block ends.
    """
    bits = int(bits)
    if bits <= 0:
        raise ValueError(f"precision must be positive, got {bits}")
    return mpmath.workprec(bits)


def to_mpf(x):
    """Convert x to mpf at the working precision.

    Strings are parsed exactly ('0.4' is not routed through float64).
    """
    return mpf(x)


def checked_sqrt(x, what="value"):
    """Real square root that refuses negative arguments."""
    if x < 0:
        raise NumericalDomainError(
            f"negative radicand in {what}: {mpmath.nstr(x, 10)}")
    return mpmath.sqrt(x)


def asymptotic_seed(r):
    """Contraction rate on the asymptotic curve, s = 1 - 4/3 r + 2 r^2.

    Second-order expansion, valid only for small r.
    """
    r = to_mpf(r)
    return 1 - mpf(4) / 3 * r + 2 * r ** 2


def feasibility_bound(r):
    """Largest admissible contraction rate at residual r: 1/(1+r)."""
    return 1 / (1 + to_mpf(r))


def next_rate(r, s):
    """Contraction rate of the next step under the forward map."""
    num = 1 - (r + 1) ** 2 * s ** 2
    den = 2 - 2 * s - (2 + r) * r * s ** 2
    return checked_sqrt(num / den, "forward map")


def forward_step(r, s):
    """One forward step (r, s) -> (r*s, s_next)."""
    return r * s, next_rate(r, s)


def parity(count):
    """Parity of an epoch count (sentinels included, always 0 or 1)."""
    return count % 2


def bisection_width(precision):
    """Target interval width 10^-(0.3 * precision), roughly 2^-precision."""
    return mpf(10) ** (-(mpf(precision) * 3 / 10))
