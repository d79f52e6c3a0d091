"""Worst-case starting points for Frank-Wolfe near a strongly convex boundary.

Usage:
    from fw_worstcase import set_precision, trace, search

    set_precision(1000)
    r0, s0, steps = trace(1 / 1000)          # backward reconstruction

    s_max, max_count = search(1000)           # parity bisection at r0 = 1
"""
from fw_worstcase.core import (NumericalDomainError, ParityInvariantError,
                               set_precision, get_precision,
                               working_precision, forward_step)
from fw_worstcase.backward import invert, trace, backward_trace
from fw_worstcase.bisection import count_epoch, search, parity_bisection
from fw_worstcase.verify import (reconstruct_start_point,
                                 run_frank_wolfe_experiment)

__all__ = [
    'NumericalDomainError',
    'ParityInvariantError',
    'set_precision',
    'get_precision',
    'working_precision',
    'forward_step',
    'invert',
    'trace',
    'backward_trace',
    'count_epoch',
    'search',
    'parity_bisection',
    'reconstruct_start_point',
    'run_frank_wolfe_experiment',
]
