"""Worst-case start point by parity bisection.

  1. (optional) Coarse float64 scan of the epoch counts on [0.4, 0.5]
  2. Parity bisection of count_epoch(1, s) down to width 10^-(0.3 * precision)
  3. Run Frank-Wolfe forward from r0 = 1, s = s_max for
     min(max_count, precision) iterations
  4. Save results (and optionally plots)

Results saved to data/bisection_{timestamp}.json.

Usage:
    python run_bisection.py                        # 1000 bits
    python run_bisection.py --precision 300 --scan 2001
    python run_bisection.py --max-steps 200 --no-verify
"""
import sys
import os
import time
import argparse

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from fw_worstcase import config
from fw_worstcase.runlog import log, results_path, run_timestamp, save_results
from fw_worstcase.core import (NumericalDomainError, ParityInvariantError,
                               bisection_width, set_precision, get_precision)
from fw_worstcase.bisection import (parity_bisection, SEARCH_LO, SEARCH_HI,
                                    SEARCH_R0)
from fw_worstcase.scan import scan_interval
from fw_worstcase.verify import run_frank_wolfe_experiment


def build_parser():
    parser = argparse.ArgumentParser(
        description='Worst-case Frank-Wolfe start point by parity bisection')
    parser.add_argument('--precision', type=int, default=config.PRECISION_BITS,
                        help=f'Working precision in bits (default: {config.PRECISION_BITS})')
    parser.add_argument('--eps', type=float, default=config.EPS,
                        help=f'Epoch counter tolerance (default: {config.EPS})')
    parser.add_argument('--max-steps', type=int, default=config.MAX_STEPS,
                        help=f'Bisection step budget (default: {config.MAX_STEPS})')
    parser.add_argument('--scan', type=int, default=0, metavar='N',
                        help='Coarse float64 scan with N grid points first (default: off)')
    parser.add_argument('--no-verify', action='store_true',
                        help='Skip the forward Frank-Wolfe run')
    parser.add_argument('--plot', action='store_true',
                        help=f'Save trajectory/convergence plots to {config.PLOT_DIR}/')
    parser.add_argument('--data-dir', type=str, default=config.DATA_DIR,
                        help=f'Results directory (default: {config.DATA_DIR})')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    t_start = time.time()
    timestamp = run_timestamp()
    out_path = results_path(args.data_dir, "bisection", timestamp)

    set_precision(args.precision)
    width = bisection_width(args.precision)

    results = {
        "timestamp": timestamp,
        "method": "parity bisection",
        "status": "running",
        "failure_reason": None,
        "parameters": {
            "precision_bits": get_precision(),
            "eps": args.eps,
            "max_steps": args.max_steps,
            "interval": [SEARCH_LO, SEARCH_HI],
            "r0": SEARCH_R0,
            "target_width": width,
            "p_opt": list(config.P_OPT),
        },
    }

    log("=" * 64)
    log("PARITY BISECTION SEARCH")
    log("=" * 64)
    log(f"  precision  = {get_precision()} bits")
    log(f"  interval   = [{SEARCH_LO}, {SEARCH_HI}] at r0 = {SEARCH_R0}")
    log(f"  width      = {float(width):.3e}")
    log(f"  eps        = {args.eps}")
    log(f"  max steps  = {args.max_steps}")

    def _fail(reason):
        log(f"  FATAL [{reason}]")
        results["status"] = "failed"
        results["failure_reason"] = reason
        results["elapsed"] = time.time() - t_start
        save_results(results, out_path)
        sys.exit(2)

    # ================================================================
    #  PHASE 0: Coarse scan (float64)
    # ================================================================
    if args.scan:
        log("")
        log(f"PHASE 0: Coarse scan ({args.scan} points)")
        sc = scan_interval(SEARCH_LO, SEARCH_HI, args.scan, r0=SEARCH_R0,
                           eps=args.eps, verbose=True)
        results["scan"] = {
            "n_points": args.scan,
            "s_peak": sc["s_peak"],
            "peak_count": sc["peak_count"],
            "n_sentinel": sc["n_sentinel"],
            "endpoint_parities_differ": sc["endpoint_parities_differ"],
        }
        save_results(results, out_path)
        if not sc["endpoint_parities_differ"]:
            _fail("coarse scan: endpoint parities agree")

    # ================================================================
    #  PHASE 1: Parity bisection
    # ================================================================
    log("")
    log("PHASE 1: Parity bisection")
    try:
        res = parity_bisection(SEARCH_LO, SEARCH_HI, r0=SEARCH_R0,
                               eps=args.eps, width=width,
                               max_steps=args.max_steps, verbose=True)
    except ParityInvariantError as e:
        _fail(f"parity invariant violated: {e}")
    except NumericalDomainError as e:
        _fail(f"numerical domain error in epoch counter: {e}")

    results["search"] = {
        "s_max": res["s_max"],
        "max_count": res["max_count"],
        "lo": res["lo"],
        "hi": res["hi"],
        "steps": res["steps"],
        "converged": res["converged"],
        "elapsed": res["stats"]["elapsed"],
    }
    if not res["converged"]:
        log(f"  WARNING: step budget exhausted before width {float(width):.3e}")
    save_results(results, out_path)

    # ================================================================
    #  PHASE 2: Forward verification
    # ================================================================
    if not args.no_verify:
        iterations = min(res["max_count"], args.precision)
        log("")
        log(f"PHASE 2: Frank-Wolfe verification ({iterations} iterations)")
        try:
            path, gaps, x0 = run_frank_wolfe_experiment(
                SEARCH_R0, res["s_max"], config.P_OPT, iterations, verbose=True)
        except NumericalDomainError as e:
            _fail(f"start point reconstruction failed: {e}")

        results["verification"] = {
            "iterations": iterations,
            "n_points": len(path),
            "x0": [float(c) for c in x0],
            "path": [[float(c) for c in x] for x in path],
            "objective": [float(g) for g in gaps],
        }
        log(f"  final objective = {float(gaps[-1]):.6e}")

        if args.plot:
            from fw_worstcase.plotting import plot_trajectory_2d, plot_convergence
            import matplotlib.pyplot as plt
            fig1 = plot_trajectory_2d(
                path, config.P_OPT,
                title="Trajectory of the worst-case instance\n(Bisection Search)",
                out_path=os.path.join(config.PLOT_DIR, f"bisection_traj_{timestamp}.png"))
            fig2 = plot_convergence(
                gaps, title="Convergence Rate (Bisection Search)",
                out_path=os.path.join(config.PLOT_DIR, f"bisection_conv_{timestamp}.png"))
            plt.close(fig1)
            plt.close(fig2)
            log(f"  plots saved to {config.PLOT_DIR}/")

    results["status"] = "complete"
    results["elapsed"] = time.time() - t_start
    save_results(results, out_path)

    log("")
    log("=" * 64)
    log("SUMMARY")
    log(f"  s_max      = {float(res['s_max']):.15f}")
    log(f"  max_count  = {res['max_count']}")
    log(f"  steps      = {res['steps']} "
        f"({'converged' if res['converged'] else 'budget exhausted'})")
    log(f"  elapsed    = {results['elapsed']:.1f}s")
    log(f"  Results saved to: {out_path}")
    log("=" * 64)
    return results


if __name__ == "__main__":
    main()
