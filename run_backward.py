"""Worst-case start point by backward reconstruction.

  1. Seed the trajectory deep in the asymptotic regime:
     r = epsilon, s = 1 - 4/3 r + 2 r^2
  2. Invert the forward map step by step (X + Y branch) until no real
     predecessor exists or the residual passes the safety threshold
  3. Run Frank-Wolfe forward from the reconstructed point for
     min(precision, step_count) iterations
  4. Save results (and optionally plots)

Results saved to data/backward_{timestamp}.json.

Usage:
    python run_backward.py                          # 1000 bits, epsilon = 1/1000
    python run_backward.py --precision 2000         # more bits, smaller seed
    python run_backward.py --epsilon 1e-4 --plot    # custom seed, save plots
"""
import sys
import os
import time
import argparse

import mpmath

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from fw_worstcase import config
from fw_worstcase.runlog import log, results_path, run_timestamp, save_results
from fw_worstcase.core import (NumericalDomainError, set_precision, to_mpf,
                               get_precision)
from fw_worstcase.backward import backward_trace, SAFETY_THRESHOLD
from fw_worstcase.verify import run_frank_wolfe_experiment, distance_ratios


def seed_residual(text):
    """argparse type for --epsilon: a finite positive number, kept as text.

    The text is converted again after the working precision is set, so
    decimal seeds are not rounded at the default 53 bits.
    """
    try:
        value = mpmath.mpf(text)
    except (TypeError, ValueError):
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    if not (mpmath.isfinite(value) and value > 0):
        raise argparse.ArgumentTypeError(
            f"seed residual must be finite and positive, got {text!r}")
    return text


def build_parser():
    parser = argparse.ArgumentParser(
        description='Worst-case Frank-Wolfe start point by backward reconstruction')
    parser.add_argument('--precision', type=int, default=config.PRECISION_BITS,
                        help=f'Working precision in bits (default: {config.PRECISION_BITS})')
    parser.add_argument('--epsilon', type=seed_residual, default=None,
                        help='Seed residual (default: 1/precision)')
    parser.add_argument('--iterations', type=int, default=None,
                        help='Frank-Wolfe iterations (default: min(precision, steps))')
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
    out_path = results_path(args.data_dir, "backward", timestamp)

    set_precision(args.precision)
    if args.epsilon is not None:
        epsilon = to_mpf(args.epsilon)
    else:
        epsilon = to_mpf(1) / args.precision

    results = {
        "timestamp": timestamp,
        "method": "backward reconstruction",
        "status": "running",
        "failure_reason": None,
        "parameters": {
            "precision_bits": get_precision(),
            "epsilon": epsilon,
            "safety_threshold": SAFETY_THRESHOLD,
            "p_opt": list(config.P_OPT),
        },
    }

    log("=" * 64)
    log("BACKWARD RECONSTRUCTION")
    log("=" * 64)
    log(f"  precision  = {get_precision()} bits")
    log(f"  epsilon    = {float(epsilon):.6e}")
    log(f"  threshold  = r > {float(SAFETY_THRESHOLD)}")

    def _fail(reason):
        log(f"  FATAL [{reason}]")
        results["status"] = "failed"
        results["failure_reason"] = reason
        results["elapsed"] = time.time() - t_start
        save_results(results, out_path)
        sys.exit(2)

    # ================================================================
    #  PHASE 1: Backward pass
    # ================================================================
    log("")
    log("PHASE 1: Backward pass")
    try:
        tr = backward_trace(epsilon, verbose=True)
    except NumericalDomainError as e:
        _fail(f"numerical domain error in backward pass: {e}")

    results["trace"] = {
        "r_final": tr["r_final"],
        "s_final": tr["s_final"],
        "step_count": tr["step_count"],
        "stop_reason": tr["stop_reason"],
        "r_safe": tr["r_safe"],
        "s_safe": tr["s_safe"],
        "safe_step_count": tr["safe_step_count"],
        "elapsed": tr["stats"]["elapsed"],
    }
    log(f"  stopped after {tr['step_count']} steps ({tr['stop_reason']})")
    log(f"  r_start = {float(tr['r_final']):.12f}")
    log(f"  s_start = {float(tr['s_final']):.12f}")
    save_results(results, out_path)

    # ================================================================
    #  PHASE 2: Forward verification
    # ================================================================
    if not args.no_verify:
        iterations = args.iterations
        if iterations is None:
            iterations = min(args.precision, tr["step_count"])
        log("")
        log(f"PHASE 2: Frank-Wolfe verification ({iterations} iterations)")
        try:
            path, gaps, x0 = run_frank_wolfe_experiment(
                tr["r_final"], tr["s_final"], config.P_OPT, iterations,
                verbose=True)
        except NumericalDomainError as e:
            _fail(f"start point reconstruction failed: {e}")

        ratios = distance_ratios(path, config.P_OPT)
        results["verification"] = {
            "iterations": iterations,
            "n_points": len(path),
            "x0": [float(c) for c in x0],
            "path": [[float(c) for c in x] for x in path],
            "objective": [float(g) for g in gaps],
            "first_rates": [float(q) for q in ratios[:10]],
        }
        log(f"  final objective = {float(gaps[-1]):.6e}")

        if args.plot:
            from fw_worstcase.plotting import plot_trajectory_2d, plot_convergence
            import matplotlib.pyplot as plt
            fig1 = plot_trajectory_2d(
                path, config.P_OPT,
                title="Trajectory of the worst-case instance\n(Backward Reconstruction)",
                out_path=os.path.join(config.PLOT_DIR, f"backward_traj_{timestamp}.png"))
            fig2 = plot_convergence(
                gaps, title="Convergence Rate (Backward Reconstruction)",
                out_path=os.path.join(config.PLOT_DIR, f"backward_conv_{timestamp}.png"))
            plt.close(fig1)
            plt.close(fig2)
            log(f"  plots saved to {config.PLOT_DIR}/")

    results["status"] = "complete"
    results["elapsed"] = time.time() - t_start
    save_results(results, out_path)

    log("")
    log("=" * 64)
    log("SUMMARY")
    log(f"  steps      = {tr['step_count']} ({tr['stop_reason']})")
    log(f"  r_start    = {float(tr['r_final']):.15f}")
    log(f"  s_start    = {float(tr['s_final']):.15f}")
    log(f"  elapsed    = {results['elapsed']:.1f}s")
    log(f"  Results saved to: {out_path}")
    log("=" * 64)
    return results


if __name__ == "__main__":
    main()
