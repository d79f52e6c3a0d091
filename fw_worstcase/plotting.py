"""Trajectory and convergence plots for the Frank-Wolfe verification runs."""
import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np


def _save(fig, out_path):
    if out_path is not None:
        d = os.path.dirname(out_path)
        if d:
            os.makedirs(d, exist_ok=True)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
    return fig


def plot_trajectory_2d(path, p_opt, title="Trajectory of the worst-case instance",
                       out_path=None):
    """Frank-Wolfe trajectory inside the unit ball, with the optimum marked."""
    theta = np.linspace(0, 2 * np.pi, 200)
    xs = [float(pt[0]) for pt in path]
    ys = [float(pt[1]) for pt in path]

    fig, ax = plt.subplots(figsize=(6, 6))
    ax.plot(np.cos(theta), np.sin(theta), color="black", label="Unit ball")
    ax.plot(xs, ys, color="blue", marker="o", markersize=3, label="Trajectory")
    ax.scatter([float(p_opt[0])], [float(p_opt[1])], color="red", s=36,
               zorder=3, label="Optimum p")
    ax.set_aspect("equal")
    ax.set_axis_off()
    ax.set_title(title)
    ax.legend(loc="lower left")
    return _save(fig, out_path)


def plot_convergence(gaps, title="Convergence rate", out_path=None):
    """Objective values on log-log axes against an O(1/t^2) reference."""
    vals = np.array([float(g) for g in gaps])
    t = np.arange(1, len(vals) + 1)
    # Zero objective values cannot be drawn on a log axis.
    mask = vals > 0

    fig, ax = plt.subplots(figsize=(7, 5))
    ax.loglog(t[mask], vals[mask], linewidth=2, label="f(x_t)")
    ax.loglog(t, vals[0] / t.astype(float) ** 2, linestyle="--", color="red",
              label="O(1/t^2) reference")
    ax.set_xlabel("Iteration t")
    ax.set_ylabel("Gap")
    ax.set_title(title)
    ax.legend()
    return _save(fig, out_path)
