"""Tests for start-point reconstruction and the Frank-Wolfe verifier."""
import sys, os
import tempfile
import unittest

import numpy as np
from mpmath import mp, mpf

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fw_worstcase.core import NumericalDomainError, next_rate
from fw_worstcase.verify import (distance_ratios, lmo_ball,
                                 reconstruct_start_point, run_frank_wolfe,
                                 run_frank_wolfe_experiment)
from fw_worstcase.plotting import plot_convergence, plot_trajectory_2d

P_OPT = (0, 1)


class TestReconstruction(unittest.TestCase):
    def setUp(self):
        self._prec = mp.prec
        mp.prec = 256

    def tearDown(self):
        mp.prec = self._prec

    def test_distance_is_residual(self):
        for r, s in [(1, '0.45'), ('0.3', '0.7'), ('0.01', '0.98')]:
            x0 = reconstruct_start_point(mpf(r), mpf(s), P_OPT)
            d = x0 - np.array([mpf(0), mpf(1)], dtype=object)
            dist = mp.sqrt(np.dot(d, d))
            self.assertLess(abs(dist - mpf(r)), mpf(10) ** -60)

    def test_inside_unit_ball(self):
        x0 = reconstruct_start_point(1, mpf('0.45'), P_OPT)
        self.assertLess(np.dot(x0, x0), 1)

    def test_infeasible_rate_raises(self):
        with self.assertRaises(NumericalDomainError):
            reconstruct_start_point(1, mpf('0.6'), P_OPT)

    def test_bad_optimum_shape(self):
        with self.assertRaises(ValueError):
            reconstruct_start_point(1, mpf('0.45'), (0, 0, 1))


class TestFrankWolfe(unittest.TestCase):
    def setUp(self):
        self._prec = mp.prec
        mp.prec = 256

    def tearDown(self):
        mp.prec = self._prec

    def test_lmo(self):
        v = lmo_ball(np.array([mpf(3), mpf(4)], dtype=object))
        self.assertAlmostEqual(float(v[0]), -0.6, places=12)
        self.assertAlmostEqual(float(v[1]), -0.8, places=12)

    def test_first_rates_follow_recurrence(self):
        """||x_1 - p|| = r0 s0 and the next rate matches the forward map."""
        s0 = mpf('0.45')
        path, gaps, x0 = run_frank_wolfe_experiment(1, s0, P_OPT, 3)
        ratios = distance_ratios(path, P_OPT)
        self.assertLess(abs(ratios[0] - s0), mpf(10) ** -50)
        self.assertLess(abs(ratios[1] - next_rate(mpf(1), s0)), mpf(10) ** -40)

    def test_objective_nonincreasing(self):
        path, gaps, x0 = run_frank_wolfe_experiment(1, mpf('0.45'), P_OPT, 50)
        self.assertEqual(len(path), len(gaps))
        self.assertLessEqual(len(path), 51)
        self.assertTrue(all(x == y for x, y in zip(path[0], x0)))
        for a, b in zip(gaps, gaps[1:]):
            self.assertLessEqual(b, a)
        self.assertGreaterEqual(gaps[-1], 0)

    def test_start_at_optimum_stops(self):
        path, gaps = run_frank_wolfe(P_OPT, P_OPT, 10)
        self.assertEqual(len(path), 1)
        self.assertEqual(gaps[0], 0)


class TestPlotting(unittest.TestCase):
    def test_plots_written(self):
        path, gaps, _ = run_frank_wolfe_experiment(1, mpf('0.45'), P_OPT, 10)
        with tempfile.TemporaryDirectory() as tmp:
            traj = os.path.join(tmp, 'traj.png')
            conv = os.path.join(tmp, 'sub', 'conv.png')
            plot_trajectory_2d(path, P_OPT, out_path=traj)
            plot_convergence(gaps + [mpf(0)], out_path=conv)
            self.assertTrue(os.path.exists(traj))
            self.assertTrue(os.path.exists(conv))


if __name__ == '__main__':
    unittest.main()
