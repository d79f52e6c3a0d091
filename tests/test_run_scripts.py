"""End-to-end and fail-closed tests for the run scripts."""
import argparse
import json
import os
import sys
import tempfile
import unittest
from unittest import mock

from mpmath import mp, mpf

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
import run_backward
import run_bisection
from fw_worstcase.core import ParityInvariantError
from fw_worstcase.runlog import results_path, save_results


def _load_single(tmp, prefix):
    files = [f for f in os.listdir(tmp)
             if f.startswith(prefix) and f.endswith(".json")]
    assert len(files) == 1, files
    with open(os.path.join(tmp, files[0])) as f:
        return json.load(f)


class TestRunBackward(unittest.TestCase):
    def setUp(self):
        self._prec = mp.prec

    def tearDown(self):
        mp.prec = self._prec

    def test_trace_only(self):
        with tempfile.TemporaryDirectory() as tmp:
            results = run_backward.main([
                "--precision", "128", "--epsilon", "0.001",
                "--no-verify", "--data-dir", tmp])
            saved = _load_single(tmp, "backward_")
        self.assertEqual(results["status"], "complete")
        self.assertEqual(saved["status"], "complete")
        self.assertEqual(saved["parameters"]["precision_bits"], 128)
        self.assertGreater(saved["trace"]["step_count"], 0)
        self.assertIn(saved["trace"]["stop_reason"], ("boundary", "threshold"))
        self.assertNotIn("verification", saved)
        # mpf values are stored as full-precision strings
        self.assertGreater(mpf(saved["trace"]["r_final"]), 0)

    def test_default_epsilon_is_inverse_precision(self):
        with tempfile.TemporaryDirectory() as tmp:
            results = run_backward.main([
                "--precision", "100", "--no-verify", "--data-dir", tmp])
        self.assertEqual(results["parameters"]["epsilon"], mpf(1) / 100)

    def test_malformed_epsilon_is_argument_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            for bad in ("abc", "-1e-3", "0", "inf"):
                with mock.patch("sys.stderr"):
                    with self.assertRaises(SystemExit) as cm:
                        run_backward.main(["--epsilon", bad, "--no-verify",
                                           "--data-dir", tmp])
                self.assertEqual(cm.exception.code, 2)
            self.assertEqual(os.listdir(tmp), [])

    def test_seed_residual_keeps_text(self):
        self.assertEqual(run_backward.seed_residual("1e-4"), "1e-4")
        with self.assertRaises(argparse.ArgumentTypeError):
            run_backward.seed_residual("0.001x")


class TestRunBisection(unittest.TestCase):
    def setUp(self):
        self._prec = mp.prec

    def tearDown(self):
        mp.prec = self._prec

    def test_full_run_with_scan_and_plots(self):
        with tempfile.TemporaryDirectory() as tmp:
            plot_dir = os.path.join(tmp, "plots")
            with mock.patch.object(run_bisection.config, "PLOT_DIR", plot_dir):
                results = run_bisection.main([
                    "--precision", "64", "--scan", "51", "--plot",
                    "--data-dir", tmp])
            saved = _load_single(tmp, "bisection_")
            n_plots = len(os.listdir(plot_dir))
        self.assertEqual(results["status"], "complete")
        self.assertTrue(saved["scan"]["endpoint_parities_differ"])
        self.assertEqual(saved["scan"]["n_sentinel"], 0)
        self.assertTrue(saved["search"]["converged"])
        s_max = mpf(saved["search"]["s_max"])
        self.assertTrue(mpf("0.4") < s_max < mpf("0.5"))
        max_count = saved["search"]["max_count"]
        self.assertGreater(max_count, 0)
        self.assertEqual(saved["verification"]["iterations"], min(max_count, 64))
        self.assertEqual(n_plots, 2)

    def test_parity_failure_is_fail_closed(self):
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.object(run_bisection, "parity_bisection",
                                   side_effect=ParityInvariantError("boom")):
                with self.assertRaises(SystemExit) as cm:
                    run_bisection.main(["--precision", "64", "--data-dir", tmp])
            saved = _load_single(tmp, "bisection_")
        self.assertEqual(cm.exception.code, 2)
        self.assertEqual(saved["status"], "failed")
        self.assertIn("parity", saved["failure_reason"])
        self.assertNotIn("search", saved)

    def test_scan_with_agreeing_parities_aborts(self):
        fake_scan = {
            "s_peak": 0.45, "peak_count": 2, "n_sentinel": 0,
            "endpoint_parities_differ": False,
        }
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.object(run_bisection, "scan_interval",
                                   return_value=fake_scan), \
                    mock.patch.object(run_bisection, "parity_bisection") as pb:
                with self.assertRaises(SystemExit) as cm:
                    run_bisection.main(["--precision", "64", "--scan", "11",
                                        "--data-dir", tmp])
            saved = _load_single(tmp, "bisection_")
        self.assertEqual(cm.exception.code, 2)
        pb.assert_not_called()
        self.assertEqual(saved["status"], "failed")


class TestRunlog(unittest.TestCase):
    def test_results_path_creates_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            data_dir = os.path.join(tmp, "nested", "data")
            path = results_path(data_dir, "backward", "20260101_000000")
            self.assertTrue(os.path.isdir(data_dir))
        self.assertEqual(os.path.basename(path),
                         "backward_20260101_000000.json")

    def test_save_results_keeps_mpf_digits(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "r.json")
            prec = mp.prec
            try:
                mp.prec = 200
                x = mpf(1) / 3
                save_results({"x": x, "n": 3}, path)
                with open(path) as f:
                    saved = json.load(f)
                self.assertLess(abs(mpf(saved["x"]) - x), mpf(2) ** -190)
            finally:
                mp.prec = prec
            self.assertEqual(saved["n"], 3)
            self.assertEqual(os.listdir(tmp), ["r.json"])


if __name__ == "__main__":
    unittest.main()
