"""Logging and results files shared by the run scripts."""
import json
import os
from datetime import datetime


def log(msg):
    """Timestamped, flushed log line."""
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


def run_timestamp():
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def results_path(data_dir, prefix, timestamp):
    """data_dir/{prefix}_{timestamp}.json, creating data_dir if needed."""
    os.makedirs(data_dir, exist_ok=True)
    return os.path.join(data_dir, f"{prefix}_{timestamp}.json")


def save_results(results, path):
    """Write results as JSON through a temp file and os.replace.

    mpf values are written with str(), at the decimal digits of the
    working precision, and read back with mpf(text).
    """
    tmp = path + ".tmp"
    with open(tmp, 'w') as f:
        json.dump(results, f, indent=2, default=str)
    os.replace(tmp, path)
