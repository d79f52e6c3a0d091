"""Run configuration for the worst-case scripts, with .env overrides."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

# Working precision in bits
PRECISION_BITS = int(os.environ.get("FW_PRECISION_BITS", "1000"))

# Epoch counter tolerance and bisection step budget
EPS = float(os.environ.get("FW_EPS", "1e-10"))
MAX_STEPS = int(os.environ.get("FW_MAX_STEPS", "1000"))

# Optimum on the unit circle used by the verification runs
P_OPT = (0.0, 1.0)

# Paths
DATA_DIR = os.environ.get("FW_DATA_DIR", "data")
PLOT_DIR = os.environ.get("FW_PLOT_DIR", "plots")
