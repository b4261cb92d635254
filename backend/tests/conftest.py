# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Import-time settings must be deterministic regardless of shell env, and must
# never point the module-level app at a real data directory.
os.environ["ENVIRONMENT"] = "dev"
os.environ["AUTH_MODE"] = "session"
os.environ["DATA_FILE"] = str(Path(tempfile.gettempdir()) / "tasksync-tests" / "tasks.json")
os.environ["USERNAME"] = "admin"
os.environ["PASSWORD"] = "admin"
os.environ.pop("STATIC_DIR", None)
