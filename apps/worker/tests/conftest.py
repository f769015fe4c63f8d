# ruff: noqa: E402
import os
import sys
from pathlib import Path

WORKER_ROOT = Path(__file__).resolve().parents[1]
API_ROOT = Path(__file__).resolve().parents[2] / "api"
REPO_ROOT = Path(__file__).resolve().parents[3]
for path in (WORKER_ROOT, API_ROOT, REPO_ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

os.environ.setdefault("DATABASE_URL", "sqlite://")
