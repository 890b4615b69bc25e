import os
import sys
from pathlib import Path


BACKEND_PATH = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.append(str(BACKEND_PATH))

# Settings are read at import time; pin the in-memory backend before any app import.
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["DEMO_MODE"] = "true"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
