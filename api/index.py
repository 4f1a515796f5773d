import sys
from pathlib import Path

# Serverless entry point: put backend/ on the path so `propcrawl` imports.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from propcrawl.main import app  # noqa: E402, F401
