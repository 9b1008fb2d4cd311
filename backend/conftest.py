# Pytest may start from the repository root; put backend/ on sys.path so
# the ``app`` package resolves the same way it does under uvicorn.
from pathlib import Path
import sys

BACKEND_DIR = str(Path(__file__).resolve().parent)
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)
