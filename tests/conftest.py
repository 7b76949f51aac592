import sys
from pathlib import Path

# Ensure the repository root (flat modules) and the tests directory (sample
# schema) are importable without installing the package
ROOT = Path(__file__).resolve().parents[1]
TESTS = Path(__file__).resolve().parent
for path in (ROOT, TESTS):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
