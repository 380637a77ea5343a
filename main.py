import sys
from pathlib import Path

# allow `python main.py ...` from a checkout without installing
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tuisetup.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
