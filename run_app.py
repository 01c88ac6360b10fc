"""Local runner for the face vitals service with src/ layout.

Usage: python run_app.py  (serves on http://127.0.0.1:8000, logs under logs/)
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    # Ensure src/ is on sys.path so `import facevitals` resolves
    root = Path(__file__).resolve().parent
    src = root / "src"
    if src.exists():
        sys.path.insert(0, str(src))
    from facevitals.service import main as service_main  # type: ignore

    service_main()


if __name__ == "__main__":
    main()
