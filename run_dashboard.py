#!/usr/bin/env python3
"""Direct launcher for the Family Finance dashboard.

Runs Streamlit on ``family_finance/dashboard.py`` from the project root so
that the package imports resolve without installation.
"""

import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.resolve()
app = project_root / "family_finance" / "dashboard.py"

if __name__ == "__main__":
    subprocess.run(
        [sys.executable, "-m", "streamlit", "run", str(app)],
        cwd=project_root,
        check=False,
    )
