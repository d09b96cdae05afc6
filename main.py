from __future__ import annotations

import sys
from pathlib import Path

# Allow running from project root without installing as a package
this_file = Path(__file__).resolve()
project_root = this_file.parent
sys.path.insert(0, str(project_root))  # so 'paintmix' is importable

from paintmix.cli import main


if __name__ == "__main__":
    sys.exit(main())
