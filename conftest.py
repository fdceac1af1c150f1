"""Root conftest.py: import permutest from the local src tree rather than an installed copy."""

from __future__ import annotations

import sys
from pathlib import Path

# Insert the source root at the front of sys.path so that
# `import permutest` always resolves to the local source tree,
# even if an older permutest is installed in the environment.
_src_root = str(Path(__file__).parent / "src")
if _src_root not in sys.path:
    sys.path.insert(0, _src_root)
