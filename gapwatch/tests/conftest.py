from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Point the engine at a throwaway SQLite file before any gapwatch module builds it.
_DB_DIR = Path(tempfile.mkdtemp(prefix="gapwatch-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'gapwatch.db'}"
os.environ["STORE_BACKEND"] = "database"
os.environ["FILE_STORE_DIR"] = str(_DB_DIR / "files")
