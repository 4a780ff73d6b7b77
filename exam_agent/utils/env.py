from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

CHECKOUT_ROOT = Path(__file__).resolve().parents[2]


def load_project_dotenv(*, override: bool = False) -> Optional[Path]:
    """
    Load the nearest `.env` into `os.environ` and return its path.

    The search starts at the working directory (so `exam-extract` run from a
    data folder picks up that folder's keys) and falls back to the checkout
    root. Existing environment variables win unless `override` is set.
    """
    candidates = []
    found = find_dotenv(usecwd=True)
    if found:
        candidates.append(Path(found))
    candidates.append(CHECKOUT_ROOT / ".env")

    for path in candidates:
        if path.is_file():
            load_dotenv(path, override=override)
            return path
    return None
