"""Round-robin pool of Gemini API keys.

The rotator is owned by the caller and passed to `GeminiClient`; there is no
module-level key state. `next_key()` reads and advances the cursor without
awaiting, so concurrent tasks on one event loop never share a slot.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

from exam_agent.utils.errors import NoKeysConfigured
from exam_agent.utils.settings import Settings, get_settings, split_api_keys

logger = logging.getLogger(__name__)


class KeyRotator:
    def __init__(self, keys: Union[str, Iterable[str]] = ()) -> None:
        self._keys: List[str] = []
        self._cursor = 0
        self.set_keys(keys)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "KeyRotator":
        settings = settings or get_settings()
        return cls(settings.api_key_list())

    def set_keys(self, keys: Union[str, Iterable[str]]) -> None:
        """Replace the pool with the non-blank keys and restart at slot 0.

        A single string is read as a comma/newline separated pool, like GEMINI_API_KEYS.
        """
        if isinstance(keys, str):
            keys = split_api_keys(keys)
        self._keys = [str(k).strip() for k in (keys or []) if k is not None and str(k).strip()]
        self._cursor = 0
        logger.info("Gemini key pool set: %d key(s)", len(self._keys))

    def next_key(self) -> str:
        return self.next_slot()[1]

    def next_slot(self) -> tuple[int, str]:
        """Return (slot index, key) and advance. Slot index is safe to log."""
        if not self._keys:
            raise NoKeysConfigured()
        slot = self._cursor
        key = self._keys[slot]
        self._cursor = (slot + 1) % len(self._keys)
        return slot, key

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"KeyRotator(size={len(self._keys)}, cursor={self._cursor})"
