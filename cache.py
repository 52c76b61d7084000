"""
Explicit parse cache keyed by file content.

Identical bytes declared as the same kind parse to the same result under the
same settings on the same day, so the cache key is (sha256 of the bytes,
kind, scope). The scope is an opaque string supplied by the processor that
fingerprints its settings and its "today". Entries are stored and returned as
deep copies; callers never share record lists with the cache.
"""
import hashlib
import logging
from typing import Dict, Optional, Tuple

from schema import FileKind, ParseResult

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, FileKind, str]


def content_hash(data: bytes) -> str:
    """SHA256 hex digest of raw file bytes."""
    return hashlib.sha256(data).hexdigest()


class ParseCache:
    """In-memory cache of successful parse results."""

    def __init__(self, max_entries: Optional[int] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.max_entries = max_entries
        self._entries: Dict[CacheKey, ParseResult] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    @staticmethod
    def key_for(data: bytes, kind: FileKind, scope: str = "") -> CacheKey:
        return content_hash(data), FileKind(kind), scope

    def get(self, data: bytes, kind: FileKind, scope: str = "") -> Optional[ParseResult]:
        entry = self._entries.get(self.key_for(data, kind, scope))
        if entry is None:
            return None
        return entry.model_copy(deep=True)

    def put(self, data: bytes, kind: FileKind, result: ParseResult, scope: str = "") -> None:
        key = self.key_for(data, kind, scope)
        if self.max_entries is not None and key not in self._entries and len(self._entries) >= self.max_entries:
            # Oldest entry first; dicts keep insertion order
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            self.logger.debug(f"Evicted cache entry {oldest[0][:12]}")
        self._entries[key] = result.model_copy(deep=True)

    def clear(self) -> None:
        self._entries.clear()
