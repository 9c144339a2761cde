import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from .tokenizer import format_bytes

log = logging.getLogger("gateway.optimizer")

MB = 1024 * 1024
FINGERPRINT_LENGTH = 16
EVICTION_TARGET_RATIO = 0.8


class FileTooLargeError(ValueError):
    def __init__(self, size_bytes: int, max_bytes: int):
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f"File too large: {size_bytes / MB:.2f}MB (max {max_bytes / MB:g}MB)"
        )


def fingerprint(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


@dataclass
class StoredContent:
    id: str
    raw_content: str = field(repr=False)
    original_size: int
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    uploaded_at: float = field(default_factory=time.time)

    @property
    def is_upload(self) -> bool:
        return self.filename is not None

    @property
    def url(self) -> str:
        return f"/api/files/{self.id}"

    def reference(self, filename: Optional[str] = None) -> str:
        name = filename or self.filename or "content"
        return f"[File: {name} ({format_bytes(self.original_size)}) - ID: {self.id}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "originalSize": self.original_size,
            "uploadedAt": self.uploaded_at,
            "url": self.url,
        }


class ContentStore:
    """Content-addressed, size-bounded store shared by uploads and extracted blocks.

    Entries are kept in upload order, so eviction pops from the front.
    All mutating paths hold ``_lock``; eviction followed by insert must not
    interleave with another writer.
    """

    def __init__(
        self,
        max_total_bytes: int = 100 * MB,
        max_item_bytes: int = 10 * MB,
        clock: Callable[[], float] = time.time,
    ):
        self.max_total_bytes = max_total_bytes
        self.max_item_bytes = max_item_bytes
        self.clock = clock
        self.entries: "OrderedDict[str, StoredContent]" = OrderedDict()
        self.total_bytes = 0
        self._lock = threading.RLock()

    def put(
        self,
        raw_content: str,
        filename: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> Tuple[StoredContent, str]:
        size = len(raw_content.encode("utf-8"))
        if size > self.max_item_bytes:
            log.warning(f"Rejected {filename or 'inline block'}: {format_bytes(size)} over per-item limit")
            raise FileTooLargeError(size, self.max_item_bytes)

        content_id = fingerprint(raw_content)
        with self._lock:
            existing = self.entries.get(content_id)
            if existing:
                if filename is not None and not existing.is_upload:
                    # an extracted block uploaded later becomes a file
                    existing.filename = filename
                    existing.mime_type = mime_type
                return existing, existing.reference(filename)

            if self.total_bytes + size > self.max_total_bytes:
                self._evict_for(size)

            entry = StoredContent(
                id=content_id,
                raw_content=raw_content,
                original_size=size,
                filename=filename,
                mime_type=mime_type,
                uploaded_at=self.clock(),
            )
            self.entries[content_id] = entry
            self.total_bytes += size
        return entry, entry.reference()

    def get(self, content_id: str) -> Optional[str]:
        entry = self.entries.get(content_id)
        return entry.raw_content if entry else None

    def get_entry(self, content_id: str) -> Optional[StoredContent]:
        return self.entries.get(content_id)

    def clear_expired(self, max_age_ms: int) -> int:
        now = self.clock()
        cleared = 0
        freed = 0
        with self._lock:
            for content_id in list(self.entries):
                entry = self.entries[content_id]
                if (now - entry.uploaded_at) * 1000 > max_age_ms:
                    freed += self._remove(content_id)
                    cleared += 1
        if cleared:
            log.info(f"Cleared {cleared} expired entries ({format_bytes(freed)}) from cache")
        return cleared

    def clear(self) -> None:
        with self._lock:
            self.entries.clear()
            self.total_bytes = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "files_referenced": sum(1 for entry in self.entries.values() if entry.is_upload),
                "cache_size": len(self.entries),
                "total_bytes_cached": self.total_bytes,
            }

    def __contains__(self, content_id: str) -> bool:
        return content_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def _evict_for(self, incoming: int) -> None:
        target = self.max_total_bytes * EVICTION_TARGET_RATIO
        evicted = 0
        freed = 0
        while self.entries and self.total_bytes + incoming > target:
            oldest_id = next(iter(self.entries))
            freed += self._remove(oldest_id)
            evicted += 1
        log.info(f"Evicted {evicted} entries, freed {format_bytes(freed)}")

    def _remove(self, content_id: str) -> int:
        entry = self.entries.pop(content_id, None)
        if not entry:
            return 0
        self.total_bytes -= entry.original_size
        return entry.original_size
