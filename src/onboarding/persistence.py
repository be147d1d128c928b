"""
Draft persistence for the onboarding wizard.

The engine talks to a PersistenceAdapter (read/write/clear) and never to a
storage backend directly. Reads never raise: a missing, unreadable, or
corrupt draft just means "start fresh".

Backends:
- MemoryPersistence: process-local store, one slot per namespace
- FilePersistence: one JSON file per namespace in a directory
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path

from .state import DraftSnapshot

logger = logging.getLogger(__name__)


class PersistenceAdapter(ABC):
    """Stores at most one draft per namespace. Last writer wins."""

    def __init__(self, namespace: str):
        self.namespace = namespace

    def read(self) -> DraftSnapshot | None:
        """Load the draft, or None if absent or unusable."""
        try:
            raw = self._load()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load onboarding draft {self.namespace!r}: {e}")
            return None
        if raw is None:
            return None
        try:
            return DraftSnapshot.from_json(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding malformed onboarding draft {self.namespace!r}: {e}")
            return None

    def write(self, snapshot: DraftSnapshot) -> None:
        self._save(snapshot.to_json())

    def clear(self) -> None:
        self._delete()

    @abstractmethod
    def _load(self) -> str | None:
        """Raw serialized draft, or None."""

    @abstractmethod
    def _save(self, raw: str) -> None:
        ...

    @abstractmethod
    def _delete(self) -> None:
        ...


# Process-local draft store shared by MemoryPersistence instances
_memory_store: dict[str, str] = {}


class MemoryPersistence(PersistenceAdapter):
    """Draft kept in a dict for the life of the process."""

    def __init__(self, namespace: str, store: dict[str, str] | None = None):
        super().__init__(namespace)
        self.store = _memory_store if store is None else store

    def _load(self) -> str | None:
        return self.store.get(self.namespace)

    def _save(self, raw: str) -> None:
        self.store[self.namespace] = raw

    def _delete(self) -> None:
        self.store.pop(self.namespace, None)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class FilePersistence(PersistenceAdapter):
    """
    Draft kept as ``<directory>/<namespace>.json``.

    Writes go through a temp file and a rename, so a crash mid-write leaves
    the previous draft in place. Write and delete failures are logged, not
    raised: the draft is a convenience, not a record.
    """

    def __init__(self, namespace: str, directory: Path | str):
        super().__init__(namespace)
        self.directory = Path(directory)
        self.path = self.directory / f"{_UNSAFE_CHARS.sub('_', namespace)}.json"

    def _load(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _save(self, raw: str) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(raw, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning(f"Failed to save onboarding draft to {self.path}: {e}")

    def _delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clear onboarding draft {self.path}: {e}")


def build_persistence(namespace: str | None = None) -> PersistenceAdapter:
    """Adapter for the configured storage backend."""
    from .config import get_settings

    settings = get_settings()
    namespace = namespace or settings.storage_namespace
    if settings.storage_backend == "file":
        return FilePersistence(namespace, settings.draft_dir)
    return MemoryPersistence(namespace)
