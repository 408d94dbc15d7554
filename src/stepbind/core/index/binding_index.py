"""In-memory index of bindings grouped by provider and file.

Writers replace whole files under a lock and publish a new immutable
snapshot; readers only ever see a complete snapshot. Incremental updates
use generation tickets so a slow reparse cannot overwrite a newer one.
"""

import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stepbind.core.domain.types import Binding, StepKeyword

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexStats:
    """Counts describing the current index contents."""

    provider_count: int
    file_count: int
    binding_count: int
    bindings_per_provider: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "providers": self.provider_count,
            "files": self.file_count,
            "bindings": self.binding_count,
            "bindings_per_provider": dict(self.bindings_per_provider),
        }


class BindingIndex:
    """Bindings by provider id, then by file.

    The flattened view covers active providers only, ordered by provider
    (in the order given to :meth:`set_active_providers`), then file path,
    then position in the file. Until active providers are set, every
    provider is visible in insertion order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._files: dict[str, dict[Path, tuple[Binding, ...]]] = {}
        self._active_ids: tuple[str, ...] | None = None
        self._snapshot: tuple[Binding, ...] = ()
        self._generations: dict[Path, int] = {}
        self._generation_counter = 0

    def set_active_providers(self, provider_ids: Sequence[str]) -> None:
        with self._lock:
            self._active_ids = tuple(provider_ids)
            self._publish()

    @property
    def active_providers(self) -> tuple[str, ...]:
        with self._lock:
            return self._visible_ids()

    def replace_file(
        self, provider_id: str, path: Path, bindings: Iterable[Binding]
    ) -> None:
        """Replace every binding ``provider_id`` holds for ``path``."""
        with self._lock:
            self._store(provider_id, path, tuple(bindings))
            self._publish()

    @property
    def generation(self) -> int:
        """Latest ticket handed out; a full reindex records it before reading."""
        with self._lock:
            return self._generation_counter

    def replace_provider(
        self,
        provider_id: str,
        files: Mapping[Path, Sequence[Binding]],
        since: int | None = None,
    ) -> None:
        """Swap in a complete set of files for one provider.

        Args:
            provider_id: Provider whose files are replaced.
            files: Bindings per file as read by the reindex.
            since: Value of :attr:`generation` taken before the files were
                read. Files updated or removed after that keep their
                current entry instead of the older content.
        """
        with self._lock:
            current = self._files.get(provider_id, {})
            fresh = {
                path: tuple(bindings) for path, bindings in files.items() if bindings
            }
            if since is not None:
                for path, generation in self._generations.items():
                    if generation <= since:
                        continue
                    logger.debug("Keeping newer entry for %s over reindex", path)
                    fresh.pop(path, None)
                    if path in current:
                        fresh[path] = current[path]
            self._files[provider_id] = fresh
            self._publish()

    def remove_file(self, path: Path) -> bool:
        """Drop ``path`` from every provider.

        Also supersedes any pending update for the file.
        """
        with self._lock:
            self._next_generation(path)
            removed = False
            for files in self._files.values():
                removed = files.pop(path, None) is not None or removed
            if removed:
                self._publish()
            return removed

    def clear_provider(self, provider_id: str) -> None:
        with self._lock:
            if self._files.pop(provider_id, None) is not None:
                self._publish()

    def clear(self) -> None:
        with self._lock:
            self._files.clear()
            self._generations.clear()
            self._publish()

    def begin_file_update(self, path: Path) -> int:
        """Take a ticket for reparsing ``path``; later tickets supersede it."""
        with self._lock:
            return self._next_generation(path)

    def commit_file_update(
        self,
        path: Path,
        generation: int,
        bindings_by_provider: Mapping[str, Sequence[Binding]],
    ) -> bool:
        """Apply a reparse result if its ticket is still the newest.

        Args:
            path: File that was reparsed.
            generation: Ticket from :meth:`begin_file_update`.
            bindings_by_provider: New bindings per provider; providers not
                listed keep their current entries for the file.

        Returns:
            False when the result was superseded and discarded.
        """
        with self._lock:
            if self._generations.get(path) != generation:
                logger.debug("Discarding superseded update for %s", path)
                return False
            for provider_id, bindings in bindings_by_provider.items():
                self._store(provider_id, path, tuple(bindings))
            self._publish()
            return True

    def all_bindings(self) -> tuple[Binding, ...]:
        """Snapshot of bindings from active providers, in index order."""
        return self._snapshot

    def bindings_for_keyword(self, keyword: StepKeyword) -> tuple[Binding, ...]:
        return tuple(b for b in self._snapshot if b.keyword.accepts(keyword))

    def bindings_for_file(self, path: Path) -> tuple[Binding, ...]:
        return tuple(b for b in self._snapshot if b.location.path == path)

    def provider_bindings(self, provider_id: str) -> tuple[Binding, ...]:
        """All bindings a provider holds, whether or not it is active."""
        with self._lock:
            files = self._files.get(provider_id, {})
            return tuple(b for path in sorted(files) for b in files[path])

    def files(self, provider_id: str | None = None) -> list[Path]:
        with self._lock:
            if provider_id is not None:
                return sorted(self._files.get(provider_id, {}))
            return sorted({path for files in self._files.values() for path in files})

    def stats(self) -> IndexStats:
        with self._lock:
            visible = self._visible_ids()
            per_provider = {
                provider_id: sum(
                    len(bindings)
                    for bindings in self._files.get(provider_id, {}).values()
                )
                for provider_id in visible
            }
            file_count = len(
                {path for pid in visible for path in self._files.get(pid, {})}
            )
        return IndexStats(
            provider_count=len(visible),
            file_count=file_count,
            binding_count=sum(per_provider.values()),
            bindings_per_provider=per_provider,
        )

    def _store(
        self, provider_id: str, path: Path, bindings: tuple[Binding, ...]
    ) -> None:
        files = self._files.setdefault(provider_id, {})
        if bindings:
            files[path] = bindings
        else:
            files.pop(path, None)

    def _next_generation(self, path: Path) -> int:
        self._generation_counter += 1
        self._generations[path] = self._generation_counter
        return self._generation_counter

    def _visible_ids(self) -> tuple[str, ...]:
        if self._active_ids is None:
            return tuple(self._files)
        return self._active_ids

    def _publish(self) -> None:
        snapshot: list[Binding] = []
        for provider_id in self._visible_ids():
            files = self._files.get(provider_id, {})
            for path in sorted(files):
                snapshot.extend(files[path])
        self._snapshot = tuple(snapshot)
