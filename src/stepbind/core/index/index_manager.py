"""Full and incremental indexing of workspace bindings."""

import logging
from collections.abc import Sequence
from pathlib import Path

from stepbind.core.domain.types import Binding, FileChangeEvent, FileChangeKind
from stepbind.core.index.binding_index import BindingIndex, IndexStats
from stepbind.providers.base import BindingIndexOptions, BindingProvider
from stepbind.providers.manager import ProviderManager
from stepbind.providers.workspace import (
    find_files_async,
    is_excluded,
    matches_glob,
    read_source_async,
)

logger = logging.getLogger(__name__)


class IndexManager:
    """Keeps a :class:`BindingIndex` in sync with the workspace."""

    def __init__(self, provider_manager: ProviderManager, index: BindingIndex) -> None:
        self._provider_manager = provider_manager
        self._index = index

    @property
    def index(self) -> BindingIndex:
        return self._index

    def index_options(self) -> BindingIndexOptions:
        settings = self._provider_manager.settings
        return BindingIndexOptions(
            case_insensitive=settings.case_insensitive,
            debug=settings.debug,
            max_concurrent_files=settings.max_concurrent_files,
        )

    async def active_providers(self) -> list[BindingProvider]:
        """Active providers in registration order."""
        selection = await self._provider_manager.detect_providers()
        active_ids = set(selection.active_ids)
        return [
            provider
            for provider in self._provider_manager.list_providers()
            if provider.id in active_ids
        ]

    async def index_all(self) -> IndexStats:
        """Detect providers and rebuild the index for every active one.

        File events applied while the rebuild runs take precedence over
        what the rebuild read for the same files.
        """
        since = self._index.generation
        providers = await self.active_providers()
        active_ids = [provider.id for provider in providers]
        for provider in self._provider_manager.list_providers():
            if provider.id not in active_ids:
                self._index.clear_provider(provider.id)
        self._index.set_active_providers(active_ids)

        for provider in providers:
            await self._index_provider(provider, since)

        stats = self._index.stats()
        logger.info(
            "Indexed %d bindings in %d files from %d providers",
            stats.binding_count,
            stats.file_count,
            stats.provider_count,
        )
        return stats

    async def _index_provider(self, provider: BindingProvider, since: int) -> None:
        settings = self._provider_manager.settings
        limit = settings.max_files_indexed
        files = await find_files_async(
            self._provider_manager.roots,
            provider.binding_globs,
            settings.exclude_patterns,
            limit + 1,
        )
        if len(files) > limit:
            logger.warning(
                "Provider %s matched more than %d files; indexing the first %d",
                provider.id,
                limit,
                limit,
            )
            files = files[:limit]
        files = sorted(files)

        try:
            bindings = await provider.index_bindings(files, self.index_options())
        except Exception as e:
            logger.error("Indexing failed for provider %s: %s", provider.id, e)
            return

        grouped: dict[Path, list[Binding]] = {}
        for binding in bindings:
            grouped.setdefault(binding.location.path, []).append(binding)
        self._index.replace_provider(provider.id, grouped, since)
        logger.debug(
            "Provider %s: %d bindings in %d files",
            provider.id,
            len(bindings),
            len(grouped),
        )

    async def apply_file_event(self, event: FileChangeEvent) -> bool:
        """Bring the index up to date with one file change.

        Returns:
            True when the index changed, False when the event was ignored
            or its result was superseded by a newer update.
        """
        if event.kind is FileChangeKind.DELETED:
            return self._index.remove_file(event.path)

        providers = [
            provider
            for provider in await self.active_providers()
            if self._is_indexed_by(provider, event.path)
        ]
        if not providers:
            return False

        generation = self._index.begin_file_update(event.path)
        try:
            text = await read_source_async(event.path)
        except OSError as e:
            logger.warning("Cannot read %s: %s", event.path, e)
            return self._index.commit_file_update(
                event.path, generation, {provider.id: () for provider in providers}
            )

        options = self.index_options()
        results: dict[str, Sequence[Binding]] = {}
        for provider in providers:
            try:
                results[provider.id] = provider.parse_file(text, event.path, options)
            except Exception as e:
                level = logging.WARNING if options.debug else logging.DEBUG
                logger.log(
                    level, "Provider %s failed on %s: %s", provider.id, event.path, e
                )
                results[provider.id] = ()
        return self._index.commit_file_update(event.path, generation, results)

    def _is_indexed_by(self, provider: BindingProvider, path: Path) -> bool:
        roots = self._provider_manager.roots
        if not matches_glob(path, roots, provider.binding_globs):
            return False
        patterns = self._provider_manager.settings.exclude_patterns
        return not any(
            is_excluded(path, root, patterns)
            for root in roots
            if path.is_relative_to(root)
        )
