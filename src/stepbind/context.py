"""Resolver context grouping the manager, index and resolver of a workspace."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from stepbind.core.config.settings import ResolverSettings
from stepbind.core.domain.types import (
    ExamplesTable,
    FileChangeEvent,
    GherkinStep,
    ResolutionResult,
)
from stepbind.core.index.binding_index import BindingIndex, IndexStats
from stepbind.core.index.index_manager import IndexManager
from stepbind.core.matching.resolver import StepResolver
from stepbind.providers import BindingProvider, ProviderManager, default_providers

logger = logging.getLogger(__name__)

# Settings whose change makes the current index stale
_REINDEX_SETTINGS = frozenset(
    {"active_threshold", "case_insensitive", "exclude_patterns", "max_files_indexed"}
)


@dataclass(frozen=True)
class ResolverContext:
    """Everything needed to index a workspace and resolve its steps.

    One context per workspace replaces process-wide singletons: tests
    and hosts build as many independent contexts as they need, and
    :meth:`rebuild` gives a fresh one with the same configuration.
    """

    roots: tuple[Path, ...]
    provider_manager: ProviderManager
    index: BindingIndex
    index_manager: IndexManager
    resolver: StepResolver

    @classmethod
    def create(
        cls,
        roots: Sequence[str | Path] = (),
        settings: ResolverSettings | None = None,
        providers: Iterable[BindingProvider] | None = None,
    ) -> ResolverContext:
        """Build a context for ``roots``.

        Args:
            roots: Workspace root directories.
            settings: Resolver settings; defaults when omitted.
            providers: Providers to register; the built-in C# providers
                when omitted.

        Returns:
            New ResolverContext with an empty index.
        """
        settings = settings or ResolverSettings()
        resolved_roots = tuple(Path(root).resolve() for root in roots)
        if providers is None:
            providers = default_providers(settings.exclude_patterns)
        provider_manager = ProviderManager(resolved_roots, settings, providers)
        index = BindingIndex()
        return cls(
            roots=resolved_roots,
            provider_manager=provider_manager,
            index=index,
            index_manager=IndexManager(provider_manager, index),
            resolver=StepResolver(),
        )

    @property
    def settings(self) -> ResolverSettings:
        return self.provider_manager.settings

    def rebuild(self) -> ResolverContext:
        """Fresh context with the same roots, settings and providers."""
        return ResolverContext.create(
            self.roots, self.settings, self.provider_manager.list_providers()
        )

    async def refresh(self) -> IndexStats:
        """Re-run detection and rebuild the whole index."""
        self.provider_manager.invalidate_cache()
        return await self.index_manager.index_all()

    async def update_settings(self, **changes: Any) -> ResolverSettings:
        """Apply settings changes, reindexing when the index would be stale."""
        settings = self.provider_manager.update_config(**changes)
        if _REINDEX_SETTINGS.intersection(changes):
            logger.debug("Settings %s changed; reindexing", sorted(changes))
            await self.refresh()
        return settings

    async def apply_file_event(self, event: FileChangeEvent) -> bool:
        return await self.index_manager.apply_file_event(event)

    def resolve(
        self, step: GherkinStep, examples: Sequence[ExamplesTable] = ()
    ) -> ResolutionResult:
        return self.resolver.resolve(step, self.index, examples)
