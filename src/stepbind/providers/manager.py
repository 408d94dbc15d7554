"""Provider registry, detection and active-provider selection."""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from stepbind.core.config.settings import ResolverSettings
from stepbind.providers.base import (
    BindingProvider,
    DetectionResult,
    ProviderDetectionReport,
    ProviderSelection,
    SupportsExcludePatterns,
)
from stepbind.providers.report import format_detection_report

logger = logging.getLogger(__name__)


class ProviderManager:
    """Runs detection across registered providers and caches the selection.

    The selection stays cached until :meth:`invalidate_cache` is called,
    a provider is registered, the roots change, or the active threshold
    is updated.
    """

    def __init__(
        self,
        roots: Sequence[Path] = (),
        settings: ResolverSettings | None = None,
        providers: Iterable[BindingProvider] = (),
    ) -> None:
        self._roots = tuple(roots)
        self._settings = settings or ResolverSettings()
        self._providers: dict[str, BindingProvider] = {}
        self._cached_selection: ProviderSelection | None = None
        self._cache_epoch = 0
        self._detect_lock = asyncio.Lock()
        for provider in providers:
            self.register(provider)

    @property
    def settings(self) -> ResolverSettings:
        return self._settings

    @property
    def roots(self) -> tuple[Path, ...]:
        return self._roots

    def set_roots(self, roots: Sequence[Path]) -> None:
        """Replace the workspace roots and drop the cached selection."""
        self._roots = tuple(roots)
        self.invalidate_cache()

    def register(self, provider: BindingProvider) -> None:
        """Register a provider; an existing id is replaced in place."""
        if provider.id in self._providers:
            logger.debug("Replacing provider %s", provider.id)
        self._providers[provider.id] = provider
        self.invalidate_cache()

    def unregister(self, provider_id: str) -> bool:
        removed = self._providers.pop(provider_id, None) is not None
        if removed:
            self.invalidate_cache()
        return removed

    def get_provider(self, provider_id: str) -> BindingProvider | None:
        return self._providers.get(provider_id)

    def list_providers(self) -> list[BindingProvider]:
        """Registered providers in registration order."""
        return list(self._providers.values())

    def provider_exists(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def get_cached_selection(self) -> ProviderSelection | None:
        return self._cached_selection

    def invalidate_cache(self) -> None:
        self._cached_selection = None
        self._cache_epoch += 1

    async def detect_providers(self) -> ProviderSelection:
        """Return the cached selection, running detection if needed.

        Every provider is scored concurrently. A provider that raises
        contributes a zero-confidence result instead of failing the run.
        A run invalidated while in flight is returned but not cached.
        """
        if self._cached_selection is not None:
            return self._cached_selection

        async with self._detect_lock:
            if self._cached_selection is not None:
                return self._cached_selection
            epoch = self._cache_epoch
            selection = await self._run_detection()
            if epoch == self._cache_epoch:
                self._cached_selection = selection
            else:
                logger.debug("Detection result is stale; not caching it")
            return selection

    async def _run_detection(self) -> ProviderSelection:
        providers = self.list_providers()
        if self._roots:
            results = await asyncio.gather(
                *(self._detect_one(provider) for provider in providers)
            )
        else:
            results = [DetectionResult.none("No workspace folders") for _ in providers]

        threshold = self._settings.active_threshold
        entries = [
            ProviderDetectionReport(
                provider_id=provider.id,
                display_name=provider.display_name,
                detection=result,
                active=result.confidence >= threshold,
            )
            for provider, result in zip(providers, results, strict=True)
        ]
        # sorted() is stable, so equal confidences keep registration order
        ranked = sorted(
            zip(providers, entries, strict=True),
            key=lambda pair: pair[1].confidence,
            reverse=True,
        )

        active = tuple(provider for provider, entry in ranked if entry.active)
        primary = None
        if ranked and ranked[0][1].confidence > 0:
            primary = ranked[0][0]

        selection = ProviderSelection(
            active=active,
            primary=primary,
            report=tuple(entry for _, entry in ranked),
            detected_at=datetime.now(UTC),
            active_threshold=threshold,
        )
        logger.info(
            "Provider detection complete: active=%s primary=%s",
            ", ".join(selection.active_ids) or "none",
            primary.id if primary else "none",
        )
        return selection

    async def _detect_one(self, provider: BindingProvider) -> DetectionResult:
        try:
            result = await provider.detect(self._roots)
        except Exception as e:
            logger.warning("Detection failed for provider %s: %s", provider.id, e)
            return DetectionResult.none(f"Detection error: {e}")
        if self._settings.debug:
            logger.debug(
                "Provider %s scored %.2f: %s",
                provider.id,
                result.confidence,
                "; ".join(result.reasons),
            )
        return result

    def update_config(self, **changes: Any) -> ResolverSettings:
        """Apply settings changes.

        New ``exclude_patterns`` are handed to every provider that searches
        with them. A change to ``active_threshold`` or ``exclude_patterns``
        invalidates the cached selection; other settings leave it in place.

        Raises:
            pydantic.ValidationError: If a value is invalid or unknown.
        """
        self._settings = self._settings.with_changes(**changes)
        if "exclude_patterns" in changes:
            patterns = tuple(self._settings.exclude_patterns)
            for provider in self._providers.values():
                if isinstance(provider, SupportsExcludePatterns):
                    provider.exclude_patterns = patterns
        if "active_threshold" in changes or "exclude_patterns" in changes:
            self.invalidate_cache()
        return self._settings

    def get_detection_report(self) -> str:
        return format_detection_report(self._cached_selection)
