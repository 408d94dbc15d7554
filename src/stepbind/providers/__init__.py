"""Framework-specific binding providers and provider selection."""

from collections.abc import Sequence

from stepbind.core.config.settings import DEFAULT_EXCLUDE_PATTERNS
from stepbind.providers.base import (
    BindingIndexOptions,
    BindingProvider,
    DetectionResult,
    ProviderDetectionReport,
    ProviderSelection,
    SupportsExcludePatterns,
)
from stepbind.providers.csharp_reqnroll import ReqnrollProvider
from stepbind.providers.csharp_specflow import SpecFlowProvider
from stepbind.providers.manager import ProviderManager


def default_providers(
    exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
) -> list[BindingProvider]:
    """Providers registered when none are supplied explicitly."""
    return [ReqnrollProvider(exclude_patterns), SpecFlowProvider(exclude_patterns)]


__all__ = [
    "BindingIndexOptions",
    "BindingProvider",
    "DetectionResult",
    "ProviderDetectionReport",
    "ProviderManager",
    "ProviderSelection",
    "ReqnrollProvider",
    "SpecFlowProvider",
    "SupportsExcludePatterns",
    "default_providers",
]
