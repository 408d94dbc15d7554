"""Binding provider contract and detection result types."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from stepbind.core.domain.types import Binding


@dataclass(frozen=True)
class BindingIndexOptions:
    """Options passed to providers when they parse source files."""

    case_insensitive: bool = False
    debug: bool = False
    max_concurrent_files: int = 16


@dataclass(frozen=True)
class DetectionResult:
    """How strongly a workspace looks like it uses one framework.

    Confidence is clamped into [0, 1] on construction.
    """

    confidence: float
    reasons: tuple[str, ...] = ()
    signals: tuple[str, ...] = ()
    primary_languages: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", min(1.0, max(0.0, self.confidence)))
        object.__setattr__(self, "reasons", tuple(self.reasons))
        object.__setattr__(self, "signals", tuple(self.signals))
        object.__setattr__(self, "primary_languages", tuple(self.primary_languages))

    @classmethod
    def none(cls, reason: str) -> DetectionResult:
        """Zero-confidence result carrying a single reason."""
        return cls(confidence=0.0, reasons=(reason,))


@dataclass(frozen=True)
class ProviderDetectionReport:
    """Detection outcome for one registered provider."""

    provider_id: str
    display_name: str
    detection: DetectionResult
    active: bool = False

    @property
    def confidence(self) -> float:
        return self.detection.confidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.provider_id,
            "name": self.display_name,
            "confidence": self.confidence,
            "active": self.active,
            "reasons": list(self.detection.reasons),
            "signals": list(self.detection.signals),
        }


@dataclass(frozen=True)
class ProviderSelection:
    """Immutable outcome of one detection run.

    ``report`` lists every provider by confidence descending, ties kept in
    registration order. ``active`` is the subset at or above the threshold.
    """

    active: tuple[BindingProvider, ...]
    primary: BindingProvider | None
    report: tuple[ProviderDetectionReport, ...]
    detected_at: datetime
    active_threshold: float = 0.3

    @property
    def active_ids(self) -> tuple[str, ...]:
        return tuple(provider.id for provider in self.active)

    def report_for(self, provider_id: str) -> ProviderDetectionReport | None:
        for entry in self.report:
            if entry.provider_id == provider_id:
                return entry
        return None


@runtime_checkable
class BindingProvider(Protocol):
    """A framework-specific source of step bindings.

    Implementations must be safe to call concurrently for different files.
    ``parse_file`` drops markers it cannot compile instead of raising.
    """

    @property
    def id(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    @property
    def languages(self) -> tuple[str, ...]: ...

    @property
    def binding_globs(self) -> tuple[str, ...]: ...

    async def detect(self, roots: Sequence[Path]) -> DetectionResult:
        """Score how likely the workspace uses this framework."""
        ...

    async def index_bindings(
        self, files: Sequence[Path], options: BindingIndexOptions
    ) -> list[Binding]:
        """Read and parse ``files``, returning bindings in input order."""
        ...

    def parse_file(
        self, source_text: str, path: Path, options: BindingIndexOptions
    ) -> list[Binding]:
        """Extract bindings from one file's text."""
        ...


@runtime_checkable
class SupportsExcludePatterns(Protocol):
    """Provider whose file searches honour configurable exclude patterns."""

    exclude_patterns: tuple[str, ...]
