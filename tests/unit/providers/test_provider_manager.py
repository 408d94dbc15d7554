"""Tests for provider registration, detection and selection."""

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from stepbind.core.config.settings import ResolverSettings
from stepbind.providers.base import BindingProvider, DetectionResult
from stepbind.providers.csharp_reqnroll import ReqnrollProvider
from stepbind.providers.manager import ProviderManager


@pytest.fixture
def roots(tmp_path: Path) -> list[Path]:
    return [tmp_path]


class TestRegistry:
    """Test provider registration."""

    def test_register_and_lookup(self, stub_provider: Any, roots: list[Path]) -> None:
        manager = ProviderManager(roots)
        provider = stub_provider("alpha", 0.5)

        manager.register(provider)

        assert manager.provider_exists("alpha")
        assert manager.get_provider("alpha") is provider
        assert manager.get_provider("missing") is None
        assert isinstance(provider, BindingProvider)

    def test_register_same_id_replaces_in_place(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        first = stub_provider("alpha")
        manager = ProviderManager(roots, providers=[first, stub_provider("beta")])
        replacement = stub_provider("alpha")

        manager.register(replacement)

        assert [p.id for p in manager.list_providers()] == ["alpha", "beta"]
        assert manager.get_provider("alpha") is replacement

    @pytest.mark.asyncio
    async def test_register_invalidates_cache(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(roots, providers=[stub_provider("alpha", 0.5)])
        await manager.detect_providers()

        manager.register(stub_provider("beta", 0.9))

        assert manager.get_cached_selection() is None
        selection = await manager.detect_providers()
        assert selection.primary is not None
        assert selection.primary.id == "beta"

    def test_unregister(self, stub_provider: Any, roots: list[Path]) -> None:
        manager = ProviderManager(roots, providers=[stub_provider("alpha")])

        assert manager.unregister("alpha")
        assert not manager.unregister("alpha")
        assert manager.list_providers() == []


class TestDetection:
    """Test detection runs and provider selection."""

    @pytest.mark.asyncio
    async def test_selection_ranks_by_confidence(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(
            roots,
            providers=[
                stub_provider("low", 0.1),
                stub_provider("high", 0.9),
                stub_provider("mid", 0.4),
            ],
        )

        selection = await manager.detect_providers()

        assert [entry.provider_id for entry in selection.report] == [
            "high",
            "mid",
            "low",
        ]
        assert selection.active_ids == ("high", "mid")
        assert selection.primary is not None
        assert selection.primary.id == "high"
        assert selection.active_threshold == 0.3

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(roots, providers=[stub_provider("edge", 0.3)])

        selection = await manager.detect_providers()

        assert selection.active_ids == ("edge",)

    @pytest.mark.asyncio
    async def test_ties_keep_registration_order(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(
            roots,
            providers=[stub_provider("first", 0.6), stub_provider("second", 0.6)],
        )

        selection = await manager.detect_providers()

        assert selection.active_ids == ("first", "second")
        assert selection.primary is not None
        assert selection.primary.id == "first"

    @pytest.mark.asyncio
    async def test_no_primary_when_nothing_detected(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(
            roots, providers=[stub_provider("a"), stub_provider("b")]
        )

        selection = await manager.detect_providers()

        assert selection.primary is None
        assert selection.active == ()
        assert len(selection.report) == 2

    @pytest.mark.asyncio
    async def test_primary_below_threshold(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(roots, providers=[stub_provider("weak", 0.1)])

        selection = await manager.detect_providers()

        assert selection.active == ()
        assert selection.primary is not None
        assert selection.primary.id == "weak"

    @pytest.mark.asyncio
    async def test_selection_is_cached(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        provider = stub_provider("alpha", 0.8)
        manager = ProviderManager(roots, providers=[provider])

        first = await manager.detect_providers()
        second = await manager.detect_providers()

        assert first is second
        assert provider.detect_calls == 1
        assert manager.get_cached_selection() is first

    @pytest.mark.asyncio
    async def test_invalidate_cache_reruns_detection(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        provider = stub_provider("alpha", 0.8)
        manager = ProviderManager(roots, providers=[provider])
        first = await manager.detect_providers()

        manager.invalidate_cache()
        second = await manager.detect_providers()

        assert first is not second
        assert provider.detect_calls == 2

    @pytest.mark.asyncio
    async def test_failing_provider_is_isolated(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(
            roots,
            providers=[
                stub_provider("broken", error=RuntimeError("boom")),
                stub_provider("healthy", 0.7),
            ],
        )

        selection = await manager.detect_providers()

        broken = selection.report_for("broken")
        assert broken is not None
        assert broken.confidence == 0.0
        assert broken.detection.reasons == ("Detection error: boom",)
        assert selection.active_ids == ("healthy",)

    @pytest.mark.asyncio
    async def test_no_roots_skips_detection(self, stub_provider: Any) -> None:
        provider = stub_provider("alpha", 0.9)
        manager = ProviderManager(providers=[provider])

        selection = await manager.detect_providers()

        assert provider.detect_calls == 0
        entry = selection.report_for("alpha")
        assert entry is not None
        assert entry.detection.reasons == ("No workspace folders",)
        assert selection.primary is None

    @pytest.mark.asyncio
    async def test_set_roots_invalidates_cache(
        self, stub_provider: Any, tmp_path: Path
    ) -> None:
        manager = ProviderManager(providers=[stub_provider("alpha", 0.9)])
        await manager.detect_providers()

        manager.set_roots([tmp_path])

        assert manager.roots == (tmp_path,)
        selection = await manager.detect_providers()
        assert selection.active_ids == ("alpha",)

    @pytest.mark.asyncio
    async def test_roots_changed_during_detection_not_cached(
        self, stub_provider: Any, tmp_path: Path
    ) -> None:
        started = asyncio.Event()
        release = asyncio.Event()

        class SlowProvider(stub_provider):  # type: ignore[misc]
            async def detect(self, roots: Sequence[Path]) -> DetectionResult:
                started.set()
                await release.wait()
                return await super().detect(roots)

        provider = SlowProvider("slow", 0.9)
        manager = ProviderManager([tmp_path / "old"], providers=[provider])

        running = asyncio.create_task(manager.detect_providers())
        await started.wait()
        manager.set_roots([tmp_path])
        release.set()
        stale = await running

        assert stale.active_ids == ("slow",)
        assert manager.get_cached_selection() is None
        fresh = await manager.detect_providers()
        assert fresh is not stale
        assert provider.detect_calls == 2

    @pytest.mark.asyncio
    async def test_no_providers(self, roots: list[Path]) -> None:
        selection = await ProviderManager(roots).detect_providers()

        assert selection.active == ()
        assert selection.primary is None
        assert selection.report == ()


class TestConfidenceClamping:
    """Confidence values are clamped into [0, 1]."""

    @pytest.mark.parametrize(("raw", "clamped"), [(1.7, 1.0), (-0.2, 0.0), (0.4, 0.4)])
    def test_clamp(self, raw: float, clamped: float) -> None:
        assert DetectionResult(confidence=raw).confidence == clamped

    @pytest.mark.asyncio
    async def test_out_of_range_provider_is_clamped(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(roots, providers=[stub_provider("eager", 1.7)])

        selection = await manager.detect_providers()

        assert selection.report[0].confidence == 1.0


class TestUpdateConfig:
    """Test settings updates and cache invalidation."""

    @pytest.mark.asyncio
    async def test_threshold_change_invalidates_cache(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(roots, providers=[stub_provider("alpha", 0.5)])
        await manager.detect_providers()

        settings = manager.update_config(active_threshold=0.8)

        assert settings.active_threshold == 0.8
        assert manager.get_cached_selection() is None
        selection = await manager.detect_providers()
        assert selection.active == ()

    @pytest.mark.asyncio
    async def test_other_changes_keep_cache(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(roots, providers=[stub_provider("alpha", 0.5)])
        selection = await manager.detect_providers()

        manager.update_config(debug=True)

        assert manager.settings.debug
        assert manager.get_cached_selection() is selection

    @pytest.mark.asyncio
    async def test_exclude_patterns_reach_providers(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        reqnroll = ReqnrollProvider()
        manager = ProviderManager(roots, providers=[reqnroll, stub_provider("stub")])
        await manager.detect_providers()

        manager.update_config(exclude_patterns=["**/Generated/**"])

        assert reqnroll.exclude_patterns == ("**/Generated/**",)
        assert manager.get_cached_selection() is None

    def test_invalid_value_rejected(self, roots: list[Path]) -> None:
        manager = ProviderManager(roots, ResolverSettings(active_threshold=0.4))

        with pytest.raises(ValidationError):
            manager.update_config(active_threshold=2.0)

        assert manager.settings.active_threshold == 0.4


class TestDetectionReport:
    """Test the report exposed by the manager."""

    def test_report_before_detection(self, roots: list[Path]) -> None:
        report = ProviderManager(roots).get_detection_report()

        assert report.startswith("No detection has been run yet")

    @pytest.mark.asyncio
    async def test_report_after_detection(
        self, stub_provider: Any, roots: list[Path]
    ) -> None:
        manager = ProviderManager(
            roots, providers=[stub_provider("alpha", 0.5, display_name="Alpha")]
        )
        await manager.detect_providers()

        report = manager.get_detection_report()

        assert "Alpha (alpha)" in report
        assert "Primary Provider: Alpha" in report
