"""Tests for detection report formatting."""

from datetime import UTC, datetime
from typing import Any

from stepbind.providers.base import (
    DetectionResult,
    ProviderDetectionReport,
    ProviderSelection,
)
from stepbind.providers.report import (
    NO_DETECTION_MESSAGE,
    format_detection_report,
    provider_status,
)

DETECTED_AT = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)


def _entry(
    provider_id: str, confidence: float, active: bool, signals: tuple[str, ...] = ()
) -> ProviderDetectionReport:
    return ProviderDetectionReport(
        provider_id=provider_id,
        display_name=provider_id.title(),
        detection=DetectionResult(
            confidence=confidence,
            reasons=(f"{provider_id} reason",),
            signals=signals,
        ),
        active=active,
    )


class TestProviderStatus:
    """Test status labels."""

    def test_active(self) -> None:
        assert provider_status(_entry("a", 0.8, True)) == "✓ ACTIVE"

    def test_detected_below_threshold(self) -> None:
        assert provider_status(_entry("a", 0.2, False)) == "○ DETECTED"

    def test_not_detected(self) -> None:
        assert provider_status(_entry("a", 0.0, False)) == "✗ NOT DETECTED"


class TestFormatDetectionReport:
    """Test the full report layout."""

    def test_no_selection(self) -> None:
        assert format_detection_report(None) == NO_DETECTION_MESSAGE

    def test_report_layout(self, stub_provider: Any) -> None:
        primary = stub_provider("reqnroll", display_name="Reqnroll")
        selection = ProviderSelection(
            active=(primary,),
            primary=primary,
            report=(
                _entry("reqnroll", 1.0, True, ("package:App.csproj",)),
                _entry("specflow", 0.0, False),
            ),
            detected_at=DETECTED_AT,
            active_threshold=0.3,
        )

        lines = format_detection_report(selection).splitlines()

        assert lines[0] == "=" * 63
        assert lines[1] == "  PROVIDER DETECTION REPORT"
        assert lines[2] == "  Detected at: 2026-03-01T12:30:00+00:00"
        assert "Reqnroll (reqnroll)" in lines
        assert "  Status: ✓ ACTIVE" in lines
        assert "  Confidence: 100%" in lines
        assert "  Reasons: reqnroll reason" in lines
        assert "    - package:App.csproj" in lines
        assert "  Status: ✗ NOT DETECTED" in lines
        assert lines[-4] == "-" * 63
        assert lines[-3] == "Active Providers: Reqnroll"
        assert lines[-2] == "Primary Provider: Reqnroll"
        assert lines[-1] == "Active Threshold: 30%"

    def test_signals_section_omitted_without_signals(self) -> None:
        selection = ProviderSelection(
            active=(),
            primary=None,
            report=(_entry("specflow", 0.0, False),),
            detected_at=DETECTED_AT,
        )

        report = format_detection_report(selection)

        assert "Signals:" not in report
        assert "Active Providers: None" in report
        assert "Primary Provider: None" in report
