"""Plain-text rendering of provider detection results."""

from stepbind.providers.base import ProviderDetectionReport, ProviderSelection

NO_DETECTION_MESSAGE = (
    "No detection has been run yet. Run provider detection before "
    "requesting a report."
)

_HEAVY_RULE = "=" * 63
_LIGHT_RULE = "-" * 63


def provider_status(entry: ProviderDetectionReport) -> str:
    if entry.active:
        return "✓ ACTIVE"
    if entry.confidence > 0:
        return "○ DETECTED"
    return "✗ NOT DETECTED"


def _percent(value: float) -> str:
    return f"{value * 100:.0f}%"


def format_detection_report(selection: ProviderSelection | None) -> str:
    """Render a detection run as a human-readable report.

    Args:
        selection: Cached selection, or None when detection never ran.

    Returns:
        Multi-line report text.
    """
    if selection is None:
        return NO_DETECTION_MESSAGE

    lines = [
        _HEAVY_RULE,
        "  PROVIDER DETECTION REPORT",
        f"  Detected at: {selection.detected_at.isoformat()}",
        _HEAVY_RULE,
        "",
    ]
    for entry in selection.report:
        lines.append(f"{entry.display_name} ({entry.provider_id})")
        lines.append(f"  Status: {provider_status(entry)}")
        lines.append(f"  Confidence: {_percent(entry.confidence)}")
        lines.append(f"  Reasons: {'; '.join(entry.detection.reasons)}")
        if entry.detection.signals:
            lines.append("  Signals:")
            lines.extend(f"    - {signal}" for signal in entry.detection.signals)
        lines.append("")

    active = ", ".join(provider.display_name for provider in selection.active)
    primary = selection.primary.display_name if selection.primary else "None"
    lines.append(_LIGHT_RULE)
    lines.append(f"Active Providers: {active or 'None'}")
    lines.append(f"Primary Provider: {primary}")
    lines.append(f"Active Threshold: {_percent(selection.active_threshold)}")
    return "\n".join(lines)
