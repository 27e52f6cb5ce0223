"""MetricRow: renders a single labelled value with a color-coded warn state."""

from __future__ import annotations

UNKNOWN = "unknown"

# Usage above these percentages is drawn in yellow / red
WARN_PERCENT = 75.0
CRIT_PERCENT = 90.0


def compute_color(percent: float | None) -> str:
    """Determine display color from a usage percentage."""
    if percent is None:
        return "white"
    if percent >= CRIT_PERCENT:
        return "red"
    if percent >= WARN_PERCENT:
        return "yellow"
    return "green"


def format_percent(value: float | None) -> str:
    if value is None:
        return UNKNOWN
    return f"{value:.1f}%"


def format_mb(mb: float | None) -> str:
    """Megabytes as MB, or GB from 1024 MB up."""
    if mb is None:
        return UNKNOWN
    if mb >= 1024:
        return f"{mb / 1024:.1f} GB"
    return f"{mb:.0f} MB"


def format_gb(gb: float | None) -> str:
    if gb is None:
        return UNKNOWN
    return f"{gb:,.1f} GB"


def format_days(days: float | None) -> str:
    if days is None:
        return UNKNOWN
    return f"{days:.1f} days"


def render_metric_row(label: str, value: str, percent: float | None = None) -> str:
    """Render one metric as a Rich-markup string for use inside a ServerCard.

    Returns a line like:
        ``  [dim]RAM     [/] [green]42.0% (2.0 GB / 8.0 GB)[/]``
    """
    color = compute_color(percent)
    return f"  [dim]{label:<8}[/] [{color}]{value}[/]"
