"""ServerCard: a reactive widget showing one server's overview."""

from __future__ import annotations

from textual.reactive import reactive
from textual.widgets import Static

from collectors.base import ServerOverview
from ui.widgets.metric_row import (
    format_days,
    format_gb,
    format_mb,
    format_percent,
    render_metric_row,
)


def render_overview(overview: ServerOverview) -> str:
    """Rich markup for one overview. Error entries stay visible, marked red."""
    if not overview.is_online:
        detail = overview.detail or "unreachable"
        return f"[bold red]●[/] [bold]{overview.hostname}[/]  [red]{detail}[/]"

    ram = format_percent(overview.ram_percent)
    if overview.ram_used_mb is not None and overview.ram_total_mb is not None:
        ram += f" ({format_mb(overview.ram_used_mb)} / {format_mb(overview.ram_total_mb)})"
    disk = format_percent(overview.disk_percent)
    if overview.disk_used_gb is not None and overview.disk_total_gb is not None:
        disk += f" ({format_gb(overview.disk_used_gb)} / {format_gb(overview.disk_total_gb)})"

    lines = [
        f"[bold green]●[/] [bold]{overview.hostname}[/]  [dim]up {format_days(overview.uptime_days)}[/]",
        render_metric_row("CPU", format_percent(overview.cpu_percent), overview.cpu_percent),
        render_metric_row("RAM", ram, overview.ram_percent),
        render_metric_row("Disk", disk, overview.disk_percent),
    ]
    return "\n".join(lines)


class ServerCard(Static):
    """Displays a single server's status and resource usage."""

    overview: reactive[ServerOverview | None] = reactive(None)

    def __init__(self, hostname: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.hostname = hostname

    def render(self) -> str:
        if self.overview is None:
            return f"[bold cyan]{self.hostname}[/]  [dim]waiting...[/]"
        return render_overview(self.overview)

    def watch_overview(self, new_val: ServerOverview | None) -> None:
        """Called automatically when self.overview changes; triggers re-render."""
        self.set_class(new_val is not None and not new_val.is_online, "error-state")
        self.refresh()
