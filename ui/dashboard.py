"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import write_cli_log

console = Console()


class RequestInfo:
    """Info about a single proxied request."""

    def __init__(
        self,
        method: str,
        route: str,
        status: int,
        user_id: str | None,
        duration_ms: float,
        timestamp: datetime,
    ):
        self.method = method
        self.route = route[:60] + "..." if len(route) > 60 else route
        self.status = status
        self.user_id = user_id
        self.duration_ms = duration_ms
        self.timestamp = timestamp


def _status_style(status: int) -> str:
    if status >= 500:
        return "red"
    if status >= 400:
        return "yellow"
    if status >= 300:
        return "cyan"
    return "green"


class Dashboard:
    """Real-time dashboard showing recent requests and their outcomes."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 10
        self._counts = {"total": 0, "authenticated": 0, "rejected": 0, "failed": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_request(
        self,
        method: str,
        route: str,
        status: int,
        *,
        user_id: str | None = None,
        duration_ms: float = 0.0,
    ) -> None:
        """Record a completed request."""
        with self._lock:
            self._counts["total"] += 1
            if user_id:
                self._counts["authenticated"] += 1
            if status in (401, 429):
                self._counts["rejected"] += 1
            elif status >= 500:
                self._counts["failed"] += 1

            info = RequestInfo(method, route, status, user_id, duration_ms, datetime.now())
            self._recent.insert(0, info)
            self._recent = self._recent[: self._max_recent]

            write_cli_log(
                "REQUEST",
                f"{method} {route}",
                status=status,
                user=user_id,
                ms=f"{duration_ms:.1f}",
            )
            self._refresh()

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log("ERROR", message[:200], route=route, status=status)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Auth Gate Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Requests: {self._counts['total']}", style="blue")
        stats.append("  |  ")
        stats.append(f"Authenticated: {self._counts['authenticated']}", style="green")
        stats.append("  |  ")
        stats.append(f"Rejected: {self._counts['rejected']}", style="yellow")
        stats.append("  |  ")
        stats.append(f"Failed: {self._counts['failed']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Route", ratio=2)
            table.add_column("Status", width=6)
            table.add_column("User", ratio=1)
            table.add_column("ms", width=8, justify="right")

            for req in self._recent:
                table.add_row(
                    req.timestamp.strftime("%H:%M:%S"),
                    req.method,
                    req.route,
                    Text(str(req.status), style=_status_style(req.status)),
                    req.user_id or "[dim]-[/dim]",
                    f"{req.duration_ms:.1f}",
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Recent Requests[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            upstream = self.config.upstream.origin or "[not configured]"
            content = Text(
                f"Proxying http://{self.config.proxy.host}:{self.config.proxy.port}"
                f"{self.config.proxy.mount_path or '/'} -> {upstream}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
