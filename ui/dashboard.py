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
from core.headers import HeaderMap
from ui.log_utils import write_cli_log, write_forward_log

console = Console()


class ForwardInfo:
    """Info about a single forwarded request."""

    def __init__(self, method: str, path: str, target_url: str, timestamp: datetime):
        self.method = method
        self.path = path[:60] + "..." if len(path) > 60 else path
        self.target_url = target_url
        self.timestamp = timestamp
        self.status: int | None = None


class Dashboard:
    """Real-time dashboard showing forwarded requests and errors."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[ForwardInfo] = []
        self._max_recent = 10
        self._counts = {"forwarded": 0, "ok": 0, "failed": 0}
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

    def log_forward(
        self,
        method: str,
        path: str,
        target_url: str,
        headers: HeaderMap,
    ) -> None:
        """Log a request about to be sent to the backend."""
        with self._lock:
            self._counts["forwarded"] += 1
            self._recent.insert(0, ForwardInfo(method, path, target_url, datetime.now()))
            self._recent = self._recent[: self._max_recent]
            self._refresh()

            write_forward_log(
                method,
                path,
                target_url,
                headers.to_dict(),
                secret_headers=[self.config.proxy.shared_secret_header],
            )
            write_cli_log("FORWARD", f"{method} {path}", target=target_url)

    def log_response(self, method: str, target_url: str, status: int) -> None:
        """Record the backend status for the matching recent request."""
        with self._lock:
            self._counts["ok"] += 1
            for info in self._recent:
                if info.target_url == target_url and info.status is None:
                    info.status = status
                    break
            self._refresh()
            write_cli_log("RESPONSE", f"{method} {target_url}", status=status)

    def log_error(self, kind: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            self._counts["failed"] += 1
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{kind} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log("ERROR", message[:200], kind=kind, status=status)

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
        stats.append("Forwarding Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Forwarded: {self._counts['forwarded']}", style="blue")
        stats.append("  |  ")
        stats.append(f"OK: {self._counts['ok']}", style="green")
        stats.append("  |  ")
        stats.append(f"Failed: {self._counts['failed']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.server.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Status", width=6)
            table.add_column("Path", ratio=1)
            table.add_column("Target", ratio=2)

            for info in self._recent:
                status = str(info.status) if info.status is not None else "[dim]...[/dim]"
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    info.method,
                    status,
                    info.path,
                    info.target_url,
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
            backend = self.config.proxy.backend_base_url or "[not set]"
            content = Text(
                f"/{self.config.server.route_prefix}/* -> {backend}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
