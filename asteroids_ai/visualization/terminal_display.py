"""
Live terminal view of a training run, drawn with rich.

Shows generation or episode progress with an ETA, the headline and named
metrics reported by a trainer callback, optional CPU / memory usage from
psutil, and recent event messages.
"""

import time
from collections import deque
from typing import Dict, Optional

import psutil
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text


class TerminalTrainingDisplay:
    """
    Rich-based terminal display for training progress.

    Updates in-place without scrolling. The trainers stay unaware of it; the
    CLI feeds it from their per-generation / per-episode callbacks.
    """

    def __init__(
        self,
        total: int,
        title: str = "Training",
        unit: str = "Generation",
        update_interval: float = 0.5,
        show_hardware: bool = True,
        console: Optional[Console] = None,
    ):
        """
        Initialize the terminal display.

        Args:
            total: Total generations or episodes
            title: Header text
            unit: Name of one progress step
            update_interval: Minimum seconds between display refreshes
            show_hardware: Include the CPU / memory panel
            console: Console to draw on (a new terminal console by default)
        """
        self.total = total
        self.title = title
        self.unit = unit
        self.update_interval = update_interval
        self.show_hardware = show_hardware

        self.console = console or Console(force_terminal=True, legacy_windows=False, markup=True)
        self.live: Optional[Live] = None

        # Training state
        self.current = 0
        self.metrics: Dict[str, float] = {}
        self.best_value: Optional[float] = None
        self.recent_values: deque = deque(maxlen=50)

        self.start_time = time.time()
        self.last_update = 0.0

        # Messages queue for important events
        self.messages: deque = deque(maxlen=12)

    def start(self):
        """Start the live display."""
        self.start_time = time.time()
        if self.show_hardware:
            # Prime psutil so the first reading is meaningful
            psutil.cpu_percent(interval=None)
        self.live = Live(
            self.render(),
            console=self.console,
            refresh_per_second=4,
            transient=False,
        )
        self.live.start()

    def stop(self):
        """Stop the live display."""
        if self.live:
            self.live.update(self.render())
            self.live.stop()
            self.live = None

    def __enter__(self) -> "TerminalTrainingDisplay":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def update(self, current: int, value: Optional[float] = None, **metrics: float):
        """
        Record progress and refresh the display if due.

        Args:
            current: Completed generations / episodes
            value: Headline value for this step (best fitness or episode reward)
            **metrics: Any named metrics to show (mean, worst, sigma, epsilon...)
        """
        self.current = current
        self.metrics.update(metrics)
        if value is not None:
            self.recent_values.append(value)
            if self.best_value is None or value > self.best_value:
                self.best_value = value

        now = time.time()
        if self.live and (now - self.last_update) >= self.update_interval:
            self.live.update(self.render())
            self.last_update = now

    def add_message(self, message: str):
        """Add a message to the display."""
        self.messages.append(message)

    def render(self) -> Panel:
        """Build the complete display panel."""
        header = Text(self.title, style="bold cyan")
        parts = [header, self._build_progress_bar()]

        body = Table.grid(expand=True)
        body.add_column(ratio=1)
        if self.show_hardware:
            body.add_column(ratio=1)
            body.add_row(self._build_metrics_table(), self._build_hardware_table())
        else:
            body.add_row(self._build_metrics_table())
        parts.append(body)
        parts.append(self._build_messages_panel())

        return Panel(Group(*parts), title="Training Progress", border_style="blue")

    def _build_progress_bar(self, width: int = 40) -> Panel:
        ratio = min(1.0, self.current / self.total) if self.total > 0 else 0.0
        elapsed = time.time() - self.start_time
        remaining = (elapsed / ratio - elapsed) if ratio > 0 else -1

        filled = int(width * ratio)
        text = Text()
        text.append(f"{self.unit} {self.current}/{self.total} ", style="bold")
        text.append("[" + "#" * filled + "-" * (width - filled) + "]", style="cyan")
        text.append(f" {ratio * 100:.1f}%\n", style="green")
        text.append(
            f"Elapsed: {self._format_time(elapsed)} | Remaining: {self._format_time(remaining)}",
            style="dim",
        )
        return Panel(text, title="Progress", border_style="green")

    def _build_metrics_table(self) -> Panel:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Metric", style="cyan", width=14)
        table.add_column("Value", style="white")

        best = "N/A" if self.best_value is None else f"{self.best_value:.3f}"
        table.add_row("Best", f"[bold yellow]{best}[/]")
        if self.recent_values:
            avg = sum(self.recent_values) / len(self.recent_values)
            table.add_row(f"Avg ({len(self.recent_values)})", f"{avg:.3f}")
        for name, value in self.metrics.items():
            label = name.replace("_", " ").capitalize()
            table.add_row(label, f"{value:.4f}" if isinstance(value, float) else str(value))

        return Panel(table, title="Training Metrics", border_style="yellow")

    def _build_hardware_table(self) -> Panel:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Resource", style="cyan")
        table.add_column("Usage", style="white")

        cpu_percent = psutil.cpu_percent(interval=None)
        table.add_row("CPU", f"{self._make_bar(cpu_percent)} {cpu_percent:.0f}%")
        table.add_row("Cores", str(psutil.cpu_count() or 1))

        mem = psutil.virtual_memory()
        mem_used = mem.used / (1024 ** 3)
        mem_total = mem.total / (1024 ** 3)
        table.add_row(
            "Memory",
            f"{self._make_bar(mem.percent)} {mem.percent:.0f}% ({mem_used:.1f}/{mem_total:.1f} GB)",
        )

        rss = psutil.Process().memory_info().rss / (1024 ** 2)
        table.add_row("Process", f"{rss:.0f} MB")

        return Panel(table, title="Hardware", border_style="magenta")

    def _build_messages_panel(self) -> Panel:
        content = "\n".join(self.messages) if self.messages else "[dim]No messages yet...[/]"
        return Panel(content, title="Messages", border_style="blue")

    def _make_bar(self, percent: float, width: int = 10) -> str:
        """Create a mini progress bar (ASCII for Windows compatibility)."""
        filled = max(0, min(width, int(width * percent / 100)))
        return "#" * filled + "-" * (width - filled)

    def _format_time(self, seconds: float) -> str:
        """Format seconds into HH:MM:SS."""
        if seconds < 0:
            return "--:--:--"
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{secs:02d}"
        return f"{minutes:02d}:{secs:02d}"
