"""Progress reporting for import and apply operations."""

from __future__ import annotations

from typing import Protocol


class ProgressReporter(Protocol):
    """Protocol for progress reporting."""

    def update_status(self, message: str) -> None: ...
    def step(self, step_name: str, current: int, total: int) -> None: ...


class RichProgressReporter:
    """Rich-based progress reporter with status messages."""

    def __init__(self) -> None:
        from rich.console import Console

        self.console = Console(stderr=True)

    def update_status(self, message: str) -> None:
        self.console.print(f"[bold blue]>>>[/] {message}")

    def step(self, step_name: str, current: int, total: int) -> None:
        self.console.print(f"  [dim]\\[{current}/{total}][/] {step_name}")


class NullProgressReporter:
    """No-op reporter for --json mode or testing."""

    def update_status(self, message: str) -> None:
        pass

    def step(self, step_name: str, current: int, total: int) -> None:
        pass
