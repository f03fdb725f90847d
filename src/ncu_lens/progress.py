from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.status import Status


class ProgressReporter(Protocol):
    """
    进度提示能力（注入到 orchestrator，而不是模块级单例）。
    """

    def start(self, text: str) -> None: ...

    def update(self, text: str) -> None: ...

    def succeed(self, text: str) -> None: ...

    def fail(self, text: str) -> None: ...


class NullProgress:
    """
    不输出任何内容的实现（JSON 输出或非终端环境）。
    """

    def start(self, text: str) -> None:
        pass

    def update(self, text: str) -> None:
        pass

    def succeed(self, text: str) -> None:
        pass

    def fail(self, text: str) -> None:
        pass


class RichProgress:
    """
    基于 rich status 的 spinner，输出到 stderr。
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._status: Status | None = None

    def start(self, text: str) -> None:
        self._stop()
        self._status = self._console.status(escape(text))
        self._status.start()

    def update(self, text: str) -> None:
        if self._status is not None:
            self._status.update(escape(text))

    def succeed(self, text: str) -> None:
        if self._stop():
            self._console.print(f"[green]✔[/green] {escape(text)}")

    def fail(self, text: str) -> None:
        if self._stop():
            self._console.print(f"[red]✖[/red] {escape(text)}")

    def _stop(self) -> bool:
        if self._status is None:
            return False
        self._status.stop()
        self._status = None
        return True


def create_progress(*, silent: bool, console: Console | None = None) -> ProgressReporter:
    """
    按输出模式选择进度实现：JSON 模式或非终端时静默。
    """
    console = console or Console(stderr=True)
    if silent or not console.is_terminal:
        return NullProgress()
    return RichProgress(console)
