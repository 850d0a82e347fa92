from typing import Optional, Protocol, Any

class Console(Protocol):
    """Abstract interface for console output (satisfied by rich.console.Console)."""
    def print(self, *objects: Any) -> None:
        ...

    def log(self, *objects: Any) -> None:
        ...

class ConsoleAware:
    """Base class for pipeline components that report progress.

    `print` is for user-facing progress lines, `log` for details that only
    show up in verbose mode. Without a console both are silent.
    """
    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console
        self.verbose = verbose

    def print(self, msg: str) -> None:
        if self.console:
            self.console.print(msg)

    def log(self, msg: str) -> None:
        if self.console and self.verbose:
            self.console.log(msg)

    def warn(self, msg: str) -> None:
        self.print(f"[bold yellow]Warning:[/] {msg}")
