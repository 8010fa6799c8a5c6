"""Best-effort diagnostic sink: session log file, optional echo, debug alerts."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from autohelper.storage import append_log


class DiagnosticSink:
    """Never raises. A broken log file or alert must not stall the watchers."""

    def __init__(
        self,
        log_path: Path | None = None,
        *,
        echo: Callable[[str], None] | None = None,
        alert: Callable[[str], None] | None = None,
        verbose: bool = False,
    ) -> None:
        self.log_path = log_path
        self.echo = echo
        self.alert = alert
        self.verbose = bool(verbose)

    def info(self, message: str) -> None:
        self._write("info", message)

    def error(self, message: str) -> None:
        self._write("error", message)

    def debug(self, message: str) -> None:
        if not self.verbose:
            return
        self._write("debug", message)
        if self.alert is not None:
            try:
                self.alert(message)
            except Exception:
                return

    def _write(self, level: str, message: str) -> None:
        stamp = datetime.now(timezone.utc).strftime("%H:%M:%S")
        line = f"{stamp} {level.upper()} {message}"
        if self.log_path is not None:
            try:
                append_log(self.log_path, line)
            except Exception:
                pass
        if self.echo is not None:
            try:
                self.echo(line)
            except Exception:
                pass
