"""Output sinks for dispatched targets.

A sink receives everything a target prints.  Which sink a job gets is a
configuration decision made by ``make_sink``:

    log_path == "disabled" ─────────► NullSink
    job has no log_file ────────────► NullSink
    otherwise ──────────────────────► FileSink(log_path / log_file), append mode

The coordinator calls ``open()`` before dispatch so that an unusable log
file fails the job, not the cycle.

``check_log_path`` is the pre-flight run once per cycle before any job is
evaluated.
"""

from __future__ import annotations

import os
from pathlib import Path
from types import TracebackType
from typing import Protocol, runtime_checkable

from command_scheduler.core.errors import ConfigError
from command_scheduler.core.settings import LOG_PATH_DISABLED


@runtime_checkable
class OutputSink(Protocol):
    """Where a target's textual output goes."""

    def write(self, text: str) -> None: ...

    def writeln(self, text: str = "") -> None: ...

    def close(self) -> None: ...


class NullSink:
    """Discards everything."""

    def open(self) -> None:
        pass

    def write(self, text: str) -> None:
        pass

    def writeln(self, text: str = "") -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> NullSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return "NullSink()"


class FileSink:
    """Appends to a log file, opened lazily on first write."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._handle = None

    def open(self) -> None:
        """Open the file now instead of on first write.

        Raises:
            OSError: The file cannot be opened for appending
        """
        self._stream()

    def _stream(self):
        if self._handle is None:
            self._handle = open(self.path, "a", encoding="utf-8")
        return self._handle

    def write(self, text: str) -> None:
        if not text:
            return
        stream = self._stream()
        stream.write(text)
        stream.flush()

    def writeln(self, text: str = "") -> None:
        self.write(text + "\n")

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> FileSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"FileSink({str(self.path)!r})"


def is_disabled(log_path: str | os.PathLike[str] | None) -> bool:
    if log_path is None:
        return True
    return str(log_path).strip().lower() in ("", "false", LOG_PATH_DISABLED)


def make_sink(
    log_path: str | os.PathLike[str] | None,
    log_file: str | None,
) -> NullSink | FileSink:
    """Select the sink for one job.

    Args:
        log_path: Configured log directory, or ``"disabled"`` / None
        log_file: The job's log file name (may be empty)
    """
    if is_disabled(log_path) or not log_file or not log_file.strip():
        return NullSink()
    return FileSink(Path(log_path) / log_file.strip())


def check_log_path(log_path: str | os.PathLike[str] | None) -> None:
    """Fail fast when the log directory is configured but unusable.

    Raises:
        ConfigError: Directory missing or not writable
    """
    if is_disabled(log_path):
        return
    path = Path(log_path)
    if not path.is_dir() or not os.access(path, os.W_OK):
        raise ConfigError(
            f"{path} not found or not writable. You should override "
            "SCHEDULER_LOG_PATH in your environment",
            context={"log_path": str(path)},
        )


__all__ = [
    "FileSink",
    "NullSink",
    "OutputSink",
    "check_log_path",
    "is_disabled",
    "make_sink",
]
