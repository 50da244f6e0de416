"""Progress reporting for multi-step cluster operations."""

from __future__ import annotations

import sys
from typing import TextIO

from marinerctl.resource import ApiError


def _format(message: str, args: tuple) -> str:
    return message % args if args else message


class Reporter:
    """Reports the steps of an operation; this base class discards everything."""

    def start(self, message: str, *args) -> None:
        self._emit("start", _format(message, args))

    def end(self) -> None:
        self._emit("end", "")

    def success(self, message: str, *args) -> None:
        self._emit("success", _format(message, args))

    def warning(self, message: str, *args) -> None:
        self._emit("warning", _format(message, args))

    def error(self, err: BaseException | None, message: str = "", *args) -> BaseException | None:
        """Report ``err`` and return it, prefixed with ``message``; None if there is no error."""
        if err is None:
            return None
        if not message:
            self._emit("failure", str(err))
            return err
        text = f"{_format(message, args)}: {err}"
        self._emit("failure", text)
        wrapped = type(err)(text) if isinstance(err, ApiError) else RuntimeError(text)
        wrapped.__cause__ = err
        return wrapped

    def _emit(self, kind: str, message: str) -> None:
        pass


class RecordingReporter(Reporter):
    """Keeps every reported event as a ``(kind, message)`` pair."""

    def __init__(self):
        self.events: list[tuple[str, str]] = []

    def _emit(self, kind: str, message: str) -> None:
        self.events.append((kind, message))


class StreamReporter(Reporter):
    """Writes reported events as lines of text."""

    _MARKS = {"start": "•", "success": "✓", "warning": "⚠", "failure": "✗"}

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    def _emit(self, kind: str, message: str) -> None:
        mark = self._MARKS.get(kind)
        if mark is None:
            return
        stream = self._stream if self._stream is not None else sys.stdout
        indent = "" if kind == "start" else "  "
        stream.write(f"{indent}{mark} {message}\n")