"""Reads lines of source files around a given line, with caching."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional


def calculate_context_lines(
    lines: Optional[list[bytes]], line: int, context: int
) -> tuple[list[bytes], int]:
    """Return the lines around 1-based ``line`` and the index of ``line`` within them.

    Out-of-range lines give an empty list and 0.
    """
    line -= 1
    context_line = context

    if lines is None or line >= len(lines) or line < 0:
        return [], 0

    if context < 0:
        context = 0
        context_line = 0

    start = line - context
    if start < 0:
        context_line += start
        start = 0

    end = min(line + context + 1, len(lines))
    return lines[start:end], context_line


class SourceReader:
    """Reads source files once and serves context lines from a cache."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.cache: dict[str, Optional[list[bytes]]] = {}

    def read_context_lines(
        self, filename: str, line: int, context: int
    ) -> tuple[list[bytes], int]:
        """Return context lines from ``filename``; unreadable files give no lines."""
        with self._lock:
            if filename in self.cache:
                lines = self.cache[filename]
            else:
                try:
                    data = Path(filename).read_bytes()
                except OSError:
                    self.cache[filename] = None
                    return [], 0
                lines = data.split(b"\n")
                self.cache[filename] = lines
            return calculate_context_lines(lines, line, context)