"""
Compilation diagnostic extraction from Maven console output.

Maven prints compiler errors twice: interleaved with the normal build
chatter and again in the error summary that follows the ``Finished at:``
banner. Only the summary is authoritative, so the extractor ignores
everything before the banner and everything after Maven's closing
``[ERROR] -> [Help 1]`` remark.

Inside the summary an error block looks like::

    [ERROR] /src/Foo.java:[10,5] cannot find symbol
    [ERROR]   symbol:   class Bar
    [ERROR]   location: class Foo

The first line carries the location and message, the following lines
carry ``key: value`` parameters until the next error line.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .error_handling import log_parsing_error
from .structured_logging import log_extraction_complete, log_line_unparsed

SUMMARY_MARKER = "Finished at:"
CLOSING_MARKER = "[ERROR] -> [Help 1]"
ERROR_ANCHOR = "[ERROR] /"

ERROR_PATTERN = re.compile(r"\[ERROR\]\s+(.+):\[([0-9]+),([0-9]+)\]\s+(.+)")
PARAMETER_PATTERN = re.compile(r"\[ERROR\]\s+(.+?):\s+(.+)")


@dataclass(frozen=True)
class CompilationDiagnostic:
    """One compiler-reported error with its location and auxiliary parameters."""

    source_path: str
    line: int
    column: int
    message: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze a private copy so later writes to the caller's dict are not visible
        object.__setattr__(
            self, "parameters", MappingProxyType(dict(self.parameters))
        )

    def __hash__(self) -> int:
        return hash(
            (
                self.source_path,
                self.line,
                self.column,
                self.message,
                frozenset(self.parameters.items()),
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": self.source_path,
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "parameters": dict(self.parameters),
        }

    def __str__(self) -> str:
        params = ", ".join(f"{key}={value}" for key, value in self.parameters.items())
        return f"{self.source_path}:{self.line}:{self.column}: {self.message} {{{params}}}"


class ScanState(Enum):
    """Position of the scanner relative to Maven's error summary."""

    BEFORE_SUMMARY = "BEFORE_SUMMARY"
    IN_SUMMARY = "IN_SUMMARY"
    CLOSED = "CLOSED"


def next_state(state: ScanState, line: str) -> ScanState:
    """
    Compute the scanner state after observing ``line``.

    ``CLOSED`` is terminal: a second summary banner does not reopen it.
    """
    if state is ScanState.CLOSED:
        return state
    if line.startswith(CLOSING_MARKER):
        return ScanState.CLOSED
    if SUMMARY_MARKER in line:
        return ScanState.IN_SUMMARY
    return state


def is_error_anchor(line: str) -> bool:
    return line.startswith(ERROR_ANCHOR)


def parse_error_line(line: str) -> Optional[Tuple[str, int, int, str]]:
    """
    Match an error line of the shape ``[ERROR] <path>:[<line>,<column>] <message>``.

    Returns:
        ``(path, line, column, message)`` or ``None`` if the line does not match
    """
    match = ERROR_PATTERN.fullmatch(line)
    if match is None:
        return None
    path, line_no, column, message = match.groups()
    return path, int(line_no), int(column), message.strip()


def parse_parameter_line(line: str) -> Optional[Tuple[str, str]]:
    """Match a parameter line of the shape ``[ERROR] <key>: <value>``."""
    match = PARAMETER_PATTERN.fullmatch(line)
    if match is None:
        return None
    key, value = match.groups()
    return key.strip(), value.strip()


class LineCursor:
    """
    Iterator over text lines with a one-line look-ahead buffer.

    Trailing line terminators are removed. ``position`` is the 1-based
    number of the last consumed line.
    """

    _EMPTY = object()

    def __init__(self, lines: Iterable[str]):
        self._lines = iter(lines)
        self._buffer: Any = self._EMPTY
        self.position = 0

    def _fill(self) -> None:
        if self._buffer is self._EMPTY:
            try:
                self._buffer = next(self._lines).rstrip("\r\n")
            except StopIteration:
                self._buffer = None

    def peek(self) -> Optional[str]:
        """Return the next line without consuming it, or ``None`` at end of stream."""
        self._fill()
        return self._buffer

    def at_end(self) -> bool:
        return self.peek() is None

    def __iter__(self) -> "LineCursor":
        return self

    def __next__(self) -> str:
        line = self.peek()
        if line is None:
            raise StopIteration
        self._buffer = self._EMPTY
        self.position += 1
        return line


class DiagnosticExtractor:
    """
    Streaming parser turning Maven console output into diagnostics.

    The extractor consumes the whole stream even after the summary is
    closed, so a live build process is never left blocked on a full pipe.
    Counters from the last run are kept on the instance.
    """

    def __init__(self, source_name: Optional[str] = None):
        self.source_name = source_name
        self.state = ScanState.BEFORE_SUMMARY
        self.anchor_lines = 0
        self.unparsed_lines = 0
        self.diagnostic_count = 0

    def _reset(self) -> None:
        self.state = ScanState.BEFORE_SUMMARY
        self.anchor_lines = 0
        self.unparsed_lines = 0
        self.diagnostic_count = 0

    def _skip(self, cursor: LineCursor, line: str, reason: str) -> None:
        self.unparsed_lines += 1
        log_line_unparsed(line, reason)
        log_parsing_error(
            f"Couldn't parse {reason} line",
            "diagnostics",
            "iter_diagnostics",
            line_number=cursor.position,
            file_path=self.source_name,
        )

    def _capture_parameters(self, cursor: LineCursor) -> Dict[str, str]:
        parameters: Dict[str, str] = {}
        while True:
            upcoming = cursor.peek()
            if (
                upcoming is None
                or is_error_anchor(upcoming)
                or upcoming.startswith(CLOSING_MARKER)
            ):
                return parameters

            line = next(cursor)
            parsed = parse_parameter_line(line)
            if parsed is None:
                self._skip(cursor, line, "parameter")
                continue
            key, value = parsed
            parameters[key] = value

    def iter_diagnostics(self, lines: Iterable[str]) -> Iterator[CompilationDiagnostic]:
        """Yield diagnostics lazily, in the order they appear in ``lines``."""
        self._reset()
        cursor = LineCursor(lines)

        for line in cursor:
            self.state = next_state(self.state, line)
            if self.state is not ScanState.IN_SUMMARY or not is_error_anchor(line):
                continue

            self.anchor_lines += 1
            parsed = parse_error_line(line)
            if parsed is None:
                self._skip(cursor, line, "error")
                continue

            path, line_no, column, message = parsed
            parameters = self._capture_parameters(cursor)
            self.diagnostic_count += 1
            yield CompilationDiagnostic(path, line_no, column, message, parameters)

        log_extraction_complete(
            self.diagnostic_count, self.anchor_lines, self.unparsed_lines
        )

    def extract(self, lines: Iterable[str]) -> List[CompilationDiagnostic]:
        """Consume ``lines`` completely and return every diagnostic found."""
        return list(self.iter_diagnostics(lines))


def extract_diagnostics(lines: Iterable[str]) -> List[CompilationDiagnostic]:
    return DiagnosticExtractor().extract(lines)
