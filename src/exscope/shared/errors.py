"""
Error Reporting

Diagnostics about Elixir sources, rendered with a source snippet:

    error[E0001]: syntax error before: ]
     --> lib/a.ex:4:9
      |
    3 |   def foo do
    4 |     x = ]
      |         ^
      |
      = help: rerun with --fix to analyze the rest of the file

Also defines the exception hierarchy used across exscope.
"""

import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

from .source_location import SourceLocation
from ..utils.config import (
    ERROR_POINTER_CHAR,
    IMPLEMENTATION_ERROR_CODE,
    INVALID_FILE_CODE,
    READ_ERROR_CODE,
    SYNTAX_ERROR_CODE,
)

# Characters that end the token under the caret when no end column is known
_TOKEN_DELIMITERS = frozenset(" \t;,()[]{}")

_ANSI = {
    "bold": "\033[1m",
    "red": "\033[31m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
}
_ANSI_RESET = "\033[0m"

# Diagnostic part -> ANSI attributes
_ROLES = {
    "severity": ("bold", "red"),
    "headline": ("bold",),
    "gutter": ("bold", "blue"),
    "pointer": ("bold", "red"),
    "annotation": ("bold", "cyan"),
}


def color_enabled() -> bool:
    """NO_COLOR wins; EXSCOPE_COLOR=0/false/no/never turns colors off."""
    if os.environ.get("NO_COLOR"):
        return False
    return os.environ.get("EXSCOPE_COLOR", "").lower() not in ("0", "false", "no", "never")


def _paint(text: str, role: str, color: bool) -> str:
    if not color or not text:
        return text
    codes = "".join(_ANSI[attr] for attr in _ROLES[role])
    return f"{codes}{text}{_ANSI_RESET}"


@dataclass
class Error:
    """One diagnostic about an Elixir source."""
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None
    label: Optional[str] = None


class _SnippetRenderer:
    """
    Renders diagnostics against a set of in-memory sources.

    The offending line is shown with the line before it, unless that one
    is blank, so a broken ``end`` or ``do`` is shown next to its opener.
    """

    def __init__(self, source_files: Dict[str, str], color: bool):
        self.source_files = source_files
        self.color = color

    def render(self, error: Error) -> str:
        lines = [self._headline(error)]
        loc = error.location
        source = self.source_files.get(loc.file) if loc is not None else None
        width = len(str(loc.line)) if loc is not None else 1
        if loc is None:
            lines.append(self._gutter(" --> ") + "<unknown location>")
        elif source is None:
            lines.append(self._gutter(" --> ") + str(loc))
        else:
            lines.append(self._gutter(" " * width + "--> ") + str(loc))
            lines.extend(self._snippet(error, loc, source.splitlines(), width))
        lines.extend(self._annotations(error, width))
        return "\n".join(lines)

    def _headline(self, error: Error) -> str:
        severity = f"error[{error.code}]" if error.code else "error"
        return _paint(severity, "severity", self.color) + _paint(f": {error.message}", "headline", self.color)

    def _gutter(self, text: str) -> str:
        return _paint(text, "gutter", self.color)

    def _snippet(self, error: Error, loc: SourceLocation, src_lines: List[str], width: int) -> List[str]:
        out = [self._gutter(" " * (width + 1) + "|")]
        previous = loc.line - 2
        if 0 <= previous < len(src_lines) and src_lines[previous].strip():
            out.append(self._gutter(str(loc.line - 1).rjust(width) + " | ") + src_lines[previous])
        index = loc.line - 1
        code_line = src_lines[index] if 0 <= index < len(src_lines) else ""
        out.append(self._gutter(str(loc.line).rjust(width) + " | ") + code_line)

        start = max(loc.column, 1) - 1
        if loc.end_column > loc.column and loc.end_line in (0, loc.line):
            span = loc.end_column - loc.column
        else:
            span = _token_width(code_line, start)
        pointer = " " * start + ERROR_POINTER_CHAR * max(1, span)
        if error.label:
            pointer += f" {error.label}"
        out.append(self._gutter(" " * (width + 1) + "| ") + _paint(pointer, "pointer", self.color))
        return out

    def _annotations(self, error: Error, width: int) -> List[str]:
        notes = [(kind, text) for kind, text in (("help", error.help), ("note", error.note)) if text]
        if not notes:
            return []
        pad = " " * (width + 1)
        out = [self._gutter(pad + "|")]
        for kind, text in notes:
            out.append(_paint(f"{pad}= ", "annotation", self.color) + _paint(f"{kind}: ", "headline", self.color) + text)
        return out


def _token_width(code_line: str, start: int) -> int:
    width = 0
    for ch in code_line[start:]:
        if ch in _TOKEN_DELIMITERS:
            break
        width += 1
    return max(1, width)


def render_diagnostic(error: Error, source_files: Dict[str, str], color: Optional[bool] = None) -> str:
    use_color = color_enabled() if color is None else color
    return _SnippetRenderer(source_files, use_color).render(error)


# ---------------------------------------------------------------------------
# ErrorReporter
# ---------------------------------------------------------------------------

class ErrorReporter:
    """Collects diagnostics and renders them against the sources they refer to."""

    def __init__(self, source_files: Dict[str, str]):
        self.source_files = source_files
        self.errors: List[Error] = []

    def report(self, error: Error) -> None:
        self.errors.append(error)

    def report_exception(self, exc: "ExscopeError") -> None:
        """Record an exscope exception, keeping the source it carries for the snippet."""
        self.errors.append(exc.to_diagnostic())
        source = getattr(exc, "source_code", None)
        if source is not None and exc.location is not None:
            self.source_files.setdefault(exc.location.file, source)

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        return render_diagnostic(error, self.source_files, color)

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        use_color = color_enabled() if color is None else color
        count = len(self.errors)
        summary = (
            _paint("error", "severity", use_color)
            + _paint(f": analysis aborted due to {count} previous error{'s' if count != 1 else ''}",
                     "headline", use_color)
        )
        return "\n\n".join([self.format_error(e, use_color) for e in self.errors] + [summary])

    def has_errors(self) -> bool:
        return bool(self.errors)

    def print_errors(self, color: Optional[bool] = None) -> None:
        if self.errors:
            print(self.format_all_errors(color=color), file=sys.stderr)


# ============================================================================
# Exception Classes
# ============================================================================

class ExscopeError(Exception):
    """Base exception for problems with the analyzed input"""
    error_code = SYNTAX_ERROR_CODE

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def to_diagnostic(self) -> Error:
        return Error(message=self.message, location=self.location, code=self.error_code)

    def __str__(self):
        if self.location is None:
            return self.message
        return f"{self.location}: {self.message}"


class ExscopeSourceError(ExscopeError):
    """
    Error located in an Elixir source.

    Carries the source text, so str(error) shows the offending line
    without the caller keeping a copy around.
    """

    def __init__(self,
                 message: str,
                 location: Optional[SourceLocation] = None,
                 error_code: str = SYNTAX_ERROR_CODE,
                 source_code: Optional[str] = None,
                 help: Optional[str] = None,
                 note: Optional[str] = None,
                 label: Optional[str] = None):
        super().__init__(message, location)
        self.error_code = error_code
        self.source_code = source_code
        self.help_text = help
        self.note_text = note
        self.label_text = label

    def to_diagnostic(self) -> Error:
        return Error(
            message=self.message,
            location=self.location,
            code=self.error_code,
            help=self.help_text,
            note=self.note_text,
            label=self.label_text,
        )

    def render(self, color: Optional[bool] = None) -> str:
        sources = {}
        if self.source_code is not None and self.location is not None:
            sources[self.location.file] = self.source_code
        return render_diagnostic(self.to_diagnostic(), sources, color)

    def __str__(self):
        return self.render(color=False)


class InvalidSourceFileError(ExscopeError):
    """Path that does not name an analyzable Elixir file"""
    error_code = INVALID_FILE_CODE


class SourceReadError(ExscopeError):
    """Elixir file that exists but cannot be read or decoded"""
    error_code = READ_ERROR_CODE


class ExscopeImplementationError(Exception):
    """
    Error in exscope itself, not in the analyzed code.

    Raised for broken internal state such as scope stacks left open after
    a traversal. Never raised for problems in user source.
    """

    def __init__(self, message: str, error_code: str = IMPLEMENTATION_ERROR_CODE):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"
