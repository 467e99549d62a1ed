"""
Parser

Elixir source text to quoted form, with Elixir-style diagnostics on failure.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple
import logging
import re

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedToken, VisitError

from ..shared.nodes import Node
from ..shared.errors import ExscopeImplementationError, ExscopeSourceError
from ..shared.source_location import SourceLocation
from ..utils.config import (
    DEFAULT_SOURCE_FILE,
    GRAMMAR_FILE,
    GRAMMAR_START,
    MISSING_TERMINATOR_CODE,
    SYNTAX_ERROR_CODE,
)
from .transformers.base import ElixirTransformer

logger = logging.getLogger("exscope.frontend.parser")

# Sigils, strings, charlists, char literals and comments, blanked before scanning for do/end
_SIGIL = (
    r"~[a-zA-Z](?:"
    r'"""[\s\S]*?"""'
    r"|'''[\s\S]*?'''"
    r"|/(?:\\.|[^/\\\n])*/"
    r"|\|(?:\\.|[^|\\\n])*\|"
    r'|"(?:\\.|[^"\\])*"'
    r"|'(?:\\.|[^'\\])*'"
    r"|\((?:\\.|[^)\\])*\)"
    r"|\[(?:\\.|[^\]\\])*\]"
    r"|\{(?:\\.|[^}\\])*\}"
    r"|<(?:\\.|[^>\\])*>"
    r")[a-zA-Z]*"
)
_NON_CODE = re.compile(
    _SIGIL +
    r'|"""[\s\S]*?"""'
    r"|'''[\s\S]*?'''"
    r'|"(?:\\[\s\S]|[^"\\])*"'
    r"|'(?:\\[\s\S]|[^'\\])*'"
    r"|\?(?:\\.|.)"
    r"|#[^\n]*"
)
_BLOCK_KEYWORD = re.compile(r"(?<![\w:.@])(do|fn|end)(?![\w?!:])")
_OFFENDING_TOKEN = re.compile(r"\s*(\w+[?!]?|\S)")


class ParseError(ExscopeSourceError):
    """
    Parse error in an Elixir source.

    ``line`` is set when the parser knows where it stopped. It is None for
    errors detected only at end of input, where the line is given in the
    message text instead (``... starting at line N``).
    """

    def __init__(self,
                 message: str,
                 line: Optional[int] = None,
                 source_file: str = DEFAULT_SOURCE_FILE,
                 location: Optional[SourceLocation] = None,
                 source_code: Optional[str] = None,
                 error_code: str = SYNTAX_ERROR_CODE,
                 help: Optional[str] = None,
                 note: Optional[str] = None,
                 label: Optional[str] = None):
        super().__init__(message, location, error_code=error_code,
                         source_code=source_code, help=help, note=note, label=label)
        self.line = line
        self.source_file = source_file


class Parser:
    """
    Parser for Elixir source files.

    - Takes source code, returns the quoted form
    - Preserves line numbers on calls, operators and variables
    - Reports failures as ParseError

    Earley with the dynamic lexer is required: whether ``(`` or ``[`` starts
    a call, an access, a group or a list depends on the character before it.
    """

    def __init__(self) -> None:
        grammar_path = Path(__file__).parent / GRAMMAR_FILE
        self.parser = Lark.open(
            str(grammar_path),
            start=GRAMMAR_START,
            parser='earley',
            lexer='dynamic',
            ambiguity='resolve',
            propagate_positions=True,
            maybe_placeholders=False,
        )
        self.transformer = ElixirTransformer()

    def parse(self, source: str, source_file: str = DEFAULT_SOURCE_FILE) -> Node:
        """
        Parse source code to the quoted form.

        Raises: ParseError
        """
        try:
            tree = self.parser.parse(source)
        except UnexpectedEOF as e:
            raise self._missing_terminator(source, source_file) from e
        except (UnexpectedCharacters, UnexpectedToken) as e:
            raise self._syntax_error(source, source_file, e) from e

        try:
            return self.transformer.transform(tree)
        except VisitError as e:
            if isinstance(e.orig_exc, ExscopeImplementationError):
                raise e.orig_exc from e
            line = getattr(getattr(e.obj, "meta", None), "line", None)
            raise ParseError(
                f"invalid {e.rule}: {e.orig_exc}",
                line=line,
                source_file=source_file,
                location=SourceLocation(source_file, line, 1) if line else None,
                source_code=source,
            ) from e

    def _syntax_error(self, source: str, source_file: str, e) -> ParseError:
        line, column = e.line, e.column
        pos = getattr(e, "pos_in_stream", None)
        token = _offending_token(source, pos)
        logger.debug(f"{source_file}:{line}:{column}: no parse at {token!r}")
        return ParseError(
            f"syntax error before: {token}",
            line=line,
            source_file=source_file,
            location=SourceLocation(source_file, line, column),
            source_code=source,
            label="unexpected token",
        )

    def _missing_terminator(self, source: str, source_file: str) -> ParseError:
        opener = find_unclosed_opener(source)
        if opener is None:
            return ParseError(
                "unexpected end of input",
                source_file=source_file,
                source_code=source,
            )
        keyword, line = opener
        return ParseError(
            f'missing terminator: end (for "{keyword}" starting at line {line})',
            source_file=source_file,
            location=SourceLocation(source_file, line, 1),
            source_code=source,
            error_code=MISSING_TERMINATOR_CODE,
            label=f'"{keyword}" block opened on this line',
            note='every "do" and "fn" block is closed by a matching "end"',
        )


def _offending_token(source: str, pos: Optional[int]) -> str:
    if pos is None or pos < 0 or pos >= len(source):
        return "end of input"
    match = _OFFENDING_TOKEN.match(source, pos)
    return match.group(1) if match else "end of input"


def find_unclosed_opener(source: str) -> Optional[Tuple[str, int]]:
    """
    Innermost ``do``/``fn`` left open at the end of ``source``.

    Returns ``(keyword, line)`` or None when every opener is closed.
    """
    code = _NON_CODE.sub(lambda m: "\n" * m.group(0).count("\n"), source)
    stack = []
    for match in _BLOCK_KEYWORD.finditer(code):
        keyword = match.group(1)
        if keyword == "end":
            if stack:
                stack.pop()
        else:
            stack.append((keyword, code.count("\n", 0, match.start()) + 1))
    return stack[-1] if stack else None


@lru_cache(maxsize=None)
def get_default_parser() -> Parser:
    """Process-wide parser; building the Earley tables is the expensive part."""
    return Parser()
