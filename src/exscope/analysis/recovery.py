"""
Parse error recovery

A file being edited usually has one broken line. Replacing that line with a
marker expression that is valid anywhere an expression is valid lets the
rest of the file be analyzed. The marker keeps the line count intact, so
every other line keeps its number and content.
"""

from dataclasses import replace
from typing import Callable, List, Optional, Set, Tuple
import logging
import re

from ..shared.ast_visitor import prewalk
from ..shared.errors import ExscopeError
from ..shared.nodes import Construct, Node
from ..utils.config import (
    DEFAULT_SOURCE_FILE,
    LINE_NUMBER_PATTERN,
    MARKER_NAME_PATTERN,
    MARKER_TEMPLATE,
    MAX_RECOVERY_ATTEMPTS,
    RECOVERY_LOOKBEHIND,
)
from .result import AnalysisResult

logger = logging.getLogger(__name__)

_LINE_NUMBER = re.compile(LINE_NUMBER_PATTERN)
_MARKER_NAME = re.compile(MARKER_NAME_PATTERN)
_LINE_BREAK = re.compile(r"\r?\n")

Reparse = Callable[[str], AnalysisResult]


def extract_error_line(error: Exception) -> Optional[int]:
    """
    Line an error points at.

    Structured ``line`` attribute first, then ``line N`` in the message.
    """
    line = getattr(error, "line", None)
    if isinstance(line, int) and not isinstance(line, bool) and line > 0:
        return line
    message = getattr(error, "message", None) or str(error)
    match = _LINE_NUMBER.search(message)
    if match:
        return int(match.group(1))
    return None


def replace_line_with_marker(source: str, line: int) -> str:
    lines = _LINE_BREAK.split(source)
    if 1 <= line <= len(lines):
        lines[line - 1] = MARKER_TEMPLATE.format(line=line)
    return "\n".join(lines)


def marker_line(node: Node) -> Optional[int]:
    """Line number encoded in a marker call, None for any other node."""
    if isinstance(node, Construct) and isinstance(node.head, str) and not node.args:
        match = _MARKER_NAME.match(node.head)
        if match:
            return int(match.group(1))
    return None


def find_marker_lines(ast: Node) -> Tuple[int, ...]:
    def collect(node: Node, found: List[int]) -> Tuple[Node, List[int]]:
        line = marker_line(node)
        if line is not None:
            found.append(line)
        return node, found

    _, found = prewalk(ast, [], collect)
    return tuple(sorted(set(found)))


def fix_parse_error(source: str,
                    error: ExscopeError,
                    reparse: Reparse,
                    max_attempts: int = MAX_RECOVERY_ATTEMPTS,
                    source_file: str = DEFAULT_SOURCE_FILE) -> AnalysisResult:
    """
    Retry a failed parse with the offending line replaced by a marker.

    ``reparse`` must parse without recovery. Each attempt handles one
    reported error. When that error sits on the first token of its line, the
    code lines just above it are also tried, since the broken line may be the
    one left unfinished.

    Stops after ``max_attempts`` attempts, or as soon as an error carries no
    usable line or points at a line that was already replaced. The failure
    result carries the latest error unchanged.
    """
    replaced: Set[int] = set()
    current_source = source
    current_error = error
    attempts = 0
    while attempts < max_attempts:
        line = extract_error_line(current_error)
        if line is None:
            logger.debug(f"{source_file}: no line in error, giving up recovery")
            break
        if line in replaced:
            logger.debug(f"{source_file}: line {line} already replaced, giving up recovery")
            break
        attempts += 1
        masked = replace_line_with_marker(current_source, line)
        result = reparse(masked)
        if result.success:
            return _recovered(result, replaced | {line}, source_file)

        # An unfinished line such as `y =` or `bar(x,` is only reported at the
        # first token of a following line.
        if _error_opens_line(current_source, current_error, line):
            for earlier in _preceding_code_lines(current_source, line, replaced):
                candidate = reparse(replace_line_with_marker(current_source, earlier))
                if candidate.success:
                    return _recovered(candidate, replaced | {earlier}, source_file)

        current_source = masked
        replaced.add(line)
        current_error = result.error
    return AnalysisResult.failure(current_error, source_file=source_file)


def _recovered(result: AnalysisResult, lines: Set[int], source_file: str) -> AnalysisResult:
    recovered = tuple(sorted(lines))
    logger.info(f"{source_file}: recovered from parse error by replacing line(s) {list(recovered)}")
    return replace(result, recovered_lines=recovered)


def _error_opens_line(source: str, error: Exception, line: int) -> bool:
    """True when the error's column is the first token of ``line``."""
    location = getattr(error, "location", None)
    if location is None or location.line != line or location.column < 1:
        return False
    lines = _LINE_BREAK.split(source)
    if line > len(lines):
        return False
    return not lines[line - 1][:location.column - 1].strip()


def _preceding_code_lines(source: str, line: int, skip: Set[int]) -> Tuple[int, ...]:
    """Up to RECOVERY_LOOKBEHIND lines before ``line`` that hold code, nearest first."""
    lines = _LINE_BREAK.split(source)
    found: List[int] = []
    for number in range(min(line, len(lines) + 1) - 1, 0, -1):
        text = lines[number - 1].strip()
        if not text or text.startswith("#") or number in skip:
            continue
        found.append(number)
        if len(found) == RECOVERY_LOOKBEHIND:
            break
    return tuple(found)
