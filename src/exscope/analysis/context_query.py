"""
Context Query Service

Answers editor questions from a FileMetadata:
- where is a function defined
- what is in scope on a given line

Lines the table does not know (typically the line being typed) are answered
by masking the line with a marker and rebuilding.
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union
import json
import logging

from ..shared.scope import DefinitionKey, EMPTY_CONTEXT, LexicalContext
from ..utils.config import DEFAULT_FILE_ENCODING
from .driver import AnalysisDriver
from .metadata_builder import FileMetadata
from .recovery import replace_line_with_marker

logger = logging.getLogger(__name__)

FunctionEntry = Tuple[str, Optional[int], int]


class ContextLookup(Enum):
    LINE_NOT_FOUND = "line_not_found"


# ============================================
# Documentation index
# ============================================

class DocIndex(ABC):
    """Definition lines known from documentation rather than from the file."""

    @abstractmethod
    def function_lines(self, module: str, function: str) -> Iterable[int]:
        pass


class NullDocIndex(DocIndex):
    def function_lines(self, module: str, function: str) -> Iterable[int]:
        return ()


class StaticDocIndex(DocIndex):
    """
    In-memory index: ``{module: [(function, arity, line), ...]}``.

    Lines are returned in the order the entries were given.
    """

    def __init__(self, entries: Dict[str, Sequence[FunctionEntry]]):
        self._lines: Dict[Tuple[str, str], List[int]] = {}
        for module, functions in entries.items():
            for function, _arity, line in functions:
                self._lines.setdefault((module, function), []).append(int(line))

    @classmethod
    def from_json(cls, path: Union[Path, str]) -> "StaticDocIndex":
        data = json.loads(Path(path).read_text(encoding=DEFAULT_FILE_ENCODING))
        return cls({
            module: [tuple(entry) for entry in functions]
            for module, functions in data.items()
        })

    def function_lines(self, module: str, function: str) -> Iterable[int]:
        return tuple(self._lines.get((module, function), ()))


# ============================================
# Queries
# ============================================

class ContextQueryService:
    """Definition and context lookups over analyzed files."""

    def __init__(self, driver: Optional[AnalysisDriver] = None,
                 doc_index: Optional[DocIndex] = None):
        self._driver = driver
        self.doc_index = doc_index if doc_index is not None else NullDocIndex()

    @property
    def driver(self) -> AnalysisDriver:
        # Built on first use; definition lookups never need a parser
        if self._driver is None:
            self._driver = AnalysisDriver()
        return self._driver

    def get_function_line(self, metadata: Optional[FileMetadata],
                          module: str, function: str) -> Optional[int]:
        if metadata is None:
            return None
        line = metadata.definitions.get(DefinitionKey(module, function))
        if line is not None:
            return line
        doc_line = next(iter(self.doc_index.function_lines(module, function)), None)
        if doc_line is not None:
            logger.debug(f"{module}.{function}: definition line {doc_line} from doc index")
        return doc_line

    def get_context_by_line(self, metadata: Optional[FileMetadata],
                            line: int) -> Union[LexicalContext, ContextLookup]:
        if metadata is None:
            return EMPTY_CONTEXT
        context = metadata.line_contexts.get(line)
        if context is None:
            return ContextLookup.LINE_NOT_FOUND
        return context

    def get_context_from_line_not_found(self, source: str, line: int) -> LexicalContext:
        """Mask ``line`` with a marker, rebuild without recovery and look again."""
        modified = replace_line_with_marker(source, line)
        result = self.driver.parse_string(modified, try_to_fix_parse_errors=False)
        if not result.success:
            return EMPTY_CONTEXT
        context = self.get_context_by_line(result.metadata, line)
        if context is ContextLookup.LINE_NOT_FOUND:
            return EMPTY_CONTEXT
        return context

    def context_at(self, source: str, metadata: Optional[FileMetadata], line: int) -> LexicalContext:
        context = self.get_context_by_line(metadata, line)
        if context is ContextLookup.LINE_NOT_FOUND:
            logger.debug(f"line {line} not in context table, rebuilding with marker")
            return self.get_context_from_line_not_found(source, line)
        return context
