"""
Analysis result

Outcome of analyzing one source: the tree and metadata on success, the
diagnostic on failure.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..shared.nodes import Node
from ..shared.errors import ExscopeError
from ..utils.config import DEFAULT_SOURCE_FILE
from .metadata_builder import FileMetadata


@dataclass(frozen=True)
class AnalysisResult:
    """Analysis result"""
    success: bool
    ast: Optional[Node] = None
    metadata: Optional[FileMetadata] = None
    error: Optional[ExscopeError] = None
    recovered_lines: Tuple[int, ...] = ()
    source_file: str = DEFAULT_SOURCE_FILE

    @classmethod
    def ok(cls, ast: Node, metadata: FileMetadata,
           source_file: str = DEFAULT_SOURCE_FILE,
           recovered_lines: Tuple[int, ...] = ()) -> "AnalysisResult":
        return cls(True, ast=ast, metadata=metadata,
                   recovered_lines=recovered_lines, source_file=source_file)

    @classmethod
    def failure(cls, error: ExscopeError,
                source_file: str = DEFAULT_SOURCE_FILE) -> "AnalysisResult":
        return cls(False, error=error, source_file=source_file)

    @property
    def recovered(self) -> bool:
        return bool(self.recovered_lines)

    def has_errors(self) -> bool:
        return not self.success
