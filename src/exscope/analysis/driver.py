"""
Analysis Driver

Source text or file path in, AnalysisResult out:

1. Validate and read the file
2. Parse (source -> quoted form)
3. Build metadata (quoted form -> FileMetadata)
4. On a parse error, optionally retry with the broken line masked

User errors come back as failed results; only internal errors are raised.
"""

from pathlib import Path
from typing import Optional, Union
import logging

from ..frontend.parser import Parser, ParseError, get_default_parser
from ..shared.errors import InvalidSourceFileError, SourceReadError
from ..utils.config import DEFAULT_SOURCE_FILE, MAX_RECOVERY_ATTEMPTS
from ..utils.io_utils import is_analyzable_path, read_source_file
from .metadata_builder import build
from .recovery import fix_parse_error
from .result import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisDriver:
    """
    Orchestrates parsing, recovery and metadata building for one file at a time.

    The parser is shared; the driver itself holds no per-file state, so one
    instance can serve any number of files.
    """

    def __init__(self, parser: Optional[Parser] = None,
                 max_recovery_attempts: int = MAX_RECOVERY_ATTEMPTS):
        self.parser = parser if parser is not None else get_default_parser()
        self.max_recovery_attempts = max_recovery_attempts

    def parse_string(self, source: str,
                     try_to_fix_parse_errors: bool = False,
                     source_file: str = DEFAULT_SOURCE_FILE) -> AnalysisResult:
        result = self._analyze(source, source_file)
        if result.success or not try_to_fix_parse_errors:
            return result
        return fix_parse_error(
            source,
            result.error,
            lambda modified: self._analyze(modified, source_file),
            max_attempts=self.max_recovery_attempts,
            source_file=source_file,
        )

    def parse_file(self, path: Union[Path, str],
                   try_to_fix_parse_errors: bool = False) -> AnalysisResult:
        source_file = str(path)
        if not is_analyzable_path(path) or not Path(path).is_file():
            error = InvalidSourceFileError(
                f'File "{source_file}" is not a valid elixir file'
            )
            logger.warning(str(error))
            return AnalysisResult.failure(error, source_file=source_file)
        try:
            source = read_source_file(path)
        except (OSError, UnicodeDecodeError) as e:
            error = SourceReadError(
                f'Could not read "{source_file}": {e}'
            )
            logger.warning(str(error))
            return AnalysisResult.failure(error, source_file=source_file)
        return self.parse_string(source, try_to_fix_parse_errors, source_file=source_file)

    def _analyze(self, source: str, source_file: str) -> AnalysisResult:
        try:
            ast = self.parser.parse(source, source_file)
        except ParseError as e:
            logger.warning(f"Parse error in {source_file}:\n{e.render(color=False)}")
            return AnalysisResult.failure(e, source_file=source_file)
        ast, metadata = build(ast)
        if logger.isEnabledFor(logging.DEBUG):
            for line in sorted(metadata.line_contexts):
                logger.debug(f"{source_file}:{line}: {metadata.line_contexts[line]}")
        return AnalysisResult.ok(ast, metadata, source_file=source_file)
