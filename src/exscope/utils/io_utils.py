"""
Reading Elixir sources from disk.

Every file the analyzer touches goes through here, so the encoding and
the extension rules live in one place.
"""

from pathlib import Path
from typing import Union

from .config import DEFAULT_FILE_ENCODING, INVALID_SOURCE_EXTENSIONS

PathLike = Union[Path, str]


def read_source_file(path: PathLike) -> str:
    return Path(path).read_text(encoding=DEFAULT_FILE_ENCODING)


def is_analyzable_path(path: Union[PathLike, None]) -> bool:
    """Empty paths and Erlang sources are never parsed as Elixir."""
    return bool(path) and not str(path).endswith(INVALID_SOURCE_EXTENSIONS)
