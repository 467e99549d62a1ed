"""
exscope utilities package
"""

from .io_utils import read_source_file, is_analyzable_path

__all__ = ["read_source_file", "is_analyzable_path"]
