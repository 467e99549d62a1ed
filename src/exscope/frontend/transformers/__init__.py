"""
Elixir AST Transformers
=======================

Parse tree to quoted-form transformer and its literal decoder.
"""

from .base import ElixirTransformer
from .literals import LiteralParser

__all__ = [
    'ElixirTransformer',
    'LiteralParser',
]
