"""
Shared components: node model, traversal, scope frames and errors.
"""

from .source_location import SourceLocation
from .errors import (
    Error, ErrorReporter, ExscopeError, ExscopeSourceError,
    InvalidSourceFileError, SourceReadError, ExscopeImplementationError,
)
from .nodes import (
    ASTNode, LiteralKind, Node,
    Construct, Pair, NodeList, Leaf, Literal, Identifier, NIL,
    atom, aliases, block, is_aliases, alias_segments, alias_name, keyword_get,
)
from .ast_visitor import ASTVisitor, QuotedFormatter, traverse, prewalk, postwalk, to_quoted_string
from .scope import (
    DefinitionKey, LexicalContext, EMPTY_CONTEXT,
    push_frame, pop_frame, prepend_to_innermost, flatten_frames, join_module_path,
)
