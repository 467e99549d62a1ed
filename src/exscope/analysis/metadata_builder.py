"""
Metadata Builder - per-line lexical context of an Elixir file.

One traversal over the quoted form records, for every line carrying metadata,
the enclosing module, the imports and aliases in effect and the variables
seen so far in the innermost scope. It also records the definition line of
every module and function.

The scope state travels as an immutable FileMetadata value threaded through
``traverse``: ``pre`` opens scopes, ``post`` closes them. The two output
tables are owned by a single ``build`` call and only ever grow.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, NamedTuple, Optional, Tuple
import logging

from ..shared.ast_visitor import traverse
from ..shared.errors import ExscopeImplementationError
from ..shared.nodes import (
    NIL, Construct, Identifier, Node, alias_name, alias_segments, is_aliases, keyword_get,
)
from ..shared.scope import (
    DefinitionKey, FrameStack, LexicalContext,
    alias_key, describe_frames, flatten_frames, innermost,
    join_module_path, pop_frame, prepend_to_innermost, push_frame,
)
from ..utils.config import (
    ALIAS_AS_OPTION,
    ALIAS_DIRECTIVE,
    FUNCTION_DEFINITIONS,
    GUARD_OPERATOR,
    IGNORED_BINDER_PREFIX,
    IMPORT_DIRECTIVE,
    MACRO_DEFINITIONS,
    MODULE_DEFINITION,
    ROOT_MODULE,
    VARIABLE_CONTEXTS,
)

logger = logging.getLogger(__name__)

_ROOT_FRAMES: FrameStack = ((),)


@dataclass(frozen=True)
class FileMetadata:
    """
    Traversal accumulator and final analysis result.

    Stacks are tuples, innermost last. ``definitions`` and ``line_contexts``
    are shared by every intermediate value of one build.
    """
    module_path: Tuple[str, ...] = ()
    scope_stack: Tuple[str, ...] = (ROOT_MODULE,)
    import_frames: FrameStack = _ROOT_FRAMES
    alias_frames: FrameStack = _ROOT_FRAMES
    var_frames: FrameStack = _ROOT_FRAMES
    definitions: Dict[DefinitionKey, int] = field(default_factory=dict, compare=False)
    line_contexts: Dict[int, LexicalContext] = field(default_factory=dict, compare=False)

    @property
    def current_module(self) -> str:
        return join_module_path(self.module_path)

    def effective_imports(self) -> Tuple[str, ...]:
        return flatten_frames(self.import_frames)

    def effective_aliases(self) -> Tuple[Tuple[str, str], ...]:
        return flatten_frames(self.alias_frames, alias_key)

    def current_vars(self) -> Tuple[str, ...]:
        return innermost(self.var_frames)

    def snapshot(self, with_vars: bool = True) -> LexicalContext:
        return LexicalContext(
            module=self.current_module,
            imports=self.effective_imports(),
            aliases=self.effective_aliases(),
            vars=self.current_vars() if with_vars else (),
        )

    def is_balanced(self) -> bool:
        """True when every scope opened during the walk has been closed."""
        return (
            self.module_path == ()
            and self.scope_stack == (ROOT_MODULE,)
            and len(self.import_frames) == 1
            and len(self.alias_frames) == 1
            and len(self.var_frames) == 1
        )

    def definition_line(self, module: str, function: Optional[str] = None,
                        arity: Optional[int] = None) -> Optional[int]:
        return self.definitions.get(DefinitionKey(module, function, arity))

    def context_at(self, line: int) -> Optional[LexicalContext]:
        return self.line_contexts.get(line)

    def to_dict(self) -> Dict[str, Any]:
        definitions: List[Dict[str, Any]] = [
            {"module": key.module, "function": key.function, "arity": key.arity, "line": line}
            for key, line in self.definitions.items()
        ]
        return {
            "definitions": definitions,
            "line_contexts": {
                str(line): self.line_contexts[line].to_dict()
                for line in sorted(self.line_contexts)
            },
        }

    def describe_state(self) -> Dict[str, Any]:
        return {
            "module_path": list(self.module_path),
            "scope_stack": list(self.scope_stack),
            "import_frames": describe_frames(self.import_frames),
            "alias_frames": describe_frames(self.alias_frames),
            "var_frames": describe_frames(self.var_frames),
        }

    # -- scope transitions -------------------------------------------------

    def _open_scope(self, names: Tuple[str, ...], module_segments: Tuple[str, ...] = ()) -> "FileMetadata":
        return replace(
            self,
            module_path=self.module_path + module_segments,
            scope_stack=self.scope_stack + names,
            import_frames=push_frame(self.import_frames),
            alias_frames=push_frame(self.alias_frames),
            var_frames=push_frame(self.var_frames),
        )

    def _close_scope(self, depth: int, module_depth: int = 0) -> "FileMetadata":
        if len(self.scope_stack) <= depth or len(self.module_path) < module_depth:
            raise ExscopeImplementationError(
                f"Cannot close {depth} scope(s) with scope stack {list(self.scope_stack)}"
            )
        return replace(
            self,
            module_path=self.module_path[:len(self.module_path) - module_depth],
            scope_stack=self.scope_stack[:-depth],
            import_frames=pop_frame(self.import_frames),
            alias_frames=pop_frame(self.alias_frames),
            var_frames=pop_frame(self.var_frames),
        )


class _Definition(NamedTuple):
    name: str
    arity: int
    line: int


# ============================================
# Shape matching
# ============================================

def _module_definition(node: Node) -> Optional[Tuple[Tuple[str, ...], int]]:
    """``defmodule Foo.Bar do ... end`` -> ``(("Foo", "Bar"), line)``"""
    if (
        isinstance(node, Construct)
        and node.head == MODULE_DEFINITION
        and node.line is not None
        and node.args is not None
        and len(node.args) == 2
        and is_aliases(node.args[0])
    ):
        return alias_segments(node.args[0]), node.line
    return None


def _normalize_definition(node: Node) -> Node:
    """Drop a ``when`` guard from the head and give bodyless macros a nil body."""
    if not (isinstance(node, Construct) and node.head in FUNCTION_DEFINITIONS + MACRO_DEFINITIONS):
        return node
    args = node.args or ()
    if node.head in MACRO_DEFINITIONS and len(args) == 1:
        args = (args[0], NIL)
    if len(args) == 2:
        head = args[0]
        if isinstance(head, Construct) and head.head == GUARD_OPERATOR and head.args:
            args = (head.args[0], args[1])
    if args == node.args:
        return node
    return node.with_args(args)


def _function_definition(node: Node) -> Optional[_Definition]:
    """Name, arity and line of a normalized def/defp/defmacro/defmacrop."""
    if not (
        isinstance(node, Construct)
        and node.head in FUNCTION_DEFINITIONS + MACRO_DEFINITIONS
        and node.line is not None
        and node.args is not None
        and len(node.args) == 2
    ):
        return None
    head = node.args[0]
    if isinstance(head, Identifier):
        return _Definition(head.name, 0, node.line)
    if isinstance(head, Construct) and isinstance(head.head, str):
        return _Definition(head.head, head.arity, node.line)
    return None


def _import_target(node: Node) -> Optional[str]:
    if (
        isinstance(node, Construct)
        and node.head == IMPORT_DIRECTIVE
        and node.line is not None
        and node.args
        and len(node.args) <= 2
        and is_aliases(node.args[0])
    ):
        return alias_name(node.args[0])
    return None


def _alias_binding(node: Node) -> Optional[Tuple[str, str]]:
    """``alias A.B`` -> ``("B", "A.B")``; ``alias A.B, as: C`` -> ``("C", "A.B")``"""
    if not (
        isinstance(node, Construct)
        and node.head == ALIAS_DIRECTIVE
        and node.line is not None
        and node.args
        and len(node.args) <= 2
        and is_aliases(node.args[0])
    ):
        return None
    target = alias_segments(node.args[0])
    qualified = join_module_path(target)
    if len(node.args) == 1:
        return target[-1], qualified
    short = keyword_get(node.args[1], ALIAS_AS_OPTION)
    if short is None:
        return target[-1], qualified
    if is_aliases(short):
        return alias_name(short), qualified
    return None


def _is_variable(node: Node) -> bool:
    return (
        isinstance(node, Identifier)
        and node.line is not None
        and node.context in VARIABLE_CONTEXTS
    )


# ============================================
# Traversal callbacks
# ============================================

def _pre(node: Node, acc: FileMetadata) -> Tuple[Node, FileMetadata]:
    module = _module_definition(node)
    if module is not None:
        segments, line = module
        qualified = join_module_path(acc.module_path + segments)
        acc.definitions[DefinitionKey(qualified)] = line
        alias_frames = acc.alias_frames
        if len(acc.module_path) + len(segments) > 1:
            # `defmodule Inner` nested in Outer is reachable as Inner in Outer
            alias_frames = prepend_to_innermost(alias_frames, (segments[-1], qualified))
        acc = replace(acc, alias_frames=alias_frames)
        return node, acc._open_scope(segments, module_segments=segments)

    node = _normalize_definition(node)
    definition = _function_definition(node)
    if definition is not None:
        module_name = acc.current_module
        acc.definitions[DefinitionKey(module_name, definition.name, definition.arity)] = definition.line
        acc.definitions.setdefault(DefinitionKey(module_name, definition.name), definition.line)
        acc.line_contexts[definition.line] = acc.snapshot(with_vars=False)
        return node, acc._open_scope((definition.name,))

    imported = _import_target(node)
    if imported is not None:
        acc.line_contexts[node.line] = acc.snapshot(with_vars=False)
        return node, replace(acc, import_frames=prepend_to_innermost(acc.import_frames, imported))

    binding = _alias_binding(node)
    if binding is not None:
        acc.line_contexts[node.line] = acc.snapshot(with_vars=False)
        return node, replace(acc, alias_frames=prepend_to_innermost(acc.alias_frames, binding))

    if _is_variable(node):
        name = node.name
        scope_vars = acc.current_vars()
        if (
            name in scope_vars
            or name.startswith(IGNORED_BINDER_PREFIX)
            or name == acc.scope_stack[-1]
        ):
            return node, acc
        return node, replace(acc, var_frames=prepend_to_innermost(acc.var_frames, name))

    line = node.line
    if line is not None:
        acc.line_contexts[line] = acc.snapshot()
    return node, acc


def _post(node: Node, acc: FileMetadata) -> Tuple[Node, FileMetadata]:
    module = _module_definition(node)
    if module is not None:
        segments, _ = module
        return node, acc._close_scope(len(segments), module_depth=len(segments))
    if _function_definition(node) is not None:
        return node, acc._close_scope(1)
    return node, acc


def build(ast: Node) -> Tuple[Node, FileMetadata]:
    """
    Analyze a quoted Elixir file.

    Returns the (guard-normalized) tree and the metadata. Raises
    ExscopeImplementationError if the walk leaves a scope open.
    """
    ast, metadata = traverse(ast, FileMetadata(), _pre, _post)
    if not metadata.is_balanced():
        raise ExscopeImplementationError(
            f"Unbalanced scope state after traversal: {metadata.describe_state()}"
        )
    logger.debug(
        f"built metadata: {len(metadata.definitions)} definitions, "
        f"{len(metadata.line_contexts)} lines"
    )
    return ast, metadata
