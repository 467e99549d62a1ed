"""
Elixir AST Definitions

The quoted form of Elixir code as a closed set of node shapes:

- Construct: ``{head, meta, args}`` (calls, operators, definitions, ``__aliases__``)
- Pair:      two-element tuples (keyword entries, ``do:`` blocks)
- NodeList:  ordered lists
- Leaf:      ``Literal`` values and bare ``Identifier`` references

Only Construct and Identifier carry line metadata.

Visitor Pattern Support:
- All AST nodes have accept() methods for polymorphic dispatch
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union, TYPE_CHECKING, TypeVar

from ..utils.config import ALIASES_HEAD, BLOCK_HEAD, MODULE_SEPARATOR

if TYPE_CHECKING:
    from .ast_visitor import ASTVisitor

T = TypeVar('T')


class LiteralKind(Enum):
    """Kinds of literal leaves"""
    ATOM = "atom"
    STRING = "string"
    CHARLIST = "charlist"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NIL = "nil"


class ASTNode:
    """
    Base class for all AST nodes

    Subclasses are frozen dataclasses, so a rewritten tree is always a new
    tree and nodes can be shared between the original and the rewrite.
    """
    __slots__ = ()

    @property
    def line(self) -> Optional[int]:
        return None

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")


@dataclass(frozen=True)
class Construct(ASTNode):
    """
    ``{head, [line: line], args}``

    ``head`` is an atom name for local calls and operators, or another node
    for remote and anonymous calls. ``args`` is None for a bare reference
    such as the module attribute name inside ``@doc``.
    """
    head: Union[str, 'Node']
    args: Optional[Tuple['Node', ...]] = ()
    line: Optional[int] = None

    def __str__(self) -> str:
        head = self.head if isinstance(self.head, str) else str(self.head)
        if self.args is None:
            return head
        return f"{head}({', '.join(str(a) for a in self.args)})"

    @property
    def arity(self) -> int:
        return len(self.args or ())

    def with_args(self, args: Tuple['Node', ...]) -> 'Construct':
        return Construct(self.head, args, self.line)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_construct(self)


@dataclass(frozen=True)
class Pair(ASTNode):
    """Two-element tuple"""
    left: 'Node'
    right: 'Node'

    def __str__(self) -> str:
        return f"{{{self.left}, {self.right}}}"

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_pair(self)


@dataclass(frozen=True)
class NodeList(ASTNode):
    """Ordered list of nodes"""
    items: Tuple['Node', ...] = ()

    def __str__(self) -> str:
        return f"[{', '.join(str(i) for i in self.items)}]"

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_list(self)


class Leaf(ASTNode):
    """Atomic node with no children"""
    __slots__ = ()


@dataclass(frozen=True)
class Literal(Leaf):
    """Literal value (atom, string, number, boolean, nil)"""
    value: Any
    kind: LiteralKind = LiteralKind.ATOM

    def __str__(self) -> str:
        if self.kind is LiteralKind.ATOM:
            return f":{self.value}"
        if self.kind is LiteralKind.STRING:
            return f'"{self.value}"'
        if self.kind is LiteralKind.NIL:
            return "nil"
        if self.kind is LiteralKind.BOOLEAN:
            return "true" if self.value else "false"
        return str(self.value)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_literal(self)


@dataclass(frozen=True)
class Identifier(Leaf):
    """
    Bare identifier ``{name, [line: line], context}``

    ``context`` is None for source identifiers, ``"Elixir"`` for root
    qualified ones, and a module name for macro-hygienic ones.
    """
    name: str
    line: Optional[int] = None
    context: Optional[str] = None

    def __str__(self) -> str:
        return self.name

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_identifier(self)


Node = Union[Construct, Pair, NodeList, Literal, Identifier]

NIL = Literal(None, LiteralKind.NIL)


# ============================================
# Constructors and shape helpers
# ============================================

def atom(name: str) -> Literal:
    return Literal(name, LiteralKind.ATOM)


def aliases(segments: Tuple[str, ...], line: Optional[int] = None) -> Construct:
    """``Foo.Bar`` as ``{:__aliases__, [line: line], [:Foo, :Bar]}``"""
    return Construct(ALIASES_HEAD, tuple(atom(s) for s in segments), line)


def block(exprs: Tuple[Node, ...]) -> Node:
    """Wrap several expressions in ``__block__``; a single one is returned as is."""
    if len(exprs) == 1:
        return exprs[0]
    return Construct(BLOCK_HEAD, tuple(exprs), None)


def is_aliases(node: Any) -> bool:
    return (
        isinstance(node, Construct)
        and node.head == ALIASES_HEAD
        and node.args is not None
        and all(isinstance(a, Literal) and a.kind is LiteralKind.ATOM for a in node.args)
    )


def alias_segments(node: Node) -> Tuple[str, ...]:
    """Segments of an ``__aliases__`` node (``Foo.Bar`` -> ``("Foo", "Bar")``)."""
    if not is_aliases(node):
        raise ValueError(f"not an alias reference: {node}")
    return tuple(str(a.value) for a in node.args)


def alias_name(node: Node) -> str:
    return MODULE_SEPARATOR.join(alias_segments(node))


def keyword_get(node: Any, key: str) -> Optional[Node]:
    """Look up ``key`` in a keyword list node (``[as: X, warn: false]``)."""
    if not isinstance(node, NodeList):
        return None
    for item in node.items:
        if (
            isinstance(item, Pair)
            and isinstance(item.left, Literal)
            and item.left.kind is LiteralKind.ATOM
            and item.left.value == key
        ):
            return item.right
    return None
