"""
AST Traversal and Visitor Pattern

This module provides:
1. traverse/prewalk/postwalk: accumulator-threading walks over the quoted form
2. ASTVisitor (abstract visitor with one visit_* method per node shape)
3. QuotedFormatter (renders nodes the way Elixir prints quoted code)

Design:
- Callbacks take ``(node, acc)`` and return ``(node, acc)``
- The accumulator is threaded by value; no state lives on the walker
- Nodes are frozen, so a rewrite rebuilds only the path to the change
"""

from abc import ABC, abstractmethod
from typing import Callable, Generic, Tuple, TypeVar

from .nodes import (
    ASTNode, Construct, Identifier, Literal, LiteralKind, Node, NodeList, Pair,
)

T = TypeVar('T')
Acc = TypeVar('Acc')

Callback = Callable[[Node, Acc], Tuple[Node, Acc]]


# ============================================
# TRAVERSAL
# ============================================

def traverse(node: Node, acc: Acc, pre: Callback, post: Callback) -> Tuple[Node, Acc]:
    """
    Depth-first walk calling ``pre`` before and ``post`` after each node.

    ``pre`` may return a rewritten node; its children are the ones visited.
    For a Construct, a node head is walked before the arguments. Pair
    elements and list items are walked left to right.
    """
    node, acc = pre(node, acc)
    return _descend(node, acc, pre, post)


def _descend(node: Node, acc: Acc, pre: Callback, post: Callback) -> Tuple[Node, Acc]:
    if isinstance(node, Construct):
        head = node.head
        if not isinstance(head, str):
            head, acc = traverse(head, acc, pre, post)
        args = node.args
        if args is not None:
            walked = []
            for arg in args:
                arg, acc = traverse(arg, acc, pre, post)
                walked.append(arg)
            args = tuple(walked)
        return post(Construct(head, args, node.line), acc)

    if isinstance(node, Pair):
        left, acc = traverse(node.left, acc, pre, post)
        right, acc = traverse(node.right, acc, pre, post)
        return post(Pair(left, right), acc)

    if isinstance(node, NodeList):
        walked = []
        for item in node.items:
            item, acc = traverse(item, acc, pre, post)
            walked.append(item)
        return post(NodeList(tuple(walked)), acc)

    # Literal, Identifier and anything else without children
    return post(node, acc)


def _identity(node: Node, acc: Acc) -> Tuple[Node, Acc]:
    return node, acc


def prewalk(node: Node, acc: Acc, fun: Callback) -> Tuple[Node, Acc]:
    """Pre-order walk; ``fun`` sees each node before its children."""
    return traverse(node, acc, fun, _identity)


def postwalk(node: Node, acc: Acc, fun: Callback) -> Tuple[Node, Acc]:
    """Post-order walk; ``fun`` sees each node after its children."""
    return traverse(node, acc, _identity, fun)


# ============================================
# VISITOR
# ============================================

class ASTVisitor(ABC, Generic[T]):
    """
    Abstract visitor over the four node shapes.

    Usage:
        class Counter(ASTVisitor[int]):
            def visit_construct(self, node): ...

        node.accept(Counter())
    """

    @abstractmethod
    def visit_construct(self, node: Construct) -> T:
        pass

    @abstractmethod
    def visit_pair(self, node: Pair) -> T:
        pass

    @abstractmethod
    def visit_list(self, node: NodeList) -> T:
        pass

    @abstractmethod
    def visit_literal(self, node: Literal) -> T:
        pass

    @abstractmethod
    def visit_identifier(self, node: Identifier) -> T:
        pass

    def visit(self, node: ASTNode) -> T:
        return node.accept(self)


class QuotedFormatter(ASTVisitor[str]):
    """Render a node as Elixir prints quoted code: ``{:foo, [line: 1], [...]}``."""

    def visit_construct(self, node: Construct) -> str:
        head = f":{node.head}" if isinstance(node.head, str) else self.visit(node.head)
        meta = f"[line: {node.line}]" if node.line is not None else "[]"
        if node.args is None:
            return f"{{{head}, {meta}, nil}}"
        args = ", ".join(self.visit(a) for a in node.args)
        return f"{{{head}, {meta}, [{args}]}}"

    def visit_pair(self, node: Pair) -> str:
        return f"{{{self.visit(node.left)}, {self.visit(node.right)}}}"

    def visit_list(self, node: NodeList) -> str:
        return "[" + ", ".join(self.visit(i) for i in node.items) + "]"

    def visit_literal(self, node: Literal) -> str:
        if node.kind is LiteralKind.STRING:
            return '"' + str(node.value).replace("\\", "\\\\").replace('"', '\\"') + '"'
        if node.kind is LiteralKind.CHARLIST:
            return "'" + str(node.value) + "'"
        return str(node)

    def visit_identifier(self, node: Identifier) -> str:
        meta = f"[line: {node.line}]" if node.line is not None else "[]"
        context = "nil" if node.context is None else node.context
        return f"{{:{node.name}, {meta}, {context}}}"


def to_quoted_string(node: Node) -> str:
    return QuotedFormatter().visit(node)
