"""
Elixir AST Transformer
Converts the Lark parse tree into Elixir's quoted form (see shared/nodes.py)
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union
import logging

from lark import Transformer, v_args
from lark.lexer import Token
from typing_extensions import TypeAlias

from ...shared import (
    Construct, Pair, NodeList, Literal, LiteralKind, Identifier, Node, NIL,
    atom, aliases, block,
)
from ...shared.errors import ExscopeImplementationError
from ...utils.config import ALIASES_HEAD
from .literals import LiteralParser

# Lark Meta object contains location information
LarkMeta: TypeAlias = object
Children: TypeAlias = Sequence[Union[Node, Token, "_Callee"]]

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _KeywordArgs(NodeList):
    """Trailing keyword list; spliced into lists, kept as one argument elsewhere."""


class _Callee(NamedTuple):
    """Head and line of a call whose arguments are parsed separately"""
    head: Union[str, Construct]
    line: Optional[int]


def _meta_line(meta: LarkMeta) -> Optional[int]:
    # Rules that matched only filtered tokens have an empty meta
    return getattr(meta, "line", None)


def _dot(target: Node, name: Token) -> Construct:
    return Construct(".", (target, atom(str(name))), name.line)


@v_args(inline=True, meta=True)
class ElixirTransformer(Transformer):
    """
    Elixir AST Transformer

    Raises a clear error for grammar rules without a transformer method
    instead of leaking raw Tree objects into the AST.
    """

    def __default__(self, data, children, meta):
        raise ExscopeImplementationError(
            f"Missing transformer method for grammar rule '{data}'"
        )

    # =========================================================================
    # ARGUMENT HELPERS
    # =========================================================================

    @staticmethod
    def _args(children: Children) -> Tuple[Node, ...]:
        """Call arguments: a trailing keyword list stays one list argument."""
        return tuple(
            NodeList(child.items) if isinstance(child, _KeywordArgs) else child
            for child in children
        )

    @staticmethod
    def _splice(children: Children) -> Tuple[Node, ...]:
        """List elements: keyword pairs become elements of the enclosing list."""
        items: List[Node] = []
        for child in children:
            if isinstance(child, _KeywordArgs):
                items.extend(child.items)
            else:
                items.append(child)
        return tuple(items)

    # =========================================================================
    # PROGRAM STRUCTURE
    # =========================================================================

    def start(self, meta: LarkMeta, *stmts: Node) -> Node:
        return block(stmts)

    def paren_expr(self, meta: LarkMeta, *stmts: Node) -> Node:
        return block(stmts)

    # =========================================================================
    # CALLS
    # =========================================================================

    def local_callee(self, meta: LarkMeta, name: Token) -> _Callee:
        return _Callee(str(name), name.line)

    def remote_callee(self, meta: LarkMeta, target: Node, name: Token) -> _Callee:
        return _Callee(_dot(target, name), name.line)

    def no_parens_call(self, meta: LarkMeta, callee: _Callee, *args: Node) -> Construct:
        return Construct(callee.head, self._args(args), callee.line)

    def block_call(self, meta: LarkMeta, callee: _Callee, *rest: Node) -> Construct:
        """``foo a, b do ... end``: the do/else sections are the last argument."""
        *args, do_block = rest
        return Construct(callee.head, self._args(args) + (do_block,), callee.line)

    def local_call(self, meta: LarkMeta, name: Token, *args: Node) -> Construct:
        return Construct(str(name), self._args(args), name.line)

    def remote_call(self, meta: LarkMeta, target: Node, name: Token, *args: Node) -> Construct:
        return Construct(_dot(target, name), self._args(args), name.line)

    def remote_ref(self, meta: LarkMeta, target: Node, name: Token) -> Construct:
        return Construct(_dot(target, name), (), name.line)

    def anonymous_call(self, meta: LarkMeta, target: Node, *args: Node) -> Construct:
        line = _meta_line(meta)
        return Construct(Construct(".", (target,), line), self._args(args), line)

    def multi_alias(self, meta: LarkMeta, target: Node, *items: Node) -> Construct:
        """``alias Foo.{Bar, Baz}``"""
        line = _meta_line(meta)
        return Construct(Construct(".", (target, atom("{}")), line), tuple(items), line)

    def access(self, meta: LarkMeta, target: Node, key: Node) -> Construct:
        """``data[key]`` is ``Access.get(data, key)``"""
        line = _meta_line(meta)
        return Construct(Construct(".", (aliases(("Access",)), atom("get")), line), (target, key), line)

    # =========================================================================
    # BLOCKS AND CLAUSES
    # =========================================================================

    def do_block(self, meta: LarkMeta, *children: Union[Node, Token]) -> NodeList:
        """``do ... else ... end`` as ``[do: body, else: body]``"""
        sections: List[Pair] = []
        label, body = "do", None
        for child in children:
            if isinstance(child, Token) and child.type == "BLOCK_LABEL":
                sections.append(Pair(atom(label), body if body is not None else block(())))
                label, body = str(child), None
            else:
                body = child
        sections.append(Pair(atom(label), body if body is not None else block(())))
        return NodeList(tuple(sections))

    def stmts_body(self, meta: LarkMeta, *stmts: Node) -> Node:
        return block(stmts)

    def clauses_body(self, meta: LarkMeta, *clauses: Construct) -> NodeList:
        return NodeList(tuple(clauses))

    def stab_clause(self, meta: LarkMeta, *children: Union[Node, Token]) -> Construct:
        """``a, b -> body`` as ``{:->, meta, [[a, b], body]}``"""
        if len(children) == 3:
            head, arrow, body = children
        else:
            arrow, body = children
            head = NodeList(())
        return Construct("->", (head, body), arrow.line)

    def stab_head(self, meta: LarkMeta, *exprs: Node) -> NodeList:
        return NodeList(tuple(exprs))

    def stab_body(self, meta: LarkMeta, *stmts: Node) -> Node:
        return block(stmts)

    def fn_expr(self, meta: LarkMeta, fn: Token, *clauses: Construct) -> Construct:
        return Construct("fn", tuple(clauses), fn.line)

    # =========================================================================
    # MODULE ATTRIBUTES
    # =========================================================================

    def attr_set(self, meta: LarkMeta, at: Token, name: Token, value: Node) -> Construct:
        """``@doc "..."`` as ``{:@, meta, [{:doc, meta, ["..."]}]}``"""
        return Construct("@", (Construct(str(name), (value,), name.line),), at.line)

    def attr_ref(self, meta: LarkMeta, at: Token, name: Token) -> Construct:
        return Construct("@", (Identifier(str(name), name.line),), at.line)

    # =========================================================================
    # OPERATORS
    # =========================================================================

    def binary_op(self, meta: LarkMeta, left: Node, op: Token, right: Node) -> Construct:
        return Construct(str(op), (left, right), op.line)

    def not_in_op(self, meta: LarkMeta, left: Node, not_op: Token, in_op: Token, right: Node) -> Construct:
        """``a not in b`` as ``not(a in b)``"""
        return Construct("not", (Construct("in", (left, right), in_op.line),), not_op.line)

    def unary_op(self, meta: LarkMeta, op: Token, operand: Node) -> Construct:
        return Construct(str(op), (operand,), op.line)

    # =========================================================================
    # KEYWORDS
    # =========================================================================

    def kw_list(self, meta: LarkMeta, *pairs: Pair) -> _KeywordArgs:
        return _KeywordArgs(tuple(pairs))

    def kw_pair(self, meta: LarkMeta, key: Token, value: Node) -> Pair:
        return Pair(LiteralParser.keyword_key(str(key)), value)

    # =========================================================================
    # COLLECTIONS
    # =========================================================================

    def list_literal(self, meta: LarkMeta, *items: Node) -> NodeList:
        return NodeList(self._splice(items))

    def tuple_literal(self, meta: LarkMeta, *items: Node) -> Node:
        """Two-element tuples are bare pairs; other sizes are ``{:{}, meta, items}``."""
        elements = self._args(items)
        if len(elements) == 2:
            return Pair(*elements)
        return Construct("{}", elements, _meta_line(meta))

    def map_literal(self, meta: LarkMeta, open_brace: Token, *entries: Node) -> Construct:
        return Construct("%{}", self._splice(entries), open_brace.line)

    def map_update(self, meta: LarkMeta, base: Node, bar: Token, *entries: Node) -> Construct:
        """``%{m | k: v}`` keeps the update as ``{:|, meta, [m, [k: v]]}``"""
        return Construct("|", (base, NodeList(self._splice(entries))), bar.line)

    def map_pair(self, meta: LarkMeta, key: Node, value: Node) -> Pair:
        return Pair(key, value)

    def struct_literal(self, meta: LarkMeta, percent: Token, name: Node, *entries: Node) -> Construct:
        fields = Construct("%{}", self._splice(entries), percent.line)
        return Construct("%", (name, fields), percent.line)

    def bits_literal(self, meta: LarkMeta, open_bits: Token, *rest: Union[Node, Token]) -> Construct:
        items = rest[:-1]
        return Construct("<<>>", self._args(items), open_bits.line)

    # =========================================================================
    # NAMES
    # =========================================================================

    def identifier(self, meta: LarkMeta, name: Token) -> Identifier:
        return Identifier(str(name), name.line)

    def alias_chain(self, meta: LarkMeta, *parts: Token) -> Construct:
        return aliases(tuple(str(p) for p in parts))

    def dynamic_aliases(self, meta: LarkMeta, name: Token, *parts: Token) -> Construct:
        """``__MODULE__.Child`` keeps the leading variable inside ``__aliases__``"""
        head = Identifier(str(name), name.line)
        return Construct(ALIASES_HEAD, (head,) + tuple(atom(str(p)) for p in parts), None)

    # =========================================================================
    # LITERALS
    # =========================================================================

    def integer(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.integer(str(token))

    def float_literal(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.float_literal(str(token))

    def char(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.char(str(token))

    def string(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.string(str(token))

    def heredoc(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.heredoc(str(token))

    def charlist(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.charlist(str(token))

    def charlist_heredoc(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.charlist_heredoc(str(token))

    def atom(self, meta: LarkMeta, token: Token) -> Literal:
        return LiteralParser.atom(str(token))

    def sigil(self, meta: LarkMeta, token: Token) -> Construct:
        """``~r/abc/i`` as ``{:sigil_r, meta, [{:<<>>, meta, ["abc"]}, 'i']}``"""
        letter, content, modifiers = LiteralParser.sigil(str(token))
        body = Construct("<<>>", (Literal(content, LiteralKind.STRING),), token.line)
        return Construct(f"sigil_{letter}", (body, Literal(modifiers, LiteralKind.CHARLIST)), token.line)

    def boolean(self, meta: LarkMeta, token: Token) -> Literal:
        return Literal(str(token) == "true", LiteralKind.BOOLEAN)

    def nil(self, meta: LarkMeta, token: Token) -> Literal:
        return NIL

    def capture_arg(self, meta: LarkMeta, token: Token) -> Construct:
        """``&1`` as ``{:&, meta, [1]}``"""
        return Construct("&", (Literal(int(str(token)[1:]), LiteralKind.INTEGER),), token.line)
