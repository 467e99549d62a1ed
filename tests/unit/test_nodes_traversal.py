"""
Tests for the quoted-form node model, the accumulator-threading traversal
and the scope frame helpers.
"""

import pytest

from exscope.shared.ast_visitor import QuotedFormatter, postwalk, prewalk, to_quoted_string, traverse
from exscope.shared.nodes import (
    NIL, Construct, Identifier, Literal, LiteralKind, NodeList, Pair,
    alias_name, alias_segments, aliases, atom, block, is_aliases, keyword_get,
)
from exscope.shared.scope import (
    DefinitionKey, EMPTY_CONTEXT, LexicalContext,
    alias_key, flatten_frames, join_module_path, pop_frame, prepend_to_innermost, push_frame,
)


def _label(node):
    if isinstance(node, Construct):
        return node.head if isinstance(node.head, str) else "<remote>"
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, Literal):
        return repr(node.value)
    return type(node).__name__


class TestNodeHelpers:
    """Constructors and shape predicates"""

    def test_aliases_round_trip(self):
        node = aliases(("Foo", "Bar"))
        assert is_aliases(node)
        assert alias_segments(node) == ("Foo", "Bar")
        assert alias_name(node) == "Foo.Bar"
        assert node.line is None

    def test_dynamic_aliases_are_not_plain_aliases(self):
        node = Construct("__aliases__", (Identifier("__MODULE__", 1), atom("Child")))
        assert not is_aliases(node)
        with pytest.raises(ValueError):
            alias_segments(node)

    def test_block_of_one_is_the_expression(self):
        expr = Construct("foo", (), 1)
        assert block((expr,)) is expr
        assert block(()) == Construct("__block__", ())
        assert block((expr, expr)).head == "__block__"

    def test_keyword_get(self):
        opts = NodeList((Pair(atom("as"), aliases(("Baz",))), Pair(atom("warn"), Literal(False, LiteralKind.BOOLEAN))))
        assert keyword_get(opts, "as") == aliases(("Baz",))
        assert keyword_get(opts, "only") is None
        assert keyword_get(Literal(1, LiteralKind.INTEGER), "as") is None

    def test_arity_and_line(self):
        assert Construct("foo", (NIL, NIL), 3).arity == 2
        assert Construct("foo", None, 3).arity == 0
        assert Pair(NIL, NIL).line is None
        assert Literal(1, LiteralKind.INTEGER).line is None
        assert Identifier("x", 7).line == 7

    def test_nodes_are_frozen(self):
        node = Construct("foo", (), 1)
        with pytest.raises(Exception):
            node.line = 2


class TestTraverse:
    """Pre/post ordering and accumulator threading"""

    def test_visit_order(self):
        # foo(x, [a: 1])
        tree = Construct("foo", (Identifier("x", 1), NodeList((Pair(atom("a"), Literal(1, LiteralKind.INTEGER)),))), 1)
        events = []

        def pre(node, acc):
            events.append(("pre", _label(node)))
            return node, acc

        def post(node, acc):
            events.append(("post", _label(node)))
            return node, acc

        traverse(tree, None, pre, post)
        assert events == [
            ("pre", "foo"),
            ("pre", "x"), ("post", "x"),
            ("pre", "NodeList"),
            ("pre", "Pair"),
            ("pre", "'a'"), ("post", "'a'"),
            ("pre", "1"), ("post", "1"),
            ("post", "Pair"),
            ("post", "NodeList"),
            ("post", "foo"),
        ], f"Unexpected traversal order: {events}"

    def test_remote_head_is_walked_before_args(self):
        # Mod.fun(arg)
        head = Construct(".", (aliases(("Mod",)), atom("fun")), 1)
        tree = Construct(head, (Identifier("arg", 1),), 1)
        seen = []

        def pre(node, acc):
            seen.append(_label(node))
            return node, acc

        prewalk(tree, None, pre)
        assert seen.index(".") < seen.index("arg")

    def test_accumulator_is_threaded(self):
        tree = block((Identifier("a", 1), Identifier("b", 2), Identifier("c", 3)))
        _, names = postwalk(tree, (), lambda n, acc: (n, acc + (n.name,)) if isinstance(n, Identifier) else (n, acc))
        assert names == ("a", "b", "c")

    def test_pre_rewrite_is_descended(self):
        tree = Construct("wrap", (Construct("old", (Identifier("inner", 1),), 1),), 1)

        def pre(node, acc):
            if isinstance(node, Construct) and node.head == "old":
                return Construct("new", (Identifier("replaced", 1),), 1), acc
            if isinstance(node, Identifier):
                acc = acc + (node.name,)
            return node, acc

        new_tree, names = prewalk(tree, (), pre)
        assert names == ("replaced",)
        assert new_tree.args[0].head == "new"


class TestQuotedFormatter:
    """Rendering in Elixir's quoted syntax"""

    def test_call(self):
        node = Construct("+", (Identifier("x", 3), Literal(1, LiteralKind.INTEGER)), 3)
        assert to_quoted_string(node) == "{:+, [line: 3], [{:x, [line: 3], nil}, 1]}"

    def test_aliases_and_keywords(self):
        node = Construct("alias", (aliases(("Foo", "Bar")), NodeList((Pair(atom("as"), aliases(("Baz",))),))), 2)
        expected = (
            "{:alias, [line: 2], [{:__aliases__, [], [:Foo, :Bar]}, "
            "[{:as, {:__aliases__, [], [:Baz]}}]]}"
        )
        assert QuotedFormatter().visit(node) == expected

    def test_literals(self):
        assert to_quoted_string(Literal('say "hi"', LiteralKind.STRING)) == '"say \\"hi\\""'
        assert to_quoted_string(NIL) == "nil"
        assert to_quoted_string(Literal(True, LiteralKind.BOOLEAN)) == "true"


class TestFrames:
    """Frame stack helpers"""

    def test_push_prepend_pop(self):
        frames = push_frame(((),))
        frames = prepend_to_innermost(frames, "A")
        frames = prepend_to_innermost(frames, "B")
        assert frames == ((), ("B", "A"))
        assert pop_frame(frames) == ((),)

    def test_pop_empty_raises(self):
        with pytest.raises(IndexError):
            pop_frame(())

    def test_flatten_inner_wins(self):
        frames = ((("Bar", "Outer.Bar"), ("Baz", "Outer.Baz")), (("Bar", "Inner.Bar"),))
        assert flatten_frames(frames, alias_key) == (("Baz", "Outer.Baz"), ("Bar", "Inner.Bar"))

    def test_flatten_newest_wins_within_frame(self):
        frames = ((("Bar", "New.Bar"), ("Bar", "Old.Bar")),)
        assert flatten_frames(frames, alias_key) == (("Bar", "New.Bar"),)

    def test_flatten_plain_entries(self):
        assert flatten_frames((("Enum",), ("List", "Enum"))) == ("List", "Enum")

    def test_join_module_path(self):
        assert join_module_path(()) == "Elixir"
        assert join_module_path(("Foo", "Bar")) == "Foo.Bar"

    def test_definition_key_str(self):
        assert str(DefinitionKey("A")) == "A"
        assert str(DefinitionKey("A", "foo")) == "A.foo"
        assert str(DefinitionKey("A", "foo", 2)) == "A.foo/2"

    def test_context_to_dict(self):
        context = LexicalContext("A", ("Enum",), (("Bar", "Foo.Bar"),), ("x",))
        assert context.to_dict() == {
            "module": "A",
            "imports": ["Enum"],
            "aliases": [["Bar", "Foo.Bar"]],
            "vars": ["x"],
        }
        assert context.resolve_alias("Bar") == "Foo.Bar"
        assert EMPTY_CONTEXT.module is None
