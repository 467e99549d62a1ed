"""
Tests for definition lookups, context lookups and the documentation index.
"""

import json

from exscope.analysis.context_query import (
    ContextLookup, ContextQueryService, NullDocIndex, StaticDocIndex,
)
from exscope.analysis.metadata_builder import build
from exscope.shared.scope import EMPTY_CONTEXT, LexicalContext
from tests.test_utils import analyze, call, def_, defmodule, import_, source, var


SAMPLE = """
    defmodule A do
      import Enum
      def foo(x) do

        x + 1
      end
    end
"""


def _metadata():
    _, md = build(defmodule("A", 1, def_("foo", 2, [var("x", 2)], call("bar", 3))))
    return md


class TestGetFunctionLine:
    """Definition table first, documentation index second"""

    def test_table_hit(self, query_service):
        assert query_service.get_function_line(_metadata(), "A", "foo") == 2

    def test_no_metadata(self, query_service):
        assert query_service.get_function_line(None, "A", "foo") is None

    def test_miss_without_index(self, query_service):
        assert query_service.get_function_line(_metadata(), "A", "missing") is None

    def test_doc_index_fallback_only_on_miss(self):
        index = StaticDocIndex({"A": [("foo", 1, 99), ("bar", 2, 40), ("bar", 3, 44)]})
        service = ContextQueryService(doc_index=index)
        assert service.get_function_line(_metadata(), "A", "foo") == 2, "A table hit must win over the doc index"
        assert service.get_function_line(_metadata(), "A", "bar") == 40
        assert service.get_function_line(_metadata(), "B", "bar") is None

    def test_static_index_from_json(self, tmp_path):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps({"Enum": [["map", 2, 1200], ["map", 3, 1210]]}), encoding="utf-8")
        index = StaticDocIndex.from_json(path)
        assert list(index.function_lines("Enum", "map")) == [1200, 1210]
        assert list(index.function_lines("Enum", "reduce")) == []

    def test_null_index(self):
        assert list(NullDocIndex().function_lines("A", "foo")) == []


class TestGetContextByLine:
    """Direct table lookups"""

    def test_known_line(self, query_service):
        assert query_service.get_context_by_line(_metadata(), 3) == LexicalContext("A", (), (), ("x",))

    def test_unknown_line(self, query_service):
        assert query_service.get_context_by_line(_metadata(), 50) is ContextLookup.LINE_NOT_FOUND

    def test_no_metadata(self, query_service):
        assert query_service.get_context_by_line(None, 3) is EMPTY_CONTEXT


class TestContextAt:
    """Lookup chain with marker rebuild"""

    def test_blank_line_is_answered_by_marker(self, query_service, driver):
        result = analyze(driver, SAMPLE)
        assert result.success
        assert 4 not in result.metadata.line_contexts
        context = query_service.context_at(source(SAMPLE), result.metadata, 4)
        assert context == LexicalContext("A", ("Enum",), (), ("x",))

    def test_direct_hit_needs_no_rebuild(self, query_service, driver):
        result = analyze(driver, SAMPLE)
        assert query_service.context_at(source(SAMPLE), result.metadata, 5).vars == ("x",)

    def test_unparseable_rebuild_gives_empty_context(self, query_service, driver):
        result = analyze(driver, SAMPLE)
        # Masking the module header leaves an unmatched `end`
        assert query_service.get_context_from_line_not_found(source(SAMPLE), 1) is EMPTY_CONTEXT
        assert query_service.context_at(source(SAMPLE), result.metadata, 1) is EMPTY_CONTEXT

    def test_context_of_line_being_typed(self, query_service, driver):
        text = source("""
            defmodule A do
              alias Foo.Bar
              def foo(x) do
                y = Bar.
              end
            end
        """)
        result = driver.parse_string(text, try_to_fix_parse_errors=True)
        assert result.success, f"Recovery failed: {result.error}"
        context = query_service.context_at(text, result.metadata, 4)
        assert context.module == "A"
        assert context.aliases == (("Bar", "Foo.Bar"),)
        assert context.vars == ("x",)

    def test_import_snapshot_from_hand_built_tree(self, query_service):
        _, md = build(defmodule("A", 1, import_("Enum", 2), call("foo", 3)))
        assert query_service.get_context_by_line(md, 2).imports == ()
