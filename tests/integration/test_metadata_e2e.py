"""
End-to-end tests: Elixir source through parser, builder and queries.
"""

import pytest

from exscope.analysis.context_query import ContextQueryService, StaticDocIndex
from exscope.shared.scope import DefinitionKey, LexicalContext
from tests.test_utils import analyze, source

ACCOUNTS = """
    defmodule MyApp.Accounts do
      @moduledoc \"\"\"
      Account helpers.
      \"\"\"

      import Enum, only: [map: 2]
      alias MyApp.Repo
      alias MyApp.Accounts.User, as: U

      @default_role :member

      def list_users(opts \\\\ []) do
        limit = Keyword.get(opts, :limit, 10)
        Repo.all(U) |> Enum.take(limit)
      end

      def role(%U{role: role}), do: role
      def role(_user), do: @default_role

      defp normalize(name) when is_binary(name) do
        case String.trim(name) do
          "" -> {:error, :empty}
          trimmed -> {:ok, trimmed}
        end
      end

      defmodule Admin do
        def promote(user) do
          %{user | role: :admin}
        end
      end

      def admin_module, do: Admin
    end
"""

ACCOUNTS_ALIASES = (
    ("Accounts", "MyApp.Accounts"),
    ("U", "MyApp.Accounts.User"),
    ("Repo", "MyApp.Repo"),
)


@pytest.fixture(scope="module")
def accounts(session_driver):
    result = analyze(session_driver, ACCOUNTS)
    assert result.success, f"Analysis failed: {result.error}"
    return result.metadata


class TestDefinitionTable:
    """Module and function definition lines"""

    def test_modules(self, accounts):
        assert accounts.definitions[DefinitionKey("MyApp.Accounts")] == 1
        assert accounts.definitions[DefinitionKey("MyApp.Accounts.Admin")] == 27

    def test_functions(self, accounts):
        assert accounts.definition_line("MyApp.Accounts", "list_users", 1) == 12
        assert accounts.definition_line("MyApp.Accounts", "normalize", 1) == 20
        assert accounts.definition_line("MyApp.Accounts.Admin", "promote", 1) == 28
        assert accounts.definition_line("MyApp.Accounts", "admin_module", 0) == 33

    def test_multi_clause_function(self, accounts):
        assert accounts.definition_line("MyApp.Accounts", "role") == 17
        assert accounts.definition_line("MyApp.Accounts", "role", 1) == 18


class TestLineContexts:
    """Context snapshots across the file"""

    def test_attribute_line(self, accounts):
        assert accounts.line_contexts[2].module == "MyApp.Accounts"
        assert 3 not in accounts.line_contexts, "Heredoc body lines carry no nodes"

    def test_directive_lines_see_state_before_the_directive(self, accounts):
        assert accounts.line_contexts[6] == LexicalContext("MyApp.Accounts", (), (("Accounts", "MyApp.Accounts"),), ())
        assert accounts.line_contexts[7].imports == ("Enum",)
        assert accounts.line_contexts[8].aliases == (("Accounts", "MyApp.Accounts"), ("Repo", "MyApp.Repo"))

    def test_function_body(self, accounts):
        context = accounts.line_contexts[13]
        assert context.module == "MyApp.Accounts"
        assert context.imports == ("Enum",)
        assert context.aliases == ACCOUNTS_ALIASES
        assert context.vars == ("limit", "opts")

    def test_guard_variables_and_clause_binders(self, accounts):
        assert accounts.line_contexts[21].vars == ("name",)
        assert accounts.line_contexts[17].vars == (), "The function's own name is not a variable"

    def test_nested_module_body(self, accounts):
        context = accounts.line_contexts[29]
        assert context.module == "MyApp.Accounts.Admin"
        assert context.imports == ("Enum",)
        assert context.aliases == (("Accounts", "MyApp.Accounts"), ("Admin", "MyApp.Accounts.Admin")) + ACCOUNTS_ALIASES[1:]
        assert context.vars == ("user",)

    def test_nested_module_alias_survives_in_parent(self, accounts):
        context = accounts.line_contexts[33]
        assert context.module == "MyApp.Accounts"
        assert context.resolve_alias("Admin") == "MyApp.Accounts.Admin"
        assert context.vars == ()

    def test_state_is_balanced(self, accounts):
        assert accounts.is_balanced()
        assert accounts.alias_frames == ((("Accounts", "MyApp.Accounts"),),)


class TestQueries:
    """Query service over a real file"""

    def test_function_line_with_doc_fallback(self, accounts, session_driver):
        service = ContextQueryService(session_driver, StaticDocIndex({"Enum": [("take", 2, 3300)]}))
        assert service.get_function_line(accounts, "MyApp.Accounts", "role") == 17
        assert service.get_function_line(accounts, "Enum", "take") == 3300

    def test_blank_line_inside_function(self, session_driver):
        text = source(ACCOUNTS).replace(
            "    limit = Keyword.get(opts, :limit, 10)\n",
            "    limit = Keyword.get(opts, :limit, 10)\n\n",
        )
        result = session_driver.parse_string(text)
        assert result.success
        service = ContextQueryService(session_driver)
        context = service.context_at(text, result.metadata, 14)
        assert context.vars == ("limit", "opts")
        assert context.aliases == ACCOUNTS_ALIASES


class TestRecoveryEndToEnd:
    """A file in the middle of an edit"""

    def test_line_being_typed(self, session_driver):
        text = source(ACCOUNTS).replace("Repo.all(U) |> Enum.take(limit)", "Repo.all(U) |> Enum.")
        broken = session_driver.parse_string(text)
        assert not broken.success
        fixed = session_driver.parse_string(text, try_to_fix_parse_errors=True)
        assert fixed.success, f"Recovery failed: {fixed.error}"
        assert fixed.recovered_lines == (14,)
        assert fixed.metadata.line_contexts[14].vars == ("limit", "opts")
        assert fixed.metadata.definition_line("MyApp.Accounts", "list_users", 1) == 12
