"""
Configuration constants to replace magic values throughout exscope
"""

# Module naming constants
ROOT_MODULE = "Elixir"  # Qualified name of the top-level (empty) module path
MODULE_SEPARATOR = "."
ALIASES_HEAD = "__aliases__"
BLOCK_HEAD = "__block__"

# Definition heads recognised by the metadata builder
MODULE_DEFINITION = "defmodule"
FUNCTION_DEFINITIONS = ("def", "defp")
MACRO_DEFINITIONS = ("defmacro", "defmacrop")
GUARD_OPERATOR = "when"
IMPORT_DIRECTIVE = "import"
ALIAS_DIRECTIVE = "alias"
ALIAS_AS_OPTION = "as"

# Variable tracking constants
IGNORED_BINDER_PREFIX = "_"  # `_name` binders are intentionally unused
VARIABLE_CONTEXTS = (None, ROOT_MODULE)  # Unqualified or root-qualified identifiers

# Parse error recovery constants
MARKER_TEMPLATE = "(__exscope_marker_{line}__())"
MARKER_NAME_PATTERN = r"^__exscope_marker_(\d+)__$"
LINE_NUMBER_PATTERN = r"line\s(\d+)"
MAX_RECOVERY_ATTEMPTS = 1  # One rewrite-reparse cycle per failed parse
RECOVERY_LOOKBEHIND = 2  # Earlier code lines tried when the error opens its line

# Source file constants
INVALID_SOURCE_EXTENSIONS = (".erl",)
DEFAULT_SOURCE_FILE = "nofile"
DEFAULT_FILE_ENCODING = "utf-8"

# Grammar constants
GRAMMAR_FILE = "grammar.lark"
GRAMMAR_START = "start"

# Error reporting constants
SYNTAX_ERROR_CODE = "E0001"
MISSING_TERMINATOR_CODE = "E0002"
INVALID_FILE_CODE = "E0003"
READ_ERROR_CODE = "E0004"
IMPLEMENTATION_ERROR_CODE = "E9999"
ERROR_POINTER_CHAR = "^"
