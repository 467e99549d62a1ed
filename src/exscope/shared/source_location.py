"""Position of a diagnostic inside an Elixir file."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    1-based line and column as lark reports them. ``end_line`` and
    ``end_column`` stay 0 unless the offending span is known.
    """
    file: str
    line: int
    column: int
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"
