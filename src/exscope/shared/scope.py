"""
Scope frames: lexical scope bookkeeping for the metadata builder.

A frame stack is a tuple of frames, outermost first; one frame per open
scope. A frame is a tuple of entries, newest first. All helpers return new
tuples so the stacks can live inside a frozen accumulator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, NamedTuple, Optional, Tuple, TypeVar

from ..utils.config import MODULE_SEPARATOR, ROOT_MODULE

E = TypeVar('E')

Frame = Tuple[Any, ...]
FrameStack = Tuple[Frame, ...]
AliasEntry = Tuple[str, str]


# -----------------------------------------------------------------------------
# Definition key
# -----------------------------------------------------------------------------


class DefinitionKey(NamedTuple):
    """
    Key of the definition table.

    ``(module, None, None)`` is the module itself, ``(module, fn, None)`` is
    the first definition of ``fn`` at any arity.
    """
    module: str
    function: Optional[str] = None
    arity: Optional[int] = None

    def __str__(self) -> str:
        if self.function is None:
            return self.module
        if self.arity is None:
            return f"{self.module}.{self.function}"
        return f"{self.module}.{self.function}/{self.arity}"


# -----------------------------------------------------------------------------
# Frame helpers
# -----------------------------------------------------------------------------


def push_frame(frames: FrameStack) -> FrameStack:
    return frames + ((),)


def pop_frame(frames: FrameStack) -> FrameStack:
    if not frames:
        raise IndexError("pop from an empty frame stack")
    return frames[:-1]


def prepend_to_innermost(frames: FrameStack, entry: Any) -> FrameStack:
    return frames[:-1] + ((entry,) + frames[-1],)


def innermost(frames: FrameStack) -> Frame:
    return frames[-1] if frames else ()


def flatten_frames(frames: FrameStack, key: Callable[[E], Hashable] = lambda e: e) -> Tuple[E, ...]:
    """
    Effective entries of a frame stack.

    On a key collision the innermost frame wins, and within a frame the
    newest entry wins. Survivors keep the flattened order (outer frames first).
    """
    seen = set()
    keep = set()
    for depth in range(len(frames) - 1, -1, -1):
        for position, entry in enumerate(frames[depth]):
            k = key(entry)
            if k in seen:
                continue
            seen.add(k)
            keep.add((depth, position))
    return tuple(
        entry
        for depth, frame in enumerate(frames)
        for position, entry in enumerate(frame)
        if (depth, position) in keep
    )


def join_module_path(path: Tuple[str, ...]) -> str:
    """``("Foo", "Bar")`` -> ``"Foo.Bar"``; the empty path is the root module."""
    if not path:
        return ROOT_MODULE
    return MODULE_SEPARATOR.join(path)


# -----------------------------------------------------------------------------
# Lexical context
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class LexicalContext:
    """What is in scope on one source line."""
    module: Optional[str]
    imports: Tuple[str, ...] = ()
    aliases: Tuple[AliasEntry, ...] = ()
    vars: Tuple[str, ...] = ()

    def alias_map(self) -> Dict[str, str]:
        return dict(self.aliases)

    def resolve_alias(self, short: str) -> Optional[str]:
        return self.alias_map().get(short)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module,
            "imports": list(self.imports),
            "aliases": [[short, full] for short, full in self.aliases],
            "vars": list(self.vars),
        }


EMPTY_CONTEXT = LexicalContext(module=None)


def alias_key(entry: AliasEntry) -> str:
    return entry[0]


def describe_frames(frames: FrameStack) -> List[List[Any]]:
    """JSON-friendly copy of a frame stack."""
    return [list(frame) for frame in frames]
