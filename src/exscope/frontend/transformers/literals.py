"""
Literal Parser - Extracted from ElixirTransformer
Handles decoding of literal tokens (numbers, chars, strings, atoms, sigils)
"""

from typing import Tuple

from ...shared import Literal, LiteralKind

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "s": " ", "0": "\0",
    "a": "\a", "b": "\b", "e": "\x1b", "f": "\f", "v": "\v",
    "\\": "\\", '"': '"', "'": "'",
}

_SIGIL_CLOSERS = {"(": ")", "[": "]", "{": "}", "<": ">"}


class LiteralParser:
    """Dedicated decoder for literal tokens"""

    @staticmethod
    def integer(text: str) -> Literal:
        clean = text.replace("_", "")
        if clean[:2] in ("0x", "0o", "0b"):
            return Literal(int(clean, 0), LiteralKind.INTEGER)
        return Literal(int(clean), LiteralKind.INTEGER)

    @staticmethod
    def float_literal(text: str) -> Literal:
        return Literal(float(text.replace("_", "")), LiteralKind.FLOAT)

    @staticmethod
    def char(text: str) -> Literal:
        """``?a`` is the integer code point of ``a``."""
        body = text[1:]
        if body.startswith("\\") and len(body) > 1:
            body = _SIMPLE_ESCAPES.get(body[1], body[1])
        return Literal(ord(body), LiteralKind.INTEGER)

    @staticmethod
    def string(text: str) -> Literal:
        return Literal(LiteralParser.unescape(text[1:-1]), LiteralKind.STRING)

    @staticmethod
    def heredoc(text: str) -> Literal:
        return Literal(LiteralParser.unescape(LiteralParser._heredoc_body(text)), LiteralKind.STRING)

    @staticmethod
    def charlist(text: str) -> Literal:
        return Literal(LiteralParser.unescape(text[1:-1]), LiteralKind.CHARLIST)

    @staticmethod
    def charlist_heredoc(text: str) -> Literal:
        return Literal(LiteralParser.unescape(LiteralParser._heredoc_body(text)), LiteralKind.CHARLIST)

    @staticmethod
    def atom(text: str) -> Literal:
        name = text[1:]
        if name.startswith('"'):
            name = LiteralParser.unescape(name[1:-1])
        return Literal(name, LiteralKind.ATOM)

    @staticmethod
    def keyword_key(text: str) -> Literal:
        """``as:`` or ``"quoted key":`` as an atom."""
        name = text[:-1]
        if name.startswith('"'):
            name = LiteralParser.unescape(name[1:-1])
        return Literal(name, LiteralKind.ATOM)

    @staticmethod
    def sigil(text: str) -> Tuple[str, str, str]:
        """
        Split ``~r/abc/i`` into ``("r", "abc", "i")``.

        Heredoc delimiters are three characters, all others one.
        """
        letter = text[1]
        rest = text[2:]
        if rest.startswith('"""') or rest.startswith("'''"):
            width = 3
            closer = rest[:3]
        else:
            width = 1
            closer = _SIGIL_CLOSERS.get(rest[0], rest[0])
        end = rest.rindex(closer)
        content = rest[width:end]
        modifiers = rest[end + width:]
        return letter, content, modifiers

    @staticmethod
    def unescape(text: str) -> str:
        """Resolve backslash escapes; interpolations are kept verbatim."""
        if "\\" not in text:
            return text
        out = []
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == "\\" and i + 1 < len(text):
                nxt = text[i + 1]
                if nxt == "\n":
                    i += 2
                    continue
                out.append(_SIMPLE_ESCAPES.get(nxt, nxt))
                i += 2
            else:
                out.append(ch)
                i += 1
        return "".join(out)

    @staticmethod
    def _heredoc_body(text: str) -> str:
        """Strip the delimiters and the closing delimiter's indentation."""
        body = text[3:-3]
        if body.startswith("\r\n"):
            body = body[2:]
        elif body.startswith("\n"):
            body = body[1:]
        last_newline = body.rfind("\n")
        if last_newline == -1 or body[last_newline + 1:].strip(" \t"):
            return body
        indent = body[last_newline + 1:]
        body = body[:last_newline + 1]
        if not indent:
            return body
        return "".join(
            line[len(indent):] if line.startswith(indent) else line.lstrip(" \t")
            for line in body.splitlines(keepends=True)
        )
