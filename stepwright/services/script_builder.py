"""
Line-oriented builder for generated Playwright sources.

Callers describe statements (lines, comments, code fragments, blocks) and the
builder owns indentation and the escaping rules, so both are the same for every
code path that emits a script.

Escaping policy:
  - single-quoted literals escape backslash, single quote, CR and LF
  - comment text has its line breaks collapsed to spaces
"""
import re
from contextlib import contextmanager
from typing import List

INDENT = "  "

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def escape_single_quoted(text) -> str:
    text = "" if text is None else str(text)
    return (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )


def quote(text) -> str:
    return f"'{escape_single_quoted(text)}'"


def comment_text(text) -> str:
    text = "" if text is None else str(text)
    return _LINE_BREAKS.sub(" ", text)


class ScriptBuilder:
    def __init__(self):
        self._lines: List[str] = []
        self._level = 0

    @property
    def indent(self) -> str:
        return INDENT * self._level

    def line(self, text: str = ""):
        self._lines.append(self.indent + text if text else "")
        return self

    def blank(self):
        self._lines.append("")
        return self

    def comment(self, text):
        return self.line("// " + comment_text(text))

    def code(self, fragment: str):
        """Add a code fragment one level deeper than it was written; blank lines stay untouched."""
        fragment = _LINE_BREAKS.sub("\n", fragment or "").rstrip("\n")
        for raw in fragment.split("\n"):
            self._lines.append(self.indent + raw if raw.strip() else raw)
        return self

    @contextmanager
    def block(self, opener: str, closer: str):
        self.line(opener)
        self._level += 1
        try:
            yield self
        finally:
            self._level -= 1
        self.line(closer)

    def render(self) -> str:
        return "\n".join(self._lines) + "\n"
