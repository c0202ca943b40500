"""Locate and rewrite ``version`` attributes of Terraform module blocks.

The scanner understands just enough HCL to find the boundaries of
``module "<name>" { ... }`` blocks: braces are balanced while quoted
strings (including ``${ }`` interpolations), heredocs and comments
(``#``, ``//``, ``/* */``) are skipped. Attributes are only read from a
block's own top level, so a ``version`` in a nested block or in another
module block never matches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

_MODULE_HEADER_RE = re.compile(r'module[ \t]+(?:"([^"\n]*)"|([A-Za-z_][\w-]*))\s*\{')
_ATTR_RE = re.compile(r"([A-Za-z_][\w-]*)[ \t]*=(?![=>])[ \t]*")
_HEREDOC_RE = re.compile(r"<<-?[ \t]*([A-Za-z_][\w-]*)[ \t]*\r?\n")
_TRACKED_ATTRIBUTES = ("source", "version")


@dataclass(frozen=True)
class Span:
    """A literal string value and its position (quotes excluded)."""
    value: str
    start: int
    end: int


@dataclass(frozen=True)
class ModuleBlock:
    """A ``module`` block: ``start``/``end`` cover the header through the closing brace."""
    name: str
    start: int
    end: int
    source: Optional[Span] = None
    version: Optional[Span] = None


def _skip_line_comment(content: str, i: int) -> int:
    nl = content.find("\n", i)
    return len(content) if nl == -1 else nl + 1


def _skip_block_comment(content: str, i: int) -> int:
    close = content.find("*/", i + 2)
    return len(content) if close == -1 else close + 2


def _skip_heredoc(content: str, match: "re.Match[str]") -> int:
    marker = match.group(1)
    pos = match.end()
    n = len(content)
    while pos < n:
        nl = content.find("\n", pos)
        line_end = n if nl == -1 else nl
        if content[pos:line_end].strip() == marker:
            return line_end
        if nl == -1:
            return n
        pos = nl + 1
    return n


def _skip_string(content: str, i: int) -> int:
    """Return the index just past the string literal opening at ``i``."""
    n = len(content)
    j = i + 1
    while j < n:
        c = content[j]
        if c == "\\":
            j += 2
        elif c == '"':
            return j + 1
        elif c in "$%" and content.startswith("{", j + 1):
            j = _skip_braced(content, j + 1)
        elif c == "\n":
            # unterminated quoted string; HCL strings do not span lines
            return j
        else:
            j += 1
    return n


def _skip_trivia(content: str, i: int) -> Optional[int]:
    """If a string, comment or heredoc starts at ``i``, return its end."""
    c = content[i]
    if c == '"':
        return _skip_string(content, i)
    if c == "#":
        return _skip_line_comment(content, i)
    if c == "/" and content.startswith("//", i):
        return _skip_line_comment(content, i)
    if c == "/" and content.startswith("/*", i):
        return _skip_block_comment(content, i)
    if c == "<" and content.startswith("<<", i):
        m = _HEREDOC_RE.match(content, i)
        if m:
            return _skip_heredoc(content, m)
    return None


def _skip_braced(content: str, i: int) -> int:
    """Return the index just past the brace matching the ``{`` at ``i``."""
    n = len(content)
    depth = 0
    j = i
    while j < n:
        skipped = _skip_trivia(content, j)
        if skipped is not None:
            j = skipped
            continue
        c = content[j]
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return j + 1
        j += 1
    return n


def _at_line_start(content: str, lower: int, i: int) -> bool:
    prev_nl = content.rfind("\n", lower, i)
    begin = lower if prev_nl == -1 else prev_nl + 1
    return content[begin:i].strip() in ("", "{")


def _read_attributes(content: str, body_start: int, body_end: int) -> Dict[str, Span]:
    attrs: Dict[str, Span] = {}
    j = body_start
    while j < body_end:
        skipped = _skip_trivia(content, j)
        if skipped is not None:
            j = skipped
            continue
        if content[j] in "{[(":
            j = _skip_braced(content, j) if content[j] == "{" else j + 1
            continue
        m = _ATTR_RE.match(content, j)
        if m and _at_line_start(content, body_start, j):
            name = m.group(1)
            j = m.end()
            if name in _TRACKED_ATTRIBUTES and name not in attrs and content.startswith('"', j):
                end = _skip_string(content, j)
                raw = content[j + 1:end - 1]
                if content[end - 1:end] == '"' and "${" not in raw and "%{" not in raw:
                    attrs[name] = Span(value=raw, start=j + 1, end=end - 1)
                j = end
            continue
        if m:
            j = m.end()
            continue
        j += 1
    return attrs


def find_module_blocks(content: str) -> List[ModuleBlock]:
    """Return every top-level ``module`` block in ``content`` in file order."""
    blocks: List[ModuleBlock] = []
    n = len(content)
    i = 0
    while i < n:
        skipped = _skip_trivia(content, i)
        if skipped is not None:
            i = skipped
            continue
        c = content[i]
        if c == "m" and (i == 0 or not (content[i - 1].isalnum() or content[i - 1] in "_-.")):
            m = _MODULE_HEADER_RE.match(content, i)
            if m:
                brace = m.end() - 1
                end = _skip_braced(content, brace)
                attrs = _read_attributes(content, brace + 1, max(brace + 1, end - 1))
                blocks.append(
                    ModuleBlock(
                        name=m.group(1) if m.group(1) is not None else m.group(2),
                        start=i,
                        end=end,
                        source=attrs.get("source"),
                        version=attrs.get("version"),
                    )
                )
                i = end
                continue
        if c == "{":
            i = _skip_braced(content, i)
            continue
        i += 1
    return blocks


def find_version_matches(content: str, source: str, version: str) -> List[Span]:
    """Return the ``version`` value spans of blocks using ``source`` at ``version``."""
    return [
        block.version
        for block in find_module_blocks(content)
        if block.source is not None
        and block.version is not None
        and block.source.value == source
        and block.version.value == version
    ]


def count_occurrences(content: str, source: str, version: str) -> int:
    return len(find_version_matches(content, source, version))


def replace_version(content: str, source: str, old_version: str, new_version: str) -> str:
    """Rewrite matching version values only, leaving all other bytes intact."""
    result = content
    for span in reversed(find_version_matches(content, source, old_version)):
        result = result[:span.start] + new_version + result[span.end:]
    return result
