"""
Source-level helpers for AW scripts: comment and header stripping, header
metadata, brace-balanced block extraction and argument splitting.
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple, Dict

HEADER_START = "WELCOM IN AW"
CODE_START = "THE CODE IS START NOW"

_COMMENT_BLOCK_RE = re.compile(r"\*\*/.*?/\*\*", re.DOTALL)
_LAYOUT_ASSIGN_RE = re.compile(r"^\s*(\w+)\s*=\s*(root/.*)\s*$")
_TITLE_RE = re.compile(r"^(?:titel|title)\s*:\s*(.*)", re.IGNORECASE)
_ICON_RE = re.compile(r"^icon\s*:\s*(.*)", re.IGNORECASE)


def strip_comments(code: str) -> str:
    """Removes `**/ ... /**` comment blocks (they may span lines)."""
    return _COMMENT_BLOCK_RE.sub("", code)


def prepare_lines(code: str) -> List[str]:
    """Turns script source into the trimmed, non-empty body lines the engine runs."""
    lines = [l.strip() for l in strip_comments(code).split("\n")]
    lines = [l for l in lines if l]
    start = next((i for i, l in enumerate(lines) if l.startswith(CODE_START)), -1)
    if start != -1:
        lines = lines[start + 1:]
    if lines and lines[0] == HEADER_START:
        lines.pop(0)
    return lines


def _header_value(raw: str) -> str:
    val = raw.strip()
    if val.endswith(","):
        val = val[:-1].strip()
    if len(val) >= 2 and val[0] == val[-1] and val[0] in ('"', "'"):
        val = val[1:-1]
    return val


def parse_metadata(code: str) -> Dict[str, str]:
    """Reads `title`/`titel` and `icon` from the header between the two markers."""
    lines = code.split("\n")
    stripped = [l.strip() for l in lines]
    try:
        start = stripped.index(HEADER_START)
        end = stripped.index(CODE_START)
    except ValueError:
        return {}
    if start >= end:
        return {}

    meta: Dict[str, str] = {}
    for line in stripped[start + 1:end]:
        if not line:
            continue
        m = _TITLE_RE.match(line)
        if m:
            meta["title"] = _header_value(m.group(1))
        m = _ICON_RE.match(line)
        if m:
            meta["icon"] = _header_value(m.group(1))
    return meta


def parse_layout_path(code: str) -> Optional[str]:
    """Finds the layout a screen declares: the first `name = root/...` within
    ten lines after the code-start marker."""
    lines = code.split("\n")
    start = next((i for i, l in enumerate(lines) if l.strip().startswith(CODE_START)), -1)
    if start == -1:
        return None
    for line in lines[start + 1:min(start + 10, len(lines))]:
        m = _LAYOUT_ASSIGN_RE.match(line.strip())
        if m:
            return m.group(2).strip()
    return None


def extract_block(lines: List[str], index: int) -> Tuple[List[str], int]:
    """
    Returns the body of the construct opening on `lines[index]` and the index
    of the first line after it.

    A construct that closes on its own line (`toast{...}`, `if {c} {stmt}`)
    yields the text between the last `{` and the last `}`. Otherwise braces
    are counted as a running balance from the opening line; lines are
    collected while the balance stays positive and the line that closes it
    is consumed without being collected.
    """
    line = lines[index]
    if line.rstrip().endswith("}"):
        last_open = line.rfind("{")
        last_close = line.rfind("}")
        if -1 < last_open < last_close:
            return [line[last_open + 1:last_close].strip()], index + 1

    balance = line.count("{") - line.count("}")
    collected: List[str] = []
    i = index + 1
    while i < len(lines) and balance > 0:
        l = lines[i]
        balance += l.count("{") - l.count("}")
        if balance > 0:
            collected.append(l)
        i += 1
    return collected, i


def extract_condition(line: str) -> str:
    """Returns the text inside the first brace group of a line, or 'false'."""
    start = line.find("{")
    if start == -1:
        return "false"
    depth = 0
    for pos in range(start, len(line)):
        ch = line[pos]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return line[start + 1:pos]
    return "false"


def split_args(text: str) -> List[str]:
    """Splits on commas outside double quotes; trims and drops empty parts."""
    result: List[str] = []
    current = ""
    in_quote = False
    for ch in text:
        if ch == '"':
            in_quote = not in_quote
        if ch == "," and not in_quote:
            result.append(current)
            current = ""
        else:
            current += ch
    result.append(current)
    return [s.strip() for s in result if s.strip()]


__all__ = [
    "HEADER_START",
    "CODE_START",
    "strip_comments",
    "prepare_lines",
    "parse_metadata",
    "parse_layout_path",
    "extract_block",
    "extract_condition",
    "split_args",
]
