#===============================================================================
#  WAM_Web_App_Manager | desktop_entry.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Reading and writing freedesktop .desktop files: value escaping, Exec
#  argument quoting, and the marker check used to recognize our entries.
#
#  Notes
#  -----
#  - Two escaping layers apply to Exec: argument quoting (double quotes,
#    backslash before " ` $ \) and then the generic string escapes
#    (\\ \s \n \t \r). '%' is doubled so it is never read as a field code.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import configparser
import io
from pathlib import Path
from typing import Dict, Iterable, List

from .constants import DESKTOP_GROUP, MARKER_KEY, MARKER_VALUE
from .errors import ParseError

_RESERVED = set(" \t\n\"'\\><~|&;$*?#()`")
_QUOTE_ESCAPED = set("\"`$\\")

_VALUE_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}
_VALUE_UNESCAPES = {"\\": "\\", "s": " ", "n": "\n", "t": "\t", "r": "\r"}


def escape_value(value: str) -> str:
    out = "".join(_VALUE_ESCAPES.get(ch, ch) for ch in value)
    if out.startswith(" "):
        out = "\\s" + out[1:]
    return out


def unescape_value(value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value) and value[i + 1] in _VALUE_UNESCAPES:
            out.append(_VALUE_UNESCAPES[value[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def quote_exec_arg(arg: str) -> str:
    arg = arg.replace("%", "%%")
    if arg and not (set(arg) & _RESERVED):
        return arg
    return '"' + "".join("\\" + ch if ch in _QUOTE_ESCAPED else ch for ch in arg) + '"'


def join_exec(args: Iterable[str]) -> str:
    """argv -> Exec value (before generic string escaping)."""
    return " ".join(quote_exec_arg(a) for a in args)


def split_exec(exec_line: str) -> List[str]:
    """Exec value (already unescaped) -> argv. Raises ValueError on an unterminated quote."""
    args: List[str] = []
    buf: List[str] = []
    in_quotes = False
    has_token = False
    i = 0
    while i < len(exec_line):
        ch = exec_line[i]
        if in_quotes:
            if ch == "\\" and i + 1 < len(exec_line) and exec_line[i + 1] in _QUOTE_ESCAPED:
                buf.append(exec_line[i + 1])
                i += 2
                continue
            if ch == '"':
                in_quotes = False
            else:
                buf.append(ch)
        elif ch == '"':
            in_quotes = True
            has_token = True
        elif ch == " ":
            if has_token or buf:
                args.append("".join(buf))
                buf, has_token = [], False
        else:
            buf.append(ch)
        i += 1
    if in_quotes:
        raise ValueError("unterminated quote in Exec")
    if has_token or buf:
        args.append("".join(buf))
    return [a.replace("%%", "%") for a in args]


def _parser() -> configparser.RawConfigParser:
    parser = configparser.RawConfigParser(delimiters=("=",), comment_prefixes=("#",), strict=True, interpolation=None)
    parser.optionxform = str  # keys are case sensitive
    return parser


def render_entry(fields: Dict[str, str]) -> str:
    """Render an ordered mapping of keys as a [Desktop Entry] group."""
    parser = _parser()
    parser.add_section(DESKTOP_GROUP)
    for key, value in fields.items():
        parser.set(DESKTOP_GROUP, key, escape_value(value))
    buf = io.StringIO()
    parser.write(buf, space_around_delimiters=False)
    return buf.getvalue()


def has_marker(text: str) -> bool:
    """Cheap line scan; used before full parsing so broken entries of ours are still reported."""
    needle = f"{MARKER_KEY}={MARKER_VALUE}"
    return any(line.strip() == needle for line in text.splitlines())


def parse_entry(path: Path, text: str) -> Dict[str, str]:
    """Parse the [Desktop Entry] group into unescaped values."""
    parser = _parser()
    try:
        parser.read_string(text, source=str(path))
    except configparser.Error as e:
        raise ParseError(path, str(e)) from e
    if not parser.has_section(DESKTOP_GROUP):
        raise ParseError(path, f"missing [{DESKTOP_GROUP}] group")
    return {k: unescape_value(v) for k, v in parser.items(DESKTOP_GROUP)}


def parse_bool(path: Path, fields: Dict[str, str], key: str, default: bool = False) -> bool:
    raw = fields.get(key)
    if raw is None:
        return default
    if raw.lower() == "true":
        return True
    if raw.lower() == "false":
        return False
    raise ParseError(path, f"{key} is not a boolean: {raw!r}")


def bool_to_string(value: bool) -> str:
    return "true" if value else "false"
