# elsrc/core/sexp.py

"""
Minimal Lisp data reader/writer.

Recipes, `Package-Requires` headers and `define-package` forms are Lisp
data, not code. This module reads the subset they use: lists, strings,
integers, floats, symbols, keywords, quotes and line comments.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List

# ==============================================================
# TYPES
# ==============================================================

class Symbol(str):
    """A Lisp symbol. Keywords are symbols whose name starts with ':'."""

    @property
    def is_keyword(self) -> bool:
        return self.startswith(":")

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"

NIL = Symbol("nil")
T = Symbol("t")
QUOTE = Symbol("quote")

class SexpError(ValueError):
    """Raised when text is not readable Lisp data."""
    pass

# ==============================================================
# READER
# ==============================================================

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<comment>;[^\n]*)
    |(?P<open>\()
    |(?P<close>\))
    |(?P<quote>\#?')
    |(?P<string>"(?:[^"\\]|\\.)*")
    |(?P<atom>[^\s()";']+)
    """,
    re.VERBOSE | re.DOTALL,
)

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?$")
_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


def _tokenize(text: str) -> Iterator[tuple[str, str]]:
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match:
            raise SexpError(f"Unexpected character {text[pos]!r} at offset {pos}")
        pos = match.end()
        kind = match.lastgroup
        if kind in ("ws", "comment"):
            continue
        yield kind, match.group()  # type: ignore[misc]


def _unescape(raw: str) -> str:
    body = raw[1:-1]
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body, flags=re.DOTALL)


def _atom(token: str) -> Any:
    if _INT_RE.match(token):
        return int(token)
    if _FLOAT_RE.match(token):
        return float(token)
    return Symbol(token)


def _read(tokens: List[tuple[str, str]], index: int) -> tuple[Any, int]:
    if index >= len(tokens):
        raise SexpError("Unexpected end of input")
    kind, value = tokens[index]
    if kind == "open":
        items = []
        index += 1
        while True:
            if index >= len(tokens):
                raise SexpError("Unbalanced parentheses: missing ')'")
            if tokens[index][0] == "close":
                return items, index + 1
            item, index = _read(tokens, index)
            items.append(item)
    if kind == "close":
        raise SexpError("Unbalanced parentheses: unexpected ')'")
    if kind == "quote":
        quoted, index = _read(tokens, index + 1)
        return [QUOTE, quoted], index
    if kind == "string":
        return _unescape(value), index + 1
    return _atom(value), index + 1


def loads_all(text: str) -> List[Any]:
    """Read every top-level form in text."""
    tokens = list(_tokenize(text))
    forms = []
    index = 0
    while index < len(tokens):
        form, index = _read(tokens, index)
        forms.append(form)
    return forms


def loads(text: str) -> Any:
    """Read the first top-level form in text."""
    forms = loads_all(text)
    if not forms:
        raise SexpError("No data to read")
    return forms[0]

# ==============================================================
# CONVERSION HELPERS
# ==============================================================

def unquote(form: Any) -> Any:
    """Strip a leading (quote X) wrapper."""
    while isinstance(form, list) and len(form) == 2 and form[0] == QUOTE:
        form = form[1]
    return form


def to_python(form: Any) -> Any:
    """Convert read data to plain Python values (nil -> None, t -> True)."""
    form = unquote(form)
    if isinstance(form, Symbol):
        if form == NIL:
            return None
        if form == T:
            return True
        return str(form)
    if isinstance(form, list):
        return [to_python(item) for item in form]
    return form


def plist_to_dict(items: List[Any]) -> Dict[str, Any]:
    """
    Convert a keyword property list (:key value :key value) into a dict.

    Keys lose their leading colon and dashes become underscores.
    """
    if len(items) % 2:
        raise SexpError("Property list has an odd number of elements")
    result: Dict[str, Any] = {}
    for key, value in zip(items[::2], items[1::2]):
        if not isinstance(key, Symbol) or not key.is_keyword:
            raise SexpError(f"Expected a keyword, got {key!r}")
        result[key[1:].replace("-", "_")] = to_python(value)
    return result

# ==============================================================
# WRITER
# ==============================================================

def dumps(value: Any) -> str:
    """Print Python data as Lisp data."""
    if value is None or value is False:
        return "nil"
    if value is True:
        return "t"
    if isinstance(value, Symbol):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        if len(value) == 2 and value[0] == QUOTE:
            return "'" + dumps(value[1])
        return "(" + " ".join(dumps(item) for item in value) + ")"
    raise SexpError(f"Cannot print {type(value).__name__} as Lisp data")
