"""
Formula evaluation for AW expressions and conditions.

After `&&path` substitution an expression is plain text such as
`"Bob" + " " + 3` or `4 > 2 && "x" != ""`. This module tokenizes and parses
that text with a small recursive-descent parser and computes a value with
loose, script-friendly coercions (string concatenation wins over addition,
arithmetic coerces numeric strings, `==` compares across types).

Any text the parser does not accept raises ExpressionError; the evaluator
turns that into its literal-text fallback.
"""
from __future__ import annotations

import math
import re
from typing import Any, List, Tuple

from aw.aw_datatypes import ExpressionError

OBJECT_TOKEN = "[Object]"


class _Opaque:
    """Stand-in for a substituted non-scalar (element node, dict, list)."""
    def __repr__(self):
        return OBJECT_TOKEN

    def __bool__(self):
        return True


OPAQUE = _Opaque()

# Integers beyond this lose precision as doubles; they are carried as floats.
MAX_SAFE_INTEGER = 2 ** 53

_NUMBER_TEXT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INFINITY_TEXT = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}

_TOKEN_RE = re.compile(r"""
    (?P<ws>\s+)
  | (?P<object>\[Object\])
  | (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>+\-*/%!()])
""", re.VERBOSE)

_NAMED_VALUES = {"true": True, "false": False, "Infinity": math.inf, "NaN": math.nan}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


# --------------------------
# Coercions
# --------------------------

def normalize_number(n):
    """
    Keeps numbers in double range. Ints past MAX_SAFE_INTEGER become floats
    (or +/-inf when even a float cannot hold them); integral floats within it
    become ints so `4 / 2` reads as `2`.
    """
    if isinstance(n, bool):
        return n
    if isinstance(n, int):
        if abs(n) <= MAX_SAFE_INTEGER:
            return n
        try:
            return float(n)
        except OverflowError:
            return math.inf if n > 0 else -math.inf
    if isinstance(n, float) and math.isfinite(n) and n.is_integer() and abs(n) <= MAX_SAFE_INTEGER:
        return int(n)
    return n


def is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def parse_number(text: str):
    """Returns an int/float when text is a plain decimal number or an infinity, else None."""
    s = text.strip()
    if s in _INFINITY_TEXT:
        return _INFINITY_TEXT[s]
    if not _NUMBER_TEXT_RE.match(s):
        return None
    # float() never hits the int digit limit; too-large values come back as inf.
    return normalize_number(float(s))


def to_number(v):
    if isinstance(v, bool):
        return 1 if v else 0
    if is_number(v):
        return normalize_number(v)
    if isinstance(v, str):
        if not v.strip():
            return 0
        n = parse_number(v)
        return math.nan if n is None else n
    return math.nan


def format_number(n) -> str:
    n = normalize_number(n)
    if isinstance(n, float):
        if math.isnan(n):
            return "NaN"
        if math.isinf(n):
            return "Infinity" if n > 0 else "-Infinity"
        if n.is_integer() and abs(n) < 1e21:
            return str(int(n))
    return str(n)


def to_string(v) -> str:
    if v is None:
        return "undefined"
    if isinstance(v, bool):
        return "true" if v else "false"
    if is_number(v):
        return format_number(v)
    if isinstance(v, str):
        return v
    return OBJECT_TOKEN


def truthy(v) -> bool:
    if v is None:
        return False
    if isinstance(v, bool):
        return v
    if is_number(v):
        return v != 0 and not (isinstance(v, float) and math.isnan(v))
    if isinstance(v, str):
        return v != ""
    return True


def quote(text: str) -> str:
    """Renders a string as a formula string literal."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def loose_equals(a, b) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if a is OPAQUE or b is OPAQUE:
        return False
    if isinstance(a, bool) and isinstance(b, bool):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return to_number(a) == to_number(b)


def strict_equals(a, b) -> bool:
    if is_number(a) and is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    if a is OPAQUE:
        return False
    return a == b


# --------------------------
# Tokenizer
# --------------------------

def _unescape(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def tokenize(text: str) -> List[Tuple[str, Any]]:
    tokens: List[Tuple[str, Any]] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise ExpressionError(f"unexpected character {text[pos]!r} at {pos}")
        kind = m.lastgroup
        raw = m.group(kind)
        pos = m.end()
        if kind == "ws":
            continue
        if kind == "number":
            tokens.append(("value", normalize_number(float(raw))))
        elif kind == "string":
            tokens.append(("value", _unescape(raw[1:-1])))
        elif kind == "object":
            tokens.append(("value", OPAQUE))
        elif kind == "name":
            if raw not in _NAMED_VALUES:
                raise ExpressionError(f"unknown name {raw!r}")
            tokens.append(("value", _NAMED_VALUES[raw]))
        else:
            tokens.append(("op", raw))
    return tokens


# --------------------------
# Parser / evaluator
# --------------------------

class FormulaParser:
    """Recursive-descent evaluator over a token list.

    Precedence, lowest first: `||`, `&&`, equality, relational, additive,
    multiplicative, unary.
    """

    def __init__(self, tokens: List[Tuple[str, Any]]):
        self.tokens = tokens
        self.pos = 0

    def _peek_op(self):
        if self.pos < len(self.tokens) and self.tokens[self.pos][0] == "op":
            return self.tokens[self.pos][1]
        return None

    def _take(self):
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def parse(self):
        if not self.tokens:
            raise ExpressionError("empty expression")
        value = self._or()
        if self.pos != len(self.tokens):
            raise ExpressionError(f"unexpected token {self.tokens[self.pos][1]!r}")
        return value

    def _or(self):
        left = self._and()
        while self._peek_op() == "||":
            self._take()
            right = self._and()
            left = left if truthy(left) else right
        return left

    def _and(self):
        left = self._equality()
        while self._peek_op() == "&&":
            self._take()
            right = self._equality()
            left = right if truthy(left) else left
        return left

    def _equality(self):
        left = self._relational()
        while self._peek_op() in ("==", "!=", "===", "!=="):
            op = self._take()[1]
            right = self._relational()
            match op:
                case "==":
                    left = loose_equals(left, right)
                case "!=":
                    left = not loose_equals(left, right)
                case "===":
                    left = strict_equals(left, right)
                case "!==":
                    left = not strict_equals(left, right)
        return left

    def _relational(self):
        left = self._additive()
        while self._peek_op() in ("<", "<=", ">", ">="):
            op = self._take()[1]
            right = self._additive()
            if isinstance(left, str) and isinstance(right, str):
                a, b = left, right
            else:
                a, b = to_number(left), to_number(right)
            match op:
                case "<":
                    left = a < b
                case "<=":
                    left = a <= b
                case ">":
                    left = a > b
                case ">=":
                    left = a >= b
        return left

    def _additive(self):
        left = self._multiplicative()
        while self._peek_op() in ("+", "-"):
            op = self._take()[1]
            right = self._multiplicative()
            if op == "+":
                if isinstance(left, str) or isinstance(right, str) or left is OPAQUE or right is OPAQUE:
                    left = to_string(left) + to_string(right)
                else:
                    left = normalize_number(to_number(left) + to_number(right))
            else:
                left = normalize_number(to_number(left) - to_number(right))
        return left

    def _multiplicative(self):
        left = self._unary()
        while self._peek_op() in ("*", "/", "%"):
            op = self._take()[1]
            right = self._unary()
            a, b = to_number(left), to_number(right)
            match op:
                case "*":
                    left = normalize_number(a * b)
                case "/":
                    left = normalize_number(_divide(a, b))
                case "%":
                    left = _remainder(a, b)
        return left

    def _unary(self):
        op = self._peek_op()
        if op in ("!", "-", "+"):
            self._take()
            operand = self._unary()
            if op == "!":
                return not truthy(operand)
            n = to_number(operand)
            return normalize_number(-n) if op == "-" else n
        return self._primary()

    def _primary(self):
        if self.pos >= len(self.tokens):
            raise ExpressionError("unexpected end of expression")
        kind, val = self._take()
        if kind == "value":
            return val
        if val == "(":
            inner = self._or()
            if self._peek_op() != ")":
                raise ExpressionError("missing ')'")
            self._take()
            return inner
        raise ExpressionError(f"unexpected operator {val!r}")


def _divide(a, b):
    if b == 0:
        if a == 0 or (isinstance(a, float) and math.isnan(a)):
            return math.nan
        return math.inf if a > 0 else -math.inf
    try:
        return a / b
    except OverflowError:
        return math.inf if (a > 0) == (b > 0) else -math.inf


def _remainder(a, b):
    # Sign follows the dividend; infinities and zero divisors give NaN.
    try:
        return normalize_number(math.fmod(a, b))
    except (ValueError, ZeroDivisionError, OverflowError):
        return math.nan


def evaluate_formula(text: str) -> Any:
    """Evaluates substituted expression text; raises ExpressionError when it is not a formula."""
    return FormulaParser(tokenize(text)).parse()


__all__ = [
    "OBJECT_TOKEN",
    "OPAQUE",
    "evaluate_formula",
    "parse_number",
    "to_number",
    "to_string",
    "truthy",
    "quote",
    "normalize_number",
]
