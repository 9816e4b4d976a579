"""
Defines the core data types for the AW script runtime.

This module provides the element tree node handed over by the markup parser,
the per-screen scope store, and the control-flow signal used by navigation.
"""

from typing import List, Dict, Any, Optional, Sequence

ID_ATTRIBUTES = ("android:id", "id")
ID_PREFIXES = ("@+id/", "@id/")

# Tag of the only element kind whose value is read live from the host.
INPUT_TAG = "EditText"


def strip_id(raw: Optional[str]) -> Optional[str]:
    """Removes the `@+id/` and `@id/` prefixes from a raw id attribute."""
    if raw is None:
        return None
    for prefix in ID_PREFIXES:
        raw = raw.replace(prefix, "")
    return raw


class ExpressionError(Exception):
    """Raised by the formula parser; never escapes the evaluator."""
    pass


# =================================================================
# Element tree
# =================================================================

class ElementNode:
    """A node of a parsed layout tree (tag, attributes, children, text)."""
    def __init__(self, tag_name: str, attributes: Optional[Dict[str, str]] = None,
                 children: Optional[List['ElementNode']] = None, text: Optional[str] = None):
        self.tag_name = tag_name
        self.attributes: Dict[str, str] = dict(attributes or {})
        self.children: List['ElementNode'] = list(children or [])
        self.text = text

    @property
    def raw_id(self) -> Optional[str]:
        for key in ID_ATTRIBUTES:
            if key in self.attributes:
                return self.attributes[key]
        return None

    @property
    def element_id(self) -> Optional[str]:
        """The id with its resource prefix stripped, or None."""
        return strip_id(self.raw_id) or None

    @property
    def is_input(self) -> bool:
        return self.tag_name == INPUT_TAG

    def matches(self, key: str) -> bool:
        return self.element_id == key or self.tag_name == key

    def find(self, key: str) -> Optional['ElementNode']:
        """Depth-first search for the first node whose id or tag equals key."""
        if self.matches(key):
            return self
        for child in self.children:
            found = child.find(key)
            if found is not None:
                return found
        return None

    def iter(self):
        yield self
        for child in self.children:
            yield from child.iter()

    def __repr__(self) -> str:
        return f"ElementNode({self.tag_name!r}, id={self.element_id!r}, children={len(self.children)})"

    def __eq__(self, other):
        if not isinstance(other, ElementNode):
            return NotImplemented
        return (self.tag_name == other.tag_name and self.attributes == other.attributes
                and self.children == other.children and self.text == other.text)

    __hash__ = object.__hash__


# =================================================================
# Scope store
# =================================================================

class FunctionDef:
    """A registered `func` definition; the body is kept verbatim."""
    def __init__(self, params: List[str], body_lines: List[str]):
        self.params = list(params)
        self.body_lines = list(body_lines)

    def __repr__(self) -> str:
        return f"FunctionDef(params={self.params!r}, lines={len(self.body_lines)})"

    def __eq__(self, other):
        if not isinstance(other, FunctionDef):
            return NotImplemented
        return self.params == other.params and self.body_lines == other.body_lines


class Scope:
    """Per-screen store of variables, click handlers and functions.

    One Scope lives as long as its screen: it is rebuilt on `execute` and
    shared by every later event dispatch. Function calls bind their
    parameters straight into `vars`, so a call overwrites caller bindings
    of the same name.
    """
    def __init__(self):
        self.vars: Dict[str, Any] = {}
        self.event_handlers: Dict[str, List[str]] = {}
        self.functions: Dict[str, FunctionDef] = {}

    def __getitem__(self, key: str) -> Any:
        return self.vars[key]

    def __setitem__(self, key: str, value: Any):
        self.vars[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.vars

    def get(self, key: str, default: Any = None) -> Any:
        return self.vars.get(key, default)

    def __repr__(self) -> str:
        return (f"<Scope vars={sorted(self.vars)} handlers={sorted(self.event_handlers)} "
                f"functions={sorted(self.functions)}>")


class IntentData(Sequence):
    """Read-only values passed to a screen by the previous `intent.to`."""
    __slots__ = ("_items",)

    def __init__(self, items=()):
        self._items = tuple(items or ())

    def __getitem__(self, idx):
        return self._items[idx]

    def __len__(self) -> int:
        return len(self._items)

    def get(self, idx: int, default: Any = None) -> Any:
        if 0 <= idx < len(self._items):
            return self._items[idx]
        return default

    def __repr__(self) -> str:
        return f"IntentData({list(self._items)!r})"


# =================================================================
# Control-flow signal
# =================================================================

class Halt:
    """Returned by block processing after `intent.to`; unwinds every enclosing block."""
    def __init__(self, target: Any, args: List[Any]):
        self.target = target
        self.args = list(args)

    def __repr__(self) -> str:
        return f"Halt(target={self.target!r}, args={self.args!r})"

    def __eq__(self, other):
        if not isinstance(other, Halt):
            return NotImplemented
        return self.target == other.target and self.args == other.args
