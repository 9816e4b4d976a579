"""
Formats AW runtime values for output: `print`/`show`, UI writes and the
console runner's tree view.
"""
import collections.abc
import json

from aw.aw_datatypes import ElementNode, IntentData
from aw.aw_expr import format_number


class Printer:
    """Formats AW values into the text a script user sees."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj):
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, ElementNode): return self.summary
        if isinstance(obj, collections.abc.Mapping): return self._pformat_structured
        if isinstance(obj, (list, tuple, IntentData)): return self._pformat_structured
        return str

    def _create_handlers(self):
        return {
            str: lambda s: s,
            bool: lambda b: "true" if b else "false",
            int: format_number,
            float: format_number,
            type(None): lambda _: "undefined",
            ElementNode: self.summary,
        }

    def summary(self, node: ElementNode) -> str:
        return f"[Object: {node.tag_name} id={node.raw_id or 'null'}]"

    def _pformat_structured(self, obj):
        if isinstance(obj, IntentData):
            obj = list(obj)
        try:
            return json.dumps(obj, ensure_ascii=False, default=self._json_default)
        except (TypeError, ValueError):
            return repr(obj)

    def _json_default(self, obj):
        if isinstance(obj, ElementNode):
            return self.summary(obj)
        raise TypeError(type(obj).__name__)

    def pformat_tree(self, node: ElementNode, level=0) -> str:
        """Indented outline of an element tree, one node per line."""
        pad = self._indent_char * level
        line = f"{pad}<{node.tag_name}"
        if node.element_id:
            line += f" id={node.element_id}"
        text = node.attributes.get("android:text") or node.text
        if text:
            line += f" text={text!r}"
        line += ">"
        lines = [line]
        for child in node.children:
            lines.append(self.pformat_tree(child, level + 1))
        return "\n".join(lines)
