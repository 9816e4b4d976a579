"""
Default layout parser: XML text to an ElementNode tree.

Attribute names keep their document prefixes (`android:id`, not the
namespace URI form) because scripts and hosts address them that way.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, Optional

from aw.aw_datatypes import ElementNode


def _qualify(name: str, prefixes: Dict[str, str]) -> str:
    if name.startswith("{"):
        uri, _, local = name[1:].partition("}")
        prefix = prefixes.get(uri)
        return f"{prefix}:{local}" if prefix else local
    return name


def _convert(elem: ET.Element, prefixes: Dict[str, str], declared: Dict[ET.Element, Dict[str, str]]) -> ElementNode:
    attributes: Dict[str, str] = {}
    for prefix, uri in declared.get(elem, {}).items():
        attributes["xmlns:" + prefix if prefix else "xmlns"] = uri
    for name, value in elem.attrib.items():
        attributes[_qualify(name, prefixes)] = value

    # The last non-blank text run among the direct children wins.
    text = ""
    if elem.text and elem.text.strip():
        text = elem.text.strip()
    children = []
    for child in elem:
        children.append(_convert(child, prefixes, declared))
        if child.tail and child.tail.strip():
            text = child.tail.strip()

    return ElementNode(_qualify(elem.tag, prefixes), attributes, children, text or None)


def parse_markup(source: Optional[str]) -> Optional[ElementNode]:
    """Returns the root ElementNode, or None for blank or malformed input."""
    if not source or not source.strip():
        return None

    parser = ET.XMLPullParser(events=("start-ns", "start"))
    prefixes: Dict[str, str] = {}
    declared: Dict[ET.Element, Dict[str, str]] = {}
    pending: Dict[str, str] = {}
    root = None
    try:
        parser.feed(source.strip())
        parser.close()
        for event, payload in parser.read_events():
            if event == "start-ns":
                prefix, uri = payload
                prefixes.setdefault(uri, prefix)
                pending[prefix] = uri
            elif event == "start":
                if root is None:
                    root = payload
                if pending:
                    declared[payload] = pending
                    pending = {}
    except ET.ParseError:
        return None
    if root is None:
        return None
    return _convert(root, prefixes, declared)
