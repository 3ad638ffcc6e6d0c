"""XML element tree -> MongoDB-style document conversion.

The mapping is a straight walk of the XML attributes and child nodes:

* attributes become string fields;
* a child element with no attributes and a single text child becomes a
  string field holding the trimmed text;
* any other child element becomes a nested document;
* non-whitespace text children are collected, trimmed, into a ``_text`` list;
* a name used more than once in the same element (attributes and child
  elements share one count) becomes a list holding every value in source
  order.

Names are taken as written in the source (``x:b``, ``xml:lang``,
``xmlns:x``) and cleaned so they are legal document field names: a leading
``$`` is escaped with ``_`` and every ``.`` is replaced with ``_``.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Iterator, Union

from .models import Document
from .utils import TEXT_FIELD

Node = Union[ET.Element, str]


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------


def clean_name(name: str) -> str:
    """Make *name* a valid document field name."""
    if name.startswith("$"):
        name = "_" + name
    return name.replace(".", "_")


def local_name(tag: str) -> str:
    """Drop a ``{namespace}`` qualifier.

    Trees from :mod:`xmlloader.parsing` already carry ``prefix:local`` names;
    this only applies to trees built with a plain ElementTree parser, where
    the prefix is no longer known.
    """
    if tag.startswith("{"):
        return tag.rpartition("}")[2]
    return tag


def field_name(raw: str) -> str:
    return clean_name(local_name(raw))


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------


def child_nodes(elem: ET.Element) -> Iterator[Node]:
    """Yield the text and element children of *elem* in document order.

    ElementTree keeps text on ``elem.text`` and on each child's ``tail``; this
    flattens them back into DOM order.  Comments and processing instructions
    are skipped, their tails are not.
    """
    if elem.text is not None:
        yield elem.text
    for child in elem:
        if isinstance(child.tag, str):
            yield child
        if child.tail is not None:
            yield child.tail


def is_leaf_text(elem: ET.Element) -> bool:
    """True if *elem* has no attributes and exactly one child, a text node."""
    if elem.attrib:
        return False
    nodes = list(child_nodes(elem))
    return len(nodes) == 1 and isinstance(nodes[0], str)


def leaf_text(elem: ET.Element) -> str:
    nodes = list(child_nodes(elem))
    if len(nodes) == 1 and isinstance(nodes[0], str):
        return nodes[0].strip()
    return ""


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def count_names(elem: ET.Element) -> dict[str, int]:
    """First pass: cleaned name -> occurrences over attributes and child elements."""
    counts: dict[str, int] = {}
    for raw in elem.attrib:
        name = field_name(raw)
        counts[name] = counts.get(name, 0) + 1
    for node in child_nodes(elem):
        if isinstance(node, str):
            continue
        name = field_name(node.tag)
        counts[name] = counts.get(name, 0) + 1
    return counts


def _append(doc: Document, arrays: dict[str, list], name: str, value: Any) -> None:
    values = arrays.get(name)
    if values is None:
        values = arrays[name] = []
        # A single-valued field already holds the name; fold it in.
        if name in doc:
            values.append(doc[name])
        doc[name] = values
    values.append(value)


def _store(
    doc: Document,
    arrays: dict[str, list],
    counts: dict[str, int],
    name: str,
    value: Any,
) -> None:
    if counts.get(name, 0) > 1 or name in arrays:
        _append(doc, arrays, name, value)
    else:
        doc[name] = value


def convert_element(elem: ET.Element) -> Document:
    """Convert one element's attributes and children into a document."""
    counts = count_names(elem)
    arrays: dict[str, list] = {}
    doc: Document = {}

    for raw, value in elem.attrib.items():
        _store(doc, arrays, counts, field_name(raw), value)

    for node in child_nodes(elem):
        if isinstance(node, str):
            text = node.strip()
            if text:
                _append(doc, arrays, TEXT_FIELD, text)
            continue

        name = field_name(node.tag)
        if is_leaf_text(node):
            _store(doc, arrays, counts, name, leaf_text(node))
        else:
            _store(doc, arrays, counts, name, convert_element(node))

    return doc


def convert_document(root: ET.Element | ET.ElementTree) -> Document:
    """Convert a parsed XML document (its root element) into a document."""
    if isinstance(root, ET.ElementTree):
        root = root.getroot()
    return convert_element(root)
