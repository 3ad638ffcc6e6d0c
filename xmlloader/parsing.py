"""
XML input parsing.

Turns a file into one or more parsed ElementTree roots, depending on the load
mode:

* ``files`` -- each file is a single XML document;
* ``lines`` -- each non-blank line of each file is a single XML document.

Usage:
    from xmlloader.parsing import iter_documents

    for root in iter_documents(Path("feed.xml"), LoadMode.FILES):
        print(root.tag)

Trees keep names the way they are written in the source: ``x:b`` rather than
ElementTree's ``{urn:x}b``, with every ``xmlns``/``xmlns:p`` declaration kept
as an attribute of the element that declares it.  Comments and processing
instructions stay in the tree, so text on either side of them remains two
separate text runs.

Every tree is built fully in memory; read and parse failures surface as
:class:`~xmlloader.models.DocumentParseError`.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterator

from .models import DocumentParseError, LoadMode

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


# ---------------------------------------------------------------------------
# Tree building
# ---------------------------------------------------------------------------

class PrefixedTreeBuilder:
  """Parser target that rebuilds ``prefix:local`` names.

  Expat reports qualified names as ``{uri}local`` and hands namespace
  declarations to ``start_ns`` instead of the attribute map.  This target
  tracks the in-scope prefix of every URI and forwards the rewritten events
  to a :class:`xml.etree.ElementTree.TreeBuilder`.
  """

  def __init__(self):
    self._builder = ET.TreeBuilder(insert_comments=True, insert_pis=True)
    self._scopes: list[dict[str, str]] = [{XML_NAMESPACE: "xml"}]
    self._declared: list[tuple[str, str]] = []

  def _qualify(self, name: str) -> str:
    if not name.startswith("{"):
      return name
    uri, _, local = name[1:].partition("}")
    prefix = self._scopes[-1].get(uri)
    if prefix:
      return f"{prefix}:{local}"
    return local

  def start_ns(self, prefix: str, uri: str) -> None:
    self._declared.append((prefix, uri))

  def end_ns(self, prefix: str) -> None:
    pass

  def start(self, tag: str, attrib: dict[str, str]) -> ET.Element:
    scope = dict(self._scopes[-1])
    attrs: dict[str, str] = {}
    for prefix, uri in self._declared:
      scope[uri] = prefix
      attrs[f"xmlns:{prefix}" if prefix else "xmlns"] = uri
    self._declared = []
    self._scopes.append(scope)

    for name, value in attrib.items():
      attrs[self._qualify(name)] = value
    return self._builder.start(self._qualify(tag), attrs)

  def end(self, tag: str) -> ET.Element:
    elem = self._builder.end(self._qualify(tag))
    self._scopes.pop()
    return elem

  def data(self, data: str) -> None:
    self._builder.data(data)

  def comment(self, text: str) -> ET.Element:
    return self._builder.comment(text)

  def pi(self, target: str, text: str | None = None) -> ET.Element:
    return self._builder.pi(target, text)

  def close(self) -> ET.Element:
    return self._builder.close()


def make_parser() -> ET.XMLParser:
  """A fresh parser producing prefixed names; parsers are single-use."""
  return ET.XMLParser(target=PrefixedTreeBuilder())


# ---------------------------------------------------------------------------
# Single documents
# ---------------------------------------------------------------------------

def parse_xml_file(path: str | Path) -> ET.Element:
  """Parse the whole of *path* as one XML document and return its root."""
  path = Path(path)
  try:
    with open(path, "rb") as fh:
      return ET.parse(fh, parser=make_parser()).getroot()
  except ET.ParseError as exc:
    raise DocumentParseError(path, str(exc)) from exc
  except OSError as exc:
    raise DocumentParseError(path, exc.strerror or str(exc)) from exc


def parse_xml_string(text: str | bytes) -> ET.Element:
  """Parse an in-memory XML document and return its root."""
  return ET.fromstring(text, parser=make_parser())


# ---------------------------------------------------------------------------
# Line-delimited documents
# ---------------------------------------------------------------------------

def iter_xml_lines(path: str | Path) -> Iterator[ET.Element]:
  """Yield the root of every non-blank line of *path*, in file order.

  Lines are parsed lazily so a caller can submit each document before the
  next one is read.
  """
  path = Path(path)
  try:
    with open(path, "rb") as fh:
      for lineno, line in enumerate(fh, 1):
        if not line.strip():
          continue
        try:
          yield parse_xml_string(line)
        except ET.ParseError as exc:
          raise DocumentParseError(path, str(exc), line=lineno) from exc
  except OSError as exc:
    raise DocumentParseError(path, exc.strerror or str(exc)) from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def iter_documents(path: str | Path, mode: LoadMode) -> Iterator[ET.Element]:
  """Yield the parsed document roots held by *path* for the given *mode*."""
  if mode == LoadMode.LINES:
    yield from iter_xml_lines(path)
  else:
    yield parse_xml_file(path)
