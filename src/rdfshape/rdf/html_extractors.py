"""
HTML extractors: RDF embedded in HTML pages.

rdflib no longer ships RDFa or microdata parsers:

- html-microdata: ``itemscope`` / ``itemtype`` / ``itemprop`` / ``itemid``,
  read from a lightweight element tree built with ``html.parser``
- html-rdfa11: full RDFa 1.1 processing by pyRdfa3 in the HTML5 host
  language
- html-jsonld: ``<script type="application/ld+json">`` blocks, parsed with
  rdflib's JSON-LD parser

Extractors are looked up by format name; see EXTRACTORS.
"""

import logging
from html.parser import HTMLParser
from io import StringIO
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin

from pyRdfa import pyRdfa
from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import RDF

from ..errors import DataParseError, ResolutionError

logger = logging.getLogger(__name__)

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

URL_ATTRIBUTES = ("href", "src", "data")


class Element:
    """One element of the parsed HTML tree."""

    def __init__(self, tag: str, attrs: Dict[str, str], parent: Optional['Element'] = None):
        self.tag = tag
        self.attrs = attrs
        self.parent = parent
        self.children: List['Element'] = []
        self.text_parts: List[str] = []

    def get(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    def has(self, name: str) -> bool:
        return name in self.attrs

    @property
    def text(self) -> str:
        parts = list(self.text_parts)
        for child in self.children:
            parts.append(child.text)
        return " ".join(p.strip() for p in parts if p.strip())

    def iter(self):
        yield self
        for child in self.children:
            yield from child.iter()


class _TreeBuilder(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.root = Element("#document", {})
        self._current = self.root

    def handle_starttag(self, tag, attrs):
        element = Element(tag, {k: (v if v is not None else "") for k, v in attrs}, self._current)
        self._current.children.append(element)
        if tag not in VOID_ELEMENTS:
            self._current = element

    def handle_startendtag(self, tag, attrs):
        element = Element(tag, {k: (v if v is not None else "") for k, v in attrs}, self._current)
        self._current.children.append(element)

    def handle_endtag(self, tag):
        node = self._current
        while node is not self.root and node.tag != tag:
            node = node.parent
        if node is not self.root:
            self._current = node.parent

    def handle_data(self, data):
        self._current.text_parts.append(data)


def parse_html(text: str) -> Element:
    """Build an element tree from HTML text."""
    builder = _TreeBuilder()
    builder.feed(text)
    builder.close()
    return builder.root


def _document_base(root: Element, base: Optional[str]) -> Optional[str]:
    for element in root.iter():
        if element.tag == "base" and element.get("href"):
            return urljoin(base or "", element.get("href"))
    return base


def _iri(value: str, base: Optional[str]) -> URIRef:
    return URIRef(urljoin(base, value) if base else value)


def _is_absolute(value: str) -> bool:
    return ":" in value and not value.startswith(":")


# ----------------------------------------------------------------------
# Microdata
# ----------------------------------------------------------------------

def _microdata_vocabulary(item_type: Optional[str]) -> Optional[str]:
    if not item_type:
        return None
    first = item_type.split()[0]
    for sep in ("#", "/"):
        idx = first.rfind(sep)
        if idx > first.find("//") + 1:
            return first[:idx + 1]
    return None


def _microdata_value(element: Element, graph: Graph, base: Optional[str], vocab: Optional[str]):
    if element.has("itemscope"):
        return _microdata_item(element, graph, base, vocab)
    if element.has("content"):
        return Literal(element.get("content"))
    for attr in URL_ATTRIBUTES:
        if element.get(attr) is not None and element.tag in ("a", "area", "link", "img", "audio",
                                                             "video", "source", "iframe", "embed",
                                                             "object", "track"):
            return _iri(element.get(attr), base)
    if element.tag in ("time",) and element.get("datetime"):
        return Literal(element.get("datetime"))
    if element.tag == "data" and element.get("value") is not None:
        return Literal(element.get("value"))
    return Literal(element.text)


def _microdata_properties(scope: Element) -> List[Element]:
    """Elements carrying itemprop that belong to ``scope`` (not to a nested item)."""
    found: List[Element] = []

    def walk(element: Element) -> None:
        for child in element.children:
            if child.has("itemprop"):
                found.append(child)
            if not child.has("itemscope"):
                walk(child)

    walk(scope)
    return found


def _microdata_item(element: Element, graph: Graph, base: Optional[str],
                    inherited_vocab: Optional[str] = None):
    item_id = element.get("itemid")
    subject = _iri(item_id, base) if item_id else BNode()
    item_type = element.get("itemtype")
    vocab = _microdata_vocabulary(item_type) or inherited_vocab
    for type_iri in (item_type or "").split():
        graph.add((subject, RDF.type, _iri(type_iri, base)))
    for prop_element in _microdata_properties(element):
        value = _microdata_value(prop_element, graph, base, vocab)
        for name in prop_element.get("itemprop").split():
            if _is_absolute(name):
                predicate = URIRef(name)
            elif vocab:
                predicate = URIRef(vocab + name)
            else:
                logger.debug(f"Skipping microdata property '{name}' without vocabulary")
                continue
            graph.add((subject, predicate, value))
    return subject


def extract_microdata(text: str, base: Optional[str] = None) -> Graph:
    """Extract top-level microdata items (itemscope without itemprop)."""
    root = parse_html(text)
    base = _document_base(root, base)
    graph = Graph(bind_namespaces="core")
    for element in root.iter():
        if element.has("itemscope") and not element.has("itemprop"):
            _microdata_item(element, graph, base)
    return graph


# ----------------------------------------------------------------------
# RDFa
# ----------------------------------------------------------------------

def extract_rdfa(text: str, base: Optional[str] = None) -> Graph:
    """Distill RDFa 1.1 annotations; relative IRIs resolve against ``base``."""
    processor = pyRdfa(base=base or "", media_type="text/html")
    graph = Graph(bind_namespaces="core")
    processor.graph_from_source(StringIO(text), graph=graph)
    return graph


# ----------------------------------------------------------------------
# JSON-LD
# ----------------------------------------------------------------------

def extract_jsonld(text: str, base: Optional[str] = None) -> Graph:
    """Parse every ``application/ld+json`` script block into one graph."""
    root = parse_html(text)
    base = _document_base(root, base)
    graph = Graph(bind_namespaces="core")
    blocks = [
        element.text for element in root.iter()
        if element.tag == "script"
        and (element.get("type") or "").split(";")[0].strip().lower() == "application/ld+json"
    ]
    for index, block in enumerate(blocks):
        if not block.strip():
            continue
        try:
            graph.parse(data=block, format="json-ld", publicID=base)
        except Exception as e:
            raise DataParseError("html-jsonld", f"script block {index + 1}: {e}")
    return graph


ExtractorFunc = Callable[[str, Optional[str]], Graph]

EXTRACTORS: Dict[str, ExtractorFunc] = {
    "html-microdata": extract_microdata,
    "html-rdfa11": extract_rdfa,
    "html-jsonld": extract_jsonld,
}


def extract_graph(text: str, format_name: str, base: Optional[str] = None) -> Graph:
    """
    Run the extractor registered for ``format_name``.

    Raises:
        ResolutionError: If no extractor is registered for the format.
        DataParseError: If the extractor fails.
    """
    extractor = EXTRACTORS.get(format_name)
    if extractor is None:
        raise ResolutionError(f"No HTML extractor for format '{format_name}'")
    try:
        graph = extractor(text, base)
    except ResolutionError:
        raise
    except Exception as e:
        raise DataParseError(format_name, str(e))
    logger.debug(f"Extracted {len(graph)} triples with {format_name}")
    return graph


def extractor_format_names() -> Tuple[str, ...]:
    return tuple(EXTRACTORS)
