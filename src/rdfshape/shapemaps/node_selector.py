"""
Node selectors and RDF term syntax used by shape maps.

A node selector picks the focus nodes of a shape map association:

- a single RDF term: ``<http://example.org/a>``, ``ex:a``, ``"lit"@en``
- a triple pattern: ``{FOCUS rdf:type ex:Person}`` or ``{_ ex:knows FOCUS}``
- a SPARQL query: ``SPARQL "SELECT ?x WHERE { ?x a ex:Person }"``; the first
  projected variable holds the focus nodes

Parsing raises ValueError; callers wrap it in the error type of their layer.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import RDF, XSD
from rdflib.term import Identifier

from ..rdf.prefix_map import PrefixMap

logger = logging.getLogger(__name__)

FOCUS = "FOCUS"
WILDCARD = "_"

_LITERAL_RE = re.compile(
    r'^"((?:[^"\\]|\\.)*)"(?:@([A-Za-z]+(?:-[A-Za-z0-9]+)*)|\^\^(.+))?$', re.DOTALL
)
_INTEGER_RE = re.compile(r'^[+-]?\d+$')
_DECIMAL_RE = re.compile(r'^[+-]?\d*\.\d+$')
_DOUBLE_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)[eE][+-]?\d+$')
_SPARQL_RE = re.compile(r'^SPARQL\s*("""(.*)"""|"((?:[^"\\]|\\.)*)")$', re.DOTALL | re.IGNORECASE)


def _unescape(value: str) -> str:
    return (value.replace('\\"', '"').replace('\\n', '\n')
            .replace('\\t', '\t').replace('\\\\', '\\'))


def parse_term(token: str, prefix_map: PrefixMap, base: Optional[str] = None) -> Identifier:
    """
    Parse one RDF term in Turtle-like syntax.

    Raises:
        ValueError: If the term is malformed or uses an undeclared prefix.
    """
    token = token.strip()
    if not token:
        raise ValueError("Empty RDF term")
    if token.startswith("_:"):
        return BNode(token[2:])
    if token == "a":
        return RDF.type
    match = _LITERAL_RE.match(token)
    if match:
        lexical, lang, datatype = match.groups()
        lexical = _unescape(lexical)
        if lang:
            return Literal(lexical, lang=lang)
        if datatype:
            return Literal(lexical, datatype=prefix_map.resolve(datatype, base))
        return Literal(lexical)
    if _INTEGER_RE.match(token):
        return Literal(token, datatype=XSD.integer)
    if _DECIMAL_RE.match(token):
        return Literal(token, datatype=XSD.decimal)
    if _DOUBLE_RE.match(token):
        return Literal(token, datatype=XSD.double)
    if token in ("true", "false"):
        return Literal(token, datatype=XSD.boolean)
    return prefix_map.resolve(token, base)


def render_term(term: Identifier, prefix_map: Optional[PrefixMap] = None) -> str:
    """Render an RDF term in compact shape map syntax."""
    if isinstance(term, URIRef):
        return prefix_map.qualify(str(term)) if prefix_map else f"<{term}>"
    if isinstance(term, BNode):
        return f"_:{term}"
    if isinstance(term, Literal):
        lexical = str(term).replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
        if term.language:
            return f'"{lexical}"@{term.language}'
        if term.datatype and term.datatype != XSD.string:
            return f'"{lexical}"^^{render_term(term.datatype, prefix_map)}'
        return f'"{lexical}"'
    return str(term)


def split_top_level(text: str, separators: str) -> List[str]:
    """
    Split on separator characters outside quotes, ``<...>`` and ``{...}``.
    """
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    in_iri = False
    quote: Optional[str] = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            current.append(ch)
            if ch == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if text.startswith(quote, i):
                current.extend(quote[1:])
                i += len(quote)
                quote = None
                continue
        elif ch == '"':
            quote = '"""' if text.startswith('"""', i) else '"'
            current.append(quote)
            i += len(quote)
            continue
        elif in_iri:
            current.append(ch)
            if ch == ">":
                in_iri = False
        elif ch == "<":
            in_iri = True
            current.append(ch)
        elif ch == "{":
            depth += 1
            current.append(ch)
        elif ch == "}":
            depth -= 1
            current.append(ch)
        elif ch in separators and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    if quote or in_iri or depth != 0:
        raise ValueError(f"Unbalanced quotes, IRI or braces in '{text.strip()}'")
    parts.append("".join(current))
    return parts


class NodeSelector:
    """Base class for focus node selectors."""

    def select(self, graph: Graph) -> List[Identifier]:
        raise NotImplementedError

    def render(self, prefix_map: Optional[PrefixMap] = None) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class RDFNodeSelector(NodeSelector):
    node: Identifier

    def select(self, graph: Graph) -> List[Identifier]:
        return [self.node]

    def render(self, prefix_map: Optional[PrefixMap] = None) -> str:
        return render_term(self.node, prefix_map)


@dataclass(frozen=True)
class TriplePatternSelector(NodeSelector):
    """
    ``{FOCUS p o}`` selects subjects, ``{s p FOCUS}`` selects objects.

    ``other`` is None for the ``_`` wildcard.
    """
    predicate: URIRef
    focus_is_subject: bool
    other: Optional[Identifier] = None

    def select(self, graph: Graph) -> List[Identifier]:
        if self.focus_is_subject:
            nodes = graph.subjects(self.predicate, self.other, unique=True)
        else:
            nodes = graph.objects(self.other, self.predicate, unique=True)
        return sorted(set(nodes), key=str)

    def render(self, prefix_map: Optional[PrefixMap] = None) -> str:
        other = WILDCARD if self.other is None else render_term(self.other, prefix_map)
        predicate = render_term(self.predicate, prefix_map)
        if self.focus_is_subject:
            return f"{{{FOCUS} {predicate} {other}}}"
        return f"{{{other} {predicate} {FOCUS}}}"


@dataclass(frozen=True)
class SparqlSelector(NodeSelector):
    query: str

    def select(self, graph: Graph) -> List[Identifier]:
        try:
            rows = graph.query(self.query)
        except Exception as e:
            raise ValueError(f"Error running SPARQL selector: {e}")
        nodes: List[Identifier] = []
        for row in rows:
            value = row[0]
            if value is not None and value not in nodes:
                nodes.append(value)
        return nodes

    def render(self, prefix_map: Optional[PrefixMap] = None) -> str:
        return f'SPARQL """{self.query}"""'


Selector = Union[RDFNodeSelector, TriplePatternSelector, SparqlSelector]


def parse_node_selector(text: str, prefix_map: PrefixMap, base: Optional[str] = None) -> Selector:
    """
    Parse a node selector.

    Args:
        text: Selector text.
        prefix_map: Prefixes for compact IRIs (usually the data prefix map).
        base: Base IRI for relative IRIs.

    Raises:
        ValueError: If the selector is malformed.
    """
    text = text.strip()
    if not text:
        raise ValueError("Empty node selector")

    sparql = _SPARQL_RE.match(text)
    if sparql:
        query = sparql.group(2) if sparql.group(2) is not None else _unescape(sparql.group(3))
        return SparqlSelector(query)

    if text.startswith("{"):
        if not text.endswith("}"):
            raise ValueError(f"Unterminated triple pattern '{text}'")
        tokens = [t for t in split_top_level(text[1:-1].strip(), " \t\r\n") if t]
        if len(tokens) != 3:
            raise ValueError(f"Triple pattern must have three terms: '{text}'")
        subject, predicate, obj = tokens
        pred = parse_term(predicate, prefix_map, base)
        if not isinstance(pred, URIRef):
            raise ValueError(f"Triple pattern predicate must be an IRI: '{predicate}'")
        if subject == FOCUS and obj != FOCUS:
            other = None if obj == WILDCARD else parse_term(obj, prefix_map, base)
            return TriplePatternSelector(pred, True, other)
        if obj == FOCUS and subject != FOCUS:
            other = None if subject == WILDCARD else parse_term(subject, prefix_map, base)
            return TriplePatternSelector(pred, False, other)
        raise ValueError(f"Triple pattern must contain FOCUS exactly once: '{text}'")

    return RDFNodeSelector(parse_term(text, prefix_map, base))
