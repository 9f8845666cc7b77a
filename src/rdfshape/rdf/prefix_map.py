"""
Prefix maps: short prefixes to IRI namespaces.

Both resolved data graphs and resolved schemas expose a PrefixMap. Shape maps
and node selectors use them to expand compact identifiers such as
``ex:alice`` or ``<alice>`` into absolute IRIs.
"""

import re
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import urljoin, urlparse

from rdflib import Graph, URIRef

_PNAME_RE = re.compile(r'^([A-Za-z][\w.\-]*)?:([^\s<>"{}|^`\\]*)$')
_IRI_FORBIDDEN_RE = re.compile(r'[\s<>"{}|^`\\]')


def is_absolute_iri(value: str) -> bool:
    return bool(urlparse(value).scheme)


def resolve_iri(value: str, base: Optional[str] = None) -> URIRef:
    """
    Turn the content of an IRI reference into an absolute URIRef.

    Args:
        value: IRI text without angle brackets; may be relative.
        base: Base IRI for relative references.

    Raises:
        ValueError: If the IRI is malformed or relative without a base.
    """
    if _IRI_FORBIDDEN_RE.search(value):
        raise ValueError(f"Malformed IRI <{value}>")
    if is_absolute_iri(value):
        return URIRef(value)
    if not base:
        raise ValueError(f"Relative IRI <{value}> cannot be resolved without a base")
    return URIRef(urljoin(base, value))


class PrefixMap:
    """
    Ordered, read-only mapping from prefix to namespace IRI.

    Example:
        >>> pm = PrefixMap({"ex": "http://example.org/"})
        >>> pm.resolve("ex:alice")
        rdflib.term.URIRef('http://example.org/alice')
        >>> pm.qualify(URIRef("http://example.org/alice"))
        'ex:alice'
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._map: Dict[str, str] = {}
        for prefix, namespace in (mapping or {}).items():
            self._map[prefix or ""] = str(namespace)

    @classmethod
    def empty(cls) -> 'PrefixMap':
        return cls()

    @classmethod
    def from_graph(cls, graph: Graph) -> 'PrefixMap':
        """Read the namespace bindings declared on an rdflib graph."""
        return cls({prefix: str(ns) for prefix, ns in graph.namespaces()})

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> 'PrefixMap':
        return cls(dict(pairs))

    def resolve(self, token: str, base: Optional[str] = None) -> URIRef:
        """
        Expand ``<iri>`` or ``prefix:local`` into an absolute IRI.

        Raises:
            ValueError: On malformed IRIs or undeclared prefixes.
        """
        token = token.strip()
        if token.startswith("<") and token.endswith(">"):
            return resolve_iri(token[1:-1], base)
        match = _PNAME_RE.match(token)
        if not match:
            raise ValueError(f"Malformed IRI or prefixed name '{token}'")
        prefix, local = match.group(1) or "", match.group(2)
        if prefix not in self._map:
            raise ValueError(f"Prefix '{prefix}:' not declared in prefix map")
        return URIRef(self._map[prefix] + local)

    def qualify(self, iri: str) -> str:
        """Render an IRI as ``prefix:local`` when a namespace matches, else ``<iri>``."""
        best: Optional[Tuple[str, str]] = None
        for prefix, namespace in self._map.items():
            if namespace and iri.startswith(namespace):
                local = iri[len(namespace):]
                if _PNAME_RE.match(f"{prefix}:{local}") and (
                    best is None or len(namespace) > len(self._map[best[0]])
                ):
                    best = (prefix, local)
        if best is None:
            return f"<{iri}>"
        return f"{best[0]}:{best[1]}"

    def merge(self, other: 'PrefixMap') -> 'PrefixMap':
        """Return a new map with ``other``'s bindings; this map wins on clashes."""
        merged = dict(other._map)
        merged.update(self._map)
        return PrefixMap(merged)

    def namespaces_used(self, iris: Iterable[str]) -> 'PrefixMap':
        """Restrict the map to prefixes whose namespace prefixes one of ``iris``."""
        iris = list(iris)
        return PrefixMap({
            p: ns for p, ns in self._map.items()
            if ns and any(i.startswith(ns) for i in iris)
        })

    def items(self) -> List[Tuple[str, str]]:
        return list(self._map.items())

    def get(self, prefix: str) -> Optional[str]:
        return self._map.get(prefix)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._map)

    def to_json(self) -> List[Dict[str, str]]:
        return [{"prefix": p, "uri": ns} for p, ns in self._map.items()]

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._map

    def __iter__(self) -> Iterator[str]:
        return iter(self._map)

    def __len__(self) -> int:
        return len(self._map)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrefixMap):
            return NotImplemented
        return self._map == other._map

    def __repr__(self) -> str:
        return f"PrefixMap({self._map!r})"
