"""
Query shape maps and result shape maps.

A query shape map associates node selectors with shape labels; it is bound
to two prefix maps, one for nodes (from the data) and one for shapes (from
the schema). Two syntaxes are supported:

Compact:
    <http://example.org/a>@<http://example.org/S>,
    {FOCUS rdf:type ex:Person}@ex:PersonShape,
    ex:b@START

JSON:
    [{"node": "<http://example.org/a>", "shape": "<http://example.org/S>"}]

A result shape map records, per (node, shape), whether the node conforms.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from rdflib import BNode, Graph, URIRef
from rdflib.term import Identifier

from ..rdf.prefix_map import PrefixMap
from .node_selector import Selector, parse_node_selector, render_term, split_top_level

logger = logging.getLogger(__name__)

START = "START"
COMPACT = "Compact"
JSON = "JSON"

CONFORMANT = "conformant"
NONCONFORMANT = "nonconformant"

ShapeRef = Union[URIRef, BNode, str]


def parse_shape_label(token: str, prefix_map: PrefixMap, base: Optional[str] = None) -> ShapeRef:
    """Parse ``START``, ``_:label`` or an IRI into a shape reference."""
    token = token.strip()
    if token.upper() == START:
        return START
    if token.startswith("_:"):
        return BNode(token[2:])
    return prefix_map.resolve(token, base)


def render_shape(shape: ShapeRef, prefix_map: Optional[PrefixMap] = None) -> str:
    if shape == START and not isinstance(shape, URIRef):
        return START
    return render_term(shape, prefix_map)


@dataclass(frozen=True)
class Association:
    """One ``selector@shape`` entry of a query shape map."""
    selector: Selector
    shape: ShapeRef


class ShapeMap:
    """
    Query shape map bound to node and shape prefix maps.

    Example:
        >>> sm = ShapeMap.parse("<a>@<S>", COMPACT, PrefixMap(), PrefixMap(),
        ...                     base="http://localhost/base/")
        >>> sm.to_compact()
        '<http://localhost/base/a>@<http://localhost/base/S>'
    """

    def __init__(
        self,
        associations: Sequence[Association] = (),
        node_prefix_map: Optional[PrefixMap] = None,
        shape_prefix_map: Optional[PrefixMap] = None,
    ):
        self.associations: List[Association] = list(associations)
        self.node_prefix_map = node_prefix_map or PrefixMap()
        self.shape_prefix_map = shape_prefix_map or PrefixMap()

    @classmethod
    def empty(cls) -> 'ShapeMap':
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.associations

    def __iter__(self) -> Iterator[Association]:
        return iter(self.associations)

    def __len__(self) -> int:
        return len(self.associations)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @classmethod
    def parse(
        cls,
        text: str,
        format_name: str,
        node_prefix_map: PrefixMap,
        shape_prefix_map: PrefixMap,
        base: Optional[str] = None,
    ) -> 'ShapeMap':
        """
        Parse a shape map in Compact or JSON syntax.

        Raises:
            ValueError: If the text is not a valid shape map in that syntax.
        """
        if format_name.lower() == JSON.lower():
            return cls.from_json(text, node_prefix_map, shape_prefix_map, base)
        if format_name.lower() == COMPACT.lower():
            return cls.from_compact(text, node_prefix_map, shape_prefix_map, base)
        raise ValueError(f"Unsupported shape map format '{format_name}'")

    @classmethod
    def from_compact(
        cls,
        text: str,
        node_prefix_map: PrefixMap,
        shape_prefix_map: PrefixMap,
        base: Optional[str] = None,
    ) -> 'ShapeMap':
        associations = []
        for entry in split_top_level(text or "", ",\n"):
            entry = entry.strip()
            if not entry or entry.startswith("#"):
                continue
            at = cls._last_top_level_at(entry)
            if at < 0:
                raise ValueError(f"Missing '@shape' in shape map entry '{entry}'")
            selector_text, shape_text = entry[:at], entry[at + 1:]
            selector = parse_node_selector(selector_text, node_prefix_map, base)
            shape = parse_shape_label(shape_text, shape_prefix_map, base)
            associations.append(Association(selector, shape))
        return cls(associations, node_prefix_map, shape_prefix_map)

    @staticmethod
    def _last_top_level_at(entry: str) -> int:
        pieces = split_top_level(entry, "@")
        if len(pieces) < 2:
            return -1
        return len(entry) - len(pieces[-1]) - 1

    @classmethod
    def from_json(
        cls,
        text: str,
        node_prefix_map: PrefixMap,
        shape_prefix_map: PrefixMap,
        base: Optional[str] = None,
    ) -> 'ShapeMap':
        if not text or not text.strip():
            return cls([], node_prefix_map, shape_prefix_map)
        try:
            items = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON shape map: {e.msg} at line {e.lineno}")
        if not isinstance(items, list):
            raise ValueError("JSON shape map must be an array of {node, shape} objects")
        associations = []
        for index, item in enumerate(items):
            if not isinstance(item, dict) or "node" not in item or "shape" not in item:
                raise ValueError(f"JSON shape map entry {index} needs 'node' and 'shape'")
            selector = parse_node_selector(str(item["node"]), node_prefix_map, base)
            shape = parse_shape_label(str(item["shape"]), shape_prefix_map, base)
            associations.append(Association(selector, shape))
        return cls(associations, node_prefix_map, shape_prefix_map)

    # ------------------------------------------------------------------
    # Fixing and serialization
    # ------------------------------------------------------------------

    def fix(self, graph: Graph) -> List[Tuple[Identifier, ShapeRef]]:
        """Evaluate every selector against ``graph`` into (node, shape) pairs."""
        pairs: List[Tuple[Identifier, ShapeRef]] = []
        for association in self.associations:
            for node in association.selector.select(graph):
                pair = (node, association.shape)
                if pair not in pairs:
                    pairs.append(pair)
        logger.debug(f"Fixed shape map with {len(pairs)} node/shape pairs")
        return pairs

    def to_compact(self) -> str:
        return ",\n".join(
            f"{a.selector.render(self.node_prefix_map)}@{render_shape(a.shape, self.shape_prefix_map)}"
            for a in self.associations
        )

    def to_json(self) -> List[Dict[str, str]]:
        return [
            {
                "node": a.selector.render(self.node_prefix_map),
                "shape": render_shape(a.shape, self.shape_prefix_map),
            }
            for a in self.associations
        ]

    def serialize(self, format_name: str = COMPACT) -> str:
        if format_name.lower() == JSON.lower():
            return json.dumps(self.to_json(), indent=2)
        return self.to_compact()

    def __repr__(self) -> str:
        return f"ShapeMap({self.to_compact()!r})"


@dataclass(frozen=True)
class ShapeAssociation:
    """Validation outcome of one node against one shape."""
    node: Identifier
    shape: ShapeRef
    status: str
    reason: Optional[str] = None

    @property
    def conformant(self) -> bool:
        return self.status == CONFORMANT


class ResultShapeMap:
    """Ordered result associations, rendered with node and shape prefix maps."""

    def __init__(
        self,
        associations: Sequence[ShapeAssociation] = (),
        node_prefix_map: Optional[PrefixMap] = None,
        shape_prefix_map: Optional[PrefixMap] = None,
    ):
        self.associations: List[ShapeAssociation] = list(associations)
        self.node_prefix_map = node_prefix_map or PrefixMap()
        self.shape_prefix_map = shape_prefix_map or PrefixMap()

    def add(self, node: Identifier, shape: ShapeRef, conformant: bool,
            reason: Optional[str] = None) -> None:
        status = CONFORMANT if conformant else NONCONFORMANT
        self.associations.append(ShapeAssociation(node, shape, status, reason))

    @property
    def is_empty(self) -> bool:
        return not self.associations

    @property
    def all_conformant(self) -> bool:
        return all(a.conformant for a in self.associations)

    def __iter__(self) -> Iterator[ShapeAssociation]:
        return iter(self.associations)

    def __len__(self) -> int:
        return len(self.associations)

    def to_json(self) -> List[Dict[str, Any]]:
        entries = []
        for a in self.associations:
            entry: Dict[str, Any] = {
                "node": render_term(a.node, self.node_prefix_map),
                "shape": render_shape(a.shape, self.shape_prefix_map),
                "status": a.status,
            }
            if a.reason:
                entry["reason"] = a.reason
            entries.append(entry)
        return entries

    def to_compact(self) -> str:
        return ",\n".join(
            f"{render_term(a.node, self.node_prefix_map)}@"
            f"{'' if a.conformant else '!'}{render_shape(a.shape, self.shape_prefix_map)}"
            for a in self.associations
        )

    def serialize(self, format_name: str = COMPACT) -> str:
        if format_name.lower() == JSON.lower():
            return json.dumps(self.to_json(), indent=2)
        return self.to_compact()
