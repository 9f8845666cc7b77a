"""
Options for schema inference.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from rdflib import URIRef

from ..rdf.prefix_map import PrefixMap

SORT_BY_IRI = "iri"
SORT_BY_COUNT = "count"
SORT_ORDERS = (SORT_BY_IRI, SORT_BY_COUNT)

WIKIDATA_PREFIX_MAP = PrefixMap({
    "wd": "http://www.wikidata.org/entity/",
    "wdt": "http://www.wikidata.org/prop/direct/",
    "wdtn": "http://www.wikidata.org/prop/direct-normalized/",
    "wds": "http://www.wikidata.org/entity/statement/",
    "wdv": "http://www.wikidata.org/value/",
    "wdref": "http://www.wikidata.org/reference/",
    "wikibase": "http://wikiba.se/ontology#",
    "p": "http://www.wikidata.org/prop/",
    "ps": "http://www.wikidata.org/prop/statement/",
    "psv": "http://www.wikidata.org/prop/statement/value/",
    "pq": "http://www.wikidata.org/prop/qualifier/",
    "pqv": "http://www.wikidata.org/prop/qualifier/value/",
    "pr": "http://www.wikidata.org/prop/reference/",
    "prv": "http://www.wikidata.org/prop/reference/value/",
    "prov": "http://www.w3.org/ns/prov#",
    "schema": "http://schema.org/",
    "skos": "http://www.w3.org/2004/02/skos/core#",
    "rdfs": "http://www.w3.org/2000/01/rdf-schema#",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
    "owl": "http://www.w3.org/2002/07/owl#",
})


@dataclass(frozen=True)
class InferOptions:
    """
    Tuning knobs for SchemaInferrer.

    Attributes:
        infer_type_plain_node: Constrain ``rdf:type`` arcs to the value set of
            types seen, instead of a plain IRI constraint.
        label_lang: Language tag of predicate labels to attach as
            annotations (e.g. "en"); None for no labels.
        possible_prefix_map: Candidate prefixes added to the inferred schema
            when the schema uses their namespaces.
        max_follow_on: How many levels of neighbouring nodes get their own
            inferred shape.
        follow_on_predicates: Predicates whose objects are followed. Empty
            means no predicate is followed.
        follow_on_threshold: Minimum number of focus nodes that must use a
            predicate before it is followed; None for no minimum.
        sort_order: Order of properties in each shape, "iri" (lexical) or
            "count" (most used first).
    """
    infer_type_plain_node: bool = True
    label_lang: Optional[str] = None
    possible_prefix_map: PrefixMap = field(default_factory=PrefixMap)
    max_follow_on: int = 1
    follow_on_predicates: Tuple[URIRef, ...] = ()
    follow_on_threshold: Optional[int] = None
    sort_order: str = SORT_BY_IRI

    def __post_init__(self):
        if self.max_follow_on < 0:
            raise ValueError("max_follow_on must be >= 0")
        if self.follow_on_threshold is not None and self.follow_on_threshold < 0:
            raise ValueError("follow_on_threshold must be >= 0")
        if self.sort_order not in SORT_ORDERS:
            raise ValueError(f"sort_order must be one of {SORT_ORDERS}, got {self.sort_order!r}")

    @classmethod
    def default(cls) -> 'InferOptions':
        return cls()

    @classmethod
    def data_extract(cls) -> 'InferOptions':
        """Preset used for data extraction: English labels, Wikidata prefixes."""
        return cls(
            infer_type_plain_node=True,
            label_lang="en",
            possible_prefix_map=WIKIDATA_PREFIX_MAP,
            max_follow_on=1,
            follow_on_predicates=(),
            follow_on_threshold=1,
            sort_order=SORT_BY_IRI,
        )

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]]) -> 'InferOptions':
        if not options:
            return cls()
        return cls(
            infer_type_plain_node=bool(options.get("infer_type_plain_node", True)),
            label_lang=options.get("label_lang"),
            possible_prefix_map=PrefixMap(options.get("possible_prefix_map") or {}),
            max_follow_on=int(options.get("max_follow_on", 1)),
            follow_on_predicates=tuple(URIRef(p) for p in options.get("follow_on_predicates", ())),
            follow_on_threshold=options.get("follow_on_threshold"),
            sort_order=options.get("sort_order", SORT_BY_IRI),
        )
