"""
SHACL -> ShEx structural translation.

Node shapes become ShEx shapes and their property shapes become triple
constraints:

    sh:path p / [sh:inversePath p]   ->  p / ^p
    sh:datatype, sh:nodeKind, sh:in  ->  node constraints
    sh:node S                        ->  @S
    sh:class C                       ->  { rdf:type [C] }
    sh:minCount / sh:maxCount        ->  cardinality
    sh:closed true                   ->  CLOSED
    sh:and / sh:or / sh:not          ->  AND / OR / NOT of shape references

SHACL target declarations have no ShEx counterpart; they are returned as a
query shape map instead, so the translated schema can be validated against
the same focus nodes.
"""

import logging
from typing import List, Optional, Tuple

from rdflib import BNode, Literal
from rdflib.namespace import RDF, SH
from rdflib.term import Identifier

from ..errors import RDFShapeError
from ..rdf.prefix_map import PrefixMap
from ..schemas.base import UNBOUNDED, PropertySummary
from ..schemas.shacl_schema import ShaclSchema
from ..schemas.shex_schema import SHEXC, ShExSchema
from ..shapemaps.node_selector import RDFNodeSelector, TriplePatternSelector
from ..shapemaps.shape_map import Association, ShapeMap

logger = logging.getLogger(__name__)

_NODE_KINDS = {
    SH.IRI: "IRI",
    SH.BlankNode: "BNODE",
    SH.Literal: "LITERAL",
    SH.BlankNodeOrIRI: "NONLITERAL",
}


class ShaclToShExError(RDFShapeError):
    """A SHACL construct has no ShEx translation."""
    pass


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class Shacl2ShEx:
    """
    Translate a ShaclSchema into ShExC text and a derived shape map.

    Example:
        >>> text, shape_map = Shacl2ShEx(shacl_schema).translate()
    """

    def __init__(self, schema: ShaclSchema):
        self.schema = schema
        self.graph = schema.graph
        self.prefix_map = schema.prefix_map

    def _iri(self, term: Identifier) -> str:
        if isinstance(term, BNode):
            return f"_:{term}"
        return self.prefix_map.qualify(str(term))

    def _literal(self, literal: Literal) -> str:
        text = f'"{_escape(str(literal))}"'
        if literal.language:
            return f"{text}@{literal.language}"
        if literal.datatype is not None:
            return f"{text}^^{self._iri(literal.datatype)}"
        return text

    def _value(self, term: Identifier) -> str:
        return self._literal(term) if isinstance(term, Literal) else self._iri(term)

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def _node_constraint(self, subject: Identifier) -> Optional[str]:
        """Datatype, node kind, value set and pattern facets as a ShEx node constraint."""
        g = self.graph
        values = g.value(subject, SH["in"])
        if values is not None:
            items = self.schema.list_items(values)
            return f"[{' '.join(self._value(v) for v in items)}]"
        has_value = g.value(subject, SH.hasValue)
        if has_value is not None:
            return f"[{self._value(has_value)}]"

        parts = []
        datatype = g.value(subject, SH.datatype)
        node_kind = g.value(subject, SH.nodeKind)
        if datatype is not None:
            parts.append(self._iri(datatype))
        elif node_kind is not None:
            if node_kind not in _NODE_KINDS:
                raise ShaclToShExError(f"Unsupported sh:nodeKind {self._iri(node_kind)}")
            parts.append(_NODE_KINDS[node_kind])
        for facet, keyword in ((SH.minLength, "MINLENGTH"), (SH.maxLength, "MAXLENGTH")):
            value = g.value(subject, facet)
            if value is not None:
                parts.append(f"{keyword} {value}")
        pattern = g.value(subject, SH.pattern)
        if pattern is not None:
            escaped = str(pattern).replace("/", "\\/")
            flags = g.value(subject, SH.flags)
            parts.append(f"/{escaped}/{flags or ''}")
        for facet, keyword in ((SH.minInclusive, "MININCLUSIVE"), (SH.maxInclusive, "MAXINCLUSIVE"),
                               (SH.minExclusive, "MINEXCLUSIVE"), (SH.maxExclusive, "MAXEXCLUSIVE")):
            value = g.value(subject, facet)
            if value is not None:
                parts.append(f"{keyword} {value}")
        return " ".join(parts) if parts else None

    def _references(self, subject: Identifier) -> List[str]:
        """sh:node / sh:class / sh:and / sh:or / sh:not as shape expressions."""
        g = self.graph
        refs = [f"@{self._iri(node)}" for node in sorted(g.objects(subject, SH.node), key=str)]
        for cls in sorted(g.objects(subject, SH["class"]), key=str):
            refs.append(f"{{ {self._iri(RDF.type)} [{self._iri(cls)}] }}")
        for head in g.objects(subject, SH["and"]):
            refs.extend(f"@{self._iri(s)}" for s in self.schema.list_items(head))
        for head in g.objects(subject, SH["or"]):
            alternatives = [f"@{self._iri(s)}" for s in self.schema.list_items(head)]
            refs.append(f"({' OR '.join(alternatives)})")
        for negated in g.objects(subject, SH["not"]):
            refs.append(f"NOT @{self._iri(negated)}")
        return refs

    def _triple_constraint(self, prop: Identifier) -> str:
        predicate, inverse = self.schema.path_of(prop)
        if predicate is None:
            path = self.graph.value(prop, SH.path)
            raise ShaclToShExError(
                f"Property shape {self._iri(prop)} has a complex path ({path}) with no ShEx translation"
            )
        exprs = []
        constraint = self._node_constraint(prop)
        if constraint is not None:
            exprs.append(constraint)
        exprs.extend(self._references(prop))
        value = " AND ".join(exprs) if exprs else "."

        min_count = self.graph.value(prop, SH.minCount)
        max_count = self.graph.value(prop, SH.maxCount)
        cardinality = PropertySummary(
            str(predicate),
            min=int(min_count) if min_count is not None else 0,
            max=int(max_count) if max_count is not None else UNBOUNDED,
        ).cardinality
        prefix = "^" if inverse else ""
        return f"  {prefix}{self._iri(predicate)} {value} {cardinality}".rstrip()

    def _shape(self, shape: Identifier) -> str:
        constraints = [self._triple_constraint(p) for p in self.schema.property_shapes(shape)]
        closed = self.graph.value(shape, SH.closed)
        is_closed = closed is not None and bool(closed.toPython())
        if is_closed:
            for ignored_head in self.graph.objects(shape, SH.ignoredProperties):
                for ignored in self.schema.list_items(ignored_head):
                    constraints.append(f"  {self._iri(ignored)} . *")

        prefix_exprs = []
        node_constraint = self._node_constraint(shape)
        if node_constraint is not None:
            prefix_exprs.append(node_constraint)
        prefix_exprs.extend(self._references(shape))

        body = " ;\n".join(constraints)
        shape_expr = ("CLOSED " if is_closed else "") + (f"{{\n{body}\n}}" if body else "{ }")
        expr = " AND ".join(prefix_exprs + [shape_expr])
        return f"{self._iri(shape)} {expr}"

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def shape_map(self, node_prefix_map: Optional[PrefixMap] = None) -> ShapeMap:
        """Query shape map equivalent to the schema's target declarations."""
        associations = []
        for shape in self.schema.node_shapes():
            for predicate, values in self.schema.targets(shape).items():
                for value in values:
                    if predicate == SH.targetNode:
                        selector = RDFNodeSelector(value)
                    elif predicate == SH.targetClass:
                        selector = TriplePatternSelector(RDF.type, True, value)
                    elif predicate == SH.targetSubjectsOf:
                        selector = TriplePatternSelector(value, True, None)
                    else:
                        selector = TriplePatternSelector(value, False, None)
                    associations.append(Association(selector, shape))
        pm = node_prefix_map or self.prefix_map
        return ShapeMap(associations, pm, self.prefix_map)

    def translate(self) -> Tuple[str, ShapeMap]:
        """
        Build the ShExC text and the derived shape map.

        Raises:
            ShaclToShExError: On constructs without a translation.
        """
        shapes = self.schema.node_shapes()
        if self.schema.top_level_property_shapes():
            raise ShaclToShExError(
                "Top-level property shapes have no ShEx translation: "
                + ", ".join(self._iri(s) for s in self.schema.top_level_property_shapes())
            )
        lines = [f"PREFIX {prefix}: <{namespace}>" for prefix, namespace in self.prefix_map.items()]
        if self.schema.base:
            lines.insert(0, f"BASE <{self.schema.base}>")
        lines.append("")
        lines.extend(f"{self._shape(shape)}\n" for shape in shapes)
        text = "\n".join(lines)
        logger.debug(f"Translated {len(shapes)} SHACL shapes to ShEx")
        return text, self.shape_map()


def shacl_to_shex(schema: ShaclSchema) -> Tuple[ShExSchema, ShapeMap]:
    """
    Translate and parse back, so the result is checked by the ShEx parser.

    Raises:
        ShaclToShExError: Untranslatable construct.
        SchemaParseError: The emitted ShExC does not parse.
    """
    text, shape_map = Shacl2ShEx(schema).translate()
    return ShExSchema.parse(text, SHEXC, schema.base), shape_map
