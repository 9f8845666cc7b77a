"""
Schema Inference

Infers a shape from the neighbourhood of the nodes picked by a node
selector. Every outgoing predicate of those nodes becomes a constrained
property whose value constraint and cardinality summarize what the data
holds:

- literals with a single datatype -> that datatype
- ``rdf:type`` arcs -> the value set of types seen (with
  ``infer_type_plain_node``)
- IRIs / blank nodes / mixtures -> IRI, BNODE, NONLITERAL or LITERAL
- a predicate used by every node at most once -> exactly one, otherwise
  ``?``, ``+`` or ``*``

Followed predicates (see InferOptions) get a nested shape inferred from
their objects. The inferred text is parsed back through the regular schema
engines, so the returned Schema is a normal ShExSchema or ShaclSchema.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.collection import Collection
from rdflib.namespace import RDF, RDFS, SH, XSD
from rdflib.term import Identifier

from ..config import ServiceConfig
from ..errors import InferenceError, RDFShapeError
from ..formats.registry import DEFAULT_REGISTRY, SHEX, FormatRegistry
from ..rdf.prefix_map import PrefixMap, resolve_iri
from ..rdf.rdf_parser import new_graph
from ..schemas.base import UNBOUNDED, PropertySummary, Schema
from ..schemas.shacl_schema import ShaclSchema
from ..schemas.shex_schema import SHEXC, ShExSchema
from ..shapemaps.node_selector import parse_node_selector
from ..shapemaps.shape_map import ResultShapeMap
from .infer_options import SORT_BY_COUNT, InferOptions
from .uml import schema_to_svg_and_uml

logger = logging.getLogger(__name__)

DEFAULT_SHAPE_LABEL = "Shape"

KIND_DATATYPE = "datatype"
KIND_VALUES = "values"
KIND_NODE_KIND = "nodeKind"
KIND_SHAPE = "shape"
KIND_ANY = "any"

_LOCAL_NAME_RE = re.compile(r'[^A-Za-z0-9_\-]')


@dataclass
class InferredProperty:
    predicate: URIRef
    kind: str
    value: Any = None
    min: int = 1
    max: int = 1
    count: int = 0
    label: Optional[Literal] = None


@dataclass
class InferredShape:
    label: URIRef
    properties: List[InferredProperty] = field(default_factory=list)


def _local_name(iri: str) -> str:
    local = re.split(r'[#/]', iri.rstrip('/#'))[-1] or "value"
    return _LOCAL_NAME_RE.sub("_", local)


def _literal_datatype(literal: Literal) -> URIRef:
    if literal.language:
        return RDF.langString
    return literal.datatype or XSD.string


class SchemaInferrer:
    """
    Infer schemas from data.

    Example:
        >>> inferrer = SchemaInferrer()
        >>> schema, shape_map = inferrer.infer(graph, "{FOCUS a ex:Person}", "ShEx")
        >>> schema.shapes
        ['http://localhost/base/Shape']
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        registry: FormatRegistry = DEFAULT_REGISTRY,
    ):
        self._config = config or ServiceConfig()
        self._registry = registry

    def infer(
        self,
        graph: Graph,
        node_selector: str,
        engine: Optional[str] = None,
        label_name: Optional[str] = None,
        options: Optional[InferOptions] = None,
        relative_base: Optional[str] = None,
    ) -> Tuple[Schema, ResultShapeMap]:
        """
        Infer a schema for the nodes selected by ``node_selector``.

        Args:
            graph: Data graph.
            node_selector: Node selector in shape map syntax, parsed against
                the graph's prefix map.
            engine: Target engine (ShEx or SHACL).
            label_name: Label of the inferred shape; relative labels resolve
                against the base. Defaults to ``Shape``.
            options: Inference options.
            relative_base: Base IRI; the configured base when omitted.

        Returns:
            (schema, result shape map associating every node with the shape)

        Raises:
            InferenceError: Bad selector, no matching node, unknown engine,
                or an inferred schema the engine rejects.
        """
        options = options or InferOptions()
        base = relative_base or self._config.relative_base
        try:
            engine = self._registry.schema_engine(engine)
        except RDFShapeError as e:
            raise InferenceError(e.message)

        data_pm = PrefixMap.from_graph(graph)
        try:
            selector = parse_node_selector(node_selector, data_pm, base)
        except ValueError as e:
            raise InferenceError(f"Error parsing node selector '{node_selector}': {e}")
        try:
            nodes = selector.select(graph)
        except Exception as e:
            raise InferenceError(f"Error selecting nodes with '{node_selector}': {e}")
        # a plain node selector returns its node whether or not the graph mentions it
        nodes = [n for n in nodes if (n, None, None) in graph or (None, None, n) in graph]
        if not nodes:
            raise InferenceError(f"No nodes match the node selector '{node_selector}'")
        logger.debug(f"Inferring {engine} schema from {len(nodes)} nodes")

        try:
            label = resolve_iri(label_name or DEFAULT_SHAPE_LABEL, base)
        except ValueError as e:
            raise InferenceError(f"Invalid shape label '{label_name}': {e}")

        shapes: List[InferredShape] = []
        self._infer_shape(graph, label, nodes, options, 0, shapes)
        schema_pm = self._schema_prefix_map(data_pm, options, shapes)

        try:
            if engine == SHEX:
                text = self.to_shexc(shapes, schema_pm)
                schema: Schema = ShExSchema.parse(text, SHEXC, base)
            else:
                schema = self._to_shacl(shapes, schema_pm, nodes, base)
        except RDFShapeError as e:
            raise InferenceError(f"Inferred schema is not valid {engine}: {e.message}")

        result_map = ResultShapeMap([], data_pm, schema.prefix_map)
        for node in nodes:
            result_map.add(node, label, True)
        return schema, result_map

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def _infer_shape(
        self,
        graph: Graph,
        label: URIRef,
        nodes: Sequence[Identifier],
        options: InferOptions,
        depth: int,
        shapes: List[InferredShape],
    ) -> None:
        shape = InferredShape(label)
        shapes.append(shape)

        arcs: Dict[URIRef, List[List[Identifier]]] = OrderedDict()
        for index, node in enumerate(nodes):
            for predicate, obj in graph.predicate_objects(node):
                per_node = arcs.setdefault(predicate, [[] for _ in nodes])
                per_node[index].append(obj)

        for predicate, per_node in arcs.items():
            counts = [len(values) for values in per_node]
            objects = [o for values in per_node for o in values]
            users = sum(1 for c in counts if c)
            prop = InferredProperty(
                predicate=predicate,
                kind=KIND_ANY,
                min=1 if all(counts) else 0,
                max=1 if max(counts) <= 1 else UNBOUNDED,
                count=users,
            )
            self._infer_value(graph, prop, objects, options, depth, users, shapes, label)
            if options.label_lang:
                prop.label = next(
                    (lbl for lbl in graph.objects(predicate, RDFS.label)
                     if isinstance(lbl, Literal) and lbl.language == options.label_lang),
                    None,
                )
            shape.properties.append(prop)

        if options.sort_order == SORT_BY_COUNT:
            shape.properties.sort(key=lambda p: (-p.count, str(p.predicate)))
        else:
            shape.properties.sort(key=lambda p: str(p.predicate))

    def _infer_value(self, graph, prop, objects, options, depth, users, shapes, label) -> None:
        literals = [o for o in objects if isinstance(o, Literal)]
        iris = [o for o in objects if isinstance(o, URIRef)]
        bnodes = [o for o in objects if isinstance(o, BNode)]

        if literals and len(literals) == len(objects):
            datatypes = sorted({_literal_datatype(lit) for lit in literals}, key=str)
            if len(datatypes) == 1:
                prop.kind, prop.value = KIND_DATATYPE, datatypes[0]
            else:
                prop.kind, prop.value = KIND_NODE_KIND, "LITERAL"
            return

        if literals:
            return

        if prop.predicate == RDF.type and options.infer_type_plain_node and iris and not bnodes:
            prop.kind, prop.value = KIND_VALUES, sorted(set(iris), key=str)
            return

        followed = (
            prop.predicate in options.follow_on_predicates
            and depth < options.max_follow_on
            and (options.follow_on_threshold is None or users >= options.follow_on_threshold)
        )
        if followed:
            child_label = URIRef(f"{label}_{_local_name(str(prop.predicate))}")
            if all(s.label != child_label for s in shapes):
                unique = list(OrderedDict.fromkeys(objects))
                self._infer_shape(graph, child_label, unique, options, depth + 1, shapes)
            prop.kind, prop.value = KIND_SHAPE, child_label
            return

        if iris and not bnodes:
            prop.kind, prop.value = KIND_NODE_KIND, "IRI"
        elif bnodes and not iris:
            prop.kind, prop.value = KIND_NODE_KIND, "BNODE"
        else:
            prop.kind, prop.value = KIND_NODE_KIND, "NONLITERAL"

    @staticmethod
    def _schema_prefix_map(data_pm: PrefixMap, options: InferOptions,
                           shapes: List[InferredShape]) -> PrefixMap:
        iris = []
        for shape in shapes:
            iris.append(str(shape.label))
            for prop in shape.properties:
                iris.append(str(prop.predicate))
                if prop.kind in (KIND_DATATYPE, KIND_SHAPE):
                    iris.append(str(prop.value))
                elif prop.kind == KIND_VALUES:
                    iris.extend(str(v) for v in prop.value)
        candidates = data_pm.merge(options.possible_prefix_map)
        return candidates.namespaces_used(iris)

    # ------------------------------------------------------------------
    # Emitters
    # ------------------------------------------------------------------

    @staticmethod
    def to_shexc(shapes: List[InferredShape], prefix_map: PrefixMap) -> str:
        """Write inferred shapes as ShExC."""
        lines = [f"PREFIX {prefix}: <{namespace}>" for prefix, namespace in prefix_map.items()]
        if lines:
            lines.append("")
        for shape in shapes:
            constraints = []
            for prop in shape.properties:
                if prop.kind == KIND_DATATYPE:
                    value = prefix_map.qualify(str(prop.value))
                elif prop.kind == KIND_VALUES:
                    value = f"[{' '.join(prefix_map.qualify(str(v)) for v in prop.value)}]"
                elif prop.kind == KIND_SHAPE:
                    value = f"@{prefix_map.qualify(str(prop.value))}"
                elif prop.kind == KIND_NODE_KIND:
                    value = prop.value
                else:
                    value = "."
                cardinality = PropertySummary(str(prop.predicate), min=prop.min, max=prop.max).cardinality
                text = f"  {prefix_map.qualify(str(prop.predicate))} {value} {cardinality}".rstrip()
                if prop.label is not None:
                    escaped = str(prop.label).replace("\\", "\\\\").replace('"', '\\"')
                    text += f' // rdfs:label "{escaped}"@{prop.label.language}'
                constraints.append(text)
            body = " ;\n".join(constraints)
            lines.append(f"{prefix_map.qualify(str(shape.label))} {{\n{body}\n}}" if body
                         else f"{prefix_map.qualify(str(shape.label))} {{ }}")
            lines.append("")
        text = "\n".join(lines)
        if "rdfs:label" in text and "rdfs" not in prefix_map:
            text = f"PREFIX rdfs: <{RDFS}>\n{text}"
        return text

    def _to_shacl(self, shapes: List[InferredShape], prefix_map: PrefixMap,
                  nodes: Sequence[Identifier], base: Optional[str]) -> ShaclSchema:
        graph = new_graph()
        for prefix, namespace in prefix_map.items():
            graph.bind(prefix, namespace, override=True)
        graph.bind("sh", SH, override=True)
        for index, shape in enumerate(shapes):
            graph.add((shape.label, RDF.type, SH.NodeShape))
            if index == 0:
                for node in nodes:
                    graph.add((shape.label, SH.targetNode, node))
            for prop in shape.properties:
                ps = BNode()
                graph.add((shape.label, SH.property, ps))
                graph.add((ps, SH.path, prop.predicate))
                if prop.kind == KIND_DATATYPE:
                    graph.add((ps, SH.datatype, prop.value))
                elif prop.kind == KIND_VALUES:
                    head = BNode()
                    Collection(graph, head, list(prop.value))
                    graph.add((ps, SH["in"], head))
                elif prop.kind == KIND_SHAPE:
                    graph.add((ps, SH.node, prop.value))
                elif prop.kind == KIND_NODE_KIND:
                    kind = {"IRI": SH.IRI, "BNODE": SH.BlankNode,
                            "LITERAL": SH.Literal, "NONLITERAL": SH.BlankNodeOrIRI}[prop.value]
                    graph.add((ps, SH.nodeKind, kind))
                if prop.min >= 1:
                    graph.add((ps, SH.minCount, Literal(prop.min)))
                if prop.max != UNBOUNDED:
                    graph.add((ps, SH.maxCount, Literal(prop.max)))
                if prop.label is not None:
                    graph.add((ps, SH.name, prop.label))
        text = graph.serialize(format="turtle")
        return ShaclSchema(graph, PrefixMap.from_graph(graph), base, text, "Turtle",
                           registry=self._registry)


@dataclass
class InferenceResult:
    """Inferred schema, the node/shape associations and optional visuals."""
    schema: Schema
    shape_map: ResultShapeMap
    node_selector: str
    schema_format: str
    uml: Optional[str] = None
    svg: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "inferredShape": self.schema.serialize(self.schema_format),
            "format": self.schema_format,
            "engine": self.schema.engine,
            "nodeSelector": self.node_selector,
            "resultShapeMap": self.shape_map.to_json(),
        }
        if self.uml is not None:
            result["uml"] = self.uml
        if self.svg is not None:
            result["svg"] = self.svg
        return result


def inferred_schema_format(schema: Schema, schema_format: Optional[str] = None,
                           registry: FormatRegistry = DEFAULT_REGISTRY) -> str:
    """Canonical output format for an inferred schema (the engine default when omitted)."""
    try:
        return registry.schema_format(schema.engine, schema_format)
    except RDFShapeError as e:
        raise InferenceError(e.message)


def infer(
    graph: Graph,
    node_selector: str,
    engine: Optional[str] = None,
    label_name: Optional[str] = None,
    options: Optional[InferOptions] = None,
    relative_base: Optional[str] = None,
    config: Optional[ServiceConfig] = None,
) -> Tuple[Schema, ResultShapeMap]:
    """Module-level shortcut for ``SchemaInferrer(config).infer(...)``."""
    return SchemaInferrer(config).infer(graph, node_selector, engine, label_name, options, relative_base)


def infer_with_uml(
    graph: Graph,
    node_selector: str,
    engine: Optional[str] = None,
    label_name: Optional[str] = None,
    options: Optional[InferOptions] = None,
    relative_base: Optional[str] = None,
    schema_format: Optional[str] = None,
    config: Optional[ServiceConfig] = None,
) -> InferenceResult:
    """
    Infer a schema and render it as PlantUML and SVG.

    Rendering failures keep the schema and shape map; ``uml`` and ``svg``
    then carry error strings.
    """
    schema, shape_map = infer(graph, node_selector, engine, label_name, options, relative_base, config)
    svg, uml = schema_to_svg_and_uml(schema)
    return InferenceResult(
        schema, shape_map, node_selector, inferred_schema_format(schema, schema_format), uml, svg
    )


def data_extract(
    graph: Graph,
    node_selector: str,
    engine: Optional[str] = None,
    label_name: Optional[str] = None,
    relative_base: Optional[str] = None,
    schema_format: Optional[str] = None,
    config: Optional[ServiceConfig] = None,
) -> InferenceResult:
    """Infer with the data extraction preset (English labels, Wikidata prefixes)."""
    schema, shape_map = infer(
        graph, node_selector, engine, label_name, InferOptions.data_extract(), relative_base, config
    )
    return InferenceResult(
        schema, shape_map, node_selector, inferred_schema_format(schema, schema_format)
    )
