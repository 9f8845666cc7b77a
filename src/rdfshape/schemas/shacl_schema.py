"""
SHACL schemas: shapes graphs validated with pySHACL.

Target declarations (sh:targetNode, sh:targetClass, sh:targetSubjectsOf,
sh:targetObjectsOf and implicit class targets) are evaluated here too, so
TargetDecls results can list conforming focus nodes as well as violations.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from pyshacl import validate as pyshacl_validate
from rdflib import BNode, Graph, Literal, URIRef
from rdflib.collection import Collection
from rdflib.namespace import RDF, RDFS, SH
from rdflib.term import Identifier

from ..errors import ResolutionError, SchemaParseError
from ..formats.registry import DEFAULT_REGISTRY, SHACL, FormatRegistry
from ..rdf.prefix_map import PrefixMap
from ..rdf.rdf_parser import new_graph
from ..shapemaps.shape_map import START, ResultShapeMap
from ..shapemaps.trigger import NodeShapeTrigger, ShapeMapTrigger, TargetDeclarationsTrigger
from ..validation.result import Result
from .base import UNBOUNDED, PropertySummary, Schema, ShapeSummary

logger = logging.getLogger(__name__)

TARGET_PREDICATES = (SH.targetNode, SH.targetClass, SH.targetSubjectsOf, SH.targetObjectsOf)


def label_of(node: Identifier) -> str:
    return f"_:{node}" if isinstance(node, BNode) else str(node)


class ShaclSchema(Schema):
    """
    A SHACL shapes graph.

    Attributes:
        graph: The shapes graph.
        embedded: True when the shapes were read from the data graph itself.
    """

    engine = SHACL

    def __init__(
        self,
        graph: Graph,
        prefix_map: Optional[PrefixMap] = None,
        base: Optional[str] = None,
        source_text: Optional[str] = None,
        source_format: Optional[str] = None,
        embedded: bool = False,
        registry: FormatRegistry = DEFAULT_REGISTRY,
    ):
        super().__init__(prefix_map or PrefixMap.from_graph(graph), base, source_text, source_format)
        self.graph = graph
        self.embedded = embedded
        self._registry = registry

    @classmethod
    def parse(
        cls,
        text: str,
        format_name: str,
        base: Optional[str] = None,
        registry: FormatRegistry = DEFAULT_REGISTRY,
    ) -> 'ShaclSchema':
        """
        Parse a shapes graph from RDF text.

        Raises:
            SchemaParseError: If the text is not valid RDF in that format.
        """
        data_format = registry.data_format(format_name)
        graph = new_graph()
        if text and text.strip():
            try:
                graph.parse(data=text, format=data_format.rdflib_name, publicID=base)
            except Exception as e:
                raise SchemaParseError(SHACL, format_name, str(e))
        schema = cls(graph, None, base, text, format_name, registry=registry)
        logger.debug(f"Parsed SHACL schema with {len(schema.shapes)} shapes")
        return schema

    @classmethod
    def from_data_graph(cls, graph: Graph, base: Optional[str] = None) -> 'ShaclSchema':
        """Use shapes embedded in a data graph."""
        return cls(graph, None, base, embedded=True)

    # ------------------------------------------------------------------
    # Shapes graph structure
    # ------------------------------------------------------------------

    def node_shapes(self) -> List[Identifier]:
        """Shapes that are not only property shapes of another shape."""
        found: Set[Identifier] = set(self.graph.subjects(RDF.type, SH.NodeShape))
        for predicate in TARGET_PREDICATES:
            found.update(self.graph.subjects(predicate, None))
        found.update(self.graph.subjects(SH.property, None))
        property_shapes = set(self.graph.objects(None, SH.property))
        declared_property_shapes = set(self.graph.subjects(RDF.type, SH.PropertyShape))
        result = [
            s for s in found
            if s not in property_shapes and s not in declared_property_shapes
        ]
        return sorted(result, key=lambda s: (isinstance(s, BNode), str(s)))

    def property_shapes(self, shape: Identifier) -> List[Identifier]:
        return sorted(self.graph.objects(shape, SH.property), key=str)

    def top_level_property_shapes(self) -> List[Identifier]:
        """Property shapes declared on their own (with their own targets)."""
        property_shapes = set(self.graph.objects(None, SH.property))
        return sorted(
            (s for s in self.graph.subjects(RDF.type, SH.PropertyShape) if s not in property_shapes),
            key=str,
        )

    def targets(self, shape: Identifier) -> Dict[URIRef, List[Identifier]]:
        """Target declarations of a shape, by target predicate."""
        declared = {
            predicate: sorted(self.graph.objects(shape, predicate), key=str)
            for predicate in TARGET_PREDICATES
        }
        # Implicit class target: a shape that is also an rdfs:Class
        if (shape, RDF.type, RDFS.Class) in self.graph:
            declared[SH.targetClass] = sorted(set(declared[SH.targetClass]) | {shape}, key=str)
        return {p: values for p, values in declared.items() if values}

    def list_items(self, head: Identifier) -> List[Identifier]:
        return list(Collection(self.graph, head))

    def target_nodes(self, data_graph: Graph, shape: Identifier) -> List[Identifier]:
        """Focus nodes selected in ``data_graph`` by a shape's targets."""
        nodes: List[Identifier] = []
        for predicate, values in self.targets(shape).items():
            for value in values:
                if predicate == SH.targetNode:
                    candidates = [value]
                elif predicate == SH.targetClass:
                    classes = {value} | set(data_graph.transitive_subjects(RDFS.subClassOf, value))
                    candidates = [s for c in classes for s in data_graph.subjects(RDF.type, c)]
                elif predicate == SH.targetSubjectsOf:
                    candidates = list(data_graph.subjects(value, None))
                else:
                    candidates = list(data_graph.objects(None, value))
                for node in candidates:
                    if node not in nodes:
                        nodes.append(node)
        return nodes

    # ------------------------------------------------------------------
    # Schema surface
    # ------------------------------------------------------------------

    @property
    def shapes(self) -> List[str]:
        return [label_of(s) for s in self.node_shapes() + self.top_level_property_shapes()]

    def serialize(self, format_name: str) -> str:
        if format_name == self.source_format and self.source_text is not None:
            return self.source_text
        data_format = self._registry.data_format(format_name)
        if data_format.extractor:
            raise ResolutionError(f"Unsupported SHACL schema format '{format_name}'")
        try:
            return self.graph.serialize(format=data_format.rdflib_name)
        except Exception as e:
            raise ResolutionError(f"Error serializing SHACL schema as {format_name}: {e}")

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _run(self, graph: Graph, read_only: bool, **kwargs) -> Tuple[bool, Graph]:
        conforms, results_graph, _ = pyshacl_validate(
            graph,
            shacl_graph=self.graph,
            inference="none",
            abort_on_first=False,
            allow_warnings=True,
            inplace=read_only,
            **kwargs,
        )
        return conforms, results_graph

    def _owning_shape(self, source_shape: Identifier) -> Identifier:
        owner = self.graph.value(None, SH.property, source_shape)
        return owner if owner is not None else source_shape

    @staticmethod
    def _violations(results_graph: Graph) -> List[Tuple[Identifier, Identifier, str]]:
        """(focus node, source shape, message) for every violation."""
        violations = []
        for result in results_graph.subjects(RDF.type, SH.ValidationResult):
            severity = results_graph.value(result, SH.resultSeverity)
            if severity is not None and severity != SH.Violation:
                continue
            focus = results_graph.value(result, SH.focusNode)
            source = results_graph.value(result, SH.sourceShape)
            message = results_graph.value(result, SH.resultMessage)
            path = results_graph.value(result, SH.resultPath)
            text = str(message) if message is not None else "Constraint violated"
            if path is not None and isinstance(path, URIRef):
                text = f"{text} (path {path})"
            violations.append((focus, source, text))
        return violations

    def validate(self, graph: Graph, trigger, read_only: bool = False) -> Result:
        node_pm = PrefixMap.from_graph(graph)
        if isinstance(trigger, TargetDeclarationsTrigger):
            return self._validate_targets(graph, read_only, node_pm)
        if isinstance(trigger, ShapeMapTrigger):
            pairs = trigger.shape_map.fix(graph)
            node_pm = trigger.shape_map.node_prefix_map
        elif isinstance(trigger, NodeShapeTrigger):
            pairs = [(trigger.node, trigger.shape)]
            node_pm = trigger.node_prefix_map or node_pm
        else:
            raise ResolutionError(f"Unsupported trigger {type(trigger).__name__} for SHACL")

        known = set(self.node_shapes()) | set(self.top_level_property_shapes())
        result_map = ResultShapeMap([], node_pm, self.prefix_map)
        errors: List[str] = []
        for node, shape in pairs:
            if shape == START and not isinstance(shape, URIRef):
                result_map.add(node, shape, False, "SHACL schemas have no START shape")
                continue
            if shape not in known:
                result_map.add(node, shape, False, f"Shape {self.qualify(label_of(shape))} not found in schema")
                continue
            conforms, results_graph = self._run(
                graph, read_only, focus_nodes=[node], use_shapes=[shape]
            )
            messages = [text for _, _, text in self._violations(results_graph)]
            result_map.add(node, shape, conforms, None if conforms else "\n".join(messages))
            errors.extend(messages)
        return Result.from_shape_map(result_map, errors)

    def _validate_targets(self, graph: Graph, read_only: bool, node_pm: PrefixMap) -> Result:
        conforms, results_graph = self._run(graph, read_only)
        violations = self._violations(results_graph)

        failing: Dict[Tuple[Identifier, Identifier], List[str]] = {}
        for focus, source, text in violations:
            key = (focus, self._owning_shape(source))
            failing.setdefault(key, []).append(text)

        result_map = ResultShapeMap([], node_pm, self.prefix_map)
        seen = set()
        for shape in self.node_shapes() + self.top_level_property_shapes():
            for node in self.target_nodes(graph, shape):
                key = (node, shape)
                seen.add(key)
                messages = failing.get(key)
                result_map.add(node, shape, not messages, "\n".join(messages) if messages else None)
        for (node, shape), messages in failing.items():
            if (node, shape) not in seen:
                result_map.add(node, shape, False, "\n".join(messages))

        report = results_graph.serialize(format="turtle")
        return Result.from_shape_map(
            result_map, [text for _, _, text in violations], report=report
        )

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def _render_value(self, prop: Identifier) -> Tuple[str, Optional[str]]:
        g = self.graph
        datatype = g.value(prop, SH.datatype)
        if datatype is not None:
            return self.qualify(str(datatype)), None
        node = g.value(prop, SH.node)
        if node is not None:
            return f"@{self.qualify(label_of(node))}", label_of(node)
        cls = g.value(prop, SH["class"])
        if cls is not None:
            return f"a {self.qualify(str(cls))}", None
        node_kind = g.value(prop, SH.nodeKind)
        if node_kind is not None:
            return str(node_kind).split("#")[-1].upper(), None
        values = g.value(prop, SH["in"])
        if values is not None:
            rendered = [
                f'"{v}"' if isinstance(v, Literal) else self.qualify(str(v))
                for v in self.list_items(values)
            ]
            return f"[{' '.join(rendered)}]", None
        return ".", None

    def path_of(self, prop: Identifier) -> Tuple[Optional[URIRef], bool]:
        """(predicate, inverse) of a property shape with a simple or inverse path."""
        path = self.graph.value(prop, SH.path)
        if isinstance(path, URIRef):
            return path, False
        if path is not None:
            inverse = self.graph.value(path, SH.inversePath)
            if isinstance(inverse, URIRef):
                return inverse, True
        return None, False

    def property_summary(self, prop: Identifier) -> Optional[PropertySummary]:
        predicate, inverse = self.path_of(prop)
        if predicate is None:
            return None
        min_count = self.graph.value(prop, SH.minCount)
        max_count = self.graph.value(prop, SH.maxCount)
        value, ref = self._render_value(prop)
        return PropertySummary(
            predicate=str(predicate),
            value=value,
            min=int(min_count) if min_count is not None else 0,
            max=int(max_count) if max_count is not None else UNBOUNDED,
            inverse=inverse,
            shape_ref=ref,
        )

    def shape_summaries(self) -> List[ShapeSummary]:
        summaries = []
        for shape in self.node_shapes():
            properties = [
                summary for summary in (self.property_summary(p) for p in self.property_shapes(shape))
                if summary is not None
            ]
            closed = self.graph.value(shape, SH.closed)
            components = [
                f"{self.qualify(str(p))} {self.qualify(label_of(v))}"
                for p, values in self.targets(shape).items() for v in values
            ]
            summaries.append(ShapeSummary(
                label_of(shape), properties, bool(closed is not None and closed.toPython()), components
            ))
        return summaries
