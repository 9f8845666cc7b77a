"""
Tests for schema inference and UML/SVG rendering.

Run with: python -m pytest tests/test_inference.py -v
"""

from unittest.mock import patch

import graphviz
import pytest
from rdflib import Graph, Literal, URIRef
from rdflib.namespace import SH

from rdfshape.errors import InferenceError, RenderError
from rdfshape.inference import (
    InferOptions,
    SchemaInferrer,
    data_extract,
    infer,
    infer_with_uml,
    schema_to_plantuml,
    schema_to_svg,
    schema_to_svg_and_uml,
)
from rdfshape.schemas.schema_resolver import parse_schema

EX = "http://example.org/"
BASE = "http://localhost/base/"


@pytest.fixture
def graph(person_data):
    g = Graph()
    g.parse(data=person_data, format="turtle")
    return g


@pytest.fixture
def inferrer():
    return SchemaInferrer()


# =============================================================================
# ShEx inference
# =============================================================================

@pytest.mark.unit
class TestInferShEx:
    """Inferring ShExC shapes from node neighbourhoods."""

    def test_default_label_resolves_against_base(self, inferrer, graph):
        schema, shape_map = inferrer.infer(graph, "{FOCUS a :Person}", "ShEx")
        assert schema.shapes == [BASE + "Shape"]
        assert [entry["status"] for entry in shape_map.to_json()] == ["conformant", "conformant"]

    def test_cardinalities(self, inferrer, graph):
        schema, _ = inferrer.infer(graph, "{FOCUS a :Person}", "ShEx")
        summary = schema.shape_summaries()[0]
        by_predicate = {p.predicate: p for p in summary.properties}

        name = by_predicate[EX + "name"]
        assert (name.min, name.max) == (1, 1)
        assert "xsd:string" in name.value

        knows = by_predicate[EX + "knows"]
        assert (knows.min, knows.max) == (0, 1)
        assert knows.value == "IRI"

    def test_repeated_values_are_unbounded(self, inferrer):
        g = Graph()
        g.parse(data="""
            @prefix : <http://example.org/> .
            :a :tag "x", "y" .
            :b :tag "z" .
        """, format="turtle")
        schema, _ = inferrer.infer(g, "{FOCUS :tag _}", "ShEx")
        assert ":tag xsd:string +" in schema.source_text

    def test_type_value_set(self, inferrer, graph):
        schema, _ = inferrer.infer(graph, "{FOCUS a :Person}", "ShEx")
        assert "[:Person]" in schema.source_text

    def test_plain_type_option(self, inferrer, graph):
        schema, _ = inferrer.infer(
            graph, "{FOCUS a :Person}", "ShEx", options=InferOptions(infer_type_plain_node=False)
        )
        assert "[:Person]" not in schema.source_text

    def test_follow_on_predicates(self, inferrer, graph):
        options = InferOptions(follow_on_predicates=(URIRef(EX + "knows"),))
        schema, _ = inferrer.infer(graph, "{FOCUS a :Person}", "ShEx", EX + "PersonShape", options)
        assert schema.shapes == [EX + "PersonShape", EX + "PersonShape_knows"]
        assert "@:PersonShape_knows ?" in schema.source_text

    def test_follow_on_disabled_at_depth_zero(self, inferrer, graph):
        options = InferOptions(follow_on_predicates=(URIRef(EX + "knows"),), max_follow_on=0)
        schema, _ = inferrer.infer(graph, "{FOCUS a :Person}", "ShEx", EX + "PersonShape", options)
        assert schema.shapes == [EX + "PersonShape"]

    def test_sort_order(self, inferrer, graph):
        by_iri, _ = inferrer.infer(graph, "{FOCUS a :Person}", "ShEx")
        by_count, _ = inferrer.infer(
            graph, "{FOCUS a :Person}", "ShEx", options=InferOptions(sort_order="count")
        )
        assert by_iri.source_text.index(":knows") < by_iri.source_text.index(":name")
        assert by_count.source_text.index(":name") < by_count.source_text.index(":knows")

    def test_module_shortcut(self, graph):
        schema, shape_map = infer(graph, ":alice", "ShEx", "AliceShape")
        assert schema.shapes == [BASE + "AliceShape"]
        assert len(shape_map) == 1


# =============================================================================
# SHACL inference
# =============================================================================

@pytest.mark.unit
class TestInferShacl:
    """Inferring SHACL shapes graphs."""

    def test_shapes_graph(self, inferrer, graph):
        schema, _ = inferrer.infer(graph, "{FOCUS a :Person}", "SHACL", EX + "PersonShape")
        shape = URIRef(EX + "PersonShape")
        assert schema.engine == "SHACL"
        assert (shape, SH.targetNode, URIRef(EX + "alice")) in schema.graph
        assert (shape, SH.targetNode, URIRef(EX + "bob")) in schema.graph

        name = next(ps for ps in schema.graph.objects(shape, SH.property)
                    if schema.graph.value(ps, SH.path) == URIRef(EX + "name"))
        assert schema.graph.value(name, SH.minCount) == Literal(1)
        assert schema.graph.value(name, SH.maxCount) == Literal(1)

        knows = next(ps for ps in schema.graph.objects(shape, SH.property)
                     if schema.graph.value(ps, SH.path) == URIRef(EX + "knows"))
        assert schema.graph.value(knows, SH.minCount) is None
        assert schema.graph.value(knows, SH.nodeKind) == SH.IRI

    def test_inferred_shapes_validate_their_nodes(self, inferrer, graph):
        from rdfshape.shapemaps import TargetDeclarationsTrigger
        schema, _ = inferrer.infer(graph, "{FOCUS a :Person}", "SHACL", EX + "PersonShape")
        result = schema.validate(graph, TargetDeclarationsTrigger())
        assert result.valid is True
        assert len(result.shape_map) == 2


# =============================================================================
# Failures and results
# =============================================================================

@pytest.mark.unit
class TestInferenceFailures:
    """Errors raised by inference."""

    def test_no_matching_nodes(self, inferrer, graph):
        with pytest.raises(InferenceError) as exc_info:
            inferrer.infer(graph, "{FOCUS a :Robot}", "ShEx")
        assert "No nodes match" in exc_info.value.message

    def test_node_absent_from_graph(self, inferrer, graph):
        with pytest.raises(InferenceError) as exc_info:
            inferrer.infer(graph, ":zzz", "ShEx")
        assert "No nodes match" in exc_info.value.message

    def test_absent_nodes_are_dropped(self, inferrer, graph):
        selector = ('SPARQL """SELECT ?n WHERE { VALUES ?n '
                    '{ <http://example.org/alice> <http://example.org/zzz> } }"""')
        schema, shape_map = inferrer.infer(graph, selector, "SHACL", EX + "S")
        assert len(shape_map) == 1
        assert (URIRef(EX + "S"), SH.targetNode, URIRef(EX + "zzz")) not in schema.graph

    def test_unknown_engine(self, inferrer, graph):
        with pytest.raises(InferenceError):
            inferrer.infer(graph, ":alice", "bogus")

    def test_bad_selector(self, inferrer, graph):
        with pytest.raises(InferenceError) as exc_info:
            inferrer.infer(graph, "{FOCUS a}", "ShEx")
        assert "Error parsing node selector" in exc_info.value.message

    def test_bad_options(self):
        with pytest.raises(ValueError):
            InferOptions(sort_order="random")
        with pytest.raises(ValueError):
            InferOptions(max_follow_on=-1)

    def test_options_from_dict(self):
        options = InferOptions.from_dict({
            "sort_order": "count", "follow_on_predicates": [EX + "knows"], "max_follow_on": 2,
        })
        assert options.sort_order == "count"
        assert options.follow_on_predicates == (URIRef(EX + "knows"),)
        assert InferOptions.from_dict(None) == InferOptions()


@pytest.mark.unit
class TestInferenceResult:
    """Result documents with and without visuals."""

    def test_to_dict(self, graph):
        with patch('rdfshape.inference.uml.graphviz.Digraph.pipe', return_value="<svg/>"):
            result = infer_with_uml(graph, "{FOCUS a :Person}", "ShEx")
        document = result.to_dict()
        assert document["format"] == "ShExC"
        assert document["engine"] == "ShEx"
        assert document["nodeSelector"] == "{FOCUS a :Person}"
        assert len(document["resultShapeMap"]) == 2
        assert document["svg"] == "<svg/>"
        assert document["uml"].startswith("@startuml")

    def test_data_extract_adds_labels(self):
        g = Graph()
        g.parse(data="""
            @prefix : <http://example.org/> .
            @prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .
            :name rdfs:label "full name"@en, "nom"@fr .
            :alice :name "Alice" .
        """, format="turtle")
        result = data_extract(g, ":alice", "ShEx")
        text = result.to_dict()["inferredShape"]
        assert '// rdfs:label "full name"@en' in text
        assert "nom" not in text
        assert "uml" not in result.to_dict()


# =============================================================================
# UML and SVG
# =============================================================================

@pytest.mark.unit
class TestUml:
    """PlantUML and Graphviz projections."""

    def test_plantuml(self, person_shex):
        schema = parse_schema(person_shex, "ShEx", "ShExC")
        uml = schema_to_plantuml(schema)
        assert uml.startswith("@startuml")
        assert uml.endswith("@enduml")
        assert 'class ":Person" as S0' in uml
        assert 'S0 --> "*" S0 : :knows' in uml

    def test_shacl_plantuml(self, person_shacl):
        schema = parse_schema(person_shacl, "SHACL", "Turtle")
        assert 'class ":PersonShape"' in schema_to_plantuml(schema)

    def test_svg_uses_graphviz(self, person_shex):
        schema = parse_schema(person_shex, "ShEx", "ShExC")
        with patch('rdfshape.inference.uml.graphviz.Digraph.pipe', return_value="<svg/>") as pipe:
            assert schema_to_svg(schema) == "<svg/>"
        pipe.assert_called_once_with(format="svg", encoding="utf-8")

    def test_missing_dot_is_render_error(self, person_shex):
        schema = parse_schema(person_shex, "ShEx", "ShExC")
        with patch('rdfshape.inference.uml.graphviz.Digraph.pipe',
                   side_effect=graphviz.ExecutableNotFound(("dot",))):
            with pytest.raises(RenderError):
                schema_to_svg(schema)

    def test_svg_failure_keeps_plantuml(self, person_shex):
        schema = parse_schema(person_shex, "ShEx", "ShExC")
        with patch('rdfshape.inference.uml.graphviz.Digraph.pipe',
                   side_effect=graphviz.ExecutableNotFound(("dot",))):
            svg, uml = schema_to_svg_and_uml(schema)
        assert svg.startswith("SVG conversion error:")
        assert uml.startswith("@startuml")

    def test_unexpected_pipe_failure_is_render_error(self, person_shex):
        schema = parse_schema(person_shex, "ShEx", "ShExC")
        with patch('rdfshape.inference.uml.graphviz.Digraph.pipe',
                   side_effect=PermissionError(13, "Permission denied", "dot")):
            with pytest.raises(RenderError) as exc_info:
                schema_to_svg(schema)
        assert "PermissionError" in exc_info.value.message

    def test_inference_survives_broken_dot(self, graph):
        with patch('rdfshape.inference.uml.graphviz.Digraph.pipe',
                   side_effect=PermissionError(13, "Permission denied", "dot")):
            result = infer_with_uml(graph, ":alice", "ShEx")
        document = result.to_dict()
        assert document["svg"].startswith("SVG conversion error:")
        assert document["uml"].startswith("@startuml")
        assert len(document["resultShapeMap"]) == 1
