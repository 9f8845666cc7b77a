"""
Tests for node selectors, shape maps and the Trigger Resolver.

Run with: python -m pytest tests/test_shape_maps.py -v
"""

import json
import logging
from unittest.mock import Mock

import pytest
from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import RDF, XSD

from rdfshape.errors import ResolutionError
from rdfshape.formats import DEFAULT_REGISTRY
from rdfshape.rdf.prefix_map import PrefixMap
from rdfshape.shapemaps import (
    START,
    NodeShapeTrigger,
    RDFNodeSelector,
    ResultShapeMap,
    ShapeMap,
    ShapeMapSources,
    ShapeMapTrigger,
    SparqlSelector,
    TargetDeclarationsTrigger,
    TriplePatternSelector,
    derive_trigger,
    merge,
    parse_node_selector,
    parse_term,
)

EX = "http://example.org/"
BASE = "http://localhost/base/"


@pytest.fixture
def pm():
    return PrefixMap({"": EX, "ex": EX, "rdf": str(RDF), "xsd": str(XSD)})


@pytest.fixture
def graph(person_data):
    g = Graph()
    g.parse(data=person_data, format="turtle")
    return g


# =============================================================================
# Prefix maps and terms
# =============================================================================

@pytest.mark.unit
class TestPrefixMap:
    """Prefix expansion and qualification."""

    def test_resolve_prefixed_and_bracketed(self, pm):
        assert pm.resolve("ex:alice") == URIRef(EX + "alice")
        assert pm.resolve(":alice") == URIRef(EX + "alice")
        assert pm.resolve("<alice>", BASE) == URIRef(BASE + "alice")

    def test_undeclared_prefix(self, pm):
        with pytest.raises(ValueError) as exc_info:
            pm.resolve("foo:bar")
        assert "foo:" in str(exc_info.value)

    def test_relative_iri_needs_base(self, pm):
        with pytest.raises(ValueError):
            pm.resolve("<alice>")

    def test_qualify_prefers_longest_namespace(self):
        pm = PrefixMap({"ex": EX, "people": EX + "people/"})
        assert pm.qualify(EX + "people/alice") == "people:alice"
        assert pm.qualify("http://other.org/x") == "<http://other.org/x>"

    def test_merge_keeps_own_bindings(self):
        merged = PrefixMap({"ex": EX}).merge(PrefixMap({"ex": "http://other.org/", "o": "http://o/"}))
        assert merged.get("ex") == EX
        assert merged.get("o") == "http://o/"

    def test_to_json(self):
        assert PrefixMap({"ex": EX}).to_json() == [{"prefix": "ex", "uri": EX}]


@pytest.mark.unit
class TestTerms:
    """RDF term syntax."""

    def test_literals(self, pm):
        assert parse_term('"hi"@en', pm) == Literal("hi", lang="en")
        assert parse_term('"1"^^xsd:integer', pm) == Literal("1", datatype=XSD.integer)
        assert parse_term("42", pm) == Literal("42", datatype=XSD.integer)
        assert parse_term("true", pm) == Literal("true", datatype=XSD.boolean)

    def test_blank_node_and_a(self, pm):
        assert parse_term("_:b1", pm) == BNode("b1")
        assert parse_term("a", pm) == RDF.type


# =============================================================================
# Node selectors
# =============================================================================

@pytest.mark.unit
class TestNodeSelectors:
    """Selector parsing and evaluation."""

    def test_single_node(self, pm, graph):
        selector = parse_node_selector(":alice", pm)
        assert selector == RDFNodeSelector(URIRef(EX + "alice"))
        assert selector.select(graph) == [URIRef(EX + "alice")]

    def test_focus_subject_pattern(self, pm, graph):
        selector = parse_node_selector("{FOCUS a :Person}", pm)
        assert isinstance(selector, TriplePatternSelector)
        assert selector.focus_is_subject is True
        assert selector.select(graph) == [URIRef(EX + "alice"), URIRef(EX + "bob")]

    def test_focus_object_pattern_with_wildcard(self, pm, graph):
        selector = parse_node_selector("{_ :knows FOCUS}", pm)
        assert selector.other is None
        assert selector.select(graph) == [URIRef(EX + "bob")]

    def test_sparql_selector(self, pm, graph):
        selector = parse_node_selector(
            'SPARQL """SELECT ?x WHERE { ?x <http://example.org/worksFor> ?c }"""', pm
        )
        assert isinstance(selector, SparqlSelector)
        assert selector.select(graph) == [URIRef(EX + "bob")]

    def test_pattern_without_focus(self, pm):
        with pytest.raises(ValueError):
            parse_node_selector("{:alice :knows :bob}", pm)

    def test_pattern_with_wrong_arity(self, pm):
        with pytest.raises(ValueError):
            parse_node_selector("{FOCUS a}", pm)

    def test_render_round_trip_text(self, pm):
        selector = parse_node_selector("{FOCUS a :Person}", pm)
        assert selector.render(pm) == "{FOCUS rdf:type :Person}"


# =============================================================================
# Shape maps
# =============================================================================

@pytest.mark.unit
class TestShapeMap:
    """Compact and JSON shape maps."""

    def test_compact_with_relative_iris(self):
        sm = ShapeMap.parse("<a>@<S>", "Compact", PrefixMap(), PrefixMap(), BASE)
        assert len(sm) == 1
        assert sm.to_compact() == f"<{BASE}a>@<{BASE}S>"

    def test_compact_several_entries(self, pm):
        sm = ShapeMap.parse(":alice@:Person, {FOCUS a :Company}@:Company,\n:bob@START",
                            "Compact", pm, pm)
        assert [a.shape for a in sm] == [URIRef(EX + "Person"), URIRef(EX + "Company"), START]

    def test_missing_shape(self, pm):
        with pytest.raises(ValueError) as exc_info:
            ShapeMap.parse(":alice", "Compact", pm, pm)
        assert "Missing '@shape'" in str(exc_info.value)

    def test_json_shape_map(self, pm):
        text = json.dumps([{"node": ":alice", "shape": ":Person"}])
        sm = ShapeMap.parse(text, "JSON", pm, pm)
        assert sm.to_json() == [{"node": ":alice", "shape": ":Person"}]

    def test_json_shape_map_needs_array(self, pm):
        with pytest.raises(ValueError):
            ShapeMap.parse('{"node": ":a"}', "JSON", pm, pm)

    def test_fix_deduplicates(self, pm, graph):
        sm = ShapeMap.parse(":alice@:Person, {FOCUS a :Person}@:Person", "Compact", pm, pm)
        pairs = sm.fix(graph)
        assert pairs == [
            (URIRef(EX + "alice"), URIRef(EX + "Person")),
            (URIRef(EX + "bob"), URIRef(EX + "Person")),
        ]

    def test_result_shape_map(self, pm):
        result = ResultShapeMap([], pm, pm)
        result.add(URIRef(EX + "alice"), URIRef(EX + "Person"), True)
        result.add(URIRef(EX + "acme"), URIRef(EX + "Person"), False, "no name")
        assert not result.all_conformant
        assert result.to_compact() == ":alice@:Person,\n:acme@!:Person"
        assert result.to_json()[1] == {
            "node": ":acme", "shape": ":Person", "status": "nonconformant", "reason": "no name",
        }


# =============================================================================
# Trigger resolution
# =============================================================================

@pytest.mark.unit
class TestMerge:
    """Shape map merging priority."""

    def test_first_source_wins(self):
        merged = merge(ShapeMapSources(shape_map="X", shape_map_alt="Y"))
        assert merged.shape_map_text == "X"

    def test_fallback_to_next_source(self):
        merged = merge(ShapeMapSources(shape_map=None, shape_map_alt="Y"))
        assert merged.shape_map_text == "Y"

    def test_equal_sources_agree(self, caplog):
        with caplog.at_level(logging.WARNING):
            merged = merge(ShapeMapSources(shape_map="Z", shape_map_alt="Z"))
        assert merged.shape_map_text == "Z"
        assert "Conflicting" not in caplog.text

    def test_conflict_is_only_a_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            merged = merge(ShapeMapSources(shape_map="X", shape_map_file="Y"))
        assert merged.shape_map_text == "X"
        assert "Conflicting shape maps" in caplog.text

    def test_url_fetched_only_when_it_wins(self):
        fetch = Mock(return_value="<a>@<S>")
        merge(ShapeMapSources(shape_map="X", shape_map_url="http://example.org/sm"), fetch=fetch)
        fetch.assert_not_called()
        merged = merge(ShapeMapSources(shape_map_url="http://example.org/sm"), fetch=fetch)
        fetch.assert_called_once_with("http://example.org/sm")
        assert merged.shape_map_text == "<a>@<S>"

    def test_unknown_trigger_mode(self):
        with pytest.raises(ResolutionError):
            merge(ShapeMapSources(trigger_mode="bogus"))

    def test_unknown_shape_map_tab(self):
        with pytest.raises(ResolutionError) as exc_info:
            ShapeMapSources.from_params({"activeShapeMapTab": "#nope"})
        assert "Wrong value of tab" in str(exc_info.value)

    def test_from_params(self):
        sources = ShapeMapSources.from_params({
            "shapeMap": ":a@:S", "shapeMapFormat": "compact", "triggerMode": "ShapeMap",
        })
        assert sources.shape_map == ":a@:S"
        assert sources.shape_map_file_format == "compact"


@pytest.mark.unit
class TestDeriveTrigger:
    """Building validation triggers."""

    def test_empty_shape_map_falls_back_to_target_declarations(self, pm):
        trigger = derive_trigger(merge(ShapeMapSources()), pm, pm)
        assert isinstance(trigger, TargetDeclarationsTrigger)

    def test_shape_map_trigger(self, pm):
        trigger = derive_trigger(merge(ShapeMapSources(shape_map=":alice@:Person")), pm, pm)
        assert isinstance(trigger, ShapeMapTrigger)
        assert trigger.to_dict() == {"type": "ShapeMap", "shapeMap": ":alice@:Person"}

    def test_node_shape_trigger_defaults_to_start(self, pm):
        spec = merge(ShapeMapSources(trigger_mode="NodeShape", node=":alice"))
        trigger = derive_trigger(spec, pm, pm)
        assert isinstance(trigger, NodeShapeTrigger)
        assert trigger.shape == START
        assert trigger.to_dict()["node"] == f"<{EX}alice>"

    def test_node_shape_requires_node(self, pm):
        with pytest.raises(ResolutionError):
            derive_trigger(merge(ShapeMapSources(trigger_mode="NodeShape")), pm, pm)

    def test_bad_shape_map_is_resolution_error(self, pm):
        with pytest.raises(ResolutionError) as exc_info:
            derive_trigger(merge(ShapeMapSources(shape_map="nope:alice@:S")), pm, pm)
        assert "Cannot obtain trigger" in str(exc_info.value)

    def test_target_decls_ignores_shape_map(self, pm):
        spec = merge(ShapeMapSources(shape_map="garbage", trigger_mode="TargetDecls"))
        assert isinstance(derive_trigger(spec, pm, pm), TargetDeclarationsTrigger)

    def test_registry_default_mode(self):
        assert merge(ShapeMapSources(), DEFAULT_REGISTRY).trigger_mode == "ShapeMap"
