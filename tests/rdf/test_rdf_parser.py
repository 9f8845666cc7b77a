"""
Unit tests for RDF parsing, serialization, memory checks and entailment.

Run with: python -m pytest tests/rdf/test_rdf_parser.py -v
"""

from unittest.mock import Mock, patch

import pytest
from rdflib import Graph, URIRef
from rdflib.namespace import OWL, RDF

from rdfshape.errors import DataParseError, InferenceEngineError, ResolutionError
from rdfshape.formats import DEFAULT_REGISTRY
from rdfshape.rdf import MemoryManager
from rdfshape.rdf.inference import apply_inference, resolve_engine
from rdfshape.rdf.rdf_parser import RDFGraphParser, new_graph

EX = "http://example.org/"


class TestRDFGraphParser:
    """Parsing every registered data format into one graph."""

    # =========================================================================
    # Parsing
    # =========================================================================

    @pytest.mark.parametrize("format_name,content", [
        ("Turtle", "<http://example.org/a> <http://example.org/p> <http://example.org/b> ."),
        ("N-Triples", "<http://example.org/a> <http://example.org/p> <http://example.org/b> .\n"),
        ("JSON-LD", '{"@id": "http://example.org/a", "http://example.org/p": {"@id": "http://example.org/b"}}'),
        ("RDF/XML", """<?xml version="1.0"?>
            <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
                     xmlns:ex="http://example.org/">
              <rdf:Description rdf:about="http://example.org/a">
                <ex:p rdf:resource="http://example.org/b"/>
              </rdf:Description>
            </rdf:RDF>"""),
        ("N-Quads", "<http://example.org/a> <http://example.org/p> <http://example.org/b> <http://example.org/g> .\n"),
    ])
    def test_formats(self, format_name, content):
        graph = RDFGraphParser.parse_content(content, DEFAULT_REGISTRY.data_format(format_name))
        assert (URIRef(EX + "a"), URIRef(EX + "p"), URIRef(EX + "b")) in graph

    def test_bytes_content(self):
        graph = RDFGraphParser.parse_content(
            b"<http://example.org/a> <http://example.org/p> 1 .", DEFAULT_REGISTRY.data_format("ttl")
        )
        assert len(graph) == 1

    def test_blank_content(self):
        assert len(RDFGraphParser.parse_content("   \n", DEFAULT_REGISTRY.data_format("Turtle"))) == 0

    def test_parse_error_names_format(self):
        with pytest.raises(DataParseError) as exc_info:
            RDFGraphParser.parse_content("<a> <b>", DEFAULT_REGISTRY.data_format("N-Triples"))
        assert "N-Triples" in exc_info.value.message

    def test_new_graph_binds_core_namespaces_only(self):
        prefixes = {prefix for prefix, _ in new_graph().namespaces()}
        assert "rdf" in prefixes
        assert "schema" not in prefixes

    # =========================================================================
    # Serialization
    # =========================================================================

    def test_serialize(self):
        graph = Graph()
        graph.add((URIRef(EX + "a"), URIRef(EX + "p"), URIRef(EX + "b")))
        text = RDFGraphParser.serialize(graph, DEFAULT_REGISTRY.data_format("N-Triples"))
        assert "<http://example.org/a> <http://example.org/p> <http://example.org/b> ." in text

    def test_extractor_formats_cannot_be_serialized(self):
        with pytest.raises(ResolutionError):
            RDFGraphParser.serialize(Graph(), DEFAULT_REGISTRY.data_format("html-rdfa11"))


class TestMemoryManager:
    """Pre-flight memory checks."""

    def test_small_content_is_accepted(self):
        with patch('rdfshape.rdf.memory.psutil.virtual_memory',
                   return_value=Mock(available=4096 * 1024 * 1024)):
            ok, message = MemoryManager.check_content_size(1024)
        assert ok is True
        assert message.startswith("Memory OK")

    def test_oversized_content_is_rejected(self):
        ok, message = MemoryManager.check_memory_available(MemoryManager.MAX_SAFE_CONTENT_MB + 1)
        assert ok is False
        assert "exceeds safe limit" in message

    def test_low_memory_is_rejected(self):
        with patch('rdfshape.rdf.memory.psutil.virtual_memory', return_value=Mock(available=10 * 1024 * 1024)):
            ok, message = MemoryManager.check_memory_available(1.0)
        assert ok is False
        assert "Insufficient free memory" in message

    def test_force_allows_large_estimate(self):
        with patch('rdfshape.rdf.memory.psutil.virtual_memory',
                   return_value=Mock(available=1024 * 1024 * 1024)):
            ok, message = MemoryManager.check_memory_available(400.0, force=True)
        assert ok is True
        assert message.startswith("WARNING")

    def test_parser_raises_when_check_fails(self):
        with patch.object(MemoryManager, 'check_memory_available', return_value=(False, "too big")):
            with pytest.raises(ResolutionError) as exc_info:
                RDFGraphParser.parse_content("<a> <b> <c> .", DEFAULT_REGISTRY.data_format("Turtle"))
        assert exc_info.value.message == "too big"


class TestEntailment:
    """owlrl-backed inference."""

    def test_resolve_engine(self):
        assert resolve_engine(None) is None
        assert resolve_engine("none") is None
        assert resolve_engine("rdfs") == "RDFS"
        with pytest.raises(InferenceEngineError):
            resolve_engine("bogus")

    def test_owl_symmetric_property(self):
        graph = Graph()
        graph.add((URIRef(EX + "knows"), RDF.type, OWL.SymmetricProperty))
        graph.add((URIRef(EX + "alice"), URIRef(EX + "knows"), URIRef(EX + "bob")))
        apply_inference(graph, "OWL")
        assert (URIRef(EX + "bob"), URIRef(EX + "knows"), URIRef(EX + "alice")) in graph

    def test_unknown_closure(self):
        with pytest.raises(InferenceEngineError):
            apply_inference(Graph(), "NONE")
