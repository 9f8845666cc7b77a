"""
Tests for DataSpec decoding and the Data Resolver.

Covers every source variant (inline, file, URL, endpoint, compound), tab
precedence, inference and failure handling. URL fetches are mocked.

Run with: python -m pytest tests/test_data_resolver.py -v
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests
from rdflib import Literal, URIRef
from rdflib.namespace import RDF

from rdfshape.cancellation import CancellationToken, OperationCancelledException
from rdfshape.config import ServiceConfig
from rdfshape.data import (
    CompoundData,
    DataResolver,
    DataSpec,
    EndpointData,
    FileData,
    InlineData,
    UrlData,
)
from rdfshape.errors import (
    DataParseError,
    InferenceEngineError,
    NetworkError,
    ResolutionError,
)

EX = "http://example.org/"


def _response(body: bytes, status_code: int = 200, content_type: str = "text/turtle"):
    response = Mock()
    response.status_code = status_code
    response.content = body
    response.reason = "OK" if status_code < 400 else "Not Found"
    response.headers = {"Content-Type": content_type}
    return response


@pytest.fixture
def resolver():
    return DataResolver(ServiceConfig())


# =============================================================================
# DataSpec.from_params
# =============================================================================

@pytest.mark.unit
class TestDataSpecFromParams:
    """Source variant selection from request fields."""

    def test_empty_params_give_empty_inline_source(self):
        spec = DataSpec.from_params({})
        assert spec.source == InlineData("")

    def test_inline_text(self):
        spec = DataSpec.from_params({"data": "<a> <b> <c> .", "dataFormat": "N-Triples"})
        assert isinstance(spec.source, InlineData)
        assert spec.format == "N-Triples"

    def test_endpoint_prefix_in_data_field(self):
        spec = DataSpec.from_params({"data": "Endpoint: https://query.wikidata.org/sparql"})
        assert spec.source == EndpointData("https://query.wikidata.org/sparql")

    def test_precedence_without_tab(self):
        spec = DataSpec.from_params({
            "data": "<a> <b> <c> .",
            "dataURL": "http://example.org/data.ttl",
            "dataFile": b"<x> <y> <z> .",
        })
        assert isinstance(spec.source, UrlData)

        spec = DataSpec.from_params({"data": "<a> <b> <c> .", "dataFile": "<x> <y> <z> ."})
        assert spec.source == FileData(b"<x> <y> <z> .")

    def test_compound_wins_over_everything(self):
        compound = json.dumps([{"data": "<a> <b> <c> ."}, {"data": "<d> <e> <f> ."}])
        spec = DataSpec.from_params({"data": "<x> <y> <z> .", "compoundData": compound})
        assert isinstance(spec.source, CompoundData)
        assert len(spec.source.children) == 2

    def test_active_tab_selects_source(self):
        spec = DataSpec.from_params({
            "activeDataTab": "#dataTextArea",
            "data": "<a> <b> <c> .",
            "dataURL": "http://example.org/data.ttl",
        })
        assert isinstance(spec.source, InlineData)

    def test_active_tab_with_missing_field(self):
        with pytest.raises(ResolutionError) as exc_info:
            DataSpec.from_params({"activeDataTab": "#dataUrl", "data": "<a> <b> <c> ."})
        assert "No value for dataURL" in str(exc_info.value)

    def test_unknown_tab(self):
        with pytest.raises(ResolutionError) as exc_info:
            DataSpec.from_params({"activeDataTab": "#bogus"})
        assert "Wrong value of tab: #bogus" in str(exc_info.value)

    def test_malformed_compound(self):
        with pytest.raises(ResolutionError):
            DataSpec.from_params({"compoundData": "{not json"})
        with pytest.raises(ResolutionError):
            DataSpec.from_params({"compoundData": '{"data": "x"}'})

    def test_to_dict_echo(self):
        spec = DataSpec.inline("<a> <b> <c> .", "Turtle", inference="RDFS")
        assert spec.to_dict() == {
            "source": "InlineData",
            "data": "<a> <b> <c> .",
            "dataFormat": "Turtle",
            "inference": "RDFS",
        }


# =============================================================================
# Local sources
# =============================================================================

@pytest.mark.unit
class TestLocalResolution:
    """Inline and file data."""

    def test_relative_iris_use_base(self, resolver):
        with resolver.resolve(DataSpec.inline("<a> <b> <c> .")) as resolved:
            assert len(resolved.graph) == 1
            assert (
                URIRef("http://localhost/base/a"),
                URIRef("http://localhost/base/b"),
                URIRef("http://localhost/base/c"),
            ) in resolved.graph
            assert resolved.source_text == "<a> <b> <c> ."

    def test_explicit_relative_base(self, resolver):
        with resolver.resolve(DataSpec.inline("<a> <b> <c> ."), relative_base=EX) as resolved:
            assert (URIRef(EX + "a"), URIRef(EX + "b"), URIRef(EX + "c")) in resolved.graph

    def test_empty_text_is_empty_graph(self, resolver):
        with resolver.resolve(DataSpec.inline("")) as resolved:
            assert len(resolved.graph) == 0

    def test_file_source(self, resolver, person_data):
        with resolver.resolve(DataSpec.file(person_data, "ttl")) as resolved:
            assert (URIRef(EX + "alice"), RDF.type, URIRef(EX + "Person")) in resolved.graph
            assert resolved.prefix_map.get("") == EX

    def test_parse_error(self, resolver):
        with pytest.raises(DataParseError) as exc_info:
            resolver.resolve(DataSpec.inline("this is not turtle"))
        assert exc_info.value.format_name == "Turtle"

    def test_dataset_formats_are_flattened(self, resolver):
        trig = """
            @prefix : <http://example.org/> .
            :g1 { :a :p :b . }
            :g2 { :c :p :d . }
        """
        with resolver.resolve(DataSpec.inline(trig, "TriG")) as resolved:
            assert len(resolved.graph) == 2

    def test_html_microdata(self, resolver):
        html = """
            <div itemscope itemtype="http://schema.org/Person" itemid="http://example.org/alice">
              <span itemprop="name">Alice</span>
            </div>
        """
        with resolver.resolve(DataSpec.inline(html, "html-microdata")) as resolved:
            alice = URIRef(EX + "alice")
            assert (alice, RDF.type, URIRef("http://schema.org/Person")) in resolved.graph
            assert (alice, URIRef("http://schema.org/name"), Literal("Alice")) in resolved.graph

    def test_close_is_idempotent(self, resolver):
        resolved = resolver.resolve(DataSpec.inline("<a> <b> <c> ."))
        resolved.close()
        resolved.close()
        assert resolved.closed


# =============================================================================
# Inference
# =============================================================================

@pytest.mark.unit
class TestInference:
    """Entailment after resolution."""

    def test_rdfs_inference_adds_types(self, resolver):
        data = """
            @prefix : <http://example.org/> .
            @prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .
            :Student rdfs:subClassOf :Person .
            :carol a :Student .
        """
        with resolver.resolve(DataSpec.inline(data, inference="RDFS")) as resolved:
            assert (URIRef(EX + "carol"), RDF.type, URIRef(EX + "Person")) in resolved.graph

    def test_none_inference_is_noop(self, resolver):
        with resolver.resolve(DataSpec.inline("<a> <b> <c> .", inference="NONE")) as resolved:
            assert len(resolved.graph) == 1

    def test_unknown_engine_fails(self, resolver):
        with pytest.raises(InferenceEngineError):
            resolver.resolve(DataSpec.inline("<a> <b> <c> .", inference="bogus"))


# =============================================================================
# Remote sources
# =============================================================================

@pytest.mark.network
class TestUrlResolution:
    """URL data with a mocked HTTP layer."""

    def test_url_is_fetched_then_parsed(self, resolver):
        with patch('rdfshape.rdf.fetch.requests.get',
                   return_value=_response(b"<http://example.org/a> <http://example.org/b> 1 .")) as mock_get:
            with resolver.resolve(DataSpec.url("http://example.org/data.ttl")) as resolved:
                assert len(resolved.graph) == 1
        _, kwargs = mock_get.call_args
        assert kwargs["headers"] == {"Accept": "text/turtle"}
        assert kwargs["timeout"] == 30.0

    def test_http_error_is_network_error(self, resolver):
        with patch('rdfshape.rdf.fetch.requests.get', return_value=_response(b"", status_code=404)):
            with pytest.raises(NetworkError) as exc_info:
                resolver.resolve(DataSpec.url("http://example.org/missing.ttl"))
        assert exc_info.value.status_code == 404

    def test_connection_error_is_not_retried(self, resolver):
        with patch('rdfshape.rdf.fetch.requests.get',
                   side_effect=requests.exceptions.ConnectionError("refused")) as mock_get:
            with pytest.raises(NetworkError):
                resolver.resolve(DataSpec.url("http://example.org/data.ttl"))
        assert mock_get.call_count == 1

    def test_disallowed_scheme(self, resolver):
        with pytest.raises(NetworkError) as exc_info:
            resolver.resolve(DataSpec.url("file:///etc/passwd"))
        assert "Scheme 'file' not allowed" in str(exc_info.value)

    def test_private_addresses_can_be_blocked(self):
        resolver = DataResolver(ServiceConfig(allow_private_ips=False))
        with pytest.raises(NetworkError):
            resolver.resolve(DataSpec.url("http://127.0.0.1/data.ttl"))

    def test_endpoint_is_read_only_and_skips_inference(self, resolver):
        spec = DataSpec.endpoint("https://query.example.org/sparql", inference="RDFS")
        resolved = resolver.resolve(spec)
        try:
            assert resolved.read_only is True
        finally:
            resolved.close()


# =============================================================================
# Compound data
# =============================================================================

@pytest.mark.unit
class TestCompoundResolution:
    """Union of several sources."""

    def test_union_of_children(self, resolver):
        spec = DataSpec.compound([
            DataSpec.inline("<http://example.org/a> <http://example.org/p> <http://example.org/b> ."),
            DataSpec.inline("<http://example.org/c> <http://example.org/p> <http://example.org/d> ."),
        ])
        with resolver.resolve(spec) as resolved:
            assert len(resolved.graph) == 2
            assert len(resolved.children) == 2
        assert all(child.closed for child in resolved.children)

    def test_one_failing_child_fails_the_whole(self, resolver):
        spec = DataSpec.compound([
            DataSpec.inline("<http://example.org/a> <http://example.org/p> <http://example.org/b> ."),
            DataSpec.inline("not rdf at all"),
        ])
        with pytest.raises(DataParseError):
            resolver.resolve(spec)

    def test_compound_from_params(self, resolver):
        compound = json.dumps([
            {"data": "<http://example.org/a> <http://example.org/p> 1 ."},
            {"data": '{"@id": "http://example.org/b", "http://example.org/p": 2}', "dataFormat": "JSON-LD"},
        ])
        with resolver.resolve(DataSpec.from_params({"compoundData": compound})) as resolved:
            assert len(resolved.graph) == 2


@pytest.mark.resilience
class TestCancellation:
    """Resolution honours cancellation tokens."""

    def test_cancelled_token_stops_resolution(self, resolver):
        token = CancellationToken()
        token.cancel("test")
        with pytest.raises(OperationCancelledException):
            resolver.resolve(DataSpec.inline("<a> <b> <c> ."), cancellation_token=token)
