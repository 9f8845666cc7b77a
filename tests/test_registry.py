"""
Tests for the Format Registry.

Run with: python -m pytest tests/test_registry.py -v
"""

import pytest

from rdfshape.errors import InferenceEngineError, ResolutionError
from rdfshape.formats import DEFAULT_REGISTRY, SHACL, SHEX, FormatRegistry


@pytest.mark.unit
class TestDataFormats:
    """Data format lookup."""

    def test_default_format_for_blank_name(self):
        assert DEFAULT_REGISTRY.data_format(None).name == "Turtle"
        assert DEFAULT_REGISTRY.data_format("  ").name == "Turtle"

    def test_aliases_are_case_insensitive(self):
        test_cases = [
            ("ttl", "Turtle"),
            ("TURTLE", "Turtle"),
            ("nt", "N-Triples"),
            ("rdfxml", "RDF/XML"),
            ("owl", "RDF/XML"),
            ("jsonld", "JSON-LD"),
            ("nq", "N-Quads"),
            ("trig", "TriG"),
            ("rdfa", "html-rdfa11"),
            ("microdata", "html-microdata"),
        ]
        for alias, expected in test_cases:
            result = DEFAULT_REGISTRY.data_format(alias).name
            assert result == expected, f"Alias '{alias}' should resolve to '{expected}', got '{result}'"

    def test_unknown_format_raises(self):
        with pytest.raises(ResolutionError) as exc_info:
            DEFAULT_REGISTRY.data_format("yaml")
        assert "yaml" in str(exc_info.value)
        assert "Turtle" in str(exc_info.value)

    def test_extractor_and_dataset_flags(self):
        assert DEFAULT_REGISTRY.data_format("html-jsonld").extractor is True
        assert DEFAULT_REGISTRY.data_format("TriG").dataset is True
        assert DEFAULT_REGISTRY.data_format("Turtle").extractor is False
        assert "html-rdfa11" in DEFAULT_REGISTRY.extractor_format_names


@pytest.mark.unit
class TestSchemaEngines:
    """Schema engine and format lookup."""

    def test_engine_aliases(self):
        assert DEFAULT_REGISTRY.schema_engine("shex") == SHEX
        assert DEFAULT_REGISTRY.schema_engine("ShaclEx") == SHACL
        assert DEFAULT_REGISTRY.schema_engine(None) == SHEX

    def test_unknown_engine_raises(self):
        with pytest.raises(ResolutionError):
            DEFAULT_REGISTRY.schema_engine("Jena")

    def test_default_format_per_engine(self):
        assert DEFAULT_REGISTRY.schema_format(SHEX, None) == "ShExC"
        # ShExC is not a SHACL format, so the engine's first format wins
        assert DEFAULT_REGISTRY.schema_format(SHACL, None) == "Turtle"

    def test_format_must_belong_to_engine(self):
        assert DEFAULT_REGISTRY.schema_format(SHACL, "ttl") == "Turtle"
        assert DEFAULT_REGISTRY.schema_format(SHEX, "shexj") == "ShExJ"
        with pytest.raises(ResolutionError) as exc_info:
            DEFAULT_REGISTRY.schema_format(SHEX, "Turtle")
        assert "ShEx" in str(exc_info.value)

    def test_all_schema_format_names_are_unique(self):
        names = DEFAULT_REGISTRY.all_schema_format_names
        assert len(names) == len(set(names))
        assert "ShExC" in names and "Turtle" in names


@pytest.mark.unit
class TestModesAndInference:
    """Shape map formats, trigger modes and inference engines."""

    def test_trigger_modes(self):
        assert DEFAULT_REGISTRY.trigger_mode(None) == "ShapeMap"
        assert DEFAULT_REGISTRY.trigger_mode("targetdecls") == "TargetDecls"
        with pytest.raises(ResolutionError):
            DEFAULT_REGISTRY.trigger_mode("Everything")

    def test_shape_map_formats(self):
        assert DEFAULT_REGISTRY.shape_map_format("json") == "JSON"
        with pytest.raises(ResolutionError):
            DEFAULT_REGISTRY.shape_map_format("XML")

    def test_inference_engines(self):
        assert DEFAULT_REGISTRY.inference_engine("owlrl") == "OWL"
        assert DEFAULT_REGISTRY.inference_engine("None") == "NONE"
        with pytest.raises(InferenceEngineError) as exc_info:
            DEFAULT_REGISTRY.inference_engine("bogus")
        assert exc_info.value.engine_name == "bogus"

    def test_custom_defaults(self):
        registry = FormatRegistry(default_schema_engine=SHACL, default_trigger_mode="TargetDecls")
        assert registry.schema_engine(None) == SHACL
        assert registry.trigger_mode("") == "TargetDecls"

    def test_to_dict_lists_everything(self):
        document = DEFAULT_REGISTRY.to_dict()
        assert document["defaultDataFormat"] == "Turtle"
        assert document["schemaEngines"] == [SHEX, SHACL]
        assert document["triggerModes"] == ["ShapeMap", "TargetDecls", "NodeShape"]
        assert "RDFS" in document["inferenceEngines"]

    def test_registry_is_immutable(self):
        with pytest.raises(Exception):
            DEFAULT_REGISTRY.default_data_format = "N3"
