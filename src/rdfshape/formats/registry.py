"""
Format Registry

Read-only lookup tables for every name a client can send: RDF data formats,
schema engines and their formats, shape map formats, trigger modes and
inference engines. The registry is built once, shared by reference and never
mutated, so concurrent requests need no locking.

Lookups are case-insensitive and accept the aliases listed in each table.
Unknown names raise ResolutionError rather than falling back silently.

Usage:
    from rdfshape.formats import DEFAULT_REGISTRY

    fmt = DEFAULT_REGISTRY.data_format("ttl")        # DataFormat('Turtle', ...)
    engine = DEFAULT_REGISTRY.schema_engine("shacl")  # 'SHACL'
    DEFAULT_REGISTRY.schema_format(engine, "turtle")  # 'Turtle'
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from ..errors import InferenceEngineError, ResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataFormat:
    """
    An RDF data serialization known to the service.

    Attributes:
        name: Canonical display name (e.g. "Turtle").
        rdflib_name: Parser/serializer plugin name in rdflib, or the
            extractor key for HTML formats.
        mime_type: Media type used when fetching or echoing content.
        extractor: True when the format is handled by an HTML extractor
            instead of an rdflib parser.
        dataset: True when the format may carry named graphs.
    """
    name: str
    rdflib_name: str
    mime_type: str
    extractor: bool = False
    dataset: bool = False


SHEX = "ShEx"
SHACL = "SHACL"

_DATA_FORMATS: Tuple[DataFormat, ...] = (
    DataFormat("Turtle", "turtle", "text/turtle"),
    DataFormat("N-Triples", "nt", "application/n-triples"),
    DataFormat("RDF/XML", "xml", "application/rdf+xml"),
    DataFormat("JSON-LD", "json-ld", "application/ld+json"),
    DataFormat("N3", "n3", "text/n3"),
    DataFormat("TriG", "trig", "application/trig", dataset=True),
    DataFormat("N-Quads", "nquads", "application/n-quads", dataset=True),
    DataFormat("html-microdata", "html-microdata", "text/html", extractor=True),
    DataFormat("html-rdfa11", "html-rdfa11", "text/html", extractor=True),
    DataFormat("html-jsonld", "html-jsonld", "text/html", extractor=True),
)

_DATA_FORMAT_ALIASES: Dict[str, str] = {
    "ttl": "Turtle",
    "nt": "N-Triples",
    "ntriples": "N-Triples",
    "rdf": "RDF/XML",
    "rdfxml": "RDF/XML",
    "rdf-xml": "RDF/XML",
    "xml": "RDF/XML",
    "owl": "RDF/XML",
    "jsonld": "JSON-LD",
    "json_ld": "JSON-LD",
    "nq": "N-Quads",
    "nquads": "N-Quads",
    "microdata": "html-microdata",
    "rdfa": "html-rdfa11",
    "html-rdfa": "html-rdfa11",
}

_SCHEMA_FORMATS: Dict[str, Tuple[str, ...]] = {
    SHEX: ("ShExC", "ShExJ"),
    SHACL: ("Turtle", "N-Triples", "RDF/XML", "JSON-LD", "N3"),
}

_SCHEMA_ENGINE_ALIASES: Dict[str, str] = {
    "shex": SHEX,
    "pyshex": SHEX,
    "shacl": SHACL,
    "shaclex": SHACL,
    "pyshacl": SHACL,
}

_SHAPE_MAP_FORMATS: Tuple[str, ...] = ("Compact", "JSON")

TRIGGER_SHAPE_MAP = "ShapeMap"
TRIGGER_TARGET_DECLS = "TargetDecls"
TRIGGER_NODE_SHAPE = "NodeShape"

_TRIGGER_MODES: Tuple[str, ...] = (TRIGGER_SHAPE_MAP, TRIGGER_TARGET_DECLS, TRIGGER_NODE_SHAPE)

# Names map to owlrl closure classes; the import happens in rdf.inference.
_INFERENCE_ENGINES: Tuple[str, ...] = ("NONE", "RDFS", "OWL", "RDFS-OWL")

_INFERENCE_ALIASES: Dict[str, str] = {
    "none": "NONE",
    "rdfs": "RDFS",
    "owl": "OWL",
    "owlrl": "OWL",
    "owl-rl": "OWL",
    "rdfs-owl": "RDFS-OWL",
    "rdfsowl": "RDFS-OWL",
}


def _index(names) -> Mapping[str, str]:
    return MappingProxyType({n.lower(): n for n in names})


@dataclass(frozen=True)
class FormatRegistry:
    """
    Immutable registry of formats, engines and modes, with defaults.

    Attributes:
        default_data_format: Format used when a data source declares none.
        default_schema_engine: Engine used when a schema declares none.
        default_schema_format: Format used when a schema declares none
            (per engine, falls back to the engine's first format).
        default_shape_map_format: Shape map syntax used by default.
        default_trigger_mode: Trigger mode used by default.
    """
    default_data_format: str = "Turtle"
    default_schema_engine: str = SHEX
    default_schema_format: str = "ShExC"
    default_shape_map_format: str = "Compact"
    default_trigger_mode: str = TRIGGER_SHAPE_MAP
    _data_formats: Mapping[str, DataFormat] = field(
        default_factory=lambda: MappingProxyType({f.name.lower(): f for f in _DATA_FORMATS}),
        repr=False,
    )

    # ------------------------------------------------------------------
    # Data formats
    # ------------------------------------------------------------------

    @property
    def data_format_names(self) -> List[str]:
        return [f.name for f in _DATA_FORMATS]

    @property
    def extractor_format_names(self) -> List[str]:
        return [f.name for f in _DATA_FORMATS if f.extractor]

    def data_format(self, name: Optional[str]) -> DataFormat:
        """
        Resolve a data format name or alias.

        Args:
            name: Client-supplied name; None or blank selects the default.

        Raises:
            ResolutionError: If the name is not a known format.
        """
        if not name or not name.strip():
            return self._data_formats[self.default_data_format.lower()]
        key = name.strip().lower()
        key = _DATA_FORMAT_ALIASES.get(key, key).lower()
        fmt = self._data_formats.get(key)
        if fmt is None:
            raise ResolutionError(
                f"Unsupported data format '{name}'. "
                f"Supported formats: {', '.join(self.data_format_names)}"
            )
        return fmt

    # ------------------------------------------------------------------
    # Schema engines and formats
    # ------------------------------------------------------------------

    @property
    def schema_engine_names(self) -> List[str]:
        return list(_SCHEMA_FORMATS)

    def schema_engine(self, name: Optional[str]) -> str:
        """Resolve an engine name or alias to its canonical name."""
        if not name or not name.strip():
            return self.default_schema_engine
        engine = _SCHEMA_ENGINE_ALIASES.get(name.strip().lower())
        if engine is None:
            raise ResolutionError(
                f"Unknown schema engine '{name}'. "
                f"Available engines: {', '.join(self.schema_engine_names)}"
            )
        return engine

    def schema_formats(self, engine: str) -> List[str]:
        return list(_SCHEMA_FORMATS[self.schema_engine(engine)])

    def schema_format(self, engine: str, name: Optional[str]) -> str:
        """
        Resolve a schema format for an engine.

        A blank name selects the registry default when the engine supports
        it, otherwise the engine's first format.

        Raises:
            ResolutionError: If the engine does not support the format.
        """
        canonical_engine = self.schema_engine(engine)
        formats = _SCHEMA_FORMATS[canonical_engine]
        if not name or not name.strip():
            if self.default_schema_format in formats:
                return self.default_schema_format
            return formats[0]
        key = name.strip().lower()
        key = _DATA_FORMAT_ALIASES.get(key, key).lower()
        for fmt in formats:
            if fmt.lower() == key:
                return fmt
        raise ResolutionError(
            f"Unsupported schema format '{name}' for engine {canonical_engine}. "
            f"Supported formats: {', '.join(formats)}"
        )

    @property
    def all_schema_format_names(self) -> List[str]:
        names: List[str] = []
        for formats in _SCHEMA_FORMATS.values():
            names.extend(f for f in formats if f not in names)
        return names

    # ------------------------------------------------------------------
    # Shape maps, triggers and inference
    # ------------------------------------------------------------------

    @property
    def shape_map_format_names(self) -> List[str]:
        return list(_SHAPE_MAP_FORMATS)

    def shape_map_format(self, name: Optional[str]) -> str:
        if not name or not name.strip():
            return self.default_shape_map_format
        fmt = _index(_SHAPE_MAP_FORMATS).get(name.strip().lower())
        if fmt is None:
            raise ResolutionError(
                f"Unsupported shape map format '{name}'. "
                f"Supported formats: {', '.join(_SHAPE_MAP_FORMATS)}"
            )
        return fmt

    @property
    def trigger_mode_names(self) -> List[str]:
        return list(_TRIGGER_MODES)

    def trigger_mode(self, name: Optional[str]) -> str:
        if not name or not name.strip():
            return self.default_trigger_mode
        mode = _index(_TRIGGER_MODES).get(name.strip().lower())
        if mode is None:
            raise ResolutionError(
                f"Unknown trigger mode '{name}'. "
                f"Available modes: {', '.join(_TRIGGER_MODES)}"
            )
        return mode

    @property
    def inference_engine_names(self) -> List[str]:
        return list(_INFERENCE_ENGINES)

    def inference_engine(self, name: str) -> str:
        """
        Resolve an inference engine name.

        Raises:
            InferenceEngineError: If the name is unknown.
        """
        engine = _INFERENCE_ALIASES.get(name.strip().lower())
        if engine is None:
            raise InferenceEngineError(
                name,
                f"Unknown inference engine '{name}'. "
                f"Available engines: {', '.join(_INFERENCE_ENGINES)}",
            )
        return engine

    def to_dict(self) -> Dict[str, object]:
        """Describe the registry for clients (format/engine listings)."""
        return {
            "dataFormats": self.data_format_names,
            "defaultDataFormat": self.default_data_format,
            "schemaEngines": self.schema_engine_names,
            "defaultSchemaEngine": self.default_schema_engine,
            "schemaFormats": self.all_schema_format_names,
            "defaultSchemaFormat": self.default_schema_format,
            "shapeMapFormats": self.shape_map_format_names,
            "triggerModes": self.trigger_mode_names,
            "defaultTriggerMode": self.default_trigger_mode,
            "inferenceEngines": self.inference_engine_names,
        }


DEFAULT_REGISTRY = FormatRegistry()
