"""
Engine-agnostic schema surface.

Every resolved schema, whatever its engine, exposes its shapes, its prefix
map, serialization and validation. The validation orchestrator and the
conversion and inference services only talk to this interface.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rdflib import Graph

from ..rdf.prefix_map import PrefixMap

logger = logging.getLogger(__name__)

UNBOUNDED = -1


@dataclass(frozen=True)
class PropertySummary:
    """
    One constrained property of a shape, flattened for display.

    Attributes:
        predicate: Predicate IRI.
        value: Rendered value constraint ("xsd:string", "IRI", "@<S>", ".").
        min: Minimum cardinality.
        max: Maximum cardinality, UNBOUNDED for no limit.
        inverse: True for inverse (incoming) arcs.
        shape_ref: Referenced shape label, when the value is a shape.
    """
    predicate: str
    value: str = "."
    min: int = 1
    max: int = 1
    inverse: bool = False
    shape_ref: Optional[str] = None

    @property
    def cardinality(self) -> str:
        if (self.min, self.max) == (1, 1):
            return ""
        if (self.min, self.max) == (0, 1):
            return "?"
        if (self.min, self.max) == (0, UNBOUNDED):
            return "*"
        if (self.min, self.max) == (1, UNBOUNDED):
            return "+"
        upper = "*" if self.max == UNBOUNDED else str(self.max)
        return f"{{{self.min},{upper}}}"


@dataclass(frozen=True)
class ShapeSummary:
    """Uniform description of one shape, used for UML and schema info."""
    label: str
    properties: List[PropertySummary] = field(default_factory=list)
    closed: bool = False
    components: List[str] = field(default_factory=list)


class Schema(ABC):
    """
    A parsed schema.

    Attributes:
        engine: Canonical engine name ("ShEx" or "SHACL").
        prefix_map: Prefixes declared by the schema source.
        base: Base IRI used while parsing.
        source_text: Original text, when the schema was parsed from text.
        source_format: Format the source text was parsed in.
    """

    engine: str = ""

    def __init__(
        self,
        prefix_map: Optional[PrefixMap] = None,
        base: Optional[str] = None,
        source_text: Optional[str] = None,
        source_format: Optional[str] = None,
    ):
        self.prefix_map = prefix_map or PrefixMap()
        self.base = base
        self.source_text = source_text
        self.source_format = source_format

    @property
    def name(self) -> str:
        return self.engine

    @property
    @abstractmethod
    def shapes(self) -> List[str]:
        """Shape labels in declaration order (blank node labels as ``_:id``)."""

    @abstractmethod
    def serialize(self, format_name: str) -> str:
        """
        Serialize the schema in one of its engine's formats.

        Raises:
            ResolutionError: If the format is unsupported or serialization fails.
        """

    @abstractmethod
    def validate(self, graph: Graph, trigger, read_only: bool = False):
        """
        Validate ``graph`` under ``trigger`` and return a Result.

        Args:
            graph: Data graph.
            trigger: ShapeMapTrigger, NodeShapeTrigger or
                TargetDeclarationsTrigger.
            read_only: True when the graph must not be modified or copied
                (endpoint graphs).
        """

    @abstractmethod
    def shape_summaries(self) -> List[ShapeSummary]:
        """Uniform shape descriptions for visualization."""

    def qualify(self, iri: str) -> str:
        if iri.startswith("_:"):
            return iri
        return self.prefix_map.qualify(iri)

    def info(self) -> Dict[str, Any]:
        """Schema info document: name, engine, shapes and prefix map."""
        return {
            "schemaName": self.name,
            "schemaEngine": self.engine,
            "wellFormed": True,
            "shapes": [self.qualify(s) for s in self.shapes],
            "shapesPrefixMap": self.prefix_map.to_json(),
            "errors": [],
        }

    @staticmethod
    def info_from_error(message: str) -> Dict[str, Any]:
        return {
            "schemaName": None,
            "schemaEngine": None,
            "wellFormed": False,
            "shapes": [],
            "shapesPrefixMap": [],
            "errors": [message],
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(shapes={self.shapes!r})"
