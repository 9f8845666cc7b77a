"""rdfshape: RDF data validation with ShEx and SHACL, schema conversion and inference."""

__version__ = "1.0.0"
__author__ = "rdfshape Contributors"

from .config import ServiceConfig
from .conversion import SchemaConversionService, shacl_to_shex
from .data import DataResolver, DataSpec
from .errors import RDFShapeError
from .formats import DEFAULT_REGISTRY, FormatRegistry
from .inference import InferOptions, SchemaInferrer, infer, infer_with_uml
from .schemas import Schema, SchemaResolver, SchemaSpec
from .shapemaps import ShapeMap, ShapeMapSources, ResultShapeMap
from .validation import Result
from .validation.orchestrator import ValidationOutcome, ValidationService

__all__ = [
    # Services
    "ValidationService",
    "ValidationOutcome",
    "DataResolver",
    "SchemaResolver",
    "SchemaConversionService",
    "SchemaInferrer",
    # Requests
    "DataSpec",
    "SchemaSpec",
    "ShapeMapSources",
    "InferOptions",
    # Models
    "Result",
    "ResultShapeMap",
    "Schema",
    "ShapeMap",
    # Registry / config
    "DEFAULT_REGISTRY",
    "FormatRegistry",
    "ServiceConfig",
    "RDFShapeError",
    # Functions
    "infer",
    "infer_with_uml",
    "shacl_to_shex",
]
