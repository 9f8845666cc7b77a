"""
Error taxonomy for the validation service core.

Resolution-layer errors (data, schema and trigger resolution) are recovered
by the validation orchestrator and turned into error results. Conversion and
inference errors are raised to their callers, which decide how to present
them.

Hierarchy:
    RDFShapeError
    ├── ResolutionError
    │   ├── NetworkError
    │   ├── InferenceEngineError
    │   ├── DataParseError
    │   └── SchemaParseError
    ├── ConversionError
    ├── InferenceError
    ├── RenderError
    └── EngineFailure
"""

from typing import Optional


class RDFShapeError(Exception):
    """Base exception for every failure raised by the service core.

    Attributes:
        message: Human-readable description of the failure.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ResolutionError(RDFShapeError):
    """Bad or missing source, unknown format/engine, or parse failure."""
    pass


class NetworkError(ResolutionError):
    """A remote resource could not be fetched. Never retried.

    Attributes:
        url: The URL that failed.
        status_code: HTTP status code when the server answered, else None.
    """

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Error fetching {url}: {message}")


class InferenceEngineError(ResolutionError):
    """Unknown entailment engine name, or the engine failed."""

    def __init__(self, engine_name: str, message: Optional[str] = None):
        self.engine_name = engine_name
        super().__init__(
            message or f"Unknown inference engine '{engine_name}'"
        )


class DataParseError(ResolutionError):
    """RDF data could not be parsed in its declared format."""

    def __init__(self, format_name: str, message: str):
        self.format_name = format_name
        super().__init__(f"Error parsing RDF data as {format_name}: {message}")


class SchemaParseError(ResolutionError):
    """A schema could not be parsed with the requested engine/format."""

    def __init__(self, engine_name: str, format_name: str, message: str):
        self.engine_name = engine_name
        self.format_name = format_name
        super().__init__(
            f"Error parsing {engine_name} schema as {format_name}: {message}"
        )


class ConversionError(RDFShapeError):
    """Unsupported engine pair or translator failure."""
    pass


class InferenceError(RDFShapeError):
    """Bad node selector, or no node matched it."""
    pass


class RenderError(RDFShapeError):
    """UML/SVG projection of a schema failed."""
    pass


class EngineFailure(RDFShapeError):
    """The validation engine raised unexpectedly."""
    pass
