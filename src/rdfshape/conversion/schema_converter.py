"""
Schema Conversion Service

- Same engine (case-insensitive): reserialize the parsed schema in the
  target format; the result shape map is empty.
- SHACL -> ShEx: structural translation plus a shape map derived from the
  SHACL target declarations.
- Any other engine pair: ConversionError. There is no lossy fallback.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..errors import ConversionError, RDFShapeError
from ..formats.registry import DEFAULT_REGISTRY, SHACL, SHEX, FormatRegistry
from ..schemas.base import Schema
from ..shapemaps.shape_map import ShapeMap
from .shacl2shex import shacl_to_shex

logger = logging.getLogger(__name__)


@dataclass
class SchemaConversionResult:
    """
    A converted schema with the echoes of what was asked for.

    Attributes:
        source: Source schema text.
        schema_format / schema_engine: Source format and engine.
        target_format / target_engine: Target format and engine.
        result: Converted schema text.
        shape_map: Shape map carried over by the translation (empty for
            same-engine conversions).
    """
    source: str
    schema_format: str
    schema_engine: str
    target_format: str
    target_engine: str
    result: str
    shape_map: ShapeMap

    def to_dict(self) -> Dict[str, Any]:
        return {
            "msg": "Conversion successful!",
            "source": self.source,
            "schemaFormat": self.schema_format,
            "schemaEngine": self.schema_engine,
            "targetSchemaFormat": self.target_format,
            "targetSchemaEngine": self.target_engine,
            "result": self.result,
            "shapeMap": self.shape_map.to_compact(),
        }

    @staticmethod
    def error_dict(message: str) -> Dict[str, Any]:
        return {"msg": f"Error converting schema: {message}"}


class SchemaConversionService:
    """
    Convert schemas between formats and engines.

    Example:
        >>> service = SchemaConversionService()
        >>> text, shape_map = service.convert(schema, "Turtle", "SHACL", "ShExC", "ShEx")
    """

    def __init__(self, registry: FormatRegistry = DEFAULT_REGISTRY):
        self._registry = registry

    def _canonical(self, engine: Optional[str], default: str) -> str:
        if not engine or not engine.strip():
            return default
        try:
            return self._registry.schema_engine(engine)
        except RDFShapeError as e:
            raise ConversionError(e.message)

    def convert(
        self,
        schema: Schema,
        schema_format: Optional[str] = None,
        schema_engine: Optional[str] = None,
        target_format: Optional[str] = None,
        target_engine: Optional[str] = None,
    ) -> Tuple[str, ShapeMap]:
        """
        Convert a parsed schema.

        Args:
            schema: The parsed source schema.
            schema_format: Source format (for echoing); the schema's own
                format when omitted.
            schema_engine: Source engine; must match the schema.
            target_format: Target format; the target engine's default when
                omitted.
            target_engine: Target engine; the source engine when omitted.

        Returns:
            (converted text, result shape map)

        Raises:
            ConversionError: Unsupported engine pair, unsupported target
                format, or translator failure.
        """
        source_engine = self._canonical(schema_engine, schema.engine)
        if source_engine != schema.engine:
            raise ConversionError(
                f"Schema engine {schema_engine} does not match the parsed {schema.engine} schema"
            )
        target = self._canonical(target_engine, source_engine)
        try:
            fmt = self._registry.schema_format(target, target_format)
        except RDFShapeError as e:
            raise ConversionError(e.message)
        logger.debug(f"Schema conversion {source_engine}/{schema_format} -> {target}/{fmt}")

        if target.lower() == source_engine.lower():
            try:
                return schema.serialize(fmt), ShapeMap.empty()
            except RDFShapeError as e:
                raise ConversionError(f"Error converting {source_engine} schema to {fmt}: {e.message}")

        if source_engine == SHACL and target == SHEX:
            try:
                shex_schema, shape_map = shacl_to_shex(schema)
                return shex_schema.serialize(fmt), shape_map
            except RDFShapeError as e:
                raise ConversionError(f"Error converting SHACL -> ShEx: {e.message}")

        raise ConversionError(
            f"Conversion from {source_engine} to {target} is not supported"
        )

    def convert_to_result(
        self,
        schema: Schema,
        schema_format: Optional[str] = None,
        schema_engine: Optional[str] = None,
        target_format: Optional[str] = None,
        target_engine: Optional[str] = None,
    ) -> SchemaConversionResult:
        """``convert`` plus the source and target echoes."""
        text, shape_map = self.convert(schema, schema_format, schema_engine, target_format, target_engine)
        source_format = schema_format or schema.source_format or self._registry.schema_format(schema.engine, None)
        target = self._canonical(target_engine, schema.engine)
        source = schema.source_text if schema.source_text is not None else schema.serialize(source_format)
        return SchemaConversionResult(
            source=source,
            schema_format=source_format,
            schema_engine=schema.engine,
            target_format=self._registry.schema_format(target, target_format),
            target_engine=target,
            result=text,
            shape_map=shape_map,
        )
