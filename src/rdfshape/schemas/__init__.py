"""
Schemas: the engine-agnostic Schema surface, the ShEx and SHACL engines and
the Schema Resolver.
"""

from .base import UNBOUNDED, PropertySummary, Schema, ShapeSummary
from .schema_resolver import SchemaResolver, parse_schema
from .schema_spec import FileSchema, InlineSchema, SchemaSpec, UrlSchema
from .shacl_schema import ShaclSchema
from .shex_schema import SHEXC, SHEXJ, ShExSchema

__all__ = [
    'SHEXC',
    'SHEXJ',
    'UNBOUNDED',
    'FileSchema',
    'InlineSchema',
    'PropertySummary',
    'Schema',
    'SchemaResolver',
    'SchemaSpec',
    'ShExSchema',
    'ShaclSchema',
    'ShapeSummary',
    'UrlSchema',
    'parse_schema',
]
