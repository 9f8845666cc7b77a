"""
Schema conversion between formats and engines.
"""

from .schema_converter import SchemaConversionResult, SchemaConversionService
from .shacl2shex import Shacl2ShEx, ShaclToShExError, shacl_to_shex

__all__ = [
    'SchemaConversionResult',
    'SchemaConversionService',
    'Shacl2ShEx',
    'ShaclToShExError',
    'shacl_to_shex',
]
