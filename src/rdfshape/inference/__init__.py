"""
Schema inference from data, and UML/SVG projections of schemas.
"""

from .infer_options import WIKIDATA_PREFIX_MAP, InferOptions
from .schema_infer import (
    InferenceResult,
    SchemaInferrer,
    data_extract,
    infer,
    infer_with_uml,
    inferred_schema_format,
)
from .uml import schema_to_plantuml, schema_to_svg, schema_to_svg_and_uml

__all__ = [
    'WIKIDATA_PREFIX_MAP',
    'InferOptions',
    'InferenceResult',
    'SchemaInferrer',
    'data_extract',
    'infer',
    'infer_with_uml',
    'inferred_schema_format',
    'schema_to_plantuml',
    'schema_to_svg',
    'schema_to_svg_and_uml',
]
