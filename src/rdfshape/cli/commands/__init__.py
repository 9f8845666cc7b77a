"""
CLI command implementations.

- base.py: Base command class and request parameter builders
- validation.py: validate, data-info, convert-data
- schema.py: schema-info, convert-schema, infer-schema
"""

from .base import BaseCommand
from .schema import ConvertSchemaCommand, InferSchemaCommand, SchemaInfoCommand
from .validation import ConvertDataCommand, DataInfoCommand, ValidateCommand

__all__ = [
    'BaseCommand',
    'ConvertDataCommand',
    'ConvertSchemaCommand',
    'DataInfoCommand',
    'InferSchemaCommand',
    'SchemaInfoCommand',
    'ValidateCommand',
]
