"""
CLI module for rdfshape.

- commands/: Command implementations
- parsers.py: Argument parsing configuration
- helpers.py: Shared CLI utilities
"""

from .commands import (
    BaseCommand,
    ConvertDataCommand,
    ConvertSchemaCommand,
    DataInfoCommand,
    InferSchemaCommand,
    SchemaInfoCommand,
    ValidateCommand,
)
from .helpers import load_config, print_json, read_source, setup_logging
from .parsers import create_argument_parser

__all__ = [
    'BaseCommand',
    'ConvertDataCommand',
    'ConvertSchemaCommand',
    'DataInfoCommand',
    'InferSchemaCommand',
    'SchemaInfoCommand',
    'ValidateCommand',
    'create_argument_parser',
    'load_config',
    'print_json',
    'read_source',
    'setup_logging',
]
