"""
Format Registry package.

Exposes the immutable registry of data formats, schema engines/formats,
shape map formats, trigger modes and inference engines.
"""

from .registry import (
    DEFAULT_REGISTRY,
    SHACL,
    SHEX,
    TRIGGER_NODE_SHAPE,
    TRIGGER_SHAPE_MAP,
    TRIGGER_TARGET_DECLS,
    DataFormat,
    FormatRegistry,
)

__all__ = [
    'DEFAULT_REGISTRY',
    'SHACL',
    'SHEX',
    'TRIGGER_NODE_SHAPE',
    'TRIGGER_SHAPE_MAP',
    'TRIGGER_TARGET_DECLS',
    'DataFormat',
    'FormatRegistry',
]
