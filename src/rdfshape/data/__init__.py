"""
Data sources and their resolution into scoped graphs.
"""

from .data_resolver import DataResolver, ResolvedGraph
from .data_spec import (
    CompoundData,
    DataSpec,
    EndpointData,
    FileData,
    InlineData,
    UrlData,
)

__all__ = [
    'CompoundData',
    'DataResolver',
    'DataSpec',
    'EndpointData',
    'FileData',
    'InlineData',
    'ResolvedGraph',
    'UrlData',
]
