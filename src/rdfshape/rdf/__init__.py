"""
RDF utilities: parsing, fetching, HTML extraction, entailment, prefix maps.
"""

from .fetch import FetchedContent, URLValidator, UrlFetcher
from .inference import apply_inference, resolve_engine
from .memory import MemoryManager
from .prefix_map import PrefixMap, resolve_iri
from .rdf_parser import RDFGraphParser, new_graph

__all__ = [
    'FetchedContent',
    'MemoryManager',
    'PrefixMap',
    'RDFGraphParser',
    'URLValidator',
    'UrlFetcher',
    'apply_inference',
    'new_graph',
    'resolve_engine',
    'resolve_iri',
]
