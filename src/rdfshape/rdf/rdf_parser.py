"""
RDF Parser Module

Parses inline text, uploaded bytes and fetched payloads into rdflib graphs,
with a pre-flight memory check, and serializes graphs back to any
non-extractor data format.

Components:
- RDFGraphParser: format dispatch (rdflib parser or HTML extractor),
  dataset flattening, serialization
"""

import logging
from typing import Optional, Union

from rdflib import Dataset, Graph

from ..errors import DataParseError, ResolutionError
from ..formats.registry import DataFormat
from .html_extractors import extract_graph
from .memory import MemoryManager

logger = logging.getLogger(__name__)

RDFContent = Union[str, bytes]


def new_graph() -> Graph:
    """Create an empty in-memory graph with only the core namespaces bound."""
    return Graph(bind_namespaces="core")


class RDFGraphParser:
    """
    Handles RDF parsing with memory management and validation.

    Dataset formats (TriG, N-Quads) are read into a Dataset and flattened
    into a single graph holding the union of every named graph, since
    validation runs against one graph.
    """

    LARGE_CONTENT_MB = 100
    LARGE_GRAPH_TRIPLES = 100000

    @staticmethod
    def _content_size(content: RDFContent) -> int:
        if isinstance(content, bytes):
            return len(content)
        return len(content.encode('utf-8'))

    @staticmethod
    def _as_text(content: RDFContent) -> str:
        if isinstance(content, bytes):
            return content.decode('utf-8', errors='replace')
        return content

    @classmethod
    def check_memory(cls, content: RDFContent, force_large_content: bool = False) -> float:
        """
        Run the pre-flight memory check for a payload.

        Returns:
            Content size in MB.

        Raises:
            ResolutionError: If the payload is too large to parse safely.
        """
        content_size_mb = cls._content_size(content) / (1024 * 1024)
        can_proceed, memory_message = MemoryManager.check_memory_available(
            content_size_mb,
            force=force_large_content
        )
        if not can_proceed:
            logger.error(f"Memory check failed: {memory_message}")
            raise ResolutionError(memory_message)
        logger.debug(f"Memory check: {memory_message}")
        if content_size_mb > cls.LARGE_CONTENT_MB:
            logger.warning(
                f"Large RDF content detected ({content_size_mb:.1f} MB). "
                "Parsing may take several minutes."
            )
        return content_size_mb

    @classmethod
    def parse_content(
        cls,
        content: RDFContent,
        data_format: DataFormat,
        base: Optional[str] = None,
        force_large_content: bool = False,
    ) -> Graph:
        """
        Parse RDF content into a graph.

        Blank content yields an empty graph; an empty data field is a valid
        (if uninteresting) validation target.

        Args:
            content: RDF text or raw bytes.
            data_format: Resolved data format.
            base: Base IRI used to resolve relative IRIs (rdflib ``publicID``).
            force_large_content: Skip the memory guard.

        Returns:
            Parsed graph.

        Raises:
            DataParseError: If the content is not valid in the declared format.
            ResolutionError: If the memory check fails.
        """
        if not content or not cls._as_text(content).strip():
            logger.debug("Empty RDF content, returning empty graph")
            return new_graph()

        content_size_mb = cls.check_memory(content, force_large_content)

        if data_format.extractor:
            logger.debug(f"Delegating {data_format.name} content to HTML extractor")
            return extract_graph(cls._as_text(content), data_format.name, base)

        try:
            if data_format.dataset:
                graph = cls._parse_dataset(content, data_format, base)
            else:
                graph = new_graph()
                graph.parse(data=content, format=data_format.rdflib_name, publicID=base)
        except MemoryError as e:
            raise ResolutionError(
                f"Insufficient memory while parsing RDF content "
                f"({content_size_mb:.1f} MB): {e}"
            )
        except Exception as e:
            logger.debug(f"Failed to parse RDF content as {data_format.name}: {e}")
            raise DataParseError(data_format.name, str(e))

        triple_count = len(graph)
        logger.debug(
            f"Parsed {triple_count} triples as {data_format.name} "
            f"({content_size_mb:.2f} MB)"
        )
        if triple_count > cls.LARGE_GRAPH_TRIPLES:
            logger.warning(f"Large graph detected ({triple_count} triples).")
        return graph

    @staticmethod
    def _parse_dataset(content: RDFContent, data_format: DataFormat, base: Optional[str]) -> Graph:
        dataset = Dataset()
        dataset.parse(data=content, format=data_format.rdflib_name, publicID=base)
        graph = new_graph()
        for prefix, namespace in dataset.namespaces():
            graph.bind(prefix, namespace, override=False)
        context_count = 0
        for context in dataset.contexts():
            context_count += 1
            for triple in context:
                graph.add(triple)
        logger.debug(f"Flattened dataset with {context_count} graph contexts")
        return graph

    @staticmethod
    def serialize(graph: Graph, data_format: DataFormat) -> str:
        """
        Serialize a graph in a data format.

        Raises:
            ResolutionError: If the format is an extraction-only format or
                the serializer fails.
        """
        if data_format.extractor:
            raise ResolutionError(
                f"{data_format.name} is an extraction-only format and cannot be serialized"
            )
        try:
            return graph.serialize(format=data_format.rdflib_name)
        except Exception as e:
            raise ResolutionError(f"Error serializing RDF data as {data_format.name}: {e}")
