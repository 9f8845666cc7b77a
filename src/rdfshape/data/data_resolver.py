"""
Data Resolver

Turns a DataSpec into a ResolvedGraph: a scoped handle to an rdflib graph
that is released deterministically with ``close()`` or a ``with`` block.

Dispatch by source variant:
- InlineData / FileData: parse locally (HTML formats go to the extractors)
- UrlData: fetch the bytes first, then parse them the same way
- EndpointData: rdflib SPARQLStore, queried in place
- CompoundData: resolve every child, then merge into one union graph; one
  failing child fails the whole compound

Optional entailment (owlrl) runs after resolution. Read-only graphs
(endpoints and aggregates over them) skip it with a warning.
"""

import logging
from typing import List, Optional, Sequence

from rdflib import Graph
from rdflib.graph import ReadOnlyGraphAggregate
from rdflib.plugins.stores.sparqlstore import SPARQLStore

from ..cancellation import CancellationToken
from ..config import ServiceConfig
from ..errors import ResolutionError
from ..formats.registry import DEFAULT_REGISTRY, FormatRegistry
from ..rdf.fetch import URLValidator, UrlFetcher
from ..rdf.inference import apply_inference, resolve_engine
from ..rdf.prefix_map import PrefixMap
from ..rdf.rdf_parser import RDFGraphParser, new_graph
from .data_spec import (
    CompoundData,
    DataSource,
    DataSpec,
    EndpointData,
    FileData,
    InlineData,
    UrlData,
)

logger = logging.getLogger(__name__)


class ResolvedGraph:
    """
    Scoped handle to a resolved data graph.

    Attributes:
        graph: The rdflib graph (in-memory, SPARQL-backed or an aggregate).
        source_text: Original text for inline and file sources, used to
            echo the input back to the client; None otherwise.
        read_only: True for endpoint graphs and aggregates over them.
        children: Handles merged into this one; closed with it.

    Example:
        >>> with resolver.resolve(DataSpec.inline("<a> <b> <c> .")) as resolved:
        ...     len(resolved.graph)
        1
    """

    def __init__(
        self,
        graph: Graph,
        source_text: Optional[str] = None,
        read_only: bool = False,
        children: Sequence['ResolvedGraph'] = (),
    ):
        self.graph = graph
        self.source_text = source_text
        self.read_only = read_only
        self.children: List[ResolvedGraph] = list(children)
        self._closed = False

    @property
    def prefix_map(self) -> PrefixMap:
        return PrefixMap.from_graph(self.graph)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the graph and every child handle. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for child in self.children:
            child.close()
        try:
            self.graph.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing graph: {e}")
        logger.debug("Closed RDF data")

    def __enter__(self) -> 'ResolvedGraph':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DataResolver:
    """
    Resolve DataSpecs into ResolvedGraphs.

    Example:
        >>> resolver = DataResolver(ServiceConfig())
        >>> with resolver.resolve(DataSpec.inline("<a> <b> <c> .")) as resolved:
        ...     resolved.prefix_map
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        registry: FormatRegistry = DEFAULT_REGISTRY,
        fetcher: Optional[UrlFetcher] = None,
    ):
        self._config = config or ServiceConfig()
        self._registry = registry
        self._fetcher = fetcher or UrlFetcher(self._config)

    def resolve(
        self,
        spec: DataSpec,
        relative_base: Optional[str] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ResolvedGraph:
        """
        Resolve a data spec and apply its inference engine.

        Args:
            spec: Data specification.
            relative_base: Base IRI for relative IRIs; the configured base
                when omitted.
            cancellation_token: Checked before each fetch/parse step.

        Returns:
            ResolvedGraph owned by the caller, who must close it.

        Raises:
            ResolutionError: Bad source, unknown format, parse failure.
            NetworkError: URL fetch failure.
            InferenceEngineError: Unknown inference engine name.
        """
        base = relative_base or self._config.relative_base
        # Reject unknown engine names before doing any work.
        engine = resolve_engine(spec.inference, self._registry)

        logger.debug(f"Resolving {spec.kind} data (inference={engine})")
        resolved = self._resolve_source(spec.source, base, cancellation_token)
        try:
            if engine is not None:
                if resolved.read_only:
                    logger.warning(
                        f"Inference engine {engine} not applied: "
                        f"{spec.kind} data is a read-only graph"
                    )
                else:
                    if cancellation_token:
                        cancellation_token.throw_if_cancelled("inference")
                    apply_inference(resolved.graph, engine)
        except BaseException:
            resolved.close()
            raise
        return resolved

    def _resolve_source(
        self,
        source: DataSource,
        base: Optional[str],
        token: Optional[CancellationToken],
    ) -> ResolvedGraph:
        if token:
            token.throw_if_cancelled(f"resolve {type(source).__name__}")

        if isinstance(source, InlineData):
            data_format = self._registry.data_format(source.format)
            graph = RDFGraphParser.parse_content(
                source.text, data_format, base, self._config.force_large_content
            )
            return ResolvedGraph(graph, source_text=source.text)

        if isinstance(source, FileData):
            data_format = self._registry.data_format(source.format)
            graph = RDFGraphParser.parse_content(
                source.content, data_format, base, self._config.force_large_content
            )
            return ResolvedGraph(
                graph, source_text=source.content.decode('utf-8', errors='replace')
            )

        if isinstance(source, UrlData):
            data_format = self._registry.data_format(source.format)
            fetched = self._fetcher.fetch(
                source.url, accept=data_format.mime_type, cancellation_token=token
            )
            if token:
                token.throw_if_cancelled(f"parse {source.url}")
            graph = RDFGraphParser.parse_content(
                fetched.content, data_format, base, self._config.force_large_content
            )
            return ResolvedGraph(graph)

        if isinstance(source, EndpointData):
            return self._resolve_endpoint(source)

        if isinstance(source, CompoundData):
            return self._resolve_compound(source, base, token)

        raise ResolutionError(f"Unsupported data source: {type(source).__name__}")

    def _resolve_endpoint(self, source: EndpointData) -> ResolvedGraph:
        url = URLValidator.validate_url(
            source.url,
            allowed_schemes=self._config.allowed_url_schemes,
            allow_private_ips=self._config.allow_private_ips,
        )
        store = SPARQLStore(query_endpoint=url, returnFormat="json")
        graph = Graph(store=store, bind_namespaces="core")
        logger.debug(f"Wrapped SPARQL endpoint {url}")
        return ResolvedGraph(graph, read_only=True)

    def _resolve_compound(
        self,
        source: CompoundData,
        base: Optional[str],
        token: Optional[CancellationToken],
    ) -> ResolvedGraph:
        children: List[ResolvedGraph] = []
        try:
            for index, child in enumerate(source.children):
                logger.debug(f"Resolving compound child {index}")
                children.append(self.resolve(child, base, token))
        except BaseException:
            for resolved in children:
                resolved.close()
            raise

        if any(child.read_only for child in children):
            aggregate = ReadOnlyGraphAggregate([child.graph for child in children])
            logger.debug(f"Compound of {len(children)} sources as read-only aggregate")
            return ResolvedGraph(aggregate, read_only=True, children=children)

        union = new_graph()
        for child in children:
            for prefix, namespace in child.graph.namespaces():
                union.bind(prefix, namespace, override=False)
            union += child.graph
        logger.debug(f"Compound of {len(children)} sources merged into {len(union)} triples")
        return ResolvedGraph(union, children=children)
