"""
Validation Orchestrator

One entry point composes the Data, Schema and Trigger resolvers with the
validation engine:

    data + schema (concurrently) -> trigger -> schema.validate -> outcome

The service contract is to always return a Result. Resolution and trigger
failures short-circuit into an error Result with no trigger and zero elapsed
time; an engine failure keeps the trigger and the measured time. Every
resolved graph is released on every exit path.
"""

import dataclasses
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..cancellation import CancellationToken, OperationCancelledException
from ..config import ServiceConfig
from ..data.data_resolver import DataResolver, ResolvedGraph
from ..data.data_spec import DataSpec
from ..errors import EngineFailure, RDFShapeError
from ..formats.registry import DEFAULT_REGISTRY, FormatRegistry
from ..inference.uml import schema_to_svg_and_uml
from ..rdf.fetch import UrlFetcher
from ..rdf.rdf_parser import RDFGraphParser
from ..schemas.base import Schema
from ..schemas.schema_resolver import SchemaResolver
from ..schemas.schema_spec import SchemaSpec
from ..shapemaps.trigger import ShapeMapSources, ValidationTrigger, derive_trigger, merge
from .result import Result

logger = logging.getLogger(__name__)


def _close_orphaned(future: Future) -> None:
    """Close a data handle whose request was abandoned while it resolved."""
    if future.cancelled() or future.exception() is not None:
        return
    logger.debug("Closing data graph resolved after the request was abandoned")
    future.result().close()


@dataclass
class ValidationOutcome:
    """
    What ``ValidationService.validate`` returns.

    Attributes:
        result: Validation result (possibly a degenerate error result).
        trigger: The trigger that was derived, None when resolution failed.
        elapsed_ns: Engine time in nanoseconds; 0 only when validation never
            started.
    """
    result: Result
    trigger: Optional[ValidationTrigger] = None
    elapsed_ns: int = 0

    def __iter__(self):
        return iter((self.result, self.trigger, self.elapsed_ns))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "trigger": self.trigger.to_dict() if self.trigger is not None else None,
            "elapsedTime": self.elapsed_ns,
        }


class ValidationService:
    """
    Validate RDF data against ShEx or SHACL schemas.

    Example:
        >>> service = ValidationService()
        >>> outcome = service.validate(
        ...     DataSpec.inline("<a> <b> <c> ."),
        ...     SchemaSpec.inline("<S> { <b> . }", "ShExC", "ShEx"),
        ...     ShapeMapSources(shape_map="<a>@<S>"),
        ... )
        >>> outcome.result.valid
        True
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        registry: FormatRegistry = DEFAULT_REGISTRY,
        fetcher: Optional[UrlFetcher] = None,
    ):
        self.config = config or ServiceConfig()
        self.registry = registry
        self.fetcher = fetcher or UrlFetcher(self.config)
        self.data_resolver = DataResolver(self.config, registry, self.fetcher)
        self.schema_resolver = SchemaResolver(self.config, registry, self.fetcher)

    def _fetch_text(self, url: str) -> str:
        return self.fetcher.fetch(url).text

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(
        self,
        data_spec: DataSpec,
        schema_spec: SchemaSpec,
        sources: Optional[ShapeMapSources] = None,
        inference_engine: Optional[str] = None,
        relative_base: Optional[str] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ValidationOutcome:
        """
        Resolve everything and validate.

        Args:
            data_spec: Data source.
            schema_spec: Schema source.
            sources: Shape map fields and trigger mode.
            inference_engine: Overrides ``data_spec.inference`` when given.
            relative_base: Base IRI; the configured base when omitted.
            cancellation_token: Cooperative cancellation.

        Returns:
            ValidationOutcome; never raises for resolution or engine failures.
        """
        base = relative_base or self.config.relative_base
        sources = sources or ShapeMapSources()
        if sources.trigger_mode is None:
            sources = dataclasses.replace(sources, trigger_mode=self.config.default_trigger_mode)
        if inference_engine is not None:
            data_spec = dataclasses.replace(data_spec, inference=inference_engine)

        with ExitStack() as stack:
            try:
                resolved, schema = self._resolve(data_spec, schema_spec, base, cancellation_token, stack)
                merged = merge(sources, self.registry, self._fetch_text)
                trigger = derive_trigger(merged, resolved.prefix_map, schema.prefix_map, base)
            except OperationCancelledException as e:
                logger.warning(f"Validation cancelled: {e}")
                return ValidationOutcome(Result.from_error(f"Error: {e}"))
            except RDFShapeError as e:
                logger.info(f"Validation not started: {e.message}")
                return ValidationOutcome(Result.from_error(f"Error: {e.message}"))
            except Exception as e:
                logger.exception(f"Unexpected error while resolving validation inputs: {e}")
                return ValidationOutcome(Result.from_error(f"Error: {e}"))

            logger.debug(f"Validating with {schema.engine} schema and trigger {trigger.name}")
            start = time.perf_counter_ns()
            try:
                result = schema.validate(resolved.graph, trigger, resolved.read_only)
            except Exception as e:
                elapsed = max(time.perf_counter_ns() - start, 1)
                failure = EngineFailure(f"{schema.engine} engine failed: {e}")
                logger.error(failure.message)
                return ValidationOutcome(Result.from_error(f"Error: {failure.message}"), trigger, elapsed)
            elapsed = max(time.perf_counter_ns() - start, 1)
            logger.info(f"Validation finished in {elapsed / 1e6:.2f} ms: {result.message}")
            return ValidationOutcome(result, trigger, elapsed)

    def _resolve(
        self,
        data_spec: DataSpec,
        schema_spec: SchemaSpec,
        base: Optional[str],
        token: Optional[CancellationToken],
        stack: ExitStack,
    ) -> Tuple[ResolvedGraph, Schema]:
        """Resolve data and schema; the data handle is registered on ``stack``."""
        if schema_spec.embedded_in_data:
            # Embedded shapes live in the data graph, so data comes first.
            resolved = stack.enter_context(self.data_resolver.resolve(data_spec, base, token))
            schema = self.schema_resolver.resolve(schema_spec, base, resolved.graph, token)
            return resolved, schema

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            data_future = pool.submit(self.data_resolver.resolve, data_spec, base, token)
            schema_future = pool.submit(self.schema_resolver.resolve, schema_spec, base, None, token)
            try:
                wait([data_future, schema_future])
            except BaseException:
                # runs at once if the data future is already done
                data_future.add_done_callback(_close_orphaned)
                raise

        if data_future.exception() is None:
            resolved = stack.enter_context(data_future.result())
        else:
            raise data_future.exception()
        return resolved, schema_future.result()

    # ------------------------------------------------------------------
    # Data and schema information
    # ------------------------------------------------------------------

    def data_info(self, data_spec: DataSpec, relative_base: Optional[str] = None) -> Dict[str, Any]:
        """Statement count, predicates and prefix map of resolved data."""
        try:
            with self.data_resolver.resolve(data_spec, relative_base) as resolved:
                predicates = sorted({str(p) for p in resolved.graph.predicates(None, None)})
                return {
                    "msg": "Well formed RDF",
                    "data": resolved.source_text,
                    "dataFormat": self.registry.data_format(data_spec.format).name,
                    "numberOfStatements": len(resolved.graph),
                    "predicates": predicates,
                    "prefixMap": resolved.prefix_map.to_json(),
                }
        except RDFShapeError as e:
            logger.info(f"Data info failed: {e.message}")
            return {"msg": f"Error: {e.message}"}

    def data_convert(
        self,
        data_spec: DataSpec,
        target_format: Optional[str] = None,
        relative_base: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Reserialize resolved data in ``target_format`` (or the spec's target format)."""
        try:
            fmt = self.registry.data_format(target_format or data_spec.target_format)
            with self.data_resolver.resolve(data_spec, relative_base) as resolved:
                result = RDFGraphParser.serialize(resolved.graph, fmt)
            return {
                "msg": "Conversion successful!",
                "data": data_spec.to_dict(),
                "targetDataFormat": fmt.name,
                "result": result,
            }
        except RDFShapeError as e:
            logger.info(f"Data conversion failed: {e.message}")
            return {"msg": f"Error: {e.message}"}

    def schema_info(self, schema_spec: SchemaSpec, relative_base: Optional[str] = None) -> Dict[str, Any]:
        try:
            return self.schema_resolver.resolve(schema_spec, relative_base).info()
        except RDFShapeError as e:
            return Schema.info_from_error(e.message)

    def schema_visualize(self, schema_spec: SchemaSpec, relative_base: Optional[str] = None) -> Dict[str, Any]:
        """Schema info plus its SVG and PlantUML projections."""
        try:
            schema = self.schema_resolver.resolve(schema_spec, relative_base)
        except RDFShapeError as e:
            return Schema.info_from_error(e.message)
        svg, plantuml = schema_to_svg_and_uml(schema)
        info = schema.info()
        return {
            "schemaName": info["schemaName"],
            "schemaEngine": info["schemaEngine"],
            "wellFormed": info["wellFormed"],
            "errors": info["errors"],
            "parsed": "Parsed OK",
            "svg": svg,
            "plantUML": plantuml,
        }

    def formats(self) -> Dict[str, Any]:
        return self.registry.to_dict()
