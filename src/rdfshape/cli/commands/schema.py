"""
Schema CLI commands.

- SchemaInfoCommand: shapes, engine and prefixes of a schema (optionally
  with its UML/SVG projection)
- ConvertSchemaCommand: convert a schema between formats and engines
- InferSchemaCommand: infer a schema from the neighbourhood of nodes
"""

import argparse
import logging

from ...conversion.schema_converter import SchemaConversionResult, SchemaConversionService
from ...data.data_resolver import DataResolver
from ...data.data_spec import DataSpec
from ...errors import ConversionError, InferenceError, RDFShapeError
from ...inference.infer_options import InferOptions
from ...inference.schema_infer import (
    InferenceResult,
    SchemaInferrer,
    data_extract,
    inferred_schema_format,
)
from ...inference.uml import schema_to_svg_and_uml
from ...schemas.schema_resolver import SchemaResolver
from ...schemas.schema_spec import SchemaSpec
from ...validation.orchestrator import ValidationService
from ..helpers import print_json
from .base import BaseCommand, data_params, schema_params

logger = logging.getLogger(__name__)


class SchemaInfoCommand(BaseCommand):
    """Print schema info, or its visualization with --visualize."""

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_config(getattr(args, 'verbose', False))
        try:
            schema_spec = SchemaSpec.from_params(schema_params(args))
        except (RDFShapeError, FileNotFoundError) as e:
            print_json({"wellFormed": False, "errors": [str(e)]})
            return 1
        service = ValidationService(self.service_config)
        base = getattr(args, 'base', None)
        if getattr(args, 'visualize', False):
            info = service.schema_visualize(schema_spec, base)
        else:
            info = service.schema_info(schema_spec, base)
        print_json(info)
        return 0 if info["wellFormed"] else 1


class ConvertSchemaCommand(BaseCommand):
    """Convert a schema to another format or engine."""

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_config(getattr(args, 'verbose', False))
        config = self.service_config
        try:
            schema_spec = SchemaSpec.from_params(schema_params(args))
            schema = SchemaResolver(config).resolve(schema_spec, getattr(args, 'base', None))
            result = SchemaConversionService().convert_to_result(
                schema,
                schema_format=schema_spec.format,
                schema_engine=schema_spec.engine,
                target_format=args.target_schema_format,
                target_engine=args.target_schema_engine,
            )
        except ConversionError as e:
            logger.error(f"Schema conversion failed: {e.message}")
            print_json(SchemaConversionResult.error_dict(e.message))
            return 1
        except (RDFShapeError, FileNotFoundError) as e:
            print_json(SchemaConversionResult.error_dict(str(e)))
            return 1
        print_json(result.to_dict())
        return 0


class InferSchemaCommand(BaseCommand):
    """
    Infer a schema from data.

    Usage:
        infer-schema --data-file data.ttl --node-selector '{FOCUS a :Person}' --uml
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_config(getattr(args, 'verbose', False))
        config = self.service_config
        base = getattr(args, 'base', None)
        try:
            data_spec = DataSpec.from_params(data_params(args))
            with DataResolver(config).resolve(data_spec, base) as resolved:
                if getattr(args, 'data_extract', False):
                    result = data_extract(
                        resolved.graph, args.node_selector, args.schema_engine, args.label,
                        base, args.schema_format, config,
                    )
                else:
                    schema, shape_map = SchemaInferrer(config).infer(
                        resolved.graph, args.node_selector, args.schema_engine, args.label,
                        InferOptions(max_follow_on=args.max_follow_on), base,
                    )
                    result = InferenceResult(
                        schema, shape_map, args.node_selector,
                        inferred_schema_format(schema, args.schema_format),
                    )
                    if getattr(args, 'uml', False):
                        result.svg, result.uml = schema_to_svg_and_uml(schema)
                document = result.to_dict()
        except InferenceError as e:
            logger.error(f"Schema inference failed: {e.message}")
            print_json({"msg": f"Error: {e.message}"})
            return 1
        except (RDFShapeError, FileNotFoundError) as e:
            print_json({"msg": f"Error: {e}"})
            return 1
        print_json(document)
        return 0

