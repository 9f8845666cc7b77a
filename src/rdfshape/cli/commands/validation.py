"""
Data and validation CLI commands.

- ValidateCommand: validate data against a schema
- DataInfoCommand: statement count, predicates and prefixes of data
- ConvertDataCommand: reserialize data in another format
"""

import argparse
import logging

from ...cancellation import CancellationToken, cancel_on_sigint, deadline
from ...data.data_spec import DataSpec
from ...errors import RDFShapeError
from ...schemas.schema_spec import SchemaSpec
from ...shapemaps.trigger import ShapeMapSources
from ...validation.orchestrator import ValidationService
from ...validation.result import Result
from ..helpers import print_json
from .base import BaseCommand, data_params, schema_params, shape_map_params

logger = logging.getLogger(__name__)


# ============================================================================
# Validate Command
# ============================================================================

class ValidateCommand(BaseCommand):
    """
    Validate RDF data against a ShEx or SHACL schema.

    Exit codes: 0 valid, 1 not valid, 2 error result.

    Usage:
        validate --data-file data.ttl --schema-file schema.shex --shape-map ':alice@:User'
        validate --data-file data.ttl --schema-file shapes.ttl --schema-engine SHACL \
            --trigger-mode TargetDecls
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_config(getattr(args, 'verbose', False))

        try:
            data_spec = DataSpec.from_params(data_params(args))
            schema_spec = SchemaSpec.from_params(schema_params(args))
            sources = ShapeMapSources.from_params(shape_map_params(args))
        except (RDFShapeError, FileNotFoundError) as e:
            message = e.message if isinstance(e, RDFShapeError) else str(e)
            print_json({"result": Result.from_error(f"Error: {message}").to_dict(),
                        "trigger": None, "elapsedTime": 0})
            return 2

        token = CancellationToken()
        with cancel_on_sigint(token), deadline(token, getattr(args, 'timeout', None)):
            service = ValidationService(self.service_config)
            outcome = service.validate(
                data_spec,
                schema_spec,
                sources,
                relative_base=getattr(args, 'base', None),
                cancellation_token=token,
            )

        print_json(outcome.to_dict())
        if outcome.result.is_error:
            return 2
        return 0 if outcome.result.valid else 1


# ============================================================================
# Data Commands
# ============================================================================

class DataInfoCommand(BaseCommand):
    """Print statement count, predicates and prefix map of RDF data."""

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_config(getattr(args, 'verbose', False))
        try:
            data_spec = DataSpec.from_params(data_params(args))
        except (RDFShapeError, FileNotFoundError) as e:
            print_json({"msg": f"Error: {e}"})
            return 1
        info = ValidationService(self.service_config).data_info(data_spec, getattr(args, 'base', None))
        print_json(info)
        return 1 if info["msg"].startswith("Error") else 0


class ConvertDataCommand(BaseCommand):
    """Reserialize RDF data in a target format."""

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_config(getattr(args, 'verbose', False))
        try:
            data_spec = DataSpec.from_params(data_params(args))
        except (RDFShapeError, FileNotFoundError) as e:
            print_json({"msg": f"Error: {e}"})
            return 1
        converted = ValidationService(self.service_config).data_convert(
            data_spec, getattr(args, 'target_data_format', None), getattr(args, 'base', None)
        )
        print_json(converted)
        return 1 if converted["msg"].startswith("Error") else 0
