"""
Argument parsing configuration for the rdfshape CLI.
"""

import argparse

from ..formats.registry import DEFAULT_REGISTRY


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--config', help='Path to a JSON configuration file')
    parser.add_argument('--base', help='Base IRI for relative IRIs (default http://localhost/base/)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')


def _add_data_arguments(parser: argparse.ArgumentParser, with_inference: bool = True) -> None:
    group = parser.add_argument_group('data')
    group.add_argument('--data', help='Inline RDF data (or "Endpoint: <url>")')
    group.add_argument('--data-file', help='Path to an RDF data file')
    group.add_argument('--data-url', help='URL of RDF data')
    group.add_argument('--endpoint', help='SPARQL endpoint URL')
    group.add_argument('--compound-data', help='Path to a JSON array of data source objects')
    group.add_argument(
        '--data-format',
        help=f"Data format: {', '.join(DEFAULT_REGISTRY.data_format_names)}",
    )
    group.add_argument('--data-tab', help='Active data tab (e.g. #dataTextArea)')
    if with_inference:
        group.add_argument(
            '--inference',
            help=f"Inference engine: {', '.join(DEFAULT_REGISTRY.inference_engine_names)}",
        )


def _add_schema_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('schema')
    group.add_argument('--schema', help='Inline schema text')
    group.add_argument('--schema-file', help='Path to a schema file')
    group.add_argument('--schema-url', help='URL of a schema')
    group.add_argument(
        '--schema-format',
        help=f"Schema format: {', '.join(DEFAULT_REGISTRY.all_schema_format_names)}",
    )
    group.add_argument(
        '--schema-engine',
        help=f"Schema engine: {', '.join(DEFAULT_REGISTRY.schema_engine_names)}",
    )
    group.add_argument('--schema-tab', help='Active schema tab (e.g. #schemaTextArea)')


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the top-level parser with one subparser per command."""
    parser = argparse.ArgumentParser(
        prog='rdfshape',
        description='Validate RDF data with ShEx and SHACL, convert and infer schemas',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rdfshape validate --data-file data.ttl --schema-file schema.shex --shape-map ':alice@:User'
  rdfshape validate --data-file data.ttl --schema-file shapes.ttl --schema-engine SHACL \\
      --trigger-mode TargetDecls
  rdfshape convert-schema --schema-file shapes.ttl --schema-engine SHACL \\
      --target-schema-engine ShEx --target-schema-format ShExC
  rdfshape infer-schema --data-file data.ttl --node-selector '{FOCUS a :Person}' --uml
        """,
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # validate
    validate = subparsers.add_parser('validate', help='Validate RDF data against a schema')
    _add_common_arguments(validate)
    _add_data_arguments(validate)
    _add_schema_arguments(validate)
    validate.add_argument('--schema-embedded', action='store_true',
                          help='Read SHACL shapes from the data graph')
    shape_map = validate.add_argument_group('shape map')
    shape_map.add_argument('--shape-map', help='Inline shape map')
    shape_map.add_argument('--shape-map-file', help='Path to a shape map file')
    shape_map.add_argument('--shape-map-url', help='URL of a shape map')
    shape_map.add_argument(
        '--shape-map-format',
        help=f"Shape map format: {', '.join(DEFAULT_REGISTRY.shape_map_format_names)}",
    )
    shape_map.add_argument(
        '--trigger-mode',
        help=f"Trigger mode: {', '.join(DEFAULT_REGISTRY.trigger_mode_names)}",
    )
    shape_map.add_argument('--node', help='Focus node for NodeShape mode')
    shape_map.add_argument('--shape', help='Shape label for NodeShape mode (default START)')
    validate.add_argument('--timeout', type=float, help='Cancel validation after this many seconds')

    # convert-schema
    convert_schema = subparsers.add_parser('convert-schema', help='Convert a schema')
    _add_common_arguments(convert_schema)
    _add_schema_arguments(convert_schema)
    convert_schema.add_argument('--target-schema-format', help='Target schema format')
    convert_schema.add_argument('--target-schema-engine', help='Target schema engine')

    # infer-schema
    infer_schema = subparsers.add_parser('infer-schema', help='Infer a schema from data')
    _add_common_arguments(infer_schema)
    _add_data_arguments(infer_schema)
    infer_schema.add_argument('--node-selector', required=True,
                              help='Node selector, e.g. ":alice" or "{FOCUS a :Person}"')
    infer_schema.add_argument('--schema-engine', help='Engine of the inferred schema (default ShEx)')
    infer_schema.add_argument('--schema-format', help='Output format of the inferred schema')
    infer_schema.add_argument('--label', help='Label of the inferred shape (default Shape)')
    infer_schema.add_argument('--max-follow-on', type=int, default=1,
                              help='Levels of neighbouring nodes to follow (default 1)')
    infer_schema.add_argument('--uml', action='store_true', help='Include PlantUML and SVG')
    infer_schema.add_argument('--data-extract', action='store_true',
                              help='Use the data extraction preset (English labels, Wikidata prefixes)')

    # data-info
    data_info = subparsers.add_parser('data-info', help='Show information about RDF data')
    _add_common_arguments(data_info)
    _add_data_arguments(data_info)

    # convert-data
    convert_data = subparsers.add_parser('convert-data', help='Convert RDF data to another format')
    _add_common_arguments(convert_data)
    _add_data_arguments(convert_data)
    convert_data.add_argument('--target-data-format', required=True, help='Target data format')

    # schema-info
    schema_info = subparsers.add_parser('schema-info', help='Show information about a schema')
    _add_common_arguments(schema_info)
    _add_schema_arguments(schema_info)
    schema_info.add_argument('--visualize', action='store_true', help='Include PlantUML and SVG')

    return parser
