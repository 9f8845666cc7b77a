"""
rdfshape command-line entry point.

Usage:
    rdfshape validate --data-file <data> --schema-file <schema> [--shape-map <map>]
    rdfshape convert-schema --schema-file <schema> --target-schema-engine <engine>
    rdfshape infer-schema --data-file <data> --node-selector <selector> [--uml]
    rdfshape data-info --data-file <data>
    rdfshape convert-data --data-file <data> --target-data-format <format>
    rdfshape schema-info --schema-file <schema> [--visualize]

Every command prints the JSON document the service returns.
"""

import sys
from typing import List, Optional

from .cli import (
    ConvertDataCommand,
    ConvertSchemaCommand,
    DataInfoCommand,
    InferSchemaCommand,
    SchemaInfoCommand,
    ValidateCommand,
    create_argument_parser,
)

# Command mapping from command name to Command class
COMMAND_MAP = {
    'validate': ValidateCommand,
    'convert-schema': ConvertSchemaCommand,
    'infer-schema': InferSchemaCommand,
    'data-info': DataInfoCommand,
    'convert-data': ConvertDataCommand,
    'schema-info': SchemaInfoCommand,
}


def run(argv: Optional[List[str]] = None) -> int:
    """Parse ``argv`` and run the selected command, returning its exit code."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    command_class = COMMAND_MAP.get(args.command)
    if command_class is None:
        print(f"Error: Unknown command '{args.command}'")
        parser.print_help()
        return 1

    config_path = getattr(args, 'config', None)
    command = command_class(config_path=config_path)
    return command.execute(args)


def main():
    """
    Main entry point for the CLI.

    Parses command-line arguments and dispatches to the appropriate
    command handler.
    """
    sys.exit(run())


if __name__ == '__main__':
    main()
