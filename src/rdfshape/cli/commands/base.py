"""
Base command class shared by every CLI command.
"""

import argparse
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ...config import ServiceConfig
from ..helpers import load_config, read_source, setup_logging

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    A CLI command. Subclasses implement ``execute`` and return an exit code.

    Attributes:
        config_path: Optional path to a JSON configuration file.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self._config: Optional[Dict[str, Any]] = None

    @property
    def config(self) -> Dict[str, Any]:
        """Raw configuration dictionary, loaded lazily ({} without a file)."""
        if self._config is None:
            self._config = load_config(self.config_path) if self.config_path else {}
        return self._config

    @property
    def service_config(self) -> ServiceConfig:
        return ServiceConfig.from_dict(self.config)

    def setup_logging_from_config(self, verbose: bool = False) -> None:
        """Configure logging from the ``logging`` section of the config file."""
        try:
            log_config = self.config.get('logging', {}) or {}
        except (ValueError, FileNotFoundError, IOError) as e:
            log_config = {}
            print(f"Warning: {e}", file=sys.stderr)
        level = "DEBUG" if verbose else log_config.get('level', 'WARNING')
        setup_logging(level=level, log_file=log_config.get('file'))

    @abstractmethod
    def execute(self, args: argparse.Namespace) -> int:
        """Run the command and return the process exit code."""


# ============================================================================
# Request parameters from arguments
# ============================================================================

def _put(params: Dict[str, Any], name: str, value: Any) -> None:
    if value is not None:
        params[name] = value


def data_params(args: argparse.Namespace) -> Dict[str, Any]:
    """Request fields describing the data source."""
    params: Dict[str, Any] = {}
    _put(params, "data", getattr(args, 'data', None))
    _put(params, "dataURL", getattr(args, 'data_url', None))
    _put(params, "endpoint", getattr(args, 'endpoint', None))
    _put(params, "dataFormat", getattr(args, 'data_format', None))
    _put(params, "inference", getattr(args, 'inference', None))
    _put(params, "targetDataFormat", getattr(args, 'target_data_format', None))
    _put(params, "activeDataTab", getattr(args, 'data_tab', None))
    if getattr(args, 'data_file', None):
        params["dataFile"] = read_source(args.data_file)
    if getattr(args, 'compound_data', None):
        params["compoundData"] = read_source(args.compound_data).decode('utf-8')
    return params


def schema_params(args: argparse.Namespace) -> Dict[str, Any]:
    """Request fields describing the schema source."""
    params: Dict[str, Any] = {}
    _put(params, "schema", getattr(args, 'schema', None))
    _put(params, "schemaURL", getattr(args, 'schema_url', None))
    _put(params, "schemaFormat", getattr(args, 'schema_format', None))
    _put(params, "schemaEngine", getattr(args, 'schema_engine', None))
    _put(params, "activeSchemaTab", getattr(args, 'schema_tab', None))
    if getattr(args, 'schema_embedded', False):
        params["schemaEmbedded"] = True
    if getattr(args, 'schema_file', None):
        params["schemaFile"] = read_source(args.schema_file)
    return params


def shape_map_params(args: argparse.Namespace) -> Dict[str, Any]:
    """Request fields describing the shape map and trigger mode."""
    params: Dict[str, Any] = {}
    _put(params, "shapeMap", getattr(args, 'shape_map', None))
    _put(params, "shapeMapURL", getattr(args, 'shape_map_url', None))
    _put(params, "shapeMapFormat", getattr(args, 'shape_map_format', None))
    _put(params, "triggerMode", getattr(args, 'trigger_mode', None))
    _put(params, "node", getattr(args, 'node', None))
    _put(params, "shape", getattr(args, 'shape', None))
    if getattr(args, 'shape_map_file', None):
        params["shapeMapFile"] = read_source(args.shape_map_file).decode('utf-8')
    return params
