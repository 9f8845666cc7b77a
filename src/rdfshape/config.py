"""
Service configuration.

A single immutable-by-convention dataclass holds every tunable of the
service core. It can be built from a plain dictionary (for example the
contents of a ``config.json`` file) with ``ServiceConfig.from_dict``.

Example config.json:
    {
        "relative_base": "http://localhost/base/",
        "fetch_timeout": 30,
        "allow_private_ips": false,
        "max_workers": 2,
        "logging": {"level": "DEBUG", "file": "rdfshape.log"}
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_RELATIVE_BASE = "http://localhost/base/"


@dataclass(frozen=True)
class ServiceConfig:
    """Configuration for data/schema resolution and validation.

    Attributes:
        relative_base: Base IRI used to resolve relative IRIs in data,
            schemas and shape maps.
        fetch_timeout: Timeout in seconds for URL fetches.
        max_fetch_bytes: Largest response body accepted from a URL.
        allowed_url_schemes: Schemes accepted for URL sources.
        allow_private_ips: Whether URLs may point at private/loopback hosts.
        max_workers: Threads used to resolve data and schema concurrently.
        force_large_content: Skip the pre-flight memory check.
        default_trigger_mode: Trigger mode used when the client sends none.
        log_level: Log level for the command-line front end.
        log_file: Optional log file for the command-line front end.
    """
    relative_base: Optional[str] = DEFAULT_RELATIVE_BASE
    fetch_timeout: float = 30.0
    max_fetch_bytes: int = 50 * 1024 * 1024
    allowed_url_schemes: Tuple[str, ...] = ("http", "https")
    allow_private_ips: bool = True
    max_workers: int = 2
    force_large_content: bool = False
    default_trigger_mode: str = "ShapeMap"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        """Validate configuration values."""
        if self.fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be > 0")
        if self.max_fetch_bytes <= 0:
            raise ValueError("max_fetch_bytes must be > 0")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if not self.allowed_url_schemes:
            raise ValueError("allowed_url_schemes cannot be empty")

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> 'ServiceConfig':
        """Create a config from a dictionary.

        Unknown keys are kept in ``extra`` so that front ends can carry
        their own settings in the same file.

        Args:
            config_dict: Configuration dictionary (None for defaults).

        Returns:
            ServiceConfig instance.
        """
        if not config_dict:
            return cls()

        known = {
            "relative_base", "fetch_timeout", "max_fetch_bytes",
            "allowed_url_schemes", "allow_private_ips", "max_workers",
            "force_large_content", "default_trigger_mode", "logging",
        }
        logging_cfg = config_dict.get("logging", {}) or {}
        schemes = config_dict.get("allowed_url_schemes", ("http", "https"))

        return cls(
            relative_base=config_dict.get("relative_base", DEFAULT_RELATIVE_BASE),
            fetch_timeout=float(config_dict.get("fetch_timeout", 30.0)),
            max_fetch_bytes=int(config_dict.get("max_fetch_bytes", 50 * 1024 * 1024)),
            allowed_url_schemes=tuple(s.lower() for s in schemes),
            allow_private_ips=bool(config_dict.get("allow_private_ips", True)),
            max_workers=int(config_dict.get("max_workers", 2)),
            force_large_content=bool(config_dict.get("force_large_content", False)),
            default_trigger_mode=config_dict.get("default_trigger_mode", "ShapeMap"),
            log_level=logging_cfg.get("level", "INFO"),
            log_file=logging_cfg.get("file"),
            extra={k: v for k, v in config_dict.items() if k not in known},
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'ServiceConfig':
        """Load a config from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not a JSON object.
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Invalid JSON in configuration file {path} at line {e.lineno}, "
                f"column {e.colno}: {e.msg}"
            )
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a JSON object, got {type(data)}")
        logger.debug(f"Loaded configuration from {path}")
        return cls.from_dict(data)
