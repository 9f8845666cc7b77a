"""
Shared plumbing for the rdfshape commands.

Every command writes exactly one JSON document to stdout, so log records
are sent to stderr and, optionally, to a log file. The helpers here load
the ``config.json`` used by the service, set up that logging, read local
sources and print the final document.
"""

import json
import logging
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _log_file_candidates(log_file: str) -> List[Path]:
    """Requested path first, then the same file name in temp and home."""
    requested = Path(log_file).expanduser()
    name = requested.name or "rdfshape.log"
    return [requested, Path(tempfile.gettempdir()) / name, Path.home() / name]


def _open_log_file(candidates: List[Path]) -> Optional[logging.FileHandler]:
    """Open a handler on the first writable candidate, or None."""
    for candidate in candidates:
        try:
            candidate.parent.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(candidate, encoding='utf-8')
        except OSError as e:
            print(f"  Cannot log to {candidate}: {e}", file=sys.stderr)
    return None


def setup_logging(
    level: LogLevel = "INFO",
    log_file: Optional[str] = None
) -> Optional[str]:
    """
    Configure the root logger for a command run.

    Records always go to stderr. When ``log_file`` is given and cannot be
    opened, the same file name is tried in the temp directory and then in
    the home directory before falling back to stderr alone.

    Args:
        level: Log level name.
        log_file: Optional log file path.

    Returns:
        Path of the log file actually opened, or None.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    used: Optional[str] = None

    if log_file:
        candidates = _log_file_candidates(log_file)
        file_handler = _open_log_file(candidates)
        if file_handler is None:
            print(f"Warning: no writable location for log file {log_file}; "
                  f"logging to stderr only", file=sys.stderr)
        else:
            handlers.append(file_handler)
            used = file_handler.baseFilename
            if Path(used) != candidates[0].resolve():
                print(f"Note: Using fallback log file: {used}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    if used:
        logging.getLogger(__name__).info(f"Logging to: {used}")
    return used


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Read the JSON object behind ``--config``.

    The raw dictionary is returned so that command-level keys such as
    ``logging`` stay available next to the ``ServiceConfig`` fields.

    Raises:
        ValueError: Empty path, non-JSON suffix, bad JSON or not an object.
        FileNotFoundError: If the file does not exist.
    """
    if not config_path:
        raise ValueError("config_path cannot be empty")

    path = Path(config_path).expanduser()
    if path.suffix.lower() != '.json':
        raise ValueError(f"Configuration file must be a .json file: {config_path}")
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        config = json.loads(path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path} (line {e.lineno}, column {e.colno}): {e.msg}")
    except UnicodeDecodeError as e:
        raise ValueError(f"Configuration file {path} is not UTF-8: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file must contain a JSON object, got {type(config).__name__}")
    return config


def read_source(path: str) -> bytes:
    """
    Read a local data, schema or shape map file.

    Raises:
        FileNotFoundError: If the path is not a readable file.
    """
    source = Path(path).expanduser()
    if not source.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return source.read_bytes()


def print_json(document: Dict[str, Any]) -> None:
    """Print a result document as indented JSON on stdout."""
    print(json.dumps(document, indent=2, ensure_ascii=False))
