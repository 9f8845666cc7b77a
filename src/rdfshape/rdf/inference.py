"""
Entailment over resolved data graphs, backed by owlrl.

Engine names are resolved through the Format Registry first, so an unknown
name always raises InferenceEngineError instead of leaving the graph
silently unexpanded.
"""

import logging
from typing import Dict, Optional, Type

import owlrl
from rdflib import Graph

from ..errors import InferenceEngineError
from ..formats.registry import DEFAULT_REGISTRY, FormatRegistry

logger = logging.getLogger(__name__)

_CLOSURES: Dict[str, Type] = {
    "RDFS": owlrl.RDFS_Semantics,
    "OWL": owlrl.OWLRL_Semantics,
    "RDFS-OWL": owlrl.RDFS_OWLRL_Semantics,
}


def resolve_engine(name: Optional[str], registry: FormatRegistry = DEFAULT_REGISTRY) -> Optional[str]:
    """
    Validate an inference engine name.

    Returns:
        The canonical engine name, or None when no entailment is requested
        (blank name or NONE).

    Raises:
        InferenceEngineError: If the name is unknown.
    """
    if name is None or not name.strip():
        return None
    engine = registry.inference_engine(name)
    return None if engine == "NONE" else engine


def apply_inference(graph: Graph, engine: str) -> Graph:
    """
    Expand ``graph`` in place with the closure of a canonical engine name.

    Raises:
        InferenceEngineError: If the engine is unknown or owlrl fails.
    """
    semantics = _CLOSURES.get(engine)
    if semantics is None:
        raise InferenceEngineError(engine)
    before = len(graph)
    try:
        owlrl.DeductiveClosure(
            semantics,
            axiomatic_triples=False,
            datatype_axioms=False,
        ).expand(graph)
    except Exception as e:
        raise InferenceEngineError(engine, f"Inference engine {engine} failed: {e}")
    logger.debug(f"{engine} inference added {len(graph) - before} triples")
    return graph
