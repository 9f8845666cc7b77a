"""
Memory pre-flight checks for RDF payloads.

Inline data, uploads and fetched URLs all end up as in-memory rdflib
graphs. Before parsing, the parser asks MemoryManager whether the graph
estimated for a payload fits in free memory, and fails the request with a
ResolutionError instead of letting the process run out of memory.
"""

import logging
from typing import NamedTuple

import psutil

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class MemoryCheck(NamedTuple):
    """Outcome of a pre-flight check; unpacks as ``(ok, message)``."""
    ok: bool
    message: str


class MemoryManager:
    """
    Graph memory estimates for serialized RDF.

    Attributes:
        MIN_AVAILABLE_MB: Free memory below which nothing is parsed.
        MAX_SAFE_CONTENT_MB: Largest payload accepted without ``force``.
        MEMORY_MULTIPLIER: Graph size relative to the serialized payload.
        LOAD_FACTOR: Share of free memory a single graph may take.
    """

    MIN_AVAILABLE_MB = 256
    MAX_SAFE_CONTENT_MB = 500
    MEMORY_MULTIPLIER = 3.5
    LOAD_FACTOR = 0.7

    @staticmethod
    def get_available_memory_mb() -> float:
        try:
            return psutil.virtual_memory().available / MB
        except Exception as e:
            logger.warning(f"Could not determine available memory: {e}")
            return MemoryManager.MIN_AVAILABLE_MB

    @classmethod
    def check_memory_available(cls, content_size_mb: float, force: bool = False) -> MemoryCheck:
        """
        Decide whether a payload of ``content_size_mb`` can be parsed.

        With ``force`` the size limit and the load factor are not enforced,
        but a payload over the load factor still yields a warning message.
        The minimum free memory is always enforced.
        """
        estimate_mb = content_size_mb * cls.MEMORY_MULTIPLIER
        sizes = f"Size: {content_size_mb:.1f}MB, estimated graph memory: ~{estimate_mb:.0f}MB"

        if content_size_mb > cls.MAX_SAFE_CONTENT_MB and not force:
            return MemoryCheck(False, f"Content exceeds safe limit of {cls.MAX_SAFE_CONTENT_MB}MB. {sizes}.")

        available_mb = cls.get_available_memory_mb()
        if available_mb < cls.MIN_AVAILABLE_MB:
            return MemoryCheck(False, (
                f"Insufficient free memory: {available_mb:.0f}MB available, "
                f"{cls.MIN_AVAILABLE_MB}MB required."
            ))

        budget_mb = available_mb * cls.LOAD_FACTOR
        if estimate_mb > budget_mb:
            if force:
                return MemoryCheck(True, f"WARNING: graph may not fit in memory. {sizes}, budget {budget_mb:.0f}MB.")
            return MemoryCheck(False, (
                f"RDF content too large for available memory. {sizes}, "
                f"budget {budget_mb:.0f}MB of {available_mb:.0f}MB available."
            ))

        return MemoryCheck(True, f"Memory OK. {sizes} of {available_mb:.0f}MB available")

    @classmethod
    def check_content_size(cls, size_bytes: int, force: bool = False) -> MemoryCheck:
        return cls.check_memory_available(size_bytes / MB, force=force)
