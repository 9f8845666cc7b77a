"""
Validation results.

The orchestrator lives in ``rdfshape.validation.orchestrator``; it is not
imported here because the schema engines import ``Result`` from this package.
"""

from .result import Result, ValidationResult

__all__ = ['Result', 'ValidationResult']
