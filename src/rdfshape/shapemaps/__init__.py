"""
Shape maps, node selectors and validation triggers.
"""

from .node_selector import (
    RDFNodeSelector,
    SparqlSelector,
    TriplePatternSelector,
    parse_node_selector,
    parse_term,
    render_term,
)
from .shape_map import (
    CONFORMANT,
    NONCONFORMANT,
    START,
    Association,
    ResultShapeMap,
    ShapeAssociation,
    ShapeMap,
)
from .trigger import (
    NodeShapeTrigger,
    ShapeMapSource,
    ShapeMapSources,
    ShapeMapTrigger,
    TargetDeclarationsTrigger,
    TriggerModeSpec,
    ValidationTrigger,
    derive_trigger,
    merge,
    merge_shape_maps,
)

__all__ = [
    'CONFORMANT',
    'NONCONFORMANT',
    'START',
    'Association',
    'NodeShapeTrigger',
    'RDFNodeSelector',
    'ResultShapeMap',
    'ShapeAssociation',
    'ShapeMap',
    'ShapeMapSource',
    'ShapeMapSources',
    'ShapeMapTrigger',
    'SparqlSelector',
    'TargetDeclarationsTrigger',
    'TriggerModeSpec',
    'TriplePatternSelector',
    'ValidationTrigger',
    'derive_trigger',
    'merge',
    'merge_shape_maps',
    'parse_node_selector',
    'parse_term',
    'render_term',
]
