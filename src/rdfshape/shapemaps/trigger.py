"""
Trigger Resolver

Shape maps can arrive through four request fields. ``merge_shape_maps``
picks one of them with a fixed priority table:

    shapeMap > shape-map > shapeMapURL > shapeMapFile > empty shape map

Lower-priority sources that disagree with the chosen one are logged as
warnings and otherwise ignored; a conflict is never an error.

``derive_trigger`` then turns the merged spec into a ValidationTrigger. It
needs the data and schema prefix maps, so it runs only after both have been
resolved.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from rdflib import URIRef

from ..errors import ResolutionError
from ..formats.registry import (
    DEFAULT_REGISTRY,
    TRIGGER_NODE_SHAPE,
    TRIGGER_SHAPE_MAP,
    TRIGGER_TARGET_DECLS,
    FormatRegistry,
)
from ..rdf.prefix_map import PrefixMap
from .shape_map import START, ShapeMap, ShapeRef, parse_shape_label, render_shape

logger = logging.getLogger(__name__)

SOURCE_TEXT = "shapeMap"
SOURCE_ALT = "shape-map"
SOURCE_URL = "shapeMapURL"
SOURCE_FILE = "shapeMapFile"

# Highest priority first.
SHAPE_MAP_PRIORITY: Tuple[str, ...] = (SOURCE_TEXT, SOURCE_ALT, SOURCE_URL, SOURCE_FILE)

TAB_TEXT = "#shapeMapTextArea"
TAB_URL = "#shapeMapUrl"
TAB_FILE = "#shapeMapFile"

SHAPE_MAP_TABS = (TAB_TEXT, TAB_URL, TAB_FILE)


@dataclass(frozen=True)
class ShapeMapSource:
    """Raw shape map text from one request field, with its declared format."""
    origin: str
    text: str
    format: Optional[str] = None


def _opt_str(params: Mapping[str, Any], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='replace')
    value = str(value)
    return value if value.strip() else None


@dataclass(frozen=True)
class ShapeMapSources:
    """
    Every shape-map related request field.

    Attributes:
        shape_map: Inline shape map (``shapeMap``).
        shape_map_alt: Alternate inline field (``shape-map``).
        shape_map_url: URL of a shape map (``shapeMapURL``).
        shape_map_file: Uploaded shape map content (``shapeMapFile``).
        shape_map_format: Format shared by the inline fields.
        shape_map_url_format / shape_map_file_format: Per-source formats;
            default to ``shape_map_format``.
        trigger_mode: Trigger mode name (``triggerMode``).
        node / shape: Node/shape pair for NodeShape mode.
        active_tab: Client tab hint; echoed and logged, never authoritative.
    """
    shape_map: Optional[str] = None
    shape_map_alt: Optional[str] = None
    shape_map_url: Optional[str] = None
    shape_map_file: Optional[str] = None
    shape_map_format: Optional[str] = None
    shape_map_url_format: Optional[str] = None
    shape_map_file_format: Optional[str] = None
    trigger_mode: Optional[str] = None
    node: Optional[str] = None
    shape: Optional[str] = None
    active_tab: Optional[str] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> 'ShapeMapSources':
        """
        Decode request fields.

        Raises:
            ResolutionError: On an unknown shape map tab id.
        """
        active_tab = _opt_str(params, "activeShapeMapTab")
        if active_tab is not None and active_tab not in SHAPE_MAP_TABS:
            raise ResolutionError(
                f"Wrong value of tab: {active_tab}, must be one of "
                f"[{','.join(SHAPE_MAP_TABS)}]"
            )
        shape_map_format = _opt_str(params, "shapeMapFormat")
        return cls(
            shape_map=_opt_str(params, "shapeMap"),
            shape_map_alt=_opt_str(params, "shape-map"),
            shape_map_url=_opt_str(params, "shapeMapURL"),
            shape_map_file=_opt_str(params, "shapeMapFile"),
            shape_map_format=shape_map_format,
            shape_map_url_format=_opt_str(params, "shapeMapFormatUrl") or shape_map_format,
            shape_map_file_format=_opt_str(params, "shapeMapFormatFile") or shape_map_format,
            trigger_mode=_opt_str(params, "triggerMode"),
            node=_opt_str(params, "node"),
            shape=_opt_str(params, "shape"),
            active_tab=active_tab,
        )

    def candidate(self, origin: str) -> Optional[Tuple[str, Optional[str]]]:
        """(value, format) of a source by origin name, or None when empty."""
        value, fmt = {
            SOURCE_TEXT: (self.shape_map, self.shape_map_format),
            SOURCE_ALT: (self.shape_map_alt, self.shape_map_format),
            SOURCE_URL: (self.shape_map_url, self.shape_map_url_format),
            SOURCE_FILE: (self.shape_map_file, self.shape_map_file_format),
        }[origin]
        if value is None or not value.strip():
            return None
        return value, fmt


@dataclass(frozen=True)
class TriggerModeSpec:
    """
    Merged trigger request.

    Attributes:
        trigger_mode: Canonical trigger mode name.
        shape_map: The winning shape map source, or None for an empty map.
        node / shape: Declarative node/shape pair (NodeShape mode).
        active_tab: Client tab hint, kept for echoing.
    """
    trigger_mode: str
    shape_map: Optional[ShapeMapSource] = None
    node: Optional[str] = None
    shape: Optional[str] = None
    active_tab: Optional[str] = None

    @property
    def shape_map_text(self) -> str:
        return self.shape_map.text if self.shape_map else ""


ShapeMapFetcher = Callable[[str], str]


def merge_shape_maps(
    sources: ShapeMapSources,
    fetch: Optional[ShapeMapFetcher] = None,
) -> Optional[ShapeMapSource]:
    """
    Choose one shape map source using SHAPE_MAP_PRIORITY.

    The URL source is only fetched when it wins, so a higher-priority inline
    shape map never triggers network access.

    Args:
        sources: Raw shape map fields.
        fetch: Callable returning the text at a URL (raises NetworkError).

    Returns:
        The winning source, or None when every field is empty.
    """
    present = [
        (origin, candidate) for origin in SHAPE_MAP_PRIORITY
        for candidate in [sources.candidate(origin)] if candidate is not None
    ]
    if not present:
        logger.debug("No shape map supplied, using empty shape map")
        return None

    winner_origin, (value, fmt) = present[0]
    for origin, (other_value, _) in present[1:]:
        if origin in (SOURCE_URL, SOURCE_FILE) or other_value.strip() != value.strip():
            logger.warning(
                f"Conflicting shape maps: using {winner_origin} and ignoring {origin}"
            )

    if sources.active_tab:
        logger.debug(f"Shape map tab hint {sources.active_tab}, chosen source {winner_origin}")

    if winner_origin == SOURCE_URL:
        if fetch is None:
            raise ResolutionError(f"Cannot fetch shape map from {value}: no fetcher available")
        value = fetch(value)
    return ShapeMapSource(winner_origin, value, fmt)


def merge(
    sources: ShapeMapSources,
    registry: FormatRegistry = DEFAULT_REGISTRY,
    fetch: Optional[ShapeMapFetcher] = None,
) -> TriggerModeSpec:
    """
    Merge shape map fields into a TriggerModeSpec.

    Raises:
        ResolutionError: Unknown trigger mode or shape map format.
        NetworkError: If a winning URL source cannot be fetched.
    """
    mode = registry.trigger_mode(sources.trigger_mode)
    shape_map = None
    if mode == TRIGGER_SHAPE_MAP:
        shape_map = merge_shape_maps(sources, fetch)
        if shape_map is not None:
            shape_map = ShapeMapSource(
                shape_map.origin, shape_map.text, registry.shape_map_format(shape_map.format)
            )
    return TriggerModeSpec(
        trigger_mode=mode,
        shape_map=shape_map,
        node=sources.node,
        shape=sources.shape,
        active_tab=sources.active_tab,
    )


# ----------------------------------------------------------------------
# Validation triggers
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ShapeMapTrigger:
    """Validate the node/shape pairs selected by a query shape map."""
    shape_map: ShapeMap
    name: str = TRIGGER_SHAPE_MAP

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "shapeMap": self.shape_map.to_compact()}


@dataclass(frozen=True)
class NodeShapeTrigger:
    """Validate one node against one shape (or START)."""
    node: URIRef
    shape: ShapeRef
    node_prefix_map: Optional[PrefixMap] = None
    shape_prefix_map: Optional[PrefixMap] = None
    name: str = TRIGGER_NODE_SHAPE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.name,
            "node": f"<{self.node}>",
            "shape": render_shape(self.shape),
        }


@dataclass(frozen=True)
class TargetDeclarationsTrigger:
    """Validate the focus nodes declared by the schema's own targets."""
    name: str = TRIGGER_TARGET_DECLS

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name}


ValidationTrigger = Union[ShapeMapTrigger, NodeShapeTrigger, TargetDeclarationsTrigger]


def derive_trigger(
    spec: TriggerModeSpec,
    data_prefix_map: PrefixMap,
    schema_prefix_map: PrefixMap,
    base: Optional[str] = None,
) -> ValidationTrigger:
    """
    Build the engine-consumable trigger.

    An empty shape map in ShapeMap mode falls back to target declarations.

    Raises:
        ResolutionError: If the shape map cannot be parsed in its declared
            format, or the node/shape pair holds malformed IRIs.
    """
    if spec.trigger_mode == TRIGGER_TARGET_DECLS:
        return TargetDeclarationsTrigger()

    if spec.trigger_mode == TRIGGER_NODE_SHAPE:
        if not spec.node:
            raise ResolutionError("Cannot obtain trigger: NodeShape mode requires a node")
        try:
            node = data_prefix_map.resolve(spec.node, base)
            shape = parse_shape_label(spec.shape or START, schema_prefix_map, base)
        except ValueError as e:
            raise ResolutionError(f"Cannot obtain trigger: {spec.trigger_mode}\nmsg: {e}")
        return NodeShapeTrigger(node, shape, data_prefix_map, schema_prefix_map)

    text = spec.shape_map_text
    fmt = spec.shape_map.format if spec.shape_map and spec.shape_map.format else "Compact"
    try:
        shape_map = ShapeMap.parse(text, fmt, data_prefix_map, schema_prefix_map, base)
    except ValueError as e:
        raise ResolutionError(
            f"Cannot obtain trigger: {spec.trigger_mode}\nshapeMap: {text}\nmsg: {e}"
        )
    if shape_map.is_empty:
        logger.debug("Empty shape map, falling back to target declarations")
        return TargetDeclarationsTrigger()
    return ShapeMapTrigger(shape_map)
