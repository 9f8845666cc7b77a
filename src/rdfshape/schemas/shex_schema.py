"""
ShEx schemas, backed by PyShExC (ShExC parser), ShExJSG (ShExJ model and
ShExC writer) and PyShEx (evaluator).
"""

import contextlib
import io
import logging
import re
from typing import List, Optional, Tuple

from pyjsg.jsglib import loads as jsg_loads
from pyshex import ShExEvaluator
from pyshexc.parser_impl.generate_shexj import parse as parse_shexc
from rdflib import BNode, Graph, URIRef
from ShExJSG import ShExJ
from ShExJSG.ShExC import ShExC

from ..errors import ResolutionError, SchemaParseError
from ..formats.registry import SHEX
from ..rdf.prefix_map import PrefixMap
from ..shapemaps.shape_map import START, ResultShapeMap
from ..shapemaps.trigger import NodeShapeTrigger, ShapeMapTrigger, TargetDeclarationsTrigger
from ..validation.result import Result
from .base import PropertySummary, Schema, ShapeSummary

logger = logging.getLogger(__name__)

SHEXC = "ShExC"
SHEXJ = "ShExJ"

_PREFIX_RE = re.compile(r'^\s*PREFIX\s+([A-Za-z][\w.\-]*)?:\s*<([^>]*)>', re.IGNORECASE | re.MULTILINE)
_BASE_RE = re.compile(r'^\s*BASE\s+<', re.IGNORECASE | re.MULTILINE)


def _is_ref(expr) -> bool:
    """True for a bare shape label (IRIREF or BNODE) rather than an inline expression."""
    return isinstance(expr, str) or type(expr).__name__ in ("IRIREF", "BNODE")


def _label(expr) -> Optional[str]:
    """Shape label of a declaration or reference, as an IRI or ``_:id``."""
    if expr is None:
        return None
    if _is_ref(expr):
        return str(expr)
    ident = getattr(expr, "id", None)
    return str(ident) if ident is not None else None


def _unwrap(decl):
    """Shape expression of a declaration (ShapeDecl wraps it in newer ShExJ)."""
    if type(decl).__name__ == "ShapeDecl":
        return decl.shapeExpr
    return decl


def _triple_constraints(expr) -> List:
    if expr is None:
        return []
    if isinstance(expr, ShExJ.TripleConstraint):
        return [expr]
    if isinstance(expr, (ShExJ.EachOf, ShExJ.OneOf)):
        found = []
        for sub in expr.expressions:
            found.extend(_triple_constraints(sub))
        return found
    return []


class ShExSchema(Schema):
    """
    A parsed ShEx schema.

    Example:
        >>> schema = ShExSchema.parse("<S> { <b> . }", "ShExC", "http://localhost/base/")
        >>> schema.shapes
        ['http://localhost/base/S']
    """

    engine = SHEX

    def __init__(
        self,
        schema: 'ShExJ.Schema',
        prefix_map: Optional[PrefixMap] = None,
        base: Optional[str] = None,
        source_text: Optional[str] = None,
        source_format: Optional[str] = None,
    ):
        super().__init__(prefix_map, base, source_text, source_format)
        self.schema = schema

    @classmethod
    def parse(cls, text: str, format_name: str, base: Optional[str] = None) -> 'ShExSchema':
        """
        Parse ShExC or ShExJ text.

        Raises:
            SchemaParseError: If the text is not a valid schema.
        """
        if format_name == SHEXJ:
            return cls._parse_shexj(text, base)
        return cls._parse_shexc(text, base)

    @classmethod
    def _parse_shexc(cls, text: str, base: Optional[str]) -> 'ShExSchema':
        source = text
        if base and not _BASE_RE.search(text):
            source = f"BASE <{base}>\n{text}"
        errors = io.StringIO()
        try:
            with contextlib.redirect_stderr(errors):
                schema = parse_shexc(source)
        except Exception as e:
            raise SchemaParseError(SHEX, SHEXC, str(e))
        if schema is None:
            message = errors.getvalue().strip() or "syntax error"
            raise SchemaParseError(SHEX, SHEXC, message)
        prefix_map = PrefixMap.from_pairs(
            (prefix or "", namespace) for prefix, namespace in _PREFIX_RE.findall(text)
        )
        logger.debug(f"Parsed ShExC schema with {len(schema.shapes or [])} shapes")
        return cls(schema, prefix_map, base, text, SHEXC)

    @classmethod
    def _parse_shexj(cls, text: str, base: Optional[str]) -> 'ShExSchema':
        try:
            schema = jsg_loads(text, ShExJ)
        except Exception as e:
            raise SchemaParseError(SHEX, SHEXJ, str(e))
        if not isinstance(schema, ShExJ.Schema):
            raise SchemaParseError(SHEX, SHEXJ, "JSON document is not a ShExJ Schema")
        return cls(schema, PrefixMap(), base, text, SHEXJ)

    # ------------------------------------------------------------------
    # Schema surface
    # ------------------------------------------------------------------

    @property
    def shapes(self) -> List[str]:
        return [label for label in (_label(s) for s in (self.schema.shapes or [])) if label]

    @property
    def start(self) -> Optional[str]:
        return _label(self.schema.start) if self.schema.start is not None else None

    def serialize(self, format_name: str) -> str:
        if format_name == self.source_format and self.source_text is not None:
            return self.source_text
        try:
            if format_name == SHEXJ:
                return self.schema._as_json_dumps()
            if format_name == SHEXC:
                namespaces = Graph(bind_namespaces="none")
                for prefix, namespace in self.prefix_map.items():
                    namespaces.bind(prefix, namespace, override=True)
                return str(ShExC(self.schema, self.base, namespaces))
        except Exception as e:
            raise ResolutionError(f"Error serializing ShEx schema as {format_name}: {e}")
        raise ResolutionError(f"Unsupported ShEx schema format '{format_name}'")

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _evaluate(self, graph: Graph, node, shape) -> Tuple[bool, Optional[str]]:
        if shape == START and not isinstance(shape, URIRef):
            if self.schema.start is None:
                return False, "Schema has no START shape"
            evaluator = ShExEvaluator(rdf=graph, schema=self.schema, focus=node)
        else:
            start = shape if isinstance(shape, (URIRef, BNode)) else URIRef(str(shape))
            key = f"_:{start}" if isinstance(start, BNode) else str(start)
            if key not in self.shapes:
                return False, f"Shape {self.qualify(str(start))} not found in schema"
            evaluator = ShExEvaluator(rdf=graph, schema=self.schema, focus=node, start=start)
        results = evaluator.evaluate()
        conforms = bool(results) and all(r.result for r in results)
        reason = None if conforms else "\n".join(r.reason for r in results if r.reason)
        return conforms, reason

    def validate(self, graph: Graph, trigger, read_only: bool = False) -> Result:
        if isinstance(trigger, TargetDeclarationsTrigger):
            result_map = ResultShapeMap([], PrefixMap.from_graph(graph), self.prefix_map)
            result = Result.from_shape_map(result_map)
            result.message = "ShEx schemas declare no targets: no nodes to check"
            return result

        if isinstance(trigger, ShapeMapTrigger):
            pairs = trigger.shape_map.fix(graph)
            node_pm = trigger.shape_map.node_prefix_map
        elif isinstance(trigger, NodeShapeTrigger):
            pairs = [(trigger.node, trigger.shape)]
            node_pm = trigger.node_prefix_map or PrefixMap.from_graph(graph)
        else:
            raise ResolutionError(f"Unsupported trigger {type(trigger).__name__} for ShEx")

        result_map = ResultShapeMap([], node_pm, self.prefix_map)
        for node, shape in pairs:
            conforms, reason = self._evaluate(graph, node, shape)
            logger.debug(f"{node}@{shape}: {'conformant' if conforms else 'nonconformant'}")
            result_map.add(node, shape, conforms, reason)
        return Result.from_shape_map(result_map)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def _render_value(self, value_expr) -> Tuple[str, Optional[str]]:
        if value_expr is None:
            return ".", None
        if _is_ref(value_expr):
            label = str(value_expr)
            return f"@{self.qualify(label)}", label
        if isinstance(value_expr, ShExJ.NodeConstraint):
            if value_expr.datatype is not None:
                return self.qualify(str(value_expr.datatype)), None
            if value_expr.nodeKind is not None:
                return str(value_expr.nodeKind).upper(), None
            if value_expr.values is not None:
                rendered = []
                for v in value_expr.values:
                    if type(v).__name__ == "ObjectLiteral":
                        rendered.append(f'"{v.value}"')
                    else:
                        rendered.append(self.qualify(str(v)))
                return f"[{' '.join(rendered)}]", None
            if value_expr.pattern is not None:
                return f"/{value_expr.pattern}/", None
            return ".", None
        if isinstance(value_expr, ShExJ.Shape):
            return "{ }", None
        return type(value_expr).__name__, None

    def _summarize(self, label: str, expr) -> ShapeSummary:
        if isinstance(expr, (ShExJ.ShapeAnd, ShExJ.ShapeOr)):
            properties: List[PropertySummary] = []
            components = []
            for sub in expr.shapeExprs:
                if _is_ref(sub):
                    components.append(self.qualify(str(sub)))
                else:
                    properties.extend(self._summarize(label, sub).properties)
            kind = "AND" if isinstance(expr, ShExJ.ShapeAnd) else "OR"
            return ShapeSummary(label, properties, False, [f"{kind} {c}" for c in components])
        if isinstance(expr, ShExJ.ShapeNot):
            return ShapeSummary(label, [], False, [f"NOT {self._render_value(expr.shapeExpr)[0]}"])
        if not isinstance(expr, ShExJ.Shape):
            value, _ = self._render_value(expr)
            return ShapeSummary(label, [], False, [value])
        properties = []
        for tc in _triple_constraints(expr.expression):
            value, ref = self._render_value(tc.valueExpr)
            properties.append(PropertySummary(
                predicate=str(tc.predicate),
                value=value,
                min=1 if tc.min is None else int(tc.min),
                max=1 if tc.max is None else int(tc.max),
                inverse=bool(tc.inverse),
                shape_ref=ref,
            ))
        return ShapeSummary(label, properties, bool(expr.closed))

    def shape_summaries(self) -> List[ShapeSummary]:
        summaries = []
        for decl in self.schema.shapes or []:
            label = _label(decl)
            if label:
                summaries.append(self._summarize(label, _unwrap(decl)))
        return summaries
