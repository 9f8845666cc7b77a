"""
UML projection of schemas.

Shapes become classes, constrained properties become attributes and shape
references become associations. Two renderings are produced: PlantUML text
and an SVG drawn by Graphviz. Rendering problems never discard the schema;
callers get an error string in place of the failed rendering.
"""

import html
import logging
from typing import Dict, List, Tuple

import graphviz

from ..errors import RenderError
from ..schemas.base import Schema, ShapeSummary

logger = logging.getLogger(__name__)


def _aliases(summaries: List[ShapeSummary]) -> Dict[str, str]:
    return {summary.label: f"S{index}" for index, summary in enumerate(summaries)}


def _summaries(schema: Schema) -> List[ShapeSummary]:
    try:
        return schema.shape_summaries()
    except Exception as e:
        raise RenderError(f"Cannot describe {schema.engine} schema as UML: {e}")


def _attribute(schema: Schema, prop) -> str:
    predicate = schema.qualify(prop.predicate)
    if prop.inverse:
        predicate = f"^{predicate}"
    return f"{predicate} : {prop.value} {prop.cardinality}".rstrip()


def schema_to_plantuml(schema: Schema) -> str:
    """
    Render a schema as a PlantUML class diagram.

    Raises:
        RenderError: If the schema cannot be summarized.
    """
    summaries = _summaries(schema)
    aliases = _aliases(summaries)
    lines = ["@startuml"]
    links = []
    for summary in summaries:
        alias = aliases[summary.label]
        name = schema.qualify(summary.label)
        stereotype = " <<closed>>" if summary.closed else ""
        lines.append(f'class "{name}" as {alias}{stereotype} {{')
        for component in summary.components:
            lines.append(f"  {component}")
        for prop in summary.properties:
            if prop.shape_ref is not None and prop.shape_ref in aliases:
                links.append(
                    f'{alias} --> "{prop.cardinality or "1"}" {aliases[prop.shape_ref]} '
                    f': {schema.qualify(prop.predicate)}'
                )
            else:
                lines.append(f"  {_attribute(schema, prop)}")
        lines.append("}")
    lines.extend(links)
    lines.append("@enduml")
    return "\n".join(lines)


def schema_to_svg(schema: Schema) -> str:
    """
    Draw a schema as SVG with Graphviz.

    Raises:
        RenderError: If the schema cannot be summarized or Graphviz fails
            (for instance when the ``dot`` executable is not installed).
    """
    summaries = _summaries(schema)
    aliases = _aliases(summaries)
    dot = graphviz.Digraph("schema", node_attr={"shape": "plaintext", "fontname": "Helvetica"})
    for summary in summaries:
        rows = [f'<TR><TD BGCOLOR="lightgrey"><B>{html.escape(schema.qualify(summary.label))}</B></TD></TR>']
        rows.extend(
            f"<TR><TD ALIGN=\"LEFT\">{html.escape(text)}</TD></TR>"
            for text in summary.components
        )
        for prop in summary.properties:
            if prop.shape_ref is not None and prop.shape_ref in aliases:
                dot.edge(
                    aliases[summary.label],
                    aliases[prop.shape_ref],
                    label=f"{schema.qualify(prop.predicate)} {prop.cardinality}".strip(),
                )
            else:
                rows.append(f"<TR><TD ALIGN=\"LEFT\">{html.escape(_attribute(schema, prop))}</TD></TR>")
        table = f'<<TABLE BORDER="1" CELLBORDER="0" CELLSPACING="0">{"".join(rows)}</TABLE>>'
        dot.node(aliases[summary.label], label=table)
    try:
        return dot.pipe(format="svg", encoding="utf-8")
    except Exception as e:
        # missing or broken dot, or undecodable output
        raise RenderError(f"{type(e).__name__}: {e}")


def schema_to_svg_and_uml(schema: Schema) -> Tuple[str, str]:
    """
    Both renderings, degrading to error strings instead of raising.

    Returns:
        (svg, plantuml). When the UML cannot be built at all both are
        error strings; when only the SVG fails the PlantUML text survives.
    """
    try:
        plantuml = schema_to_plantuml(schema)
    except RenderError as e:
        logger.warning(f"UML conversion failed: {e.message}")
        return f"SVG conversion: {e.message}", f"Error converting UML: {e.message}"
    try:
        svg = schema_to_svg(schema)
    except RenderError as e:
        logger.warning(f"SVG rendering failed: {e.message}")
        return f"SVG conversion error: {e.message}", plantuml
    return svg, plantuml
