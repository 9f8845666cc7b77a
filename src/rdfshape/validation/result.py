"""
Validation results.

A Result is what every validation request produces. A node that does not
conform is still a normal result; only resolution and engine failures yield
a degenerate error result, built with ``Result.from_error`` and marked with
``is_error``.
"""

import html
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..shapemaps.shape_map import ResultShapeMap


@dataclass
class Result:
    """
    Outcome of validating a graph against a schema.

    Attributes:
        valid: True when every checked association conforms.
        message: Summary line for clients.
        shape_map: Per node/shape outcomes.
        errors: Error or violation messages.
        is_error: True for degenerate error results.
        report: Engine-native report (SHACL validation report as Turtle).
    """
    valid: bool
    message: str
    shape_map: ResultShapeMap = field(default_factory=ResultShapeMap)
    errors: List[str] = field(default_factory=list)
    is_error: bool = False
    report: Optional[str] = None

    @classmethod
    def from_error(cls, message: str) -> 'Result':
        return cls(valid=False, message=message, errors=[message], is_error=True)

    @classmethod
    def from_shape_map(
        cls,
        shape_map: ResultShapeMap,
        errors: Optional[List[str]] = None,
        report: Optional[str] = None,
    ) -> 'Result':
        """Build a result whose validity follows the shape map."""
        errors = list(errors or [])
        valid = shape_map.all_conformant and not errors
        if valid:
            message = (
                f"Validated: {len(shape_map)} association(s) conform"
                if len(shape_map) else "Validated: no nodes to check"
            )
        else:
            failing = sum(1 for a in shape_map if not a.conformant)
            message = f"Not valid: {failing} of {len(shape_map)} association(s) do not conform"
        return cls(valid, message, shape_map, errors, report=report)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "valid": self.valid,
            "type": "Error" if self.is_error else "Result",
            "message": self.message,
            "shapeMap": self.shape_map.to_json(),
            "errors": list(self.errors),
        }
        if self.report is not None:
            result["report"] = self.report
        return result

    def to_html(self) -> str:
        """Render the result as an HTML fragment."""
        rows = "".join(
            f"<tr class=\"{html.escape(entry['status'])}\">"
            f"<td>{html.escape(entry['node'])}</td>"
            f"<td>{html.escape(entry['shape'])}</td>"
            f"<td>{html.escape(entry['status'])}</td>"
            f"<td>{html.escape(entry.get('reason', ''))}</td></tr>"
            for entry in self.shape_map.to_json()
        )
        errors = "".join(f"<li>{html.escape(e)}</li>" for e in self.errors)
        return (
            f"<div class=\"{'valid' if self.valid else 'invalid'}\">"
            f"<p>{html.escape(self.message)}</p>"
            f"<table><tr><th>Node</th><th>Shape</th><th>Status</th><th>Details</th></tr>"
            f"{rows}</table>"
            + (f"<ul class=\"errors\">{errors}</ul>" if errors else "")
            + "</div>"
        )


ValidationResult = Result
