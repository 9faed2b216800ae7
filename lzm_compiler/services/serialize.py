"""
LZM Chart Compiler - JSON-safe serialisation

Converts a compiled :class:`~lzm_compiler.models.Chart` into plain dicts and
lists for tooling and for renderer collaborators that do not share the
Python object model.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any

from lzm_compiler.models import BodyObject, Chart


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, enums, tuples and keyed dicts."""
    if isinstance(value, enum.Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        if isinstance(value, BodyObject):
            out["type"] = type(value).__name__
            out["family"] = value.family
        return out
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def chart_to_json(chart: Chart) -> dict[str, Any]:
    """
    Fully JSON-serialisable representation of *chart*.

    Measures gain their derived ``duration_ms``; diagnostics use
    :meth:`Diagnostic.to_dict`.
    """
    timeline = []
    for m in chart.timeline:
        entry = to_jsonable(m)
        entry["duration_ms"] = m.duration_ms
        timeline.append(entry)

    return {
        "header": to_jsonable(chart.header),
        "note_customization": to_jsonable(chart.note_customization),
        "animations": to_jsonable(chart.animations),
        "timeline": timeline,
        "objects": [to_jsonable(o) for o in chart.objects],
        "diagnostics": [d.to_dict() for d in chart.diagnostics],
        "summary": chart.summary(),
    }
