"""
LZM Chart Compiler - JSON Serialisation Tests

Validates chart_to_json():
- Output survives json.dumps
- Body objects carry their type and family
- Measures carry their derived duration
- Note customisation keys are rendered as names
"""

import json

from lzm_compiler.models import FlickDirection, Vector3
from lzm_compiler.services.compiler import compile_chart
from lzm_compiler.services.serialize import chart_to_json, to_jsonable
from tests.conftest import SAMPLE_CHART_BROKEN_LINES, SAMPLE_CHART_VALID


class TestChartToJson:
    """Test full chart serialisation."""

    def test_json_dumps(self):
        data = chart_to_json(compile_chart(SAMPLE_CHART_VALID))
        text = json.dumps(data)
        assert json.loads(text)["summary"]["ok"] is True

    def test_objects_carry_type_and_family(self):
        data = chart_to_json(compile_chart(SAMPLE_CHART_VALID))
        first = data["objects"][0]
        assert first["type"] == "PlatformRect"
        assert first["family"] == "platform"
        assert first["tag"] == "PR"
        evade = data["objects"][2]
        assert evade["family"] == "note"
        assert evade["animation"]["spawn_position"] == {"x": 0.0, "y": 0.0, "z": 0.0}

    def test_measures_have_duration(self):
        data = chart_to_json(compile_chart(SAMPLE_CHART_VALID))
        assert [m["duration_ms"] for m in data["timeline"]] == [2000.0, 4000.0, 3000.0, 3000.0]
        assert data["timeline"][2]["time_signature"] == {"numerator": 3, "denominator": 4}

    def test_note_customization_keys(self):
        data = chart_to_json(compile_chart(SAMPLE_CHART_VALID))
        assert set(data["note_customization"]) == {"basic_1", "target"}
        assert data["note_customization"]["basic_1"]["color"] == [255, 136, 0, 255]

    def test_diagnostics_are_dicts(self):
        data = chart_to_json(compile_chart(SAMPLE_CHART_BROKEN_LINES))
        assert data["diagnostics"][0]["code"] == "UNKNOWN_HEADER_KEY"
        assert data["diagnostics"][0]["kind"] == "recoverable_syntax"
        assert data["summary"]["ok"] is False


class TestToJsonable:
    """Test the recursive converter."""

    def test_enum_and_dataclass(self):
        assert to_jsonable(FlickDirection.RIGHT) == "right"
        assert to_jsonable(Vector3(1.0)) == {"x": 1.0, "y": 0.0, "z": 0.0}

    def test_tuples_become_lists(self):
        assert to_jsonable((Vector3(0.0), 2)) == [{"x": 0.0, "y": 0.0, "z": 0.0}, 2]
