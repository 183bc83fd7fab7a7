"""Tests for agentboard.db.types.JSONType custom SQLAlchemy column type."""

import json

from agentboard.db.types import JSONType

# The dialect parameter is not used by JSONType, so None is a valid stand-in.
DIALECT = None


class TestJSONType:
    def setup_method(self):
        self.jtype = JSONType()

    def test_snapshot_round_trip(self):
        value = {"agents": [{"id": "x", "tokens": 3}], "stats": {"avgDuration": "—"}}
        stored = self.jtype.process_bind_param(value, DIALECT)
        assert self.jtype.process_result_value(stored, DIALECT) == value

    def test_non_ascii_kept_verbatim(self):
        stored = self.jtype.process_bind_param({"elapsed": "—", "name": "Agënt"}, DIALECT)
        assert "—" in stored
        assert "Agënt" in stored
        assert json.loads(stored)["name"] == "Agënt"

    def test_compact_separators(self):
        assert self.jtype.process_bind_param({"a": 1, "b": [1, 2]}, DIALECT) == '{"a":1,"b":[1,2]}'

    def test_none_passes_through(self):
        assert self.jtype.process_bind_param(None, DIALECT) is None
        assert self.jtype.process_result_value(None, DIALECT) is None
