"""
Tests for the tool-calling bridge.
"""

import json

from microflow.engine import MetricsToolBridge


class TestMetricsToolBridge:
    """Read-metrics function calls answered from the latest snapshot."""

    def test_declaration(self, engine):
        declaration = MetricsToolBridge(engine).declaration()

        assert declaration["name"] == "get_market_metrics"
        assert declaration["description"] == "Read the Ledger"
        assert declaration["parameters"] == {"type": "OBJECT", "properties": {}}

    def test_answers_with_snapshot_json(self, engine):
        engine.record_trade(100.0, 1.0, True)
        bridge = MetricsToolBridge(engine)

        responses = bridge.handle_tool_call([{"id": "call-1", "name": "get_market_metrics"}])

        assert len(responses) == 1
        assert responses[0]["id"] == "call-1"
        assert responses[0]["name"] == "get_market_metrics"
        result = responses[0]["response"]["result"]
        assert result == engine.snapshot_json()
        assert json.loads(result)["price"] == 100.0

    def test_every_call_is_answered(self, engine):
        bridge = MetricsToolBridge(engine)
        calls = [{"id": str(i), "name": "get_market_metrics"} for i in range(3)]

        responses = bridge.handle_tool_call(calls)

        assert [r["id"] for r in responses] == ["0", "1", "2"]

    def test_unknown_function(self, engine):
        bridge = MetricsToolBridge(engine)

        responses = bridge.handle_tool_call([{"id": "x", "name": "place_order"}])

        assert "error" in responses[0]["response"]
        assert "result" not in responses[0]["response"]
