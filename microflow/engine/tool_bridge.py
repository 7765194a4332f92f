"""
Tool-calling bridge.

Lets an external function-calling session read the engine: the session
declares a single no-argument function, and every call to it is answered
with the current snapshot serialized verbatim as JSON.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping

from .core import MicrostructureEngine

logger = logging.getLogger(__name__)

READ_METRICS_FUNCTION = "get_market_metrics"


class MetricsToolBridge:
    """Answers read-metrics function calls from the engine's latest snapshot."""

    def __init__(self, engine: MicrostructureEngine, function_name: str = READ_METRICS_FUNCTION):
        self.engine = engine
        self.function_name = function_name

    def declaration(self) -> Dict[str, Any]:
        """Function declaration to register with the calling session."""
        return {
            "name": self.function_name,
            "description": "Read the Ledger",
            "parameters": {"type": "OBJECT", "properties": {}},
        }

    def handle_tool_call(self, function_calls: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """
        Build one response per function call.

        Each call is a mapping with "id" and "name". Calls to any other
        function get an error result instead of the snapshot.
        """
        payload = self.engine.snapshot_json()
        responses = []
        for call in function_calls:
            name = call.get("name")
            if name == self.function_name:
                response = {"result": payload}
            else:
                logger.warning(f"Unknown tool function requested: {name!r}")
                response = {"error": f"unknown function {name!r}"}
            responses.append({"id": call.get("id"), "name": name, "response": response})
        return responses
