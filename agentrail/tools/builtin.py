"""
Built-in demo tools.

Small, dependency-free tools used by the CLI and handy for trying the tool
loop against a real model without wiring anything external.
"""

import random
from datetime import UTC, datetime
from typing import Any

from agentrail.tools.base import Tool
from agentrail.tools.registry import ToolRegistry


class GetTimeTool(Tool):
    """Current date and time as an ISO-8601 UTC string."""

    name = "get_time"
    description = "Get current date and time. Use when user asks what time it is or today's date."
    parameters = {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
    }

    async def execute(self, arguments: dict[str, Any]) -> str:
        return datetime.now(UTC).isoformat()


class GetWeatherTool(Tool):
    """Simulated weather lookup; returns made-up but plausible data."""

    name = "get_weather"
    description = "Get current weather for a given city. Use when user asks about weather."
    parameters = {
        "type": "object",
        "properties": {
            "city": {"type": "string", "description": "City name, e.g. Beijing, Shanghai"},
        },
        "required": ["city"],
        "additionalProperties": False,
    }

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        city = arguments.get("city")
        if not city:
            raise ValueError("city is required")
        return {"city": city, "temp": 18 + random.randint(0, 9), "unit": "celsius"}


def register_builtin_tools(registry: ToolRegistry) -> None:
    registry.register(GetTimeTool())
    registry.register(GetWeatherTool())
