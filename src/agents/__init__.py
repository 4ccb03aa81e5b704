"""AI Agents package."""

from src.agents.ai_agents import (
    GeminiAgent,
    InsightAgent,
    InsightPayload,
    SmartAddAgent,
    UpstreamError,
    extract_json_object,
    heuristic_parse,
)

__all__ = [
    "GeminiAgent",
    "InsightAgent",
    "InsightPayload",
    "SmartAddAgent",
    "UpstreamError",
    "extract_json_object",
    "heuristic_parse",
]
