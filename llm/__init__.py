"""
LLM module: language model integration.

AI-agnostic architecture:
- LLMClient: abstract interface
- get_llm_client(): factory (None when AI is not configured)
- AIPlanProvider: strategy plans from an LLMClient
- extract_first_json / parse_plan: best-effort parsing of model output

Usage:
    from llm import get_plan_provider
    provider = get_plan_provider()
    plan, meta = provider.generate(context, ctx_hash, seeds)
"""

from llm.client import LLMClient, OpenAIClient, get_llm_client
from llm.prompts import SYSTEM_PROMPT, PLAN_PROMPT, STRATEGY_PLAN_SCHEMA
from llm.response_parser import extract_first_json, extract_json, parse_plan, JSONParseError
from llm.provider import PlanProvider, AIPlanProvider, get_plan_provider, sanitize_context

__all__ = [
    # Client
    "LLMClient",
    "OpenAIClient",
    "get_llm_client",
    # Prompts
    "SYSTEM_PROMPT",
    "PLAN_PROMPT",
    "STRATEGY_PLAN_SCHEMA",
    # Parser
    "extract_first_json",
    "extract_json",
    "parse_plan",
    "JSONParseError",
    # Provider
    "PlanProvider",
    "AIPlanProvider",
    "get_plan_provider",
    "sanitize_context",
]
