#!/usr/bin/env python3
"""
ScientificAnalysisAgent

Produces a structured scientific critique of one instability record:
- diagnosis
- scientific proposal (mechanism, mathematical basis, conceptual map)
- falsifiability (failure condition, critical experiment, confidence score)

With Gemini, any grounding sources attached to the response are returned as
groundingSources. Unlike the other agents this one propagates errors: the
detail view shows them to the user.
"""

import sys
import json
import argparse
import asyncio
from typing import Any, Dict, Optional

from tools.catalog import get_instability
from tools.llm_client import call_gemini, call_ollama, extract_grounding_sources, parse_json_response
from tools.schemas import ANALYSIS_SCHEMA, check_required, schema_for_prompt
from tools.settings import LlmSettings, get_llm_settings

MOCK_ANALYSIS = {
    "diagnosis": "Mock",
    "scientific_proposal": {
        "mechanism": "Mock",
        "mathematical_basis": "Mock",
        "conceptual_map": "Mock"
    }
}


def build_analysis_prompt(instability: Dict[str, Any]) -> str:
    return f"""
Act as a Senior Research Scientist.
Analyze this instability: {instability['canonicalName']}.

Provide a rigorous breakdown using standard scientific theories (e.g. Quantum Field Theory, Complexity Theory).
Do NOT use made-up terms. Use accepted academic concepts.

Response format JSON.
{schema_for_prompt(ANALYSIS_SCHEMA)}
"""


def normalize_falsifiability(result: Dict[str, Any]) -> Dict[str, Any]:
    """Clamp confidence_score into [0, 100] when a falsifiability block is present."""
    falsifiability = result.get("falsifiability")
    if isinstance(falsifiability, dict) and "confidence_score" in falsifiability:
        try:
            score = float(falsifiability["confidence_score"])
        except (TypeError, ValueError):
            score = 0.0
        falsifiability["confidence_score"] = max(0.0, min(100.0, score))
    return result


async def analyze_instability(instability: Dict[str, Any], settings: Optional[LlmSettings] = None) -> Dict[str, Any]:
    """
    Analyze an instability record.

    Args:
        instability: Catalog record (needs canonicalName)
        settings: Provider settings (defaults to the environment)

    Returns:
        ScientificAnalysisResult dictionary

    Raises:
        Exception: provider or parse failures are propagated
    """
    settings = settings or get_llm_settings()
    prompt = build_analysis_prompt(instability)

    try:
        if settings.provider == "ollama":
            raw = await call_ollama(prompt, settings, json_mode=True)
            result = parse_json_response(raw)
            check_required(result, ANALYSIS_SCHEMA, required=["diagnosis"])
            return normalize_falsifiability(result)

        if not settings.has_gemini_key:
            return json.loads(json.dumps(MOCK_ANALYSIS))

        response = await call_gemini(prompt, settings, schema=ANALYSIS_SCHEMA)
        result = parse_json_response(response.text)
        check_required(result, ANALYSIS_SCHEMA, required=["diagnosis"])

        sources = extract_grounding_sources(response)
        if sources:
            result["groundingSources"] = sources
        return normalize_falsifiability(result)
    except Exception as e:
        print(f"[ScientificAnalysisAgent] Error analyzing {instability.get('id', '?')}: {e}", file=sys.stderr)
        raise


def main():
    """Main function to run the ScientificAnalysisAgent"""
    parser = argparse.ArgumentParser(
        description="Generates a structured scientific analysis of a catalog instability"
    )
    parser.add_argument("--id", type=str, required=True, help="Catalog id, e.g. PHY-001")
    parser.add_argument("--provider", type=str, choices=["gemini", "ollama"], help="Override LLM_PROVIDER")

    args = parser.parse_args()

    try:
        instability = get_instability(args.id)
    except KeyError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    settings = get_llm_settings().with_overrides({"provider": args.provider})
    try:
        print(f"Analyzing {instability['canonicalName']}...", file=sys.stderr)
        result = asyncio.run(analyze_instability(instability, settings))
        print(json.dumps(result, indent=2))
    except Exception as error:
        print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
