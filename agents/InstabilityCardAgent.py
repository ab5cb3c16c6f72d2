#!/usr/bin/env python3
"""
InstabilityCardAgent

Drafts a new instability record ("card") for a free-text topic, in the same
shape as the static catalog. Generated cards get GEN-xxx ids and never carry
an experimentComponent. Any failure falls back to a minimal placeholder card.
"""

import sys
import json
import argparse
import asyncio
import hashlib
from typing import Any, Dict, Optional

from tools.catalog import validate_instability
from tools.llm_client import call_gemini, call_ollama, parse_json_response
from tools.schemas import INSTABILITY_SCHEMA, check_required, schema_for_prompt
from tools.settings import LlmSettings, get_llm_settings

INTERPRETATION_FIELDS = ("summary", "mechanismExample", "obstruction", "resolution", "homotopyPath")


def placeholder_card(topic: str) -> Dict[str, Any]:
    return {
        "id": "GEN-000",
        "canonicalName": topic,
        "domain": "Science",
        "description": "Generated",
        "mathematicalFormulation": "x",
        "scientificInterpretation": {"summary": "Generated"}
    }


def card_id_for(topic: str) -> str:
    """Stable GEN-xxx id derived from the topic text."""
    digest = hashlib.sha1(topic.strip().lower().encode("utf-8")).hexdigest()
    return f"GEN-{int(digest[:6], 16) % 1000:03d}"


def build_card_prompt(topic: str) -> str:
    return f"""
Create a scientific instability card for "{topic}".
Use standard academic fields and accepted terminology. Avoid metaphors.
The mathematical formulation should be a single short formula string.

Output JSON.
{schema_for_prompt(INSTABILITY_SCHEMA)}
"""


def shape_card(topic: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    check_required(payload, INSTABILITY_SCHEMA)
    interpretation = payload["scientificInterpretation"]
    card = {
        "id": card_id_for(topic),
        "canonicalName": str(payload["canonicalName"]) or topic,
        "domain": str(payload["domain"]),
        "description": str(payload["description"]),
        "mathematicalFormulation": str(payload["mathematicalFormulation"]),
        "scientificInterpretation": {
            key: str(interpretation[key]) for key in INTERPRETATION_FIELDS if interpretation.get(key)
        },
    }
    if payload.get("simplifiedMathExplanation"):
        card["simplifiedMathExplanation"] = str(payload["simplifiedMathExplanation"])
    validate_instability(card)
    return card


async def generate_instability_data(topic: str, settings: Optional[LlmSettings] = None) -> Dict[str, Any]:
    """
    Generate an instability card for a topic.

    Returns:
        Instability dictionary; the placeholder card when no provider is available or on failure
    """
    settings = settings or get_llm_settings()
    prompt = build_card_prompt(topic)

    try:
        if settings.provider == "ollama":
            raw = await call_ollama(prompt, settings, json_mode=True)
        elif settings.has_gemini_key:
            response = await call_gemini(prompt, settings, schema=INSTABILITY_SCHEMA)
            raw = response.text
        else:
            return placeholder_card(topic)
        return shape_card(topic, parse_json_response(raw))
    except Exception as e:
        print(f"[InstabilityCardAgent] Could not generate card for '{topic}': {e}", file=sys.stderr)
        return placeholder_card(topic)


def main():
    """Main function to run the InstabilityCardAgent"""
    parser = argparse.ArgumentParser(description="Drafts an instability card for a topic")
    parser.add_argument("--topic", type=str, required=True, help="Topic, e.g. 'Turbulence onset'")
    parser.add_argument("--provider", type=str, choices=["gemini", "ollama"], help="Override LLM_PROVIDER")

    args = parser.parse_args()
    if not args.topic.strip():
        print("Error: topic must not be empty", file=sys.stderr)
        sys.exit(1)

    settings = get_llm_settings().with_overrides({"provider": args.provider})
    card = asyncio.run(generate_instability_data(args.topic, settings))
    print(json.dumps(card, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
