#!/usr/bin/env python3
"""
StressTestAgent

Skeptical review of an experiment's results: a short analysis plus a
falsifiability block (failure condition, critical experiment, confidence).
Returns None when the provider call or the response parsing fails.
"""

import sys
import json
import argparse
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from agents.ScientificAnalysisAgent import normalize_falsifiability
from tools.llm_client import call_gemini, call_ollama, parse_json_response
from tools.schemas import SCIENTIFIC_SCHEMA, check_required, schema_for_prompt
from tools.settings import LlmSettings, get_llm_settings


def mock_stress_test_result() -> Dict[str, Any]:
    return {
        "analysis": "Mock Analysis",
        "falsifiability": {
            "confidence_score": 50,
            "failure_condition": "N/A",
            "critical_experiment": "N/A"
        }
    }


def build_stress_test_prompt(experiment_name: str, results: Dict[str, Any], meta: Optional[Dict[str, Any]] = None) -> str:
    context = f"Analyze the experiment {experiment_name} with results: {json.dumps(results)}."
    if meta:
        context += f" Run metadata: {json.dumps(meta)}."

    return f"""
You are a Scientific Skeptic.
Analyze the following experiment results.
Avoid metaphors. Use standard terms from Physics, Computer Science, or Mathematics.

Context: {context}

Return JSON.
{schema_for_prompt(SCIENTIFIC_SCHEMA)}
"""


async def generate_stress_test_analysis(
    experiment_name: str,
    results: Dict[str, Any],
    settings: Optional[LlmSettings] = None,
    meta: Optional[Dict[str, Any]] = None
) -> Optional[Dict[str, Any]]:
    """
    Args:
        experiment_name: e.g. "SubsetSum"
        results: Run results (final cost, solution sum, status, ...)
        settings: Provider settings (defaults to the environment)
        meta: Extra run context, e.g. {"difficulty": "Critical"}

    Returns:
        StressTestResult dict, or None on failure
    """
    settings = settings or get_llm_settings()
    prompt = build_stress_test_prompt(experiment_name, results, meta)

    try:
        if settings.provider == "ollama":
            raw = await call_ollama(prompt, settings, json_mode=True)
        elif settings.has_gemini_key:
            response = await call_gemini(prompt, settings, schema=SCIENTIFIC_SCHEMA)
            raw = response.text
        else:
            return mock_stress_test_result()

        result = parse_json_response(raw)
        check_required(result, SCIENTIFIC_SCHEMA)
        return normalize_falsifiability(result)
    except Exception as e:
        print(f"[StressTestAgent] Stress test analysis failed for {experiment_name}: {e}", file=sys.stderr)
        return None


def main():
    """Main function to run the StressTestAgent"""
    parser = argparse.ArgumentParser(
        description="Generates a falsifiability-focused analysis of experiment results"
    )
    parser.add_argument("--experiment", type=str, required=True, help="Experiment name, e.g. SubsetSum")
    parser.add_argument("--results", type=str, required=True, help="Path to a JSON file with the results")
    parser.add_argument("--difficulty", type=str, help="Optional difficulty label passed as metadata")
    parser.add_argument("--provider", type=str, choices=["gemini", "ollama"], help="Override LLM_PROVIDER")

    args = parser.parse_args()

    try:
        results_path = Path(args.results)
        if not results_path.exists():
            print(f"Error: Results file not found: {results_path}", file=sys.stderr)
            sys.exit(1)
        with open(results_path, 'r') as f:
            results = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in results file: {e}", file=sys.stderr)
        sys.exit(1)

    meta = {"difficulty": args.difficulty} if args.difficulty else None
    settings = get_llm_settings().with_overrides({"provider": args.provider})

    result = asyncio.run(generate_stress_test_analysis(args.experiment, results, settings, meta))
    if result is None:
        print("Error: stress test analysis failed", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
