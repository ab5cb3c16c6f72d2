#!/usr/bin/env python3
"""
HypothesisAgent

Turns the numbers produced by an experiment run into a short, technical
scientific commentary (free text, no schema).

Never raises: a provider failure is reported as "Analysis Error" so the
experiment view can still finish.
"""

import sys
import json
import argparse
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from tools.llm_client import call_gemini, call_ollama
from tools.settings import LlmSettings, get_llm_settings

MOCK_SUMMARY = "Mock summary."
ERROR_SUMMARY = "Analysis Error"


def build_hypothesis_prompt(experiment_name: str, results: Dict[str, Any]) -> str:
    return f"Act as a Scientist. Analyze {experiment_name}. Results: {json.dumps(results)}. Concise, technical summary."


async def generate_experiment_hypothesis(
    experiment_name: str,
    results: Dict[str, Any],
    settings: Optional[LlmSettings] = None
) -> str:
    """
    Generate a concise scientific summary of one experiment run.

    Args:
        experiment_name: Experiment identifier, e.g. "BlackHole" or "AbelRegularization"
        results: JSON-serialisable run results
        settings: Provider settings (defaults to the environment)

    Returns:
        Commentary text, "Mock summary." without a Gemini key, or "Analysis Error" on failure
    """
    settings = settings or get_llm_settings()
    prompt = build_hypothesis_prompt(experiment_name, results)

    try:
        if settings.provider == "ollama":
            return await call_ollama(prompt, settings)
        if not settings.has_gemini_key:
            return MOCK_SUMMARY
        response = await call_gemini(prompt, settings)
        return response.text
    except Exception as e:
        print(f"[HypothesisAgent] Error generating hypothesis for {experiment_name}: {e}", file=sys.stderr)
        return ERROR_SUMMARY


def main():
    """Main function to run the HypothesisAgent"""
    parser = argparse.ArgumentParser(
        description="Generates a short scientific commentary for an experiment run"
    )
    parser.add_argument("--experiment", type=str, required=True, help="Experiment name, e.g. BlackHole")
    parser.add_argument(
        "--results",
        type=str,
        required=True,
        help="Path to a JSON file with the experiment results"
    )
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

    settings = get_llm_settings().with_overrides({"provider": args.provider})
    print(f"Generating hypothesis for {args.experiment}...", file=sys.stderr)
    summary = asyncio.run(generate_experiment_hypothesis(args.experiment, results, settings))
    print(summary)


if __name__ == "__main__":
    main()
