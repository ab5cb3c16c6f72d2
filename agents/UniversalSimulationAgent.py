#!/usr/bin/env python3
"""
UniversalSimulationAgent

Asks the LLM to play a computational physics engine and "run" the critical
experiment proposed by a scientific analysis, returning step logs, an outcome
and a PASS/FAIL verdict.
"""

import sys
import json
import argparse
import asyncio
from typing import Any, Dict, Optional

from tools.llm_client import call_gemini, call_ollama, parse_json_response
from tools.schemas import SIMULATION_SCHEMA, check_required, schema_for_prompt
from tools.settings import LlmSettings, get_llm_settings

VERDICTS = ("PASS", "FAIL")


def mock_simulation_result() -> Dict[str, Any]:
    return {"logs": ["Simulation Mock"], "outcome": "Pass", "verdict": "PASS"}


def failed_simulation_result() -> Dict[str, Any]:
    return {"logs": ["Error"], "outcome": "Failed", "verdict": "FAIL"}


def build_simulation_prompt(instability_name: str, experiment_proposal: str) -> str:
    return f"""
Act as a Computational Physics Engine.
Simulate the following Critical Experiment for "{instability_name}": "{experiment_proposal}".

1. Initialize parameters.
2. Simulate step-by-step using standard scientific principles (Conservation of Energy, Gradient Descent, etc.).
3. Generate plausible data.
4. Verdict: Did the system remain stable/robust?

Output JSON ONLY.
{schema_for_prompt(SIMULATION_SCHEMA)}
"""


def normalize_simulation_result(result: Dict[str, Any]) -> Dict[str, Any]:
    check_required(result, SIMULATION_SCHEMA)
    logs = result["logs"]
    if not isinstance(logs, list):
        logs = [str(logs)]
    verdict = str(result["verdict"]).upper()
    if verdict not in VERDICTS:
        verdict = "FAIL"
    return {
        "logs": [str(line) for line in logs],
        "outcome": str(result["outcome"]),
        "verdict": verdict,
    }


async def run_universal_simulation(
    instability_name: str,
    experiment_proposal: str,
    settings: Optional[LlmSettings] = None
) -> Dict[str, Any]:
    """
    Simulate a proposed critical experiment via the LLM.

    Returns:
        SimulationResult dict. Any failure yields a FAIL result instead of raising.
    """
    settings = settings or get_llm_settings()
    prompt = build_simulation_prompt(instability_name, experiment_proposal)

    try:
        if settings.provider == "ollama":
            raw = await call_ollama(prompt, settings, json_mode=True)
        elif settings.has_gemini_key:
            response = await call_gemini(prompt, settings, schema=SIMULATION_SCHEMA)
            raw = response.text
        else:
            return mock_simulation_result()
        return normalize_simulation_result(parse_json_response(raw))
    except Exception as e:
        print(f"[UniversalSimulationAgent] Simulation failed for {instability_name}: {e}", file=sys.stderr)
        return failed_simulation_result()


def main():
    """Main function to run the UniversalSimulationAgent"""
    parser = argparse.ArgumentParser(
        description="Runs an LLM-simulated critical experiment for an instability"
    )
    parser.add_argument("--name", type=str, required=True, help="Instability canonical name")
    parser.add_argument("--proposal", type=str, required=True, help="Critical experiment to simulate")
    parser.add_argument("--provider", type=str, choices=["gemini", "ollama"], help="Override LLM_PROVIDER")

    args = parser.parse_args()
    settings = get_llm_settings().with_overrides({"provider": args.provider})

    print(f"Simulating '{args.proposal}' for {args.name}...", file=sys.stderr)
    result = asyncio.run(run_universal_simulation(args.name, args.proposal, settings))
    print(json.dumps(result, indent=2))
    if result["verdict"] != "PASS":
        sys.exit(2)


if __name__ == "__main__":
    main()
