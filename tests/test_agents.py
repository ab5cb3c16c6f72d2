"""
Tests for the LLM-backed agents: mock mode, provider routing and failure fallbacks.
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from agents.HypothesisAgent import ERROR_SUMMARY, MOCK_SUMMARY, generate_experiment_hypothesis
from agents.InstabilityCardAgent import card_id_for, generate_instability_data, placeholder_card
from agents.ScientificAnalysisAgent import MOCK_ANALYSIS, analyze_instability
from agents.StressTestAgent import build_stress_test_prompt, generate_stress_test_analysis, mock_stress_test_result
from agents.UniversalSimulationAgent import (
    failed_simulation_result,
    mock_simulation_result,
    run_universal_simulation,
)
from tools.catalog import get_instability
from tools.llm_client import LlmConnectionError

ANALYSIS_PAYLOAD = {
    "diagnosis": "UV divergence of the Newtonian potential",
    "scientific_proposal": {
        "mechanism": "Renormalization",
        "mathematical_basis": "Effective field theory",
        "conceptual_map": "A cutoff at the Planck scale bounds the force"
    },
    "falsifiability": {
        "failure_condition": "Orbit collapses below the cutoff",
        "critical_experiment": "Decrease epsilon",
        "confidence_score": 150
    }
}

STRESS_PAYLOAD = {
    "analysis": "Gradient descent on a non-convex relaxation",
    "falsifiability": {
        "failure_condition": "Cost plateaus above 0.1",
        "critical_experiment": "Increase N",
        "confidence_score": -5
    }
}

CARD_PAYLOAD = {
    "canonicalName": "Turbulent Cascade",
    "domain": "Fluid Dynamics",
    "description": "Energy moves to ever smaller eddies.",
    "mathematicalFormulation": "E(k) ~ k^(-5/3)",
    "scientificInterpretation": {"summary": "Kolmogorov scaling", "resolution": "Viscous cutoff"}
}


def connection_failure():
    return AsyncMock(side_effect=LlmConnectionError("Local AI connection failed."))


class TestHypothesisAgent:

    def test_mock_without_key(self, mock_settings):
        assert asyncio.run(generate_experiment_hypothesis("BlackHole", {"epsilon": 0.5}, mock_settings)) == MOCK_SUMMARY

    def test_ollama_text_returned(self, ollama_settings):
        with patch("agents.HypothesisAgent.call_ollama", AsyncMock(return_value="Bounded orbit.")) as mock_call:
            text = asyncio.run(generate_experiment_hypothesis("BlackHole", {"epsilon": 0.5}, ollama_settings))
        assert text == "Bounded orbit."
        prompt = mock_call.call_args.args[0]
        assert "Analyze BlackHole" in prompt
        assert '"epsilon": 0.5' in prompt

    def test_ollama_failure_gives_error_summary(self, ollama_settings):
        with patch("agents.HypothesisAgent.call_ollama", connection_failure()):
            assert asyncio.run(generate_experiment_hypothesis("X", {}, ollama_settings)) == ERROR_SUMMARY

    def test_gemini_text_returned(self, gemini_settings):
        with patch("agents.HypothesisAgent.call_gemini", AsyncMock(return_value=SimpleNamespace(text="Gemini says hi"))):
            assert asyncio.run(generate_experiment_hypothesis("X", {}, gemini_settings)) == "Gemini says hi"


class TestScientificAnalysisAgent:

    def test_mock_without_key(self, mock_settings):
        result = asyncio.run(analyze_instability(get_instability("PHY-001"), mock_settings))
        assert result == MOCK_ANALYSIS
        result["diagnosis"] = "changed"
        assert MOCK_ANALYSIS["diagnosis"] == "Mock"

    def test_ollama_clamps_confidence(self, ollama_settings):
        with patch("agents.ScientificAnalysisAgent.call_ollama", AsyncMock(return_value=json.dumps(ANALYSIS_PAYLOAD))) as mock_call:
            result = asyncio.run(analyze_instability(get_instability("PHY-001"), ollama_settings))
        assert result["falsifiability"]["confidence_score"] == 100.0
        assert mock_call.call_args.kwargs["json_mode"] is True

    def test_gemini_adds_grounding_sources(self, gemini_settings):
        response = SimpleNamespace(
            text=json.dumps({"diagnosis": "Divergence"}),
            candidates=[SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=[
                SimpleNamespace(web=SimpleNamespace(title="Abel summation", uri="https://example.org/abel"))
            ]))]
        )
        with patch("agents.ScientificAnalysisAgent.call_gemini", AsyncMock(return_value=response)):
            result = asyncio.run(analyze_instability(get_instability("MATH-004"), gemini_settings))
        assert result["diagnosis"] == "Divergence"
        assert result["groundingSources"] == [{"title": "Abel summation", "uri": "https://example.org/abel"}]

    def test_missing_diagnosis_raises(self, ollama_settings):
        with patch("agents.ScientificAnalysisAgent.call_ollama", AsyncMock(return_value='{"other": 1}')):
            with pytest.raises(ValueError):
                asyncio.run(analyze_instability(get_instability("PHY-001"), ollama_settings))

    def test_connection_errors_propagate(self, ollama_settings):
        with patch("agents.ScientificAnalysisAgent.call_ollama", connection_failure()):
            with pytest.raises(LlmConnectionError):
                asyncio.run(analyze_instability(get_instability("PHY-001"), ollama_settings))


class TestUniversalSimulationAgent:

    def test_mock_without_key(self, mock_settings):
        assert asyncio.run(run_universal_simulation("Black Hole", "Decrease epsilon", mock_settings)) == mock_simulation_result()

    def test_verdict_normalized(self, ollama_settings):
        payload = json.dumps({"logs": ["init", "step 1"], "outcome": "Stable orbit", "verdict": "pass"})
        with patch("agents.UniversalSimulationAgent.call_ollama", AsyncMock(return_value=payload)):
            result = asyncio.run(run_universal_simulation("Black Hole", "Decrease epsilon", ollama_settings))
        assert result == {"logs": ["init", "step 1"], "outcome": "Stable orbit", "verdict": "PASS"}

    def test_unknown_verdict_is_fail(self, ollama_settings):
        payload = json.dumps({"logs": "one line", "outcome": "Unclear", "verdict": "maybe"})
        with patch("agents.UniversalSimulationAgent.call_ollama", AsyncMock(return_value=payload)):
            result = asyncio.run(run_universal_simulation("X", "Y", ollama_settings))
        assert result["verdict"] == "FAIL"
        assert result["logs"] == ["one line"]

    def test_failure_gives_fail_result(self, ollama_settings):
        with patch("agents.UniversalSimulationAgent.call_ollama", connection_failure()):
            assert asyncio.run(run_universal_simulation("X", "Y", ollama_settings)) == failed_simulation_result()


class TestStressTestAgent:

    def test_mock_without_key(self, mock_settings):
        assert asyncio.run(generate_stress_test_analysis("SubsetSum", {}, mock_settings)) == mock_stress_test_result()

    def test_prompt_includes_meta(self):
        prompt = build_stress_test_prompt("SubsetSum", {"finalCost": 0.01}, {"difficulty": "Critical"})
        assert "SubsetSum" in prompt
        assert '"difficulty": "Critical"' in prompt

    def test_ollama_result_clamped(self, ollama_settings):
        with patch("agents.StressTestAgent.call_ollama", AsyncMock(return_value=json.dumps(STRESS_PAYLOAD))):
            result = asyncio.run(generate_stress_test_analysis("SubsetSum", {}, ollama_settings))
        assert result["falsifiability"]["confidence_score"] == 0.0

    def test_incomplete_payload_gives_none(self, ollama_settings):
        with patch("agents.StressTestAgent.call_ollama", AsyncMock(return_value='{"analysis": "only"}')):
            assert asyncio.run(generate_stress_test_analysis("SubsetSum", {}, ollama_settings)) is None

    def test_failure_gives_none(self, ollama_settings):
        with patch("agents.StressTestAgent.call_ollama", connection_failure()):
            assert asyncio.run(generate_stress_test_analysis("SubsetSum", {}, ollama_settings)) is None


class TestInstabilityCardAgent:

    def test_placeholder_without_key(self, mock_settings):
        assert asyncio.run(generate_instability_data("Turbulence", mock_settings)) == placeholder_card("Turbulence")

    def test_card_id_is_stable(self):
        assert card_id_for("Turbulence") == card_id_for("  turbulence ")
        assert card_id_for("Turbulence").startswith("GEN-")
        assert len(card_id_for("Turbulence")) == 7

    def test_generated_card(self, ollama_settings):
        with patch("agents.InstabilityCardAgent.call_ollama", AsyncMock(return_value=json.dumps(CARD_PAYLOAD))):
            card = asyncio.run(generate_instability_data("Turbulence", ollama_settings))
        assert card["id"] == card_id_for("Turbulence")
        assert card["domain"] == "Fluid Dynamics"
        assert card["scientificInterpretation"] == {"summary": "Kolmogorov scaling", "resolution": "Viscous cutoff"}
        assert "experimentComponent" not in card

    def test_failure_gives_placeholder(self, ollama_settings):
        with patch("agents.InstabilityCardAgent.call_ollama", connection_failure()):
            card = asyncio.run(generate_instability_data("Turbulence", ollama_settings))
        assert card["id"] == "GEN-000"
        assert card["canonicalName"] == "Turbulence"
