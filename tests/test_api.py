"""
Tests for the Flask API.
"""
from unittest.mock import AsyncMock, patch

import pytest

from app import app


@pytest.fixture
def client(monkeypatch):
    for name in ("LLM_PROVIDER", "GEMINI_API_KEY", "API_KEY"):
        monkeypatch.delenv(name, raising=False)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


class TestCatalogEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy"}

    def test_list(self, client):
        body = client.get("/api/instabilities").get_json()
        assert body["success"] is True
        assert len(body["result"]) == 10
        assert "Physics" in body["domains"]

    def test_list_filtered(self, client):
        body = client.get("/api/instabilities?domain=machine").get_json()
        assert [r["id"] for r in body["result"]] == ["CS-ML-001", "CS-ML-003"]

    def test_get_one(self, client):
        body = client.get("/api/instabilities/CS-001").get_json()
        assert body["result"]["experimentComponent"] == "SubsetSum"

    def test_get_unknown(self, client):
        assert client.get("/api/instabilities/NOPE").status_code == 404

    def test_experiment_list(self, client):
        assert "BlackHole" in client.get("/api/experiments").get_json()["result"]


class TestAnalyzeInstability:

    def test_requires_body(self, client):
        assert client.post("/api/analyze-instability", json={}).status_code == 400

    def test_unknown_id(self, client):
        assert client.post("/api/analyze-instability", json={"instability_id": "NOPE"}).status_code == 404

    def test_invalid_record(self, client):
        response = client.post("/api/analyze-instability", json={"instability": {"id": "X"}})
        assert response.status_code == 400

    def test_mock_analysis(self, client):
        body = client.post("/api/analyze-instability", json={"instability_id": "PHY-001"}).get_json()
        assert body["result"]["diagnosis"] == "Mock"

    @patch("app.analyze_instability", new_callable=AsyncMock)
    def test_uses_llm_overrides(self, mock_analyze, client):
        mock_analyze.return_value = {"diagnosis": "d"}
        response = client.post("/api/analyze-instability", json={
            "instability_id": "MATH-004",
            "llm": {"provider": "ollama", "ollama_model": "phi3"},
        })
        assert response.status_code == 200
        instability, settings = mock_analyze.call_args.args
        assert instability["id"] == "MATH-004"
        assert settings.provider == "ollama"
        assert settings.ollama_model == "phi3"

    @patch("app.analyze_instability", new_callable=AsyncMock)
    def test_agent_error(self, mock_analyze, client):
        mock_analyze.side_effect = RuntimeError("Local AI connection failed.")
        response = client.post("/api/analyze-instability", json={"instability_id": "PHY-001"})
        assert response.status_code == 500
        assert "Local AI connection failed." in response.get_json()["error"]

    def test_bad_provider(self, client):
        response = client.post("/api/analyze-instability", json={"instability_id": "PHY-001", "llm": {"provider": "x"}})
        assert response.status_code == 400


class TestCommentaryEndpoints:

    def test_run_simulation_mock(self, client):
        body = client.post("/api/run-simulation", json={
            "instability_name": "Black Hole Singularity",
            "experiment_proposal": "Decrease epsilon",
        }).get_json()
        assert body["result"]["verdict"] == "PASS"

    def test_run_simulation_missing_proposal(self, client):
        response = client.post("/api/run-simulation", json={"instability_name": "X"})
        assert response.status_code == 400

    def test_stress_test_mock(self, client):
        body = client.post("/api/stress-test", json={"experiment_name": "SubsetSum", "results": {"finalCost": 0.01}}).get_json()
        assert body["result"]["falsifiability"]["confidence_score"] == 50

    @patch("app.generate_stress_test_analysis", new_callable=AsyncMock)
    def test_stress_test_failure(self, mock_stress, client):
        mock_stress.return_value = None
        response = client.post("/api/stress-test", json={"experiment_name": "SubsetSum", "results": {}})
        assert response.status_code == 502

    def test_stress_test_requires_results(self, client):
        response = client.post("/api/stress-test", json={"experiment_name": "SubsetSum", "results": [1]})
        assert response.status_code == 400

    def test_hypothesis_mock(self, client):
        body = client.post("/api/experiment-hypothesis", json={"experiment_name": "BlackHole", "results": {"epsilon": 0.5}}).get_json()
        assert body["result"]["hypothesis"] == "Mock summary."

    def test_generate_instability_placeholder(self, client):
        body = client.post("/api/generate-instability", json={"topic": "Turbulence"}).get_json()
        assert body["result"]["id"] == "GEN-000"

    def test_generate_instability_requires_topic(self, client):
        assert client.post("/api/generate-instability", json={"topic": "  "}).status_code == 400


class TestRunExperiment:

    def test_run_clock(self, client):
        response = client.post("/api/experiments/FFZClock/run", json={"params": {"fibIndex": 3}, "commentary": False})
        assert response.status_code == 200
        output = response.get_json()["result"]
        assert output["result"]["syncSteps"] == [6, 12]
        assert output["hypothesis"] is None

    def test_run_with_mock_commentary(self, client):
        output = client.post("/api/experiments/RussellsParadox/run", json={"params": {"gas": 5}}).get_json()["result"]
        assert output["hypothesis"] == "Mock summary."

    def test_run_without_body(self, client):
        response = client.post("/api/experiments/FFZKernel/run")
        assert response.status_code == 200
        assert response.get_json()["result"]["result"]["seriesType"] == "Grandi"

    def test_unknown_component(self, client):
        assert client.post("/api/experiments/Pendulum/run", json={}).status_code == 404

    def test_bad_params(self, client):
        response = client.post("/api/experiments/BlackHole/run", json={"params": {"epsilon": 9}, "commentary": False})
        assert response.status_code == 400
        assert response.get_json()["error"].startswith("Invalid parameters")

    def test_commentary_must_be_bool(self, client):
        response = client.post("/api/experiments/BlackHole/run", json={"commentary": "no"})
        assert response.status_code == 400

    def test_unbounded_duration_rejected(self, client):
        response = client.post("/api/experiments/TorsionCancellation/run", json={
            "params": {"modulus": 5, "duration": 1e9},
            "commentary": False,
        })
        assert response.status_code == 400
