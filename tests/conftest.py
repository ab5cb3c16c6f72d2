import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tools.settings import LlmSettings


@pytest.fixture
def mock_settings():
    """Gemini provider without a key: every agent answers with its mock payload."""
    return LlmSettings(provider="gemini", gemini_api_key=None)


@pytest.fixture
def ollama_settings():
    return LlmSettings(provider="ollama", ollama_base_url="http://ollama.test:11434", ollama_model="test-model")


@pytest.fixture
def gemini_settings():
    return LlmSettings(provider="gemini", gemini_api_key="test-key", gemini_model="gemini-test")
