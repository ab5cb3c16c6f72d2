"""
LLM provider client

Thin wrappers around the two supported providers:
- Gemini via google-generativeai (async generate_content_async)
- Ollama via its local HTTP API (requests, run in a worker thread so the
  event loop keeps stepping frames while we wait)
"""
import asyncio
import json
import re
import sys
from typing import Any, Dict, Optional

import requests
from google import generativeai as genai

from tools.settings import LlmSettings


class LlmConnectionError(Exception):
    """Raised when the local model server cannot be reached or answers with an error."""


def clean_json_string(text: str) -> str:
    """Strip whitespace and a surrounding markdown code fence (``` or ```json)."""
    clean = text.strip()
    if clean.startswith("```"):
        clean = re.sub(r"^```(json)?", "", clean)
        clean = re.sub(r"```$", "", clean)
    return clean.strip()


def parse_json_response(text: str) -> Any:
    """
    Parse an LLM reply as JSON.

    Falls back to the first {...} block when the model wrapped the JSON in prose.
    """
    if text is None:
        raise ValueError("LLM returned an empty response")
    cleaned = clean_json_string(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        json_match = re.search(r"\{[\s\S]*\}", cleaned)
        if json_match:
            return json.loads(json_match.group(0))
        raise ValueError("LLM response is not valid JSON")


def _post_ollama(url: str, body: Dict[str, Any], timeout: float) -> requests.Response:
    return requests.post(url, json=body, headers={"Content-Type": "application/json"}, timeout=timeout)


async def call_ollama(prompt: str, settings: LlmSettings, json_mode: bool = False) -> str:
    """
    Send a non-streaming generate request to an Ollama server.

    Args:
        prompt: Full prompt text
        settings: Provides base URL, model and timeout
        json_mode: Ask Ollama to constrain output to JSON

    Returns:
        The model's response text

    Raises:
        LlmConnectionError: on connection failure or non-2xx status
    """
    url = f"{settings.ollama_base_url}/api/generate"
    body = {
        "model": settings.ollama_model,
        "prompt": prompt,
        "stream": False,
    }
    if json_mode:
        body["format"] = "json"

    try:
        response = await asyncio.to_thread(_post_ollama, url, body, settings.ollama_timeout)
        if not response.ok:
            raise LlmConnectionError(f"Ollama status {response.status_code}")
        return response.json()["response"]
    except (requests.RequestException, LlmConnectionError, KeyError, ValueError) as e:
        print(f"[LLM] Error calling Ollama API: {e}", file=sys.stderr)
        raise LlmConnectionError("Local AI connection failed.") from e


async def call_gemini(prompt: str, settings: LlmSettings, schema: Optional[Dict[str, Any]] = None):
    """
    Run one Gemini completion.

    Args:
        prompt: Full prompt text
        settings: Provides API key and model name
        schema: Optional response schema; when given the reply is constrained to JSON

    Returns:
        The raw google-generativeai response (callers read .text and grounding metadata)
    """
    if not settings.has_gemini_key:
        raise Exception("GEMINI_API_KEY not found in environment variables. Please set it in .env file.")

    genai.configure(api_key=settings.gemini_api_key)
    model = genai.GenerativeModel(settings.gemini_model)

    generation_config = None
    if schema is not None:
        generation_config = genai.types.GenerationConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )

    return await model.generate_content_async(prompt, generation_config=generation_config)


def extract_grounding_sources(response) -> list:
    """Collect {title, uri} pairs from a Gemini response's grounding metadata, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web and getattr(web, "uri", None):
            sources.append({"title": getattr(web, "title", "") or web.uri, "uri": web.uri})
    return sources
