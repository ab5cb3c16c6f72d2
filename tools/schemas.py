"""
Response schemas for structured LLM calls.

Written in the Gemini schema dialect (upper-case type names) so they can be
passed straight to GenerationConfig.response_schema. The same dictionaries are
embedded in prompts for providers without schema support.
"""
import json
from typing import Any, Dict, List, Optional

FALSIFIABILITY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "failure_condition": {
            "type": "STRING",
            "description": "A concrete data pattern that would falsify the current hypothesis."
        },
        "critical_experiment": {
            "type": "STRING",
            "description": "A proposed standard stress test (e.g., 'Increase N', 'Add Noise', 'Adversarial Input')."
        },
        "confidence_score": {
            "type": "NUMBER",
            "description": "0-100 score of robustness based on standard statistical principles."
        }
    },
    "required": ["failure_condition", "critical_experiment", "confidence_score"]
}

SCIENTIFIC_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "analysis": {
            "type": "STRING",
            "description": "A rigorous scientific interpretation of the experiment. Use standard academic terminology (Physics, Math, CS)."
        },
        "falsifiability": FALSIFIABILITY_SCHEMA
    },
    "required": ["analysis", "falsifiability"]
}

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "diagnosis": {
            "type": "STRING",
            "description": "Standard scientific diagnosis of the instability."
        },
        "scientific_proposal": {
            "type": "OBJECT",
            "properties": {
                "mechanism": {
                    "type": "STRING",
                    "description": "The standard mechanism used (e.g. 'Renormalization', 'Relaxation')."
                },
                "mathematical_basis": {
                    "type": "STRING",
                    "description": "The math backing it (e.g. 'Analytic Continuation', 'Convex Optimization')."
                },
                "conceptual_map": {
                    "type": "STRING",
                    "description": "How this standard theory applies to the problem."
                }
            },
            "required": ["mechanism", "mathematical_basis", "conceptual_map"]
        },
        "falsifiability": FALSIFIABILITY_SCHEMA
    },
    "required": ["diagnosis", "scientific_proposal", "falsifiability"]
}

SIMULATION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "logs": {"type": "ARRAY", "items": {"type": "STRING"}},
        "outcome": {"type": "STRING"},
        "verdict": {"type": "STRING", "enum": ["PASS", "FAIL"]}
    },
    "required": ["logs", "outcome", "verdict"]
}

INSTABILITY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "canonicalName": {"type": "STRING"},
        "domain": {"type": "STRING", "description": "Standard academic field, e.g. 'Fluid Dynamics'."},
        "description": {"type": "STRING"},
        "mathematicalFormulation": {"type": "STRING"},
        "simplifiedMathExplanation": {"type": "STRING"},
        "scientificInterpretation": {
            "type": "OBJECT",
            "properties": {
                "summary": {"type": "STRING"},
                "mechanismExample": {"type": "STRING"},
                "obstruction": {"type": "STRING"},
                "resolution": {"type": "STRING"}
            },
            "required": ["summary"]
        }
    },
    "required": ["canonicalName", "domain", "description", "mathematicalFormulation", "scientificInterpretation"]
}


def schema_for_prompt(schema: Dict[str, Any]) -> str:
    """Render a schema's properties as the JSON block appended to prompts."""
    return json.dumps({"type": "object", "properties": schema["properties"]}, indent=2)


def check_required(payload: Any, schema: Dict[str, Any], required: Optional[List[str]] = None) -> None:
    """
    Raise ValueError if payload lacks a required key.

    Args:
        payload: Parsed LLM response
        schema: Schema the response was requested with
        required: Top-level keys to enforce instead of the schema's own list.
            Nested objects are always checked against their schema.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    keys = schema.get("required", []) if required is None else required
    for key in keys:
        if key not in payload:
            raise ValueError(f"LLM response missing '{key}' field")
        sub_schema = schema["properties"].get(key, {})
        if sub_schema.get("type") == "OBJECT":
            check_required(payload[key], sub_schema)
