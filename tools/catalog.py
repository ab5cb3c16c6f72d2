"""
Instability catalog

Static, read-only atlas of instability records. The JSON file is loaded once
per process; every lookup hands out a copy so callers cannot mutate the
loaded records.
"""
import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

CATALOG_PATH = Path(__file__).parent / "instabilities.json"

EXPERIMENT_COMPONENTS = (
    "SubsetSum",
    "BlackHole",
    "GradientFlow",
    "RussellsParadox",
    "FFZClock",
    "FFZKernel",
    "TorsionCancellation",
)

REQUIRED_FIELDS = ("id", "canonicalName", "domain", "description", "mathematicalFormulation", "scientificInterpretation")


def validate_instability(record: Dict[str, Any]) -> None:
    """Raise ValueError if a record is missing required fields or names an unknown experiment."""
    for field in REQUIRED_FIELDS:
        if field not in record:
            raise ValueError(f"Instability record missing required field: {field}")
    interpretation = record["scientificInterpretation"]
    if not isinstance(interpretation, dict) or "summary" not in interpretation:
        raise ValueError(f"Instability {record['id']} needs scientificInterpretation.summary")
    component = record.get("experimentComponent")
    if component is not None and component not in EXPERIMENT_COMPONENTS:
        raise ValueError(f"Instability {record['id']} names unknown experiment: {component}")


@lru_cache(maxsize=1)
def _load_catalog() -> Tuple[Dict[str, Any], ...]:
    with open(CATALOG_PATH, "r", encoding="utf-8") as f:
        records = json.load(f)

    seen = set()
    for record in records:
        validate_instability(record)
        if record["id"] in seen:
            raise ValueError(f"Duplicate instability id in catalog: {record['id']}")
        seen.add(record["id"])

    return tuple(records)


def list_instabilities(domain: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Return all catalog records in catalog order.

    Args:
        domain: Optional case-insensitive substring matched against each record's domain

    Returns:
        List of instability dictionaries (copies)
    """
    records = _load_catalog()
    if domain:
        needle = domain.lower()
        records = tuple(r for r in records if needle in r["domain"].lower())
    return copy.deepcopy(list(records))


def get_instability(instability_id: str) -> Dict[str, Any]:
    """Look up one record by id. Raises KeyError for unknown ids."""
    for record in _load_catalog():
        if record["id"] == instability_id:
            return copy.deepcopy(record)
    raise KeyError(f"Unknown instability id: {instability_id}")


def list_domains() -> List[str]:
    domains = []
    for record in _load_catalog():
        if record["domain"] not in domains:
            domains.append(record["domain"])
    return domains
