#!/usr/bin/env python3
"""
FFZKernelExperiment - MATH-004

Abel regularization of divergent series. Partial sums of the raw series are
compared against partial sums damped by the regulator exp(-epsilon * n).
Nothing is animated here: the curves are recomputed whenever a parameter
changes and commentary is requested on demand.
"""

import sys
import json
import math
import argparse
import asyncio
from typing import Any, Dict, List, Optional

from agents.HypothesisAgent import generate_experiment_hypothesis
from tools.settings import LlmSettings

SERIES_TYPES = ("Grandi", "AlternatingNatural", "RandomDivergence")
POINTS = 50
EPSILON_RANGE = (0.01, 1.0)

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280
LCG_SEED = 0.5


def lcg_sequence(count: int, seed: float = LCG_SEED) -> List[float]:
    """Successive states of seed = (seed * 9301 + 49297) mod 233280."""
    values = []
    for _ in range(count):
        seed = (seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        values.append(seed)
    return values


def series_terms(series_type: str, points: int = POINTS) -> List[float]:
    if series_type not in SERIES_TYPES:
        raise ValueError(f"Unknown series type '{series_type}'. Expected one of: {', '.join(SERIES_TYPES)}")

    if series_type == "Grandi":
        return [1.0 if n % 2 != 0 else -1.0 for n in range(1, points + 1)]
    if series_type == "AlternatingNatural":
        return [float(n) if n % 2 != 0 else float(-n) for n in range(1, points + 1)]

    seeds = lcg_sequence(points)
    return [((seed / LCG_MODULUS) * 2 - 1) * n * 0.5 for n, seed in zip(range(1, points + 1), seeds)]


def abel_partial_sums(series_type: str, epsilon: float, points: int = POINTS) -> Dict[str, Any]:
    """
    Classical and regularized partial sums.

    Returns:
        Dictionary with 'classical' and 'kernel' lists of {n, val} and 'lastKernel'
    """
    low, high = EPSILON_RANGE
    if not low <= epsilon <= high:
        raise ValueError(f"epsilon must be between {low} and {high}, got {epsilon}")

    classical = []
    kernel = []
    classical_sum = 0.0
    kernel_sum = 0.0
    for n, term in enumerate(series_terms(series_type, points), start=1):
        classical_sum += term
        kernel_sum += term * math.exp(-epsilon * n)
        classical.append({"n": n, "val": classical_sum})
        kernel.append({"n": n, "val": kernel_sum})

    return {"classical": classical, "kernel": kernel, "lastKernel": kernel_sum}


def abel_closed_form(series_type: str, epsilon: float) -> Optional[Dict[str, float]]:
    """
    Infinite regularized sum and its epsilon -> 0 limit.

    With x = exp(-epsilon): sum (-1)^(n+1) x^n = x / (1 + x) -> 1/2 and
    sum (-1)^(n+1) n x^n = x / (1 + x)^2 -> 1/4. None for the random series.
    """
    x = math.exp(-epsilon)
    if series_type == "Grandi":
        return {"regularized": x / (1 + x), "limit": 0.5}
    if series_type == "AlternatingNatural":
        return {"regularized": x / (1 + x) ** 2, "limit": 0.25}
    if series_type == "RandomDivergence":
        return None
    raise ValueError(f"Unknown series type '{series_type}'")


def chart_paths(data: Dict[str, Any]) -> Dict[str, Any]:
    """SVG path strings for both curves in a 100 x 100 viewbox centred on y = 50."""
    values = [abs(d["val"]) for d in data["classical"]] + [abs(d["val"]) for d in data["kernel"]]
    max_y = (max(values) if values else 0.0) * 1.1 or 1.0
    span = max(len(data["classical"]) - 1, 1)

    def scale_y(val: float) -> float:
        return 50 - (val / max_y) * 45

    def scale_x(n: int) -> float:
        return ((n - 1) / span) * 100

    def to_path(points: List[Dict[str, float]]) -> str:
        return " ".join(
            f"{'M' if i == 0 else 'L'} {scale_x(d['n']):g} {scale_y(d['val']):g}" for i, d in enumerate(points)
        )

    return {"maxY": max_y, "classicalPath": to_path(data["classical"]), "kernelPath": to_path(data["kernel"])}


def compute_kernel(series_type: str = "Grandi", epsilon: float = 0.1) -> Dict[str, Any]:
    data = abel_partial_sums(series_type, epsilon)
    data.update({"seriesType": series_type, "epsilon": epsilon})
    data["closedForm"] = abel_closed_form(series_type, epsilon)
    data["chart"] = chart_paths(data)
    return data


async def analyze_kernel(
    series_type: str = "Grandi",
    epsilon: float = 0.1,
    settings: Optional[LlmSettings] = None,
    commentary: bool = True
) -> Dict[str, Any]:
    """Compute the curves and, on request, the convergence commentary."""
    result = compute_kernel(series_type, epsilon)
    hypothesis = None
    if commentary:
        hypothesis = await generate_experiment_hypothesis(
            "AbelRegularization",
            {"seriesType": series_type, "convergedValue": result["lastKernel"], "epsilon": epsilon},
            settings,
        )
    return {"experiment": "FFZKernel", "result": result, "frames": 0, "cancelled": False, "hypothesis": hypothesis}


def main():
    """Main function to run the FFZKernelExperiment"""
    parser = argparse.ArgumentParser(description="Abel regularization of divergent series")
    parser.add_argument("--series", type=str, default="Grandi", choices=SERIES_TYPES)
    parser.add_argument("--epsilon", type=float, default=0.1, help="Regulator epsilon (0.01-1.0)")
    parser.add_argument("--no-commentary", action="store_true", help="Skip the LLM analysis")

    args = parser.parse_args()

    try:
        output = asyncio.run(analyze_kernel(args.series, args.epsilon, commentary=not args.no_commentary))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    output["result"].pop("chart")
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
