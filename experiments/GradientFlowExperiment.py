#!/usr/bin/env python3
"""
GradientFlowExperiment - CS-ML-001

A signal norm pushed through `depth` layers. Each layer multiplies it by a gain
drawn around `weight_scale` (same LCG as the Abel kernel, so runs repeat
exactly). The three modes show why deep products vanish or explode and how
normalization and residual connections keep the norm near 1.
"""

import sys
import json
import math
import argparse
import asyncio
from typing import Any, Callable, Dict, List, Optional

from agents.HypothesisAgent import generate_experiment_hypothesis
from experiments.FFZKernelExperiment import LCG_MODULUS, lcg_sequence
from experiments.frame_loop import CancelFlag, Frame, is_cancelled, run_frames
from tools.settings import LlmSettings

MODES = ("plain", "normalized", "residual")
VANISHING_NORM = 1e-6
EXPLODING_NORM = 1e6
GAIN_JITTER = 0.1
MAX_DEPTH = 200
WEIGHT_SCALE_RANGE = (0.1, 2.0)


def layer_gains(depth: int, weight_scale: float) -> List[float]:
    """Per-layer gains weight_scale * (1 +/- GAIN_JITTER)."""
    return [weight_scale * (1 + GAIN_JITTER * ((seed / LCG_MODULUS) * 2 - 1)) for seed in lcg_sequence(depth)]


def propagate(norm: float, gain: float, mode: str, depth: int) -> float:
    if mode == "plain":
        return norm * gain
    if mode == "normalized":
        return 1.0
    if mode == "residual":
        return norm * (1 + (gain - 1) / depth)
    raise ValueError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}")


def classify_norm(norm: float) -> str:
    if norm < VANISHING_NORM:
        return "vanishing"
    if norm > EXPLODING_NORM:
        return "exploding"
    return "stable"


class GradientFlowSimulation:
    def __init__(self, depth: int = 100, weight_scale: float = 0.8, mode: str = "plain"):
        if mode not in MODES:
            raise ValueError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}")
        if not 1 <= depth <= MAX_DEPTH:
            raise ValueError(f"depth must be between 1 and {MAX_DEPTH}, got {depth}")
        low, high = WEIGHT_SCALE_RANGE
        if not low <= weight_scale <= high:
            raise ValueError(f"weight_scale must be between {low} and {high}, got {weight_scale}")
        self.depth = depth
        self.weight_scale = weight_scale
        self.mode = mode
        self.gains = layer_gains(depth, weight_scale)
        self.layer = 0
        self.norm = 1.0
        self.log_norms: List[float] = [0.0]

    def step(self) -> Optional[Frame]:
        if self.layer >= self.depth:
            return None
        self.norm = propagate(self.norm, self.gains[self.layer], self.mode, self.depth)
        self.layer += 1
        log_norm = math.log10(self.norm)
        self.log_norms.append(log_norm)
        return {"layer": self.layer, "norm": self.norm, "log10Norm": log_norm}

    def result(self) -> Dict[str, Any]:
        return {
            "depth": self.depth,
            "weightScale": self.weight_scale,
            "mode": self.mode,
            "finalNorm": self.norm,
            "regime": classify_norm(self.norm),
            "log10Norms": self.log_norms,
        }


def simulate_gradient_flow(depth: int = 100, weight_scale: float = 0.8, mode: str = "plain") -> Dict[str, Any]:
    sim = GradientFlowSimulation(depth, weight_scale, mode)
    while sim.step() is not None:
        pass
    return sim.result()


async def run_gradient_flow(
    depth: int = 100,
    weight_scale: float = 0.8,
    mode: str = "plain",
    settings: Optional[LlmSettings] = None,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    frame_interval: float = 0.0,
    commentary: bool = True
) -> Dict[str, Any]:
    """One layer per frame, then commentary on the resulting regime."""
    sim = GradientFlowSimulation(depth, weight_scale, mode)
    loop_result = await run_frames(
        lambda _: sim.step(),
        max_frames=depth + 1,
        on_frame=on_frame,
        cancel=cancel,
        frame_interval=frame_interval,
    )
    result = sim.result()

    hypothesis = None
    if commentary and not loop_result.cancelled:
        hypothesis = await generate_experiment_hypothesis(
            "GradientFlow",
            {key: result[key] for key in ("depth", "weightScale", "mode", "finalNorm", "regime")},
            settings,
        )
        if is_cancelled(cancel):
            hypothesis = None

    return {
        "experiment": "GradientFlow",
        "result": result,
        "frames": loop_result.frames,
        "cancelled": is_cancelled(cancel),
        "hypothesis": hypothesis,
    }


def main():
    """Main function to run the GradientFlowExperiment"""
    parser = argparse.ArgumentParser(description="Vanishing and exploding signal norms through deep products")
    parser.add_argument("--depth", type=int, default=100)
    parser.add_argument("--weight-scale", type=float, default=0.8)
    parser.add_argument("--mode", type=str, default="plain", choices=MODES)
    parser.add_argument("--no-commentary", action="store_true", help="Skip the LLM hypothesis")

    args = parser.parse_args()

    try:
        output = asyncio.run(run_gradient_flow(
            args.depth, args.weight_scale, args.mode, commentary=not args.no_commentary
        ))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    output["result"].pop("log10Norms")
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
