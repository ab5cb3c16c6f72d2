#!/usr/bin/env python3
"""
BlackHoleExperiment - PHY-001

Orbital decay of a test particle around a point mass, run twice side by side:
- classical: inverse-square force all the way down; the particle is swallowed
  once it gets within CAPTURE_RADIUS of the centre
- effective: r^2 is clamped at the Planck-scale cutoff (epsilon * SCALE)^2,
  so the force stays finite and the particle keeps orbiting

Coordinates are canvas pixels relative to the hole; SCALE pixels = 1 length unit.
"""

import sys
import json
import math
import argparse
import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from agents.HypothesisAgent import generate_experiment_hypothesis
from experiments.frame_loop import CancelFlag, Frame, is_cancelled, run_frames
from tools.settings import LlmSettings

SCALE = 100.0
FORCE_STRENGTH = 1500.0
CAPTURE_RADIUS = 5.0
MAX_STEPS = 1000
START_STATE = (-150.0, -50.0, 1.2, 0.5)
EPSILON_RANGE = (0.1, 1.0)


@dataclass
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    done: bool = False
    path: List[List[float]] = field(default_factory=list)

    def as_frame(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "done": self.done}


def accelerate(p: Particle, r2: float) -> None:
    """Semi-implicit Euler step with unit dt toward the origin, using the given r^2."""
    r = math.sqrt(r2)
    ax = (FORCE_STRENGTH / r2) * (-p.x / r)
    ay = (FORCE_STRENGTH / r2) * (-p.y / r)
    p.vx += ax
    p.vy += ay
    p.x += p.vx
    p.y += p.vy
    p.path.append([p.x, p.y])


def validate_epsilon(epsilon: float) -> float:
    low, high = EPSILON_RANGE
    if not low <= epsilon <= high:
        raise ValueError(f"epsilon must be between {low} and {high}, got {epsilon}")
    return float(epsilon)


class BlackHoleSimulation:
    """Step-by-step state of both particles."""

    def __init__(self, epsilon: float = 0.5, max_steps: int = MAX_STEPS):
        self.epsilon = validate_epsilon(epsilon)
        self.max_steps = max_steps
        self.min_r2 = (self.epsilon * SCALE) ** 2
        self.classical = Particle(*START_STATE)
        self.effective = Particle(*START_STATE)
        self.step_count = 0
        self.final_distance: Optional[float] = None
        self.classical_captured = False

    @property
    def done(self) -> bool:
        return self.classical.done and self.effective.done

    def step(self) -> Optional[Frame]:
        if self.done:
            return None
        self.step_count += 1

        if not self.classical.done:
            r2 = self.classical.x ** 2 + self.classical.y ** 2
            if math.sqrt(r2) < CAPTURE_RADIUS:
                self.classical.done = True
                self.classical_captured = True
            elif self.step_count > self.max_steps:
                self.classical.done = True
            else:
                accelerate(self.classical, r2)

        if not self.effective.done:
            r2 = max(self.effective.x ** 2 + self.effective.y ** 2, self.min_r2)
            accelerate(self.effective, r2)
            if self.step_count > self.max_steps:
                self.effective.done = True
                self.final_distance = math.sqrt(r2) / SCALE

        return {
            "step": self.step_count,
            "classical": self.classical.as_frame(),
            "effective": self.effective.as_frame(),
        }

    def result(self) -> Dict[str, Any]:
        return {
            "epsilon": self.epsilon,
            "steps": self.step_count,
            "cutoffRadius": self.epsilon * SCALE,
            "classicalCaptured": self.classical_captured,
            "finalDistance": self.final_distance,
            "classicalPath": self.classical.path,
            "effectivePath": self.effective.path,
        }


def simulate_black_hole(epsilon: float = 0.5, max_steps: int = MAX_STEPS) -> Dict[str, Any]:
    """Run the whole simulation synchronously and return its result."""
    sim = BlackHoleSimulation(epsilon, max_steps)
    while sim.step() is not None:
        pass
    return sim.result()


async def run_black_hole(
    epsilon: float = 0.5,
    settings: Optional[LlmSettings] = None,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    frame_interval: float = 0.0,
    commentary: bool = True,
    max_steps: int = MAX_STEPS
) -> Dict[str, Any]:
    """
    Animate the simulation frame by frame, then ask for a hypothesis.

    Returns:
        Dictionary with result, frame count, cancelled flag and hypothesis (None if skipped)
    """
    sim = BlackHoleSimulation(epsilon, max_steps)
    loop_result = await run_frames(
        lambda _: sim.step(),
        max_frames=max_steps + 2,
        on_frame=on_frame,
        cancel=cancel,
        frame_interval=frame_interval,
    )
    result = sim.result()

    hypothesis = None
    if commentary and not loop_result.cancelled:
        hypothesis = await generate_experiment_hypothesis(
            "BlackHole",
            {"finalDistance": result["finalDistance"], "epsilon": result["epsilon"]},
            settings,
        )
        if is_cancelled(cancel):
            hypothesis = None

    return {
        "experiment": "BlackHole",
        "result": result,
        "frames": loop_result.frames,
        "cancelled": is_cancelled(cancel),
        "hypothesis": hypothesis,
    }


def main():
    """Main function to run the BlackHoleExperiment"""
    parser = argparse.ArgumentParser(description="Classical versus cutoff-regularized orbital decay")
    parser.add_argument("--epsilon", type=float, default=0.5, help="Cutoff scale in length units (0.1-1.0)")
    parser.add_argument("--no-commentary", action="store_true", help="Skip the LLM hypothesis")
    parser.add_argument("--paths", action="store_true", help="Include full particle paths in the output")

    args = parser.parse_args()

    try:
        output = asyncio.run(run_black_hole(args.epsilon, commentary=not args.no_commentary))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.paths:
        output["result"].pop("classicalPath")
        output["result"].pop("effectivePath")
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
