#!/usr/bin/env python3
"""
TorsionCancellationDemo - MATH-006

Topology change by compactification. A particle travels x = progress * 2N:
- on the line R it just runs off toward infinity
- on the circle S1 = R / NZ the same motion is x mod N, two full windings per run

The animation is time-driven (progress = elapsed / duration), unlike the
step-driven experiments.
"""

import sys
import json
import math
import time
import argparse
import asyncio
from typing import Any, Callable, Dict, Optional

from agents.HypothesisAgent import generate_experiment_hypothesis
from experiments.frame_loop import CancelFlag, Frame, is_cancelled, run_frames
from tools.settings import LlmSettings

MODULUS_RANGE = (3, 12)
WINDINGS = 2
DEFAULT_DURATION = 3.0
DURATION_RANGE = (0.5, 30.0)
FRAME_INTERVAL = 1 / 60
MAX_FRAMES = 100000


def validate_modulus(modulus: int) -> int:
    low, high = MODULUS_RANGE
    if int(modulus) != modulus or not low <= modulus <= high:
        raise ValueError(f"modulus must be an integer between {low} and {high}, got {modulus}")
    return int(modulus)


def validate_duration(duration: float) -> float:
    low, high = DURATION_RANGE
    # NaN fails both comparisons
    if not low <= duration <= high:
        raise ValueError(f"duration must be between {low} and {high} seconds, got {duration}")
    return float(duration)


def topology_frame(progress: float, modulus: int, compactified: bool) -> Frame:
    """Particle state at a given progress in [0, 1]."""
    distance = progress * WINDINGS * modulus
    frame = {
        "progress": progress,
        "compactified": compactified,
        "x": distance,
    }
    if compactified:
        wrapped = math.fmod(distance, modulus)
        frame["wrapped"] = wrapped
        frame["angleDeg"] = 360.0 * wrapped / modulus
        frame["winding"] = int(distance // modulus)
    else:
        frame["linearPercent"] = min(progress * 100, 100.0)
    return frame


async def run_compactification(
    modulus: int = 5,
    compactified: bool = False,
    settings: Optional[LlmSettings] = None,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    duration: float = DEFAULT_DURATION,
    frame_interval: float = FRAME_INTERVAL,
    commentary: bool = True,
    clock: Callable[[], float] = time.monotonic
) -> Dict[str, Any]:
    """
    Animate for `duration` seconds, then ask for commentary on the topology.

    Args:
        clock: Time source in seconds; injectable so runs can be replayed deterministically
    """
    modulus = validate_modulus(modulus)
    duration = validate_duration(duration)

    start = clock()
    last = {"progress": 0.0}

    def step(_: int) -> Optional[Frame]:
        progress = (clock() - start) / duration
        if progress >= 1:
            return None
        last["progress"] = progress
        return topology_frame(progress, modulus, compactified)

    loop_result = await run_frames(step, MAX_FRAMES, on_frame=on_frame, cancel=cancel, frame_interval=frame_interval)

    result = {
        "type": "Compact" if compactified else "Linear",
        "mod": modulus,
        "finalProgress": last["progress"],
        "endState": topology_frame(1.0, modulus, compactified),
    }

    hypothesis = None
    if commentary and not loop_result.cancelled:
        hypothesis = await generate_experiment_hypothesis(
            "Compactification", {"type": result["type"], "mod": modulus}, settings
        )
        if is_cancelled(cancel):
            hypothesis = None

    return {
        "experiment": "TorsionCancellation",
        "result": result,
        "frames": loop_result.frames,
        "cancelled": is_cancelled(cancel),
        "hypothesis": hypothesis,
    }


def main():
    """Main function to run the TorsionCancellationDemo"""
    parser = argparse.ArgumentParser(description="Line versus circle: compactification of a divergent path")
    parser.add_argument("--modulus", type=int, default=5, help="Circle period N (3-12)")
    parser.add_argument("--compact", action="store_true", help="Run on S1 instead of R")
    parser.add_argument("--duration", type=float, default=DEFAULT_DURATION, help="Animation length in seconds")
    parser.add_argument("--no-commentary", action="store_true", help="Skip the LLM hypothesis")

    args = parser.parse_args()

    try:
        output = asyncio.run(run_compactification(
            args.modulus,
            args.compact,
            duration=args.duration,
            commentary=not args.no_commentary,
        ))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
