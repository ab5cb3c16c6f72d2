#!/usr/bin/env python3
"""
RussellsParadoxExperiment - MATH-001

Evaluates "is R a member of R?" for R = {x | x not in x}. Each evaluation step
takes the current answer and derives its negation, so the evaluator never
settles. A gas budget bounds the work: the paradox is contained by halting,
not resolved.
"""

import sys
import json
import argparse
import asyncio
from typing import Any, Callable, Dict, List, Optional

from agents.HypothesisAgent import generate_experiment_hypothesis
from experiments.frame_loop import CancelFlag, Frame, is_cancelled, run_frames
from tools.settings import LlmSettings

GAS_RANGE = (1, 10000)


def membership_step(r_in_r: bool) -> bool:
    # R in R <=> R not in R
    return not r_in_r


class ParadoxEvaluator:
    def __init__(self, gas: int = 64, initial: bool = False):
        low, high = GAS_RANGE
        if not low <= gas <= high:
            raise ValueError(f"gas must be between {low} and {high}, got {gas}")
        self.gas = gas
        self.remaining = gas
        self.state = initial
        self.history: List[bool] = [initial]
        self.fixed_point: Optional[bool] = None

    def step(self) -> Optional[Frame]:
        if self.remaining <= 0 or self.fixed_point is not None:
            return None
        nxt = membership_step(self.state)
        self.remaining -= 1
        if nxt == self.state:
            self.fixed_point = nxt
        self.state = nxt
        self.history.append(nxt)
        return {"step": len(self.history) - 1, "rInR": nxt, "gasRemaining": self.remaining}

    def cycle_period(self) -> Optional[int]:
        """Smallest p with history[i] == history[i + p] for every recorded i, if one was observed."""
        n = len(self.history)
        for p in range(1, n):
            if all(self.history[i] == self.history[i + p] for i in range(n - p)):
                return p
        return None

    def result(self) -> Dict[str, Any]:
        return {
            "gas": self.gas,
            "stepsEvaluated": self.gas - self.remaining,
            "fixedPointFound": self.fixed_point is not None,
            "cyclePeriod": self.cycle_period(),
            "verdict": "contained" if self.remaining == 0 and self.fixed_point is None else "resolved",
            "trace": self.history,
        }


def simulate_paradox(gas: int = 64, initial: bool = False) -> Dict[str, Any]:
    evaluator = ParadoxEvaluator(gas, initial)
    while evaluator.step() is not None:
        pass
    return evaluator.result()


async def run_paradox(
    gas: int = 64,
    settings: Optional[LlmSettings] = None,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    frame_interval: float = 0.0,
    commentary: bool = True,
    initial: bool = False
) -> Dict[str, Any]:
    evaluator = ParadoxEvaluator(gas, initial)
    loop_result = await run_frames(
        lambda _: evaluator.step(),
        max_frames=gas + 1,
        on_frame=on_frame,
        cancel=cancel,
        frame_interval=frame_interval,
    )
    result = evaluator.result()

    hypothesis = None
    if commentary and not loop_result.cancelled:
        hypothesis = await generate_experiment_hypothesis(
            "RussellsParadox",
            {key: result[key] for key in ("gas", "stepsEvaluated", "fixedPointFound", "cyclePeriod", "verdict")},
            settings,
        )
        if is_cancelled(cancel):
            hypothesis = None

    return {
        "experiment": "RussellsParadox",
        "result": result,
        "frames": loop_result.frames,
        "cancelled": is_cancelled(cancel),
        "hypothesis": hypothesis,
    }


def main():
    """Main function to run the RussellsParadoxExperiment"""
    parser = argparse.ArgumentParser(description="Gas-limited evaluation of Russell's paradox")
    parser.add_argument("--gas", type=int, default=64, help="Evaluation budget in steps")
    parser.add_argument("--no-commentary", action="store_true", help="Skip the LLM hypothesis")

    args = parser.parse_args()

    try:
        output = asyncio.run(run_paradox(args.gas, commentary=not args.no_commentary))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    output["result"].pop("trace")
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
