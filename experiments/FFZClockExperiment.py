#!/usr/bin/env python3
"""
FFZClockExperiment - PHY-006

Two discrete clocks with consecutive Fibonacci periods a = F(n), b = F(n+1).
Consecutive Fibonacci numbers are coprime, so the clocks only line up again
after a * b ticks: a long recurrence from two tiny periods.
"""

import sys
import json
import argparse
import asyncio
from typing import Any, Callable, Dict, List, Optional

from agents.HypothesisAgent import generate_experiment_hypothesis
from experiments.frame_loop import CancelFlag, Frame, is_cancelled, run_frames
from tools.settings import LlmSettings

FIB_INDEX_RANGE = (3, 12)
EXTRA_TICKS = 5


def fib(n: int) -> int:
    a, b = 0, 1
    for _ in range(n):
        a, b = b, a + b
    return a


def validate_fib_index(fib_index: int) -> int:
    low, high = FIB_INDEX_RANGE
    if int(fib_index) != fib_index or not low <= fib_index <= high:
        raise ValueError(f"fib_index must be an integer between {low} and {high}, got {fib_index}")
    return int(fib_index)


def clock_state(step: int, a: int, b: int) -> Frame:
    clock_a = step % a
    clock_b = step % b
    return {"step": step, "clockA": clock_a, "clockB": clock_b, "synced": clock_a == 0 and clock_b == 0}


class ClockSimulation:
    def __init__(self, fib_index: int = 5):
        self.fib_index = validate_fib_index(fib_index)
        self.a = fib(self.fib_index)
        self.b = fib(self.fib_index + 1)
        self.period = self.a * self.b
        self.current_step = 0
        self.sync_steps: List[int] = []

    @property
    def total_ticks(self) -> int:
        # ticks run while current_step <= period + EXTRA_TICKS
        return self.period + EXTRA_TICKS + 1

    def step(self) -> Optional[Frame]:
        if self.current_step > self.period + EXTRA_TICKS:
            return None
        self.current_step += 1
        frame = clock_state(self.current_step, self.a, self.b)
        if frame["synced"]:
            self.sync_steps.append(self.current_step)
        return frame

    def result(self) -> Dict[str, Any]:
        return {
            "fibIndex": self.fib_index,
            "a": self.a,
            "b": self.b,
            "recurrencePeriod": self.period,
            "ticks": self.current_step,
            "syncSteps": self.sync_steps,
        }


def simulate_clocks(fib_index: int = 5) -> Dict[str, Any]:
    sim = ClockSimulation(fib_index)
    while sim.step() is not None:
        pass
    return sim.result()


async def run_clocks(
    fib_index: int = 5,
    settings: Optional[LlmSettings] = None,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    frame_interval: float = 0.0,
    commentary: bool = True
) -> Dict[str, Any]:
    """Tick both clocks one frame at a time, then request a hypothesis about the recurrence."""
    sim = ClockSimulation(fib_index)
    loop_result = await run_frames(
        lambda _: sim.step(),
        max_frames=sim.total_ticks + 1,
        on_frame=on_frame,
        cancel=cancel,
        frame_interval=frame_interval,
    )
    result = sim.result()

    hypothesis = None
    if commentary and not loop_result.cancelled:
        prompt_result = {key: result[key] for key in ("fibIndex", "a", "b", "recurrencePeriod")}
        hypothesis = await generate_experiment_hypothesis("QuasiperiodicSync", prompt_result, settings)
        # a cancel that lands while the request is in flight discards the answer
        if is_cancelled(cancel):
            hypothesis = None

    return {
        "experiment": "FFZClock",
        "result": result,
        "frames": loop_result.frames,
        "cancelled": is_cancelled(cancel),
        "hypothesis": hypothesis,
    }


def main():
    """Main function to run the FFZClockExperiment"""
    parser = argparse.ArgumentParser(description="Fibonacci clock synchronization")
    parser.add_argument("--fib-index", type=int, default=5, help="Fibonacci index n (3-12)")
    parser.add_argument("--no-commentary", action="store_true", help="Skip the LLM hypothesis")

    args = parser.parse_args()

    try:
        output = asyncio.run(run_clocks(args.fib_index, commentary=not args.no_commentary))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
