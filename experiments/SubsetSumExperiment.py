#!/usr/bin/env python3
"""
SubsetSumExperiment - CS-001 / CS-002

Continuous relaxation of subset-sum: the 0/1 selection vector becomes x in
[0, 1]^n and we minimise

    E(x) = smooth_abs(|x . S|) + alpha * sum(x_i * (1 - x_i))

with momentum gradient descent under a cosine learning-rate schedule. The
discreteness penalty pushes coordinates back toward 0 or 1; rounding the final
x gives the candidate subset.

Modes:
- Standard: fixed set [-7, -3, -2, 5, 8]
- Critical: random 40-element instance that is guaranteed to contain a zero-sum subset
"""

import sys
import json
import math
import argparse
import asyncio
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from agents.StressTestAgent import generate_stress_test_analysis
from experiments.frame_loop import CancelFlag, Frame, is_cancelled, run_frames
from tools.settings import LlmSettings

MODES = ("Standard", "Critical")
STANDARD_SET = [-7, -3, -2, 5, 8]

ALPHA = 0.5
INITIAL_LR = 0.02
MIN_LR = 1e-6
MOMENTUM = 0.9
CONVERGED_COST = 0.1
SUM_EPSILON = 1e-6

MODE_CONFIG = {
    "Standard": {"steps": 5000, "update_interval": 100},
    "Critical": {"steps": 8000, "update_interval": 400, "size": 40, "range": 50},
}


def smooth_abs_gradient(x: float, epsilon: float = 1e-8) -> float:
    """Keep values away from exactly zero: |x| < epsilon maps to +/- epsilon (epsilon at 0)."""
    if abs(x) < epsilon:
        return math.copysign(epsilon, x) if x != 0 else epsilon
    return x


def cosine_learning_rate(i: int, steps: int, initial_lr: float = INITIAL_LR, min_lr: float = MIN_LR) -> float:
    frac = i / max(1, steps)
    lr = min_lr + 0.5 * (initial_lr - min_lr) * (1 + math.cos(math.pi * frac))
    return min(max(lr, min_lr), initial_lr)


def generate_problem_instance(n: int, value_range: int = 20, rng: Optional[np.random.Generator] = None) -> List[int]:
    """
    Random instance with a planted zero-sum subset.

    n - 1 integers in [-range, range), then minus the sum of n // 2 of them, shuffled.
    """
    if n < 2:
        raise ValueError("instance size must be at least 2")
    rng = rng or np.random.default_rng()

    values = [int(v) for v in rng.integers(-value_range, value_range, size=n - 1)]
    k = n // 2
    planted = rng.choice(n - 1, size=k, replace=False)
    values.append(-sum(values[int(i)] for i in planted))
    rng.shuffle(values)
    return values


def subset_energy(x: np.ndarray, s: np.ndarray, alpha: float = ALPHA) -> float:
    subset_sum = float(np.dot(x, s))
    stabilized = smooth_abs_gradient(abs(subset_sum), SUM_EPSILON)
    discreteness_penalty = float(np.sum(x * (1 - x)))
    return stabilized + alpha * discreteness_penalty


def subset_gradient(x: np.ndarray, s: np.ndarray, alpha: float = ALPHA) -> np.ndarray:
    subset_sum = float(np.dot(x, s))
    return s * np.sign(subset_sum) + alpha * (1 - 2 * x)


def project_trajectory(trajectory: List[List[float]]) -> List[List[float]]:
    """
    PCA projection of trajectory snapshots onto their first two principal axes,
    normalised into the [5, 95] chart box (y flipped for screen coordinates).
    """
    if len(trajectory) < 2:
        return []
    data = np.asarray(trajectory, dtype=float)
    centered = data - data.mean(axis=0)
    _, _, vt = np.linalg.svd(centered, full_matrices=False)
    components = vt[:2]
    proj = centered @ components.T
    if proj.shape[1] < 2:
        proj = np.hstack([proj, np.zeros((proj.shape[0], 2 - proj.shape[1]))])

    mins = proj.min(axis=0)
    ranges = proj.max(axis=0) - mins
    ranges[ranges == 0] = 1.0
    scaled = (proj - mins) / ranges
    xs = scaled[:, 0] * 90 + 5
    ys = 95 - scaled[:, 1] * 90
    return [[float(px), float(py)] for px, py in zip(xs, ys)]


def _problem_for_mode(mode: str, rng: np.random.Generator) -> List[int]:
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}")
    if mode == "Critical":
        config = MODE_CONFIG["Critical"]
        return generate_problem_instance(config["size"], config["range"], rng)
    return list(STANDARD_SET)


class SubsetSumRelaxation:
    """Optimiser state; advance() runs one snapshot interval of gradient steps."""

    def __init__(self, mode: str = "Standard", seed: Optional[int] = None, problem: Optional[List[int]] = None):
        if mode not in MODES:
            raise ValueError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}")
        if problem is not None and len(problem) == 0:
            raise ValueError("problem must contain at least one integer")
        self.rng = np.random.default_rng(seed)
        self.mode = mode
        self.problem = [int(v) for v in problem] if problem is not None else _problem_for_mode(mode, self.rng)
        config = MODE_CONFIG[mode]
        self.steps = config["steps"]
        self.update_interval = config["update_interval"]

        self.s = np.asarray(self.problem, dtype=float)
        self.x = self.rng.random(len(self.problem))
        self.velocity = np.zeros(len(self.problem))
        self.i = 0
        self.trajectory: List[List[float]] = []
        self.cost_history: List[float] = []
        self.log = [f"--- Starting {'CRITICAL STRESS TEST' if mode == 'Critical' else 'Standard'} Relaxation ---"]

    @property
    def done(self) -> bool:
        return self.i >= self.steps

    def gradient_step(self) -> float:
        lr = cosine_learning_rate(self.i, self.steps)
        cost = subset_energy(self.x, self.s)
        grad = subset_gradient(self.x, self.s)

        v_prev = self.velocity.copy()
        self.velocity = MOMENTUM * self.velocity - lr * grad
        self.x = np.clip(self.x - MOMENTUM * v_prev + (1 + MOMENTUM) * self.velocity, 0.0, 1.0)
        self.i += 1

        if self.i % self.update_interval == 0:
            self.trajectory.append(self.x.tolist())
            self.cost_history.append(cost)
            if self.i % (self.steps // 5) == 0:
                self.log.append(f"Step {self.i}/{self.steps} | Cost={cost:.6f}")
        return cost

    def advance(self) -> Optional[Frame]:
        """Run gradient steps up to the next snapshot. None once all steps are done."""
        if self.done:
            return None
        cost = self.gradient_step()
        while not self.done and self.i % self.update_interval != 0:
            cost = self.gradient_step()
        return {"step": self.i, "steps": self.steps, "cost": cost, "x": self.x.tolist()}

    def result(self) -> Dict[str, Any]:
        selection = [int(round(v)) for v in self.x]
        subset = [int(v) for v, chosen in zip(self.problem, selection) if chosen == 1]
        solution_sum = int(sum(subset))
        final_cost = self.cost_history[-1] if self.cost_history else None
        converged = final_cost is not None and final_cost < CONVERGED_COST
        return {
            "mode": self.mode,
            "problem": self.problem,
            "selection": selection,
            "subset": subset,
            "sum": solution_sum,
            "cost": final_cost,
            "status": "Converged" if converged else "Failed",
            "costHistory": self.cost_history,
            "trajectory": self.trajectory,
            "projection": project_trajectory(self.trajectory),
            "log": self.log,
        }

    def finish_log(self) -> None:
        self.log.append("--- Optimization Finished ---")
        selection = [int(round(v)) for v in self.x]
        total = sum(v for v, chosen in zip(self.problem, selection) if chosen == 1)
        self.log.append(f"Final Sum: {total}")


def simulate_subset_sum(mode: str = "Standard", seed: Optional[int] = None, problem: Optional[List[int]] = None) -> Dict[str, Any]:
    relaxation = SubsetSumRelaxation(mode, seed, problem)
    while relaxation.advance() is not None:
        pass
    relaxation.finish_log()
    return relaxation.result()


async def run_subset_sum(
    mode: str = "Standard",
    settings: Optional[LlmSettings] = None,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    seed: Optional[int] = None,
    commentary: bool = True,
    problem: Optional[List[int]] = None
) -> Dict[str, Any]:
    """
    Optimise, yielding to the event loop after each snapshot interval, then
    request a stress-test analysis of the outcome.
    """
    relaxation = SubsetSumRelaxation(mode, seed, problem)
    loop_result = await run_frames(
        lambda _: relaxation.advance(),
        max_frames=relaxation.steps // relaxation.update_interval + 1,
        on_frame=on_frame,
        cancel=cancel,
    )

    if not loop_result.cancelled:
        relaxation.finish_log()
    result = relaxation.result()

    analysis = None
    if commentary and not loop_result.cancelled:
        analysis = await generate_stress_test_analysis(
            "SubsetSum",
            {"finalCost": result["cost"], "solutionSum": result["sum"], "status": result["status"]},
            settings,
            meta={"difficulty": mode},
        )
        if is_cancelled(cancel):
            analysis = None

    return {
        "experiment": "SubsetSum",
        "result": result,
        "frames": loop_result.frames,
        "cancelled": is_cancelled(cancel),
        "analysis": analysis,
    }


def main():
    """Main function to run the SubsetSumExperiment"""
    parser = argparse.ArgumentParser(description="Continuous relaxation of subset-sum")
    parser.add_argument("--mode", type=str, default="Standard", choices=MODES)
    parser.add_argument("--seed", type=int, help="Random seed for a reproducible run")
    parser.add_argument("--no-commentary", action="store_true", help="Skip the LLM stress-test analysis")

    args = parser.parse_args()

    output = asyncio.run(run_subset_sum(args.mode, seed=args.seed, commentary=not args.no_commentary))
    result = output["result"]
    for line in result["log"]:
        print(line, file=sys.stderr)
    for key in ("trajectory", "projection", "costHistory", "log"):
        result.pop(key)
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
