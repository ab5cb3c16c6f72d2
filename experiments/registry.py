"""
Experiment registry

Maps an instability's experimentComponent name to the coroutine that runs it,
and translates loosely-typed request parameters into keyword arguments.
"""
from typing import Any, Callable, Dict, List, Optional

from experiments.BlackHoleExperiment import run_black_hole
from experiments.FFZClockExperiment import run_clocks
from experiments.FFZKernelExperiment import analyze_kernel
from experiments.GradientFlowExperiment import run_gradient_flow
from experiments.RussellsParadoxExperiment import run_paradox
from experiments.SubsetSumExperiment import run_subset_sum
from experiments.TorsionCancellationDemo import run_compactification
from experiments.frame_loop import CancelFlag, Frame
from tools.settings import LlmSettings


def integer(value: Any) -> int:
    """int() that refuses to truncate: 5, 5.0 and "5" pass, 5.9 and True do not."""
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected an integer, got {value}")
        return int(value)
    if isinstance(value, (int, str)):
        return int(value)
    raise ValueError(f"expected an integer, got {type(value).__name__}")


def integer_list(value: Any) -> List[int]:
    if not isinstance(value, list):
        raise ValueError(f"expected a list of integers, got {type(value).__name__}")
    return [integer(v) for v in value]


# component -> (runner, {request param name: (keyword, converter)})
EXPERIMENTS: Dict[str, Any] = {
    "BlackHole": (run_black_hole, {"epsilon": ("epsilon", float)}),
    "FFZClock": (run_clocks, {"fibIndex": ("fib_index", integer)}),
    "FFZKernel": (analyze_kernel, {"seriesType": ("series_type", str), "epsilon": ("epsilon", float)}),
    "SubsetSum": (run_subset_sum, {"mode": ("mode", str), "seed": ("seed", integer), "problem": ("problem", integer_list)}),
    "TorsionCancellation": (
        run_compactification,
        {"modulus": ("modulus", integer), "compactified": ("compactified", bool), "duration": ("duration", float)},
    ),
    "GradientFlow": (
        run_gradient_flow,
        {"depth": ("depth", integer), "weightScale": ("weight_scale", float), "mode": ("mode", str)},
    ),
    "RussellsParadox": (run_paradox, {"gas": ("gas", integer)}),
}

# runners that are not frame-driven take neither on_frame nor cancel
NON_ANIMATED = {"FFZKernel"}


def list_components():
    return list(EXPERIMENTS.keys())


def build_kwargs(component: str, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Convert request params to runner keyword arguments.

    Raises:
        KeyError: unknown component
        ValueError: unknown parameter or a value that cannot be converted
    """
    if component not in EXPERIMENTS:
        raise KeyError(f"Unknown experiment component: {component}")
    _, param_map = EXPERIMENTS[component]

    kwargs = {}
    for name, value in (params or {}).items():
        if name not in param_map:
            raise ValueError(f"Unknown parameter '{name}' for {component}. Expected: {', '.join(param_map)}")
        keyword, converter = param_map[name]
        if converter is bool and not isinstance(value, bool):
            raise ValueError(f"Parameter '{name}' must be a boolean")
        try:
            kwargs[keyword] = converter(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for '{name}': {e}")
    return kwargs


async def run_component(
    component: str,
    params: Optional[Dict[str, Any]] = None,
    settings: Optional[LlmSettings] = None,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    commentary: bool = True
) -> Dict[str, Any]:
    """Run one experiment by component name."""
    kwargs = build_kwargs(component, params)
    runner, _ = EXPERIMENTS[component]
    kwargs.update({"settings": settings, "commentary": commentary})
    if component not in NON_ANIMATED:
        kwargs.update({"on_frame": on_frame, "cancel": cancel})
    return await runner(**kwargs)
