"""
Cooperative per-frame scheduler shared by the experiments.

One frame = one call to the experiment's step function, then the frame is
handed to the renderer callback, then control goes back to the event loop so
pending LLM requests (or another experiment) can progress.
"""
import asyncio
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

Frame = Dict[str, Any]


class CancelFlag:
    """Boolean stop flag, checked by the frame loop at the next tick."""

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


@dataclass
class FrameLoopResult:
    frames: int
    finished: bool
    cancelled: bool


def is_cancelled(cancel: Optional[CancelFlag]) -> bool:
    return cancel is not None and cancel.cancelled


async def run_frames(
    step: Callable[[int], Optional[Frame]],
    max_frames: int,
    on_frame: Optional[Callable[[Frame], None]] = None,
    cancel: Optional[CancelFlag] = None,
    frame_interval: float = 0.0
) -> FrameLoopResult:
    """
    Drive `step` until it reports completion, the frame budget runs out, or the run is cancelled.

    Args:
        step: Called with the frame index; returns the frame to render, or None when finished
        max_frames: Hard upper bound on frames, so every run terminates
        on_frame: Renderer callback; its exceptions are logged and ignored
        cancel: Optional stop flag
        frame_interval: Seconds to sleep between frames (0 just yields)

    Returns:
        FrameLoopResult
    """
    if max_frames < 0:
        raise ValueError("max_frames must be non-negative")

    frames = 0
    for index in range(max_frames):
        if is_cancelled(cancel):
            return FrameLoopResult(frames=frames, finished=False, cancelled=True)

        frame = step(index)
        if frame is None:
            return FrameLoopResult(frames=frames, finished=True, cancelled=False)
        frames += 1

        if on_frame is not None:
            try:
                on_frame(frame)
            except Exception as e:
                print(f"[FrameLoop] Renderer error on frame {index}: {e}", file=sys.stderr)

        await asyncio.sleep(frame_interval)

    return FrameLoopResult(frames=frames, finished=not is_cancelled(cancel), cancelled=is_cancelled(cancel))
