from __future__ import annotations

"""
File: flowsim/sim/scheduler.py
Purpose: Frame scheduling primitives that drive the animation clock.
Key responsibilities:
- Provide a monotonic millisecond clock and one-shot frame callbacks.
- Real-time scheduling on the asyncio loop.
- Virtual-time scheduling for headless playback and tests.
"""

import asyncio
import time
from typing import Any, Callable, Protocol

FrameCallback = Callable[[float], None]


class FrameScheduler(Protocol):
    """Callback-based display-refresh primitive."""

    def now(self) -> float:
        """Current time in milliseconds."""
        ...

    def request(self, callback: FrameCallback) -> Any:
        """Invoke `callback(now_ms)` once on the next frame and return a handle."""
        ...

    def cancel(self, handle: Any) -> None:
        ...


class AsyncioFrameScheduler:
    """Fire frame callbacks from the running asyncio loop at `frame_hz`."""
    def __init__(self, frame_hz: int = 60) -> None:
        if frame_hz <= 0:
            raise ValueError(f"frame_hz must be > 0, got {frame_hz}")
        self.frame_s = 1.0 / frame_hz

    def now(self) -> float:
        return time.perf_counter() * 1000.0

    def request(self, callback: FrameCallback) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(self.frame_s, lambda: callback(self.now()))

    def cancel(self, handle: asyncio.TimerHandle | None) -> None:
        if handle is not None:
            handle.cancel()


class ManualFrameScheduler:
    """Virtual clock; frames fire only when the caller advances time."""
    def __init__(self, start_ms: float = 0.0, frame_ms: float = 1000.0 / 60.0) -> None:
        self.current_ms = float(start_ms)
        self.frame_ms = frame_ms
        self._pending: dict[int, FrameCallback] = {}
        self._next_handle = 1

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def now(self) -> float:
        return self.current_ms

    def request(self, callback: FrameCallback) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: int | None) -> None:
        if handle is not None:
            self._pending.pop(handle, None)

    def advance_to(self, now_ms: float) -> int:
        """Move the clock to `now_ms` and fire every callback pending at that moment."""
        if now_ms < self.current_ms:
            raise ValueError(f"time cannot go backwards: {now_ms} < {self.current_ms}")
        self.current_ms = float(now_ms)
        callbacks = list(self._pending.values())
        self._pending.clear()
        for callback in callbacks:
            callback(self.current_ms)
        return len(callbacks)

    def step(self) -> int:
        """Advance one frame."""
        return self.advance_to(self.current_ms + self.frame_ms)

    def run_until_idle(self, max_frames: int = 1_000_000) -> int:
        """Step frames until nothing is scheduled; returns the number of frames run."""
        frames = 0
        while self._pending:
            if frames >= max_frames:
                raise RuntimeError(f"scheduler still busy after {max_frames} frames")
            self.step()
            frames += 1
        return frames
