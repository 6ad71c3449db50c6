#!/usr/bin/env python3
"""Frame clock, timers and the awaitable interpolation primitive."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import heapq
import itertools
import math
from typing import Any, Callable, TypeVar

from pygame.math import Vector3


T = TypeVar("T", float, Vector3)

Easing = Callable[[float], float]
SampleCallback = Callable[[Any, float], None]


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def lerp(start: T, end: T, t: float) -> T:
    if isinstance(start, Vector3):
        return start.lerp(end, clamp(t))
    return start + (end - start) * t


def linear(t: float) -> float:
    return t


def ease_out_cubic(t: float) -> float:
    return 1.0 - (1.0 - t) ** 3


def ease_in_out_sine(t: float) -> float:
    return -(math.cos(math.pi * t) - 1.0) / 2.0


def smoothstep(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


@dataclass(order=True)
class ScheduledCall:
    """Handle for a delayed callback registered on a FrameClock."""

    due_ms: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    interval_ms: float | None = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class FrameClock:
    """Drives frame waiters and timers from an externally supplied time.

    The game loop calls ``advance`` once per display refresh; tests do the
    same with synthetic deltas, so every animation is deterministic.
    """

    def __init__(self, now_ms: float = 0.0, settle_steps: int = 8) -> None:
        self.now_ms = float(now_ms)
        self.frame_index = 0
        self.settle_steps = max(1, int(settle_steps))
        self._frame_waiters: list[asyncio.Future] = []
        self._timers: list[ScheduledCall] = []
        self._seq = itertools.count()

    def next_frame(self) -> asyncio.Future:
        waiter = asyncio.get_running_loop().create_future()
        self._frame_waiters.append(waiter)
        return waiter

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        handle = ScheduledCall(self.now_ms + max(0.0, delay_ms), next(self._seq), callback)
        heapq.heappush(self._timers, handle)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        interval = max(1.0, float(interval_ms))
        handle = ScheduledCall(self.now_ms + interval, next(self._seq), callback, interval_ms=interval)
        heapq.heappush(self._timers, handle)
        return handle

    async def sleep(self, delay_ms: float) -> None:
        waiter = asyncio.get_running_loop().create_future()

        def _wake() -> None:
            if not waiter.done():
                waiter.set_result(None)

        self.call_later(delay_ms, _wake)
        await waiter

    @property
    def pending_timers(self) -> int:
        return sum(1 for handle in self._timers if not handle.cancelled)

    def tick(self, now_ms: float) -> None:
        self.now_ms = max(self.now_ms, float(now_ms))
        self.frame_index += 1

        while self._timers and self._timers[0].due_ms <= self.now_ms:
            handle = heapq.heappop(self._timers)
            if handle.cancelled:
                continue
            if handle.interval_ms is not None:
                # Re-arm before running so the callback may cancel itself.
                handle.due_ms += handle.interval_ms
                if handle.due_ms <= self.now_ms:
                    handle.due_ms = self.now_ms + handle.interval_ms
                heapq.heappush(self._timers, handle)
            handle.callback()

        waiters, self._frame_waiters = self._frame_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(self.now_ms)

    async def advance(self, delta_ms: float) -> None:
        """Tick forward and give resumed coroutines a chance to run."""
        self.tick(self.now_ms + max(0.0, delta_ms))
        for _ in range(self.settle_steps):
            await asyncio.sleep(0)


async def run_interpolation(
    clock: FrameClock,
    start: T,
    end: T,
    duration_ms: float,
    on_sample: SampleCallback,
    easing: Easing = linear,
) -> None:
    """Interpolate ``start`` to ``end``, sampling once per frame.

    Returns after the sample at fraction 1 has been delivered. A non-positive
    duration delivers that final sample immediately.
    """
    if duration_ms <= 0:
        on_sample(lerp(start, end, easing(1.0)), 1.0)
        return

    started_ms = clock.now_ms
    fraction = 0.0
    while True:
        on_sample(lerp(start, end, easing(fraction)), fraction)
        if fraction >= 1.0:
            return
        await clock.next_frame()
        fraction = clamp((clock.now_ms - started_ms) / duration_ms)
