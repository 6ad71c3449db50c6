"""
Unit tests for the frame clock and the interpolation primitive.
"""

import asyncio

import pytest
from pygame.math import Vector3

from animation import (
    FrameClock,
    clamp,
    ease_in_out_sine,
    ease_out_cubic,
    lerp,
    linear,
    run_interpolation,
    smoothstep,
)


class TestEasing:
    """Tests for lerp, clamp and the easing curves."""

    @pytest.mark.parametrize("easing", [linear, ease_out_cubic, ease_in_out_sine, smoothstep])
    def test_easing_endpoints(self, easing):
        assert easing(0.0) == pytest.approx(0.0)
        assert easing(1.0) == pytest.approx(1.0)

    def test_lerp_scalar(self):
        assert lerp(2.0, 6.0, 0.25) == pytest.approx(3.0)

    def test_lerp_vector(self):
        result = lerp(Vector3(0, 0, 0), Vector3(10, -4, 2), 0.5)
        assert result == Vector3(5, -2, 1)

    def test_clamp(self):
        assert clamp(-0.5) == 0.0
        assert clamp(1.5) == 1.0
        assert clamp(0.3) == 0.3


class TestFrameClock:
    """Tests for timers and frame waiters."""

    def test_call_later_fires_when_due(self):
        clock = FrameClock()
        fired = []
        clock.call_later(100, lambda: fired.append(clock.now_ms))
        clock.tick(99)
        assert fired == []
        clock.tick(100)
        assert fired == [100]
        clock.tick(500)
        assert fired == [100]

    def test_cancelled_call_never_fires(self):
        clock = FrameClock()
        fired = []
        handle = clock.call_later(50, lambda: fired.append(True))
        handle.cancel()
        clock.tick(1000)
        assert fired == []
        assert clock.pending_timers == 0

    def test_call_every_repeats_on_cadence(self):
        clock = FrameClock()
        fired = []
        handle = clock.call_every(600, lambda: fired.append(clock.now_ms))
        for now in range(0, 2000, 100):
            clock.tick(now)
        assert fired == [600, 1200, 1800]
        handle.cancel()
        clock.tick(5000)
        assert len(fired) == 3

    def test_timers_fire_in_due_order(self):
        clock = FrameClock()
        order = []
        clock.call_later(30, lambda: order.append("b"))
        clock.call_later(10, lambda: order.append("a"))
        clock.call_later(30, lambda: order.append("c"))
        clock.tick(100)
        assert order == ["a", "b", "c"]

    def test_sleep_waits_for_clock(self):
        async def scenario():
            clock = FrameClock()
            done = []

            async def sleeper():
                await clock.sleep(250)
                done.append(clock.now_ms)

            task = asyncio.create_task(sleeper())
            await asyncio.sleep(0)
            await clock.advance(200)
            assert done == []
            await clock.advance(100)
            assert done == [300]
            await task

        asyncio.run(scenario())

    def test_time_never_runs_backwards(self):
        clock = FrameClock(now_ms=500)
        clock.tick(100)
        assert clock.now_ms == 500


class TestRunInterpolation:
    """Tests for the timed interpolation primitive."""

    def test_zero_duration_samples_once_at_end(self):
        samples = []
        asyncio.run(run_interpolation(FrameClock(), 0.0, 10.0, 0, lambda v, f: samples.append((v, f))))
        assert samples == [(10.0, 1.0)]

    def test_negative_duration_behaves_like_zero(self):
        samples = []
        asyncio.run(run_interpolation(FrameClock(), 1.0, 3.0, -50, lambda v, f: samples.append((v, f))))
        assert samples == [(3.0, 1.0)]

    def test_samples_once_per_frame_and_finishes_exactly_once(self):
        async def scenario():
            clock = FrameClock()
            samples = []
            task = asyncio.create_task(
                run_interpolation(clock, 0.0, 100.0, 100, lambda v, f: samples.append((v, f)))
            )
            await asyncio.sleep(0)
            for _ in range(10):
                await clock.advance(16)
            await task
            return samples

        samples = asyncio.run(scenario())
        fractions = [f for _, f in samples]
        assert fractions[0] == 0.0
        assert fractions[-1] == 1.0
        assert fractions.count(1.0) == 1
        assert fractions == sorted(fractions)
        # start sample + one per frame until 112 ms >= 100 ms
        assert len(samples) == 8
        assert samples[-1][0] == pytest.approx(100.0)

    def test_long_frame_clamps_to_one(self):
        async def scenario():
            clock = FrameClock()
            samples = []
            task = asyncio.create_task(
                run_interpolation(clock, Vector3(0, 0, 0), Vector3(4, 0, 0), 50, lambda v, f: samples.append((v, f)))
            )
            await asyncio.sleep(0)
            await clock.advance(1000)
            await task
            return samples

        samples = asyncio.run(scenario())
        assert samples[-1] == (Vector3(4, 0, 0), 1.0)
        assert len(samples) == 2

    def test_easing_shapes_values_not_fractions(self):
        async def scenario():
            clock = FrameClock()
            samples = []
            task = asyncio.create_task(
                run_interpolation(clock, 0.0, 1.0, 100, lambda v, f: samples.append((v, f)), easing=ease_out_cubic)
            )
            await asyncio.sleep(0)
            await clock.advance(50)
            await clock.advance(50)
            await task
            return samples

        samples = asyncio.run(scenario())
        value, fraction = samples[1]
        assert fraction == pytest.approx(0.5)
        assert value == pytest.approx(ease_out_cubic(0.5))
