"""
Tests for the one-shot proximity trigger around the throne.
"""

from pygame.math import Vector3

from animation import FrameClock
from encounter import ProximityGate
from proximity import ProximityTrigger
from scene import Scene, add_props


def _trigger(scene, threshold=6.0, interval_ms=600, accept=lambda: True):
    clock = FrameClock()
    gate = ProximityGate()
    calls = []

    def on_enter():
        calls.append(clock.now_ms)
        return accept()

    trigger = ProximityTrigger(scene, clock, gate, on_enter, threshold=threshold, interval_ms=interval_ms)
    return trigger, clock, gate, calls


def _stand_at(scene, distance):
    throne = scene.require("throne")
    scene.set_camera_position(throne.position + Vector3(0, 0, distance))


class TestProximityTrigger:
    """Polling cadence, threshold and one-shot behaviour."""

    def test_fires_once_when_inside_threshold(self, room):
        trigger, clock, gate, calls = _trigger(room)
        _stand_at(room, 3.0)
        trigger.start()
        for now in range(0, 5000, 100):
            clock.tick(now)
        assert calls == [600]
        assert gate.consumed
        assert not trigger.running

    def test_does_not_fire_from_far_away(self, room):
        trigger, clock, gate, calls = _trigger(room)
        _stand_at(room, 20.0)
        trigger.start()
        for now in range(0, 5000, 100):
            clock.tick(now)
        assert calls == []
        assert not gate.consumed
        assert trigger.running

    def test_threshold_is_strict(self, room):
        trigger, _, gate, calls = _trigger(room)
        _stand_at(room, 6.0)
        assert trigger.poll() is False
        _stand_at(room, 5.99)
        assert trigger.poll() is True
        assert len(calls) == 1

    def test_fires_on_first_poll_after_entering(self, room):
        trigger, clock, _, calls = _trigger(room)
        _stand_at(room, 30.0)
        trigger.start()
        clock.tick(1000)
        _stand_at(room, 2.0)
        clock.tick(1100)
        assert calls == []
        clock.tick(1200)
        assert calls == [1200]

    def test_consumed_gate_never_refires(self, room):
        trigger, clock, gate, calls = _trigger(room)
        gate.consume()
        _stand_at(room, 1.0)
        assert trigger.poll() is False
        assert calls == []

    def test_missing_landmark_skips_then_recovers(self):
        scene = Scene()
        trigger, clock, gate, calls = _trigger(scene)
        trigger.start()
        clock.tick(600)
        clock.tick(1200)
        assert calls == []
        assert not gate.consumed

        add_props(scene)
        _stand_at(scene, 2.0)
        clock.tick(1800)
        assert calls == [1800]

    def test_start_is_idempotent_and_stop_cancels(self, room):
        trigger, clock, _, calls = _trigger(room)
        trigger.start()
        trigger.start()
        assert clock.pending_timers == 1
        trigger.stop()
        _stand_at(room, 1.0)
        clock.tick(3000)
        assert calls == []
        assert not trigger.running

    def test_rejected_entry_keeps_gate_open(self, room):
        accepting = []
        trigger, clock, gate, calls = _trigger(room, accept=lambda: bool(accepting))
        _stand_at(room, 2.0)
        trigger.start()
        clock.tick(600)
        clock.tick(1200)
        assert calls == [600, 1200]
        assert not gate.consumed
        assert trigger.running

        accepting.append(True)
        clock.tick(1800)
        assert calls == [600, 1200, 1800]
        assert gate.consumed
        assert not trigger.running
