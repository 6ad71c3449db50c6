#!/usr/bin/env python3
"""One-shot proximity trigger that starts the first riddle near the throne."""

from __future__ import annotations

import logging
from typing import Callable

from animation import FrameClock, ScheduledCall
from encounter import ProximityGate
from scene import MissingCollaborator, Scene


logger = logging.getLogger(__name__)

LANDMARK_NAME = "throne"


class ProximityTrigger:
    """Polls player distance to the landmark and fires at most once."""

    def __init__(
        self,
        scene: Scene,
        clock: FrameClock,
        gate: ProximityGate,
        on_enter: Callable[[], bool],
        threshold: float = 6.0,
        interval_ms: float = 600,
        landmark: str = LANDMARK_NAME,
    ) -> None:
        self.scene = scene
        self.clock = clock
        self.gate = gate
        self.on_enter = on_enter
        self.threshold = threshold
        self.interval_ms = interval_ms
        self.landmark = landmark
        self._handle: ScheduledCall | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self) -> None:
        if self.running:
            return
        self._handle = self.clock.call_every(self.interval_ms, self.poll)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def poll(self) -> bool:
        if self.gate.consumed:
            return False
        try:
            landmark = self.scene.require(self.landmark)
        except MissingCollaborator:
            logger.debug("Proximity check skipped, %s not loaded", self.landmark)
            return False

        distance = self.scene.get_camera_position().distance_to(landmark.position)
        if distance >= self.threshold:
            return False
        # The gate is only spent once the encounter accepts the entry.
        if not self.on_enter():
            return False

        self.gate.consume()
        logger.info("Player reached the %s (distance %.2f)", self.landmark, distance)
        self.stop()
        return True
