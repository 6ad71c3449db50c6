#!/usr/bin/env python3
"""Awaitable animation routines composed from run_interpolation."""

from __future__ import annotations

import logging
import random
from typing import Callable

from pygame.math import Vector3

from animation import FrameClock, run_interpolation
from scene import Scene


logger = logging.getLogger(__name__)


async def camera_shake(
    scene: Scene,
    clock: FrameClock,
    duration_ms: float = 350,
    magnitude: float = 0.25,
    rng: random.Random | None = None,
) -> None:
    """Jitter the camera with a linearly decaying bound, then put it back."""
    rng = rng or random.Random()
    origin = scene.get_camera_position()

    def sample(_value: float, fraction: float) -> None:
        damper = 1.0 - fraction
        offset = Vector3(
            rng.uniform(-1.0, 1.0) * magnitude * damper,
            rng.uniform(-1.0, 1.0) * magnitude * damper * 0.6,
            rng.uniform(-1.0, 1.0) * magnitude * damper * 0.6,
        )
        scene.set_camera_position(origin + offset)

    await run_interpolation(clock, 0.0, 1.0, duration_ms, sample)
    scene.set_camera_position(origin)


async def awaken_antagonist(scene: Scene, clock: FrameClock, handle: int, duration_ms: float = 400) -> None:
    """Grow the statue from 0.8 to 1.2 while it twists awake."""

    def sample(scale: float, fraction: float) -> None:
        if not scene.has_entity(handle):
            return
        entity = scene.entity(handle)
        rotation = Vector3(entity.rotation)
        rotation.y += 0.06 * fraction
        scene.set_entity_transform(handle, rotation=rotation, scale=scale)

    await run_interpolation(clock, 0.8, 1.2, duration_ms, sample)


def lunge_target(start: Vector3, camera: Vector3, stop_short: float) -> Vector3:
    """Point between the camera (at the statue's height) and ``start``."""
    ground = Vector3(camera.x, start.y, camera.z)
    return ground.lerp(start, stop_short)


async def lunge_at_camera(
    scene: Scene,
    clock: FrameClock,
    handle: int,
    on_impact: Callable[[], None],
    *,
    lunge_ms: float = 240,
    retreat_ms: float = 240,
    stop_short: float = 0.3,
    shake_ms: float = 360,
    shake_magnitude: float = 0.6,
    rng: random.Random | None = None,
) -> None:
    """Forward, impact, shake, retreat; the statue ends exactly where it began."""
    if not scene.has_entity(handle):
        logger.debug("Lunge skipped, entity %d is gone", handle)
        return

    start = Vector3(scene.entity(handle).position)
    target = lunge_target(start, scene.get_camera_position(), stop_short)

    def move(position: Vector3, _fraction: float) -> None:
        if scene.has_entity(handle):
            scene.set_entity_transform(handle, position=position)

    await run_interpolation(clock, start, target, lunge_ms, move)
    on_impact()
    await camera_shake(scene, clock, shake_ms, shake_magnitude, rng)
    await run_interpolation(clock, target, start, retreat_ms, move)
    move(start, 1.0)
