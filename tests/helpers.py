"""Shared test helpers for driving the encounter frame by frame."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import random
from typing import Callable

from pygame.math import Vector3

from animation import FrameClock
from config import EncounterConfig
from encounter import EncounterMachine, EncounterSession
from proximity import ProximityTrigger
from scene import Scene
from ui import PromptGateway, Presentation


class RecordingPresentation(Presentation):
    """Presentation that also counts every effect request."""

    def __init__(self, rng: random.Random | None = None) -> None:
        super().__init__(rng=rng)
        self.impacts = 0
        self.banner_log: list[tuple[str, str]] = []
        self.blackouts: list[str] = []

    def show_banner(self, text: str, tone: str = "info", duration_ms: int = 2200) -> None:
        self.banner_log.append((text, tone))
        super().show_banner(text, tone, duration_ms)

    def show_impact_effect(self) -> None:
        self.impacts += 1
        super().show_impact_effect()

    def show_blackout(self, message: str) -> None:
        self.blackouts.append(message)
        super().show_blackout(message)


@dataclass
class EncounterHarness:
    scene: Scene
    clock: FrameClock
    gateway: PromptGateway
    presentation: RecordingPresentation
    session: EncounterSession
    machine: EncounterMachine
    proximity: ProximityTrigger

    @classmethod
    def create(
        cls,
        scene: Scene,
        config: EncounterConfig | None = None,
        rng: random.Random | None = None,
    ) -> EncounterHarness:
        config = config or EncounterConfig()
        rng = rng or random.Random(0)
        clock = FrameClock()
        gateway = PromptGateway()
        presentation = RecordingPresentation(rng=rng)
        session = EncounterSession()
        machine = EncounterMachine(session, scene, clock, gateway, presentation, config=config, rng=rng)
        proximity = ProximityTrigger(
            scene,
            clock,
            session.gate,
            machine.trigger_riddle_one,
            threshold=config.proximity_threshold,
            interval_ms=config.poll_interval_ms,
        )
        return cls(scene, clock, gateway, presentation, session, machine, proximity)

    async def settle(self) -> None:
        for _ in range(self.clock.settle_steps):
            await asyncio.sleep(0)

    async def frame(self, delta_ms: float = 16) -> None:
        await self.clock.advance(delta_ms)
        self.machine.update_frame(self.clock.now_ms / 1000.0)
        self.presentation.update(int(delta_ms))

    async def run_until(
        self,
        predicate: Callable[[], bool],
        step_ms: float | Callable[[], float] = 16,
        limit: int = 5000,
        each_frame: Callable[[], None] | None = None,
    ) -> int:
        for frames in range(limit):
            if predicate():
                return frames
            delta = step_ms() if callable(step_ms) else step_ms
            await self.frame(delta)
            if each_frame is not None:
                each_frame()
        raise AssertionError(f"condition not reached after {limit} frames")

    async def answer(self, text: str) -> None:
        await self.run_until(lambda: self.gateway.is_open)
        assert self.gateway.submit(text)
        await self.settle()

    def place_player_near_throne(self, distance: float = 3.0) -> None:
        throne = self.scene.require("throne")
        self.scene.set_camera_position(throne.position + Vector3(distance, 0, 0))

    async def enter_riddle_one(self) -> None:
        self.place_player_near_throne()
        self.proximity.start()
        await self.run_until(lambda: self.gateway.is_open)
