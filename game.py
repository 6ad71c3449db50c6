#!/usr/bin/env python3
"""Runtime loop: input polling, encounter wiring and frame pacing."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from typing import Any

import pygame
from pygame.math import Vector3

from animation import FrameClock
from config import EncounterConfig
from encounter import EncounterMachine, EncounterSession, EncounterState
from proximity import ProximityTrigger
from renderer import Renderer
from scene import Scene, build_room
from ui import PromptGateway, Presentation


logger = logging.getLogger(__name__)

MOVE_SPEED = 12.0
TURN_SPEED = 1.8
PITCH_LIMIT = 1.2
AUTOPLAY_PROMPT_DELAY_MS = 600
HUD_HINT = "WASD move  arrows look  Q/E height  O door  P attack  ESC quit"


class Game:
    """Owns the scene, the encounter and the pygame window."""

    def __init__(
        self,
        config: EncounterConfig | None = None,
        smoke: bool = False,
        max_frames: int = 90,
        autoplay: bool = False,
        answers: list[str] | None = None,
        seed: int | None = None,
    ) -> None:
        self.config = config or EncounterConfig()
        self.renderer = Renderer()
        self.screen = pygame.display.set_mode((Renderer.WIDTH, Renderer.HEIGHT))
        self.clock = pygame.time.Clock()
        self.frames = FrameClock()
        self.running = True
        self.smoke = smoke
        self.max_frames = max(1, int(max_frames))
        self.autoplay = autoplay
        self.autoplay_answers = list(answers or [])
        self.autoplay_cooldown_ms = 0
        self.frame_count = 0
        self.elapsed_s = 0.0
        self.rng = random.Random(seed)

        self.scene = build_room(Scene())
        self.gateway = PromptGateway()
        self.presentation = Presentation(rng=self.rng)
        self.session = EncounterSession()
        self.machine = EncounterMachine(
            self.session,
            self.scene,
            self.frames,
            self.gateway,
            self.presentation,
            config=self.config,
            rng=self.rng,
        )
        self.proximity = ProximityTrigger(
            self.scene,
            self.frames,
            self.session.gate,
            self.machine.trigger_riddle_one,
            threshold=self.config.proximity_threshold,
            interval_ms=self.config.poll_interval_ms,
        )

    def _movement_locked(self) -> bool:
        if self.gateway.is_open or self.session.portal.active:
            return True
        run = self.session.attack
        return run is not None and run.lunging

    def _move_camera(self, delta_ms: int, forward: float, strafe: float, lift: float, turn: float, tilt: float) -> None:
        camera = self.scene.camera
        seconds = delta_ms / 1000.0
        camera.yaw += turn * TURN_SPEED * seconds
        camera.pitch = max(-PITCH_LIMIT, min(PITCH_LIMIT, camera.pitch + tilt * TURN_SPEED * seconds))

        heading = camera.forward
        side = Vector3(math.cos(camera.yaw), 0, math.sin(camera.yaw))
        step = heading * forward + side * strafe + Vector3(0, lift, 0)
        if step.length_squared() > 0:
            position = self.scene.get_camera_position() + step * MOVE_SPEED * seconds
            self.scene.set_camera_position(position)

    def _update_movement(self, delta_ms: int) -> None:
        if self._movement_locked():
            return
        keys = pygame.key.get_pressed()
        self._move_camera(
            delta_ms,
            forward=float(keys[pygame.K_w]) - float(keys[pygame.K_s]),
            strafe=float(keys[pygame.K_d]) - float(keys[pygame.K_a]),
            lift=float(keys[pygame.K_e]) - float(keys[pygame.K_q]),
            turn=float(keys[pygame.K_RIGHT]) - float(keys[pygame.K_LEFT]),
            tilt=float(keys[pygame.K_UP]) - float(keys[pygame.K_DOWN]),
        )

    def _handle_events(self) -> None:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
                continue
            if event.type != pygame.KEYDOWN:
                continue
            if event.key == pygame.K_ESCAPE:
                self.running = False
                continue

            if self.gateway.is_open:
                self.gateway.handle_key(event)
            elif event.key == pygame.K_o:
                self.machine.open_door()
            elif event.key == pygame.K_p:
                self.machine.start_attack_sequence()

    def _update_autoplay(self, delta_ms: int) -> None:
        if not self.autoplay:
            return
        if self.gateway.is_open:
            self.autoplay_cooldown_ms += delta_ms
            if self.autoplay_cooldown_ms >= AUTOPLAY_PROMPT_DELAY_MS:
                answer = self.autoplay_answers.pop(0) if self.autoplay_answers else "wrong"
                self.gateway.submit(answer)
                self.autoplay_cooldown_ms = 0
            return

        if self.session.state == EncounterState.IDLE and not self._movement_locked():
            throne = self.scene.find("throne")
            if throne is None:
                return
            to_throne = throne.position - self.scene.get_camera_position()
            if to_throne.length_squared() > 1e-6:
                step = to_throne.normalize() * MOVE_SPEED * delta_ms / 1000.0
                self.scene.set_camera_position(self.scene.get_camera_position() + step)

    def _update(self, delta_ms: int) -> None:
        self._update_movement(delta_ms)
        self._update_autoplay(delta_ms)
        self.gateway.update(delta_ms)
        self.presentation.update(delta_ms)

    def _build_frame(self) -> dict[str, Any]:
        splash = self.presentation.splash
        blackout = self.presentation.blackout
        return {
            "scene": self.scene,
            "banners": list(self.presentation.banners),
            "splash_blotches": splash.blotches,
            "splash_opacity": splash.opacity,
            "blackout_alpha": blackout.alpha,
            "blackout_message": blackout.message if blackout.active else "",
            "prompt_open": self.gateway.is_open,
            "prompt_question": self.gateway.question,
            "prompt_text": self.gateway.field.display_value,
            "prompt_has_text": bool(self.gateway.field.text),
            "prompt_cursor_visible": self.gateway.field.cursor_visible,
            "hud_text": f"[{self.session.state.value}]  {HUD_HINT}",
        }

    async def _loop(self) -> None:
        self.proximity.start()
        try:
            while self.running:
                delta_ms = self.clock.tick(60)
                self.elapsed_s += delta_ms / 1000.0
                self._handle_events()
                self._update(delta_ms)
                await self.frames.advance(delta_ms)
                self.machine.update_frame(self.elapsed_s)

                self.renderer.draw(self.screen, self._build_frame())
                pygame.display.flip()

                self.frame_count += 1
                if self.smoke and self.frame_count >= self.max_frames:
                    self.running = False
        finally:
            await self._teardown()

    async def _teardown(self) -> None:
        self.proximity.stop()
        self.gateway.close()
        self.presentation.clear()
        self.machine.shutdown()
        # let cancelled routines unwind
        for _ in range(self.frames.settle_steps):
            await asyncio.sleep(0)
        logger.info(
            "Session ended in state '%s' (outcome: %s)",
            self.session.state.value,
            self.session.outcome.value,
        )

    def run(self) -> None:
        asyncio.run(self._loop())
