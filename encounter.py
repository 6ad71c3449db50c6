#!/usr/bin/env python3
"""Encounter state machine for the throne room riddles, attack and endings.

All mutable narrative state lives on one ``EncounterSession``. The
``EncounterMachine`` is the only writer: it validates transitions against
``LEGAL_TRANSITIONS``, launches the awaitable routines from ``sequences`` and
advances the per-frame ramps (door swing, portal pull, ambient flicker).
Illegal requests are logged and ignored rather than raised to callers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
import math
import random
from typing import Any, Coroutine

from pygame.math import Vector3

from animation import FrameClock, ScheduledCall
from config import EncounterConfig
from scene import (
    BACKGROUND_DOOM,
    PENTAGON_RADIUS,
    PORTAL_TARGET,
    Material,
    MissingCollaborator,
    Scene,
    Shape,
    pentagon_points,
)
from sequences import awaken_antagonist, lunge_at_camera
from ui import TONE_SUCCESS, PromptGateway, Presentation


logger = logging.getLogger(__name__)

SUCCESS_TEXT = "Correct! The door opens."
DOOM_TEXT = "You have been dragged into the abyss..."


class EncounterState(str, Enum):
    IDLE = "idle"
    RIDDLE1_PENDING = "riddle1_pending"
    ATTACK_ACTIVE = "attack_active"
    RIDDLE2_PENDING = "riddle2_pending"
    DOOR_OPENING = "door_opening"
    PORTAL_ACTIVE = "portal_active"
    RESOLVED = "resolved"


class Outcome(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    DOOM = "doom"


# Dev commands issued from IDLE run the door or attack as side effects and
# leave the state alone, so the riddle script stays reachable.
LEGAL_TRANSITIONS: dict[EncounterState, frozenset[EncounterState]] = {
    EncounterState.IDLE: frozenset({EncounterState.RIDDLE1_PENDING}),
    EncounterState.RIDDLE1_PENDING: frozenset({EncounterState.DOOR_OPENING, EncounterState.ATTACK_ACTIVE}),
    EncounterState.ATTACK_ACTIVE: frozenset({EncounterState.RIDDLE2_PENDING}),
    EncounterState.RIDDLE2_PENDING: frozenset({EncounterState.DOOR_OPENING, EncounterState.PORTAL_ACTIVE}),
    EncounterState.DOOR_OPENING: frozenset({EncounterState.RESOLVED}),
    EncounterState.PORTAL_ACTIVE: frozenset({EncounterState.RESOLVED}),
    EncounterState.RESOLVED: frozenset(),
}


class InvalidTransition(Exception):
    """Raised when a transition is not legal from the current state."""


def normalize_answer(answer: str | None) -> str:
    return (answer or "").strip().lower()


@dataclass(frozen=True)
class RiddleDefinition:
    prompt_text: str
    accepted_answers: frozenset[str]

    def __post_init__(self) -> None:
        normalized = frozenset(normalize_answer(a) for a in self.accepted_answers)
        object.__setattr__(self, "accepted_answers", normalized)

    def matches(self, answer: str | None) -> bool:
        return normalize_answer(answer) in self.accepted_answers


RIDDLE_ONE = RiddleDefinition(
    "Riddle: I speak without a mouth and hear without ears. "
    "I have nobody, but I come alive with wind. What am I?",
    frozenset({"echo", "an echo"}),
)
RIDDLE_TWO = RiddleDefinition(
    "Riddle 2: The more you take, the more you leave behind. What am I?",
    frozenset({"footsteps", "footstep", "footprint", "footprints", "a footprint"}),
)


@dataclass
class AttackSequenceRun:
    remaining_lunges: int
    antagonist_handle: int
    origin_position: Vector3
    lunging: bool = False


@dataclass
class DoorProgress:
    """Door swing progress; once started it only moves towards 1."""

    value: float = 0.0
    started: bool = False

    def begin(self) -> bool:
        if self.started:
            return False
        self.started = True
        return True

    def advance(self, increment: float) -> float:
        if self.started:
            self.value = min(1.0, self.value + max(0.0, increment))
        return self.value

    @property
    def complete(self) -> bool:
        return self.value >= 1.0

    def swing_angle(self, swing: float = 0.6) -> float:
        return self.value * math.pi * swing

    def lateral_offset(self, swing: float = 0.6, slide: float = 6.0) -> float:
        return math.sin(self.swing_angle(swing)) * slide


@dataclass
class PortalRun:
    scale: float = 0.0
    opacity: float = 0.0
    active: bool = False
    handle: int | None = None

    def activate(self, start_scale: float, handle: int | None) -> bool:
        if self.active:
            return False
        self.active = True
        self.scale = max(0.0, start_scale)
        self.opacity = 0.0
        self.handle = handle
        return True

    def advance(self, scale_step: float, scale_cap: float, opacity_step: float) -> None:
        if not self.active:
            return
        self.scale = min(scale_cap, self.scale + scale_step)
        self.opacity = min(1.0, self.opacity + opacity_step)


@dataclass
class ProximityGate:
    consumed: bool = False

    def consume(self) -> bool:
        if self.consumed:
            return False
        self.consumed = True
        return True


@dataclass
class EncounterSession:
    """Everything the encounter mutates, in one place."""

    state: EncounterState = EncounterState.IDLE
    outcome: Outcome = Outcome.PENDING
    attack: AttackSequenceRun | None = None
    door: DoorProgress = field(default_factory=DoorProgress)
    portal: PortalRun = field(default_factory=PortalRun)
    gate: ProximityGate = field(default_factory=ProximityGate)
    history: list[tuple[EncounterState, EncounterState]] = field(default_factory=list)

    def can_transition(self, target: EncounterState) -> bool:
        return target in LEGAL_TRANSITIONS[self.state]

    def transition(self, target: EncounterState) -> EncounterState:
        if not self.can_transition(target):
            raise InvalidTransition(
                f"Cannot move from '{self.state.value}' to '{target.value}'"
            )
        self.history.append((self.state, target))
        self.state = target
        return target

    def resolve(self, outcome: Outcome) -> None:
        self.transition(EncounterState.RESOLVED)
        self.outcome = outcome

    def begin_attack(self, run: AttackSequenceRun) -> None:
        if self.attack is not None:
            raise InvalidTransition("An attack run is already in progress")
        self.attack = run

    def end_attack(self) -> AttackSequenceRun | None:
        run, self.attack = self.attack, None
        return run

    @property
    def pending_riddle(self) -> RiddleDefinition | None:
        if self.state == EncounterState.RIDDLE1_PENDING:
            return RIDDLE_ONE
        if self.state == EncounterState.RIDDLE2_PENDING:
            return RIDDLE_TWO
        return None


class EncounterMachine:
    """Drives the session through the riddle script."""

    def __init__(
        self,
        session: EncounterSession,
        scene: Scene,
        clock: FrameClock,
        gateway: PromptGateway,
        presentation: Presentation,
        config: EncounterConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.session = session
        self.scene = scene
        self.clock = clock
        self.gateway = gateway
        self.presentation = presentation
        self.config = config or EncounterConfig()
        self.rng = rng or random.Random()
        self.background: tuple[float, float, float] = tuple(float(c) for c in scene.background)
        self._tasks: set[asyncio.Task] = set()
        self._blackout_handle: ScheduledCall | None = None
        self._door_origin: Vector3 | None = None

    @property
    def state(self) -> EncounterState:
        return self.session.state

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Encounter routine %s failed", task.get_name(), exc_info=exc)

    def _transition(self, target: EncounterState) -> bool:
        previous = self.session.state
        try:
            self.session.transition(target)
        except InvalidTransition as exc:
            logger.warning("Ignored transition: %s", exc)
            return False
        logger.info("Encounter %s -> %s", previous.value, target.value)
        return True

    # riddles

    def trigger_riddle_one(self) -> bool:
        if not self.session.can_transition(EncounterState.RIDDLE1_PENDING):
            logger.debug("Riddle one not available in state '%s'", self.state.value)
            return False
        self._transition(EncounterState.RIDDLE1_PENDING)
        self._spawn(self._ask(RIDDLE_ONE), "riddle-one")
        return True

    async def _ask(self, riddle: RiddleDefinition) -> None:
        answer = await self.gateway.present_prompt(riddle.prompt_text)
        if answer is None:
            return
        self.answer_riddle(answer)

    def answer_riddle(self, answer: str | None) -> bool:
        riddle = self.session.pending_riddle
        if riddle is None:
            logger.warning("Answer ignored, no riddle pending in state '%s'", self.state.value)
            return False

        first = riddle is RIDDLE_ONE
        if riddle.matches(answer):
            logger.info("Riddle answered correctly")
            if self.open_door():
                banner_ms = self.config.riddle_one_banner_ms if first else self.config.riddle_two_banner_ms
                self.presentation.show_banner(SUCCESS_TEXT, TONE_SUCCESS, banner_ms)
        elif first:
            logger.info("Wrong answer to riddle one: %r", normalize_answer(answer))
            self.start_attack_sequence()
        else:
            logger.info("Wrong answer to riddle two: %r", normalize_answer(answer))
            self.trigger_portal()
        return True

    # attack run

    def start_attack_sequence(self) -> bool:
        if self.session.attack is not None:
            # A wrong answer during a dev run adopts the run in flight.
            if self.state == EncounterState.RIDDLE1_PENDING:
                return self._transition(EncounterState.ATTACK_ACTIVE)
            logger.debug("Attack sequence already running")
            return False
        if self.state == EncounterState.IDLE:
            logger.info("Attack run started outside the riddle script")
        elif not self._transition(EncounterState.ATTACK_ACTIVE):
            return False

        points = self.scene.pentagon_points or pentagon_points()
        origin = self.rng.choice(points) + Vector3(0, 1.1, 0)
        handle = self.scene.spawn_entity(
            Shape("box", (0.8, 2.2, 0.8)),
            Material((0x33, 0x00, 0x00), emissive=(0x22, 0x00, 0x00)),
            origin,
            name="antagonist",
        )
        run = AttackSequenceRun(self.config.lunge_count, handle, Vector3(origin))
        self.session.begin_attack(run)
        self._spawn(self._run_attack(run), "attack-sequence")
        return True

    async def _run_attack(self, run: AttackSequenceRun) -> None:
        cfg = self.config
        try:
            await awaken_antagonist(self.scene, self.clock, run.antagonist_handle, cfg.awaken_ms)
            while run.remaining_lunges > 0:
                run.lunging = True
                try:
                    await lunge_at_camera(
                        self.scene,
                        self.clock,
                        run.antagonist_handle,
                        self.presentation.show_impact_effect,
                        lunge_ms=cfg.lunge_ms,
                        retreat_ms=cfg.retreat_ms,
                        stop_short=cfg.lunge_stop_short,
                        shake_ms=cfg.impact_shake_ms,
                        shake_magnitude=cfg.impact_shake_magnitude,
                        rng=self.rng,
                    )
                finally:
                    run.lunging = False
                run.remaining_lunges -= 1
                logger.info("Lunge landed, %d remaining", run.remaining_lunges)
                await self.clock.sleep(cfg.lunge_gap_ms)
        finally:
            if self.session.attack is run:
                self.scene.despawn_entity(run.antagonist_handle)
                self.session.end_attack()

        await self.clock.sleep(cfg.riddle_two_delay_ms)
        if self.state != EncounterState.ATTACK_ACTIVE:
            logger.info("Attack run finished in state '%s', no riddle follows", self.state.value)
            return
        if self._transition(EncounterState.RIDDLE2_PENDING):
            await self._ask(RIDDLE_TWO)

    # endings

    def open_door(self) -> bool:
        door = self.session.door
        if self.state == EncounterState.IDLE:
            if not door.begin():
                logger.debug("Door already opening")
                return False
            logger.info("Door opened outside the riddle script")
            return True
        if door.started and self.state == EncounterState.DOOR_OPENING:
            logger.debug("Door already opening")
            return False
        if not self._transition(EncounterState.DOOR_OPENING):
            return False
        # A door already swinging from a dev command keeps its progress.
        door.begin()
        return True

    def trigger_portal(self) -> bool:
        if self.session.portal.active:
            logger.debug("Portal already active")
            return False
        if not self._transition(EncounterState.PORTAL_ACTIVE):
            return False

        circle = self.scene.find("circle")
        if circle is not None:
            self.scene.set_entity_material(circle.handle, opacity=1.0)
        handle = self.scene.spawn_entity(
            Shape("ring", (1.2, PENTAGON_RADIUS * 1.2)),
            Material((0x44, 0x00, 0x00), opacity=0.0),
            Vector3(0, -2.98, -10.01),
            name="portal",
        )
        portal = self.session.portal
        portal.activate(self.config.portal_scale_start, handle)
        self.scene.set_entity_transform(handle, scale=portal.scale)
        self._blackout_handle = self.clock.call_later(
            self.config.portal_blackout_delay_ms, self._present_blackout
        )
        return True

    def _present_blackout(self) -> None:
        self._blackout_handle = None
        self.presentation.show_blackout(DOOM_TEXT)
        try:
            self.session.resolve(Outcome.DOOM)
        except InvalidTransition as exc:
            logger.warning("Ignored transition: %s", exc)
            return
        logger.info("Encounter resolved: doom")

    # per-frame ramps

    def update_frame(self, elapsed_s: float) -> None:
        self._flicker(elapsed_s)
        self._advance_door()
        self._advance_portal()
        self._idle_spin()

    def _flicker(self, elapsed_s: float) -> None:
        red = self.scene.lights.get("red")
        if red is not None and not self.session.portal.active:
            red.intensity = 2.0 + math.sin(elapsed_s * 3.0) * 0.5
        candle = self.scene.lights.get("candle")
        if candle is not None:
            candle.intensity = 1.0 + math.sin(elapsed_s * 7.0) * 0.3

    def _advance_door(self) -> None:
        door = self.session.door
        if not door.started:
            return
        if door.complete:
            self._finish_door()
            return
        try:
            entity = self.scene.require("door")
        except MissingCollaborator as exc:
            logger.debug("Door ramp waiting: %s", exc)
            return

        if self._door_origin is None:
            self._door_origin = Vector3(entity.position)
        door.advance(self.config.door_increment)
        rotation = Vector3(entity.rotation)
        rotation.y = door.swing_angle(self.config.door_swing)
        position = Vector3(self._door_origin)
        position.x += door.lateral_offset(self.config.door_swing, self.config.door_slide)
        self.scene.set_entity_transform(entity.handle, position=position, rotation=rotation)

        if door.complete:
            self._finish_door()

    def _finish_door(self) -> None:
        if self.state != EncounterState.DOOR_OPENING:
            return
        self.session.resolve(Outcome.SUCCESS)
        logger.info("Encounter resolved: door fully open")

    def _advance_portal(self) -> None:
        portal = self.session.portal
        if not portal.active:
            return
        cfg = self.config

        camera = self.scene.get_camera_position()
        self.scene.set_camera_position(camera.lerp(PORTAL_TARGET, cfg.portal_pull_rate))

        rate = cfg.portal_background_rate
        self.background = tuple(c + (t - c) * rate for c, t in zip(self.background, BACKGROUND_DOOM))
        self.scene.background = self.background

        red = self.scene.lights.get("red")
        if red is not None:
            red.intensity = min(cfg.portal_light_cap, red.intensity + cfg.portal_light_step)

        portal.advance(cfg.portal_scale_step, cfg.portal_scale_cap, cfg.portal_opacity_step)
        if self.scene.has_entity(portal.handle):
            self.scene.set_entity_transform(portal.handle, scale=portal.scale)
            self.scene.set_entity_material(portal.handle, opacity=portal.opacity)

    def _idle_spin(self) -> None:
        run = self.session.attack
        if run is None or run.lunging or not self.scene.has_entity(run.antagonist_handle):
            return
        entity = self.scene.entity(run.antagonist_handle)
        rotation = Vector3(entity.rotation)
        rotation.y += self.config.idle_spin
        self.scene.set_entity_transform(run.antagonist_handle, rotation=rotation)

    def shutdown(self) -> None:
        if self._blackout_handle is not None:
            self._blackout_handle.cancel()
            self._blackout_handle = None
        for task in list(self._tasks):
            task.cancel()
