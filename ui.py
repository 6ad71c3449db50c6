#!/usr/bin/env python3
"""Prompt gateway, text input and transient overlay effects."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import random

import pygame


logger = logging.getLogger(__name__)

TONE_SUCCESS = "success"
TONE_DANGER = "danger"
TONE_INFO = "info"


@dataclass
class TextInputField:
    """Simple blinking-cursor text input."""

    text: str = ""
    max_length: int = 48
    placeholder: str = "Your answer"
    _cursor_timer_ms: int = 0
    _cursor_visible: bool = True

    def update(self, delta_ms: int) -> None:
        self._cursor_timer_ms += max(0, int(delta_ms))
        if self._cursor_timer_ms >= 450:
            self._cursor_timer_ms = 0
            self._cursor_visible = not self._cursor_visible

    def clear(self) -> None:
        self.text = ""
        self._cursor_timer_ms = 0
        self._cursor_visible = True

    def handle_key(self, event: pygame.event.Event) -> bool:
        if event.type != pygame.KEYDOWN:
            return False
        if event.key == pygame.K_BACKSPACE:
            self.text = self.text[:-1]
            return True
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_ESCAPE):
            return False
        if len(self.text) >= self.max_length:
            return False

        char = event.unicode
        if not char:
            return False
        if char.isprintable() and char not in "\r\n\t":
            self.text += char
            return True
        return False

    @property
    def value(self) -> str:
        return self.text.strip()

    @property
    def display_value(self) -> str:
        return self.text if self.text else self.placeholder

    @property
    def cursor_visible(self) -> bool:
        return self._cursor_visible


class PromptGateway:
    """One question at a time; resolves with the player's trimmed answer."""

    def __init__(self) -> None:
        self.field = TextInputField()
        self.question = ""
        self._pending: asyncio.Future | None = None

    @property
    def is_open(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def present_prompt(self, question: str) -> str | None:
        if self.is_open:
            logger.debug("Prompt already open, dropping %r", question)
            return None
        self.question = question
        self.field.clear()
        waiter = asyncio.get_running_loop().create_future()
        self._pending = waiter
        logger.info("Prompt opened: %s", question)
        try:
            return await waiter
        finally:
            if self._pending is waiter:
                self._pending = None
                self.question = ""

    def submit(self, text: str | None = None) -> bool:
        if not self.is_open:
            return False
        raw = self.field.text if text is None else text
        answer = (raw or "").strip()
        self._pending.set_result(answer)
        self.field.clear()
        return True

    def handle_key(self, event: pygame.event.Event) -> bool:
        if not self.is_open or event.type != pygame.KEYDOWN:
            return False
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            return self.submit()
        return self.field.handle_key(event)

    def update(self, delta_ms: int) -> None:
        if self.is_open:
            self.field.update(delta_ms)

    def close(self) -> None:
        if self.is_open:
            self._pending.cancel()
        self.question = ""
        self.field.clear()


@dataclass
class Banner:
    text: str
    tone: str = TONE_INFO
    remaining_ms: int = 2200


@dataclass
class Blotch:
    """One splash circle in normalized screen coordinates."""

    x: float
    y: float
    radius: float
    alpha: float
    color: tuple[int, int, int]


@dataclass
class ImpactSplash:
    """Blood splatter that holds, then fades out."""

    hold_ms: int = 350
    fade_ms: int = 500
    timer_ms: int = 0
    active: bool = False
    blotches: list[Blotch] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random)

    def start(self) -> None:
        cx = 0.5 + (self.rng.random() - 0.5) * 0.08
        cy = 0.45 + (self.rng.random() - 0.5) * 0.08
        blotches: list[Blotch] = []
        for _ in range(12):
            radius = (30 + self.rng.random() * 180) / 800
            blotches.append(
                Blotch(
                    cx + (self.rng.random() - 0.5) * radius * 1.5,
                    cy + (self.rng.random() - 0.5) * radius * 0.9,
                    radius,
                    0.8 - self.rng.random() * 0.3,
                    (255, 20, 20),
                )
            )
        for _ in range(80):
            blotches.append(
                Blotch(
                    cx + (self.rng.random() - 0.5) * 0.6,
                    cy + (self.rng.random() - 0.5) * 0.6,
                    (1 + self.rng.random() * 8) / 800,
                    0.35 + self.rng.random() * 0.4,
                    (180, 10, 10),
                )
            )
        self.blotches = blotches
        self.timer_ms = 0
        self.active = True

    def update(self, delta_ms: int) -> None:
        if not self.active:
            return
        self.timer_ms += max(0, int(delta_ms))
        if self.timer_ms >= self.hold_ms + self.fade_ms:
            self.active = False
            self.blotches = []

    @property
    def opacity(self) -> float:
        if not self.active:
            return 0.0
        if self.timer_ms <= self.hold_ms:
            return 1.0
        return max(0.0, 1.0 - (self.timer_ms - self.hold_ms) / max(1, self.fade_ms))


@dataclass
class Blackout:
    """Full-screen fade to black with a closing line of text."""

    message: str = ""
    duration_ms: int = 1200
    timer_ms: int = 0
    active: bool = False

    def start(self, message: str) -> None:
        self.message = message
        self.timer_ms = 0
        self.active = True

    def update(self, delta_ms: int) -> None:
        if self.active:
            self.timer_ms = min(self.duration_ms, self.timer_ms + max(0, int(delta_ms)))

    @property
    def alpha(self) -> int:
        if not self.active:
            return 0
        return int(min(255, (self.timer_ms / max(1, self.duration_ms)) * 255))


class Presentation:
    """Fire-and-forget visual feedback; nothing here feeds back into logic."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.banners: list[Banner] = []
        self.splash = ImpactSplash(rng=rng or random.Random())
        self.blackout = Blackout()

    def show_banner(self, text: str, tone: str = TONE_INFO, duration_ms: int = 2200) -> None:
        self.banners.append(Banner(text, tone, max(0, int(duration_ms))))

    def show_impact_effect(self) -> None:
        self.splash.start()

    def show_blackout(self, message: str) -> None:
        self.blackout.start(message)

    def update(self, delta_ms: int) -> None:
        for banner in self.banners:
            banner.remaining_ms -= max(0, int(delta_ms))
        self.banners = [b for b in self.banners if b.remaining_ms > 0]
        self.splash.update(delta_ms)
        self.blackout.update(delta_ms)

    def clear(self) -> None:
        self.banners.clear()
        self.splash.active = False
        self.splash.blotches = []
        self.blackout.active = False
