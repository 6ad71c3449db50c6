"""
Tests for session teardown in the runtime loop.
"""

import asyncio
import os

import pygame
import pytest

from encounter import EncounterState
from game import Game


@pytest.fixture
def game():
    """Game wired to a headless display."""
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
    pygame.init()
    try:
        yield Game(seed=3)
    finally:
        pygame.quit()


class TestTeardown:
    """Leaving the loop removes prompts, overlays and pending routines."""

    def test_teardown_closes_prompt_and_clears_overlays(self, game):
        async def scenario():
            game.proximity.start()
            assert game.machine.trigger_riddle_one()
            for _ in range(game.frames.settle_steps):
                await asyncio.sleep(0)
            assert game.gateway.is_open
            tasks = list(game.machine._tasks)

            game.presentation.show_impact_effect()
            game.presentation.show_banner("Correct! The door opens.")
            assert game.presentation.splash.active

            await game._teardown()
            return tasks

        tasks = asyncio.run(scenario())
        assert not game.gateway.is_open
        assert game.gateway.question == ""
        assert not game.presentation.splash.active
        assert game.presentation.banners == []
        assert not game.proximity.running
        assert tasks and all(task.done() for task in tasks)
        assert game.session.state == EncounterState.RIDDLE1_PENDING

    def test_teardown_cancels_pending_blackout(self, game):
        game.session.state = EncounterState.RIDDLE2_PENDING

        async def scenario():
            assert game.machine.trigger_portal()
            await game._teardown()
            await game.frames.advance(game.config.portal_blackout_delay_ms + 1000)

        asyncio.run(scenario())
        assert not game.presentation.blackout.active
        assert game.session.state == EncounterState.PORTAL_ACTIVE

    def test_build_frame_reflects_open_prompt(self, game):
        async def scenario():
            game.machine.trigger_riddle_one()
            for _ in range(game.frames.settle_steps):
                await asyncio.sleep(0)
            frame = game._build_frame()
            await game._teardown()
            return frame

        frame = asyncio.run(scenario())
        assert frame["prompt_open"]
        assert frame["prompt_question"].startswith("Riddle:")
        assert frame["hud_text"].startswith("[riddle1_pending]")
