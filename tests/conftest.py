"""
Pytest fixtures for the throne room encounter test suite.

Provides a fully wired encounter harness (scene, frame clock, gateway,
presentation, session, machine, proximity trigger) with seeded randomness.
"""

import os

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import random

import pytest

from config import EncounterConfig
from scene import Scene, build_room
from tests.helpers import EncounterHarness


@pytest.fixture
def encounter_config():
    """Default encounter tunables."""
    return EncounterConfig()


@pytest.fixture
def room():
    """A fully furnished throne room."""
    return build_room(Scene())


@pytest.fixture
def bare_room():
    """Room geometry without the throne and door props."""
    return build_room(Scene(), with_props=False)


@pytest.fixture
def harness(room, encounter_config):
    """Encounter wired to the furnished room with a fixed seed."""
    return EncounterHarness.create(room, encounter_config, rng=random.Random(1234))
