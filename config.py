#!/usr/bin/env python3
"""Encounter tunables with optional JSON overrides."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import json
from pathlib import Path
from typing import Any


class ConfigError(ValueError):
    """Raised when a tuning file cannot be applied."""


@dataclass(frozen=True)
class EncounterConfig:
    """Timings, rates and caps for the throne room encounter."""

    # proximity
    poll_interval_ms: int = 600
    proximity_threshold: float = 6.0

    # attack run
    lunge_count: int = 5
    awaken_ms: int = 400
    lunge_ms: int = 240
    retreat_ms: int = 240
    lunge_stop_short: float = 0.3
    lunge_gap_ms: int = 280
    riddle_two_delay_ms: int = 450
    impact_shake_ms: int = 360
    impact_shake_magnitude: float = 0.6
    idle_spin: float = 0.01

    # door
    door_increment: float = 0.02
    door_swing: float = 0.6
    door_slide: float = 6.0

    # portal
    portal_pull_rate: float = 0.02
    portal_background_rate: float = 0.01
    portal_light_step: float = 0.2
    portal_light_cap: float = 12.0
    portal_scale_start: float = 0.01
    portal_scale_step: float = 0.02
    portal_scale_cap: float = 2.5
    portal_opacity_step: float = 0.02
    portal_blackout_delay_ms: int = 7500

    # banners
    riddle_one_banner_ms: int = 2200
    riddle_two_banner_ms: int = 2000

    def with_overrides(self, overrides: dict[str, Any]) -> EncounterConfig:
        known = {f.name: f for f in fields(self)}
        unknown = sorted(set(overrides) - set(known))
        if unknown:
            raise ConfigError(f"Unknown config keys: {unknown}")

        coerced: dict[str, Any] = {}
        for key, value in overrides.items():
            current = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"Config key '{key}' must be numeric, got {value!r}")
            if isinstance(current, int):
                if isinstance(value, float) and not value.is_integer():
                    raise ConfigError(f"Config key '{key}' must be a whole number, got {value!r}")
                coerced[key] = int(value)
            else:
                coerced[key] = float(value)
        updated = replace(self, **coerced)
        updated.validate()
        return updated

    def validate(self) -> None:
        if self.poll_interval_ms <= 0:
            raise ConfigError("poll_interval_ms must be positive")
        if self.proximity_threshold <= 0:
            raise ConfigError("proximity_threshold must be positive")
        if self.lunge_count < 0:
            raise ConfigError("lunge_count cannot be negative")
        if not 0.0 <= self.lunge_stop_short <= 1.0:
            raise ConfigError("lunge_stop_short must be within [0, 1]")

        durations = (
            "awaken_ms",
            "lunge_ms",
            "retreat_ms",
            "lunge_gap_ms",
            "riddle_two_delay_ms",
            "impact_shake_ms",
            "portal_blackout_delay_ms",
            "riddle_one_banner_ms",
            "riddle_two_banner_ms",
        )
        for name in durations:
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} cannot be negative")
        if self.impact_shake_magnitude < 0:
            raise ConfigError("impact_shake_magnitude cannot be negative")

        steps = ("door_increment", "portal_light_step", "portal_scale_step", "portal_opacity_step")
        for name in steps:
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        for name in ("portal_pull_rate", "portal_background_rate"):
            if not 0.0 < getattr(self, name) <= 1.0:
                raise ConfigError(f"{name} must be within (0, 1]")
        if self.portal_scale_cap < self.portal_scale_start or self.portal_scale_start < 0:
            raise ConfigError("portal_scale_start must be within [0, portal_scale_cap]")
        if self.portal_light_cap <= 0:
            raise ConfigError("portal_light_cap must be positive")


def load_config(path: str | Path | None = None) -> EncounterConfig:
    """Return the default config, or the defaults with a JSON file applied."""
    config = EncounterConfig()
    if path is None:
        return config

    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return config.with_overrides(payload)
