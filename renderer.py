#!/usr/bin/env python3
"""Wireframe perspective renderer for the throne room plus overlays."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import pygame
from pygame.math import Vector3

from scene import Camera, Entity, Scene


NEAR_PLANE = 0.1
RING_SEGMENTS = 32
WORLD_UP = Vector3(0, 1, 0)

Segment = tuple[Vector3, Vector3]


class CameraBasis:
    """Camera-space axes for one frame of projection."""

    def __init__(self, camera: Camera, width: int, height: int) -> None:
        self.origin = Vector3(camera.position)
        self.forward = camera.forward
        right = self.forward.cross(WORLD_UP)
        self.right = right.normalize() if right.length_squared() > 1e-9 else Vector3(1, 0, 0)
        self.up = self.right.cross(self.forward)
        self.half_w = width / 2
        self.half_h = height / 2
        self.focal = self.half_h / math.tan(math.radians(camera.fov_deg) / 2)

    def to_camera(self, point: Vector3) -> Vector3:
        delta = point - self.origin
        return Vector3(delta.dot(self.right), delta.dot(self.up), delta.dot(self.forward))

    def to_screen(self, local: Vector3) -> tuple[int, int]:
        return (
            int(self.half_w + local.x / local.z * self.focal),
            int(self.half_h - local.y / local.z * self.focal),
        )

    def project(self, point: Vector3) -> tuple[int, int] | None:
        local = self.to_camera(point)
        if local.z < NEAR_PLANE:
            return None
        return self.to_screen(local)

    def project_segment(self, a: Vector3, b: Vector3) -> tuple[tuple[int, int], tuple[int, int]] | None:
        la, lb = self.to_camera(a), self.to_camera(b)
        if la.z < NEAR_PLANE and lb.z < NEAR_PLANE:
            return None
        if la.z < NEAR_PLANE:
            la = lb.lerp(la, (lb.z - NEAR_PLANE) / (lb.z - la.z))
        elif lb.z < NEAR_PLANE:
            lb = la.lerp(lb, (la.z - NEAR_PLANE) / (la.z - lb.z))
        return self.to_screen(la), self.to_screen(lb)


def _transform(entity: Entity, local: Vector3) -> Vector3:
    scaled = Vector3(local.x * entity.scale.x, local.y * entity.scale.y, local.z * entity.scale.z)
    rotated = scaled.rotate_x_rad(entity.rotation.x).rotate_y_rad(entity.rotation.y)
    return rotated + entity.position


def _loop(points: list[Vector3]) -> list[Segment]:
    return [(points[i], points[(i + 1) % len(points)]) for i in range(len(points))]


def entity_segments(entity: Entity) -> list[Segment]:
    """World-space line segments outlining an entity."""
    shape = entity.shape
    if shape.kind == "polyline":
        pts = [p + entity.position for p in shape.points]
        return list(zip(pts, pts[1:]))
    if shape.kind == "plane":
        w, h = shape.size[0] / 2, shape.size[1] / 2
        corners = [Vector3(-w, -h, 0), Vector3(w, -h, 0), Vector3(w, h, 0), Vector3(-w, h, 0)]
        return _loop([_transform(entity, c) for c in corners])
    if shape.kind == "box":
        w, h, d = (s / 2 for s in shape.size)
        bottom = [Vector3(-w, -h, -d), Vector3(w, -h, -d), Vector3(w, -h, d), Vector3(-w, -h, d)]
        top = [Vector3(c.x, h, c.z) for c in bottom]
        bottom = [_transform(entity, c) for c in bottom]
        top = [_transform(entity, c) for c in top]
        return _loop(bottom) + _loop(top) + list(zip(bottom, top))
    if shape.kind == "ring":
        segments: list[Segment] = []
        for radius in shape.size[:2]:
            r = radius * entity.scale.x
            pts = [
                entity.position + Vector3(math.cos(a) * r, 0, math.sin(a) * r)
                for a in (i * 2 * math.pi / RING_SEGMENTS for i in range(RING_SEGMENTS))
            ]
            segments.extend(_loop(pts))
        return segments
    if shape.kind == "cylinder":
        half = shape.size[1] / 2 if len(shape.size) > 1 else 0.25
        return [(entity.position - Vector3(0, half, 0), entity.position + Vector3(0, half, 0))]
    return []


def shade(color: tuple[int, int, int], factor: float) -> tuple[int, int, int]:
    return tuple(max(0, min(255, int(c * factor))) for c in color)


class Renderer:
    """Draws the scene wireframe and the overlay layers on top."""

    WIDTH = 960
    HEIGHT = 600

    COLOR_TEXT = (0xFF, 0xFF, 0xDD)
    COLOR_DIM = (0x99, 0x77, 0x66)
    COLOR_DANGER = (0xFF, 0x64, 0x64)
    COLOR_SUCCESS = (0xAA, 0xFF, 0xAA)
    COLOR_PANEL = (0x12, 0x12, 0x12)
    COLOR_BORDER = (0xFF, 0x44, 0x44)

    TONE_COLORS = {
        "success": ((0xAA, 0xFF, 0xAA), (0x00, 0x22, 0x00)),
        "danger": ((0xFF, 0x64, 0x64), (0x22, 0x00, 0x00)),
        "info": ((0xFF, 0xFF, 0xDD), (0x22, 0x22, 0x22)),
    }

    INNER_PADDING = 12
    PROMPT_RECT = pygame.Rect(160, 210, 640, 170)

    def __init__(self) -> None:
        self.body_font = self._load_font(16)
        self.title_font = self._load_font(22)
        self.small_font = self._load_font(12)
        self.char_w = self.body_font.size("M")[0]
        self.line_height = int(self.body_font.get_linesize() * 1.3)
        self.scanline_surface = self._make_scanline_surface()
        self.frame_surface = pygame.Surface((self.WIDTH, self.HEIGHT))
        self.fade_surface = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
        self.effect_surface = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
        self._wrap_cache: dict[tuple[str, int], list[str]] = {}

    def _load_font(self, size: int) -> pygame.font.Font:
        font_path = Path("assets/fonts/PressStart2P-Regular.ttf")
        if font_path.exists():
            return pygame.font.Font(str(font_path), size)
        return pygame.font.SysFont("couriernew", size)

    def _make_scanline_surface(self) -> pygame.Surface:
        surface = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
        for y in range(0, self.HEIGHT, 2):
            pygame.draw.line(surface, (0, 0, 0, 30), (0, y), (self.WIDTH, y))
        return surface

    def _wrap_text(self, text: str, max_width: int) -> list[str]:
        cache_key = (text, max_width)
        cached = self._wrap_cache.get(cache_key)
        if cached is not None:
            return list(cached)

        lines: list[str] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}".strip()
            if self.body_font.size(candidate)[0] <= max_width or not current:
                current = candidate
            else:
                lines.append(current)
                current = word
        if current:
            lines.append(current)

        if len(self._wrap_cache) > 128:
            self._wrap_cache.clear()
        self._wrap_cache[cache_key] = list(lines)
        return lines

    def _panel_inner(self, rect: pygame.Rect) -> pygame.Rect:
        return rect.inflate(-(self.INNER_PADDING * 2), -(self.INNER_PADDING * 2))

    def _draw_ascii_border(self, canvas: pygame.Surface, rect: pygame.Rect, color: tuple[int, int, int]) -> None:
        pygame.draw.rect(canvas, self.COLOR_PANEL, rect)
        cols = max(2, rect.width // self.char_w)
        rows = max(2, rect.height // self.body_font.get_linesize())
        top = "╔" + ("═" * (cols - 2)) + "╗"
        mid = "║" + (" " * (cols - 2)) + "║"
        bot = "╚" + ("═" * (cols - 2)) + "╝"
        y = rect.y
        for row_idx in range(rows):
            line = top if row_idx == 0 else bot if row_idx == rows - 1 else mid
            canvas.blit(self.body_font.render(line, True, color), (rect.x, y))
            y += self.body_font.get_linesize()

    def draw(self, screen: pygame.Surface, frame: dict[str, Any]) -> None:
        canvas = self.frame_surface
        scene: Scene = frame["scene"]
        canvas.fill(shade(tuple(int(c) for c in scene.background), 1.0))

        self._draw_scene(canvas, scene)
        self._draw_splash(canvas, frame.get("splash_blotches", []), float(frame.get("splash_opacity", 0.0)))
        self._draw_banners(canvas, frame.get("banners", []))
        if frame.get("prompt_open"):
            self._draw_prompt(canvas, frame)
        self._draw_hud(canvas, frame)

        blackout_alpha = int(frame.get("blackout_alpha", 0))
        if blackout_alpha > 0:
            self.fade_surface.fill((0, 0, 0, max(0, min(255, blackout_alpha))))
            canvas.blit(self.fade_surface, (0, 0))
            message = str(frame.get("blackout_message", ""))
            if message:
                surf = self.title_font.render(message, True, self.COLOR_DANGER)
                canvas.blit(surf, surf.get_rect(center=(self.WIDTH // 2, self.HEIGHT // 2)))

        canvas.blit(self.scanline_surface, (0, 0))
        screen.blit(canvas, (0, 0))

    def _light_factor(self, scene: Scene) -> float:
        ambient = scene.lights.get("ambient")
        red = scene.lights.get("red")
        level = (ambient.intensity if ambient else 0.6) + (red.intensity / 4.0 if red else 0.5)
        return max(0.3, min(2.0, level))

    def _draw_scene(self, canvas: pygame.Surface, scene: Scene) -> None:
        basis = CameraBasis(scene.camera, self.WIDTH, self.HEIGHT)
        factor = self._light_factor(scene)
        self.effect_surface.fill((0, 0, 0, 0))

        for entity in scene.entities.values():
            material = entity.material
            color = shade(material.color, factor)
            if material.emissive is not None:
                candle = scene.lights.get("candle")
                color = shade(material.emissive, candle.intensity if candle else 1.0)
            alpha = int(255 * material.opacity)
            if alpha <= 0:
                continue
            target = canvas if alpha >= 255 else self.effect_surface
            draw_color = color if alpha >= 255 else (*color, alpha)
            width = 2 if entity.shape.kind in ("ring", "polyline", "cylinder") else 1
            for a, b in entity_segments(entity):
                projected = basis.project_segment(a, b)
                if projected is not None:
                    pygame.draw.line(target, draw_color, projected[0], projected[1], width)

        canvas.blit(self.effect_surface, (0, 0))

    def _draw_splash(self, canvas: pygame.Surface, blotches: list[Any], opacity: float) -> None:
        if opacity <= 0 or not blotches:
            return
        layer = self.fade_surface
        layer.fill((0, 0, 0, 0))
        for blotch in blotches:
            alpha = max(0, min(255, int(255 * blotch.alpha * opacity)))
            center = (int(blotch.x * self.WIDTH), int(blotch.y * self.HEIGHT))
            radius = max(1, int(blotch.radius * self.WIDTH))
            pygame.draw.circle(layer, (*blotch.color, alpha), center, radius)
        canvas.blit(layer, (0, 0))

    def _draw_banners(self, canvas: pygame.Surface, banners: list[Any]) -> None:
        y = int(self.HEIGHT * 0.1)
        for banner in banners:
            fg, bg = self.TONE_COLORS.get(banner.tone, self.TONE_COLORS["info"])
            surf = self.body_font.render(banner.text, True, fg)
            rect = surf.get_rect(midtop=(self.WIDTH // 2, y)).inflate(24, 16)
            pygame.draw.rect(canvas, bg, rect, border_radius=6)
            canvas.blit(surf, surf.get_rect(center=rect.center))
            y = rect.bottom + 8

    def _draw_prompt(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        rect = self.PROMPT_RECT
        self._draw_ascii_border(canvas, rect, self.COLOR_BORDER)
        inner = self._panel_inner(rect).inflate(-self.char_w * 2, 0)
        lines = self._wrap_text(str(frame.get("prompt_question", "")), inner.width)
        y = inner.y
        for line in lines[:3]:
            canvas.blit(self.body_font.render(line, True, self.COLOR_TEXT), (inner.x, y))
            y += self.line_height

        answer = str(frame.get("prompt_text", ""))
        if frame.get("prompt_cursor_visible", True):
            answer = f"{answer}_"
        color = self.COLOR_TEXT if frame.get("prompt_has_text") else self.COLOR_DIM
        canvas.blit(self.body_font.render(f"> {answer}", True, color), (inner.x, y + 8))
        hint = self.small_font.render("ENTER to answer", True, self.COLOR_DIM)
        canvas.blit(hint, (inner.right - hint.get_width(), inner.bottom - hint.get_height()))

    def _draw_hud(self, canvas: pygame.Surface, frame: dict[str, Any]) -> None:
        text = str(frame.get("hud_text", ""))
        if not text:
            return
        surf = self.small_font.render(text, True, self.COLOR_DIM)
        canvas.blit(surf, (8, self.HEIGHT - surf.get_height() - 8))
