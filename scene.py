#!/usr/bin/env python3
"""Scene graph collaborator: entities, camera, lights and the room layout."""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
import math

from pygame.math import Vector3


logger = logging.getLogger(__name__)

Color = tuple[int, int, int]

PENTAGRAM_CENTER = Vector3(0, -2.99, -10)
PENTAGON_RADIUS = 4.0
PORTAL_TARGET = Vector3(0, -1.5, -10)
CAMERA_START = Vector3(8, 6, 12)
CAMERA_LOOK_AT = Vector3(0, -2, -10)
BACKGROUND_DOOM: Color = (0x22, 0x00, 0x00)

WALL_W, WALL_H, WALL_D = 60.0, 20.0, 100.0


class MissingCollaborator(LookupError):
    """Raised when a named scene entity is not available yet."""


@dataclass(frozen=True)
class Shape:
    """Geometry description understood by the renderer."""

    kind: str  # box | plane | ring | polyline | cylinder
    size: tuple[float, ...] = ()
    points: tuple[Vector3, ...] = ()


@dataclass
class Material:
    color: Color = (255, 255, 255)
    emissive: Color | None = None
    opacity: float = 1.0


@dataclass
class Entity:
    handle: int
    shape: Shape
    material: Material
    position: Vector3
    rotation: Vector3 = field(default_factory=Vector3)
    scale: Vector3 = field(default_factory=lambda: Vector3(1, 1, 1))
    name: str = ""


@dataclass
class PointLight:
    color: Color
    intensity: float
    position: Vector3


@dataclass
class Camera:
    """Position plus yaw/pitch heading (radians)."""

    position: Vector3 = field(default_factory=lambda: Vector3(CAMERA_START))
    yaw: float = 0.0
    pitch: float = 0.0
    fov_deg: float = 75.0

    def look_at(self, target: Vector3) -> None:
        delta = target - self.position
        flat = math.hypot(delta.x, delta.z)
        self.yaw = math.atan2(delta.x, -delta.z)
        self.pitch = math.atan2(delta.y, flat) if flat or delta.y else 0.0

    @property
    def forward(self) -> Vector3:
        return Vector3(
            math.sin(self.yaw) * math.cos(self.pitch),
            math.sin(self.pitch),
            -math.cos(self.yaw) * math.cos(self.pitch),
        )


class Scene:
    """Owns every drawable entity; the encounter only talks to this surface."""

    def __init__(self) -> None:
        self.entities: dict[int, Entity] = {}
        self.names: dict[str, int] = {}
        self.camera = Camera()
        self.camera.look_at(CAMERA_LOOK_AT)
        self.background: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self.lights: dict[str, PointLight] = {}
        self.pentagon_points: list[Vector3] = []
        self._handles = itertools.count(1)

    def spawn_entity(
        self,
        shape: Shape,
        material: Material,
        position: Vector3,
        name: str = "",
    ) -> int:
        handle = next(self._handles)
        self.entities[handle] = Entity(handle, shape, material, Vector3(position), name=name)
        if name:
            self.names[name] = handle
        logger.debug("Spawned %s entity %d at %s", shape.kind, handle, tuple(position))
        return handle

    def despawn_entity(self, handle: int) -> None:
        entity = self.entities.pop(handle, None)
        if entity is None:
            logger.debug("Despawn of unknown entity %d ignored", handle)
            return
        if entity.name and self.names.get(entity.name) == handle:
            del self.names[entity.name]

    def has_entity(self, handle: int | None) -> bool:
        return handle is not None and handle in self.entities

    def entity(self, handle: int) -> Entity:
        try:
            return self.entities[handle]
        except KeyError:
            raise MissingCollaborator(f"entity {handle} is not in the scene") from None

    def find(self, name: str) -> Entity | None:
        handle = self.names.get(name)
        return self.entities.get(handle) if handle is not None else None

    def require(self, name: str) -> Entity:
        found = self.find(name)
        if found is None:
            raise MissingCollaborator(f"'{name}' is not in the scene yet")
        return found

    def set_entity_transform(
        self,
        handle: int,
        position: Vector3 | None = None,
        rotation: Vector3 | None = None,
        scale: Vector3 | float | None = None,
    ) -> None:
        entity = self.entity(handle)
        if position is not None:
            entity.position = Vector3(position)
        if rotation is not None:
            entity.rotation = Vector3(rotation)
        if scale is not None:
            entity.scale = Vector3(scale, scale, scale) if isinstance(scale, (int, float)) else Vector3(scale)

    def set_entity_material(
        self,
        handle: int,
        color: Color | None = None,
        opacity: float | None = None,
    ) -> None:
        material = self.entity(handle).material
        if color is not None:
            material.color = color
        if opacity is not None:
            material.opacity = max(0.0, min(1.0, opacity))

    def get_camera_position(self) -> Vector3:
        return Vector3(self.camera.position)

    def set_camera_position(self, position: Vector3) -> None:
        self.camera.position = Vector3(position)

    def add_light(self, name: str, light: PointLight) -> None:
        self.lights[name] = light


def make_wall(scene: Scene, width: float, height: float, position: Vector3, yaw: float, material: Material) -> int:
    handle = scene.spawn_entity(Shape("plane", (width, height)), material, position)
    scene.set_entity_transform(handle, rotation=Vector3(0, yaw, 0))
    return handle


def pentagon_points(radius: float = PENTAGON_RADIUS) -> list[Vector3]:
    points: list[Vector3] = []
    for i in range(5):
        angle = (i * 2 * math.pi) / 5 - math.pi / 2
        points.append(Vector3(math.cos(angle) * radius, PENTAGRAM_CENTER.y, math.sin(angle) * radius + PENTAGRAM_CENTER.z))
    return points


def build_room(scene: Scene, with_props: bool = True) -> Scene:
    """Lay out the throne room; props are the throne landmark and the door."""
    scene.add_light("ambient", PointLight((0x66, 0x33, 0x33), 0.6, Vector3(0, 0, 0)))
    scene.add_light("red", PointLight((0xFF, 0x22, 0x22), 2.0, Vector3(0, 6, -10)))
    scene.add_light("candle", PointLight((0xFF, 0xAA, 0x33), 1.2, Vector3(0, -2, -10)))

    floor = scene.spawn_entity(Shape("plane", (60, 120)), Material((0x22, 0, 0)), Vector3(0, -3, 0), name="floor")
    scene.set_entity_transform(floor, rotation=Vector3(-math.pi / 2, 0, 0))
    ceiling = scene.spawn_entity(Shape("plane", (60, 100)), Material((0x11, 0x11, 0x11)), Vector3(0, 14, -10), name="ceiling")
    scene.set_entity_transform(ceiling, rotation=Vector3(math.pi / 2, 0, 0))

    stone = Material((0x55, 0x4A, 0x44))
    make_wall(scene, WALL_W, WALL_H, Vector3(0, 4, -WALL_D / 2), 0.0, stone)
    make_wall(scene, WALL_W, WALL_H, Vector3(0, 4, WALL_D / 2 - 10), math.pi, stone)
    make_wall(scene, WALL_D, WALL_H, Vector3(-WALL_W / 2, 4, 0), math.pi / 2, stone)
    make_wall(scene, WALL_D, WALL_H, Vector3(WALL_W / 2, 4, 0), -math.pi / 2, stone)

    scene.pentagon_points = pentagon_points()
    star = tuple(scene.pentagon_points[i] for i in (0, 2, 4, 1, 3, 0))
    scene.spawn_entity(Shape("polyline", points=star), Material((0xFF, 0, 0)), Vector3(0, 0, 0), name="pentagram")
    scene.spawn_entity(
        Shape("ring", (PENTAGON_RADIUS * 0.95, PENTAGON_RADIUS * 1.05)),
        Material((0xFF, 0, 0), opacity=0.7),
        PENTAGRAM_CENTER,
        name="circle",
    )

    candle = Material((0xFF, 0xFF, 0xAA), emissive=(0xFF, 0xAA, 0x33))
    for point in scene.pentagon_points:
        scene.spawn_entity(Shape("cylinder", (0.1, 0.5)), candle, point + Vector3(0, 0.25, 0))

    if with_props:
        add_props(scene)
    return scene


def add_props(scene: Scene) -> None:
    throne = scene.spawn_entity(Shape("box", (1.2, 2.4, 1.0)), Material((0x44, 0x22, 0x22)), Vector3(0, -0.5, -40), name="throne")
    scene.set_entity_transform(throne, scale=3.5)
    door = scene.spawn_entity(Shape("plane", (1.5, 2.5)), Material((0x5A, 0x3A, 0x1E)), Vector3(0, 2, 40), name="door")
    scene.set_entity_transform(door, scale=4.0)
