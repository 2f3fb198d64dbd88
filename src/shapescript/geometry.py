"""
Geometry value types used by the ShapeScript evaluator.

Scene nodes carry their transform, material and path payload and serialize
to JSON-ready dictionaries. Meshing and CSG are left to the renderer.

Rotations are expressed the way scripts write them: roll, yaw and pitch in
half turns (1 == 180 degrees).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path as FilePath
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import math

import numpy as np


SCHEMA_ID = "shapescript-geometry-json-v0.1"


# =============================================================================
# Vectors and rotations
# =============================================================================

@dataclass(frozen=True)
class Vector:
    """A 3D vector. Missing components default to zero."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_components(cls, components: Sequence[float]) -> "Vector":
        """Build a vector from 0-3 components, padding with zeros."""
        values = [float(c) for c in components[:3]]
        values += [0.0] * (3 - len(values))
        return cls(*values)

    @classmethod
    def size(cls, components: Sequence[float]) -> "Vector":
        """
        Build a size vector from 1-3 components.

        A single component is a uniform size; with two components the depth
        repeats the width.
        """
        values = [float(c) for c in components[:3]]
        if not values:
            return cls(1.0, 1.0, 1.0)
        if len(values) == 1:
            return cls(values[0], values[0], values[0])
        if len(values) == 2:
            return cls(values[0], values[1], values[0])
        return cls(*values)

    def __add__(self, other: "Vector") -> "Vector":
        return Vector(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y, self.z - other.z)

    def __neg__(self) -> "Vector":
        return Vector(-self.x, -self.y, -self.z)

    def scaled(self, scale: "Vector") -> "Vector":
        """Component-wise multiplication."""
        return Vector(self.x * scale.x, self.y * scale.y, self.z * scale.z)

    def rotated(self, rotation: "Rotation") -> "Vector":
        return Vector(*(rotation.matrix @ self.as_array()))

    def transformed(self, transform: "Transform") -> "Vector":
        return transform.apply(self)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def as_list(self) -> List[float]:
        return [self.x, self.y, self.z]

    def is_close(self, other: "Vector", tol: float = 1e-9) -> bool:
        return bool(np.allclose(self.as_array(), other.as_array(), atol=tol))


Vector.ZERO = Vector()
Vector.ONE = Vector(1.0, 1.0, 1.0)


def _rotation_matrix(roll: float, yaw: float, pitch: float) -> np.ndarray:
    """Rotation matrix from roll (z), yaw (y) and pitch (x), in radians."""
    cr, sr = math.cos(roll), math.sin(roll)
    cy, sy = math.cos(yaw), math.sin(yaw)
    cp, sp = math.cos(pitch), math.sin(pitch)
    rz = np.array([[cr, -sr, 0.0], [sr, cr, 0.0], [0.0, 0.0, 1.0]])
    ry = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rx = np.array([[1.0, 0.0, 0.0], [0.0, cp, -sp], [0.0, sp, cp]])
    return rz @ ry @ rx


@dataclass(frozen=True)
class Rotation:
    """
    A 3x3 rotation matrix stored as nested tuples so rotations stay
    hashable and comparable.
    """
    rows: Tuple[Tuple[float, ...], ...] = ((1.0, 0.0, 0.0),
                                           (0.0, 1.0, 0.0),
                                           (0.0, 0.0, 1.0))

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Rotation":
        return cls(tuple(tuple(float(v) for v in row) for row in matrix))

    @classmethod
    def from_half_turns(cls, components: Sequence[float]) -> "Rotation":
        """
        Roll, yaw and pitch in half turns. Fewer than three components leave
        the remaining angles at zero.
        """
        if len(components) > 3:
            raise ValueError(f"expected at most 3 rotation components, got {len(components)}")
        roll, yaw, pitch = (list(components) + [0.0, 0.0, 0.0])[:3]
        return cls.from_matrix(_rotation_matrix(roll * math.pi, yaw * math.pi, pitch * math.pi))

    @property
    def matrix(self) -> np.ndarray:
        return np.array(self.rows, dtype=float)

    def half_turns(self) -> Vector:
        """Roll, yaw and pitch in half turns; inverse of from_half_turns."""
        m = self.matrix
        yaw = math.asin(max(-1.0, min(1.0, -m[2, 0])))
        roll = math.atan2(m[1, 0], m[0, 0])
        pitch = math.atan2(m[2, 1], m[2, 2])
        return Vector(roll / math.pi, yaw / math.pi, pitch / math.pi)

    def __mul__(self, other: "Rotation") -> "Rotation":
        """Apply self, then other."""
        return Rotation.from_matrix(other.matrix @ self.matrix)

    def is_identity(self) -> bool:
        return bool(np.allclose(self.matrix, np.identity(3)))


Rotation.IDENTITY = Rotation()


@dataclass(frozen=True)
class Transform:
    """
    An offset/rotation/scale triple. Points are scaled, then rotated, then
    offset.
    """
    offset: Vector = Vector.ZERO
    rotation: Rotation = Rotation.IDENTITY
    scale: Vector = Vector.ONE

    def apply(self, point: Vector) -> Vector:
        return point.scaled(self.scale).rotated(self.rotation) + self.offset

    def translated(self, offset: Vector) -> "Transform":
        return replace(self, offset=self.offset + offset.scaled(self.scale).rotated(self.rotation))

    def rotated(self, rotation: Rotation) -> "Transform":
        return replace(self, rotation=rotation * self.rotation)

    def scaled(self, scale: Vector) -> "Transform":
        return replace(self, scale=self.scale.scaled(scale))

    def __mul__(self, other: "Transform") -> "Transform":
        """Compose: apply self, then other."""
        return Transform(
            offset=self.offset.scaled(other.scale).rotated(other.rotation) + other.offset,
            rotation=self.rotation * other.rotation,
            scale=self.scale.scaled(other.scale),
        )

    def is_identity(self) -> bool:
        return (self.offset.is_close(Vector.ZERO)
                and self.scale.is_close(Vector.ONE)
                and self.rotation.is_identity())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offset": self.offset.as_list(),
            "rotation": [list(row) for row in self.rotation.rows],
            "scale": self.scale.as_list(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transform":
        return cls(
            offset=Vector.from_components(data.get("offset", [])),
            rotation=Rotation.from_matrix(np.array(data["rotation"], dtype=float))
            if "rotation" in data else Rotation.IDENTITY,
            scale=Vector.from_components(data["scale"]) if "scale" in data else Vector.ONE,
        )


Transform.IDENTITY = Transform()


# =============================================================================
# Materials
# =============================================================================

@dataclass(frozen=True)
class Color:
    """An RGBA color with components in the range 0-1."""
    r: float
    g: float
    b: float
    a: float = 1.0

    @classmethod
    def from_components(cls, components: Sequence[float]) -> Optional["Color"]:
        """
        1 component is a gray level, 2 are gray and alpha, 3 are RGB and 4 are
        RGBA. Returns None for any other count.
        """
        values = [float(c) for c in components]
        if len(values) == 1:
            return cls(values[0], values[0], values[0])
        if len(values) == 2:
            return cls(values[0], values[0], values[0], values[1])
        if len(values) == 3:
            return cls(*values)
        if len(values) == 4:
            return cls(*values)
        return None

    @classmethod
    def unchecked(cls, components: Sequence[float]) -> "Color":
        """Like from_components, but falls back to clear for bad input."""
        color = cls.from_components(components)
        return color if color is not None else Color.CLEAR

    @classmethod
    def from_hex(cls, text: str) -> Optional["Color"]:
        """Parse #rgb, #rgba, #rrggbb or #rrggbbaa (the '#' is optional)."""
        string = text[1:] if text.startswith("#") else text
        if len(string) == 3:
            string += "f"
        if len(string) == 4:
            string = "".join(ch * 2 for ch in string)
        elif len(string) == 6:
            string += "ff"
        elif len(string) != 8:
            return None
        try:
            rgba = int(string, 16)
        except ValueError:
            return None
        return cls(
            ((rgba >> 24) & 0xFF) / 255,
            ((rgba >> 16) & 0xFF) / 255,
            ((rgba >> 8) & 0xFF) / 255,
            (rgba & 0xFF) / 255,
        )

    def as_list(self) -> List[float]:
        return [self.r, self.g, self.b, self.a]


Color.CLEAR = Color(0.0, 0.0, 0.0, 0.0)
Color.BLACK = Color(0.0, 0.0, 0.0)
Color.WHITE = Color(1.0, 1.0, 1.0)
Color.GRAY = Color(0.5, 0.5, 0.5)
Color.RED = Color(1.0, 0.0, 0.0)
Color.GREEN = Color(0.0, 1.0, 0.0)
Color.BLUE = Color(0.0, 0.0, 1.0)
Color.YELLOW = Color(1.0, 1.0, 0.0)
Color.CYAN = Color(0.0, 1.0, 1.0)
Color.MAGENTA = Color(1.0, 0.0, 1.0)


@dataclass(frozen=True)
class Texture:
    """An image texture loaded from a file."""
    name: str
    url: FilePath

    @classmethod
    def file(cls, name: str, url: FilePath) -> "Texture":
        return cls(name=name, url=url)


# A material property is either a Color or a Texture
MaterialProperty = Union[Color, Texture]


@dataclass(frozen=True)
class Material:
    color: Optional[Color] = None
    texture: Optional[Texture] = None
    opacity: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "color": self.color.as_list() if self.color else None,
            "texture": str(self.texture.url) if self.texture else None,
            "opacity": self.opacity,
        }


Material.DEFAULT = Material()


# =============================================================================
# Paths
# =============================================================================

@dataclass(frozen=True)
class PathPoint:
    position: Vector
    is_curved: bool = False
    color: Optional[Color] = None

    def transformed(self, transform: Transform) -> "PathPoint":
        return replace(self, position=transform.apply(self.position))


@dataclass(frozen=True)
class Path:
    """A polyline or curve, optionally with nested subpaths."""
    points: Tuple[PathPoint, ...] = ()
    subpaths: Tuple["Path", ...] = ()

    @property
    def is_closed(self) -> bool:
        return len(self.points) > 2 and self.points[0].position.is_close(self.points[-1].position)

    def transformed(self, transform: Transform) -> "Path":
        return Path(
            points=tuple(p.transformed(transform) for p in self.points),
            subpaths=tuple(s.transformed(transform) for s in self.subpaths),
        )

    @classmethod
    def polygon(cls, sides: int, radius: float = 0.5) -> "Path":
        """A closed regular polygon in the XY plane."""
        sides = max(3, int(sides)) if math.isfinite(sides) else 3
        points = []
        for i in range(sides + 1):
            angle = 2 * math.pi * (i % sides) / sides
            points.append(PathPoint(Vector(-radius * math.sin(angle), radius * math.cos(angle))))
        return cls(points=tuple(points))

    @classmethod
    def circle(cls, segments: int = 16, radius: float = 0.5) -> "Path":
        path = cls.polygon(segments, radius)
        return cls(points=tuple(replace(p, is_curved=True) for p in path.points))

    @classmethod
    def square(cls, size: float = 1.0) -> "Path":
        h = size / 2
        corners = [(-h, h), (-h, -h), (h, -h), (h, h), (-h, h)]
        return cls(points=tuple(PathPoint(Vector(x, y)) for x, y in corners))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "points": [
                {"position": p.position.as_list(), "curved": p.is_curved}
                for p in self.points
            ],
            "subpaths": [s.to_dict() for s in self.subpaths],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Path":
        return cls(
            points=tuple(
                PathPoint(Vector.from_components(p["position"]), bool(p.get("curved", False)))
                for p in data.get("points", [])
            ),
            subpaths=tuple(cls.from_dict(s) for s in data.get("subpaths", [])),
        )


# =============================================================================
# Geometry nodes
# =============================================================================

class GeometryType(Enum):
    """Kinds of scene graph node."""
    GROUP = "group"
    CUBE = "cube"
    SPHERE = "sphere"
    CYLINDER = "cylinder"
    CONE = "cone"
    PATH = "path"
    EXTRUDE = "extrude"
    LATHE = "lathe"
    LOFT = "loft"
    FILL = "fill"
    UNION = "union"
    DIFFERENCE = "difference"
    INTERSECTION = "intersection"
    XOR = "xor"
    STENCIL = "stencil"
    MESH = "mesh"


@dataclass(frozen=True)
class Geometry:
    """
    A node in the scene graph.

    `paths` holds the path payload for PATH nodes and builder nodes (extrude,
    lathe, ...); container kinds keep their operands in `children`.
    """
    type: GeometryType
    name: Optional[str] = None
    transform: Transform = Transform.IDENTITY
    material: Material = Material.DEFAULT
    children: Tuple["Geometry", ...] = ()
    paths: Tuple[Path, ...] = ()
    source_location: Any = field(default=None, compare=False)

    def transformed(self, transform: Transform) -> "Geometry":
        return replace(self, transform=self.transform * transform)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "transform": self.transform.to_dict(),
            "material": self.material.to_dict(),
        }
        if self.name is not None:
            data["name"] = self.name
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        if self.paths:
            data["paths"] = [path.to_dict() for path in self.paths]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Geometry":
        """Rebuild a node; raises ValueError on malformed documents."""
        if not isinstance(data, dict):
            raise ValueError(f"invalid geometry node: expected an object, got {type(data).__name__}")
        try:
            kind = GeometryType(data["type"])
        except (KeyError, ValueError) as exc:
            raise ValueError(f"invalid geometry node: {exc}") from exc
        try:
            material = data.get("material") or {}
            color = material.get("color")
            return cls(
                type=kind,
                name=data.get("name"),
                transform=Transform.from_dict(data["transform"]) if "transform" in data else Transform.IDENTITY,
                material=Material(
                    color=Color(*color) if color else None,
                    opacity=float(material.get("opacity", 1.0)),
                ),
                children=tuple(cls.from_dict(c) for c in data.get("children", [])),
                paths=tuple(Path.from_dict(p) for p in data.get("paths", [])),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"invalid geometry node: {exc!r}") from exc


class GeometryCache:
    """
    Opaque cache handed through to the scene for the renderer's use.
    The evaluator never reads it.
    """

    def __init__(self):
        self._entries: Dict[Any, Any] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


@dataclass
class Scene:
    """The result of evaluating a program."""
    background: Optional[MaterialProperty] = None
    children: List[Geometry] = field(default_factory=list)
    cache: Optional[GeometryCache] = None

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.background, Color):
            background: Any = self.background.as_list()
        elif isinstance(self.background, Texture):
            background = str(self.background.url)
        else:
            background = None
        return {
            "schema": SCHEMA_ID,
            "background": background,
            "children": [child.to_dict() for child in self.children],
        }
