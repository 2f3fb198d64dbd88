"""
Tests for the geometry value types.
"""

import math

import pytest

from shapescript.geometry import (
    Color, Geometry, GeometryType, Material, Path, PathPoint, Rotation,
    Scene, SCHEMA_ID, Transform, Vector,
)


class TestVector:
    """Test vector construction and arithmetic."""

    def test_from_components_pads(self):
        """Missing components are zero."""
        assert Vector.from_components([1]) == Vector(1, 0, 0)
        assert Vector.from_components([1, 2]) == Vector(1, 2, 0)
        assert Vector.from_components([]) == Vector.ZERO

    def test_size_single_component(self):
        """One component is a uniform size."""
        assert Vector.size([2]) == Vector(2, 2, 2)

    def test_size_two_components(self):
        """With two components the depth repeats the width."""
        assert Vector.size([2, 3]) == Vector(2, 3, 2)

    def test_arithmetic(self):
        """Test add, subtract, negate and scale."""
        a = Vector(1, 2, 3)
        b = Vector(4, 5, 6)
        assert a + b == Vector(5, 7, 9)
        assert b - a == Vector(3, 3, 3)
        assert -a == Vector(-1, -2, -3)
        assert a.scaled(Vector(2, 2, 2)) == Vector(2, 4, 6)


class TestRotation:
    """Test rotations in half turns."""

    def test_identity(self):
        """Zero angles give the identity."""
        assert Rotation.from_half_turns([0, 0, 0]).is_identity()

    def test_quarter_roll(self):
        """Roll turns about the z axis."""
        rotation = Rotation.from_half_turns([0.5])
        assert Vector(1, 0, 0).rotated(rotation).is_close(Vector(0, 1, 0))

    def test_half_turns_round_trip(self):
        """half_turns inverts from_half_turns for moderate angles."""
        angles = Vector(0.25, 0.1, -0.3)
        rotation = Rotation.from_half_turns(angles.as_list())
        assert rotation.half_turns().is_close(angles, tol=1e-9)

    def test_too_many_components(self):
        """More than three angles is an error."""
        with pytest.raises(ValueError):
            Rotation.from_half_turns([0, 0, 0, 0])


class TestTransform:
    """Test transform composition."""

    def test_apply_order(self):
        """Points are scaled, then rotated, then offset."""
        t = Transform(offset=Vector(1, 0, 0),
                      rotation=Rotation.from_half_turns([0.5]),
                      scale=Vector(2, 2, 2))
        assert t.apply(Vector(1, 0, 0)).is_close(Vector(1, 2, 0))

    def test_compose_applies_self_first(self):
        """(a * b).apply(p) == b.apply(a.apply(p))."""
        a = Transform(offset=Vector(1, 0, 0), scale=Vector(2, 2, 2))
        b = Transform(offset=Vector(0, 3, 0), rotation=Rotation.from_half_turns([0.5]))
        p = Vector(1, 1, 1)
        assert (a * b).apply(p).is_close(b.apply(a.apply(p)))

    def test_translated_is_local(self):
        """Translation is measured in the transform's own frame."""
        t = Transform(scale=Vector(2, 2, 2)).translated(Vector(1, 0, 0))
        assert t.offset.is_close(Vector(2, 0, 0))

    def test_dict_round_trip(self):
        """Transforms survive to_dict/from_dict."""
        t = Transform(offset=Vector(1, 2, 3), rotation=Rotation.from_half_turns([0.5]))
        restored = Transform.from_dict(t.to_dict())
        assert restored.offset == t.offset
        assert restored.rotation.is_identity() is False


class TestColor:
    """Test color construction."""

    def test_components(self):
        """1-4 components are gray, gray+alpha, rgb and rgba."""
        assert Color.from_components([0.5]) == Color(0.5, 0.5, 0.5)
        assert Color.from_components([0.5, 0.2]) == Color(0.5, 0.5, 0.5, 0.2)
        assert Color.from_components([1, 0, 0]) == Color.RED
        assert Color.from_components([1, 0, 0, 0.5]) == Color(1, 0, 0, 0.5)

    def test_invalid_component_count(self):
        """Zero or more than four components are rejected."""
        assert Color.from_components([]) is None
        assert Color.from_components([1, 2, 3, 4, 5]) is None
        assert Color.unchecked([]) == Color.CLEAR

    def test_from_hex(self):
        """Test the hex notations."""
        assert Color.from_hex("#ff0000") == Color.RED
        assert Color.from_hex("#f00") == Color.RED
        assert Color.from_hex("00ff0080").a == pytest.approx(128 / 255)
        assert Color.from_hex("#ggg") is None
        assert Color.from_hex("#12345") is None


class TestPath:
    """Test path helpers."""

    def test_polygon_is_closed(self):
        """Polygons repeat their first point."""
        path = Path.polygon(5)
        assert len(path.points) == 6
        assert path.is_closed

    def test_circle_points_are_curved(self):
        """Circles are polygons with curved points."""
        assert all(p.is_curved for p in Path.circle(8).points)

    def test_polygon_non_finite_sides(self):
        """NaN or infinite side counts fall back to a triangle."""
        assert len(Path.polygon(float("nan")).points) == 4
        assert len(Path.polygon(float("inf")).points) == 4

    def test_transformed(self):
        """Transforms apply to every point."""
        path = Path(points=(PathPoint(Vector(1, 0, 0)),))
        moved = path.transformed(Transform(offset=Vector(0, 0, 1)))
        assert moved.points[0].position == Vector(1, 0, 1)


class TestGeometry:
    """Test geometry nodes and scenes."""

    def test_transformed_composes(self):
        """transformed() applies the node's own transform first."""
        node = Geometry(GeometryType.CUBE, transform=Transform(offset=Vector(1, 0, 0)))
        moved = node.transformed(Transform(offset=Vector(0, 1, 0)))
        assert moved.transform.offset == Vector(1, 1, 0)

    def test_dict_round_trip(self):
        """A node tree survives to_dict/from_dict."""
        node = Geometry(
            GeometryType.GROUP,
            name="parts",
            children=(
                Geometry(GeometryType.CUBE, material=Material(color=Color.RED)),
                Geometry(GeometryType.PATH, paths=(Path.square(),)),
            ),
        )
        assert Geometry.from_dict(node.to_dict()) == node

    def test_from_dict_rejects_unknown_type(self):
        """Unknown node types are a ValueError."""
        with pytest.raises(ValueError):
            Geometry.from_dict({"type": "teapot"})

    @pytest.mark.parametrize("data", [
        {"type": "group", "children": [5]},
        {"type": "cube", "material": {"color": [1, 0]}},
        {"type": "cube", "material": "red"},
        {"type": "path", "paths": [{"points": [{}]}]},
        [],
    ])
    def test_from_dict_malformed(self, data):
        """Malformed documents are a ValueError, never a TypeError."""
        with pytest.raises(ValueError, match="invalid geometry node"):
            Geometry.from_dict(data)

    def test_scene_to_dict(self):
        """Scenes serialize with the schema id and background."""
        scene = Scene(background=Color.BLUE, children=[Geometry(GeometryType.SPHERE)])
        data = scene.to_dict()
        assert data["schema"] == SCHEMA_ID
        assert data["background"] == [0.0, 0.0, 1.0, 1.0]
        assert data["children"][0]["type"] == "sphere"
