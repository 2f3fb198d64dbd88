"""
Runtime value wrappers for the ShapeScript evaluator.

A Value pairs a ValueType tag with the Python/geometry object it carries.
Tuples carry a Python tuple of Values; the empty tuple doubles as `void`.
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence

from ..types import ORDINALS, ValueType
from ...geometry import Color, Geometry, Path, PathPoint, Texture, Vector


def ordinal_index(name: str) -> Optional[int]:
    """Map an ordinal member name ("first", "second", ...) to an index."""
    try:
        return ORDINALS.index(name)
    except ValueError:
        return None


@dataclass(frozen=True)
class RangeValue:
    """
    An inclusive numeric range. Iteration is lazy and restartable; `end` is
    included when the stride lands on it exactly.
    """
    start: float
    end: float
    step: float = 1.0

    def __post_init__(self):
        if self.step == 0:
            raise ValueError("range step must be nonzero")

    def __iter__(self) -> Iterator[float]:
        i = 0
        while True:
            value = self.start + self.step * i
            if (self.step > 0 and value > self.end) or (self.step < 0 and value < self.end):
                return
            yield value
            i += 1


@dataclass(frozen=True)
class Value:
    """
    A runtime value with its type tag.

    The `data` field holds the actual Python/geometry object.
    The `type` field holds the ValueType used for dispatch and coercion.
    """
    type: ValueType
    data: Any

    def __repr__(self) -> str:
        return f"Value({self.type.value}, {self.data!r})"

    @property
    def python_value(self) -> Any:
        """Plain Python representation, used for debug logging."""
        if self.type is ValueType.TUPLE:
            return [v.python_value for v in self.data]
        return self.data

    @property
    def double_value(self) -> float:
        assert self.type is ValueType.NUMBER, f"expected a number, got {self.type}"
        return float(self.data)

    @property
    def members(self) -> List[str]:
        """Names valid for member access on this value."""
        if self.type is ValueType.VECTOR:
            return ["x", "y", "z"]
        if self.type is ValueType.SIZE:
            return ["width", "height", "depth"]
        if self.type is ValueType.COLOR:
            return ["red", "green", "blue", "alpha"]
        if self.type is ValueType.RANGE:
            return ["start", "end", "step"]
        if self.type is ValueType.TUPLE:
            values = self.data
            members = list(ORDINALS[:len(values)])
            if not all(v.type is ValueType.NUMBER for v in values):
                if len(values) == 1:
                    members += values[0].members
                return members
            if len(values) < 5:
                members += ["red", "green", "blue", "alpha"]
                if len(values) < 4:
                    members += ["x", "y", "z", "width", "height", "depth"]
            return members
        return []

    def member(self, name: str) -> Optional["Value"]:
        """Look up a member by name; None if there is no such member."""
        if self.type is ValueType.VECTOR:
            return _component(self.data, {"x": "x", "y": "y", "z": "z"}, name)
        if self.type is ValueType.SIZE:
            return _component(self.data, {"width": "x", "height": "y", "depth": "z"}, name)
        if self.type is ValueType.COLOR:
            return _component(self.data, {"red": "r", "green": "g", "blue": "b", "alpha": "a"}, name)
        if self.type is ValueType.RANGE:
            return _component(self.data, {"start": "start", "end": "end", "step": "step"}, name)
        if self.type is ValueType.TUPLE:
            return self._tuple_member(name)
        return None

    def _tuple_member(self, name: str) -> Optional["Value"]:
        values = self.data
        index = ordinal_index(name)
        if index is not None:
            return values[index] if index < len(values) else None
        if not all(v.type is ValueType.NUMBER for v in values):
            if len(values) == 1:
                return values[0].member(name)
            return None
        numbers = [v.data for v in values]
        if name in ("x", "y", "z"):
            return vector_val(Vector.from_components(numbers)).member(name) if len(numbers) < 4 else None
        if name in ("width", "height", "depth"):
            return size_val(Vector.size(numbers)).member(name) if len(numbers) < 4 else None
        if name in ("red", "green", "blue", "alpha"):
            return color_val(Color.unchecked(numbers)).member(name) if len(numbers) < 5 else None
        return None


def _component(obj: Any, names: dict, name: str) -> Optional[Value]:
    attr = names.get(name)
    if attr is None:
        return None
    return number_val(getattr(obj, attr))


# Convenience constructors

def number_val(x: float) -> Value:
    """Create a number value."""
    return Value(ValueType.NUMBER, float(x))


def string_val(s: Optional[str]) -> Value:
    """Create a (possibly missing) string value."""
    return Value(ValueType.STRING, s)


def color_val(color: Color) -> Value:
    return Value(ValueType.COLOR, color)


def texture_val(texture: Optional[Texture]) -> Value:
    return Value(ValueType.TEXTURE, texture)


def vector_val(vector: Vector) -> Value:
    return Value(ValueType.VECTOR, vector)


def size_val(size: Vector) -> Value:
    return Value(ValueType.SIZE, size)


def path_val(path: Path) -> Value:
    return Value(ValueType.PATH, path)


def mesh_val(geometry: Geometry) -> Value:
    return Value(ValueType.MESH, geometry)


def point_val(point: PathPoint) -> Value:
    return Value(ValueType.POINT, point)


def tuple_val(values: Sequence[Value]) -> Value:
    """Create a tuple value from a sequence of Values."""
    return Value(ValueType.TUPLE, tuple(values))


def range_val(range_value: RangeValue) -> Value:
    return Value(ValueType.RANGE, range_value)


def color_or_texture_val(prop: Any) -> Value:
    """Wrap a material property (Color or Texture)."""
    if isinstance(prop, Color):
        return color_val(prop)
    return texture_val(prop)


VOID = tuple_val(())


def unwrap_value(value: Value) -> Value:
    """
    Collapse single-element tuples, recursively, including inside larger
    tuples. Always terminates since each step descends into the tuple.
    """
    if value.type is not ValueType.TUPLE:
        return value
    if len(value.data) == 1:
        return unwrap_value(value.data[0])
    return tuple_val([unwrap_value(v) for v in value.data])


def flatten_tuple(value: Value) -> List[Value]:
    """The elements of a tuple value, or the value itself as a list."""
    if value.type is ValueType.TUPLE:
        return list(value.data)
    return [value]
