"""
Value types for the ShapeScript evaluator.

A ValueType tags both the runtime values and the parameter types that
symbols declare. A few tags (COLOR_OR_TEXTURE, PATHS, PAIR) never appear on a
value: they only select a coercion policy for arguments.
"""

from enum import Enum
from typing import FrozenSet


class ValueType(Enum):
    """The admissible argument and result shapes."""
    COLOR = "color"
    TEXTURE = "texture"
    COLOR_OR_TEXTURE = "colorOrTexture"  # accepts either; coerced by first value
    FONT = "font"
    NUMBER = "number"
    VECTOR = "vector"
    SIZE = "size"
    STRING = "string"
    PATH = "path"
    PATHS = "paths"  # any mixture of paths and tuples of paths
    MESH = "mesh"
    TUPLE = "tuple"
    POINT = "point"
    PAIR = "pair"  # exactly two numbers
    RANGE = "range"
    VOID = "void"

    @property
    def error_description(self) -> str:
        """The type name used in diagnostics."""
        return _ERROR_DESCRIPTIONS.get(self, self.value)

    def __str__(self) -> str:
        return self.error_description


_ERROR_DESCRIPTIONS = {
    ValueType.COLOR_OR_TEXTURE: "color or texture",
    ValueType.PATHS: "path",
}


# Child types accepted by the body of a definition (closure bodies and the
# right-hand side of `define`).
DEFINITION_CHILD_TYPES: FrozenSet[ValueType] = frozenset({ValueType.MESH, ValueType.PATH})


# Positional member names of tuple values, also used to phrase diagnostics.
ORDINALS = (
    "first", "second", "third", "fourth", "fifth",
    "sixth", "seventh", "eighth", "ninth", "tenth",
)
