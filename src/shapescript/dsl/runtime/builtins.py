"""
Standard symbol tables for the ShapeScript interpreter.

Each block type sees one of a handful of tables: a cube body can set its
position and color but cannot create further shapes, a group body can do
both, and so on. Tables are assembled once from the groups registered below.
"""

from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence
import math

import numpy as np

from .values import (
    Value, VOID, color_or_texture_val, color_val, mesh_val, number_val,
    path_val, point_val, size_val, string_val, texture_val, tuple_val,
    vector_val,
)
from ..errors import AssertionFailure, EvaluationError, TypeMismatch
from ..symbols import (
    BlockSymbol, BlockType, CommandSymbol, ConstantSymbol, PropertySymbol,
    Symbol, SymbolTable,
)
from ..types import ValueType
from ...geometry import (
    Color, Geometry, GeometryType, Material, Path, PathPoint, Rotation,
)


def round_half_away_from_zero(x: float) -> float:
    """
    Round to the nearest integer, halves away from zero.

    Python's built-in round uses bankers rounding.
    """
    if not math.isfinite(x):
        return x
    magnitude = abs(x)
    whole = math.floor(magnitude)
    if magnitude - whole >= 0.5:
        whole += 1
    return float(whole if x >= 0 else -whole)


def _count(x: float) -> int:
    """Round to an integer count; NaN and infinities count as zero."""
    if not math.isfinite(x):
        return 0
    return int(round_half_away_from_zero(x))


def _numeric(fn: Callable[[np.ndarray], np.ndarray]) -> Callable[[float], float]:
    """Wrap a numpy ufunc so domain errors give NaN instead of warnings."""
    def wrapper(x: float) -> float:
        with np.errstate(all="ignore"):
            return float(fn(np.float64(x)))
    return wrapper


def _numbers(name: str, value: Value) -> List[float]:
    numbers = []
    for i, element in enumerate(value.data):
        if element.type is not ValueType.NUMBER:
            raise EvaluationError(TypeMismatch(name, i, "number", element.type.error_description))
        numbers.append(element.data)
    return numbers


def _material(context) -> Material:
    return replace(context.material, opacity=context.material.opacity * context.opacity)


def _node(context, kind: GeometryType, children: Sequence[Geometry] = (),
          paths: Sequence[Path] = ()) -> Value:
    return mesh_val(Geometry(
        type=kind,
        name=context.name,
        transform=context.transform,
        material=_material(context),
        children=tuple(children),
        paths=tuple(paths),
        source_location=context.source_location,
    ))


# =============================================================================
# Symbol groups
# =============================================================================

def _global_symbols() -> Dict[str, Symbol]:
    """Constants, math functions and evaluation settings."""
    symbols: Dict[str, Symbol] = {"pi": ConstantSymbol(number_val(math.pi))}

    colors = [
        ("red", Color.RED), ("green", Color.GREEN), ("blue", Color.BLUE),
        ("yellow", Color.YELLOW), ("cyan", Color.CYAN), ("magenta", Color.MAGENTA),
        ("white", Color.WHITE), ("black", Color.BLACK), ("gray", Color.GRAY),
        ("grey", Color.GRAY), ("clear", Color.CLEAR),
    ]
    for name, color in colors:
        symbols[name] = ConstantSymbol(color_val(color))

    number_funcs = [
        ("round", round_half_away_from_zero),
        ("floor", _numeric(np.floor)),
        ("ceil", _numeric(np.ceil)),
        ("abs", _numeric(np.abs)),
        ("sqrt", _numeric(np.sqrt)),
        ("sin", _numeric(np.sin)),
        ("cos", _numeric(np.cos)),
        ("tan", _numeric(np.tan)),
        ("asin", _numeric(np.arcsin)),
        ("acos", _numeric(np.arccos)),
        ("atan", _numeric(np.arctan)),
    ]
    for name, fn in number_funcs:
        symbols[name] = CommandSymbol(
            ValueType.NUMBER,
            lambda value, _, fn=fn: number_val(fn(value.data)),
        )

    def _atan2(value: Value, _) -> Value:
        y, x = value.data
        return number_val(math.atan2(y.data, x.data))

    def _pow(value: Value, _) -> Value:
        base, exponent = value.data
        with np.errstate(all="ignore"):
            return number_val(float(np.power(np.float64(base.data), np.float64(exponent.data))))

    symbols["atan2"] = CommandSymbol(ValueType.PAIR, _atan2)
    symbols["pow"] = CommandSymbol(ValueType.PAIR, _pow)
    symbols["min"] = CommandSymbol(
        ValueType.TUPLE, lambda value, _: number_val(min(_numbers("min", value))))
    symbols["max"] = CommandSymbol(
        ValueType.TUPLE, lambda value, _: number_val(max(_numbers("max", value))))

    def _seed(value: Value, context) -> Value:
        context.random.seed(value.data)
        return VOID

    def _print(value: Value, context) -> Value:
        context.debug_log(list(value.data))
        return VOID

    def _assert(value: Value, _) -> Value:
        values = list(value.data)
        if not values or values[0].type is not ValueType.NUMBER:
            got = values[0].type.error_description if values else "void"
            raise EvaluationError(TypeMismatch("assert", 0, "number", got))
        message = ""
        if len(values) > 1:
            if values[1].type is not ValueType.STRING:
                raise EvaluationError(TypeMismatch(
                    "assert", 1, "string", values[1].type.error_description))
            message = values[1].data or ""
        if values[0].data == 0:
            raise EvaluationError(AssertionFailure(message))
        return VOID

    symbols["rnd"] = CommandSymbol(
        ValueType.VOID, lambda _, context: number_val(context.random.random()))
    symbols["seed"] = CommandSymbol(ValueType.NUMBER, _seed)
    symbols["print"] = CommandSymbol(ValueType.TUPLE, _print)
    symbols["assert"] = CommandSymbol(ValueType.TUPLE, _assert)

    def _set_detail(value: Value, context) -> None:
        context.detail = max(0, _count(value.data))

    def _set_font(value: Value, context) -> None:
        context.font = value.data

    symbols["detail"] = PropertySymbol(
        ValueType.NUMBER, _set_detail, lambda context: number_val(context.detail))
    symbols["font"] = PropertySymbol(
        ValueType.FONT, _set_font, lambda context: string_val(context.font))
    return symbols


def _transform_symbols() -> Dict[str, Symbol]:
    """Properties of the node transform."""

    def _set_position(value: Value, context) -> None:
        context.transform = replace(context.transform, offset=value.data)

    def _set_orientation(value: Value, context) -> None:
        v = value.data
        context.transform = replace(context.transform,
                                    rotation=Rotation.from_half_turns([v.x, v.y, v.z]))

    def _set_size(value: Value, context) -> None:
        context.transform = replace(context.transform, scale=value.data)

    return {
        "position": PropertySymbol(
            ValueType.VECTOR, _set_position,
            lambda context: vector_val(context.transform.offset)),
        "orientation": PropertySymbol(
            ValueType.VECTOR, _set_orientation,
            lambda context: vector_val(context.transform.rotation.half_turns())),
        "size": PropertySymbol(
            ValueType.SIZE, _set_size,
            lambda context: size_val(context.transform.scale)),
    }


def _child_transform_symbols() -> Dict[str, Symbol]:
    """Commands that move everything added after them."""

    def _translate(value: Value, context) -> Value:
        context.child_transform = context.child_transform.translated(value.data)
        return VOID

    def _rotate(value: Value, context) -> Value:
        v = value.data
        context.child_transform = context.child_transform.rotated(
            Rotation.from_half_turns([v.x, v.y, v.z]))
        return VOID

    def _scale(value: Value, context) -> Value:
        context.child_transform = context.child_transform.scaled(value.data)
        return VOID

    return {
        "translate": CommandSymbol(ValueType.VECTOR, _translate),
        "rotate": CommandSymbol(ValueType.VECTOR, _rotate),
        "scale": CommandSymbol(ValueType.SIZE, _scale),
    }


def _material_symbols() -> Dict[str, Symbol]:

    def _set_color(value: Value, context) -> None:
        context.material = replace(context.material, color=value.data)

    def _set_texture(value: Value, context) -> None:
        context.material = replace(context.material, texture=value.data)

    def _set_opacity(value: Value, context) -> None:
        context.opacity = min(1.0, max(0.0, value.data))

    return {
        "color": PropertySymbol(
            ValueType.COLOR, _set_color,
            lambda context: color_val(context.material.color or Color.WHITE)),
        "texture": PropertySymbol(
            ValueType.TEXTURE, _set_texture,
            lambda context: texture_val(context.material.texture)),
        "opacity": PropertySymbol(
            ValueType.NUMBER, _set_opacity,
            lambda context: number_val(context.opacity)),
    }


def _node_symbols() -> Dict[str, Symbol]:

    def _set_name(value: Value, context) -> None:
        context.name = value.data

    return {
        "name": PropertySymbol(
            ValueType.STRING, _set_name, lambda context: string_val(context.name)),
    }


def _block_symbols() -> Dict[str, Symbol]:
    """Shapes, paths, builders, groups and text."""
    symbols: Dict[str, Symbol] = {}

    primitives = [
        ("cube", GeometryType.CUBE),
        ("sphere", GeometryType.SPHERE),
        ("cylinder", GeometryType.CYLINDER),
        ("cone", GeometryType.CONE),
    ]
    for name, kind in primitives:
        symbols[name] = BlockSymbol(
            BlockType.PRIMITIVE, lambda context, kind=kind: _node(context, kind))

    def _circle(context) -> Value:
        return path_val(Path.circle(max(3, context.detail)).transformed(context.transform))

    def _square(context) -> Value:
        return path_val(Path.square().transformed(context.transform))

    def _polygon(context) -> Value:
        sides = context.option_value("sides")
        count = _count(sides.data) if sides is not None else 5
        return path_val(Path.polygon(count).transformed(context.transform))

    symbols["circle"] = BlockSymbol(BlockType.custom(), _circle)
    symbols["square"] = BlockSymbol(BlockType.custom(), _square)
    symbols["polygon"] = BlockSymbol(
        BlockType.custom(None, {"sides": ValueType.NUMBER}), _polygon)

    def _path(context) -> Value:
        points = []
        subpaths = []
        for child in context.children:
            if child.type is ValueType.POINT:
                points.append(child.data)
            else:
                subpaths.append(child.data)
        path = Path(points=tuple(points), subpaths=tuple(subpaths))
        return path_val(path.transformed(context.transform))

    symbols["path"] = BlockSymbol(BlockType.PATH, _path)

    builders = [
        ("extrude", GeometryType.EXTRUDE),
        ("lathe", GeometryType.LATHE),
        ("loft", GeometryType.LOFT),
        ("fill", GeometryType.FILL),
    ]
    for name, kind in builders:
        symbols[name] = BlockSymbol(
            BlockType.BUILDER,
            lambda context, kind=kind: _node(
                context, kind, paths=[child.data for child in context.children]),
        )

    groups = [
        ("group", GeometryType.GROUP),
        ("union", GeometryType.UNION),
        ("difference", GeometryType.DIFFERENCE),
        ("intersection", GeometryType.INTERSECTION),
        ("xor", GeometryType.XOR),
        ("stencil", GeometryType.STENCIL),
    ]
    for name, kind in groups:
        symbols[name] = BlockSymbol(
            BlockType.GROUP,
            lambda context, kind=kind: _node(
                context, kind, children=[child.data for child in context.children]),
        )

    def _text(context) -> Value:
        text = "\n".join(child.data or "" for child in context.children)
        paths: List[Path] = []
        if context.delegate is not None:
            paths = context.delegate.text_paths(text, context.font, context.detail)
        return tuple_val([path_val(p.transformed(context.transform)) for p in paths])

    symbols["text"] = BlockSymbol(BlockType.TEXT, _text)
    return symbols


def _path_symbols() -> Dict[str, Symbol]:
    """Commands only available inside a path block."""
    return {
        "point": CommandSymbol(
            ValueType.VECTOR, lambda value, _: point_val(PathPoint(value.data))),
        "curve": CommandSymbol(
            ValueType.VECTOR, lambda value, _: point_val(PathPoint(value.data, is_curved=True))),
    }


def _root_symbols() -> Dict[str, Symbol]:

    def _set_background(value: Value, context) -> None:
        context.background = value.data

    def _get_background(context) -> Value:
        return color_or_texture_val(context.background or Color.CLEAR)

    return {
        "background": PropertySymbol(
            ValueType.COLOR_OR_TEXTURE, _set_background, _get_background),
    }


def _merge(*groups: Dict[str, Symbol]) -> Dict[str, Symbol]:
    merged: Dict[str, Symbol] = {}
    for group in groups:
        merged.update(group)
    return merged


def _build_tables() -> Dict[SymbolTable, Dict[str, Symbol]]:
    global_ = _global_symbols()
    transform = _transform_symbols()
    child_transform = _child_transform_symbols()
    material = _material_symbols()
    node = _node_symbols()
    blocks = _block_symbols()

    primitive = _merge(global_, transform, material, node)
    group = _merge(primitive, child_transform, blocks)
    return {
        SymbolTable.PRIMITIVE: primitive,
        SymbolTable.GROUP: group,
        SymbolTable.BUILDER: group,
        SymbolTable.PATH: _merge(global_, transform, node, child_transform, blocks,
                                 _path_symbols()),
        SymbolTable.TEXT: _merge(global_, transform, node, material),
        SymbolTable.DEFINITION: group,
        SymbolTable.ROOT: _merge(group, _root_symbols()),
    }


# Built on first use
_tables: Optional[Dict[SymbolTable, Dict[str, Symbol]]] = None
_all_names: Optional[frozenset] = None


def standard_symbols(table: SymbolTable) -> Dict[str, Symbol]:
    """Get one of the standard symbol tables."""
    global _tables
    if _tables is None:
        _tables = _build_tables()
    return _tables[table]


def all_symbol_names() -> frozenset:
    """Names defined in any standard table."""
    global _all_names
    if _all_names is None:
        names = set()
        for table in SymbolTable:
            names.update(standard_symbols(table))
        _all_names = frozenset(names)
    return _all_names
