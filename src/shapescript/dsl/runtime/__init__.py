"""
ShapeScript runtime - tree-walking evaluator.

This module provides:
- Interpreter / evaluate: Evaluates a parsed program into a Scene
- Value: Runtime value wrappers with type tags
- EvaluationContext: Scope tree and child accumulation
- EvaluationDelegate / FileDelegate: Host callbacks
- coerce: Argument coercion
"""

from .values import (
    Value,
    RangeValue,
    VOID,
    number_val,
    string_val,
    color_val,
    texture_val,
    vector_val,
    size_val,
    path_val,
    mesh_val,
    point_val,
    tuple_val,
    range_val,
    unwrap_value,
)

from .delegate import (
    EvaluationDelegate,
    FileDelegate,
)

from .context import EvaluationContext

from .coercion import coerce, validate_font

from .builtins import standard_symbols, all_symbol_names

from .interpreter import (
    Interpreter,
    EvaluationCancelled,
    MAX_RECURSION_DEPTH,
    evaluate,
)

__all__ = [
    # Values
    "Value",
    "RangeValue",
    "VOID",
    "number_val",
    "string_val",
    "color_val",
    "texture_val",
    "vector_val",
    "size_val",
    "path_val",
    "mesh_val",
    "point_val",
    "tuple_val",
    "range_val",
    "unwrap_value",
    # Host
    "EvaluationDelegate",
    "FileDelegate",
    # Context
    "EvaluationContext",
    # Coercion
    "coerce",
    "validate_font",
    # Symbols
    "standard_symbols",
    "all_symbol_names",
    # Interpreter
    "Interpreter",
    "EvaluationCancelled",
    "MAX_RECURSION_DEPTH",
    "evaluate",
]
