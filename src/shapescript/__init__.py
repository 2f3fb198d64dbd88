"""
shapescript - evaluator for the ShapeScript scene-description language.

    from shapescript import evaluate
    scene = evaluate(program)
"""

__version__ = "0.1.0"

from .geometry import Scene, Geometry, GeometryCache
from .dsl import (
    evaluate,
    EvaluationDelegate,
    FileDelegate,
    ScriptError,
    EvaluationError,
    Program,
    program_from_dict,
)

__all__ = [
    "__version__",
    "Scene",
    "Geometry",
    "GeometryCache",
    "evaluate",
    "EvaluationDelegate",
    "FileDelegate",
    "ScriptError",
    "EvaluationError",
    "Program",
    "program_from_dict",
]
