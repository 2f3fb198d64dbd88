"""
ShapeScript scene-description language evaluator.

This module provides:
- AST: The program representation the evaluator consumes
- Runtime: Evaluates a program into a Scene
- Errors: ScriptError and friends, with formatted diagnostics
- Serialization: JSON encoding of programs

Usage:
    from shapescript.dsl import evaluate, program_from_dict

    program = program_from_dict(json.load(f))
    try:
        scene = evaluate(program, delegate=FileDelegate(base_dir))
    except ScriptError as error:
        print(error.format(program.source))
"""

from .ast import (
    SourceRange,
    SourceLocation,
    KEYWORDS,
    Identifier,
    Program,
    Block,
)

from .types import ValueType

from .errors import (
    ScriptError,
    LexerError,
    ParserError,
    EvaluationError,
    ImportFailure,
    RuntimeErrorType,
    UnknownSymbol,
    UnknownMember,
    UnknownFont,
    TypeMismatch,
    UnexpectedArgument,
    MissingArgument,
    UnusedValue,
    AssertionFailure,
    FileNotFound,
    FileAccessRestricted,
    FileTypeMismatch,
    FileParsingError,
    ImportedFileError,
)

from .suggestions import best_matches, edit_distance, suggest

from .symbols import (
    BlockType,
    CommandSymbol,
    PropertySymbol,
    BlockSymbol,
    ConstantSymbol,
    SymbolTable,
)

from .runtime import (
    EvaluationContext,
    EvaluationDelegate,
    FileDelegate,
    Interpreter,
    MAX_RECURSION_DEPTH,
    Value,
    evaluate,
)

from .serialization import program_from_dict, program_to_dict

__all__ = [
    # AST
    "SourceRange",
    "SourceLocation",
    "KEYWORDS",
    "Identifier",
    "Program",
    "Block",
    # Types
    "ValueType",
    # Errors
    "ScriptError",
    "LexerError",
    "ParserError",
    "EvaluationError",
    "ImportFailure",
    "RuntimeErrorType",
    "UnknownSymbol",
    "UnknownMember",
    "UnknownFont",
    "TypeMismatch",
    "UnexpectedArgument",
    "MissingArgument",
    "UnusedValue",
    "AssertionFailure",
    "FileNotFound",
    "FileAccessRestricted",
    "FileTypeMismatch",
    "FileParsingError",
    "ImportedFileError",
    # Suggestions
    "best_matches",
    "edit_distance",
    "suggest",
    # Symbols
    "BlockType",
    "CommandSymbol",
    "PropertySymbol",
    "BlockSymbol",
    "ConstantSymbol",
    "SymbolTable",
    # Runtime
    "EvaluationContext",
    "EvaluationDelegate",
    "FileDelegate",
    "Interpreter",
    "MAX_RECURSION_DEPTH",
    "Value",
    "evaluate",
    # Serialization
    "program_from_dict",
    "program_to_dict",
]
